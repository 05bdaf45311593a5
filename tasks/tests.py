from unittest import mock

from django.contrib.auth import get_user_model
from django.core.files.uploadedfile import SimpleUploadedFile
from django.test import TestCase
from django.urls import reverse
from rest_framework import status
from rest_framework.exceptions import PermissionDenied, ValidationError
from rest_framework.test import APITestCase

from activities.models import ActivityLog
from activities.recorder import ActivityRecorder, MemorySink
from projects.models import Project

from .models import Task, TaskAttachment, TaskComment
from .ordering import ReorderItem, apply_position, next_order, reorder
from .services import TaskLifecycle
from .storage import StoredFile
from .views import TaskViewSet

User = get_user_model()


class FakeFileStore:
    def __init__(self, fail_on_delete=False):
        self.fail_on_delete = fail_on_delete
        self.stored = {}
        self.deleted = []

    def store(self, content, metadata):
        key = f"task_attachments/{metadata['name']}"
        self.stored[key] = content
        return StoredFile(url=f"/media/{key}", external_id=key)

    def delete(self, external_id):
        if self.fail_on_delete:
            raise ConnectionError("file store unavailable")
        self.deleted.append(external_id)


def make_user(username, **extra):
    return User.objects.create_user(
        username=username,
        email=f"{username}@example.com",
        password="testpass123",
        **extra,
    )


def make_task(project, user, title="Task", **extra):
    return Task.objects.create(
        title=title, project=project, created_by=user, **extra
    )


class BoardTestMixin:
    def setUp(self):
        self.owner = make_user("owner")
        self.member = make_user("member")
        self.outsider = make_user("outsider")
        self.project = Project.objects.create(name="Board", owner=self.owner)
        self.project.members.add(self.owner, self.member)
        self.other_project = Project.objects.create(
            name="Other board", owner=self.outsider
        )


class OrderingTest(BoardTestMixin, TestCase):
    def test_empty_column_starts_at_zero(self):
        self.assertEqual(next_order(self.project, Task.STATUS_TODO), 0)

    def test_next_order_follows_column_max(self):
        make_task(self.project, self.owner, order=4)
        make_task(self.project, self.owner, order=1)
        make_task(
            self.project, self.owner, status=Task.STATUS_DONE, order=9
        )

        self.assertEqual(next_order(self.project, Task.STATUS_TODO), 5)
        self.assertEqual(
            next_order(self.project, Task.STATUS_IN_REVIEW), 0
        )

    def test_duplicate_orders_fall_back_to_creation_time(self):
        first = make_task(self.project, self.owner, title="first", order=0)
        second = make_task(self.project, self.owner, title="second", order=0)

        column = list(Task.objects.column(self.project, Task.STATUS_TODO))

        self.assertEqual(column, [first, second])

    def test_transition_into_done_stamps_completed_at(self):
        task = make_task(self.project, self.owner)

        change = apply_position(task, status=Task.STATUS_DONE)

        self.assertEqual(change.previous, Task.STATUS_TODO)
        self.assertEqual(change.current, Task.STATUS_DONE)
        self.assertIsNotNone(task.completed_at)

    def test_transition_out_of_done_clears_completed_at(self):
        task = make_task(self.project, self.owner)
        apply_position(task, status=Task.STATUS_DONE)

        apply_position(task, status=Task.STATUS_IN_PROGRESS)

        self.assertIsNone(task.completed_at)

    def test_done_to_done_is_not_a_change(self):
        task = make_task(self.project, self.owner)
        apply_position(task, status=Task.STATUS_DONE)
        stamp = task.completed_at

        change = apply_position(task, status=Task.STATUS_DONE)

        self.assertIsNone(change)
        self.assertEqual(task.completed_at, stamp)

    def test_moving_column_without_order_appends(self):
        make_task(self.project, self.owner, status=Task.STATUS_DONE, order=3)
        task = make_task(self.project, self.owner, order=0)

        apply_position(task, status=Task.STATUS_DONE)

        self.assertEqual(task.order, 4)

    def test_moving_column_with_order_keeps_it(self):
        task = make_task(self.project, self.owner, order=7)

        apply_position(task, status=Task.STATUS_IN_REVIEW, order=1)

        self.assertEqual(task.order, 1)
        self.assertEqual(task.status, Task.STATUS_IN_REVIEW)

    def test_reorder_is_independent_of_submission_order(self):
        a = make_task(self.project, self.owner, title="A", order=5)
        b = make_task(self.project, self.owner, title="B", order=6)
        items = [
            ReorderItem(task_id=a.pk, status=Task.STATUS_DONE, order=0),
            ReorderItem(task_id=b.pk, status=Task.STATUS_DONE, order=1),
        ]

        for batch in (items, list(reversed(items))):
            reorder(self.project, batch)
            a.refresh_from_db()
            b.refresh_from_db()
            self.assertEqual((a.status, a.order), (Task.STATUS_DONE, 0))
            self.assertEqual((b.status, b.order), (Task.STATUS_DONE, 1))

    def test_reorder_skips_tasks_of_other_projects(self):
        mine = make_task(self.project, self.owner, order=3)
        foreign = make_task(self.other_project, self.outsider, order=8)

        outcomes = reorder(
            self.project,
            [
                ReorderItem(mine.pk, Task.STATUS_IN_PROGRESS, 0),
                ReorderItem(foreign.pk, Task.STATUS_DONE, 0),
            ],
        )

        mine.refresh_from_db()
        foreign.refresh_from_db()
        self.assertEqual(
            [outcome.applied for outcome in outcomes], [True, False]
        )
        self.assertEqual(mine.status, Task.STATUS_IN_PROGRESS)
        self.assertEqual(mine.order, 0)
        self.assertEqual(foreign.status, Task.STATUS_TODO)
        self.assertEqual(foreign.order, 8)

    def test_reorder_maintains_completed_at(self):
        task = make_task(self.project, self.owner)

        reorder(self.project, [ReorderItem(task.pk, Task.STATUS_DONE, 0)])
        task.refresh_from_db()
        stamp = task.completed_at
        self.assertIsNotNone(stamp)

        reorder(self.project, [ReorderItem(task.pk, Task.STATUS_DONE, 2)])
        task.refresh_from_db()
        self.assertEqual(task.completed_at, stamp)

        reorder(self.project, [ReorderItem(task.pk, Task.STATUS_TODO, 0)])
        task.refresh_from_db()
        self.assertIsNone(task.completed_at)


class TaskLifecycleTest(BoardTestMixin, TestCase):
    def setUp(self):
        super().setUp()
        self.sink = MemorySink()
        self.file_store = FakeFileStore()
        self.lifecycle = TaskLifecycle(
            recorder=ActivityRecorder(self.sink), file_store=self.file_store
        )

    def test_sequential_creates_increase_order_by_one(self):
        orders = [
            self.lifecycle.create_task(
                self.project, self.member, {"title": f"Task {i}"}
            ).order
            for i in range(4)
        ]

        self.assertEqual(orders, [0, 1, 2, 3])
        self.assertEqual(self.sink.actions(), ["created_task"] * 4)

    def test_create_ignores_requested_order(self):
        make_task(self.project, self.owner, order=2)

        task = self.lifecycle.create_task(
            self.project, self.member, {"title": "New", "order": 0}
        )

        self.assertEqual(task.order, 3)

    def test_create_into_done_column_stamps_completed_at(self):
        task = self.lifecycle.create_task(
            self.project,
            self.member,
            {"title": "Shipped", "status": Task.STATUS_DONE},
        )

        self.assertEqual(task.order, 0)
        self.assertIsNotNone(task.completed_at)

    def test_create_with_assignee_records_assignment(self):
        self.lifecycle.create_task(
            self.project,
            self.owner,
            {"title": "Assigned", "assignee": self.member},
        )

        self.assertEqual(
            self.sink.actions(), ["created_task", "assigned_task"]
        )

    def test_priority_only_update_records_updated_task(self):
        task = make_task(self.project, self.owner, order=2)

        self.lifecycle.update_task(task, self.owner, {"priority": "critical"})

        task.refresh_from_db()
        self.assertEqual(task.priority, "critical")
        self.assertEqual(task.status, Task.STATUS_TODO)
        self.assertEqual(task.order, 2)
        self.assertEqual(self.sink.actions(), ["updated_task"])

    def test_status_change_records_transition(self):
        task = make_task(self.project, self.owner)

        self.lifecycle.update_task(
            task, self.member, {"status": Task.STATUS_DONE}
        )

        task.refresh_from_db()
        self.assertIsNotNone(task.completed_at)
        event = self.sink.events[-1]
        self.assertEqual(event.action, "changed_status")
        self.assertEqual(event.meta["from"], Task.STATUS_TODO)
        self.assertEqual(event.meta["to"], Task.STATUS_DONE)

    def test_unchanged_status_does_not_record_transition(self):
        task = make_task(self.project, self.owner)
        self.lifecycle.update_task(
            task, self.member, {"status": Task.STATUS_DONE}
        )
        task.refresh_from_db()
        stamp = task.completed_at

        self.lifecycle.update_task(
            task, self.member, {"status": Task.STATUS_DONE}
        )

        task.refresh_from_db()
        self.assertEqual(task.completed_at, stamp)
        self.assertEqual(
            self.sink.actions(), ["changed_status", "updated_task"]
        )

    def test_reorder_rejects_empty_batch(self):
        with self.assertRaises(ValidationError):
            self.lifecycle.reorder_tasks(self.project, self.owner, [])

    def test_plain_member_cannot_delete_foreign_task(self):
        task = make_task(self.project, self.owner)

        with self.assertRaises(PermissionDenied):
            self.lifecycle.delete_task(self.project, task, self.member)
        self.assertTrue(Task.objects.filter(pk=task.pk).exists())

    def test_creator_deletes_task_with_comments_and_attachments(self):
        task = make_task(self.project, self.member)
        TaskComment.objects.create(task=task, author=self.owner, content="hi")
        TaskAttachment.objects.create(
            task=task, url="/media/a.txt", external_id="a.txt", name="a.txt"
        )

        self.lifecycle.delete_task(self.project, task, self.member)

        self.assertFalse(Task.objects.filter(pk=task.pk).exists())
        self.assertFalse(TaskComment.objects.filter(task_id=task.pk).exists())
        self.assertFalse(
            TaskAttachment.objects.filter(task_id=task.pk).exists()
        )
        self.assertEqual(self.file_store.deleted, ["a.txt"])
        event = self.sink.events[-1]
        self.assertEqual(event.action, "deleted_task")
        self.assertIsNone(event.task_id)

    def test_file_store_failure_does_not_block_delete(self):
        lifecycle = TaskLifecycle(
            recorder=ActivityRecorder(self.sink),
            file_store=FakeFileStore(fail_on_delete=True),
        )
        task = make_task(self.project, self.owner)
        TaskAttachment.objects.create(
            task=task, url="/media/b.txt", external_id="b.txt", name="b.txt"
        )

        with self.assertLogs("tasks.services", level="WARNING"):
            lifecycle.delete_task(self.project, task, self.owner)

        self.assertFalse(Task.objects.filter(pk=task.pk).exists())

    def test_attach_file_rejects_unsupported_type(self):
        task = make_task(self.project, self.owner)
        upload = SimpleUploadedFile(
            "run.exe", b"MZ", content_type="application/x-msdownload"
        )

        with self.assertRaises(ValidationError):
            self.lifecycle.attach_file(task, self.owner, upload)
        self.assertEqual(self.file_store.stored, {})


class TaskAPITest(BoardTestMixin, APITestCase):
    def setUp(self):
        super().setUp()
        self.client.force_authenticate(user=self.member)
        self.list_url = reverse(
            "project-task-list", kwargs={"project_pk": self.project.pk}
        )

    def detail_url(self, task, project=None):
        return reverse(
            "project-task-detail",
            kwargs={"project_pk": (project or self.project).pk, "pk": task.pk},
        )

    def test_create_tasks_into_column(self):
        first = self.client.post(self.list_url, {"title": "First"})
        second = self.client.post(self.list_url, {"title": "Second"})

        self.assertEqual(first.status_code, status.HTTP_201_CREATED)
        self.assertTrue(first.data["success"])
        self.assertEqual(first.data["task"]["order"], 0)
        self.assertEqual(second.data["task"]["order"], 1)
        self.assertEqual(
            ActivityLog.objects.filter(
                project=self.project, action="created_task"
            ).count(),
            2,
        )

    def test_create_requires_title(self):
        response = self.client.post(self.list_url, {"description": "none"})

        self.assertEqual(response.status_code, status.HTTP_400_BAD_REQUEST)
        self.assertFalse(response.data["success"])
        self.assertIn("title", response.data["errors"])

    def test_assignee_must_be_member(self):
        response = self.client.post(
            self.list_url, {"title": "Task", "assignee": self.outsider.pk}
        )

        self.assertEqual(response.status_code, status.HTTP_400_BAD_REQUEST)

    def test_list_tasks_with_filters_and_pagination(self):
        make_task(self.project, self.owner, title="Write docs", order=0)
        make_task(self.project, self.owner, title="Fix bug", order=1)
        make_task(
            self.project,
            self.owner,
            title="Release",
            status=Task.STATUS_DONE,
            order=0,
        )

        response = self.client.get(self.list_url, {"status": "todo"})

        self.assertEqual(response.status_code, status.HTTP_200_OK)
        self.assertEqual(
            [task["title"] for task in response.data["tasks"]],
            ["Write docs", "Fix bug"],
        )
        self.assertEqual(response.data["pagination"]["total"], 2)

        response = self.client.get(self.list_url, {"limit": 1, "page": 2})
        self.assertEqual(response.data["pagination"]["pages"], 3)
        self.assertEqual(len(response.data["tasks"]), 1)

    def test_page_past_the_end_is_empty(self):
        make_task(self.project, self.owner)

        response = self.client.get(self.list_url, {"page": 3, "limit": 1})

        self.assertEqual(response.status_code, status.HTTP_200_OK)
        self.assertTrue(response.data["success"])
        self.assertEqual(response.data["tasks"], [])
        self.assertEqual(
            response.data["pagination"],
            {"total": 1, "page": 3, "limit": 1, "pages": 1},
        )

    def test_invalid_page_is_rejected(self):
        response = self.client.get(self.list_url, {"page": "abc"})

        self.assertEqual(response.status_code, status.HTTP_400_BAD_REQUEST)
        self.assertFalse(response.data["success"])

    def test_board_groups_columns(self):
        make_task(self.project, self.owner, title="b", order=1)
        make_task(self.project, self.owner, title="a", order=0)
        make_task(
            self.project, self.owner, title="c", status=Task.STATUS_IN_REVIEW
        )

        response = self.client.get(
            reverse(
                "project-task-board", kwargs={"project_pk": self.project.pk}
            )
        )

        columns = response.data["columns"]
        self.assertEqual([t["title"] for t in columns["todo"]], ["a", "b"])
        self.assertEqual([t["title"] for t in columns["in_review"]], ["c"])
        self.assertEqual(columns["done"], [])

    def test_task_is_scoped_to_its_project(self):
        foreign = make_task(self.other_project, self.outsider)
        self.other_project.members.add(self.member)

        response = self.client.get(self.detail_url(foreign))

        self.assertEqual(response.status_code, status.HTTP_404_NOT_FOUND)
        self.assertEqual(response.data["message"], "Task not found")

    def test_retrieve_includes_comments(self):
        task = make_task(self.project, self.owner)
        TaskComment.objects.create(task=task, author=self.owner, content="hi")

        response = self.client.get(self.detail_url(task))

        self.assertEqual(response.status_code, status.HTTP_200_OK)
        self.assertEqual(response.data["task"]["comments"][0]["content"], "hi")
        self.assertEqual(response.data["task"]["comment_count"], 1)

    def test_update_status_to_done(self):
        task = make_task(self.project, self.owner)

        response = self.client.patch(
            self.detail_url(task), {"status": "done"}, format="json"
        )

        self.assertEqual(response.status_code, status.HTTP_200_OK)
        self.assertIsNotNone(response.data["task"]["completed_at"])
        log = ActivityLog.objects.get(action="changed_status")
        self.assertEqual(log.meta["from"], "todo")
        self.assertEqual(log.meta["to"], "done")

    def test_reorder_endpoint(self):
        a = make_task(self.project, self.owner, title="A", order=0)
        b = make_task(self.project, self.owner, title="B", order=1)
        foreign = make_task(self.other_project, self.outsider, order=5)
        url = reverse(
            "project-task-reorder", kwargs={"project_pk": self.project.pk}
        )

        response = self.client.patch(
            url,
            {
                "tasks": [
                    {"id": b.pk, "status": "done", "order": 1},
                    {"id": a.pk, "status": "done", "order": 0},
                    {"id": foreign.pk, "status": "done", "order": 0},
                ]
            },
            format="json",
        )

        self.assertEqual(response.status_code, status.HTTP_200_OK)
        self.assertTrue(response.data["success"])
        self.assertEqual(response.data["updated"], 2)
        a.refresh_from_db()
        b.refresh_from_db()
        foreign.refresh_from_db()
        self.assertEqual((a.status, a.order), ("done", 0))
        self.assertEqual((b.status, b.order), ("done", 1))
        self.assertEqual((foreign.status, foreign.order), ("todo", 5))

    def test_reorder_rejects_empty_list(self):
        url = reverse(
            "project-task-reorder", kwargs={"project_pk": self.project.pk}
        )

        response = self.client.patch(url, {"tasks": []}, format="json")

        self.assertEqual(response.status_code, status.HTTP_400_BAD_REQUEST)
        self.assertFalse(response.data["success"])

    def test_member_cannot_delete_owners_task(self):
        task = make_task(self.project, self.owner)

        response = self.client.delete(self.detail_url(task))

        self.assertEqual(response.status_code, status.HTTP_403_FORBIDDEN)
        self.assertFalse(response.data["success"])

    def test_owner_deletes_task(self):
        task = make_task(self.project, self.member)
        created = ActivityLog.objects.create(
            project=self.project,
            task=task,
            user=self.member,
            action="created_task",
        )
        self.client.force_authenticate(user=self.owner)

        response = self.client.delete(self.detail_url(task))

        self.assertEqual(response.status_code, status.HTTP_200_OK)
        self.assertFalse(Task.objects.filter(pk=task.pk).exists())
        self.assertTrue(
            ActivityLog.objects.filter(action="deleted_task").exists()
        )
        created.refresh_from_db()
        self.assertIsNone(created.task_id)

    def test_upload_and_delete_attachment(self):
        task = make_task(self.project, self.owner)
        store = FakeFileStore()
        lifecycle = TaskLifecycle(file_store=store)

        with mock.patch.object(
            TaskViewSet, "get_lifecycle", return_value=lifecycle
        ):
            response = self.client.post(
                reverse(
                    "project-task-upload",
                    kwargs={"project_pk": self.project.pk, "pk": task.pk},
                ),
                {
                    "file": SimpleUploadedFile(
                        "notes.txt", b"hello", content_type="text/plain"
                    )
                },
                format="multipart",
            )
            self.assertEqual(response.status_code, status.HTTP_201_CREATED)
            attachment_id = response.data["attachment"]["id"]

            response = self.client.delete(
                reverse(
                    "project-task-delete-attachment",
                    kwargs={
                        "project_pk": self.project.pk,
                        "pk": task.pk,
                        "attachment_pk": attachment_id,
                    },
                )
            )

        self.assertEqual(response.status_code, status.HTTP_200_OK)
        self.assertEqual(store.deleted, ["task_attachments/notes.txt"])
        self.assertFalse(TaskAttachment.objects.filter(task=task).exists())
        self.assertTrue(
            ActivityLog.objects.filter(action="uploaded_file").exists()
        )

    def test_outsider_sees_project_as_missing(self):
        self.client.force_authenticate(user=self.outsider)

        response = self.client.get(self.list_url)

        self.assertEqual(response.status_code, status.HTTP_404_NOT_FOUND)
        self.assertEqual(response.data["message"], "Project not found")


class TaskCommentAPITest(BoardTestMixin, APITestCase):
    def setUp(self):
        super().setUp()
        self.task = make_task(self.project, self.owner)
        self.list_url = reverse(
            "task-comment-list", kwargs={"task_pk": self.task.pk}
        )

    def detail_url(self, comment):
        return reverse(
            "task-comment-detail",
            kwargs={"task_pk": self.task.pk, "pk": comment.pk},
        )

    def test_add_comment(self):
        self.client.force_authenticate(user=self.member)

        response = self.client.post(self.list_url, {"content": "  Looks good "})

        self.assertEqual(response.status_code, status.HTTP_201_CREATED)
        self.assertEqual(response.data["comment"]["content"], "Looks good")
        self.assertEqual(
            response.data["comment"]["author"]["id"], self.member.pk
        )
        self.assertTrue(
            ActivityLog.objects.filter(
                action="added_comment", task=self.task
            ).exists()
        )

    def test_blank_comment_is_rejected(self):
        self.client.force_authenticate(user=self.member)

        response = self.client.post(self.list_url, {"content": "   "})

        self.assertEqual(response.status_code, status.HTTP_400_BAD_REQUEST)

    def test_list_comments(self):
        TaskComment.objects.create(task=self.task, author=self.owner, content="1")
        TaskComment.objects.create(task=self.task, author=self.member, content="2")
        self.client.force_authenticate(user=self.member)

        response = self.client.get(self.list_url)

        self.assertEqual(response.data["count"], 2)
        self.assertEqual(
            [c["content"] for c in response.data["comments"]], ["1", "2"]
        )

    def test_only_author_edits(self):
        comment = TaskComment.objects.create(
            task=self.task, author=self.member, content="draft"
        )

        self.client.force_authenticate(user=self.owner)
        response = self.client.patch(
            self.detail_url(comment), {"content": "hijack"}
        )
        self.assertEqual(response.status_code, status.HTTP_403_FORBIDDEN)

        self.client.force_authenticate(user=self.member)
        response = self.client.patch(
            self.detail_url(comment), {"content": "final"}
        )
        self.assertEqual(response.status_code, status.HTTP_200_OK)
        self.assertTrue(response.data["comment"]["is_edited"])

    def test_owner_deletes_members_comment(self):
        comment = TaskComment.objects.create(
            task=self.task, author=self.member, content="bye"
        )
        self.client.force_authenticate(user=self.owner)

        response = self.client.delete(self.detail_url(comment))

        self.assertEqual(response.status_code, status.HTTP_200_OK)
        self.assertFalse(TaskComment.objects.filter(pk=comment.pk).exists())

    def test_member_cannot_delete_others_comment(self):
        comment = TaskComment.objects.create(
            task=self.task, author=self.owner, content="keep"
        )
        self.client.force_authenticate(user=self.member)

        response = self.client.delete(self.detail_url(comment))

        self.assertEqual(response.status_code, status.HTTP_403_FORBIDDEN)

    def test_outsider_cannot_see_task_comments(self):
        self.client.force_authenticate(user=self.outsider)

        response = self.client.get(self.list_url)

        self.assertEqual(response.status_code, status.HTTP_404_NOT_FOUND)
        self.assertEqual(response.data["message"], "Task not found")
