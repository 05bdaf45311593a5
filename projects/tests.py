from django.contrib.auth import get_user_model
from django.test import TestCase
from django.urls import reverse
from rest_framework import status
from rest_framework.exceptions import NotFound
from rest_framework.test import APITestCase

from accounts.permissions import Access, get_project_for, resolve_access
from activities.models import ActivityLog
from tasks.models import Task, TaskAttachment, TaskComment

from .models import Project
from .services import ProjectService

User = get_user_model()


class RecordingFileStore:
    def __init__(self):
        self.deleted = []

    def delete(self, external_id):
        self.deleted.append(external_id)


class ProjectAccessTest(TestCase):
    def setUp(self):
        self.owner = User.objects.create_user(
            username="owner", email="owner@example.com", password="testpass123"
        )
        self.member = User.objects.create_user(
            username="member", email="member@example.com", password="testpass123"
        )
        self.outsider = User.objects.create_user(
            username="outsider",
            email="outsider@example.com",
            password="testpass123",
        )
        self.admin = User.objects.create_user(
            username="admin",
            email="admin@example.com",
            password="testpass123",
            role=User.ROLE_ADMIN,
        )
        self.project = Project.objects.create(name="Roadmap", owner=self.owner)
        self.project.members.add(self.member)

    def test_resolve_access(self):
        self.assertEqual(resolve_access(self.project, self.admin), Access.ADMIN)
        self.assertEqual(resolve_access(self.project, self.owner), Access.OWNER)
        self.assertEqual(
            resolve_access(self.project, self.member), Access.MEMBER
        )
        self.assertEqual(
            resolve_access(self.project, self.outsider), Access.DENIED
        )

    def test_owner_missing_from_member_list_still_has_access(self):
        self.assertFalse(
            self.project.members.filter(pk=self.owner.pk).exists()
        )
        self.assertEqual(
            get_project_for(self.owner, self.project.pk), self.project
        )

    def test_outsider_cannot_tell_existing_from_missing(self):
        with self.assertRaises(NotFound) as existing:
            get_project_for(self.outsider, self.project.pk)
        with self.assertRaises(NotFound) as missing:
            get_project_for(self.outsider, self.project.pk + 1000)

        self.assertEqual(
            str(existing.exception.detail), str(missing.exception.detail)
        )

    def test_visible_to(self):
        other = Project.objects.create(name="Other", owner=self.outsider)

        self.assertEqual(
            list(Project.objects.visible_to(self.member)), [self.project]
        )
        self.assertEqual(
            list(Project.objects.visible_to(self.owner)), [self.project]
        )
        self.assertEqual(
            set(Project.objects.visible_to(self.admin)), {self.project, other}
        )


class ProjectServiceTest(TestCase):
    def setUp(self):
        self.owner = User.objects.create_user(
            username="owner", email="owner@example.com", password="testpass123"
        )
        self.member = User.objects.create_user(
            username="member", email="member@example.com", password="testpass123"
        )
        self.file_store = RecordingFileStore()
        self.service = ProjectService(file_store=self.file_store)
        self.project = self.service.create_project(
            self.owner, {"name": "Launch"}
        )

    def test_create_adds_owner_as_member(self):
        self.assertIn(self.owner, self.project.members.all())
        self.assertTrue(
            ActivityLog.objects.filter(
                project=self.project, action="created_project"
            ).exists()
        )

    def test_delete_removes_everything_under_project(self):
        task = Task.objects.create(
            title="Write", project=self.project, created_by=self.owner
        )
        TaskComment.objects.create(task=task, author=self.owner, content="ok")
        TaskAttachment.objects.create(
            task=task, url="/media/x.pdf", external_id="x.pdf", name="x.pdf"
        )
        project_pk = self.project.pk

        self.service.delete_project(self.project, self.owner)

        self.assertFalse(Project.objects.filter(pk=project_pk).exists())
        self.assertFalse(Task.objects.filter(project_id=project_pk).exists())
        self.assertFalse(
            ActivityLog.objects.filter(project_id=project_pk).exists()
        )
        self.assertFalse(TaskComment.objects.exists())
        self.assertFalse(TaskAttachment.objects.exists())
        self.assertEqual(self.file_store.deleted, ["x.pdf"])

    def test_add_member_by_email(self):
        self.service.add_member(self.project, self.owner, "MEMBER@example.com")

        self.assertIn(self.member, self.project.members.all())
        log = ActivityLog.objects.get(action="added_member")
        self.assertEqual(log.meta["memberEmail"], "member@example.com")


class ProjectAPITest(APITestCase):
    def setUp(self):
        self.owner = User.objects.create_user(
            username="owner", email="owner@example.com", password="testpass123"
        )
        self.member = User.objects.create_user(
            username="member", email="member@example.com", password="testpass123"
        )
        self.outsider = User.objects.create_user(
            username="outsider",
            email="outsider@example.com",
            password="testpass123",
        )
        self.project = Project.objects.create(name="Roadmap", owner=self.owner)
        self.project.members.add(self.owner, self.member)
        self.client.force_authenticate(user=self.owner)

    def detail_url(self, pk=None):
        return reverse("project-detail", kwargs={"pk": pk or self.project.pk})

    def test_unauthenticated_request_is_rejected(self):
        self.client.force_authenticate(user=None)

        response = self.client.get(reverse("project-list"))

        self.assertEqual(response.status_code, status.HTTP_401_UNAUTHORIZED)
        self.assertFalse(response.data["success"])

    def test_create_project(self):
        response = self.client.post(
            reverse("project-list"),
            {"name": "Website", "description": "Relaunch"},
        )

        self.assertEqual(response.status_code, status.HTTP_201_CREATED)
        self.assertTrue(response.data["success"])
        project = response.data["project"]
        self.assertEqual(project["owner"]["id"], self.owner.pk)
        self.assertEqual(
            [member["id"] for member in project["members"]], [self.owner.pk]
        )
        self.assertEqual(project["task_count"], 0)

    def test_create_rejects_short_name(self):
        response = self.client.post(reverse("project-list"), {"name": "x"})

        self.assertEqual(response.status_code, status.HTTP_400_BAD_REQUEST)
        self.assertFalse(response.data["success"])
        self.assertIn("name", response.data["errors"])

    def test_list_only_visible_projects(self):
        Project.objects.create(name="Hidden", owner=self.outsider)
        self.client.force_authenticate(user=self.member)

        response = self.client.get(reverse("project-list"))

        self.assertEqual(response.data["count"], 1)
        self.assertEqual(response.data["projects"][0]["name"], "Roadmap")

    def test_list_filters_by_status(self):
        Project.objects.create(
            name="Old", owner=self.owner, status=Project.STATUS_ARCHIVED
        )

        response = self.client.get(reverse("project-list"), {"status": "archived"})

        self.assertEqual(
            [project["name"] for project in response.data["projects"]], ["Old"]
        )

    def test_outsider_gets_same_not_found(self):
        self.client.force_authenticate(user=self.outsider)

        existing = self.client.get(self.detail_url())
        missing = self.client.get(self.detail_url(self.project.pk + 1000))

        self.assertEqual(existing.status_code, status.HTTP_404_NOT_FOUND)
        self.assertEqual(missing.status_code, status.HTTP_404_NOT_FOUND)
        self.assertEqual(existing.data, missing.data)

    def test_member_cannot_update(self):
        self.client.force_authenticate(user=self.member)

        response = self.client.patch(self.detail_url(), {"name": "Renamed"})

        self.assertEqual(response.status_code, status.HTTP_403_FORBIDDEN)
        self.project.refresh_from_db()
        self.assertEqual(self.project.name, "Roadmap")

    def test_owner_updates_project(self):
        response = self.client.patch(
            self.detail_url(), {"name": "Renamed", "color": "#112233"}
        )

        self.assertEqual(response.status_code, status.HTTP_200_OK)
        self.assertEqual(response.data["project"]["name"], "Renamed")
        self.assertTrue(
            ActivityLog.objects.filter(action="updated_project").exists()
        )

    def test_invalid_color_is_rejected(self):
        response = self.client.patch(self.detail_url(), {"color": "blue"})

        self.assertEqual(response.status_code, status.HTTP_400_BAD_REQUEST)

    def test_delete_project(self):
        Task.objects.create(
            title="Pending", project=self.project, created_by=self.member
        )
        ActivityLog.objects.create(
            project=self.project, user=self.owner, action="created_project"
        )

        self.client.force_authenticate(user=self.member)
        response = self.client.delete(self.detail_url())
        self.assertEqual(response.status_code, status.HTTP_403_FORBIDDEN)

        self.client.force_authenticate(user=self.owner)
        response = self.client.delete(self.detail_url())
        self.assertEqual(response.status_code, status.HTTP_200_OK)
        self.assertTrue(response.data["success"])

        response = self.client.get(self.detail_url())
        self.assertEqual(response.status_code, status.HTTP_404_NOT_FOUND)
        self.assertFalse(Task.objects.filter(title="Pending").exists())
        self.assertFalse(ActivityLog.objects.exists())

    def test_add_member(self):
        response = self.client.post(
            reverse("project-members", kwargs={"pk": self.project.pk}),
            {"email": "outsider@example.com"},
        )

        self.assertEqual(response.status_code, status.HTTP_200_OK)
        self.assertIn(
            self.outsider.pk,
            [member["id"] for member in response.data["project"]["members"]],
        )

    def test_add_existing_member_conflicts(self):
        response = self.client.post(
            reverse("project-members", kwargs={"pk": self.project.pk}),
            {"email": "member@example.com"},
        )

        self.assertEqual(response.status_code, status.HTTP_409_CONFLICT)
        self.assertEqual(response.data["message"], "User is already a member")

    def test_add_unknown_email(self):
        response = self.client.post(
            reverse("project-members", kwargs={"pk": self.project.pk}),
            {"email": "nobody@example.com"},
        )

        self.assertEqual(response.status_code, status.HTTP_404_NOT_FOUND)

    def test_remove_member(self):
        response = self.client.delete(
            reverse(
                "project-remove-member",
                kwargs={"pk": self.project.pk, "member_pk": self.member.pk},
            )
        )

        self.assertEqual(response.status_code, status.HTTP_200_OK)
        self.assertNotIn(self.member, self.project.members.all())
        self.assertTrue(
            ActivityLog.objects.filter(action="removed_member").exists()
        )

    def test_cannot_remove_owner(self):
        response = self.client.delete(
            reverse(
                "project-remove-member",
                kwargs={"pk": self.project.pk, "member_pk": self.owner.pk},
            )
        )

        self.assertEqual(response.status_code, status.HTTP_400_BAD_REQUEST)
        self.assertEqual(response.data["message"], "Cannot remove project owner")

    def test_activity_feed_is_paginated_newest_first(self):
        for name in ("first", "second", "third"):
            ActivityLog.objects.create(
                project=self.project,
                user=self.owner,
                action="updated_project",
                meta={"projectName": name},
            )

        response = self.client.get(
            reverse("project-activity", kwargs={"pk": self.project.pk}),
            {"limit": 2},
        )

        self.assertEqual(response.status_code, status.HTTP_200_OK)
        self.assertEqual(
            [log["meta"]["projectName"] for log in response.data["logs"]],
            ["third", "second"],
        )
        self.assertEqual(response.data["pagination"]["total"], 3)
        self.assertEqual(response.data["pagination"]["pages"], 2)

    def test_activity_page_past_the_end_is_empty(self):
        ActivityLog.objects.create(
            project=self.project, user=self.owner, action="created_project"
        )

        response = self.client.get(
            reverse("project-activity", kwargs={"pk": self.project.pk}),
            {"page": 2},
        )

        self.assertEqual(response.status_code, status.HTTP_200_OK)
        self.assertEqual(response.data["logs"], [])
        self.assertEqual(
            response.data["pagination"],
            {"total": 1, "page": 2, "limit": 20, "pages": 1},
        )
