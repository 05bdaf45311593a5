import logging

from django.conf import settings
from django.utils import timezone
from rest_framework.exceptions import NotFound, PermissionDenied, ValidationError

from accounts.permissions import can_delete_task
from activities.models import ActivityLog
from activities.recorder import ActivityRecorder

from .models import Task, TaskAttachment
from .ordering import apply_position, next_order, reorder
from .storage import FileNotFound, get_file_store

logger = logging.getLogger(__name__)

Action = ActivityLog.Action

POSITION_FIELDS = ("status", "order")


def get_task_for(project, pk, queryset=None):
    """Task ``pk`` of ``project``; ids from other projects are not found."""
    if queryset is None:
        queryset = Task.objects.all()
    task = queryset.filter(pk=pk, project=project).first()
    if task is None:
        raise NotFound("Task not found")
    return task


def release_blobs(attachments, file_store):
    """Remove stored files, logging instead of failing on any error."""
    for attachment in attachments:
        if not attachment.external_id:
            continue
        try:
            file_store.delete(attachment.external_id)
        except FileNotFound:
            logger.info("Attachment %s already gone", attachment.external_id)
        except Exception:
            logger.warning(
                "Could not delete attachment %s from file store",
                attachment.external_id,
                exc_info=True,
            )


class TaskLifecycle:
    """Create, update, reorder and delete tasks on a project board."""

    def __init__(self, recorder=None, file_store=None):
        self.recorder = recorder or ActivityRecorder()
        self.file_store = file_store or get_file_store()

    def create_task(self, project, user, data):
        data = dict(data)
        status = data.pop("status", Task.STATUS_TODO)
        # New tasks always go to the bottom of their column.
        data.pop("order", None)

        task = Task(project=project, created_by=user, status=status, **data)
        task.order = next_order(project, status)
        if status == Task.STATUS_DONE:
            task.completed_at = timezone.now()
        task.save()

        self.recorder.record(
            project,
            user,
            Action.CREATED_TASK,
            task=task,
            meta={"taskTitle": task.title},
        )
        if task.assignee_id:
            self._record_assignment(project, user, task)
        return task

    def update_task(self, task, user, data):
        data = dict(data)
        changed = []

        for field, value in data.items():
            if field in POSITION_FIELDS:
                continue
            if field == "assignee":
                if task.assignee_id != getattr(value, "pk", None):
                    task.assignee = value
                    changed.append(field)
            elif getattr(task, field) != value:
                setattr(task, field, value)
                changed.append(field)

        reassigned = "assignee" in changed
        old_order = task.order
        change = apply_position(
            task, status=data.get("status"), order=data.get("order")
        )
        if change is not None:
            changed.extend(["status", "completed_at"])
        if task.order != old_order:
            changed.append("order")

        if changed:
            task.save(update_fields=sorted(set(changed)) + ["updated_at"])

        if change is not None:
            self.recorder.record(
                task.project_id,
                user,
                Action.CHANGED_STATUS,
                task=task,
                meta={
                    "taskTitle": task.title,
                    "from": change.previous,
                    "to": change.current,
                },
            )
        else:
            self.recorder.record(
                task.project_id,
                user,
                Action.UPDATED_TASK,
                task=task,
                meta={"taskTitle": task.title},
            )
        if reassigned and task.assignee_id:
            self._record_assignment(task.project_id, user, task)
        return task

    def reorder_tasks(self, project, user, items):
        if not items:
            raise ValidationError("tasks must be a non-empty list")
        return reorder(project, items)

    def delete_task(self, project, task, user):
        if not can_delete_task(project, task, user):
            raise PermissionDenied("Not authorized to delete this task")

        title = task.title
        release_blobs(list(task.attachments.all()), self.file_store)
        task.delete()

        self.recorder.record(
            project,
            user,
            Action.DELETED_TASK,
            meta={"taskTitle": title},
        )

    def attach_file(self, task, user, upload):
        content_type = getattr(upload, "content_type", None) or "file"
        if content_type not in settings.TASK_ATTACHMENT_CONTENT_TYPES:
            raise ValidationError("File type not supported")
        if upload.size > settings.TASK_ATTACHMENT_MAX_SIZE:
            raise ValidationError("File is too large")

        stored = self.file_store.store(
            upload.read(),
            {"name": upload.name, "content_type": content_type},
        )
        attachment = TaskAttachment.objects.create(
            task=task,
            url=stored.url,
            external_id=stored.external_id,
            name=upload.name,
            size=upload.size,
            content_type=content_type,
            uploaded_by=user,
        )

        self.recorder.record(
            task.project_id,
            user,
            Action.UPLOADED_FILE,
            task=task,
            meta={"taskTitle": task.title, "fileName": upload.name},
        )
        return attachment

    def remove_attachment(self, attachment):
        release_blobs([attachment], self.file_store)
        attachment.delete()

    def _record_assignment(self, project, user, task):
        self.recorder.record(
            project,
            user,
            Action.ASSIGNED_TASK,
            task=task,
            meta={
                "taskTitle": task.title,
                "assignee": task.assignee_id,
            },
        )
