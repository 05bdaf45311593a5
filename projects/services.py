from django.contrib.auth import get_user_model
from rest_framework.exceptions import NotFound, PermissionDenied, ValidationError

from accounts.permissions import can_mutate_project, member_ids
from activities.models import ActivityLog
from activities.recorder import ActivityRecorder
from common.exceptions import Conflict
from tasks.models import Task, TaskAttachment, TaskComment
from tasks.services import release_blobs
from tasks.storage import get_file_store

from .models import Project

User = get_user_model()

Action = ActivityLog.Action


class ProjectService:
    def __init__(self, recorder=None, file_store=None):
        self.recorder = recorder or ActivityRecorder()
        self.file_store = file_store or get_file_store()

    def create_project(self, user, data):
        project = Project.objects.create(owner=user, **data)
        project.members.add(user)

        self.recorder.record(
            project,
            user,
            Action.CREATED_PROJECT,
            meta={"projectName": project.name},
        )
        return project

    def update_project(self, project, user, data):
        self._require_mutate(project, user, "update")
        for field, value in data.items():
            setattr(project, field, value)
        project.save()

        self.recorder.record(
            project,
            user,
            Action.UPDATED_PROJECT,
            meta={"projectName": project.name},
        )
        return project

    def delete_project(self, project, user):
        """Remove a project and everything under it.

        Each step only touches rows the previous steps have not removed, so
        re-running after an interruption finishes the job; the project row
        goes last.
        """
        self._require_mutate(project, user, "delete")

        tasks = Task.objects.filter(project=project)
        attachments = TaskAttachment.objects.filter(task__in=tasks)
        release_blobs(list(attachments), self.file_store)
        attachments.delete()
        TaskComment.objects.filter(task__in=tasks).delete()
        ActivityLog.objects.filter(project=project).delete()
        tasks.delete()
        project.delete()

    def add_member(self, project, user, email):
        self._require_mutate(project, user, "add members")

        new_member = User.objects.filter(email__iexact=email.strip()).first()
        if new_member is None:
            raise NotFound("User with this email not found")
        if new_member.pk in member_ids(project):
            raise Conflict("User is already a member")

        project.members.add(new_member)

        self.recorder.record(
            project,
            user,
            Action.ADDED_MEMBER,
            meta={
                "memberName": new_member.display_name,
                "memberEmail": new_member.email,
            },
        )
        return new_member

    def remove_member(self, project, user, member_pk):
        self._require_mutate(project, user, "remove members")

        if project.owner_id == member_pk:
            raise ValidationError("Cannot remove project owner")
        if member_pk not in member_ids(project):
            raise NotFound("Member not found")

        project.members.remove(member_pk)

        self.recorder.record(
            project,
            user,
            Action.REMOVED_MEMBER,
            meta={"removedUserId": member_pk},
        )

    def _require_mutate(self, project, user, verb):
        if not can_mutate_project(project, user):
            raise PermissionDenied(
                f"Only project owner or admin can {verb}"
            )
