import enum

from rest_framework import permissions
from rest_framework.exceptions import NotFound

from projects.models import Project


class Access(enum.Enum):
    DENIED = "denied"
    MEMBER = "member"
    OWNER = "owner"
    ADMIN = "admin"


def member_ids(project):
    """Ids of everyone who belongs to ``project``, owner included.

    Uses the prefetched ``members`` cache when the caller loaded one.
    """
    ids = {member.pk for member in project.members.all()}
    ids.add(project.owner_id)
    return ids


def resolve_access(project, user):
    if user is None or not user.is_authenticated:
        return Access.DENIED
    if user.is_admin:
        return Access.ADMIN
    if project.owner_id == user.pk:
        return Access.OWNER
    if user.pk in member_ids(project):
        return Access.MEMBER
    return Access.DENIED


def can_access_project(project, user):
    return resolve_access(project, user) is not Access.DENIED


def can_mutate_project(project, user):
    return resolve_access(project, user) in (Access.OWNER, Access.ADMIN)


def can_delete_task(project, task, user):
    return (
        can_mutate_project(project, user)
        or task.created_by_id == user.pk
    )


def can_delete_comment(project, comment, user):
    return (
        can_mutate_project(project, user)
        or comment.author_id == user.pk
    )


def can_edit_comment(comment, user):
    return comment.author_id == user.pk


def get_project_for(user, pk, queryset=None):
    """Load a project the user can see.

    Missing projects and projects the user does not belong to raise the
    same ``NotFound`` so ids cannot be enumerated.
    """
    if queryset is None:
        queryset = Project.objects.all()
    project = (
        queryset.select_related("owner")
        .prefetch_related("members")
        .filter(pk=pk)
        .first()
    )
    if project is None or not can_access_project(project, user):
        raise NotFound("Project not found")
    return project


class IsAdminRole(permissions.BasePermission):
    def has_permission(self, request, view):
        user = request.user
        return bool(user and user.is_authenticated and user.is_admin)
