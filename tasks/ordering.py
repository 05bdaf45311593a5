"""Column ordering and status transitions for the task board.

A column is the set of tasks sharing one (project, status) pair. ``order``
is a rendering hint inside a column, not a uniqueness constraint: two
concurrent appends may compute the same value, and readers break ties on
creation time (see ``Task.Meta.ordering``).
"""

import logging
from dataclasses import dataclass

from django.db import DatabaseError, transaction
from django.utils import timezone

from .models import Task

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class StatusChange:
    previous: str
    current: str


@dataclass(frozen=True)
class ReorderItem:
    task_id: int
    status: str
    order: int


@dataclass(frozen=True)
class ReorderOutcome:
    task_id: int
    applied: bool

    def as_dict(self):
        return {"id": self.task_id, "applied": self.applied}


def next_order(project, status):
    """Position for a task appended to the bottom of a column (0 if empty)."""
    current_max = Task.objects.column(project, status).max_order()
    return (-1 if current_max is None else current_max) + 1


def apply_position(task, status=None, order=None, now=None):
    """Apply a status and/or order change to ``task`` in memory.

    Returns a :class:`StatusChange` only when the status actually changed;
    ``completed_at`` is stamped or cleared alongside it so both land in the
    same write. A task moved to another column without an explicit order is
    appended to that column.
    """
    change = None
    if status is not None and status != task.status:
        change = StatusChange(previous=task.status, current=status)
        task.status = status
        if status == Task.STATUS_DONE:
            if task.completed_at is None:
                task.completed_at = now or timezone.now()
        else:
            task.completed_at = None
        if order is None:
            order = next_order(task.project_id, status)

    if order is not None:
        task.order = order
    return change


def reorder(project, items, now=None):
    """Apply drag-and-drop positions as independent point updates.

    Every item is written on its own; there is no batch transaction, so a
    failing item leaves the others in place. Items naming a task outside
    ``project`` match nothing and are reported as not applied.
    """
    now = now or timezone.now()
    outcomes = []
    for item in items:
        try:
            with transaction.atomic():
                written = Task.objects.apply_point_update(
                    item.task_id, project, item.status, item.order, now=now
                )
        except DatabaseError:
            logger.warning(
                "Reorder of task %s in project %s failed",
                item.task_id,
                getattr(project, "pk", project),
                exc_info=True,
            )
            written = 0
        outcomes.append(ReorderOutcome(item.task_id, bool(written)))
    return outcomes
