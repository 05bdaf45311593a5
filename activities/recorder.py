"""Append-only audit trail for project, task and comment mutations.

Recording is best effort: the mutation being described has already been
written by the time :meth:`ActivityRecorder.record` runs, so a failing sink
is logged and swallowed instead of surfacing to the caller.
"""

import logging
from dataclasses import dataclass, field

from django.conf import settings
from django.db import transaction
from django.utils.module_loading import import_string

from .models import ActivityLog

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class ActivityEvent:
    project_id: int
    task_id: int | None
    user_id: int
    action: str
    meta: dict = field(default_factory=dict)


class DatabaseSink:
    def write(self, event):
        # Savepoint: a failed insert must not break an enclosing transaction.
        with transaction.atomic():
            ActivityLog.objects.create(
                project_id=event.project_id,
                task_id=event.task_id,
                user_id=event.user_id,
                action=event.action,
                meta=event.meta,
            )


class MemorySink:
    def __init__(self):
        self.events = []

    def write(self, event):
        self.events.append(event)

    def actions(self):
        return [event.action for event in self.events]


class ActivityRecorder:
    def __init__(self, sink=None):
        self.sink = sink if sink is not None else default_sink()

    def record(self, project, user, action, task=None, meta=None):
        # Unknown actions are a programming error and fail loudly.
        action = ActivityLog.Action(action)
        event = ActivityEvent(
            project_id=_pk(project),
            task_id=_pk(task),
            user_id=_pk(user),
            action=action.value,
            meta=dict(meta or {}),
        )
        try:
            self.sink.write(event)
        except Exception:
            logger.exception(
                "Activity log error: %s on project %s",
                event.action,
                event.project_id,
            )
        return event


def _pk(obj):
    if obj is None or isinstance(obj, int):
        return obj
    return obj.pk


def default_sink():
    return import_string(settings.ACTIVITY_SINK)()
