from django.contrib.auth import get_user_model
from django.test import TestCase, override_settings

from projects.models import Project
from tasks.models import Task

from .models import ActivityLog
from .recorder import ActivityRecorder, DatabaseSink, MemorySink, default_sink
from .serializers import ActivityLogSerializer

User = get_user_model()


class BrokenSink:
    def write(self, event):
        raise RuntimeError("audit store is down")


class ActivityRecorderTest(TestCase):
    def setUp(self):
        self.user = User.objects.create_user(
            username="writer", email="writer@example.com", password="testpass123"
        )
        self.project = Project.objects.create(name="Audit", owner=self.user)
        self.task = Task.objects.create(
            title="Trace", project=self.project, created_by=self.user
        )

    def test_database_sink_appends_row(self):
        recorder = ActivityRecorder(DatabaseSink())

        recorder.record(
            self.project,
            self.user,
            ActivityLog.Action.CREATED_TASK,
            task=self.task,
            meta={"taskTitle": "Trace"},
        )

        log = ActivityLog.objects.get()
        self.assertEqual(log.project, self.project)
        self.assertEqual(log.task, self.task)
        self.assertEqual(log.user, self.user)
        self.assertEqual(log.action, "created_task")
        self.assertEqual(log.meta, {"taskTitle": "Trace"})

    def test_accepts_plain_ids(self):
        sink = MemorySink()

        event = ActivityRecorder(sink).record(
            self.project.pk, self.user, "deleted_task"
        )

        self.assertEqual(event.project_id, self.project.pk)
        self.assertIsNone(event.task_id)
        self.assertEqual(sink.actions(), ["deleted_task"])

    def test_unknown_action_is_rejected(self):
        sink = MemorySink()

        with self.assertRaises(ValueError):
            ActivityRecorder(sink).record(self.project, self.user, "archived")
        self.assertEqual(sink.events, [])

    def test_sink_failure_is_logged_not_raised(self):
        recorder = ActivityRecorder(BrokenSink())

        with self.assertLogs("activities.recorder", level="ERROR") as logs:
            event = recorder.record(
                self.project, self.user, ActivityLog.Action.UPDATED_PROJECT
            )

        self.assertEqual(event.action, "updated_project")
        self.assertIn("Activity log error", logs.output[0])
        self.assertFalse(ActivityLog.objects.exists())

    @override_settings(ACTIVITY_SINK="activities.recorder.MemorySink")
    def test_default_sink_follows_settings(self):
        self.assertIsInstance(default_sink(), MemorySink)

    def test_serializer_includes_task_title(self):
        log = ActivityLog.objects.create(
            project=self.project,
            task=self.task,
            user=self.user,
            action=ActivityLog.Action.ADDED_COMMENT,
        )

        data = ActivityLogSerializer(log).data

        self.assertEqual(data["task_title"], "Trace")
        self.assertEqual(data["user"]["username"], "writer")

    def test_deleting_task_keeps_its_history(self):
        log = ActivityLog.objects.create(
            project=self.project,
            task=self.task,
            user=self.user,
            action=ActivityLog.Action.CREATED_TASK,
            meta={"taskTitle": "Trace"},
        )

        self.task.delete()

        log.refresh_from_db()
        self.assertIsNone(log.task_id)
        self.assertEqual(log.meta["taskTitle"], "Trace")
        self.assertIsNone(ActivityLogSerializer(log).data["task_title"])
