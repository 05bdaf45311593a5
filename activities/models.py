from django.conf import settings
from django.db import models


class ActivityLog(models.Model):
    class Action(models.TextChoices):
        CREATED_PROJECT = "created_project", "Created project"
        UPDATED_PROJECT = "updated_project", "Updated project"
        CREATED_TASK = "created_task", "Created task"
        UPDATED_TASK = "updated_task", "Updated task"
        DELETED_TASK = "deleted_task", "Deleted task"
        CHANGED_STATUS = "changed_status", "Changed status"
        ASSIGNED_TASK = "assigned_task", "Assigned task"
        ADDED_COMMENT = "added_comment", "Added comment"
        UPLOADED_FILE = "uploaded_file", "Uploaded file"
        ADDED_MEMBER = "added_member", "Added member"
        REMOVED_MEMBER = "removed_member", "Removed member"

    project = models.ForeignKey(
        "projects.Project",
        on_delete=models.CASCADE,
        related_name="activity_logs",
    )
    task = models.ForeignKey(
        "tasks.Task",
        on_delete=models.SET_NULL,
        null=True,
        blank=True,
        related_name="activity_logs",
    )
    user = models.ForeignKey(settings.AUTH_USER_MODEL, on_delete=models.CASCADE)
    action = models.CharField(max_length=50, choices=Action.choices)
    meta = models.JSONField(default=dict, blank=True)
    created_at = models.DateTimeField(auto_now_add=True)

    class Meta:
        ordering = ["-created_at", "-id"]
        indexes = [
            models.Index(
                fields=["project", "-created_at"], name="activity_project_idx"
            ),
            models.Index(
                fields=["task", "-created_at"], name="activity_task_idx"
            ),
        ]

    def __str__(self):
        return f"{self.action} by {self.user_id} on project {self.project_id}"
