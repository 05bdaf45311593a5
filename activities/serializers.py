from rest_framework import serializers

from accounts.serializers import UserSummarySerializer

from .models import ActivityLog


class ActivityLogSerializer(serializers.ModelSerializer):
    user = UserSummarySerializer(read_only=True)
    task_title = serializers.CharField(
        source="task.title", read_only=True, default=None
    )

    class Meta:
        model = ActivityLog
        fields = [
            "id",
            "project",
            "task",
            "task_title",
            "user",
            "action",
            "meta",
            "created_at",
        ]
        read_only_fields = fields
