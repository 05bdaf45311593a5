from django.contrib.auth import get_user_model
from rest_framework import serializers

from accounts.permissions import member_ids
from accounts.serializers import UserSummarySerializer

from .models import Task, TaskAttachment, TaskComment
from .ordering import ReorderItem

User = get_user_model()


class TaskCommentSerializer(serializers.ModelSerializer):
    author = UserSummarySerializer(read_only=True)

    class Meta:
        model = TaskComment
        fields = [
            "id",
            "task",
            "author",
            "content",
            "is_edited",
            "created_at",
            "updated_at",
        ]
        read_only_fields = [
            "id",
            "task",
            "author",
            "is_edited",
            "created_at",
            "updated_at",
        ]

    def validate_content(self, value):
        value = value.strip()
        if not value:
            raise serializers.ValidationError("Comment content is required")
        return value


class TaskAttachmentSerializer(serializers.ModelSerializer):
    uploaded_by_name = serializers.CharField(
        source="uploaded_by.display_name", read_only=True, default=None
    )

    class Meta:
        model = TaskAttachment
        fields = [
            "id",
            "task",
            "url",
            "name",
            "size",
            "content_type",
            "uploaded_by",
            "uploaded_by_name",
            "created_at",
        ]
        read_only_fields = fields


class TaskSerializer(serializers.ModelSerializer):
    assignee = serializers.PrimaryKeyRelatedField(
        queryset=User.objects.filter(is_active=True),
        allow_null=True,
        required=False,
    )
    assignee_name = serializers.CharField(
        source="assignee.display_name", read_only=True, default=None
    )
    created_by_name = serializers.CharField(
        source="created_by.display_name", read_only=True
    )
    labels = serializers.ListField(
        child=serializers.CharField(max_length=30), required=False
    )
    order = serializers.IntegerField(min_value=0, required=False)
    attachments = TaskAttachmentSerializer(many=True, read_only=True)
    comment_count = serializers.IntegerField(read_only=True, default=None)
    is_overdue = serializers.BooleanField(read_only=True)

    class Meta:
        model = Task
        fields = [
            "id",
            "title",
            "description",
            "project",
            "status",
            "priority",
            "assignee",
            "assignee_name",
            "created_by",
            "created_by_name",
            "due_date",
            "labels",
            "order",
            "completed_at",
            "attachments",
            "comment_count",
            "is_overdue",
            "created_at",
            "updated_at",
        ]
        read_only_fields = [
            "id",
            "project",
            "created_by",
            "completed_at",
            "created_at",
            "updated_at",
        ]

    def validate_assignee(self, value):
        project = self.context.get("project")
        if value is not None and project is not None:
            if value.pk not in member_ids(project):
                raise serializers.ValidationError(
                    "Assignee must be a member of the project"
                )
        return value

    def validate_labels(self, value):
        return [label.strip() for label in value if label.strip()]


class TaskDetailSerializer(TaskSerializer):
    comments = TaskCommentSerializer(many=True, read_only=True)

    class Meta(TaskSerializer.Meta):
        fields = TaskSerializer.Meta.fields + ["comments"]


class ReorderItemSerializer(serializers.Serializer):
    id = serializers.IntegerField()
    status = serializers.ChoiceField(choices=Task.STATUS_CHOICES)
    order = serializers.IntegerField(min_value=0)


class ReorderSerializer(serializers.Serializer):
    tasks = ReorderItemSerializer(many=True, allow_empty=False)

    def to_items(self):
        return [
            ReorderItem(
                task_id=item["id"], status=item["status"], order=item["order"]
            )
            for item in self.validated_data["tasks"]
        ]


class AttachmentUploadSerializer(serializers.Serializer):
    file = serializers.FileField()
