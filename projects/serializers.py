from rest_framework import serializers

from accounts.serializers import UserSummarySerializer

from .models import Project


class ProjectSerializer(serializers.ModelSerializer):
    owner = UserSummarySerializer(read_only=True)
    members = UserSummarySerializer(many=True, read_only=True)
    task_count = serializers.IntegerField(read_only=True, default=None)

    class Meta:
        model = Project
        fields = [
            "id",
            "name",
            "description",
            "owner",
            "members",
            "status",
            "color",
            "task_count",
            "created_at",
            "updated_at",
        ]
        read_only_fields = ["id", "owner", "members", "created_at", "updated_at"]


class MemberSerializer(serializers.Serializer):
    email = serializers.EmailField()
