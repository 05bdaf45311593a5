from rest_framework import serializers
from django.contrib.auth import get_user_model

User = get_user_model()


class UserSummarySerializer(serializers.ModelSerializer):
    name = serializers.CharField(source="display_name", read_only=True)

    class Meta:
        model = User
        fields = ["id", "username", "name", "email", "avatar"]
        read_only_fields = fields


class UserSerializer(serializers.ModelSerializer):
    name = serializers.CharField(source="display_name", read_only=True)

    class Meta:
        model = User
        fields = [
            "id",
            "username",
            "name",
            "email",
            "first_name",
            "last_name",
            "role",
            "avatar",
            "is_active",
            "date_joined",
        ]
        read_only_fields = [
            "id",
            "email",
            "role",
            "avatar",
            "is_active",
            "date_joined",
        ]


class ProfileSerializer(serializers.ModelSerializer):
    class Meta:
        model = User
        fields = ["first_name", "last_name"]

    def validate(self, attrs):
        return {field: value.strip() for field, value in attrs.items()}


class AvatarUploadSerializer(serializers.Serializer):
    avatar = serializers.FileField()
