from django.contrib.auth import get_user_model
from django.db.models import Q
from rest_framework import viewsets
from rest_framework.decorators import action
from rest_framework.parsers import FormParser, MultiPartParser
from rest_framework.response import Response

from common.pagination import StandardResultsSetPagination
from common.responses import success
from tasks.storage import get_file_store

from .permissions import IsAdminRole
from .serializers import (
    AvatarUploadSerializer,
    ProfileSerializer,
    UserSerializer,
)
from .services import replace_avatar

# Create your views here.

User = get_user_model()


class UserViewSet(viewsets.ReadOnlyModelViewSet):
    queryset = User.objects.all()
    serializer_class = UserSerializer
    pagination_class = StandardResultsSetPagination
    lookup_value_regex = r"\d+"

    def get_permissions(self):
        if self.action == "list":
            return [IsAdminRole()]
        return super().get_permissions()

    def get_queryset(self):
        queryset = User.objects.filter(is_active=True)

        search = self.request.query_params.get("search")
        if search:
            queryset = queryset.filter(
                Q(username__icontains=search)
                | Q(first_name__icontains=search)
                | Q(last_name__icontains=search)
                | Q(email__icontains=search)
            )
        return queryset.order_by("-date_joined", "-id")

    def list(self, request, *args, **kwargs):
        queryset = self.get_queryset()
        page = self.paginate_queryset(queryset)
        serializer = self.get_serializer(page, many=True)
        return Response(
            success(
                "Users fetched",
                users=serializer.data,
                pagination=self.paginator.get_pagination(),
            )
        )

    def retrieve(self, request, *args, **kwargs):
        user = self.get_object()
        return Response(
            success("User fetched", user=self.get_serializer(user).data)
        )

    @action(detail=False, methods=["get"])
    def me(self, request):
        serializer = self.get_serializer(request.user)
        return Response(success("User fetched", user=serializer.data))

    @action(detail=False, methods=["put", "patch"])
    def profile(self, request):
        serializer = ProfileSerializer(
            request.user, data=request.data, partial=True
        )
        serializer.is_valid(raise_exception=True)
        user = serializer.save()
        return Response(
            success("Profile updated", user=UserSerializer(user).data)
        )

    @action(
        detail=False,
        methods=["post"],
        parser_classes=[MultiPartParser, FormParser],
    )
    def avatar(self, request):
        serializer = AvatarUploadSerializer(data=request.data)
        serializer.is_valid(raise_exception=True)
        user = replace_avatar(
            request.user,
            serializer.validated_data["avatar"],
            self.get_file_store(),
        )
        return Response(
            success("Avatar uploaded", user=UserSerializer(user).data)
        )

    def get_file_store(self):
        return get_file_store()
