from django.db.models import Count
from rest_framework import status, viewsets
from rest_framework.decorators import action
from rest_framework.response import Response

from accounts.permissions import get_project_for
from activities.models import ActivityLog
from activities.serializers import ActivityLogSerializer
from common.pagination import StandardResultsSetPagination
from common.responses import success

from .models import Project
from .serializers import MemberSerializer, ProjectSerializer
from .services import ProjectService


class ProjectViewSet(viewsets.GenericViewSet):
    serializer_class = ProjectSerializer
    pagination_class = StandardResultsSetPagination
    lookup_value_regex = r"\d+"

    def get_service(self):
        return ProjectService()

    def get_queryset(self):
        return (
            Project.objects.visible_to(self.request.user)
            .select_related("owner")
            .prefetch_related("members")
            .annotate(task_count=Count("tasks", distinct=True))
        )

    def get_object(self):
        return get_project_for(
            self.request.user,
            self.kwargs["pk"],
            Project.objects.annotate(task_count=Count("tasks", distinct=True)),
        )

    def list(self, request, *args, **kwargs):
        queryset = self.get_queryset()
        project_status = request.query_params.get("status")
        if project_status:
            queryset = queryset.filter(status=project_status)

        serializer = self.get_serializer(queryset, many=True)
        return Response(
            success(
                "Projects fetched",
                projects=serializer.data,
                count=len(serializer.data),
            )
        )

    def create(self, request, *args, **kwargs):
        serializer = self.get_serializer(data=request.data)
        serializer.is_valid(raise_exception=True)
        project = self.get_service().create_project(
            request.user, serializer.validated_data
        )
        return Response(
            success("Project created", project=self._render(project.pk)),
            status=status.HTTP_201_CREATED,
        )

    def retrieve(self, request, *args, **kwargs):
        project = self.get_object()
        return Response(
            success("Project fetched", project=self.get_serializer(project).data)
        )

    def update(self, request, *args, **kwargs):
        partial = kwargs.pop("partial", False)
        project = self.get_object()
        serializer = self.get_serializer(
            project, data=request.data, partial=partial
        )
        serializer.is_valid(raise_exception=True)
        self.get_service().update_project(
            project, request.user, serializer.validated_data
        )
        return Response(
            success("Project updated", project=self._render(project.pk))
        )

    def partial_update(self, request, *args, **kwargs):
        kwargs["partial"] = True
        return self.update(request, *args, **kwargs)

    def destroy(self, request, *args, **kwargs):
        project = self.get_object()
        self.get_service().delete_project(project, request.user)
        return Response(success("Project deleted successfully"))

    @action(detail=True, methods=["post"])
    def members(self, request, pk=None):
        project = self.get_object()
        serializer = MemberSerializer(data=request.data)
        serializer.is_valid(raise_exception=True)
        self.get_service().add_member(
            project, request.user, serializer.validated_data["email"]
        )
        return Response(
            success("Member added successfully", project=self._render(pk))
        )

    @action(
        detail=True,
        methods=["delete"],
        url_path=r"members/(?P<member_pk>\d+)",
    )
    def remove_member(self, request, pk=None, member_pk=None):
        project = self.get_object()
        self.get_service().remove_member(project, request.user, int(member_pk))
        return Response(success("Member removed", project=self._render(pk)))

    @action(detail=True, methods=["get"])
    def activity(self, request, pk=None):
        """Project activity feed, newest first."""
        project = self.get_object()
        logs = (
            ActivityLog.objects.filter(project=project)
            .select_related("user", "task")
            .order_by("-created_at", "-id")
        )
        page = self.paginate_queryset(logs)
        serializer = ActivityLogSerializer(page, many=True)
        return Response(
            success(
                "Activity fetched",
                logs=serializer.data,
                pagination=self.paginator.get_pagination(),
            )
        )

    def _render(self, pk):
        project = self.get_queryset().get(pk=pk)
        return self.get_serializer(project).data
