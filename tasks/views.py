from django.db.models import Count, Prefetch
from django_filters.rest_framework import DjangoFilterBackend
from rest_framework import status, viewsets
from rest_framework.decorators import action
from rest_framework.exceptions import NotFound, PermissionDenied
from rest_framework.parsers import FormParser, MultiPartParser
from rest_framework.response import Response

from accounts.permissions import (
    can_delete_comment,
    can_edit_comment,
    get_project_for,
)
from activities.models import ActivityLog
from activities.recorder import ActivityRecorder
from common.pagination import StandardResultsSetPagination
from common.responses import success

from .filters import TaskFilter
from .models import Task, TaskAttachment, TaskComment
from .serializers import (
    AttachmentUploadSerializer,
    ReorderSerializer,
    TaskAttachmentSerializer,
    TaskCommentSerializer,
    TaskDetailSerializer,
    TaskSerializer,
)
from .services import TaskLifecycle, get_task_for


class TaskPagination(StandardResultsSetPagination):
    page_size = 50


class TaskViewSet(viewsets.GenericViewSet):
    serializer_class = TaskSerializer
    pagination_class = TaskPagination
    filter_backends = [DjangoFilterBackend]
    filterset_class = TaskFilter
    lookup_value_regex = r"\d+"

    sort_map = {
        "order": ["order", "created_at", "id"],
        "-createdAt": ["-created_at", "-id"],
        "createdAt": ["created_at", "id"],
        "dueDate": ["due_date", "order"],
        "priority": ["-priority_rank", "order"],
    }

    def get_lifecycle(self):
        return TaskLifecycle()

    def get_project(self):
        if not hasattr(self, "_project"):
            self._project = get_project_for(
                self.request.user, self.kwargs["project_pk"]
            )
        return self._project

    def get_serializer_context(self):
        context = super().get_serializer_context()
        if "project_pk" in self.kwargs:
            context["project"] = self.get_project()
        return context

    def get_queryset(self):
        return (
            Task.objects.filter(project=self.get_project())
            .select_related("assignee", "created_by")
            .prefetch_related("attachments__uploaded_by")
            .annotate(comment_count=Count("comments", distinct=True))
        )

    def get_object(self):
        return get_task_for(
            self.get_project(), self.kwargs["pk"], self.get_queryset()
        )

    def list(self, request, *args, **kwargs):
        queryset = self.filter_queryset(self.get_queryset())
        sort = request.query_params.get("sort", "order")
        if sort == "priority":
            queryset = queryset.alias(priority_rank=Task.priority_rank())
        queryset = queryset.order_by(
            *self.sort_map.get(sort, self.sort_map["order"])
        )

        page = self.paginate_queryset(queryset)
        serializer = self.get_serializer(page, many=True)
        return Response(
            success(
                "Tasks fetched",
                tasks=serializer.data,
                pagination=self.paginator.get_pagination(),
            )
        )

    def create(self, request, *args, **kwargs):
        project = self.get_project()
        serializer = self.get_serializer(data=request.data)
        serializer.is_valid(raise_exception=True)
        task = self.get_lifecycle().create_task(
            project, request.user, serializer.validated_data
        )
        task = self.get_queryset().get(pk=task.pk)
        return Response(
            success("Task created", task=self.get_serializer(task).data),
            status=status.HTTP_201_CREATED,
        )

    def retrieve(self, request, *args, **kwargs):
        queryset = self.get_queryset().prefetch_related(
            Prefetch(
                "comments",
                queryset=TaskComment.objects.select_related("author"),
            )
        )
        task = get_task_for(self.get_project(), kwargs["pk"], queryset)
        return Response(
            success("Task fetched", task=TaskDetailSerializer(
                task, context=self.get_serializer_context()
            ).data)
        )

    def partial_update(self, request, *args, **kwargs):
        task = self.get_object()
        serializer = self.get_serializer(task, data=request.data, partial=True)
        serializer.is_valid(raise_exception=True)
        self.get_lifecycle().update_task(
            task, request.user, serializer.validated_data
        )
        task = self.get_queryset().get(pk=task.pk)
        return Response(
            success("Task updated", task=self.get_serializer(task).data)
        )

    def destroy(self, request, *args, **kwargs):
        task = self.get_object()
        self.get_lifecycle().delete_task(self.get_project(), task, request.user)
        return Response(success("Task deleted"))

    @action(detail=False, methods=["get"])
    def board(self, request, project_pk=None):
        """Tasks grouped by status column, in display order."""
        columns = {value: [] for value, _ in Task.STATUS_CHOICES}
        for task in self.get_queryset().order_by("order", "created_at", "id"):
            columns[task.status].append(task)
        return Response(
            success(
                "Board fetched",
                columns={
                    key: self.get_serializer(tasks, many=True).data
                    for key, tasks in columns.items()
                },
            )
        )

    @action(detail=False, methods=["patch"])
    def reorder(self, request, project_pk=None):
        """Apply a drag-and-drop batch of (id, status, order) positions."""
        project = self.get_project()
        serializer = ReorderSerializer(data=request.data)
        serializer.is_valid(raise_exception=True)
        outcomes = self.get_lifecycle().reorder_tasks(
            project, request.user, serializer.to_items()
        )
        return Response(
            success(
                "Tasks reordered",
                updated=sum(1 for outcome in outcomes if outcome.applied),
                results=[outcome.as_dict() for outcome in outcomes],
            )
        )

    @action(
        detail=True,
        methods=["post"],
        parser_classes=[MultiPartParser, FormParser],
    )
    def upload(self, request, project_pk=None, pk=None):
        task = self.get_object()
        serializer = AttachmentUploadSerializer(data=request.data)
        serializer.is_valid(raise_exception=True)
        attachment = self.get_lifecycle().attach_file(
            task, request.user, serializer.validated_data["file"]
        )
        return Response(
            success(
                "File uploaded",
                attachment=TaskAttachmentSerializer(attachment).data,
            ),
            status=status.HTTP_201_CREATED,
        )

    @action(
        detail=True,
        methods=["delete"],
        url_path=r"attachments/(?P<attachment_pk>\d+)",
    )
    def delete_attachment(
        self, request, project_pk=None, pk=None, attachment_pk=None
    ):
        task = self.get_object()
        attachment = TaskAttachment.objects.filter(
            pk=attachment_pk, task=task
        ).first()
        if attachment is None:
            raise NotFound("Attachment not found")
        self.get_lifecycle().remove_attachment(attachment)
        return Response(success("Attachment deleted"))


class TaskCommentViewSet(viewsets.GenericViewSet):
    serializer_class = TaskCommentSerializer
    lookup_value_regex = r"\d+"

    def get_task(self):
        if not hasattr(self, "_task"):
            task = (
                Task.objects.select_related("project")
                .filter(pk=self.kwargs["task_pk"])
                .first()
            )
            if task is None:
                raise NotFound("Task not found")
            # Same answer for a missing task and one in a foreign project.
            try:
                self._project = get_project_for(
                    self.request.user, task.project_id
                )
            except NotFound:
                raise NotFound("Task not found")
            self._task = task
        return self._task

    def get_queryset(self):
        return TaskComment.objects.filter(task=self.get_task()).select_related(
            "author"
        )

    def get_object(self):
        comment = self.get_queryset().filter(pk=self.kwargs["pk"]).first()
        if comment is None:
            raise NotFound("Comment not found")
        return comment

    def list(self, request, *args, **kwargs):
        comments = self.get_queryset()
        serializer = self.get_serializer(comments, many=True)
        return Response(
            success(
                "Comments fetched",
                comments=serializer.data,
                count=len(serializer.data),
            )
        )

    def create(self, request, *args, **kwargs):
        task = self.get_task()
        serializer = self.get_serializer(data=request.data)
        serializer.is_valid(raise_exception=True)
        comment = serializer.save(task=task, author=request.user)

        ActivityRecorder().record(
            task.project_id,
            request.user,
            ActivityLog.Action.ADDED_COMMENT,
            task=task,
            meta={"taskTitle": task.title},
        )
        return Response(
            success("Comment added", comment=self.get_serializer(comment).data),
            status=status.HTTP_201_CREATED,
        )

    def partial_update(self, request, *args, **kwargs):
        comment = self.get_object()
        if not can_edit_comment(comment, request.user):
            raise PermissionDenied("You can only edit your own comments")
        serializer = self.get_serializer(
            comment, data=request.data, partial=True
        )
        serializer.is_valid(raise_exception=True)
        comment = serializer.save(is_edited=True)
        return Response(
            success("Comment updated", comment=self.get_serializer(comment).data)
        )

    def destroy(self, request, *args, **kwargs):
        comment = self.get_object()
        if not can_delete_comment(self._project, comment, request.user):
            raise PermissionDenied("Not authorized to delete this comment")
        comment.delete()
        return Response(success("Comment deleted"))
