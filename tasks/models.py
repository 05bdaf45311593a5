from django.conf import settings
from django.core.validators import MinLengthValidator
from django.db import models
from django.db.models import Max, Value
from django.db.models.functions import Coalesce
from django.utils import timezone

# Create your models here.


class TaskQuerySet(models.QuerySet):
    def column(self, project, status):
        return self.filter(project=project, status=status)

    def max_order(self):
        return self.aggregate(max_order=Max("order"))["max_order"]

    def apply_point_update(self, pk, project, status, order, now=None):
        """Set status/order on one task of ``project`` in a single UPDATE.

        Returns the number of rows written: 0 when ``pk`` does not belong
        to ``project``.
        """
        now = now or timezone.now()
        if status == Task.STATUS_DONE:
            # Keep the original stamp when the task was already done.
            completed_at = Coalesce(
                models.Case(
                    models.When(
                        status=Task.STATUS_DONE, then=models.F("completed_at")
                    ),
                    output_field=models.DateTimeField(),
                ),
                Value(now, output_field=models.DateTimeField()),
            )
        else:
            completed_at = None
        # completed_at goes first: it reads the pre-update status.
        return self.filter(pk=pk, project=project).update(
            completed_at=completed_at,
            status=status,
            order=order,
            updated_at=now,
        )


class Task(models.Model):
    STATUS_TODO = "todo"
    STATUS_IN_PROGRESS = "in_progress"
    STATUS_IN_REVIEW = "in_review"
    STATUS_DONE = "done"

    STATUS_CHOICES = [
        (STATUS_TODO, "To do"),
        (STATUS_IN_PROGRESS, "In progress"),
        (STATUS_IN_REVIEW, "In review"),
        (STATUS_DONE, "Done"),
    ]

    PRIORITY_CHOICES = [
        ("low", "Low"),
        ("medium", "Medium"),
        ("high", "High"),
        ("critical", "Critical"),
    ]

    title = models.CharField(
        max_length=200,
        validators=[MinLengthValidator(2)],
        verbose_name="title",
    )
    description = models.TextField(
        max_length=2000, blank=True, default="", verbose_name="description"
    )
    project = models.ForeignKey(
        "projects.Project",
        on_delete=models.CASCADE,
        related_name="tasks",
        verbose_name="project",
    )
    status = models.CharField(
        max_length=20,
        choices=STATUS_CHOICES,
        default=STATUS_TODO,
        verbose_name="status",
    )
    priority = models.CharField(
        max_length=20,
        choices=PRIORITY_CHOICES,
        default="medium",
        verbose_name="priority",
    )

    assignee = models.ForeignKey(
        settings.AUTH_USER_MODEL,
        on_delete=models.SET_NULL,
        null=True,
        blank=True,
        related_name="assigned_tasks",
        verbose_name="assignee",
    )

    created_by = models.ForeignKey(
        settings.AUTH_USER_MODEL,
        on_delete=models.CASCADE,
        related_name="created_tasks",
        verbose_name="created by",
    )

    due_date = models.DateTimeField(
        null=True, blank=True, verbose_name="due date"
    )
    labels = models.JSONField(default=list, blank=True)
    order = models.IntegerField(default=0, verbose_name="column order")
    completed_at = models.DateTimeField(
        null=True, blank=True, verbose_name="completed at"
    )

    created_at = models.DateTimeField(auto_now_add=True)
    updated_at = models.DateTimeField(auto_now=True)

    objects = TaskQuerySet.as_manager()

    class Meta:
        verbose_name = "task"
        verbose_name_plural = "tasks"
        # Duplicate orders inside a column fall back to creation time.
        ordering = ["order", "created_at", "id"]
        indexes = [
            models.Index(
                fields=["project", "status"], name="task_project_status_idx"
            ),
            models.Index(
                fields=["project", "order"], name="task_project_order_idx"
            ),
            models.Index(fields=["assignee"], name="task_assignee_idx"),
            models.Index(fields=["due_date"], name="task_due_date_idx"),
        ]

    def __str__(self):
        return self.title

    @classmethod
    def priority_rank(cls):
        return models.Case(
            *[
                models.When(priority=value, then=Value(rank))
                for rank, (value, _) in enumerate(cls.PRIORITY_CHOICES)
            ],
            default=Value(-1),
            output_field=models.IntegerField(),
        )

    @property
    def is_overdue(self):
        if self.due_date and self.status != self.STATUS_DONE:
            return timezone.now() > self.due_date
        return False

    def delete(self, *args, **kwargs):
        # Leaf rows first; the task row goes last.
        self.attachments.all().delete()
        self.comments.all().delete()
        return super().delete(*args, **kwargs)


class TaskComment(models.Model):
    task = models.ForeignKey(
        Task,
        on_delete=models.CASCADE,
        related_name="comments",
        verbose_name="task",
    )
    author = models.ForeignKey(
        settings.AUTH_USER_MODEL,
        on_delete=models.CASCADE,
        related_name="task_comments",
        verbose_name="author",
    )
    content = models.TextField(max_length=1000, verbose_name="content")
    is_edited = models.BooleanField(default=False)
    created_at = models.DateTimeField(auto_now_add=True)
    updated_at = models.DateTimeField(auto_now=True)

    class Meta:
        verbose_name = "task comment"
        verbose_name_plural = "task comments"
        ordering = ["created_at", "id"]


class TaskAttachment(models.Model):
    task = models.ForeignKey(
        Task,
        on_delete=models.CASCADE,
        related_name="attachments",
        verbose_name="task",
    )
    url = models.CharField(max_length=500, verbose_name="url")
    external_id = models.CharField(
        max_length=255, verbose_name="storage key"
    )
    name = models.CharField(max_length=255, verbose_name="file name")
    size = models.PositiveIntegerField(default=0)
    content_type = models.CharField(max_length=100, default="file")
    uploaded_by = models.ForeignKey(
        settings.AUTH_USER_MODEL,
        on_delete=models.SET_NULL,
        null=True,
        verbose_name="uploaded by",
    )
    created_at = models.DateTimeField(auto_now_add=True)

    class Meta:
        verbose_name = "task attachment"
        verbose_name_plural = "task attachments"
        ordering = ["created_at", "id"]
