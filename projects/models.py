from django.conf import settings
from django.core.validators import MinLengthValidator, RegexValidator
from django.db import models


class ProjectQuerySet(models.QuerySet):
    def visible_to(self, user):
        if user.is_admin:
            return self
        memberships = Project.members.through.objects.filter(user=user)
        return self.filter(
            models.Q(owner=user)
            | models.Q(pk__in=memberships.values("project_id"))
        )


class Project(models.Model):
    STATUS_ACTIVE = "active"
    STATUS_ARCHIVED = "archived"

    STATUS_CHOICES = [
        (STATUS_ACTIVE, "Active"),
        (STATUS_ARCHIVED, "Archived"),
    ]

    name = models.CharField(
        max_length=100,
        validators=[MinLengthValidator(2)],
        verbose_name="project name",
    )
    description = models.TextField(max_length=500, blank=True, default="")
    owner = models.ForeignKey(
        settings.AUTH_USER_MODEL,
        on_delete=models.CASCADE,
        related_name="owned_projects",
        verbose_name="owner",
    )
    members = models.ManyToManyField(
        settings.AUTH_USER_MODEL,
        related_name="projects",
        blank=True,
        verbose_name="members",
    )
    status = models.CharField(
        max_length=20, choices=STATUS_CHOICES, default=STATUS_ACTIVE
    )
    color = models.CharField(
        max_length=7,
        default="#6c63ff",
        validators=[
            RegexValidator(
                r"^#[0-9A-Fa-f]{6}$", "Please provide a valid hex color"
            )
        ],
    )

    created_at = models.DateTimeField(auto_now_add=True)
    updated_at = models.DateTimeField(auto_now=True)

    objects = ProjectQuerySet.as_manager()

    class Meta:
        verbose_name = "project"
        verbose_name_plural = "projects"
        ordering = ["-updated_at"]
        indexes = [models.Index(fields=["owner"], name="project_owner_idx")]

    def __str__(self):
        return self.name
