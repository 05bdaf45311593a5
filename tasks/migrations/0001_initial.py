import django.core.validators
import django.db.models.deletion
from django.conf import settings
from django.db import migrations, models


class Migration(migrations.Migration):

    initial = True

    dependencies = [
        ("projects", "0001_initial"),
        migrations.swappable_dependency(settings.AUTH_USER_MODEL),
    ]

    operations = [
        migrations.CreateModel(
            name="Task",
            fields=[
                ("id", models.BigAutoField(auto_created=True, primary_key=True, serialize=False, verbose_name="ID")),
                ("title", models.CharField(max_length=200, validators=[django.core.validators.MinLengthValidator(2)], verbose_name="title")),
                ("description", models.TextField(blank=True, default="", max_length=2000, verbose_name="description")),
                ("status", models.CharField(choices=[("todo", "To do"), ("in_progress", "In progress"), ("in_review", "In review"), ("done", "Done")], default="todo", max_length=20, verbose_name="status")),
                ("priority", models.CharField(choices=[("low", "Low"), ("medium", "Medium"), ("high", "High"), ("critical", "Critical")], default="medium", max_length=20, verbose_name="priority")),
                ("due_date", models.DateTimeField(blank=True, null=True, verbose_name="due date")),
                ("labels", models.JSONField(blank=True, default=list)),
                ("order", models.IntegerField(default=0, verbose_name="column order")),
                ("completed_at", models.DateTimeField(blank=True, null=True, verbose_name="completed at")),
                ("created_at", models.DateTimeField(auto_now_add=True)),
                ("updated_at", models.DateTimeField(auto_now=True)),
                ("assignee", models.ForeignKey(blank=True, null=True, on_delete=django.db.models.deletion.SET_NULL, related_name="assigned_tasks", to=settings.AUTH_USER_MODEL, verbose_name="assignee")),
                ("created_by", models.ForeignKey(on_delete=django.db.models.deletion.CASCADE, related_name="created_tasks", to=settings.AUTH_USER_MODEL, verbose_name="created by")),
                ("project", models.ForeignKey(on_delete=django.db.models.deletion.CASCADE, related_name="tasks", to="projects.project", verbose_name="project")),
            ],
            options={
                "verbose_name": "task",
                "verbose_name_plural": "tasks",
                "ordering": ["order", "created_at", "id"],
                "indexes": [
                    models.Index(fields=["project", "status"], name="task_project_status_idx"),
                    models.Index(fields=["project", "order"], name="task_project_order_idx"),
                    models.Index(fields=["assignee"], name="task_assignee_idx"),
                    models.Index(fields=["due_date"], name="task_due_date_idx"),
                ],
            },
        ),
        migrations.CreateModel(
            name="TaskComment",
            fields=[
                ("id", models.BigAutoField(auto_created=True, primary_key=True, serialize=False, verbose_name="ID")),
                ("content", models.TextField(max_length=1000, verbose_name="content")),
                ("is_edited", models.BooleanField(default=False)),
                ("created_at", models.DateTimeField(auto_now_add=True)),
                ("updated_at", models.DateTimeField(auto_now=True)),
                ("author", models.ForeignKey(on_delete=django.db.models.deletion.CASCADE, related_name="task_comments", to=settings.AUTH_USER_MODEL, verbose_name="author")),
                ("task", models.ForeignKey(on_delete=django.db.models.deletion.CASCADE, related_name="comments", to="tasks.task", verbose_name="task")),
            ],
            options={
                "verbose_name": "task comment",
                "verbose_name_plural": "task comments",
                "ordering": ["created_at", "id"],
            },
        ),
        migrations.CreateModel(
            name="TaskAttachment",
            fields=[
                ("id", models.BigAutoField(auto_created=True, primary_key=True, serialize=False, verbose_name="ID")),
                ("url", models.CharField(max_length=500, verbose_name="url")),
                ("external_id", models.CharField(max_length=255, verbose_name="storage key")),
                ("name", models.CharField(max_length=255, verbose_name="file name")),
                ("size", models.PositiveIntegerField(default=0)),
                ("content_type", models.CharField(default="file", max_length=100)),
                ("created_at", models.DateTimeField(auto_now_add=True)),
                ("task", models.ForeignKey(on_delete=django.db.models.deletion.CASCADE, related_name="attachments", to="tasks.task", verbose_name="task")),
                ("uploaded_by", models.ForeignKey(null=True, on_delete=django.db.models.deletion.SET_NULL, to=settings.AUTH_USER_MODEL, verbose_name="uploaded by")),
            ],
            options={
                "verbose_name": "task attachment",
                "verbose_name_plural": "task attachments",
                "ordering": ["created_at", "id"],
            },
        ),
    ]
