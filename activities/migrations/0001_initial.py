import django.db.models.deletion
from django.conf import settings
from django.db import migrations, models


class Migration(migrations.Migration):

    initial = True

    dependencies = [
        ("projects", "0001_initial"),
        ("tasks", "0001_initial"),
        migrations.swappable_dependency(settings.AUTH_USER_MODEL),
    ]

    operations = [
        migrations.CreateModel(
            name="ActivityLog",
            fields=[
                ("id", models.BigAutoField(auto_created=True, primary_key=True, serialize=False, verbose_name="ID")),
                ("action", models.CharField(choices=[("created_project", "Created project"), ("updated_project", "Updated project"), ("created_task", "Created task"), ("updated_task", "Updated task"), ("deleted_task", "Deleted task"), ("changed_status", "Changed status"), ("assigned_task", "Assigned task"), ("added_comment", "Added comment"), ("uploaded_file", "Uploaded file"), ("added_member", "Added member"), ("removed_member", "Removed member")], max_length=50)),
                ("meta", models.JSONField(blank=True, default=dict)),
                ("created_at", models.DateTimeField(auto_now_add=True)),
                ("project", models.ForeignKey(on_delete=django.db.models.deletion.CASCADE, related_name="activity_logs", to="projects.project")),
                ("task", models.ForeignKey(blank=True, null=True, on_delete=django.db.models.deletion.CASCADE, related_name="activity_logs", to="tasks.task")),
                ("user", models.ForeignKey(on_delete=django.db.models.deletion.CASCADE, to=settings.AUTH_USER_MODEL)),
            ],
            options={
                "ordering": ["-created_at", "-id"],
                "indexes": [
                    models.Index(fields=["project", "-created_at"], name="activity_project_idx"),
                    models.Index(fields=["task", "-created_at"], name="activity_task_idx"),
                ],
            },
        ),
    ]
