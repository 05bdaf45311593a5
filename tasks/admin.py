from django.contrib import admin
from .models import Task, TaskAttachment, TaskComment


class TaskCommentInline(admin.TabularInline):
    model = TaskComment
    extra = 0


class TaskAttachmentInline(admin.TabularInline):
    model = TaskAttachment
    extra = 0
    readonly_fields = ("url", "external_id", "size", "content_type")


@admin.register(Task)
class TaskAdmin(admin.ModelAdmin):
    list_display = ("title", "project", "status", "order", "priority")
    list_filter = ("status", "priority")
    search_fields = ("title",)
    readonly_fields = ("completed_at",)
    inlines = [TaskCommentInline, TaskAttachmentInline]
