from django.contrib import admin
from .models import Project


@admin.register(Project)
class ProjectAdmin(admin.ModelAdmin):
    list_display = ("name", "owner", "status", "updated_at")
    search_fields = ("name", "owner__email")
    list_filter = ("status",)
    filter_horizontal = ("members",)
