"""
URL configuration for config project.

The `urlpatterns` list routes URLs to views. For more information please see:
    https://docs.djangoproject.com/en/5.0/topics/http/urls/
"""

from django.contrib import admin
from django.http import JsonResponse
from django.urls import path, include
from django.utils import timezone
from rest_framework.routers import DefaultRouter
from drf_spectacular.views import (
    SpectacularAPIView,
    SpectacularSwaggerView,
    SpectacularRedocView,
)
from rest_framework_simplejwt.views import (
    TokenObtainPairView,
    TokenRefreshView,
)
from django.views.generic import RedirectView
from rest_framework.permissions import AllowAny

from accounts.views import UserViewSet
from projects.views import ProjectViewSet
from tasks.views import TaskViewSet, TaskCommentViewSet


def health(request):
    return JsonResponse(
        {
            "success": True,
            "message": "Task board API is running",
            "timestamp": timezone.now().isoformat(),
        }
    )


router = DefaultRouter()
router.register(r"users", UserViewSet)
router.register(r"projects", ProjectViewSet, basename="project")
router.register(
    r"projects/(?P<project_pk>\d+)/tasks",
    TaskViewSet,
    basename="project-task",
)
router.register(
    r"tasks/(?P<task_pk>\d+)/comments",
    TaskCommentViewSet,
    basename="task-comment",
)

urlpatterns = [
    path("", RedirectView.as_view(url="/api/docs/", permanent=False)),
    path("admin/", admin.site.urls),
    path("api/health/", health, name="health"),
    path("api/", include(router.urls)),
    path(
        "api/schema/",
        SpectacularAPIView.as_view(permission_classes=[AllowAny]),
        name="schema",
    ),
    path(
        "api/docs/",
        SpectacularSwaggerView.as_view(
            url_name="schema", permission_classes=[AllowAny]
        ),
        name="swagger-ui",
    ),
    path(
        "api/token/", TokenObtainPairView.as_view(), name="token_obtain_pair"
    ),
    path(
        "api/token/refresh/", TokenRefreshView.as_view(), name="token_refresh"
    ),
    path(
        "api/redoc/",
        SpectacularRedocView.as_view(
            url_name="schema", permission_classes=[AllowAny]
        ),
        name="redoc",
    ),
]
