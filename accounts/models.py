from django.contrib.auth.models import AbstractUser
from django.db import models

# Create your models here.


class User(AbstractUser):
    ROLE_USER = "user"
    ROLE_ADMIN = "admin"

    ROLE_CHOICES = [
        (ROLE_USER, "User"),
        (ROLE_ADMIN, "Admin"),
    ]

    email = models.EmailField(unique=True, verbose_name="email address")
    role = models.CharField(
        max_length=20, choices=ROLE_CHOICES, default=ROLE_USER
    )
    avatar = models.CharField(max_length=500, blank=True, default="")
    avatar_external_id = models.CharField(
        max_length=255, blank=True, default="", verbose_name="avatar storage key"
    )

    class Meta:
        verbose_name = "user"
        verbose_name_plural = "users"

    @property
    def is_admin(self):
        return self.role == self.ROLE_ADMIN or self.is_superuser

    @property
    def display_name(self):
        full_name = self.get_full_name()
        return full_name or self.username

    def save(self, *args, **kwargs):
        if self.email:
            self.email = self.email.lower()
        super().save(*args, **kwargs)
