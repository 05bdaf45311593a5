from unittest import mock

from django.test import TestCase
from django.contrib.auth import get_user_model
from django.core.files.uploadedfile import SimpleUploadedFile
from rest_framework.test import APITestCase
from rest_framework import status
from django.urls import reverse

from tasks.storage import StoredFile

from .views import UserViewSet

User = get_user_model()


class UserModelTest(TestCase):
    def test_create_user(self):
        user = User.objects.create_user(
            username="testuser",
            email="Test@Example.com",
            password="testpass123",
        )

        self.assertEqual(user.username, "testuser")
        self.assertEqual(user.email, "test@example.com")
        self.assertEqual(user.role, User.ROLE_USER)
        self.assertFalse(user.is_admin)
        self.assertTrue(user.is_active)

    def test_admin_role(self):
        admin_user = User.objects.create_user(
            username="boss",
            email="boss@example.com",
            password="testpass123",
            role=User.ROLE_ADMIN,
        )
        superuser = User.objects.create_superuser(
            username="root", email="root@example.com", password="admin123"
        )

        self.assertTrue(admin_user.is_admin)
        self.assertTrue(superuser.is_admin)

    def test_display_name(self):
        user = User.objects.create_user(
            username="jdoe", email="jdoe@example.com", password="testpass123"
        )
        self.assertEqual(user.display_name, "jdoe")

        user.first_name = "Jane"
        user.last_name = "Doe"
        self.assertEqual(user.display_name, "Jane Doe")

    def test_user_str_method(self):
        user = User.objects.create_user(
            username="testuser2",
            email="test2@example.com",
            password="testpass123",
        )
        self.assertEqual(str(user), "testuser2")


class UserAPITest(APITestCase):
    def setUp(self):
        self.user = User.objects.create_user(
            username="testuser",
            email="test@example.com",
            password="testpass123",
        )
        self.admin = User.objects.create_user(
            username="admin",
            email="admin@example.com",
            password="admin123",
            role=User.ROLE_ADMIN,
        )

    def test_me(self):
        self.client.force_authenticate(user=self.user)

        response = self.client.get(reverse("user-me"))

        self.assertEqual(response.status_code, status.HTTP_200_OK)
        self.assertTrue(response.data["success"])
        self.assertEqual(response.data["user"]["username"], "testuser")

    def test_me_requires_authentication(self):
        response = self.client.get(reverse("user-me"))

        self.assertEqual(response.status_code, status.HTTP_401_UNAUTHORIZED)
        self.assertFalse(response.data["success"])

    def test_user_list_is_admin_only(self):
        self.client.force_authenticate(user=self.user)

        response = self.client.get(reverse("user-list"))

        self.assertEqual(response.status_code, status.HTTP_403_FORBIDDEN)

    def test_admin_lists_and_searches_users(self):
        self.client.force_authenticate(user=self.admin)

        response = self.client.get(reverse("user-list"))
        self.assertEqual(response.status_code, status.HTTP_200_OK)
        self.assertEqual(response.data["pagination"]["total"], 2)

        response = self.client.get(reverse("user-list"), {"search": "test@"})
        self.assertEqual(
            [user["username"] for user in response.data["users"]],
            ["testuser"],
        )

    def test_user_detail(self):
        self.client.force_authenticate(user=self.user)

        response = self.client.get(
            reverse("user-detail", kwargs={"pk": self.admin.pk})
        )

        self.assertEqual(response.status_code, status.HTTP_200_OK)
        self.assertEqual(response.data["user"]["role"], User.ROLE_ADMIN)


class AvatarStore:
    def __init__(self, fail_on_delete=False):
        self.fail_on_delete = fail_on_delete
        self.deleted = []

    def store(self, content, metadata):
        key = f"{metadata['folder']}{metadata['name']}"
        return StoredFile(url=f"/media/{key}", external_id=key)

    def delete(self, external_id):
        if self.fail_on_delete:
            raise ConnectionError("file store unavailable")
        self.deleted.append(external_id)


class ProfileAPITest(APITestCase):
    def setUp(self):
        self.user = User.objects.create_user(
            username="testuser",
            email="test@example.com",
            password="testpass123",
        )
        self.client.force_authenticate(user=self.user)

    def upload(self, store, name="me.png", content_type="image/png"):
        with mock.patch.object(
            UserViewSet, "get_file_store", return_value=store
        ):
            return self.client.post(
                reverse("user-avatar"),
                {
                    "avatar": SimpleUploadedFile(
                        name, b"\x89PNG", content_type=content_type
                    )
                },
                format="multipart",
            )

    def test_update_profile(self):
        response = self.client.put(
            reverse("user-profile"),
            {"first_name": " Jane ", "last_name": "Doe"},
        )

        self.assertEqual(response.status_code, status.HTTP_200_OK)
        self.assertEqual(response.data["user"]["name"], "Jane Doe")
        self.user.refresh_from_db()
        self.assertEqual(self.user.first_name, "Jane")

    def test_profile_ignores_role_and_email(self):
        response = self.client.patch(
            reverse("user-profile"),
            {"role": User.ROLE_ADMIN, "email": "other@example.com"},
        )

        self.assertEqual(response.status_code, status.HTTP_200_OK)
        self.user.refresh_from_db()
        self.assertEqual(self.user.role, User.ROLE_USER)
        self.assertEqual(self.user.email, "test@example.com")

    def test_upload_avatar_replaces_previous_file(self):
        store = AvatarStore()

        first = self.upload(store, name="one.png")
        second = self.upload(store, name="two.png")

        self.assertEqual(first.status_code, status.HTTP_200_OK)
        self.assertEqual(second.status_code, status.HTTP_200_OK)
        self.assertEqual(
            second.data["user"]["avatar"], "/media/avatars/two.png"
        )
        self.assertEqual(store.deleted, ["avatars/one.png"])
        self.user.refresh_from_db()
        self.assertEqual(self.user.avatar_external_id, "avatars/two.png")

    def test_old_avatar_cleanup_failure_is_logged(self):
        self.user.avatar_external_id = "avatars/old.png"
        self.user.save()

        with self.assertLogs("accounts.services", level="WARNING"):
            response = self.upload(AvatarStore(fail_on_delete=True))

        self.assertEqual(response.status_code, status.HTTP_200_OK)
        self.user.refresh_from_db()
        self.assertEqual(self.user.avatar_external_id, "avatars/me.png")

    def test_avatar_must_be_an_image(self):
        store = AvatarStore()

        response = self.upload(
            store, name="notes.pdf", content_type="application/pdf"
        )

        self.assertEqual(response.status_code, status.HTTP_400_BAD_REQUEST)
        self.assertFalse(response.data["success"])
        self.user.refresh_from_db()
        self.assertEqual(self.user.avatar, "")


class HealthCheckTest(APITestCase):
    def test_health(self):
        response = self.client.get(reverse("health"))

        self.assertEqual(response.status_code, status.HTTP_200_OK)
        self.assertTrue(response.json()["success"])
