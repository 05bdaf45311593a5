import logging

from django.conf import settings
from rest_framework.exceptions import ValidationError

from tasks.storage import FileNotFound

logger = logging.getLogger(__name__)


def replace_avatar(user, upload, file_store):
    """Store ``upload`` as the user's avatar and drop the previous blob.

    The old file is removed only after the new one is saved; failing to
    remove it is logged.
    """
    content_type = getattr(upload, "content_type", None) or "file"
    if content_type not in settings.AVATAR_CONTENT_TYPES:
        raise ValidationError("File type not supported")
    if upload.size > settings.AVATAR_MAX_SIZE:
        raise ValidationError("File is too large")

    previous = user.avatar_external_id
    stored = file_store.store(
        upload.read(),
        {
            "name": upload.name,
            "content_type": content_type,
            "folder": "avatars/",
        },
    )
    user.avatar = stored.url
    user.avatar_external_id = stored.external_id
    user.save(update_fields=["avatar", "avatar_external_id"])

    if previous and previous != stored.external_id:
        try:
            file_store.delete(previous)
        except FileNotFound:
            logger.info("Old avatar %s already gone", previous)
        except Exception:
            logger.warning(
                "Could not delete old avatar %s from file store",
                previous,
                exc_info=True,
            )
    return user
