from typing import NamedTuple

from django.conf import settings
from django.core.files.base import ContentFile
from django.core.files.storage import default_storage
from django.utils.module_loading import import_string


class StoredFile(NamedTuple):
    url: str
    external_id: str


class FileNotFound(Exception):
    pass


class DjangoFileStore:
    """File store backed by a Django storage backend."""

    def __init__(self, storage=None, location="task_attachments/"):
        self.storage = storage or default_storage
        self.location = location

    def store(self, content: bytes, metadata: dict) -> StoredFile:
        location = metadata.get("folder", self.location)
        name = self.storage.save(
            f"{location}{metadata['name']}", ContentFile(content)
        )
        return StoredFile(url=self.storage.url(name), external_id=name)

    def delete(self, external_id: str) -> None:
        if not self.storage.exists(external_id):
            raise FileNotFound(external_id)
        self.storage.delete(external_id)


def get_file_store():
    return import_string(settings.TASK_FILE_STORE)()
