"""
Object Storage

Files are addressed by the path convention
``{owner_id}/{document_id}/{document_id}.{ext}``. The production backend is
Cloudinary with private delivery; previews go through signed, expiring URLs.
"""

import io
import logging
import time
import uuid
from typing import Iterable, Optional

import cloudinary
import cloudinary.uploader
import cloudinary.utils

from app.core.config import settings
from app.core.exceptions import handle_external_service_error

logger = logging.getLogger(__name__)

# Cloudinary serves these as images; everything else is a raw asset
IMAGE_EXTENSIONS = {"pdf", "jpg", "jpeg", "png", "webp"}


def file_extension(filename: str) -> str:
    if "." not in filename:
        return "bin"
    return filename.rsplit(".", 1)[-1].lower()


def build_document_path(owner_id: uuid.UUID, document_id: uuid.UUID, filename: str) -> str:
    """Storage key for a document upload"""
    return f"{owner_id}/{document_id}/{document_id}.{file_extension(filename)}"


def build_avatar_path(user_id: uuid.UUID, filename: str) -> str:
    return f"avatars/{user_id}/avatar.{file_extension(filename)}"


class StorageBackend:
    """Interface every storage backend implements"""

    def upload(self, path: str, data: bytes, content_type: Optional[str] = None,
               private: bool = True) -> str:
        """Store ``data`` under ``path`` and return the stored path"""
        raise NotImplementedError

    def remove(self, paths: Iterable[str]) -> None:
        """Delete the given paths; missing paths are ignored"""
        raise NotImplementedError

    def signed_url(self, path: str, expires_in: Optional[int] = None) -> str:
        """Time-limited download URL"""
        raise NotImplementedError

    def public_url(self, path: str) -> str:
        raise NotImplementedError


class CloudinaryStorage(StorageBackend):
    """Private Cloudinary assets addressed by the document path"""

    def __init__(self):
        if settings.CLOUDINARY_CLOUD_NAME:
            cloudinary.config(
                cloud_name=settings.CLOUDINARY_CLOUD_NAME,
                api_key=settings.CLOUDINARY_API_KEY,
                api_secret=settings.CLOUDINARY_API_SECRET,
                secure=True,
            )

    @staticmethod
    def _locate(path: str):
        ext = file_extension(path)
        if ext in IMAGE_EXTENSIONS:
            return path.rsplit(".", 1)[0], ext, "image"
        return path, ext, "raw"

    def upload(self, path: str, data: bytes, content_type: Optional[str] = None,
               private: bool = True) -> str:
        public_id, _, resource_type = self._locate(path)
        try:
            cloudinary.uploader.upload(
                io.BytesIO(data),
                public_id=public_id,
                resource_type=resource_type,
                type="private" if private else "upload",
                overwrite=True,
            )
        except Exception as e:
            raise handle_external_service_error(e, "cloudinary", "upload")
        return path

    def remove(self, paths: Iterable[str]) -> None:
        for path in paths:
            public_id, _, resource_type = self._locate(path)
            try:
                cloudinary.uploader.destroy(public_id, resource_type=resource_type, type="private")
            except Exception as e:
                raise handle_external_service_error(e, "cloudinary", "remove")

    def signed_url(self, path: str, expires_in: Optional[int] = None) -> str:
        expires_in = expires_in or settings.SIGNED_URL_EXPIRES_SECONDS
        public_id, ext, resource_type = self._locate(path)
        return cloudinary.utils.private_download_url(
            public_id,
            ext if resource_type == "image" else "",
            resource_type=resource_type,
            type="private",
            expires_at=int(time.time()) + expires_in,
        )

    def public_url(self, path: str) -> str:
        public_id, ext, resource_type = self._locate(path)
        url, _ = cloudinary.utils.cloudinary_url(
            public_id, format=ext if resource_type == "image" else None,
            resource_type=resource_type, type="upload",
        )
        return url


_storage: Optional[StorageBackend] = None


def get_storage() -> StorageBackend:
    """Dependency returning the configured storage backend"""
    global _storage
    if _storage is None:
        _storage = CloudinaryStorage()
    return _storage
