"""Local-disk file storage for resource uploads."""
import logging
import os
import secrets
import time
from dataclasses import dataclass
from typing import List, Optional

from schoolhub.core.config import settings
from schoolhub.services.errors import FileValidationError

logger = logging.getLogger(__name__)


@dataclass
class UploadedFile:
    filename: str
    content_type: Optional[str]
    data: bytes


@dataclass
class StoredFile:
    file_url: str
    file_name: str
    file_size: int
    file_type: Optional[str] = None


class LocalFileStorage:
    """Writes uploads under ``root`` and hands back an opaque public URL."""

    def __init__(self, root: Optional[str] = None, url_prefix: Optional[str] = None,
                 max_size: Optional[int] = None, allowed_types: Optional[List[str]] = None):
        self.root = root or settings.UPLOAD_DIR
        self.url_prefix = (url_prefix or settings.UPLOAD_URL_PREFIX).rstrip("/")
        self.max_size = max_size or settings.MAX_UPLOAD_SIZE
        self.allowed_types = allowed_types or settings.ALLOWED_UPLOAD_TYPES

    def validate(self, filename: str, content_type: Optional[str], size: int) -> None:
        if not filename:
            raise FileValidationError("No file provided")
        if size > self.max_size:
            raise FileValidationError(
                f"File size exceeds {self.max_size // (1024 * 1024)}MB limit",
                {"size": size, "max_size": self.max_size},
            )
        if content_type not in self.allowed_types:
            raise FileValidationError("File type not allowed", {"content_type": content_type})

    def save(self, filename: str, content_type: Optional[str], data: bytes) -> StoredFile:
        self.validate(filename, content_type, len(data))
        os.makedirs(self.root, exist_ok=True)
        stored_name = f"{int(time.time() * 1000)}_{secrets.token_hex(6)}{os.path.splitext(filename)[1]}"
        with open(os.path.join(self.root, stored_name), "wb") as fh:
            fh.write(data)
        logger.info("Stored upload %s as %s (%d bytes)", filename, stored_name, len(data))
        return StoredFile(
            file_url=f"{self.url_prefix}/{stored_name}",
            file_name=filename,
            file_size=len(data),
            file_type=content_type,
        )

    def delete(self, file_url: str) -> bool:
        if not file_url.startswith(self.url_prefix + "/"):
            return False
        path = os.path.join(self.root, os.path.basename(file_url))
        if not os.path.exists(path):
            return False
        os.remove(path)
        logger.info("Removed stored file %s", path)
        return True
