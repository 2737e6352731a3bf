"""Receipt storage on an S3-compatible bucket (MinIO)"""

import io
import logging
import mimetypes
import re
import uuid
from collections import Counter
from dataclasses import dataclass, field
from datetime import datetime, timezone
from pathlib import PurePosixPath
from typing import Dict, List, Optional

from minio import Minio
from minio.error import MinioException

from cash_planner.config import config
from cash_planner.domain.exceptions import RepositoryError, ValidationError

logger = logging.getLogger(__name__)

MAX_STEM_LENGTH = 50
_UNSAFE_CHARS = re.compile(r"[^A-Za-z0-9_-]")


@dataclass
class StoredFile:
    key: str
    public_url: str
    size_bytes: int
    last_modified: Optional[datetime]


@dataclass
class StorageStats:
    total_files: int = 0
    total_size_bytes: int = 0
    files_by_type: Dict[str, int] = field(default_factory=dict)


def sanitize_filename(filename: str) -> str:
    """
    Safe stem for an object key.

    Drops the extension, replaces anything outside [A-Za-z0-9_-] with '_'
    and keeps at most 50 characters.

    Example:
        sanitize_filename("Facture N°123.pdf") -> "Facture_N_123"
    """
    stem = PurePosixPath(filename).stem or "file"
    return _UNSAFE_CHARS.sub("_", stem)[:MAX_STEM_LENGTH]


def file_extension(filename: str) -> str:
    """Extension without the dot, 'bin' when absent"""
    suffix = PurePosixPath(filename).suffix
    return suffix[1:] if suffix else "bin"


def object_key_for(filename: str, now: datetime, unique: Optional[str] = None) -> str:
    """YYYY-MM/<dd_HHMMSS>_<8 hex>_<stem>.<ext>"""
    unique = unique or uuid.uuid4().hex[:8]
    return (
        f"{now.year:04d}-{now.month:02d}/"
        f"{now.strftime('%d_%H%M%S')}_{unique}_{sanitize_filename(filename)}.{file_extension(filename)}"
    )


class ReceiptStorage:
    """Uploads, lists and deletes receipt files; files are grouped in YYYY-MM/ folders"""

    def __init__(self, client: Minio, bucket: str, public_url: str):
        self.client = client
        self.bucket = bucket
        self.public_url = public_url.rstrip("/")

    @classmethod
    def from_config(cls) -> "ReceiptStorage":
        client = Minio(
            config.minio_endpoint,
            access_key=config.minio_access_key,
            secret_key=config.minio_secret_key,
            secure=config.minio_secure,
        )
        return cls(client, config.minio_bucket, config.minio_public_url)

    @property
    def _url_prefix(self) -> str:
        return f"{self.public_url}/{self.bucket}/"

    def url_for(self, key: str) -> str:
        return f"{self._url_prefix}{key}"

    def key_from_url(self, url: str) -> str:
        """
        Object key behind a public URL.

        Raises:
            ValidationError: URL does not point into this bucket
        """
        if not url.startswith(self._url_prefix) or len(url) == len(self._url_prefix):
            raise ValidationError(f"URL invalide: {url}")
        return url[len(self._url_prefix):]

    def _ensure_bucket(self) -> None:
        if not self.client.bucket_exists(self.bucket):
            logger.info("Creating bucket", extra={"bucket": self.bucket})
            self.client.make_bucket(self.bucket)

    def upload(
        self,
        content: bytes,
        filename: str,
        content_type: Optional[str] = None,
        now: Optional[datetime] = None,
    ) -> str:
        """Store the file and return its public URL"""
        key = object_key_for(filename, now or datetime.now(timezone.utc))
        content_type = content_type or mimetypes.guess_type(filename)[0] or "application/octet-stream"

        try:
            self._ensure_bucket()
            self.client.put_object(
                self.bucket,
                key,
                io.BytesIO(content),
                length=len(content),
                content_type=content_type,
            )
        except MinioException as e:
            logger.error("Receipt upload failed", extra={"key": key, "error": str(e)})
            raise RepositoryError("Receipt upload failed") from e

        logger.info("Receipt uploaded", extra={"key": key, "size_bytes": len(content)})
        return self.url_for(key)

    def delete(self, url: str) -> None:
        key = self.key_from_url(url)
        try:
            self.client.remove_object(self.bucket, key)
        except MinioException as e:
            logger.error("Receipt delete failed", extra={"key": key, "error": str(e)})
            raise RepositoryError("Receipt delete failed") from e

    def list_by_month(self, year: int, month: int) -> List[StoredFile]:
        prefix = f"{year:04d}-{month:02d}/"
        try:
            self._ensure_bucket()
            objects = list(self.client.list_objects(self.bucket, prefix=prefix, recursive=True))
        except MinioException as e:
            raise RepositoryError("Receipt listing failed") from e

        return [
            StoredFile(
                key=obj.object_name,
                public_url=self.url_for(obj.object_name),
                size_bytes=obj.size or 0,
                last_modified=obj.last_modified,
            )
            for obj in objects
        ]

    def stats(self) -> StorageStats:
        """File count, total size and count per lowercase extension ('unknown' without one)"""
        try:
            self._ensure_bucket()
            objects = list(self.client.list_objects(self.bucket, recursive=True))
        except MinioException as e:
            raise RepositoryError("Receipt statistics failed") from e

        by_type = Counter(
            PurePosixPath(obj.object_name).suffix[1:].lower() or "unknown" for obj in objects
        )
        return StorageStats(
            total_files=len(objects),
            total_size_bytes=sum(obj.size or 0 for obj in objects),
            files_by_type=dict(by_type),
        )
