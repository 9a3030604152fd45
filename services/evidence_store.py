import logging
import uuid
from dataclasses import dataclass
from datetime import datetime
from enum import Enum
from typing import Optional, Protocol
from urllib.parse import quote

from core.errors import StorageFailure, ValidationError

logger = logging.getLogger(__name__)

IMAGE_EXTENSIONS = {"image/jpeg": "jpg", "image/jpg": "jpg", "image/png": "png", "image/webp": "webp"}
ALLOWED_IMAGE_TYPES = list(IMAGE_EXTENSIONS)


class EvidencePhase(str, Enum):
    START = "start"
    END = "end"


@dataclass
class EvidencePhoto:
    data: bytes
    content_type: str
    filename: Optional[str] = None

    @property
    def extension(self) -> str:
        # Derived from the validated content type
        return IMAGE_EXTENSIONS.get(self.content_type, "bin")


def validate_photo(photo: EvidencePhoto) -> None:
    if photo.content_type not in ALLOWED_IMAGE_TYPES:
        raise ValidationError(
            f"Invalid file type. Allowed types: {', '.join(ALLOWED_IMAGE_TYPES)}"
        )
    if not photo.data:
        raise ValidationError("Evidence photo is empty.")


def build_evidence_path(
    worker_id: str,
    phase: EvidencePhase,
    taken_at: datetime,
    extension: str,
    record_key: Optional[str] = None,
) -> str:
    """shifts/{worker}/{phase}[_{record}]_{epoch ms}.{ext}; the timestamp keeps retries from colliding."""
    epoch_ms = int(taken_at.timestamp() * 1000)
    name = f"{phase.value}_{record_key}_{epoch_ms}" if record_key else f"{phase.value}_{epoch_ms}"
    return f"shifts/{worker_id}/{name}.{extension}"


class EvidenceStore(Protocol):
    def upload(self, data: bytes, path: str, content_type: str) -> str: ...

    def delete(self, path: str) -> None: ...


class FirebaseEvidenceStore:
    """
    Evidence photos in Firebase Storage.

    Each upload gets its own download token so the returned URL can be opened
    by the admin dashboard without further signing.
    """

    def __init__(self, bucket):
        self.bucket = bucket

    def upload(self, data: bytes, path: str, content_type: str) -> str:
        if self.bucket is None:
            raise StorageFailure("Evidence storage is not configured (FIREBASE_STORAGE_BUCKET).")
        try:
            blob = self.bucket.blob(path)
            token = uuid.uuid4().hex
            blob.metadata = {"firebaseStorageDownloadTokens": token}
            blob.upload_from_string(data, content_type=content_type)
        except Exception as e:
            logger.error(f"[EVIDENCE] ❌ Upload failed for {path}: {e}")
            raise StorageFailure(f"Could not upload evidence photo: {e}") from e

        logger.info(f"[EVIDENCE] ✅ Uploaded {path} ({len(data)} bytes)")
        return (
            f"https://firebasestorage.googleapis.com/v0/b/{self.bucket.name}/o/"
            f"{quote(path, safe='')}?alt=media&token={token}"
        )

    def delete(self, path: str) -> None:
        try:
            self.bucket.blob(path).delete()
        except Exception as e:
            raise StorageFailure(f"Could not delete evidence photo {path}: {e}") from e
