from __future__ import annotations

import os
import re
import uuid
from collections.abc import Mapping
from dataclasses import dataclass
from pathlib import Path

from app.errors import bad_request

PUBLIC_PREFIX = "/uploads"
MAX_UPLOAD_BYTES = 10 * 1024 * 1024
ALLOWED_CONTENT_TYPES = frozenset(
    {
        "image/jpeg",
        "image/png",
        "image/webp",
        "image/gif",
        "application/pdf",
        "text/plain",
        "text/csv",
        "application/msword",
        "application/vnd.ms-excel",
        "application/vnd.ms-powerpoint",
    }
)
ALLOWED_CONTENT_PREFIXES = (
    "application/vnd.openxmlformats-officedocument.",
    "application/vnd.oasis.opendocument.",
)


def _clean_segment(value: str) -> str:
    cleaned = re.sub(r"[^A-Za-z0-9._-]+", "_", value.strip())
    return cleaned.strip("._") or "file"


def _base_content_type(content_type: str | None) -> str:
    return (content_type or "").split(";", maxsplit=1)[0].strip().lower()


def content_type_allowed(content_type: str | None) -> bool:
    base = _base_content_type(content_type)
    if not base:
        return False
    return base in ALLOWED_CONTENT_TYPES or base.startswith(ALLOWED_CONTENT_PREFIXES)


@dataclass(frozen=True)
class PendingUpload:
    filename: str
    content_bytes: bytes
    content_type: str | None = None


class LocalUploadStorage:
    """Writes uploaded attachments under one directory and returns their public path.

    `save_all` validates the whole batch before the first write, so a rejected
    file never leaves its siblings behind on disk.
    """

    def __init__(self, *, root: str) -> None:
        self._root = Path(root)

    @property
    def root(self) -> Path:
        return self._root

    def check(self, *, filename: str, content_bytes: bytes, content_type: str | None) -> None:
        if not content_bytes:
            raise bad_request("EMPTY_FILE", f"File {filename} is empty")
        if len(content_bytes) > MAX_UPLOAD_BYTES:
            raise bad_request("FILE_TOO_LARGE", f"File {filename} exceeds the 10MB limit")
        if not content_type_allowed(content_type):
            shown = _base_content_type(content_type) or "unknown"
            raise bad_request("UNSUPPORTED_FILE_TYPE", f"File type {shown} is not allowed")

    def _write(self, *, filename: str, content_bytes: bytes) -> str:
        stored_name = f"{uuid.uuid4().hex[:12]}-{_clean_segment(filename)}"
        self._root.mkdir(parents=True, exist_ok=True)
        (self._root / stored_name).write_bytes(content_bytes)
        return f"{PUBLIC_PREFIX}/{stored_name}"

    def save_all(self, uploads: list[PendingUpload]) -> list[str]:
        for item in uploads:
            self.check(filename=item.filename, content_bytes=item.content_bytes, content_type=item.content_type)
        return [self._write(filename=item.filename, content_bytes=item.content_bytes) for item in uploads]


def create_upload_storage_from_env(environ: Mapping[str, str] | None = None) -> LocalUploadStorage:
    env = os.environ if environ is None else environ
    return LocalUploadStorage(root=env.get("UPLOAD_DIR", "").strip() or "uploads")
