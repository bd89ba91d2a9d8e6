from __future__ import annotations

import os
import secrets
import time
from dataclasses import dataclass
from pathlib import Path
from typing import Any, Iterable, Optional, Protocol

from starlette.concurrency import run_in_threadpool

from rental.core.exceptions import ValidationError
from rental.core.logging import get_logger

logger = get_logger(__name__)

_ALLOWED_MIME_MARKERS = ("jpeg", "jpg", "png", "gif", "pdf")


@dataclass(frozen=True)
class StoredBlob:
    url: str
    file_name: str
    file_size: int
    file_type: Optional[str]


class BlobStorage(Protocol):
    """Where uploaded bytes live. The record store only keeps the url."""

    async def save(
        self, owner_id: Any, file_name: str, content: bytes, content_type: Optional[str]
    ) -> StoredBlob: ...

    async def delete(self, url: str) -> bool: ...


def validate_upload(
    file_name: Optional[str],
    content_type: Optional[str],
    size: int,
    *,
    allowed_extensions: Iterable[str],
    max_bytes: int,
) -> None:
    """Only images (jpeg/jpg/png/gif) and pdf, each at most max_bytes."""
    if not file_name:
        raise ValidationError("Please choose a file to upload")

    ext = os.path.splitext(file_name)[1].lower()
    mime = (content_type or "").lower()
    if ext not in {e.lower() for e in allowed_extensions} or not any(m in mime for m in _ALLOWED_MIME_MARKERS):
        raise ValidationError("Only image files (JPEG, JPG, PNG, GIF) and PDF may be uploaded")

    if size > max_bytes:
        raise ValidationError(f"File {file_name!r} exceeds the {max_bytes // (1024 * 1024)} MB limit")


class LocalBlobStorage:
    """
    Files under ``<root>/<owner_id>/<millis>-<random><ext>``, served elsewhere
    at ``<url_prefix>/<owner_id>/<name>``.
    """

    def __init__(self, root: str | os.PathLike, url_prefix: str = "/uploads"):
        self.root = Path(root)
        self.url_prefix = "/" + url_prefix.strip("/")

    def _unique_name(self, file_name: str) -> str:
        ext = os.path.splitext(file_name)[1].lower()
        return f"{int(time.time() * 1000)}-{secrets.token_hex(4)}{ext}"

    def path_for(self, url: str) -> Optional[Path]:
        """Map a url produced by save() back to a file inside root, else None."""
        if not url or not url.startswith(self.url_prefix + "/"):
            return None
        relative = url[len(self.url_prefix) + 1:]
        root = self.root.resolve()
        candidate = (root / relative).resolve()
        if root not in candidate.parents:
            return None
        return candidate

    async def save(
        self, owner_id: Any, file_name: str, content: bytes, content_type: Optional[str]
    ) -> StoredBlob:
        folder = self.root / str(owner_id)
        name = self._unique_name(file_name)
        target = folder / name

        def _write() -> None:
            folder.mkdir(parents=True, exist_ok=True)
            target.write_bytes(content)

        await run_in_threadpool(_write)
        logger.info("Stored upload %s (%d bytes) at %s", file_name, len(content), target)
        return StoredBlob(
            url=f"{self.url_prefix}/{owner_id}/{name}",
            file_name=file_name,
            file_size=len(content),
            file_type=content_type,
        )

    async def delete(self, url: str) -> bool:
        path = self.path_for(url)
        if path is None:
            # not ours (e.g. an externally hosted url registered via /images/save)
            return False

        def _unlink() -> bool:
            if path.exists():
                path.unlink()
                return True
            return False

        removed = await run_in_threadpool(_unlink)
        if removed:
            logger.info("Deleted blob %s", path)
        return removed
