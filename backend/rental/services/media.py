# rental/services/media.py
from __future__ import annotations

from dataclasses import dataclass
from datetime import datetime, timezone
from typing import Any, Dict, List, Mapping, Optional, Protocol, Sequence

from rental.auth.identity import Identity
from rental.auth.permissions import require_admin, require_owner_or_admin
from rental.core.exceptions import NotFound, ValidationError
from rental.core.logging import get_logger
from rental.db.store import Record, RecordStore
from rental.schemas.common import parse_model
from rental.schemas.image import ImageMeta
from rental.services import query
from rental.storage.blobs import BlobStorage, StoredBlob, validate_upload

logger = get_logger(__name__)


def _utcnow_iso() -> str:
    return datetime.now(timezone.utc).isoformat()


@dataclass(frozen=True)
class UploadedFile:
    """Bytes plus what the client claimed about them."""

    file_name: Optional[str]
    content_type: Optional[str]
    content: bytes


@dataclass(frozen=True)
class UploadLimits:
    allowed_extensions: Sequence[str]
    max_bytes: int
    max_files: int

    def check_count(self, count: int) -> None:
        if count == 0:
            raise ValidationError("Please choose an image to upload")
        if count > self.max_files:
            raise ValidationError(f"At most {self.max_files} files can be uploaded at once")

    def check_file(self, file_name: Optional[str], content_type: Optional[str], size: int) -> None:
        validate_upload(
            file_name,
            content_type,
            size,
            allowed_extensions=self.allowed_extensions,
            max_bytes=self.max_bytes,
        )


class UploadSource(Protocol):
    """What read_uploads needs from an incoming file (starlette's UploadFile)."""

    filename: Optional[str]
    content_type: Optional[str]

    async def read(self, size: int = -1) -> bytes: ...

    async def close(self) -> None: ...


async def read_uploads(sources: Sequence[UploadSource], limits: UploadLimits) -> List[UploadedFile]:
    """
    Pull request files into memory without ever holding more than
    max_files * (max_bytes + 1) bytes: the count and the declared type are
    checked before anything is read, and each read stops one byte past the
    size limit.
    """
    limits.check_count(len(sources))
    result: List[UploadedFile] = []
    for source in sources:
        try:
            limits.check_file(source.filename, source.content_type, 0)
            content = await source.read(limits.max_bytes + 1)
        finally:
            await source.close()
        limits.check_file(source.filename, source.content_type, len(content))
        result.append(UploadedFile(file_name=source.filename, content_type=source.content_type, content=content))
    return result


class MediaRegistry:
    """
    Image metadata and everything that deletes it.

    Blob removal always happens after the metadata change is persisted and is
    best-effort: a storage failure is logged, never raised.
    """

    def __init__(self, store: RecordStore, blobs: BlobStorage):
        self.store = store
        self.blobs = blobs

    # -----------------------------
    # Create
    # -----------------------------
    def _new_image(self, identity: Identity, image_id: int, meta: ImageMeta) -> Record:
        return {
            "id": image_id,
            "tenant_id": identity.id,
            "tenant_name": identity.name or identity.username,
            "image_url": meta.image_url,
            "file_name": meta.file_name,
            "file_size": meta.file_size,
            "file_type": meta.file_type,
            "uploaded_at": _utcnow_iso(),
        }

    async def register_images(
        self, identity: Identity, metas: Sequence[ImageMeta | Mapping[str, Any]]
    ) -> List[Record]:
        parsed = [parse_model(ImageMeta, m) for m in metas]
        if not parsed:
            raise ValidationError("Please choose an image to upload")

        async with self.store.transaction() as data:
            first_id = self.store.next_id("images")
            created = [self._new_image(identity, first_id + i, meta) for i, meta in enumerate(parsed)]
            data["images"].extend(created)

        logger.info("Registered %d image(s) for %s", len(created), identity.username)
        return [dict(r) for r in created]

    async def register_image(self, identity: Identity, meta: ImageMeta | Mapping[str, Any]) -> Record:
        return (await self.register_images(identity, [meta]))[0]

    async def register_uploads(
        self, identity: Identity, files: Sequence[UploadedFile], limits: UploadLimits
    ) -> List[Record]:
        """Validate, store the bytes, then register all metadata in one mutation."""
        limits.check_count(len(files))
        for f in files:
            limits.check_file(f.file_name, f.content_type, len(f.content))

        stored: List[StoredBlob] = []
        try:
            for f in files:
                stored.append(await self.blobs.save(identity.id, f.file_name, f.content, f.content_type))
            return await self.register_images(
                identity,
                [
                    ImageMeta(
                        image_url=b.url, file_name=b.file_name, file_size=b.file_size, file_type=b.file_type
                    )
                    for b in stored
                ],
            )
        except Exception:
            for blob in stored:
                await self._discard_blob(blob.url)
            raise

    # -----------------------------
    # Read
    # -----------------------------
    def list_images(self, identity: Identity) -> List[Record]:
        records = query.scope(self.store.images, identity, query.IMAGES)
        return [dict(r) for r in query.sort_records(records, "uploaded_at", descending=True)]

    def paginate(self, identity: Identity, params: query.ListQuery | Mapping[str, Any]) -> Dict[str, Any]:
        require_admin(identity)
        return query.run_query(self.store, identity, query.IMAGES, params)

    # -----------------------------
    # Delete
    # -----------------------------
    async def _discard_blob(self, url: Optional[str]) -> None:
        if not url:
            return
        try:
            await self.blobs.delete(url)
        except Exception:
            logger.warning("Could not delete blob %s", url, exc_info=True)

    async def delete_image(self, identity: Identity, image_id: int) -> Record:
        async with self.store.transaction() as data:
            image = self.store.find("images", image_id)
            if image is None:
                raise NotFound("Image not found")
            require_owner_or_admin(identity, image.get("tenant_id"), message="You may not delete this image")
            data["images"] = [i for i in data["images"] if i.get("id") != image_id]

        await self._discard_blob(image.get("image_url"))
        logger.info("Image %s deleted by %s", image_id, identity.username)
        return dict(image)

    async def delete_tenant(self, identity: Identity, tenant_id: int) -> Dict[str, Any]:
        """
        Remove a tenant together with all of its payments and images in a
        single persisted mutation, then clean up the image blobs.
        """
        require_admin(identity)

        async with self.store.transaction() as data:
            tenant = self.store.find("tenants", tenant_id)
            if tenant is None:
                raise NotFound("Tenant not found")
            images = [i for i in data["images"] if i.get("tenant_id") == tenant_id]
            payments = [p for p in data["payments"] if p.get("tenant_id") == tenant_id]

            data["images"] = [i for i in data["images"] if i.get("tenant_id") != tenant_id]
            data["payments"] = [p for p in data["payments"] if p.get("tenant_id") != tenant_id]
            data["tenants"] = [t for t in data["tenants"] if t.get("id") != tenant_id]

        for image in images:
            await self._discard_blob(image.get("image_url"))

        tenant_name = tenant.get("name") or tenant.get("username")
        logger.info(
            "Deleted tenant %r (id=%s) with %d image(s) and %d payment(s)",
            tenant_name,
            tenant_id,
            len(images),
            len(payments),
        )
        return {
            "tenant": tenant_name,
            "tenant_id": tenant_id,
            "images": len(images),
            "payments": len(payments),
        }
