from __future__ import annotations

from fastapi import Depends, Request

from rental.core.config import settings
from rental.db.session import get_store
from rental.db.store import RecordStore
from rental.services.media import MediaRegistry, UploadLimits
from rental.services.payments import PaymentLedger
from rental.services.tenants import TenantDirectory
from rental.storage.blobs import BlobStorage


def get_blob_storage(request: Request) -> BlobStorage:
    return request.app.state.blobs


def get_upload_limits() -> UploadLimits:
    return UploadLimits(
        allowed_extensions=tuple(settings.ALLOWED_UPLOAD_EXTENSIONS),
        max_bytes=settings.MAX_UPLOAD_BYTES,
        max_files=settings.MAX_UPLOAD_FILES,
    )


def get_payment_ledger(store: RecordStore = Depends(get_store)) -> PaymentLedger:
    return PaymentLedger(store)


def get_media_registry(
    store: RecordStore = Depends(get_store),
    blobs: BlobStorage = Depends(get_blob_storage),
) -> MediaRegistry:
    return MediaRegistry(store, blobs)


def get_tenant_directory(store: RecordStore = Depends(get_store)) -> TenantDirectory:
    return TenantDirectory(
        store,
        admins=settings.ADMIN_ACCOUNTS,
        recent_limit=settings.DASHBOARD_RECENT_LIMIT,
    )
