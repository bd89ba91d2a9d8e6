from __future__ import annotations

from typing import List, Optional

from fastapi import APIRouter, Depends, File, UploadFile

from rental.api.deps.identity import get_current_identity
from rental.api.deps.services import get_media_registry, get_upload_limits
from rental.auth.identity import Identity
from rental.schemas.common import MessageOut
from rental.schemas.image import ImageCreatedOut, ImageListOut, ImageMeta, ImagesCreatedOut
from rental.services.media import MediaRegistry, UploadLimits, read_uploads

router = APIRouter(prefix="/images", tags=["images"])


@router.get("", response_model=ImageListOut)
async def list_images(
    identity: Identity = Depends(get_current_identity),
    registry: MediaRegistry = Depends(get_media_registry),
):
    return {"success": True, "images": registry.list_images(identity)}


@router.post("/upload", response_model=ImageCreatedOut)
async def upload_image(
    image: Optional[UploadFile] = File(default=None),
    identity: Identity = Depends(get_current_identity),
    registry: MediaRegistry = Depends(get_media_registry),
    limits: UploadLimits = Depends(get_upload_limits),
):
    files = await read_uploads([image] if image is not None else [], limits)
    created = await registry.register_uploads(identity, files, limits)
    return {"success": True, "message": "Image uploaded", "image": created[0]}


@router.post("/upload-multiple", response_model=ImagesCreatedOut)
async def upload_images(
    images: Optional[List[UploadFile]] = File(default=None),
    identity: Identity = Depends(get_current_identity),
    registry: MediaRegistry = Depends(get_media_registry),
    limits: UploadLimits = Depends(get_upload_limits),
):
    files = await read_uploads(images or [], limits)
    created = await registry.register_uploads(identity, files, limits)
    return {"success": True, "message": f"Uploaded {len(created)} image(s)", "images": created}


@router.post("/save", response_model=ImageCreatedOut)
async def save_image_meta(
    payload: ImageMeta,
    identity: Identity = Depends(get_current_identity),
    registry: MediaRegistry = Depends(get_media_registry),
):
    """Register a file the client already put into external storage."""
    image = await registry.register_image(identity, payload)
    return {"success": True, "message": "Image information saved", "image": image}


@router.delete("/{image_id}", response_model=MessageOut)
async def delete_image(
    image_id: int,
    identity: Identity = Depends(get_current_identity),
    registry: MediaRegistry = Depends(get_media_registry),
):
    await registry.delete_image(identity, image_id)
    return {"success": True, "message": "Image deleted"}
