from __future__ import annotations

from typing import List, Optional, Union

from pydantic import BaseModel, ConfigDict, Field

from rental.schemas.common import PaginationOut


class ImageMeta(BaseModel):
    """Metadata for a blob that already lives in storage."""

    model_config = ConfigDict(extra="ignore")

    image_url: str = Field(min_length=1, max_length=2048)
    file_name: str = Field(min_length=1, max_length=255)
    file_size: Optional[int] = Field(default=None, ge=0)
    file_type: Optional[str] = Field(default=None, max_length=100)


class ImageOut(BaseModel):
    # extra="allow" keeps the room_number join on paginated rows
    model_config = ConfigDict(extra="allow")

    id: int
    tenant_id: Union[int, str, None] = None
    tenant_name: Optional[str] = None
    image_url: str
    file_name: Optional[str] = None
    file_size: Optional[int] = None
    file_type: Optional[str] = None
    uploaded_at: Optional[str] = None


class ImageStatsOut(BaseModel):
    total_records: int
    total_file_size: int


class ImageListOut(BaseModel):
    success: bool = True
    images: List[ImageOut]


class ImageCreatedOut(BaseModel):
    success: bool = True
    message: str
    image: ImageOut


class ImagesCreatedOut(BaseModel):
    success: bool = True
    message: str
    images: List[ImageOut]


class ImagePageOut(BaseModel):
    success: bool = True
    data: List[ImageOut]
    pagination: PaginationOut
    statistics: ImageStatsOut
