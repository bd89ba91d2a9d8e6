from __future__ import annotations

from typing import List, Optional, Union

from pydantic import BaseModel, ConfigDict

from rental.schemas.common import CountStatsOut, PaginationOut
from rental.schemas.image import ImageOut
from rental.schemas.payment import PaymentOut


class TenantOut(BaseModel):
    """
    A tenant (or admin) as it may leave the server. Undeclared keys such as
    the stored password hash are dropped on serialization.
    """

    model_config = ConfigDict(extra="ignore")

    # admins are identified by username, tenants by integer id
    id: Union[int, str]
    username: str
    name: Optional[str] = None
    email: Optional[str] = None
    phone: Optional[str] = None
    room_number: Optional[str] = None
    lease_start: Optional[str] = None
    lease_end: Optional[str] = None
    rent_amount: Optional[float] = None
    role: str = "tenant"
    created_at: Optional[str] = None


class TenantListOut(BaseModel):
    success: bool = True
    tenants: List[TenantOut]


class TenantPageOut(BaseModel):
    success: bool = True
    data: List[TenantOut]
    pagination: PaginationOut
    statistics: CountStatsOut


class TenantOptionOut(BaseModel):
    id: int
    username: str
    name: Optional[str] = None
    room_number: Optional[str] = None


class TenantOptionsOut(BaseModel):
    success: bool = True
    data: List[TenantOptionOut]


class CascadeSummaryOut(BaseModel):
    tenant: Optional[str] = None
    tenant_id: int
    images: int
    payments: int


class TenantDeletedOut(BaseModel):
    success: bool = True
    message: str
    deleted: CascadeSummaryOut


class DashboardOut(BaseModel):
    totalTenants: int
    totalPayments: int
    pendingPayments: int
    totalImages: int
    recentPayments: List[PaymentOut]
    recentImages: List[ImageOut]


class DashboardResponse(BaseModel):
    success: bool = True
    dashboard: DashboardOut
