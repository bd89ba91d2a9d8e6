from __future__ import annotations

from datetime import date
from typing import List, Optional, Union

from pydantic import BaseModel, ConfigDict, Field, field_validator, model_validator

from rental.core.roles import PaymentStatus
from rental.schemas.common import PaginationOut, blank_to_none


class PaymentCreate(BaseModel):
    """
    A tenant's rent + utilities submission.

    Amounts arrive as numbers or numeric strings from the web form; anything
    non-numeric is rejected. electricity_usage, electricity_fee and (unless
    given) total_amount are derived, never taken from the caller.
    """

    model_config = ConfigDict(extra="ignore", allow_inf_nan=False)

    payment_date: Optional[date] = None
    rent_amount: float = Field(ge=0)
    water_fee: float = Field(default=0, ge=0)
    electricity_rate: float = Field(ge=0)
    previous_meter: float = Field(ge=0)
    current_meter: float = Field(ge=0)
    total_amount: Optional[float] = Field(default=None, ge=0)
    account_last_five: Optional[str] = Field(default=None, max_length=5)

    @field_validator("payment_date", "total_amount", mode="before")
    @classmethod
    def empty_is_missing(cls, v):
        return blank_to_none(v)

    @field_validator("water_fee", mode="before")
    @classmethod
    def empty_water_fee_is_zero(cls, v):
        return 0 if blank_to_none(v) is None else v

    @field_validator("account_last_five", mode="before")
    @classmethod
    def normalize_account(cls, v):
        if isinstance(v, int) and not isinstance(v, bool):
            v = str(v)
        v = blank_to_none(v)
        return v.strip() if isinstance(v, str) else v

    @model_validator(mode="after")
    def check_meter_order(self) -> "PaymentCreate":
        if self.current_meter < self.previous_meter:
            raise ValueError("current_meter must not be lower than previous_meter")
        return self


class PaymentStatusUpdate(BaseModel):
    status: PaymentStatus


class PaymentOut(BaseModel):
    # extra="allow" keeps the room_number join on paginated rows
    model_config = ConfigDict(extra="allow")

    id: int
    tenant_id: Union[int, str, None] = None
    tenant_name: Optional[str] = None
    payment_date: Optional[str] = None
    rent_amount: Optional[float] = None
    water_fee: Optional[float] = None
    electricity_rate: Optional[float] = None
    previous_meter: Optional[float] = None
    current_meter: Optional[float] = None
    electricity_usage: Optional[float] = None
    electricity_fee: Optional[float] = None
    total_amount: Optional[float] = None
    account_last_five: Optional[str] = None
    status: str
    created_at: Optional[str] = None
    updated_at: Optional[str] = None


class PaymentStatsOut(BaseModel):
    total_payments: int
    pending_payments: int
    confirmed_payments: int
    total_amount: float


class PaymentListOut(BaseModel):
    success: bool = True
    payments: List[PaymentOut]


class PaymentSavedOut(BaseModel):
    success: bool = True
    message: str
    payment: PaymentOut


class PaymentPageOut(BaseModel):
    success: bool = True
    data: List[PaymentOut]
    pagination: PaginationOut
    statistics: PaymentStatsOut
