from __future__ import annotations

from typing import Optional

from pydantic import BaseModel, ConfigDict, Field, field_validator


class BankInfoUpdate(BaseModel):
    model_config = ConfigDict(extra="ignore")

    bank_name: str = Field(min_length=1, max_length=100)
    branch_name: str = Field(min_length=1, max_length=100)
    account_name: str = Field(min_length=1, max_length=100)
    account_number: str = Field(min_length=1, max_length=64)

    @field_validator("bank_name", "branch_name", "account_name", "account_number")
    @classmethod
    def strip_value(cls, v: str) -> str:
        v = v.strip()
        if not v:
            raise ValueError("must not be blank")
        return v


class BankInfoOut(BaseModel):
    bank_name: Optional[str] = None
    branch_name: Optional[str] = None
    account_name: Optional[str] = None
    account_number: Optional[str] = None
    updated_at: Optional[str] = None


class BankInfoResponse(BaseModel):
    success: bool = True
    bankInfo: BankInfoOut


class BankInfoUpdatedOut(BankInfoResponse):
    message: str
