from pydantic import BaseModel, ConfigDict, Field, HttpUrl, field_validator
from pydantic.alias_generators import to_camel
from datetime import datetime
from decimal import Decimal
from typing import Optional
from enum import Enum

from app.modules.loans.services import parse_approved_date


class LoanStateEnum(str, Enum):
    PROPOSED = "PROPOSED"
    APPROVED = "APPROVED"
    INVESTED = "INVESTED"
    DISBURSED = "DISBURSED"


class CommandModel(BaseModel):
    """Inbound commands accept camelCase (wire format) and snake_case names"""
    model_config = ConfigDict(alias_generator=to_camel, populate_by_name=True)


# ============ Commands ============

class LoanCreate(CommandModel):
    borrower_id: int
    principal_amount: Decimal = Field(..., gt=0, max_digits=15, decimal_places=2)
    rate: Decimal = Field(..., max_digits=7, decimal_places=4)
    roi: Decimal = Field(..., max_digits=7, decimal_places=4)
    agreement_link: HttpUrl


class LoanApprove(CommandModel):
    approval_proof: str = Field(..., min_length=1)
    approved_by: int
    approved_date: str

    @field_validator("approved_date")
    @classmethod
    def _parseable_date(cls, value: str) -> str:
        parse_approved_date(value)
        return value


class LoanInvest(CommandModel):
    investor_id: int
    amount: Decimal = Field(..., gt=0, max_digits=15, decimal_places=2)


class LoanDisburse(CommandModel):
    disbursement_proof: str = Field(..., min_length=1)
    disbursed_by: int


# ============ Responses ============

class LoanResponse(BaseModel):
    id: int
    borrower_id: int
    principal_amount: Decimal
    rate: Decimal
    roi: Decimal
    agreement_link: str
    state: LoanStateEnum
    invested_amount: Decimal
    approval_proof: Optional[str] = None
    approved_by: Optional[int] = None
    approved_at: Optional[datetime] = None
    disbursement_proof: Optional[str] = None
    disbursed_by: Optional[int] = None
    disbursed_at: Optional[datetime] = None
    created_at: Optional[datetime] = None
    updated_at: Optional[datetime] = None

    model_config = ConfigDict(from_attributes=True)

    @field_validator("state", mode="before")
    @classmethod
    def _state_value(cls, value):
        return getattr(value, "value", value)


class InvestmentResponse(BaseModel):
    id: int
    loan_id: int
    investor_id: int
    amount: Decimal
    created_at: Optional[datetime] = None

    model_config = ConfigDict(from_attributes=True)
