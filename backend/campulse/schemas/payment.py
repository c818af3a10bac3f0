"""
Payment gateway request/response schemas
"""

from pydantic import BaseModel, Field
from typing import Optional, List, Dict, Any
from .transaction import RequiredStr


class PaymentInitRequest(BaseModel):
    amount: int = Field(..., gt=0, description="Amount in kobo")
    email: str = Field(..., min_length=3)
    callback_url: Optional[str] = None
    metadata: Dict[str, Any] = Field(default_factory=dict)


class PaymentSessionResponse(BaseModel):
    authorization_url: str
    reference: str
    access_code: Optional[str] = None


class PaymentInitResponse(BaseModel):
    data: PaymentSessionResponse


class RecipientCreate(BaseModel):
    user_id: RequiredStr
    bank_code: RequiredStr
    account_number: RequiredStr
    account_name: RequiredStr


class RecipientResponse(BaseModel):
    ok: bool = True
    recipient_code: str


class Bank(BaseModel):
    name: str
    code: str


class BankListResponse(BaseModel):
    data: List[Bank]
