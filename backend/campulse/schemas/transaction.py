"""
Transaction schemas
"""

from pydantic import BaseModel, BeforeValidator, Field
from typing import Optional, List, Any, Dict
from typing_extensions import Annotated
from datetime import datetime
from ..models.transaction import TransactionStatus


def _required_text(value: Any) -> str:
    if not isinstance(value, str) or not value.strip():
        raise ValueError("must be a non-empty string")
    return value.strip()


# Non-empty string, surrounding whitespace removed
RequiredStr = Annotated[str, BeforeValidator(_required_text)]


class ConfirmationRequest(BaseModel):
    transaction_id: RequiredStr
    user_id: RequiredStr


class PayoutRequest(BaseModel):
    transaction_id: RequiredStr


class TransactionResponse(BaseModel):
    id: str
    buyer_id: str
    seller_id: str
    product_id: Optional[str] = None
    amount: float
    status: TransactionStatus
    buyer_confirmed: bool
    seller_confirmed: bool
    paystack_reference: Optional[str] = None
    platform_fee: Optional[float] = None
    payment_fee: Optional[float] = None
    released_at: Optional[datetime] = None
    created_at: datetime

    class Config:
        from_attributes = True


class TransactionSummary(BaseModel):
    """One row of a party's sales or purchases list"""
    id: str
    product_id: Optional[str] = None
    product_title: str
    price: Optional[float] = None
    amount: float
    counterparty_id: str
    counterparty_name: str
    status: TransactionStatus
    buyer_confirmed: bool
    seller_confirmed: bool
    created_at: Optional[datetime] = None


class TransactionListResponse(BaseModel):
    transactions: List[TransactionSummary]
    completed_count: int


class ConfirmationResponse(BaseModel):
    ok: bool = True
    transaction: TransactionResponse
    payout_error: Optional[str] = None


class PayoutResponse(BaseModel):
    ok: bool = True
    transfer: Dict[str, Any]
    transaction: TransactionResponse


class CheckoutSingleRequest(BaseModel):
    buyer_id: RequiredStr
    product_id: RequiredStr
    email: RequiredStr
    callback_url: Optional[str] = None


class CheckoutCartRequest(BaseModel):
    buyer_id: RequiredStr
    email: RequiredStr
    callback_url: Optional[str] = None


class CheckoutResponse(BaseModel):
    authorization_url: str
    reference: str
    amount_subunits: int = Field(..., gt=0)
    transactions: List[TransactionResponse]
