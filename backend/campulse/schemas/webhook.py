"""
Paystack webhook payloads, validated after the signature check
"""

from pydantic import BaseModel, BeforeValidator, Field
from typing import Any, Optional, List
from typing_extensions import Annotated

CHARGE_SUCCESS = "charge.success"


def _dict_or_none(value: Any) -> Optional[dict]:
    # Paystack sends "" or 0 when a session was started without metadata
    return value if isinstance(value, dict) else None


def _list_or_empty(value: Any) -> list:
    return value if isinstance(value, list) else []


def _text_or_none(value: Any) -> Optional[str]:
    if isinstance(value, (str, int)) and not isinstance(value, bool):
        return str(value) or None
    return None


class ChargeMetadata(BaseModel):
    transaction_id: Annotated[Optional[str], BeforeValidator(_text_or_none)] = None
    cart_tx_ids: Annotated[List[Any], BeforeValidator(_list_or_empty)] = Field(default_factory=list)
    buyer_id: Annotated[Optional[str], BeforeValidator(_text_or_none)] = None

    class Config:
        extra = "ignore"

    def transaction_ids(self) -> List[str]:
        """Correlation key: the cart ids when present, otherwise the single id"""
        ids = [tx_id for tx_id in self.cart_tx_ids if isinstance(tx_id, str) and tx_id]
        if ids:
            return ids
        return [self.transaction_id] if self.transaction_id else []


class ChargeData(BaseModel):
    reference: Annotated[Optional[str], BeforeValidator(_text_or_none)] = None
    amount: Optional[int] = None
    metadata: Annotated[Optional[ChargeMetadata], BeforeValidator(_dict_or_none)] = None

    class Config:
        extra = "ignore"


class WebhookEnvelope(BaseModel):
    """Just the event type; ``data`` is only parsed for events we handle"""
    event: str
    data: Any = None

    class Config:
        extra = "ignore"
