"""
Paystack webhook processing
"""

import json
from dataclasses import dataclass
from typing import Optional, Union

from pydantic import ValidationError

from ..core.exceptions import InputValidationError, SignatureError
from ..core.logging import get_logger
from ..schemas.webhook import CHARGE_SUCCESS, ChargeData, WebhookEnvelope
from ..utils.signature import verify_signature
from .escrow import EscrowService

logger = get_logger(__name__)


@dataclass
class WebhookResult:
    event: str
    handled: bool
    transactions_updated: int = 0
    cart_cleared: bool = False


class WebhookProcessor:
    def __init__(self, escrow: EscrowService, secret: str):
        self.escrow = escrow
        self.secret = secret

    def process(self, raw_body: Union[str, bytes], signature: Optional[str]) -> WebhookResult:
        """
        Verify and apply one webhook delivery.

        Unknown events are acknowledged without side effects so Paystack
        stops redelivering them. Store failures propagate so it does retry.
        """
        if not verify_signature(raw_body, signature, self.secret):
            logger.warning("Rejected webhook with invalid signature", extra={"event": "webhook_rejected"})
            raise SignatureError("Invalid signature")

        try:
            envelope = WebhookEnvelope.model_validate(json.loads(raw_body))
        except (ValueError, ValidationError) as e:
            raise InputValidationError(f"Malformed webhook payload: {e}")

        # Other event types are acknowledged whatever shape their data has
        if envelope.event != CHARGE_SUCCESS:
            logger.info(f"Ignoring webhook event {envelope.event}")
            return WebhookResult(event=envelope.event, handled=False)

        try:
            data = ChargeData.model_validate(envelope.data if isinstance(envelope.data, dict) else {})
        except ValidationError as e:
            raise InputValidationError(f"Malformed charge data: {e}")

        metadata = data.metadata
        transaction_ids = metadata.transaction_ids() if metadata else []
        reference = data.reference
        if not reference or not transaction_ids:
            logger.warning(
                f"charge.success without reference or transaction ids (reference={reference})",
                extra={"event": "webhook_uncorrelated", "reference": reference},
            )
            return WebhookResult(event=envelope.event, handled=False)

        moved = self.escrow.mark_paid(transaction_ids, reference)

        cart_cleared = False
        # A replayed delivery moves nothing and must not wipe a cart the buyer refilled since
        if moved and metadata.buyer_id:
            self.escrow.store.clear_cart(metadata.buyer_id)
            cart_cleared = True

        return WebhookResult(
            event=envelope.event,
            handled=True,
            transactions_updated=moved,
            cart_cleared=cart_cleared,
        )
