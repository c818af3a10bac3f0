"""
Sweep for checkouts stuck in pending_payment
"""

from datetime import datetime, timedelta, timezone
from typing import Dict, Optional

from ..core.exceptions import EscrowError
from ..core.logging import get_logger
from ..schemas.webhook import ChargeMetadata
from .escrow import EscrowService

logger = get_logger(__name__)

PAID_STATUSES = {"success"}
FAILED_STATUSES = {"failed", "abandoned", "reversed"}


def reconcile_stale_payments(escrow: EscrowService, now: Optional[datetime] = None) -> Dict[str, int]:
    """
    Settle pending_payment transactions older than the configured expiry.

    Rows with a reference are checked against Paystack: paid sessions move to
    pending (the webhook was lost), failed or abandoned ones are cancelled.
    Rows without a reference never got a session and are cancelled.

    Returns:
        Counts per outcome
    """
    now = now or datetime.now(timezone.utc)
    cutoff = now - timedelta(minutes=escrow.settings.pending_payment_expiry_minutes)
    summary = {"checked": 0, "paid": 0, "cancelled": 0, "unchanged": 0, "errors": 0}

    for transaction in escrow.store.find_stale_pending_payment(cutoff):
        summary["checked"] += 1
        try:
            if not transaction.paystack_reference:
                escrow.cancel(transaction.id)
                summary["cancelled"] += 1
                continue

            data = escrow.gateway.verify_transaction(transaction.paystack_reference)
            status = str(data.get("status") or "").lower()
            if status in PAID_STATUSES:
                moved = escrow.mark_paid([transaction.id], transaction.paystack_reference)
                raw_metadata = data.get("metadata")
                metadata = ChargeMetadata.model_validate(raw_metadata) if isinstance(raw_metadata, dict) else None
                # Same side effect the lost webhook would have had: only cart checkouts carry buyer_id
                if moved and metadata and metadata.buyer_id:
                    escrow.store.clear_cart(metadata.buyer_id)
                summary["paid"] += moved
            elif status in FAILED_STATUSES:
                escrow.cancel(transaction.id)
                summary["cancelled"] += 1
            else:
                summary["unchanged"] += 1
        except EscrowError as e:
            # One bad row must not block the rest of the sweep
            logger.error(f"Reconciliation of transaction {transaction.id} failed: {e.message}")
            summary["errors"] += 1

    logger.info(f"Reconciliation finished: {summary}", extra={"event": "reconciliation_finished"})
    return summary
