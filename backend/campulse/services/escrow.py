"""
Escrow state machine for marketplace purchases.

    pending_payment --charge.success--> pending --both parties confirm--> completed
           |                               |
           +--------- cancel / refund -----+--> cancelled / refunded

Every transition is a status-guarded store update, so replays and races
that lose the guard change nothing.
"""

import enum
from dataclasses import dataclass
from datetime import datetime, timezone
from typing import Any, Dict, Iterable, Optional

from sqlalchemy.orm import Session

from ..config import Settings
from ..core.exceptions import (
    AuthorizationError,
    EscrowError,
    InputValidationError,
    NotFoundError,
    StateConflictError,
)
from ..core.logging import get_logger
from ..models.profile import Profile
from ..models.transaction import Transaction, TransactionStatus
from ..utils.money import from_subunits, split_payout
from ..utils.paystack import PaystackClient
from .transaction_store import TransactionStore

logger = get_logger(__name__)


class Party(str, enum.Enum):
    BUYER = "buyer"
    SELLER = "seller"

    @property
    def id_field(self) -> str:
        return f"{self.value}_id"

    @property
    def flag_field(self) -> str:
        return f"{self.value}_confirmed"


@dataclass
class ConfirmationOutcome:
    transaction: Transaction
    payout: Optional["PayoutOutcome"] = None
    payout_error: Optional[str] = None


@dataclass
class PayoutOutcome:
    transaction: Transaction
    transfer: Dict[str, Any]
    platform_fee_subunits: int
    payout_subunits: int


class EscrowService:
    def __init__(self, db: Session, gateway: PaystackClient, settings: Settings, store: Optional[TransactionStore] = None):
        self.db = db
        self.gateway = gateway
        self.settings = settings
        self.store = store or TransactionStore(db)

    def _get_or_404(self, transaction_id: str) -> Transaction:
        transaction = self.store.get(transaction_id)
        if not transaction:
            raise NotFoundError("Transaction not found")
        return transaction

    def get_for_party(self, transaction_id: str, user_id: str) -> Transaction:
        """Fetch a transaction for its buyer or seller; anyone else gets 403"""
        transaction = self._get_or_404(transaction_id)
        if user_id not in (transaction.buyer_id, transaction.seller_id):
            raise AuthorizationError("Not authorized for this transaction")
        return transaction

    def compute_fees(self, amount) -> tuple:
        """(platform_fee, payout) in subunits for a gross amount in major units"""
        return split_payout(amount, self.settings.platform_fee_rate, self.settings.currency_subunits)

    def mark_paid(self, transaction_ids: Iterable[str], reference: str) -> int:
        """
        Move paid transactions from pending_payment to pending.

        Rows already past pending_payment are left untouched, so a retried
        webhook delivery is a no-op.
        """
        ids = [tx_id for tx_id in transaction_ids if tx_id]
        if not ids or not reference:
            raise InputValidationError("Missing transaction id or payment reference")

        moved = self.store.update_many(
            ids,
            {"status": TransactionStatus.PENDING, "paystack_reference": reference},
            expected_status=TransactionStatus.PENDING_PAYMENT,
        )
        logger.info(
            f"Payment {reference} moved {moved}/{len(ids)} transactions to pending",
            extra={"event": "payment_confirmed", "reference": reference, "transaction_ids": ids},
        )
        return moved

    def confirm(self, transaction_id: str, user_id: str, party: Party) -> ConfirmationOutcome:
        """
        Record one party's delivery confirmation.

        When this write is the one that makes both flags true, funds are
        released in the same call. A failed release leaves the confirmation
        in place and reports the error so the payout can be retried.
        """
        transaction = self._get_or_404(transaction_id)

        if getattr(transaction, party.id_field) != user_id:
            logger.warning(
                f"User {user_id} tried to confirm transaction {transaction_id} as {party.value}",
                extra={"event": "confirmation_forbidden", "transaction_id": transaction_id},
            )
            raise AuthorizationError("Not authorized for this transaction")

        if transaction.status != TransactionStatus.PENDING:
            raise StateConflictError(f"Invalid status {TransactionStatus(transaction.status).value}")

        if getattr(transaction, party.flag_field):
            raise StateConflictError(f"{party.value.capitalize()} has already confirmed this transaction")

        updated = self.store.update(
            transaction_id,
            {party.flag_field: True},
            expected_status=TransactionStatus.PENDING,
            expected={party.flag_field: False},
        )
        if updated is None:
            # Lost a race: the status moved or the flag was set meanwhile
            current = self._get_or_404(transaction_id)
            if current.status != TransactionStatus.PENDING:
                raise StateConflictError(f"Invalid status {TransactionStatus(current.status).value}")
            raise StateConflictError(f"{party.value.capitalize()} has already confirmed this transaction")

        logger.info(
            f"{party.value.capitalize()} confirmed transaction {transaction_id}",
            extra={"event": f"{party.value}_confirmed", "transaction_id": transaction_id},
        )

        outcome = ConfirmationOutcome(transaction=updated)
        if updated.buyer_confirmed and updated.seller_confirmed:
            try:
                outcome.payout = self.release_funds(transaction_id)
                outcome.transaction = outcome.payout.transaction
            except EscrowError as e:
                logger.warning(
                    f"Payout for transaction {transaction_id} deferred: {e.message}",
                    extra={"event": "payout_deferred", "transaction_id": transaction_id},
                )
                outcome.payout_error = e.message
        return outcome

    def release_funds(self, transaction_id: str) -> PayoutOutcome:
        """Pay the seller out of escrow once both parties have confirmed"""
        # Authoritative amount and seller, not whatever the caller last saw
        transaction = self._get_or_404(transaction_id)

        if transaction.status != TransactionStatus.PENDING:
            raise StateConflictError(f"Invalid status {TransactionStatus(transaction.status).value}")
        if not (transaction.buyer_confirmed and transaction.seller_confirmed):
            raise StateConflictError("Both buyer and seller must confirm before funds are released")

        seller = self.db.query(Profile).filter(Profile.id == transaction.seller_id).first()
        recipient_code = seller.paystack_recipient_code if seller else None
        if not recipient_code:
            raise InputValidationError("Seller recipient not set")

        platform_fee, payout = self.compute_fees(transaction.amount)
        if payout <= 0:
            raise InputValidationError("Invalid payout amount")

        transfer = self.gateway.transfer(
            amount_subunits=payout,
            recipient_code=recipient_code,
            reason=f"{self.settings.payout_reason_prefix} {transaction_id}",
            reference=f"payout_{transaction_id}",
        )

        updated = self.store.update(
            transaction_id,
            {
                "status": TransactionStatus.COMPLETED,
                "platform_fee": from_subunits(platform_fee, self.settings.currency_subunits),
                "payment_fee": 0,
                "released_at": datetime.now(timezone.utc),
            },
            expected_status=TransactionStatus.PENDING,
        )
        if updated is None:
            current = self._get_or_404(transaction_id)
            logger.error(
                f"Transfer sent for transaction {transaction_id} but status is now {current.status}",
                extra={"event": "payout_status_conflict", "transaction_id": transaction_id},
            )
            raise StateConflictError(f"Invalid status {TransactionStatus(current.status).value}")

        logger.info(
            f"Released {payout} kobo to seller {transaction.seller_id} for transaction {transaction_id}",
            extra={"event": "funds_released", "transaction_id": transaction_id, "platform_fee": platform_fee},
        )
        return PayoutOutcome(
            transaction=updated,
            transfer=transfer.raw,
            platform_fee_subunits=platform_fee,
            payout_subunits=payout,
        )

    def _close(self, transaction_id: str, status: TransactionStatus) -> Transaction:
        transaction = self._get_or_404(transaction_id)
        current = TransactionStatus(transaction.status)
        if current.is_terminal:
            raise StateConflictError(f"Invalid status {current.value}")

        updated = self.store.update(transaction_id, {"status": status}, expected_status=current)
        if updated is None:
            latest = self._get_or_404(transaction_id)
            raise StateConflictError(f"Invalid status {TransactionStatus(latest.status).value}")

        logger.info(
            f"Transaction {transaction_id} {current.value} -> {status.value}",
            extra={"event": f"transaction_{status.value}", "transaction_id": transaction_id},
        )
        return updated

    def cancel(self, transaction_id: str) -> Transaction:
        return self._close(transaction_id, TransactionStatus.CANCELLED)

    def refund(self, transaction_id: str) -> Transaction:
        return self._close(transaction_id, TransactionStatus.REFUNDED)
