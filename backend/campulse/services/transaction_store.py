"""
Durable record of escrow transactions.

All writes are column-level ``UPDATE`` statements, optionally guarded on the
current status (and other column values). A guard that does not match
updates nothing, which is how concurrent or replayed requests are made safe
without application locks.
"""

from datetime import datetime
from decimal import Decimal
from typing import Any, Dict, Iterable, List, Optional

from sqlalchemy import func
from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.orm import Session, joinedload

from ..core.exceptions import InputValidationError, StoreError
from ..core.logging import get_logger
from ..models.cart import CartItem
from ..models.transaction import Transaction, TransactionStatus

logger = get_logger(__name__)

# Set at creation and never patched afterwards
IMMUTABLE_FIELDS = frozenset({"id", "buyer_id", "seller_id", "amount", "created_at"})
PARTY_ROLES = ("buyer", "seller")


class TransactionStore:
    def __init__(self, db: Session):
        self.db = db

    def _commit(self, action: str) -> None:
        try:
            self.db.commit()
        except SQLAlchemyError as e:
            self.db.rollback()
            logger.error(f"Transaction store {action} failed: {e}")
            raise StoreError(f"Transaction store {action} failed")

    @staticmethod
    def _check_patch(patch: Dict[str, Any]) -> None:
        if not patch:
            raise InputValidationError("Empty update")
        touched = IMMUTABLE_FIELDS.intersection(patch)
        if touched:
            raise InputValidationError(f"Fields cannot be changed: {', '.join(sorted(touched))}")

    def get(self, transaction_id: str) -> Optional[Transaction]:
        try:
            # populate_existing so a re-fetch reflects updates made by other sessions
            return (
                self.db.query(Transaction)
                .populate_existing()
                .filter(Transaction.id == transaction_id)
                .first()
            )
        except SQLAlchemyError as e:
            self.db.rollback()
            logger.error(f"Fetch transaction {transaction_id} failed: {e}")
            raise StoreError("Fetch transaction failed")

    def create(
        self,
        buyer_id: str,
        seller_id: str,
        amount: Decimal,
        product_id: Optional[str] = None,
    ) -> Transaction:
        if not seller_id:
            raise InputValidationError("Transaction requires a seller")
        if amount is None or Decimal(amount) <= 0:
            raise InputValidationError("Transaction amount must be greater than 0")

        transaction = Transaction(
            buyer_id=buyer_id,
            seller_id=seller_id,
            product_id=product_id,
            amount=Decimal(amount),
            status=TransactionStatus.PENDING_PAYMENT,
            buyer_confirmed=False,
            seller_confirmed=False,
        )
        self.db.add(transaction)
        self._commit("insert")
        self.db.refresh(transaction)
        return transaction

    def update(
        self,
        transaction_id: str,
        patch: Dict[str, Any],
        expected_status: Optional[TransactionStatus] = None,
        expected: Optional[Dict[str, Any]] = None,
    ) -> Optional[Transaction]:
        """
        Apply ``patch`` to one row if the guards hold.

        Returns:
            The refreshed row, or None when no row matched the id and guards
        """
        self._check_patch(patch)
        query = self.db.query(Transaction).filter(Transaction.id == transaction_id)
        if expected_status is not None:
            query = query.filter(Transaction.status == expected_status)
        for column, value in (expected or {}).items():
            query = query.filter(getattr(Transaction, column) == value)

        try:
            matched = query.update(patch, synchronize_session=False)
        except SQLAlchemyError as e:
            self.db.rollback()
            logger.error(f"Update transaction {transaction_id} failed: {e}")
            raise StoreError("Update transaction failed")
        self._commit("update")

        if not matched:
            return None
        return self.get(transaction_id)

    def update_many(
        self,
        transaction_ids: Iterable[str],
        patch: Dict[str, Any],
        expected_status: Optional[TransactionStatus] = None,
    ) -> int:
        """Apply ``patch`` to every listed row that passes the guard; returns the count"""
        self._check_patch(patch)
        ids = list(dict.fromkeys(transaction_ids))
        if not ids:
            return 0
        query = self.db.query(Transaction).filter(Transaction.id.in_(ids))
        if expected_status is not None:
            query = query.filter(Transaction.status == expected_status)

        try:
            matched = query.update(patch, synchronize_session=False)
        except SQLAlchemyError as e:
            self.db.rollback()
            logger.error(f"Bulk update of {len(ids)} transactions failed: {e}")
            raise StoreError("Update transactions failed")
        self._commit("bulk update")
        return matched

    def find_stale_pending_payment(self, older_than: datetime) -> List[Transaction]:
        try:
            return (
                self.db.query(Transaction)
                .filter(
                    Transaction.status == TransactionStatus.PENDING_PAYMENT,
                    Transaction.created_at < older_than,
                )
                .order_by(Transaction.created_at)
                .all()
            )
        except SQLAlchemyError as e:
            self.db.rollback()
            logger.error(f"Stale transaction lookup failed: {e}")
            raise StoreError("Stale transaction lookup failed")

    @staticmethod
    def _party_column(role: str):
        if role not in PARTY_ROLES:
            raise InputValidationError(f"Unknown role {role}")
        return getattr(Transaction, f"{role}_id")

    def list_for_party(self, user_id: str, role: str, limit: int = 20) -> List[Transaction]:
        """A party's transactions, newest first, with product and both parties loaded"""
        column = self._party_column(role)
        try:
            return (
                self.db.query(Transaction)
                .populate_existing()
                .options(
                    joinedload(Transaction.product),
                    joinedload(Transaction.buyer),
                    joinedload(Transaction.seller),
                )
                .filter(column == user_id)
                .order_by(Transaction.created_at.desc(), Transaction.id.desc())
                .limit(limit)
                .all()
            )
        except SQLAlchemyError as e:
            self.db.rollback()
            logger.error(f"Listing {role} transactions for {user_id} failed: {e}")
            raise StoreError("List transactions failed")

    def count_completed_for_party(self, user_id: str, role: str) -> int:
        column = self._party_column(role)
        try:
            return (
                self.db.query(func.count(Transaction.id))
                .filter(column == user_id, Transaction.status == TransactionStatus.COMPLETED)
                .scalar()
            ) or 0
        except SQLAlchemyError as e:
            self.db.rollback()
            logger.error(f"Counting {role} transactions for {user_id} failed: {e}")
            raise StoreError("Count transactions failed")

    def clear_cart(self, user_id: str) -> int:
        try:
            deleted = (
                self.db.query(CartItem)
                .filter(CartItem.user_id == user_id)
                .delete(synchronize_session=False)
            )
        except SQLAlchemyError as e:
            self.db.rollback()
            logger.error(f"Clear cart for {user_id} failed: {e}")
            raise StoreError("Clear cart failed")
        self._commit("cart clear")
        return deleted
