from datetime import datetime, timedelta, timezone

import pytest

from campulse.core.exceptions import GatewayError
from campulse.models.cart import CartItem
from campulse.models.transaction import TransactionStatus
from campulse.services.reconciliation import reconcile_stale_payments
from conftest import BUYER_ID


@pytest.fixture
def stale(make_transaction):
    created_at = datetime.now(timezone.utc) - timedelta(hours=2)

    def _make(reference=None):
        return make_transaction(
            status=TransactionStatus.PENDING_PAYMENT,
            reference=reference,
            created_at=created_at,
        )

    return _make


def test_paid_session_moves_to_pending(escrow, gateway, db_session, stale, make_product, add_to_cart):
    gateway.verify_transaction.return_value = {"status": "success", "metadata": {"cart_tx_ids": [], "buyer_id": BUYER_ID}}
    add_to_cart(make_product())
    transaction = stale(reference="ref_paid")

    summary = reconcile_stale_payments(escrow)

    gateway.verify_transaction.assert_called_once_with("ref_paid")
    assert summary == {"checked": 1, "paid": 1, "cancelled": 0, "unchanged": 0, "errors": 0}
    assert escrow.store.get(transaction.id).status == TransactionStatus.PENDING
    assert db_session.query(CartItem).filter(CartItem.user_id == BUYER_ID).count() == 0


def test_failed_and_sessionless_rows_are_cancelled(escrow, gateway, stale):
    gateway.verify_transaction.return_value = {"status": "abandoned"}
    abandoned = stale(reference="ref_abandoned")
    no_session = stale()

    summary = reconcile_stale_payments(escrow)

    assert summary["cancelled"] == 2
    assert escrow.store.get(abandoned.id).status == TransactionStatus.CANCELLED
    assert escrow.store.get(no_session.id).status == TransactionStatus.CANCELLED
    gateway.verify_transaction.assert_called_once_with("ref_abandoned")


def test_ongoing_session_is_left_alone(escrow, gateway, stale):
    gateway.verify_transaction.return_value = {"status": "ongoing"}
    transaction = stale(reference="ref_ongoing")

    summary = reconcile_stale_payments(escrow)

    assert summary["unchanged"] == 1
    assert escrow.store.get(transaction.id).status == TransactionStatus.PENDING_PAYMENT


def test_recent_and_settled_rows_are_skipped(escrow, gateway, make_transaction):
    make_transaction(status=TransactionStatus.PENDING_PAYMENT, reference="ref_new")
    make_transaction(status=TransactionStatus.PENDING, created_at=datetime.now(timezone.utc) - timedelta(days=1))

    summary = reconcile_stale_payments(escrow)

    assert summary["checked"] == 0
    gateway.verify_transaction.assert_not_called()


def test_gateway_error_on_one_row_does_not_stop_the_sweep(escrow, gateway, stale):
    broken = stale(reference="ref_broken")
    paid = stale(reference="ref_paid")

    def verify(reference):
        if reference == "ref_broken":
            raise GatewayError("Could not verify payment status", status_code=502)
        return {"status": "success"}

    gateway.verify_transaction.side_effect = verify

    summary = reconcile_stale_payments(escrow)

    assert summary["errors"] == 1
    assert summary["paid"] == 1
    assert escrow.store.get(broken.id).status == TransactionStatus.PENDING_PAYMENT
    assert escrow.store.get(paid.id).status == TransactionStatus.PENDING


def test_single_checkout_recovery_keeps_the_cart(escrow, gateway, db_session, stale, make_product, add_to_cart):
    gateway.verify_transaction.return_value = {"status": "success", "metadata": {"transaction_id": "tx"}}
    add_to_cart(make_product())
    stale(reference="ref_single")

    summary = reconcile_stale_payments(escrow)

    assert summary["paid"] == 1
    assert db_session.query(CartItem).count() == 1
