"""
Settle checkouts stuck in pending_payment.
Run this script periodically (e.g. from cron)
"""

import sys
from campulse.config import get_settings
from campulse.core.exceptions import EscrowError
from campulse.core.logging import setup_logging
from campulse.database import SessionLocal
from campulse.services.escrow import EscrowService
from campulse.services.reconciliation import reconcile_stale_payments
from campulse.utils.paystack import PaystackClient


def run_reconciliation():
    """Check stale pending_payment transactions against Paystack"""
    settings = get_settings()
    setup_logging(settings)

    print(f"Reconciling payments older than {settings.pending_payment_expiry_minutes} minutes...")

    db = SessionLocal()
    try:
        gateway = PaystackClient(
            secret_key=settings.paystack_secret_key,
            base_url=settings.paystack_base_url,
            timeout=settings.paystack_timeout_seconds,
            currency=settings.currency,
        )
        summary = reconcile_stale_payments(EscrowService(db, gateway, settings))
    except EscrowError as e:
        print(f"✗ Reconciliation failed: {e.message}")
        sys.exit(1)
    finally:
        db.close()

    print(f"✓ Checked {summary['checked']} transactions")
    print(f"✓ Marked paid: {summary['paid']}, cancelled: {summary['cancelled']}, unchanged: {summary['unchanged']}")
    if summary["errors"]:
        print(f"✗ {summary['errors']} transactions could not be reconciled, see logs")
        sys.exit(1)


if __name__ == "__main__":
    run_reconciliation()
