"""
FastAPI dependencies that assemble the escrow components per request
"""

import hmac
from typing import Optional

from fastapi import Depends, Header
from sqlalchemy.orm import Session

from .config import Settings, get_settings
from .core.exceptions import AuthorizationError
from .database import get_db
from .services.checkout import CheckoutService
from .services.escrow import EscrowService
from .services.recipients import RecipientService
from .services.webhooks import WebhookProcessor
from .utils.paystack import PaystackClient


def get_paystack_client(settings: Settings = Depends(get_settings)) -> PaystackClient:
    return PaystackClient(
        secret_key=settings.paystack_secret_key,
        base_url=settings.paystack_base_url,
        timeout=settings.paystack_timeout_seconds,
        currency=settings.currency,
    )


def get_escrow_service(
    db: Session = Depends(get_db),
    gateway: PaystackClient = Depends(get_paystack_client),
    settings: Settings = Depends(get_settings),
) -> EscrowService:
    return EscrowService(db, gateway, settings)


def get_webhook_processor(
    escrow: EscrowService = Depends(get_escrow_service),
    settings: Settings = Depends(get_settings),
) -> WebhookProcessor:
    return WebhookProcessor(escrow, settings.paystack_secret_key)


def get_checkout_service(
    db: Session = Depends(get_db),
    gateway: PaystackClient = Depends(get_paystack_client),
    settings: Settings = Depends(get_settings),
) -> CheckoutService:
    return CheckoutService(db, gateway, settings)


def get_recipient_service(
    db: Session = Depends(get_db),
    gateway: PaystackClient = Depends(get_paystack_client),
) -> RecipientService:
    return RecipientService(db, gateway)


def require_admin_key(
    x_admin_key: Optional[str] = Header(None),
    settings: Settings = Depends(get_settings),
) -> None:
    """Guard for internal endpoints; open when no admin key is configured"""
    if not settings.admin_api_key:
        return
    if not x_admin_key or not hmac.compare_digest(x_admin_key, settings.admin_api_key):
        raise AuthorizationError("Admin key required")
