import json
from decimal import Decimal
from unittest.mock import Mock

import pytest
from fastapi.testclient import TestClient
from sqlalchemy import create_engine
from sqlalchemy.orm import sessionmaker
from sqlalchemy.pool import StaticPool

from campulse.config import Settings, get_settings
from campulse.database import get_db
from campulse.dependencies import get_paystack_client
from campulse.main import app
from campulse.models.base import Base
from campulse.models.cart import CartItem
from campulse.models.product import Product
from campulse.models.profile import Profile
from campulse.models.transaction import Transaction, TransactionStatus
from campulse.services.escrow import EscrowService
from campulse.utils.paystack import InitializedSession, PaystackClient, RecipientResult, TransferResult
from campulse.utils.signature import compute_signature

WEBHOOK_SECRET = "sk_test_webhook_secret"

BUYER_ID = "11111111-1111-1111-1111-111111111111"
SELLER_ID = "22222222-2222-2222-2222-222222222222"
OTHER_SELLER_ID = "33333333-3333-3333-3333-333333333333"
STRANGER_ID = "44444444-4444-4444-4444-444444444444"


def pytest_configure(config):
    config.addinivalue_line("markers", "payment: mark test as payment-related")


@pytest.fixture
def settings():
    return Settings(_env_file=None, paystack_secret_key=WEBHOOK_SECRET, log_to_console=False)


@pytest.fixture
def db_session():
    engine = create_engine(
        "sqlite://",
        connect_args={"check_same_thread": False},
        poolclass=StaticPool,
    )
    Base.metadata.create_all(bind=engine)
    TestingSession = sessionmaker(autocommit=False, autoflush=False, bind=engine)
    session = TestingSession()
    try:
        yield session
    finally:
        session.close()
        Base.metadata.drop_all(bind=engine)
        engine.dispose()


@pytest.fixture
def gateway():
    """Paystack stand-in; every call succeeds unless a test says otherwise"""
    gateway = Mock(spec=PaystackClient)
    gateway.transfer.return_value = TransferResult(
        status="pending",
        raw={"status": True, "message": "Transfer has been queued", "data": {"status": "pending"}},
    )
    gateway.initialize_session.return_value = InitializedSession(
        authorization_url="https://checkout.paystack.com/abc123",
        reference="ref_abc123",
        access_code="abc123",
    )
    gateway.create_recipient.return_value = RecipientResult(
        recipient_code="RCP_seller001",
        bank_name="Access Bank",
    )
    gateway.list_banks.return_value = []
    gateway.verify_transaction.return_value = {"status": "success"}
    return gateway


@pytest.fixture
def escrow(db_session, gateway, settings):
    return EscrowService(db_session, gateway, settings)


@pytest.fixture
def client(db_session, gateway, settings):
    def override_get_db():
        yield db_session

    app.dependency_overrides[get_db] = override_get_db
    app.dependency_overrides[get_settings] = lambda: settings
    app.dependency_overrides[get_paystack_client] = lambda: gateway
    try:
        yield TestClient(app)
    finally:
        app.dependency_overrides.clear()


@pytest.fixture
def parties(db_session):
    """Buyer, and a seller with a payout recipient"""
    buyer = Profile(id=BUYER_ID, email="buyer@campus.edu", name="Ada Buyer")
    seller = Profile(
        id=SELLER_ID,
        email="seller@campus.edu",
        name="Sola Seller",
        paystack_recipient_code="RCP_seller001",
    )
    other = Profile(id=OTHER_SELLER_ID, email="other@campus.edu", name="Other Seller")
    db_session.add_all([buyer, seller, other])
    db_session.commit()
    return buyer, seller, other


@pytest.fixture
def make_transaction(db_session, parties):
    def _make(
        status=TransactionStatus.PENDING,
        amount="10000.00",
        buyer_confirmed=False,
        seller_confirmed=False,
        seller_id=SELLER_ID,
        reference=None,
        **extra,
    ):
        transaction = Transaction(
            buyer_id=BUYER_ID,
            seller_id=seller_id,
            amount=Decimal(amount),
            status=status,
            buyer_confirmed=buyer_confirmed,
            seller_confirmed=seller_confirmed,
            paystack_reference=reference,
            **extra,
        )
        db_session.add(transaction)
        db_session.commit()
        db_session.refresh(transaction)
        return transaction

    return _make


@pytest.fixture
def make_product(db_session, parties):
    def _make(title="Desk lamp", price="2500.00", seller_id=SELLER_ID):
        product = Product(title=title, price=Decimal(price), seller_id=seller_id)
        db_session.add(product)
        db_session.commit()
        db_session.refresh(product)
        return product

    return _make


@pytest.fixture
def add_to_cart(db_session):
    def _add(product, quantity=1, user_id=BUYER_ID):
        item = CartItem(user_id=user_id, product_id=product.id, quantity=quantity)
        db_session.add(item)
        db_session.commit()
        return item

    return _add


def signed_webhook(payload, secret=WEBHOOK_SECRET):
    """Serialize a payload and sign the exact bytes that will be sent"""
    body = json.dumps(payload).encode("utf-8")
    return body, {"x-paystack-signature": compute_signature(body, secret), "Content-Type": "application/json"}
