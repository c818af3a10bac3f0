from decimal import Decimal

from campulse.core.exceptions import GatewayError
from campulse.models.cart import CartItem
from campulse.models.product import Product
from campulse.models.transaction import Transaction, TransactionStatus
from conftest import BUYER_ID, OTHER_SELLER_ID, SELLER_ID, signed_webhook


def test_single_checkout_creates_transaction_and_session(client, gateway, db_session, make_product):
    product = make_product(price="2500.00")

    response = client.post("/api/checkout/single", json={
        "buyer_id": BUYER_ID,
        "product_id": product.id,
        "email": "buyer@campus.edu",
        "callback_url": "campulse://payment-complete",
    })

    assert response.status_code == 200
    body = response.json()
    assert body["authorization_url"] == "https://checkout.paystack.com/abc123"
    assert body["reference"] == "ref_abc123"
    assert body["amount_subunits"] == 250000

    [row] = body["transactions"]
    assert row["status"] == "pending_payment"
    assert row["seller_id"] == SELLER_ID
    assert row["product_id"] == product.id
    assert row["paystack_reference"] == "ref_abc123"

    gateway.initialize_session.assert_called_once_with(
        amount_subunits=250000,
        email="buyer@campus.edu",
        metadata={
            "transaction_id": row["id"],
            "product_id": product.id,
            "seller_id": SELLER_ID,
            "buyer_id": BUYER_ID,
        },
        callback_url="campulse://payment-complete",
    )


def test_single_checkout_unknown_product(client, parties):
    response = client.post("/api/checkout/single", json={
        "buyer_id": BUYER_ID, "product_id": "missing", "email": "buyer@campus.edu",
    })

    assert response.status_code == 404


def test_cannot_buy_own_listing(client, make_product):
    product = make_product(seller_id=BUYER_ID)

    response = client.post("/api/checkout/single", json={
        "buyer_id": BUYER_ID, "product_id": product.id, "email": "buyer@campus.edu",
    })

    assert response.status_code == 400
    assert response.json() == {"error": "Cannot buy your own listing"}


def test_cart_checkout_groups_by_seller(client, gateway, db_session, make_product, add_to_cart):
    lamp = make_product(title="Lamp", price="2500.00", seller_id=SELLER_ID)
    kettle = make_product(title="Kettle", price="4000.00", seller_id=SELLER_ID)
    textbook = make_product(title="Textbook", price="1500.50", seller_id=OTHER_SELLER_ID)
    add_to_cart(lamp, quantity=2)
    add_to_cart(kettle)
    add_to_cart(textbook)

    response = client.post("/api/checkout/cart", json={"buyer_id": BUYER_ID, "email": "buyer@campus.edu"})

    assert response.status_code == 200
    body = response.json()
    rows = {row["seller_id"]: row for row in body["transactions"]}
    assert set(rows) == {SELLER_ID, OTHER_SELLER_ID}

    assert rows[SELLER_ID]["amount"] == 9000.0
    assert rows[SELLER_ID]["product_id"] is None
    assert rows[OTHER_SELLER_ID]["amount"] == 1500.5
    assert rows[OTHER_SELLER_ID]["product_id"] == textbook.id
    assert body["amount_subunits"] == 1050050

    metadata = gateway.initialize_session.call_args.kwargs["metadata"]
    assert sorted(metadata["cart_tx_ids"]) == sorted(rows[s]["id"] for s in rows)
    assert metadata["buyer_id"] == BUYER_ID

    # The cart stays until the payment is confirmed
    assert db_session.query(CartItem).filter(CartItem.user_id == BUYER_ID).count() == 3


def test_cart_checkout_skips_items_without_seller(client, db_session, make_product, add_to_cart):
    orphan = Product(title="Orphan", price=Decimal("100.00"), seller_id=None)
    db_session.add(orphan)
    db_session.commit()
    add_to_cart(orphan)
    add_to_cart(make_product(price="300.00"))

    response = client.post("/api/checkout/cart", json={"buyer_id": BUYER_ID, "email": "buyer@campus.edu"})

    assert response.status_code == 200
    assert len(response.json()["transactions"]) == 1


def test_empty_cart_is_rejected(client, db_session, parties):
    response = client.post("/api/checkout/cart", json={"buyer_id": BUYER_ID, "email": "buyer@campus.edu"})

    assert response.status_code == 400
    assert response.json() == {"error": "No valid items to checkout"}
    assert db_session.query(Transaction).count() == 0


def test_gateway_failure_leaves_transaction_without_reference(client, gateway, db_session, make_product):
    gateway.initialize_session.side_effect = GatewayError("Paystack init failed")
    product = make_product()

    response = client.post("/api/checkout/single", json={
        "buyer_id": BUYER_ID, "product_id": product.id, "email": "buyer@campus.edu",
    })

    assert response.status_code == 400
    assert response.json() == {"error": "Paystack init failed"}
    transaction = db_session.query(Transaction).one()
    assert transaction.status == TransactionStatus.PENDING_PAYMENT
    assert transaction.paystack_reference is None


def test_checkout_then_webhook_then_confirmations(client, gateway, db_session, make_product, add_to_cart):
    add_to_cart(make_product(price="10000.00"))
    checkout = client.post("/api/checkout/cart", json={"buyer_id": BUYER_ID, "email": "buyer@campus.edu"}).json()
    [row] = checkout["transactions"]

    body, headers = signed_webhook({
        "event": "charge.success",
        "data": {
            "reference": checkout["reference"],
            "metadata": gateway.initialize_session.call_args.kwargs["metadata"],
        },
    })
    assert client.post("/api/paystack-webhook", content=body, headers=headers).status_code == 200
    assert db_session.query(CartItem).count() == 0

    client.post("/api/confirm-buyer", json={"transaction_id": row["id"], "user_id": BUYER_ID})
    final = client.post("/api/confirm-seller", json={"transaction_id": row["id"], "user_id": SELLER_ID}).json()

    assert final["transaction"]["status"] == "completed"
    assert final["transaction"]["platform_fee"] == 300.0
    gateway.transfer.assert_called_once()
    assert gateway.transfer.call_args.kwargs["amount_subunits"] == 970000


def test_raw_session_initiation(client, gateway):
    response = client.post("/api/paystack-init", json={
        "amount": 500000,
        "email": "buyer@campus.edu",
        "metadata": {"transaction_id": "tx1"},
    })

    assert response.status_code == 200
    assert response.json()["data"]["authorization_url"] == "https://checkout.paystack.com/abc123"
    gateway.initialize_session.assert_called_once_with(
        amount_subunits=500000,
        email="buyer@campus.edu",
        metadata={"transaction_id": "tx1"},
        callback_url=None,
    )


def test_raw_session_initiation_rejects_non_positive_amount(client, gateway):
    response = client.post("/api/paystack-init", json={"amount": 0, "email": "buyer@campus.edu"})

    assert response.status_code == 400
    gateway.initialize_session.assert_not_called()
