"""
Checkout: create pending_payment transactions and open a payment session
"""

from collections import OrderedDict
from dataclasses import dataclass
from decimal import Decimal
from typing import Any, Dict, List, Optional

from sqlalchemy.orm import Session

from ..config import Settings
from ..core.exceptions import InputValidationError, NotFoundError
from ..core.logging import get_logger
from ..models.cart import CartItem
from ..models.product import Product
from ..models.transaction import Transaction, TransactionStatus
from ..utils.money import to_subunits
from ..utils.paystack import PaystackClient
from .transaction_store import TransactionStore

logger = get_logger(__name__)


@dataclass
class CheckoutResult:
    authorization_url: str
    reference: str
    amount_subunits: int
    transactions: List[Transaction]


class CheckoutService:
    def __init__(self, db: Session, gateway: PaystackClient, settings: Settings, store: Optional[TransactionStore] = None):
        self.db = db
        self.gateway = gateway
        self.settings = settings
        self.store = store or TransactionStore(db)

    def checkout_single(self, buyer_id: str, product_id: str, email: str, callback_url: Optional[str] = None) -> CheckoutResult:
        """Buy one listing"""
        product = self.db.query(Product).filter(Product.id == product_id).first()
        if not product:
            raise NotFoundError("Product not found")
        if not product.seller_id:
            raise InputValidationError("Product unavailable")
        if product.seller_id == buyer_id:
            raise InputValidationError("Cannot buy your own listing")

        transaction = self.store.create(
            buyer_id=buyer_id,
            seller_id=product.seller_id,
            amount=product.price,
            product_id=product.id,
        )
        metadata = {
            "transaction_id": transaction.id,
            "product_id": product.id,
            "seller_id": product.seller_id,
            "buyer_id": buyer_id,
        }
        return self._start_payment([transaction], email, metadata, callback_url)

    def checkout_cart(self, buyer_id: str, email: str, callback_url: Optional[str] = None) -> CheckoutResult:
        """
        Check out the buyer's whole cart.

        Items are grouped by seller and each seller gets one transaction, so
        every payout and confirmation concerns a single seller. One payment
        session covers all of them; the webhook clears the cart once paid.
        """
        items = self.db.query(CartItem).filter(CartItem.user_id == buyer_id).all()

        groups: "OrderedDict[str, Dict[str, Any]]" = OrderedDict()
        for item in items:
            product = item.product
            if not product or not product.seller_id:
                logger.info(f"Skipping cart item {item.id}: product missing or has no seller")
                continue
            if product.seller_id == buyer_id:
                raise InputValidationError("Cannot buy your own listing")
            group = groups.setdefault(product.seller_id, {"amount": Decimal("0"), "products": set()})
            group["amount"] += Decimal(product.price) * int(item.quantity or 1)
            group["products"].add(product.id)

        if not groups:
            raise InputValidationError("No valid items to checkout")

        transactions = []
        for seller_id, group in groups.items():
            products = group["products"]
            transactions.append(self.store.create(
                buyer_id=buyer_id,
                seller_id=seller_id,
                amount=group["amount"],
                product_id=next(iter(products)) if len(products) == 1 else None,
            ))

        metadata = {
            "cart_tx_ids": [t.id for t in transactions],
            "buyer_id": buyer_id,
        }
        return self._start_payment(transactions, email, metadata, callback_url)

    def _start_payment(
        self,
        transactions: List[Transaction],
        email: str,
        metadata: Dict[str, Any],
        callback_url: Optional[str],
    ) -> CheckoutResult:
        subunits = self.settings.currency_subunits
        amount_subunits = sum(to_subunits(t.amount, subunits) for t in transactions)

        # If this fails the rows stay in pending_payment without a reference;
        # reconciliation cancels them once they expire.
        session = self.gateway.initialize_session(
            amount_subunits=amount_subunits,
            email=email,
            metadata=metadata,
            callback_url=callback_url,
        )

        stored = []
        for transaction in transactions:
            updated = self.store.update(
                transaction.id,
                {"paystack_reference": session.reference},
                expected_status=TransactionStatus.PENDING_PAYMENT,
            )
            # The webhook may already have stored the reference and moved the row on
            stored.append(updated or self.store.get(transaction.id))

        logger.info(
            f"Checkout of {len(stored)} transaction(s) started with reference {session.reference}",
            extra={"event": "checkout_started", "reference": session.reference},
        )
        return CheckoutResult(
            authorization_url=session.authorization_url,
            reference=session.reference,
            amount_subunits=amount_subunits,
            transactions=stored,
        )
