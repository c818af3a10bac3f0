"""
Transaction model for escrowed item sales
"""

import enum
from sqlalchemy import Column, String, Numeric, DateTime, Boolean, Enum, ForeignKey
from sqlalchemy.orm import relationship
from .base import BaseModel


class TransactionStatus(str, enum.Enum):
    PENDING_PAYMENT = "pending_payment"  # awaiting gateway charge confirmation
    PENDING = "pending"                  # paid, awaiting delivery confirmation
    COMPLETED = "completed"
    CANCELLED = "cancelled"
    REFUNDED = "refunded"

    @property
    def is_terminal(self) -> bool:
        return self in TERMINAL_STATUSES


TERMINAL_STATUSES = frozenset({
    TransactionStatus.COMPLETED,
    TransactionStatus.CANCELLED,
    TransactionStatus.REFUNDED,
})


class Transaction(BaseModel):
    __tablename__ = "transactions"

    # Parties (immutable after creation)
    buyer_id = Column(String(36), ForeignKey("profiles.id"), nullable=False, index=True)
    seller_id = Column(String(36), ForeignKey("profiles.id"), nullable=False, index=True)
    # Null for a cart group holding more than one product
    product_id = Column(String(36), ForeignKey("products.id"), nullable=True, index=True)

    # Gross sale amount in major units, set once
    amount = Column(Numeric(12, 2), nullable=False)

    status = Column(
        Enum(
            TransactionStatus,
            values_callable=lambda statuses: [s.value for s in statuses],
            native_enum=False,
            length=20,
        ),
        nullable=False,
        default=TransactionStatus.PENDING_PAYMENT,
        index=True,
    )

    # Delivery confirmations
    buyer_confirmed = Column(Boolean, default=False, nullable=False)
    seller_confirmed = Column(Boolean, default=False, nullable=False)

    # Gateway correlation
    paystack_reference = Column(String(100), nullable=True, index=True)

    # Set when funds are released
    platform_fee = Column(Numeric(12, 2), nullable=True)
    payment_fee = Column(Numeric(12, 2), nullable=True)
    released_at = Column(DateTime(timezone=True), nullable=True)

    buyer = relationship("Profile", foreign_keys=[buyer_id])
    seller = relationship("Profile", foreign_keys=[seller_id])
    product = relationship("Product")
