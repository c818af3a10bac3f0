"""
User profile with payout details
"""

from sqlalchemy import Column, String
from .base import BaseModel


class Profile(BaseModel):
    __tablename__ = "profiles"

    email = Column(String(255), nullable=True, index=True)
    name = Column(String(200), nullable=True)

    # Payout recipient registered with Paystack
    paystack_recipient_code = Column(String(100), nullable=True)
    bank_name = Column(String(200), nullable=True)
    account_number = Column(String(20), nullable=True)
    account_name = Column(String(200), nullable=True)
