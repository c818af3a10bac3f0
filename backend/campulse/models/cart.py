"""
Cart items waiting for checkout
"""

from sqlalchemy import Column, String, Integer, ForeignKey
from sqlalchemy.orm import relationship
from .base import BaseModel


class CartItem(BaseModel):
    __tablename__ = "cart_items"

    user_id = Column(String(36), ForeignKey("profiles.id"), nullable=False, index=True)
    product_id = Column(String(36), ForeignKey("products.id"), nullable=False)
    quantity = Column(Integer, default=1, nullable=False)

    product = relationship("Product")
