"""
Marketplace listing (only the columns checkout needs)
"""

from sqlalchemy import Column, String, Numeric, ForeignKey
from .base import BaseModel


class Product(BaseModel):
    __tablename__ = "products"

    title = Column(String(200), nullable=False)
    price = Column(Numeric(12, 2), nullable=False)
    seller_id = Column(String(36), ForeignKey("profiles.id"), nullable=True, index=True)
