"""Checkout: PENDING until payment is confirmed, then COMPLETED."""
from sqlalchemy import Column, Integer, String, ForeignKey, DateTime, Enum as SQLEnum
from sqlalchemy.orm import relationship
from sqlalchemy.sql import func
from marketplace.database import Base
import enum


class CheckoutStatus(str, enum.Enum):
    pending = "PENDING"
    completed = "COMPLETED"


class Checkout(Base):
    __tablename__ = "checkouts"

    id = Column(Integer, primary_key=True, index=True)
    checkout_id = Column(String(32), unique=True, nullable=False, index=True)
    user_id = Column(String(32), nullable=False, index=True)  # Account.uuid
    total_amount = Column(Integer, nullable=False, default=0)
    status = Column(SQLEnum(CheckoutStatus), nullable=False, default=CheckoutStatus.pending)

    created_at = Column(DateTime(timezone=True), server_default=func.now())
    updated_at = Column(DateTime(timezone=True), onupdate=func.now())

    items = relationship("CheckoutItem", back_populates="checkout", cascade="all, delete-orphan")


class CheckoutItem(Base):
    __tablename__ = "checkout_items"

    id = Column(Integer, primary_key=True, index=True)
    checkout_pk = Column(Integer, ForeignKey("checkouts.id"), nullable=False, index=True)
    product_id = Column(Integer, ForeignKey("products.id"), nullable=False, index=True)
    quantity = Column(Integer, nullable=False)
    price = Column(Integer, nullable=False)
    total_price = Column(Integer, nullable=False)

    checkout = relationship("Checkout", back_populates="items")
    product = relationship("Product")
