"""Orders: created only when a checkout completes."""
from sqlalchemy import Column, Integer, String, ForeignKey, DateTime
from sqlalchemy.orm import relationship
from sqlalchemy.sql import func
from marketplace.database import Base


class Order(Base):
    __tablename__ = "orders"

    id = Column(Integer, primary_key=True, index=True)
    uuid = Column(String(32), unique=True, nullable=False, index=True)
    checkout_id = Column(Integer, ForeignKey("checkouts.id"), unique=True, nullable=False)
    user_id = Column(String(32), nullable=False, index=True)  # Account.uuid
    total_order_amount = Column(Integer, nullable=False)
    # Opaque external reference; not verified against any gateway
    payment_id = Column(String(255), nullable=False)

    created_at = Column(DateTime(timezone=True), server_default=func.now())

    checkout = relationship("Checkout")
