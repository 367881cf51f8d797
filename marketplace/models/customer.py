"""Customer profile: one-to-one extension of a customer Account."""
from sqlalchemy import Column, Integer, String, DateTime
from sqlalchemy.sql import func
from marketplace.database import Base


class Customer(Base):
    __tablename__ = "customers"

    id = Column(Integer, primary_key=True, index=True)
    account_uuid = Column(String(32), unique=True, nullable=False, index=True)
    customer_id = Column(String(32), unique=True, nullable=False)
    referral_code = Column(String(32), nullable=True)
    profile_image_url = Column(String(500), nullable=True)

    created_at = Column(DateTime(timezone=True), server_default=func.now())
    updated_at = Column(DateTime(timezone=True), onupdate=func.now())
