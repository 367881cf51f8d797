"""Accounts: identity root for customers, merchants and admins."""
from sqlalchemy import Column, Integer, String, Boolean, ForeignKey, DateTime, Enum as SQLEnum, UniqueConstraint
from sqlalchemy.orm import relationship
from sqlalchemy.sql import func
from marketplace.database import Base
import enum


class Role(str, enum.Enum):
    """Closed set of account roles; fixed at account creation."""
    admin = "admin"
    merchant = "merchant"
    customer = "customer"


class Email(Base):
    __tablename__ = "emails"

    id = Column(Integer, primary_key=True, index=True)
    email = Column(String(255), unique=True, nullable=False)
    domain = Column(String(255), nullable=False)
    is_verified = Column(Boolean, default=False, nullable=False)

    created_at = Column(DateTime(timezone=True), server_default=func.now())


class Account(Base):
    __tablename__ = "accounts"
    __table_args__ = (UniqueConstraint("phone_number", "primary_email_id", name="uq_accounts_phone_email"),)

    id = Column(Integer, primary_key=True, index=True)
    uuid = Column(String(32), unique=True, nullable=False, index=True)

    first_name = Column(String(100), nullable=True)
    last_name = Column(String(100), nullable=True)
    country_code = Column(String(8), nullable=False, default="+1")
    phone_number = Column(String(20), unique=True, nullable=True, index=True)
    phone_number_verified = Column(Boolean, default=False, nullable=False)

    primary_email_id = Column(Integer, ForeignKey("emails.id"), nullable=True)
    role = Column(SQLEnum(Role), nullable=False)

    created_at = Column(DateTime(timezone=True), server_default=func.now())
    updated_at = Column(DateTime(timezone=True), onupdate=func.now())

    primary_email = relationship("Email")
    credentials = relationship("Credential", back_populates="account")
