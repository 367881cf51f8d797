"""Per-account secrets: password hash and TOTP secret."""
from sqlalchemy import Column, Integer, String, ForeignKey, DateTime, Enum as SQLEnum, UniqueConstraint
from sqlalchemy.orm import relationship
from sqlalchemy.sql import func
from marketplace.database import Base
import enum


class CredentialType(str, enum.Enum):
    password = "password"
    otp_secret = "otp_secret"


class Credential(Base):
    __tablename__ = "credentials"
    __table_args__ = (UniqueConstraint("account_id", "type", name="uq_credentials_account_type"),)

    id = Column(Integer, primary_key=True, index=True)
    account_id = Column(Integer, ForeignKey("accounts.id"), nullable=False, index=True)
    type = Column(SQLEnum(CredentialType), nullable=False, default=CredentialType.password)
    # bcrypt hash for type=password, base32 secret for type=otp_secret
    secret = Column(String(255), nullable=False)

    created_at = Column(DateTime(timezone=True), server_default=func.now())
    updated_at = Column(DateTime(timezone=True), onupdate=func.now())

    account = relationship("Account", back_populates="credentials")
