"""Short-lived numeric OTP challenges. Only the newest row per account is ever considered."""
from sqlalchemy import Column, Integer, String, DateTime
from sqlalchemy.sql import func
from marketplace.database import Base


class OTPChallenge(Base):
    __tablename__ = "otp_challenges"

    id = Column(Integer, primary_key=True, index=True)
    account_uuid = Column(String(32), nullable=False, index=True)
    code = Column(String(6), nullable=False)
    expires_at = Column(DateTime(timezone=True), nullable=False)
    failed_attempts = Column(Integer, nullable=False, default=0)

    created_at = Column(DateTime(timezone=True), server_default=func.now(), nullable=False)
