"""Merchant profile: one-to-one extension of a merchant Account."""
from sqlalchemy import Column, Integer, String, Boolean, DateTime, Enum as SQLEnum
from sqlalchemy.sql import func
from marketplace.database import Base
import enum


class MerchantOnboardingState(str, enum.Enum):
    update_merchant_user_details = "UPDATE_MERCHANT_USER_DETAILS"
    verify_account = "VERIFY_ACCOUNT"
    update_merchant_details = "UPDATE_MERCHANT_DETAILS"
    connect_bank_account = "CONNECT_BANK_ACCOUNT"
    confirm_details = "CONFIRM_DETAILS"
    select_subscription_plan = "SELECT_SUBSCRIPTION_PLAN"
    agree_to_merchant_agreement = "AGREE_TO_MERCHANT_AGREEMENT"
    approval_pending = "APPROVAL_PENDING"
    approved = "APPROVED"


class Merchant(Base):
    __tablename__ = "merchants"

    id = Column(Integer, primary_key=True, index=True)
    uuid = Column(String(32), unique=True, nullable=False, index=True)
    account_uuid = Column(String(32), nullable=False, index=True)

    corporate_name = Column(String(255), nullable=True)
    doing_business_as = Column(String(255), nullable=True)
    website = Column(String(255), nullable=True)
    support_email = Column(String(255), nullable=True)
    support_phone_number = Column(String(20), nullable=True)

    application_current_status = Column(
        SQLEnum(MerchantOnboardingState), nullable=False, default=MerchantOnboardingState.verify_account
    )
    is_blocked = Column(Boolean, default=False, nullable=False)

    created_at = Column(DateTime(timezone=True), server_default=func.now())
    updated_at = Column(DateTime(timezone=True), onupdate=func.now())
