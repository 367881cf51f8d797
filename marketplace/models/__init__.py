"""
All SQLAlchemy models. Schema is the source of truth for new DBs.
Database.create_all() creates every table; no migration scripts needed for fresh installs.
"""
from marketplace.models.account import Account, Email, Role
from marketplace.models.credential import Credential, CredentialType
from marketplace.models.otp import OTPChallenge
from marketplace.models.merchant import Merchant, MerchantOnboardingState
from marketplace.models.customer import Customer
from marketplace.models.product import Product
from marketplace.models.checkout import Checkout, CheckoutItem, CheckoutStatus
from marketplace.models.order import Order
from marketplace.models.audit_log import AuditLog

__all__ = [
    "Account",
    "Email",
    "Role",
    "Credential",
    "CredentialType",
    "OTPChallenge",
    "Merchant",
    "MerchantOnboardingState",
    "Customer",
    "Product",
    "Checkout",
    "CheckoutItem",
    "CheckoutStatus",
    "Order",
    "AuditLog",
]
