"""Account/role resolver: maps verified token claims to the account and its role profile."""
from dataclasses import dataclass

from sqlalchemy.orm import Session

from marketplace.database import latest
from marketplace.models.account import Account, Role
from marketplace.models.customer import Customer
from marketplace.models.merchant import Merchant
from marketplace.services.tokens import TokenClaims, TrustLevel


class UnknownIdentity(Exception):
    """Claims reference an account or role profile that does not exist."""


@dataclass(frozen=True)
class AuthenticatedIdentity:
    role: Role
    trust_level: TrustLevel
    account_uuid: str
    merchant_uuid: str | None = None
    customer_id: str | None = None

    @property
    def is_partial(self) -> bool:
        return self.trust_level == TrustLevel.partial


def _resolve_merchant(db: Session, claims: TokenClaims) -> AuthenticatedIdentity:
    if claims.merchant_uuid:
        merchant = latest(db, Merchant, uuid=claims.merchant_uuid)
        if merchant is not None and merchant.account_uuid != claims.account_uuid:
            merchant = None
    else:
        merchant = latest(db, Merchant, account_uuid=claims.account_uuid)
    if merchant is None:
        raise UnknownIdentity("invalid merchant")
    return AuthenticatedIdentity(
        role=Role.merchant,
        trust_level=claims.trust_level,
        account_uuid=claims.account_uuid,
        merchant_uuid=merchant.uuid,
    )


def _resolve_customer(db: Session, claims: TokenClaims) -> AuthenticatedIdentity:
    customer = latest(db, Customer, account_uuid=claims.account_uuid)
    if customer is None:
        raise UnknownIdentity("invalid customer")
    return AuthenticatedIdentity(
        role=Role.customer,
        trust_level=claims.trust_level,
        account_uuid=customer.account_uuid,
        customer_id=customer.customer_id,
    )


def _resolve_admin(db: Session, claims: TokenClaims) -> AuthenticatedIdentity:
    account = latest(db, Account, uuid=claims.account_uuid)
    if account is None or account.role != Role.admin:
        raise UnknownIdentity("invalid admin")
    return AuthenticatedIdentity(role=Role.admin, trust_level=claims.trust_level, account_uuid=account.uuid)


_RESOLVERS = {
    Role.merchant: _resolve_merchant,
    Role.customer: _resolve_customer,
    Role.admin: _resolve_admin,
}


def resolve_identity(db: Session, claims: TokenClaims) -> AuthenticatedIdentity:
    return _RESOLVERS[claims.role](db, claims)
