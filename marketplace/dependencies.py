"""Shared dependencies: DB session, settings, services, and the auth gate."""
import logging

from fastapi import Depends, Request
from fastapi.security import HTTPBearer, HTTPAuthorizationCredentials
from sqlalchemy.orm import Session

from marketplace.config import Settings
from marketplace.database import get_db
from marketplace.errors import AuthError, ErrorCode, ForbiddenError
from marketplace.models.account import Role
from marketplace.services.identity import AuthenticatedIdentity, UnknownIdentity, resolve_identity
from marketplace.services.onboarding import OnboardingService
from marketplace.services.tokens import InvalidToken, TokenExpired, TokenService

log = logging.getLogger("uvicorn.error")

security = HTTPBearer(auto_error=False)

MIXED_TOKEN_MESSAGE = "cannot mix tokentype partial with full auth scoped token"


def get_app_settings(request: Request) -> Settings:
    return request.app.state.settings


def get_token_service(request: Request) -> TokenService:
    return request.app.state.token_service


def get_onboarding(
    db: Session = Depends(get_db),
    settings: Settings = Depends(get_app_settings),
    tokens: TokenService = Depends(get_token_service),
) -> OnboardingService:
    return OnboardingService(db, settings, tokens)


class AuthGate:
    """Validates the bearer token for one route group.

    allow_partial=True groups accept only partial tokens, allow_partial=False groups
    accept only full tokens; a token of the other kind is always rejected with 403.
    allow_expired waives the expiry check (never the signature check).
    """

    def __init__(self, allow_partial: bool, allow_expired: bool = False):
        self.allow_partial = allow_partial
        self.allow_expired = allow_expired

    def __call__(
        self,
        db: Session = Depends(get_db),
        tokens: TokenService = Depends(get_token_service),
        credentials: HTTPAuthorizationCredentials | None = Depends(security),
    ) -> AuthenticatedIdentity:
        if not credentials or not (credentials.credentials or "").strip():
            raise AuthError(ErrorCode.UNAUTHORIZED, "missing or invalid authorization header")
        try:
            claims = tokens.parse(credentials.credentials, allow_expired=self.allow_expired)
        except TokenExpired:
            raise AuthError(ErrorCode.UNAUTHORIZED, "invalid or expired token", data={"reason": "expired"})
        except InvalidToken as e:
            log.info("Rejected token: %s", e)
            raise AuthError(ErrorCode.UNAUTHORIZED, "invalid or expired token", data={"reason": "invalid"})

        if claims.is_partial != self.allow_partial:
            log.info("Rejected %s token on %s route", claims.trust_level.value, "partial" if self.allow_partial else "full")
            raise ForbiddenError(ErrorCode.UNAUTHORIZED, "invalid token", data={"description": MIXED_TOKEN_MESSAGE})

        try:
            return resolve_identity(db, claims)
        except UnknownIdentity as e:
            log.info("Dangling identity claim for account_uuid=%s: %s", claims.account_uuid, e)
            raise ForbiddenError(ErrorCode.UNAUTHORIZED, str(e))


require_full_token = AuthGate(allow_partial=False)
require_partial_token = AuthGate(allow_partial=True)
# verify_account only: the short partial TTL may have lapsed while the user typed the code
require_partial_token_any_age = AuthGate(allow_partial=True, allow_expired=True)


def require_merchant(identity: AuthenticatedIdentity = Depends(require_full_token)) -> AuthenticatedIdentity:
    if identity.role != Role.merchant:
        raise ForbiddenError(ErrorCode.UNAUTHORIZED, "Merchant role required")
    return identity


def require_customer(identity: AuthenticatedIdentity = Depends(require_full_token)) -> AuthenticatedIdentity:
    if identity.role != Role.customer:
        raise ForbiddenError(ErrorCode.UNAUTHORIZED, "Customer role required")
    return identity
