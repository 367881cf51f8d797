"""Token service: signed, time-bound session tokens carrying role and trust level.

A token is partial (issued at registration, only good for the OTP round-trip) or
full (issued by login or after OTP verification). Claims are only read after the
HS256 signature has been checked.
"""
import enum
import logging
from dataclasses import dataclass
from datetime import datetime, timedelta

import jwt

from marketplace.models.account import Role
from marketplace.utils import utcnow

log = logging.getLogger("uvicorn.error")


class TrustLevel(str, enum.Enum):
    partial = "partial"
    full = "full"


class InvalidToken(Exception):
    """Bad signature, wrong issuer or malformed structure/claims."""


class TokenExpired(InvalidToken):
    """Signature is fine but exp is in the past."""


@dataclass(frozen=True)
class TokenClaims:
    role: Role
    trust_level: TrustLevel
    account_uuid: str
    merchant_uuid: str | None = None
    issuer: str | None = None
    expires_at: datetime | None = None

    @property
    def is_partial(self) -> bool:
        return self.trust_level == TrustLevel.partial


class TokenService:
    def __init__(self, secret_key: str, algorithm: str = "HS256", issuer: str = "marketplace"):
        if not secret_key:
            raise ValueError("jwt secret key must not be empty")
        self.secret_key = secret_key
        self.algorithm = algorithm
        self.issuer = issuer

    def issue(self, claims: TokenClaims, ttl: timedelta) -> str:
        expire = utcnow() + ttl
        payload = {
            "iss": self.issuer,
            "exp": expire,
            "role": claims.role.value,
            "trust_level": claims.trust_level.value,
            "account_uuid": claims.account_uuid,
        }
        if claims.merchant_uuid:
            payload["merchant_uuid"] = claims.merchant_uuid
        return jwt.encode(payload, self.secret_key, algorithm=self.algorithm)

    def parse(self, token: str, allow_expired: bool = False) -> TokenClaims:
        """Verify signature (always) and expiry (unless allow_expired) and return the claims."""
        if not token or not isinstance(token, str):
            raise InvalidToken("empty token")
        try:
            payload = jwt.decode(
                token.strip(),
                self.secret_key,
                algorithms=[self.algorithm],
                issuer=self.issuer,
                options={"require": ["exp", "iss"], "verify_exp": not allow_expired},
            )
        except jwt.ExpiredSignatureError as e:
            raise TokenExpired(str(e))
        except jwt.PyJWTError as e:
            raise InvalidToken(str(e))

        if allow_expired and isinstance(payload.get("exp"), (int, float)) and payload["exp"] <= utcnow().timestamp():
            log.info("Overriding expiration check for account_uuid=%s", payload.get("account_uuid"))
        try:
            return TokenClaims(
                role=Role(payload["role"]),
                trust_level=TrustLevel(payload["trust_level"]),
                account_uuid=str(payload["account_uuid"]),
                merchant_uuid=payload.get("merchant_uuid"),
                issuer=payload.get("iss"),
                expires_at=datetime.fromtimestamp(payload["exp"], tz=utcnow().tzinfo),
            )
        except (KeyError, ValueError, TypeError) as e:
            raise InvalidToken(f"malformed claims: {e}")
