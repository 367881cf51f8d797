"""Credential store: peppered bcrypt password hashes and TOTP enrollment secrets."""
import base64
import hashlib
import hmac
import logging

import bcrypt
import pyotp
from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.orm import Session

from marketplace.database import latest
from marketplace.errors import ErrorCode, HashingError, StorageError
from marketplace.models.credential import Credential, CredentialType

log = logging.getLogger("uvicorn.error")


def _pwd_bytes(password: str, pepper: str) -> bytes:
    # Always 44 bytes, so bcrypt never truncates and the pepper always counts
    digest = hmac.new(pepper.encode("utf-8"), password.encode("utf-8"), hashlib.sha256).digest()
    return base64.b64encode(digest)


def hash_password(password: str, pepper: str, rounds: int = 10) -> str:
    try:
        return bcrypt.hashpw(_pwd_bytes(password, pepper), bcrypt.gensalt(rounds=rounds)).decode("utf-8")
    except (ValueError, TypeError) as e:
        log.error("Password hashing failed: %s", e)
        raise HashingError(ErrorCode.HASHING_FAILED)


def check_password(password: str, hashed: str, pepper: str) -> bool:
    try:
        return bcrypt.checkpw(_pwd_bytes(password, pepper), hashed.encode("utf-8"))
    except ValueError:
        # Malformed stored hash
        return False


def generate_otp_secret(account_label: str, issuer: str) -> tuple[str, str]:
    """Return (base32 secret, otpauth:// provisioning URI) for authenticator apps."""
    secret = pyotp.random_base32()
    uri = pyotp.TOTP(secret).provisioning_uri(name=account_label, issuer_name=issuer)
    return secret, uri


class CredentialStore:
    """Persists and checks per-account credentials. Never commits; the caller owns the transaction."""

    def __init__(self, db: Session, pepper: str, rounds: int = 10, issuer: str = "marketplace"):
        self.db = db
        self.pepper = pepper
        self.rounds = rounds
        self.issuer = issuer

    def _get(self, account_id: int, type_: CredentialType) -> Credential | None:
        try:
            return latest(self.db, Credential, account_id=account_id, type=type_)
        except SQLAlchemyError as e:
            log.error("Credential lookup failed for account_id=%s: %s", account_id, e)
            raise StorageError(ErrorCode.DATABASE_QUERY_FAILED)

    def hash_and_store(self, account_id: int, plaintext_password: str) -> None:
        hashed = hash_password(plaintext_password, self.pepper, self.rounds)
        cred = self._get(account_id, CredentialType.password)
        if cred is None:
            cred = Credential(account_id=account_id, type=CredentialType.password, secret=hashed)
            self.db.add(cred)
        else:
            cred.secret = hashed
        self.db.flush()

    def verify(self, account_id: int, plaintext_password: str) -> bool:
        cred = self._get(account_id, CredentialType.password)
        if cred is None:
            return False
        return check_password(plaintext_password, cred.secret, self.pepper)

    def issue_otp_secret(self, account_id: int, account_label: str) -> str:
        """Enroll a TOTP secret for the account (stored once; reused if already present)."""
        existing = self._get(account_id, CredentialType.otp_secret)
        if existing is not None:
            return existing.secret
        secret, _ = generate_otp_secret(account_label, self.issuer)
        self.db.add(Credential(account_id=account_id, type=CredentialType.otp_secret, secret=secret))
        self.db.flush()
        return secret

