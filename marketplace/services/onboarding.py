"""Onboarding and login: registers accounts, authenticates them and drives the OTP step-up.

Both customer and merchant registration follow one policy: account, password
credential, TOTP secret, role profile and the first OTP challenge are written in a
single transaction and the caller gets a partial token. A full token comes only
from OTP verification or from login.
"""
import logging
from datetime import timedelta

import jwt
from fastapi import Request
from sqlalchemy.exc import IntegrityError, SQLAlchemyError
from sqlalchemy.orm import Session

from marketplace.config import Settings
from marketplace.database import latest
from marketplace.errors import (
    APIError,
    AuthError,
    ConflictError,
    ErrorCode,
    ForbiddenError,
    StorageError,
    ValidationError,
)
from marketplace.models.account import Account, Email, Role
from marketplace.models.customer import Customer
from marketplace.models.merchant import Merchant, MerchantOnboardingState
from marketplace.schemas.auth import CustomerRegister, LoginRequest, MerchantRegister
from marketplace.services.audit_log import CATEGORY_FAILED_ATTEMPT, CATEGORY_STATUS_CHANGE, create_log
from marketplace.services.credentials import CredentialStore
from marketplace.services.identity import AuthenticatedIdentity
from marketplace.services.notifications import send_otp_sms
from marketplace.services.otp import (
    REASON_EXHAUSTED,
    REASON_EXPIRED,
    REASON_MISMATCH,
    REASON_NOT_FOUND,
    OTPChallengeManager,
)
from marketplace.services.tokens import TokenClaims, TokenService, TrustLevel
from marketplace.utils import generate_nano_id

log = logging.getLogger("uvicorn.error")

_OTP_FAILURE_MESSAGES = {
    REASON_NOT_FOUND: "No OTP was issued for this account",
    REASON_EXPIRED: "OTP expired",
    REASON_MISMATCH: "Invalid OTP",
    REASON_EXHAUSTED: "Too many invalid attempts. Request a new OTP.",
}


class OnboardingService:
    def __init__(self, db: Session, settings: Settings, tokens: TokenService):
        self.db = db
        self.settings = settings
        self.tokens = tokens
        self.credentials = CredentialStore(
            db, pepper=settings.password_pepper, rounds=settings.bcrypt_rounds, issuer=settings.jwt_issuer
        )
        self.otp = OTPChallengeManager(
            db, ttl_seconds=settings.otp_expire_seconds, max_attempts=settings.otp_max_attempts
        )

    # -- tokens --------------------------------------------------------------

    def _issue(self, claims: TokenClaims, minutes: int) -> str:
        try:
            return self.tokens.issue(claims, timedelta(minutes=minutes))
        except (jwt.PyJWTError, NotImplementedError, TypeError, ValueError) as e:
            log.error("Token generation failed for account_uuid=%s: %s", claims.account_uuid, e)
            raise APIError(ErrorCode.TOKEN_GENERATION_FAILED, status_code=500)

    def issue_partial_token(self, account: Account, merchant: Merchant | None = None) -> str:
        claims = TokenClaims(
            role=account.role,
            trust_level=TrustLevel.partial,
            account_uuid=account.uuid,
            merchant_uuid=merchant.uuid if merchant else None,
        )
        return self._issue(claims, self.settings.partial_token_expire_minutes)

    def issue_full_token(self, account: Account, minutes: int) -> str:
        merchant_uuid = None
        if account.role == Role.merchant:
            merchant = latest(self.db, Merchant, account_uuid=account.uuid)
            merchant_uuid = merchant.uuid if merchant else None
        claims = TokenClaims(
            role=account.role,
            trust_level=TrustLevel.full,
            account_uuid=account.uuid,
            merchant_uuid=merchant_uuid,
        )
        return self._issue(claims, minutes)

    # -- registration --------------------------------------------------------

    def _ensure_available(self, phone_number: str, email: str | None) -> None:
        if latest(self.db, Account, phone_number=phone_number) is not None:
            raise ConflictError(ErrorCode.USER_ALREADY_EXISTS)
        if email:
            email_row = latest(self.db, Email, email=email)
            if email_row is not None and latest(self.db, Account, primary_email_id=email_row.id) is not None:
                raise ConflictError(ErrorCode.USER_ALREADY_EXISTS)

    def _email_row(self, email: str | None) -> Email | None:
        if not email:
            return None
        row = latest(self.db, Email, email=email)
        if row is None:
            row = Email(email=email, domain=email.split("@")[-1].lower(), is_verified=False)
            self.db.add(row)
            self.db.flush()
        return row

    def _create_account(self, role: Role, phone_number: str, email: str | None, password: str, **names) -> Account:
        email_row = self._email_row(email)
        account = Account(
            uuid=generate_nano_id(12, "acc_"),
            role=role,
            phone_number=phone_number,
            primary_email_id=email_row.id if email_row else None,
            **names,
        )
        self.db.add(account)
        self.db.flush()
        self.credentials.hash_and_store(account.id, password)
        self.credentials.issue_otp_secret(account.id, phone_number or account.uuid)
        return account

    def _commit_registration(self) -> None:
        try:
            self.db.commit()
        except IntegrityError as e:
            self.db.rollback()
            log.warning("Registration conflict: %s", e.orig if hasattr(e, "orig") else e)
            raise ConflictError(ErrorCode.USER_ALREADY_EXISTS)
        except SQLAlchemyError:
            self.db.rollback()
            log.exception("Registration failed; transaction rolled back")
            raise StorageError(ErrorCode.DATABASE_CREATE_FAILED)

    def _abort_registration(self) -> None:
        self.db.rollback()
        log.exception("Registration failed; transaction rolled back")
        raise StorageError(ErrorCode.DATABASE_CREATE_FAILED)

    def register_customer(self, data: CustomerRegister) -> tuple[Account, str]:
        email = str(data.email) if data.email else None
        self._ensure_available(data.phone_number, email)
        try:
            account = self._create_account(
                Role.customer, data.phone_number, email, data.password,
                first_name=data.first_name, last_name=data.last_name,
            )
            self.db.add(Customer(account_uuid=account.uuid, customer_id=generate_nano_id(15, "C_")))
            code = self.otp.issue_challenge(account.uuid)
        except SQLAlchemyError:
            self._abort_registration()
        self._commit_registration()
        log.info("Customer registered account_uuid=%s", account.uuid)
        send_otp_sms(self.settings, account.phone_number, code, account.country_code)
        return account, self.issue_partial_token(account)

    def register_merchant(self, data: MerchantRegister) -> tuple[Account, Merchant, str]:
        email = str(data.email) if data.email else None
        self._ensure_available(data.phone_number, email)
        try:
            account = self._create_account(Role.merchant, data.phone_number, email, data.password)
            merchant = Merchant(
                uuid=generate_nano_id(15, "m_"),
                account_uuid=account.uuid,
                application_current_status=MerchantOnboardingState.verify_account,
            )
            self.db.add(merchant)
            code = self.otp.issue_challenge(account.uuid)
        except SQLAlchemyError:
            self._abort_registration()
        self._commit_registration()
        log.info("Merchant registered account_uuid=%s merchant_uuid=%s", account.uuid, merchant.uuid)
        send_otp_sms(self.settings, account.phone_number, code, account.country_code)
        return account, merchant, self.issue_partial_token(account, merchant)

    # -- login ---------------------------------------------------------------

    def _find_account(self, data: LoginRequest) -> Account | None:
        if data.email:
            email_row = latest(self.db, Email, email=str(data.email))
            if email_row is None:
                return None
            return latest(self.db, Account, primary_email_id=email_row.id)
        return latest(self.db, Account, phone_number=data.phone_number)

    def login(self, data: LoginRequest, request: Request | None = None) -> str:
        identifier = str(data.email) if data.email else data.phone_number
        account = self._find_account(data)
        if account is None:
            self._record_failed_login(identifier, None, "user_not_found", request)
            raise ValidationError(ErrorCode.USER_NOT_FOUND, "User does not exist")
        if not self.credentials.verify(account.id, data.password):
            self._record_failed_login(identifier, account.uuid, "invalid_password", request)
            raise AuthError(ErrorCode.INVALID_CREDENTIALS)
        return self.issue_full_token(account, self.settings.login_token_expire_minutes)

    def _record_failed_login(self, identifier: str, account_uuid: str | None, reason: str, request: Request | None) -> None:
        log.warning("Login failed for %s: %s", identifier, reason)
        create_log(
            self.db,
            CATEGORY_FAILED_ATTEMPT,
            "Login failed",
            f"Failed login attempt for {identifier}.",
            account_uuid=account_uuid,
            actor_identifier=identifier,
            request=request,
            meta={"reason": reason},
        )
        self.db.commit()

    # -- OTP step-up ---------------------------------------------------------

    def verify_otp(self, identity: AuthenticatedIdentity, code: str, request: Request | None = None) -> str:
        account = latest(self.db, Account, uuid=identity.account_uuid)
        if account is None:
            raise ForbiddenError(ErrorCode.USER_NOT_FOUND)

        result = self.otp.verify_challenge(account.uuid, code)
        if not result.ok:
            log.warning("OTP verification failed for account_uuid=%s: %s", account.uuid, result.reason)
            create_log(
                self.db,
                CATEGORY_FAILED_ATTEMPT,
                "OTP verification failed",
                f"OTP verification failed for account {account.uuid}: {result.reason}.",
                account_uuid=account.uuid,
                actor_identifier=account.phone_number,
                request=request,
                meta={"reason": result.reason, "attempts_left": result.attempts_left},
            )
            self.db.commit()
            raise ForbiddenError(
                ErrorCode.INVALID_OTP,
                _OTP_FAILURE_MESSAGES[result.reason],
                data={"reason": result.reason, "attempts_left": result.attempts_left},
            )

        account.phone_number_verified = True
        if account.role == Role.merchant:
            merchant = latest(self.db, Merchant, account_uuid=account.uuid)
            if merchant is not None and merchant.application_current_status == MerchantOnboardingState.verify_account:
                merchant.application_current_status = MerchantOnboardingState.update_merchant_details
        create_log(
            self.db,
            CATEGORY_STATUS_CHANGE,
            "Account verified",
            f"Account {account.uuid} verified by OTP.",
            account_uuid=account.uuid,
            actor_identifier=account.phone_number,
            request=request,
        )
        try:
            self.db.commit()
        except SQLAlchemyError:
            self.db.rollback()
            log.exception("Could not persist OTP verification for account_uuid=%s", account.uuid)
            raise StorageError(ErrorCode.DATABASE_UPDATE_FAILED)
        return self.issue_full_token(account, self.settings.verified_token_expire_minutes)

    def resend_otp(self, identity: AuthenticatedIdentity) -> int:
        account = latest(self.db, Account, uuid=identity.account_uuid)
        if account is None:
            raise ForbiddenError(ErrorCode.USER_NOT_FOUND)
        try:
            code = self.otp.issue_challenge(account.uuid)
            self.db.commit()
        except SQLAlchemyError:
            self.db.rollback()
            log.exception("Could not issue OTP for account_uuid=%s", account.uuid)
            raise StorageError(ErrorCode.DATABASE_CREATE_FAILED)
        send_otp_sms(self.settings, account.phone_number, code, account.country_code)
        return self.settings.otp_expire_seconds

    # -- password ------------------------------------------------------------

    def change_password(self, identity: AuthenticatedIdentity, current_password: str, new_password: str) -> None:
        account = latest(self.db, Account, uuid=identity.account_uuid)
        if account is None:
            raise ForbiddenError(ErrorCode.USER_NOT_FOUND)
        if not self.credentials.verify(account.id, current_password):
            raise AuthError(ErrorCode.INVALID_CREDENTIALS)
        try:
            self.credentials.hash_and_store(account.id, new_password)
            self.db.commit()
        except SQLAlchemyError:
            self.db.rollback()
            log.exception("Password update failed for account_uuid=%s", account.uuid)
            raise StorageError(ErrorCode.DATABASE_UPDATE_FAILED)
