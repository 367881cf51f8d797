"""Profile of the authenticated account."""
from fastapi import APIRouter, Depends
from sqlalchemy.orm import Session

from marketplace.database import get_db, latest
from marketplace.dependencies import get_onboarding, require_full_token
from marketplace.errors import ErrorCode, NotFoundError
from marketplace.models.account import Account
from marketplace.models.merchant import Merchant
from marketplace.schemas.auth import ChangePasswordRequest, ProfileResponse
from marketplace.services.identity import AuthenticatedIdentity
from marketplace.services.onboarding import OnboardingService

router = APIRouter(prefix="/profile", tags=["profile"])


@router.get("", response_model=ProfileResponse)
def get_profile(
    identity: AuthenticatedIdentity = Depends(require_full_token),
    db: Session = Depends(get_db),
):
    account = latest(db, Account, uuid=identity.account_uuid)
    if account is None:
        raise NotFoundError(ErrorCode.USER_NOT_FOUND)
    merchant_status = None
    if identity.merchant_uuid:
        merchant = latest(db, Merchant, uuid=identity.merchant_uuid)
        merchant_status = merchant.application_current_status.value if merchant else None
    return ProfileResponse(
        uuid=account.uuid,
        role=account.role,
        first_name=account.first_name,
        last_name=account.last_name,
        phone_number=account.phone_number,
        phone_number_verified=bool(account.phone_number_verified),
        email=account.primary_email.email if account.primary_email else None,
        merchant_uuid=identity.merchant_uuid,
        merchant_status=merchant_status,
        customer_id=identity.customer_id,
    )


@router.put("/password")
def change_password(
    data: ChangePasswordRequest,
    identity: AuthenticatedIdentity = Depends(require_full_token),
    onboarding: OnboardingService = Depends(get_onboarding),
):
    onboarding.change_password(identity, data.current_password, data.new_password)
    return {"message": "Password updated successfully"}
