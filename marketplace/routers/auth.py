"""Onboarding, login and OTP step-up."""
from fastapi import APIRouter, Depends, Request

from marketplace.dependencies import (
    get_onboarding,
    require_partial_token,
    require_partial_token_any_age,
)
from marketplace.schemas.auth import (
    CustomerRegister,
    LoginRequest,
    LoginResponse,
    MerchantRegister,
    RegisterResponse,
    ResendOTPResponse,
    VerifyOTPRequest,
    VerifyOTPResponse,
)
from marketplace.services.identity import AuthenticatedIdentity
from marketplace.services.onboarding import OnboardingService

router = APIRouter(tags=["auth"])


@router.post("/register", response_model=RegisterResponse, status_code=201)
def register_customer(data: CustomerRegister, onboarding: OnboardingService = Depends(get_onboarding)):
    """Create a customer account; the returned partial token is only good for OTP verification."""
    account, token = onboarding.register_customer(data)
    return RegisterResponse(message="User registered successfully", user_id=account.uuid, access_token=token)


@router.post("/merchant/register", response_model=RegisterResponse, status_code=201)
def register_merchant(data: MerchantRegister, onboarding: OnboardingService = Depends(get_onboarding)):
    account, _, token = onboarding.register_merchant(data)
    return RegisterResponse(message="Merchant registered successfully", user_id=account.uuid, access_token=token)


@router.post("/login", response_model=LoginResponse)
def login(request: Request, data: LoginRequest, onboarding: OnboardingService = Depends(get_onboarding)):
    token = onboarding.login(data, request)
    return LoginResponse(access_token=token)


@router.post("/authenticate/verify_account", response_model=VerifyOTPResponse, status_code=202)
def verify_account(
    request: Request,
    data: VerifyOTPRequest,
    identity: AuthenticatedIdentity = Depends(require_partial_token_any_age),
    onboarding: OnboardingService = Depends(get_onboarding),
):
    token = onboarding.verify_otp(identity, data.otp, request)
    return VerifyOTPResponse(access_token=token)


@router.post("/authenticate/resend_otp", response_model=ResendOTPResponse)
def resend_otp(
    identity: AuthenticatedIdentity = Depends(require_partial_token),
    onboarding: OnboardingService = Depends(get_onboarding),
):
    expires_in = onboarding.resend_otp(identity)
    return ResendOTPResponse(expires_in=expires_in)
