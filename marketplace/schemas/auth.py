"""Onboarding, login and OTP schemas."""
from pydantic import BaseModel, ConfigDict, EmailStr, Field, field_validator, model_validator
from marketplace.models.account import Role
from marketplace.utils import is_valid_phone_number, normalize_phone

PASSWORD_MAX_LENGTH = 64


def _validate_phone(v: str) -> str:
    if not is_valid_phone_number(v):
        raise ValueError("Please enter a valid phone number")
    return normalize_phone(v)


class CustomerRegister(BaseModel):
    phone_number: str
    first_name: str = Field(min_length=1)
    last_name: str = Field(min_length=1)
    email: EmailStr | None = None
    password: str = Field(min_length=1, max_length=PASSWORD_MAX_LENGTH)

    @field_validator("phone_number")
    @classmethod
    def phone_valid(cls, v: str) -> str:
        return _validate_phone(v)


class MerchantRegister(BaseModel):
    phone_number: str
    email: EmailStr | None = None
    password: str = Field(min_length=1, max_length=PASSWORD_MAX_LENGTH)

    @field_validator("phone_number")
    @classmethod
    def phone_valid(cls, v: str) -> str:
        return _validate_phone(v)


class LoginRequest(BaseModel):
    phone_number: str | None = None
    email: EmailStr | None = None
    password: str = Field(min_length=1, max_length=PASSWORD_MAX_LENGTH)

    @field_validator("phone_number")
    @classmethod
    def phone_normalized(cls, v: str | None) -> str | None:
        return normalize_phone(v) if v else None

    @model_validator(mode="after")
    def exactly_one_identifier(self):
        if not self.phone_number and not self.email:
            raise ValueError("Either phone number or email is required")
        if self.phone_number and self.email:
            raise ValueError("Provide either phone number or email, not both")
        return self


class VerifyOTPRequest(BaseModel):
    otp: str = Field(min_length=1, max_length=6)


class ChangePasswordRequest(BaseModel):
    current_password: str = Field(min_length=1, max_length=PASSWORD_MAX_LENGTH)
    new_password: str = Field(min_length=1, max_length=PASSWORD_MAX_LENGTH)


class RegisterResponse(BaseModel):
    message: str
    user_id: str
    access_token: str


class LoginResponse(BaseModel):
    goto: str = "continue"
    access_token: str


class VerifyOTPResponse(BaseModel):
    message: str = "OTP verified successfully"
    access_token: str


class ResendOTPResponse(BaseModel):
    message: str = "OTP sent"
    expires_in: int


class ProfileResponse(BaseModel):
    model_config = ConfigDict(from_attributes=True)

    uuid: str
    role: Role
    first_name: str | None = None
    last_name: str | None = None
    phone_number: str | None = None
    phone_number_verified: bool = False
    email: str | None = None
    merchant_uuid: str | None = None
    merchant_status: str | None = None
    customer_id: str | None = None
