from marketplace.schemas.auth import (
    CustomerRegister, MerchantRegister, LoginRequest, VerifyOTPRequest, ChangePasswordRequest,
    RegisterResponse, LoginResponse, VerifyOTPResponse, ResendOTPResponse, ProfileResponse,
)
from marketplace.schemas.product import ProductRequest, ProductUpdate, ProductResponse, BulkUploadResult
from marketplace.schemas.checkout import (
    CheckoutItemRequest, CheckoutRequest, CompleteCheckoutRequest,
    CheckoutDetailResponse, CheckoutCreatedResponse, CheckoutCompletedResponse,
)
