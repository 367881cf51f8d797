"""Checkout and order schemas."""
from datetime import datetime
from pydantic import BaseModel, ConfigDict, Field
from marketplace.models.checkout import CheckoutStatus


class CheckoutItemRequest(BaseModel):
    product_id: str  # Product.uuid
    quantity: int = Field(gt=0)


class CheckoutRequest(BaseModel):
    items: list[CheckoutItemRequest] = Field(min_length=1)


class CompleteCheckoutRequest(BaseModel):
    checkout_id: str = Field(min_length=1)
    payment_reference_id: str = Field(min_length=1)


class CheckoutItemResponse(BaseModel):
    product_id: str
    quantity: int
    price: int
    total_price: int


class CheckoutDetailResponse(BaseModel):
    model_config = ConfigDict(from_attributes=True)

    checkout_id: str
    status: CheckoutStatus
    total_amount: int
    created_at: datetime | None = None
    updated_at: datetime | None = None
    products: list[CheckoutItemResponse] = []


class CheckoutCreatedResponse(BaseModel):
    message: str = "Checkout created successfully"
    checkout_id: str
    total_amount: int


class CheckoutCompletedResponse(BaseModel):
    message: str = "Checkout completed successfully"
    checkout_id: str
    order_id: str
