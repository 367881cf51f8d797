"""Customer checkout and order completion."""
from fastapi import APIRouter, Depends
from sqlalchemy.orm import Session

from marketplace.database import get_db
from marketplace.dependencies import require_customer
from marketplace.schemas.checkout import (
    CheckoutCompletedResponse,
    CheckoutCreatedResponse,
    CheckoutDetailResponse,
    CheckoutItemResponse,
    CheckoutRequest,
    CompleteCheckoutRequest,
)
from marketplace.services import checkout as checkout_service
from marketplace.services.identity import AuthenticatedIdentity

router = APIRouter(prefix="/checkout", tags=["checkout"])


@router.post("", response_model=CheckoutCreatedResponse, status_code=201)
def create_checkout(
    data: CheckoutRequest,
    identity: AuthenticatedIdentity = Depends(require_customer),
    db: Session = Depends(get_db),
):
    checkout = checkout_service.create_checkout(db, identity.account_uuid, data.items)
    return CheckoutCreatedResponse(checkout_id=checkout.checkout_id, total_amount=checkout.total_amount)


@router.post("/complete", response_model=CheckoutCompletedResponse)
def complete_checkout(
    data: CompleteCheckoutRequest,
    identity: AuthenticatedIdentity = Depends(require_customer),
    db: Session = Depends(get_db),
):
    order = checkout_service.complete_checkout(db, identity.account_uuid, data.checkout_id, data.payment_reference_id)
    return CheckoutCompletedResponse(checkout_id=data.checkout_id, order_id=order.uuid)


@router.get("/{checkout_id}", response_model=CheckoutDetailResponse)
def get_checkout(
    checkout_id: str,
    identity: AuthenticatedIdentity = Depends(require_customer),
    db: Session = Depends(get_db),
):
    checkout = checkout_service.get_checkout(db, identity.account_uuid, checkout_id)
    return CheckoutDetailResponse(
        checkout_id=checkout.checkout_id,
        status=checkout.status,
        total_amount=checkout.total_amount,
        created_at=checkout.created_at,
        updated_at=checkout.updated_at,
        products=[
            CheckoutItemResponse(
                product_id=item.product.uuid,
                quantity=item.quantity,
                price=item.price,
                total_price=item.total_price,
            )
            for item in checkout.items
        ],
    )
