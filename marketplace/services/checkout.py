"""Checkout to order pipeline.

A checkout is created PENDING with priced items and no stock movement. Completing it
decrements stock for every item, flips the status to COMPLETED and writes the Order
in one transaction; if any step fails nothing is kept.
"""
import logging

from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.orm import Session

from marketplace.database import latest
from marketplace.errors import ErrorCode, ForbiddenError, NotFoundError, StorageError, ValidationError
from marketplace.models.checkout import Checkout, CheckoutItem, CheckoutStatus
from marketplace.models.order import Order
from marketplace.models.product import Product
from marketplace.schemas.checkout import CheckoutItemRequest
from marketplace.services.audit_log import CATEGORY_STATUS_CHANGE, create_log
from marketplace.utils import generate_nano_id

log = logging.getLogger("uvicorn.error")


class InsufficientStock(Exception):
    def __init__(self, product_uuid: str, requested: int):
        super().__init__(f"insufficient stock for product {product_uuid}")
        self.product_uuid = product_uuid
        self.requested = requested


def create_checkout(db: Session, account_uuid: str, items: list[CheckoutItemRequest]) -> Checkout:
    total_amount = 0
    checkout_items = []
    for item in items:
        product = latest(db, Product, uuid=item.product_id)
        if product is None or not product.is_active:
            raise ValidationError(ErrorCode.BAD_REQUEST, "Product not found", data={"product_id": item.product_id})
        item_total = product.price * item.quantity
        total_amount += item_total
        checkout_items.append(
            CheckoutItem(product_id=product.id, quantity=item.quantity, price=product.price, total_price=item_total)
        )

    checkout = Checkout(
        checkout_id=generate_nano_id(12, "chk_"),
        user_id=account_uuid,
        total_amount=total_amount,
        status=CheckoutStatus.pending,
        items=checkout_items,
    )
    db.add(checkout)
    try:
        db.commit()
    except SQLAlchemyError:
        db.rollback()
        log.exception("unable to create checkout for account_uuid=%s", account_uuid)
        raise StorageError(ErrorCode.DATABASE_CREATE_FAILED, "Checkout creation failed")
    db.refresh(checkout)
    return checkout


def get_checkout(db: Session, account_uuid: str, checkout_id: str) -> Checkout:
    checkout = latest(db, Checkout, checkout_id=checkout_id)
    if checkout is None:
        raise NotFoundError(ErrorCode.BAD_REQUEST, "Checkout not found")
    if checkout.user_id != account_uuid:
        raise ForbiddenError(ErrorCode.UNAUTHORIZED, "Not your checkout")
    return checkout


def _decrement_stock(db: Session, item: CheckoutItem) -> None:
    updated = (
        db.query(Product)
        .filter(Product.id == item.product_id, Product.stock >= item.quantity)
        .update({Product.stock: Product.stock - item.quantity}, synchronize_session=False)
    )
    if updated != 1:
        product = db.get(Product, item.product_id)
        raise InsufficientStock(product.uuid if product else str(item.product_id), item.quantity)


def complete_checkout(db: Session, account_uuid: str, checkout_id: str, payment_reference_id: str) -> Order:
    checkout = get_checkout(db, account_uuid, checkout_id)
    if checkout.status != CheckoutStatus.pending:
        raise ValidationError(ErrorCode.BAD_REQUEST, "Checkout is not in a valid state for completion")
    if not (payment_reference_id or "").strip():
        raise ValidationError(ErrorCode.BAD_REQUEST, "Invalid payment reference ID")

    try:
        for item in checkout.items:
            _decrement_stock(db, item)
        checkout.status = CheckoutStatus.completed
        order = Order(
            uuid=generate_nano_id(12, "ord_"),
            checkout_id=checkout.id,
            user_id=checkout.user_id,
            total_order_amount=checkout.total_amount,
            payment_id=payment_reference_id.strip(),
        )
        db.add(order)
        db.flush()
        create_log(
            db,
            CATEGORY_STATUS_CHANGE,
            "Checkout completed",
            f"Checkout {checkout.checkout_id} completed; order {order.uuid} created.",
            account_uuid=account_uuid,
            meta={"checkout_id": checkout.checkout_id, "order_id": order.uuid, "total_amount": checkout.total_amount},
        )
        db.commit()
    except InsufficientStock as e:
        db.rollback()
        log.warning("Checkout %s not completed: %s", checkout_id, e)
        raise ValidationError(
            ErrorCode.BAD_REQUEST,
            "Insufficient stock",
            data={"product_id": e.product_uuid, "requested": e.requested},
        )
    except SQLAlchemyError:
        db.rollback()
        log.exception("Checkout %s completion failed; transaction rolled back", checkout_id)
        raise StorageError(ErrorCode.DATABASE_UPDATE_FAILED, "Checkout completion failed")
    db.refresh(order)
    return order
