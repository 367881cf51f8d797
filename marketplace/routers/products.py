"""Product catalog: public reads, merchant writes and CSV/Excel bulk upload."""
import logging

from fastapi import APIRouter, Depends, File, Query, Request, UploadFile
from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.orm import Session

from marketplace.database import get_db, latest
from marketplace.dependencies import require_merchant
from marketplace.errors import ErrorCode, ForbiddenError, NotFoundError, StorageError, ValidationError
from marketplace.models.product import Product
from marketplace.schemas.product import BulkUploadResult, ProductRequest, ProductResponse, ProductUpdate
from marketplace.services.audit_log import CATEGORY_STATUS_CHANGE, create_log
from marketplace.services.identity import AuthenticatedIdentity
from marketplace.services.product_import import (
    BATCH_SIZE,
    batched,
    parse_products_csv,
    parse_products_excel,
)
from marketplace.utils import generate_nano_id

log = logging.getLogger("uvicorn.error")

router = APIRouter(tags=["products"])

_REQUIRED_FIELDS = {"title", "price", "stock", "is_active"}
_PARSERS = {"csv": parse_products_csv, "xlsx": parse_products_excel}


def _new_product(merchant_uuid: str, fields: dict) -> Product:
    return Product(uuid=generate_nano_id(12, "p_"), merchant_id=merchant_uuid, **fields)


@router.post("/product", response_model=ProductResponse, status_code=201)
def create_product(
    data: ProductRequest,
    identity: AuthenticatedIdentity = Depends(require_merchant),
    db: Session = Depends(get_db),
):
    product = _new_product(identity.merchant_uuid, data.model_dump())
    db.add(product)
    try:
        db.commit()
    except SQLAlchemyError:
        db.rollback()
        log.exception("Product creation failed for merchant_uuid=%s", identity.merchant_uuid)
        raise StorageError(ErrorCode.DATABASE_CREATE_FAILED)
    db.refresh(product)
    return product


@router.put("/product/{product_id}", response_model=ProductResponse)
def update_product(
    product_id: str,
    data: ProductUpdate,
    identity: AuthenticatedIdentity = Depends(require_merchant),
    db: Session = Depends(get_db),
):
    product = latest(db, Product, uuid=product_id)
    if product is None:
        raise NotFoundError(ErrorCode.BAD_REQUEST, "Product not found")
    if product.merchant_id != identity.merchant_uuid:
        raise ForbiddenError(ErrorCode.UNAUTHORIZED, "Product belongs to another merchant")
    for key, value in data.model_dump(exclude_unset=True).items():
        if value is None and key in _REQUIRED_FIELDS:
            continue
        setattr(product, key, value)
    try:
        db.commit()
    except SQLAlchemyError:
        db.rollback()
        log.exception("Product update failed for product_id=%s", product_id)
        raise StorageError(ErrorCode.DATABASE_UPDATE_FAILED)
    db.refresh(product)
    return product


@router.get("/product/{product_id}", response_model=ProductResponse)
def get_product(product_id: str, db: Session = Depends(get_db)):
    product = latest(db, Product, uuid=product_id, is_active=True)
    if product is None:
        raise NotFoundError(ErrorCode.BAD_REQUEST, "Product not found")
    return product


@router.get("/products", response_model=list[ProductResponse])
def list_products(
    category: str | None = Query(None),
    min_price: int | None = Query(None, ge=0),
    max_price: int | None = Query(None, ge=0),
    min_stock: int | None = Query(None, ge=0),
    db: Session = Depends(get_db),
):
    q = db.query(Product).filter(Product.is_active.is_(True))
    if category:
        q = q.filter(Product.category == category)
    if min_price is not None:
        q = q.filter(Product.price >= min_price)
    if max_price is not None:
        q = q.filter(Product.price <= max_price)
    if min_stock is not None:
        q = q.filter(Product.stock >= min_stock)
    return q.order_by(Product.id.desc()).all()


@router.post("/products/upload", response_model=BulkUploadResult, status_code=201)
def upload_products(
    request: Request,
    file: UploadFile = File(...),
    identity: AuthenticatedIdentity = Depends(require_merchant),
    db: Session = Depends(get_db),
):
    """Upload products via CSV or .xlsx. Required columns: title, price, stock. Optional: description, category, image_url, is_active, specifications (JSON object)."""
    filename = (file.filename or "").lower()
    parser = _PARSERS.get(filename.rsplit(".", 1)[-1]) if "." in filename else None
    if parser is None:
        raise ValidationError(ErrorCode.BAD_REQUEST, "Please upload a CSV or .xlsx file.")
    content = file.file.read()
    if not content:
        raise ValidationError(ErrorCode.BAD_REQUEST, "File is empty.")
    try:
        rows, failed = parser(content)
    except ValueError as e:
        raise ValidationError(ErrorCode.BAD_REQUEST, str(e))

    created = 0
    try:
        for batch in batched(rows, BATCH_SIZE):
            db.add_all([_new_product(identity.merchant_uuid, fields) for fields in batch])
            db.flush()
            created += len(batch)
        create_log(
            db,
            CATEGORY_STATUS_CHANGE,
            "Products uploaded",
            f"Merchant {identity.merchant_uuid} uploaded {created} product(s) from {file.filename}.",
            account_uuid=identity.account_uuid,
            request=request,
            meta={"created": created, "failed": len(failed)},
        )
        db.commit()
    except SQLAlchemyError:
        db.rollback()
        log.exception("Bulk product upload failed for merchant_uuid=%s", identity.merchant_uuid)
        raise StorageError(ErrorCode.DATABASE_CREATE_FAILED)

    if failed:
        log.info("Bulk upload for merchant_uuid=%s skipped %d row(s)", identity.merchant_uuid, len(failed))
    message = f"{created} product(s) created" + (f", {len(failed)} row(s) failed" if failed else "")
    return BulkUploadResult(message=message, created=created, failed_records=failed)
