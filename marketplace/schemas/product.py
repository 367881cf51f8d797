"""Product catalog schemas."""
from typing import Any
from pydantic import BaseModel, ConfigDict, Field


class ProductRequest(BaseModel):
    title: str = Field(min_length=1)
    description: str | None = None
    price: int = Field(ge=0)
    stock: int = Field(default=0, ge=0)
    category: str | None = None
    image_url: str | None = None
    is_active: bool = False
    specifications: dict[str, Any] | None = None


class ProductUpdate(BaseModel):
    """All optional; only provided fields are updated."""
    title: str | None = Field(default=None, min_length=1)
    description: str | None = None
    price: int | None = Field(default=None, ge=0)
    stock: int | None = Field(default=None, ge=0)
    category: str | None = None
    image_url: str | None = None
    is_active: bool | None = None
    specifications: dict[str, Any] | None = None


class ProductResponse(BaseModel):
    model_config = ConfigDict(from_attributes=True)

    uuid: str
    title: str
    description: str | None = None
    price: int
    stock: int
    category: str | None = None
    image_url: str | None = None
    is_active: bool
    specifications: dict[str, Any] | None = None


class BulkUploadResult(BaseModel):
    message: str
    created: int
    failed_records: list[dict[str, Any]] = []
