"""Bulk product import from CSV or Excel (.xlsx). Rows that fail are reported, valid rows are kept."""
import csv
import io
import json
import zipfile
from typing import Any

import pandas as pd

BATCH_SIZE = 50
REQUIRED_COLUMNS = ("title", "price", "stock")


def _parse_bool_cell(val: str | None) -> bool:
    if val is None or not val.strip():
        return False
    return val.strip().lower() in ("1", "true", "yes", "y")


def _parse_int_cell(val: str | None, name: str) -> int:
    try:
        number = int((val or "").strip())
    except ValueError:
        raise ValueError(f"invalid {name} value")
    if number < 0:
        raise ValueError(f"invalid {name} value")
    return number


def row_to_product_fields(row: dict[str, str]) -> dict[str, Any]:
    """Map one CSV row (header names already lower-cased) to Product column values."""
    title = (row.get("title") or "").strip()
    if not title:
        raise ValueError("missing title")
    specs_raw = (row.get("specifications") or "").strip()
    specifications = None
    if specs_raw:
        try:
            specifications = json.loads(specs_raw)
        except json.JSONDecodeError:
            raise ValueError("invalid specifications value")
        if not isinstance(specifications, dict):
            raise ValueError("invalid specifications value")
    return {
        "title": title,
        "description": (row.get("description") or "").strip() or None,
        "price": _parse_int_cell(row.get("price"), "price"),
        "stock": _parse_int_cell(row.get("stock"), "stock"),
        "category": (row.get("category") or "").strip() or None,
        "image_url": (row.get("image_url") or row.get("imageurl") or "").strip() or None,
        "is_active": _parse_bool_cell(row.get("is_active")),
        "specifications": specifications,
    }


def _rows_to_products(records: list[list[str]], kind: str) -> tuple[list[dict[str, Any]], list[dict[str, Any]]]:
    if len(records) < 2:
        raise ValueError(f"{kind} file must have at least one product row")

    headers = [h.strip().lower().replace(" ", "_") for h in records[0]]
    missing = [c for c in REQUIRED_COLUMNS if c not in headers]
    if missing:
        raise ValueError(f"Missing required column(s): {', '.join(missing)}")

    products: list[dict[str, Any]] = []
    failed: list[dict[str, Any]] = []
    for row_num, row in enumerate(records[1:], start=1):
        if not any(cell.strip() for cell in row):
            continue
        if len(row) != len(headers):
            failed.append({"row": row_num, "error": "invalid row length"})
            continue
        try:
            products.append(row_to_product_fields(dict(zip(headers, row))))
        except ValueError as e:
            failed.append({"row": row_num, "error": str(e)})
    return products, failed


def parse_products_csv(content: bytes) -> tuple[list[dict[str, Any]], list[dict[str, Any]]]:
    """Return (product field dicts, failed records). Raises ValueError for an unreadable file."""
    try:
        text = content.decode("utf-8-sig").strip()
    except UnicodeDecodeError:
        raise ValueError("File must be UTF-8 encoded.")
    return _rows_to_products(list(csv.reader(io.StringIO(text))), "CSV")


def _cell_text(value: Any) -> str:
    if value is None or (not isinstance(value, str) and pd.isna(value)):
        return ""
    if isinstance(value, float) and value.is_integer():
        # Excel stores every number as a float
        return str(int(value))
    return str(value)


def parse_products_excel(content: bytes) -> tuple[list[dict[str, Any]], list[dict[str, Any]]]:
    """Same contract as parse_products_csv, reading the first sheet of an .xlsx workbook."""
    try:
        frame = pd.read_excel(io.BytesIO(content), header=None, dtype=object, keep_default_na=False, engine="openpyxl")
    except (ValueError, KeyError, zipfile.BadZipFile) as e:
        raise ValueError(f"Could not read Excel file: {e}")
    records = [[_cell_text(v) for v in row] for row in frame.itertuples(index=False, name=None)]
    return _rows_to_products(records, "Excel")


def batched(items: list, size: int = BATCH_SIZE):
    for start in range(0, len(items), size):
        yield items[start:start + size]
