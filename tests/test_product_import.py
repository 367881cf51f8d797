import io

import pytest
from openpyxl import Workbook

from marketplace.services.product_import import (
    batched,
    parse_products_csv,
    parse_products_excel,
    row_to_product_fields,
)


def test_row_mapping_defaults():
    fields = row_to_product_fields({"title": " Mug ", "price": "500", "stock": "3"})
    assert fields["title"] == "Mug"
    assert fields["price"] == 500
    assert fields["is_active"] is False
    assert fields["specifications"] is None


@pytest.mark.parametrize(
    "row, error",
    [
        ({"title": "", "price": "1", "stock": "1"}, "missing title"),
        ({"title": "x", "price": "-1", "stock": "1"}, "invalid price value"),
        ({"title": "x", "price": "1", "stock": "many"}, "invalid stock value"),
        ({"title": "x", "price": "1", "stock": "1", "specifications": "[1, 2]"}, "invalid specifications value"),
    ],
)
def test_row_mapping_errors(row, error):
    with pytest.raises(ValueError, match=error):
        row_to_product_fields(row)


def test_header_only_file_rejected():
    with pytest.raises(ValueError):
        parse_products_csv(b"title,price,stock\n")


def test_non_utf8_rejected():
    with pytest.raises(ValueError, match="UTF-8"):
        parse_products_csv("title,price,stock\nCafé,1,1\n".encode("latin-1"))


def test_short_rows_reported():
    products, failed = parse_products_csv(b"Title,Price,Stock\nMug,1,1\nShort,1\n")
    assert len(products) == 1
    assert failed == [{"row": 2, "error": "invalid row length"}]


def test_batched():
    assert [len(b) for b in batched(list(range(120)), 50)] == [50, 50, 20]


def _xlsx(rows):
    workbook = Workbook()
    sheet = workbook.active
    for row in rows:
        sheet.append(row)
    buf = io.BytesIO()
    workbook.save(buf)
    return buf.getvalue()


def test_excel_rows_map_like_csv():
    content = _xlsx([
        ["title", "price", "stock", "category", "is_active"],
        ["Mug", 500, 20, "kitchen", True],
        ["Plate", 7.0, 5, None, "yes"],
        ["Broken", 1, -3, "kitchen", True],
    ])
    products, failed = parse_products_excel(content)
    assert [(p["title"], p["price"], p["stock"]) for p in products] == [("Mug", 500, 20), ("Plate", 7, 5)]
    assert products[0]["is_active"] is True
    assert products[1]["category"] is None
    assert failed == [{"row": 3, "error": "invalid stock value"}]


def test_excel_missing_column():
    with pytest.raises(ValueError, match="stock"):
        parse_products_excel(_xlsx([["title", "price"], ["Mug", 1]]))


def test_not_an_excel_file():
    with pytest.raises(ValueError, match="Excel"):
        parse_products_excel(b"title,price,stock\nMug,1,1\n")
