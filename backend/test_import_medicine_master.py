"""
Tests for the medicine master import (Excel and CSV product lists).
"""
import pytest
from openpyxl import Workbook

from app.models.medicine_master import MedicineMaster
from import_medicine_master import find_header, import_products, parse_product, read_products


@pytest.mark.parametrize(
    "name,pack,expected",
    [
        ("CLOPILET 75mg TAB", "10's", {"brand_name": "CLOPILET", "dosage": "75MG", "form": "Tablet", "packing": "10's"}),
        ("AUGMENTIN 625 MG TAB", "6's", {"brand_name": "AUGMENTIN", "dosage": "625MG", "form": "Tablet", "packing": "6's"}),
        ("BECOSULES CAP", "20's", {"brand_name": "BECOSULES", "dosage": "", "form": "Capsule", "packing": "20's"}),
        ("ASCORIL LS SYP", "100ML", {"brand_name": "ASCORIL LS", "dosage": "", "form": "Syrup", "packing": "100ML"}),
        ("B12 1500mcg INJ", "", {"brand_name": "B12", "dosage": "1500MCG", "form": "Injection", "packing": ""}),
        ("VOLINI GEL", None, {"brand_name": "VOLINI GEL", "dosage": "", "form": "", "packing": ""}),
    ],
)
def test_parse_product(name, pack, expected):
    assert parse_product(name, pack) == expected


def test_find_header_skips_title_rows():
    rows = [["Sri Balaji Distributors"], ["Product list", ""], ["ProductName", "Pack", "Rate"], ["DOLO 650 TAB", "15's"]]
    assert find_header(rows) == 2
    assert find_header([["Name", "Pack"]]) is None


def test_read_products_from_excel(tmp_path):
    sheet = tmp_path / "PRODUCTS LIST.xlsx"
    wb = Workbook()
    ws = wb.active
    ws.append(["Sri Balaji Distributors - Product List"])
    ws.append([])
    ws.append(["ProductName", "Pack", "MRP"])
    ws.append(["CLOPILET 75mg TAB", "10's", 120])
    ws.append(["CALPOL SYP", "60ML", 45.5])
    ws.append([None, None, None])
    wb.save(sheet)

    products = read_products(sheet)

    assert products == [
        {"brand_name": "CLOPILET", "dosage": "75MG", "form": "Tablet", "packing": "10's"},
        {"brand_name": "CALPOL", "dosage": "", "form": "Syrup", "packing": "60ML"},
    ]


def test_excel_without_header(tmp_path):
    sheet = tmp_path / "products.xlsx"
    wb = Workbook()
    wb.active.append(["Name", "Qty"])
    wb.active.append(["CROCIN", 1])
    wb.save(sheet)
    with pytest.raises(ValueError, match="ProductName \\| Pack"):
        read_products(sheet)


def test_unsupported_file_type(tmp_path):
    sheet = tmp_path / "products.txt"
    sheet.write_text("ProductName,Pack\n", encoding="utf-8")
    with pytest.raises(ValueError, match="Unsupported file type"):
        read_products(sheet)


def test_read_products(tmp_path):
    sheet = tmp_path / "products.csv"
    sheet.write_text(
        "Distributor price list,,\n"
        ",,\n"
        "ProductName,Pack,MRP\n"
        "CROCIN 500mg TAB,15's,30\n"
        ",,\n"
        "ProductName,Pack,MRP\n"
        "CALPOL SYP,60ML,45\n",
        encoding="utf-8",
    )

    products = read_products(sheet)

    assert [p["brand_name"] for p in products] == ["CROCIN", "CALPOL"]
    assert products[0]["dosage"] == "500MG"
    assert products[1]["form"] == "Syrup"


def test_read_products_without_header(tmp_path):
    sheet = tmp_path / "products.csv"
    sheet.write_text("Name,Qty\nCROCIN,1\n", encoding="utf-8")
    with pytest.raises(ValueError, match="ProductName \\| Pack"):
        read_products(sheet)


def test_import_skips_duplicates(db):
    products = [
        parse_product("DOLO 650mg TAB", "15's"),
        parse_product("DOLO 650mg TAB", "10's"),
        parse_product("DOLO 650mg SYP", "60ML"),
    ]

    result = import_products(db, products)

    assert result == {"inserted": 2, "duplicates": 1}
    assert db.query(MedicineMaster).count() == 2

    again = import_products(db, products)
    assert again == {"inserted": 0, "duplicates": 3}
