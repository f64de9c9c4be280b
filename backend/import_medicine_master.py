#!/usr/bin/env python3
"""
One-time import of the medicine master (product catalogue) from the
distributor's product list (.xls/.xlsx, or a .csv export of it).

The sheet starts with a few title rows; the header row has `ProductName` and
`Pack` in its first two columns and everything below it is data.

Usage:
    python import_medicine_master.py "PRODUCTS LIST.xls"
"""
import logging
import re
import sys
from pathlib import Path
from typing import Dict, Iterable, List, Optional

import pandas as pd
from sqlalchemy.exc import IntegrityError

from app.db.init_db import init_db
from app.db.session import SessionLocal
from app.models.medicine_master import MedicineMaster

logger = logging.getLogger("import_medicine_master")

_FORMS = (
    (re.compile(r"\bTAB\b"), "Tablet"),
    (re.compile(r"\bCAP\b"), "Capsule"),
    (re.compile(r"\bSYP\b"), "Syrup"),
    (re.compile(r"\bINJ\b"), "Injection"),
)
_DOSAGE = re.compile(r"\d+(\.\d+)?\s*(MG|MCG|G)\b", re.IGNORECASE)
_FORM_WORDS = re.compile(r"\bTAB\b|\bCAP\b|\bSYP\b|\bINJ\b", re.IGNORECASE)


def parse_product(product_name: str, pack: str = "") -> Dict[str, str]:
    """
    Split a catalogue name into brand, dosage and form.

    >>> parse_product("CLOPILET 75mg TAB", "10's")["dosage"]
    '75MG'
    """
    original = str(product_name).strip()
    upper = original.upper()

    form = next((label for pattern, label in _FORMS if pattern.search(upper)), "")

    dosage = ""
    brand_name = original
    match = _DOSAGE.search(original)
    if match:
        dosage = re.sub(r"\s+", "", match.group(0)).upper()
        brand_name = brand_name.replace(match.group(0), "", 1)

    brand_name = re.sub(r"\s{2,}", " ", _FORM_WORDS.sub("", brand_name)).strip()
    return {
        "brand_name": brand_name,
        "dosage": dosage,
        "form": form,
        "packing": str(pack or "").strip(),
    }


def read_sheet(path: Path) -> pd.DataFrame:
    """
    Read an Excel or CSV product list without a header, every cell as text.

    Raises:
        ValueError: If file type is unsupported.
    """
    suffix = path.suffix.lower()
    if suffix in (".xls", ".xlsx"):
        sheet = pd.read_excel(path, header=None, dtype=str)
    elif suffix == ".csv":
        sheet = pd.read_csv(path, header=None, dtype=str, encoding="utf-8-sig")
    else:
        raise ValueError("Unsupported file type. Use .xls, .xlsx or .csv")
    return sheet.fillna("")


def find_header(rows: List[List[str]]) -> Optional[int]:
    for index, row in enumerate(rows):
        if len(row) >= 2 and str(row[0]).strip().lower() == "productname" and str(row[1]).strip().lower() == "pack":
            return index
    return None


def read_products(path: Path) -> List[Dict[str, str]]:
    rows = read_sheet(path).values.tolist()

    header = find_header(rows)
    if header is None:
        raise ValueError("Could not find header row with columns: ProductName | Pack")

    products = []
    for row in rows[header + 1:]:
        name = str(row[0]).strip() if row else ""
        pack = str(row[1]).strip() if len(row) > 1 else ""
        if not name or name.lower() == "productname":
            continue
        parsed = parse_product(name, pack)
        if parsed["brand_name"]:
            products.append(parsed)
    return products


def import_products(db, products: Iterable[Dict[str, str]]) -> Dict[str, int]:
    """Insert catalogue rows, skipping brand+dosage+form combinations already present."""
    inserted = duplicates = 0
    for product in products:
        existing = db.query(MedicineMaster).filter(
            MedicineMaster.brand_name == product["brand_name"],
            MedicineMaster.dosage == product["dosage"],
            MedicineMaster.form == product["form"],
        ).first()
        if existing:
            duplicates += 1
            continue

        db.add(MedicineMaster(**product))
        try:
            db.commit()
            inserted += 1
        except IntegrityError:
            db.rollback()
            duplicates += 1
    return {"inserted": inserted, "duplicates": duplicates}


def main(argv: List[str]) -> int:
    logging.basicConfig(level=logging.INFO, format="%(levelname)s %(message)s")
    path = Path(argv[1]) if len(argv) > 1 else Path(__file__).parent / "PRODUCTS LIST.xls"
    if not path.exists():
        logger.error("%s not found", path)
        return 1

    init_db()
    products = read_products(path)
    logger.info("Parsed %d products from %s", len(products), path.name)

    db = SessionLocal()
    try:
        result = import_products(db, products)
    finally:
        db.close()

    logger.info("Inserted medicines  : %d", result["inserted"])
    logger.info("Duplicates skipped  : %d", result["duplicates"])
    return 0


if __name__ == "__main__":
    sys.exit(main(sys.argv))
