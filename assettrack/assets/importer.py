"""
Spreadsheet import for assets.

Rows are read from xlsx (openpyxl) or csv, mapped through the header
aliases below and inserted one savepoint per row, so a bad row is reported
without aborting the rest of the upload.
"""
from __future__ import annotations

import csv
import io
import logging
import zipfile
from dataclasses import dataclass, field
from typing import Optional

from openpyxl import load_workbook
from openpyxl.utils.exceptions import InvalidFileException
from sqlalchemy.exc import SQLAlchemyError

from assettrack.audit import record_history
from assettrack.categories.catalog import build_product_lookup, ensure_catalog_entry
from assettrack.extensions import db
from assettrack.models import Asset, AssetCategory, Store
from .lifecycle import generate_unique_id


logger = logging.getLogger(__name__)


class ImportFileError(ValueError):
    pass


KNOWN_HEADERS = {
    "category",
    "asset type",
    "assettype",
    "product type",
    "type",
    "product name",
    "product",
    "asset name",
    "name",
    "model number",
    "model",
    "serial number",
    "serial",
    "mac address",
    "mac",
    "manufacturer",
    "ticket number",
    "ticket",
    "rfid",
    "qr code",
    "qr",
    "store location",
    "storename",
    "store",
    "location",
    "status",
    "condition",
}

STATUS_MAP = {
    "available/new": "New",
    "new": "New",
    "available/used": "Used",
    "used": "Used",
    "available faulty": "Faulty",
    "faulty": "Faulty",
    "disposed": "Disposed",
    "under repair": "Under Repair",
    "testing": "Testing",
}

NA = "N/A"


def normalize_status(value) -> str:
    return STATUS_MAP.get(str(value or "").strip().lower(), "New")


def is_na(value) -> bool:
    text = str(value or "").strip()
    return not text or text.upper() == NA


def _cell_text(value) -> str:
    if value is None:
        return ""
    if isinstance(value, float) and value.is_integer():
        value = int(value)
    return str(value).strip()


def _is_header_cell(value) -> bool:
    return _cell_text(value).lower() in KNOWN_HEADERS


def find_header_row(rows) -> Optional[int]:
    """
    Index of the first row with at least two cells matching a known header
    (case-insensitive, trimmed), or None.
    """
    for index, row in enumerate(rows):
        if not row:
            continue
        if sum(1 for cell in row if _is_header_cell(cell)) >= 2:
            return index
    return None


class SheetRecord(dict):
    """Lowercased header -> cell text for one data row, plus its 1-based sheet row."""

    def __init__(self, row_number: int):
        super().__init__()
        self.row_number = row_number


def rows_to_records(rows, header_index: int) -> list:
    header = [_cell_text(cell).lower() for cell in rows[header_index]]
    records = []
    for index in range(header_index + 1, len(rows)):
        row = rows[index]
        if not row or all(_cell_text(cell) == "" for cell in row):
            continue
        record = SheetRecord(index + 1)
        for key, cell in zip(header, row):
            if key and key not in record:
                record[key] = _cell_text(cell)
        records.append(record)
    return records


# ----------------------------
# Reading strategies
# ----------------------------

def _sheet_rows(content: bytes, reset_dimensions: bool = False) -> list:
    workbook = load_workbook(io.BytesIO(content), read_only=True, data_only=True)
    try:
        sheet = workbook.worksheets[0]
        if reset_dimensions:
            # stored dimensions can be wrong and would truncate iteration
            sheet.reset_dimensions()
        return [tuple(row) for row in sheet.iter_rows(values_only=True)]
    finally:
        workbook.close()


def _first_row_records(rows) -> list:
    if not rows or find_header_row(rows[:1]) != 0:
        return []
    return rows_to_records(rows, 0)


def _detected_header_records(rows) -> list:
    header_index = find_header_row(rows)
    if header_index is None:
        return []
    return rows_to_records(rows, header_index)


def read_records(filename: str, content: bytes) -> list:
    if not content:
        raise ImportFileError("Uploaded file is empty")

    if (filename or "").lower().endswith(".csv"):
        try:
            text = content.decode("utf-8-sig")
        except UnicodeDecodeError as exc:
            raise ImportFileError("Could not read the uploaded file. Ensure it is valid UTF-8.") from exc
        records = _detected_header_records(list(csv.reader(io.StringIO(text))))
        if not records:
            raise ImportFileError("No data rows found in the uploaded file")
        return records

    try:
        rows = _sheet_rows(content)
    except (InvalidFileException, zipfile.BadZipFile, KeyError, IndexError, OSError) as exc:
        raise ImportFileError("Invalid Excel file") from exc

    records = _first_row_records(rows)
    if records:
        return records

    records = _detected_header_records(rows)
    if records:
        logger.info("Import header detected below the first row of %s", filename)
        return records

    records = _detected_header_records(_sheet_rows(content, reset_dimensions=True))
    if records:
        logger.info("Import of %s recovered by re-reading raw cell ranges", filename)
        return records

    raise ImportFileError("No data rows found in the uploaded file")


# ----------------------------
# Row mapping
# ----------------------------

def _first(record: dict, *keys) -> str:
    for key in keys:
        value = record.get(key)
        if value:
            return value
    return ""


@dataclass
class ImportOptions:
    allow_duplicates: bool = False
    category: str = ""
    product_type: str = ""
    product_name: str = ""
    source: str = ""
    vendor_id: Optional[int] = None
    location: str = ""
    # used when the row names no store, or one outside restrict_store_ids
    store_id: Optional[int] = None
    restrict_store_ids: Optional[tuple] = None


@dataclass
class ImportResult:
    imported: int = 0
    skipped_duplicates: list = field(default_factory=list)
    invalid_rows: list = field(default_factory=list)

    def to_dict(self):
        return {
            "imported": self.imported,
            "skipped_duplicates": self.skipped_duplicates,
            "invalid_rows": self.invalid_rows,
        }


def map_record(record: dict, options: ImportOptions, product_lookup: dict) -> dict:
    product_type = options.product_type or _first(record, "product type", "type")
    product_name = options.product_name or _first(record, "product name", "product")
    category = options.category or record.get("category", "")

    # "Asset Type" carries the product in most field sheets
    if not product_name:
        product_name = _first(record, "asset type", "assettype")

    if product_name and (not category or not product_type):
        found = product_lookup.get(product_name.strip().lower())
        if found:
            category = category or found[0]
            product_type = product_type or found[1]
            product_name = found[2]

    return {
        "name": _first(record, "asset name", "name") or product_name or product_type,
        "category": category or "Other",
        "product_type": product_type,
        "product_name": product_name,
        "model_number": _first(record, "model number", "model") or NA,
        "serial_number": _first(record, "serial number", "serial") or NA,
        "mac_address": _first(record, "mac address", "mac"),
        "manufacturer": record.get("manufacturer", ""),
        "ticket_number": _first(record, "ticket number", "ticket"),
        "rfid": record.get("rfid", ""),
        "qr_code": _first(record, "qr code", "qr"),
        "store_name": _first(record, "store location", "storename", "store"),
        "location": record.get("location", "") or options.location,
        "status": normalize_status(record.get("status")),
        "condition": record.get("condition", ""),
    }


def _brief(row: dict) -> dict:
    return {
        "name": row["name"],
        "model_number": row["model_number"],
        "serial_number": row["serial_number"],
        "store": row.get("store_name", ""),
        "status": row["status"],
    }


def _serial_exists(serial: str, store_id: Optional[int]) -> bool:
    query = Asset.query.filter(Asset.serial_number == serial)
    if store_id:
        query = query.filter(Asset.store_id == store_id)
    else:
        query = query.filter(Asset.store_id.is_(None))
    return db.session.query(query.exists()).scalar()


def import_records(records: list, options: ImportOptions) -> ImportResult:
    """
    Insert mapped rows. Each row lands in imported, skipped_duplicates or
    invalid_rows. Caller commits.
    """
    result = ImportResult()
    stores = {s.name.strip().lower(): s.id for s in Store.query.all()}
    product_lookup = build_product_lookup(AssetCategory.query.all())
    seen_serials = set()

    for position, record in enumerate(records, start=2):
        # plain dicts are numbered as if the header sat on row 1
        row_num = getattr(record, "row_number", position)
        row = map_record(record, options, product_lookup)

        if not row["name"] and is_na(row["serial_number"]) and is_na(row["model_number"]):
            result.invalid_rows.append({"row": row_num, **_brief(row), "reason": "Missing asset name/type"})
            continue
        row["name"] = row["name"] or "Unknown Asset"
        if len(row["serial_number"]) > 150:
            result.invalid_rows.append({"row": row_num, **_brief(row), "reason": "Serial number too long"})
            continue

        store_id = stores.get(row["store_name"].lower()) if row["store_name"] else None
        if store_id is None or (
            options.restrict_store_ids is not None and store_id not in options.restrict_store_ids
        ):
            store_id = options.store_id

        serial = row["serial_number"]
        if not options.allow_duplicates and not is_na(serial):
            if serial in seen_serials:
                result.skipped_duplicates.append(
                    {"serial": serial, "reason": "Duplicate in upload file", "asset": _brief(row)}
                )
                continue
            if _serial_exists(serial, store_id):
                result.skipped_duplicates.append(
                    {"serial": serial, "reason": "Duplicate in database (same store)", "asset": _brief(row)}
                )
                continue

        try:
            with db.session.begin_nested():
                if row["product_name"]:
                    row["category"], row["product_type"], row["product_name"] = ensure_catalog_entry(
                        row["category"],
                        row["product_type"],
                        row["product_name"],
                        store_id=store_id,
                        model_number="" if is_na(row["model_number"]) else row["model_number"],
                    )
                    product_lookup.setdefault(
                        row["product_name"].lower(),
                        (row["category"], row["product_type"], row["product_name"]),
                    )
                asset = Asset(
                    unique_id=generate_unique_id(row["name"]),
                    name=row["name"],
                    model_number=row["model_number"],
                    serial_number=serial,
                    mac_address=row["mac_address"],
                    manufacturer=row["manufacturer"],
                    ticket_number=row["ticket_number"],
                    rfid=row["rfid"],
                    qr_code=row["qr_code"],
                    category=row["category"],
                    product_type=row["product_type"] or None,
                    product_name=row["product_name"] or None,
                    store_id=store_id,
                    location=row["location"],
                    status=row["status"],
                    source=options.source or "Initial Setup",
                    vendor_id=options.vendor_id,
                )
                if row["condition"]:
                    asset.condition = row["condition"]
                db.session.add(asset)
                record_history(asset, "Imported", ticket_number=row["ticket_number"] or None)
                db.session.flush()
        except SQLAlchemyError as exc:
            logger.warning("Import row %s failed: %s", row_num, exc)
            result.invalid_rows.append({"row": row_num, **_brief(row), "reason": "Could not save row"})
            continue

        if not is_na(serial):
            seen_serials.add(serial)
        result.imported += 1

    return result

