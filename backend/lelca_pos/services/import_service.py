# Overview: Service-layer operations for imports; spreadsheet rows to inventory items.

"""
Inventory import from CSV or Excel.

Column headers are matched loosely ("Item Name", "product", "Qty",
"Unit Price", ...). Every row is validated on its own; valid rows are added
in one commit and invalid rows are reported back with their 1-based row
number (the header is not counted).
"""

from __future__ import annotations

import csv
import io
import logging
import re
from dataclasses import dataclass, field
from typing import Any, Iterable

from ..models import InventoryItem
from ..validation import ValidationError, validate_inventory_item
from .inventory_service import bulk_add_items
from .qr_service import QrEncoder

logger = logging.getLogger(__name__)

EXCEL_EXTENSIONS = {"xlsx", "xlsm", "xltx", "xltm"}


class CsvImportError(ValueError):
    """Raised when an import file cannot be read or mapped."""


# field -> substrings of the normalized header that select it
_HEADER_HINTS = {
    "item_name": ("itemname", "name", "product"),
    "material_details": ("material", "description", "details", "spec"),
    "quantity": ("quantity", "qty", "stock", "amount"),
    "price": ("price", "cost", "rate"),
}


@dataclass
class ImportResult:
    total_rows: int
    added: list[InventoryItem] = field(default_factory=list)
    invalid_rows: list[dict] = field(default_factory=list)

    def to_dict(self) -> dict:
        return {
            "total_rows": self.total_rows,
            "added_count": len(self.added),
            "invalid_count": len(self.invalid_rows),
            "items": [item.to_dict() for item in self.added],
            "invalid_rows": self.invalid_rows,
        }


def _normalize_header(header: str) -> str:
    return re.sub(r"[_\s-]+", "", str(header).lower().strip())


def detect_columns(headers: Iterable[str]) -> dict[str, str | None]:
    """
    Map our fields to the file's headers. When several headers match a
    field, the right-most one wins.
    """
    mapping: dict[str, str | None] = {key: None for key in _HEADER_HINTS}
    for header in headers:
        normalized = _normalize_header(header)
        if not normalized:
            continue
        for key, hints in _HEADER_HINTS.items():
            if normalized == "item" and key == "item_name":
                mapping[key] = header
            elif any(hint in normalized for hint in hints):
                mapping[key] = header
    return mapping


def _row_to_payload(row: dict, mapping: dict[str, str | None]) -> dict:
    payload: dict[str, Any] = {}
    for key, header in mapping.items():
        value = row.get(header) if header else None
        if isinstance(value, str):
            value = value.strip()
        payload[key] = value
    payload["quantity"] = _whole_number(payload.get("quantity"))
    return payload


def _whole_number(value):
    """Spreadsheets write whole numbers as 5.0 or "5.0"; both become 5."""
    if isinstance(value, float) and value.is_integer():
        return int(value)
    if isinstance(value, str) and re.fullmatch(r"-?\d+\.0*", value):
        return int(value.split(".")[0])
    return value


def read_csv(stream: io.TextIOBase) -> list[dict]:
    reader = csv.DictReader(stream)
    return [row for row in reader]


def read_excel(stream) -> list[dict]:
    from openpyxl import load_workbook

    wb = load_workbook(stream, data_only=True, read_only=True)
    try:
        data = list(wb.active.values)
    finally:
        wb.close()
    if not data:
        return []
    headers = [str(h) if h is not None else "" for h in data[0]]
    return [
        {headers[i]: row[i] for i in range(min(len(headers), len(row)))}
        for row in data[1:]
        if any(cell not in (None, "") for cell in row)
    ]


def read_rows(filename: str, raw: bytes) -> list[dict]:
    ext = (filename or "").rsplit(".", 1)[-1].lower()
    try:
        if ext == "csv":
            return read_csv(io.StringIO(raw.decode("utf-8-sig")))
        if ext in EXCEL_EXTENSIONS:
            return read_excel(io.BytesIO(raw))
    except (UnicodeDecodeError, csv.Error) as e:
        raise CsvImportError(f"Failed to parse file: {e}")
    except Exception as e:
        logger.warning("Could not read spreadsheet %s", filename, exc_info=True)
        raise CsvImportError("Failed to parse file. Please ensure it is a valid Excel or CSV file.") from e
    raise CsvImportError("Unsupported file format")


def import_rows(rows: list[dict], qr_encoder: QrEncoder | None = None) -> ImportResult:
    if not rows:
        raise CsvImportError("The file contains no rows")

    mapping = detect_columns(rows[0].keys())
    missing = [key for key in ("item_name", "quantity", "price") if not mapping[key]]
    if missing:
        raise CsvImportError(f"Could not find columns for: {', '.join(missing)}")

    result = ImportResult(total_rows=len(rows))
    valid_payloads = []
    for index, row in enumerate(rows, start=1):
        payload = _row_to_payload(row, mapping)
        try:
            validate_inventory_item(payload)
        except ValidationError as e:
            result.invalid_rows.append({"row": index, "errors": e.errors})
            continue
        valid_payloads.append(payload)

    if valid_payloads:
        result.added = bulk_add_items(valid_payloads, qr_encoder=qr_encoder)

    logger.info(
        "Imported %d of %d rows (%d invalid)",
        len(result.added), result.total_rows, len(result.invalid_rows),
    )
    return result


def import_file(filename: str, raw: bytes, qr_encoder: QrEncoder | None = None) -> ImportResult:
    return import_rows(read_rows(filename, raw), qr_encoder=qr_encoder)
