# gstr1_prep/domain/services/sheet_parser.py
"""
Sales-report spreadsheet parser.

Reads the first sheet of an .xlsx or legacy .xls workbook (or a .csv),
locates the header row, detects the marketplace layout and turns every
data row into a canonical ``InvoiceRow``. Rows without an invoice number
(totals, footers, blank lines) are skipped silently; only an unreadable
file raises.
"""

from __future__ import annotations

import csv
import io
import logging
import math
import re
from dataclasses import dataclass, field
from datetime import date, datetime
from decimal import Decimal
from pathlib import PurePath
from typing import Optional, Sequence, Union

import openpyxl
import xlrd
from openpyxl.utils.datetime import from_excel

from gstr1_prep.domain.errors import ParseFailure
from gstr1_prep.domain.models.invoice import InvoiceRow, Platform
from gstr1_prep.domain.services.schema_detection import (
    ColumnMatch,
    detect_platform,
    find_header_row,
    resolve_columns,
)

logger = logging.getLogger("sheet_parser")

Cell = Union[str, int, float, Decimal, date, datetime, None]

XLSX_EXTENSIONS = (".xlsx", ".xlsm")
XLS_EXTENSIONS = (".xls",)
CSV_EXTENSIONS = (".csv",)

MIN_ROW_CELLS = 3
DISPLAY_DATE_FORMAT = "%d/%m/%Y"

# Currency symbols, thousands separators and whitespace
_AMOUNT_NOISE_RE = re.compile(r"₹|INR|Rs\.?|,|\s", re.IGNORECASE)

# Lenient string-date formats, tried in order
DATE_FORMATS: tuple[str, ...] = (
    "%d/%m/%Y",
    "%d-%m-%Y",
    "%d.%m.%Y",
    "%Y-%m-%d",
    "%Y/%m/%d",
    "%Y-%m-%d %H:%M:%S",
    "%Y-%m-%dT%H:%M:%S",
    "%d/%m/%Y %H:%M:%S",
    "%d-%b-%Y",
    "%d-%b-%y",
    "%d %b %Y",
    "%d %B %Y",
    "%b %d, %Y",
    "%B %d, %Y",
    "%d/%m/%y",
)

# Excel serial day numbers we accept as dates (1900-01-01 .. 9999-12-31)
_EXCEL_SERIAL_RANGE = (1, 2958465)


@dataclass
class ParseResult:
    """Canonical rows plus what the parser decided about the layout."""

    invoices: list[InvoiceRow] = field(default_factory=list)
    platform: Platform = Platform.OTHER
    header_row: int = 0
    headers: list[str] = field(default_factory=list)
    columns: dict[str, ColumnMatch] = field(default_factory=dict)

    @property
    def unmatched_fields(self) -> list[str]:
        return [name for name, match in self.columns.items() if not match.found]


# ---------------------------------------------------------------------------
# Cell coercion
# ---------------------------------------------------------------------------

def to_text(value: Cell) -> str:
    """Cell -> trimmed string. Integral floats lose their ``.0`` (e.g. HSN 1005.0)."""
    if value is None:
        return ""
    if isinstance(value, bool):
        return str(value)
    if isinstance(value, float) and math.isfinite(value) and value.is_integer():
        return str(int(value))
    if isinstance(value, date):
        return value.strftime(DISPLAY_DATE_FORMAT)
    return str(value).strip()


def to_number(value: Cell) -> float:
    """Cell -> float. Currency noise is stripped; anything unparsable is 0."""
    if value is None or isinstance(value, bool):
        return 0.0
    if isinstance(value, (int, float, Decimal)):
        number = float(value)
        return number if math.isfinite(number) else 0.0
    if isinstance(value, (date, datetime)):
        return 0.0

    cleaned = _AMOUNT_NOISE_RE.sub("", str(value))
    if not cleaned:
        return 0.0
    try:
        number = float(cleaned)
    except ValueError:
        return 0.0
    return number if math.isfinite(number) else 0.0


def parse_date_text(text: str) -> Optional[datetime]:
    """Try each known format; None when nothing fits."""
    text = text.strip()
    for fmt in DATE_FORMATS:
        try:
            return datetime.strptime(text, fmt)
        except ValueError:
            continue
    try:
        return datetime.fromisoformat(text)
    except ValueError:
        return None


def to_date_text(value: Cell) -> str:
    """Cell -> DD/MM/YYYY. Unparsable strings pass through unchanged."""
    if value is None:
        return ""
    if isinstance(value, (date, datetime)):
        return value.strftime(DISPLAY_DATE_FORMAT)
    if isinstance(value, (int, float)) and not isinstance(value, bool):
        low, high = _EXCEL_SERIAL_RANGE
        if low <= value <= high:
            converted = from_excel(value)
            if converted is not None:
                return converted.strftime(DISPLAY_DATE_FORMAT)
        return to_text(value)

    text = str(value).strip()
    if not text:
        return ""
    parsed = parse_date_text(text)
    return parsed.strftime(DISPLAY_DATE_FORMAT) if parsed else text


# ---------------------------------------------------------------------------
# File readers
# ---------------------------------------------------------------------------

def _read_xlsx(file_bytes: bytes, filename: str) -> list[list[Cell]]:
    try:
        wb = openpyxl.load_workbook(io.BytesIO(file_bytes), read_only=True, data_only=True)
    except Exception as e:
        raise ParseFailure(f"Could not open workbook: {e}", filename) from e

    try:
        if not wb.worksheets:
            raise ParseFailure("Workbook has no sheets", filename)
        ws = wb.worksheets[0]
        grid: list[list[Cell]] = []
        try:
            for row in ws.iter_rows(values_only=True):
                grid.append(list(row))
        except Exception as e:
            raise ParseFailure(f"Could not read sheet: {e}", filename, row=len(grid) + 1) from e
        return grid
    finally:
        wb.close()


_XLS_EMPTY_TYPES = (xlrd.XL_CELL_EMPTY, xlrd.XL_CELL_BLANK, xlrd.XL_CELL_ERROR)


def _xls_value(cell, datemode: int) -> Cell:
    if cell.ctype in _XLS_EMPTY_TYPES:
        return None
    if cell.ctype == xlrd.XL_CELL_DATE:
        try:
            return xlrd.xldate_as_datetime(cell.value, datemode)
        except (ValueError, OverflowError):
            return cell.value
    return cell.value


def _read_xls(file_bytes: bytes, filename: str) -> list[list[Cell]]:
    try:
        book = xlrd.open_workbook(file_contents=file_bytes, on_demand=True)
    except Exception as e:
        raise ParseFailure(f"Could not open workbook: {e}", filename) from e

    try:
        if book.nsheets == 0:
            raise ParseFailure("Workbook has no sheets", filename)
        sheet = book.sheet_by_index(0)
        grid: list[list[Cell]] = []
        for r in range(sheet.nrows):
            grid.append([_xls_value(cell, book.datemode) for cell in sheet.row(r)])
        return grid
    finally:
        book.release_resources()


def _decode_csv(file_bytes: bytes) -> str:
    try:
        return file_bytes.decode("utf-8-sig")
    except UnicodeDecodeError:
        return file_bytes.decode("latin-1")


def _read_csv(file_bytes: bytes, filename: str) -> list[list[Cell]]:
    reader = csv.reader(io.StringIO(_decode_csv(file_bytes), newline=""))
    try:
        return [list(row) for row in reader]
    except csv.Error as e:
        raise ParseFailure(f"Malformed CSV: {e}", filename, row=reader.line_num) from e


def read_grid(file_bytes: bytes, filename: str) -> list[list[Cell]]:
    """Read the first sheet of an uploaded report as a 2-D cell grid."""
    if not file_bytes:
        raise ParseFailure("Uploaded file is empty", filename)

    ext = PurePath(filename or "").suffix.lower()
    if ext in XLSX_EXTENSIONS:
        return _read_xlsx(file_bytes, filename)
    if ext in XLS_EXTENSIONS:
        return _read_xls(file_bytes, filename)
    if ext in CSV_EXTENSIONS:
        return _read_csv(file_bytes, filename)
    raise ParseFailure(
        f"Unsupported file type {ext or '(none)'}; upload an .xlsx, .xls or .csv sales report",
        filename,
    )


# ---------------------------------------------------------------------------
# Grid -> InvoiceRow
# ---------------------------------------------------------------------------

def _cell(row: Sequence[Cell], index: int) -> Cell:
    if 0 <= index < len(row):
        return row[index]
    return None


def parse_grid(grid: Sequence[Sequence[Cell]]) -> ParseResult:
    """Map a raw grid onto canonical invoice rows."""
    if len(grid) < 2:
        return ParseResult()

    header_row = find_header_row(grid)
    headers = [to_text(h) for h in (grid[header_row] or ())]
    platform = detect_platform(headers)
    columns = resolve_columns(headers, platform)
    col = {name: match.index for name, match in columns.items()}

    def text(row, name: str) -> str:
        return to_text(_cell(row, col[name]))

    def number(row, name: str) -> float:
        return to_number(_cell(row, col[name]))

    invoices: list[InvoiceRow] = []
    for row in grid[header_row + 1:]:
        if not row or len(row) < MIN_ROW_CELLS:
            continue

        invoice_no = text(row, "invoice_no")
        if not invoice_no:
            continue

        taxable_value = number(row, "taxable_value")
        cgst = number(row, "cgst")
        sgst = number(row, "sgst")
        igst = number(row, "igst")
        cess = number(row, "cess")
        total = number(row, "total") or (taxable_value + cgst + sgst + igst + cess)

        invoices.append(
            InvoiceRow(
                invoice_no=invoice_no,
                invoice_date=to_date_text(_cell(row, col["invoice_date"])),
                buyer_gstin=text(row, "buyer_gstin").upper(),
                buyer_name=text(row, "buyer_name"),
                place_of_supply=text(row, "place_of_supply"),
                hsn_code=text(row, "hsn_code"),
                description=text(row, "description"),
                quantity=number(row, "quantity") if col["quantity"] >= 0 else 1.0,
                taxable_value=taxable_value,
                tax_rate=number(row, "tax_rate"),
                cgst=cgst,
                sgst=sgst,
                igst=igst,
                cess=cess,
                total=total,
                platform=platform,
            )
        )

    unmatched = [name for name, match in columns.items() if not match.found]
    logger.info(
        "Parsed sales report: platform=%s header_row=%d rows=%d unmatched=%s",
        platform.value, header_row, len(invoices), ",".join(unmatched) or "-",
    )
    return ParseResult(
        invoices=invoices,
        platform=platform,
        header_row=header_row,
        headers=headers,
        columns=columns,
    )


def parse_file(file_bytes: bytes, filename: str) -> ParseResult:
    """Read and parse an uploaded sales report in one step."""
    return parse_grid(read_grid(file_bytes, filename))
