"""Shared test fixtures for the GSTR-1 preparation test suite."""

import asyncio
import io

import pytest
from openpyxl import Workbook

from gstr1_prep.domain.models.invoice import InvoiceRow

SELLER_GSTIN = "27AAPFU0939F1ZV"
SELLER_STATE = "27"
FILING_PERIOD = "012026"

# Checksum-valid buyer GSTINs
BUYER_MH = "27AAAAA0000A1Z2"
BUYER_KA = "29AAAAA0000A1ZY"
BUYER_DL = "07AAAAA0000A1Z4"


@pytest.fixture(scope="session")
def event_loop():
    """Use a single event loop for the entire test session."""
    loop = asyncio.new_event_loop()
    yield loop
    loop.close()


def make_invoice(**overrides) -> InvoiceRow:
    """A clean intra-state B2C row for January 2026; override any field."""
    data = dict(
        invoice_no="INV-001",
        invoice_date="15/01/2026",
        buyer_gstin="",
        buyer_name="Walk-in",
        place_of_supply="27-Maharashtra",
        hsn_code="1005",
        description="Maize",
        quantity=1,
        taxable_value=1000,
        tax_rate=18,
        cgst=90,
        sgst=90,
        igst=0,
        cess=0,
        total=1180,
    )
    data.update(overrides)
    return InvoiceRow(**data)


@pytest.fixture
def sample_invoices() -> list[InvoiceRow]:
    """Three B2B rows for two buyers (one inter-state) and two B2C rows."""
    return [
        make_invoice(invoice_no="INV-001", buyer_gstin=BUYER_MH, buyer_name="Alpha Traders"),
        make_invoice(
            invoice_no="INV-002", buyer_gstin=BUYER_KA, buyer_name="Beta Stores",
            place_of_supply="29-Karnataka", cgst=0, sgst=0, igst=180,
        ),
        make_invoice(invoice_no="INV-003", buyer_gstin=BUYER_MH, taxable_value=2000, cgst=180, sgst=180, total=2360),
        make_invoice(invoice_no="INV-004", hsn_code="8471", description="Laptop", tax_rate=12,
                     taxable_value=500, cgst=30, sgst=30, total=560),
        make_invoice(
            invoice_no="INV-005", place_of_supply="07-Delhi",
            cgst=0, sgst=0, igst=180,
        ),
    ]


def xlsx_bytes(rows: list[list]) -> bytes:
    """Build an in-memory workbook whose first sheet holds *rows*."""
    wb = Workbook()
    ws = wb.active
    for row in rows:
        ws.append(row)
    buf = io.BytesIO()
    wb.save(buf)
    return buf.getvalue()
