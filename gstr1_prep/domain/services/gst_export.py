# gstr1_prep/domain/services/gst_export.py
"""
Build the GSTR-1 filing document and its human-audit exports.

JSON:  Gstr1Document -> portal upload JSON (dict / indented string)
Excel: All Invoices + one sheet per non-empty section (B2B, B2CS, HSN)

The generator does not re-check validation state: callers gate on the
validator's error count (see gstr1_service.prepare_gstr1_filing).
"""

from __future__ import annotations

import io
import json
import logging
from typing import Any, Dict, Sequence

from openpyxl import Workbook
from openpyxl.styles import Alignment, Font, PatternFill
from openpyxl.utils import get_column_letter

from gstr1_prep.domain.models.gstr1 import (
    Gstr1DocDetail,
    Gstr1DocIssue,
    Gstr1DocRange,
    Gstr1Document,
)
from gstr1_prep.domain.models.invoice import URP, InvoiceRow
from gstr1_prep.domain.services.amounts import round2, to_decimal
from gstr1_prep.domain.services.gstr1_classifier import (
    classify_b2b,
    classify_b2cs,
    classify_hsn,
    is_b2b,
)

logger = logging.getLogger("gst_export")

HEADER_FILL = PatternFill(start_color="D9D9D9", end_color="D9D9D9", fill_type="solid")
MIN_COLUMN_WIDTH = 12

ALL_INVOICES_COLUMNS = [
    "Invoice No", "Invoice Date", "Buyer GSTIN", "Buyer Name", "Place of Supply",
    "HSN Code", "Description", "Qty", "Taxable Value", "Tax Rate",
    "CGST", "SGST", "IGST", "Cess", "Total", "Type", "Errors",
]
B2B_COLUMNS = [
    "Buyer GSTIN", "Invoice No", "Invoice Date", "Invoice Value", "Place of Supply",
    "Reverse Charge", "Taxable Value", "Tax Rate", "CGST", "SGST", "IGST", "Cess",
]
B2CS_COLUMNS = [
    "Type", "Place of Supply", "Tax Rate", "Taxable Value", "CGST", "SGST", "IGST", "Cess",
]
HSN_COLUMNS = [
    "HSN/SAC Code", "Description", "UQC", "Qty", "Total Taxable Value",
    "Total CGST", "Total SGST", "Total IGST", "Total Cess", "Total Tax",
]


# ---------------------------------------------------------------------------
# Filing document
# ---------------------------------------------------------------------------

def _doc_issue(invoices: Sequence[InvoiceRow]) -> Gstr1DocIssue:
    """Single synthetic series: first/last invoice number (lexicographic) and count."""
    numbers = sorted(inv.invoice_no for inv in invoices if inv.invoice_no)
    count = len(numbers)
    return Gstr1DocIssue(
        doc_det=[
            Gstr1DocDetail(
                doc_num=1,
                docs=[
                    Gstr1DocRange(
                        num=1,
                        from_=numbers[0] if numbers else "",
                        to=numbers[-1] if numbers else "",
                        totnum=count,
                        cancel=0,
                        net_issue=count,
                    )
                ],
            )
        ]
    )


def generate_gstr1_document(
    invoices: list[InvoiceRow],
    gstin: str,
    filing_period: str,
    seller_state_code: str,
) -> Gstr1Document:
    document = Gstr1Document(
        gstin=gstin,
        fp=filing_period,
        b2b=classify_b2b(invoices),
        b2cs=classify_b2cs(invoices, seller_state_code),
        cdnr=[],
        hsn=classify_hsn(invoices),
        doc_issue=_doc_issue(invoices),
    )
    logger.info(
        "Generated GSTR-1 for %s/%s: b2b=%d b2cs=%d hsn=%d",
        gstin, filing_period, len(document.b2b), len(document.b2cs), len(document.hsn),
    )
    return document


def make_gstr1_json(document: Gstr1Document) -> Dict[str, Any]:
    """Portal JSON; HSN entries without warnings carry no ``warnings`` key."""
    return document.model_dump(mode="json", by_alias=True, exclude_none=True)


def dump_gstr1_json(document: Gstr1Document) -> str:
    return json.dumps(make_gstr1_json(document), indent=2, ensure_ascii=False)


# ---------------------------------------------------------------------------
# Excel summary
# ---------------------------------------------------------------------------

def _write_sheet(wb: Workbook, title: str, columns: list[str], rows: list[list[Any]], first: bool = False):
    if first:
        ws = wb.active
        ws.title = title
    else:
        ws = wb.create_sheet(title)

    for idx, col in enumerate(columns, 1):
        cell = ws.cell(row=1, column=idx, value=col)
        cell.font = Font(bold=True)
        cell.fill = HEADER_FILL
        cell.alignment = Alignment(horizontal="center", vertical="center")
    ws.freeze_panes = "A2"

    for row in rows:
        ws.append(row)

    # autofit columns
    for idx, col in enumerate(columns, 1):
        max_len = len(col)
        for row in rows:
            value = row[idx - 1]
            if value is not None:
                max_len = max(max_len, len(str(value)))
        ws.column_dimensions[get_column_letter(idx)].width = max(MIN_COLUMN_WIDTH, max_len + 2)
    return ws


def _all_invoice_rows(invoices: Sequence[InvoiceRow]) -> list[list[Any]]:
    return [
        [
            inv.invoice_no,
            inv.invoice_date,
            inv.buyer_gstin or URP,
            inv.buyer_name,
            inv.place_of_supply,
            inv.hsn_code,
            inv.description,
            inv.quantity,
            inv.taxable_value,
            inv.tax_rate,
            inv.cgst,
            inv.sgst,
            inv.igst,
            inv.cess,
            inv.total,
            "B2B" if is_b2b(inv) else "B2CS",
            "; ".join(issue.message for issue in inv.errors),
        ]
        for inv in invoices
    ]


def _b2b_rows(document: Gstr1Document) -> list[list[Any]]:
    rows: list[list[Any]] = []
    for entry in document.b2b:
        for inv in entry.inv:
            det = inv.itms[0].itm_det if inv.itms else None
            rows.append([
                entry.ctin,
                inv.inum,
                inv.idt,
                inv.val,
                inv.pos,
                inv.rchrg,
                det.txval if det else 0,
                det.rt if det else 0,
                det.camt if det else 0,
                det.samt if det else 0,
                det.iamt if det else 0,
                det.csamt if det else 0,
            ])
    return rows


def _b2cs_rows(document: Gstr1Document) -> list[list[Any]]:
    return [
        [e.sply_ty, e.pos, e.rt, e.txval, e.camt, e.samt, e.iamt, e.csamt]
        for e in document.b2cs
    ]


def _hsn_rows(document: Gstr1Document) -> list[list[Any]]:
    return [
        [
            e.hsn_sc, e.desc, e.uqc, e.qty, e.txval,
            e.camt, e.samt, e.iamt, e.csamt,
            round2(to_decimal(e.camt) + to_decimal(e.samt) + to_decimal(e.iamt) + to_decimal(e.csamt)),
        ]
        for e in document.hsn
    ]


def build_summary_workbook(invoices: Sequence[InvoiceRow], document: Gstr1Document) -> Workbook:
    wb = Workbook()
    _write_sheet(wb, "All Invoices", ALL_INVOICES_COLUMNS, _all_invoice_rows(invoices), first=True)

    sections = (
        ("B2B", B2B_COLUMNS, _b2b_rows(document)),
        ("B2CS", B2CS_COLUMNS, _b2cs_rows(document)),
        ("HSN Summary", HSN_COLUMNS, _hsn_rows(document)),
    )
    for title, columns, rows in sections:
        if rows:
            _write_sheet(wb, title, columns, rows)
    return wb


def export_summary_xlsx(invoices: Sequence[InvoiceRow], document: Gstr1Document) -> bytes:
    wb = build_summary_workbook(invoices, document)
    buf = io.BytesIO()
    wb.save(buf)
    return buf.getvalue()
