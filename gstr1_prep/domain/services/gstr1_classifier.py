# gstr1_prep/domain/services/gstr1_classifier.py
"""
Classify validated invoice rows into GSTR-1 sections.

Rules:
- Buyer GSTIN (trimmed, upper-cased) present, 15 chars and not "URP" -> B2B,
  grouped by GSTIN.
- Everything else -> B2CS, aggregated by (POS, rate, INTRA/INTER).
- Every row also lands in the HSN summary, grouped by HSN code.

Aggregates accumulate unrounded Decimals and round once on output.
"""

from __future__ import annotations

from dataclasses import dataclass, field
from decimal import Decimal

from gstr1_prep.domain.models.gstr1 import (
    Gstr1B2BEntry,
    Gstr1B2BInv,
    Gstr1B2CSEntry,
    Gstr1HsnEntry,
    Gstr1InvoiceItem,
    Gstr1ItemDetail,
)
from gstr1_prep.domain.models.invoice import URP, InvoiceRow
from gstr1_prep.domain.services.amounts import round2, to_decimal
from gstr1_prep.domain.services.gstin_pan_validation import state_from_gstin

UNKNOWN_HSN = "UNKNOWN"
DEFAULT_HSN_DESC = "Goods"
DEFAULT_UQC = "NOS"


@dataclass
class _TaxTotals:
    txval: Decimal = Decimal("0")
    camt: Decimal = Decimal("0")
    samt: Decimal = Decimal("0")
    iamt: Decimal = Decimal("0")
    csamt: Decimal = Decimal("0")

    def add(self, inv: InvoiceRow) -> None:
        self.txval += to_decimal(inv.taxable_value)
        self.camt += to_decimal(inv.cgst)
        self.samt += to_decimal(inv.sgst)
        self.iamt += to_decimal(inv.igst)
        self.csamt += to_decimal(inv.cess)


@dataclass
class _HsnGroup:
    num: int
    desc: str
    qty: Decimal = Decimal("0")
    totals: _TaxTotals = field(default_factory=_TaxTotals)
    rates: dict[float, None] = field(default_factory=dict)  # ordered set


@dataclass
class ClassificationSummary:
    """Section data plus per-section and global totals."""
    b2b: list[Gstr1B2BEntry]
    b2cs: list[Gstr1B2CSEntry]
    hsn: list[Gstr1HsnEntry]
    b2b_count: int = 0
    b2b_value: float = 0.0
    b2cs_count: int = 0
    b2cs_value: float = 0.0
    hsn_count: int = 0
    total_invoices: int = 0
    total_taxable: float = 0.0
    total_tax: float = 0.0
    total_value: float = 0.0


def is_b2b(inv: InvoiceRow) -> bool:
    gstin = inv.buyer_gstin.strip().upper()
    return bool(gstin) and len(gstin) == 15 and gstin != URP


def pos_code(inv: InvoiceRow) -> str:
    """Two-character state code taken from the place of supply, or ''."""
    return inv.place_of_supply.strip()[:2]


def _line_value(inv: InvoiceRow) -> Decimal:
    return (
        to_decimal(inv.taxable_value)
        + to_decimal(inv.cgst)
        + to_decimal(inv.sgst)
        + to_decimal(inv.igst)
        + to_decimal(inv.cess)
    )


def _format_rate(rate: float) -> str:
    return f"{rate:g}"


# ---------------------------------------------------------------------------
# Sections
# ---------------------------------------------------------------------------

def classify_b2b(invoices: list[InvoiceRow]) -> list[Gstr1B2BEntry]:
    grouped: dict[str, list[Gstr1B2BInv]] = {}
    for inv in invoices:
        if not is_b2b(inv):
            continue
        ctin = inv.buyer_gstin.strip().upper()
        grouped.setdefault(ctin, []).append(
            Gstr1B2BInv(
                inum=inv.invoice_no,
                idt=inv.invoice_date,
                val=round2(_line_value(inv)),
                pos=pos_code(inv) or state_from_gstin(ctin),
                rchrg="N",
                itms=[
                    Gstr1InvoiceItem(
                        num=1,
                        itm_det=Gstr1ItemDetail(
                            txval=round2(inv.taxable_value),
                            rt=inv.tax_rate,
                            camt=round2(inv.cgst),
                            samt=round2(inv.sgst),
                            iamt=round2(inv.igst),
                            csamt=round2(inv.cess),
                        ),
                    )
                ],
            )
        )
    return [Gstr1B2BEntry(ctin=ctin, inv=inv_list) for ctin, inv_list in grouped.items()]


def classify_b2cs(invoices: list[InvoiceRow], seller_state_code: str) -> list[Gstr1B2CSEntry]:
    grouped: dict[tuple[str, float, str], _TaxTotals] = {}
    for inv in invoices:
        if is_b2b(inv):
            continue
        pos = pos_code(inv) or seller_state_code
        sply_ty = "INTRA" if pos == seller_state_code else "INTER"
        grouped.setdefault((pos, inv.tax_rate, sply_ty), _TaxTotals()).add(inv)

    return [
        Gstr1B2CSEntry(
            sply_ty=sply_ty,
            pos=pos,
            typ="OE",
            txval=round2(totals.txval),
            rt=rate,
            camt=round2(totals.camt),
            samt=round2(totals.samt),
            iamt=round2(totals.iamt),
            csamt=round2(totals.csamt),
        )
        for (pos, rate, sply_ty), totals in grouped.items()
    ]


def classify_hsn(invoices: list[InvoiceRow]) -> list[Gstr1HsnEntry]:
    grouped: dict[str, _HsnGroup] = {}
    for inv in invoices:
        hsn = inv.hsn_code.strip() or UNKNOWN_HSN
        group = grouped.get(hsn)
        if group is None:
            group = _HsnGroup(num=len(grouped) + 1, desc=inv.description or DEFAULT_HSN_DESC)
            grouped[hsn] = group
        group.qty += to_decimal(inv.quantity)
        group.totals.add(inv)
        group.rates[inv.tax_rate] = None

    entries: list[Gstr1HsnEntry] = []
    for hsn, group in grouped.items():
        warnings = None
        if len(group.rates) > 1:
            rates = "%, ".join(_format_rate(r) for r in group.rates)
            warnings = [f"Inconsistent tax rates found: {rates}%"]
        entries.append(
            Gstr1HsnEntry(
                num=group.num,
                hsn_sc=hsn,
                desc=group.desc,
                uqc=DEFAULT_UQC,
                qty=float(group.qty),
                txval=round2(group.totals.txval),
                camt=round2(group.totals.camt),
                samt=round2(group.totals.samt),
                iamt=round2(group.totals.iamt),
                csamt=round2(group.totals.csamt),
                warnings=warnings,
            )
        )
    return entries


# ---------------------------------------------------------------------------
# Summary
# ---------------------------------------------------------------------------

def get_classification_summary(invoices: list[InvoiceRow], seller_state_code: str) -> ClassificationSummary:
    b2b_rows = [inv for inv in invoices if is_b2b(inv)]
    b2cs_rows = [inv for inv in invoices if not is_b2b(inv)]

    b2b = classify_b2b(invoices)
    b2cs = classify_b2cs(invoices, seller_state_code)
    hsn = classify_hsn(invoices)

    total_tax = sum(
        (to_decimal(i.cgst) + to_decimal(i.sgst) + to_decimal(i.igst) + to_decimal(i.cess) for i in invoices),
        Decimal("0"),
    )
    return ClassificationSummary(
        b2b=b2b,
        b2cs=b2cs,
        hsn=hsn,
        b2b_count=len(b2b_rows),
        b2b_value=round2(sum((_line_value(i) for i in b2b_rows), Decimal("0"))),
        b2cs_count=len(b2cs_rows),
        b2cs_value=round2(sum((to_decimal(i.taxable_value) for i in b2cs_rows), Decimal("0"))),
        hsn_count=len(hsn),
        total_invoices=len(invoices),
        total_taxable=round2(sum((to_decimal(i.taxable_value) for i in invoices), Decimal("0"))),
        total_tax=round2(total_tax),
        total_value=round2(sum((to_decimal(i.total) for i in invoices), Decimal("0"))),
    )
