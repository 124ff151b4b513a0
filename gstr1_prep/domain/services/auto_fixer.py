# gstr1_prep/domain/services/auto_fixer.py
"""
Safe, reversible auto-corrections for parsed invoice rows.

Only issues with a single deterministic correction are touched: the fixer
never invents an invoice number or guesses a GSTIN. Every change is logged
and the pre-fix value is kept so ``undo_fix`` can restore the row in one
step. Callers re-validate after fixing; the fixer does not validate.
"""

from __future__ import annotations

import logging
import re
from typing import Any

from gstr1_prep.domain.models.invoice import InvoiceRow
from gstr1_prep.domain.services.amounts import round2, round2_decimal, to_decimal

logger = logging.getLogger("auto_fixer")

TAX_PRESENCE_EPSILON = 0.01

_ISO_DATE_RE = re.compile(r"(\d{4})-(\d{2})-(\d{2})")

_TRIM_FIELDS: tuple[tuple[str, str], ...] = (
    ("invoice_no", "invoice number"),
    ("buyer_gstin", "buyer GSTIN"),
    ("hsn_code", "HSN code"),
)

_ROUND_FIELDS: tuple[tuple[str, str], ...] = (
    ("cgst", "CGST"),
    ("sgst", "SGST"),
    ("igst", "IGST"),
    ("cess", "cess"),
    ("taxable_value", "taxable value"),
)


def auto_fix_row(row: InvoiceRow) -> InvoiceRow:
    """Apply every safe fix to a copy of *row*; unchanged fields are not logged."""
    fixed = row.model_copy(deep=True)
    logs: list[str] = []
    original: dict[str, Any] = {}

    def update(field: str, new_value: Any, message: str) -> None:
        current = getattr(fixed, field)
        if current == new_value:
            return
        original.setdefault(field, current)
        setattr(fixed, field, new_value)
        logs.append(message)

    # 1. Trimming
    for field, label in _TRIM_FIELDS:
        value = getattr(fixed, field)
        if value:
            update(field, value.strip(), f"Trimmed {label}.")

    # 2. ISO dates -> DD/MM/YYYY
    if fixed.invoice_date and "/" not in fixed.invoice_date:
        m = _ISO_DATE_RE.search(fixed.invoice_date)
        if m:
            y, mo, d = m.groups()
            update("invoice_date", f"{d}/{mo}/{y}", "Formatted date to DD/MM/YYYY.")

    # 3. Tax-regime exclusivity: CGST/SGST take precedence over IGST
    has_intra = fixed.cgst > TAX_PRESENCE_EPSILON or fixed.sgst > TAX_PRESENCE_EPSILON
    if has_intra and fixed.igst > TAX_PRESENCE_EPSILON:
        update("igst", 0.0, "Detected CGST/SGST. Set IGST to ₹0.")

    # 4. Rounding
    for field, label in _ROUND_FIELDS:
        update(field, round2(getattr(fixed, field)), f"Rounded {label}.")

    # 5. Total from corrected components
    total_tax = round2_decimal(to_decimal(fixed.cgst) + to_decimal(fixed.sgst) + to_decimal(fixed.igst))
    computed_total = round2(to_decimal(fixed.taxable_value) + total_tax + to_decimal(fixed.cess))
    if fixed.total != computed_total:
        update(
            "total",
            computed_total,
            f"Recalculated total from ₹{fixed.total:.2f} to ₹{computed_total:.2f}.",
        )

    if not logs:
        return fixed

    fixed.is_fixed = True
    fixed.fix_log = [*fixed.fix_log, *logs]
    # Earlier passes keep their snapshot: undo always returns to the parsed values
    fixed.original_data = {**original, **fixed.original_data}
    logger.debug("Auto-fixed invoice %s: %s", fixed.invoice_no, "; ".join(logs))
    return fixed


def auto_fix_invoices(invoices: list[InvoiceRow]) -> list[InvoiceRow]:
    fixed = [auto_fix_row(inv) for inv in invoices]
    changed = sum(1 for before, after in zip(invoices, fixed) if len(after.fix_log) > len(before.fix_log))
    logger.info("Auto-fix changed %d of %d rows", changed, len(invoices))
    return fixed


def undo_fix(row: InvoiceRow) -> InvoiceRow:
    """Restore every snapshotted field and clear fix state. No-op for unfixed rows."""
    if not row.is_fixed or not row.original_data:
        return row

    return row.model_copy(
        update={
            **row.original_data,
            "is_fixed": False,
            "fix_log": [],
            "original_data": {},
        }
    )


def undo_all(invoices: list[InvoiceRow]) -> list[InvoiceRow]:
    return [undo_fix(inv) for inv in invoices]
