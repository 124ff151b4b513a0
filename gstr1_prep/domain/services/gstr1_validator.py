# gstr1_prep/domain/services/gstr1_validator.py
"""
GSTR-1 row validation engine.

Runs an ordered set of field and cross-field rules over every parsed
invoice row and attaches severity-tagged issues:

  error    blocks JSON generation until fixed
  warning  surfaced for review, never blocks
  info     best-practice hint

Validation is non-cumulative: each run replaces a row's issue list.
"""

from __future__ import annotations

import asyncio
import logging
import re
from dataclasses import dataclass
from decimal import Decimal
from typing import Callable, Optional

from gstr1_prep.config.settings import settings
from gstr1_prep.domain.models.invoice import URP, InvoiceRow, ValidationIssue
from gstr1_prep.domain.services.amounts import expected_tax, round2_decimal, to_decimal
from gstr1_prep.domain.services.gstin_pan_validation import is_valid_gstin

logger = logging.getLogger("gstr1_validator")

# ---------------------------------------------------------------------------
# Thresholds
# ---------------------------------------------------------------------------

MAX_INVOICE_NO_LENGTH = 16                  # portal limit
AMOUNT_TOLERANCE = Decimal("1")             # Rs 1 rounding slack
TAX_PRESENCE_EPSILON = 0.01
HIGH_VALUE_B2C_THRESHOLD = 250000           # Rs 2.5 lakh
HSN_MIN_DIGITS = 4
HSN_MAX_DIGITS = 8

_FILING_PERIOD_RE = re.compile(r"^(\d{2})(\d{4})$")
_INVOICE_PERIOD_RE = re.compile(r"^\s*\d{1,2}/(\d{1,2})/(\d{4})\s*$")
_HSN_RE = re.compile(r"^[0-9]+$")


# ---------------------------------------------------------------------------
# Summary
# ---------------------------------------------------------------------------

@dataclass
class ValidationSummary:
    """Issue counts and the row partition (error / warning / info-only / clean)."""
    total_errors: int = 0
    total_warnings: int = 0
    total_info: int = 0
    error_rows: int = 0
    warning_rows: int = 0
    info_rows: int = 0
    clean_rows: int = 0
    total: int = 0

    @property
    def has_blocking_errors(self) -> bool:
        return self.total_errors > 0


# ---------------------------------------------------------------------------
# Helpers
# ---------------------------------------------------------------------------

def validate_filing_period(filing_period: str) -> tuple[int, int]:
    """Parse an MMYYYY filing period into (month, year)."""
    m = _FILING_PERIOD_RE.match(filing_period or "")
    if not m:
        raise ValueError(f"Filing period must be MMYYYY, got {filing_period!r}")
    month, year = int(m.group(1)), int(m.group(2))
    if not 1 <= month <= 12:
        raise ValueError(f"Filing period month out of range: {filing_period!r}")
    return month, year


def _invoice_month_year(invoice_date: str) -> Optional[tuple[int, int]]:
    m = _INVOICE_PERIOD_RE.match(invoice_date)
    if not m:
        return None
    return int(m.group(1)), int(m.group(2))


# ---------------------------------------------------------------------------
# Rules
# ---------------------------------------------------------------------------

def _check_invoice_no(inv: InvoiceRow) -> list[ValidationIssue]:
    if not inv.invoice_no or not inv.invoice_no.strip():
        return [ValidationIssue(
            field="invoice_no",
            message="Invoice number is required",
            severity="error",
            suggestion='Ensure the "Invoice No" column is correctly mapped or populated.',
        )]
    if len(inv.invoice_no) > MAX_INVOICE_NO_LENGTH:
        return [ValidationIssue(
            field="invoice_no",
            message=f"Invoice number is too long (max {MAX_INVOICE_NO_LENGTH} chars)",
            severity="warning",
            suggestion="GSTR-1 only allows 16 characters for invoice numbers.",
        )]
    return []


def _check_invoice_date(inv: InvoiceRow, filing_period: str, month: int, year: int) -> list[ValidationIssue]:
    if not inv.invoice_date or not inv.invoice_date.strip():
        return [ValidationIssue(
            field="invoice_date",
            message="Invoice date is missing",
            severity="error",
        )]
    if _invoice_month_year(inv.invoice_date) != (month, year):
        return [ValidationIssue(
            field="invoice_date",
            message=f"Invoice date ({inv.invoice_date}) is outside selected period ({filing_period})",
            severity="error",
            suggestion=f"Did you mean {month:02d}/{year}?",
        )]
    return []


def _check_buyer_gstin(inv: InvoiceRow) -> list[ValidationIssue]:
    if inv.buyer_gstin and inv.buyer_gstin != URP and not is_valid_gstin(inv.buyer_gstin):
        return [ValidationIssue(
            field="buyer_gstin",
            message="Invalid GSTIN format or checksum",
            severity="error",
            suggestion="Check for typos or verify the GSTIN on the portal.",
        )]
    return []


def _check_taxable_value(inv: InvoiceRow) -> list[ValidationIssue]:
    if inv.taxable_value <= 0:
        return [ValidationIssue(
            field="taxable_value",
            message="Taxable value must be greater than 0",
            severity="error",
        )]
    return []


def _check_tax_regime(inv: InvoiceRow) -> list[ValidationIssue]:
    has_igst = inv.igst > TAX_PRESENCE_EPSILON
    has_cgst = inv.cgst > TAX_PRESENCE_EPSILON
    has_sgst = inv.sgst > TAX_PRESENCE_EPSILON
    if has_igst and (has_cgst or has_sgst):
        return [ValidationIssue(
            field="igst",
            message="Both IGST and CGST/SGST present",
            severity="error",
            suggestion="Choose only one tax type: IGST for interstate, CGST+SGST for local.",
        )]
    return []


def _check_amounts(inv: InvoiceRow) -> list[ValidationIssue]:
    issues: list[ValidationIssue] = []
    total_tax = round2_decimal(to_decimal(inv.cgst) + to_decimal(inv.sgst) + to_decimal(inv.igst))

    if inv.tax_rate > 0:
        expected = expected_tax(inv.taxable_value, inv.tax_rate)
        if abs(total_tax - expected) > AMOUNT_TOLERANCE:
            issues.append(ValidationIssue(
                field="tax_rate",
                message=f"Tax mismatch: expected ₹{expected:.2f}, got ₹{total_tax:.2f}",
                severity="warning",
                suggestion="Verify if the tax rate or taxable value is correctly calculated.",
            ))

    computed_total = round2_decimal(to_decimal(inv.taxable_value) + total_tax + to_decimal(inv.cess))
    invoice_total = round2_decimal(inv.total)
    if abs(computed_total - invoice_total) > AMOUNT_TOLERANCE:
        issues.append(ValidationIssue(
            field="total",
            message=f"Invoice total mismatch: computed ₹{computed_total:.2f}, but file says ₹{invoice_total:.2f}",
            severity="warning",
            suggestion="Check if there are other charges or discounts missing from the mapping.",
        ))
    return issues


def _check_hsn(inv: InvoiceRow) -> list[ValidationIssue]:
    if not inv.hsn_code or not inv.hsn_code.strip():
        return [ValidationIssue(
            field="hsn_code",
            message="HSN/SAC code is missing",
            severity="warning",
            suggestion="HSN is mandatory for GSTR-1 filings.",
        )]
    if not _HSN_RE.match(inv.hsn_code):
        return [ValidationIssue(
            field="hsn_code",
            message="HSN must be numeric",
            severity="error",
            suggestion="Remove any non-numeric characters from the HSN code.",
        )]
    if not HSN_MIN_DIGITS <= len(inv.hsn_code) <= HSN_MAX_DIGITS:
        return [ValidationIssue(
            field="hsn_code",
            message=f"HSN code should be {HSN_MIN_DIGITS}-{HSN_MAX_DIGITS} digits",
            severity="warning",
        )]
    return []


def _check_high_value_b2c(inv: InvoiceRow) -> list[ValidationIssue]:
    if inv.taxable_value > HIGH_VALUE_B2C_THRESHOLD and not inv.buyer_gstin:
        return [ValidationIssue(
            field="buyer_gstin",
            message="High value B2C invoice",
            severity="info",
            suggestion="Ensure this is not a B2B transaction that requires a GSTIN.",
        )]
    return []


# ---------------------------------------------------------------------------
# Public API
# ---------------------------------------------------------------------------

def validate_row(inv: InvoiceRow, filing_period: str) -> InvoiceRow:
    """Return a copy of *inv* whose issue list is replaced by a fresh run of every rule."""
    month, year = validate_filing_period(filing_period)

    errors: list[ValidationIssue] = []
    errors += _check_invoice_no(inv)
    errors += _check_invoice_date(inv, filing_period, month, year)
    errors += _check_buyer_gstin(inv)
    errors += _check_taxable_value(inv)
    errors += _check_tax_regime(inv)
    errors += _check_amounts(inv)
    errors += _check_hsn(inv)
    errors += _check_high_value_b2c(inv)

    return inv.model_copy(update={"errors": errors})


def validate_invoices(invoices: list[InvoiceRow], filing_period: str) -> list[InvoiceRow]:
    validate_filing_period(filing_period)
    validated = [validate_row(inv, filing_period) for inv in invoices]
    summary = get_validation_summary(validated)
    logger.info(
        "Validated %d rows for %s: errors=%d warnings=%d info=%d clean=%d",
        summary.total, filing_period, summary.total_errors,
        summary.total_warnings, summary.total_info, summary.clean_rows,
    )
    return validated


async def validate_invoices_chunked(
    invoices: list[InvoiceRow],
    filing_period: str,
    chunk_size: int | None = None,
    on_progress: Callable[[int, int], None] | None = None,
) -> list[InvoiceRow]:
    """
    Validate in chunks, yielding to the event loop between chunks so a host
    UI stays responsive. The result is identical to ``validate_invoices``.
    """
    size = settings.VALIDATION_CHUNK_SIZE if chunk_size is None else chunk_size
    if size <= 0:
        raise ValueError("chunk_size must be positive")
    validate_filing_period(filing_period)

    total = len(invoices)
    validated: list[InvoiceRow] = []
    for start in range(0, total, size):
        validated.extend(validate_row(inv, filing_period) for inv in invoices[start:start + size])
        if on_progress is not None:
            on_progress(len(validated), total)
        await asyncio.sleep(0)
    return validated


def get_validation_summary(invoices: list[InvoiceRow]) -> ValidationSummary:
    summary = ValidationSummary(total=len(invoices))
    for inv in invoices:
        summary.total_errors += len(inv.issues_of("error"))
        summary.total_warnings += len(inv.issues_of("warning"))
        summary.total_info += len(inv.issues_of("info"))

        if inv.has_severity("error"):
            summary.error_rows += 1
        elif inv.has_severity("warning"):
            summary.warning_rows += 1
        elif inv.has_severity("info"):
            summary.info_rows += 1
        else:
            summary.clean_rows += 1
    return summary
