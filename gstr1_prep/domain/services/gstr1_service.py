# gstr1_prep/domain/services/gstr1_service.py

from __future__ import annotations

import logging
from dataclasses import dataclass
from typing import Any, Optional, Protocol

from gstr1_prep.domain.errors import GenerationBlocked
from gstr1_prep.domain.models.filing import GstProfile, ReturnRecord
from gstr1_prep.domain.models.gstr1 import Gstr1Document
from gstr1_prep.domain.models.invoice import InvoiceRow
from gstr1_prep.domain.services.gst_export import (
    export_summary_xlsx,
    generate_gstr1_document,
    make_gstr1_json,
)
from gstr1_prep.domain.services.gstin_pan_validation import state_from_gstin
from gstr1_prep.domain.services.gstr1_classifier import (
    ClassificationSummary,
    get_classification_summary,
)
from gstr1_prep.domain.services.gstr1_validator import (
    get_validation_summary,
    validate_filing_period,
)

logger = logging.getLogger("gstr1_service")


# ---------- Collaborator contracts ----------


class ProfileStore(Protocol):
    async def get_active_profile(self, user_id: str) -> Optional[GstProfile]: ...


class ReturnRecorder(Protocol):
    async def save_return(self, record: ReturnRecord) -> ReturnRecord: ...


# ---------- Result ----------


@dataclass
class Gstr1Filing:
    document: Gstr1Document
    json_data: dict[str, Any]
    excel_bytes: bytes
    summary: ClassificationSummary
    record: Optional[ReturnRecord] = None


# ---------- Builders ----------


def prepare_gstr1_filing(
    invoices: list[InvoiceRow],
    gstin: str,
    filing_period: str,
    seller_state_code: str,
) -> Gstr1Filing:
    """
    Build the filing document, its JSON and the Excel summary.

    Rows must already be validated: any error-severity issue blocks
    generation. Warnings and info never block.
    """
    validate_filing_period(filing_period)

    validation = get_validation_summary(invoices)
    if validation.has_blocking_errors:
        logger.warning(
            "GSTR-1 generation blocked for %s/%s: %d errors in %d rows",
            gstin, filing_period, validation.total_errors, validation.error_rows,
        )
        raise GenerationBlocked(validation.total_errors, validation.error_rows)

    document = generate_gstr1_document(invoices, gstin, filing_period, seller_state_code)
    return Gstr1Filing(
        document=document,
        json_data=make_gstr1_json(document),
        excel_bytes=export_summary_xlsx(invoices, document),
        summary=get_classification_summary(invoices, seller_state_code),
    )


async def file_gstr1_for_profile(
    user_id: str,
    invoices: list[InvoiceRow],
    filing_period: str,
    profiles: ProfileStore,
    recorder: ReturnRecorder,
    *,
    json_url: Optional[str] = None,
    excel_url: Optional[str] = None,
) -> Gstr1Filing:
    """
    Prepare a GSTR-1 for the user's active GST profile and record its metadata.

    Raises LookupError when the user has no active profile and
    GenerationBlocked when rows still carry errors (nothing is recorded).
    """
    profile = await profiles.get_active_profile(user_id)
    if profile is None:
        raise LookupError(f"No active GST profile for user {user_id}")

    seller_state = profile.state_code or state_from_gstin(profile.gstin)
    filing = prepare_gstr1_filing(invoices, profile.gstin, filing_period, seller_state)

    filing.record = await recorder.save_return(
        ReturnRecord(
            profile_id=profile.id,
            period=filing_period,
            return_type="GSTR1",
            total_invoices=filing.summary.total_invoices,
            total_tax=filing.summary.total_tax,
            total_value=filing.summary.total_value,
            file_json_url=json_url,
            file_excel_url=excel_url,
        )
    )
    logger.info(
        "Recorded GSTR-1 %s for profile %s: %d invoices",
        filing_period, profile.id, filing.summary.total_invoices,
    )
    return filing


# ---------- Console text ----------


def render_gstr1_text(summary: ClassificationSummary, filing_period: str, gstin: str, lang: str = "en") -> str:
    """
    Plain-text preview of a prepared GSTR-1.
    """

    def fmt(v) -> str:
        return f"₹{float(v):,.2f}"

    if len(filing_period) == 6:
        # MMYYYY -> YYYY-MM
        period_str = f"{filing_period[2:]}-{filing_period[0:2]}"
    else:
        period_str = filing_period or "-"

    if lang == "en":
        lines: list[str] = [
            f"GSTR-1 preview for period {period_str}",
            f"GSTIN: {gstin or '-'}",
            "",
            f"B2B invoices: {summary.b2b_count} ({fmt(summary.b2b_value)})",
            f"B2CS invoices: {summary.b2cs_count} ({fmt(summary.b2cs_value)} taxable)",
            f"HSN codes: {summary.hsn_count}",
            "",
            f"Total invoices: {summary.total_invoices}",
            f"Total taxable value: {fmt(summary.total_taxable)}",
            f"Total tax: {fmt(summary.total_tax)}",
            f"Total invoice value: {fmt(summary.total_value)}",
        ]
    else:
        lines = [
            f"अवधि {period_str} के लिए GSTR-1 पूर्वावलोकन",
            f"GSTIN: {gstin or '-'}",
            "",
            f"B2B इनवॉइस: {summary.b2b_count} ({fmt(summary.b2b_value)})",
            f"B2CS इनवॉइस: {summary.b2cs_count} ({fmt(summary.b2cs_value)} टैक्सेबल)",
            f"HSN कोड: {summary.hsn_count}",
            "",
            f"कुल इनवॉइस: {summary.total_invoices}",
            f"कुल टैक्सेबल वैल्यू: {fmt(summary.total_taxable)}",
            f"कुल टैक्स: {fmt(summary.total_tax)}",
            f"कुल इनवॉइस वैल्यू: {fmt(summary.total_value)}",
        ]

    for entry in summary.hsn:
        for warning in entry.warnings or []:
            lines.append(f"⚠ HSN {entry.hsn_sc}: {warning}")

    return "\n".join(lines)
