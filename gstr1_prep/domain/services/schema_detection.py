# gstr1_prep/domain/services/schema_detection.py
"""
Header-row location, marketplace detection and column mapping.

Detection is a heuristic: a wrong guess only degrades the column mapping
(unmapped fields come through blank/zero), it never fails a parse.
Ties are broken deterministically: first-declared platform, then
first-matching candidate, then left-most column.
"""

from __future__ import annotations

from dataclasses import dataclass
from typing import Any, Sequence

from gstr1_prep.domain.models.invoice import Platform

HEADER_SCAN_ROWS = 20
MIN_HEADER_CELLS = 5

# ---------------------------------------------------------------------------
# Platform signatures (dict order = tie-break order)
# ---------------------------------------------------------------------------

PLATFORM_SIGNATURES: dict[Platform, tuple[str, ...]] = {
    Platform.AMAZON: ("asin", "amazon", "sku", "order-id", "fulfillment"),
    Platform.FLIPKART: ("flipkart", "fsn", "product title", "order id"),
    Platform.CUSTOM: ("invoice no", "invoice date", "gstin", "taxable value"),
}

GENERIC_TAX_KEYWORDS: tuple[str, ...] = ("gst", "tax")

# ---------------------------------------------------------------------------
# Column-mapping tables: ordered header candidates per canonical field
# ---------------------------------------------------------------------------

CANONICAL_FIELDS: tuple[str, ...] = (
    "invoice_no",
    "invoice_date",
    "buyer_gstin",
    "buyer_name",
    "place_of_supply",
    "hsn_code",
    "description",
    "quantity",
    "taxable_value",
    "tax_rate",
    "cgst",
    "sgst",
    "igst",
    "cess",
    "total",
)

AMAZON_COLUMNS: dict[str, tuple[str, ...]] = {
    "invoice_no": ("invoice number", "external invoice id"),
    "invoice_date": ("invoice date", "order date"),
    "buyer_gstin": ("buyer gstin", "customer gstin"),
    "buyer_name": ("buyer name", "customer name"),
    "place_of_supply": ("ship-to state", "place of supply"),
    "hsn_code": ("hsn/sac", "hsn code"),
    "description": ("product description", "title"),
    "quantity": ("quantity", "qty"),
    "taxable_value": ("taxable value", "net amount"),
    "tax_rate": ("tax rate", "gst rate"),
    "cgst": ("cgst amount", "central tax"),
    "sgst": ("sgst amount", "state tax"),
    "igst": ("igst amount", "integrated tax"),
    "cess": ("cess amount", "compensation cess"),
    "total": ("invoice amount", "total amount"),
}

FLIPKART_COLUMNS: dict[str, tuple[str, ...]] = {
    "invoice_no": ("seller invoice no", "invoice no"),
    "invoice_date": ("seller invoice date", "invoice date"),
    "buyer_gstin": ("buyer gstin", "gstin"),
    "buyer_name": ("buyer name", "customer"),
    "place_of_supply": ("delivery state", "pos"),
    "hsn_code": ("hsn code", "hsn"),
    "description": ("product title", "description"),
    "quantity": ("quantity", "qty"),
    "taxable_value": ("taxable value", "item taxable amount"),
    "tax_rate": ("tax rate", "gst rate"),
    "cgst": ("cgst",),
    "sgst": ("sgst",),
    "igst": ("igst",),
    "cess": ("tcs/cess", "cess"),
    "total": ("total amount", "invoice value"),
}

GENERIC_COLUMNS: dict[str, tuple[str, ...]] = {
    "invoice_no": ("invoice no", "bill no", "document number", "invoice number"),
    "invoice_date": ("invoice date", "date", "bill date"),
    "buyer_gstin": ("gstin", "buyer gstin", "tax id", "recipient gst"),
    "buyer_name": ("buyer name", "customer name", "party name"),
    "place_of_supply": ("place of supply", "state", "pos", "supply state"),
    "hsn_code": ("hsn", "sac", "commodity code"),
    "description": ("description", "item", "particulars"),
    "quantity": ("qty", "quantity", "units"),
    "taxable_value": ("taxable value", "taxable amt", "assessable value"),
    "tax_rate": ("rate", "tax %", "gst %"),
    "cgst": ("cgst", "central gst"),
    "sgst": ("sgst", "state gst"),
    "igst": ("igst", "integrated gst"),
    "cess": ("cess",),
    "total": ("total", "net amount", "grand total"),
}

_COLUMN_MAPS: dict[Platform, dict[str, tuple[str, ...]]] = {
    Platform.AMAZON: AMAZON_COLUMNS,
    Platform.FLIPKART: FLIPKART_COLUMNS,
}


@dataclass(frozen=True)
class ColumnMatch:
    """Where a canonical field was found in the header row."""

    field: str
    index: int = -1  # -1 when no candidate matched
    candidate: str | None = None
    exact: bool = False

    @property
    def found(self) -> bool:
        return self.index >= 0


# ---------------------------------------------------------------------------
# Public API
# ---------------------------------------------------------------------------

def _is_blank(cell: Any) -> bool:
    return cell is None or str(cell).strip() == ""


def find_header_row(grid: Sequence[Sequence[Any]]) -> int:
    """Index of the first row (within the first 20) with at least 5 non-empty cells, else 0."""
    for i, row in enumerate(grid[:HEADER_SCAN_ROWS]):
        non_empty = sum(1 for cell in (row or ()) if not _is_blank(cell))
        if non_empty >= MIN_HEADER_CELLS:
            return i
    return 0


def platform_scores(headers: Sequence[str]) -> dict[Platform, int]:
    header_str = "|".join(str(h).lower() for h in headers)
    return {
        platform: sum(1 for keyword in keywords if keyword in header_str)
        for platform, keywords in PLATFORM_SIGNATURES.items()
    }


def detect_platform(headers: Sequence[str]) -> Platform:
    """Pick the platform whose signatures best match the header row."""
    best_platform = Platform.OTHER
    max_score = 0
    for platform, score in platform_scores(headers).items():
        if score > max_score:
            max_score = score
            best_platform = platform

    if best_platform is Platform.OTHER:
        header_str = "|".join(str(h).lower() for h in headers)
        if any(keyword in header_str for keyword in GENERIC_TAX_KEYWORDS):
            return Platform.CUSTOM

    return best_platform


def column_map_for(platform: Platform) -> dict[str, tuple[str, ...]]:
    return _COLUMN_MAPS.get(platform, GENERIC_COLUMNS)


def find_column(headers: Sequence[str], candidates: Sequence[str], field: str = "") -> ColumnMatch:
    """
    Resolve a field to a column index.

    For each candidate in order: exact (case-insensitive) header match
    first, then substring match. First hit wins.
    """
    lower = [str(h).lower().strip() for h in headers]
    for candidate in candidates:
        target = candidate.lower()
        if target in lower:
            return ColumnMatch(field=field, index=lower.index(target), candidate=candidate, exact=True)
        for idx, header in enumerate(lower):
            if target in header:
                return ColumnMatch(field=field, index=idx, candidate=candidate, exact=False)
    return ColumnMatch(field=field)


def resolve_columns(headers: Sequence[str], platform: Platform) -> dict[str, ColumnMatch]:
    mapping = column_map_for(platform)
    return {name: find_column(headers, mapping[name], field=name) for name in CANONICAL_FIELDS}
