# gstr1_prep/domain/models/invoice.py

from enum import Enum
from typing import Any, Literal, Optional
from uuid import uuid4

from pydantic import BaseModel, ConfigDict, Field

# Buyer GSTIN placeholder for unregistered persons
URP = "URP"

Severity = Literal["error", "warning", "info"]


class Platform(str, Enum):
    """Sales-report layouts we know how to map. Declaration order is the tie-break order."""

    AMAZON = "amazon"
    FLIPKART = "flipkart"
    CUSTOM = "custom"
    OTHER = "other"


class ValidationIssue(BaseModel):
    model_config = ConfigDict(frozen=True)

    field: str
    message: str
    severity: Severity
    suggestion: Optional[str] = None


class InvoiceRow(BaseModel):
    """One parsed sales-report row in canonical form."""

    id: str = Field(default_factory=lambda: uuid4().hex)
    invoice_no: str = ""
    invoice_date: str = ""  # DD/MM/YYYY
    buyer_gstin: str = ""  # 15 chars, "URP" or blank
    buyer_name: str = ""
    place_of_supply: str = ""  # first 2 chars = state code when present
    hsn_code: str = ""
    description: str = ""
    quantity: float = 0.0
    taxable_value: float = 0.0
    tax_rate: float = 0.0  # percent, e.g. 18.0
    cgst: float = 0.0
    sgst: float = 0.0
    igst: float = 0.0
    cess: float = 0.0
    total: float = 0.0
    platform: Platform = Platform.OTHER
    errors: list[ValidationIssue] = Field(default_factory=list)

    # Auto-fix state
    is_fixed: bool = False
    fix_log: list[str] = Field(default_factory=list)
    original_data: dict[str, Any] = Field(default_factory=dict)

    @property
    def total_tax(self) -> float:
        return self.cgst + self.sgst + self.igst

    def issues_of(self, severity: Severity) -> list[ValidationIssue]:
        return [e for e in self.errors if e.severity == severity]

    def has_severity(self, severity: Severity) -> bool:
        return any(e.severity == severity for e in self.errors)
