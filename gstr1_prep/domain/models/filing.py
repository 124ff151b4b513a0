# gstr1_prep/domain/models/filing.py

from datetime import datetime
from typing import Optional

from pydantic import BaseModel, Field


class GstProfile(BaseModel):
    """Filer identity as held by the profile store."""

    id: str
    gstin: str
    legal_name: str = ""
    trade_name: str = ""
    state_code: str = ""
    is_active: bool = True


class ReturnRecord(BaseModel):
    """Metadata of a prepared return, as recorded after generation."""

    id: Optional[str] = None
    profile_id: str
    period: str  # MMYYYY
    return_type: str = "GSTR1"
    total_invoices: int = 0
    total_tax: float = 0.0
    total_value: float = 0.0
    file_json_url: Optional[str] = None
    file_excel_url: Optional[str] = None
    created_at: Optional[datetime] = None


class GstDetails(BaseModel):
    """Public registration details returned by a GSTIN search."""

    gstin: str
    legal_name: str = ""
    trade_name: str = ""
    state_code: str = ""
    state_name: str = ""
    status: str = Field(default="Unknown", description="Active / Inactive / Cancelled")
