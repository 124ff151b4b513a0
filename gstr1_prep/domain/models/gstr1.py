# gstr1_prep/domain/models/gstr1.py

from typing import Any, Literal, Optional

from pydantic import BaseModel, ConfigDict, Field


class Gstr1ItemDetail(BaseModel):
    txval: float = Field(..., description="Taxable value")
    rt: float = Field(..., description="Tax rate (e.g. 18.0)")
    camt: float = Field(0.0, description="CGST amount")
    samt: float = Field(0.0, description="SGST amount")
    iamt: float = Field(0.0, description="IGST amount")
    csamt: float = Field(0.0, description="Cess amount")


class Gstr1InvoiceItem(BaseModel):
    num: int = Field(..., description="Line item number")
    itm_det: Gstr1ItemDetail


class Gstr1B2BInv(BaseModel):
    inum: str  # invoice number
    idt: str  # invoice date DD/MM/YYYY
    val: float  # total invoice value
    pos: str  # place of supply (state code)
    rchrg: Literal["Y", "N"] = "N"
    itms: list[Gstr1InvoiceItem]


class Gstr1B2BEntry(BaseModel):
    ctin: str  # recipient GSTIN
    inv: list[Gstr1B2BInv]


class Gstr1B2CSEntry(BaseModel):
    sply_ty: Literal["INTRA", "INTER"]
    pos: str
    typ: Literal["OE", "E"] = "OE"
    txval: float
    rt: float
    camt: float = 0.0
    samt: float = 0.0
    iamt: float = 0.0
    csamt: float = 0.0


class Gstr1HsnEntry(BaseModel):
    num: int
    hsn_sc: str
    desc: str
    uqc: str = "NOS"
    qty: float
    txval: float
    camt: float = 0.0
    samt: float = 0.0
    iamt: float = 0.0
    csamt: float = 0.0
    warnings: Optional[list[str]] = None


class Gstr1DocRange(BaseModel):
    model_config = ConfigDict(populate_by_name=True)

    num: int
    from_: str = Field(..., alias="from")
    to: str
    totnum: int
    cancel: int = 0
    net_issue: int


class Gstr1DocDetail(BaseModel):
    doc_num: int
    docs: list[Gstr1DocRange]


class Gstr1DocIssue(BaseModel):
    doc_det: list[Gstr1DocDetail] = Field(default_factory=list)


class Gstr1Document(BaseModel):
    gstin: str
    fp: str  # filing period e.g. "112025" for Nov 2025
    b2b: list[Gstr1B2BEntry] = Field(default_factory=list)
    b2cs: list[Gstr1B2CSEntry] = Field(default_factory=list)
    cdnr: list[dict[str, Any]] = Field(default_factory=list)  # credit/debit notes are not prepared
    hsn: list[Gstr1HsnEntry] = Field(default_factory=list)
    doc_issue: Gstr1DocIssue = Field(default_factory=Gstr1DocIssue)
