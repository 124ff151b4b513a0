"""Tests for B2B / B2CS / HSN classification."""

import pytest

from conftest import BUYER_KA, BUYER_MH, SELLER_STATE, make_invoice
from gstr1_prep.domain.services.gstr1_classifier import (
    classify_b2b,
    classify_b2cs,
    classify_hsn,
    get_classification_summary,
    is_b2b,
)


class TestIsB2B:

    @pytest.mark.parametrize(
        "gstin, expected",
        [
            (BUYER_MH, True),
            ("27AAAAA0000A1Z5", True),  # classification does not re-check the checksum
            ("", False),
            ("URP", False),
            ("27AAAAA0000A1Z", False),
            ("27AAAAA0000A1Z22", False),
            (" " + BUYER_MH + " ", True),
            (BUYER_MH.lower(), True),
        ],
    )
    def test_rule(self, gstin, expected):
        assert is_b2b(make_invoice(buyer_gstin=gstin)) is expected


class TestClassifyB2B:

    def test_grouped_by_ctin_in_first_seen_order(self, sample_invoices):
        b2b = classify_b2b(sample_invoices)
        assert [e.ctin for e in b2b] == [BUYER_MH, BUYER_KA]
        assert [i.inum for i in b2b[0].inv] == ["INV-001", "INV-003"]

    def test_invoice_fields(self, sample_invoices):
        inv = classify_b2b(sample_invoices)[1].inv[0]
        assert inv.pos == "29"
        assert inv.val == 1180
        assert inv.rchrg == "N"
        det = inv.itms[0].itm_det
        assert (det.txval, det.rt, det.iamt, det.camt) == (1000, 18, 180, 0)

    def test_ctin_is_trimmed(self):
        entries = classify_b2b([make_invoice(buyer_gstin=" " + BUYER_MH)])
        assert [e.ctin for e in entries] == [BUYER_MH]
        assert classify_b2cs([make_invoice(buyer_gstin=" " + BUYER_MH)], SELLER_STATE) == []

    def test_pos_falls_back_to_gstin_state(self):
        inv = make_invoice(buyer_gstin=BUYER_KA, place_of_supply="")
        assert classify_b2b([inv])[0].inv[0].pos == "29"

    def test_high_value_b2b_with_unverified_gstin(self):
        inv = make_invoice(buyer_gstin="27AAAAA0000A1Z5", taxable_value=500000, cgst=45000, sgst=45000, total=590000)
        b2b = classify_b2b([inv])
        assert b2b[0].ctin == "27AAAAA0000A1Z5"
        assert classify_b2cs([inv], SELLER_STATE) == []


class TestClassifyB2CS:

    def test_aggregated_by_pos_rate_and_supply_type(self, sample_invoices):
        b2cs = classify_b2cs(sample_invoices, SELLER_STATE)
        keys = [(e.pos, e.rt, e.sply_ty) for e in b2cs]
        assert keys == [("27", 12, "INTRA"), ("07", 18, "INTER")]
        inter = b2cs[1]
        assert inter.txval == 1000
        assert inter.iamt == 180
        assert inter.typ == "OE"

    def test_blank_pos_defaults_to_seller_state(self):
        b2cs = classify_b2cs([make_invoice(place_of_supply="")], SELLER_STATE)
        assert (b2cs[0].pos, b2cs[0].sply_ty) == ("27", "INTRA")

    def test_group_sums_raw_then_rounds(self):
        rows = [make_invoice(invoice_no=f"I{i}", taxable_value=0.333, cgst=0.005, sgst=0.005) for i in range(3)]
        entry = classify_b2cs(rows, SELLER_STATE)[0]
        assert entry.txval == 1.0      # 0.999 -> 1.00
        assert entry.camt == 0.02      # 0.015 -> 0.02

    def test_malformed_gstin_goes_to_b2cs(self):
        rows = [make_invoice(buyer_gstin="27AAAAA0000A1Z22")]
        assert len(classify_b2cs(rows, SELLER_STATE)) == 1
        assert classify_b2b(rows) == []


class TestClassifyHSN:

    def test_inconsistent_rates_warned(self):
        rows = [
            make_invoice(invoice_no="A", hsn_code="1005", tax_rate=5, quantity=2, cgst=25, sgst=25, total=1050),
            make_invoice(invoice_no="B", hsn_code="1005", tax_rate=12, quantity=3, cgst=60, sgst=60, total=1120),
        ]
        hsn = classify_hsn(rows)
        assert len(hsn) == 1
        entry = hsn[0]
        assert entry.hsn_sc == "1005"
        assert entry.qty == 5
        assert entry.txval == 2000
        assert entry.camt == 85
        assert entry.samt == 85
        assert entry.warnings == ["Inconsistent tax rates found: 5%, 12%"]

    def test_single_rate_has_no_warning(self, sample_invoices):
        entry = classify_hsn(sample_invoices)[0]
        assert entry.warnings is None

    def test_numbering_and_defaults(self):
        rows = [
            make_invoice(hsn_code="8471", description=""),
            make_invoice(hsn_code="", description="Misc"),
        ]
        hsn = classify_hsn(rows)
        assert [(e.num, e.hsn_sc) for e in hsn] == [(1, "8471"), (2, "UNKNOWN")]
        assert hsn[0].desc == "Goods"
        assert hsn[0].uqc == "NOS"

    def test_blank_hsn_joins_unknown_bucket(self):
        hsn = classify_hsn([make_invoice(hsn_code="   "), make_invoice(hsn_code="")])
        assert [(e.hsn_sc, e.qty) for e in hsn] == [("UNKNOWN", 2)]

    def test_taxable_total_preserved(self, sample_invoices):
        hsn_total = sum(e.txval for e in classify_hsn(sample_invoices))
        row_total = sum(i.taxable_value for i in sample_invoices)
        assert abs(hsn_total - row_total) <= 0.01 * len(sample_invoices)


class TestSummary:

    def test_partition_complete(self, sample_invoices):
        summary = get_classification_summary(sample_invoices, SELLER_STATE)
        assert summary.b2b_count + summary.b2cs_count == summary.total_invoices == len(sample_invoices)
        assert summary.b2b_count == 3
        assert summary.hsn_count == 2

    def test_totals(self, sample_invoices):
        summary = get_classification_summary(sample_invoices, SELLER_STATE)
        assert summary.total_taxable == 5500
        assert summary.total_tax == 960
        assert summary.total_value == 6460
        assert summary.b2b_value == 4720
        assert summary.b2cs_value == 1500

    def test_empty(self):
        summary = get_classification_summary([], SELLER_STATE)
        assert summary.total_invoices == 0
        assert summary.b2b == summary.b2cs == summary.hsn == []
