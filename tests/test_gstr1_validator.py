"""Tests for the GSTR-1 row validation engine."""

import pytest

from conftest import BUYER_MH, FILING_PERIOD, make_invoice
from gstr1_prep.domain.services.gstr1_validator import (
    get_validation_summary,
    validate_filing_period,
    validate_invoices,
    validate_invoices_chunked,
    validate_row,
)


def _issues(inv, field=None):
    return [e for e in validate_row(inv, FILING_PERIOD).errors if field is None or e.field == field]


class TestFilingPeriod:

    def test_valid(self):
        assert validate_filing_period("012026") == (1, 2026)

    @pytest.mark.parametrize("fp", ["", "12026", "132026", "002026", "01-2026", "2026-01"])
    def test_invalid(self, fp):
        with pytest.raises(ValueError):
            validate_filing_period(fp)


class TestRules:

    def test_clean_row_has_no_issues(self):
        assert _issues(make_invoice()) == []

    def test_missing_invoice_no(self):
        issues = _issues(make_invoice(invoice_no="  "), "invoice_no")
        assert issues[0].severity == "error"
        assert issues[0].message == "Invoice number is required"

    def test_long_invoice_no_is_warning(self):
        issues = _issues(make_invoice(invoice_no="A" * 17), "invoice_no")
        assert issues[0].severity == "warning"

    def test_sixteen_char_invoice_no_ok(self):
        assert _issues(make_invoice(invoice_no="A" * 16), "invoice_no") == []

    def test_missing_date(self):
        issues = _issues(make_invoice(invoice_date=""), "invoice_date")
        assert issues[0].message == "Invoice date is missing"

    def test_date_outside_period(self):
        issues = _issues(make_invoice(invoice_date="15/03/2026"), "invoice_date")
        assert len(issues) == 1
        assert issues[0].severity == "error"
        assert issues[0].message == "Invoice date (15/03/2026) is outside selected period (012026)"
        assert "01/2026" in issues[0].suggestion

    def test_unparsable_date_is_outside_period(self):
        issues = _issues(make_invoice(invoice_date="2026-01-15"), "invoice_date")
        assert issues[0].severity == "error"

    def test_invalid_gstin(self):
        issues = _issues(make_invoice(buyer_gstin="27AAAAA0000A1Z5"), "buyer_gstin")
        assert issues[0].severity == "error"
        assert issues[0].message == "Invalid GSTIN format or checksum"

    def test_urp_and_blank_gstin_accepted(self):
        assert _issues(make_invoice(buyer_gstin="URP"), "buyer_gstin") == []
        assert _issues(make_invoice(buyer_gstin=""), "buyer_gstin") == []

    def test_zero_taxable_value(self):
        issues = _issues(make_invoice(taxable_value=0, cgst=0, sgst=0, total=0, tax_rate=0), "taxable_value")
        assert issues[0].severity == "error"

    def test_both_regimes_is_error(self):
        issues = _issues(make_invoice(igst=100, cgst=50, sgst=0), "igst")
        assert issues[0].severity == "error"
        assert issues[0].message == "Both IGST and CGST/SGST present"

    def test_tax_below_presence_threshold_ignored(self):
        assert _issues(make_invoice(igst=0.01, total=1180.01), "igst") == []

    def test_tax_matches_rate(self):
        # 1000 * 18 -> 180 == 90 + 90
        assert _issues(make_invoice(), "tax_rate") == []

    def test_tax_mismatch_warning(self):
        issues = _issues(make_invoice(cgst=80, sgst=80, total=1160), "tax_rate")
        assert issues[0].severity == "warning"
        assert issues[0].message == "Tax mismatch: expected ₹180.00, got ₹160.00"

    def test_tax_within_tolerance(self):
        assert _issues(make_invoice(cgst=89.5, sgst=90, total=1179.5), "tax_rate") == []

    def test_zero_rate_skips_tax_check(self):
        assert _issues(make_invoice(tax_rate=0), "tax_rate") == []

    def test_total_mismatch_warning(self):
        issues = _issues(make_invoice(total=1250), "total")
        assert issues[0].severity == "warning"
        assert "computed ₹1180.00, but file says ₹1250.00" in issues[0].message

    def test_total_includes_cess(self):
        assert _issues(make_invoice(cess=20, total=1200), "total") == []

    def test_missing_hsn_warning(self):
        issues = _issues(make_invoice(hsn_code=""), "hsn_code")
        assert issues[0].severity == "warning"

    def test_non_numeric_hsn_error(self):
        issues = _issues(make_invoice(hsn_code="10A5"), "hsn_code")
        assert issues[0].severity == "error"
        assert issues[0].message == "HSN must be numeric"

    @pytest.mark.parametrize("hsn", ["1005", "10059000"])
    def test_hsn_length_bounds_accepted(self, hsn):
        assert _issues(make_invoice(hsn_code=hsn), "hsn_code") == []

    @pytest.mark.parametrize("hsn", ["100", "123456789"])
    def test_hsn_length_warning(self, hsn):
        issues = _issues(make_invoice(hsn_code=hsn), "hsn_code")
        assert issues[0].severity == "warning"

    def test_high_value_b2c_info(self):
        issues = _issues(make_invoice(taxable_value=300000, cgst=27000, sgst=27000, total=354000), "buyer_gstin")
        assert [i.severity for i in issues] == ["info"]

    def test_high_value_with_gstin_no_info(self):
        inv = make_invoice(buyer_gstin=BUYER_MH, taxable_value=500000, cgst=45000, sgst=45000, total=590000)
        assert not any(e.severity == "info" for e in _issues(inv))

    def test_high_value_urp_no_info(self):
        inv = make_invoice(buyer_gstin="URP", taxable_value=300000, cgst=27000, sgst=27000, total=354000)
        assert _issues(inv, "buyer_gstin") == []


class TestValidateInvoices:

    def test_revalidation_is_not_cumulative(self):
        rows = [make_invoice(invoice_no=""), make_invoice(total=2000)]
        once = validate_invoices(rows, FILING_PERIOD)
        twice = validate_invoices(once, FILING_PERIOD)
        assert [r.errors for r in once] == [r.errors for r in twice]

    def test_input_not_mutated(self):
        row = make_invoice(invoice_no="")
        validate_invoices([row], FILING_PERIOD)
        assert row.errors == []

    def test_bad_period_raises(self):
        with pytest.raises(ValueError):
            validate_invoices([make_invoice()], "2026")

    def test_chunked_matches_plain(self, event_loop):
        rows = [make_invoice(invoice_no=f"INV-{i}", total=1180 + (i % 3) * 10) for i in range(7)]
        progress = []

        chunked = event_loop.run_until_complete(
            validate_invoices_chunked(rows, FILING_PERIOD, chunk_size=3, on_progress=lambda d, t: progress.append((d, t)))
        )

        plain = validate_invoices(rows, FILING_PERIOD)
        assert [r.errors for r in chunked] == [r.errors for r in plain]
        assert progress == [(3, 7), (6, 7), (7, 7)]

    def test_chunked_rejects_bad_chunk_size(self, event_loop):
        with pytest.raises(ValueError):
            event_loop.run_until_complete(validate_invoices_chunked([], FILING_PERIOD, chunk_size=-1))

    def test_chunked_rejects_zero_chunk_size(self, event_loop):
        with pytest.raises(ValueError):
            event_loop.run_until_complete(validate_invoices_chunked([make_invoice()], FILING_PERIOD, chunk_size=0))


class TestSummary:

    def test_partition(self):
        rows = validate_invoices(
            [
                make_invoice(),                                    # clean
                make_invoice(invoice_no=""),                       # error
                make_invoice(hsn_code=""),                         # warning
                make_invoice(taxable_value=300000, cgst=27000, sgst=27000, total=354000),  # info
            ],
            FILING_PERIOD,
        )
        summary = get_validation_summary(rows)
        assert summary.total == 4
        assert (summary.error_rows, summary.warning_rows, summary.info_rows, summary.clean_rows) == (1, 1, 1, 1)
        assert summary.total_errors == 1
        assert summary.has_blocking_errors

    def test_warning_outranks_info(self):
        row = make_invoice(hsn_code="", taxable_value=300000, cgst=27000, sgst=27000, total=354000)
        summary = get_validation_summary(validate_invoices([row], FILING_PERIOD))
        assert (summary.total_warnings, summary.total_info) == (1, 1)
        assert (summary.warning_rows, summary.info_rows, summary.clean_rows) == (1, 0, 0)
        assert not summary.has_blocking_errors
