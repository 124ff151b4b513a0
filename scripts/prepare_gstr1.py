# scripts/prepare_gstr1.py
"""
Prepare a GSTR-1 upload from a marketplace sales report.

    python scripts/prepare_gstr1.py sales.xlsx --period 012026 --gstin 27AAPFU0939F1ZV --fix

Exit codes: 0 written, 1 unreadable input, 2 rows still carry errors.
"""

import argparse
import asyncio
import os
import sys
from pathlib import Path

from loguru import logger

# Ensure project root (the folder containing 'gstr1_prep') is on sys.path
CURRENT_DIR = os.path.dirname(os.path.abspath(__file__))
PROJECT_ROOT = os.path.dirname(CURRENT_DIR)
if PROJECT_ROOT not in sys.path:
    sys.path.append(PROJECT_ROOT)

from gstr1_prep.config.settings import settings
from gstr1_prep.core.logging_config import setup_logging
from gstr1_prep.domain.errors import GenerationBlocked, ParseFailure
from gstr1_prep.domain.services.auto_fixer import auto_fix_invoices
from gstr1_prep.domain.services.gst_export import dump_gstr1_json
from gstr1_prep.domain.services.gstin_lookup import lookup_gstin_details
from gstr1_prep.domain.services.gstin_pan_validation import is_valid_gstin, state_from_gstin
from gstr1_prep.domain.services.gstr1_service import prepare_gstr1_filing, render_gstr1_text
from gstr1_prep.domain.services.gstr1_validator import (
    get_validation_summary,
    validate_filing_period,
    validate_invoices_chunked,
)
from gstr1_prep.domain.services.sheet_parser import parse_file

EXIT_OK = 0
EXIT_BAD_INPUT = 1
EXIT_BLOCKED = 2


def build_parser() -> argparse.ArgumentParser:
    parser = argparse.ArgumentParser(description="Prepare GSTR-1 JSON and Excel summary from a sales report")
    parser.add_argument("file", type=Path, help="Sales report (.xlsx, .xls or .csv)")
    parser.add_argument("--period", required=True, help="Filing period as MMYYYY, e.g. 012026")
    parser.add_argument("--gstin", required=True, help="Filer GSTIN")
    parser.add_argument("--state", default=None, help="Seller state code (defaults to the GSTIN's first two digits)")
    parser.add_argument("--fix", action="store_true", help="Apply safe auto-fixes, then re-validate")
    parser.add_argument("--lookup", action="store_true", help="Look up the filer's registered name before preparing")
    parser.add_argument("--out-dir", type=Path, default=Path("."), help="Where to write the outputs")
    return parser


def _print_issues(invoices) -> None:
    for inv in invoices:
        for issue in inv.errors:
            if issue.severity == "info":
                continue
            line = f"  [{issue.severity}] {inv.invoice_no or '(no invoice no)'} {issue.field}: {issue.message}"
            if issue.suggestion:
                line += f" ({issue.suggestion})"
            print(line)


async def run(args: argparse.Namespace) -> int:
    gstin = args.gstin.strip().upper()
    try:
        validate_filing_period(args.period)
    except ValueError as e:
        logger.error(str(e))
        return EXIT_BAD_INPUT
    if not is_valid_gstin(gstin):
        logger.error(f"Filer GSTIN {gstin} is not valid")
        return EXIT_BAD_INPUT

    seller_state = args.state or settings.DEFAULT_SELLER_STATE or state_from_gstin(gstin)

    if args.lookup:
        details = await lookup_gstin_details(gstin)
        if details:
            logger.info(f"Filer: {details.legal_name} ({details.state_name}, {details.status})")
        else:
            logger.info("Filer details unavailable; continuing")

    try:
        result = parse_file(args.file.read_bytes(), args.file.name)
    except (OSError, ParseFailure) as e:
        logger.error(f"Could not read {args.file}: {e}")
        return EXIT_BAD_INPUT

    logger.info(f"Detected {result.platform.value} layout, {len(result.invoices)} invoice rows")
    if result.unmatched_fields:
        logger.warning(f"Columns not found: {', '.join(result.unmatched_fields)}")

    invoices = await validate_invoices_chunked(result.invoices, args.period)
    if args.fix:
        invoices = auto_fix_invoices(invoices)
        invoices = await validate_invoices_chunked(invoices, args.period)

    summary = get_validation_summary(invoices)
    print(
        f"Rows: {summary.total} | errors: {summary.total_errors} | "
        f"warnings: {summary.total_warnings} | clean: {summary.clean_rows}"
    )
    _print_issues(invoices)

    try:
        filing = prepare_gstr1_filing(invoices, gstin, args.period, seller_state)
    except GenerationBlocked as e:
        logger.error(str(e))
        return EXIT_BLOCKED

    args.out_dir.mkdir(parents=True, exist_ok=True)
    stem = f"GSTR1_{gstin}_{args.period}"
    json_path = args.out_dir / f"{stem}.json"
    xlsx_path = args.out_dir / f"{stem}.xlsx"
    json_path.write_text(dump_gstr1_json(filing.document), encoding="utf-8")
    xlsx_path.write_bytes(filing.excel_bytes)

    print()
    print(render_gstr1_text(filing.summary, args.period, gstin))
    logger.success(f"✅ Wrote {json_path} and {xlsx_path}")
    return EXIT_OK


def main(argv=None) -> int:
    args = build_parser().parse_args(argv)
    setup_logging()
    return asyncio.run(run(args))


if __name__ == "__main__":
    sys.exit(main())
