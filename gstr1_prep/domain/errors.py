# gstr1_prep/domain/errors.py
"""
Exceptions raised by the GSTR-1 pipeline.

Row-level problems are never raised: they are attached to each
``InvoiceRow`` as ``ValidationIssue`` data. Only file-level parse failures
and the caller-side generation gate surface as exceptions.
"""

from __future__ import annotations


class Gstr1Error(Exception):
    """Base class for GSTR-1 pipeline errors."""


class ParseFailure(Gstr1Error):
    """Raised when an uploaded sales report cannot be read at all."""

    def __init__(
        self,
        message: str,
        filename: str = "",
        row: int | None = None,
        column: int | None = None,
    ):
        super().__init__(message)
        self.message = message
        self.filename = filename
        self.row = row
        self.column = column

    def __str__(self) -> str:
        where = []
        if self.filename:
            where.append(self.filename)
        if self.row is not None:
            where.append(f"row {self.row}")
        if self.column is not None:
            where.append(f"column {self.column}")
        if where:
            return f"{self.message} ({', '.join(where)})"
        return self.message


class GenerationBlocked(Gstr1Error):
    """Raised when a filing is requested while rows still carry errors."""

    def __init__(self, error_count: int, error_rows: int = 0):
        super().__init__(
            f"Cannot generate GSTR-1: {error_count} error(s) across "
            f"{error_rows} row(s) must be fixed first"
        )
        self.error_count = error_count
        self.error_rows = error_rows
