"""CSV adapter for GivingFuel transaction exports.

Validates the header row, then yields typed rows in file order. GivingFuel
exports carry dozens of extra columns; only the ones listed in
``REQUIRED_HEADERS`` are read and the rest are ignored.
"""

from __future__ import annotations

import csv
from dataclasses import dataclass
from datetime import date, datetime
from decimal import Decimal
from typing import IO, Iterator, Sequence

from ..events import PaymentEvent, PaymentValidationError, SourceProvider
from ..money import parse_amount

TRANSACTION_ID = "Transaction ID"
TOTAL_PAID = "Total Paid ($ Amount)"
PAYMENT_METHOD = "Payment Method"
PAYMENT_DATE = "Payment Date"
STATUS = "Status"
TRANSACTION_TYPE = "Transaction Type"
FIRST_NAME = "Billing Name (First Name)"
LAST_NAME = "Billing Name (Last Name)"
EMAIL = "Billing Email Address"

REQUIRED_HEADERS: tuple[str, ...] = (
    TRANSACTION_ID,
    TOTAL_PAID,
    PAYMENT_METHOD,
    PAYMENT_DATE,
    STATUS,
    TRANSACTION_TYPE,
    FIRST_NAME,
    LAST_NAME,
    EMAIL,
)

PAYMENT_DATE_FORMATS = ("%Y-%m-%d %I:%M %p", "%Y-%m-%d")


class CSVAdapterError(Exception):
    """Base exception for CSV adapter failures."""


class CSVHeaderError(CSVAdapterError):
    """Raised when the CSV header row is missing required columns."""

    def __init__(self, *, missing: Sequence[str] | None = None, duplicates: Sequence[str] | None = None) -> None:
        details: list[str] = []
        if missing:
            details.append(f"Missing required columns: {', '.join(sorted(missing))}.")
        if duplicates:
            details.append(f"Duplicate columns detected: {', '.join(sorted(duplicates))}.")
        message = "CSV header validation failed. " + " ".join(details) if details else "CSV header validation failed."
        super().__init__(message)
        self.missing = tuple(missing or ())
        self.duplicates = tuple(duplicates or ())


class CSVRowError(CSVAdapterError):
    """Raised when an individual row cannot be parsed."""

    def __init__(self, row_number: int, message: str) -> None:
        super().__init__(f"Row {row_number}: {message}")
        self.row_number = row_number


@dataclass(frozen=True)
class GivingFuelRow:
    """One parsed export row."""

    source_line: int
    transaction_id: str
    total: Decimal | None
    payment_method: str
    payment_date: datetime
    status: str
    transaction_type: str
    first_name: str
    last_name: str
    email: str

    @property
    def effective_on(self) -> date:
        return self.payment_date.date()

    @property
    def is_completed_charge(self) -> bool:
        return (
            self.status.strip().lower() == "completed"
            and self.transaction_type.strip().lower() == "charge"
            and self.total is not None
        )

    def to_event(self) -> PaymentEvent:
        if self.total is None:
            raise PaymentValidationError(f"Row {self.source_line}: total is empty")
        email = self.email.strip().lower()
        if not email:
            raise PaymentValidationError(f"Row {self.source_line}: billing email is empty")
        return PaymentEvent(
            source_provider=SourceProvider.GIVINGFUEL_CSV,
            provider_transaction_id=self.transaction_id,
            payer_email=email,
            payer_first_name=self.first_name.strip(),
            payer_last_name=self.last_name.strip(),
            amount=self.total,
            payment_method=self.payment_method.strip() or None,
            effective_date=self.effective_on,
        )


@dataclass
class GivingFuelCSVStatistics:
    rows_processed: int = 0
    rows_skipped_blank: int = 0


def _sanitize_header(header: str | None) -> str:
    token = (header or "").strip()
    return token.lstrip("\ufeff")


def _row_is_blank(row: dict[str | None, object]) -> bool:
    # DictReader collects overflow cells in a list under the ``None`` key.
    return all(value is None or (isinstance(value, str) and value.strip() == "") for key, value in row.items() if key is not None)


def parse_payment_date(value: str) -> datetime:
    text = (value or "").strip()
    for fmt in PAYMENT_DATE_FORMATS:
        try:
            return datetime.strptime(text, fmt)
        except ValueError:
            continue
    raise ValueError(f"Payment Date {value!r} does not match YYYY-MM-DD h:mm AM/PM")


class GivingFuelCSVAdapter:
    """CSV reader for GivingFuel transaction exports."""

    def __init__(self, file_obj: IO[str], *, skip_blank_rows: bool = True) -> None:
        self._file_obj = file_obj
        self.skip_blank_rows = skip_blank_rows
        self.statistics = GivingFuelCSVStatistics()
        self._reader: csv.DictReader | None = None

    def _ensure_reader(self) -> csv.DictReader:
        if self._reader is not None:
            return self._reader
        reader = csv.DictReader(self._file_obj)
        try:
            raw_headers = reader.fieldnames
        except csv.Error as exc:
            raise CSVRowError(reader.line_num or 1, str(exc)) from exc
        if raw_headers is None:
            raise CSVHeaderError(missing=REQUIRED_HEADERS)
        sanitized = [_sanitize_header(header) for header in raw_headers]
        seen: set[str] = set()
        duplicates: list[str] = []
        for header in sanitized:
            if header in seen and header in REQUIRED_HEADERS:
                duplicates.append(header)
            seen.add(header)
        missing = [header for header in REQUIRED_HEADERS if header not in seen]
        if missing or duplicates:
            raise CSVHeaderError(missing=missing, duplicates=duplicates)
        reader.fieldnames = sanitized
        self._reader = reader
        return reader

    def iter_rows(self) -> Iterator[GivingFuelRow]:
        """Yield parsed rows in file order, raising :class:`CSVRowError` on the first bad row."""
        reader = self._ensure_reader()
        while True:
            try:
                raw = next(reader)
            except StopIteration:
                return
            except csv.Error as exc:
                # Oversized fields, stray NUL bytes and similar reader failures
                raise CSVRowError(reader.line_num, str(exc)) from exc
            source_line = reader.line_num
            if self.skip_blank_rows and _row_is_blank(raw):
                self.statistics.rows_skipped_blank += 1
                continue
            yield self._parse_row(raw, source_line)
            self.statistics.rows_processed += 1

    def _parse_row(self, raw: dict[str, str | None], source_line: int) -> GivingFuelRow:
        def text(column: str) -> str:
            return (raw.get(column) or "").strip()

        transaction_id = text(TRANSACTION_ID)
        if not transaction_id:
            raise CSVRowError(source_line, "Transaction ID is empty")
        if not transaction_id.isdigit():
            raise CSVRowError(source_line, f"Transaction ID {transaction_id!r} is not an integer")

        total_text = text(TOTAL_PAID)
        total = None
        if total_text:
            try:
                total = parse_amount(total_text, field_name=TOTAL_PAID)
            except PaymentValidationError as exc:
                raise CSVRowError(source_line, str(exc)) from exc

        try:
            payment_date = parse_payment_date(text(PAYMENT_DATE))
        except ValueError as exc:
            raise CSVRowError(source_line, str(exc)) from exc

        return GivingFuelRow(
            source_line=source_line,
            transaction_id=transaction_id,
            total=total,
            payment_method=text(PAYMENT_METHOD),
            payment_date=payment_date,
            status=text(STATUS),
            transaction_type=text(TRANSACTION_TYPE),
            first_name=text(FIRST_NAME),
            last_name=text(LAST_NAME),
            email=text(EMAIL),
        )
