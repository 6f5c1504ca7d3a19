"""Output helpers for the amortizer.

This module provides functions to format money, dates and loan amounts for
display and to render amortization schedules and summaries in a tabular text
format. We rely only on built-in printing and string formatting.
"""

from __future__ import annotations

import re
from datetime import date
from typing import Iterable, Optional

from .data_models import PaymentRecord, ScheduleSummary

_LEADING_NUMBER_RE = re.compile(r"^\s*[+-]?(\d+\.?\d*|\.\d+)([eE][+-]?\d+)?")


def format_currency(amount: float, currency_symbol: str) -> str:
    """Format a number as currency with the given symbol, e.g. ``$1,234.50``."""
    return f"{currency_symbol}{amount:,.2f}"


def format_date(value: date) -> str:
    """Format a date as a readable string, e.g. ``Jan 1, 2024``."""
    return f"{value.strftime('%b')} {value.day}, {value.year}"


def format_loan_amount(value: float) -> str:
    """Format a loan amount with thousands separators, keeping any decimals."""
    if value != value or value == 0:
        return "0"
    if float(value).is_integer():
        text = str(int(value))
    else:
        text = repr(float(value))
    whole, dot, fraction = text.partition(".")
    sign = "-" if whole.startswith("-") else ""
    whole = whole.lstrip("-")
    return f"{sign}{int(whole):,}{dot}{fraction}"


def parse_loan_amount(value: str) -> float:
    """Parse a loan amount string that may contain commas.

    Anything after the leading number is ignored; ``0.0`` is returned when no
    number can be read.
    """
    cleaned = value.replace(",", "")
    match = _LEADING_NUMBER_RE.match(cleaned)
    if not match:
        return 0.0
    return float(match.group(0))


def print_summary(summary: ScheduleSummary, currency_symbol: str = "") -> None:
    """Print a summary of loan metrics in a human-readable format."""
    print("Summary")
    print("-" * 72)
    print(f"Monthly payment    : {format_currency(summary.monthly_payment, currency_symbol)}")
    print(f"Total interest     : {format_currency(summary.total_interest, currency_symbol)}")
    print(f"Total principal    : {format_currency(summary.total_principal, currency_symbol)}")
    if summary.total_extra_principal:
        print(f"Extra principal    : {format_currency(summary.total_extra_principal, currency_symbol)}")
    print(f"Total paid         : {format_currency(summary.total_paid, currency_symbol)}")
    print(f"Regular payments   : {summary.regular_payments}")
    if summary.extra_payments:
        print(f"Extra payments     : {summary.extra_payments}")
    if summary.first_payment_date:
        print(f"First payment      : {format_date(summary.first_payment_date)}")
    if summary.payoff_date:
        print(f"Payoff date        : {format_date(summary.payoff_date)}")
    print("-" * 72)


def print_schedule(
    schedule: Iterable[PaymentRecord],
    currency_symbol: str = "",
    property_name: Optional[str] = None,
) -> None:
    """Print the amortization schedule as a simple table.

    Extra-principal events have no month number and are shown as ``Extra``.
    """
    if property_name:
        print(property_name)
    headers = ["Month", "Date", "Payment", "Principal", "Interest", "Balance"]
    print("\t".join(headers))
    for record in schedule:
        row = [
            "Extra" if record.month is None else str(record.month),
            format_date(record.date),
            format_currency(record.payment, currency_symbol),
            format_currency(record.principal, currency_symbol),
            format_currency(record.interest, currency_symbol),
            format_currency(record.remaining_balance, currency_symbol),
        ]
        print("\t".join(row))
