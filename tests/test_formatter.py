from datetime import date

import pytest

from amortizer.engine import generate_schedule, summarize_schedule
from amortizer.formatter import (
    format_currency,
    format_date,
    format_loan_amount,
    parse_loan_amount,
    print_schedule,
    print_summary,
)


def test_format_currency():
    assert format_currency(1234.5, "$") == "$1,234.50"
    assert format_currency(0, "€") == "€0.00"
    assert format_currency(1_000_000, "") == "1,000,000.00"


def test_format_date():
    assert format_date(date(2024, 1, 1)) == "Jan 1, 2024"
    assert format_date(date(2031, 12, 25)) == "Dec 25, 2031"


@pytest.mark.parametrize(
    "value, expected",
    [
        (0, "0"),
        (100000.0, "100,000"),
        (1234.5, "1,234.5"),
        (999, "999"),
        (float("nan"), "0"),
    ],
)
def test_format_loan_amount(value, expected):
    assert format_loan_amount(value) == expected


@pytest.mark.parametrize(
    "text, expected",
    [
        ("250,000", 250000.0),
        ("1,234.56", 1234.56),
        ("12abc", 12.0),
        ("abc", 0.0),
        ("", 0.0),
    ],
)
def test_parse_loan_amount(text, expected):
    assert parse_loan_amount(text) == expected


def test_print_schedule_marks_extra_payments(capsys):
    schedule = generate_schedule(12_000, 0, 1, date(2024, 1, 1))
    print_schedule(schedule[:2], "$", property_name="Cabin")
    out = capsys.readouterr().out.splitlines()
    assert out[0] == "Cabin"
    assert out[1].split("\t")[0] == "Month"
    assert out[2].split("\t") == ["1", "Jan 1, 2024", "$1,000.00", "$1,000.00", "$0.00", "$11,000.00"]


def test_print_summary(capsys):
    summary = summarize_schedule(generate_schedule(12_000, 0, 1, date(2024, 1, 1)))
    print_summary(summary, "$")
    out = capsys.readouterr().out
    assert "Monthly payment    : $1,000.00" in out
    assert "Regular payments   : 12" in out
    assert "Payoff date        : Dec 1, 2024" in out
    assert "Extra payments" not in out
