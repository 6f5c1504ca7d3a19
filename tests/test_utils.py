from datetime import date, datetime

import pytest

from amortizer.utils import add_months, parse_iso_date, round_money, to_date


def test_add_months_clamps_day():
    assert add_months(date(2024, 1, 31), 1) == date(2024, 2, 29)
    assert add_months(date(2023, 1, 31), 1) == date(2023, 2, 28)
    assert add_months(date(2024, 11, 15), 3) == date(2025, 2, 15)
    assert add_months(date(2024, 5, 10), 0) == date(2024, 5, 10)


def test_round_money_rounds_half_away_from_zero():
    assert round_money(416.6666666) == 416.67
    assert round_money(0.125) == 0.13
    assert round_money(-0.125) == -0.13
    assert round_money(0) == 0


def test_parse_iso_date():
    assert parse_iso_date("2024-02-29") == date(2024, 2, 29)
    with pytest.raises(ValueError):
        parse_iso_date("2023-02-29")
    with pytest.raises(ValueError):
        parse_iso_date("02/01/2024")


def test_to_date_truncates_time():
    assert to_date(datetime(2024, 3, 5, 17, 30)) == date(2024, 3, 5)
    assert to_date("2024-03-05") == date(2024, 3, 5)
