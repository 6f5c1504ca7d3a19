import csv
import json

import pytest
from click.testing import CliRunner

from amortizer.main import cli, parse_amount, parse_update_strings

LOAN_ARGS = ["-p", "100k", "-r", "5", "-t", "30", "-s", "2024-01-01"]


@pytest.fixture
def runner():
    return CliRunner()


def test_parse_amount_suffixes():
    assert parse_amount("500k") == 500_000
    assert parse_amount("1.5m") == 1_500_000
    assert parse_amount("12,000") == 12_000


def test_parse_update_strings():
    updates = parse_update_strings(("2024-12-01:10k:4.5:retain-term", "2026-01-15:2500:4%:retain-payment"))
    assert [u.principal_payment for u in updates] == [10_000, 2_500]
    assert [u.new_interest_rate for u in updates] == [4.5, 4.0]
    assert updates[1].update_type == "retain-payment"


def test_schedule_prints_summary_and_rows(runner):
    result = runner.invoke(cli, ["schedule", "-p", "12000", "-r", "0", "-t", "1", "-s", "2024-01-01"])
    assert result.exit_code == 0, result.output
    assert "Monthly payment    : $1,000.00" in result.output
    assert "Dec 1, 2024" in result.output


def test_schedule_truncates_long_output(runner):
    result = runner.invoke(cli, ["schedule", *LOAN_ARGS])
    assert result.exit_code == 0, result.output
    assert "Schedule has 360 rows; showing first 120 rows." in result.output


def test_schedule_json_export_with_update(runner, tmp_path):
    out = tmp_path / "schedule.json"
    result = runner.invoke(
        cli,
        ["schedule", *LOAN_ARGS, "--update", "2024-12-01:10000:4.5:retain-term", "--output", str(out)],
    )
    assert result.exit_code == 0, result.output
    data = json.loads(out.read_text(encoding="utf-8"))
    extras = [row for row in data["schedule"] if "month" not in row]
    assert len(extras) == 1
    assert extras[0]["date"] == "2024-12-01"
    assert data["summary"]["regular_payments"] == 360
    assert data["summary"]["extra_payments"] == 1


def test_schedule_csv_export(runner, tmp_path):
    out = tmp_path / "schedule.csv"
    result = runner.invoke(cli, ["schedule", *LOAN_ARGS, "--output", str(out)])
    assert result.exit_code == 0, result.output
    with out.open(newline="", encoding="utf-8") as f:
        rows = list(csv.reader(f))
    assert rows[0][0] == "Month"
    assert rows[1][:3] == ["1", "2024-01-01", "536.82"]
    assert len(rows) == 361


def test_schedule_rejects_unknown_extension(runner, tmp_path):
    result = runner.invoke(cli, ["schedule", *LOAN_ARGS, "--output", str(tmp_path / "out.xlsx")])
    assert result.exit_code != 0


def test_bad_update_is_a_usage_error(runner):
    result = runner.invoke(cli, ["schedule", *LOAN_ARGS, "--update", "2024-12-01:10000:4.5"])
    assert result.exit_code == 2
    assert "YYYY-MM-DD:AMOUNT:RATE:TYPE" in result.output


def test_out_of_range_loan_is_rejected(runner):
    result = runner.invoke(cli, ["schedule", "-p", "0", "-r", "5", "-t", "30", "-s", "2024-01-01"])
    assert result.exit_code == 2
    assert "Loan amount" in result.output


def test_summary_json(runner, tmp_path):
    out = tmp_path / "summary.json"
    result = runner.invoke(cli, ["summary", *LOAN_ARGS, "--output", str(out)])
    assert result.exit_code == 0, result.output
    data = json.loads(out.read_text(encoding="utf-8"))
    assert data["summary"]["monthly_payment"] == 536.82
    assert data["summary"]["payoff_date"] == "2053-12-01"


def test_save_and_load_session(runner, tmp_path):
    session_path = tmp_path / "session.json"
    result = runner.invoke(
        cli,
        [
            "save-session",
            str(session_path),
            *LOAN_ARGS,
            "--update",
            "2024-12-01:10000:4.5:retain-payment",
            "--property-name",
            "Maple Street",
        ],
    )
    assert result.exit_code == 0, result.output
    saved = json.loads(session_path.read_text(encoding="utf-8"))
    assert saved["version"] == 1
    assert saved["propertyName"] == "Maple Street"
    assert saved["loanUpdates"][0]["updateType"] == "retain-payment"
    assert "schedule" not in saved

    out = tmp_path / "loaded.json"
    result = runner.invoke(cli, ["load-session", str(session_path), "--output", str(out)])
    assert result.exit_code == 0, result.output
    data = json.loads(out.read_text(encoding="utf-8"))
    assert data["summary"]["extra_payments"] == 1
    assert data["summary"]["regular_payments"] < 360


def test_load_session_reports_invalid_file(runner, tmp_path):
    path = tmp_path / "broken.json"
    path.write_text('{"version": 1}', encoding="utf-8")
    result = runner.invoke(cli, ["load-session", str(path)])
    assert result.exit_code == 1
    assert "Invalid session file structure" in result.output
