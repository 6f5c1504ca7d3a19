"""Command-line interface for the amortizer.

This module uses the ``click`` library to implement a multi-command
interface. Users can compute full amortization schedules with loan updates
applied, view summaries, and save or reload a scenario as a session file.
Results can be printed to the terminal or exported to JSON/CSV files.
"""

from __future__ import annotations

import csv
import json
import logging
from datetime import date
from pathlib import Path
from typing import Any, Dict, List, Optional, Tuple

import click

from .config import get_config
from .data_models import UPDATE_TYPES, LoanUpdate, PaymentRecord, SessionData
from .engine import build_schedule, summarize_schedule, visible_records
from .exceptions import AmortizerError
from .formatter import print_schedule, print_summary
from .session import load_session_file, save_session_file, session_from_dict
from .updates import LoanUpdateCollection
from .utils import parse_iso_date

logger = logging.getLogger(__name__)

MAX_PRINTED_ROWS = 120


def parse_amount(value: str) -> float:
    """Parse a numeric string with optional suffixes.

    Accepts plain floats ("500000") and shorthand with ``k``/``m`` suffixes
    (e.g., "500k" meaning 500_000). Returns a float.
    """
    value = value.strip().lower()
    value = value.replace(",", "")
    factor = 1.0
    if value.endswith("k"):
        factor = 1_000.0
        value = value[:-1]
    elif value.endswith("m"):
        factor = 1_000_000.0
        value = value[:-1]
    try:
        return float(value) * factor
    except ValueError:
        raise click.BadParameter(f"Invalid amount: {value}")


def parse_update_strings(values: Tuple[str, ...]) -> List[LoanUpdate]:
    """Parse ``YYYY-MM-DD:AMOUNT:RATE:TYPE`` strings into loan updates.

    Updates keep the order they were given on the command line.
    """
    collection = LoanUpdateCollection()
    for item in values:
        parts = item.split(":")
        if len(parts) != 4:
            raise click.BadParameter(
                f"Update must be in YYYY-MM-DD:AMOUNT:RATE:TYPE format; got {item}"
            )
        date_str, amount_str, rate_str, typ = parts
        try:
            dt = parse_iso_date(date_str)
        except ValueError as exc:
            raise click.BadParameter(str(exc))
        try:
            rate = float(rate_str.strip().rstrip("%"))
        except ValueError:
            raise click.BadParameter(f"Invalid interest rate: {rate_str}")
        typ = typ.lower()
        if typ not in UPDATE_TYPES:
            raise click.BadParameter(
                f"Update type must be 'retain-term' or 'retain-payment'; got {typ}"
            )
        try:
            collection.add(parse_amount(amount_str), rate, dt, typ)
        except ValueError as exc:
            raise click.BadParameter(str(exc))
    return collection.to_list()


def build_session_from_options(
    principal: str,
    rate: float,
    term: float,
    start_date: str,
    update: Tuple[str, ...] = (),
    currency: str = "$",
    hide_past_months: bool = False,
    property_name: str = "",
) -> SessionData:
    """Collect command line options into a validated ``SessionData``."""
    session = SessionData(
        version=get_config().session.version,
        loan_amount=parse_amount(principal),
        interest_rate=rate,
        payment_term=term,
        start_date=start_date,
        currency_symbol=currency,
        hide_past_months=hide_past_months,
        property_name=property_name,
        loan_updates=parse_update_strings(update),
    )
    try:
        return session_from_dict(session.to_dict())
    except AmortizerError as exc:
        raise click.BadParameter(exc.message)


def schedule_for_session(session: SessionData, today: Optional[date] = None) -> List[PaymentRecord]:
    schedule = build_schedule(session.to_parameters(), session.loan_updates)
    if session.hide_past_months:
        schedule = visible_records(schedule, today)
    return schedule


def export_to_json(path: Path, schedule: List[PaymentRecord], summary: Dict[str, Any]) -> None:
    """Export schedule and summary to a JSON file."""
    data = {"summary": summary, "schedule": [record.to_dict() for record in schedule]}
    with path.open("w", encoding="utf-8") as f:
        json.dump(data, f, indent=2)


def export_to_csv(path: Path, schedule: List[PaymentRecord]) -> None:
    """Export schedule to a CSV file. Extra payments have an empty month."""
    header = ["Month", "Date", "Payment", "Interest", "Principal", "Remaining_Balance"]
    with path.open("w", newline="", encoding="utf-8") as f:
        writer = csv.writer(f)
        writer.writerow(header)
        for record in schedule:
            writer.writerow(
                [
                    "" if record.month is None else record.month,
                    record.date.isoformat(),
                    record.payment,
                    record.interest,
                    record.principal,
                    record.remaining_balance,
                ]
            )


def _output_schedule(session: SessionData, output: Optional[str]) -> None:
    schedule_records = schedule_for_session(session)
    summary_data = summarize_schedule(schedule_records)
    if output:
        path = Path(output)
        if path.suffix.lower() == ".json":
            export_to_json(path, schedule_records, summary_data.to_dict())
        elif path.suffix.lower() == ".csv":
            export_to_csv(path, schedule_records)
        else:
            raise click.BadParameter("Unsupported output format; use .json or .csv")
        click.echo(f"Schedule exported to {path}")
        return
    print_summary(summary_data, session.currency_symbol)
    # Limit schedule length printed to avoid flooding the terminal
    if len(schedule_records) > MAX_PRINTED_ROWS:
        click.echo(
            f"Schedule has {len(schedule_records)} rows; showing first {MAX_PRINTED_ROWS} rows."
        )
        schedule_records = schedule_records[:MAX_PRINTED_ROWS]
    print_schedule(schedule_records, session.currency_symbol, session.property_name)


def loan_options(func):
    """Attach the options describing a loan and its updates to a command."""
    options = [
        click.option("--principal", "-p", "principal", required=True, help="Loan amount"),
        click.option("--rate", "-r", "rate", required=True, type=float, help="Annual interest rate (percent)"),
        click.option("--term", "-t", "term", required=True, type=float, help="Loan term in years"),
        click.option("--start-date", "-s", "start_date", required=True, help="First payment date (YYYY-MM-DD)"),
        click.option(
            "--update",
            "update",
            multiple=True,
            help="Loan update in YYYY-MM-DD:AMOUNT:RATE:TYPE format, TYPE is retain-term or retain-payment",
        ),
        click.option("--currency", "currency", default="$", show_default=True, help="Currency symbol"),
        click.option("--hide-past-months", "hide_past_months", is_flag=True, help="Only show payments from this month on"),
    ]
    for option in reversed(options):
        func = option(func)
    return func


@click.group()
@click.option(
    "--log-level",
    "log_level",
    type=click.Choice(["DEBUG", "INFO", "WARNING", "ERROR"], case_sensitive=False),
    default=None,
    help="Logging level (defaults to AMORTIZER_LOG_LEVEL or WARNING)",
)
def cli(log_level: Optional[str]) -> None:
    """A command-line amortization calculator with mid-stream loan updates."""
    logging.basicConfig(
        level=(log_level or get_config().log_level).upper(),
        format="%(asctime)s %(levelname)s %(name)s: %(message)s",
    )


@cli.command()
@loan_options
@click.option("--output", "output", type=str, help="Output file path (.json or .csv)")
def schedule(
    principal: str,
    rate: float,
    term: float,
    start_date: str,
    update: Tuple[str, ...],
    currency: str,
    hide_past_months: bool,
    output: Optional[str],
) -> None:
    """Compute and print the full amortization schedule."""
    session = build_session_from_options(
        principal, rate, term, start_date, update, currency, hide_past_months
    )
    _output_schedule(session, output)


@cli.command()
@loan_options
@click.option("--output", "output", type=str, help="Output file path (.json)")
def summary(
    principal: str,
    rate: float,
    term: float,
    start_date: str,
    update: Tuple[str, ...],
    currency: str,
    hide_past_months: bool,
    output: Optional[str],
) -> None:
    """Compute and print only the summary metrics for a loan."""
    session = build_session_from_options(
        principal, rate, term, start_date, update, currency, hide_past_months
    )
    summary_data = summarize_schedule(schedule_for_session(session))
    if output:
        path = Path(output)
        if path.suffix.lower() != ".json":
            raise click.BadParameter("Summary export must use .json extension")
        with path.open("w", encoding="utf-8") as f:
            json.dump({"summary": summary_data.to_dict()}, f, indent=2)
        click.echo(f"Summary exported to {path}")
    else:
        print_summary(summary_data, session.currency_symbol)


@cli.command("save-session")
@click.argument("path", type=click.Path(dir_okay=False))
@loan_options
@click.option("--property-name", "property_name", default="", help="Name of the financed property")
def save_session(
    path: str,
    principal: str,
    rate: float,
    term: float,
    start_date: str,
    update: Tuple[str, ...],
    currency: str,
    hide_past_months: bool,
    property_name: str,
) -> None:
    """Save loan parameters and updates to a session file."""
    if Path(path).suffix.lower() != ".json":
        raise click.BadParameter("Session files must use .json extension")
    session = build_session_from_options(
        principal, rate, term, start_date, update, currency, hide_past_months, property_name
    )
    written = save_session_file(path, session)
    click.echo(f"Session saved to {written}")


@cli.command("load-session")
@click.argument("path", type=click.Path(dir_okay=False))
@click.option("--output", "output", type=str, help="Output file path (.json or .csv)")
def load_session(path: str, output: Optional[str]) -> None:
    """Load a session file and print its schedule."""
    try:
        session = load_session_file(path)
    except AmortizerError as exc:
        raise click.ClickException(str(exc))
    logger.info("Loaded session %s with %d update(s)", path, len(session.loan_updates))
    _output_schedule(session, output)


if __name__ == "__main__":
    cli()
