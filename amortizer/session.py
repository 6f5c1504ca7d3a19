"""Saving and loading amortization sessions.

A session is a versioned JSON envelope holding the loan parameters, display
settings and the list of loan updates. The derived schedule is never saved;
callers regenerate it from the parameters after loading. Incoming data is
checked in two passes: ``validate_session_data`` checks the shape and types,
``validate_session_values`` checks that the values are in a sensible range.
"""

from __future__ import annotations

import json
import logging
import re
from pathlib import Path
from typing import Any, Dict, List, Optional, Union

from .config import get_config
from .data_models import UPDATE_TYPES, LoanUpdate, SessionData
from .exceptions import SessionFileError, SessionValidationError
from .utils import parse_iso_date

logger = logging.getLogger(__name__)

DEFAULT_FILENAME = "amortization-session.json"

_DATE_RE = re.compile(r"^\d{4}-\d{2}-\d{2}$")

_REQUIRED_KEYS = (
    "version",
    "loanAmount",
    "interestRate",
    "paymentTerm",
    "startDate",
    "currencySymbol",
    "hidePastMonths",
    "propertyName",
)

_UPDATE_KEYS = ("id", "principalPayment", "newInterestRate", "date", "updateType")


def _is_number(value: Any) -> bool:
    # bool is an int subclass and NaN is a float; neither counts as a number here.
    if isinstance(value, bool) or not isinstance(value, (int, float)):
        return False
    return value == value


def _is_integer(value: Any) -> bool:
    return _is_number(value) and float(value).is_integer()


def _is_valid_update(entry: Any) -> bool:
    if not isinstance(entry, dict):
        return False
    if any(key not in entry for key in _UPDATE_KEYS):
        return False
    return (
        isinstance(entry["id"], str)
        and _is_number(entry["principalPayment"])
        and _is_number(entry["newInterestRate"])
        and isinstance(entry["date"], str)
        and entry["updateType"] in UPDATE_TYPES
    )


def validate_session_data(data: Any) -> bool:
    """Return True when ``data`` has the structure of a session envelope."""
    if not isinstance(data, dict):
        return False
    if any(key not in data for key in _REQUIRED_KEYS):
        return False
    if not _is_integer(data["version"]):
        return False
    for key in ("loanAmount", "interestRate", "paymentTerm"):
        if not _is_number(data[key]):
            return False
    if not isinstance(data["startDate"], str):
        return False
    if not isinstance(data["currencySymbol"], str):
        return False
    if not isinstance(data["hidePastMonths"], bool):
        return False
    if not isinstance(data["propertyName"], str):
        return False
    updates = data.get("loanUpdates", [])
    if not isinstance(updates, list):
        return False
    return all(_is_valid_update(entry) for entry in updates)


def _check_date(value: str, label: str) -> Optional[str]:
    if not _DATE_RE.match(value):
        return f"{label} must be in YYYY-MM-DD format"
    try:
        parse_iso_date(value)
    except ValueError:
        return f"{label} must be a valid date"
    return None


def validate_session_values(data: Dict[str, Any]) -> Optional[str]:
    """Return an error message when a value is out of range, else ``None``.

    ``data`` must already have passed ``validate_session_data``.
    """
    limits = get_config().session
    if data["loanAmount"] <= 0 or data["loanAmount"] > limits.max_loan_amount:
        return "Loan amount must be greater than 0 and less than 1,000,000,000,000,000"
    if data["interestRate"] < 0 or data["interestRate"] > limits.max_interest_rate:
        return "Interest rate must be between 0 and 1000%"
    if data["paymentTerm"] <= 0 or data["paymentTerm"] > limits.max_term_years:
        return "Payment term must be greater than 0 and less than 1000 years"
    if data["paymentTerm"] * 12 < 1:
        return "Payment term must cover at least one month"
    error = _check_date(data["startDate"], "Start date")
    if error:
        return error
    if len(data["propertyName"]) > limits.max_property_name_length:
        return "Property name must be 100 characters or less"
    if len(data["currencySymbol"]) > limits.max_currency_symbol_length:
        return "Currency symbol must be 5 characters or less"
    for entry in data.get("loanUpdates", []):
        if entry["principalPayment"] <= 0:
            return "Loan update principal payment must be greater than 0"
        if entry["newInterestRate"] < 0 or entry["newInterestRate"] > limits.max_interest_rate:
            return "Loan update interest rate must be between 0 and 1000%"
        error = _check_date(entry["date"], "Loan update date")
        if error:
            return error
    return None


def session_from_dict(data: Any) -> SessionData:
    """Validate a decoded envelope and build a ``SessionData`` from it."""
    if not validate_session_data(data):
        raise SessionValidationError("Invalid session file structure")
    error = validate_session_values(data)
    if error:
        raise SessionValidationError(error)
    updates: List[LoanUpdate] = [LoanUpdate.from_dict(entry) for entry in data.get("loanUpdates", [])]
    return SessionData(
        version=int(data["version"]),
        loan_amount=float(data["loanAmount"]),
        interest_rate=float(data["interestRate"]),
        payment_term=float(data["paymentTerm"]),
        start_date=data["startDate"],
        currency_symbol=data["currencySymbol"],
        hide_past_months=data["hidePastMonths"],
        property_name=data["propertyName"],
        loan_updates=updates,
    )


def parse_session(text: str) -> SessionData:
    """Decode a JSON document and validate it as a session."""
    try:
        data = json.loads(text)
    except json.JSONDecodeError as exc:
        raise SessionValidationError(
            "Invalid JSON format. Please check the file and try again.", str(exc)
        ) from exc
    return session_from_dict(data)


def session_to_json(session: SessionData) -> str:
    return json.dumps(session.to_dict(), indent=2)


def validate_session_file(path: Union[str, Path]) -> Optional[str]:
    """Return an error message when ``path`` cannot be loaded as a session."""
    path = Path(path)
    if path.suffix.lower() != ".json":
        return "Invalid file type. Please select a JSON file."
    if not path.is_file():
        return "File not found."
    size = path.stat().st_size
    if size > get_config().session.max_file_size:
        return "File size exceeds maximum allowed size of 1MB."
    if size == 0:
        return "File is empty."
    return None


def load_session_file(path: Union[str, Path]) -> SessionData:
    """Read, decode and validate a session file."""
    error = validate_session_file(path)
    if error:
        logger.info("Rejected session file %s: %s", path, error)
        raise SessionFileError(error)
    try:
        text = Path(path).read_text(encoding="utf-8")
    except (OSError, UnicodeDecodeError) as exc:
        raise SessionFileError(
            "An error occurred while reading the file. Please try again.", str(exc)
        ) from exc
    return parse_session(text)


def save_session_file(path: Union[str, Path], session: SessionData) -> Path:
    path = Path(path)
    with path.open("w", encoding="utf-8") as f:
        f.write(session_to_json(session))
    return path
