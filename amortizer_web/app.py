"""Flask front end for the amortizer.

The scenario being edited (loan parameters, display settings and loan
updates) lives in the Flask session as a session envelope. Every request
regenerates the schedule from it, so adding or removing an update simply
replays the full update list again. Named scenarios can be saved to the
database-backed ``ScenarioStore`` and session files can be downloaded or
uploaded.
"""

import json
import logging
from typing import Any, Dict, List, Optional, Tuple
from uuid import uuid4

from flask import Flask, Response, redirect, render_template, request, session, url_for

from amortizer.config import get_config
from amortizer.data_models import PaymentRecord, SessionData
from amortizer.engine import build_schedule, summarize_schedule, visible_records
from amortizer.exceptions import AmortizerError, SessionFileError
from amortizer.formatter import format_currency, format_date, format_loan_amount, parse_loan_amount
from amortizer.session import DEFAULT_FILENAME, parse_session, session_from_dict, session_to_json
from amortizer.updates import LoanUpdateCollection
from amortizer.utils import parse_iso_date
from amortizer_web.scenario_store import create_store_from_env

logger = logging.getLogger(__name__)

SESSION_KEY = "loan_session"


def _ensure_user_token() -> str:
    token = session.get("user_token")
    if not token:
        token = uuid4().hex
        session["user_token"] = token
        session.modified = True
    return token


def _current_session() -> Optional[SessionData]:
    data = session.get(SESSION_KEY)
    if not data:
        return None
    try:
        return session_from_dict(data)
    except AmortizerError:
        logger.warning("Discarding invalid loan session stored in cookie")
        session.pop(SESSION_KEY, None)
        return None


def _store_session(data: SessionData) -> None:
    session[SESSION_KEY] = data.to_dict()
    session.modified = True


def _form_to_session(form, loan_updates) -> SessionData:
    """Build a validated session from the loan form."""
    try:
        rate = float(form.get("rate", "0") or 0)
        term = float(form.get("term", "0") or 0)
    except ValueError as exc:
        raise AmortizerError("Interest rate and term must be numbers") from exc
    data = SessionData(
        version=get_config().session.version,
        loan_amount=parse_loan_amount(form.get("principal", "")),
        interest_rate=rate,
        payment_term=term,
        start_date=form.get("start_date", "").strip(),
        currency_symbol=form.get("currency_symbol", "$"),
        hide_past_months=form.get("hide_past_months") == "1",
        property_name=form.get("property_name", "").strip(),
        loan_updates=list(loan_updates),
    )
    return session_from_dict(data.to_dict())


def _form_values(data: SessionData) -> Dict[str, Any]:
    return {
        "principal": format_loan_amount(data.loan_amount),
        "rate": data.interest_rate,
        "term": data.payment_term,
        "start_date": data.start_date,
        "currency_symbol": data.currency_symbol,
        "hide_past_months": "1" if data.hide_past_months else "",
        "property_name": data.property_name,
    }


def _schedule_for_view(data: SessionData) -> Tuple[Dict[str, Any], List[PaymentRecord]]:
    full_schedule = build_schedule(data.to_parameters(), data.loan_updates)
    summary = summarize_schedule(full_schedule).to_dict()
    shown = visible_records(full_schedule) if data.hide_past_months else full_schedule
    limit = get_config().web.preview_rows
    if len(shown) > limit and request.args.get("full") != "1":
        summary["truncated"] = len(shown) - limit
        shown = shown[:limit]
    return summary, shown


def create_app(database_url: Optional[str] = None) -> Flask:
    web_config = get_config().web
    app = Flask(__name__)
    app.config["ASSET_VERSION"] = web_config.asset_version
    app.config["MAX_CONTENT_LENGTH"] = get_config().session.max_file_size * 2
    app.secret_key = web_config.secret_key
    scenario_store = create_store_from_env(
        database_url or web_config.database_url, max_per_user=web_config.max_scenarios_per_user
    )
    app.extensions["scenario_store"] = scenario_store

    app.jinja_env.filters["currency"] = format_currency
    app.jinja_env.filters["pretty_date"] = format_date
    app.jinja_env.filters["loan_amount"] = format_loan_amount

    def render_index(error: Optional[str] = None, form_data: Optional[Dict[str, Any]] = None):
        user_token = _ensure_user_token()
        current = _current_session()
        summary = None
        schedule: List[PaymentRecord] = []
        if current is not None:
            summary, schedule = _schedule_for_view(current)
        return render_template(
            "index.html",
            loan=form_data or (_form_values(current) if current else {}),
            summary=summary,
            schedule=schedule,
            updates=current.loan_updates if current else [],
            currency_symbol=current.currency_symbol if current else "$",
            scenarios=scenario_store.list_scenarios(user_token),
            error=error,
            asset_version=app.config["ASSET_VERSION"],
        )

    @app.route("/", methods=["GET", "POST"])
    def index():
        if request.method == "GET":
            return render_index()
        current = _current_session()
        try:
            data = _form_to_session(request.form, current.loan_updates if current else [])
        except AmortizerError as exc:
            return render_index(error=exc.message, form_data=request.form.to_dict())
        _store_session(data)
        if request.form.get("action") == "save_scenario":
            name = request.form.get("scenario_name", "").strip() or data.property_name or "Scenario"
            scenario_store.add_scenario(_ensure_user_token(), uuid4().hex, name, data)
        return redirect(url_for("index"))

    @app.post("/updates/add")
    def add_update():
        current = _current_session()
        if current is None:
            return render_index(error="Calculate a schedule before adding loan updates")
        updates = LoanUpdateCollection(current.loan_updates)
        try:
            updates.add(
                principal_payment=parse_loan_amount(request.form.get("principal_payment", "")),
                new_interest_rate=float(request.form.get("new_interest_rate", "") or current.interest_rate),
                date=parse_iso_date(request.form.get("update_date", "")),
                update_type=request.form.get("update_type", "retain-term"),
            )
            current.loan_updates = updates.to_list()
            current = session_from_dict(current.to_dict())
        except ValueError as exc:
            return render_index(error=str(exc))
        _store_session(current)
        return redirect(url_for("index"))

    @app.post("/updates/remove")
    def remove_update():
        current = _current_session()
        if current is not None:
            updates = LoanUpdateCollection(current.loan_updates)
            try:
                updates.remove(request.form.get("update_id", ""))
            except AmortizerError as exc:
                return render_index(error=exc.message)
            current.loan_updates = updates.to_list()
            _store_session(current)
        return redirect(url_for("index"))

    @app.post("/updates/clear")
    def clear_updates():
        current = _current_session()
        if current is not None:
            current.loan_updates = []
            _store_session(current)
        return redirect(url_for("index"))

    @app.get("/session/download")
    def download_session():
        current = _current_session()
        if current is None:
            return redirect(url_for("index"))
        return Response(
            session_to_json(current),
            mimetype="application/json",
            headers={"Content-Disposition": f"attachment; filename={DEFAULT_FILENAME}"},
        )

    @app.post("/session/upload")
    def upload_session():
        upload = request.files.get("session_file")
        try:
            if upload is None or not upload.filename:
                raise SessionFileError("Please select a JSON file.")
            if upload.mimetype != "application/json" and not upload.filename.lower().endswith(".json"):
                raise SessionFileError("Invalid file type. Please select a JSON file.")
            content = upload.read(get_config().session.max_file_size + 1)
            if len(content) > get_config().session.max_file_size:
                raise SessionFileError("File size exceeds maximum allowed size of 1MB.")
            if not content:
                raise SessionFileError("File is empty.")
            try:
                text = content.decode("utf-8")
            except UnicodeDecodeError as exc:
                raise SessionFileError(
                    "An error occurred while reading the file. Please try again.", str(exc)
                ) from exc
            data = parse_session(text)
        except AmortizerError as exc:
            logger.info("Rejected uploaded session file: %s", exc.message)
            return render_index(error=exc.message)
        _store_session(data)
        return redirect(url_for("index"))

    @app.post("/scenarios/open")
    def open_scenario():
        data = scenario_store.get_scenario(session.get("user_token"), request.form.get("scenario_id", ""))
        if data is not None:
            _store_session(data)
        return redirect(url_for("index"))

    @app.post("/scenarios/remove")
    def remove_scenario():
        scenario_store.remove_scenario(session.get("user_token"), request.form.get("scenario_id"))
        return redirect(url_for("index"))

    @app.post("/scenarios/clear")
    def clear_scenarios():
        scenario_store.clear_scenarios(session.get("user_token"))
        return redirect(url_for("index"))

    @app.get("/api/schedule")
    def schedule_json():
        current = _current_session()
        if current is None:
            return Response("null", mimetype="application/json")
        full_schedule = build_schedule(current.to_parameters(), current.loan_updates)
        payload = {
            "summary": summarize_schedule(full_schedule).to_dict(),
            "schedule": [record.to_dict() for record in full_schedule],
        }
        return Response(json.dumps(payload), mimetype="application/json")

    return app


if __name__ == "__main__":
    logging.basicConfig(level=get_config().log_level)
    print("Starting Amortizer web app...")
    create_app().run(host="0.0.0.0", port=8710, debug=True)
