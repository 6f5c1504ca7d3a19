import io
import json

import pytest

from amortizer_web.app import SESSION_KEY, create_app

LOAN_FORM = {
    "principal": "100,000",
    "rate": "5",
    "term": "30",
    "start_date": "2024-01-01",
    "currency_symbol": "$",
    "property_name": "Maple Street",
    "action": "run",
}


@pytest.fixture
def app():
    app = create_app(database_url="sqlite://")
    app.config["TESTING"] = True
    return app


@pytest.fixture
def client(app):
    return app.test_client()


def _schedule(client):
    response = client.get("/api/schedule")
    assert response.status_code == 200
    return json.loads(response.data)


def test_index_renders_empty_form(client):
    response = client.get("/")
    assert response.status_code == 200
    assert b"Amortization Schedule" in response.data
    assert _schedule(client) is None


def test_calculate_schedule(client):
    response = client.post("/", data=LOAN_FORM)
    assert response.status_code == 302
    page = client.get("/").data.decode("utf-8")
    assert "$536.82" in page
    assert "Maple Street" in page
    data = _schedule(client)
    assert data["summary"]["regular_payments"] == 360
    assert len(data["schedule"]) == 360


def test_invalid_form_shows_error(client):
    response = client.post("/", data={**LOAN_FORM, "term": "0"})
    assert response.status_code == 200
    assert b"Payment term must be greater than 0" in response.data


def test_add_remove_and_clear_updates(client):
    client.post("/", data=LOAN_FORM)
    update = {
        "update_date": "2024-12-01",
        "principal_payment": "10,000",
        "new_interest_rate": "4.5",
        "update_type": "retain-term",
    }
    assert client.post("/updates/add", data=update).status_code == 302
    assert client.post("/updates/add", data={**update, "update_date": "2026-06-15"}).status_code == 302
    assert _schedule(client)["summary"]["extra_payments"] == 2

    with client.session_transaction() as sess:
        first_id = sess[SESSION_KEY]["loanUpdates"][0]["id"]
    client.post("/updates/remove", data={"update_id": first_id})
    data = _schedule(client)
    assert data["summary"]["extra_payments"] == 1
    extras = [row for row in data["schedule"] if "month" not in row]
    assert extras[0]["date"] == "2026-06-15"

    client.post("/updates/clear")
    assert _schedule(client)["summary"]["extra_payments"] == 0


def test_add_update_requires_schedule(client):
    response = client.post(
        "/updates/add",
        data={"update_date": "2024-12-01", "principal_payment": "100", "update_type": "retain-term"},
    )
    assert b"Calculate a schedule before adding loan updates" in response.data


def test_add_update_rejects_bad_date(client):
    client.post("/", data=LOAN_FORM)
    response = client.post(
        "/updates/add",
        data={"update_date": "someday", "principal_payment": "100", "update_type": "retain-term"},
    )
    assert response.status_code == 200
    assert b"Invalid date string" in response.data


def test_download_and_upload_session(client, app):
    client.post("/", data=LOAN_FORM)
    client.post(
        "/updates/add",
        data={
            "update_date": "2025-03-01",
            "principal_payment": "5000",
            "new_interest_rate": "4",
            "update_type": "retain-payment",
        },
    )
    response = client.get("/session/download")
    assert response.mimetype == "application/json"
    assert "attachment" in response.headers["Content-Disposition"]
    envelope = json.loads(response.data)
    assert envelope["loanAmount"] == 100000.0
    assert len(envelope["loanUpdates"]) == 1

    other = app.test_client()
    response = other.post(
        "/session/upload",
        data={"session_file": (io.BytesIO(response.data), "session.json")},
        content_type="multipart/form-data",
    )
    assert response.status_code == 302
    assert _schedule(other)["summary"]["extra_payments"] == 1


def test_upload_rejects_invalid_files(client):
    response = client.post(
        "/session/upload",
        data={"session_file": (io.BytesIO(b"{broken"), "session.json")},
        content_type="multipart/form-data",
    )
    assert b"Invalid JSON format" in response.data

    response = client.post(
        "/session/upload",
        data={"session_file": (io.BytesIO(b"hello"), "notes.txt")},
        content_type="multipart/form-data",
    )
    assert b"Invalid file type" in response.data

    response = client.post(
        "/session/upload",
        data={"session_file": (io.BytesIO(b""), "session.json")},
        content_type="multipart/form-data",
    )
    assert b"File is empty" in response.data


def test_saved_scenarios(client, app):
    client.post("/", data={**LOAN_FORM, "action": "save_scenario", "scenario_name": "Plan A"})
    store = app.extensions["scenario_store"]
    with client.session_transaction() as sess:
        token = sess["user_token"]
    scenarios = store.list_scenarios(token)
    assert [s["name"] for s in scenarios] == ["Plan A"]
    assert b"Plan A" in client.get("/").data

    client.post("/updates/clear")
    client.post("/", data={**LOAN_FORM, "principal": "50,000"})
    client.post("/scenarios/open", data={"scenario_id": scenarios[0]["id"]})
    assert _schedule(client)["schedule"][0]["payment"] == 536.82

    client.post("/scenarios/remove", data={"scenario_id": scenarios[0]["id"]})
    assert store.list_scenarios(token) == []

    client.post("/", data={**LOAN_FORM, "action": "save_scenario"})
    client.post("/scenarios/clear")
    assert store.list_scenarios(token) == []
