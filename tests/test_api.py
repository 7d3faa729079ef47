import base64
import hashlib
import hmac
import io
import json
import sqlite3
import threading
import time
import uuid

import pandas as pd
import pytest
from fastapi.testclient import TestClient
from sqlalchemy.engine import make_url

from conftest import FakeChannel, wait_until
from surveydesk.core.security import issue_admin_token, sign_token, verify_token
from surveydesk.main import create_app


def _submission(survey_id, phone="010-1234-5678", name="Kim"):
    return {
        "surveyId": survey_id,
        "name": name,
        "phone": phone,
        "answers": [
            {"questionText": "Rate the event", "value": "5"},
            {"questionText": "How did you hear about us?", "value": "Friend"},
        ],
    }


def test_health(client):
    assert client.get("/health").json() == {"status": "ok"}


def test_public_survey_read(client, survey):
    resp = client.get(f"/api/surveys/{survey.survey_id}")

    assert resp.status_code == 200
    body = resp.json()
    assert body["title"] == "Customer feedback"
    assert [q["kind"] for q in body["questions"]] == ["choice", "rating", "text"]

    assert client.get(f"/api/surveys/{uuid.uuid4()}").status_code == 404


def test_submit_and_notify(client, survey, notify_channel):
    resp = client.post("/api/responses", json=_submission(survey.survey_id))

    assert resp.status_code == 201
    body = resp.json()
    assert body["survey_id"] == survey.survey_id
    assert body["response_id"]

    assert wait_until(lambda: len(notify_channel.messages) == 1)
    assert "Customer feedback" in notify_channel.messages[0]


def test_duplicate_submission_is_409_and_not_announced(client, survey, notify_channel):
    assert client.post("/api/responses", json=_submission(survey.survey_id)).status_code == 201

    resp = client.post("/api/responses", json=_submission(survey.survey_id, phone="01012345678", name="Again"))

    assert resp.status_code == 409
    assert resp.json()["detail"]["code"] == "duplicate_submission"
    assert wait_until(lambda: len(notify_channel.messages) == 1)
    time.sleep(0.1)
    assert len(notify_channel.messages) == 1


def test_unknown_survey_is_404(client, notify_channel):
    resp = client.post("/api/responses", json=_submission(str(uuid.uuid4())))

    assert resp.status_code == 404
    assert resp.json()["detail"]["code"] == "not_found"
    time.sleep(0.1)
    assert notify_channel.messages == []


@pytest.mark.parametrize("body", [
    {"name": "Kim", "phone": "0101234567", "answers": []},
    {"surveyId": "x", "name": "Kim\x07", "phone": "0101234567", "answers": []},
    {"surveyId": "x", "name": "Kim", "phone": "0101234567", "answers": [{"questionText": "Q", "value": "a\x1fb"}]},
    {"surveyId": "x", "phone": "0101234567", "answers": []},
    {"surveyId": "x", "name": "Kim", "answers": []},
    {"surveyId": "x", "name": "Kim", "phone": "0101234567", "answers": [{"questionText": "Q"}]},
])
def test_malformed_submission_is_422(client, body):
    assert client.post("/api/responses", json=body).status_code == 422


def test_snake_case_body_is_accepted(client, survey):
    body = {
        "survey_id": survey.survey_id,
        "name": "Park",
        "phone": "01077778888",
        "answers": [{"question_text": "Anything else?", "value": "no"}],
    }

    assert client.post("/api/responses", json=body).status_code == 201


def test_numeric_answer_value_is_accepted(client, survey):
    body = _submission(survey.survey_id)
    body["answers"] = [{"questionText": "Rate the event", "value": 4}]

    assert client.post("/api/responses", json=body).status_code == 201


def test_waiting_on_a_locked_store_does_not_block_other_requests(client, settings, survey):
    lock = sqlite3.connect(make_url(settings.DATABASE_URL).database, isolation_level=None)
    lock.execute("BEGIN IMMEDIATE")
    results = {}

    def submit():
        results["status"] = client.post("/api/responses", json=_submission(survey.survey_id)).status_code

    worker = threading.Thread(target=submit)
    try:
        worker.start()
        time.sleep(0.3)
        started = time.monotonic()
        health = client.get("/health")
        elapsed = time.monotonic() - started
        assert "status" not in results
    finally:
        lock.execute("ROLLBACK")
        lock.close()
        worker.join(timeout=10)

    assert health.status_code == 200
    assert elapsed < 1.0
    assert results["status"] == 201


def test_notification_failure_does_not_affect_submitter(settings, survey, report_channel):
    broken = FakeChannel(error=RuntimeError("bot blocked"))
    with TestClient(create_app(settings, notify_channel=broken, report_channel=report_channel)) as c:
        resp = c.post("/api/responses", json=_submission(survey.survey_id))
    assert resp.status_code == 201


def test_slow_notification_does_not_delay_submitter(settings, survey, report_channel):
    slow = FakeChannel(delay=3.0)
    with TestClient(create_app(settings, notify_channel=slow, report_channel=report_channel)) as c:
        started = time.monotonic()
        resp = c.post("/api/responses", json=_submission(survey.survey_id))
        elapsed = time.monotonic() - started
    assert resp.status_code == 201
    assert elapsed < 1.0


def test_admin_endpoints_require_token(client, survey):
    assert client.get("/api/surveys").status_code == 401
    assert client.get(f"/api/surveys/{survey.survey_id}/export").status_code == 401
    assert client.delete(f"/api/surveys/{survey.survey_id}").status_code == 401

    respondent = sign_token({"role": "respondent"}, "test-secret", 60)
    headers = {"Authorization": f"Bearer {respondent}"}
    assert client.get("/api/surveys", headers=headers).status_code == 401

    forged = issue_admin_token("another-secret", 60)
    assert client.get("/api/surveys", headers={"Authorization": f"Bearer {forged}"}).status_code == 401

    expired = issue_admin_token("test-secret", -10)
    assert client.get("/api/surveys", headers={"Authorization": f"Bearer {expired}"}).status_code == 401


def test_admin_survey_lifecycle(client, admin_headers):
    created = client.post("/api/surveys", headers=admin_headers, json={
        "title": "Lunch menu",
        "questions": [
            {"text": "Favourite dish", "type": "dropdown", "options": ["Bibimbap", "Ramen"]},
            {"text": "Comments", "type": "text"},
        ],
    })
    assert created.status_code == 201
    survey_id = created.json()["survey_id"]

    listed = client.get("/api/surveys", headers=admin_headers).json()
    assert [s["survey_id"] for s in listed] == [survey_id]
    assert "questions" not in listed[0]

    updated = client.put(f"/api/surveys/{survey_id}", headers=admin_headers, json={
        "title": "Lunch menu v2",
        "questions": [{"text": "Comments", "type": "text"}],
    })
    assert updated.status_code == 200
    assert [q["text"] for q in updated.json()["questions"]] == ["Comments"]

    bad = client.post("/api/surveys", headers=admin_headers, json={
        "title": "Broken", "questions": [{"text": "Pick", "type": "choice"}],
    })
    assert bad.status_code == 422


def test_export_delivers_report(client, survey, admin_headers, report_channel):
    client.post("/api/responses", json=_submission(survey.survey_id, phone="01011110000", name="First"))
    client.post("/api/responses", json=_submission(survey.survey_id, phone="01022220000", name="Second"))

    resp = client.get(f"/api/surveys/{survey.survey_id}/export", headers=admin_headers)

    assert resp.status_code == 200
    assert resp.json()["response_count"] == 2
    assert len(report_channel.documents) == 1
    payload, filename, caption = report_channel.documents[0]
    assert filename == resp.json()["filename"]
    df = pd.read_excel(io.BytesIO(payload), header=None, dtype=str)
    assert list(df.iloc[0]) == [
        "Submitted at", "Name", "Phone",
        "How did you hear about us?", "Rate the event", "Anything else?",
    ]
    assert list(df[1][1:]) == ["First", "Second"]
    assert list(df.iloc[1][3:]) == ["Friend", "5", "(no answer)"]


def test_export_without_responses_is_400(client, survey, admin_headers, report_channel):
    resp = client.get(f"/api/surveys/{survey.survey_id}/export", headers=admin_headers)

    assert resp.status_code == 400
    assert resp.json()["detail"]["code"] == "empty_report"
    assert report_channel.documents == []


def test_export_without_channel_configuration_is_500(settings, survey, admin_headers, notify_channel):
    app = create_app(settings, notify_channel=notify_channel, report_channel=FakeChannel(configured=False))
    with TestClient(app) as c:
        c.post("/api/responses", json=_submission(survey.survey_id))
        resp = c.get(f"/api/surveys/{survey.survey_id}/export", headers=admin_headers)

    assert resp.status_code == 500
    assert resp.json()["detail"]["code"] == "channel_not_configured"


def test_export_transport_failure_is_reported(settings, survey, admin_headers, notify_channel):
    app = create_app(settings, notify_channel=notify_channel, report_channel=FakeChannel(error=OSError("connection reset")))
    with TestClient(app) as c:
        c.post("/api/responses", json=_submission(survey.survey_id))
        resp = c.get(f"/api/surveys/{survey.survey_id}/export", headers=admin_headers)

    assert resp.status_code == 502
    assert resp.json()["detail"]["code"] == "transport_error"


def test_download_report(client, survey, admin_headers):
    assert client.get(f"/api/surveys/{survey.survey_id}/report.xlsx", headers=admin_headers).status_code == 400

    client.post("/api/responses", json=_submission(survey.survey_id))
    resp = client.get(f"/api/surveys/{survey.survey_id}/report.xlsx", headers=admin_headers)

    assert resp.status_code == 200
    assert resp.headers["content-type"].startswith("application/vnd.openxmlformats")
    assert "attachment" in resp.headers["content-disposition"]
    df = pd.read_excel(io.BytesIO(resp.content), header=None, dtype=str)
    assert df.shape == (2, 6)


def test_delete_survey_cascades(client, survey, admin_headers):
    for i in range(3):
        client.post("/api/responses", json=_submission(survey.survey_id, phone=f"0105555000{i}"))

    resp = client.delete(f"/api/surveys/{survey.survey_id}", headers=admin_headers)

    assert resp.status_code == 200
    assert resp.json() == {"survey_id": survey.survey_id, "deleted_responses": 3}
    assert client.get(f"/api/surveys/{survey.survey_id}").status_code == 404
    assert client.get(f"/api/surveys/{survey.survey_id}/export", headers=admin_headers).status_code == 404
    assert client.delete(f"/api/surveys/{survey.survey_id}", headers=admin_headers).status_code == 404
    assert client.post("/api/responses", json=_submission(survey.survey_id)).status_code == 404


def _signed(claims):
    body = base64.urlsafe_b64encode(json.dumps(claims).encode()).decode().rstrip("=")
    mac = hmac.new(b"test-secret", body.encode(), hashlib.sha256).digest()
    return f"{body}.{base64.urlsafe_b64encode(mac).decode().rstrip('=')}"


@pytest.mark.parametrize("claims", [["admin"], "admin", 42, {"role": "admin"}, {"role": "admin", "exp": "never"}])
def test_token_with_unusable_claims_is_rejected(client, claims):
    token = _signed(claims)

    assert verify_token(token, "test-secret") is None
    assert client.get("/api/surveys", headers={"Authorization": f"Bearer {token}"}).status_code == 401


def test_garbage_tokens_are_rejected(client):
    assert verify_token("ä.ö", "test-secret") is None
    for token in ("no-dot", "a.b", ".", _signed({"role": "admin", "exp": 2**40}) + "x"):
        assert verify_token(token, "test-secret") is None
        assert client.get("/api/surveys", headers={"Authorization": f"Bearer {token}"}).status_code == 401


def test_signed_token_round_trips_claims():
    claims = verify_token(issue_admin_token("test-secret", 60, subject="ops"), "test-secret")

    assert claims["role"] == "admin"
    assert claims["sub"] == "ops"
