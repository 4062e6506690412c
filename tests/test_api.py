import base64
import time

import pytest
from fastapi.testclient import TestClient

from apps.api.main import create_app
from packages.common.config import Settings
from packages.domain.classification.classifier import ClassifierError
from packages.domain.classification.schemas import Match

from tests.conftest import FakeClassifier

COOKER = "2kg stainless steel pressure cooker with glass lid"


def _settings(reference_file, **overrides):
    values = {
        "REFERENCE_FILE_PATH": str(reference_file),
        "MIN_IMAGE_BYTES": 1024,
        "CLASSIFIER_TIMEOUT_SECONDS": 2,
    }
    values.update(overrides)
    return Settings(**values)


@pytest.fixture()
def classifier():
    return FakeClassifier(matches=[Match(code="847130", description="Laptop", confidence=93)])


@pytest.fixture()
def client(reference_file, classifier):
    app = create_app(settings=_settings(reference_file), classifier=classifier)
    with TestClient(app) as test_client:
        yield test_client


def _wait_for_terminal(client, job_id, attempts=200):
    for _ in range(attempts):
        response = client.get(f"/api/v1/classify/{job_id}")
        assert response.status_code == 200
        body = response.json()
        if body["status"] != "pending":
            return body
        time.sleep(0.01)
    raise AssertionError("job never reached a terminal state")


def test_classify_round_trip(client, classifier):
    response = client.post(
        "/api/v1/classify",
        json={"description": COOKER, "requestId": "req-42"},
    )

    assert response.status_code == 202
    accepted = response.json()
    assert accepted["status"] == "accepted"
    assert accepted["requestId"] == "req-42"

    body = _wait_for_terminal(client, accepted["jobId"])

    assert body["status"] == "completed"
    assert body["requestId"] == "req-42"
    [match] = body["result"]["matches"]
    assert match["code"] == "8471.30"
    assert match["validated"] is True
    assert match["referenceColumns"]["VAT"] == "16%"
    assert body["result"]["recent"][0]["code"] == "8471.30"
    assert classifier.calls == [(COOKER, None)]

    recent = client.get("/api/v1/classify/recent")
    assert recent.status_code == 200
    assert recent.json()[0] == {"code": "8471.30", "description": match["description"]}


def test_classify_with_image(client, classifier):
    image = base64.b64encode(b"\x89PNG" + b"\x00" * 4096).decode("ascii")

    response = client.post(
        "/api/v1/classify",
        json={"imageBase64": f"data:image/png;base64,{image}"},
    )

    assert response.status_code == 202
    _wait_for_terminal(client, response.json()["jobId"])
    assert classifier.calls == [(None, image)]


@pytest.mark.parametrize(
    "payload, status, reason",
    [
        ({}, "rejected", "missing_input"),
        ({"description": "Latest football scores please"}, "rejected", "not_goods"),
        ({"description": "red"}, "needs_more_detail", "needs_more_detail"),
        ({"imageBase64": base64.b64encode(b"tiny").decode()}, "rejected", "image_too_small"),
    ],
)
def test_classify_rejections(client, classifier, payload, status, reason):
    response = client.post("/api/v1/classify", json=payload)

    assert response.status_code == 400
    body = response.json()
    assert body["status"] == status
    assert body["reason"] == reason
    assert body["message"]
    assert classifier.calls == []


def test_failed_job_reports_error(reference_file):
    classifier = FakeClassifier(error=ClassifierError("HTTP 500"))
    app = create_app(settings=_settings(reference_file), classifier=classifier)

    with TestClient(app) as client:
        job_id = client.post("/api/v1/classify", json={"description": COOKER}).json()["jobId"]
        body = _wait_for_terminal(client, job_id)

    assert body["status"] == "failed"
    assert body["error"] == "HS code scan failed."
    assert "result" not in body


def test_pending_job(reference_file):
    classifier = FakeClassifier(delay=1.0)
    app = create_app(settings=_settings(reference_file), classifier=classifier)

    with TestClient(app) as client:
        job_id = client.post("/api/v1/classify", json={"description": COOKER}).json()["jobId"]
        body = client.get(f"/api/v1/classify/{job_id}").json()

    assert body == {"jobId": job_id, "status": "pending"}
    assert classifier.closed


def test_unknown_job_is_404(client):
    response = client.get("/api/v1/classify/00000000-0000-0000-0000-000000000000")

    assert response.status_code == 404


def test_reference_reload(client):
    response = client.post("/api/v1/reference/reload")

    assert response.status_code == 200
    assert response.json() == {"status": "ok", "message": "Loaded", "rows": 5}


def test_reference_reload_failure(tmp_path, classifier):
    app = create_app(settings=_settings(tmp_path / "absent.xlsx"), classifier=classifier)

    with TestClient(app) as client:
        response = client.post("/api/v1/reference/reload")
        lookup = client.get("/api/v1/reference/8471.30")

    assert response.status_code == 400
    body = response.json()
    assert body["status"] == "error"
    assert body["rows"] == 0
    assert "not found" in body["message"]
    assert lookup.status_code == 404


def test_reference_lookup(client):
    response = client.get("/api/v1/reference/8471 30 00 00")

    assert response.status_code == 200
    columns = response.json()["columns"]
    assert columns["HS Code"] == "8471.30.00.00"
    assert "Duty Rate" not in columns


def test_reference_lookup_not_found(client):
    response = client.get("/api/v1/reference/9999.99")

    assert response.status_code == 404
    assert response.json()["status"] == "not_found"


def test_reference_search(client):
    response = client.post("/api/v1/reference/search", json={"query": "stainless steel", "topK": 1})

    assert response.status_code == 200
    body = response.json()
    assert body["total"] == 1
    assert body["rows"][0]["HS Code"] == "7323.93"


def test_reference_search_requires_query(client):
    response = client.post("/api/v1/reference/search", json={"query": "   "})

    assert response.status_code == 400
    assert response.json()["message"] == "Query is required."


def test_health_reports_reference_status(client):
    body = client.get("/health").json()

    assert body["status"] == "healthy"
    assert body["services"]["reference"]["loaded"] is True
    assert body["services"]["reference"]["rowCount"] == 5


def test_metrics_endpoint(client):
    response = client.get("/metrics")

    assert response.status_code == 200
    assert "hscode_classification_jobs_created_total" in response.text


def test_small_image_accepted_by_default(reference_file, classifier, monkeypatch):
    monkeypatch.delenv("MIN_IMAGE_BYTES", raising=False)
    settings = Settings(REFERENCE_FILE_PATH=str(reference_file))
    app = create_app(settings=settings, classifier=classifier)
    image = base64.b64encode(b"tiny").decode("ascii")

    with TestClient(app) as client:
        response = client.post("/api/v1/classify", json={"imageBase64": image})

    assert settings.min_image_bytes == 0
    assert response.status_code == 202
