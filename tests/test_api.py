from __future__ import annotations

import pytest
from fastapi.testclient import TestClient

from corrector.api.correction import STARTED_MESSAGE
from corrector.document import DOCX_MEDIA_TYPE
from corrector.engine import MockCorrectionEngine
from corrector.jobs import JobRegistry, get_job_registry
from corrector.main import app
from corrector.services.correction import CorrectionService, get_correction_service
from corrector.storage import InMemoryResultStore


@pytest.fixture
def wired(fast_settings):
    registry = JobRegistry()
    store = InMemoryResultStore()
    service = CorrectionService(
        engine=MockCorrectionEngine(),
        store=store,
        registry=registry,
        settings=fast_settings,
    )
    app.dependency_overrides[get_correction_service] = lambda: service
    app.dependency_overrides[get_job_registry] = lambda: registry
    try:
        yield TestClient(app), service, store
    finally:
        app.dependency_overrides.clear()


def test_start_returns_202_and_job_completes(wired, make_docx) -> None:
    client, service, store = wired
    files = {"file": ("roman.docx", make_docx(["Il était une fois."]), DOCX_MEDIA_TYPE)}

    response = client.post("/correction/start", files=files)

    assert response.status_code == 202
    payload = response.json()
    assert payload["status"] == "started"
    assert payload["message"] == STARTED_MESSAGE
    job_id = payload["jobId"]

    # TestClient runs background tasks before returning.
    status = client.get(f"/correction/{job_id}")
    assert status.status_code == 200
    body = status.json()
    assert body["jobId"] == job_id
    assert body["filename"] == "roman.docx"
    assert body["status"] == "completed"
    assert body["totalCorrections"] == 0
    assert job_id in store.records


def test_start_without_file_is_rejected(wired) -> None:
    client, service, _ = wired

    response = client.post("/correction/start", data={"note": "no file"})

    assert response.status_code == 400
    assert response.json()["detail"] == "Aucun fichier fourni"
    assert len(service.registry) == 0


def test_start_with_wrong_media_type_is_rejected(wired) -> None:
    client, service, _ = wired
    files = {"file": ("roman.pdf", b"%PDF-1.4", "application/pdf")}

    response = client.post("/correction/start", files=files)

    assert response.status_code == 400
    assert response.json()["detail"] == "Le fichier doit être au format DOCX"
    assert len(service.registry) == 0


def test_corrupt_docx_is_accepted_then_marked_failed(wired) -> None:
    client, _, store = wired
    files = {"file": ("roman.docx", b"garbage", DOCX_MEDIA_TYPE)}

    response = client.post("/correction/start", files=files)

    assert response.status_code == 202
    body = client.get(f"/correction/{response.json()['jobId']}").json()
    assert body["status"] == "failed"
    assert body["error"]
    assert store.records == {}


def test_unknown_job_returns_404(wired) -> None:
    client, _, _ = wired

    response = client.get("/correction/does-not-exist")

    assert response.status_code == 404


def test_health_endpoints_report_ok_with_mock_backends() -> None:
    client = TestClient(app)

    assert client.get("/").text == "ok"
    assert client.get("/healthz").text == "ok"
    assert client.get("/readyz").status_code == 200


def test_readiness_fails_without_openai_key(monkeypatch: pytest.MonkeyPatch) -> None:
    monkeypatch.setenv("CORRECTION_ENGINE", "openai")
    client = TestClient(app)

    response = client.get("/readyz")

    assert response.status_code == 503
    assert "engine_unavailable" in response.json()["detail"]
