"""Shared fixtures: isolated settings, fresh singletons and DOCX builders."""
from __future__ import annotations

import io
import json
from typing import Callable, Iterable, Sequence

import pytest

from corrector import engine as engine_module
from corrector import jobs as jobs_module
from corrector import storage as storage_module
from corrector.config import CorrectorSettings, get_settings
from corrector.engine.base import ChatMessage
from corrector.services import correction as service_module

_ENV_KEYS = (
    "OPENAI_API_KEY",
    "OPENAI_MODEL",
    "OPENAI_TEMPERATURE",
    "OPENAI_TIMEOUT_MS",
    "OPENAI_MAX_RETRIES",
    "OPENAI_RETRY_DELAY_MS",
    "AI_MAX_CORRECTION_WORDS",
    "AI_STYLE_GUIDE",
    "CHUNK_MAX_TOKENS",
    "CHUNK_CHARS_PER_TOKEN",
    "CHUNK_OVERLAP_SENTENCES",
    "CORRECTION_CONCURRENCY",
    "VERIFICATION_BATCH_SIZE",
    "VERIFICATION_CONCURRENCY",
    "CORRECTION_ENGINE",
    "RESULT_STORE",
    "RESULT_STORE_DIR",
    "FIRESTORE_COLLECTION",
    "FIREBASE_SERVICE_ACCOUNT_JSON",
    "HOST",
    "PORT",
)


@pytest.fixture(autouse=True)
def _isolated_environment(monkeypatch: pytest.MonkeyPatch, tmp_path):
    for key in _ENV_KEYS:
        monkeypatch.delenv(key, raising=False)
    monkeypatch.setenv("CORRECTION_ENGINE", "mock")
    monkeypatch.setenv("RESULT_STORE", "memory")
    monkeypatch.setenv("RESULT_STORE_DIR", str(tmp_path / "results"))
    monkeypatch.setenv("LOG_DIR", str(tmp_path / "logs"))
    monkeypatch.setattr("corrector.config.load_env_file", lambda: None)

    get_settings.cache_clear()
    monkeypatch.setattr(engine_module, "_ENGINE", None)
    monkeypatch.setattr(storage_module, "_STORE", None)
    monkeypatch.setattr(jobs_module, "_REGISTRY", None)
    monkeypatch.setattr(service_module, "_SERVICE", None)
    yield
    get_settings.cache_clear()


@pytest.fixture
def fast_settings() -> CorrectorSettings:
    """Settings with no retry delay so failure paths finish quickly."""

    return CorrectorSettings(
        engine_backend="mock",
        result_store="memory",
        retry_delay_ms=0,
        timeout_ms=2000,
    )


@pytest.fixture
def make_docx() -> Callable[[Iterable[str]], bytes]:
    docx = pytest.importorskip("docx")

    def _build(paragraphs: Iterable[str]) -> bytes:
        document = docx.Document()
        for paragraph in paragraphs:
            document.add_paragraph(paragraph)
        buffer = io.BytesIO()
        document.save(buffer)
        return buffer.getvalue()

    return _build


def last_user_message(messages: Sequence[ChatMessage]) -> str:
    return next(message.content for message in reversed(messages) if message.role == "user")


def is_verification_request(messages: Sequence[ChatMessage]) -> bool:
    try:
        payload = json.loads(last_user_message(messages))
    except json.JSONDecodeError:
        return False
    return isinstance(payload, dict) and "corrections" in payload
