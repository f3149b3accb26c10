"""Environment-driven settings for the correction service."""
from __future__ import annotations

import logging
import os
from dataclasses import dataclass
from functools import lru_cache
from pathlib import Path
from typing import Optional

from dotenv import load_dotenv

LOGGER = logging.getLogger(__name__)

PROJECT_ROOT = Path(__file__).resolve().parents[2]


def _int_from_env(name: str, default: int, *, minimum: int | None = None) -> int:
    value = os.getenv(name)
    if value is None:
        return default
    try:
        parsed = int(value)
    except ValueError:
        LOGGER.warning("Invalid integer for %s: %s; using default %s", name, value, default)
        return default
    if minimum is not None and parsed < minimum:
        LOGGER.warning("%s must be >= %s (got %s); using default %s", name, minimum, parsed, default)
        return default
    return parsed


def _float_from_env(name: str, default: float) -> float:
    value = os.getenv(name)
    if value is None:
        return default
    try:
        return float(value)
    except ValueError:
        LOGGER.warning("Invalid float for %s: %s; using default %s", name, value, default)
        return default


def _str_from_env(name: str, default: str) -> str:
    value = os.getenv(name)
    if value is None or not value.strip():
        return default
    return value.strip()


@dataclass(frozen=True, slots=True)
class CorrectorSettings:
    """Tunables for the engine, chunking, concurrency and persistence."""

    openai_api_key: Optional[str] = None
    model: str = "gpt-4.1"
    temperature: float = 0.1
    timeout_ms: int = 60000
    max_retries: int = 3
    retry_delay_ms: int = 1000
    max_correction_words: int = 18
    style_guide: Optional[str] = None

    chunk_max_tokens: int = 1000
    chunk_chars_per_token: int = 4
    chunk_overlap_sentences: int = 3

    correction_concurrency: int = 20
    verification_batch_size: int = 15
    verification_concurrency: int = 10

    engine_backend: str = "openai"
    result_store: str = "json"
    result_store_dir: str = "data/results"
    firestore_collection: str = "ai-documents-v2"
    firebase_service_account_json: Optional[str] = None

    @property
    def timeout_seconds(self) -> Optional[float]:
        if self.timeout_ms <= 0:
            return None
        return self.timeout_ms / 1000.0

    @property
    def retry_delay_seconds(self) -> float:
        return max(self.retry_delay_ms, 0) / 1000.0

    @classmethod
    def from_env(cls) -> "CorrectorSettings":
        defaults = cls()
        style_guide = os.getenv("AI_STYLE_GUIDE")
        return cls(
            openai_api_key=os.getenv("OPENAI_API_KEY") or None,
            model=_str_from_env("OPENAI_MODEL", defaults.model),
            temperature=_float_from_env("OPENAI_TEMPERATURE", defaults.temperature),
            timeout_ms=_int_from_env("OPENAI_TIMEOUT_MS", defaults.timeout_ms, minimum=0),
            max_retries=_int_from_env("OPENAI_MAX_RETRIES", defaults.max_retries, minimum=1),
            retry_delay_ms=_int_from_env("OPENAI_RETRY_DELAY_MS", defaults.retry_delay_ms, minimum=0),
            max_correction_words=_int_from_env(
                "AI_MAX_CORRECTION_WORDS", defaults.max_correction_words, minimum=1
            ),
            style_guide=style_guide.strip() if style_guide and style_guide.strip() else None,
            chunk_max_tokens=_int_from_env("CHUNK_MAX_TOKENS", defaults.chunk_max_tokens, minimum=1),
            chunk_chars_per_token=_int_from_env(
                "CHUNK_CHARS_PER_TOKEN", defaults.chunk_chars_per_token, minimum=1
            ),
            chunk_overlap_sentences=_int_from_env(
                "CHUNK_OVERLAP_SENTENCES", defaults.chunk_overlap_sentences, minimum=0
            ),
            correction_concurrency=_int_from_env(
                "CORRECTION_CONCURRENCY", defaults.correction_concurrency, minimum=1
            ),
            verification_batch_size=_int_from_env(
                "VERIFICATION_BATCH_SIZE", defaults.verification_batch_size, minimum=1
            ),
            verification_concurrency=_int_from_env(
                "VERIFICATION_CONCURRENCY", defaults.verification_concurrency, minimum=1
            ),
            engine_backend=_str_from_env("CORRECTION_ENGINE", defaults.engine_backend).lower(),
            result_store=_str_from_env("RESULT_STORE", defaults.result_store).lower(),
            result_store_dir=_str_from_env("RESULT_STORE_DIR", defaults.result_store_dir),
            firestore_collection=_str_from_env("FIRESTORE_COLLECTION", defaults.firestore_collection),
            firebase_service_account_json=os.getenv("FIREBASE_SERVICE_ACCOUNT_JSON") or None,
        )


def load_env_file() -> None:
    """Load ``.env`` from the project root (or the working directory) if present."""

    env_file = PROJECT_ROOT / ".env"
    if env_file.exists():
        load_dotenv(dotenv_path=env_file)
    else:
        load_dotenv()


@lru_cache(maxsize=1)
def get_settings() -> CorrectorSettings:
    """Return the process-wide settings, reading ``.env`` on first use."""

    load_env_file()
    return CorrectorSettings.from_env()


__all__ = ["CorrectorSettings", "get_settings", "load_env_file"]
