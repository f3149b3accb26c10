"""Correction engine backends and factory."""
from __future__ import annotations

import logging
from typing import Optional

from corrector.config import CorrectorSettings, get_settings
from corrector.errors import EngineUnavailableError

from .base import ChatMessage, CorrectionEngine, EngineReply, parse_json_payload
from .mock_engine import MockCorrectionEngine

LOGGER = logging.getLogger(__name__)

_ENGINE: Optional[CorrectionEngine] = None


def create_engine(settings: CorrectorSettings) -> CorrectionEngine:
    """Build the engine selected by ``settings.engine_backend``."""

    backend = settings.engine_backend
    if backend == "mock":
        LOGGER.warning("CORRECTION_ENGINE=mock; corrections will be canned responses.")
        return MockCorrectionEngine()
    if backend == "openai":
        from .openai_engine import OpenAIChatEngine

        return OpenAIChatEngine(
            api_key=settings.openai_api_key,
            model=settings.model,
            temperature=settings.temperature,
        )
    raise EngineUnavailableError(f"Unsupported correction engine: {backend}")


def get_engine() -> CorrectionEngine:
    """Return the process-wide engine, creating it on first use."""

    global _ENGINE

    if _ENGINE is None:
        _ENGINE = create_engine(get_settings())
    return _ENGINE


__all__ = [
    "ChatMessage",
    "CorrectionEngine",
    "EngineReply",
    "MockCorrectionEngine",
    "create_engine",
    "get_engine",
    "parse_json_payload",
]
