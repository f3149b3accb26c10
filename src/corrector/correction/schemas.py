"""Pydantic schemas for the JSON payloads returned by the engine."""
from __future__ import annotations

import logging
from typing import Any, List, Optional

from pydantic import BaseModel, Field, ValidationError, field_validator

from corrector.engine.base import EngineReply, parse_json_payload
from corrector.errors import EngineResponseError
from corrector.models import Correction, CorrectionType

LOGGER = logging.getLogger(__name__)


class ProposedCorrection(BaseModel):
    """One correction as proposed by the engine (chunk-local position)."""

    position: int = 0
    original: str
    correction: Optional[str] = ""
    type: CorrectionType
    explication: str = ""

    @field_validator("type", mode="before")
    @classmethod
    def _normalise_type(cls, value: Any) -> Any:
        if isinstance(value, str):
            return value.strip().lower()
        return value

    def to_correction(self) -> Correction:
        return Correction(
            position=self.position,
            original=self.original,
            correction=self.correction or "",
            type=self.type,
            explication=self.explication,
        )


class CorrectionPayload(BaseModel):
    corrections: List[ProposedCorrection] = Field(default_factory=list)


class _CorrectionEnvelope(BaseModel):
    corrections: List[Any] = Field(default_factory=list)


class Verdict(BaseModel):
    id: int
    valid: bool = True
    reason: Optional[str] = None


class VerificationPayload(BaseModel):
    results: List[Verdict] = Field(default_factory=list)


def parse_correction_payload(reply: EngineReply) -> CorrectionPayload:
    """Validate each proposed correction on its own.

    A malformed envelope is an :class:`EngineResponseError`; a malformed item
    (unknown ``type``, missing ``original``...) is logged and dropped while
    the rest of the response is kept.
    """

    envelope = _validate(_CorrectionEnvelope, reply)
    accepted: List[ProposedCorrection] = []
    for index, item in enumerate(envelope.corrections):
        try:
            accepted.append(ProposedCorrection.model_validate(item))
        except ValidationError as error:
            LOGGER.warning(
                "Dropping malformed correction #%s (%s): %s",
                index,
                item,
                "; ".join(detail["msg"] for detail in error.errors()),
            )
    return CorrectionPayload(corrections=accepted)


def parse_verification_payload(reply: EngineReply) -> VerificationPayload:
    return _validate(VerificationPayload, reply)


def _validate(model: type[BaseModel], reply: EngineReply) -> Any:
    payload = parse_json_payload(reply)
    try:
        return model.model_validate(payload)
    except ValidationError as error:
        raise EngineResponseError(
            f"Engine response does not match {model.__name__}", cause=error
        ) from error


__all__ = [
    "CorrectionPayload",
    "ProposedCorrection",
    "Verdict",
    "VerificationPayload",
    "parse_correction_payload",
    "parse_verification_payload",
]
