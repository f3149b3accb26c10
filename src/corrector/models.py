"""Data models shared by the chunking, correction and persistence layers."""
from __future__ import annotations

from dataclasses import asdict, dataclass, field
from datetime import datetime, timezone
from enum import Enum
from typing import Any, List, Optional


class CorrectionType(str, Enum):
    """Categories of edits the correction engine may propose."""

    ORTHOGRAPHE = "orthographe"
    GRAMMAIRE = "grammaire"
    PONCTUATION = "ponctuation"
    SYNTAXE = "syntaxe"


@dataclass(frozen=True, slots=True)
class Chunk:
    """A bounded slice of the manuscript sent to the engine in one request."""

    index: int
    text: str
    start_position: int
    end_position: int


@dataclass(slots=True)
class Correction:
    """A proposed point edit.

    ``position`` is relative to the chunk when returned by the engine and
    relative to the document once merged. ``verified`` stays ``None`` until the
    verification pass sets it.
    """

    position: int
    original: str
    correction: str
    type: CorrectionType
    explication: str
    verified: Optional[bool] = None
    chunk_index: Optional[int] = None

    def to_record(self) -> dict[str, Any]:
        record: dict[str, Any] = {
            "position": self.position,
            "original": self.original,
            "correction": self.correction,
            "type": self.type.value,
            "explication": self.explication,
        }
        if self.verified is not None:
            record["verified"] = self.verified
        if self.chunk_index is not None:
            record["chunkIndex"] = self.chunk_index
        return record


@dataclass(frozen=True, slots=True)
class TokenUsage:
    """Token counters reported by the engine for one or more calls."""

    prompt_tokens: int = 0
    completion_tokens: int = 0
    total_tokens: int = 0

    @classmethod
    def zero(cls) -> "TokenUsage":
        return cls()

    def __add__(self, other: "TokenUsage") -> "TokenUsage":
        if not isinstance(other, TokenUsage):
            return NotImplemented
        return TokenUsage(
            prompt_tokens=self.prompt_tokens + other.prompt_tokens,
            completion_tokens=self.completion_tokens + other.completion_tokens,
            total_tokens=self.total_tokens + other.total_tokens,
        )


@dataclass(slots=True)
class ChunkResult:
    """Corrections produced for a single chunk, with the usage spent on it."""

    corrections: List[Correction] = field(default_factory=list)
    usage: TokenUsage = field(default_factory=TokenUsage.zero)


@dataclass(slots=True)
class VerificationResult:
    """Corrections after the false-positive pass, with the usage spent on it."""

    corrections: List[Correction] = field(default_factory=list)
    usage: TokenUsage = field(default_factory=TokenUsage.zero)


@dataclass(slots=True)
class DocumentMetadata:
    """Job-scoped record persisted alongside the corrections."""

    job_id: str
    filename: str
    file_size: int
    uploaded_at: datetime = field(default_factory=lambda: datetime.now(timezone.utc))
    total_characters: Optional[int] = None
    total_chunks: Optional[int] = None
    total_prompt_tokens: Optional[int] = None
    total_completion_tokens: Optional[int] = None
    total_tokens: Optional[int] = None
    processing_time_seconds: Optional[float] = None

    def apply_usage(self, usage: TokenUsage) -> None:
        self.total_prompt_tokens = usage.prompt_tokens
        self.total_completion_tokens = usage.completion_tokens
        self.total_tokens = usage.total_tokens

    def to_record(self) -> dict[str, Any]:
        """Serialise using the camelCase keys of the stored document."""

        values = asdict(self)
        record: dict[str, Any] = {}
        for key, value in values.items():
            head, *rest = key.split("_")
            camel = head + "".join(part.capitalize() for part in rest)
            if value is None:
                continue
            record[camel] = value
        record["uploadedAt"] = self.uploaded_at.isoformat()
        return record


__all__ = [
    "Chunk",
    "ChunkResult",
    "Correction",
    "CorrectionType",
    "DocumentMetadata",
    "TokenUsage",
    "VerificationResult",
]
