"""Correction and verification passes over a chunked manuscript."""
from __future__ import annotations

from .stage import (
    CorrectionStage,
    CorrectionStageConfig,
    clean_corrections,
    has_long_corrections,
    rejection_feedback,
)
from .verification import VerificationStage, VerificationStageConfig

__all__ = [
    "CorrectionStage",
    "CorrectionStageConfig",
    "VerificationStage",
    "VerificationStageConfig",
    "clean_corrections",
    "has_long_corrections",
    "rejection_feedback",
]
