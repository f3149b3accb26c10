"""Validation of uploaded manuscript formats."""
from __future__ import annotations

from enum import Enum
from typing import Optional

from corrector.errors import ClientInputError


class DocumentFormat(str, Enum):
    """Supported manuscript formats."""

    DOCX = "docx"


DOCX_MEDIA_TYPE = "application/vnd.openxmlformats-officedocument.wordprocessingml.document"


class DocumentFormatDetector:
    """Map a declared upload media type onto a supported format."""

    _MIME_MAP = {
        DOCX_MEDIA_TYPE: DocumentFormat.DOCX,
    }

    @classmethod
    def detect(cls, mime_type: Optional[str]) -> DocumentFormat:
        """Return the format for ``mime_type`` or raise :class:`ClientInputError`.

        Only the declared media type is trusted; the file name is not consulted.
        """

        if mime_type:
            # Drop parameters such as ``; charset=binary``.
            base_type = mime_type.split(";", 1)[0].strip().lower()
            if base_type in cls._MIME_MAP:
                return cls._MIME_MAP[base_type]
        raise ClientInputError("Le fichier doit être au format DOCX")


__all__ = ["DOCX_MEDIA_TYPE", "DocumentFormat", "DocumentFormatDetector"]
