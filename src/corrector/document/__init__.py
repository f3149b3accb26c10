"""Document extraction and chunking."""
from __future__ import annotations

from .chunking import ChunkingConfig, ManuscriptChunker, last_sentences
from .extractors import DocxExtractor
from .format_detection import DOCX_MEDIA_TYPE, DocumentFormat, DocumentFormatDetector

__all__ = [
    "DOCX_MEDIA_TYPE",
    "ChunkingConfig",
    "DocumentFormat",
    "DocumentFormatDetector",
    "DocxExtractor",
    "ManuscriptChunker",
    "last_sentences",
]
