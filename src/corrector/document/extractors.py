"""Plain-text extraction from uploaded manuscripts."""
from __future__ import annotations

import io
import logging

from docx import Document as DocxDocument

from corrector.errors import ExtractionError

LOGGER = logging.getLogger(__name__)


class DocxExtractor:
    """Extract the paragraph text of a Microsoft Word document.

    Non-empty paragraphs are joined with a blank line, which is the paragraph
    boundary the chunker splits on.
    """

    def extract(self, data: bytes) -> str:
        LOGGER.info("Extracting text from DOCX payload (%s bytes)", len(data))
        try:
            document = DocxDocument(io.BytesIO(data))
        except Exception as error:
            LOGGER.error("python-docx failed to parse DOCX content: %s", error)
            raise ExtractionError("Unable to extract text from the DOCX file", cause=error) from error

        paragraphs = [paragraph.text for paragraph in document.paragraphs if paragraph.text]
        text = "\n\n".join(paragraphs)
        LOGGER.info("Extracted %s characters from %s paragraphs", len(text), len(paragraphs))
        return text


__all__ = ["DocxExtractor"]
