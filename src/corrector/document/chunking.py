"""Split manuscript text into overlapping, budget-bounded chunks."""
from __future__ import annotations

import logging
import math
import re
from dataclasses import dataclass
from typing import List

from corrector.models import Chunk

LOGGER = logging.getLogger(__name__)

_PARAGRAPH_BREAK_RE = re.compile(r"\n\n+")
_SENTENCE_BREAK_RE = re.compile(r"[.!?]+\s+")
_PARAGRAPH_SEPARATOR = "\n\n"


@dataclass(frozen=True, slots=True)
class ChunkingConfig:
    """Chunk budget expressed in estimated tokens.

    Tokens are estimated as ``characters / chars_per_token``. This is a fixed
    approximation, not a tokenizer: chunk boundaries must stay reproducible for
    a given text and configuration.
    """

    max_tokens: int = 1000
    chars_per_token: int = 4
    overlap_sentences: int = 3

    @property
    def max_chars(self) -> int:
        return self.max_tokens * self.chars_per_token


def last_sentences(text: str, count: int) -> str:
    """Return the last ``count`` sentences of ``text`` for use as overlap.

    When ``text`` holds ``count`` sentences or fewer it is returned unchanged.
    """

    if count <= 0:
        return ""
    sentences = _SENTENCE_BREAK_RE.split(text)
    if len(sentences) <= count:
        return text
    tail = ". ".join(sentences[-count:])
    if text.endswith(".") and not tail.endswith("."):
        tail += "."
    return tail


class ManuscriptChunker:
    """Greedy paragraph packer producing :class:`~corrector.models.Chunk` objects.

    Paragraphs (separated by blank lines) are never split. A paragraph that is
    larger than the budget on its own is kept whole. Every chunk after the
    first starts with the trailing sentences of the previous chunk so the
    engine sees context across the boundary.

    ``start_position`` and ``end_position`` count characters of the windows as
    they were consumed (overlap included, separators normalised to a blank
    line). They approximate offsets in the extracted text; they are not exact
    offsets into the original file.
    """

    def __init__(self, config: ChunkingConfig | None = None) -> None:
        self.config = config or ChunkingConfig()

    def estimate_tokens(self, text: str) -> int:
        return math.ceil(len(text) / self.config.chars_per_token)

    def split(self, text: str) -> List[Chunk]:
        max_chars = self.config.max_chars
        paragraphs = _PARAGRAPH_BREAK_RE.split(text)

        chunks: List[Chunk] = []
        window = ""
        position = 0

        for paragraph in paragraphs:
            separator = _PARAGRAPH_SEPARATOR if window else ""
            if window and len(window) + len(separator) + len(paragraph) > max_chars:
                chunks.append(self._make_chunk(len(chunks), window, position))
                position += len(window)
                window = last_sentences(window, self.config.overlap_sentences)
                separator = _PARAGRAPH_SEPARATOR if window else ""
            window += separator + paragraph

        if window:
            chunks.append(self._make_chunk(len(chunks), window, position))

        LOGGER.info(
            "Split %s characters into %s chunks (budget %s chars, ~%s tokens)",
            len(text),
            len(chunks),
            max_chars,
            self.config.max_tokens,
        )
        return chunks

    def _make_chunk(self, index: int, window: str, position: int) -> Chunk:
        chunk = Chunk(
            index=index,
            text=window.strip(),
            start_position=position,
            end_position=position + len(window),
        )
        if len(window) > self.config.max_chars:
            LOGGER.debug(
                "Chunk %s exceeds the budget (%s > %s chars); kept whole",
                index,
                len(window),
                self.config.max_chars,
            )
        return chunk


__all__ = ["ChunkingConfig", "ManuscriptChunker", "last_sentences"]
