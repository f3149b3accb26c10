from __future__ import annotations

from corrector.document.chunking import ChunkingConfig, ManuscriptChunker, last_sentences


def test_empty_text_produces_no_chunks() -> None:
    assert ManuscriptChunker().split("") == []


def test_short_text_is_a_single_chunk() -> None:
    text = "Il était une fois.\n\nUne princesse."
    chunks = ManuscriptChunker().split(text)

    assert len(chunks) == 1
    assert chunks[0].index == 0
    assert chunks[0].start_position == 0
    assert chunks[0].text == text


def test_paragraphs_are_packed_up_to_the_budget() -> None:
    config = ChunkingConfig(max_tokens=10, chars_per_token=4, overlap_sentences=0)
    paragraphs = ["a" * 30, "b" * 30, "c" * 5]

    chunks = ManuscriptChunker(config).split("\n\n".join(paragraphs))

    assert [chunk.text for chunk in chunks] == ["a" * 30, "b" * 30 + "\n\n" + "c" * 5]
    assert [chunk.index for chunk in chunks] == [0, 1]
    assert (chunks[0].start_position, chunks[0].end_position) == (0, 30)
    assert (chunks[1].start_position, chunks[1].end_position) == (30, 67)
    assert all(len(chunk.text) <= config.max_chars for chunk in chunks)


def test_oversized_paragraph_is_kept_whole() -> None:
    config = ChunkingConfig(max_tokens=5, chars_per_token=4, overlap_sentences=0)
    huge = "x" * 50

    chunks = ManuscriptChunker(config).split(f"short\n\n{huge}\n\nend")

    assert [chunk.text for chunk in chunks] == ["short", huge, "end"]


def test_following_chunk_starts_with_overlap_sentences() -> None:
    config = ChunkingConfig(max_tokens=10, chars_per_token=4, overlap_sentences=1)
    text = "First one. Second one.\n\nThird one. Fourth one."

    chunks = ManuscriptChunker(config).split(text)

    assert len(chunks) == 2
    assert chunks[0].text == "First one. Second one."
    assert chunks[1].text == "Second one.\n\nThird one. Fourth one."
    assert chunks[1].start_position == 22


def test_every_paragraph_lands_in_some_chunk() -> None:
    config = ChunkingConfig(max_tokens=20, chars_per_token=4, overlap_sentences=2)
    paragraphs = [f"Paragraphe numéro {index}. Il contient deux phrases." for index in range(12)]

    chunks = ManuscriptChunker(config).split("\n\n".join(paragraphs))

    assert len(chunks) > 1
    for paragraph in paragraphs:
        assert any(paragraph in chunk.text for chunk in chunks)
    assert [chunk.index for chunk in chunks] == list(range(len(chunks)))
    starts = [chunk.start_position for chunk in chunks]
    assert starts == sorted(starts)


def test_splitting_is_deterministic() -> None:
    text = "\n\n".join(f"Phrase {i}. Suite {i}!" for i in range(40))
    chunker = ManuscriptChunker(ChunkingConfig(max_tokens=15))

    assert chunker.split(text) == chunker.split(text)


def test_last_sentences_returns_tail() -> None:
    assert last_sentences("One. Two. Three.", 2) == "Two. Three."


def test_last_sentences_keeps_short_text() -> None:
    assert last_sentences("Only one.", 3) == "Only one."
    assert last_sentences("Anything. At all.", 0) == ""


def test_estimate_tokens_rounds_up() -> None:
    chunker = ManuscriptChunker(ChunkingConfig(chars_per_token=4))

    assert chunker.estimate_tokens("abcde") == 2
    assert chunker.estimate_tokens("") == 0


def test_overlap_plus_paragraph_over_budget_is_a_soft_cap() -> None:
    config = ChunkingConfig(max_tokens=10, chars_per_token=4, overlap_sentences=1)
    tail = "x" * 30 + "."
    text = f"Un. {tail}\n\n" + "y" * 20

    chunks = ManuscriptChunker(config).split(text)

    assert len(chunks) == 2
    assert chunks[1].text == tail + "\n\n" + "y" * 20
    assert len(chunks[1].text) > config.max_chars


def test_window_with_few_sentences_seeds_the_next_chunk_whole() -> None:
    config = ChunkingConfig(max_tokens=10, chars_per_token=4, overlap_sentences=3)
    first = "Une phrase. Deux phrases."

    chunks = ManuscriptChunker(config).split(first + "\n\n" + "z" * 20)

    assert [chunk.text for chunk in chunks] == [first, first + "\n\n" + "z" * 20]
