"""Unit tests for sentence-aware chunking."""

import pytest

from llmkit.extraction.chunking import chunk_text, overlap_tail, split_sentences
from llmkit.utils.tokens import estimate_tokens


def normalise(text):
    return " ".join(text.split())


def make_document(sentences=40):
    return "\n".join(
        f"Sentence number {i} describes one small fact about the document." for i in range(sentences)
    )


class TestSplitSentences:
    def test_terminal_punctuation(self):
        assert split_sentences("Hi! How are you? Fine.") == ["Hi!", "How are you?", "Fine."]

    def test_trailing_fragment_is_kept(self):
        assert split_sentences("First one. Then a fragment") == ["First one.", "Then a fragment"]

    def test_repeated_punctuation_stays_with_sentence(self):
        assert split_sentences("Really?! Yes...") == ["Really?!", "Yes..."]

    def test_blank_text(self):
        assert split_sentences("   \n ") == []


class TestEstimateTokens:
    def test_four_characters_per_token(self):
        assert estimate_tokens("") == 0
        assert estimate_tokens("abcd") == 1
        assert estimate_tokens("abcde") == 2


class TestChunkText:
    """Tests for packing sentences into overlapping chunks."""

    def test_small_text_is_one_chunk(self):
        chunks = chunk_text("  A short document. Nothing more.  ", chunk_size=4000, overlap=200)
        assert len(chunks) == 1
        assert chunks[0].index == 0
        assert chunks[0].text == "A short document. Nothing more."
        assert chunks[0].overlap == ""

    def test_empty_text(self):
        assert chunk_text("", chunk_size=10) == []

    def test_invalid_arguments(self):
        with pytest.raises(ValueError):
            chunk_text("text", chunk_size=0)
        with pytest.raises(ValueError):
            chunk_text("text", chunk_size=10, overlap=-1)

    def test_bodies_reconstruct_document(self):
        document = make_document()
        chunks = chunk_text(document, chunk_size=60, overlap=10)

        assert len(chunks) > 1
        assert [c.index for c in chunks] == list(range(len(chunks)))
        rebuilt = " ".join(chunk.body for chunk in chunks)
        assert normalise(rebuilt) == normalise(document)

    def test_chunks_respect_budget(self):
        chunks = chunk_text(make_document(), chunk_size=60, overlap=10)
        for chunk in chunks:
            assert estimate_tokens(chunk.text) <= 60

    def test_overlap_carries_previous_words(self):
        chunks = chunk_text(make_document(), chunk_size=60, overlap=10)

        assert chunks[0].overlap == ""
        for previous, current in zip(chunks, chunks[1:]):
            assert current.overlap
            assert previous.body.endswith(current.overlap)
            assert estimate_tokens(current.overlap) <= 10
            assert current.text == f"{current.overlap} {current.body}"

    def test_zero_overlap(self):
        chunks = chunk_text(make_document(), chunk_size=60, overlap=0)
        assert all(chunk.overlap == "" for chunk in chunks)
        assert all(chunk.text == chunk.body for chunk in chunks)

    def test_oversized_sentence_gets_its_own_chunk(self):
        long_sentence = " ".join(["word"] * 100) + "."
        document = f"Short opener. {long_sentence} Short closer."
        chunks = chunk_text(document, chunk_size=20, overlap=0)

        assert [c.body for c in chunks] == ["Short opener.", long_sentence, "Short closer."]

    def test_trailing_fragment_survives_chunking(self):
        document = "The first sentence is here. The second sentence is also here. And a fragment"
        chunks = chunk_text(document, chunk_size=8, overlap=0)
        assert chunks[-1].body == "And a fragment"


class TestOverlapTail:
    def test_takes_words_that_fit(self):
        # "ccc ddd" is 7 characters, 2 tokens; adding "bbb" makes 11 characters, 3 tokens
        assert overlap_tail("aaa bbb ccc ddd", overlap=2) == "ccc ddd"

    def test_no_overlap(self):
        assert overlap_tail("aaa bbb", overlap=0) == ""

    def test_word_larger_than_budget(self):
        assert overlap_tail("tiny enormousword", overlap=1) == ""
