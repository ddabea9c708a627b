"""Tests for text normalization and sentence splitting."""

import pytest

from vectors_gateway.services import sentence_splitter
from vectors_gateway.services.sentence_splitter import (
    fallback_split,
    normalize_text,
    split_sentences,
)


def test_normalize_removes_control_characters_and_collapses_whitespace():
    assert normalize_text("Hello\x00 world\t\n  again!\x85  ") == "Hello world again!"


def test_normalize_strips_unsafe_characters():
    assert normalize_text("Cost: $5 (approx)!") == "Cost: 5 (approx)!"
    assert normalize_text("Quote: \"yes\" - it's fine; ok?") == "Quote: \"yes\" - it's fine; ok?"


def test_normalize_keeps_non_ascii_letters():
    assert normalize_text("Café déjà vu.") == "Café déjà vu."


def test_split_basic_sentences():
    assert split_sentences("What? Yes! Fine.") == ["What?", "Yes!", "Fine."]


def test_split_does_not_break_on_abbreviations():
    sentences = split_sentences("Dr. Smith arrived at noon. He sat down.")
    assert sentences == ["Dr. Smith arrived at noon.", "He sat down."]


def test_split_at_sentence_ending_in_no():
    assert split_sentences("He said No. Then left.") == ["He said No.", "Then left."]


def test_split_does_not_break_on_number_label():
    sentences = split_sentences("See item No. 5 today. Done.")
    assert sentences == ["See item No. 5 today.", "Done."]


def test_split_does_not_break_on_decimals():
    sentences = split_sentences("The value is 3.14 today. Next one.")
    assert sentences == ["The value is 3.14 today.", "Next one."]


def test_split_keeps_closing_quote_with_sentence():
    assert split_sentences('He said "Stop." Then he left.') == [
        'He said "Stop."',
        "Then he left.",
    ]


def test_split_text_without_punctuation_is_one_sentence():
    assert split_sentences("just some words") == ["just some words"]


@pytest.mark.parametrize("text", ["", "   ", "\n\t", "@@@ ###"])
def test_split_empty_after_cleaning_returns_nothing(text):
    assert split_sentences(text) == []


def test_split_preserves_order_and_drops_nothing():
    text = "One is first. Two is second. Three is third. Four is fourth."
    sentences = split_sentences(text)
    assert sentences == ["One is first.", "Two is second.", "Three is third.", "Four is fourth."]
    assert " ".join(sentences) == text


def test_primary_splitter_failure_uses_fallback(monkeypatch):
    def boom(text):
        raise RuntimeError("tokenizer exploded")

    monkeypatch.setattr(sentence_splitter, "primary_split", boom)

    # Fallback only splits before an uppercase letter
    assert split_sentences("One. Two. three.") == ["One.", "Two. three."]


def test_fallback_split_returns_whole_text_when_nothing_splits():
    assert fallback_split("no boundary here") == ["no boundary here"]
