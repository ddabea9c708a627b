"""Text normalization and sentence splitting."""

import re
from typing import List

from vectors_gateway.utils.logging import get_logger

logger = get_logger("sentence_splitter")

# Control characters that are not whitespace; tabs and newlines are folded
# into the whitespace collapse instead so they still separate words.
_CONTROL_CHARS = re.compile(r"[\x00-\x08\x0b\x0c\x0e-\x1f\x7f-\x9f]")
_WHITESPACE = re.compile(r"\s+")
_UNSAFE_CHARS = re.compile(r"[^\w\s.,!?;:()\-'\"]")

# Periods after these do not end a sentence ("Dr. Smith", "vs. them").
_ABBREVIATIONS = frozenset(
    {
        "Dr",
        "Mr",
        "Mrs",
        "Ms",
        "Prof",
        "Jr",
        "Sr",
        "St",
        "Mt",
        "Ave",
        "Blvd",
        "Vol",
        "Fig",
        "Inc",
        "Ltd",
        "Co",
        "Corp",
        "vs",
        "etc",
        "approx",
        "dept",
        "est",
        "govt",
        "e.g",
        "i.e",
    }
)
_ABBREVIATION_PATTERN = re.compile(
    r"\b("
    + "|".join(sorted((re.escape(a) for a in _ABBREVIATIONS), key=len, reverse=True))
    + r")\."
)
# "No. 5" is a number label; a sentence may still end in "No."
_NUMBER_LABEL = re.compile(r"\b(No)\.(?=\s*\d)")
_DECIMAL_POINT = re.compile(r"(?<=\d)\.(?=\d)")
_MASK = "\x00"

_PRIMARY_BOUNDARY = re.compile(r"[.!?]+[\"')]*(?=\s|$)")
_FALLBACK_BOUNDARY = re.compile(r"(?<=[.!?])\s+(?=[A-Z])")


def normalize_text(text: str) -> str:
    """
    Clean raw text before splitting.

    Removes control characters, collapses whitespace runs to a single space,
    drops characters outside word characters, whitespace and `.,!?;:()-'"`,
    and trims the result.
    """
    cleaned = _CONTROL_CHARS.sub("", text)
    cleaned = _WHITESPACE.sub(" ", cleaned)
    cleaned = _UNSAFE_CHARS.sub("", cleaned)
    return cleaned.strip()


def _mask_non_terminal_periods(text: str) -> str:
    # Same-length replacement keeps indices aligned with the original text
    masked = _ABBREVIATION_PATTERN.sub(lambda m: m.group(1) + _MASK, text)
    masked = _NUMBER_LABEL.sub(lambda m: m.group(1) + _MASK, masked)
    return _DECIMAL_POINT.sub(_MASK, masked)


def primary_split(text: str) -> List[str]:
    """Abbreviation-aware sentence-boundary detection on already normalized text."""
    masked = _mask_non_terminal_periods(text)

    sentences: List[str] = []
    last = 0
    for match in _PRIMARY_BOUNDARY.finditer(masked):
        end = match.end()
        sentence = text[last:end].strip()
        if sentence:
            sentences.append(sentence)
        last = end

    remainder = text[last:].strip()
    if remainder:
        sentences.append(remainder)
    return sentences


def fallback_split(text: str) -> List[str]:
    """Split on sentence-ending punctuation followed by whitespace and an uppercase letter."""
    sentences = [s.strip() for s in _FALLBACK_BOUNDARY.split(text) if s and s.strip()]
    return sentences if sentences else [text]


def split_sentences(text: str) -> List[str]:
    """
    Split text into an ordered list of non-empty sentences.

    Args:
        text: Raw document text

    Returns:
        Sentences in document order. Empty only when the cleaned text is empty.
    """
    cleaned = normalize_text(text)
    if not cleaned:
        return []

    try:
        sentences = primary_split(cleaned)
    except Exception as e:
        logger.warning(f"Sentence tokenization failed, using fallback splitter: {e}")
        sentences = []

    if sentences:
        return sentences

    return fallback_split(cleaned)
