"""Check that an extracted quote actually occurs in its source."""

from __future__ import annotations

import re
import unicodedata
from typing import List

from citeguard.models import QuoteVerification, QuoteVerificationMethod

SHINGLE_SIZE = 3

_TRANSLATE = str.maketrans(
    {
        "\u2018": "'",
        "\u2019": "'",
        "\u201c": '"',
        "\u201d": '"',
        "\u2013": "-",
        "\u2014": "-",
        "\u00a0": " ",
    }
)
_WORD_RE = re.compile(r"[a-z0-9]+(?:'[a-z0-9]+)?")


def normalize_text(text: str) -> str:
    text = unicodedata.normalize("NFKC", text).translate(_TRANSLATE).lower()
    return re.sub(r"\s+", " ", text).strip()


def _words(text: str) -> List[str]:
    return _WORD_RE.findall(normalize_text(text))


def _shingles(words: List[str], size: int) -> set[tuple[str, ...]]:
    return {tuple(words[i : i + size]) for i in range(len(words) - size + 1)}


def verify_quote_in_source(quote: str, source_text: str) -> QuoteVerification:
    """Exact match scores 1.0, a whitespace/case/punctuation-insensitive match 0.95.

    Otherwise the score is the share of the quote's word trigrams found in
    the source (plain word overlap for quotes under three words).
    """
    if quote and quote in source_text:
        return QuoteVerification(method=QuoteVerificationMethod.EXACT, score=1.0)

    quote_words = _words(quote)
    source_words = _words(source_text)
    if not quote_words or not source_words:
        return QuoteVerification(method=QuoteVerificationMethod.FUZZY, score=0.0)

    if f" {' '.join(quote_words)} " in f" {' '.join(source_words)} ":
        return QuoteVerification(method=QuoteVerificationMethod.NORMALIZED, score=0.95)

    size = SHINGLE_SIZE if len(quote_words) >= SHINGLE_SIZE else 1
    wanted = _shingles(quote_words, size)
    found = wanted & _shingles(source_words, size)
    return QuoteVerification(
        method=QuoteVerificationMethod.FUZZY,
        score=round(len(found) / len(wanted), 3),
    )
