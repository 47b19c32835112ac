from __future__ import annotations

import re
from dataclasses import dataclass
from functools import lru_cache

from ledger_categorizer.core.errors import PatternError

_NON_ALNUM = re.compile(r"[^a-z0-9]+")
_WHITESPACE = re.compile(r"\s+")


@dataclass(frozen=True)
class NormalizedText:
    """A description or category string reduced to comparable form.

    ``terms`` keeps every token in order (TF-IDF needs counts) while
    ``tokens`` is the de-duplicated set used for overlap measures.
    """
    raw: str
    lower: str
    terms: tuple[str, ...]
    tokens: frozenset[str]

    @property
    def is_empty(self) -> bool:
        return not self.terms

    @property
    def folded(self) -> str:
        # Case-folded raw text; the only comparable form left for non-ASCII names.
        return _WHITESPACE.sub(" ", self.raw.casefold()).strip()


def _ascii_lower(text: str) -> str:
    return "".join(chr(ord(c) + 32) if "A" <= c <= "Z" else c for c in text)


def _is_noise(token: str) -> bool:
    # Store numbers, dates and card suffixes.
    return token.isdigit()


def tokenize(text: str) -> list[str]:
    cleaned = _NON_ALNUM.sub(" ", _ascii_lower(text))
    return [token for token in cleaned.split() if not _is_noise(token)]


def normalize(text: str | None) -> NormalizedText:
    raw = text or ""
    terms = tuple(tokenize(raw))
    return NormalizedText(
        raw=raw,
        lower=" ".join(terms),
        terms=terms,
        tokens=frozenset(terms),
    )


@lru_cache(maxsize=512)
def compile_pattern(pattern: str) -> re.Pattern[str]:
    """Compile a regex merchant pattern, case-insensitive."""
    try:
        return re.compile(pattern, re.IGNORECASE)
    except re.error as exc:
        raise PatternError(pattern, str(exc)) from exc
