from ledger_categorizer.domain.corpus import CorpusEntry
from ledger_categorizer.domain.text import NormalizedText, compile_pattern
from ledger_categorizer.models import Category, MatchCandidate, MatchMethod, MatchType

from .base import Matcher


def _literal_match(text: NormalizedText, entry: CorpusEntry) -> MatchType | None:
    # A non-ASCII string loses letters in normalization ('Öl' -> 'l'); only its
    # case-folded form is safe to compare.
    if entry.raw.isascii() and entry.text.lower and text.lower:
        if entry.source == "keyword" and entry.text.lower == text.lower:
            return "exact_keyword"
        if entry.text.lower in text.lower:
            return "keyword" if entry.source == "keyword" else "merchant_pattern"
        return None

    # Non-ASCII string, or nothing left after normalization: case-folded raw text.
    folded = entry.text.folded
    if folded and text.folded and folded in text.folded:
        if folded == text.folded and entry.source == "keyword":
            return "exact_keyword"
        return "keyword" if entry.source == "keyword" else "merchant_pattern"
    return None


class KeywordMatcher(Matcher):
    """Exact and substring hits on keywords and merchant patterns, all scored 1.0.

    Merchant patterns are literal substrings unless the category opts into
    ``pattern_mode="regex"``; a regex is searched in both the normalized and
    the case-folded raw text. Patterns that do not compile are dropped when
    the corpus is built.
    """
    method = MatchMethod.KEYWORD

    def match(self, text: NormalizedText, category: Category) -> list[MatchCandidate]:
        candidates: list[MatchCandidate] = []
        for entry in self.corpus.entries_for(category.id):
            if entry.source == "merchant_pattern" and category.pattern_mode == "regex":
                pattern = compile_pattern(entry.raw)
                hit = bool(pattern.search(text.lower) or pattern.search(text.folded))
                match_type: MatchType | None = "merchant_pattern" if hit else None
            else:
                match_type = _literal_match(text, entry)

            if match_type:
                candidates.append(self.candidate(category, entry, 1.0, match_type))
        return candidates
