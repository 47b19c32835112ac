from rapidfuzz.distance import Levenshtein

from ledger_categorizer.domain.corpus import CategoryCorpus
from ledger_categorizer.domain.text import NormalizedText
from ledger_categorizer.models import Category, MatchCandidate, MatchMethod

from .base import Matcher, clamp_score

DEFAULT_MIN_SCORE = 0.5


def levenshtein_score(a: str, b: str) -> float:
    """Edit distance scaled to a similarity: 1 - d / max(len(a), len(b))."""
    longest = max(len(a), len(b))
    if longest == 0:
        return 1.0
    return clamp_score(1.0 - Levenshtein.distance(a, b) / longest)


class LevenshteinMatcher(Matcher):
    """Whole-string edit similarity; catches misspellings and abbreviations.

    Scores at or below ``min_score`` are dropped, short strings being prone
    to incidental similarity.
    """
    method = MatchMethod.LEVENSHTEIN

    def __init__(self, corpus: CategoryCorpus, min_score: float = DEFAULT_MIN_SCORE) -> None:
        super().__init__(corpus)
        self.min_score = min_score

    def match(self, text: NormalizedText, category: Category) -> list[MatchCandidate]:
        candidates: list[MatchCandidate] = []
        if not text.lower:
            return candidates
        for entry in self.corpus.entries_for(category.id):
            if not entry.text.lower:
                continue
            score = levenshtein_score(text.lower, entry.text.lower)
            if score > self.min_score:
                candidates.append(self.candidate(category, entry, score))
        return candidates
