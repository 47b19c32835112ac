from collections.abc import Set

from ledger_categorizer.domain.text import NormalizedText
from ledger_categorizer.models import Category, MatchCandidate, MatchMethod

from .base import Matcher


def jaccard_similarity(a: Set[str], b: Set[str]) -> float:
    """|A & B| / |A | B|, with 0.0 for two empty sets."""
    union = len(a | b)
    if union == 0:
        return 0.0
    return len(a & b) / union


class JaccardMatcher(Matcher):
    method = MatchMethod.JACCARD

    def match(self, text: NormalizedText, category: Category) -> list[MatchCandidate]:
        candidates: list[MatchCandidate] = []
        for entry in self.corpus.entries_for(category.id):
            score = jaccard_similarity(text.tokens, entry.text.tokens)
            if score > 0:
                candidates.append(self.candidate(category, entry, score))
        return candidates
