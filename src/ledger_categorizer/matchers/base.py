from abc import ABC, abstractmethod

from ledger_categorizer.domain.corpus import CategoryCorpus, CorpusEntry
from ledger_categorizer.domain.text import NormalizedText
from ledger_categorizer.models import Category, MatchCandidate, MatchMethod, MatchType


SCORE_PRECISION = 10


def clamp_score(score: float) -> float:
    # Rounded so float noise (0.9999999999999998) cannot split ties.
    return round(min(1.0, max(0.0, float(score))), SCORE_PRECISION)


class Matcher(ABC):
    method: MatchMethod

    def __init__(self, corpus: CategoryCorpus) -> None:
        self.corpus = corpus

    @abstractmethod
    def match(self, text: NormalizedText, category: Category) -> list[MatchCandidate]:
        """Score the text against one category's keywords and patterns."""
        pass

    def candidate(
        self,
        category: Category,
        entry: CorpusEntry,
        score: float,
        match_type: MatchType = "similarity",
    ) -> MatchCandidate:
        return MatchCandidate(
            category_id=category.id,
            category_name=category.name,
            matched_text=entry.raw,
            method=self.method,
            match_type=match_type,
            score=clamp_score(score),
            is_system_category=category.is_system_category,
        )
