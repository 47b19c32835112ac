from collections.abc import Sequence
from functools import lru_cache

import numpy as np
from sklearn.feature_extraction.text import TfidfVectorizer
from sklearn.metrics.pairwise import cosine_similarity

from ledger_categorizer.domain.corpus import CategoryCorpus
from ledger_categorizer.domain.text import NormalizedText
from ledger_categorizer.logger import get_logger
from ledger_categorizer.models import Category, MatchCandidate, MatchMethod

from .base import Matcher

logger = get_logger(__name__)


class TfidfIndex:
    """TF-IDF vector space over a fixed list of normalized documents.

    Documents are already tokenized by the text normalizer, so the analyzer
    only splits on spaces; repeated tokens keep their counts. Never refitted:
    a changed corpus gets a new index.
    """

    def __init__(self, documents: Sequence[str]) -> None:
        self.size = len(documents)
        self.vectorizer = TfidfVectorizer(analyzer=str.split, smooth_idf=False, norm="l2")
        self.matrix = None
        if any(documents):
            self.matrix = self.vectorizer.fit_transform(documents)

    @property
    def vocabulary(self) -> dict[str, int]:
        if self.matrix is None:
            return {}
        return dict(self.vectorizer.vocabulary_)

    def scores(self, text: str) -> np.ndarray:
        """Cosine similarity of ``text`` against every document, 0.0 for zero vectors."""
        if self.matrix is None or not text:
            return np.zeros(self.size)
        vector = self.vectorizer.transform([text])
        if vector.nnz == 0:
            return np.zeros(self.size)
        return cosine_similarity(vector, self.matrix)[0]


class TfidfMatcher(Matcher):
    method = MatchMethod.COSINE_TFIDF

    def __init__(self, corpus: CategoryCorpus, cache_size: int = 1024) -> None:
        super().__init__(corpus)
        self.index = TfidfIndex([entry.text.lower for entry in corpus.entries])
        # One vector product per distinct input, shared by every category.
        self._scores = lru_cache(maxsize=cache_size)(self.index.scores)
        logger.debug(
            "[TFIDF] Index built: %d documents, %d terms",
            self.index.size,
            len(self.index.vocabulary),
        )

    def match(self, text: NormalizedText, category: Category) -> list[MatchCandidate]:
        candidates: list[MatchCandidate] = []
        entries = self.corpus.entries_for(category.id)
        if not entries or not text.lower:
            return candidates
        scores = self._scores(text.lower)
        for entry in entries:
            score = float(scores[entry.position])
            if score > 0:
                candidates.append(self.candidate(category, entry, score))
        return candidates
