from collections.abc import Callable, Iterable

from ledger_categorizer.domain.corpus import CategoryCorpus
from ledger_categorizer.models import METHOD_PRIORITY, MatchMethod

from .base import Matcher
from .jaccard import JaccardMatcher
from .keyword import KeywordMatcher
from .levenshtein import DEFAULT_MIN_SCORE, LevenshteinMatcher
from .tfidf import TfidfMatcher

MatcherFactory = Callable[[CategoryCorpus, float], Matcher]

MATCHER_FACTORIES: dict[MatchMethod, MatcherFactory] = {
    MatchMethod.KEYWORD: lambda corpus, _: KeywordMatcher(corpus),
    MatchMethod.COSINE_TFIDF: lambda corpus, _: TfidfMatcher(corpus),
    MatchMethod.JACCARD: lambda corpus, _: JaccardMatcher(corpus),
    MatchMethod.LEVENSHTEIN: lambda corpus, min_score: LevenshteinMatcher(corpus, min_score),
}


def build_matchers(
    corpus: CategoryCorpus,
    methods: Iterable[MatchMethod],
    levenshtein_min_score: float = DEFAULT_MIN_SCORE,
) -> dict[MatchMethod, Matcher]:
    """Instantiate the requested matchers, keyword first then by tie-break priority."""
    ordered = sorted(set(methods), key=METHOD_PRIORITY.__getitem__)
    return {method: MATCHER_FACTORIES[method](corpus, levenshtein_min_score) for method in ordered}
