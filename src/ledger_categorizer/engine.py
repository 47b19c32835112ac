from collections.abc import Iterable, Mapping
from dataclasses import dataclass

from ledger_categorizer.core import settings as app_settings
from ledger_categorizer.core.errors import PatternError
from ledger_categorizer.domain.corpus import CategoryCorpus
from ledger_categorizer.domain.text import NormalizedText, normalize
from ledger_categorizer.logger import get_logger
from ledger_categorizer.matchers.base import Matcher
from ledger_categorizer.matchers.registry import build_matchers
from ledger_categorizer.models import (
    ALL_METHODS,
    METHOD_PRIORITY,
    CategorizationSettings,
    Category,
    CategoryMatchResult,
    MatchCandidate,
    MatchingStats,
    MatchMethod,
    MethodStats,
)

logger = get_logger(__name__)


@dataclass(frozen=True)
class MatchingContext:
    """A category corpus with its matchers, shared read-only by one request or batch."""
    corpus: CategoryCorpus
    matchers: Mapping[MatchMethod, Matcher]


def search_text(description: str | None, merchant_name: str | None = None) -> str:
    """Merchant name when there is one, since it carries more signal than the description."""
    if merchant_name and merchant_name.strip():
        return merchant_name
    return description or ""


def selection_key(candidate: MatchCandidate) -> tuple:
    return (
        -candidate.score,
        METHOD_PRIORITY[candidate.method],
        candidate.is_system_category,  # the user's own categories before system ones
        candidate.category_id,
        candidate.matched_text,
    )


def select_best(candidates: Iterable[MatchCandidate]) -> MatchCandidate | None:
    return min(candidates, key=selection_key, default=None)


class CategorizationEngine:
    """Runs the enabled matchers over a category set and picks one winner.

    Stateless between calls: everything it needs arrives as arguments, and a
    ``MatchingContext`` can be prepared once and reused for a whole batch.
    """

    def __init__(self, levenshtein_min_score: float | None = None) -> None:
        if levenshtein_min_score is None:
            levenshtein_min_score = app_settings.LEVENSHTEIN_MIN_SCORE
        self.levenshtein_min_score = levenshtein_min_score

    def prepare(
        self,
        categories: Iterable[Category],
        methods: Iterable[MatchMethod] = ALL_METHODS,
    ) -> MatchingContext:
        corpus = CategoryCorpus.build(categories)
        return MatchingContext(
            corpus=corpus,
            matchers=build_matchers(corpus, methods, self.levenshtein_min_score),
        )

    def _context(
        self,
        categories: Iterable[Category] | None,
        context: MatchingContext | None,
    ) -> MatchingContext:
        if context is not None:
            return context
        return self.prepare(categories or [])

    def candidates(
        self,
        text: NormalizedText,
        context: MatchingContext,
        methods: Iterable[MatchMethod] = ALL_METHODS,
        *,
        short_circuit: bool = True,
    ) -> list[MatchCandidate]:
        wanted = set(methods)
        found: list[MatchCandidate] = []

        for method, matcher in context.matchers.items():
            if method not in wanted:
                continue
            for category in context.corpus.categories:
                try:
                    found.extend(matcher.match(text, category))
                except PatternError as exc:
                    logger.warning("[ENGINE] Skipping category %s: %s", category.id, exc)
                except Exception:
                    logger.warning(
                        "[ENGINE] %s matcher failed for category %s; skipping",
                        method.value,
                        category.id,
                        exc_info=True,
                    )

            # Keyword runs first; nothing else can beat a 1.0 keyword hit.
            if short_circuit and method is MatchMethod.KEYWORD and any(c.score >= 1.0 for c in found):
                break

        return found

    def categorize(
        self,
        description: str | None,
        merchant_name: str | None = None,
        *,
        settings: CategorizationSettings,
        categories: Iterable[Category] | None = None,
        context: MatchingContext | None = None,
    ) -> CategoryMatchResult | None:
        text = normalize(search_text(description, merchant_name))
        if text.is_empty and not text.folded:
            return None
        if not settings.enabled_methods:
            return None

        ctx = self._context(categories, context)
        if ctx.corpus.is_empty:
            return None

        best = select_best(self.candidates(text, ctx, settings.enabled_methods))
        if best is None:
            logger.debug("[ENGINE] No candidates for '%s'", text.raw[:50])
            return None

        threshold = min(max(settings.confidence_threshold, 0.0), 1.0)
        if best.score < threshold:
            logger.debug(
                "[ENGINE] Best match '%s' via %s scored %.2f, below threshold %.2f",
                best.category_name,
                best.method.value,
                best.score,
                threshold,
            )
            return None

        logger.debug(
            "[ENGINE] '%s' -> '%s' via %s (%.2f, matched '%s')",
            text.raw[:50],
            best.category_name,
            best.method.value,
            best.score,
            best.matched_text,
        )
        return CategoryMatchResult.from_candidate(best)

    def matching_stats(
        self,
        text: str,
        *,
        categories: Iterable[Category] | None = None,
        context: MatchingContext | None = None,
        methods: Iterable[MatchMethod] = ALL_METHODS,
    ) -> MatchingStats:
        """Best score, candidate count and best category for each method that produced candidates."""
        stats = MatchingStats(text=text)
        normalized = normalize(text)
        if normalized.is_empty and not normalized.folded:
            return stats

        ctx = self._context(categories, context)
        by_method: dict[MatchMethod, list[MatchCandidate]] = {}
        for candidate in self.candidates(normalized, ctx, methods, short_circuit=False):
            by_method.setdefault(candidate.method, []).append(candidate)

        for method in sorted(by_method, key=METHOD_PRIORITY.__getitem__):
            found = by_method[method]
            best = select_best(found)
            if best is None:
                continue
            stats.methods[method.value] = MethodStats(
                best_score=best.score,
                match_count=len(found),
                best_category=best.category_name,
            )
        return stats
