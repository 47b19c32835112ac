import asyncio
import threading
from collections.abc import Callable, Iterable, Sequence
from concurrent.futures import Future, ThreadPoolExecutor, as_completed
from typing import Any, TypeVar

from ledger_categorizer.core import settings as app_settings
from ledger_categorizer.core.errors import BatchCancelled
from ledger_categorizer.engine import CategorizationEngine, MatchingContext
from ledger_categorizer.logger import get_logger
from ledger_categorizer.models import (
    AnalysisItem,
    CategorizationAnalysis,
    CategorizationPreview,
    CategorizationSettings,
    CategorizedTransaction,
    Category,
    CategoryMatchResult,
    PreviewItem,
    SingleCategorization,
    TransactionInput,
)

logger = get_logger(__name__)

T = TypeVar("T")

SearchItem = tuple[str | None, str | None]  # (description, merchant_name)


def success_rate(successes: int, total: int) -> float:
    return successes / total if total else 0.0


async def run_cancellable(func: Callable[..., T], /, *args: Any, **kwargs: Any) -> T:
    """Run a batch call in a worker thread, stopping its item work if the request is cancelled."""
    cancel_event = threading.Event()
    try:
        return await asyncio.to_thread(func, *args, cancel_event=cancel_event, **kwargs)
    except asyncio.CancelledError:
        cancel_event.set()
        raise


class CategorizationCoordinator:
    """Categorizes many transactions against one category set.

    Items are independent: each one is matched against the same read-only
    ``MatchingContext`` and results are stored by input index, so neither
    batch size nor completion order changes any single result.
    """

    def __init__(self, engine: CategorizationEngine, max_workers: int | None = None) -> None:
        self.engine = engine
        self.max_workers = max_workers or app_settings.CATEGORIZE_WORKERS

    def _categorize_one(
        self,
        item: SearchItem,
        settings: CategorizationSettings,
        context: MatchingContext,
    ) -> CategoryMatchResult | None:
        description, merchant_name = item
        try:
            return self.engine.categorize(
                description,
                merchant_name,
                settings=settings,
                context=context,
            )
        except Exception:
            logger.warning(
                "[BATCH] Categorization failed for '%s'; leaving it uncategorized",
                (merchant_name or description or "")[:50],
                exc_info=True,
            )
            return None

    def categorize_all(
        self,
        items: Sequence[SearchItem],
        settings: CategorizationSettings,
        context: MatchingContext,
        cancel_event: threading.Event | None = None,
    ) -> list[CategoryMatchResult | None]:
        results: list[CategoryMatchResult | None] = [None] * len(items)
        if not items:
            return results

        def cancelled() -> bool:
            return cancel_event is not None and cancel_event.is_set()

        workers = min(self.max_workers, len(items))
        with ThreadPoolExecutor(max_workers=workers, thread_name_prefix="categorize") as executor:
            futures: dict[Future, int] = {}
            for index, item in enumerate(items):
                if cancelled():
                    break
                futures[executor.submit(self._categorize_one, item, settings, context)] = index

            for future in as_completed(futures):
                if cancelled():
                    break
                results[futures[future]] = future.result()

            if cancelled():
                for future in futures:
                    future.cancel()
                logger.info("[BATCH] Cancelled after %d of %d items were submitted", len(futures), len(items))
                raise BatchCancelled("Categorization batch cancelled")

        return results

    def test_categorization(
        self,
        text: str,
        settings: CategorizationSettings,
        categories: Iterable[Category],
        *,
        include_stats: bool = False,
    ) -> SingleCategorization:
        context = self.engine.prepare(categories)
        result = self.engine.categorize(text, settings=settings, context=context)
        stats = self.engine.matching_stats(text, context=context) if include_stats else None
        return SingleCategorization(
            description=text,
            result=result,
            would_be_categorized=result is not None,
            stats=stats,
        )

    def preview(
        self,
        transactions: Sequence[TransactionInput],
        settings: CategorizationSettings,
        categories: Iterable[Category],
        *,
        cancel_event: threading.Event | None = None,
    ) -> CategorizationPreview:
        logger.debug("[BATCH] Starting categorization preview for %d transactions", len(transactions))
        context = self.engine.prepare(categories)
        results = self.categorize_all(
            [(tx.description, tx.merchant_name) for tx in transactions],
            settings,
            context,
            cancel_event,
        )

        previews: list[PreviewItem] = []
        for index, (tx, result) in enumerate(zip(transactions, results)):
            # A manual category is kept; the suggestion is shown but not applied.
            keeps_original = tx.category_id is not None
            will_be_categorized = result is not None and not keeps_original
            previews.append(PreviewItem(
                index=index,
                description=tx.description,
                merchant_name=tx.merchant_name,
                original_category=tx.category_id,
                result=result,
                will_be_categorized=will_be_categorized,
                needs_review=not keeps_original and result is None,
            ))

        will_be_categorized = sum(1 for item in previews if item.will_be_categorized)
        preview = CategorizationPreview(
            total_transactions=len(transactions),
            will_be_categorized=will_be_categorized,
            already_categorized=sum(1 for tx in transactions if tx.category_id is not None),
            success_rate=success_rate(will_be_categorized, len(transactions)),
            previews=previews,
        )
        logger.info(
            "[BATCH] Preview complete: %d transactions, %d will be categorized, %d already categorized",
            preview.total_transactions,
            preview.will_be_categorized,
            preview.already_categorized,
        )
        return preview

    def analyze(
        self,
        descriptions: Sequence[str],
        settings: CategorizationSettings,
        categories: Iterable[Category],
        *,
        include_stats: bool = False,
        cancel_event: threading.Event | None = None,
    ) -> CategorizationAnalysis:
        context = self.engine.prepare(categories)
        results = self.categorize_all(
            [(description, None) for description in descriptions],
            settings,
            context,
            cancel_event,
        )

        analysis = CategorizationAnalysis(total_transactions=len(descriptions))
        for description, result in zip(descriptions, results):
            if result is not None:
                analysis.successful_categorizations += 1
                method = result.similarity_type.value
                analysis.method_stats[method] = analysis.method_stats.get(method, 0) + 1
            stats = None
            if include_stats:
                stats = self.engine.matching_stats(description or "", context=context)
            analysis.results.append(AnalysisItem(
                description=description or "",
                result=result,
                would_be_categorized=result is not None,
                stats=stats,
            ))

        analysis.success_rate = success_rate(analysis.successful_categorizations, analysis.total_transactions)
        if context.corpus.is_empty and descriptions:
            logger.info("[BATCH] No categories with keywords or patterns; nothing can be categorized")
        logger.info(
            "[BATCH] Analysis complete: %d/%d categorized (%.0f%%)",
            analysis.successful_categorizations,
            analysis.total_transactions,
            analysis.success_rate * 100,
        )
        return analysis

    def apply(
        self,
        transactions: Sequence[TransactionInput],
        settings: CategorizationSettings,
        categories: Iterable[Category],
        *,
        cancel_event: threading.Event | None = None,
    ) -> list[CategorizedTransaction]:
        """Resolve the category, confidence and review flag a transaction store would persist."""
        pending = [i for i, tx in enumerate(transactions) if tx.category_id is None]
        results: dict[int, CategoryMatchResult | None] = {}
        if settings.auto_categorize_on_upload and pending:
            context = self.engine.prepare(categories)
            found = self.categorize_all(
                [(transactions[i].description, transactions[i].merchant_name) for i in pending],
                settings,
                context,
                cancel_event,
            )
            results = dict(zip(pending, found))

        records: list[CategorizedTransaction] = []
        for index, tx in enumerate(transactions):
            record = CategorizedTransaction(
                index=index,
                transaction_id=tx.transaction_id,
                description=tx.description,
                merchant_name=tx.merchant_name,
                amount=tx.amount,
                category_id=tx.category_id,
                needs_review=tx.category_id is None,
            )
            result = results.get(index)
            if result is not None:
                record.category_id = result.category_id
                record.confidence_score = result.confidence
                record.match_method = result.similarity_type
                record.needs_review = False
                record.auto_categorized = True
            records.append(record)

        categorized = sum(1 for record in records if record.auto_categorized)
        if pending:
            logger.info(
                "[BATCH] Auto-categorization applied: %d of %d uncategorized (%.0f%%)",
                categorized,
                len(pending),
                success_rate(categorized, len(pending)) * 100,
            )
        return records
