from __future__ import annotations

from collections.abc import Iterable, Mapping
from dataclasses import dataclass, field
from types import MappingProxyType
from typing import Literal

from ledger_categorizer.core.errors import PatternError
from ledger_categorizer.domain.text import NormalizedText, compile_pattern, normalize
from ledger_categorizer.logger import get_logger
from ledger_categorizer.models import Category

logger = get_logger(__name__)

EntrySource = Literal["keyword", "merchant_pattern"]


@dataclass(frozen=True)
class CorpusEntry:
    category_id: str
    source: EntrySource
    raw: str
    text: NormalizedText
    position: int  # row of this entry in the corpus (and TF-IDF matrix)


@dataclass(frozen=True)
class CategoryCorpus:
    """Keyword and merchant-pattern strings of the categories that can match.

    Built once per request or batch and only read afterwards, so worker
    threads share it without locking.
    """
    categories: tuple[Category, ...]
    entries: tuple[CorpusEntry, ...]
    _by_category: Mapping[str, tuple[CorpusEntry, ...]] = field(repr=False, compare=False)

    @classmethod
    def build(cls, categories: Iterable[Category]) -> CategoryCorpus:
        eligible: list[Category] = []
        entries: list[CorpusEntry] = []
        by_category: dict[str, tuple[CorpusEntry, ...]] = {}
        skipped = 0

        for category in categories:
            if not category.is_active or category.id in by_category:
                skipped += 1
                continue

            own: list[CorpusEntry] = []
            sources: list[tuple[EntrySource, str]] = [("keyword", k) for k in category.keywords]
            sources += [("merchant_pattern", p) for p in category.merchant_patterns]
            for source, raw in sources:
                if not raw or not raw.strip():
                    continue
                if source == "merchant_pattern" and category.pattern_mode == "regex":
                    try:
                        compile_pattern(raw.strip())
                    except PatternError as exc:
                        logger.warning("[CORPUS] Skipping pattern of category %s: %s", category.id, exc)
                        continue
                entry = CorpusEntry(
                    category_id=category.id,
                    source=source,
                    raw=raw.strip(),
                    text=normalize(raw),
                    position=len(entries) + len(own),
                )
                own.append(entry)

            # No keywords or patterns: never a wildcard.
            if not own:
                skipped += 1
                continue

            eligible.append(category)
            entries.extend(own)
            by_category[category.id] = tuple(own)

        logger.debug(
            "[CORPUS] Built corpus: %d categories, %d strings, %d skipped",
            len(eligible),
            len(entries),
            skipped,
        )
        return cls(
            categories=tuple(eligible),
            entries=tuple(entries),
            _by_category=MappingProxyType(by_category),
        )

    def entries_for(self, category_id: str) -> tuple[CorpusEntry, ...]:
        return self._by_category.get(category_id, ())

    @property
    def is_empty(self) -> bool:
        return not self.categories
