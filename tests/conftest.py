"""Shared fixtures: a small user + system category set."""

import pytest

from ledger_categorizer.engine import CategorizationEngine
from ledger_categorizer.models import CategorizationSettings, Category


def make_category(
    category_id: str,
    name: str,
    keywords: list[str] | None = None,
    patterns: list[str] | None = None,
    **kwargs,
) -> Category:
    return Category(
        id=category_id,
        name=name,
        keywords=keywords or [],
        merchant_patterns=patterns or [],
        **kwargs,
    )


@pytest.fixture
def categories() -> list[Category]:
    return [
        make_category("cat-groceries", "Groceries", ["grocery", "supermarket"], ["whole foods"],
                      is_system_category=True),
        make_category("cat-coffee", "Coffee", ["coffee"], ["starbucks"], is_system_category=True),
        make_category("cat-shopping", "Shopping", ["amazon"], is_system_category=True),
        make_category("cat-dining", "Dining", ["restaurant"], user_id="alice"),
        make_category("cat-empty", "Misc", user_id="alice"),
    ]


@pytest.fixture
def settings() -> CategorizationSettings:
    return CategorizationSettings(confidence_threshold=0.5)


@pytest.fixture
def engine() -> CategorizationEngine:
    return CategorizationEngine(levenshtein_min_score=0.5)


@pytest.fixture
def anyio_backend() -> str:
    return "asyncio"
