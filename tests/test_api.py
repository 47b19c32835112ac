from collections.abc import Generator, Iterator
from contextlib import contextmanager
from typing import Any
from unittest.mock import MagicMock

import pytest
from fastapi.testclient import TestClient

from ledger_categorizer import main
from ledger_categorizer.core.errors import RepositoryUnavailable
from ledger_categorizer.engine import CategorizationEngine
from ledger_categorizer.main import app
from ledger_categorizer.models import Category
from ledger_categorizer.services.categorization import CategorizationCoordinator
from ledger_categorizer.services.repositories import (
    InMemoryCategoryRepository,
    InMemorySettingsRepository,
)

client = TestClient(app)

ALICE = {"X-User-Id": "alice"}


@contextmanager
def _swap_state(**services: Any) -> Iterator[None]:
    missing = object()
    originals = {name: getattr(app.state, name, missing) for name in services}
    for name, service in services.items():
        setattr(app.state, name, service)
    try:
        yield
    finally:
        for name, original in originals.items():
            if original is missing:
                delattr(app.state, name)
            else:
                setattr(app.state, name, original)


@pytest.fixture
def services(categories: list[Category]) -> Generator[InMemorySettingsRepository, None, None]:
    settings_repository = InMemorySettingsRepository()
    with _swap_state(
        coordinator=CategorizationCoordinator(CategorizationEngine(levenshtein_min_score=0.5), max_workers=2),
        categories=InMemoryCategoryRepository(categories),
        settings=settings_repository,
    ):
        yield settings_repository


def test_list_categories_per_user(services: InMemorySettingsRepository) -> None:
    response = client.get("/api/categories", headers=ALICE)
    assert response.status_code == 200
    ids = [c["id"] for c in response.json()]
    assert ids[:2] == ["cat-dining", "cat-empty"]

    response = client.get("/api/categories")
    ids = [c["id"] for c in response.json()]
    assert "cat-dining" not in ids
    assert "cat-groceries" in ids


def test_categorize_test_endpoint(services: InMemorySettingsRepository) -> None:
    response = client.post(
        "/api/categorize/test",
        json={"text": "WHOLE FOODS GROCERY #123", "include_stats": True},
    )
    assert response.status_code == 200
    data = response.json()
    assert data["would_be_categorized"] is True
    assert data["result"]["category_name"] == "Groceries"
    assert data["result"]["similarity_type"] == "keyword"
    assert data["result"]["confidence"] == 1.0
    assert "keyword" in data["stats"]["methods"]


def test_categorize_test_no_match(services: InMemorySettingsRepository) -> None:
    response = client.post("/api/categorize/test", json={"text": "AMZN MKTP US*2A3B4"})
    assert response.status_code == 200
    data = response.json()
    assert data["result"] is None
    assert data["would_be_categorized"] is False
    assert data["stats"] is None


def test_user_categories_only_match_for_their_owner(services: InMemorySettingsRepository) -> None:
    body = {"text": "LUIGI RESTAURANT"}
    assert client.post("/api/categorize/test", json=body, headers=ALICE).json()["result"]["category_id"] == "cat-dining"
    assert client.post("/api/categorize/test", json=body).json()["result"] is None


def test_preview_endpoint(services: InMemorySettingsRepository) -> None:
    transactions = [
        {"description": "WHOLE FOODS GROCERY #123"},
        {"description": "POS 4411", "merchant_name": "Starbucks"},
        {"description": "ZELLE TRANSFER"},
        {"description": "BLUE BOTTLE COFFEE", "category_id": "cat-manual"},
    ]
    response = client.post("/api/categorize/preview", json={"transactions": transactions})
    assert response.status_code == 200
    data = response.json()
    assert data["total_transactions"] == 4
    assert data["will_be_categorized"] == 2
    assert data["already_categorized"] == 1
    assert data["success_rate"] == pytest.approx(0.5)
    assert data["previews"][1]["result"]["category_id"] == "cat-coffee"
    assert data["previews"][2]["needs_review"] is True


def test_analyze_endpoint(services: InMemorySettingsRepository) -> None:
    response = client.post(
        "/api/categorize/analyze",
        json={"descriptions": ["grocery", "STARBUKS", "ZELLE TRANSFER"]},
    )
    assert response.status_code == 200
    data = response.json()
    assert data["successful_categorizations"] == 2
    assert data["method_stats"] == {"keyword": 1, "levenshtein": 1}
    assert len(data["results"]) == 3


def test_apply_endpoint(services: InMemorySettingsRepository) -> None:
    response = client.post(
        "/api/categorize/apply",
        json={"transactions": [
            {"description": "WHOLE FOODS GROCERY", "transaction_id": "t1", "amount": -12.5},
            {"description": "ZELLE TRANSFER", "transaction_id": "t2"},
        ]},
    )
    assert response.status_code == 200
    data = response.json()
    assert data["total_transactions"] == 2
    assert data["auto_categorized"] == 1
    assert data["needs_review"] == 1
    first, second = data["transactions"]
    assert first["category_id"] == "cat-groceries"
    assert first["match_method"] == "keyword"
    assert second["category_id"] is None


def test_settings_roundtrip(services: InMemorySettingsRepository) -> None:
    response = client.get("/api/categorize/settings", headers=ALICE)
    assert response.status_code == 200
    assert response.json()["confidence_threshold"] == services.defaults.confidence_threshold

    response = client.put(
        "/api/categorize/settings",
        json={"confidence_threshold": 0.95, "enabled_methods": ["keyword"]},
        headers=ALICE,
    )
    assert response.status_code == 200
    assert response.json()["enabled_methods"] == ["keyword"]

    assert client.get("/api/categorize/settings", headers=ALICE).json()["confidence_threshold"] == 0.95
    # Other users keep the defaults.
    assert client.get("/api/categorize/settings").json()["enabled_methods"] != ["keyword"]

    # Only keyword matching for alice now, so the misspelling no longer matches.
    result = client.post("/api/categorize/test", json={"text": "STARBUKS"}, headers=ALICE).json()
    assert result["result"] is None


def test_invalid_settings_rejected(services: InMemorySettingsRepository) -> None:
    client.put("/api/categorize/settings", json={"confidence_threshold": 0.7}, headers=ALICE)

    response = client.put("/api/categorize/settings", json={"confidence_threshold": 1.5}, headers=ALICE)
    assert response.status_code == 422
    detail = response.json()["detail"]
    assert detail["errors"]
    assert any("confidence_threshold" in error for error in detail["errors"])

    assert client.get("/api/categorize/settings", headers=ALICE).json()["confidence_threshold"] == 0.7


def test_unknown_method_rejected(services: InMemorySettingsRepository) -> None:
    response = client.put("/api/categorize/settings", json={"enabled_methods": ["soundex"]})
    assert response.status_code == 422


@pytest.fixture
def broken_categories(services: InMemorySettingsRepository) -> Generator[MagicMock, None, None]:
    mock = MagicMock()
    mock.list_categories.side_effect = RepositoryUnavailable("Categories unavailable: disk gone")
    with _swap_state(categories=mock):
        yield mock


def test_unavailable_repository_returns_503(broken_categories: MagicMock) -> None:
    response = client.post("/api/categorize/test", json={"text": "grocery"})
    assert response.status_code == 503
    assert "Categories unavailable" in response.json()["detail"]
    broken_categories.list_categories.assert_called_once_with("local")


@pytest.fixture
def no_coordinator(services: InMemorySettingsRepository) -> Generator[None, None, None]:
    coordinator = app.state.coordinator
    del app.state.coordinator
    yield
    app.state.coordinator = coordinator


def test_missing_service_returns_500(no_coordinator: None) -> None:
    response = client.post("/api/categorize/test", json={"text": "grocery"})
    assert response.status_code == 500
    assert response.json()["detail"] == "Service not initialized"


def test_run_serves_the_configured_app(monkeypatch: pytest.MonkeyPatch) -> None:
    serve = MagicMock()
    monkeypatch.setattr(main.uvicorn, "run", serve)
    monkeypatch.setenv("PORT", "8123")

    main.run()

    args, kwargs = serve.call_args
    assert args == (app,)
    assert kwargs["port"] == 8123
