import json
import os
import threading
from collections.abc import Iterable
from typing import Any, Protocol

from pydantic import TypeAdapter, ValidationError

from ledger_categorizer.core import settings as app_settings
from ledger_categorizer.core.errors import ConfigurationError, RepositoryUnavailable
from ledger_categorizer.logger import get_logger
from ledger_categorizer.models import CategorizationSettings, Category, SettingsPatch

logger = get_logger(__name__)

_CATEGORY_LIST = TypeAdapter(list[Category])


class CategoryRepository(Protocol):
    def list_categories(self, user_id: str) -> list[Category]:
        """Active categories owned by the user plus the system categories."""
        ...


class SettingsRepository(Protocol):
    def get_settings(self, user_id: str) -> CategorizationSettings: ...

    def update_settings(self, user_id: str, patch: SettingsPatch) -> CategorizationSettings: ...


def default_settings() -> CategorizationSettings:
    return CategorizationSettings(confidence_threshold=app_settings.DEFAULT_CONFIDENCE_THRESHOLD)


def validate_settings(values: dict[str, Any]) -> CategorizationSettings:
    try:
        return CategorizationSettings.model_validate(values)
    except ValidationError as exc:
        errors = [
            f"{'.'.join(str(part) for part in error['loc'])}: {error['msg']}"
            for error in exc.errors()
        ]
        raise ConfigurationError("Invalid categorization settings", errors=errors) from exc


def visible_categories(categories: Iterable[Category], user_id: str) -> list[Category]:
    own = [c for c in categories if c.is_active and c.user_id == user_id]
    system = [c for c in categories if c.is_active and c.user_id is None]
    return own + system


class InMemoryCategoryRepository:
    def __init__(self, categories: Iterable[Category] = ()) -> None:
        self._categories: list[Category] = list(categories)

    def list_categories(self, user_id: str) -> list[Category]:
        return visible_categories(self._categories, user_id)


class JsonCategoryRepository:
    """Categories read from a JSON list on every call, so edits show up on the next request."""

    def __init__(self, data_path: str) -> None:
        self.data_path = data_path

    def load(self) -> list[Category]:
        if not os.path.exists(self.data_path):
            return []
        try:
            with open(self.data_path, encoding="utf-8") as f:
                return _CATEGORY_LIST.validate_python(json.load(f))
        except (OSError, json.JSONDecodeError, ValidationError) as exc:
            logger.error("[CATEGORIES] Failed to read %s: %s", self.data_path, exc)
            raise RepositoryUnavailable(f"Categories unavailable: {exc}") from exc

    def list_categories(self, user_id: str) -> list[Category]:
        return visible_categories(self.load(), user_id)


class InMemorySettingsRepository:
    def __init__(self, defaults: CategorizationSettings | None = None) -> None:
        self.defaults = defaults or default_settings()
        self.settings: dict[str, CategorizationSettings] = {}
        self._lock = threading.Lock()

    def get_settings(self, user_id: str) -> CategorizationSettings:
        return self.settings.get(user_id, self.defaults).model_copy(deep=True)

    def update_settings(self, user_id: str, patch: SettingsPatch) -> CategorizationSettings:
        with self._lock:
            current = self.get_settings(user_id)
            merged = current.model_dump(mode="json")
            merged.update(patch.model_dump(exclude_unset=True, exclude_none=True))
            updated = validate_settings(merged)
            previous = self.settings.get(user_id)
            self.settings[user_id] = updated
            try:
                self.save()
            except RepositoryUnavailable:
                if previous is None:
                    del self.settings[user_id]
                else:
                    self.settings[user_id] = previous
                raise

        logger.info(
            "[SETTINGS] Updated settings for %s: threshold=%.2f, methods=%s, auto_categorize=%s",
            user_id,
            updated.confidence_threshold,
            ",".join(m.value for m in updated.enabled_methods) or "(none)",
            updated.auto_categorize_on_upload,
        )
        return updated.model_copy(deep=True)

    def save(self) -> None:
        pass


class JsonSettingsRepository(InMemorySettingsRepository):
    def __init__(self, data_path: str, defaults: CategorizationSettings | None = None) -> None:
        super().__init__(defaults)
        self.data_path = data_path
        self.load()

    def load(self) -> None:
        if not os.path.exists(self.data_path):
            return
        try:
            with open(self.data_path, encoding="utf-8") as f:
                raw = json.load(f)
        except (OSError, json.JSONDecodeError) as exc:
            raise RepositoryUnavailable(f"Settings unavailable: {exc}") from exc

        for user_id, values in raw.items():
            try:
                self.settings[user_id] = validate_settings(values)
            except ConfigurationError as exc:
                logger.warning(
                    "[SETTINGS] Ignoring stored settings for %s: %s",
                    user_id,
                    "; ".join(exc.errors),
                )

    def save(self) -> None:
        payload = {user_id: s.model_dump(mode="json") for user_id, s in self.settings.items()}
        try:
            with open(self.data_path, "w", encoding="utf-8") as f:
                json.dump(payload, f, indent=2)
        except OSError as exc:
            raise RepositoryUnavailable(f"Settings could not be saved: {exc}") from exc
