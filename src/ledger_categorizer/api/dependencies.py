from typing import Annotated

from fastapi import Header, HTTPException, Request

from ledger_categorizer.services.categorization import CategorizationCoordinator
from ledger_categorizer.services.repositories import CategoryRepository, SettingsRepository

DEFAULT_USER_ID = "local"


def get_user_id(x_user_id: Annotated[str | None, Header()] = None) -> str:
    # Authentication happens upstream; the caller only names the user.
    return x_user_id.strip() if x_user_id and x_user_id.strip() else DEFAULT_USER_ID


def get_coordinator(request: Request) -> CategorizationCoordinator:
    coordinator = getattr(request.app.state, "coordinator", None)
    if not coordinator:
        raise HTTPException(status_code=500, detail="Service not initialized")
    return coordinator


def get_category_repository(request: Request) -> CategoryRepository:
    repository = getattr(request.app.state, "categories", None)
    if repository is None:
        raise HTTPException(status_code=500, detail="Category store not configured")
    return repository


def get_settings_repository(request: Request) -> SettingsRepository:
    repository = getattr(request.app.state, "settings", None)
    if repository is None:
        raise HTTPException(status_code=500, detail="Settings store not configured")
    return repository
