import asyncio
from typing import Annotated

from fastapi import APIRouter, Depends, HTTPException

from ledger_categorizer.api.dependencies import get_settings_repository, get_user_id
from ledger_categorizer.core.errors import ConfigurationError
from ledger_categorizer.logger import get_logger
from ledger_categorizer.models import CategorizationSettings, SettingsPatch
from ledger_categorizer.services.repositories import SettingsRepository

logger = get_logger(__name__)

router = APIRouter(prefix="/api/categorize")


@router.get("/settings", response_model=CategorizationSettings)
async def get_settings(
    user_id: Annotated[str, Depends(get_user_id)],
    settings: Annotated[SettingsRepository, Depends(get_settings_repository)],
) -> CategorizationSettings:
    return await asyncio.to_thread(settings.get_settings, user_id)


@router.put("/settings", response_model=CategorizationSettings)
async def update_settings(
    patch: SettingsPatch,
    user_id: Annotated[str, Depends(get_user_id)],
    settings: Annotated[SettingsRepository, Depends(get_settings_repository)],
) -> CategorizationSettings:
    try:
        return await asyncio.to_thread(settings.update_settings, user_id, patch)
    except ConfigurationError as exc:
        logger.warning("[SETTINGS] Rejected update for %s: %s", user_id, "; ".join(exc.errors))
        raise HTTPException(
            status_code=422,
            detail={"message": str(exc), "errors": exc.errors},
        ) from exc
