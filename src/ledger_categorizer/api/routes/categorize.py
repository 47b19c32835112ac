import asyncio
from typing import Annotated

from fastapi import APIRouter, Depends

from ledger_categorizer.api.dependencies import (
    get_category_repository,
    get_coordinator,
    get_settings_repository,
    get_user_id,
)
from ledger_categorizer.api.schemas import (
    AnalyzeRequest,
    ApplyRequest,
    ApplyResponse,
    PreviewRequest,
    SuggestRequest,
)
from ledger_categorizer.logger import get_logger
from ledger_categorizer.models import (
    CategorizationAnalysis,
    CategorizationPreview,
    CategorizationSettings,
    Category,
    SingleCategorization,
)
from ledger_categorizer.services.categorization import CategorizationCoordinator, run_cancellable
from ledger_categorizer.services.repositories import CategoryRepository, SettingsRepository

logger = get_logger(__name__)

router = APIRouter(prefix="/api")

UserId = Annotated[str, Depends(get_user_id)]
Coordinator = Annotated[CategorizationCoordinator, Depends(get_coordinator)]
CategoryStore = Annotated[CategoryRepository, Depends(get_category_repository)]
SettingsStore = Annotated[SettingsRepository, Depends(get_settings_repository)]


async def _load(
    user_id: str,
    categories: CategoryRepository,
    settings: SettingsRepository,
) -> tuple[CategorizationSettings, list[Category]]:
    user_settings = await asyncio.to_thread(settings.get_settings, user_id)
    category_list = await asyncio.to_thread(categories.list_categories, user_id)
    return user_settings, category_list


@router.get("/categories", response_model=list[Category])
async def list_categories(user_id: UserId, categories: CategoryStore) -> list[Category]:
    return await asyncio.to_thread(categories.list_categories, user_id)


@router.post("/categorize/test", response_model=SingleCategorization)
async def test_categorization(
    req: SuggestRequest,
    user_id: UserId,
    coordinator: Coordinator,
    categories: CategoryStore,
    settings: SettingsStore,
) -> SingleCategorization:
    user_settings, category_list = await _load(user_id, categories, settings)
    result = await asyncio.to_thread(
        coordinator.test_categorization,
        req.text,
        user_settings,
        category_list,
        include_stats=req.include_stats,
    )
    if result.result:
        logger.info(
            "[CATEGORIZE] '%s' -> '%s' via %s (confidence: %.2f)",
            req.text[:50],
            result.result.category_name,
            result.result.similarity_type.value,
            result.result.confidence,
        )
    else:
        logger.info("[CATEGORIZE] No matching category for '%s'", req.text[:50])
    return result


@router.post("/categorize/preview", response_model=CategorizationPreview)
async def preview_bulk_categorization(
    req: PreviewRequest,
    user_id: UserId,
    coordinator: Coordinator,
    categories: CategoryStore,
    settings: SettingsStore,
) -> CategorizationPreview:
    user_settings, category_list = await _load(user_id, categories, settings)
    return await run_cancellable(coordinator.preview, req.transactions, user_settings, category_list)


@router.post("/categorize/analyze", response_model=CategorizationAnalysis)
async def analyze_categorization(
    req: AnalyzeRequest,
    user_id: UserId,
    coordinator: Coordinator,
    categories: CategoryStore,
    settings: SettingsStore,
) -> CategorizationAnalysis:
    user_settings, category_list = await _load(user_id, categories, settings)
    return await run_cancellable(
        coordinator.analyze,
        req.descriptions,
        user_settings,
        category_list,
        include_stats=req.include_stats,
    )


@router.post("/categorize/apply", response_model=ApplyResponse)
async def apply_categorization(
    req: ApplyRequest,
    user_id: UserId,
    coordinator: Coordinator,
    categories: CategoryStore,
    settings: SettingsStore,
) -> ApplyResponse:
    user_settings, category_list = await _load(user_id, categories, settings)
    records = await run_cancellable(coordinator.apply, req.transactions, user_settings, category_list)
    return ApplyResponse(
        total_transactions=len(records),
        auto_categorized=sum(1 for record in records if record.auto_categorized),
        needs_review=sum(1 for record in records if record.needs_review),
        transactions=records,
    )
