from datetime import datetime
from enum import Enum
from typing import Literal

from pydantic import BaseModel, Field, field_validator, model_validator

CategoryType = Literal["income", "expense", "transfer"]
PatternMode = Literal["literal", "regex"]
MatchType = Literal["exact_keyword", "keyword", "merchant_pattern", "similarity"]


class MatchMethod(str, Enum):
    KEYWORD = "keyword"
    JACCARD = "jaccard"
    LEVENSHTEIN = "levenshtein"
    COSINE_TFIDF = "cosine_tfidf"


# Tie-break order when two candidates score the same: lower wins.
METHOD_PRIORITY: dict[MatchMethod, int] = {
    MatchMethod.KEYWORD: 0,
    MatchMethod.COSINE_TFIDF: 1,
    MatchMethod.JACCARD: 2,
    MatchMethod.LEVENSHTEIN: 3,
}

ALL_METHODS: tuple[MatchMethod, ...] = tuple(METHOD_PRIORITY)


class Category(BaseModel):
    id: str
    name: str
    category_type: CategoryType = "expense"
    user_id: str | None = None  # None for system categories
    keywords: list[str] = Field(default_factory=list)
    merchant_patterns: list[str] = Field(default_factory=list)
    pattern_mode: PatternMode = "literal"
    is_system_category: bool = False
    is_active: bool = True
    updated_at: datetime | None = None

    @model_validator(mode="after")
    def _system_means_unowned(self) -> "Category":
        # Ownership decides: repositories list unowned categories as system ones.
        self.is_system_category = self.user_id is None
        return self


class MatchCandidate(BaseModel):
    category_id: str
    category_name: str
    matched_text: str
    method: MatchMethod
    match_type: MatchType
    score: float = Field(ge=0.0, le=1.0)
    is_system_category: bool = False


class CategoryMatchResult(BaseModel):
    category_id: str
    category_name: str
    match_type: MatchType
    matched_text: str
    confidence: float
    similarity_type: MatchMethod

    @classmethod
    def from_candidate(cls, candidate: MatchCandidate) -> "CategoryMatchResult":
        return cls(
            category_id=candidate.category_id,
            category_name=candidate.category_name,
            match_type=candidate.match_type,
            matched_text=candidate.matched_text,
            confidence=candidate.score,
            similarity_type=candidate.method,
        )


class CategorizationSettings(BaseModel):
    confidence_threshold: float = Field(default=0.5, ge=0.0, le=1.0, allow_inf_nan=False)
    auto_categorize_on_upload: bool = True
    enabled_methods: list[MatchMethod] = Field(default_factory=lambda: list(ALL_METHODS))

    @field_validator("enabled_methods")
    @classmethod
    def _dedupe_methods(cls, methods: list[MatchMethod]) -> list[MatchMethod]:
        return list(dict.fromkeys(methods))


class SettingsPatch(BaseModel):
    """Partial settings update; validated once merged with the stored settings."""
    confidence_threshold: float | None = None
    auto_categorize_on_upload: bool | None = None
    enabled_methods: list[str] | None = None


class TransactionInput(BaseModel):
    description: str = ""
    merchant_name: str | None = None
    amount: float | None = None
    category_id: str | None = None  # manual category already assigned
    transaction_id: str | None = None


class MethodStats(BaseModel):
    best_score: float
    match_count: int
    best_category: str


class MatchingStats(BaseModel):
    text: str
    methods: dict[str, MethodStats] = Field(default_factory=dict)


class SingleCategorization(BaseModel):
    description: str
    result: CategoryMatchResult | None = None
    would_be_categorized: bool = False
    stats: MatchingStats | None = None


class PreviewItem(BaseModel):
    index: int
    description: str
    merchant_name: str | None = None
    original_category: str | None = None
    result: CategoryMatchResult | None = None
    will_be_categorized: bool = False
    needs_review: bool = True


class CategorizationPreview(BaseModel):
    total_transactions: int = 0
    will_be_categorized: int = 0
    already_categorized: int = 0
    success_rate: float = 0.0
    previews: list[PreviewItem] = Field(default_factory=list)


class AnalysisItem(BaseModel):
    description: str
    result: CategoryMatchResult | None = None
    would_be_categorized: bool = False
    stats: MatchingStats | None = None


class CategorizationAnalysis(BaseModel):
    total_transactions: int = 0
    successful_categorizations: int = 0
    success_rate: float = 0.0
    method_stats: dict[str, int] = Field(default_factory=dict)
    results: list[AnalysisItem] = Field(default_factory=list)


class CategorizedTransaction(BaseModel):
    index: int
    transaction_id: str | None = None
    description: str
    merchant_name: str | None = None
    amount: float | None = None
    category_id: str | None = None
    confidence_score: float | None = None
    match_method: MatchMethod | None = None
    needs_review: bool = True
    auto_categorized: bool = False
