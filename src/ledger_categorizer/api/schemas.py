from pydantic import BaseModel, Field

from ledger_categorizer.models import CategorizedTransaction, TransactionInput


class SuggestRequest(BaseModel):
    text: str
    include_stats: bool = False


class PreviewRequest(BaseModel):
    transactions: list[TransactionInput] = Field(default_factory=list)


class AnalyzeRequest(BaseModel):
    descriptions: list[str] = Field(default_factory=list)
    include_stats: bool = False


class ApplyRequest(BaseModel):
    transactions: list[TransactionInput] = Field(default_factory=list)


class ApplyResponse(BaseModel):
    total_transactions: int
    auto_categorized: int
    needs_review: int
    transactions: list[CategorizedTransaction]
