import datetime as dt
from enum import StrEnum

from pydantic import BaseModel, ConfigDict, Field

HIGH_CONFIDENCE = 0.85
MEDIUM_CONFIDENCE = 0.70


class ImportSource(StrEnum):
    RULE_BASED = "rule_based"
    DOCUMENT_AI = "document_ai"
    LLM_ENHANCED = "llm_enhanced"
    USER_CORRECTED = "user_corrected"
    NATIVE_AI = "native_ai"


class ImportedTransaction(BaseModel):
    model_config = ConfigDict(frozen=True)

    date: dt.date
    amount: int  # signed, minor units
    description: str
    merchant: str | None = None
    balance: int | None = None
    category: str | None = None  # hint from the source file
    confidence: float = Field(ge=0.0, le=1.0)
    source: ImportSource
    raw_data: dict[str, str] = Field(default_factory=dict)

    @property
    def is_expense(self) -> bool:
        return self.amount < 0


class LedgerTransaction(BaseModel):
    """A transaction that already exists in the user's ledger."""
    model_config = ConfigDict(frozen=True)

    id: int
    date: dt.date
    amount: int
    description: str


class CategorizationSource(StrEnum):
    USER_LEARNED = "user_learned"
    MERCHANT_DATABASE = "merchant_database"
    USER_HISTORY = "user_history"
    RULE_BASED = "rule_based"
    ON_DEVICE_ML = "on_device_ml"
    LLM_TIER2 = "llm_tier2"
    LLM_TIER3 = "llm_tier3"
    USER = "user"


_LOCAL_SOURCES = {
    CategorizationSource.USER_LEARNED,
    CategorizationSource.MERCHANT_DATABASE,
    CategorizationSource.USER_HISTORY,
    CategorizationSource.RULE_BASED,
    CategorizationSource.ON_DEVICE_ML,
    CategorizationSource.USER,
}


class CategorizationResult(BaseModel):
    transaction_id: int
    category_id: str
    confidence: float = Field(ge=0.0, le=1.0)
    source: CategorizationSource

    @property
    def is_high_confidence(self) -> bool:
        return self.confidence >= HIGH_CONFIDENCE

    @property
    def is_medium_confidence(self) -> bool:
        return MEDIUM_CONFIDENCE <= self.confidence < HIGH_CONFIDENCE

    @property
    def is_low_confidence(self) -> bool:
        return self.confidence < MEDIUM_CONFIDENCE

    @property
    def requires_user_confirmation(self) -> bool:
        return not self.is_high_confidence

    @property
    def is_local_source(self) -> bool:
        return self.source in _LOCAL_SOURCES


class LearnedMerchantSource(StrEnum):
    USER = "user"
    LLM = "llm"


class LearnedMerchant(BaseModel):
    id: int = 0
    merchant_pattern: str
    category_id: str
    confidence: float = Field(ge=0.0, le=1.0)
    sample_count: int = 1
    last_used_at: dt.datetime | None = None
    created_at: dt.datetime = Field(default_factory=dt.datetime.now)
    source: LearnedMerchantSource = LearnedMerchantSource.USER


class MerchantEnrichment(BaseModel):
    """Merchant details extracted by a language model from a raw description."""
    model_config = ConfigDict(populate_by_name=True)

    clean_merchant_name: str = Field(alias="cleanMerchantName")
    brand_name: str | None = Field(default=None, alias="brandName")
    merchant_type: str | None = Field(default=None, alias="merchantType")
    mcc_code: str | None = Field(default=None, alias="mccCode")
    confidence: float = Field(default=0.0, ge=0.0, le=1.0)


class CategorizationItem(BaseModel):
    transaction_id: int
    description: str


class CategorizationBatchResult(BaseModel):
    results: list[CategorizationResult] = Field(default_factory=list)
    uncategorized_ids: list[int] = Field(default_factory=list)

    def result_for(self, transaction_id: int) -> CategorizationResult | None:
        return next((r for r in self.results if r.transaction_id == transaction_id), None)
