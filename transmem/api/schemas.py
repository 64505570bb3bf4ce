"""
Request and response models for the translation-memory HTTP API.
Entry fields use the capitalised language names stored in the table and payloads.
"""

from pydantic import BaseModel, field_validator, ConfigDict
from typing import Optional, List, Dict, Any
from datetime import datetime

from ..core.config import SUPPORTED_LANGUAGES, normalize_language


class EntryFields(BaseModel):
    model_config = ConfigDict(extra="ignore")

    Chinese: Optional[str] = None
    English: Optional[str] = None
    Japanese: Optional[str] = None
    Korean: Optional[str] = None
    Spanish: Optional[str] = None
    French: Optional[str] = None
    German: Optional[str] = None
    Russian: Optional[str] = None
    Thai: Optional[str] = None
    Italian: Optional[str] = None
    Indonesian: Optional[str] = None
    Portuguese: Optional[str] = None
    Vietnamese: Optional[str] = None

    def texts(self) -> Dict[str, str]:
        return self.model_dump(exclude_none=True)


class EntryCreateRequest(EntryFields):
    Chinese: str

    @field_validator('Chinese')
    @classmethod
    def chinese_must_not_be_empty(cls, v):
        if v is None or not v.strip():
            raise ValueError('Chinese cannot be empty')
        return v.strip()


class EntryUpdateRequest(EntryFields):
    pass


class EntryResponse(EntryFields):
    vector_id: Optional[str] = None
    created_at: Optional[datetime] = None
    updated_at: Optional[datetime] = None


class EntryDeleteResponse(BaseModel):
    success: bool
    key: str
    vector_id: Optional[str] = None
    vector_deleted: Optional[bool] = None


class StatusResponse(BaseModel):
    status: str
    version: str
    vector_service: bool
    vector_reason: Optional[str] = None
    db_health: bool = True
    entry_count: int


class VectorSearchHit(BaseModel):
    id: str
    score: float
    metadata: Dict[str, Any]


class AdvancedVectorSearchHit(BaseModel):
    id: str
    score: float
    payload: Dict[str, Any]
    entry: Optional[Dict[str, Any]] = None


class TranslationMemoryRequest(BaseModel):
    text: str
    source_language: str = "Chinese"
    target_language: str = "English"
    max_results: int = 3
    use_threshold: bool = False

    @field_validator('source_language', 'target_language')
    @classmethod
    def language_must_be_supported(cls, v):
        language = normalize_language(v)
        if language not in SUPPORTED_LANGUAGES:
            raise ValueError(f'language must be one of: {SUPPORTED_LANGUAGES}')
        return language

    @field_validator('max_results')
    @classmethod
    def max_results_must_be_positive(cls, v):
        if v < 1 or v > 20:
            raise ValueError('max_results must be between 1 and 20')
        return v


class TranslationMemoryItem(BaseModel):
    source: str
    target: str
    score: float
    label: str
    record_id: Optional[str] = None


class TranslationMemoryResponse(BaseModel):
    candidates: List[TranslationMemoryItem]
    tm_list: List[Dict[str, str]]
    threshold: Optional[float] = None


class ThresholdResponse(BaseModel):
    thresholds: Dict[str, Any]
    recommended: float
    cross_language: bool
    similarity_level: str
    use_case: str
