"""
Canonical record types for the translation entry table.
"""

from dataclasses import dataclass, field
from datetime import datetime
from typing import Any, Dict, Optional

from .config import PRIMARY_LANGUAGE, SUPPORTED_LANGUAGES


@dataclass
class TranslationEntry:
    texts: Dict[str, str] = field(default_factory=dict)  # language name -> text
    vector_id: Optional[str] = None
    created_at: Optional[datetime] = None
    updated_at: Optional[datetime] = None

    @property
    def key(self) -> str:
        return (self.texts.get(PRIMARY_LANGUAGE) or "").strip()

    def to_dict(self) -> Dict[str, Any]:
        data: Dict[str, Any] = {language: self.texts.get(language) or "" for language in SUPPORTED_LANGUAGES}
        data["vector_id"] = self.vector_id
        data["created_at"] = self.created_at
        data["updated_at"] = self.updated_at
        return data
