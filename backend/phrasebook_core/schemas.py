"""Pydantic schemas for phrases and API payloads"""

from typing import Dict, List, Optional

from pydantic import BaseModel, ConfigDict, Field, field_validator, model_validator

from phrasebook_core.identity import derive_id
from phrasebook_core.normalizer import Normalizer


class Phrase(BaseModel):
    """A vocabulary entry; id is always derived from korean + english"""
    model_config = ConfigDict(frozen=True)

    id: str = ""
    korean: str
    english: str
    audio: str = ""

    @field_validator('korean', 'english')
    @classmethod
    def text_must_exist(cls, v):
        text = Normalizer.trim(v)
        if not text:
            raise ValueError('Korean and English text are required')
        return text

    @field_validator('audio', mode='before')
    @classmethod
    def clean_audio(cls, v):
        return Normalizer.trim(v)

    @model_validator(mode='before')
    @classmethod
    def derive_identifier(cls, data):
        # Any supplied id is discarded
        if isinstance(data, dict):
            data = dict(data)
            data['id'] = derive_id(data.get('korean'), data.get('english'))
        return data


class PhraseIn(BaseModel):
    """Add/update request body"""
    korean: str = ""
    english: str = ""
    audio: str = ""


class StudiedUpdate(BaseModel):
    """Mark/unmark request body"""
    studied: bool


class PreferencesSchema(BaseModel):
    """Display preferences"""
    showStudied: bool = True


class ImportResult(BaseModel):
    message: str
    totalPhrases: int
    newPhrases: int


class MigrationSummary(BaseModel):
    """Outcome of a progress migration run"""
    changed: bool
    studied: Dict[str, bool] = Field(default_factory=dict)
    carried: Dict[str, int] = Field(default_factory=dict)
    dropped: List[str] = Field(default_factory=list)


class PhrasePage(BaseModel):
    """One page of filtered phrases"""
    items: List[Phrase]
    page: int
    pageSize: int
    totalPages: int
    totalItems: int
    query: Optional[str] = None
