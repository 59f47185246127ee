from datetime import datetime
from pydantic import BaseModel, ConfigDict, Field, AliasPath
from mobycomps.domain.entries.models import EntryStatus


class EntryReadDTO(BaseModel):
    model_config = ConfigDict(from_attributes=True)

    id: int
    competition_id: int
    competition_title: str = Field(validation_alias=AliasPath('competition', 'title'))
    draw_date: datetime = Field(validation_alias=AliasPath('competition', 'draw_date'))
    ticket_numbers: list[int]
    status: EntryStatus
    created_at: datetime


class EntriesQueryDTO(BaseModel):
    model_config = ConfigDict(extra='forbid')

    page: int = Field(default=1, ge=1)
    page_size: int = Field(default=20, ge=1, le=200)
    status: EntryStatus | None = None
