from datetime import datetime
from pydantic import BaseModel, ConfigDict, Field

SITE_CONFIG_KEYS = {"hero_banner", "marketing_banner", "footer_text"}


class SiteConfigUpsertDTO(BaseModel):
    model_config = ConfigDict(extra='forbid')

    value: str = Field(max_length=10_000)


class SiteConfigReadDTO(BaseModel):
    model_config = ConfigDict(from_attributes=True)

    key: str
    value: str
    updated_at: datetime
