from datetime import datetime
from pydantic import ConfigDict, Field
from mobycomps.core.schemas import CamelDTO


class CartItemAddDTO(CamelDTO):
    model_config = ConfigDict(extra='forbid')

    competition_id: int = Field(gt=0)
    numbers: list[int] = Field(max_length=1000)


class CartItemReadDTO(CamelDTO):
    id: int
    competition_id: int
    competition_title: str
    ticket_numbers: list[int]
    ticket_price: int
    subtotal: int
    expires_at: datetime


class CartReadDTO(CamelDTO):
    items: list[CartItemReadDTO]
    expires_at: datetime | None
    seconds_left: int
    total: int
    currency: str
