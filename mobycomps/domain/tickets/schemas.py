from datetime import datetime
from pydantic import BaseModel, ConfigDict, Field
from mobycomps.core.schemas import CamelDTO
from mobycomps.domain.tickets.models import TicketStatus


class TicketNumbersDTO(CamelDTO):
    model_config = ConfigDict(extra='forbid')

    numbers: list[int] = Field(max_length=1000)


class ReservationReadDTO(CamelDTO):
    reserved: list[int]
    expires_at: datetime


class TicketReadDTO(CamelDTO):
    number: int
    status: TicketStatus


class TicketStatusSummaryDTO(CamelDTO):
    competition_id: int
    total_tickets: int
    available: int
    reserved: int
    purchased: int
    sold_out_percentage: int


class TicketsQueryDTO(BaseModel):
    model_config = ConfigDict(extra='forbid')

    status: TicketStatus | None = None
