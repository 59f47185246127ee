from datetime import datetime
from pydantic import ConfigDict, Field
from mobycomps.core.schemas import CamelDTO
from mobycomps.domain.payments.models import PaymentStatus


class PaymentReadDTO(CamelDTO):
    payment_ref: str
    amount: int
    currency: str
    provider: str
    status: PaymentStatus
    client_secret: str | None = None
    created_at: datetime
    paid_at: datetime | None = None
    settled_at: datetime | None = None


class PaymentConfirmDTO(CamelDTO):
    model_config = ConfigDict(extra='forbid')

    success: bool


class SettleRequestDTO(CamelDTO):
    model_config = ConfigDict(extra='forbid')

    payment_ref: str = Field(min_length=1, max_length=200)


class SettlementLineDTO(CamelDTO):
    competition_id: int
    numbers: list[int]


class SettlementReadDTO(CamelDTO):
    purchased: list[SettlementLineDTO] = Field(default_factory=list)
    failed: list[SettlementLineDTO] = Field(default_factory=list)
