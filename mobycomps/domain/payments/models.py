import enum
from datetime import datetime
from sqlalchemy.orm import Mapped, mapped_column
from sqlalchemy import Identity, Text, Integer, ForeignKey, TIMESTAMP, CheckConstraint, String, func, \
    Enum as SQLEnum
from sqlalchemy.dialects.postgresql import JSONB
from mobycomps.core.database import Base


class PaymentStatus(str, enum.Enum):
    REQUIRES_ACTION = "REQUIRES_ACTION"
    COMPLETED = "COMPLETED"
    FAILED = "FAILED"


class Payment(Base):
    __tablename__ = "payments"

    id: Mapped[int] = mapped_column(Identity(always=True), primary_key=True)
    payment_ref: Mapped[str] = mapped_column(Text, nullable=False, unique=True)
    holder_ref: Mapped[str] = mapped_column(Text, nullable=False, index=True)
    user_id: Mapped[int | None] = mapped_column(ForeignKey("users.id", ondelete="SET NULL"), nullable=True,
                                                index=True)
    amount: Mapped[int] = mapped_column(Integer, nullable=False)
    currency: Mapped[str] = mapped_column(String(3), nullable=False)
    provider: Mapped[str] = mapped_column(Text, nullable=False)
    status: Mapped[PaymentStatus] = mapped_column(
        SQLEnum(PaymentStatus, name="payment_status"),
        nullable=False,
        default=PaymentStatus.REQUIRES_ACTION,
        server_default=PaymentStatus.REQUIRES_ACTION.value
    )
    idempotency_key: Mapped[str] = mapped_column(Text, nullable=False, unique=True)
    client_secret: Mapped[str] = mapped_column(Text, nullable=False)
    # [{"competition_id": int, "numbers": [int, ...]}] as held when the payment started
    items: Mapped[list[dict]] = mapped_column(JSONB, nullable=False)
    settlement: Mapped[dict | None] = mapped_column(JSONB, nullable=True)
    created_at: Mapped[datetime] = mapped_column(TIMESTAMP(timezone=True), server_default=func.now(), nullable=False)
    paid_at: Mapped[datetime | None] = mapped_column(TIMESTAMP(timezone=True), nullable=True)
    settled_at: Mapped[datetime | None] = mapped_column(TIMESTAMP(timezone=True), nullable=True)

    __table_args__ = (
        CheckConstraint("amount >= 0", name="chk_payment_amount_nonneg"),
    )
