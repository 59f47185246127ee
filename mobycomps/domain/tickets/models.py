import enum
from datetime import datetime
from sqlalchemy.orm import Mapped, mapped_column
from sqlalchemy import Identity, Text, Integer, ForeignKey, CheckConstraint, TIMESTAMP, UniqueConstraint, Index, \
    Enum as SQLEnum, text
from mobycomps.core.database import Base


class TicketStatus(str, enum.Enum):
    AVAILABLE = "AVAILABLE"
    RESERVED = "RESERVED"
    PURCHASED = "PURCHASED"


class Ticket(Base):
    __tablename__ = "tickets"

    id: Mapped[int] = mapped_column(Identity(always=True), primary_key=True)
    competition_id: Mapped[int] = mapped_column(ForeignKey("competitions.id", ondelete="CASCADE"), nullable=False)
    number: Mapped[int] = mapped_column(Integer, nullable=False)
    status: Mapped[TicketStatus] = mapped_column(
        SQLEnum(TicketStatus, name="ticket_status"),
        nullable=False,
        default=TicketStatus.AVAILABLE,
        server_default=TicketStatus.AVAILABLE.value
    )
    holder_ref: Mapped[str | None] = mapped_column(Text, nullable=True, index=True)
    reserved_at: Mapped[datetime | None] = mapped_column(TIMESTAMP(timezone=True), nullable=True)
    reserved_until: Mapped[datetime | None] = mapped_column(TIMESTAMP(timezone=True), nullable=True)
    user_id: Mapped[int | None] = mapped_column(ForeignKey("users.id", ondelete="SET NULL"), nullable=True,
                                                index=True)
    purchased_at: Mapped[datetime | None] = mapped_column(TIMESTAMP(timezone=True), nullable=True)

    __table_args__ = (
        UniqueConstraint("competition_id", "number", name="uq_ticket_competition_number"),
        CheckConstraint("number >= 1", name="chk_ticket_number_positive"),
        CheckConstraint(
            "(status = 'RESERVED') = (holder_ref IS NOT NULL AND reserved_until IS NOT NULL)",
            name="chk_ticket_reserved_fields"
        ),
        CheckConstraint(
            "status <> 'PURCHASED' OR (user_id IS NOT NULL AND purchased_at IS NOT NULL)",
            name="chk_ticket_purchased_fields"
        ),
        Index(
            "ix_tickets_reserved_until",
            "reserved_until",
            postgresql_where=text("status = 'RESERVED'")
        ),
    )
