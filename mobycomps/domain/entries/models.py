import enum
from datetime import datetime
from sqlalchemy.orm import Mapped, mapped_column, relationship
from sqlalchemy import Identity, Text, Integer, ForeignKey, TIMESTAMP, UniqueConstraint, func, Enum as SQLEnum
from sqlalchemy.dialects.postgresql import ARRAY
from mobycomps.core.database import Base


class EntryStatus(str, enum.Enum):
    ACTIVE = "ACTIVE"
    WON = "WON"
    LOST = "LOST"


class Entry(Base):
    __tablename__ = "entries"

    id: Mapped[int] = mapped_column(Identity(always=True), primary_key=True)
    user_id: Mapped[int] = mapped_column(ForeignKey("users.id", ondelete="RESTRICT"), nullable=False, index=True)
    competition_id: Mapped[int] = mapped_column(ForeignKey("competitions.id", ondelete="RESTRICT"),
                                                nullable=False, index=True)
    ticket_numbers: Mapped[list[int]] = mapped_column(ARRAY(Integer), nullable=False)
    payment_ref: Mapped[str] = mapped_column(Text, nullable=False)
    status: Mapped[EntryStatus] = mapped_column(
        SQLEnum(EntryStatus, name="entry_status"),
        nullable=False,
        default=EntryStatus.ACTIVE,
        server_default=EntryStatus.ACTIVE.value
    )
    created_at: Mapped[datetime] = mapped_column(TIMESTAMP(timezone=True), server_default=func.now(), nullable=False)

    user: Mapped["User"] = relationship(back_populates="entries", lazy="noload")
    competition: Mapped["Competition"] = relationship(lazy="selectin")

    __table_args__ = (
        UniqueConstraint("payment_ref", "competition_id", name="uq_entry_payment_competition"),
    )
