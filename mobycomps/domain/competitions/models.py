import enum
from datetime import datetime
from sqlalchemy.orm import Mapped, mapped_column, relationship
from sqlalchemy import Identity, Text, Integer, ForeignKey, CheckConstraint, Boolean, TIMESTAMP, func, \
    Enum as SQLEnum, text
from sqlalchemy.dialects.postgresql import JSONB
from mobycomps.core.database import Base


class CompetitionStatus(str, enum.Enum):
    DRAFT = "DRAFT"
    LIVE = "LIVE"
    COMPLETED = "COMPLETED"
    CANCELLED = "CANCELLED"


class Category(Base):
    __tablename__ = "categories"

    id: Mapped[int] = mapped_column(Identity(always=True), primary_key=True)
    name: Mapped[str] = mapped_column(Text, nullable=False, unique=True)
    slug: Mapped[str] = mapped_column(Text, nullable=False, unique=True)

    competitions: Mapped[list["Competition"]] = relationship(back_populates="category", lazy="noload")


class Competition(Base):
    __tablename__ = "competitions"

    id: Mapped[int] = mapped_column(Identity(always=True), primary_key=True)
    title: Mapped[str] = mapped_column(Text, nullable=False)
    description: Mapped[str] = mapped_column(Text, nullable=False)
    image_url: Mapped[str | None] = mapped_column(Text, nullable=True)
    category_id: Mapped[int | None] = mapped_column(ForeignKey("categories.id", ondelete="SET NULL"),
                                                    nullable=True, index=True)
    # minor units (pence)
    ticket_price: Mapped[int] = mapped_column(Integer, nullable=False)
    cash_alternative: Mapped[int | None] = mapped_column(Integer, nullable=True)
    max_tickets: Mapped[int] = mapped_column(Integer, nullable=False)
    tickets_sold: Mapped[int] = mapped_column(Integer, nullable=False, server_default="0", default=0)
    draw_date: Mapped[datetime] = mapped_column(TIMESTAMP(timezone=True), nullable=False)
    quiz_question: Mapped[str | None] = mapped_column(Text, nullable=True)
    quiz_answers: Mapped[list[str]] = mapped_column(JSONB, nullable=False, server_default=text("'[]'::jsonb"),
                                                    default=list)
    quiz_correct_answer: Mapped[str | None] = mapped_column(Text, nullable=True)
    is_featured: Mapped[bool] = mapped_column(Boolean, nullable=False, server_default=text("false"), default=False)
    status: Mapped[CompetitionStatus] = mapped_column(
        SQLEnum(CompetitionStatus, name="competition_status"),
        nullable=False,
        default=CompetitionStatus.DRAFT,
        server_default=CompetitionStatus.DRAFT.value
    )
    created_at: Mapped[datetime] = mapped_column(TIMESTAMP(timezone=True), server_default=func.now(), nullable=False)
    updated_at: Mapped[datetime] = mapped_column(
        TIMESTAMP(timezone=True),
        server_default=func.now(),
        onupdate=func.now(),
        nullable=False
    )

    category: Mapped["Category"] = relationship(back_populates="competitions", lazy="selectin")

    __table_args__ = (
        CheckConstraint("ticket_price >= 0", name="chk_ticket_price_nonneg"),
        CheckConstraint("max_tickets >= 1", name="chk_max_tickets_positive"),
        CheckConstraint("tickets_sold >= 0 AND tickets_sold <= max_tickets", name="chk_tickets_sold_range"),
    )
