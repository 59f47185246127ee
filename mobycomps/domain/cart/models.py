from datetime import datetime
from sqlalchemy.orm import Mapped, mapped_column, relationship
from sqlalchemy import Identity, Text, Integer, ForeignKey, TIMESTAMP, UniqueConstraint, func
from sqlalchemy.dialects.postgresql import ARRAY
from mobycomps.core.database import Base


class CartItem(Base):
    __tablename__ = "cart_items"

    id: Mapped[int] = mapped_column(Identity(always=True), primary_key=True)
    holder_ref: Mapped[str] = mapped_column(Text, nullable=False, index=True)
    competition_id: Mapped[int] = mapped_column(ForeignKey("competitions.id", ondelete="CASCADE"), nullable=False)
    ticket_numbers: Mapped[list[int]] = mapped_column(ARRAY(Integer), nullable=False)
    expires_at: Mapped[datetime] = mapped_column(TIMESTAMP(timezone=True), nullable=False)
    created_at: Mapped[datetime] = mapped_column(TIMESTAMP(timezone=True), server_default=func.now(), nullable=False)

    competition: Mapped["Competition"] = relationship(lazy="selectin")

    __table_args__ = (
        UniqueConstraint("holder_ref", "competition_id", name="uq_cart_holder_competition"),
    )
