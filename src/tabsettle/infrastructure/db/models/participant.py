from __future__ import annotations

from datetime import datetime

from sqlalchemy import DateTime, ForeignKeyConstraint, Index, Integer, String
from sqlalchemy.orm import Mapped, mapped_column

from tabsettle.infrastructure.db.models.restaurant import Base


class ParticipantModel(Base):
    __tablename__ = "participants"

    id: Mapped[int] = mapped_column(Integer, primary_key=True, autoincrement=True)
    restaurant_id: Mapped[str] = mapped_column(String(50), nullable=False)
    table_id: Mapped[str] = mapped_column(String(50), nullable=False)
    position: Mapped[int] = mapped_column(Integer, nullable=False)
    user_id: Mapped[str | None] = mapped_column(String(100), nullable=True)
    guest_id: Mapped[str | None] = mapped_column(String(100), nullable=True)
    guest_name: Mapped[str | None] = mapped_column(String(255), nullable=True)
    individual_cents: Mapped[int] = mapped_column(Integer, nullable=False, default=0)
    amount_cents: Mapped[int] = mapped_column(Integer, nullable=False, default=0)
    split_cents: Mapped[int] = mapped_column(Integer, nullable=False, default=0)
    joined_at: Mapped[datetime] = mapped_column(DateTime(timezone=True), nullable=False)
    updated_at: Mapped[datetime] = mapped_column(DateTime(timezone=True), nullable=False)

    __table_args__ = (
        ForeignKeyConstraint(
            ["restaurant_id", "table_id"],
            ["tables.restaurant_id", "tables.id"],
            ondelete="CASCADE",
        ),
        Index("ix_participants_table", "restaurant_id", "table_id"),
    )


class SplitShareModel(Base):
    __tablename__ = "split_shares"

    id: Mapped[str] = mapped_column(String(50), primary_key=True)
    restaurant_id: Mapped[str] = mapped_column(String(50), nullable=False)
    table_id: Mapped[str] = mapped_column(String(50), nullable=False)
    position: Mapped[int] = mapped_column(Integer, nullable=False)
    user_id: Mapped[str | None] = mapped_column(String(100), nullable=True)
    guest_id: Mapped[str | None] = mapped_column(String(100), nullable=True)
    guest_name: Mapped[str | None] = mapped_column(String(255), nullable=True)
    expected_cents: Mapped[int] = mapped_column(Integer, nullable=False)
    amount_paid_cents: Mapped[int] = mapped_column(Integer, nullable=False)
    original_total_cents: Mapped[int] = mapped_column(Integer, nullable=False)
    currency: Mapped[str] = mapped_column(String(3), nullable=False)
    status: Mapped[str] = mapped_column(String(20), nullable=False)
    created_at: Mapped[datetime] = mapped_column(DateTime(timezone=True), nullable=False)
    paid_at: Mapped[datetime | None] = mapped_column(DateTime(timezone=True), nullable=True)

    __table_args__ = (
        ForeignKeyConstraint(
            ["restaurant_id", "table_id"],
            ["tables.restaurant_id", "tables.id"],
            ondelete="CASCADE",
        ),
        Index("ix_split_shares_table", "restaurant_id", "table_id"),
    )
