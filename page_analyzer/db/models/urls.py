from __future__ import annotations

import datetime as dt
from typing import Optional

from sqlalchemy import ForeignKey, Index, Integer, String, Text, UniqueConstraint
from sqlalchemy.orm import Mapped, mapped_column

from page_analyzer.db.base import Base
from page_analyzer.db.types import UtcTimestamp


class AddressRow(Base):
    __tablename__ = "addresses"

    id: Mapped[int] = mapped_column(Integer, primary_key=True, autoincrement=True)
    name: Mapped[str] = mapped_column(String, nullable=False)
    created_at: Mapped[dt.datetime] = mapped_column(UtcTimestamp(), nullable=False)

    __table_args__ = (
        UniqueConstraint("name", name="uq_addresses_name"),
        Index("idx_addresses_created_at", "created_at", "id"),
    )


class CheckRow(Base):
    __tablename__ = "checks"

    id: Mapped[int] = mapped_column(Integer, primary_key=True, autoincrement=True)
    address_id: Mapped[int] = mapped_column(
        Integer,
        ForeignKey("addresses.id", ondelete="CASCADE", name="fk_checks_address_id"),
        nullable=False,
    )
    status_code: Mapped[int] = mapped_column(Integer, nullable=False)
    title: Mapped[Optional[str]] = mapped_column(Text, nullable=True)
    h1: Mapped[Optional[str]] = mapped_column(Text, nullable=True)
    description: Mapped[Optional[str]] = mapped_column(Text, nullable=True)
    created_at: Mapped[dt.datetime] = mapped_column(UtcTimestamp(), nullable=False)

    __table_args__ = (
        Index("idx_checks_address_created", "address_id", "created_at", "id"),
    )
