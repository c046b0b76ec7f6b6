"""SQLModel table for persisted paid-reminder overlays."""

from __future__ import annotations

from datetime import datetime
from typing import ClassVar

from sqlalchemy import Column, DateTime
from sqlmodel import Field, SQLModel


class PaidReminder(SQLModel, table=True):
    """One paid overlay, namespaced by user.

    ``paid_at`` is a naive local timestamp, matching the paid-state services.
    """

    __tablename__: ClassVar[str] = "paid_reminder"

    user_id: str = Field(primary_key=True, max_length=128)
    reminder_id: str = Field(primary_key=True, max_length=255)
    source_type: str = Field(nullable=False, max_length=16)
    paid_at: datetime = Field(
        sa_column=Column(DateTime(timezone=False), nullable=False, index=True)
    )
