from __future__ import annotations

from datetime import datetime
from typing import Any

from sqlalchemy import JSON, Boolean, DateTime, Integer, String, Text
from sqlalchemy.orm import Mapped, mapped_column

from pricing_config.db.base import Base
from pricing_config.models.mixins import ActorMixin, TimestampMixin, utc_now


class PricingRule(TimestampMixin, ActorMixin, Base):
    """
    Conditional price adjustment.

    `conditions` and `actions` are ordered JSON lists; `applies_to` carries the
    operation-type restriction as {"operation_types": [...]}.
    """

    __tablename__ = "pricing_rules"

    id: Mapped[int] = mapped_column(primary_key=True, autoincrement=True)
    name: Mapped[str] = mapped_column(String(200), nullable=False)
    description: Mapped[str | None] = mapped_column(Text, nullable=True)
    rule_type: Mapped[str] = mapped_column(String(30), nullable=False, index=True)
    conditions: Mapped[list[dict[str, Any]]] = mapped_column(JSON, nullable=False, default=list)
    actions: Mapped[list[dict[str, Any]]] = mapped_column(JSON, nullable=False, default=list)
    applies_to: Mapped[dict[str, Any]] = mapped_column(JSON, nullable=False, default=dict)
    outlet_ids: Mapped[list[int] | None] = mapped_column(JSON, nullable=True)
    priority: Mapped[int] = mapped_column(Integer, nullable=False, default=0)
    is_active: Mapped[bool] = mapped_column(Boolean, nullable=False, default=True)
    effective_date: Mapped[datetime] = mapped_column(DateTime, nullable=False, default=utc_now)
    expiry_date: Mapped[datetime | None] = mapped_column(DateTime, nullable=True)
    version: Mapped[int] = mapped_column(Integer, nullable=False, default=1)
