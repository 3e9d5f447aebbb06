from __future__ import annotations

from datetime import datetime
from typing import Any

from sqlalchemy import JSON, DateTime, Integer, String, Text, event
from sqlalchemy.orm import Mapped, mapped_column

from pricing_config.db.base import Base
from pricing_config.models.mixins import utc_now


class SettingsAudit(Base):
    """
    Immutable audit trail for setting and pricing-rule mutations.

    `setting_id` / `rule_id` are plain integers so entries outlive the row they
    describe. `entry_hash` chains each entry to its predecessor.
    """

    __tablename__ = "settings_audit"

    id: Mapped[int] = mapped_column(primary_key=True, autoincrement=True)
    setting_id: Mapped[int | None] = mapped_column(Integer, nullable=True, index=True)
    rule_id: Mapped[int | None] = mapped_column(Integer, nullable=True, index=True)
    action: Mapped[str] = mapped_column(String(20), nullable=False, index=True)
    old_value: Mapped[Any] = mapped_column(JSON, nullable=True)
    new_value: Mapped[Any] = mapped_column(JSON, nullable=True)
    changed_by: Mapped[str] = mapped_column(String(255), nullable=False)
    change_reason: Mapped[str | None] = mapped_column(Text, nullable=True)
    created_at: Mapped[datetime] = mapped_column(DateTime, nullable=False, default=utc_now)
    prev_hash: Mapped[str | None] = mapped_column(String(64), nullable=True)
    entry_hash: Mapped[str | None] = mapped_column(String(64), nullable=True)


@event.listens_for(SettingsAudit, "before_update")
def _refuse_audit_update(_mapper, _connection, target: SettingsAudit) -> None:
    raise ValueError(f"settings_audit entry {target.id} is immutable")


@event.listens_for(SettingsAudit, "before_delete")
def _refuse_audit_delete(_mapper, _connection, target: SettingsAudit) -> None:
    raise ValueError(f"settings_audit entry {target.id} is immutable")
