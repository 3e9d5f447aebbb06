from __future__ import annotations

import hashlib
import json
import logging
from datetime import datetime
from typing import Any

from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.orm import Session

from pricing_config.core.config import settings
from pricing_config.core.errors import AuditWriteFailure, PersistenceFailure
from pricing_config.models.enums import AuditAction
from pricing_config.models.mixins import utc_now
from pricing_config.models.settings_audit import SettingsAudit

logger = logging.getLogger(__name__)


def _jsonable(value: Any) -> Any:
    # JSON columns need plain types; datetimes and enums become strings.
    if value is None:
        return None
    return json.loads(json.dumps(value, default=str))


def entry_digest(entry: SettingsAudit) -> str:
    payload = {
        "setting_id": entry.setting_id,
        "rule_id": entry.rule_id,
        "action": entry.action,
        "old_value": entry.old_value,
        "new_value": entry.new_value,
        "changed_by": entry.changed_by,
        "change_reason": entry.change_reason,
        "created_at": entry.created_at.isoformat() if entry.created_at else None,
        "prev_hash": entry.prev_hash,
    }
    canonical = json.dumps(payload, sort_keys=True, separators=(",", ":"), default=str)
    return hashlib.sha256(canonical.encode("utf-8")).hexdigest()


class AuditLogger:
    """
    Appends audit entries inside the caller's transaction.

    `record` only flushes. If the flush fails the caller's transaction rolls
    back, so a mutation never commits without its audit entry.
    """

    def __init__(self, db: Session):
        self.db = db

    def record(
        self,
        action: AuditAction | str,
        *,
        setting_id: int | None = None,
        rule_id: int | None = None,
        old_value: Any = None,
        new_value: Any = None,
        actor: str,
        reason: str | None = None,
    ) -> SettingsAudit:
        action_value = action.value if isinstance(action, AuditAction) else str(action)
        try:
            entry = SettingsAudit(
                setting_id=setting_id,
                rule_id=rule_id,
                action=action_value,
                old_value=_jsonable(old_value),
                new_value=_jsonable(new_value),
                changed_by=actor,
                change_reason=reason,
                created_at=utc_now(),
            )
            if settings.AUDIT_HASH_CHAIN_ENABLED:
                entry.prev_hash = self._last_hash()
                entry.entry_hash = entry_digest(entry)
            self.db.add(entry)
            self.db.flush()
        except (SQLAlchemyError, PersistenceFailure, TypeError, ValueError) as exc:
            logger.error(
                "audit_write_failed action=%s setting_id=%s rule_id=%s error=%s",
                action_value,
                setting_id,
                rule_id,
                exc,
            )
            raise AuditWriteFailure(message=f"Audit record could not be written: {exc}") from exc
        return entry

    def history(
        self,
        *,
        setting_id: int | None = None,
        rule_id: int | None = None,
        limit: int = 100,
        since: datetime | None = None,
    ) -> list[SettingsAudit]:
        query = self.db.query(SettingsAudit)
        if setting_id is not None:
            query = query.filter(SettingsAudit.setting_id == setting_id)
        if rule_id is not None:
            query = query.filter(SettingsAudit.rule_id == rule_id)
        if since is not None:
            query = query.filter(SettingsAudit.created_at >= since)
        return query.order_by(SettingsAudit.id.desc()).limit(limit).all()

    def verify_chain(self) -> list[int]:
        """Ids of entries whose hash or back-link does not match; empty when intact."""
        broken: list[int] = []
        prev_hash: str | None = None
        for entry in self.db.query(SettingsAudit).order_by(SettingsAudit.id.asc()).yield_per(500):
            if entry.entry_hash is None:
                # Written while chaining was disabled; restart the chain after it.
                prev_hash = None
                continue
            if entry.prev_hash != prev_hash or entry.entry_hash != entry_digest(entry):
                broken.append(entry.id)
            prev_hash = entry.entry_hash
        if broken:
            logger.warning("audit_chain_broken entries=%s", broken)
        return broken

    def _last_hash(self) -> str | None:
        last = (
            self.db.query(SettingsAudit.entry_hash)
            .order_by(SettingsAudit.id.desc())
            .limit(1)
            .scalar()
        )
        return last
