from __future__ import annotations

import logging
from typing import Any

from sqlalchemy.orm import Session

from pricing_config.core.config import settings
from pricing_config.core.errors import ConfigurationMissing, ValidationFailure, VersionConflict
from pricing_config.db.session import transaction
from pricing_config.models.enums import AuditAction
from pricing_config.models.mixins import as_naive_utc, utc_now
from pricing_config.models.pricing_rule import PricingRule
from pricing_config.schemas.pricing_rule import PricingRuleCreate, PricingRuleUpdate
from pricing_config.services.audit_logger import AuditLogger
from pricing_config.services.stores import RuleStore

logger = logging.getLogger(__name__)

NULLABLE_FIELDS = {"description", "outlet_ids", "expiry_date"}


def rule_snapshot(rule: PricingRule) -> dict[str, Any]:
    return {
        "name": rule.name,
        "rule_type": rule.rule_type,
        "conditions": rule.conditions,
        "actions": rule.actions,
        "applies_to": rule.applies_to,
        "outlet_ids": rule.outlet_ids,
        "priority": rule.priority,
        "is_active": rule.is_active,
        "effective_date": rule.effective_date,
        "expiry_date": rule.expiry_date,
        "version": rule.version,
    }


class PricingRuleService:
    """Authoring side of pricing rules. Definitions are validated by the schemas before they reach here."""

    def __init__(self, db: Session, *, store: RuleStore | None = None, audit: AuditLogger | None = None):
        self.db = db
        self.store = store or RuleStore(db)
        self.audit = audit or AuditLogger(db)

    def get_rule(self, rule_id: int) -> PricingRule | None:
        return self.store.get(rule_id)

    def list_rules(self, *, include_inactive: bool = True, rule_type: str | None = None) -> list[PricingRule]:
        return self.store.list_rules(include_inactive=include_inactive, rule_type=rule_type)

    def create_rule(
        self,
        payload: PricingRuleCreate,
        *,
        actor: str | None = None,
        reason: str | None = None,
    ) -> PricingRule:
        actor = actor or settings.DEFAULT_ACTOR
        data = payload.model_dump(mode="json", exclude_none=True)
        with transaction(self.db):
            rule = self.store.add(
                PricingRule(
                    name=payload.name,
                    description=payload.description,
                    rule_type=payload.rule_type.value,
                    conditions=data.get("conditions", []),
                    actions=data["actions"],
                    applies_to=data.get("applies_to", {}),
                    outlet_ids=payload.outlet_ids,
                    priority=payload.priority,
                    is_active=payload.is_active,
                    effective_date=as_naive_utc(payload.effective_date) or utc_now(),
                    expiry_date=as_naive_utc(payload.expiry_date),
                    version=1,
                    created_by=actor,
                    updated_by=actor,
                )
            )
            self.audit.record(
                AuditAction.CREATED,
                rule_id=rule.id,
                new_value=rule_snapshot(rule),
                actor=actor,
                reason=reason,
            )
        self.db.refresh(rule)
        logger.info("pricing_rule_created rule_id=%s name=%s actor=%s", rule.id, rule.name, actor)
        return rule

    def update_rule(
        self,
        rule_id: int,
        payload: PricingRuleUpdate,
        *,
        actor: str | None = None,
        reason: str | None = None,
    ) -> PricingRule:
        actor = actor or settings.DEFAULT_ACTOR
        changes = payload.model_dump(mode="json", exclude_unset=True)
        expected_version = changes.pop("expected_version", None)
        with transaction(self.db):
            rule = self.store.get(rule_id)
            if rule is None:
                raise ConfigurationMissing(message=f"Pricing rule not found: {rule_id}")
            if expected_version is not None and rule.version != expected_version:
                raise VersionConflict(
                    message=f"Pricing rule {rule_id} is at version {rule.version}, expected {expected_version}.",
                    expected_version=expected_version,
                    actual_version=rule.version,
                )
            old = rule_snapshot(rule)

            # Datetimes are applied from the parsed payload, not their JSON form.
            for name in ("effective_date", "expiry_date"):
                if name in changes:
                    changes[name] = as_naive_utc(getattr(payload, name))
            for name, value in changes.items():
                if value is None and name not in NULLABLE_FIELDS:
                    continue
                setattr(rule, name, value)

            if rule.expiry_date is not None and rule.expiry_date <= rule.effective_date:
                raise ValidationFailure(
                    code="INVALID_WINDOW",
                    message="expiry_date must be after effective_date.",
                )
            rule.version = (rule.version or 0) + 1
            rule.updated_by = actor
            self.db.flush()
            self.audit.record(
                AuditAction.UPDATED,
                rule_id=rule.id,
                old_value=old,
                new_value=rule_snapshot(rule),
                actor=actor,
                reason=reason,
            )
        self.db.refresh(rule)
        logger.info("pricing_rule_updated rule_id=%s version=%s actor=%s", rule.id, rule.version, actor)
        return rule

    def delete_rule(self, rule_id: int, *, actor: str | None = None, reason: str | None = None) -> None:
        actor = actor or settings.DEFAULT_ACTOR
        with transaction(self.db):
            rule = self.store.get(rule_id)
            if rule is None:
                raise ConfigurationMissing(message=f"Pricing rule not found: {rule_id}")
            old = rule_snapshot(rule)
            self.store.delete(rule)
            self.audit.record(
                AuditAction.DELETED,
                rule_id=rule_id,
                old_value=old,
                actor=actor,
                reason=reason,
            )
        logger.info("pricing_rule_deleted rule_id=%s actor=%s", rule_id, actor)
