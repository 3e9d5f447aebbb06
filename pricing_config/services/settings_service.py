"""
Public facade over scoped settings, pricing rules and tax.

Reads go through ScopeResolver / PricingRuleEngine against the current
snapshot. Every mutation runs inside `transaction()` together with exactly one
audit entry, so a change is never committed without its trail.
"""
from __future__ import annotations

import logging
import math
from collections.abc import Iterable
from dataclasses import dataclass, field
from datetime import datetime, timedelta
from enum import Enum
from typing import Any

from sqlalchemy import and_, func, or_
from sqlalchemy.orm import Session

from pricing_config.core.config import settings
from pricing_config.core.errors import (
    ConfigurationMissing,
    ValidationFailure,
    VersionConflict,
)
from pricing_config.db.session import transaction
from pricing_config.models.business_setting import BusinessSetting
from pricing_config.models.enums import AuditAction, DataType, OperationType, TaxMode
from pricing_config.models.mixins import as_naive_utc, utc_now
from pricing_config.models.setting_category import SettingCategory
from pricing_config.models.settings_audit import SettingsAudit
from pricing_config.schemas.setting import SettingWrite
from pricing_config.services.audit_logger import AuditLogger
from pricing_config.services.bulk_pricing import BulkItem, BulkPriceResult, BulkPricingCalculator
from pricing_config.services.pricing_rule_engine import AppliedRule, PricingRuleEngine
from pricing_config.services.scope_resolver import (
    ScopeRequest,
    ScopeResolver,
    coerce_value,
    normalize_key,
)
from pricing_config.services.stores import CategoryStore, RuleStore, SettingStore
from pricing_config.services.tax_calculator import TaxBreakdown, compute_tax, round_money

logger = logging.getLogger(__name__)

PRICE_KEYS = {
    OperationType.LEASE.value: "lease.base_price",
    OperationType.REFILL.value: "refill.price_per_kg",
    OperationType.SWAP.value: "swap.fee",
    OperationType.REGISTRATION.value: "registration.fee",
    OperationType.PENALTY.value: "penalty.rate",
    OperationType.DEPOSIT.value: "deposit.amount",
    OperationType.GENERAL.value: "general.fee",
}

REQUIRED_KEYS = {
    OperationType.LEASE.value: ("lease.base_price", "lease.daily_rate"),
    OperationType.REFILL.value: ("refill.price_per_kg",),
    OperationType.SWAP.value: ("swap.fee",),
    OperationType.GENERAL.value: ("general.fee",),
}

TAX_RATE_KEY = "tax.rate"
TAX_TYPE_KEY = "tax.type"

LEASE_DAILY_RATE_KEY = "lease.daily_rate"
LEASE_WEEKLY_DISCOUNT_KEY = "lease.weekly_discount_rate"
LEASE_MONTHLY_DISCOUNT_KEY = "lease.monthly_discount_rate"
REFILL_MINIMUM_CHARGE_KEY = "refill.minimum_charge"

STAT_PERIODS = {"1d": 1, "7d": 7, "30d": 30}
PRICE_KEY_PATTERNS = ("%price%", "%fee%", "%rate%", "%amount%")


def price_key(operation_type: str, cylinder_size: str | None = None) -> str:
    base = PRICE_KEYS.get(operation_type)
    if base is None:
        raise ValidationFailure(
            code="UNKNOWN_OPERATION_TYPE",
            message=f"Unknown operation type: {operation_type}",
        )
    if cylinder_size:
        return f"{base}.{cylinder_size.strip().lower()}"
    return base


def _operation_value(operation_type: str | Enum) -> str:
    raw = operation_type.value if isinstance(operation_type, Enum) else str(operation_type or "")
    try:
        return OperationType(raw.strip().upper()).value
    except ValueError:
        raise ValidationFailure(
            code="UNKNOWN_OPERATION_TYPE",
            message=f"Unknown operation type: {operation_type}",
        ) from None


def setting_snapshot(setting: BusinessSetting) -> dict[str, Any]:
    return {
        "key": setting.setting_key,
        "value": setting.setting_value,
        "data_type": setting.data_type,
        "category_id": setting.category_id,
        "scope": setting.scope_dict(),
        "priority": setting.priority,
        "effective_date": setting.effective_date,
        "expiry_date": setting.expiry_date,
        "is_active": setting.is_active,
        "version": setting.version,
    }


@dataclass(frozen=True)
class QuoteResult:
    operation_type: str
    price_key: str
    base_price: float
    unit_price: float
    quantity: float
    tax: TaxBreakdown
    applied_rules: list[AppliedRule] = field(default_factory=list)
    duration: int | None = None
    gas_amount: float | None = None

    def as_dict(self) -> dict[str, Any]:
        result = {
            "operationType": self.operation_type,
            "priceKey": self.price_key,
            "basePrice": round_money(self.base_price),
            "unitPrice": round_money(self.unit_price),
            "quantity": self.quantity,
            "appliedRules": [rule.as_dict() for rule in self.applied_rules],
            **self.tax.as_dict(),
        }
        if self.duration is not None:
            result["duration"] = self.duration
        if self.gas_amount is not None:
            result["gasAmount"] = self.gas_amount
        return result


class SettingsService:
    def __init__(
        self,
        db: Session,
        *,
        setting_store: SettingStore,
        category_store: CategoryStore,
        resolver: ScopeResolver,
        rule_engine: PricingRuleEngine,
        audit: AuditLogger,
    ):
        self.db = db
        self.setting_store = setting_store
        self.category_store = category_store
        self.resolver = resolver
        self.rule_engine = rule_engine
        self.audit = audit
        self.bulk = BulkPricingCalculator(self._unit_price_for_bulk, rule_engine)

    @classmethod
    def from_session(cls, db: Session) -> "SettingsService":
        setting_store = SettingStore(db)
        return cls(
            db,
            setting_store=setting_store,
            category_store=CategoryStore(db),
            resolver=ScopeResolver(setting_store),
            rule_engine=PricingRuleEngine(RuleStore(db)),
            audit=AuditLogger(db),
        )

    # Resolution

    def get_setting(self, key: str, scope: ScopeRequest | None = None, at: datetime | None = None) -> Any:
        return self.resolver.resolve(key, scope, at)

    def get_settings(
        self,
        keys: Iterable[str],
        scope: ScopeRequest | None = None,
        at: datetime | None = None,
    ) -> dict[str, Any]:
        return self.resolver.resolve_many(keys, scope, at)

    def get_settings_by_category(
        self,
        category_name: str,
        scope: ScopeRequest | None = None,
        at: datetime | None = None,
    ) -> dict[str, Any]:
        category = self.category_store.by_name(category_name or "")
        if category is None:
            raise ConfigurationMissing(message=f"Category not found: {category_name}")
        return self.resolver.resolve_category(category.id, scope, at)

    # Mutation

    def set_setting(
        self,
        key: str,
        value: Any,
        *,
        category_id: int | None = None,
        category: str | None = None,
        data_type: DataType | str = DataType.STRING,
        scope: ScopeRequest | None = None,
        priority: int = 0,
        effective_date: datetime | None = None,
        expiry_date: datetime | None = None,
        actor: str | None = None,
        reason: str | None = None,
        expected_version: int | None = None,
    ) -> BusinessSetting:
        with transaction(self.db):
            row, _ = self._upsert(
                key,
                value,
                category_id=category_id,
                category=category,
                data_type=data_type,
                scope=scope,
                priority=priority,
                effective_date=effective_date,
                expiry_date=expiry_date,
                actor=actor,
                reason=reason,
                expected_version=expected_version,
            )
        self.db.refresh(row)
        return row

    def delete_setting(self, setting_id: int, *, actor: str | None = None, reason: str | None = None) -> None:
        actor = actor or settings.DEFAULT_ACTOR
        with transaction(self.db):
            row = self.setting_store.get(setting_id)
            if row is None:
                raise ConfigurationMissing(message=f"Setting not found: {setting_id}")
            old = setting_snapshot(row)
            self.setting_store.delete(row)
            self.audit.record(
                AuditAction.DELETED,
                setting_id=setting_id,
                old_value=old,
                actor=actor,
                reason=reason,
            )
        logger.info("setting_deleted setting_id=%s key=%s actor=%s", setting_id, old["key"], actor)

    def _upsert(
        self,
        key: str,
        value: Any,
        *,
        category_id: int | None,
        category: str | None,
        data_type: DataType | str,
        scope: ScopeRequest | None,
        priority: int,
        effective_date: datetime | None,
        expiry_date: datetime | None,
        actor: str | None,
        reason: str | None,
        expected_version: int | None,
        overwrite: bool = True,
    ) -> tuple[BusinessSetting | None, AuditAction | None]:
        normalized = normalize_key(key)
        if not 2 <= len(normalized) <= 200:
            raise ValidationFailure(
                code="INVALID_KEY",
                message="Setting key must be between 2 and 200 characters.",
            )
        try:
            kind = DataType(data_type.value if isinstance(data_type, Enum) else str(data_type).strip().lower())
        except ValueError:
            raise ValidationFailure(
                code="INVALID_DATA_TYPE",
                message=f"Unknown data type: {data_type}",
            ) from None
        try:
            typed = coerce_value(value, kind)
        except (TypeError, ValueError) as exc:
            raise ValidationFailure(
                code="INVALID_VALUE",
                message=f"Value for '{normalized}' is not a valid {kind.value}: {exc}",
            ) from exc
        expiry_date = as_naive_utc(expiry_date)
        effective = as_naive_utc(effective_date) or utc_now()
        if expiry_date is not None and expiry_date <= effective:
            raise ValidationFailure(
                code="INVALID_WINDOW",
                message="expiry_date must be after effective_date.",
            )
        resolved_category = self._category_for_write(category_id, category)
        scope = scope or ScopeRequest()
        dimensions = scope.dimensions()
        actor = actor or settings.DEFAULT_ACTOR

        existing = self.setting_store.find_exact_scope(normalized, dimensions)
        if expected_version is not None:
            actual = existing.version if existing is not None else 0
            if actual != expected_version:
                raise VersionConflict(
                    message=f"Setting '{normalized}' is at version {actual}, expected {expected_version}.",
                    expected_version=expected_version,
                    actual_version=actual,
                )

        if existing is not None:
            if not overwrite:
                return existing, None
            old = setting_snapshot(existing)
            existing.category_id = resolved_category.id
            existing.setting_value = typed
            existing.data_type = kind.value
            existing.priority = priority
            existing.effective_date = effective
            existing.expiry_date = expiry_date
            existing.is_active = True
            existing.version = (existing.version or 0) + 1
            existing.updated_by = actor
            self.db.flush()
            self.audit.record(
                AuditAction.UPDATED,
                setting_id=existing.id,
                old_value=old,
                new_value=setting_snapshot(existing),
                actor=actor,
                reason=reason,
            )
            logger.info(
                "setting_updated setting_id=%s key=%s version=%s actor=%s",
                existing.id,
                normalized,
                existing.version,
                actor,
            )
            return existing, AuditAction.UPDATED

        row = self.setting_store.add(
            BusinessSetting(
                category_id=resolved_category.id,
                setting_key=normalized,
                setting_value=typed,
                data_type=kind.value,
                priority=priority,
                effective_date=effective,
                expiry_date=expiry_date,
                is_active=True,
                version=1,
                created_by=actor,
                updated_by=actor,
                **dimensions,
            )
        )
        self.audit.record(
            AuditAction.CREATED,
            setting_id=row.id,
            new_value=setting_snapshot(row),
            actor=actor,
            reason=reason,
        )
        logger.info("setting_created setting_id=%s key=%s actor=%s", row.id, normalized, actor)
        return row, AuditAction.CREATED

    def _category_for_write(self, category_id: int | None, category: str | None) -> SettingCategory:
        if category_id is not None:
            row = self.category_store.get(category_id)
            if row is not None and row.is_active:
                return row
        elif category:
            row = self.category_store.by_name(category)
            if row is not None:
                return row
        else:
            raise ValidationFailure(code="CATEGORY_REQUIRED", message="category_id or category is required.")
        raise ValidationFailure(
            code="UNKNOWN_CATEGORY",
            message=f"Unknown or inactive category: {category_id if category_id is not None else category}",
        )

    # Pricing

    def _numeric_setting(self, key: str, scope: ScopeRequest, at: datetime | None) -> float | None:
        value = self.resolver.resolve(key, scope, at)
        if value is None:
            return None
        if isinstance(value, bool) or not isinstance(value, (int, float)) or not math.isfinite(value):
            raise ConfigurationMissing(message=f"Price setting '{key}' is not a finite number.")
        return float(value)

    def _base_price(self, operation_type: str, scope: ScopeRequest, at: datetime | None) -> tuple[str, float]:
        key = price_key(operation_type, scope.cylinder_size)
        base = self._numeric_setting(key, scope, at)
        if base is None:
            raise ConfigurationMissing(message=f"No price configured for {operation_type} operation ({key}).")
        return key, base

    @staticmethod
    def _pricing_scope(operation_type: str, scope: ScopeRequest | None) -> ScopeRequest:
        """Pin the scope to the priced operation so settings and rules see the same one."""
        scope = scope or ScopeRequest()
        if scope.operation_type is not None and _operation_value(scope.operation_type) != operation_type:
            raise ValidationFailure(
                code="OPERATION_TYPE_MISMATCH",
                message=f"Scope operation type {scope.operation_type} does not match {operation_type}.",
            )
        return scope.replace(operation_type=operation_type)

    def _unit_price_for_bulk(self, operation_type: str, scope: ScopeRequest, at: datetime | None) -> float:
        _, base = self._base_price(operation_type, scope, at)
        return self.rule_engine.apply_rules(base, operation_type, scope, at=at)

    def _lease_subtotal(self, unit: float, duration: int, scope: ScopeRequest, at: datetime | None) -> float:
        daily = self._numeric_setting(LEASE_DAILY_RATE_KEY, scope, at)
        total = (unit if daily is None else daily) * duration
        if duration >= 30:
            discount = self._numeric_setting(LEASE_MONTHLY_DISCOUNT_KEY, scope, at)
        elif duration >= 7:
            discount = self._numeric_setting(LEASE_WEEKLY_DISCOUNT_KEY, scope, at)
        else:
            discount = None
        if discount:
            total *= 1 - discount / 100
        return max(0.0, total)

    def _refill_subtotal(self, unit: float, gas_amount: float, scope: ScopeRequest, at: datetime | None) -> float:
        total = unit * gas_amount
        minimum = self._numeric_setting(REFILL_MINIMUM_CHARGE_KEY, scope, at)
        if minimum and total < minimum:
            total = minimum
        return total

    def get_price(
        self,
        operation_type: str | OperationType,
        scope: ScopeRequest | None = None,
        at: datetime | None = None,
    ) -> float:
        """Rule-adjusted unit price times quantity (default 1)."""
        op = _operation_value(operation_type)
        scope = self._pricing_scope(op, scope)
        _, base = self._base_price(op, scope, at)
        unit = self.rule_engine.apply_rules(base, op, scope, at=at)
        quantity = scope.quantity if scope.quantity is not None else 1
        return unit * quantity

    def calculate_bulk_price(
        self,
        operation_type: str | OperationType,
        items: Iterable[BulkItem],
        scope: ScopeRequest | None = None,
        at: datetime | None = None,
    ) -> BulkPriceResult:
        op = _operation_value(operation_type)
        return self.bulk.calculate(op, items, self._pricing_scope(op, scope), at=at)

    def calculate_quote(
        self,
        operation_type: str | OperationType,
        scope: ScopeRequest | None = None,
        at: datetime | None = None,
        *,
        duration: int | None = None,
        gas_amount: float | None = None,
    ) -> QuoteResult:
        """
        Priced, taxed quote for one operation.

        LEASE with `duration` is charged per day (`lease.daily_rate`, falling back
        to the rule-adjusted base price) with the weekly discount from 7 days and
        the monthly discount from 30 days. REFILL with `gas_amount` is charged per
        kg with `refill.minimum_charge` as a floor. Both are then multiplied by
        quantity, like every other operation.
        """
        op = _operation_value(operation_type)
        for name, amount in (("duration", duration), ("gas_amount", gas_amount)):
            if amount is not None and (isinstance(amount, bool) or not math.isfinite(amount) or amount <= 0):
                raise ValidationFailure(code="INVALID_QUOTE_INPUT", message=f"{name} must be a positive number.")
        scope = self._pricing_scope(op, scope)
        key, base = self._base_price(op, scope, at)
        evaluation = self.rule_engine.evaluate(base, op, scope, at=at)
        unit = evaluation.final_price
        quantity = scope.quantity if scope.quantity is not None else 1

        if op == OperationType.LEASE.value and duration:
            per_item = self._lease_subtotal(unit, duration, scope, at)
        elif op == OperationType.REFILL.value and gas_amount:
            per_item = self._refill_subtotal(unit, gas_amount, scope, at)
        else:
            per_item = unit

        tax_settings = self.resolver.resolve_many([TAX_RATE_KEY, TAX_TYPE_KEY], scope, at)
        rate = tax_settings.get(TAX_RATE_KEY)
        mode = tax_settings.get(TAX_TYPE_KEY) or TaxMode.EXCLUSIVE.value
        tax = compute_tax(per_item * quantity, float(rate or 0), mode)
        return QuoteResult(
            operation_type=op,
            price_key=key,
            base_price=base,
            unit_price=unit,
            quantity=quantity,
            tax=tax,
            applied_rules=evaluation.applied,
            duration=duration if op == OperationType.LEASE.value else None,
            gas_amount=gas_amount if op == OperationType.REFILL.value else None,
        )

    def calculate_revenue_projection(
        self,
        operation_type: str | OperationType,
        estimated_volume: int,
        scope: ScopeRequest | None = None,
    ) -> dict[str, Any]:
        if isinstance(estimated_volume, bool) or not isinstance(estimated_volume, int) or estimated_volume < 0:
            raise ValidationFailure(
                code="INVALID_VOLUME",
                message="estimated_volume must be a non-negative integer.",
            )
        op = _operation_value(operation_type)
        average = self.get_price(op, scope)
        return {
            "operationType": op,
            "averageTransactionValue": round_money(average),
            "estimatedVolume": estimated_volume,
            "monthlyRevenue": round_money(average * estimated_volume),
            "volumeBreakdown": {op: estimated_volume},
        }

    def validate_pricing_config(
        self,
        operation_type: str | OperationType,
        scope: ScopeRequest | None = None,
    ) -> dict[str, Any]:
        op = _operation_value(operation_type)
        scope = self._pricing_scope(op, scope)
        required = REQUIRED_KEYS.get(op) or (price_key(op),)
        resolved = self.resolver.resolve_many(list(required) + ["discount.premium_rate"], scope)

        missing = [key for key in required if resolved.get(key) is None]
        warnings: list[str] = []
        if scope.customer_tier == "premium" and not resolved.get("discount.premium_rate"):
            warnings.append("No premium customer discount configured")
        return {
            "isValid": not missing,
            "missingSettings": missing,
            "warnings": warnings,
        }

    # Reporting

    def get_categories(self) -> list[dict[str, Any]]:
        counts = dict(
            self.db.query(BusinessSetting.category_id, func.count(BusinessSetting.id))
            .filter(BusinessSetting.is_active.is_(True))
            .group_by(BusinessSetting.category_id)
            .all()
        )
        return [
            {
                "id": category.id,
                "name": category.name,
                "description": category.description,
                "icon": category.icon,
                "display_order": category.display_order,
                "setting_count": int(counts.get(category.id, 0)),
            }
            for category in self.category_store.list_active()
        ]

    def list_settings(
        self,
        *,
        page: int = 1,
        limit: int = 20,
        category: str | None = None,
        search: str | None = None,
        is_active: bool | None = None,
        effective_only: bool = False,
    ) -> dict[str, Any]:
        if page < 1 or limit < 1:
            raise ValidationFailure(code="INVALID_PAGE", message="page and limit must be positive.")
        limit = min(limit, settings.LIST_PAGE_MAX)
        total, rows = self.setting_store.page(
            offset=(page - 1) * limit,
            limit=limit,
            category_name=category,
            search=search,
            is_active=is_active,
            effective_at=utc_now() if effective_only else None,
        )
        return {"total": total, "page": page, "limit": limit, "items": rows}

    def get_statistics(
        self,
        *,
        period: str | None = None,
        category_id: int | None = None,
        outlet_id: int | None = None,
    ) -> dict[str, Any]:
        period = (period or settings.STATS_DEFAULT_PERIOD).strip().lower()
        days = STAT_PERIODS.get(period, 7)
        now = utc_now()
        since = now - timedelta(days=days)

        def base_query():
            query = self.db.query(func.count(BusinessSetting.id))
            if category_id is not None:
                query = query.filter(BusinessSetting.category_id == category_id)
            if outlet_id is not None:
                query = query.filter(BusinessSetting.outlet_id == outlet_id)
            return query

        def active_query():
            return base_query().filter(BusinessSetting.is_active.is_(True))

        scope_cols = (
            BusinessSetting.customer_tier,
            BusinessSetting.cylinder_type,
            BusinessSetting.operation_type,
        )
        join_on = and_(
            BusinessSetting.category_id == SettingCategory.id,
            BusinessSetting.is_active.is_(True),
        )
        if outlet_id is not None:
            join_on = and_(join_on, BusinessSetting.outlet_id == outlet_id)
        by_category = (
            self.db.query(SettingCategory.name, func.count(BusinessSetting.id))
            .outerjoin(BusinessSetting, join_on)
            .filter(SettingCategory.is_active.is_(True))
        )
        if category_id is not None:
            by_category = by_category.filter(SettingCategory.id == category_id)
        settings_by_category = {
            name: int(count) for name, count in by_category.group_by(SettingCategory.name).all()
        }

        return {
            "totalSettings": base_query().scalar() or 0,
            "activeSettings": active_query().scalar() or 0,
            "categoriesCount": self.db.query(func.count(SettingCategory.id))
            .filter(SettingCategory.is_active.is_(True))
            .scalar()
            or 0,
            "recentChanges": base_query().filter(BusinessSetting.updated_at >= since).scalar() or 0,
            "settingsByCategory": settings_by_category,
            "settingsByScope": {
                "global": active_query()
                .filter(BusinessSetting.outlet_id.is_(None), *[c.is_(None) for c in scope_cols])
                .scalar()
                or 0,
                "outlet": active_query()
                .filter(BusinessSetting.outlet_id.isnot(None), *[c.is_(None) for c in scope_cols])
                .scalar()
                or 0,
                "customerTier": active_query().filter(BusinessSetting.customer_tier.isnot(None)).scalar() or 0,
                "cylinderType": active_query().filter(BusinessSetting.cylinder_type.isnot(None)).scalar() or 0,
                "complex": active_query()
                .filter(BusinessSetting.outlet_id.isnot(None))
                .filter(or_(*[c.isnot(None) for c in scope_cols]))
                .scalar()
                or 0,
            },
            "priceOverrides": active_query()
            .filter(or_(*[func.lower(BusinessSetting.setting_key).like(p) for p in PRICE_KEY_PATTERNS]))
            .scalar()
            or 0,
            "scheduledChanges": base_query().filter(BusinessSetting.effective_date > now).scalar() or 0,
        }

    def get_audit_trail(
        self,
        *,
        setting_id: int | None = None,
        rule_id: int | None = None,
        limit: int = 50,
    ) -> list[SettingsAudit]:
        return self.audit.history(setting_id=setting_id, rule_id=rule_id, limit=limit)

    # Export / import

    def export_settings(self) -> list[dict[str, Any]]:
        records = []
        for row in self.setting_store.all():
            if not row.is_active:
                continue
            records.append(
                {
                    "key": row.setting_key,
                    "value": row.setting_value,
                    "category": row.category.name,
                    "data_type": row.data_type,
                    "scope": {k: v for k, v in row.scope_dict().items() if v is not None},
                    "priority": row.priority,
                    "effective_date": row.effective_date.isoformat() if row.effective_date else None,
                    "expiry_date": row.expiry_date.isoformat() if row.expiry_date else None,
                }
            )
        return records

    def import_settings(
        self,
        records: Iterable[SettingWrite],
        *,
        overwrite_existing: bool = False,
        actor: str | None = None,
    ) -> dict[str, int]:
        """All records land in one transaction; any invalid record aborts the import."""
        counts = {"created": 0, "updated": 0, "skipped": 0}
        with transaction(self.db):
            for record in records:
                _, action = self._upsert(
                    record.key,
                    record.value,
                    category_id=record.category_id,
                    category=record.category,
                    data_type=record.data_type,
                    scope=record.scope.to_request(),
                    priority=record.priority,
                    effective_date=record.effective_date,
                    expiry_date=record.expiry_date,
                    actor=actor,
                    reason=record.reason or "import",
                    expected_version=record.expected_version,
                    overwrite=overwrite_existing,
                )
                if action is AuditAction.CREATED:
                    counts["created"] += 1
                elif action is AuditAction.UPDATED:
                    counts["updated"] += 1
                else:
                    counts["skipped"] += 1
        logger.info(
            "settings_imported created=%s updated=%s skipped=%s actor=%s",
            counts["created"],
            counts["updated"],
            counts["skipped"],
            actor or settings.DEFAULT_ACTOR,
        )
        return counts
