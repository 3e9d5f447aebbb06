"""
Persistence access for settings, categories and pricing rules.

Stores only read and stage rows (`flush`); committing is the caller's
transaction's job so a mutation and its audit row land together.
"""
from __future__ import annotations

from collections.abc import Iterable, Iterator
from contextlib import contextmanager
from datetime import datetime
from typing import Any

from sqlalchemy import and_, or_
from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.orm import Session

from pricing_config.core.errors import PersistenceFailure
from pricing_config.models.business_setting import BusinessSetting
from pricing_config.models.mixins import as_naive_utc, utc_now
from pricing_config.models.pricing_rule import PricingRule
from pricing_config.models.setting_category import SettingCategory

SCOPE_COLUMNS = ("outlet_id", "cylinder_type", "customer_tier", "operation_type")


@contextmanager
def _storage_errors(operation: str) -> Iterator[None]:
    try:
        yield
    except SQLAlchemyError as exc:
        raise PersistenceFailure(message=f"{operation} failed: {exc}") from exc


def effective_clause(model, at: datetime):
    """Active AND effective_date <= at AND (no expiry OR expiry > at)."""
    at = as_naive_utc(at)
    return and_(
        model.is_active.is_(True),
        model.effective_date <= at,
        or_(model.expiry_date.is_(None), model.expiry_date > at),
    )


class SettingStore:
    def __init__(self, db: Session):
        self.db = db

    def get(self, setting_id: int) -> BusinessSetting | None:
        with _storage_errors("setting lookup"):
            return self.db.get(BusinessSetting, setting_id)

    def effective_for_keys(
        self,
        keys: Iterable[str],
        at: datetime | None = None,
    ) -> list[BusinessSetting]:
        key_list = sorted({k for k in keys if k})
        if not key_list:
            return []
        with _storage_errors("effective settings read"):
            return (
                self.db.query(BusinessSetting)
                .filter(BusinessSetting.setting_key.in_(key_list))
                .filter(effective_clause(BusinessSetting, at or utc_now()))
                .order_by(BusinessSetting.priority.desc(), BusinessSetting.created_at.asc())
                .all()
            )

    def effective_for_key(self, key: str, at: datetime | None = None) -> list[BusinessSetting]:
        return self.effective_for_keys([key], at)

    def effective_for_category(
        self,
        category_id: int,
        at: datetime | None = None,
    ) -> list[BusinessSetting]:
        with _storage_errors("category settings read"):
            return (
                self.db.query(BusinessSetting)
                .filter(BusinessSetting.category_id == category_id)
                .filter(effective_clause(BusinessSetting, at or utc_now()))
                .order_by(BusinessSetting.priority.desc(), BusinessSetting.setting_key.asc())
                .all()
            )

    def find_exact_scope(self, key: str, scope: dict[str, Any]) -> BusinessSetting | None:
        """
        Row for exactly (key, scope-tuple); absent dimensions must be NULL.
        Active rows win over inactive ones so reactivation reuses history.
        """
        query = self.db.query(BusinessSetting).filter(BusinessSetting.setting_key == key)
        for column_name in SCOPE_COLUMNS:
            column = getattr(BusinessSetting, column_name)
            value = scope.get(column_name)
            query = query.filter(column.is_(None) if value is None else column == value)
        with _storage_errors("exact scope lookup"):
            return (
                query.order_by(BusinessSetting.is_active.desc(), BusinessSetting.id.asc())
                .with_for_update()
                .first()
            )

    def add(self, setting: BusinessSetting) -> BusinessSetting:
        self.db.add(setting)
        self.db.flush()
        return setting

    def delete(self, setting: BusinessSetting) -> None:
        self.db.delete(setting)
        self.db.flush()

    def page(
        self,
        *,
        offset: int,
        limit: int,
        category_name: str | None = None,
        search: str | None = None,
        is_active: bool | None = None,
        effective_at: datetime | None = None,
    ) -> tuple[int, list[BusinessSetting]]:
        query = self.db.query(BusinessSetting)
        if category_name:
            query = query.join(SettingCategory, SettingCategory.id == BusinessSetting.category_id)
            query = query.filter(SettingCategory.name == category_name.strip().upper())
        if search:
            query = query.filter(BusinessSetting.setting_key.ilike(f"%{search.strip()}%"))
        if is_active is not None:
            query = query.filter(BusinessSetting.is_active.is_(is_active))
        if effective_at is not None:
            query = query.filter(effective_clause(BusinessSetting, effective_at))
        with _storage_errors("settings listing"):
            total = query.count()
            rows = (
                query.order_by(BusinessSetting.priority.desc(), BusinessSetting.setting_key.asc())
                .offset(offset)
                .limit(limit)
                .all()
            )
        return total, rows

    def all(self) -> list[BusinessSetting]:
        with _storage_errors("settings export"):
            return (
                self.db.query(BusinessSetting)
                .order_by(BusinessSetting.setting_key.asc(), BusinessSetting.id.asc())
                .all()
            )


class CategoryStore:
    def __init__(self, db: Session):
        self.db = db

    def get(self, category_id: int) -> SettingCategory | None:
        with _storage_errors("category lookup"):
            return self.db.get(SettingCategory, category_id)

    def by_name(self, name: str) -> SettingCategory | None:
        with _storage_errors("category lookup"):
            return (
                self.db.query(SettingCategory)
                .filter(SettingCategory.name == name.strip().upper())
                .filter(SettingCategory.is_active.is_(True))
                .first()
            )

    def list_active(self) -> list[SettingCategory]:
        with _storage_errors("category listing"):
            return (
                self.db.query(SettingCategory)
                .filter(SettingCategory.is_active.is_(True))
                .order_by(SettingCategory.display_order.asc(), SettingCategory.name.asc())
                .all()
            )


class RuleStore:
    def __init__(self, db: Session):
        self.db = db

    def get(self, rule_id: int) -> PricingRule | None:
        with _storage_errors("rule lookup"):
            return self.db.get(PricingRule, rule_id)

    def effective_rules(
        self,
        at: datetime | None = None,
        rule_types: Iterable[str] | None = None,
    ) -> list[PricingRule]:
        query = self.db.query(PricingRule).filter(effective_clause(PricingRule, at or utc_now()))
        if rule_types is not None:
            query = query.filter(PricingRule.rule_type.in_(list(rule_types)))
        with _storage_errors("pricing rules read"):
            return query.order_by(
                PricingRule.priority.desc(),
                PricingRule.created_at.asc(),
                PricingRule.id.asc(),
            ).all()

    def list_rules(
        self,
        *,
        include_inactive: bool = True,
        rule_type: str | None = None,
    ) -> list[PricingRule]:
        query = self.db.query(PricingRule)
        if not include_inactive:
            query = query.filter(PricingRule.is_active.is_(True))
        if rule_type:
            query = query.filter(PricingRule.rule_type == rule_type)
        with _storage_errors("pricing rules listing"):
            return query.order_by(PricingRule.priority.desc(), PricingRule.id.asc()).all()

    def add(self, rule: PricingRule) -> PricingRule:
        self.db.add(rule)
        self.db.flush()
        return rule

    def delete(self, rule: PricingRule) -> None:
        self.db.delete(rule)
        self.db.flush()
