"""
Specificity-ranked resolution of scoped settings.

A setting matches a request when every scope dimension it constrains equals
the request's value for that dimension. Matching settings are ranked by the
weighted sum of the dimensions they constrain, then priority (desc), then age
(oldest first).
"""
from __future__ import annotations

import dataclasses
import json
import logging
import math
from collections.abc import Iterable, Mapping
from dataclasses import dataclass
from datetime import datetime
from enum import Enum
from typing import Any, ClassVar

from pricing_config.core.config import settings
from pricing_config.core.errors import ValidationFailure
from pricing_config.core.flow_logging import flow_info
from pricing_config.models.business_setting import BusinessSetting
from pricing_config.models.enums import DataType
from pricing_config.services.stores import SCOPE_COLUMNS, SettingStore

logger = logging.getLogger(__name__)

# Dimension order is fixed; only the numeric weights are policy.
SPECIFICITY_DIMENSIONS = ("operation_type", "customer_tier", "cylinder_type", "outlet_id")


@dataclass(frozen=True)
class ScopeRequest:
    """Request context. `None` marks a dimension as absent."""

    outlet_id: int | None = None
    cylinder_type: str | None = None
    customer_tier: str | None = None
    operation_type: str | None = None
    quantity: float | None = None
    cylinder_size: str | None = None

    FIELD_ALIASES: ClassVar[dict[str, str]] = {
        "outletId": "outlet_id",
        "cylinderType": "cylinder_type",
        "customerTier": "customer_tier",
        "operationType": "operation_type",
        "cylinderSize": "cylinder_size",
    }

    def __post_init__(self) -> None:
        for f in dataclasses.fields(self):
            value = getattr(self, f.name)
            if isinstance(value, Enum):
                object.__setattr__(self, f.name, value.value)

    @classmethod
    def field_name(cls, name: str) -> str | None:
        """Canonical attribute for `name` (snake_case or legacy camelCase)."""
        canonical = cls.FIELD_ALIASES.get(name, name)
        if canonical in {f.name for f in dataclasses.fields(cls)}:
            return canonical
        return None

    @classmethod
    def from_mapping(cls, data: Mapping[str, Any] | None) -> "ScopeRequest":
        values: dict[str, Any] = {}
        for raw_key, value in (data or {}).items():
            name = cls.field_name(raw_key)
            if name is None:
                raise ValidationFailure(
                    code="UNKNOWN_SCOPE_FIELD",
                    message=f"Unknown scope field: {raw_key}",
                )
            values[name] = value
        return cls(**values)

    def value_for(self, name: str) -> Any:
        canonical = self.field_name(name)
        if canonical is None:
            raise KeyError(name)
        return getattr(self, canonical)

    def replace(self, **changes: Any) -> "ScopeRequest":
        return dataclasses.replace(self, **changes)

    def dimensions(self) -> dict[str, Any]:
        """Only the dimensions settings can be constrained by."""
        return {name: getattr(self, name) for name in SCOPE_COLUMNS}

    def as_dict(self) -> dict[str, Any]:
        return {k: v for k, v in dataclasses.asdict(self).items() if v is not None}


def parse_specificity_weights(raw: str) -> dict[str, int]:
    try:
        weights = [int(part) for part in raw.split(",") if part.strip()]
    except ValueError:
        raise ValueError(f"SCOPE_SPECIFICITY_WEIGHTS must be integers: {raw!r}") from None
    if len(weights) != len(SPECIFICITY_DIMENSIONS):
        raise ValueError(
            "SCOPE_SPECIFICITY_WEIGHTS needs one weight per dimension "
            f"({','.join(SPECIFICITY_DIMENSIONS)})"
        )
    if any(w <= 0 for w in weights) or any(a <= b for a, b in zip(weights, weights[1:])):
        raise ValueError(
            "SCOPE_SPECIFICITY_WEIGHTS must be positive and strictly descending "
            "(operation_type > customer_tier > cylinder_type > outlet_id)"
        )
    return dict(zip(SPECIFICITY_DIMENSIONS, weights))


def typed_value(setting: BusinessSetting) -> Any:
    """Convert the stored JSON value according to the setting's data_type."""
    return coerce_value(setting.setting_value, setting.data_type)


def coerce_value(value: Any, data_type: str | DataType) -> Any:
    kind = DataType(data_type)
    if value is None:
        return None
    if kind is DataType.NUMBER:
        if isinstance(value, bool):
            raise ValueError("boolean is not a number")
        if isinstance(value, int):
            return value
        if isinstance(value, float):
            if not math.isfinite(value):
                raise ValueError(f"not a finite number: {value!r}")
            return value
        text = str(value).strip()
        number = float(text)
        if not math.isfinite(number):
            raise ValueError(f"not a finite number: {value!r}")
        return int(number) if number.is_integer() and "." not in text else number
    if kind is DataType.BOOLEAN:
        if isinstance(value, bool):
            return value
        text = str(value).strip().lower()
        if text in {"true", "1", "yes", "on"}:
            return True
        if text in {"false", "0", "no", "off", ""}:
            return False
        raise ValueError(f"not a boolean: {value!r}")
    if kind in (DataType.JSON, DataType.ARRAY):
        decoded = json.loads(value) if isinstance(value, str) else value
        if kind is DataType.ARRAY and not isinstance(decoded, list):
            raise ValueError("array setting must hold a list")
        return decoded
    return value if isinstance(value, str) else str(value)


class ScopeResolver:
    def __init__(self, store: SettingStore, weights: Mapping[str, int] | None = None):
        self.store = store
        self.weights = dict(weights or parse_specificity_weights(settings.SCOPE_SPECIFICITY_WEIGHTS))

    @staticmethod
    def matches(setting: BusinessSetting, scope: ScopeRequest) -> bool:
        for name in SCOPE_COLUMNS:
            constraint = getattr(setting, name)
            if constraint is None:
                continue
            if getattr(scope, name) != constraint:
                return False
        return True

    def specificity(self, setting: BusinessSetting, scope: ScopeRequest) -> int:
        score = 0
        for name in SPECIFICITY_DIMENSIONS:
            constraint = getattr(setting, name)
            if constraint is not None and getattr(scope, name) == constraint:
                score += self.weights[name]
        return score

    def rank(
        self,
        candidates: Iterable[BusinessSetting],
        scope: ScopeRequest,
    ) -> list[BusinessSetting]:
        matching = [s for s in candidates if self.matches(s, scope)]
        return sorted(
            matching,
            key=lambda s: (
                -self.specificity(s, scope),
                -(s.priority or 0),
                s.created_at,
                s.id,
            ),
        )

    def best_match(
        self,
        key: str,
        scope: ScopeRequest,
        at: datetime | None = None,
    ) -> BusinessSetting | None:
        ranked = self.rank(self.store.effective_for_key(normalize_key(key), at), scope)
        return ranked[0] if ranked else None

    def resolve(self, key: str, scope: ScopeRequest | None = None, at: datetime | None = None) -> Any:
        scope = scope or ScopeRequest()
        best = self.best_match(key, scope, at)
        flow_info(
            logger,
            "scope_resolve key=%s scope=%s setting_id=%s",
            key,
            scope.as_dict(),
            best.id if best else None,
            category="resolution",
        )
        return self._value_or_none(best)

    def resolve_many(
        self,
        keys: Iterable[str],
        scope: ScopeRequest | None = None,
        at: datetime | None = None,
    ) -> dict[str, Any]:
        """Resolve several keys from a single read of the store."""
        scope = scope or ScopeRequest()
        requested = list(keys)
        by_key = self._group(self.store.effective_for_keys([normalize_key(k) for k in requested], at))
        results: dict[str, Any] = {}
        for key in requested:
            ranked = self.rank(by_key.get(normalize_key(key), []), scope)
            results[key] = self._value_or_none(ranked[0] if ranked else None)
        return results

    def resolve_category(
        self,
        category_id: int,
        scope: ScopeRequest | None = None,
        at: datetime | None = None,
    ) -> dict[str, Any]:
        """Resolve every key in a category; keys with no match are omitted."""
        scope = scope or ScopeRequest()
        results: dict[str, Any] = {}
        for key, candidates in self._group(self.store.effective_for_category(category_id, at)).items():
            ranked = self.rank(candidates, scope)
            if ranked:
                results[key] = self._value_or_none(ranked[0])
        return results

    @staticmethod
    def _group(rows: Iterable[BusinessSetting]) -> dict[str, list[BusinessSetting]]:
        grouped: dict[str, list[BusinessSetting]] = {}
        for row in rows:
            grouped.setdefault(row.setting_key, []).append(row)
        return grouped

    @staticmethod
    def _value_or_none(setting: BusinessSetting | None) -> Any:
        if setting is None:
            return None
        try:
            return typed_value(setting)
        except (TypeError, ValueError) as exc:
            # Stored value no longer matches its declared type; treat as unset.
            logger.warning(
                "scope_resolve_bad_value setting_id=%s data_type=%s error=%s",
                setting.id,
                setting.data_type,
                exc,
            )
            return None


def normalize_key(key: str) -> str:
    return (key or "").strip().lower()
