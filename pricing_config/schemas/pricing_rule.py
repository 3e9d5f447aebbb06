from __future__ import annotations

import math
from datetime import datetime
from typing import Any

from pydantic import (
    AliasChoices,
    BaseModel,
    ConfigDict,
    Field,
    field_validator,
    model_validator,
)

from pricing_config.models.enums import (
    ActionType,
    ConditionOperator,
    OperationType,
    RuleType,
)
from pricing_config.models.mixins import as_naive_utc

# Fields a condition may test; camelCase aliases are accepted and normalized.
CONDITION_FIELDS = {
    "outlet_id": "outlet_id",
    "outletId": "outlet_id",
    "cylinder_type": "cylinder_type",
    "cylinderType": "cylinder_type",
    "customer_tier": "customer_tier",
    "customerTier": "customer_tier",
    "operation_type": "operation_type",
    "operationType": "operation_type",
    "quantity": "quantity",
    "cylinder_size": "cylinder_size",
    "cylinderSize": "cylinder_size",
}

_ORDERING_OPERATORS = {
    ConditionOperator.GT,
    ConditionOperator.GTE,
    ConditionOperator.LT,
    ConditionOperator.LTE,
}


def _is_number(value: Any) -> bool:
    return isinstance(value, (int, float)) and not isinstance(value, bool)


class RuleCondition(BaseModel):
    field: str
    operator: ConditionOperator
    value: Any = None

    @field_validator("field")
    @classmethod
    def _known_field(cls, value: str) -> str:
        canonical = CONDITION_FIELDS.get((value or "").strip())
        if canonical is None:
            raise ValueError(f"unknown condition field: {value!r}")
        return canonical

    @model_validator(mode="after")
    def _value_fits_operator(self) -> "RuleCondition":
        if self.operator in (ConditionOperator.IN, ConditionOperator.NOT_IN):
            if not isinstance(self.value, list):
                raise ValueError(f"operator '{self.operator.value}' needs a list value")
        elif self.operator in _ORDERING_OPERATORS:
            if not _is_number(self.value):
                raise ValueError(f"operator '{self.operator.value}' needs a numeric value")
        return self


class RuleAction(BaseModel):
    type: ActionType
    value: float = Field(allow_inf_nan=False)

    @field_validator("value", mode="before")
    @classmethod
    def _reject_bool(cls, value: Any) -> Any:
        if isinstance(value, bool):
            raise ValueError("action value must be a number")
        return value

    @model_validator(mode="after")
    def _no_degenerate_divide(self) -> "RuleAction":
        if self.type is ActionType.DIVIDE and self.value == 0:
            raise ValueError("divide action cannot use 0")
        if not math.isfinite(self.value):
            raise ValueError("action value must be finite")
        return self


class RuleAppliesTo(BaseModel):
    model_config = ConfigDict(populate_by_name=True)

    operation_types: list[OperationType] = Field(
        default_factory=list,
        validation_alias=AliasChoices("operation_types", "operationTypes"),
    )


class PricingRuleBase(BaseModel):
    name: str = Field(min_length=2, max_length=200)
    description: str | None = None
    rule_type: RuleType
    conditions: list[RuleCondition] = Field(default_factory=list)
    actions: list[RuleAction] = Field(min_length=1)
    applies_to: RuleAppliesTo = Field(default_factory=RuleAppliesTo)
    outlet_ids: list[int] | None = Field(default=None, min_length=1)
    priority: int = Field(default=0, ge=0, le=9999)
    is_active: bool = True
    effective_date: datetime | None = None
    expiry_date: datetime | None = None

    @field_validator("name")
    @classmethod
    def _strip_name(cls, value: str) -> str:
        return value.strip()

    @field_validator("effective_date", "expiry_date")
    @classmethod
    def _utc(cls, value: datetime | None) -> datetime | None:
        return as_naive_utc(value)

    @model_validator(mode="after")
    def _window(self) -> "PricingRuleBase":
        if self.effective_date and self.expiry_date and self.expiry_date <= self.effective_date:
            raise ValueError("expiry_date must be after effective_date")
        return self


class PricingRuleCreate(PricingRuleBase):
    pass


class PricingRuleUpdate(BaseModel):
    name: str | None = Field(default=None, min_length=2, max_length=200)
    description: str | None = None
    rule_type: RuleType | None = None
    conditions: list[RuleCondition] | None = None
    actions: list[RuleAction] | None = Field(default=None, min_length=1)
    applies_to: RuleAppliesTo | None = None
    outlet_ids: list[int] | None = Field(default=None, min_length=1)
    priority: int | None = Field(default=None, ge=0, le=9999)
    is_active: bool | None = None
    effective_date: datetime | None = None
    expiry_date: datetime | None = None
    expected_version: int | None = None

    @field_validator("effective_date", "expiry_date")
    @classmethod
    def _utc(cls, value: datetime | None) -> datetime | None:
        return as_naive_utc(value)


class PricingRuleOut(BaseModel):
    model_config = ConfigDict(from_attributes=True)

    id: int
    name: str
    description: str | None = None
    rule_type: str
    conditions: list[dict[str, Any]]
    actions: list[dict[str, Any]]
    applies_to: dict[str, Any]
    outlet_ids: list[int] | None = None
    priority: int
    is_active: bool
    effective_date: datetime
    expiry_date: datetime | None = None
    version: int
    created_by: str
    updated_by: str
    created_at: datetime
    updated_at: datetime
