"""
Conditional price adjustment.

Effective rules are evaluated in priority order (desc), ties broken by
creation time. A rule fires when its operation-type restriction, outlet
allowlist and every condition accept the request; its actions are then applied
in order to the running price. A stored rule that cannot be parsed or
evaluated is logged and skipped, never aborting the whole evaluation.
"""
from __future__ import annotations

import logging
import math
from collections.abc import Iterable
from dataclasses import dataclass, field
from datetime import datetime
from enum import Enum
from typing import Any

from pydantic import ValidationError

from pricing_config.core.flow_logging import flow_info
from pricing_config.models.enums import ActionType, ConditionOperator
from pricing_config.models.pricing_rule import PricingRule
from pricing_config.schemas.pricing_rule import RuleAction, RuleAppliesTo, RuleCondition
from pricing_config.services.scope_resolver import ScopeRequest
from pricing_config.services.stores import RuleStore

logger = logging.getLogger(__name__)


class MalformedRule(ValueError):
    pass


@dataclass(frozen=True)
class CompiledRule:
    id: int
    name: str
    rule_type: str
    conditions: tuple[RuleCondition, ...]
    actions: tuple[RuleAction, ...]
    operation_types: frozenset[str]
    outlet_ids: frozenset[int] | None


@dataclass(frozen=True)
class AppliedRule:
    rule_id: int
    name: str
    rule_type: str
    price_before: float
    price_after: float

    def as_dict(self) -> dict[str, Any]:
        return {
            "ruleId": self.rule_id,
            "name": self.name,
            "ruleType": self.rule_type,
            "priceBefore": self.price_before,
            "priceAfter": self.price_after,
        }


@dataclass
class RuleEvaluation:
    base_price: float
    final_price: float
    applied: list[AppliedRule] = field(default_factory=list)
    skipped: list[int] = field(default_factory=list)


def compile_rule(rule: PricingRule) -> CompiledRule:
    try:
        conditions = tuple(RuleCondition.model_validate(c) for c in (rule.conditions or []))
        actions = tuple(RuleAction.model_validate(a) for a in (rule.actions or []))
        applies_to = RuleAppliesTo.model_validate(rule.applies_to or {})
    except ValidationError as exc:
        raise MalformedRule(f"rule {rule.id}: {exc.errors()[0].get('msg')}") from exc
    if rule.outlet_ids is not None and not isinstance(rule.outlet_ids, list):
        raise MalformedRule(f"rule {rule.id}: outlet_ids must be a list")
    return CompiledRule(
        id=rule.id,
        name=rule.name,
        rule_type=rule.rule_type,
        conditions=conditions,
        actions=actions,
        operation_types=frozenset(op.value for op in applies_to.operation_types),
        outlet_ids=frozenset(rule.outlet_ids) if rule.outlet_ids is not None else None,
    )


def condition_holds(condition: RuleCondition, scope: ScopeRequest) -> bool:
    """
    Absent request values never satisfy eq/in/ordering operators and always
    satisfy ne/not_in. Incomparable types raise TypeError.
    """
    actual = scope.value_for(condition.field)
    expected = condition.value
    operator = condition.operator

    if operator is ConditionOperator.EQ:
        return actual is not None and actual == expected
    if operator is ConditionOperator.NE:
        return actual != expected
    if operator is ConditionOperator.IN:
        return actual is not None and actual in expected
    if operator is ConditionOperator.NOT_IN:
        return actual not in expected
    if actual is None:
        return False
    if operator is ConditionOperator.GT:
        return actual > expected
    if operator is ConditionOperator.GTE:
        return actual >= expected
    if operator is ConditionOperator.LT:
        return actual < expected
    if operator is ConditionOperator.LTE:
        return actual <= expected
    raise MalformedRule(f"unsupported operator: {operator}")


def apply_action(price: float, action: RuleAction) -> float:
    value = action.value
    kind = action.type
    if kind is ActionType.ADD:
        result = price + value
    elif kind is ActionType.SUBTRACT:
        result = price - value
    elif kind is ActionType.MULTIPLY:
        result = price * value
    elif kind is ActionType.DIVIDE:
        if value == 0:
            raise MalformedRule("divide by zero")
        result = price / value
    elif kind is ActionType.PERCENTAGE_DISCOUNT:
        result = price * (1 - value / 100)
    elif kind is ActionType.PERCENTAGE_MARKUP:
        result = price * (1 + value / 100)
    elif kind is ActionType.SET_FIXED:
        result = value
    else:
        raise MalformedRule(f"unsupported action: {kind}")
    if not math.isfinite(result):
        raise MalformedRule(f"action {kind.value} produced a non-finite price")
    return result


class PricingRuleEngine:
    def __init__(self, store: RuleStore):
        self.store = store

    @staticmethod
    def rule_applies(rule: CompiledRule, operation_type: str | None, scope: ScopeRequest) -> bool:
        if rule.operation_types and operation_type not in rule.operation_types:
            return False
        if rule.outlet_ids is not None and scope.outlet_id is not None:
            if scope.outlet_id not in rule.outlet_ids:
                return False
        return all(condition_holds(c, scope) for c in rule.conditions)

    def evaluate(
        self,
        base_price: float,
        operation_type: str | Enum | None,
        scope: ScopeRequest | None = None,
        *,
        rule_types: Iterable[str | Enum] | None = None,
        at: datetime | None = None,
    ) -> RuleEvaluation:
        scope = scope or ScopeRequest()
        op_value = operation_type.value if isinstance(operation_type, Enum) else operation_type
        type_values = None
        if rule_types is not None:
            type_values = [t.value if isinstance(t, Enum) else t for t in rule_types]

        price = float(base_price)
        result = RuleEvaluation(base_price=price, final_price=price)

        for row in self.store.effective_rules(at, type_values):
            try:
                rule = compile_rule(row)
                if not self.rule_applies(rule, op_value, scope):
                    continue
                adjusted = price
                for action in rule.actions:
                    adjusted = apply_action(adjusted, action)
            except (MalformedRule, TypeError, ValueError, KeyError) as exc:
                logger.warning(
                    "pricing_rule_skipped rule_id=%s name=%s error=%s",
                    row.id,
                    row.name,
                    exc,
                )
                result.skipped.append(row.id)
                continue

            result.applied.append(
                AppliedRule(
                    rule_id=rule.id,
                    name=rule.name,
                    rule_type=rule.rule_type,
                    price_before=price,
                    price_after=adjusted,
                )
            )
            price = adjusted

        result.final_price = max(0.0, price)
        flow_info(
            logger,
            "pricing_rules_applied operation_type=%s base=%s final=%s applied=%s skipped=%s",
            op_value,
            result.base_price,
            result.final_price,
            [a.rule_id for a in result.applied],
            result.skipped,
            category="pricing",
        )
        return result

    def apply_rules(
        self,
        base_price: float,
        operation_type: str | Enum | None,
        scope: ScopeRequest | None = None,
        *,
        rule_types: Iterable[str | Enum] | None = None,
        at: datetime | None = None,
    ) -> float:
        return self.evaluate(
            base_price,
            operation_type,
            scope,
            rule_types=rule_types,
            at=at,
        ).final_price
