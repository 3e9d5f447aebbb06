from __future__ import annotations

import logging
from collections.abc import Callable, Iterable
from dataclasses import dataclass, field
from datetime import datetime
from enum import Enum
from typing import Any

from pricing_config.core.errors import ValidationFailure
from pricing_config.models.enums import RuleType
from pricing_config.services.pricing_rule_engine import AppliedRule, PricingRuleEngine
from pricing_config.services.scope_resolver import ScopeRequest
from pricing_config.services.tax_calculator import round_money

logger = logging.getLogger(__name__)

UnitPriceFn = Callable[[str, ScopeRequest, datetime | None], float]


@dataclass(frozen=True)
class BulkItem:
    cylinder_type: str
    quantity: float
    cylinder_size: str | None = None


@dataclass(frozen=True)
class BulkItemPrice:
    cylinder_type: str
    cylinder_size: str | None
    quantity: float
    unit_price: float
    total_price: float

    def as_dict(self) -> dict[str, Any]:
        return {
            "cylinderType": self.cylinder_type,
            "cylinderSize": self.cylinder_size,
            "quantity": self.quantity,
            "unitPrice": self.unit_price,
            "totalPrice": self.total_price,
        }


@dataclass(frozen=True)
class BulkPriceResult:
    items: list[BulkItemPrice]
    subtotal: float
    bulk_discount: float
    total_price: float
    applied_rules: list[AppliedRule] = field(default_factory=list)

    def as_dict(self) -> dict[str, Any]:
        return {
            "itemPrices": [item.as_dict() for item in self.items],
            "subtotal": self.subtotal,
            "bulkDiscount": self.bulk_discount,
            "appliedRules": [rule.as_dict() for rule in self.applied_rules],
            "totalPrice": self.total_price,
        }


def _validate_items(items: list[BulkItem]) -> None:
    if not items:
        raise ValidationFailure(code="EMPTY_ITEMS", message="At least one item is required.")
    issues = []
    for index, item in enumerate(items):
        if not (item.cylinder_type or "").strip():
            issues.append(f"items[{index}].cylinder_type is required")
        quantity = item.quantity
        if isinstance(quantity, bool) or not isinstance(quantity, (int, float)) or quantity <= 0:
            issues.append(f"items[{index}].quantity must be a positive number")
    if issues:
        raise ValidationFailure(
            code="INVALID_ITEMS",
            message="Bulk pricing items are invalid.",
            issues=issues,
        )


class BulkPricingCalculator:
    """
    Prices a multi-item order.

    Each item is priced on its own scope (its cylinder type and quantity), then
    the volume discount rules run once more over the combined subtotal with the
    total quantity of the order. Items and order rules are priced at the same `at`.
    """

    def __init__(self, unit_price: UnitPriceFn, rule_engine: PricingRuleEngine):
        self.unit_price = unit_price
        self.rule_engine = rule_engine

    def calculate(
        self,
        operation_type: str | Enum,
        items: Iterable[BulkItem],
        scope: ScopeRequest | None = None,
        at: datetime | None = None,
    ) -> BulkPriceResult:
        op_value = operation_type.value if isinstance(operation_type, Enum) else operation_type
        scope = (scope or ScopeRequest()).replace(operation_type=op_value)
        item_list = list(items)
        _validate_items(item_list)

        priced: list[BulkItemPrice] = []
        subtotal = 0.0
        total_quantity = 0.0
        for item in item_list:
            item_scope = scope.replace(
                cylinder_type=item.cylinder_type,
                quantity=item.quantity,
                cylinder_size=item.cylinder_size or scope.cylinder_size,
            )
            unit = self.unit_price(op_value, item_scope, at)
            line_total = unit * item.quantity
            subtotal += line_total
            total_quantity += item.quantity
            priced.append(
                BulkItemPrice(
                    cylinder_type=item.cylinder_type,
                    cylinder_size=item_scope.cylinder_size,
                    quantity=item.quantity,
                    unit_price=round_money(unit),
                    total_price=round_money(line_total),
                )
            )

        bulk_scope = scope.replace(quantity=total_quantity, cylinder_type=None, cylinder_size=None)
        evaluation = self.rule_engine.evaluate(
            subtotal,
            op_value,
            bulk_scope,
            rule_types=[RuleType.VOLUME_DISCOUNT],
            at=at,
        )
        logger.info(
            "bulk_price_calculated operation_type=%s items=%s quantity=%s subtotal=%s total=%s",
            op_value,
            len(priced),
            total_quantity,
            subtotal,
            evaluation.final_price,
        )
        return BulkPriceResult(
            items=priced,
            subtotal=round_money(subtotal),
            bulk_discount=round_money(subtotal - evaluation.final_price),
            total_price=round_money(evaluation.final_price),
            applied_rules=evaluation.applied,
        )
