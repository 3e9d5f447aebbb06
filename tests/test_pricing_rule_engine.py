from __future__ import annotations

from datetime import datetime, timedelta

import pytest
from pydantic import ValidationError

from pricing_config.models.mixins import utc_now
from pricing_config.models.pricing_rule import PricingRule
from pricing_config.schemas.pricing_rule import PricingRuleCreate, PricingRuleUpdate, RuleAction, RuleCondition
from pricing_config.services.pricing_rule_engine import PricingRuleEngine
from pricing_config.services.scope_resolver import ScopeRequest
from pricing_config.services.stores import RuleStore


def _rule(db, name, *, actions, conditions=None, priority=0, **fields) -> PricingRule:
    row = PricingRule(
        name=name,
        rule_type=fields.pop("rule_type", "discount"),
        conditions=conditions or [],
        actions=actions,
        applies_to=fields.pop("applies_to", {}),
        priority=priority,
        effective_date=fields.pop("effective_date", utc_now() - timedelta(minutes=1)),
        **fields,
    )
    db.add(row)
    db.commit()
    return row


def _engine(db) -> PricingRuleEngine:
    return PricingRuleEngine(RuleStore(db))


def test_quantity_discount_applies_at_threshold(db_session):
    _rule(
        db_session,
        "Bulk 10%",
        conditions=[{"field": "quantity", "operator": "gte", "value": 50}],
        actions=[{"type": "percentage_discount", "value": 10}],
    )
    engine = _engine(db_session)

    assert engine.apply_rules(100, "REFILL", ScopeRequest(quantity=60)) == pytest.approx(90)
    assert engine.apply_rules(100, "REFILL", ScopeRequest(quantity=49)) == pytest.approx(100)


def test_result_is_clamped_at_zero(db_session):
    _rule(db_session, "Huge rebate", actions=[{"type": "subtract", "value": 500}])

    assert _engine(db_session).apply_rules(100, "SWAP", ScopeRequest()) == 0


def test_rules_run_in_priority_order(db_session):
    _rule(db_session, "Fixed", priority=10, actions=[{"type": "set_fixed", "value": 50}])
    _rule(db_session, "Discount", priority=1, actions=[{"type": "percentage_discount", "value": 10}])

    evaluation = _engine(db_session).evaluate(100, "LEASE", ScopeRequest())

    assert evaluation.final_price == pytest.approx(45)
    assert [a.name for a in evaluation.applied] == ["Fixed", "Discount"]
    assert evaluation.applied[0].price_before == 100
    assert evaluation.applied[0].price_after == 50
    assert evaluation.applied[1].price_after == pytest.approx(45)


def test_actions_within_a_rule_apply_in_order(db_session):
    _rule(
        db_session,
        "Chain",
        actions=[
            {"type": "add", "value": 20},
            {"type": "multiply", "value": 2},
            {"type": "percentage_markup", "value": 10},
            {"type": "divide", "value": 4},
        ],
    )

    assert _engine(db_session).apply_rules(30, "GENERAL", ScopeRequest()) == pytest.approx(27.5)


def test_operation_type_restriction(db_session):
    _rule(
        db_session,
        "Refill only",
        applies_to={"operation_types": ["REFILL"]},
        actions=[{"type": "subtract", "value": 5}],
    )
    engine = _engine(db_session)

    assert engine.apply_rules(100, "REFILL", ScopeRequest()) == 95
    assert engine.apply_rules(100, "SWAP", ScopeRequest()) == 100


def test_legacy_camel_case_applies_to_is_understood(db_session):
    _rule(
        db_session,
        "Legacy",
        applies_to={"operationTypes": ["LEASE"]},
        conditions=[{"field": "customerTier", "operator": "eq", "value": "premium"}],
        actions=[{"type": "percentage_discount", "value": 50}],
    )
    engine = _engine(db_session)

    assert engine.apply_rules(100, "LEASE", ScopeRequest(customer_tier="premium")) == 50
    assert engine.apply_rules(100, "REFILL", ScopeRequest(customer_tier="premium")) == 100


def test_outlet_allowlist(db_session):
    _rule(db_session, "Outlets 1 and 2", outlet_ids=[1, 2], actions=[{"type": "subtract", "value": 10}])
    engine = _engine(db_session)

    assert engine.apply_rules(100, "SWAP", ScopeRequest(outlet_id=2)) == 90
    assert engine.apply_rules(100, "SWAP", ScopeRequest(outlet_id=3)) == 100
    # No outlet in the request: the allowlist does not exclude it.
    assert engine.apply_rules(100, "SWAP", ScopeRequest()) == 90


def test_absent_scope_values(db_session):
    _rule(
        db_session,
        "Needs cylinder A",
        conditions=[{"field": "cylinder_type", "operator": "eq", "value": "A"}],
        actions=[{"type": "subtract", "value": 1}],
    )
    _rule(
        db_session,
        "Not cylinder B",
        conditions=[{"field": "cylinder_type", "operator": "ne", "value": "B"}],
        actions=[{"type": "subtract", "value": 10}],
    )
    _rule(
        db_session,
        "Not in premium tiers",
        conditions=[{"field": "customer_tier", "operator": "not_in", "value": ["premium"]}],
        actions=[{"type": "subtract", "value": 100}],
    )
    _rule(
        db_session,
        "Small orders",
        conditions=[{"field": "quantity", "operator": "lt", "value": 5}],
        actions=[{"type": "add", "value": 1000}],
    )

    assert _engine(db_session).apply_rules(1000, "REFILL", ScopeRequest()) == 890


def test_malformed_rules_are_skipped_and_others_still_apply(db_session):
    bad_operator = _rule(
        db_session,
        "Bad operator",
        priority=9,
        conditions=[{"field": "quantity", "operator": "between", "value": [1, 5]}],
        actions=[{"type": "subtract", "value": 1}],
    )
    zero_divisor = _rule(db_session, "Zero divisor", priority=8, actions=[{"type": "divide", "value": 0}])
    incomparable = _rule(
        db_session,
        "Incomparable",
        priority=7,
        conditions=[{"field": "cylinder_type", "operator": "gt", "value": 5}],
        actions=[{"type": "subtract", "value": 1}],
    )
    _rule(db_session, "Good", priority=1, actions=[{"type": "percentage_discount", "value": 20}])

    evaluation = _engine(db_session).evaluate(100, "SWAP", ScopeRequest(cylinder_type="A"))

    assert evaluation.final_price == pytest.approx(80)
    assert [a.name for a in evaluation.applied] == ["Good"]
    assert evaluation.skipped == [bad_operator.id, zero_divisor.id, incomparable.id]


def test_partially_applied_rule_does_not_leak_into_price(db_session):
    _rule(
        db_session,
        "Add then broken",
        actions=[{"type": "add", "value": 50}, {"type": "teleport", "value": 1}],
    )

    assert _engine(db_session).apply_rules(100, "SWAP", ScopeRequest()) == 100


def test_expired_inactive_and_future_rules_are_ignored(db_session):
    now = utc_now()
    _rule(db_session, "Inactive", is_active=False, actions=[{"type": "subtract", "value": 1}])
    _rule(
        db_session,
        "Expired",
        effective_date=now - timedelta(days=5),
        expiry_date=now - timedelta(days=1),
        actions=[{"type": "subtract", "value": 2}],
    )
    _rule(db_session, "Future", effective_date=now + timedelta(days=1), actions=[{"type": "subtract", "value": 4}])

    assert _engine(db_session).apply_rules(100, "SWAP", ScopeRequest()) == 100


def test_rule_type_filter(db_session):
    _rule(db_session, "Surcharge", rule_type="surcharge", actions=[{"type": "add", "value": 10}])
    _rule(
        db_session,
        "Volume",
        rule_type="volume_discount",
        actions=[{"type": "percentage_discount", "value": 10}],
    )

    assert _engine(db_session).apply_rules(100, "SWAP", ScopeRequest(), rule_types=["volume_discount"]) == 90


def test_condition_schema_rejects_bad_definitions():
    with pytest.raises(ValidationError):
        RuleCondition(field="quantity", operator="in", value=5)
    with pytest.raises(ValidationError):
        RuleCondition(field="region", operator="eq", value="north")
    with pytest.raises(ValidationError):
        RuleCondition(field="quantity", operator="gte", value="ten")
    with pytest.raises(ValidationError):
        RuleCondition(field="quantity", operator="between", value=[1, 2])

    assert RuleCondition(field="outletId", operator="in", value=[1, 2]).field == "outlet_id"


def test_action_schema_rejects_bad_definitions():
    with pytest.raises(ValidationError):
        RuleAction(type="divide", value=0)
    with pytest.raises(ValidationError):
        RuleAction(type="add", value=True)
    with pytest.raises(ValidationError):
        RuleAction(type="add", value="lots")
    with pytest.raises(ValidationError):
        RuleAction(type="explode", value=1)


def test_rule_schema_requires_actions_and_a_valid_window():
    now = utc_now()
    with pytest.raises(ValidationError):
        PricingRuleCreate(name="No actions", rule_type="discount", actions=[])
    with pytest.raises(ValidationError):
        PricingRuleCreate(
            name="Backwards",
            rule_type="discount",
            actions=[{"type": "add", "value": 1}],
            effective_date=now,
            expiry_date=now - timedelta(days=1),
        )


def test_empty_outlet_allowlist_excludes_every_outlet(db_session):
    _rule(db_session, "No outlets", outlet_ids=[], actions=[{"type": "set_fixed", "value": 1}])

    assert _engine(db_session).apply_rules(100, "SWAP", ScopeRequest(outlet_id=5)) == 100


def test_rule_schema_rejects_empty_outlet_allowlist():
    with pytest.raises(ValidationError):
        PricingRuleCreate(
            name="No outlets",
            rule_type="discount",
            actions=[{"type": "add", "value": 1}],
            outlet_ids=[],
        )
    with pytest.raises(ValidationError):
        PricingRuleUpdate(outlet_ids=[])


def test_rule_schema_converts_offset_aware_dates_to_naive_utc():
    rule = PricingRuleCreate(
        name="Window",
        rule_type="discount",
        actions=[{"type": "add", "value": 1}],
        effective_date="2030-01-01T02:00:00+02:00",
        expiry_date="2030-02-01T00:00:00Z",
    )

    assert rule.effective_date == datetime(2030, 1, 1, 0, 0)
    assert rule.expiry_date == datetime(2030, 2, 1, 0, 0)
    assert PricingRuleUpdate(expiry_date="2030-02-01T05:30:00+05:30").expiry_date == datetime(2030, 2, 1, 0, 0)
