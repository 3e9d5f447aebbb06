from __future__ import annotations

from datetime import timedelta

import pytest

from pricing_config.core.errors import ValidationFailure
from pricing_config.models.business_setting import BusinessSetting
from pricing_config.models.mixins import utc_now
from pricing_config.services.scope_resolver import (
    ScopeRequest,
    ScopeResolver,
    coerce_value,
    parse_specificity_weights,
)
from pricing_config.services.settings_service import SettingsService
from pricing_config.services.stores import SettingStore

KEY = "lease.fee_per_kg"


def _add(db, category_id, value, *, key=KEY, data_type="number", **fields) -> BusinessSetting:
    row = BusinessSetting(
        category_id=category_id,
        setting_key=key,
        setting_value=value,
        data_type=data_type,
        effective_date=fields.pop("effective_date", utc_now() - timedelta(minutes=1)),
        **fields,
    )
    db.add(row)
    db.commit()
    return row


def _resolver(db) -> ScopeResolver:
    return ScopeResolver(SettingStore(db))


def test_global_setting_resolves_for_empty_scope(db_session, category_ids):
    _add(db_session, category_ids["LEASE"], 1000)

    assert _resolver(db_session).resolve(KEY, ScopeRequest()) == 1000


def test_outlet_override_wins_only_for_that_outlet(db_session, category_ids):
    _add(db_session, category_ids["LEASE"], 1000)
    _add(db_session, category_ids["LEASE"], 1200, outlet_id=5)
    resolver = _resolver(db_session)

    assert resolver.resolve(KEY, ScopeRequest(outlet_id=5)) == 1200
    assert resolver.resolve(KEY, ScopeRequest(outlet_id=9)) == 1000
    assert resolver.resolve(KEY, ScopeRequest()) == 1000


def test_missing_key_returns_none(db_session):
    assert _resolver(db_session).resolve("nothing.here", ScopeRequest(outlet_id=1)) is None


def test_constrained_setting_needs_the_dimension_in_the_request(db_session, category_ids):
    _add(db_session, category_ids["LEASE"], 1000)
    _add(db_session, category_ids["LEASE"], 800, operation_type="LEASE")
    resolver = _resolver(db_session)

    assert resolver.resolve(KEY, ScopeRequest()) == 1000
    assert resolver.resolve(KEY, ScopeRequest(operation_type="LEASE")) == 800
    assert resolver.resolve(KEY, ScopeRequest(operation_type="REFILL")) == 1000


def test_operation_type_outranks_all_lower_dimensions_combined(db_session, category_ids):
    _add(
        db_session,
        category_ids["LEASE"],
        700,
        customer_tier="premium",
        cylinder_type="A",
        outlet_id=3,
    )
    _add(db_session, category_ids["LEASE"], 900, operation_type="LEASE")
    scope = ScopeRequest(operation_type="LEASE", customer_tier="premium", cylinder_type="A", outlet_id=3)

    assert _resolver(db_session).resolve(KEY, scope) == 900


def test_more_specific_scope_wins(db_session, category_ids):
    _add(db_session, category_ids["LEASE"], 1000)
    _add(db_session, category_ids["LEASE"], 950, customer_tier="business")
    _add(db_session, category_ids["LEASE"], 925, customer_tier="business", outlet_id=2)
    resolver = _resolver(db_session)

    assert resolver.resolve(KEY, ScopeRequest(customer_tier="business", outlet_id=2)) == 925
    assert resolver.resolve(KEY, ScopeRequest(customer_tier="business", outlet_id=7)) == 950


def test_equal_specificity_breaks_ties_by_priority_then_age(db_session, category_ids):
    base = utc_now() - timedelta(hours=1)
    _add(db_session, category_ids["LEASE"], 10, outlet_id=1, priority=1, created_at=base)
    _add(db_session, category_ids["LEASE"], 20, outlet_id=1, priority=5, created_at=base + timedelta(seconds=1))
    resolver = _resolver(db_session)
    assert resolver.resolve(KEY, ScopeRequest(outlet_id=1)) == 20

    _add(db_session, category_ids["LEASE"], 30, key="other.key", created_at=base + timedelta(seconds=5))
    _add(db_session, category_ids["LEASE"], 40, key="other.key", created_at=base)
    assert resolver.resolve("other.key", ScopeRequest()) == 40


def test_future_dated_and_expired_settings_never_resolve(db_session, category_ids):
    now = utc_now()
    _add(db_session, category_ids["LEASE"], 1000)
    _add(db_session, category_ids["LEASE"], 1100, outlet_id=4, effective_date=now + timedelta(days=1))
    _add(
        db_session,
        category_ids["LEASE"],
        1200,
        outlet_id=5,
        effective_date=now - timedelta(days=10),
        expiry_date=now - timedelta(days=1),
    )
    resolver = _resolver(db_session)

    assert resolver.resolve(KEY, ScopeRequest(outlet_id=4)) == 1000
    assert resolver.resolve(KEY, ScopeRequest(outlet_id=5)) == 1000
    assert resolver.resolve(KEY, ScopeRequest(outlet_id=4), at=now + timedelta(days=2)) == 1100


def test_inactive_settings_are_ignored(db_session, category_ids):
    _add(db_session, category_ids["LEASE"], 1000)
    _add(db_session, category_ids["LEASE"], 1500, outlet_id=5, is_active=False)

    assert _resolver(db_session).resolve(KEY, ScopeRequest(outlet_id=5)) == 1000


def test_deleting_override_falls_back_to_next_match(db_session, category_ids):
    service = SettingsService.from_session(db_session)
    service.set_setting(KEY, 1000, category_id=category_ids["LEASE"], data_type="number")
    service.set_setting(
        KEY,
        1100,
        category_id=category_ids["LEASE"],
        data_type="number",
        scope=ScopeRequest(customer_tier="business"),
    )
    override = service.set_setting(
        KEY,
        1200,
        category_id=category_ids["LEASE"],
        data_type="number",
        scope=ScopeRequest(customer_tier="business", outlet_id=5),
    )
    scope = ScopeRequest(customer_tier="business", outlet_id=5)
    assert service.get_setting(KEY, scope) == 1200

    service.delete_setting(override.id, actor="ops@example.com")

    assert service.get_setting(KEY, scope) == 1100


def test_resolve_many_returns_every_requested_key(db_session, category_ids):
    _add(db_session, category_ids["TAXES"], 7.5, key="tax.rate")
    _add(db_session, category_ids["TAXES"], "inclusive", key="tax.type", data_type="string", outlet_id=2)

    values = _resolver(db_session).resolve_many(["tax.rate", "TAX.TYPE", "tax.missing"], ScopeRequest(outlet_id=2))

    assert values == {"tax.rate": 7.5, "TAX.TYPE": "inclusive", "tax.missing": None}


def test_resolve_category_picks_best_candidate_per_key(db_session, category_ids):
    _add(db_session, category_ids["SWAP"], 50, key="swap.fee")
    _add(db_session, category_ids["SWAP"], 45, key="swap.fee", outlet_id=8)
    _add(db_session, category_ids["SWAP"], 2, key="swap.max_per_day", outlet_id=9)

    values = _resolver(db_session).resolve_category(category_ids["SWAP"], ScopeRequest(outlet_id=8))

    assert values == {"swap.fee": 45}


def test_values_are_typed_by_data_type(db_session, category_ids):
    _add(db_session, category_ids["PRICING"], "true", key="pricing.enabled", data_type="boolean")
    _add(db_session, category_ids["PRICING"], '{"a": 1}', key="pricing.meta", data_type="json")
    _add(db_session, category_ids["PRICING"], "12.5", key="pricing.rate", data_type="number")
    _add(db_session, category_ids["PRICING"], "not-a-number", key="pricing.broken", data_type="number")
    resolver = _resolver(db_session)

    assert resolver.resolve("pricing.enabled") is True
    assert resolver.resolve("pricing.meta") == {"a": 1}
    assert resolver.resolve("pricing.rate") == 12.5
    assert resolver.resolve("pricing.broken") is None


def test_coerce_value_rejects_wrong_shapes():
    assert coerce_value("42", "number") == 42
    assert coerce_value("0", "boolean") is False
    assert coerce_value([1, 2], "array") == [1, 2]
    with pytest.raises(ValueError):
        coerce_value(True, "number")
    with pytest.raises(ValueError):
        coerce_value({"a": 1}, "array")
    with pytest.raises(ValueError):
        coerce_value("maybe", "boolean")


def test_specificity_weights_must_keep_dimension_order():
    assert parse_specificity_weights("16,8,4,2") == {
        "operation_type": 16,
        "customer_tier": 8,
        "cylinder_type": 4,
        "outlet_id": 2,
    }
    with pytest.raises(ValueError):
        parse_specificity_weights("1,2,4,8")
    with pytest.raises(ValueError):
        parse_specificity_weights("8,4,4,1")
    with pytest.raises(ValueError):
        parse_specificity_weights("8,4,2")


def test_scope_request_accepts_legacy_camel_case_fields():
    scope = ScopeRequest.from_mapping({"outletId": 5, "customerTier": "premium", "quantity": 3})

    assert scope.outlet_id == 5
    assert scope.value_for("customerTier") == "premium"
    assert scope.value_for("quantity") == 3
    assert scope.cylinder_type is None


def test_scope_request_rejects_unknown_fields():
    with pytest.raises(ValidationFailure) as exc_info:
        ScopeRequest.from_mapping({"region": "north"})
    assert exc_info.value.code == "UNKNOWN_SCOPE_FIELD"


def test_zero_outlet_id_is_a_present_value(db_session, category_ids):
    _add(db_session, category_ids["LEASE"], 1000)
    _add(db_session, category_ids["LEASE"], 1300, outlet_id=0)

    assert _resolver(db_session).resolve(KEY, ScopeRequest(outlet_id=0)) == 1300
