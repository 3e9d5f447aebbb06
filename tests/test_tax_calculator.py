from __future__ import annotations

import pytest

from pricing_config.core.errors import ValidationFailure
from pricing_config.models.enums import TaxMode
from pricing_config.services.tax_calculator import compute_tax, round_money


def test_exclusive_tax_is_added_on_top():
    breakdown = compute_tax(100, 7.5, "exclusive")

    assert breakdown.tax_amount == 7.50
    assert breakdown.total == 107.50
    assert breakdown.subtotal == 100.00
    assert breakdown.mode == "exclusive"


def test_inclusive_tax_is_extracted_from_subtotal():
    breakdown = compute_tax(107.5, 7.5, TaxMode.INCLUSIVE)

    assert breakdown.tax_amount == 7.50
    assert breakdown.subtotal == 100.00
    assert breakdown.total == 107.50


@pytest.mark.parametrize("subtotal,rate", [(19.99, 7.5), (0.1, 15), (1234.56, 12.5), (3.33, 0)])
def test_exclusive_total_minus_tax_equals_subtotal(subtotal, rate):
    breakdown = compute_tax(subtotal, rate)

    assert abs((breakdown.total - breakdown.tax_amount) - breakdown.subtotal) <= 0.01


def test_mode_is_case_insensitive():
    assert compute_tax(10, 10, " Inclusive ").mode == "inclusive"


def test_unknown_mode_is_rejected():
    with pytest.raises(ValidationFailure) as exc_info:
        compute_tax(100, 5, "compound")
    assert exc_info.value.code == "INVALID_TAX_MODE"


def test_negative_rate_is_rejected():
    with pytest.raises(ValidationFailure) as exc_info:
        compute_tax(100, -1)
    assert exc_info.value.code == "INVALID_TAX_RATE"


def test_round_money_rounds_half_up():
    assert round_money(2.675) == 2.68
    assert round_money(0.125) == 0.13
    assert round_money(10) == 10.0


def test_breakdown_as_dict_uses_api_field_names():
    payload = compute_tax(100, 10).as_dict()

    assert payload == {
        "subtotal": 100.0,
        "taxAmount": 10.0,
        "total": 110.0,
        "taxRate": 10.0,
        "taxType": "exclusive",
    }
