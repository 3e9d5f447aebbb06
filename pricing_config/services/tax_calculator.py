"""
Tax breakdown for inclusive and exclusive tax modes.

Amounts are carried at full precision and rounded to cents only when the
breakdown is produced, so chained computations do not accumulate rounding error.
"""
from __future__ import annotations

from dataclasses import dataclass
from decimal import ROUND_HALF_UP, Decimal

from pricing_config.core.errors import ValidationFailure
from pricing_config.models.enums import TaxMode

_CENT = Decimal("0.01")


def round_money(amount: float | Decimal) -> float:
    """Round half-up to 2 decimal places for currency."""
    return float(Decimal(str(amount)).quantize(_CENT, rounding=ROUND_HALF_UP))


@dataclass(frozen=True)
class TaxBreakdown:
    subtotal: float
    tax_amount: float
    total: float
    rate: float
    mode: str

    def as_dict(self) -> dict:
        return {
            "subtotal": self.subtotal,
            "taxAmount": self.tax_amount,
            "total": self.total,
            "taxRate": self.rate,
            "taxType": self.mode,
        }


def _normalize_mode(mode: str | TaxMode) -> TaxMode:
    try:
        return TaxMode(mode.value if isinstance(mode, TaxMode) else str(mode).strip().lower())
    except ValueError:
        raise ValidationFailure(
            code="INVALID_TAX_MODE",
            message=f"Tax mode must be 'inclusive' or 'exclusive', got {mode!r}.",
        ) from None


def compute_tax(
    subtotal: float,
    rate: float,
    mode: str | TaxMode = TaxMode.EXCLUSIVE,
) -> TaxBreakdown:
    """
    Compute subtotal/tax/total for `subtotal` at `rate` percent.

    inclusive: tax is already embedded in `subtotal`; it is extracted and the
    displayed subtotal excludes it, total is unchanged.
    exclusive: tax is added on top of `subtotal`.
    """
    tax_mode = _normalize_mode(mode)
    amount = Decimal(str(subtotal))
    pct = Decimal(str(rate))
    if pct < 0:
        raise ValidationFailure(code="INVALID_TAX_RATE", message="Tax rate cannot be negative.")

    if tax_mode is TaxMode.INCLUSIVE:
        tax = amount * pct / (Decimal(100) + pct)
        net = amount - tax
        total = amount
    else:
        tax = amount * pct / Decimal(100)
        net = amount
        total = amount + tax

    return TaxBreakdown(
        subtotal=round_money(net),
        tax_amount=round_money(tax),
        total=round_money(total),
        rate=float(pct),
        mode=tax_mode.value,
    )
