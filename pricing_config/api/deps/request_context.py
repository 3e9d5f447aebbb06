from __future__ import annotations

from fastapi import Depends, Header, HTTPException, Query
from sqlalchemy.orm import Session

from pricing_config.core.config import settings
from pricing_config.core.errors import PricingConfigError
from pricing_config.db.session import get_db
from pricing_config.models.enums import CustomerTier, OperationType
from pricing_config.schemas.setting import ScopeIn
from pricing_config.services.pricing_rule_service import PricingRuleService
from pricing_config.services.settings_service import SettingsService


def raise_http(exc: PricingConfigError) -> None:
    raise HTTPException(status_code=exc.status_code, detail=exc.to_detail()) from exc


def request_actor(x_user_email: str | None = Header(default=None)) -> str:
    email = (x_user_email or "").strip().lower()
    return email or settings.DEFAULT_ACTOR


def scope_query(
    outlet_id: int | None = Query(default=None),
    cylinder_type: str | None = Query(default=None),
    customer_tier: CustomerTier | None = Query(default=None),
    operation_type: OperationType | None = Query(default=None),
    quantity: float | None = Query(default=None, gt=0),
    cylinder_size: str | None = Query(default=None),
) -> ScopeIn:
    return ScopeIn(
        outlet_id=outlet_id,
        cylinder_type=cylinder_type,
        customer_tier=customer_tier,
        operation_type=operation_type,
        quantity=quantity,
        cylinder_size=cylinder_size,
    )


def get_settings_service(db: Session = Depends(get_db)) -> SettingsService:
    return SettingsService.from_session(db)


def get_rule_service(db: Session = Depends(get_db)) -> PricingRuleService:
    return PricingRuleService(db)
