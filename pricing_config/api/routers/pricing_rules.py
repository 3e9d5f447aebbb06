from __future__ import annotations

from fastapi import APIRouter, Depends, HTTPException, Query, status

from pricing_config.api.deps.request_context import get_rule_service, raise_http, request_actor
from pricing_config.core.errors import PricingConfigError
from pricing_config.models.enums import RuleType
from pricing_config.schemas.pricing_rule import PricingRuleCreate, PricingRuleOut, PricingRuleUpdate
from pricing_config.services.pricing_rule_service import PricingRuleService

router = APIRouter(prefix="/api/v1/pricing-rules", tags=["pricing-rules"])


@router.get("", response_model=list[PricingRuleOut])
def list_rules(
    include_inactive: bool = Query(default=True),
    rule_type: RuleType | None = Query(default=None),
    service: PricingRuleService = Depends(get_rule_service),
):
    try:
        return service.list_rules(
            include_inactive=include_inactive,
            rule_type=rule_type.value if rule_type else None,
        )
    except PricingConfigError as exc:
        raise_http(exc)


@router.get("/{rule_id}", response_model=PricingRuleOut)
def get_rule(rule_id: int, service: PricingRuleService = Depends(get_rule_service)):
    try:
        rule = service.get_rule(rule_id)
    except PricingConfigError as exc:
        raise_http(exc)
    if rule is None:
        raise HTTPException(status_code=404, detail="Pricing rule not found")
    return rule


@router.post("", response_model=PricingRuleOut, status_code=status.HTTP_201_CREATED)
def create_rule(
    payload: PricingRuleCreate,
    actor: str = Depends(request_actor),
    service: PricingRuleService = Depends(get_rule_service),
):
    try:
        return service.create_rule(payload, actor=actor)
    except PricingConfigError as exc:
        raise_http(exc)


@router.patch("/{rule_id}", response_model=PricingRuleOut)
def update_rule(
    rule_id: int,
    payload: PricingRuleUpdate,
    actor: str = Depends(request_actor),
    service: PricingRuleService = Depends(get_rule_service),
):
    try:
        return service.update_rule(rule_id, payload, actor=actor)
    except PricingConfigError as exc:
        raise_http(exc)


@router.delete("/{rule_id}")
def delete_rule(
    rule_id: int,
    actor: str = Depends(request_actor),
    service: PricingRuleService = Depends(get_rule_service),
):
    try:
        service.delete_rule(rule_id, actor=actor)
    except PricingConfigError as exc:
        raise_http(exc)
    return {"deleted": True, "id": rule_id}
