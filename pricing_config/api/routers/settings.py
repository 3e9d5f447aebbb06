from __future__ import annotations

from typing import Any

from fastapi import APIRouter, Depends, Query

from pricing_config.api.deps.request_context import (
    get_settings_service,
    raise_http,
    request_actor,
    scope_query,
)
from pricing_config.core.errors import PricingConfigError
from pricing_config.schemas.setting import (
    AuditEntryOut,
    BulkPriceIn,
    CategoryOut,
    ImportIn,
    ImportResult,
    PriceIn,
    QuoteIn,
    ResolveIn,
    RevenueProjectionIn,
    ScopeIn,
    SettingDeleteIn,
    SettingOut,
    SettingsPage,
    SettingWrite,
)
from pricing_config.services.settings_service import SettingsService

router = APIRouter(prefix="/api/v1/settings", tags=["settings"])


@router.get("", response_model=SettingsPage)
def list_settings(
    page: int = Query(default=1, ge=1),
    limit: int = Query(default=20, ge=1),
    category: str | None = Query(default=None),
    search: str | None = Query(default=None),
    is_active: bool | None = Query(default=None),
    effective_only: bool = Query(default=False),
    service: SettingsService = Depends(get_settings_service),
):
    try:
        return service.list_settings(
            page=page,
            limit=limit,
            category=category,
            search=search,
            is_active=is_active,
            effective_only=effective_only,
        )
    except PricingConfigError as exc:
        raise_http(exc)


@router.put("", response_model=SettingOut)
def upsert_setting(
    payload: SettingWrite,
    actor: str = Depends(request_actor),
    service: SettingsService = Depends(get_settings_service),
):
    try:
        return service.set_setting(
            payload.key,
            payload.value,
            category_id=payload.category_id,
            category=payload.category,
            data_type=payload.data_type,
            scope=payload.scope.to_request(),
            priority=payload.priority,
            effective_date=payload.effective_date,
            expiry_date=payload.expiry_date,
            actor=actor,
            reason=payload.reason,
            expected_version=payload.expected_version,
        )
    except PricingConfigError as exc:
        raise_http(exc)


@router.delete("/{setting_id}")
def delete_setting(
    setting_id: int,
    payload: SettingDeleteIn | None = None,
    actor: str = Depends(request_actor),
    service: SettingsService = Depends(get_settings_service),
):
    try:
        service.delete_setting(setting_id, actor=actor, reason=payload.reason if payload else None)
    except PricingConfigError as exc:
        raise_http(exc)
    return {"deleted": True, "id": setting_id}


@router.get("/categories", response_model=list[CategoryOut])
def list_categories(service: SettingsService = Depends(get_settings_service)):
    try:
        return service.get_categories()
    except PricingConfigError as exc:
        raise_http(exc)


@router.get("/categories/{category_name}")
def settings_by_category(
    category_name: str,
    scope: ScopeIn = Depends(scope_query),
    service: SettingsService = Depends(get_settings_service),
) -> dict[str, Any]:
    try:
        return service.get_settings_by_category(category_name, scope.to_request())
    except PricingConfigError as exc:
        raise_http(exc)


@router.get("/value/{key}")
def resolve_setting(
    key: str,
    scope: ScopeIn = Depends(scope_query),
    service: SettingsService = Depends(get_settings_service),
) -> dict[str, Any]:
    try:
        return {"key": key, "value": service.get_setting(key, scope.to_request())}
    except PricingConfigError as exc:
        raise_http(exc)


@router.post("/resolve")
def resolve_settings(
    payload: ResolveIn,
    service: SettingsService = Depends(get_settings_service),
) -> dict[str, Any]:
    try:
        return service.get_settings(payload.keys, payload.scope.to_request())
    except PricingConfigError as exc:
        raise_http(exc)


@router.post("/price")
def get_price(
    payload: PriceIn,
    service: SettingsService = Depends(get_settings_service),
) -> dict[str, Any]:
    try:
        price = service.get_price(payload.operation_type, payload.scope.to_request())
    except PricingConfigError as exc:
        raise_http(exc)
    return {"operationType": payload.operation_type.value, "price": price}


@router.post("/quote")
def get_quote(
    payload: QuoteIn,
    service: SettingsService = Depends(get_settings_service),
) -> dict[str, Any]:
    try:
        quote = service.calculate_quote(
            payload.operation_type,
            payload.scope.to_request(),
            duration=payload.duration,
            gas_amount=payload.gas_amount,
        )
    except PricingConfigError as exc:
        raise_http(exc)
    return quote.as_dict()


@router.post("/revenue-projection")
def get_revenue_projection(
    payload: RevenueProjectionIn,
    service: SettingsService = Depends(get_settings_service),
) -> dict[str, Any]:
    try:
        return service.calculate_revenue_projection(
            payload.operation_type,
            payload.estimated_volume,
            payload.scope.to_request(),
        )
    except PricingConfigError as exc:
        raise_http(exc)


@router.post("/bulk-price")
def get_bulk_price(
    payload: BulkPriceIn,
    service: SettingsService = Depends(get_settings_service),
) -> dict[str, Any]:
    try:
        result = service.calculate_bulk_price(
            payload.operation_type,
            [item.to_item() for item in payload.items],
            payload.scope.to_request(),
        )
    except PricingConfigError as exc:
        raise_http(exc)
    return result.as_dict()


@router.post("/validate-config")
def validate_config(
    payload: PriceIn,
    service: SettingsService = Depends(get_settings_service),
) -> dict[str, Any]:
    try:
        return service.validate_pricing_config(payload.operation_type, payload.scope.to_request())
    except PricingConfigError as exc:
        raise_http(exc)


@router.get("/statistics")
def statistics(
    period: str | None = Query(default=None, pattern="^(1d|7d|30d)$"),
    category_id: int | None = Query(default=None),
    outlet_id: int | None = Query(default=None),
    service: SettingsService = Depends(get_settings_service),
) -> dict[str, Any]:
    try:
        return service.get_statistics(period=period, category_id=category_id, outlet_id=outlet_id)
    except PricingConfigError as exc:
        raise_http(exc)


@router.get("/audit", response_model=list[AuditEntryOut])
def audit_trail(
    setting_id: int | None = Query(default=None),
    rule_id: int | None = Query(default=None),
    limit: int = Query(default=50, ge=1, le=500),
    service: SettingsService = Depends(get_settings_service),
):
    try:
        return service.get_audit_trail(setting_id=setting_id, rule_id=rule_id, limit=limit)
    except PricingConfigError as exc:
        raise_http(exc)


@router.get("/audit/verify")
def verify_audit_chain(service: SettingsService = Depends(get_settings_service)) -> dict[str, Any]:
    broken = service.audit.verify_chain()
    return {"intact": not broken, "brokenEntries": broken}


@router.get("/export")
def export_settings(service: SettingsService = Depends(get_settings_service)) -> list[dict[str, Any]]:
    try:
        return service.export_settings()
    except PricingConfigError as exc:
        raise_http(exc)


@router.post("/import", response_model=ImportResult)
def import_settings(
    payload: ImportIn,
    actor: str = Depends(request_actor),
    service: SettingsService = Depends(get_settings_service),
):
    try:
        return service.import_settings(
            payload.records,
            overwrite_existing=payload.overwrite_existing,
            actor=actor,
        )
    except PricingConfigError as exc:
        raise_http(exc)
