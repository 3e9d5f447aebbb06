from __future__ import annotations

from datetime import datetime
from typing import Any

from pydantic import AliasChoices, BaseModel, ConfigDict, Field, field_validator, model_validator

from pricing_config.models.enums import CustomerTier, DataType, OperationType
from pricing_config.models.mixins import as_naive_utc
from pricing_config.services.bulk_pricing import BulkItem
from pricing_config.services.scope_resolver import ScopeRequest


class ScopeIn(BaseModel):
    model_config = ConfigDict(populate_by_name=True)

    outlet_id: int | None = Field(default=None, validation_alias=AliasChoices("outlet_id", "outletId"))
    cylinder_type: str | None = Field(
        default=None, validation_alias=AliasChoices("cylinder_type", "cylinderType")
    )
    customer_tier: CustomerTier | None = Field(
        default=None, validation_alias=AliasChoices("customer_tier", "customerTier")
    )
    operation_type: OperationType | None = Field(
        default=None, validation_alias=AliasChoices("operation_type", "operationType")
    )
    quantity: float | None = Field(default=None, gt=0, allow_inf_nan=False)
    cylinder_size: str | None = Field(
        default=None, validation_alias=AliasChoices("cylinder_size", "cylinderSize")
    )

    def to_request(self) -> ScopeRequest:
        return ScopeRequest(**self.model_dump())


class SettingWrite(BaseModel):
    key: str = Field(min_length=2, max_length=200)
    value: Any = None
    category_id: int | None = None
    category: str | None = None
    data_type: DataType = DataType.STRING
    scope: ScopeIn = Field(default_factory=ScopeIn)
    priority: int = Field(default=0, ge=0, le=9999)
    effective_date: datetime | None = None
    expiry_date: datetime | None = None
    reason: str | None = Field(default=None, max_length=1000)
    expected_version: int | None = None

    @field_validator("key")
    @classmethod
    def _normalize_key(cls, value: str) -> str:
        return value.strip().lower()

    @field_validator("effective_date", "expiry_date")
    @classmethod
    def _utc(cls, value: datetime | None) -> datetime | None:
        return as_naive_utc(value)

    @model_validator(mode="after")
    def _check(self) -> "SettingWrite":
        if self.category_id is None and not self.category:
            raise ValueError("category_id or category is required")
        if self.effective_date and self.expiry_date and self.expiry_date <= self.effective_date:
            raise ValueError("expiry_date must be after effective_date")
        return self


class SettingOut(BaseModel):
    model_config = ConfigDict(from_attributes=True)

    id: int
    category_id: int
    setting_key: str
    setting_value: Any = None
    data_type: str
    outlet_id: int | None = None
    cylinder_type: str | None = None
    customer_tier: str | None = None
    operation_type: str | None = None
    priority: int
    effective_date: datetime
    expiry_date: datetime | None = None
    is_active: bool
    version: int
    created_by: str
    updated_by: str
    created_at: datetime
    updated_at: datetime


class SettingsPage(BaseModel):
    total: int
    page: int
    limit: int
    items: list[SettingOut]


class SettingDeleteIn(BaseModel):
    reason: str | None = Field(default=None, max_length=1000)


class ResolveIn(BaseModel):
    keys: list[str] = Field(min_length=1)
    scope: ScopeIn = Field(default_factory=ScopeIn)


class PriceIn(BaseModel):
    operation_type: OperationType
    scope: ScopeIn = Field(default_factory=ScopeIn)


class QuoteIn(PriceIn):
    duration: int | None = Field(default=None, gt=0)
    gas_amount: float | None = Field(
        default=None,
        gt=0,
        allow_inf_nan=False,
        validation_alias=AliasChoices("gas_amount", "gasAmount"),
    )


class RevenueProjectionIn(PriceIn):
    estimated_volume: int = Field(ge=0, validation_alias=AliasChoices("estimated_volume", "estimatedVolume"))


class BulkItemIn(BaseModel):
    model_config = ConfigDict(populate_by_name=True)

    cylinder_type: str = Field(
        min_length=1, validation_alias=AliasChoices("cylinder_type", "cylinderType")
    )
    quantity: float = Field(gt=0)
    cylinder_size: str | None = Field(
        default=None, validation_alias=AliasChoices("cylinder_size", "cylinderSize")
    )

    def to_item(self) -> BulkItem:
        return BulkItem(
            cylinder_type=self.cylinder_type,
            quantity=self.quantity,
            cylinder_size=self.cylinder_size,
        )


class BulkPriceIn(BaseModel):
    operation_type: OperationType
    items: list[BulkItemIn] = Field(min_length=1)
    scope: ScopeIn = Field(default_factory=ScopeIn)


class CategoryOut(BaseModel):
    model_config = ConfigDict(from_attributes=True)

    id: int
    name: str
    description: str | None = None
    icon: str | None = None
    display_order: int
    setting_count: int = 0


class AuditEntryOut(BaseModel):
    model_config = ConfigDict(from_attributes=True)

    id: int
    setting_id: int | None = None
    rule_id: int | None = None
    action: str
    old_value: Any = None
    new_value: Any = None
    changed_by: str
    change_reason: str | None = None
    created_at: datetime
    entry_hash: str | None = None


class ImportIn(BaseModel):
    records: list[SettingWrite] = Field(min_length=1)
    overwrite_existing: bool = False


class ImportResult(BaseModel):
    created: int = 0
    updated: int = 0
    skipped: int = 0
