from __future__ import annotations

from datetime import datetime
from typing import Any

from sqlalchemy import JSON, Boolean, DateTime, ForeignKey, Index, Integer, String
from sqlalchemy.orm import Mapped, mapped_column, relationship

from pricing_config.db.base import Base
from pricing_config.models.mixins import ActorMixin, TimestampMixin, utc_now
from pricing_config.models.setting_category import SettingCategory


class BusinessSetting(TimestampMixin, ActorMixin, Base):
    """
    A configured value for `setting_key`, optionally narrowed by scope columns.
    A NULL scope column means the setting applies to every value of that dimension.
    """

    __tablename__ = "business_settings"
    __table_args__ = (
        Index(
            "ix_business_settings_key_scope",
            "setting_key",
            "outlet_id",
            "cylinder_type",
            "customer_tier",
            "operation_type",
        ),
    )

    id: Mapped[int] = mapped_column(primary_key=True, autoincrement=True)
    category_id: Mapped[int] = mapped_column(
        Integer,
        ForeignKey("setting_categories.id", ondelete="RESTRICT"),
        nullable=False,
        index=True,
    )
    setting_key: Mapped[str] = mapped_column(String(200), nullable=False, index=True)
    setting_value: Mapped[Any] = mapped_column(JSON, nullable=True)
    data_type: Mapped[str] = mapped_column(String(20), nullable=False, default="string")

    outlet_id: Mapped[int | None] = mapped_column(Integer, nullable=True)
    cylinder_type: Mapped[str | None] = mapped_column(String(50), nullable=True)
    customer_tier: Mapped[str | None] = mapped_column(String(20), nullable=True)
    operation_type: Mapped[str | None] = mapped_column(String(20), nullable=True)

    priority: Mapped[int] = mapped_column(Integer, nullable=False, default=0)
    effective_date: Mapped[datetime] = mapped_column(DateTime, nullable=False, default=utc_now)
    expiry_date: Mapped[datetime | None] = mapped_column(DateTime, nullable=True)
    is_active: Mapped[bool] = mapped_column(Boolean, nullable=False, default=True)
    version: Mapped[int] = mapped_column(Integer, nullable=False, default=1)

    category: Mapped[SettingCategory] = relationship("SettingCategory")

    def scope_dict(self) -> dict[str, Any]:
        return {
            "outlet_id": self.outlet_id,
            "cylinder_type": self.cylinder_type,
            "customer_tier": self.customer_tier,
            "operation_type": self.operation_type,
        }
