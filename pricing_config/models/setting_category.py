from sqlalchemy import Boolean, Integer, String, UniqueConstraint
from sqlalchemy.orm import Mapped, mapped_column

from pricing_config.db.base import Base
from pricing_config.models.mixins import TimestampMixin


class SettingCategory(TimestampMixin, Base):
    """
    Groups business settings for listing and batch resolution.
    Examples: PRICING, LEASE, REFILL, TAXES.
    """

    __tablename__ = "setting_categories"
    __table_args__ = (
        UniqueConstraint("name", name="uq_setting_categories_name"),
    )

    id: Mapped[int] = mapped_column(primary_key=True, autoincrement=True)
    name: Mapped[str] = mapped_column(String(100), nullable=False, index=True)
    description: Mapped[str | None] = mapped_column(String(500), nullable=True)
    icon: Mapped[str | None] = mapped_column(String(50), nullable=True)
    is_active: Mapped[bool] = mapped_column(Boolean, nullable=False, default=True)
    display_order: Mapped[int] = mapped_column(Integer, nullable=False, default=0)
