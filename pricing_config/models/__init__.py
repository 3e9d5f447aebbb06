# Import the declarative base
from pricing_config.db.base import Base

# Import all models so they register themselves on Base.metadata
# (Alembic autogenerate and the test fixtures rely on this).
from pricing_config.models.setting_category import SettingCategory
from pricing_config.models.business_setting import BusinessSetting
from pricing_config.models.pricing_rule import PricingRule
from pricing_config.models.settings_audit import SettingsAudit

__all__ = [
    "Base",
    "SettingCategory",
    "BusinessSetting",
    "PricingRule",
    "SettingsAudit",
]
