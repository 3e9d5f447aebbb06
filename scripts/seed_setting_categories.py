from __future__ import annotations

import argparse
from dataclasses import dataclass

from sqlalchemy.orm import Session

from pricing_config.db.session import SessionLocal, transaction
from pricing_config.models.enums import DataType
from pricing_config.models.setting_category import SettingCategory
from pricing_config.services.settings_service import TAX_RATE_KEY, TAX_TYPE_KEY, SettingsService


@dataclass(frozen=True)
class CategorySeed:
    name: str
    description: str
    icon: str
    display_order: int


CATEGORIES = (
    CategorySeed("PRICING", "General pricing settings for all operations", "price-tag", 1),
    CategorySeed("LEASE", "Cylinder lease specific settings and pricing", "calendar", 2),
    CategorySeed("REFILL", "Gas refill operations and pricing settings", "gas-pump", 3),
    CategorySeed("SWAP", "Cylinder swap operations and fee settings", "refresh", 4),
    CategorySeed("REGISTRATION", "Customer registration and onboarding settings", "user-plus", 5),
    CategorySeed("PENALTIES", "Penalty rates and fine settings", "alert-triangle", 6),
    CategorySeed("DEPOSITS", "Security deposit amounts and policies", "shield", 7),
    CategorySeed("BUSINESS_RULES", "General business operation rules and limits", "settings", 8),
    CategorySeed("DISCOUNTS", "Customer tier discounts and promotional settings", "percent", 9),
    CategorySeed("TAXES", "Tax rates and calculation settings", "calculator", 10),
)


def seed_categories(db: Session) -> tuple[int, int]:
    inserted = 0
    updated = 0
    with transaction(db):
        for seed in CATEGORIES:
            row = db.query(SettingCategory).filter(SettingCategory.name == seed.name).first()
            if row is None:
                db.add(
                    SettingCategory(
                        name=seed.name,
                        description=seed.description,
                        icon=seed.icon,
                        display_order=seed.display_order,
                        is_active=True,
                    )
                )
                inserted += 1
                continue
            if (row.description, row.icon, row.display_order) != (
                seed.description,
                seed.icon,
                seed.display_order,
            ):
                row.description = seed.description
                row.icon = seed.icon
                row.display_order = seed.display_order
                updated += 1
    return inserted, updated


def seed_tax_defaults(db: Session, *, actor: str, rate: float, mode: str, force: bool) -> list[str]:
    service = SettingsService.from_session(db)
    written = []
    defaults = (
        (TAX_RATE_KEY, rate, DataType.NUMBER),
        (TAX_TYPE_KEY, mode, DataType.STRING),
    )
    for key, value, data_type in defaults:
        if service.get_setting(key) is not None and not force:
            continue
        service.set_setting(
            key,
            value,
            category="TAXES",
            data_type=data_type,
            actor=actor,
            reason="Default tax configuration seed.",
        )
        written.append(key)
    return written


def main() -> int:
    parser = argparse.ArgumentParser(
        description="Seed setting categories and the global tax defaults."
    )
    parser.add_argument(
        "--actor-email",
        default="settings.seed@system.local",
        help="Actor written to the audit trail for seeded settings.",
    )
    parser.add_argument("--tax-rate", type=float, default=0.0, help="Global tax.rate value (percent).")
    parser.add_argument(
        "--tax-type",
        choices=("inclusive", "exclusive"),
        default="exclusive",
        help="Global tax.type value.",
    )
    parser.add_argument(
        "--force",
        action="store_true",
        help="Overwrite tax defaults even when they already resolve.",
    )
    args = parser.parse_args()

    db = SessionLocal()
    try:
        inserted, updated = seed_categories(db)
        print(f"categories: inserted={inserted} updated={updated}")
        written = seed_tax_defaults(
            db,
            actor=args.actor_email,
            rate=args.tax_rate,
            mode=args.tax_type,
            force=args.force,
        )
        print(f"tax defaults written: {', '.join(written) if written else 'none'}")
    finally:
        db.close()
    return 0


if __name__ == "__main__":
    raise SystemExit(main())
