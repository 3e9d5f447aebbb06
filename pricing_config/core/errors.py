from __future__ import annotations

from dataclasses import dataclass, field
from typing import Any


@dataclass
class PricingConfigError(Exception):
    code: str
    message: str
    status_code: int = 400
    issues: list[str] = field(default_factory=list)

    def __str__(self) -> str:
        return self.message

    def to_detail(self) -> dict[str, Any]:
        detail: dict[str, Any] = {"code": self.code, "message": self.message}
        if self.issues:
            detail["issues"] = list(self.issues)
        return detail


@dataclass
class ConfigurationMissing(PricingConfigError):
    """No setting (or category) resolves for something the caller requires."""

    code: str = "CONFIGURATION_MISSING"
    message: str = "Required configuration is not set."
    status_code: int = 404


@dataclass
class ValidationFailure(PricingConfigError):
    """Malformed setting value or rule definition, rejected at write time."""

    code: str = "VALIDATION_FAILED"
    message: str = "Definition is invalid."
    status_code: int = 400


@dataclass
class VersionConflict(PricingConfigError):
    code: str = "VERSION_CONFLICT"
    message: str = "Record was modified by another writer."
    status_code: int = 409
    expected_version: int | None = None
    actual_version: int | None = None

    def to_detail(self) -> dict[str, Any]:
        detail = super().to_detail()
        detail["expected_version"] = self.expected_version
        detail["actual_version"] = self.actual_version
        return detail


@dataclass
class PersistenceFailure(PricingConfigError):
    code: str = "PERSISTENCE_FAILED"
    message: str = "Storage operation failed."
    status_code: int = 503


@dataclass
class AuditWriteFailure(PricingConfigError):
    """Audit row could not be written; the triggering mutation is rolled back."""

    code: str = "AUDIT_WRITE_FAILED"
    message: str = "Audit record could not be written."
    status_code: int = 500
