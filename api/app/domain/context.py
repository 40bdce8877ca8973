"""Explicit tenant scope threaded through every operation."""

from __future__ import annotations

from dataclasses import dataclass


@dataclass(frozen=True)
class TenantContext:
    """Organization, location and acting staff member for a call."""

    organization_id: str
    location_id: str | None = None
    staff_id: str | None = None

    def log_extra(self) -> dict:
        return {
            "tenant": self.organization_id,
            "location": self.location_id,
            "user": self.staff_id,
        }
