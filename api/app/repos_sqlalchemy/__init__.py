"""SQLAlchemy-backed repository helpers.

This module also exposes ``TenantGuard``, a tiny mixin providing assertion
helpers to ensure that records handed back by the repository helpers belong
to the organization of the calling :class:`~api.app.domain.TenantContext`.
Foreign records are reported exactly like missing ones so that identifiers
of other tenants never leak.
"""

from ..domain import NotFoundError, TenantContext


class TenantGuard:
    """Utility mixin providing tenant scoping assertions."""

    @staticmethod
    def assert_tenant(record, ctx: TenantContext, label: str, record_id) -> None:
        """Ensure ``record`` exists and belongs to ``ctx``.

        Raises
        ------
        AssertionError
            If the context carries no organization.
        NotFoundError
            If ``record`` is ``None`` or owned by another organization.
        """

        if not ctx.organization_id:
            raise AssertionError("organization_id required")
        if record is None or record.organization_id != ctx.organization_id:
            code = label.upper().replace(" ", "_") + "_NOT_FOUND"
            raise NotFoundError(f"{label} {record_id!r} not found", code)


__all__ = ["TenantGuard"]
