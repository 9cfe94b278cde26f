"""
Module: budget_kernel.models.company
Responsibility: ORM persistence for tenants (companies).
Architecture position: Kernel > Models.  May import from db/base.py only.

Every tenant-owned table references companies.id through
TenantScopedBase.tenant_id.
"""

from sqlalchemy import Index, String
from sqlalchemy.orm import Mapped, mapped_column

from budget_kernel.db.base import TrackedBase


class Company(TrackedBase):
    """A tenant.  Data never crosses between companies."""

    __tablename__ = "companies"

    __table_args__ = (
        Index("idx_companies_status", "status"),
    )

    name: Mapped[str] = mapped_column(String(255), nullable=False)
    email: Mapped[str] = mapped_column(String(255), nullable=False)
    industry: Mapped[str | None] = mapped_column(String(100), nullable=True)
    status: Mapped[str] = mapped_column(String(50), nullable=False, default="active")

    def __repr__(self) -> str:
        return f"<Company {self.name} [{self.status}]>"
