"""Catalog Module (``budget_modules.catalog``): projects, line items, materials."""

from budget_modules.catalog.service import ProjectCatalogService

__all__ = ["ProjectCatalogService"]
