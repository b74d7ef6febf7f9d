"""
API route modules.

Each module defines routes for one domain area.
"""

from routes.csv_templates import router as csv_templates_router
from routes.imports import router as imports_router

__all__ = [
    "csv_templates_router",
    "imports_router",
]
