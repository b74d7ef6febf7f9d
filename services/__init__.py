"""
Business logic services.

Each service handles one domain area.
"""

from services.template_catalog import TemplateCatalog, get_template_catalog
from services.template_detector import TemplateDetector
from services.field_mapper import FieldMapper
from services.duplicate_detector import DuplicateDetector
from services.merge_engine import MergeEngine
from services.resolution_coordinator import ResolutionCoordinator
from services.application_store import ApplicationStore, get_application_store
from services.import_history_service import ImportHistoryService, get_import_history_service
from services.import_session_service import ImportSessionService, get_import_session_service

__all__ = [
    "TemplateCatalog",
    "get_template_catalog",
    "TemplateDetector",
    "FieldMapper",
    "DuplicateDetector",
    "MergeEngine",
    "ResolutionCoordinator",
    "ApplicationStore",
    "get_application_store",
    "ImportHistoryService",
    "get_import_history_service",
    "ImportSessionService",
    "get_import_session_service",
]
