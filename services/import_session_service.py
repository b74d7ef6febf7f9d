"""
Import session service.

One session covers one uploaded table: the stored snapshot is read once at
start, mapping and duplicate grouping happen in memory, the caller resolves
every group, and commit writes the reconciled records exactly once.
Abandoning a session before commit has no side effects.
"""

from dataclasses import dataclass, field
from typing import Optional

import structlog

from config.settings import settings
from exceptions import (
    ConflictError,
    ImportSessionNotFoundError,
    MissingRequiredFieldsError,
    ValidationError,
)
from models.duplicate import DuplicateGroup, ParsedRecord, ResolutionAction
from models.import_session import (
    ImportCommitResponse,
    ImportSessionCreate,
    ImportSessionResponse,
)
from models.template import FieldMappingResult, TemplateDetection
from services import session_cache_service
from services.application_store import ApplicationStore, get_application_store
from services.duplicate_detector import DuplicateDetector
from services.field_mapper import FieldMapper
from services.import_history_service import (
    ImportHistoryService,
    fingerprint,
    get_import_history_service,
)
from services.resolution_coordinator import ResolutionCoordinator
from services.template_catalog import TemplateCatalog, get_template_catalog
from services.template_detector import TemplateDetector

logger = structlog.get_logger(__name__)


@dataclass
class ImportSession:
    """In-memory state of one import."""
    template_id: str
    detection: Optional[TemplateDetection]
    mapping: FieldMappingResult
    batch: list[ParsedRecord]
    existing: list[ParsedRecord]
    groups: list[DuplicateGroup]
    coordinator: ResolutionCoordinator
    file_hash: str
    filename: Optional[str] = None
    warnings: list[str] = field(default_factory=list)
    # Set by the first commit attempt; decisions are frozen from then on
    commit_started: bool = False


class ImportSessionService:
    """Start, inspect, resolve, commit and abandon import sessions."""

    def __init__(
        self,
        catalog: Optional[TemplateCatalog] = None,
        store: Optional[ApplicationStore] = None,
        history: Optional[ImportHistoryService] = None,
    ):
        self.catalog = catalog or get_template_catalog()
        self._store = store
        self._history = history
        self.detector = TemplateDetector(self.catalog)
        self.mapper = FieldMapper(self.catalog)
        self.duplicates = DuplicateDetector()
        self.ttl_minutes = settings.import_session_ttl_minutes

    @property
    def store(self) -> ApplicationStore:
        if self._store is None:
            self._store = get_application_store()
        return self._store

    @property
    def history(self) -> ImportHistoryService:
        if self._history is None:
            self._history = get_import_history_service()
        return self._history

    # ===================
    # LIFECYCLE
    # ===================

    def start(self, request: ImportSessionCreate) -> ImportSessionResponse:
        """
        Open a session for an uploaded table.

        Uses the given template, else the detected one, else the fallback
        template.

        Raises:
            TemplateNotFoundError: If template_id is not in the catalog
            MissingRequiredFieldsError: If required fields cannot be mapped
            ValidationError: If the table has more rows than allowed
        """
        if len(request.rows) > settings.max_import_rows:
            raise ValidationError(
                message=f"Import has {len(request.rows)} rows, limit is {settings.max_import_rows}",
                code="TOO_MANY_ROWS",
                details={"row_count": len(request.rows), "max_rows": settings.max_import_rows},
            )

        detection: Optional[TemplateDetection] = None
        warnings: list[str] = []
        template_id = request.template_id
        if template_id is None:
            detection = self.detector.detect_template(request.headers)
            if detection.template is not None:
                template_id = detection.template.id
            else:
                template_id = settings.fallback_template_id
                warnings.append(
                    f"No template matched confidently, using {template_id}"
                )

        mapping = self.mapper.generate_mapping_from_template(template_id, request.headers)
        if mapping.missing_fields:
            raise MissingRequiredFieldsError(template_id, mapping.missing_fields)

        batch = self.mapper.map_rows(request.headers, request.rows)
        existing = self.store.load_snapshot(mapping.mapping, start_index=len(batch))
        groups = self.duplicates.detect_duplicates(batch, existing, mapping.mapping)

        file_hash = fingerprint(request.headers, request.rows)
        previous = self.history.check_duplicate(file_hash)
        if previous:
            warnings.append(
                f"This table was already imported on {str(previous['imported_at'])[:10]} "
                f"({previous['filename']})"
            )
        if mapping.unmapped_headers:
            warnings.append(f"Ignored columns: {', '.join(mapping.unmapped_headers)}")

        session = ImportSession(
            template_id=template_id,
            detection=detection,
            mapping=mapping,
            batch=batch,
            existing=existing,
            groups=groups,
            coordinator=ResolutionCoordinator(groups, mapping.mapping),
            file_hash=file_hash,
            filename=request.filename,
            warnings=warnings,
        )
        session_id = session_cache_service.store_session(session, self.ttl_minutes)

        logger.info(
            "import_session_started",
            session_id=session_id,
            template_id=template_id,
            row_count=len(batch),
            existing_count=len(existing),
            group_count=len(groups),
        )
        return self._to_response(session_id, session)

    def _require(self, session_id: str) -> ImportSession:
        session = session_cache_service.retrieve_session(session_id)
        if session is None:
            raise ImportSessionNotFoundError(session_id)
        return session

    def get(self, session_id: str) -> ImportSessionResponse:
        """
        Raises:
            ImportSessionNotFoundError: If the session expired or never existed
        """
        return self._to_response(session_id, self._require(session_id))

    def resolve(
        self, session_id: str, group_id: str, action: ResolutionAction
    ) -> ImportSessionResponse:
        """
        Record the decision for one group and return the updated session.

        Raises:
            ImportSessionNotFoundError: If the session expired or never existed
            DuplicateGroupNotFoundError: If the group is not part of the session
            ConflictError: If a commit of the session was already attempted
        """
        session = self._require(session_id)
        if session.commit_started:
            raise ConflictError(
                code="IMPORT_COMMIT_STARTED",
                message="Resolutions cannot change after a commit attempt; retry the commit",
                details={"session_id": session_id},
            )
        session.coordinator.resolve(group_id, action)
        return self._to_response(session_id, session)

    def commit(self, session_id: str) -> ImportCommitResponse:
        """
        Finalize the session and write the result once.

        The session is kept when finalize or the write fails, so the caller
        can fix the problem and retry. Once the write has been attempted the
        decisions are frozen, and a retry repeats the same idempotent write.

        Raises:
            ImportSessionNotFoundError: If the session expired or never existed
            UnresolvedGroupsError: If any group is still unresolved
            DatabaseError: If the write fails
        """
        session = self._require(session_id)
        reconciled = session.coordinator.finalize(
            session.batch, session.existing, session.mapping.mapping
        )
        session.commit_started = True
        counts = self.store.commit(reconciled, import_key=session_id)
        self.history.record_import(
            session.file_hash,
            session.filename,
            session.template_id,
            row_count=len(session.batch),
        )
        session_cache_service.delete_session(session_id)

        logger.info("import_session_committed", session_id=session_id, **counts)
        return ImportCommitResponse(
            success=True,
            session_id=session_id,
            inserted=counts["inserted"],
            updated=counts["updated"],
            summary=reconciled.summary,
            message=(
                f"Imported {counts['inserted']} new and updated {counts['updated']} "
                "existing record(s)"
            ),
        )

    def abandon(self, session_id: str) -> None:
        """
        Drop a session without writing anything.

        Raises:
            ImportSessionNotFoundError: If the session expired or never existed
        """
        if not session_cache_service.delete_session(session_id):
            raise ImportSessionNotFoundError(session_id)
        logger.info("import_session_abandoned", session_id=session_id)

    # ===================
    # HELPERS
    # ===================

    def _to_response(self, session_id: str, session: ImportSession) -> ImportSessionResponse:
        coordinator = session.coordinator
        return ImportSessionResponse(
            session_id=session_id,
            template_id=session.template_id,
            detection=session.detection,
            mapping=session.mapping,
            row_count=len(session.batch),
            existing_count=len(session.existing),
            groups=session.groups,
            resolutions=list(coordinator.resolutions.values()),
            summary=self.duplicates.generate_summary(session.groups),
            progress=coordinator.progress,
            is_complete=coordinator.is_complete,
            warnings=session.warnings,
            expires_in_minutes=self.ttl_minutes,
        )


_import_session_service: Optional[ImportSessionService] = None


def get_import_session_service() -> ImportSessionService:
    """Get or create ImportSessionService instance."""
    global _import_session_service
    if _import_session_service is None:
        _import_session_service = ImportSessionService()
    return _import_session_service
