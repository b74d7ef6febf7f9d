"""
Application store.

Storage side of an import session: one snapshot read when the session
starts and one write of the reconciled records when it commits.
"""

from typing import Optional
from uuid import NAMESPACE_URL, uuid5

import structlog

from config import get_supabase_client
from config.settings import settings
from exceptions import DatabaseError
from models.duplicate import ParsedRecord, ReconciledImport, RecordOperation
from models.template import CANONICAL_FIELDS
from services.field_mapper import FieldMapper

logger = structlog.get_logger(__name__)


def _to_column(field: str) -> str:
    """appliedDate -> applied_date"""
    return "".join(f"_{c.lower()}" if c.isupper() else c for c in field)


# Canonical field <-> table column
FIELD_COLUMNS: dict[str, str] = {field: _to_column(field) for field in CANONICAL_FIELDS}


class ApplicationStore:
    """Reads and writes canonical application records in Supabase."""

    def __init__(self):
        self.db = get_supabase_client()
        self.table = settings.applications_table

    @staticmethod
    def row_to_canonical(row: dict) -> dict[str, str]:
        return {
            field: "" if row.get(column) is None else str(row.get(column))
            for field, column in FIELD_COLUMNS.items()
        }

    @staticmethod
    def canonical_to_row(data: dict[str, str]) -> dict:
        """Blank values are stored as NULL."""
        return {
            FIELD_COLUMNS[field]: (value.strip() or None) if isinstance(value, str) else value
            for field, value in data.items()
            if field in FIELD_COLUMNS
        }

    # ===================
    # READ OPERATIONS
    # ===================

    def load_snapshot(self, mapping: dict[str, str], start_index: int) -> list[ParsedRecord]:
        """
        Load stored applications as existing records.

        Records are keyed by the session's headers through mapping and
        numbered from start_index in storage order.

        Raises:
            DatabaseError: If the read fails
        """
        try:
            result = (
                self.db.table(self.table)
                .select("*")
                .order("created_at")
                .execute()
            )
        except Exception as e:
            logger.error("load_snapshot_failed", error=str(e))
            raise DatabaseError("select", str(e))

        records = [
            FieldMapper.record_from_canonical(
                self.row_to_canonical(row),
                mapping,
                index=start_index + position,
                source_id=str(row["id"]),
            )
            for position, row in enumerate(result.data or [])
        ]
        logger.info("snapshot_loaded", table=self.table, count=len(records))
        return records

    # ===================
    # WRITE OPERATIONS
    # ===================

    @staticmethod
    def insert_id(import_key: str, index: int) -> str:
        """Row id for a new record, stable across retries of the same import."""
        return str(uuid5(NAMESPACE_URL, f"import:{import_key}:{index}"))

    def commit(self, reconciled: ReconciledImport, import_key: str) -> dict[str, int]:
        """
        Write a reconciled import.

        New records are upserted in a single batch on ids derived from
        import_key, so repeating a commit that failed halfway never inserts
        a record twice. Updates address rows by id and set absolute values.

        Returns:
            Counts per operation

        Raises:
            DatabaseError: If any write fails
        """
        inserts = reconciled.by_operation(RecordOperation.INSERT)
        updates = reconciled.by_operation(RecordOperation.UPDATE)

        try:
            if inserts:
                self.db.table(self.table).upsert(
                    [
                        {"id": self.insert_id(import_key, r.index), **self.canonical_to_row(r.data)}
                        for r in inserts
                    ],
                    on_conflict="id",
                ).execute()

            for record in updates:
                (
                    self.db.table(self.table)
                    .update(self.canonical_to_row(record.data))
                    .eq("id", record.source_id)
                    .execute()
                )

        except Exception as e:
            logger.error(
                "import_commit_failed",
                import_key=import_key,
                error=str(e),
                inserts=len(inserts),
                updates=len(updates),
            )
            raise DatabaseError("commit", str(e))

        counts = {"inserted": len(inserts), "updated": len(updates)}
        logger.info("import_committed", table=self.table, import_key=import_key, **counts)
        return counts


_application_store: Optional[ApplicationStore] = None


def get_application_store() -> ApplicationStore:
    """Get or create ApplicationStore instance."""
    global _application_store
    if _application_store is None:
        _application_store = ApplicationStore()
    return _application_store
