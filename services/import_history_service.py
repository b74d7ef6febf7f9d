"""
Tracks fingerprints of committed imports to warn about repeated uploads.
"""
import hashlib
import json
import structlog
from typing import Optional

from config import get_supabase_client
from config.settings import settings

logger = structlog.get_logger(__name__)


def fingerprint(headers: list[str], rows: list[list[str]]) -> str:
    """Stable sha256 of an uploaded table."""
    payload = json.dumps({"headers": headers, "rows": rows}, ensure_ascii=False)
    return hashlib.sha256(payload.encode("utf-8")).hexdigest()


class ImportHistoryService:
    def __init__(self):
        self.db = get_supabase_client()
        self.table = settings.import_history_table

    def check_duplicate(self, file_hash: str) -> Optional[dict]:
        """Previous import of the same table as {filename, imported_at, row_count}, or None."""
        result = (
            self.db.table(self.table)
            .select("filename, imported_at, row_count")
            .eq("file_hash", file_hash)
            .order("imported_at", desc=True)
            .limit(1)
            .execute()
        )
        return result.data[0] if result.data else None

    def record_import(
        self,
        file_hash: str,
        filename: Optional[str],
        template_id: str,
        row_count: int = 0,
    ) -> None:
        """Record a committed import for future duplicate-upload warnings."""
        self.db.table(self.table).insert({
            "file_hash": file_hash,
            "filename": filename or "unknown",
            "template_id": template_id,
            "row_count": row_count,
        }).execute()
        logger.info(
            "import_recorded",
            template_id=template_id,
            filename=filename,
            row_count=row_count,
        )


_service: Optional[ImportHistoryService] = None


def get_import_history_service() -> ImportHistoryService:
    global _service
    if _service is None:
        _service = ImportHistoryService()
    return _service
