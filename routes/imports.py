"""
Import session API routes.

Follows the preview-then-confirm pattern: start builds the session and the
duplicate groups, resolutions are recorded one group at a time, and commit
writes everything once.
"""

from fastapi import APIRouter
from fastapi.responses import JSONResponse
import structlog

from models.duplicate import ResolutionRequest
from models.import_session import (
    ImportCommitResponse,
    ImportSessionCreate,
    ImportSessionResponse,
)
from services.import_session_service import get_import_session_service
from exceptions import AppError

logger = structlog.get_logger(__name__)

router = APIRouter()


def handle_error(e: Exception) -> JSONResponse:
    """Convert exception to JSON response."""
    if isinstance(e, AppError):
        return JSONResponse(
            status_code=e.status_code,
            content=e.to_dict()
        )
    logger.error("unexpected_error", error=str(e), type=type(e).__name__)
    return JSONResponse(
        status_code=500,
        content={
            "error": {
                "code": "INTERNAL_ERROR",
                "message": "An unexpected error occurred"
            }
        }
    )


@router.post("", response_model=ImportSessionResponse, status_code=201)
async def start_import(data: ImportSessionCreate):
    """
    Start an import session from a parsed table.

    Nothing is saved until /commit is called.

    Raises:
        404: Template not found
        422: Required fields missing or too many rows
    """
    try:
        return get_import_session_service().start(data)
    except Exception as e:
        return handle_error(e)


@router.get("/{session_id}", response_model=ImportSessionResponse)
async def get_import(session_id: str):
    """
    Current groups, decisions and progress of a session.

    Raises:
        404: Session expired or not found
    """
    try:
        return get_import_session_service().get(session_id)
    except Exception as e:
        return handle_error(e)


@router.post("/{session_id}/resolutions", response_model=ImportSessionResponse)
async def resolve_group(session_id: str, data: ResolutionRequest):
    """
    Record the decision for one duplicate group.

    Raises:
        404: Session or group not found
    """
    try:
        return get_import_session_service().resolve(session_id, data.group_id, data.action)
    except Exception as e:
        return handle_error(e)


@router.post("/{session_id}/commit", response_model=ImportCommitResponse)
async def commit_import(session_id: str):
    """
    Apply every decision and write the result.

    Raises:
        404: Session expired or not found
        409: Some groups are unresolved
    """
    try:
        return get_import_session_service().commit(session_id)
    except Exception as e:
        return handle_error(e)


@router.delete("/{session_id}", status_code=204)
async def abandon_import(session_id: str):
    """
    Discard a session without writing anything.

    Raises:
        404: Session expired or not found
    """
    try:
        get_import_session_service().abandon(session_id)
        return None  # 204 No Content
    except Exception as e:
        return handle_error(e)
