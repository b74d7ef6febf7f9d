"""
CSV template API routes.

Template listing, detection, header mapping, template downloads and sample
data. Errors use the standard {"error": {...}} envelope.
"""

from fastapi import APIRouter, Query
from fastapi.responses import JSONResponse, Response
from typing import Optional
import structlog

from models.template import (
    CustomTemplateCreate,
    HeadersRequest,
    MappingResponse,
    SampleDataRequest,
    SampleDataResponse,
    Template,
    TemplateDetectionResponse,
    TemplateSource,
)
from services import csv_serializer
from services.field_mapper import FieldMapper
from services.template_catalog import get_template_catalog
from services.template_detector import TemplateDetector
from exceptions import AppError

logger = structlog.get_logger(__name__)

router = APIRouter()


# ===================
# EXCEPTION HANDLER
# ===================

def handle_error(e: Exception) -> JSONResponse:
    """Convert exception to JSON response."""
    if isinstance(e, AppError):
        return JSONResponse(
            status_code=e.status_code,
            content=e.to_dict()
        )
    # Unexpected error
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


# ===================
# ROUTES
# ===================

@router.get("", response_model=list[Template])
async def list_templates(
    source: Optional[TemplateSource] = Query(None, description="Filter by provider")
):
    """List templates in catalog order."""
    catalog = get_template_catalog()
    if source:
        return catalog.by_source(source)
    return catalog.all()


@router.post("", response_model=Template, status_code=201)
async def create_custom_template(data: CustomTemplateCreate):
    """
    Register a custom template from a field -> column mapping.

    Raises:
        422: Mapping has no required company field
    """
    try:
        return get_template_catalog().create_custom_template(
            name=data.name,
            description=data.description,
            mapping=data.mapping,
            sample_rows=data.sample_rows,
        )
    except Exception as e:
        return handle_error(e)


@router.post("/detect", response_model=TemplateDetectionResponse)
async def detect_template(data: HeadersRequest):
    """
    Detect which provider produced the headers.

    A weak match is not an error: detected_template is null and the score
    is still reported.
    """
    try:
        detector = TemplateDetector(get_template_catalog())
        detection = detector.detect_template(data.headers)
        return TemplateDetectionResponse(
            detected_template=detection.template,
            confidence=detection.confidence,
            matched_fields=detection.matched_fields,
            total_headers=len(data.headers),
            suggestions=detector.suggestions(detection, data.headers),
        )
    except Exception as e:
        return handle_error(e)


@router.post("/sample-data", response_model=SampleDataResponse)
async def sample_data(data: SampleDataRequest):
    """
    Generate sample rows for a template, as JSON or as a CSV file.

    Raises:
        404: Template not found
    """
    try:
        catalog = get_template_catalog()
        template = catalog.require(data.template_id)
        rows = csv_serializer.generate_sample_data(
            data.template_id, count=data.count, seed=data.seed, catalog=catalog
        )

        if data.format == "csv":
            return Response(
                content=csv_serializer.sample_data_to_csv(template.headers, rows),
                media_type="text/csv",
                headers={
                    "Content-Disposition": f'attachment; filename="{template.id}-sample-data.csv"'
                },
            )

        return SampleDataResponse(
            template=template,
            headers=template.headers,
            sample_data=rows,
            count=len(rows),
        )
    except Exception as e:
        return handle_error(e)


@router.get("/{template_id}", response_model=Template)
async def get_template(template_id: str):
    """
    Get a single template.

    Raises:
        404: Template not found
    """
    try:
        return get_template_catalog().require(template_id)
    except Exception as e:
        return handle_error(e)


@router.post("/{template_id}/mapping", response_model=MappingResponse)
async def generate_mapping(template_id: str, data: HeadersRequest):
    """
    Map uploaded headers onto a template's fields.

    Raises:
        404: Template not found
    """
    try:
        catalog = get_template_catalog()
        mapper = FieldMapper(catalog)
        result = mapper.generate_mapping_from_template(template_id, data.headers)
        return MappingResponse(
            template=catalog.require(template_id),
            mapping=result.mapping,
            confidence=result.confidence,
            overall_confidence=result.overall_confidence,
            unmapped_headers=result.unmapped_headers,
            missing_fields=result.missing_fields,
            suggestions=mapper.suggestions(result),
            can_proceed=result.can_proceed,
        )
    except Exception as e:
        return handle_error(e)


@router.get("/{template_id}/download")
async def download_template(
    template_id: str,
    examples: bool = Query(False, description="Include the template's example rows"),
):
    """
    Download a template as CSV.

    Raises:
        404: Template not found
    """
    try:
        content = csv_serializer.generate_template_csv(template_id, include_examples=examples)
        suffix = "-with-examples" if examples else ""
        logger.info("template_downloaded", template_id=template_id, examples=examples)
        return Response(
            content=content,
            media_type="text/csv",
            headers={
                "Content-Disposition": f'attachment; filename="{template_id}-template{suffix}.csv"'
            },
        )
    except Exception as e:
        return handle_error(e)
