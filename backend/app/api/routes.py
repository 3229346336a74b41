from __future__ import annotations

from time import perf_counter
from typing import Annotated

from fastapi import APIRouter, Depends, HTTPException, Query
from structlog.contextvars import bind_contextvars, reset_contextvars

from backend.app.dependencies import get_metadata_resolver, get_telemetry
from backend.app.models.metadata_contracts import MetadataResponse, ResolutionErrorDetail
from backend.app.services.metadata_resolver import MetadataResolver
from backend.app.services.resolution_errors import NotFoundError, ResolutionError
from backend.app.telemetry import TelemetryClient

router = APIRouter()


def status_code_for_error(error: ResolutionError) -> int:
    if isinstance(error, NotFoundError):
        return 404
    if error.client_error:
        return 400
    return 502


def _error_detail(error: ResolutionError) -> ResolutionErrorDetail:
    identifier = error.identifier if isinstance(error, NotFoundError) else None
    return ResolutionErrorDetail(code=error.code, message=str(error), identifier=identifier)


@router.get(
    "/posts/metadata",
    response_model=MetadataResponse,
    tags=["posts"],
    operation_id="posts_metadata",
    responses={
        400: {"description": "Malformed, unsupported or unrecognized URL."},
        404: {"description": "The referenced video or channel does not exist."},
        502: {"description": "The YouTube Data API could not be reached."},
    },
)
async def posts_metadata(
    resolver: Annotated[MetadataResolver, Depends(get_metadata_resolver)],
    telemetry: Annotated[TelemetryClient, Depends(get_telemetry)],
    url: Annotated[str | None, Query()] = None,
) -> MetadataResponse:
    if url is None or not url.strip():
        raise HTTPException(status_code=400, detail="url is required")

    context_tokens = bind_contextvars(metadata_url=url)
    started_at = perf_counter()
    telemetry.emit("metadata.resolve.start", url=url)
    try:
        resolved = await resolver.resolve_url(url)
    except ResolutionError as exc:
        telemetry.emit(
            "metadata.resolve.error",
            url=url,
            error_code=exc.code,
            duration_ms=int((perf_counter() - started_at) * 1000),
        )
        raise HTTPException(
            status_code=status_code_for_error(exc),
            detail=_error_detail(exc).model_dump(exclude_none=True),
        ) from exc
    finally:
        reset_contextvars(**context_tokens)

    telemetry.emit(
        "metadata.resolve.finish",
        url=url,
        kind=resolved.identifier.kind.value,
        has_representative_video=resolved.descriptor.representative_video_id is not None,
        duration_ms=int((perf_counter() - started_at) * 1000),
    )
    return MetadataResponse.from_resolved(resolved)
