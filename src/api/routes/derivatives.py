"""
Derivative API endpoint.

One GET request produces one derivative:
1. Validate filename/quality/scale
2. Download the source into request-scoped scratch space
3. Run ImageMagick to reduce quality and rescale
4. Upload the result next to the source (name + suffix)
5. Return a signed URL for it as plain text

Failures come back as JSON {message, statusCode} through the
DerivativeError handler registered in main.py.
"""

import logging
from typing import Annotated, Optional
from urllib.parse import quote

from fastapi import APIRouter, Query, status
from fastapi.responses import PlainTextResponse
from pydantic import BaseModel, Field

from ...core.derivatives.validation import build_transform_request
from ..dependencies import AuthenticatedCaller, PipelineDep, SettingsDep

logger = logging.getLogger(__name__)

router = APIRouter()


class ErrorResponse(BaseModel):
    """Body of every error response."""
    message: str = Field(description="What went wrong")
    statusCode: int = Field(description="HTTP status, repeated for clients that only see the body")


ERROR_RESPONSES = {
    status.HTTP_403_FORBIDDEN: {"model": ErrorResponse, "description": "Missing or invalid API key"},
    status.HTTP_404_NOT_FOUND: {"model": ErrorResponse, "description": "Source object not found"},
    status.HTTP_409_CONFLICT: {"model": ErrorResponse, "description": "Invalid request parameters"},
    status.HTTP_500_INTERNAL_SERVER_ERROR: {"model": ErrorResponse, "description": "Transform failed"},
    status.HTTP_502_BAD_GATEWAY: {"model": ErrorResponse, "description": "Blob store failure"},
}


@router.get(
    "",
    response_class=PlainTextResponse,
    status_code=status.HTTP_200_OK,
    summary="Create a reduced-quality derivative",
    description="Transforms a stored image and returns a signed URL for the result.",
    responses=ERROR_RESPONSES,
)
async def create_derivative(
    pipeline: PipelineDep,
    settings: SettingsDep,
    caller: AuthenticatedCaller,
    filename: Annotated[Optional[str], Query(description="Object path of the source image")] = None,
    quality: Annotated[Optional[str], Query(description="Output quality in percent")] = None,
    scale: Annotated[Optional[str], Query(description="Output size in percent")] = None,
) -> PlainTextResponse:
    """
    Create (or overwrite) the derivative of `filename`.

    quality and scale are taken as strings so that a bad value yields
    our own 409 body instead of FastAPI's 422 validation payload.
    """
    request = build_transform_request(filename, quality, scale, settings)

    logger.info(
        "Processing derivative request",
        extra={
            "source_path": request.source_path,
            "quality": request.quality,
            "scale": request.scale,
        }
    )

    result = await pipeline.run(request)

    headers = {"X-Derivative-Key": quote(result.derivative.key)}
    if result.source_url is not None:
        headers["X-Source-Url"] = result.source_url.url

    return PlainTextResponse(content=result.url.url, headers=headers)
