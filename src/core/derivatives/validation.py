"""
Inbound parameter validation.

Query parameters arrive as raw strings (or not at all). Parsing them here
rather than in FastAPI's Query types keeps every rejection inside our own
error taxonomy, so callers always get the same {message, statusCode} body.
"""

from typing import Optional

from ...config.settings import Settings
from .errors import ValidationError
from .models import TransformRequest
from .paths import split_object_path

MISSING_FILENAME_MESSAGE = "File parameter not specified"


def _parse_percent(
    raw: Optional[str],
    name: str,
    default: int,
    lower: int,
    upper: int,
) -> int:
    if raw is None or raw.strip() == "":
        return default

    text = raw.strip()
    # int() alone would also take "+50", "5_0" and non-ASCII digits
    if not (text.isascii() and text.isdigit()):
        raise ValidationError(f"{name} must be an integer percent, got {raw!r}")

    value = int(text)

    if not lower <= value <= upper:
        raise ValidationError(f"{name} must be between {lower} and {upper}, got {value}")

    return value


def build_transform_request(
    filename: Optional[str],
    quality: Optional[str],
    scale: Optional[str],
    settings: Settings,
) -> TransformRequest:
    """
    Validate raw request parameters into a TransformRequest.

    Raises:
        ValidationError: filename missing/empty/malformed, or quality/scale
            not an integer within the configured bounds.
    """
    if filename is None or not filename.strip():
        raise ValidationError(MISSING_FILENAME_MESSAGE)

    # surfaces malformed paths here instead of mid-pipeline
    split_object_path(filename)

    return TransformRequest(
        source_path=filename,
        quality=_parse_percent(
            quality, "quality", settings.default_quality,
            settings.min_quality, settings.max_quality,
        ),
        scale=_parse_percent(
            scale, "scale", settings.default_scale,
            settings.min_scale, settings.max_scale,
        ),
    )
