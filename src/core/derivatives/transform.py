"""
Transform invocation.

The raster engine is an external program with a fixed argument contract.
This module owns that contract and the interpretation of the result; the
Transformer protocol owns only "run these arguments". Swapping ImageMagick
for a test double therefore never touches argument ordering.
"""

import logging
from pathlib import Path
from typing import Protocol

from .errors import TransformError
from .models import TransformResult

logger = logging.getLogger(__name__)

POSTERIZE_LEVELS = "100"


class Transformer(Protocol):
    """
    Interface for the external raster tool.

    Implementations raise TransformError when the tool cannot be launched
    or times out; a completed run is reported through TransformResult.
    """

    async def run(self, args: list[str]) -> TransformResult:
        """Run the tool with the given arguments (binary excluded)."""
        ...

    def check_available(self) -> bool:
        """Return True if the tool can be launched."""
        ...


def build_convert_arguments(
    local_source: Path,
    local_derivative: Path,
    quality: int,
    scale: int,
) -> list[str]:
    """
    Build the ordered argument list for the raster tool.

    Order matters to ImageMagick: operators apply left to right between
    the input and output paths.
    """
    return [
        str(local_source),
        "-quality", str(quality),
        "-scale", f"{scale}%",
        "-dither", "none",
        "-posterize", POSTERIZE_LEVELS,
        "-strip",
        str(local_derivative),
    ]


class TransformInvoker:
    """Runs one transform and turns any failure into TransformError."""

    def __init__(self, transformer: Transformer) -> None:
        self._transformer = transformer

    async def transform(
        self,
        local_source: Path,
        local_derivative: Path,
        quality: int,
        scale: int,
    ) -> None:
        args = build_convert_arguments(local_source, local_derivative, quality, scale)

        result = await self._transformer.run(args)

        if not result.succeeded:
            logger.error(
                "Transform exited non-zero",
                extra={"exit_code": result.exit_code, "stderr": result.stderr[-2000:]}
            )
            raise TransformError(
                f"Transform failed with exit code {result.exit_code}",
                stderr=result.stderr,
                exit_code=result.exit_code,
            )

        if not local_derivative.exists():
            raise TransformError(
                "Transform reported success but produced no output",
                stderr=result.stderr,
                exit_code=result.exit_code,
            )

        logger.debug(
            "Transform complete",
            extra={"quality": quality, "scale": scale, "output": str(local_derivative)}
        )
