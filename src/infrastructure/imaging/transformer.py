"""
Raster transform engine using ImageMagick.

The service never decodes images itself. It stages files on local disk
and hands both paths to ImageMagick's convert, which does the quality
reduction, rescale and metadata strip in one pass.

Why ImageMagick:
- Handles every format a caller is likely to store
- One process per request, no shared state between requests
- Available everywhere (including slim Docker images via apt)
"""

import asyncio
import logging
import shutil
import subprocess
from pathlib import Path

from ...core.derivatives.errors import TransformError
from ...core.derivatives.models import TransformResult
from ...core.derivatives.transform import Transformer

logger = logging.getLogger(__name__)


class ImageMagickTransformer:
    """
    Transformer that runs the convert binary as a subprocess.

    The call blocks on the external tool, so it runs in a worker thread
    via asyncio.to_thread.
    """

    def __init__(self, binary_path: str = "convert", timeout_seconds: float = 120.0):
        """
        Args:
            binary_path: Path to the convert binary (default assumes it's in PATH)
            timeout_seconds: Kill the process after this long
        """
        self._binary = binary_path
        self._timeout = timeout_seconds

    @property
    def binary_path(self) -> str:
        return self._binary

    async def run(self, args: list[str]) -> TransformResult:
        cmd = [self._binary, *args]

        try:
            result = await asyncio.to_thread(
                subprocess.run,
                cmd,
                capture_output=True,
                text=True,
                encoding="utf-8",
                errors="replace",
                timeout=self._timeout,
            )
        except subprocess.TimeoutExpired as e:
            stderr = e.stderr.decode(errors="replace") if isinstance(e.stderr, bytes) else (e.stderr or "")
            logger.error(
                "Transform timed out",
                extra={"binary": self._binary, "timeout_seconds": self._timeout}
            )
            raise TransformError(
                f"Transform timed out after {self._timeout:g}s",
                stderr=stderr,
            )
        except OSError as e:
            # FileNotFoundError when the binary is missing, PermissionError when not executable
            logger.error(
                "Failed to launch transform",
                extra={"binary": self._binary, "error": str(e)}
            )
            raise TransformError(f"Failed to launch {self._binary}: {e}", stderr=str(e))

        return TransformResult(exit_code=result.returncode, stderr=result.stderr or "")

    def check_available(self) -> bool:
        """Return True if the binary launches and reports a version."""
        if shutil.which(self._binary) is None and not Path(self._binary).is_file():
            return False

        try:
            result = subprocess.run(
                [self._binary, "-version"],
                capture_output=True,
                text=True,
                errors="replace",
                timeout=5,
            )
        except (OSError, subprocess.TimeoutExpired):
            return False

        return result.returncode == 0


class MockTransformer:
    """
    Mock transformer for local development without ImageMagick.

    Copies the input path to the output path unchanged and records every
    argument list it was given, which makes it a convenient test double.
    Set exit_code/stderr to simulate a failing tool.
    """

    def __init__(self, exit_code: int = 0, stderr: str = ""):
        self.exit_code = exit_code
        self.stderr = stderr
        self.calls: list[list[str]] = []
        logger.info("Initialized mock transformer")

    async def run(self, args: list[str]) -> TransformResult:
        self.calls.append(list(args))

        if self.exit_code == 0:
            shutil.copyfile(args[0], args[-1])

        return TransformResult(exit_code=self.exit_code, stderr=self.stderr)

    def check_available(self) -> bool:
        return True


def create_transformer(
    binary_path: str = "convert",
    timeout_seconds: float = 120.0,
    mock_mode: bool = False,
) -> Transformer:
    """
    Factory function for the transform engine.

    Args:
        binary_path: convert binary to run
        timeout_seconds: per-invocation timeout
        mock_mode: If True, return mock transformer (no ImageMagick required)
    """
    if mock_mode:
        return MockTransformer()

    return ImageMagickTransformer(binary_path=binary_path, timeout_seconds=timeout_seconds)
