"""
Request-scoped local staging space.

Each pipeline run gets its own directory under the scratch root, named by
a fresh uuid4. Two concurrent requests for the same source path therefore
never share local files. Release removes the whole directory and must run
on every exit path, which session() guarantees.
"""

import logging
import posixpath
import shutil
from contextlib import contextmanager
from pathlib import Path
from typing import Iterator, Union
from uuid import uuid4

from .models import ScratchSet, TransformRequest

logger = logging.getLogger(__name__)


class ScratchSpaceManager:
    """Allocates and releases ScratchSets under a root directory."""

    def __init__(self, root: Union[str, Path], suffix: str = "_modified") -> None:
        self._root = Path(root)
        self._suffix = suffix

    @property
    def root(self) -> Path:
        return self._root

    def acquire(self, request: TransformRequest) -> ScratchSet:
        """
        Create a fresh staging directory for one request.

        Local names keep the source basename (ImageMagick picks the input
        decoder from it). Source and derivative live in separate
        subdirectories so no suffix can make them collide.
        """
        name = posixpath.basename(request.source_path)
        local_dir = self._root / f"derivative-{uuid4().hex}"

        source_dir = local_dir / "source"
        derivative_dir = local_dir / "derivative"
        source_dir.mkdir(parents=True, exist_ok=False)
        try:
            derivative_dir.mkdir()
        except OSError:
            # no ScratchSet exists yet, so nobody else would release local_dir
            shutil.rmtree(local_dir, ignore_errors=True)
            raise

        scratch = ScratchSet(
            local_dir=local_dir,
            local_source_file=source_dir / name,
            local_derivative_file=derivative_dir / f"{name}{self._suffix}",
        )

        logger.debug(
            "Acquired scratch space",
            extra={"local_dir": str(local_dir), "source_path": request.source_path}
        )

        return scratch

    def release(self, scratch: ScratchSet) -> None:
        """Delete staged files and the request directory. Safe to call twice."""
        scratch.local_source_file.unlink(missing_ok=True)
        scratch.local_derivative_file.unlink(missing_ok=True)

        if scratch.local_dir.exists():
            shutil.rmtree(scratch.local_dir)

        logger.debug("Released scratch space", extra={"local_dir": str(scratch.local_dir)})

    @contextmanager
    def session(self, request: TransformRequest) -> Iterator[ScratchSet]:
        """Acquire scratch space and release it however the block exits."""
        scratch = self.acquire(request)
        try:
            yield scratch
        finally:
            self.release(scratch)
