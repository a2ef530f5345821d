"""
Domain models for derivative generation.

These are plain values with no knowledge of HTTP, boto3 or ImageMagick.
Locators are recomputed per request and never persisted.
"""

from dataclasses import dataclass
from datetime import datetime, timezone
from pathlib import Path
from typing import Optional


@dataclass(frozen=True)
class TransformRequest:
    """A validated request to derive a reduced copy of one object."""
    source_path: str
    quality: int = 10
    scale: int = 100

    def __post_init__(self) -> None:
        if not self.source_path:
            raise ValueError("source_path cannot be empty")
        if self.quality <= 0 or self.scale <= 0:
            raise ValueError("quality and scale must be positive")


@dataclass(frozen=True)
class ObjectLocator:
    """
    Address of an object in the blob store.

    Frozen because locators are values: two locators naming the same
    bucket and key are the same object.
    """
    bucket: str
    directory: str
    name: str

    @property
    def key(self) -> str:
        """Object key within the bucket."""
        if not self.directory:
            return self.name
        return f"{self.directory}/{self.name}"

    def __str__(self) -> str:
        return f"{self.bucket}/{self.key}"


@dataclass(frozen=True)
class ScratchSet:
    """Local staging files owned by exactly one pipeline run."""
    local_dir: Path
    local_source_file: Path
    local_derivative_file: Path


@dataclass(frozen=True)
class SignedURL:
    """A read URL that stops working at expires_at."""
    url: str
    expires_at: datetime

    @property
    def is_expired(self) -> bool:
        return self.expires_at <= datetime.now(timezone.utc)


@dataclass(frozen=True)
class TransformResult:
    """What the transform engine reports back."""
    exit_code: int
    stderr: str = ""

    @property
    def succeeded(self) -> bool:
        return self.exit_code == 0


@dataclass(frozen=True)
class DerivativeResult:
    """Outcome of a successful pipeline run."""
    source: ObjectLocator
    derivative: ObjectLocator
    url: SignedURL
    source_url: Optional[SignedURL] = None
