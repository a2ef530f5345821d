"""
Derivative path resolution.

The derivative lives next to its source: same bucket, same directory,
name = source name + suffix. Resolution is pure, so it is safe to call
from any number of concurrent requests.
"""

import posixpath

from .errors import ValidationError
from .models import ObjectLocator


def split_object_path(path: str) -> tuple[str, str]:
    """
    Split an object path into (directory, name).

    A single leading slash is dropped because keys are relative to the
    bucket. Anything that would not round-trip to the same key (empty
    segments, dot segments, trailing slash, NUL) is rejected.
    """
    if not path or not path.strip():
        raise ValidationError("File parameter not specified")

    if "\x00" in path:
        raise ValidationError("File path contains a NUL byte")

    key = path[1:] if path.startswith("/") else path
    segments = key.split("/")

    if segments[-1] == "":
        raise ValidationError(f"File path has no file name: {path!r}")
    if any(seg in ("", ".", "..") for seg in segments):
        raise ValidationError(f"File path is not a normalized object path: {path!r}")

    return posixpath.dirname(key), posixpath.basename(key)


def resolve(
    source_path: str,
    bucket: str,
    suffix: str,
) -> tuple[ObjectLocator, ObjectLocator]:
    """
    Resolve the source locator and its derivative locator.

    Example: ("photos/cat.jpg", "images", "_modified") gives
    images/photos/cat.jpg and images/photos/cat.jpg_modified.
    """
    directory, name = split_object_path(source_path)

    source = ObjectLocator(bucket=bucket, directory=directory, name=name)
    derivative = ObjectLocator(bucket=bucket, directory=directory, name=f"{name}{suffix}")

    return source, derivative
