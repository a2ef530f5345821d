"""
Derivative generation: path resolution, scratch space, transform
invocation and the pipeline that sequences them.
"""

from .errors import (
    DerivativeError,
    ObjectNotFoundError,
    StorageError,
    TransformError,
    ValidationError,
)
from .models import (
    DerivativeResult,
    ObjectLocator,
    ScratchSet,
    SignedURL,
    TransformRequest,
    TransformResult,
)
from .paths import resolve
from .pipeline import BlobStore, DerivativePipeline
from .scratch import ScratchSpaceManager
from .transform import Transformer, TransformInvoker, build_convert_arguments

__all__ = [
    "DerivativeError",
    "ObjectNotFoundError",
    "StorageError",
    "TransformError",
    "ValidationError",
    "DerivativeResult",
    "ObjectLocator",
    "ScratchSet",
    "SignedURL",
    "TransformRequest",
    "TransformResult",
    "resolve",
    "BlobStore",
    "DerivativePipeline",
    "ScratchSpaceManager",
    "Transformer",
    "TransformInvoker",
    "build_convert_arguments",
]
