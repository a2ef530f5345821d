"""
Raster transform infrastructure.

Wraps the external ImageMagick convert binary behind the Transformer
protocol, plus a copy-through mock for local development.
"""

from .transformer import (
    ImageMagickTransformer,
    MockTransformer,
    create_transformer,
)

__all__ = [
    "ImageMagickTransformer",
    "MockTransformer",
    "create_transformer",
]
