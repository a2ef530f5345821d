"""
Image Derivative Service - on-demand reduced copies of stored images.

This package contains the complete application:
- core: Framework-agnostic derivative pipeline
- infrastructure: Blob store and ImageMagick integrations
- api: FastAPI routes and dependencies
- config: Application configuration
"""

__version__ = "0.1.0"
