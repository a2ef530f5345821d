"""
Infrastructure layer - external service integrations.

Each subdirectory wraps an external dependency:
- storage: Object storage (S3-compatible, via boto3)
- imaging: ImageMagick convert, run as a subprocess

These wrappers translate between external formats and our domain models.
"""
