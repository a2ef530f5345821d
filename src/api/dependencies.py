"""
FastAPI dependency injection.

The store client and transformer are process-wide: the application
lifespan creates them once and parks them on app.state. Dependencies
here hand them to route handlers, which means:
- Routes don't instantiate their own dependencies (easier to test)
- Tests can inject doubles through create_app()
- Shutdown has exactly one place to close them

Each dependency is a function that FastAPI calls when needed.
"""

import logging
from typing import Annotated, Optional

from fastapi import Depends, HTTPException, Request, Security, status
from fastapi.security import APIKeyHeader

from ..config.settings import Settings
from ..core.derivatives.pipeline import BlobStore, DerivativePipeline
from ..core.derivatives.scratch import ScratchSpaceManager
from ..core.derivatives.transform import Transformer

logger = logging.getLogger(__name__)

# API Key security scheme
api_key_header = APIKeyHeader(name="X-API-Key", auto_error=False)


# ---------------------------------------------------------------------------
# Process-wide resources
# ---------------------------------------------------------------------------

def get_app_settings(request: Request) -> Settings:
    """Settings the application was created with."""
    return request.app.state.settings


def get_storage_client(request: Request) -> BlobStore:
    return request.app.state.storage


def get_transformer(request: Request) -> Transformer:
    return request.app.state.transformer


def get_scratch_manager(request: Request) -> ScratchSpaceManager:
    return request.app.state.scratch


# ---------------------------------------------------------------------------
# Authentication
# ---------------------------------------------------------------------------

async def verify_api_key(
    settings: Annotated[Settings, Depends(get_app_settings)],
    api_key: str = Security(api_key_header),
) -> Optional[str]:
    """
    Validate API key from request header.

    Authentication is off unless API_KEYS is configured, matching the
    behavior of the original unauthenticated endpoint.

    Raises 403 if enabled and the key is invalid or missing.
    """
    if not settings.auth_enabled:
        return None

    if not api_key:
        logger.warning("Request missing API key")
        raise HTTPException(
            status_code=status.HTTP_403_FORBIDDEN,
            detail="API key required. Provide X-API-Key header.",
        )

    if api_key not in settings.api_keys_list:
        logger.warning(
            "Invalid API key attempt",
            extra={"key_prefix": api_key[:8]}
        )
        raise HTTPException(
            status_code=status.HTTP_403_FORBIDDEN,
            detail="Invalid API key",
        )

    return api_key


# ---------------------------------------------------------------------------
# Service Dependencies
# ---------------------------------------------------------------------------

def get_pipeline(
    settings: Annotated[Settings, Depends(get_app_settings)],
    store: Annotated[BlobStore, Depends(get_storage_client)],
    transformer: Annotated[Transformer, Depends(get_transformer)],
    scratch: Annotated[ScratchSpaceManager, Depends(get_scratch_manager)],
) -> DerivativePipeline:
    """
    Provide a DerivativePipeline bound to the shared store and transformer.

    The pipeline holds no per-request state itself, so building one per
    request is cheap and keeps settings overrides in tests simple.
    """
    return DerivativePipeline(
        store=store,
        transformer=transformer,
        scratch=scratch,
        bucket=settings.bucket_name,
        suffix=settings.derivative_suffix,
        expiry_seconds=settings.signing_expiry_seconds,
        sign_source=settings.sign_source_url,
    )


# ---------------------------------------------------------------------------
# Convenience Type Aliases
# ---------------------------------------------------------------------------

# These type aliases make route signatures cleaner
AuthenticatedCaller = Annotated[Optional[str], Depends(verify_api_key)]
PipelineDep = Annotated[DerivativePipeline, Depends(get_pipeline)]
TransformerDep = Annotated[Transformer, Depends(get_transformer)]
SettingsDep = Annotated[Settings, Depends(get_app_settings)]
