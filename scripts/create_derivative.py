#!/usr/bin/env python3
"""
Create one derivative from the command line.

Runs the same pipeline the HTTP endpoint uses, against the store and
transform binary configured in the environment, and prints the signed
URL. Handy for backfills and for checking credentials on a new host.

Usage:
    python scripts/create_derivative.py --filename photos/cat.jpg --quality 20

Requires:
    - .env file (or environment) with storage credentials
    - ImageMagick convert on PATH, unless TRANSFORM_MOCK_MODE=true
"""

import argparse
import asyncio
import sys
from pathlib import Path

# Add project root to path so we can import our modules
sys.path.insert(0, str(Path(__file__).parent.parent))

from dotenv import load_dotenv

# Load environment variables
load_dotenv()

from src.config.logging_setup import configure_logging
from src.config.settings import Settings, get_settings
from src.core.derivatives.errors import DerivativeError
from src.core.derivatives.pipeline import BlobStore, DerivativePipeline
from src.core.derivatives.scratch import ScratchSpaceManager
from src.core.derivatives.validation import build_transform_request
from src.infrastructure.imaging.transformer import create_transformer
from src.infrastructure.storage.client import build_storage_client


async def create_derivative(
    filename: str,
    quality: str | None,
    scale: str | None,
    settings: Settings | None = None,
    store: BlobStore | None = None,
) -> str:
    """
    Validate, run the pipeline once and return the signed URL.

    The store is closed afterwards, whether it was passed in or built here.
    """
    settings = settings or get_settings()
    request = build_transform_request(filename, quality, scale, settings)

    if store is None:
        store = build_storage_client(settings)

    pipeline = DerivativePipeline(
        store=store,
        transformer=create_transformer(
            binary_path=settings.transform_binary_path,
            timeout_seconds=settings.transform_timeout_seconds,
            mock_mode=settings.transform_mock_mode,
        ),
        scratch=ScratchSpaceManager(settings.scratch_root, suffix=settings.derivative_suffix),
        bucket=settings.bucket_name,
        suffix=settings.derivative_suffix,
        expiry_seconds=settings.signing_expiry_seconds,
        sign_source=settings.sign_source_url,
    )

    try:
        result = await pipeline.run(request)
    finally:
        store.close()

    return result.url.url


def main():
    parser = argparse.ArgumentParser(description='Create a reduced-quality derivative of a stored image')
    parser.add_argument('--filename', required=True, help='Object path of the source image')
    parser.add_argument('--quality', default=None, help='Output quality in percent')
    parser.add_argument('--scale', default=None, help='Output size in percent')
    args = parser.parse_args()

    configure_logging(get_settings().log_level)

    try:
        url = asyncio.run(create_derivative(args.filename, args.quality, args.scale))
    except DerivativeError as e:
        print(f"ERROR ({e.status_code}): {e.message}", file=sys.stderr)
        sys.exit(1)

    print(url)


if __name__ == '__main__':
    main()
