"""
Shared fixtures.

Everything runs against the in-memory store and the copy-through mock
transformer, with scratch space under pytest's tmp_path so leaks are
easy to detect.
"""

from pathlib import Path

import pytest
from fastapi.testclient import TestClient

from src.config.settings import Settings
from src.core.derivatives.models import ObjectLocator
from src.core.derivatives.pipeline import DerivativePipeline
from src.core.derivatives.scratch import ScratchSpaceManager
from src.infrastructure.imaging.transformer import MockTransformer
from src.infrastructure.storage.client import MockStorageClient
from src.main import create_app
from tests.consts import TEST_BUCKET, TEST_IMAGE_BYTES


@pytest.fixture
def scratch_root(tmp_path) -> Path:
    return tmp_path / "scratch"


@pytest.fixture
def settings(scratch_root) -> Settings:
    return Settings(
        _env_file=None,
        bucket_name=TEST_BUCKET,
        scratch_root=str(scratch_root),
        storage_mock_mode=True,
        transform_mock_mode=True,
        api_keys="",
        signing_expiry_seconds=3600,
    )


@pytest.fixture
def store() -> MockStorageClient:
    client = MockStorageClient()
    client.put_object(ObjectLocator(TEST_BUCKET, "photos", "cat.jpg"), TEST_IMAGE_BYTES)
    client.put_object(ObjectLocator(TEST_BUCKET, "a", "b.png"), b"png-bytes")
    return client


@pytest.fixture
def transformer() -> MockTransformer:
    return MockTransformer()


@pytest.fixture
def pipeline(store, transformer, scratch_root) -> DerivativePipeline:
    return DerivativePipeline(
        store=store,
        transformer=transformer,
        scratch=ScratchSpaceManager(scratch_root),
        bucket=TEST_BUCKET,
        suffix="_modified",
        expiry_seconds=3600,
    )


@pytest.fixture
def client(settings, store, transformer):
    """TestClient with lifespan run, so app.state is populated."""
    app = create_app(settings=settings, storage=store, transformer=transformer)
    with TestClient(app) as test_client:
        yield test_client
