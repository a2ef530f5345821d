"""
HTTP tests for the derivative endpoint, error mapping and health checks.

Uses FastAPI's TestClient inside a `with` block so the application
lifespan runs and app.state holds the injected store and transformer.
"""

from fastapi import status
from fastapi.testclient import TestClient

from src.core.derivatives.errors import StorageError
from src.core.derivatives.models import ObjectLocator
from src.infrastructure.imaging.transformer import MockTransformer
from src.infrastructure.storage.client import MockStorageClient
from src.main import create_app
from tests.consts import TEST_BUCKET, TEST_IMAGE_BYTES, scratch_leftovers

ENDPOINT = "/api/v1/derivatives"
DERIVATIVE = ObjectLocator(TEST_BUCKET, "photos", "cat.jpg_modified")


class BrokenStore(MockStorageClient):
    async def download_to_file(self, locator, destination):
        raise StorageError("Download failed: endpoint unreachable")


def run_app(settings, store, transformer):
    return TestClient(create_app(settings=settings, storage=store, transformer=transformer))


# ---------------------------------------------------------------------------
# Validation
# ---------------------------------------------------------------------------

class TestValidation:

    def test_missing_filename_returns_409(self, client):
        response = client.get(ENDPOINT)

        assert response.status_code == status.HTTP_409_CONFLICT
        assert response.json() == {"message": "File parameter not specified", "statusCode": 409}

    def test_empty_filename_returns_409(self, client):
        response = client.get(ENDPOINT, params={"filename": ""})

        assert response.status_code == status.HTTP_409_CONFLICT
        assert response.json() == {"message": "File parameter not specified", "statusCode": 409}

    def test_out_of_range_quality_returns_409(self, client, transformer):
        response = client.get(ENDPOINT, params={"filename": "photos/cat.jpg", "quality": "500"})

        assert response.status_code == status.HTTP_409_CONFLICT
        assert response.json()["statusCode"] == 409
        assert "quality" in response.json()["message"]
        assert transformer.calls == []

    def test_non_integer_scale_returns_409(self, client):
        response = client.get(ENDPOINT, params={"filename": "photos/cat.jpg", "scale": "big"})

        assert response.status_code == status.HTTP_409_CONFLICT


# ---------------------------------------------------------------------------
# Success
# ---------------------------------------------------------------------------

class TestCreateDerivative:

    def test_defaults(self, client, store, transformer):
        """filename only: quality 10, scale 100%, URL for the _modified object."""
        response = client.get(ENDPOINT, params={"filename": "photos/cat.jpg"})

        assert response.status_code == status.HTTP_200_OK
        assert response.headers["content-type"].startswith("text/plain")
        assert "photos/cat.jpg_modified" in response.text
        assert response.headers["x-derivative-key"] == "photos/cat.jpg_modified"

        args = transformer.calls[0]
        assert args[args.index("-quality") + 1] == "10"
        assert args[args.index("-scale") + 1] == "100%"
        assert store.get_object(DERIVATIVE) == TEST_IMAGE_BYTES

    def test_explicit_quality_and_scale(self, client, transformer):
        response = client.get(ENDPOINT, params={"filename": "a/b.png", "quality": "50", "scale": "50"})

        assert response.status_code == status.HTTP_200_OK
        assert "a/b.png_modified" in response.text
        args = transformer.calls[0]
        assert args[args.index("-quality") + 1] == "50"
        assert args[args.index("-scale") + 1] == "50%"

    def test_legacy_route(self, client):
        response = client.get("/createNewLowerQualityImage", params={"filename": "photos/cat.jpg"})

        assert response.status_code == status.HTTP_200_OK
        assert "photos/cat.jpg_modified" in response.text

    def test_legacy_route_missing_filename(self, client):
        response = client.get("/createNewLowerQualityImage")

        assert response.status_code == status.HTTP_409_CONFLICT
        assert response.json() == {"message": "File parameter not specified", "statusCode": 409}

    def test_source_url_header_when_enabled(self, settings, store, transformer):
        settings = settings.model_copy(update={"sign_source_url": True})

        with run_app(settings, store, transformer) as client:
            response = client.get(ENDPOINT, params={"filename": "photos/cat.jpg"})

        assert response.status_code == status.HTTP_200_OK
        assert "photos/cat.jpg?" in response.headers["x-source-url"]
        assert "photos/cat.jpg_modified" in response.text

    def test_scratch_empty_after_success(self, client, scratch_root):
        client.get(ENDPOINT, params={"filename": "photos/cat.jpg"})

        assert scratch_leftovers(scratch_root) == []


# ---------------------------------------------------------------------------
# Error mapping
# ---------------------------------------------------------------------------

class TestErrorMapping:

    def test_missing_source_returns_404(self, client, store, scratch_root):
        response = client.get(ENDPOINT, params={"filename": "photos/nope.jpg"})

        assert response.status_code == status.HTTP_404_NOT_FOUND
        assert response.json()["statusCode"] == 404
        assert not store.has_object(ObjectLocator(TEST_BUCKET, "photos", "nope.jpg_modified"))
        assert scratch_leftovers(scratch_root) == []

    def test_transform_failure_returns_500(self, settings, store, scratch_root):
        transformer = MockTransformer(exit_code=1, stderr="convert: corrupt image")

        with run_app(settings, store, transformer) as client:
            response = client.get(ENDPOINT, params={"filename": "photos/cat.jpg"})

        assert response.status_code == status.HTTP_500_INTERNAL_SERVER_ERROR
        assert response.json() == {
            "message": "Transform failed with exit code 1",
            "statusCode": 500,
        }
        assert not store.has_object(DERIVATIVE)
        assert scratch_leftovers(scratch_root) == []

    def test_storage_failure_returns_502(self, settings, transformer, scratch_root):
        with run_app(settings, BrokenStore(), transformer) as client:
            response = client.get(ENDPOINT, params={"filename": "photos/cat.jpg"})

        assert response.status_code == status.HTTP_502_BAD_GATEWAY
        assert response.json()["statusCode"] == 502
        assert scratch_leftovers(scratch_root) == []


# ---------------------------------------------------------------------------
# Authentication
# ---------------------------------------------------------------------------

class TestApiKey:

    def test_open_by_default(self, client):
        response = client.get(ENDPOINT, params={"filename": "photos/cat.jpg"})
        assert response.status_code == status.HTTP_200_OK

    def test_key_required_when_configured(self, settings, store, transformer):
        settings = settings.model_copy(update={"api_keys": "key-1,key-2"})

        with run_app(settings, store, transformer) as client:
            missing = client.get(ENDPOINT, params={"filename": "photos/cat.jpg"})
            wrong = client.get(
                ENDPOINT,
                params={"filename": "photos/cat.jpg"},
                headers={"X-API-Key": "nope"},
            )
            right = client.get(
                ENDPOINT,
                params={"filename": "photos/cat.jpg"},
                headers={"X-API-Key": "key-2"},
            )

        assert missing.status_code == status.HTTP_403_FORBIDDEN
        assert missing.json()["statusCode"] == 403
        assert wrong.status_code == status.HTTP_403_FORBIDDEN
        assert right.status_code == status.HTTP_200_OK


# ---------------------------------------------------------------------------
# Health
# ---------------------------------------------------------------------------

class TestHealth:

    def test_liveness(self, client):
        response = client.get("/health")

        assert response.status_code == status.HTTP_200_OK
        assert response.json()["status"] == "ok"
        assert response.json()["details"]["mock_mode"] == {"storage": True, "transform": True}

    def test_ready_in_mock_mode(self, client):
        response = client.get("/health/ready")

        assert response.status_code == status.HTTP_200_OK
        assert response.json()["status"] == "ready"

    def test_not_ready_without_credentials(self, settings, store, transformer):
        settings = settings.model_copy(update={"storage_mock_mode": False})

        with run_app(settings, store, transformer) as client:
            response = client.get("/health/ready")

        assert response.status_code == status.HTTP_503_SERVICE_UNAVAILABLE
        body = response.json()
        assert body["status"] == "not_ready"
        config_check = next(c for c in body["checks"] if c["name"] == "configuration")
        assert "STORAGE_ACCESS_KEY_ID" in config_check["error"]

    def test_unknown_route_uses_error_shape(self, client):
        response = client.get("/no/such/route")

        assert response.status_code == status.HTTP_404_NOT_FOUND
        assert response.json() == {"message": "Not Found", "statusCode": 404}
