from urllib.parse import parse_qs, urlparse

import pytest
from botocore.exceptions import NoCredentialsError

from config.app_config import StorageSettings
from conftest import run
from exceptions import StorageUnavailableError
from services.storage_gateway import SignedUrlGateway, download_overrides, inline_overrides

SETTINGS = StorageSettings(
    endpoint="storage.test",
    access_key="test-access",
    secret_key="test-secret",
    bucket="captures",
    port=9000,
    use_ssl=False,
)


@pytest.fixture
def gateway():
    # Signing is local; no request reaches the endpoint
    return SignedUrlGateway(SETTINGS)


def test_endpoint_url():
    assert SETTINGS.endpoint_url == "http://storage.test:9000"
    assert StorageSettings("s3.example.com", "a", "b", "bkt").endpoint_url == "https://s3.example.com"


def test_issue_put_signs_key_and_lifetime(gateway):
    url = run(gateway.issue_put("evt/1-abc123.webm", 300))
    parsed = urlparse(url)
    query = parse_qs(parsed.query)

    assert parsed.netloc == "storage.test:9000"
    assert parsed.path == "/captures/evt/1-abc123.webm"
    assert query["X-Amz-Expires"] == ["300"]
    assert query["X-Amz-Algorithm"] == ["AWS4-HMAC-SHA256"]


def test_issue_get_with_download_overrides(gateway):
    url = run(gateway.issue_get("evt/clip.mp4", 7200, download_overrides("clip.mp4")))
    query = parse_qs(urlparse(url).query)

    assert query["X-Amz-Expires"] == ["7200"]
    assert query["response-content-disposition"] == ['attachment; filename="clip.mp4"']


def test_issue_get_with_inline_overrides(gateway):
    url = run(gateway.issue_get("evt/clip.webm", 7200, inline_overrides("video/webm")))
    query = parse_qs(urlparse(url).query)

    assert query["response-content-disposition"] == ["inline"]
    assert query["response-content-type"] == ["video/webm"]


def test_unknown_override_rejected(gateway):
    with pytest.raises(ValueError):
        run(gateway.issue_get("evt/clip.mp4", 60, {"etag": "x"}))


def test_client_errors_become_storage_unavailable():
    class BrokenClient:
        def generate_presigned_url(self, *args, **kwargs):
            raise NoCredentialsError()

        def list_buckets(self):
            raise NoCredentialsError()

    gateway = SignedUrlGateway(SETTINGS, client=BrokenClient())

    with pytest.raises(StorageUnavailableError):
        run(gateway.issue_put("evt/x.webm"))
    assert run(gateway.check_connection()) is False


def test_check_connection_lists_buckets():
    class ListingClient:
        def list_buckets(self):
            return {"Buckets": [{"Name": "captures"}]}

    assert run(SignedUrlGateway(SETTINGS, client=ListingClient()).check_connection()) is True
