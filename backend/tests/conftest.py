import sys
from pathlib import Path

# Add backend directory to Python path FIRST
backend_dir = Path(__file__).parent.parent
sys.path.insert(0, str(backend_dir))

# Now import after path is set
import asyncio
import pytest

from config.app_config import AppConfig, StorageSettings
from exceptions import StorageUnavailableError


class FakeGateway:
    """Signs nothing; returns recognisable URLs and records every call"""

    def __init__(self, fail: bool = False):
        self.fail = fail
        self.calls = []

    async def issue_put(self, key, ttl_seconds=300):
        self.calls.append(("put", key, ttl_seconds, None))
        if self.fail:
            raise StorageUnavailableError(operation="put_object", key=key)
        return f"https://storage.test/captures/{key}?verb=put&ttl={ttl_seconds}"

    async def issue_get(self, key, ttl_seconds=7200, response_overrides=None):
        self.calls.append(("get", key, ttl_seconds, response_overrides))
        if self.fail:
            raise StorageUnavailableError(operation="get_object", key=key)
        return f"https://storage.test/captures/{key}?verb=get&ttl={ttl_seconds}"

    async def check_connection(self):
        return not self.fail


class FakeTransfer:
    """Writes a small fake capture on download and records uploads"""

    def __init__(self, payload: bytes = b"raw-capture-bytes", download_error: Exception | None = None):
        self.payload = payload
        self.download_error = download_error
        self.downloads = []
        self.uploads = []
        self.closed = False

    async def download_to(self, url, path):
        self.downloads.append((url, Path(path)))
        if self.download_error:
            raise self.download_error
        Path(path).write_bytes(self.payload)
        return len(self.payload)

    async def upload_from(self, url, path, content_type="video/mp4"):
        size = Path(path).stat().st_size
        self.uploads.append((url, Path(path), content_type, size))
        return size

    async def aclose(self):
        self.closed = True


class FakeRunner:
    """Stands in for FFmpegRunner: writes an output file or raises `error`"""

    def __init__(self, error: Exception | None = None):
        self.error = error
        self.runs = []

    async def run(self, input_path, output_path):
        self.runs.append((Path(input_path), Path(output_path)))
        if self.error:
            raise self.error
        Path(output_path).write_bytes(b"mirrored-output")


class RecordingSender:
    """EventSender that keeps every event instead of writing to a socket"""

    def __init__(self):
        self.sent = []

    async def send_event(self, conn_id, event, data=None):
        self.sent.append((conn_id, event, data))
        return True

    def events_for(self, conn_id):
        return [(event, data) for target, event, data in self.sent if target == conn_id]


@pytest.fixture
def fake_gateway():
    return FakeGateway()


@pytest.fixture
def fake_transfer():
    return FakeTransfer()


@pytest.fixture
def fake_runner():
    return FakeRunner()


@pytest.fixture
def sender():
    return RecordingSender()


@pytest.fixture
def app_config(tmp_path):
    """Configuration pointing at a fake storage endpoint and a private temp dir"""
    work_dir = tmp_path / "work"
    work_dir.mkdir()
    return AppConfig(
        storage=StorageSettings(
            endpoint="storage.test",
            access_key="test-access",
            secret_key="test-secret",
            bucket="captures",
        ),
        public_base_url="https://capture.test",
        temp_dir=work_dir,
        public_dir=None,
        log_dir=tmp_path / "logs",
    )


def run(coro):
    """Drive a coroutine to completion on a fresh event loop"""
    return asyncio.run(coro)
