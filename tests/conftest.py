"""Shared test fixtures."""

import io
import tarfile
import zipfile
from collections.abc import Callable, Iterator
from pathlib import Path

import httpx
import pytest
from assetstage.config import BundleDescriptor, Config, OutputConfig
from assetstage.core.integrity import digest

BUNDLE_URL = "https://example.test/dashboard/bundle.tar"

ArchiveBuilder = Callable[..., bytes]


class FakeServer:
    """Serves a fixed response through httpx.MockTransport and records requests."""

    def __init__(self, body: bytes, status_code: int = 200) -> None:
        self.body = body
        self.status_code = status_code
        self.requests: list[httpx.Request] = []
        self.client = httpx.Client(transport=httpx.MockTransport(self._handle))

    def _handle(self, request: httpx.Request) -> httpx.Response:
        self.requests.append(request)
        return httpx.Response(self.status_code, content=self.body)


def _build_tar(files: dict[str, bytes], prefix: str = "") -> bytes:
    buffer = io.BytesIO()
    with tarfile.open(fileobj=buffer, mode="w") as tar:
        for name, data in files.items():
            info = tarfile.TarInfo(prefix + name)
            info.size = len(data)
            tar.addfile(info, io.BytesIO(data))
    return buffer.getvalue()


def _build_zip(files: dict[str, bytes], prefix: str = "") -> bytes:
    buffer = io.BytesIO()
    with zipfile.ZipFile(buffer, "w") as archive:
        for name, data in files.items():
            archive.writestr(prefix + name, data)
    return buffer.getvalue()


@pytest.fixture
def bundle_files() -> dict[str, bytes]:
    """Files contained in the test bundle, keyed by relative path."""
    return {
        "index.html": b"<html><body>dashboard</body></html>",
        "favicon.ico": b"\x00\x00\x01\x00",
        "assets/app.js": b"console.log('dashboard');",
        "assets/css/style.css": b"body { margin: 0; }",
    }


@pytest.fixture
def make_tar() -> ArchiveBuilder:
    """Return a builder for in-memory tar archives."""
    return _build_tar


@pytest.fixture
def make_zip() -> ArchiveBuilder:
    """Return a builder for in-memory zip archives."""
    return _build_zip


@pytest.fixture
def bundle_bytes(bundle_files: dict[str, bytes]) -> bytes:
    """Tar archive of the test bundle."""
    return _build_tar(bundle_files)


@pytest.fixture
def bundle_digest(bundle_bytes: bytes) -> str:
    """SHA-1 of the test bundle archive."""
    return digest(bundle_bytes)


@pytest.fixture
def server(bundle_bytes: bytes) -> Iterator[FakeServer]:
    """Fake HTTP server returning the test bundle."""
    fake = FakeServer(bundle_bytes)
    yield fake
    fake.client.close()


@pytest.fixture
def test_config(tmp_path: Path, bundle_digest: str) -> Config:
    """Create a test configuration writing into tmp_path/out."""
    return Config(
        bundle=BundleDescriptor(
            name="dashboard",
            source_url=BUNDLE_URL,
            expected_digest=bundle_digest,
        ),
        output=OutputConfig(dir=tmp_path / "out"),
    )
