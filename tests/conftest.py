"""
Shared pytest configuration and fixtures for the Transit Movements Validator tests.

This module provides common test fixtures, configuration, and utilities
used across all test modules in the test suite.
"""

import asyncio
from pathlib import Path
from typing import AsyncIterator, Generator, Iterable, Optional

import pytest
from fastapi.testclient import TestClient

from app.config import Settings
from app.core.validation.registry import get_message_type_registry
from app.core.validation.schema_cache import SchemaCache
from app.dependencies import get_validation_service
from app.main import create_app
from app.services.validation_service import ValidationService

TEST_DATA_DIR = Path(__file__).parent / "data"


class ChunkedSource:
    """
    One-shot async byte source used in place of a request body.

    Records how many bytes were pulled and whether the producer was
    exhausted or closed, so tests can assert that bodies are drained.
    """

    def __init__(self, data: bytes = b"", chunk_size: int = 1024, chunks: Optional[Iterable[bytes]] = None):
        if chunks is None:
            chunks = [data[i:i + chunk_size] for i in range(0, len(data), chunk_size)]
        self._chunks = list(chunks)
        self.bytes_read = 0
        self.exhausted = False
        self.closed = False
        self.iterations = 0

    def __aiter__(self) -> AsyncIterator[bytes]:
        self.iterations += 1
        return self._generate()

    async def _generate(self) -> AsyncIterator[bytes]:
        try:
            for chunk in self._chunks:
                self.bytes_read += len(chunk)
                yield chunk
                await asyncio.sleep(0)
            self.exhausted = True
        finally:
            self.closed = True


class StalledSource:
    """Async byte source that yields ``chunks`` and then never produces again."""

    def __init__(self, chunks: Iterable[bytes] = ()):
        self._chunks = list(chunks)
        self.closed = False

    def __aiter__(self) -> AsyncIterator[bytes]:
        return self._generate()

    async def _generate(self) -> AsyncIterator[bytes]:
        try:
            for chunk in self._chunks:
                yield chunk
            await asyncio.Event().wait()
        finally:
            self.closed = True


class FailingSource:
    """Async byte source that yields ``chunks`` and then raises ``error``, like a dropped client connection."""

    def __init__(self, chunks: Iterable[bytes] = (), error: Optional[Exception] = None):
        self._chunks = list(chunks)
        self.error = error or RuntimeError("client disconnected")
        self.bytes_read = 0

    def __aiter__(self) -> AsyncIterator[bytes]:
        return self._generate()

    async def _generate(self) -> AsyncIterator[bytes]:
        for chunk in self._chunks:
            self.bytes_read += len(chunk)
            yield chunk
        raise self.error


def pytest_configure(config):
    """Configure pytest with custom markers."""
    config.addinivalue_line(
        "markers", "unit: mark test as a unit test"
    )
    config.addinivalue_line(
        "markers", "integration: mark test as an integration test"
    )
    config.addinivalue_line(
        "markers", "slow: mark test as slow running"
    )


def pytest_collection_modifyitems(config, items):
    """Automatically add markers based on test location."""
    for item in items:
        test_path = str(item.fspath)
        if "/unit/" in test_path:
            item.add_marker(pytest.mark.unit)
        elif "/integration/" in test_path:
            item.add_marker(pytest.mark.integration)


@pytest.fixture
def test_settings(tmp_path):
    """Provide test-specific settings configuration."""
    return Settings(
        _env_file=None,
        debug=True,
        temp_dir=str(tmp_path / "spool"),
        stream_read_timeout=5.0,
        sentry_enabled=False,
    )


@pytest.fixture(scope="session")
def shared_schema_cache():
    """One schema cache per session so packaged schemas are compiled once."""
    return SchemaCache()


@pytest.fixture
def spool_dir(tmp_path) -> Path:
    path = tmp_path / "spool"
    path.mkdir(exist_ok=True)
    return path


@pytest.fixture
def validation_service(shared_schema_cache, spool_dir):
    """Validation service with business validation enabled and an isolated spool directory."""
    return ValidationService(
        registry=get_message_type_registry(),
        schema_cache=shared_schema_cache,
        temp_dir=spool_dir,
        read_timeout=5.0,
    )


@pytest.fixture
def single_pass_service(shared_schema_cache, spool_dir):
    """Validation service with business validation disabled (single pass, no spooling)."""
    return ValidationService(
        schema_cache=shared_schema_cache,
        business_validation_enabled=False,
        temp_dir=spool_dir,
        read_timeout=5.0,
    )


@pytest.fixture
def app(validation_service):
    """Create FastAPI application instance for testing."""
    application = create_app()
    application.dependency_overrides[get_validation_service] = lambda: validation_service
    yield application
    application.dependency_overrides.clear()


@pytest.fixture
def client(app) -> Generator[TestClient, None, None]:
    """Create synchronous test client for FastAPI application."""
    with TestClient(app) as test_client:
        yield test_client


@pytest.fixture
def load_payload():
    """Return a loader for files in tests/data."""
    def _load(name: str) -> bytes:
        return (TEST_DATA_DIR / name).read_bytes()
    return _load


@pytest.fixture
def make_source():
    """Return a factory for chunked one-shot byte sources."""
    def _make(data: bytes = b"", chunk_size: int = 1024, chunks: Optional[Iterable[bytes]] = None) -> ChunkedSource:
        return ChunkedSource(data, chunk_size=chunk_size, chunks=chunks)
    return _make


@pytest.fixture
def make_stalled_source():
    """Return a factory for byte sources that stop producing without finishing."""
    def _make(chunks: Iterable[bytes] = ()) -> StalledSource:
        return StalledSource(chunks)
    return _make


@pytest.fixture
def make_failing_source():
    """Return a factory for byte sources that fail part way through."""
    def _make(chunks: Iterable[bytes] = (), error: Optional[Exception] = None) -> FailingSource:
        return FailingSource(chunks, error=error)
    return _make
