"""Shared test fixtures for httpecho.

Provides a fresh cache registry per test, an isolated working directory
and environment for settings resolution, counting mock transports, and
helpers for building recorded messages.
"""

from __future__ import annotations

import threading
from pathlib import Path
from typing import Callable, Optional

import httpx
import pytest

from httpecho.cache.registry import CacheRegistry, reset_registry, set_registry
from httpecho.messages import Exchange, HeaderFields, RecordedRequest, RecordedResponse
from httpecho.models import EchoSettings
from httpecho.output import reset_output

MOCK_BODY = b"Mock data"


# ---------------------------------------------------------------------------
# Auto-reset global state between tests
# ---------------------------------------------------------------------------


@pytest.fixture(autouse=True)
def _reset_output_between_tests() -> None:
    """Reset the global OutputManager after every test.

    The OutputManager caches references to sys.stdout/sys.stderr at
    creation time, which go stale once CliRunner restores the streams.
    """
    yield
    reset_output()


@pytest.fixture(autouse=True)
def registry() -> CacheRegistry:
    """Install a fresh default registry so stores never leak between tests."""
    fresh = CacheRegistry()
    set_registry(fresh)
    yield fresh
    fresh.clear()
    reset_registry()


@pytest.fixture(autouse=True)
def _isolated_settings(monkeypatch: pytest.MonkeyPatch, tmp_path: Path) -> None:
    """Keep stray HTTPECHO_* variables and ./httpecho.json out of every test."""
    for var in ("HTTPECHO_LOOKUP_PATH", "HTTPECHO_UPDATE_PATH", "HTTPECHO_CACHE_NAME"):
        monkeypatch.delenv(var, raising=False)
    workdir = tmp_path / "cwd"
    workdir.mkdir()
    monkeypatch.chdir(workdir)


# ---------------------------------------------------------------------------
# Transports
# ---------------------------------------------------------------------------


class CountingHandler:
    """MockTransport handler that counts calls and answers with a fixed body."""

    def __init__(
        self,
        body: bytes = MOCK_BODY,
        status_code: int = 200,
        headers: Optional[dict[str, str]] = None,
        error: Optional[Exception] = None,
    ) -> None:
        self.body = body
        self.status_code = status_code
        self.headers = headers or {}
        self.error = error
        self.calls = 0
        self.requests: list[httpx.Request] = []
        self._lock = threading.Lock()

    def __call__(self, request: httpx.Request) -> httpx.Response:
        with self._lock:
            self.calls += 1
            self.requests.append(request)
        if self.error is not None:
            raise self.error
        return httpx.Response(self.status_code, headers=self.headers, content=self.body)


@pytest.fixture
def handler() -> CountingHandler:
    return CountingHandler()


@pytest.fixture
def mock_transport(handler: CountingHandler) -> httpx.MockTransport:
    return httpx.MockTransport(handler)


# ---------------------------------------------------------------------------
# Settings and recordings
# ---------------------------------------------------------------------------


@pytest.fixture
def recordings(tmp_path: Path) -> Path:
    """An existing, empty recordings directory."""
    path = tmp_path / "recordings"
    path.mkdir()
    return path


@pytest.fixture
def settings(recordings: Path) -> EchoSettings:
    """Settings that replay from and record into :func:`recordings`."""
    return EchoSettings(lookup_path=recordings, update_path=recordings)


def make_request(
    url: str = "https://example.com/",
    method: str = "GET",
    headers: Optional[list[tuple[str, str]]] = None,
    content: Optional[bytes] = None,
    content_headers: Optional[list[tuple[str, str]]] = None,
) -> RecordedRequest:
    return RecordedRequest(
        method=method,
        url=url,
        headers=HeaderFields.from_pairs(headers or [("Accept", "*/*")]),
        content_headers=HeaderFields.from_pairs(content_headers or []),
        content=content,
    ).with_content_length()


def make_response(
    body: Optional[bytes] = MOCK_BODY,
    status_code: int = 200,
    reason_phrase: str = "OK",
    headers: Optional[list[tuple[str, str]]] = None,
) -> RecordedResponse:
    content_headers = [("Content-Type", "text/plain")] if body is not None else []
    return RecordedResponse(
        status_code=status_code,
        reason_phrase=reason_phrase,
        headers=HeaderFields.from_pairs(headers or []),
        content_headers=HeaderFields.from_pairs(content_headers),
        content=body,
    ).with_content_length()


def make_exchange(url: str = "https://example.com/", body: bytes = MOCK_BODY) -> Exchange:
    return Exchange(make_request(url), make_response(body))


@pytest.fixture
def make_req() -> Callable[..., RecordedRequest]:
    """Factory for recorded requests (defaults to GET https://example.com/)."""
    return make_request


@pytest.fixture
def make_resp() -> Callable[..., RecordedResponse]:
    """Factory for recorded responses (defaults to 200 OK with MOCK_BODY)."""
    return make_response


@pytest.fixture
def make_ex() -> Callable[..., Exchange]:
    return make_exchange
