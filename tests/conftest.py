"""
Shared pytest fixtures and configuration for pagemirror tests.

This module provides stub page sources that record every fetch, helpers to
build chained pages, and httpx clients backed by MockTransport.
"""

import json
from collections.abc import Callable
from typing import Any

import httpx
import pytest

from pagemirror.config import ClientOptions
from pagemirror.pagination import Page


def pytest_configure(config):
    """Configure pytest markers."""
    config.addinivalue_line("markers", "unit: Unit tests with stubbed collaborators")
    config.addinivalue_line("markers", "slow: Slow tests that may take longer")


class StubPageSource:
    """
    PageFetcher over a fixed list of item batches.

    Page i is served for cursor "c{i}" (None for page 0); the last page has no
    cursor. Every call is recorded in `calls`. Cursors listed in `fail_on`
    raise the given exception instead, once.
    """

    def __init__(self, batches: list[list[Any]]) -> None:
        self.batches = batches
        self.calls: list[str | None] = []
        self.fail_on: dict[str | None, Exception] = {}

    def cursor_for(self, index: int) -> str | None:
        return None if index == 0 else f"c{index}"

    def __call__(self, cursor: str | None) -> Page[Any]:
        self.calls.append(cursor)
        if cursor in self.fail_on:
            raise self.fail_on.pop(cursor)
        index = 0 if cursor is None else int(cursor[1:])
        is_last = index == len(self.batches) - 1
        next_cursor = None if is_last else self.cursor_for(index + 1)
        return Page(items=list(self.batches[index]), next_cursor=next_cursor)

    @property
    def fetch_count(self) -> int:
        return len(self.calls)


@pytest.fixture
def make_source() -> Callable[[list[list[Any]]], StubPageSource]:
    """Factory for StubPageSource instances."""
    return StubPageSource


@pytest.fixture
def five_pages() -> StubPageSource:
    """Five pages of two string items each: a0 a1 | b0 b1 | ... | e0 e1."""
    return StubPageSource([[f"{letter}{i}" for i in range(2)] for letter in "abcde"])


class RecordingTransport:
    """
    httpx MockTransport handler that serves queued responses and records requests.

    Queue entries are (status_code, body) tuples, or exceptions to raise.
    A str body is sent verbatim; anything else is JSON encoded.
    """

    def __init__(self) -> None:
        self.requests: list[httpx.Request] = []
        self.responses: list[Any] = []

    def queue(self, status_code: int, body: Any) -> "RecordingTransport":
        self.responses.append((status_code, body))
        return self

    def queue_error(self, error: Exception) -> "RecordingTransport":
        self.responses.append(error)
        return self

    def json_bodies(self) -> list[Any]:
        return [json.loads(r.content) for r in self.requests]

    def __call__(self, request: httpx.Request) -> httpx.Response:
        self.requests.append(request)
        entry = self.responses.pop(0)
        if isinstance(entry, Exception):
            raise entry
        status_code, body = entry
        if isinstance(body, str):
            return httpx.Response(status_code, text=body)
        return httpx.Response(status_code, json=body)


@pytest.fixture
def transport() -> RecordingTransport:
    return RecordingTransport()


@pytest.fixture
def http_client(transport: RecordingTransport):
    """An httpx.Client whose requests are answered by the `transport` fixture."""
    client = httpx.Client(transport=httpx.MockTransport(transport))
    yield client
    client.close()


@pytest.fixture
def options() -> ClientOptions:
    return ClientOptions(base_url="https://music.test/sj/v2.5/", page_size=2, timeout=5.0)
