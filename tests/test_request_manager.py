from __future__ import annotations

import asyncio

import pytest

from core.errors import TransportError
from core.request_manager import FetchResponse, RequestManager


def test_fetch_response_status_and_json() -> None:
    assert FetchResponse(204, b"").ok
    assert not FetchResponse(404, b"").ok
    assert not FetchResponse(302, b"").ok
    assert FetchResponse(200, b'{"result": "ok"}').json() == {"result": "ok"}


def test_fetch_response_invalid_json_raises_value_error() -> None:
    with pytest.raises(ValueError):
        FetchResponse(200, b"\xff\xfe").json()


def test_get_requires_open_manager() -> None:
    manager = RequestManager(timeout=3)

    with pytest.raises(TransportError):
        asyncio.run(manager.get("https://api.test/at-home/server/x"))


def test_close_without_open_is_harmless() -> None:
    manager = RequestManager()
    asyncio.run(manager.close())
    assert manager.context is None and manager.playwright is None
