from __future__ import annotations

import asyncio
import json
from io import BytesIO
from typing import Dict, Iterable, List, Optional, Tuple

import pytest
from PIL import Image

from core.errors import TransportError
from core.request_manager import FetchResponse

API = "https://api.test"
UPLOADS = "https://uploads.test"


def make_image(width: int, height: int, fmt: str = "PNG", mode: str = "RGB", color=(200, 30, 30)) -> bytes:
    if mode == "RGBA" and len(color) == 3:
        color = (*color, 128)
    if mode == "L":
        color = 128
    buf = BytesIO()
    Image.new(mode, (width, height), color).save(buf, format=fmt)
    return buf.getvalue()


class FakeTransport:
    """In-memory Transport: feste Antworten, optionale Verzögerung pro URL."""

    def __init__(
        self,
        routes: Optional[Dict[str, Tuple[int, bytes]]] = None,
        delays: Optional[Dict[str, float]] = None,
        errors: Iterable[str] = (),
        default_delay: float = 0.0,
    ):
        self.routes: Dict[str, Tuple[int, bytes]] = dict(routes or {})
        self.delays: Dict[str, float] = dict(delays or {})
        self.errors = set(errors)
        self.default_delay = default_delay
        self.in_flight = 0
        self.peak = 0
        self.requested: List[str] = []
        self.completed: List[str] = []
        self.timeouts: List[Optional[float]] = []

    async def get(self, url: str, timeout: Optional[float] = None) -> FetchResponse:
        self.requested.append(url)
        self.timeouts.append(timeout)
        self.in_flight += 1
        self.peak = max(self.peak, self.in_flight)
        try:
            await asyncio.sleep(self.delays.get(url, self.default_delay))
            if url in self.errors:
                raise TransportError(f"connection reset: {url}")
            self.completed.append(url)
            if url not in self.routes:
                return FetchResponse(404, b"", url)
            status, body = self.routes[url]
            return FetchResponse(status, body, url)
        finally:
            self.in_flight -= 1


def manifest_url(chapter_id: str) -> str:
    return f"{API}/at-home/server/{chapter_id}"


def image_url(chapter_hash: str, filename: str, quality: str = "data") -> str:
    return f"{UPLOADS}/{quality}/{chapter_hash}/{filename}"


def add_chapter(
    transport: FakeTransport,
    chapter_id: str,
    pages: List[Tuple[str, Optional[bytes]]],
    chapter_hash: Optional[str] = None,
) -> Dict[str, str]:
    """Registriert Manifest und Bilder; ``None`` als Body = 404."""
    chapter_hash = chapter_hash or f"hash-{chapter_id}"
    payload = {
        "result": "ok",
        "baseUrl": UPLOADS,
        "chapter": {
            "hash": chapter_hash,
            "data": [name for name, _ in pages],
            "dataSaver": [name for name, _ in pages],
        },
    }
    transport.routes[manifest_url(chapter_id)] = (200, json.dumps(payload).encode("utf-8"))
    urls = {}
    for name, body in pages:
        url = image_url(chapter_hash, name)
        urls[name] = url
        if body is not None:
            transport.routes[url] = (200, body)
    return urls


@pytest.fixture
def transport() -> FakeTransport:
    return FakeTransport()
