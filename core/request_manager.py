"""HTTP utilities for the MangaDex PDF Downloader.

This module wraps Playwright's request API (no browser needed) behind a small
``Transport`` interface so the download pipeline can be driven by anything
that answers ``get(url, timeout)``.
"""

import json
import logging
from dataclasses import dataclass
from typing import Any, Optional, Protocol

from playwright.async_api import APIRequestContext, Error as PlaywrightError, Playwright, async_playwright

from .config import DEFAULT_TIMEOUT, USER_AGENT
from .errors import TransportError

logger = logging.getLogger(__name__)


@dataclass
class FetchResponse:
    status: int
    body: bytes
    url: str = ""

    @property
    def ok(self) -> bool:
        return 200 <= self.status < 300

    def json(self) -> Any:
        return json.loads(self.body.decode("utf-8"))


class Transport(Protocol):
    async def get(self, url: str, timeout: Optional[float] = None) -> FetchResponse:
        ...


class RequestManager:
    """Manages the Playwright request context lifecycle."""

    def __init__(self, user_agent: str = USER_AGENT, timeout: float = DEFAULT_TIMEOUT):
        self.user_agent = user_agent
        self.timeout = timeout
        self.playwright: Optional[Playwright] = None
        self.context: Optional[APIRequestContext] = None

    async def open(self) -> "RequestManager":
        """Start Playwright and create the request context.

        Raises:
            TransportError: if Playwright cannot be started
        """
        logger.debug("Initialisiere Playwright-Request-Kontext")
        try:
            self.playwright = await async_playwright().start()
            self.context = await self.playwright.request.new_context(
                user_agent=self.user_agent,
                timeout=self.timeout * 1000,
            )
        except PlaywrightError as e:
            await self.close()
            raise TransportError(f"Playwright-Start fehlgeschlagen: {e}") from e
        return self

    async def close(self) -> None:
        """Clean up request context and Playwright."""
        if self.context:
            try:
                await self.context.dispose()
            except PlaywrightError as e:
                logger.debug("Request-Kontext ließ sich nicht schließen: %s", e)
        if self.playwright:
            try:
                await self.playwright.stop()
            except PlaywrightError as e:
                logger.debug("Playwright ließ sich nicht stoppen: %s", e)

        # Reset state
        self.playwright = None
        self.context = None

    async def __aenter__(self) -> "RequestManager":
        return await self.open()

    async def __aexit__(self, *exc) -> None:
        await self.close()

    async def get(self, url: str, timeout: Optional[float] = None) -> FetchResponse:
        """Issue one GET and return status and full body.

        Args:
            url: absolute URL
            timeout: seconds, defaults to the manager's timeout

        Raises:
            TransportError: on connection errors and timeouts
        """
        if self.context is None:
            raise TransportError("RequestManager ist nicht geöffnet")
        seconds = self.timeout if timeout is None else timeout
        try:
            response = await self.context.get(url, timeout=seconds * 1000)
            try:
                body = await response.body()
                return FetchResponse(status=response.status, body=body, url=response.url)
            finally:
                await response.dispose()
        except PlaywrightError as e:
            raise TransportError(f"GET {url} fehlgeschlagen: {e}") from e
