"""HTTP fetcher with rotating browser identity."""

from __future__ import annotations

import contextlib
import logging
import random
from collections.abc import AsyncIterator, Sequence
from types import TracebackType

import httpx

from propcrawl.config import settings
from propcrawl.services.scrapers.utils import build_browser_headers
from propcrawl.utils.exceptions import FetchError

logger = logging.getLogger(__name__)


class Fetcher:
    """Fetches page bodies as text.

    Each request draws its User-Agent uniformly from the identity pool.
    Transport failures raise :class:`FetchError`; HTTP error statuses do not,
    because block pages arrive as 403/429 HTML and the extractor classifies
    them. There is no internal retry.

    Use as an async context manager to share one ``httpx.AsyncClient``::

        async with Fetcher() as fetcher:
            html = await fetcher.fetch(url)

    Without the context manager a one-off client is created per request.
    """

    def __init__(
        self,
        user_agents: Sequence[str] | None = None,
        *,
        timeout: float | None = None,
        client: httpx.AsyncClient | None = None,
        rng: random.Random | None = None,
    ) -> None:
        pool = list(user_agents if user_agents is not None else settings.user_agents)
        if not pool:
            raise ValueError("user agent pool must not be empty")
        self._user_agents = pool
        self._timeout = timeout if timeout is not None else settings.fetch_timeout_seconds
        self._rng = rng or random.Random()
        # A caller-supplied client is never closed here
        self._external_http = client
        self._shared_http: httpx.AsyncClient | None = None

    # -- async context manager -------------------------------------------------

    async def __aenter__(self) -> Fetcher:
        if self._shared_http is not None:
            raise RuntimeError("Fetcher context manager is not reentrant")
        if self._external_http is None:
            self._shared_http = self._new_client()
        return self

    async def __aexit__(
        self,
        exc_type: type[BaseException] | None,
        exc_val: BaseException | None,
        exc_tb: TracebackType | None,
    ) -> None:
        if self._shared_http is not None:
            await self._shared_http.aclose()
            self._shared_http = None

    # -- public API ------------------------------------------------------------

    def pick_user_agent(self) -> str:
        return self._rng.choice(self._user_agents)

    def build_headers(self, overrides: dict[str, str] | None = None) -> dict[str, str]:
        return build_browser_headers(self.pick_user_agent(), overrides)

    async def fetch(
        self,
        url: str,
        *,
        method: str = "GET",
        headers: dict[str, str] | None = None,
        content: str | bytes | None = None,
    ) -> str:
        """Issue one request and return the decoded body."""
        request_headers = self.build_headers(headers)
        logger.info("%s %s", method, url)
        logger.debug("Request headers: %s", request_headers)

        async with self._http_client() as http:
            try:
                response = await http.request(
                    method, url, headers=request_headers, content=content
                )
                body = response.text
            except httpx.HTTPError as e:
                logger.error("Request to %s failed: %s", url, e)
                raise FetchError(url, e) from e
            except UnicodeDecodeError as e:
                logger.error("Could not decode response from %s: %s", url, e)
                raise FetchError(url, e) from e

        if response.is_error:
            logger.warning("%s returned HTTP %d", url, response.status_code)
        else:
            logger.info("%s returned HTTP %d (%d chars)", url, response.status_code, len(body))
        return body

    # -- internals -------------------------------------------------------------

    def _new_client(self) -> httpx.AsyncClient:
        return httpx.AsyncClient(timeout=self._timeout, follow_redirects=True)

    @contextlib.asynccontextmanager
    async def _http_client(self) -> AsyncIterator[httpx.AsyncClient]:
        """Yield the injected or shared client, or a temporary one-off client."""
        if self._external_http is not None:
            yield self._external_http
        elif self._shared_http is not None:
            yield self._shared_http
        else:
            async with self._new_client() as http:
                yield http
