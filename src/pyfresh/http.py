"""aiohttp-backed fetch capability.

:class:`HttpFetcher` is a ready-made ``fetch(key)`` for
:class:`~pyfresh.coordinator.KeyedRequestCoordinator`: it GETs a JSON
document addressed by the key.  Cancelling the awaiting task aborts the HTTP
request, which is what the ``cancel`` supersession strategy relies on.
"""

from __future__ import annotations

import json
import logging
from typing import Any
from urllib.parse import quote

import aiohttp

from pyfresh._redact import redact_for_log
from pyfresh.config import FreshConfig
from pyfresh.exceptions import FetchTransportError

_logger = logging.getLogger(__name__)

USER_AGENT = "pyfresh"


class HttpFetcher:
    """Fetch ``{base_url}{path_template}`` as JSON for a request key.

    Usage::

        async with HttpFetcher(config, path_template="/issues/{key}") as fetch:
            coordinator = KeyedRequestCoordinator(fetch, strategy="cancel")
    """

    def __init__(
        self,
        config: FreshConfig,
        http_session: aiohttp.ClientSession | None = None,
        *,
        path_template: str = "/{key}",
    ) -> None:
        self._config = config
        self._path_template = path_template
        self._external_session = http_session is not None
        self._http = http_session

    async def __aenter__(self) -> HttpFetcher:
        if self._http is None:
            timeout = aiohttp.ClientTimeout(total=self._config.http_timeout or None)
            self._http = aiohttp.ClientSession(timeout=timeout)
        return self

    async def __aexit__(self, *exc: Any) -> None:
        await self.close()

    async def close(self) -> None:
        if not self._external_session and self._http is not None:
            await self._http.close()
        self._http = None

    def url_for(self, key: Any) -> str:
        path = self._path_template.format(key=quote(str(key), safe=""))
        return f"{self._config.base_url.rstrip('/')}{path}"

    async def __call__(self, key: Any) -> Any:
        """GET the resource for *key* and return the decoded JSON body."""
        if self._http is None:
            raise FetchTransportError(
                "Fetcher not initialized. Use 'async with HttpFetcher(...) as fetch:'",
                key=key,
            )

        url = self.url_for(key)
        headers = {"accept": "application/json", "user-agent": USER_AGENT}
        _logger.debug("GET %s", url)

        try:
            async with self._http.get(url, headers=headers) as resp:
                text = await resp.text()
                if not 200 <= resp.status < 300:
                    raise FetchTransportError(
                        f"HTTP {resp.status} from {url}: {text[:200]}",
                        key=key,
                        status_code=resp.status,
                        url=url,
                    )
        except FetchTransportError:
            raise
        except (aiohttp.ClientError, TimeoutError) as exc:
            raise FetchTransportError(f"Request to {url} failed: {exc}", key=key, url=url) from exc

        try:
            body = json.loads(text)
        except json.JSONDecodeError as exc:
            raise FetchTransportError(
                f"Invalid JSON from {url}: {text[:200]}",
                key=key,
                url=url,
            ) from exc

        if _logger.isEnabledFor(logging.DEBUG):
            _logger.debug("Response for key=%r: %s", key, redact_for_log(body))
        return body
