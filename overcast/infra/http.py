from __future__ import annotations

from dataclasses import dataclass
from typing import Any

import aiohttp
from loguru import logger

# ─── Errors ──────────────────────────────────────────────────────────


@dataclass(frozen=True, slots=True)
class HttpError(Exception):
    status: int
    body: str

    def __str__(self) -> str:
        return f"HTTP {self.status}: {self.body}"


# ─── Client ──────────────────────────────────────────────────────────


class HttpClient:
    """Thin aiohttp wrapper returning decoded JSON bodies.

    Status codes >= 400, undecodable bodies and transport failures raise
    ``HttpError``; a transport failure carries status 0.
    """

    def __init__(
        self,
        base_url: str,
        *,
        timeout: float = 30,
        default_headers: dict[str, str] | None = None,
    ) -> None:
        self._base_url = base_url.rstrip("/")
        self._timeout = aiohttp.ClientTimeout(total=timeout)
        self._default_headers = {"Accept": "application/json", **(default_headers or {})}
        self._session: aiohttp.ClientSession | None = None
        self._log = logger.bind(component="http")

    def _url(self, path: str) -> str:
        return f"{self._base_url}{path}"

    async def _ensure_session(self) -> aiohttp.ClientSession:
        if self._session is None or self._session.closed:
            self._session = aiohttp.ClientSession(timeout=self._timeout)
        return self._session

    async def request(
        self,
        method: str,
        path: str = "/",
        *,
        params: dict[str, Any] | None = None,
        data: dict[str, Any] | None = None,
    ) -> Any:
        session = await self._ensure_session()
        self._log.debug("{method} {path}", method=method, path=path)

        try:
            async with session.request(
                method,
                self._url(path),
                headers=self._default_headers,
                params=params,
                data=data,
            ) as resp:
                if resp.status >= 400:
                    body = await resp.text()
                    self._log.warning(
                        "HTTP {status} from {url}: {body}",
                        status=resp.status, url=str(resp.url), body=body[:500],
                    )
                    raise HttpError(status=resp.status, body=body)
                raw = await resp.read()
                if not raw:
                    return None
                try:
                    return await resp.json(content_type=None)
                except ValueError as e:
                    body = raw.decode(errors="replace")
                    self._log.warning(
                        "Undecodable body from {url}: {body}", url=str(resp.url), body=body[:500],
                    )
                    raise HttpError(status=resp.status, body=f"invalid JSON: {body[:200]}") from e
        except aiohttp.ClientResponseError as e:
            raise HttpError(status=e.status, body=e.message) from e
        except (aiohttp.ClientError, TimeoutError) as e:
            raise HttpError(status=0, body=str(e) or type(e).__name__) from e

    # ─── Lifecycle ───────────────────────────────────────────────────

    async def close(self) -> None:
        if self._session and not self._session.closed:
            self._log.debug("Closing HTTP session")
            await self._session.close()

    async def __aenter__(self) -> HttpClient:
        await self._ensure_session()
        return self

    async def __aexit__(self, *_: Any) -> None:
        await self.close()
