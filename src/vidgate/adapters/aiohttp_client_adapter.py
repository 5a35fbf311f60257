import asyncio
from typing import Any, Dict, Optional

import aiohttp

from vidgate.core.exceptions import TransientNetworkError
from vidgate.core.interfaces.http_client import HttpClientPort
from vidgate.core.settings import logger


class AioHttpClientAdapter(HttpClientPort):
    def __init__(self, default_timeout: float = 60.0, sock_connect: float = 10.0):
        self._session: Optional[aiohttp.ClientSession] = None
        self._default_total = default_timeout
        self._default_sock_connect = sock_connect
        self._default_client_timeout = aiohttp.ClientTimeout(
            total=self._default_total,
            sock_connect=self._default_sock_connect,
        )

    async def __aenter__(self):
        """Async context manager entry"""
        self._session = aiohttp.ClientSession()
        return self

    async def __aexit__(self, exc_type, exc_val, exc_tb):
        """Async context manager exit"""
        await self.close()
        return False

    def _client_timeout(self, timeout: float | None) -> aiohttp.ClientTimeout:
        if timeout is None:
            return self._default_client_timeout
        return aiohttp.ClientTimeout(total=timeout, sock_connect=self._default_sock_connect)

    def _require_session(self) -> aiohttp.ClientSession:
        if self._session is None:
            raise RuntimeError("HTTP client not initialized. Use 'async with' context manager.")
        return self._session

    async def get(
        self,
        url: str,
        headers: Dict[str, str] | None = None,
        timeout: float | None = None,
    ) -> Dict[str, Any]:
        return await self._request("GET", url, headers=headers, timeout=timeout)

    async def post(
        self,
        url: str,
        json: Dict[str, Any] | None,
        headers: Dict[str, str] | None = None,
        timeout: float | None = None,
    ) -> Dict[str, Any]:
        return await self._request("POST", url, headers=headers, timeout=timeout, json=json)

    async def post_multipart(
        self,
        url: str,
        field_name: str,
        filename: str,
        content: bytes,
        content_type: str,
        headers: Dict[str, str] | None = None,
        timeout: float | None = None,
    ) -> Dict[str, Any]:
        form = aiohttp.FormData()
        form.add_field(field_name, content, filename=filename, content_type=content_type)
        return await self._request("POST", url, headers=headers, timeout=timeout, data=form)

    async def _request(
        self,
        method: str,
        url: str,
        headers: Dict[str, str] | None,
        timeout: float | None,
        **kwargs,
    ) -> Dict[str, Any]:
        """Perform one request and translate network failures.

        HTTP error statuses are left to the caller, which knows the
        provider-specific error payload.
        """
        session = self._require_session()
        try:
            async with session.request(
                method,
                url,
                headers=headers,
                timeout=self._client_timeout(timeout),
                **kwargs,
            ) as response:
                try:
                    body = await response.json()
                except (aiohttp.ContentTypeError, ValueError):
                    # Not JSON; hand back the text and let the caller decide
                    body = await response.text()

                logger.debug(f"[http] {method} {url} status={response.status}")
                return {
                    "status": response.status,
                    "headers": dict(response.headers),
                    "body": body,
                }

        except asyncio.TimeoutError as timeout_error:
            logger.warning("[http] timeout %s %s", method, url)
            raise TransientNetworkError(
                "The request to the provider timed out.",
                diagnostic=f"{method} {url}",
            ) from timeout_error

        except aiohttp.ClientError as client_error:
            logger.warning("[http] connection error %s %s: %s", method, url, str(client_error))
            raise TransientNetworkError(
                "There was a connection error with the provider.",
                diagnostic=str(client_error),
            ) from client_error

    async def close(self) -> None:
        """Close the session"""
        if self._session and not self._session.closed:
            await self._session.close()
        self._session = None
