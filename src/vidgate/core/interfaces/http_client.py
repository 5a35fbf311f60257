from abc import ABC, abstractmethod
from typing import Any, Dict


class HttpClientPort(ABC):
    """Async HTTP client shared by every provider adapter.

    All request methods return a dict with keys 'status' (int), 'headers'
    (dict) and 'body' (parsed JSON, or raw text when the body is not JSON).
    Non-2xx statuses are returned, not raised; timeouts and connection loss
    raise TransientNetworkError.
    """

    @abstractmethod
    async def __aenter__(self) -> "HttpClientPort":
        """Async context manager entry method"""
        pass

    @abstractmethod
    async def __aexit__(self, exc_type, exc_val, exc_tb):
        """Async context manager exit method"""
        pass

    @abstractmethod
    async def get(
        self,
        url: str,
        headers: Dict[str, str] | None = None,
        timeout: float | None = None,
    ) -> Dict[str, Any]:
        pass

    @abstractmethod
    async def post(
        self,
        url: str,
        json: Dict[str, Any] | None,
        headers: Dict[str, str] | None = None,
        timeout: float | None = None,
    ) -> Dict[str, Any]:
        pass

    @abstractmethod
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
        """Upload a single file as multipart/form-data."""
        pass

    @abstractmethod
    async def close(self) -> None:
        """Close the HTTP client session"""
        pass
