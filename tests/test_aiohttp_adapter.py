import asyncio

import aiohttp
import pytest
from aioresponses import aioresponses

from vidgate.adapters.aiohttp_client_adapter import AioHttpClientAdapter
from vidgate.core.exceptions import TransientNetworkError

"""
Tests for AioHttpClientAdapter behavior.

The adapter only translates network-level failures; HTTP statuses are handed
back to the provider adapters, which know each provider's error payload.
- JSON bodies are parsed, anything else comes back as text.
- Error statuses (e.g. 500) are returned, not raised.
- Timeouts and connection errors become TransientNetworkError so the polling
    loop can retry on its next tick.
"""


@pytest.mark.asyncio
async def test_get_json_response():
    # Happy path: JSON is parsed and wrapped with status and headers.
    url = "http://provider.test/v1/tasks/abc"
    with aioresponses() as m:
        m.get(url, payload={"id": "abc", "status": "RUNNING"}, status=200)

        async with AioHttpClientAdapter() as client:
            response = await client.get(url, headers={"Authorization": "Bearer k"})

    assert response["status"] == 200
    assert response["body"] == {"id": "abc", "status": "RUNNING"}
    assert isinstance(response["headers"], dict)


@pytest.mark.asyncio
async def test_get_non_json_response_returns_text():
    # Providers sometimes answer with an HTML error page; the body is kept as
    # text so the provider adapter can report it as an invalid response.
    url = "http://provider.test/broken"
    with aioresponses() as m:
        m.get(url, body="<html>error</html>", status=200, headers={"Content-Type": "text/html"})

        async with AioHttpClientAdapter() as client:
            response = await client.get(url)

    assert response["status"] == 200
    assert response["body"] == "<html>error</html>"


@pytest.mark.asyncio
async def test_post_returns_500_without_raising():
    url = "http://provider.test/v1/image_to_video"
    with aioresponses() as m:
        m.post(url, status=500, body="Server Error")

        async with AioHttpClientAdapter() as client:
            response = await client.post(url, json={"promptText": "x"})

    assert response["status"] == 500
    assert response["body"] == "Server Error"


@pytest.mark.asyncio
async def test_post_sends_json_payload():
    url = "http://provider.test/ent/v2/text2video"
    with aioresponses() as m:
        m.post(url, payload={"task_id": "1"}, status=200)

        async with AioHttpClientAdapter() as client:
            await client.post(url, json={"prompt": "a cat"}, headers={"Authorization": "Token k"})

        call = next(iter(m.requests.values()))[0]
    assert call.kwargs["json"] == {"prompt": "a cat"}
    assert call.kwargs["headers"] == {"Authorization": "Token k"}


@pytest.mark.asyncio
async def test_timeout_maps_to_transient_error():
    # asyncio.TimeoutError is raised by aiohttp when ClientTimeout expires.
    url = "http://provider.test/slow"
    with aioresponses() as m:
        m.get(url, exception=asyncio.TimeoutError())

        async with AioHttpClientAdapter() as client:
            with pytest.raises(TransientNetworkError) as excinfo:
                await client.get(url)

    assert "timed out" in excinfo.value.message


@pytest.mark.asyncio
async def test_connection_error_maps_to_transient_error():
    url = "http://provider.test/down"
    with aioresponses() as m:
        m.get(url, exception=aiohttp.ClientConnectionError("connection refused"))

        async with AioHttpClientAdapter() as client:
            with pytest.raises(TransientNetworkError) as excinfo:
                await client.get(url)

    assert "connection refused" in excinfo.value.diagnostic


@pytest.mark.asyncio
async def test_post_multipart_sends_form_data():
    url = "http://upload.test/file/upload"
    with aioresponses() as m:
        m.post(url, payload={"fileName": "image_1.png"}, status=200)

        async with AioHttpClientAdapter() as client:
            response = await client.post_multipart(
                url,
                field_name="file",
                filename="image_1.png",
                content=b"\x89PNG\r\n\x1a\n",
                content_type="image/png",
            )

        call = next(iter(m.requests.values()))[0]
    assert response["body"] == {"fileName": "image_1.png"}
    assert isinstance(call.kwargs["data"], aiohttp.FormData)


@pytest.mark.asyncio
async def test_request_outside_context_manager_raises():
    client = AioHttpClientAdapter()
    with pytest.raises(RuntimeError):
        await client.get("http://provider.test/anything")


@pytest.mark.asyncio
async def test_close_is_idempotent():
    client = AioHttpClientAdapter()
    async with client:
        pass
    await client.close()
