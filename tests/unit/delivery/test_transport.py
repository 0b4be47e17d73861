"""
Unit tests for the httpx observation transport.
"""

import json

import httpx
import pytest

from brief_measure.delivery import HttpObservationTransport
from brief_measure.models import ObservationRequest

ENDPOINT = "https://collector.test/api/v1/observations"


@pytest.mark.asyncio
async def test_post_shape():
    seen = []

    def handler(request: httpx.Request) -> httpx.Response:
        seen.append(request)
        return httpx.Response(201, json={"ok": True})

    client = httpx.AsyncClient(transport=httpx.MockTransport(handler))
    transport = HttpObservationTransport(client=client)
    body = ObservationRequest(external_id="01927a1e-8f00-7abc-8def-0123456789ab", observation="1234123412")

    status_code = await transport.send(ENDPOINT, "ab" * 32, body)
    await transport.aclose()

    assert status_code == 201
    (req,) = seen
    assert req.method == "POST"
    assert str(req.url) == ENDPOINT
    assert req.headers["content-type"] == "application/json"
    assert req.headers["accept"] == "application/json"
    assert req.headers["authorization"] == "Bearer " + "ab" * 32
    assert json.loads(req.content) == {
        "externalId": "01927a1e-8f00-7abc-8def-0123456789ab",
        "observation": "1234123412",
    }


@pytest.mark.asyncio
async def test_non_2xx_is_returned_not_raised():
    client = httpx.AsyncClient(transport=httpx.MockTransport(lambda r: httpx.Response(429)))
    transport = HttpObservationTransport(client=client)
    body = ObservationRequest(external_id="x", observation="1111111111")

    assert await transport.send(ENDPOINT, "k", body) == 429
    await transport.aclose()


@pytest.mark.asyncio
async def test_transport_failure_raises_httpx_error():
    def handler(request):
        raise httpx.ConnectError("connection refused", request=request)

    client = httpx.AsyncClient(transport=httpx.MockTransport(handler))
    transport = HttpObservationTransport(client=client)
    body = ObservationRequest(external_id="x", observation="1111111111")

    with pytest.raises(httpx.HTTPError):
        await transport.send(ENDPOINT, "k", body)
    await transport.aclose()


@pytest.mark.asyncio
async def test_aclose_without_client_is_noop():
    transport = HttpObservationTransport(timeout=1.0)
    await transport.aclose()
    await transport.aclose()
