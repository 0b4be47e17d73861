"""
HTTP transport for observation delivery.

One POST per observation; status classification is left to the uploader.
"""

from __future__ import annotations

from typing import Optional

import httpx
from loguru import logger

from ..models import ObservationRequest


class HttpObservationTransport:
    """POSTs observations with httpx.AsyncClient.

    The client is created lazily so the transport can be built outside a
    running event loop.
    """

    def __init__(self, timeout: float = 30.0, client: Optional[httpx.AsyncClient] = None):
        self._timeout = timeout
        self._client = client

    def _get_client(self) -> httpx.AsyncClient:
        if self._client is None:
            self._client = httpx.AsyncClient(timeout=self._timeout)
        return self._client

    async def send(self, endpoint: str, api_key: str, request: ObservationRequest) -> int:
        response = await self._get_client().post(
            endpoint,
            content=request.model_dump_json(by_alias=True),
            headers={
                "Content-Type": "application/json",
                "Accept": "application/json",
                "Authorization": f"Bearer {api_key}",
            },
        )
        logger.debug(f"POST {endpoint} -> {response.status_code}")
        return response.status_code

    async def aclose(self) -> None:
        if self._client is not None:
            await self._client.aclose()
            self._client = None
