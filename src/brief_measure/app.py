"""
Composition root.

Builds the delivery stack from Settings and implements the account flows
that touch it: registering a key, changing the endpoint and forgetting
the account.
"""

from __future__ import annotations

from typing import Mapping, Optional

from loguru import logger

from .config import Settings, get_settings
from .credentials import ApiKeyService
from .delivery import (
    BackoffPolicy,
    HttpObservationTransport,
    ObservationStatus,
    ObservationUploader,
    QueueStore,
)
from .errors import ApiKeyServiceError
from .models import ApiEndpoints, QueuedObservation

KEY_EXISTS_MESSAGE = "Please use Forget Me before requesting a new API key."
MISSING_KEY_MESSAGE = "No API key is stored."


class BriefMeasureApp:
    """Holds the one uploader of the process and its collaborators."""

    def __init__(
        self,
        credentials: ApiKeyService,
        uploader: ObservationUploader,
        status: ObservationStatus,
    ):
        self.credentials = credentials
        self.uploader = uploader
        self.status = status

    @classmethod
    def from_settings(cls, settings: Optional[Settings] = None) -> "BriefMeasureApp":
        settings = settings or get_settings()
        data_dir = settings.data_dir

        credentials = ApiKeyService(
            data_dir, settings.API_BASE_URL, timeout=settings.REQUEST_TIMEOUT_SECONDS
        )
        status = ObservationStatus()
        uploader = ObservationUploader(
            QueueStore.in_dir(data_dir),
            credentials,
            status,
            HttpObservationTransport(timeout=settings.REQUEST_TIMEOUT_SECONDS),
            backoff=BackoffPolicy(settings.RETRY_BASE_SECONDS, settings.RETRY_MAX_SECONDS),
            retention_seconds=settings.RETENTION_SECONDS,
        )
        logger.debug(f"brief-measure data dir: {data_dir}")
        return cls(credentials, uploader, status)

    async def __aenter__(self) -> "BriefMeasureApp":
        await self.uploader.start()
        return self

    async def __aexit__(self, exc_type, exc, tb) -> None:
        await self.uploader.aclose()

    async def submit(self, responses: Mapping[int, int]) -> Optional[QueuedObservation]:
        return await self.uploader.enqueue(responses)

    async def register(self, endpoint_input: Optional[str] = None) -> str:
        """Request and store a new API key; returns it.

        Raises:
            InvalidEndpointError: endpoint_input cannot be parsed
            ApiKeyServiceError: a key already exists or the request failed
        """
        endpoints = self._resolve_endpoints(endpoint_input)
        await self._persist_base(endpoints)

        if self.credentials.load_api_key() is not None:
            raise ApiKeyServiceError(KEY_EXISTS_MESSAGE)

        api_key = await self.credentials.fetch_api_key(endpoints.keys)
        self.credentials.store_api_key(api_key)
        logger.success(f"Stored new API key for {endpoints.base}")
        await self.uploader.configuration_did_change()
        return api_key

    async def change_endpoint(self, raw: str) -> ApiEndpoints:
        endpoints = ApiKeyService.derive_endpoints(raw)
        await self._persist_base(endpoints)
        return endpoints

    async def forget_me(self, endpoint_input: Optional[str] = None) -> None:
        """Delete the remote account, then the local key and queue."""
        endpoints = self._resolve_endpoints(endpoint_input)
        api_key = self.credentials.load_api_key()
        if api_key is None:
            raise ApiKeyServiceError(MISSING_KEY_MESSAGE)

        await self._persist_base(endpoints)
        await self.credentials.forget_me(endpoints.forget_me, api_key)
        self.credentials.delete_api_key()
        await self.uploader.clear_queue()
        logger.success("Forget-me completed. Stored data removed.")

    def _resolve_endpoints(self, endpoint_input: Optional[str]) -> ApiEndpoints:
        return ApiKeyService.derive_endpoints(endpoint_input or self.credentials.base_url)

    async def _persist_base(self, endpoints: ApiEndpoints) -> None:
        if endpoints.base == self.credentials.base_url:
            return
        self.credentials.set_base_url(endpoints.base)
        await self.uploader.configuration_did_change()
