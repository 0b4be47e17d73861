from __future__ import annotations

from datetime import datetime
from typing import Callable, Optional, Protocol, runtime_checkable

from ..models import ApiEndpoints, ObservationRequest

Clock = Callable[[], datetime]


@runtime_checkable
class CredentialProvider(Protocol):
    """Supplies the bearer key and endpoints; both may be absent."""

    def load_api_key(self) -> Optional[str]: ...

    def endpoints(self) -> Optional[ApiEndpoints]: ...


class StatusSink(Protocol):
    """Passive observer of delivery state; never read by the uploader."""

    async def update(
        self, pending_count: int, next_retry_at: Optional[datetime], error_message: Optional[str]
    ) -> None: ...

    async def report_limit_exceeded(self, message: str) -> None: ...

    async def clear_limit_message(self) -> None: ...


class ObservationTransport(Protocol):
    """Performs one delivery attempt and returns the HTTP status code.

    Transport failures are raised (httpx.HTTPError or any other exception).
    """

    async def send(self, endpoint: str, api_key: str, request: ObservationRequest) -> int: ...

    async def aclose(self) -> None: ...
