"""
Delivery status reporting.

The uploader pushes immutable StatusSnapshot values into ObservationStatus;
any number of observers (CLI, UI) read the latest snapshot or subscribe to
changes. The uploader never reads status back.
"""

from __future__ import annotations

from dataclasses import dataclass, replace
from datetime import datetime
from typing import Optional, Protocol

from loguru import logger


@dataclass(frozen=True)
class StatusSnapshot:
    """Immutable view of delivery state.

    Attributes:
        pending_count: Observations still queued
        next_retry_at: When the scheduled retry fires (None if none pending)
        last_error: Last human-readable failure, None after a success
        limit_message: Set while the server's rate limit message is active
    """

    pending_count: int = 0
    next_retry_at: Optional[datetime] = None
    last_error: Optional[str] = None
    limit_message: Optional[str] = None

    @property
    def idle(self) -> bool:
        return self.pending_count == 0 and self.next_retry_at is None

    def to_dict(self) -> dict:
        return {
            "pending_count": self.pending_count,
            "next_retry_at": self.next_retry_at.isoformat() if self.next_retry_at else None,
            "last_error": self.last_error,
            "limit_message": self.limit_message,
        }


class StatusSubscriber(Protocol):
    """Async callable receiving each new StatusSnapshot."""

    async def __call__(self, snapshot: StatusSnapshot) -> None: ...


class ObservationStatus:
    """Status sink holding the latest snapshot and fanning it out.

    Subscribers are called in registration order; one subscriber's failure
    does not affect others (best-effort delivery).

    Example:
        status = ObservationStatus()

        async def on_status(snapshot: StatusSnapshot):
            print(snapshot.pending_count, snapshot.last_error)

        status.subscribe(on_status)
    """

    def __init__(self) -> None:
        self._snapshot = StatusSnapshot()
        self._subs: list[StatusSubscriber] = []

    @property
    def snapshot(self) -> StatusSnapshot:
        return self._snapshot

    def subscribe(self, callback: StatusSubscriber) -> None:
        if callback not in self._subs:
            self._subs.append(callback)
            logger.debug(f"Status subscriber added (total: {len(self._subs)})")

    def unsubscribe(self, callback: StatusSubscriber) -> None:
        """No-op if callback not found (safe to call multiple times)."""
        try:
            self._subs.remove(callback)
            logger.debug(f"Status subscriber removed (total: {len(self._subs)})")
        except ValueError:
            pass

    async def update(
        self, pending_count: int, next_retry_at: Optional[datetime], error_message: Optional[str]
    ) -> None:
        await self._publish(
            replace(
                self._snapshot,
                pending_count=pending_count,
                next_retry_at=next_retry_at,
                last_error=error_message,
            )
        )

    async def report_limit_exceeded(self, message: str) -> None:
        await self._publish(replace(self._snapshot, limit_message=message, last_error=message))

    async def clear_limit_message(self) -> None:
        limit = self._snapshot.limit_message
        if limit is None:
            return
        error = None if self._snapshot.last_error == limit else self._snapshot.last_error
        await self._publish(replace(self._snapshot, limit_message=None, last_error=error))

    async def _publish(self, snapshot: StatusSnapshot) -> None:
        self._snapshot = snapshot
        if not self._subs:
            return

        logger.debug(
            f"Publishing status: pending={snapshot.pending_count} "
            f"next_retry={snapshot.next_retry_at} error={snapshot.last_error}"
        )

        # Iterate over copy to allow unsubscribe during iteration
        for callback in list(self._subs):
            try:
                await callback(snapshot)
            except Exception as exc:
                logger.debug(f"Status subscriber error (ignored): {type(exc).__name__}: {exc}")

    @property
    def subscriber_count(self) -> int:
        return len(self._subs)
