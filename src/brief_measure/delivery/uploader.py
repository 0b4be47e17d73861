"""
Observation uploader: the durable delivery queue.

Owns the in-memory queue of pending observations and drains it in FIFO
order, one POST at a time:

- every mutation is persisted through QueueStore before it is reported
- at most one drain loop runs at a time (single flight)
- retriable failures schedule one cancelable retry with doubling backoff
- observations older than the retention window are dropped, never sent
- 429 discards the head observation and stops the pass without backoff
"""

from __future__ import annotations

import asyncio
from dataclasses import dataclass
from datetime import datetime, timedelta
from typing import Mapping, Optional, Sequence

from loguru import logger

from ..codec import encode_observation
from ..errors import (
    ConfigurationIncomplete,
    ObservationExpired,
    ObservationValidationError,
    RateLimited,
    TransientDeliveryFailure,
    classify_status,
)
from ..metrics import metrics_registry
from ..models import QueuedObservation
from ..questions import QUESTION_IDS
from ..utils import utc_now
from .policy import BackoffPolicy
from .store import QueueStore
from .types import Clock, CredentialProvider, ObservationTransport, StatusSink

RATE_LIMIT_MESSAGE = "You are answering too quickly. Please wait before submitting again."
CONFIG_INCOMPLETE_MESSAGE = "Upload configuration incomplete."
EXPIRED_MESSAGE = "Dropped an expired upload."

DEFAULT_RETENTION_SECONDS = 86_400.0


@dataclass(frozen=True)
class UploaderHealth:
    pending: int
    uploading: bool
    current_backoff: float
    retry_scheduled: bool
    next_retry_at: Optional[datetime]
    last_error: Optional[str]


def _describe(exc: BaseException) -> str:
    return str(exc) or type(exc).__name__


class ObservationUploader:
    """Single owner of the pending observation queue.

    All public methods are coroutines that never raise delivery failures to
    the caller; outcomes are published to the status sink.

    Example:
        async with ObservationUploader(store, credentials, status, transport) as uploader:
            await uploader.enqueue({1: 2, 2: 1, ...})
            print(status.snapshot.pending_count)
    """

    def __init__(
        self,
        store: QueueStore,
        credentials: CredentialProvider,
        status: StatusSink,
        transport: ObservationTransport,
        *,
        backoff: Optional[BackoffPolicy] = None,
        retention_seconds: float = DEFAULT_RETENTION_SECONDS,
        clock: Clock = utc_now,
        question_order: Sequence[int] = QUESTION_IDS,
    ):
        if retention_seconds <= 0:
            raise ValueError("retention_seconds must be > 0")

        self._store = store
        self._credentials = credentials
        self._status = status
        self._transport = transport
        self._backoff = backoff or BackoffPolicy()
        self._retention = timedelta(seconds=retention_seconds)
        self._clock = clock
        self._question_order = tuple(question_order)

        self._queue: list[QueuedObservation] = store.load()
        self._uploading = False
        self._retry_task: Optional[asyncio.Task] = None
        self._next_retry_at: Optional[datetime] = None
        self._last_error: Optional[str] = None

        metrics_registry.queue_depth.set(len(self._queue))

    # ---------- lifecycle

    async def __aenter__(self) -> "ObservationUploader":
        await self.start()
        return self

    async def __aexit__(self, exc_type, exc, tb) -> None:
        await self.aclose()

    async def start(self) -> None:
        """Publish the initial status for the queue loaded from disk."""
        if self._queue:
            logger.info(f"Observation uploader started with {len(self._queue)} pending")
        await self._report(None, None)

    async def aclose(self) -> None:
        """Cancel any scheduled retry and release the transport."""
        self._cancel_retry()
        await self._transport.aclose()

    # ---------- triggers

    async def enqueue(self, responses: Mapping[int, int]) -> Optional[QueuedObservation]:
        """Queue a completed answer-set and try to deliver it.

        Returns the queued observation, or None when the answer-set is invalid
        (logged and dropped; never raised).
        """
        try:
            observation = encode_observation(responses, self._question_order)
        except ObservationValidationError as e:
            logger.warning(f"Observation upload skipped: invalid response set ({e})")
            metrics_registry.dropped_total.labels(reason="invalid").inc()
            return None

        record = QueuedObservation(observation=observation, created_at=self._clock())
        self._queue.append(record)
        self._persist()
        metrics_registry.enqueued_total.inc()
        logger.info(f"Queued observation {record.external_id} ({len(self._queue)} pending)")

        await self._status.clear_limit_message()
        await self._report(None, None)
        await self.drain()
        return record

    async def retry_now(self) -> None:
        """Manual retry; supersedes the scheduled retry but keeps the backoff."""
        await self.drain()

    async def configuration_did_change(self) -> None:
        """Credential or endpoint replaced: the old backoff no longer applies."""
        self._cancel_retry()
        self._backoff.reset()
        await self.drain()

    async def clear_queue(self) -> None:
        """Drop every pending observation (used after the account is deleted)."""
        dropped = len(self._queue)
        self._queue.clear()
        self._persist()
        self._cancel_retry()
        self._backoff.reset()
        self._last_error = None
        if dropped:
            metrics_registry.dropped_total.labels(reason="cleared").inc(dropped)
            logger.info(f"Cleared {dropped} pending observation(s)")
        await self._status.clear_limit_message()
        await self._report(None, None)

    async def drain(self) -> None:
        """Deliver queued observations until empty, halted or failed.

        Safe to call redundantly: overlapping calls collapse into the loop
        already running, which re-reads the queue head on every iteration.
        """
        if not self._queue:
            await self._report(None, self._last_error)
            return
        if self._uploading:
            return

        self._uploading = True
        self._cancel_retry()
        try:
            await self._drain_loop()
        finally:
            self._uploading = False

    async def run_until_idle(self) -> None:
        """Drain, then keep waiting on scheduled retries until none is left."""
        await self.drain()
        while self._queue:
            task = self._retry_task
            if task is None:
                break
            await asyncio.wait({task})

    # ---------- inspection

    @property
    def pending(self) -> tuple[QueuedObservation, ...]:
        return tuple(self._queue)

    @property
    def uploading(self) -> bool:
        return self._uploading

    @property
    def current_backoff(self) -> float:
        return self._backoff.current

    @property
    def last_error(self) -> Optional[str]:
        return self._last_error

    @property
    def retry_scheduled(self) -> bool:
        return self._retry_task is not None and not self._retry_task.done()

    def health(self) -> UploaderHealth:
        return UploaderHealth(
            pending=len(self._queue),
            uploading=self._uploading,
            current_backoff=self._backoff.current,
            retry_scheduled=self.retry_scheduled,
            next_retry_at=self._next_retry_at,
            last_error=self._last_error,
        )

    # ---------- internals

    async def _drain_loop(self) -> None:
        self._prune_expired()
        await self._report(None, self._last_error)

        while self._queue:
            head = self._queue[0]

            try:
                await self._deliver(head)
            except ObservationExpired as e:
                self._remove_head(head)
                metrics_registry.dropped_total.labels(reason="expired").inc()
                self._last_error = str(e)
                await self._report(None, self._last_error)
                continue
            except ConfigurationIncomplete as e:
                logger.warning(f"Observation upload halted: {e}")
                self._last_error = str(e)
                await self._report(None, self._last_error)
                return
            except RateLimited as e:
                logger.warning("Observation upload rejected with 429 Too Many Requests")
                metrics_registry.deliveries_total.labels(outcome="rate_limited").inc()
                self._last_error = str(e)
                removed = self._remove_head(head)
                self._backoff.reset()
                await self._report(None, self._last_error)
                if removed:
                    await self._status.report_limit_exceeded(str(e))
                return
            except TransientDeliveryFailure as e:
                logger.error(f"Observation upload failed: {e}")
                metrics_registry.deliveries_total.labels(outcome="failed").inc()
                self._last_error = str(e)
                await self._report(None, self._last_error)
                await self._schedule_retry()
                return

            metrics_registry.deliveries_total.labels(outcome="delivered").inc()
            logger.success(f"Delivered observation {head.external_id}")
            self._remove_head(head)
            self._last_error = None
            await self._status.clear_limit_message()
            await self._report(None, None)
            self._backoff.reset()

        self._backoff.reset()
        await self._report(None, self._last_error)

    async def _deliver(self, record: QueuedObservation) -> None:
        """One delivery attempt; raises the delivery error for any non-2xx outcome."""
        # time can move past the retention window between iterations
        if self._is_expired(record, self._clock()):
            raise ObservationExpired(EXPIRED_MESSAGE)

        try:
            api_key = self._credentials.load_api_key()
            endpoints = self._credentials.endpoints()
        except Exception:
            logger.exception("Credential provider failed")
            raise ConfigurationIncomplete(CONFIG_INCOMPLETE_MESSAGE) from None
        if not api_key or endpoints is None:
            raise ConfigurationIncomplete(CONFIG_INCOMPLETE_MESSAGE)

        try:
            with metrics_registry.delivery_latency.time():
                status_code = await self._transport.send(
                    endpoints.observations, api_key, record.request()
                )
        except Exception as e:
            raise TransientDeliveryFailure(f"Upload error: {_describe(e)}") from e

        error_type = classify_status(status_code)
        if error_type is RateLimited:
            raise RateLimited(RATE_LIMIT_MESSAGE)
        if error_type is not None:
            raise TransientDeliveryFailure(
                f"Upload failed with status {status_code}.", status_code=status_code
            )

    def _remove_head(self, record: QueuedObservation) -> bool:
        # clear_queue() may have emptied the queue while a request was in flight
        if not self._queue or self._queue[0].id != record.id:
            return False
        self._queue.pop(0)
        self._persist()
        return True

    def _is_expired(self, record: QueuedObservation, now: datetime) -> bool:
        return now - record.created_at > self._retention

    def _prune_expired(self) -> None:
        now = self._clock()
        kept = [r for r in self._queue if not self._is_expired(r, now)]
        dropped = len(self._queue) - len(kept)
        if not dropped:
            return

        self._queue[:] = kept
        self._persist()
        metrics_registry.dropped_total.labels(reason="expired").inc(dropped)
        self._last_error = f"Dropped {dropped} expired upload{'' if dropped == 1 else 's'}."
        logger.warning(self._last_error)

    async def _schedule_retry(self) -> None:
        if not self._queue:
            return

        self._cancel_retry()
        delay = self._backoff.advance()
        self._next_retry_at = self._clock() + timedelta(seconds=delay)
        self._retry_task = asyncio.create_task(self._retry_after(delay))
        logger.info(f"Next upload attempt in {delay:.0f}s ({len(self._queue)} pending)")
        await self._report(self._next_retry_at, self._last_error)

    async def _retry_after(self, delay: float) -> None:
        await asyncio.sleep(delay)
        self._retry_task = None
        self._next_retry_at = None
        await self.drain()

    def _cancel_retry(self) -> None:
        """Cancel the scheduled retry, if any (no-op otherwise)."""
        task = self._retry_task
        self._retry_task = None
        self._next_retry_at = None
        if task is not None and not task.done():
            task.cancel()

    def _persist(self) -> None:
        self._store.save(self._queue)
        metrics_registry.queue_depth.set(len(self._queue))

    async def _report(self, next_retry_at: Optional[datetime], error: Optional[str]) -> None:
        await self._status.update(len(self._queue), next_retry_at, error)
