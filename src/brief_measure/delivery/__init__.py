"""Observation delivery queue

Completed answer-set -> persisted queue -> single-flight uploader with:
- QueueStore (atomic JSON document)
- BackoffPolicy (doubling delay, 60s..24h)
- ObservationStatus (immutable snapshots + subscribers)
- HttpObservationTransport (httpx)
- ObservationUploader orchestration
"""

from .types import CredentialProvider, StatusSink, ObservationTransport, Clock
from .policy import BackoffPolicy
from .store import QueueStore, QUEUE_FILENAME, atomic_write
from .status import ObservationStatus, StatusSnapshot, StatusSubscriber
from .transport import HttpObservationTransport
from .uploader import (
    ObservationUploader,
    UploaderHealth,
    RATE_LIMIT_MESSAGE,
    CONFIG_INCOMPLETE_MESSAGE,
)

__all__ = [
    # types
    "CredentialProvider",
    "StatusSink",
    "ObservationTransport",
    "Clock",
    "StatusSnapshot",
    "StatusSubscriber",
    "UploaderHealth",
    # policy
    "BackoffPolicy",
    # persistence
    "QueueStore",
    "QUEUE_FILENAME",
    "atomic_write",
    # runtime
    "ObservationStatus",
    "HttpObservationTransport",
    "ObservationUploader",
    "RATE_LIMIT_MESSAGE",
    "CONFIG_INCOMPLETE_MESSAGE",
]
