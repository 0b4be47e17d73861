"""
brief-measure client library

Records completed daily questionnaires locally and relays them to the
brief-measure collection service through a durable, single-flight
delivery queue.

Usage:
    from brief_measure import BriefMeasureApp

    async with BriefMeasureApp.from_settings() as bm:
        await bm.submit({1: 1, 2: 2, 3: 1, 4: 3, 5: 2, 6: 1, 7: 1, 8: 2, 9: 1, 10: 2})
        print(bm.status.snapshot)
"""

from .app import BriefMeasureApp
from .codec import encode_observation
from .config import Settings, get_settings
from .credentials import ApiKeyService
from .delivery import (
    BackoffPolicy,
    HttpObservationTransport,
    ObservationStatus,
    ObservationUploader,
    QueueStore,
    StatusSnapshot,
)
from .models import ApiEndpoints, QueuedObservation
from .questions import QUESTIONS, QUESTION_IDS

__version__ = "1.0.0"
__all__ = [
    "BriefMeasureApp",
    "encode_observation",
    "Settings",
    "get_settings",
    "ApiKeyService",
    "BackoffPolicy",
    "HttpObservationTransport",
    "ObservationStatus",
    "ObservationUploader",
    "QueueStore",
    "StatusSnapshot",
    "ApiEndpoints",
    "QueuedObservation",
    "QUESTIONS",
    "QUESTION_IDS",
]
