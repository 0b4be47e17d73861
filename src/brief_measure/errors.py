"""
Custom exceptions for the brief-measure client.

Delivery failures are absorbed by the uploader and surfaced as status
snapshots; credential errors propagate to the caller of the settings flows.
"""


class BriefMeasureError(Exception):
    """Base error for the brief-measure client."""

    pass


class ObservationValidationError(BriefMeasureError):
    """Malformed local answer-set. Never queued."""

    pass


class IncompleteResponsesError(ObservationValidationError):
    """A question is unanswered or its answer is outside 1..4."""

    def __init__(self, question_id: int, value: object = None):
        self.question_id = question_id
        self.value = value
        if value is None:
            msg = f"question {question_id} has no answer"
        else:
            msg = f"question {question_id} has invalid answer {value!r}"
        super().__init__(msg)


class ConfigurationIncomplete(BriefMeasureError):
    """API key or endpoint unavailable; record kept, no backoff."""

    pass


class RateLimited(BriefMeasureError):
    """Server answered 429; the record is discarded."""

    pass


class TransientDeliveryFailure(BriefMeasureError):
    """Unexpected status or transport error; retried with backoff."""

    def __init__(self, message: str, status_code: int | None = None):
        self.status_code = status_code
        super().__init__(message)


class ObservationExpired(BriefMeasureError):
    """Record aged past the retention window."""

    pass


class InvalidEndpointError(BriefMeasureError):
    """The API endpoint URL is invalid."""

    pass


class ApiKeyServiceError(BriefMeasureError):
    """Provisioning, storage or forget-me request failed."""

    pass


def classify_status(status_code: int) -> type[BriefMeasureError] | None:
    """Map an HTTP status to the delivery error it represents (None on 2xx)."""
    if 200 <= status_code <= 299:
        return None
    if status_code == 429:
        return RateLimited
    return TransientDeliveryFailure
