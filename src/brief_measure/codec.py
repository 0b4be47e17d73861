"""
Observation codec.

Turns a completed answer-set (question id -> answer 1..4) into the compact
fixed-width string the collection service stores.
"""

from __future__ import annotations

from typing import Iterable, Mapping, Sequence

from .errors import IncompleteResponsesError, ObservationValidationError
from .questions import QUESTION_IDS

VALID_ANSWERS = (1, 2, 3, 4)


def encode_observation(
    responses: Mapping[int, int], question_order: Sequence[int] = QUESTION_IDS
) -> str:
    """Encode responses as one digit per question, in question_order.

    Raises:
        IncompleteResponsesError: a question is missing or out of range
    """
    digits = []
    for qid in question_order:
        answer = responses.get(qid)
        if answer is None:
            raise IncompleteResponsesError(qid)
        # bool is an int subclass; True must not encode as "1"
        if isinstance(answer, bool) or not isinstance(answer, int) or answer not in VALID_ANSWERS:
            raise IncompleteResponsesError(qid, answer)
        digits.append(chr(48 + answer))
    return "".join(digits)


def parse_answer_pairs(tokens: Iterable[str]) -> dict[int, int]:
    """Parse ``id=value`` tokens (CLI input) into a responses mapping."""
    responses: dict[int, int] = {}
    for token in tokens:
        qid, sep, value = token.partition("=")
        if not sep:
            raise ObservationValidationError(f"Expected ID=VALUE, got {token!r}")
        try:
            responses[int(qid.strip())] = int(value.strip())
        except ValueError:
            raise ObservationValidationError(f"Expected integers in {token!r}") from None
    return responses
