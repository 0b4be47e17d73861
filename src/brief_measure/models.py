"""
Pydantic data models for the brief-measure client.

Persisted and wire field names are camelCase; Python attributes are snake_case.
"""

from datetime import datetime

from pydantic import AliasChoices, BaseModel, ConfigDict, Field, field_validator

from .utils import generate_id, parse_datetime, utc_now, uuid7


class QueuedObservation(BaseModel):
    """A completed answer-set waiting for delivery."""

    model_config = ConfigDict(populate_by_name=True, frozen=True)

    id: str = Field(default_factory=generate_id)
    # "uuidv7" is what older queue files used for the idempotency key
    external_id: str = Field(
        default_factory=uuid7,
        validation_alias=AliasChoices("externalId", "uuidv7", "external_id"),
        serialization_alias="externalId",
    )
    observation: str
    created_at: datetime = Field(
        default_factory=utc_now,
        validation_alias=AliasChoices("createdAt", "created_at"),
        serialization_alias="createdAt",
    )

    @field_validator("created_at")
    @classmethod
    def _ensure_utc(cls, v):
        return parse_datetime(v)

    @field_validator("observation")
    @classmethod
    def _digits_only(cls, v):
        if not v or any(ch not in "1234" for ch in v):
            raise ValueError(f"Invalid observation payload: {v!r}")
        return v

    def request(self) -> "ObservationRequest":
        return ObservationRequest(external_id=self.external_id, observation=self.observation)


class ObservationRequest(BaseModel):
    """JSON body POSTed to the observations endpoint."""

    model_config = ConfigDict(populate_by_name=True)

    external_id: str = Field(serialization_alias="externalId")
    observation: str


class ApiEndpoints(BaseModel):
    """Canonical base URL plus the three well-known sub-paths."""

    model_config = ConfigDict(frozen=True)

    base: str
    keys: str
    observations: str
    forget_me: str


class ApiKeyResponse(BaseModel):
    """Response body of the keys endpoint."""

    api_key: str
