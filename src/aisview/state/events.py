"""Observability events emitted by the subscription client."""

from __future__ import annotations

from datetime import UTC, datetime
from enum import StrEnum

from pydantic import Field, field_validator

from aisview.models._base import AisBaseModel
from aisview.models.viewport import Viewport
from aisview.state.connection import ConnectionState


class ClientEventKind(StrEnum):
    OPENED = "opened"
    SUBSCRIBED = "subscribed"
    ACKNOWLEDGED = "acknowledged"
    SNAPSHOT = "snapshot"
    PROTOCOL_ERROR = "protocol_error"
    SERVER_ERROR = "server_error"
    ERROR = "error"
    CLOSED = "closed"
    RECONNECT_SCHEDULED = "reconnect_scheduled"
    PERSISTENT_FAILURE = "persistent_failure"
    STOPPED = "stopped"


class ClientEvent(AisBaseModel):
    """One lifecycle or protocol event, as delivered to observers."""

    kind: ClientEventKind
    generation: int
    state: ConnectionState
    observed_at: datetime = Field(default_factory=lambda: datetime.now(UTC))
    viewport: Viewport | None = None
    message: str = ""
    close_code: int | None = None
    expected: bool = False
    attempt: int | None = None
    delay: float | None = None
    target_count: int | None = None

    @field_validator("observed_at")
    @classmethod
    def _ensure_tz_aware(cls, value: datetime) -> datetime:
        if value.tzinfo is None:
            return value.replace(tzinfo=UTC)
        return value
