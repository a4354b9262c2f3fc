"""Feed protocol encoding and decoding."""

from __future__ import annotations

import json
import logging
from typing import Any

from pydantic import ValidationError

from aisview._constants import FEATURE_COLLECTION_TYPE
from aisview.exceptions import AisViewProtocolError
from aisview.models.messages import (
    ErrorMessage,
    FeatureCollectionMessage,
    ServerMessage,
    StatusMessage,
    SubscriptionRequest,
)
from aisview.models.viewport import Viewport

_logger = logging.getLogger(__name__)

_PAYLOAD_PREVIEW = 120


def _preview(raw: str | bytes) -> str:
    text = raw.decode("utf-8", errors="replace") if isinstance(raw, (bytes, bytearray)) else str(raw)
    return text[:_PAYLOAD_PREVIEW]


def encode_subscription(viewport: Viewport) -> str:
    """Serialize a subscribe request for *viewport* as compact JSON."""
    return SubscriptionRequest(viewport=viewport).to_json()


def parse_json_object(raw: str | bytes) -> dict[str, Any]:
    """Parse *raw* into a JSON object or raise :class:`AisViewProtocolError`."""
    try:
        parsed = json.loads(raw)
    except (ValueError, RecursionError) as exc:
        # Oversized integer literals raise ValueError and deep nesting RecursionError.
        raise AisViewProtocolError(
            f"Message is not JSON: {type(exc).__name__}: {exc}",
            payload=_preview(raw),
        ) from exc
    if not isinstance(parsed, dict):
        raise AisViewProtocolError(
            f"Message is JSON {type(parsed).__name__}, expected object",
            payload=_preview(raw),
        )
    return parsed


def decode_server_message(raw: str | bytes) -> ServerMessage | None:
    """Decode one server message.

    Returns ``None`` for a well-formed message of a kind this client does
    not handle, so newer servers can add message types.

    Raises
    ------
    AisViewProtocolError
        For non-JSON payloads, messages with neither a ``type`` nor a
        recognizable untyped shape, and accepted kinds with missing or
        invalid fields.
    """
    parsed = parse_json_object(raw)
    kind = parsed.get("type")

    if kind is None:
        if "error" in parsed:
            return _validate(ErrorMessage, parsed, raw)
        if "status" in parsed:
            return _validate(StatusMessage, parsed, raw)
        raise AisViewProtocolError("Message has no 'type'", payload=_preview(raw))

    if kind == FEATURE_COLLECTION_TYPE:
        return _validate(FeatureCollectionMessage, parsed, raw)

    _logger.debug("Ignoring server message type=%r", kind)
    return None


def _validate(model: Any, parsed: dict[str, Any], raw: str | bytes) -> Any:
    try:
        return model.model_validate(parsed)
    except ValidationError as exc:
        first = exc.errors()[0]
        location = ".".join(str(part) for part in first["loc"])
        raise AisViewProtocolError(
            f"Invalid {model.__name__}: {location}: {first['msg']} ({exc.error_count()} error(s))",
            payload=_preview(raw),
        ) from exc
