from __future__ import annotations

import json
from datetime import UTC, datetime

import pytest
from conftest import feature_collection, vessel

from aisview._protocol import decode_server_message, encode_subscription, parse_json_object
from aisview.exceptions import AisViewProtocolError
from aisview.ingestion.features import snapshot_from_message
from aisview.models.messages import ErrorMessage, FeatureCollectionMessage, StatusMessage
from aisview.models.viewport import Viewport


def _dt() -> datetime:
    return datetime(2026, 1, 1, tzinfo=UTC)


def test_encode_subscription_is_compact_json() -> None:
    payload = encode_subscription(Viewport.from_bounds([[-72, 44], [-68, 38]]))

    assert payload == '{"type":"subscribe","boundingBox":[[-72.0,44.0],[-68.0,38.0]]}'
    assert json.loads(payload)["boundingBox"] == [[-72, 44], [-68, 38]]


def test_decode_feature_collection() -> None:
    raw = json.dumps(feature_collection(vessel(367000001, -70.5, 41.2, heading=90, shipName="ORCA")))

    message = decode_server_message(raw)

    assert isinstance(message, FeatureCollectionMessage)
    assert message.features[0].geometry.longitude == -70.5
    assert message.features[0].properties["shipName"] == "ORCA"


def test_decode_accepts_bytes() -> None:
    message = decode_server_message(json.dumps(feature_collection()).encode())
    assert isinstance(message, FeatureCollectionMessage)
    assert message.features == []


def test_decode_status_and_error_messages() -> None:
    status = decode_server_message('{"status":"subscribed"}')
    error = decode_server_message('{"error":"Invalid JSON"}')

    assert isinstance(status, StatusMessage)
    assert status.status == "subscribed"
    assert isinstance(error, ErrorMessage)
    assert error.error == "Invalid JSON"


def test_unknown_message_type_is_ignored() -> None:
    assert decode_server_message('{"type":"heartbeat","at":1}') is None


@pytest.mark.parametrize(
    "raw",
    [
        "not json",
        b"\xff\xfe",
        "[]",
        '"text"',
        '{"hello": "world"}',
        '{"type":"FeatureCollection"}',
        '{"type":"FeatureCollection","features":[{"geometry":{"type":"Polygon","coordinates":[]}}]}',
        '{"type":"FeatureCollection","features":[{"geometry":{"type":"Point","coordinates":[1]}}]}',
        pytest.param('{"type":"ping","n":' + "1" * 5000 + "}", id="oversized-integer"),
        pytest.param("[" * 200_000 + "]" * 200_000, id="deep-nesting"),
    ],
)
def test_malformed_messages_raise_protocol_error(raw) -> None:
    with pytest.raises(AisViewProtocolError) as excinfo:
        decode_server_message(raw)
    assert excinfo.value.payload


def test_parse_json_object_reports_type() -> None:
    with pytest.raises(AisViewProtocolError, match="expected object"):
        parse_json_object("[1, 2]")


def test_snapshot_from_message_uses_feature_id_then_mmsi() -> None:
    with_id = vessel(111, -70.0, 40.0)
    with_id["id"] = "vessel-a"
    message = FeatureCollectionMessage.model_validate(feature_collection(with_id, vessel(222, -70.1, 40.1)))

    snapshot = snapshot_from_message(message, generation=4, received_at=_dt())

    assert [target.target_id for target in snapshot.targets] == ["vessel-a", "222"]
    assert [target.mmsi for target in snapshot.targets] == [111, 222]
    assert snapshot.generation == 4
    assert snapshot.received_at == _dt()


def test_snapshot_from_message_rejects_feature_without_identity() -> None:
    anonymous = {"type": "Feature", "geometry": {"type": "Point", "coordinates": [-70.0, 40.0]}, "properties": None}
    message = FeatureCollectionMessage.model_validate(feature_collection(vessel(1, -70.0, 40.0), anonymous))

    with pytest.raises(AisViewProtocolError, match="neither an id nor an mmsi"):
        snapshot_from_message(message, generation=1, received_at=_dt())


def test_snapshot_from_message_rejects_out_of_range_position() -> None:
    message = FeatureCollectionMessage.model_validate(feature_collection(vessel(1, -200.0, 40.0)))

    with pytest.raises(AisViewProtocolError, match="Invalid feature 1"):
        snapshot_from_message(message, generation=1, received_at=_dt())
