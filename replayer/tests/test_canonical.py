"""
Tests for canonical serialization of watermark records.
"""

from replayer.core.canonical import canonical_json_bytes
from replayer.core.events import WatermarkEvent


def test_key_order_does_not_matter():
    assert canonical_json_bytes({"b": 1, "a": 2}) == canonical_json_bytes({"a": 2, "b": 1})


def test_compact_separators():
    assert canonical_json_bytes({"type": "watermark", "watermark": 5}) == (
        b'{"type":"watermark","watermark":5}'
    )


def test_watermark_payload_is_identical_for_every_shard():
    payload = WatermarkEvent(1451606399999).payload

    assert payload == b'{"type":"watermark","watermark":1451606399999}'
    assert WatermarkEvent(1451606399999).payload == payload
