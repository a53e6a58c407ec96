"""
Tests for JSON-lines parsing and the file and S3 event sources.
"""

import gzip
import json

import pytest

try:
    import boto3
    from moto import mock_aws
except ImportError:
    boto3 = None
    mock_aws = None

from replayer.core.errors import SourceError
from replayer.core.ids import partition_key_for
from replayer.source import FileEventSource, S3EventSource, parse_record, parse_timestamp

requires_moto = pytest.mark.skipif(
    boto3 is None or mock_aws is None,
    reason="boto3 or moto not installed",
)


def _trip(i: int, dropoff: str) -> str:
    return json.dumps({"trip_id": i, "dropoff_datetime": dropoff, "total_amount": 9.5})


TRIPS = [
    _trip(0, "2016-01-01T00:00:05"),
    _trip(1, "2016-01-01T00:00:07"),
    _trip(2, "2016-01-01T00:00:07"),
    _trip(3, "2016-01-01T00:01:00"),
]


def _many_trips(count: int) -> bytes:
    lines = [_trip(i, f"2016-01-01T00:{i // 60:02d}:{i % 60:02d}") for i in range(count)]
    return ("\n".join(lines) + "\n").encode()


@pytest.mark.parametrize(
    "value,expected",
    [
        ("1970-01-01T00:00:01", 1_000),
        ("1970-01-01T00:00:01Z", 1_000),
        ("1970-01-01T01:00:01+01:00", 1_000),
        ("1970-01-01T00:00:01.250", 1_250),
        (1_000, 1_000),
        ("1000", 1_000),
    ],
)
def test_parse_timestamp(value, expected):
    assert parse_timestamp(value) == expected


@pytest.mark.parametrize("value", ["yesterday", True, None, [1]])
def test_parse_timestamp_rejects_garbage(value):
    with pytest.raises(SourceError):
        parse_timestamp(value)


def test_parse_record_keeps_raw_payload():
    line = b'{"dropoff_datetime": "1970-01-01T00:00:02", "x": 1}\n'
    event = parse_record(line, 7, "dropoff_datetime")

    assert event.timestamp == 2_000
    assert event.seq == 7
    assert event.payload == line.strip()
    assert event.partition_key == partition_key_for(line.strip())


@pytest.mark.parametrize(
    "line", [b"{not json", b"[1, 2]", b'{"pickup_datetime": "1970-01-01T00:00:02"}']
)
def test_parse_record_rejects_malformed_lines(line):
    with pytest.raises(SourceError):
        parse_record(line, 0, "dropoff_datetime")


def test_file_source_reads_in_order(tmp_path):
    path = tmp_path / "trips.jsonl"
    path.write_text("\n".join(TRIPS[:2]) + "\n\n" + "\n".join(TRIPS[2:]) + "\n")

    events = list(FileEventSource(str(path)))

    assert [e.seq for e in events] == [0, 1, 2, 3]
    assert [json.loads(e.payload)["trip_id"] for e in events] == [0, 1, 2, 3]
    assert events[1].timestamp == events[2].timestamp
    assert events[1] != events[2]


def test_file_source_reads_gzip_and_multiple_files(tmp_path):
    first = tmp_path / "a.jsonl.gz"
    with gzip.open(first, "wt") as f:
        f.write("\n".join(TRIPS[:2]) + "\n")
    second = tmp_path / "b.jsonl"
    second.write_text("\n".join(TRIPS[2:]) + "\n")

    source = FileEventSource([str(first), str(second)])

    assert source.has_next()
    assert source.next().seq == 0
    assert [e.seq for e in source] == [1, 2, 3]
    assert not source.has_next()
    with pytest.raises(StopIteration):
        source.next()


def test_file_source_rejects_out_of_order(tmp_path):
    path = tmp_path / "trips.jsonl"
    path.write_text(TRIPS[3] + "\n" + TRIPS[0] + "\n")
    source = FileEventSource(str(path))

    assert source.next().seq == 0
    with pytest.raises(SourceError, match="out of order"):
        source.next()


def test_file_source_malformed_line(tmp_path):
    path = tmp_path / "trips.jsonl"
    path.write_text(TRIPS[0] + "\nnot json\n")
    source = FileEventSource(str(path))

    source.next()
    with pytest.raises(SourceError, match="malformed"):
        source.next()


def test_file_source_truncated_gzip(tmp_path):
    path = tmp_path / "trips.jsonl.gz"
    full = gzip.compress(_many_trips(50))
    path.write_bytes(full[: len(full) // 2])

    with pytest.raises(SourceError):
        list(FileEventSource(str(path)))


def test_file_source_corrupt_gzip(tmp_path):
    path = tmp_path / "trips.jsonl.gz"
    full = gzip.compress((TRIPS[0] + "\n").encode())
    path.write_bytes(full[:10] + b"\xff" * 64)

    with pytest.raises(SourceError):
        list(FileEventSource(str(path)))


def test_close_stops_reading(tmp_path):
    path = tmp_path / "trips.jsonl.gz"
    with gzip.open(path, "wt") as f:
        f.write("\n".join(TRIPS) + "\n")
    source = FileEventSource(str(path))

    assert source.next().seq == 0
    source.close()

    assert not source.has_next()


def test_file_source_missing_file(tmp_path):
    with pytest.raises(SourceError, match="not found"):
        FileEventSource(str(tmp_path / "missing.jsonl"))


@requires_moto
@mock_aws
def test_s3_source_reads_objects_in_key_order():
    s3 = boto3.client("s3", region_name="us-east-1")
    s3.create_bucket(Bucket="trips")
    s3.put_object(
        Bucket="trips",
        Key="data/part-0001.json.gz",
        Body=gzip.compress(("\n".join(TRIPS[2:]) + "\n").encode()),
    )
    s3.put_object(Bucket="trips", Key="data/part-0000.json", Body="\n".join(TRIPS[:2]) + "\n")
    s3.put_object(Bucket="trips", Key="other/ignored.json", Body=TRIPS[0])

    source = S3EventSource("trips", prefix="data/", client=s3)

    assert source.list_keys() == ["data/part-0000.json", "data/part-0001.json.gz"]
    events = list(source)
    assert [json.loads(e.payload)["trip_id"] for e in events] == [0, 1, 2, 3]
    assert [e.seq for e in events] == [0, 1, 2, 3]


@requires_moto
@mock_aws
def test_s3_source_bucket_not_accessible(monkeypatch):
    monkeypatch.delenv("REPLAY_SKIP_BUCKET_CHECK", raising=False)
    s3 = boto3.client("s3", region_name="us-east-1")

    with pytest.raises(SourceError, match="not accessible"):
        S3EventSource("no-such-bucket", client=s3)


@requires_moto
@mock_aws
def test_s3_source_truncated_gzip_object():
    s3 = boto3.client("s3", region_name="us-east-1")
    s3.create_bucket(Bucket="trips")
    full = gzip.compress(_many_trips(50))
    s3.put_object(Bucket="trips", Key="data/part-0000.json.gz", Body=full[: len(full) // 2])

    source = S3EventSource("trips", prefix="data/", client=s3)

    with pytest.raises(SourceError):
        list(source)
