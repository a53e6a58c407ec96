"""
Tests for the kinesis-replay command line.
"""

import gzip
import json
import logging

import pytest
from typer.testing import CliRunner

from cli.main import app

runner = CliRunner()


@pytest.fixture(autouse=True)
def restore_root_logger():
    """populate reconfigures the root logger; undo it for the tests that follow."""
    root = logging.getLogger()
    handlers, level = root.handlers[:], root.level
    yield
    root.handlers[:] = handlers
    root.setLevel(level)


def _trips(tmp_path, count: int = 5):
    path = tmp_path / "trips.jsonl"
    path.write_text(
        "".join(
            json.dumps({"trip_id": i, "dropoff_datetime": f"2016-01-01T00:00:{i:02d}"}) + "\n"
            for i in range(count)
        )
    )
    return str(path)


def _json_output(output: str) -> dict:
    return json.loads(output[output.index("{"):])


@pytest.mark.parametrize("args", [["--help"], ["populate", "--help"], ["shards", "--help"]])
def test_help(args):
    result = runner.invoke(app, args)

    assert result.exit_code == 0
    assert "Usage" in result.output


def test_version():
    result = runner.invoke(app, ["version"])

    assert result.exit_code == 0
    assert "kinesis-replay" in result.output


def test_populate_dry_run(tmp_path):
    result = runner.invoke(
        app,
        [
            "populate",
            "--file", _trips(tmp_path),
            "--dry-run",
            "--shards", "3",
            "--speedup", "1000000000",
            "--log-level", "ERROR",
            "--json",
        ],
    )

    assert result.exit_code == 0, result.output
    summary = _json_output(result.stdout)
    assert summary["success"]
    assert summary["events_sent"] == 5
    assert summary["send_failures"] == 0
    assert summary["watermarks_emitted"] >= 1
    assert not summary["cancelled"]


def test_populate_missing_file_exits_2(tmp_path):
    result = runner.invoke(
        app,
        [
            "populate",
            "--file", str(tmp_path / "missing.jsonl"),
            "--dry-run",
            "--log-level", "ERROR",
            "--json",
        ],
    )

    assert result.exit_code == 2
    assert _json_output(result.stdout)["type"] == "SourceError"


def test_populate_invalid_speedup_exits_2(tmp_path):
    result = runner.invoke(
        app,
        ["populate", "--file", _trips(tmp_path), "--dry-run", "--speedup", "0", "--log-level", "ERROR"],
    )

    assert result.exit_code == 2
    assert "speedup" in result.output


def test_populate_truncated_gzip_exits_2(tmp_path):
    path = tmp_path / "trips.jsonl.gz"
    _trips(tmp_path, count=50)
    full = gzip.compress((tmp_path / "trips.jsonl").read_bytes())
    path.write_bytes(full[: len(full) // 2])

    result = runner.invoke(
        app,
        [
            "populate",
            "--file", str(path),
            "--dry-run",
            "--speedup", "1000000000",
            "--log-level", "ERROR",
            "--json",
        ],
    )

    assert result.exit_code == 2
    assert _json_output(result.stdout)["type"] == "SourceError"
