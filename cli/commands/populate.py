"""
Populate command: replay events into a stream
"""

import json
import signal
from typing import List, Optional

import typer
from rich.console import Console
from rich.table import Table

from replayer.config import ReplayConfig
from replayer.core.errors import ReplayError
from replayer.core.events import millis_to_iso
from replayer.logging_config import setup_logging
from replayer.metrics import start_metrics_server
from replayer.replay import StreamPopulator
from replayer.source import FileEventSource, S3EventSource
from replayer.stream import KinesisDestination, MemoryDestination

console = Console()


def _build_source(config: ReplayConfig, files: Optional[List[str]]):
    if files:
        return FileEventSource(files, timestamp_field=config.timestamp_field)
    return S3EventSource(
        bucket=config.bucket,
        prefix=config.prefix,
        timestamp_field=config.timestamp_field,
        region=config.source_region,
    )


def _build_destination(config: ReplayConfig, dry_run: bool, shard_count: int):
    if dry_run:
        return MemoryDestination(shard_count=shard_count)
    return KinesisDestination(
        stream_name=config.stream_name,
        region=config.region,
        endpoint_url=config.endpoint_url,
        record_max_buffered_time_ms=config.record_max_buffered_time_ms,
        max_retries=config.max_retries,
    )


def populate_command(
    region: Optional[str] = typer.Option(
        None, "--region", help="Region containing the Kinesis stream [default: eu-west-1]"
    ),
    bucket: Optional[str] = typer.Option(
        None, "--bucket", help="Bucket containing the raw event data [default: aws-bigdata-blog]"
    ),
    prefix: Optional[str] = typer.Option(
        None, "--prefix", help="Prefix of the objects containing the raw event data"
    ),
    files: Optional[List[str]] = typer.Option(
        None, "--file", "-f", help="Local JSON-lines file to replay instead of S3 (repeatable)"
    ),
    stream: Optional[str] = typer.Option(
        None, "--stream", "-s", help="Kinesis stream the events are sent to [default: taxi-trip-events]"
    ),
    speedup: Optional[float] = typer.Option(
        None, "--speedup", help="Speedup factor for replaying events [default: 1440]"
    ),
    no_watermarks: bool = typer.Option(
        False, "--no-watermarks", help="Don't ingest watermark events into the stream"
    ),
    watermark_interval: Optional[int] = typer.Option(
        None, "--watermark-interval", help="Milliseconds between watermark cycles"
    ),
    watermark_events: Optional[int] = typer.Option(
        None, "--watermark-events", help="Events between watermark cycles"
    ),
    timestamp_field: Optional[str] = typer.Option(
        None, "--timestamp-field", help="Record field holding the event time"
    ),
    endpoint_url: Optional[str] = typer.Option(
        None, "--endpoint-url", help="Kinesis endpoint URL (localstack, etc.)"
    ),
    dry_run: bool = typer.Option(
        False, "--dry-run", help="Replay into an in-memory stream instead of Kinesis"
    ),
    shard_count: int = typer.Option(
        4, "--shards", help="Number of in-memory shards for --dry-run"
    ),
    metrics_port: Optional[int] = typer.Option(
        None, "--metrics-port", help="Expose Prometheus metrics on this port"
    ),
    log_level: Optional[str] = typer.Option(None, "--log-level", help="TRACE, DEBUG, INFO, ..."),
    log_format: Optional[str] = typer.Option(None, "--log-format", help="json or text"),
    json_output: bool = typer.Option(False, "--json", help="Output summary as JSON"),
):
    """
    Replay historical events into a stream, preserving their timing.

    Examples:
        kinesis-replay populate
        kinesis-replay populate --stream my-stream --speedup 720
        kinesis-replay populate --file trips.jsonl.gz --dry-run --speedup 100000
        kinesis-replay populate --no-watermarks
    """
    setup_logging(level=log_level, log_format=log_format)

    try:
        config = ReplayConfig.from_env().with_overrides(
            region=region,
            bucket=bucket,
            prefix=prefix,
            stream_name=stream,
            speedup=speedup,
            watermark_interval_ms=watermark_interval,
            watermark_event_count=watermark_events,
            timestamp_field=timestamp_field,
            endpoint_url=endpoint_url,
        )
        if no_watermarks:
            config = config.with_overrides(watermarks_enabled=False)
        config.validate()

        start_metrics_server(enabled=metrics_port is not None, port=metrics_port or 0)

        source = _build_source(config, files)
        destination = _build_destination(config, dry_run, shard_count)
        populator = StreamPopulator(source, destination, config)

        def _handle_signal(signum, frame):
            populator.request_stop()

        previous = {
            sig: signal.signal(sig, _handle_signal) for sig in (signal.SIGINT, signal.SIGTERM)
        }
        try:
            with destination:
                result = populator.populate()
        finally:
            for sig, handler in previous.items():
                signal.signal(sig, handler)
            source.close()

    except ReplayError as e:
        if json_output:
            print(json.dumps({"error": str(e), "type": type(e).__name__}))
        else:
            console.print(f"[red]Error:[/red] {e}")
        raise typer.Exit(2)

    watermark = millis_to_iso(result.last_watermark) if result.last_watermark is not None else None
    if json_output:
        print(
            json.dumps(
                {
                    "success": True,
                    "stream": config.stream_name,
                    "events_sent": result.events_sent,
                    "send_failures": result.send_failures,
                    "watermarks_emitted": result.watermarks_emitted,
                    "watermarks_skipped": result.watermarks_skipped,
                    "last_watermark": watermark,
                    "cancelled": result.cancelled,
                },
                indent=2,
            )
        )
    else:
        table = Table(title=f"Replay into {config.stream_name}")
        table.add_column("Metric", style="green")
        table.add_column("Value", style="cyan", justify="right")
        table.add_row("Events sent", str(result.events_sent))
        table.add_row("Send failures", str(result.send_failures))
        table.add_row("Watermarks emitted", str(result.watermarks_emitted))
        table.add_row("Watermarks skipped", str(result.watermarks_skipped))
        table.add_row("Last watermark", watermark or "N/A")
        console.print(table)
        if result.cancelled:
            console.print("[yellow]Replay stopped before the source was exhausted[/yellow]")

    raise typer.Exit(0)
