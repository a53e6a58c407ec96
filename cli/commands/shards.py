"""
Shards command: list the destination stream's shards
"""

import json
from typing import Optional

import typer
from rich.console import Console
from rich.table import Table

from replayer.config import ReplayConfig
from replayer.core.errors import ReplayError
from replayer.stream import KinesisDestination

console = Console()


def shards_command(
    stream: Optional[str] = typer.Option(None, "--stream", "-s", help="Kinesis stream name"),
    region: Optional[str] = typer.Option(None, "--region", help="Region containing the stream"),
    endpoint_url: Optional[str] = typer.Option(None, "--endpoint-url", help="Kinesis endpoint URL"),
    json_output: bool = typer.Option(False, "--json", help="Output as JSON"),
):
    """
    List the open shards a watermark cycle would write to.

    Examples:
        kinesis-replay shards --stream taxi-trip-events
        kinesis-replay shards --json
    """
    config = ReplayConfig.from_env().with_overrides(
        stream_name=stream, region=region, endpoint_url=endpoint_url
    )
    try:
        destination = KinesisDestination(
            stream_name=config.stream_name,
            region=config.region,
            endpoint_url=config.endpoint_url,
        )
        with destination:
            partitions = destination.list_partitions()
    except ReplayError as e:
        if json_output:
            print(json.dumps({"error": str(e)}))
        else:
            console.print(f"[red]Error:[/red] {e}")
        raise typer.Exit(2)

    if json_output:
        print(
            json.dumps(
                {
                    "stream": config.stream_name,
                    "shards": [
                        {"shard_id": p.shard_id, "starting_hash_key": p.starting_hash_key}
                        for p in partitions
                    ],
                },
                indent=2,
            )
        )
    else:
        table = Table(title=f"Shards: {config.stream_name}")
        table.add_column("Shard", style="green")
        table.add_column("Starting hash key", style="cyan")
        for p in partitions:
            table.add_row(p.shard_id, p.starting_hash_key)
        console.print(table)
        console.print(f"\n[bold]Total shards:[/bold] {len(partitions)}")

    raise typer.Exit(0)
