#!/usr/bin/env python3
"""
kinesis-replay CLI - Paced event replay into Kinesis

Main entrypoint for the kinesis-replay command-line tool.
"""

import typer
from rich.console import Console
from rich.table import Table

from cli.commands import populate, shards

app = typer.Typer(
    name="kinesis-replay",
    help="Replay historical events into a Kinesis stream with watermarks",
    add_completion=False,
)

console = Console()

app.command(name="populate")(populate.populate_command)
app.command(name="shards")(shards.shards_command)


@app.command()
def version():
    """Show version information."""
    from cli import __version__
    from replayer import __version__ as engine_version

    table = Table(show_header=False, box=None)
    table.add_row("[bold]kinesis-replay CLI[/bold]", f"v{__version__}")
    table.add_row("Engine", f"v{engine_version}")

    console.print(table)


def main():
    """Main entrypoint."""
    app()


if __name__ == "__main__":
    main()
