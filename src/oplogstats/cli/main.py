"""
oplog-stats CLI - Main entry point

Runs the summary pipeline and provides inspection tools.
"""

# Copyright © 2025 Sierra Labs LLC
# SPDX-License-Identifier: AGPL-3.0-only

import asyncio
import sys
from datetime import datetime, timezone
from pathlib import Path
from typing import Optional

import click
from rich.console import Console
from rich.markup import escape
from rich.table import Table

from oplogstats import __version__
from oplogstats.config import Config
from oplogstats.errors import OplogStatsError
from oplogstats.processing.oplog.change_log import RedisChangeLog
from oplogstats.processing.oplog.models import ChangeRecord, LogPosition
from oplogstats.processing.recorder import SeriesRecorder
from oplogstats.processing.server import create_redis_client, open_stores, serve, setup_logging

console = Console()


def _format_record(record: ChangeRecord) -> str:
    parts = [
        f"[cyan]{record.position}[/cyan]",
        record.timestamp.strftime('%Y-%m-%d %H:%M:%S.%f')[:-3],
        f"op={record.op}",
        f"ns={escape(record.namespace)}",
        f"h={record.history_id}",
        f"o={escape(str(record.obj))}",
    ]
    if record.query:
        parts.append(f"o2={escape(str(record.query))}")
    return " ".join(parts)


def _format_stat(value: Optional[float]) -> str:
    return "-" if value is None else f"{value:.4g}"


@click.group()
@click.version_option(version=__version__, prog_name="oplogstats")
@click.option(
    "--config", "config_path",
    type=click.Path(dir_okay=False, path_type=Path),
    help="Path to config.yaml"
)
@click.option("--debug", is_flag=True, help="Enable debug logging")
@click.pass_context
def cli(ctx: click.Context, config_path: Optional[Path], debug: bool) -> None:
    """
    oplog-stats

    Keeps seven-number summaries of metric series in sync with the change log.
    """
    config = Config(config_path=config_path)
    if debug:
        config.log_level = "DEBUG"
    setup_logging(config.log_level)
    ctx.obj = config


@cli.command()
@click.pass_obj
def run(config: Config) -> None:
    """Tail the change log and maintain summaries"""
    errors = config.validate()
    if errors:
        for error in errors:
            console.print(f"[red]Configuration error:[/red] {error}")
        sys.exit(2)

    try:
        status = asyncio.run(serve(config))
    except KeyboardInterrupt:
        status = 0
    sys.exit(status)


@cli.command()
@click.pass_obj
def tail(config: Config) -> None:
    """Print the latest change record and every record after it"""

    async def _tail() -> None:
        client = create_redis_client(config)
        change_log = RedisChangeLog(client, stream_name=config.stream_name)
        try:
            latest = await change_log.latest()
            if latest is None:
                after = LogPosition(0, 0)
            else:
                console.print(_format_record(latest))
                after = latest.position
            async for record in change_log.tail(after):
                console.print(_format_record(record))
        finally:
            await client.aclose()

    try:
        asyncio.run(_tail())
    except KeyboardInterrupt:
        pass
    except OplogStatsError as e:
        console.print(f"[red]Error:[/red] {escape(str(e))}")
        sys.exit(1)


@cli.command()
@click.argument("key")
@click.argument("value", type=float)
@click.pass_obj
def record(config: Config, key: str, value: float) -> None:
    """Record an observation for KEY in the current minute bucket"""

    async def _record() -> None:
        _, raw_store, _ = open_stores(config)
        client = create_redis_client(config)
        try:
            recorder = SeriesRecorder(
                raw_store,
                RedisChangeLog(client, stream_name=config.stream_name),
                namespace=config.namespace,
            )
            series = await recorder.record(key, value, datetime.now(timezone.utc))
        finally:
            await client.aclose()
        console.print(
            f"[green]Recorded[/green] {key}={value} "
            f"(series {series.id}, bucket {series.at}, {len(series.values)} values)"
        )

    try:
        asyncio.run(_record())
    except OplogStatsError as e:
        console.print(f"[red]Error:[/red] {escape(str(e))}")
        sys.exit(1)


@cli.command()
@click.argument("key")
@click.option("--limit", "-n", type=int, default=20, help="Number of buckets to show")
@click.pass_obj
def summaries(config: Config, key: str, limit: int) -> None:
    """Show stored summaries for KEY, newest bucket first"""
    try:
        _, _, summary_store = open_stores(config)
        rows = summary_store.list_for_key(key, limit=limit)
    except OplogStatsError as e:
        console.print(f"[red]Error:[/red] {escape(str(e))}")
        sys.exit(1)

    if not rows:
        console.print(f"[yellow]No summaries for {key}[/yellow]")
        return

    table = Table(title=f"Summaries: {key}")
    table.add_column("Bucket (UTC)", style="cyan")
    for column in ("min", "p2", "p9", "p25", "p50", "p75", "p91", "p98", "max"):
        table.add_column(column, justify="right")

    for summary in rows:
        bucket = datetime.fromtimestamp(summary.at, tz=timezone.utc).strftime('%m-%d %H:%M')
        table.add_row(
            bucket,
            _format_stat(summary.min),
            _format_stat(summary.p2),
            _format_stat(summary.p9),
            _format_stat(summary.p25),
            _format_stat(summary.p50),
            _format_stat(summary.p75),
            _format_stat(summary.p91),
            _format_stat(summary.p98),
            _format_stat(summary.max),
        )

    console.print(table)


if __name__ == "__main__":
    cli()
