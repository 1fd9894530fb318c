"""
Command-line interface for TrackFlow Tasks.

This module provides CLI commands for starting workers, checking their status
and running imports synchronously.
"""

import json
import os
import sys
from typing import Optional

import click

from trackflow_tasks.celery_app import celery_app
from trackflow_tasks.exceptions import ImportInProgressError
from trackflow_tasks.tasks.imports import run_archive_import, run_file_import


@click.group()
@click.option("--debug", is_flag=True, help="Enable debug logging")
def cli(debug: bool) -> None:
    """TrackFlow Tasks command-line interface."""
    if debug:
        os.environ["DEBUG"] = "true"


@cli.command()
@click.option("--concurrency", "-c", default=2, help="Number of worker processes")
@click.option("--loglevel", "-l", default="info", help="Logging level")
@click.option("--queues", "-Q", default="imports,celery", help="Comma-separated list of queues to consume")
@click.option("--hostname", "-n", help="Worker hostname")
def worker(concurrency: int, loglevel: str, queues: Optional[str], hostname: Optional[str]) -> None:
    """Start Celery worker."""
    args = ["worker"]

    args.extend(["--concurrency", str(concurrency)])
    args.extend(["--loglevel", loglevel])

    if queues:
        args.extend(["--queues", queues])

    if hostname:
        args.extend(["--hostname", hostname])

    args.append("--events")

    click.echo(f"Starting Celery worker with args: {' '.join(args)}")
    celery_app.worker_main(args)


@cli.command()
def status() -> None:
    """Check status of Celery workers."""
    try:
        stats = celery_app.control.inspect().stats()
    except Exception as e:
        click.echo(f"❌ Error checking status: {e}", err=True)
        sys.exit(1)

    if not stats:
        click.echo("❌ No active workers found")
        sys.exit(1)

    click.echo("✅ Active workers:")
    for name, info in stats.items():
        click.echo(f"  • {name}: {info.get('total', 'unknown')} tasks processed")


@cli.command("import-file")
@click.argument("path", type=click.Path(exists=True, dir_okay=False))
@click.option("--user", "-u", "user_id", required=True, help="Owner of the imported activity")
@click.option("--filename", help="Original file name used for format detection")
def import_file(path: str, user_id: str, filename: Optional[str]) -> None:
    """Import one GPX, FIT or gzipped FIT file synchronously."""
    result = run_file_import(path, user_id, filename)
    click.echo(json.dumps(result, indent=2, default=str))
    if result["status"] != "created":
        sys.exit(1)


@cli.command("import-archive")
@click.argument("path", type=click.Path(exists=True, dir_okay=False))
@click.option("--user", "-u", "user_id", required=True, help="Owner of the imported activities")
@click.option("--keep-archive", is_flag=True, help="Do not delete the archive afterwards")
def import_archive(path: str, user_id: str, keep_archive: bool) -> None:
    """Import every activity in a ZIP archive synchronously."""
    try:
        result = run_archive_import(path, user_id, delete_archive=not keep_archive)
    except ImportInProgressError as e:
        click.echo(f"❌ {e.message}", err=True)
        sys.exit(1)

    click.echo(json.dumps(result, indent=2, default=str))
    click.echo(f"✅ Created {result['created']}, skipped {result['skipped']}, "
               f"failed {result['failed']}", err=True)


if __name__ == "__main__":
    cli()
