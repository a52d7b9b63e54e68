"""CLI ingest command"""

import click
from rich.markup import escape

from picsort.cli.common import console, fail, get_store
from picsort.core.exceptions import PicsortError
from picsort.core.ingest import IngestionCoordinator
from picsort.store import path_text

# Failures listed individually before the summary line takes over
MAX_LISTED_FAILURES = 20


@click.command()
@click.option("-s", "--source", default="", help="Source tag recorded with every file")
@click.argument("directory", type=click.Path())
@click.pass_context
def ingest_cmd(ctx, source: str, directory: str):
    """Fingerprint every file below DIRECTORY and add it to the index"""
    store = get_store(ctx)
    coordinator = IngestionCoordinator(store, config=ctx.find_root().obj["config"])

    console.print(f"🔍 Ingesting [cyan]{escape(directory)}[/cyan] as source [cyan]{escape(source)}[/cyan]")

    try:
        report = coordinator.ingest(source, directory)
    except PicsortError as e:
        fail(e)

    console.print(f"✅ Indexed {report.inserted} file(s) in {report.elapsed:.2f}s")

    if report.failures:
        console.print(f"⚠️  [yellow]{report.failed} file(s) skipped[/yellow]")
        for failure in report.failures[:MAX_LISTED_FAILURES]:
            console.print(f"  • {escape(path_text(failure.path))} ({failure.stage}): {escape(failure.message)}")
        if report.failed > MAX_LISTED_FAILURES:
            console.print(f"  … and {report.failed - MAX_LISTED_FAILURES} more")
