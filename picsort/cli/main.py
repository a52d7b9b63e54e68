"""CLI main entry point"""

import click

from picsort import __version__
from picsort.cli.common import get_store
from picsort.cli.ingest import ingest_cmd
from picsort.cli.query import query_cmd
from picsort.core.config import get_config
from picsort.core.log import setup_logging


@click.group(invoke_without_command=True)
@click.version_option(version=__version__, prog_name="picsort")
@click.option(
    "--db",
    "db_path",
    type=click.Path(dir_okay=False),
    default=None,
    help="Index store file (default: PICSORT_DB_PATH or ./picsort.db)",
)
@click.option("-t", "--truncate", is_flag=True, help="Remove the existing store before opening")
@click.option(
    "--log-level",
    type=click.Choice(["DEBUG", "INFO", "WARNING", "ERROR"], case_sensitive=False),
    default=None,
    help="Logging level (default: PICSORT_LOG_LEVEL or INFO)",
)
@click.pass_context
def cli(ctx, db_path, truncate, log_level):
    """picsort - index files by content fingerprint and query the index

    Run without a subcommand to only (re)create the store, e.g. with -t.
    """
    config = get_config()
    setup_logging(log_level or config.log_level)

    ctx.ensure_object(dict)
    ctx.obj["config"] = config
    ctx.obj["db_path"] = db_path or str(config.db_path)
    ctx.obj["truncate"] = truncate

    if ctx.invoked_subcommand is None:
        get_store(ctx)


cli.add_command(ingest_cmd, name="ingest")
cli.add_command(query_cmd, name="query")


if __name__ == "__main__":
    cli()
