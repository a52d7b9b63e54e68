"""CLI query command"""

import click

from picsort.cli.common import console, fail, get_store
from picsort.core.exceptions import PicsortError
from picsort.core.query import QueryExecutor


@click.command()
@click.argument("sql")
@click.pass_context
def query_cmd(ctx, sql: str):
    """Run a read-only SQL query against the index and print the result"""
    executor = QueryExecutor(get_store(ctx))

    try:
        table = executor.run_query(sql)
    except PicsortError as e:
        fail(e)

    console.print(table)
