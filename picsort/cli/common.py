"""Helpers shared by the CLI commands"""

import click
from rich.console import Console
from rich.markup import escape

from picsort.core.exceptions import PicsortError, StoreCloseError
from picsort.store import IndexStore

console = Console()


def get_store(ctx: click.Context) -> IndexStore:
    """Open the store once per invocation and close it when the CLI exits"""
    root = ctx.find_root()
    store = root.obj.get("store")
    if store is not None:
        return store

    try:
        store = IndexStore.open(
            root.obj["db_path"],
            truncate=root.obj["truncate"],
            config=root.obj["config"],
        )
    except PicsortError as e:
        fail(e)

    def _close():
        try:
            store.close()
        except StoreCloseError as e:
            fail(e)

    root.obj["store"] = store
    root.call_on_close(_close)
    return store


def fail(error: Exception):
    """Report a fatal error and exit non-zero"""
    console.print(f"❌ [red]Error: {escape(str(error))}[/red]", highlight=False)
    raise click.exceptions.Exit(1)
