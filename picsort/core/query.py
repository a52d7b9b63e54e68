"""Ad-hoc query execution against the index store"""

import io

from rich.console import Console
from rich.table import Table
from rich.text import Text

from picsort.store import IndexStore, ResultSet

# Wide enough that typical paths never fold in plain-text renders
RENDER_WIDTH = 1000


class QueryExecutor:
    """Runs read queries against a store and renders them as tables"""

    def __init__(self, store: IndexStore):
        self._store = store

    def run_query(self, sql: str) -> Table:
        """Execute ``sql`` and return the result as a rich Table.

        Raises:
            QueryError: If the store rejects the statement
        """
        return build_table(self._store.query(sql))

    def render(self, sql: str, width: int = RENDER_WIDTH) -> str:
        """Execute ``sql`` and return the table as plain text"""
        console = Console(file=io.StringIO(), record=True, width=width, color_system=None)
        console.print(self.run_query(sql))
        return console.export_text()


def build_table(result: ResultSet) -> Table:
    table = Table(
        show_header=True,
        header_style="bold cyan",
        caption=f"{result.row_count} row(s)",
    )
    for name in result.column_names:
        table.add_column(Text(name), overflow="fold")

    for row in result.display_rows():
        table.add_row(*(Text(value) for value in row))

    return table
