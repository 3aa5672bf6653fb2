"""Running queries and printing their results as a table."""

from __future__ import annotations

import sys
from typing import Any, Iterable, Sequence

COLUMN_WIDTH = 15
EMPTY_RESULT_MESSAGE = "Query executed successfully. No results to display."


def _cell(value: Any) -> str:
    return "" if value is None else str(value)


def format_result(columns: Sequence[str], rows: Iterable[Sequence[Any]]) -> str:
    """Render a result set as left-aligned fixed-width columns."""
    rows = list(rows)
    if not rows:
        return EMPTY_RESULT_MESSAGE
    lines = [
        "".join(name.ljust(COLUMN_WIDTH) for name in columns),
        "-" * (COLUMN_WIDTH * len(columns)),
    ]
    lines.extend(
        "".join(_cell(row[i]).ljust(COLUMN_WIDTH) for i in range(len(columns)))
        for row in rows
    )
    return "\n".join(lines)


def print_result(columns: Sequence[str], rows: Iterable[Sequence[Any]]) -> None:
    """Print a result set to standard output."""
    print(format_result(columns, rows))


def execute_and_print_query(connection: Any, query: str, advisor: Any = None) -> None:
    """Run ``query`` in one transaction on a DB-API connection and print its rows.

    When an advisor is given it sees the query first, inside the same
    transaction. Errors are reported on standard error and the transaction
    is rolled back.
    """
    try:
        cursor = connection.cursor()
        try:
            if advisor is not None:
                advisor.on_query(cursor, query)
            cursor.execute(query)
            if cursor.description:
                columns = [description[0] for description in cursor.description]
                rows = cursor.fetchall()
            else:
                columns, rows = [], []
            print_result(columns, rows)
        finally:
            cursor.close()
        connection.commit()
    except Exception as exc:  # noqa: BLE001 - every failure is reported, not raised
        try:
            connection.rollback()
        except Exception:  # noqa: BLE001
            pass
        print(f"Error executing query: {exc}", file=sys.stderr)