"""Workload-driven index advisor.

Every query is handed to an external parser that reports the attributes it
touches per table. Attributes that are touched often enough become index
candidates; the cheapest half, judged by an external hypothetical-cost
script, are built in background processes.
"""

from __future__ import annotations

import enum
import os
import re
import subprocess
import sys
import tempfile
from pathlib import Path
from typing import Any, Callable, Iterable

from .datastructures import IndexEntry, IndexRegistry
from .helper import print_result

THRESHOLD1 = 10
DEFAULT_THRESHOLD2 = 25000
ROW_COUNT_INTERVAL = 50
P1_MAX_AGE = 5
P2_AGE_FACTOR = 4

PARSER_SCRIPT = "query_parser.py"
COST_SCRIPT = "get_cost.py"

_TABLES_QUERY = """
    SELECT relname
    FROM pg_class
    WHERE relkind = 'r'
      AND relnamespace IN (
        SELECT oid FROM pg_namespace
        WHERE nspname NOT IN ('pg_catalog', 'information_schema')
      )
"""

_PRIMARY_KEY_QUERY = """
    SELECT a.attname
    FROM pg_index i
    JOIN pg_class c ON c.oid = i.indrelid
    JOIN pg_attribute a ON a.attrelid = c.oid AND a.attnum = ANY(i.indkey)
    WHERE i.indisprimary AND c.relname = %s;
"""

_ATTRIBUTE_QUERY = (
    "SELECT COUNT(*) FROM information_schema.columns "
    "WHERE table_name = %s AND column_name = %s"
)

_LEADING_NUMBER = re.compile(r"\s*[-+]?(?:\d+\.?\d*|\.\d+)(?:[eE][-+]?\d+)?")


class Policy(enum.Enum):
    """How created indexes are retired."""

    P1 = "P1"  # drop indexes created more than a few queries ago
    P2 = "P2"  # drop indexes whose age outgrows their use


def parse_parser_output_line(line: str) -> tuple[str, list[str]]:
    """Split a ``table: ['a', 'b']`` line into the table name and attributes.

    Spaces and quotes are removed. Raises ``ValueError`` for malformed lines.
    """
    table_part, colon, rest = line.partition(":")
    if not colon:
        raise ValueError(f"Invalid line format: {line}")
    table_name = table_part.replace(" ", "")
    start = rest.find("[")
    end = rest.find("]", start + 1) if start != -1 else -1
    if start == -1 or end == -1:
        raise ValueError(f"Invalid attribute list format: {line}")
    pieces = rest[start + 1 : end].split(",")
    if pieces and pieces[-1] == "":
        pieces.pop()
    attributes = [piece.replace("'", "").replace(" ", "") for piece in pieces]
    return table_name, attributes


def hypothetical_cost(query: str, table_name: str, attributes: Iterable[str]) -> float:
    """Ask the cost script what ``query`` would cost with a hypothetical index.

    Returns 0.0 when the script cannot be run or prints no number.
    """
    statement = f"CREATE INDEX ON {table_name} ({', '.join(sorted(attributes))})"
    try:
        completed = subprocess.run(
            [sys.executable, COST_SCRIPT, query, statement],
            capture_output=True,
            text=True,
            check=False,
        )
    except OSError:
        print("Failed to run optimizer script.", file=sys.stderr)
        return 0.0
    match = _LEADING_NUMBER.match(completed.stdout or "")
    return float(match.group()) if match else 0.0


class IndexAdvisor:
    """Tracks attribute usage and creates and retires indexes accordingly."""

    def __init__(
        self,
        connection_factory: Callable[[], Any],
        policy: Policy = Policy.P2,
    ) -> None:
        self.connection_factory = connection_factory
        self.policy = policy
        self.current_timestamp = 0
        self.frequency: dict[tuple[str, str], int] = {}
        self.row_counts: dict[str, int] = {}
        self.threshold2 = DEFAULT_THRESHOLD2
        self.registry = IndexRegistry()
        self.children: set[int] = set()
        self._last_row_count_update = -1

    def tick(self) -> int:
        """Advance the query clock by one and return its new value."""
        self.current_timestamp += 1
        return self.current_timestamp

    def on_query(self, cursor: Any, query: str) -> None:
        """Inspect ``query`` before it runs and start any indexes it warrants."""
        if self._last_row_count_update == -1:
            self.refresh_row_counts(cursor)
            self._last_row_count_update = 0
        elif self.current_timestamp % ROW_COUNT_INTERVAL == 0:
            self.refresh_row_counts(cursor)
            self._last_row_count_update = self.current_timestamp

        self.reap_children()

        output = self._run_parser(query)
        if output is None:
            return

        for line in output.splitlines():
            try:
                table_name, candidates = parse_parser_output_line(line)
            except ValueError as exc:
                print(exc, file=sys.stderr)
                continue
            attributes = []
            for attribute in candidates:
                if attribute != table_name and self.attribute_exists(
                    cursor, table_name, attribute
                ):
                    attributes.append(attribute)
                    print(f"Table Name: {table_name} Attribute Name: {attribute}")
            print(len(attributes))
            if not attributes:
                continue
            self.update_map(table_name, attributes)
            self.scan_map(cursor, query)

    def _run_parser(self, query: str) -> str | None:
        with tempfile.TemporaryDirectory() as workdir:
            query_file = Path(workdir) / "tempQuery.sql"
            try:
                query_file.write_text(query)
            except OSError:
                print("Failed to open tempQuery.sql for writing.", file=sys.stderr)
                return None
            try:
                completed = subprocess.run(
                    [sys.executable, PARSER_SCRIPT, str(query_file)],
                    capture_output=True,
                    text=True,
                    check=False,
                )
            except OSError:
                completed = None
        if completed is None or completed.returncode != 0:
            print("Failed to execute query_parser.py.", file=sys.stderr)
            return None
        return completed.stdout

    def update_map(self, table_name: str, attributes: list[str]) -> None:
        """Count an access to each attribute of ``table_name``."""
        print(table_name)
        print(len(attributes))
        for position, attribute in enumerate(attributes):
            key = (table_name, attribute)
            if key in self.frequency:
                self.frequency[key] += position
            else:
                self.frequency[key] = 1

    def scan_map(self, cursor: Any, query: str) -> None:
        """Build indexes for the cheaper half of the attributes over threshold."""
        candidates: list[tuple[float, str, frozenset[str]]] = []
        for (table_name, attribute), count in sorted(self.frequency.items()):
            qualifies = count >= THRESHOLD1
            if table_name in self.row_counts:
                qualifies = qualifies or (
                    count * self.row_counts[table_name] >= self.threshold2
                )
            if qualifies:
                attrs = frozenset({attribute})
                cost = hypothetical_cost(query, table_name, attrs)
                candidates.append((cost, table_name, attrs))
        if not candidates:
            return
        candidates.sort(key=lambda item: (item[0], item[1], sorted(item[2])))
        for _cost, table_name, attrs in candidates[: (len(candidates) + 1) // 2]:
            self.spawn_index_builder(table_name, attrs)

    def attribute_exists(
        self, cursor: Any, relation_name: str, attribute_name: str
    ) -> bool:
        """Whether the table has a column of that name, ignoring case."""
        try:
            cursor.execute(
                _ATTRIBUTE_QUERY, (relation_name.lower(), attribute_name.lower())
            )
            row = cursor.fetchone()
            return row is not None and int(row[0]) > 0
        except Exception as exc:  # noqa: BLE001 - a failed check means "no"
            print(f"Error checking attribute existence: {exc}", file=sys.stderr)
            return False

    def show_num_accesses(self) -> None:
        """Print the access count of every tracked attribute."""
        for (table_name, attribute), count in sorted(self.frequency.items()):
            print(
                f"Table Name: {table_name} Attribute Name: {attribute} "
                f"Number of Accesses: {count}"
            )

    def clear_indices(self, cursor: Any) -> list[IndexEntry]:
        """Retire indexes according to the policy and return those dropped."""
        entries = list(self.registry)
        if self.policy is Policy.P1:
            dropped = []
            for entry in entries:
                if self.current_timestamp - entry.create_time <= P1_MAX_AGE:
                    break
                dropped.append(entry)
            self.registry.replace(entries[len(dropped) :])
            if not dropped:
                return []
            try:
                for entry in dropped:
                    cursor.execute(f"DROP INDEX IF EXISTS {entry.index_name};")
                    print(f"{entry.index_name} index deleted from DB.")
            except Exception as exc:  # noqa: BLE001
                print(f"Failed to delete from DB: {exc}", file=sys.stderr)
            return dropped

        kept, dropped = [], []
        for entry in entries:
            age = self.current_timestamp - entry.create_time
            (dropped if P2_AGE_FACTOR * entry.num_accesses < age else kept).append(entry)
        if not dropped:
            return []
        self.registry.replace(kept)
        try:
            for entry in dropped:
                cursor.execute(f"DROP INDEX IF EXISTS {entry.index_name};")
            print("Expired indices removed from DB.")
        except Exception as exc:  # noqa: BLE001
            print(f"Failed to delete from DB: {exc}", file=sys.stderr)
        return dropped

    def spawn_index_builder(
        self, table_name: str, attributes: Iterable[str]
    ) -> int | None:
        """Build an index in a child process and return its pid.

        If the index is already recorded it is renewed instead and ``None``
        is returned.
        """
        attrs = frozenset(attributes)
        if self.registry.exists(table_name, attrs):
            self.registry.refresh(table_name, attrs, self.current_timestamp)
            return None
        entry = IndexEntry(table_name, attrs, self.current_timestamp)
        self.registry.add(entry)
        pid = os.fork()
        if pid == 0:
            try:
                self._build_index(entry)
            finally:
                os._exit(0)
        self.children.add(pid)
        return pid

    def _build_index(self, entry: IndexEntry) -> None:
        connection = None
        try:
            connection = self.connection_factory()
            cursor = connection.cursor()
            columns = set(entry.attributes)
            if not columns:
                cursor.execute(_PRIMARY_KEY_QUERY, (entry.table_name,))
                columns.update(row[0] for row in cursor.fetchall())
                if not columns:
                    raise RuntimeError("No columns specified and no primary key found.")
            column_list = ", ".join(sorted(columns))
            cursor.execute(
                f"CREATE INDEX IF NOT EXISTS {entry.index_name} "
                f"ON {entry.table_name} ({column_list});"
            )
            print_result([], [])
            connection.commit()
            print(f"Index ({entry.index_name}) created for {entry.table_name}({column_list})")
            self.clear_indices(cursor)
            connection.commit()
        except Exception as exc:  # noqa: BLE001 - the child only reports
            print(f"Failed to create index: {exc}", file=sys.stderr)
        finally:
            if connection is not None:
                try:
                    connection.close()
                except Exception:  # noqa: BLE001
                    pass

    def refresh_row_counts(self, cursor: Any) -> None:
        """Record each user table's row count; their mean becomes threshold2."""
        try:
            cursor.execute(_TABLES_QUERY)
            tables = [row[0] for row in cursor.fetchall()]
        except Exception:  # noqa: BLE001 - counts are best effort
            return
        total = 0
        for table_name in tables:
            try:
                cursor.execute(f"SELECT COUNT(*) FROM {table_name}")
                count = int(cursor.fetchone()[0])
            except Exception:  # noqa: BLE001
                continue
            self.row_counts[table_name] = count
            total += count
        self.threshold2 = total // len(tables) if tables else 0

    def reap_children(self) -> set[int]:
        """Forget builder processes that have finished and return their pids."""
        finished = set()
        for pid in list(self.children):
            try:
                done, _status = os.waitpid(pid, os.WNOHANG)
            except ChildProcessError:
                done = pid
            if done > 0:
                finished.add(pid)
        self.children -= finished
        return finished