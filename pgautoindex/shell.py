"""Interactive SQL shell that lets the index advisor watch the workload."""

from __future__ import annotations

import argparse
import sys
from dataclasses import dataclass
from typing import Any, Callable, Sequence

from sqlalchemy import create_engine
from sqlalchemy.engine import URL
from sqlalchemy.pool import NullPool

from .helper import execute_and_print_query
from .index import IndexAdvisor, Policy

try:
    import readline
except ImportError:  # pragma: no cover - platform dependent
    readline = None

PROMPT = "pgshell# "
PASSWORD = "password"
LIST_RELATIONS_QUERY = (
    "SELECT table_name FROM information_schema.tables WHERE table_schema = 'public';"
)


@dataclass(frozen=True)
class ConnectionSettings:
    """Where the PostgreSQL database lives and how to log in."""

    hostname: str = "localhost"
    port: int = 5432
    database: str = "imdb"
    username: str = "test"
    password: str = PASSWORD

    def url(self) -> URL:
        """The database URL for these settings."""
        return URL.create(
            "postgresql",
            username=self.username,
            password=self.password,
            host=self.hostname,
            port=self.port,
            database=self.database,
        )


def _read_line(prompt: str) -> str | None:
    try:
        return input(prompt)
    except EOFError:
        return None


def _remember(command: str) -> None:
    if readline is not None:
        readline.add_history(command)


def _list_relations(connection: Any) -> None:
    cursor = connection.cursor()
    try:
        cursor.execute(LIST_RELATIONS_QUERY)
        rows = cursor.fetchall()
    finally:
        cursor.close()
    connection.commit()
    print("List of relations")
    print("-----------------")
    for row in rows:
        print(row[0])


def run_shell(
    connection: Any,
    advisor: Any,
    read_line: Callable[[str], str | None] = _read_line,
) -> None:
    """Read commands until ``\\q`` or end of input and run them."""
    while True:
        command = read_line(PROMPT)
        if command is None or command == "\\q":
            print("Exiting...")
            return
        if command == "\\show":
            advisor.show_num_accesses()
            continue
        if command == "\\d":
            _list_relations(connection)
            continue
        if not command:
            continue
        _remember(command)
        advisor.tick()
        execute_and_print_query(connection, command, advisor)


def _parse_args(argv: Sequence[str] | None) -> argparse.Namespace:
    defaults = ConnectionSettings()
    parser = argparse.ArgumentParser(
        prog="pgautoindex", description="SQL shell with automatic index creation."
    )
    parser.add_argument("--host", default=defaults.hostname)
    parser.add_argument("--port", type=int, default=defaults.port)
    parser.add_argument("--dbname", default=defaults.database)
    parser.add_argument("--user", default=defaults.username)
    parser.add_argument("--password", default=defaults.password)
    parser.add_argument("--policy", choices=[p.value for p in Policy], default=Policy.P2.value)
    return parser.parse_args(argv)


def main(argv: Sequence[str] | None = None) -> int:
    """Start the shell; returns the process exit status."""
    args = _parse_args(argv)
    settings = ConnectionSettings(
        hostname=args.host,
        port=args.port,
        database=args.dbname,
        username=args.user,
        password=args.password,
    )
    try:
        engine = create_engine(settings.url(), poolclass=NullPool)
        connection = engine.raw_connection()
    except Exception as exc:  # noqa: BLE001
        print(f"Can't open database: {exc}", file=sys.stderr)
        return 1

    if readline is not None:
        readline.set_auto_history(False)
    advisor = IndexAdvisor(engine.raw_connection, Policy(args.policy))
    try:
        run_shell(connection, advisor)
    except Exception as exc:  # noqa: BLE001
        print(exc, file=sys.stderr)
        return 1
    finally:
        connection.close()
    return 0


if __name__ == "__main__":
    sys.exit(main())