# pgautoindex

`pgautoindex` is an interactive PostgreSQL shell. It watches the queries you run
and creates indexes on its own. Each statement you enter advances a query clock.
The shell records which columns each query touches. A column that comes up often
enough becomes a candidate for an index. The candidates are ranked by a
hypothetical cost. The cheaper half is then built in background processes.
Indexes that are no longer used enough are dropped again, according to a
retirement policy.

## Installation

```
pip install .
```

To also install the test dependencies:

```
pip install .[test]
```

The shell connects through SQLAlchemy with a `postgresql` URL. You need a
PostgreSQL driver that SQLAlchemy can use for that URL, such as `psycopg2`. It is
not installed with this package.

Index builders run in child processes created with `os.fork`, so the shell runs
on POSIX systems only.

## Running the shell

```
pgautoindex
```

Options:

| Option       | Default     |
|--------------|-------------|
| `--host`     | `localhost` |
| `--port`     | `5432`      |
| `--dbname`   | `imdb`      |
| `--user`     | `test`      |
| `--password` | `password`  |
| `--policy`   | `P2` (`P1` or `P2`) |

The shell shows a `pgshell# ` prompt. Type SQL statements at the prompt. Each
statement runs in its own transaction. Result rows are printed as left-aligned
columns 15 characters wide. A statement that returns no rows prints
`Query executed successfully. No results to display.`. Errors are printed on
standard error, and the transaction is rolled back.

The shell also accepts these commands:

| Command | Effect |
|---------|--------|
| `\d`    | list the tables in the `public` schema |
| `\show` | show the access count of every tracked table column |
| `\q`    | quit (end of input also quits) |

`main()` returns 1 when the database cannot be opened and 0 on a normal exit.

## How indexes are chosen

Before each statement runs, `pgautoindex.index.IndexAdvisor.on_query` does the
following:

1. Refreshes the per-table row counts. It does this on the first query and then
   whenever the query clock is a multiple of 50. The mean row count becomes the
   size threshold (`threshold2`).
2. Reaps background builder processes that have finished.
3. Writes the query to a temporary file and runs `query_parser.py` on it, in the
   current directory, with the running Python interpreter. Each output line has
   the form `table: ['col1', 'col2']`. Such a line is split by
   `parse_parser_output_line`. A column is kept only if the database reports that
   the table has it; this check ignores case.
4. Updates the column-access frequency map (`update_map`).
5. Selects the columns that either:
   * have an access count of at least 10, or
   * have an access count times the table's row count that reaches the size
     threshold (`scan_map`).
6. Runs `get_cost.py` (`hypothetical_cost`) for each selected column. It passes
   the query and a `CREATE INDEX ON table (column)` statement, and reads back a
   number. If no number is printed, the cost is 0.0.
7. Builds an index on the cheaper half (rounded up) of the candidates, each one in
   a child process (`spawn_index_builder`). An index that is already recorded is
   renewed instead.

Each index is named after its table followed by the query clock at creation,
for example `movies12`. After a child creates its index, it retires old indexes
(`clear_indices`) according to the policy in `pgautoindex.index.Policy`:

* **P1** drops indexes in creation order while they are more than 5 queries old.
* **P2** drops every index whose age is more than four times its access count.

Created indexes are tracked as `pgautoindex.datastructures.IndexEntry` objects
in an `IndexRegistry`, oldest first.

## What it does not include

The package does not ship `query_parser.py` or `get_cost.py`. You must place
both scripts in the directory the shell is started from.

Without `query_parser.py`, every statement prints
`Failed to execute query_parser.py.` and no indexes are ever created. The
statements themselves still run normally.

Without `get_cost.py`, every candidate gets a cost of 0.0.

## Using it as a library

```python
from pgautoindex.helper import format_result

print(format_result(["id", "name"], [(1, "alpha"), (2, "beta")]))
```

You can drive the shell loop yourself. Call `pgautoindex.shell.run_shell(connection,
advisor, read_line)` with a DB-API connection, an advisor and a function that
returns the next line, or `None` at the end of input.

To run a single statement through an advisor, use
`pgautoindex.helper.execute_and_print_query(connection, query, advisor)`.

`pgautoindex.shell.ConnectionSettings` holds the connection parameters. Its
`url()` method returns the SQLAlchemy URL built from them.