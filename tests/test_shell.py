import pytest

from pgautoindex.shell import PROMPT, ConnectionSettings, main, run_shell


class FakeCursor:
    def __init__(self, tables):
        self.tables = tables
        self.description = None
        self._rows = []
        self.executed = []

    def execute(self, sql, params=None):
        self.executed.append(sql)
        if "information_schema.tables" in sql:
            self.description = [("table_name",)]
            self._rows = [(name,) for name in self.tables]
        elif sql.upper().startswith("SELECT"):
            self.description = [("title",)]
            self._rows = [("Alien",)]
        else:
            self.description = None
            self._rows = []

    def fetchall(self):
        return self._rows

    def close(self):
        pass


class FakeConnection:
    def __init__(self, tables=()):
        self.tables = list(tables)
        self.commits = 0
        self.cursors = []

    def cursor(self):
        cursor = FakeCursor(self.tables)
        self.cursors.append(cursor)
        return cursor

    def commit(self):
        self.commits += 1

    def rollback(self):
        pass


class StubAdvisor:
    def __init__(self):
        self.ticks = 0
        self.queries = []
        self.shows = 0

    def tick(self):
        self.ticks += 1
        return self.ticks

    def on_query(self, cursor, query):
        self.queries.append(query)

    def show_num_accesses(self):
        self.shows += 1


def make_reader(lines, prompts=None):
    remaining = iter(lines)

    def read(prompt):
        if prompts is not None:
            prompts.append(prompt)
        return next(remaining, None)

    return read, remaining


def test_quit_stops_reading(capsys):
    prompts = []
    read, remaining = make_reader(["\\q", "SELECT 1"], prompts)
    advisor = StubAdvisor()
    run_shell(FakeConnection(), advisor, read)
    assert capsys.readouterr().out.endswith("Exiting...\n")
    assert advisor.queries == []
    assert next(remaining) == "SELECT 1"
    assert prompts == [PROMPT]


def test_end_of_input_exits(capsys):
    read, _ = make_reader([])
    run_shell(FakeConnection(), StubAdvisor(), read)
    assert "Exiting..." in capsys.readouterr().out


def test_list_relations(capsys):
    connection = FakeConnection(["movies", "people"])
    read, _ = make_reader(["\\d", "\\q"])
    run_shell(connection, StubAdvisor(), read)
    out = capsys.readouterr().out
    assert "List of relations\n-----------------\nmovies\npeople\n" in out
    assert connection.commits == 1


def test_query_is_ticked_and_run(capsys):
    connection = FakeConnection()
    advisor = StubAdvisor()
    read, _ = make_reader(["SELECT title FROM movies", "\\q"])
    run_shell(connection, advisor, read)
    assert advisor.ticks == 1
    assert advisor.queries == ["SELECT title FROM movies"]
    assert connection.cursors[0].executed == ["SELECT title FROM movies"]
    out = capsys.readouterr().out
    assert "title" in out
    assert "Alien" in out


def test_empty_line_is_ignored():
    advisor = StubAdvisor()
    read, _ = make_reader(["", "\\q"])
    run_shell(FakeConnection(), advisor, read)
    assert advisor.ticks == 0
    assert advisor.queries == []


def test_show_command():
    advisor = StubAdvisor()
    read, _ = make_reader(["\\show", "\\q"])
    run_shell(FakeConnection(), advisor, read)
    assert advisor.shows == 1
    assert advisor.ticks == 0


def test_default_settings_url():
    url = ConnectionSettings().url()
    assert url.drivername == "postgresql"
    assert url.host == "localhost"
    assert url.port == 5432
    assert url.database == "imdb"
    assert url.username == "test"


def test_custom_settings_url():
    url = ConnectionSettings(hostname="db.example.com", database="films").url()
    assert url.host == "db.example.com"
    assert url.database == "films"


def test_main_rejects_bad_port():
    with pytest.raises(SystemExit) as info:
        main(["--port", "not-a-number"])
    assert info.value.code == 2


def test_main_rejects_unknown_policy():
    with pytest.raises(SystemExit) as info:
        main(["--policy", "P9"])
    assert info.value.code == 2