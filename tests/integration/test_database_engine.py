"""Integration tests for the database engine facade."""

from __future__ import annotations

import datetime
from pathlib import Path

import pytest

from tabular_db.application.database_engine import DatabaseEngine
from tabular_db.domain.errors import SchemaError
from tabular_db.domain.value_objects.logical_plan import StatementType
from tabular_db.infrastructure.config import Config
from tabular_db.infrastructure.metrics import MetricsRegistry


def rows(engine: DatabaseEngine, sql: str) -> list[tuple]:
    result = engine.execute(sql)
    assert result.success, result.message
    return [row.as_tuple() for row in result.rows]


@pytest.fixture
def celebs(engine: DatabaseEngine) -> DatabaseEngine:
    engine.execute_script(
        """
        CREATE TABLE celebs (id INTEGER PRIMARY KEY, name TEXT, age INTEGER, health TEXT);
        INSERT INTO celebs (name, age, health) VALUES
          ('Justin Bieber', 29, 'good'),
          ('Storm', 40, NULL),
          ('Jeremy Lin', 35, ''),
          ('Storm', 41, 'good');
        """
    )
    return engine


@pytest.mark.integration
class TestLifecycle:
    """Tests for start/stop and statement execution."""

    def test_requires_start(self, test_config: Config, metrics_registry: MetricsRegistry) -> None:
        db = DatabaseEngine(config=test_config, metrics=metrics_registry)
        with pytest.raises(RuntimeError, match="not started"):
            db.execute("SELECT 1")
        db.start()
        with pytest.raises(RuntimeError, match="already started"):
            db.start()
        db.stop()
        assert not db.is_started

    def test_failure_is_returned_not_raised(self, engine: DatabaseEngine) -> None:
        result = engine.execute("SELECT * FROM nowhere")
        assert not result.success
        assert result.statement_type is StatementType.SELECT
        assert result.message == "schema error: no such table: nowhere"

        result = engine.execute("SELEC 1")
        assert not result.success
        assert result.error.kind == "parse"

    def test_drop_statements(self, celebs: DatabaseEngine) -> None:
        result = celebs.execute("ALTER TABLE celebs DROP COLUMN twitter")
        assert not result.success
        assert result.error.kind == "schema"

        assert celebs.execute("ALTER TABLE celebs DROP COLUMN health").success
        assert [c["name"] for c in celebs.describe("celebs")["columns"]] == ["id", "name", "age"]
        assert celebs.execute("DROP TABLE celebs").success
        assert celebs.table_names() == []

    def test_describe(self, celebs: DatabaseEngine) -> None:
        info = celebs.describe("celebs")
        assert info["row_count"] == 4
        assert info["primary_key"] == ["id"]
        with pytest.raises(SchemaError):
            celebs.describe("nope")


@pytest.mark.integration
class TestScripts:
    """Tests for script execution."""

    def test_continues_past_failures(self, engine: DatabaseEngine) -> None:
        results = engine.execute_script(
            "CREATE TABLE t (a INTEGER); INSERT INTO t VALUES ('x'); INSERT INTO t VALUES (1);"
        )
        assert [r.success for r in results] == [True, False, True]
        assert rows(engine, "SELECT a FROM t") == [(1,)]

    def test_stop_on_error(self, engine: DatabaseEngine) -> None:
        results = engine.execute_script(
            "CREATE TABLE t (a INTEGER); SELECT b FROM t; INSERT INTO t VALUES (1)",
            stop_on_error=True,
        )
        assert [r.success for r in results] == [True, False]
        assert rows(engine, "SELECT COUNT(*) FROM t") == [(0,)]

    def test_unterminated_string(self, engine: DatabaseEngine) -> None:
        (result,) = engine.execute_script("SELECT 'oops")
        assert not result.success
        assert result.error.kind == "parse"

    def test_execute_file(self, engine: DatabaseEngine, temp_dir: Path) -> None:
        script = temp_dir / "script.sql"
        script.write_text("CREATE TABLE t (a TEXT);\nINSERT INTO t VALUES ('x');\n", encoding="utf-8")
        assert all(r.success for r in engine.execute_file(script))
        assert engine.table_names() == ["t"]


@pytest.mark.integration
class TestStatementProperties:
    """Behavior a tutorial reader relies on."""

    def test_insert_select_round_trip(self, engine: DatabaseEngine) -> None:
        engine.execute("CREATE TABLE t (a INTEGER, b TEXT, c REAL, d DATE)")
        inserted = [
            (1, "one", 1.5, datetime.date(2021, 1, 1)),
            (2, None, None, None),
            (3, "three", -0.25, datetime.date(1999, 12, 31)),
        ]
        engine.execute(
            "INSERT INTO t VALUES (1, 'one', 1.5, '2021-01-01'), (2, NULL, NULL, NULL), "
            "(3, 'three', -0.25, '1999-12-31')"
        )
        assert rows(engine, "SELECT * FROM t") == inserted

    def test_update_touches_only_matching_rows(self, celebs: DatabaseEngine) -> None:
        before = rows(celebs, "SELECT * FROM celebs")
        result = celebs.execute("UPDATE celebs SET age = 30 WHERE id = 1")
        assert result.affected_rows == 1
        after = rows(celebs, "SELECT * FROM celebs")
        assert after[0] == (1, "Justin Bieber", 30, "good")
        assert after[1:] == before[1:]

    def test_delete_by_name(self, celebs: DatabaseEngine) -> None:
        result = celebs.execute("DELETE FROM celebs WHERE name = 'Storm'")
        assert result.affected_rows == 2
        assert rows(celebs, "SELECT name FROM celebs") == [("Justin Bieber",), ("Jeremy Lin",)]

    def test_add_column_is_null_on_existing_rows(self, celebs: DatabaseEngine) -> None:
        celebs.execute("ALTER TABLE celebs ADD COLUMN email TEXT")
        result = celebs.execute("SELECT * FROM celebs")
        assert result.columns[-1] == "email"
        assert all(row["email"] is None for row in result.rows)

    def test_order_by_desc_limit_keeps_insertion_order_on_ties(self, engine: DatabaseEngine) -> None:
        engine.execute_script(
            """
            CREATE TABLE movies (name TEXT, imdb_rating REAL);
            INSERT INTO movies VALUES ('a', 7.0), ('b', 9.0), ('c', 8.0), ('d', 9.0), ('e', 8.0);
            """
        )
        assert rows(engine, "SELECT name FROM movies ORDER BY imdb_rating DESC LIMIT 3") == [
            ("b",),
            ("d",),
            ("c",),
        ]

    def test_null_or_empty(self, celebs: DatabaseEngine) -> None:
        assert rows(celebs, "SELECT id FROM celebs WHERE health IS NULL OR health = ''") == [
            (2,),
            (3,),
        ]

    def test_failed_statement_leaves_table_unchanged(self, celebs: DatabaseEngine) -> None:
        before = rows(celebs, "SELECT * FROM celebs")
        for sql in [
            "UPDATE celebs SET age = 'old'",
            "UPDATE celebs SET id = 2 WHERE id = 1",
            "INSERT INTO celebs (id, name) VALUES (9, 'ok'), (1, 'taken')",
            "DELETE FROM celebs WHERE unknown_column = 1",
            "ALTER TABLE celebs ADD COLUMN age INTEGER",
        ]:
            assert not celebs.execute(sql).success, sql
        assert rows(celebs, "SELECT * FROM celebs") == before


@pytest.mark.integration
class TestSnapshots:
    """Tests for loading and saving the catalog."""

    def test_round_trip_between_engines(
        self, snapshot_config: Config, metrics_registry: MetricsRegistry
    ) -> None:
        with DatabaseEngine(config=snapshot_config, metrics=metrics_registry) as db:
            db.execute_script(
                """
                CREATE TABLE friends (id INTEGER PRIMARY KEY, name TEXT NOT NULL,
                                      birthday DATE, status TEXT DEFAULT 'new');
                INSERT INTO friends (name, birthday) VALUES ('Jane Doe', '1990-05-30'), ('Ann', NULL);
                """
            )
            original = db.describe("friends")

        assert snapshot_config.storage.data_file.is_file()

        with DatabaseEngine(config=snapshot_config, metrics=metrics_registry) as db:
            assert db.describe("friends") == original
            assert rows(db, "SELECT * FROM friends") == [
                (1, "Jane Doe", datetime.date(1990, 5, 30), "new"),
                (2, "Ann", None, "new"),
            ]
            db.execute("INSERT INTO friends (name) VALUES ('Bob')")
            assert rows(db, "SELECT id, status FROM friends WHERE name = 'Bob'") == [(3, "new")]

    def test_save_to_explicit_path(self, engine: DatabaseEngine, temp_dir: Path) -> None:
        engine.execute("CREATE TABLE t (a INTEGER)")
        target = temp_dir / "export.json"
        assert engine.save(target) == 1
        assert target.is_file()

    def test_save_without_store(self, engine: DatabaseEngine) -> None:
        with pytest.raises(RuntimeError, match="No snapshot file"):
            engine.save()


@pytest.mark.integration
class TestObservability:
    """Tests for metrics and statistics."""

    def test_metrics_and_stats(self, engine: DatabaseEngine, metrics_registry: MetricsRegistry) -> None:
        engine.execute("CREATE TABLE t (a INTEGER)")
        engine.execute("INSERT INTO t VALUES (1), (2)")
        engine.execute("SELECT * FROM t")
        engine.execute("SELECT * FROM missing")

        registry = metrics_registry.registry
        assert registry.get_sample_value(
            "tabular_statements_total", {"statement_type": "insert", "status": "success"}
        ) == 1.0
        assert registry.get_sample_value(
            "tabular_statements_total", {"statement_type": "select", "status": "error"}
        ) == 1.0
        assert registry.get_sample_value("tabular_rows_returned_total") == 2.0
        assert registry.get_sample_value("tabular_rows_affected_total") == 2.0
        assert registry.get_sample_value("tabular_tables") == 1.0

        stats = engine.get_stats()
        assert stats["statements_executed"] == 4
        assert stats["statements_failed"] == 1
        assert stats["tables"] == {"t": 2}
