"""Unit tests for the query executor."""

from __future__ import annotations

import datetime

import pytest

from tabular_db.adapters.inbound.sql_parser import SQLParser
from tabular_db.application.executor import ExecutionResult, QueryExecutor
from tabular_db.domain.errors import (
    ConstraintError,
    ParseError,
    SchemaError,
    TypeMismatchError,
)
from tabular_db.domain.value_objects.logical_plan import StatementType


class Session:
    """Parses and executes statements against one executor."""

    def __init__(self, parser: SQLParser, executor: QueryExecutor) -> None:
        self.parser = parser
        self.executor = executor

    def run(self, sql: str) -> ExecutionResult:
        return self.executor.execute(self.parser.parse(sql))

    def rows(self, sql: str) -> list[tuple]:
        return [row.as_tuple() for row in self.run(sql).rows]

    def stored(self, table: str) -> list[dict]:
        return [dict(row) for row in self.executor.registry.get_table(table).rows]


@pytest.fixture
def session(parser: SQLParser, executor: QueryExecutor) -> Session:
    return Session(parser, executor)


@pytest.fixture
def movies(session: Session) -> Session:
    session.run(
        "CREATE TABLE movies (id INTEGER PRIMARY KEY, name TEXT NOT NULL, "
        "genre TEXT, year INTEGER, imdb_rating REAL)"
    )
    session.run(
        "INSERT INTO movies (name, genre, year, imdb_rating) VALUES "
        "('Avatar', 'action', 2009, 7.9), "
        "('Jurassic World', 'action', 2015, 7.3), "
        "('Frozen', 'comedy', 2013, 7.6), "
        "('Toy Story', 'comedy', 1995, 8.3), "
        "('Gone Girl', 'drama', 2014, 8.2), "
        "('Mystery', NULL, 2001, NULL)"
    )
    return session


@pytest.mark.unit
class TestInsert:
    """Tests for INSERT."""

    def test_rowid_and_message(self, movies: Session) -> None:
        result = movies.run("INSERT INTO movies (name) VALUES ('Up')")
        assert result.affected_rows == 1
        assert result.message == "OK: 1 row(s) inserted"
        assert result.statement_type is StatementType.INSERT
        assert movies.stored("movies")[-1]["id"] == 7

    def test_values_are_coerced(self, session: Session) -> None:
        session.run("CREATE TABLE t (n INTEGER, r REAL, s TEXT, d DATE)")
        session.run("INSERT INTO t VALUES ('12', 3, 4, '2020-02-29')")
        assert session.stored("t") == [
            {"n": 12, "r": 3.0, "s": "4", "d": datetime.date(2020, 2, 29)}
        ]

    def test_defaults(self, session: Session) -> None:
        session.run("CREATE TABLE t (a INTEGER, status TEXT DEFAULT 'new')")
        session.run("INSERT INTO t (a) VALUES (1)")
        assert session.stored("t") == [{"a": 1, "status": "new"}]

    def test_value_count_mismatch(self, movies: Session) -> None:
        with pytest.raises(SchemaError, match="has 5 columns but 2 values"):
            movies.run("INSERT INTO movies VALUES (1, 'x')")
        with pytest.raises(SchemaError, match="1 values for 2 columns"):
            movies.run("INSERT INTO movies (id, name) VALUES (1)")

    def test_failure_inserts_nothing(self, movies: Session) -> None:
        before = movies.stored("movies")
        with pytest.raises(ConstraintError):
            movies.run("INSERT INTO movies (id, name) VALUES (100, 'ok'), (1, 'duplicate')")
        with pytest.raises(ConstraintError, match="NOT NULL"):
            movies.run("INSERT INTO movies (id, name) VALUES (101, 'ok'), (102, NULL)")
        with pytest.raises(TypeMismatchError):
            movies.run("INSERT INTO movies (name, year) VALUES ('a', 2000), ('b', 'soon')")
        assert movies.stored("movies") == before

    def test_insert_select(self, movies: Session) -> None:
        movies.run("CREATE TABLE classics (name TEXT, year INTEGER)")
        result = movies.run("INSERT INTO classics SELECT name, year FROM movies WHERE year < 2000")
        assert result.affected_rows == 1
        assert movies.stored("classics") == [{"name": "Toy Story", "year": 1995}]

    def test_unknown_table_and_column(self, movies: Session) -> None:
        with pytest.raises(SchemaError, match="no such table"):
            movies.run("INSERT INTO nope VALUES (1)")
        with pytest.raises(SchemaError):
            movies.run("INSERT INTO movies (title) VALUES ('x')")


@pytest.mark.unit
class TestSelect:
    """Tests for SELECT evaluation."""

    def test_where_and_columns(self, movies: Session) -> None:
        result = movies.run("SELECT name, year FROM movies WHERE imdb_rating > 8")
        assert result.columns == ["name", "year"]
        assert [row.as_tuple() for row in result.rows] == [("Toy Story", 1995), ("Gone Girl", 2014)]
        assert result.message == "OK: 2 row(s)"

    def test_null_never_matches_comparison(self, movies: Session) -> None:
        assert movies.rows("SELECT name FROM movies WHERE genre <> 'action' AND genre <> 'drama'") == [
            ("Frozen",),
            ("Toy Story",),
        ]
        assert movies.rows("SELECT name FROM movies WHERE genre IS NULL") == [("Mystery",)]

    def test_select_without_from(self, session: Session) -> None:
        result = session.run("SELECT 1 + 2, 'a' || 'b' AS ab")
        assert result.columns == ["1 + 2", "ab"]
        assert [row.as_tuple() for row in result.rows] == [(3, "ab")]

    def test_star_without_from(self, session: Session) -> None:
        with pytest.raises(ParseError, match="no tables specified"):
            session.run("SELECT *")

    def test_order_by_is_stable(self, movies: Session) -> None:
        rows = movies.rows("SELECT name, genre FROM movies ORDER BY genre DESC")
        assert rows == [
            ("Gone Girl", "drama"),
            ("Frozen", "comedy"),
            ("Toy Story", "comedy"),
            ("Avatar", "action"),
            ("Jurassic World", "action"),
            ("Mystery", None),
        ]

    def test_order_by_mixed_directions_and_alias(self, movies: Session) -> None:
        rows = movies.rows(
            "SELECT genre AS g, name FROM movies WHERE genre IS NOT NULL "
            "ORDER BY g ASC, year DESC"
        )
        assert rows[:2] == [("action", "Jurassic World"), ("action", "Avatar")]

    def test_order_by_unselected_column(self, movies: Session) -> None:
        assert movies.rows("SELECT name FROM movies ORDER BY year LIMIT 2") == [
            ("Toy Story",),
            ("Mystery",),
        ]

    def test_order_by_position_out_of_range(self, movies: Session) -> None:
        with pytest.raises(ParseError, match="out of range"):
            movies.run("SELECT name FROM movies ORDER BY 2")

    def test_limit_offset(self, movies: Session) -> None:
        assert movies.rows("SELECT id FROM movies ORDER BY id LIMIT 2 OFFSET 3") == [(4,), (5,)]
        assert movies.rows("SELECT id FROM movies LIMIT 0") == []

    def test_distinct(self, movies: Session) -> None:
        assert movies.rows("SELECT DISTINCT genre FROM movies ORDER BY genre") == [
            (None,),
            ("action",),
            ("comedy",),
            ("drama",),
        ]

    def test_like_and_between(self, movies: Session) -> None:
        assert movies.rows("SELECT name FROM movies WHERE name LIKE '%o%' AND year BETWEEN 2010 AND 2014") == [
            ("Frozen",),
            ("Gone Girl",),
        ]

    def test_not_like_keeps_non_matching_rows(self, session: Session) -> None:
        session.run("CREATE TABLE celebs (id INTEGER, name TEXT)")
        session.run("INSERT INTO celebs VALUES (1, 'Storm'), (2, 'Taylor'), (3, 'Sam'), (4, NULL)")
        assert session.rows("SELECT name FROM celebs WHERE name NOT LIKE 'S%'") == [("Taylor",)]
        assert session.rows("SELECT name FROM celebs WHERE NOT (name NOT LIKE 'S%')") == [
            ("Storm",),
            ("Sam",),
        ]

    def test_case(self, movies: Session) -> None:
        rows = movies.rows(
            "SELECT name, CASE WHEN imdb_rating > 8 THEN 'Fantastic' "
            "WHEN imdb_rating > 6 THEN 'Poorly Received' ELSE 'Avoid at All Costs' END AS review "
            "FROM movies WHERE id IN (1, 4, 6)"
        )
        assert rows == [
            ("Avatar", "Poorly Received"),
            ("Toy Story", "Fantastic"),
            ("Mystery", "Avoid at All Costs"),
        ]

    def test_cross_kind_comparison(self, movies: Session) -> None:
        with pytest.raises(TypeMismatchError):
            movies.run("SELECT * FROM movies WHERE id = 'one'")

    def test_unknown_column_fails_on_empty_table(self, session: Session) -> None:
        session.run("CREATE TABLE empty (a INTEGER)")
        with pytest.raises(SchemaError, match="no such column: b"):
            session.run("SELECT a FROM empty WHERE b = 1")


@pytest.mark.unit
class TestAggregation:
    """Tests for aggregates, GROUP BY and HAVING."""

    def test_aggregate_over_whole_table(self, movies: Session) -> None:
        result = movies.run("SELECT COUNT(*), COUNT(genre), MAX(year), MIN(name) FROM movies")
        assert result.columns == ["COUNT(*)", "COUNT(genre)", "MAX(year)", "MIN(name)"]
        assert [row.as_tuple() for row in result.rows] == [(6, 5, 2015, "Avatar")]

    def test_aggregate_over_empty_input(self, movies: Session) -> None:
        assert movies.rows("SELECT COUNT(*), SUM(year) FROM movies WHERE year > 3000") == [(0, None)]

    def test_groups_are_ordered_by_key(self, movies: Session) -> None:
        rows = movies.rows("SELECT genre, COUNT(*) FROM movies GROUP BY genre")
        assert rows == [(None, 1), ("action", 2), ("comedy", 2), ("drama", 1)]

    def test_having_and_order_by_aggregate(self, movies: Session) -> None:
        rows = movies.rows(
            "SELECT genre, ROUND(AVG(imdb_rating), 2) FROM movies GROUP BY genre "
            "HAVING COUNT(*) > 1 ORDER BY AVG(imdb_rating) DESC"
        )
        assert rows == [("comedy", 7.95), ("action", 7.6)]

    def test_group_by_ordinal_and_alias(self, movies: Session) -> None:
        by_ordinal = movies.rows(
            "SELECT ROUND(imdb_rating) AS rounded, COUNT(name) FROM movies "
            "WHERE imdb_rating IS NOT NULL GROUP BY 1"
        )
        by_alias = movies.rows(
            "SELECT ROUND(imdb_rating) AS rounded, COUNT(name) FROM movies "
            "WHERE imdb_rating IS NOT NULL GROUP BY rounded"
        )
        assert by_ordinal == by_alias == [(7.0, 1), (8.0, 4)]

    def test_aggregate_alias_in_group_by(self, movies: Session) -> None:
        with pytest.raises(ParseError):
            movies.run("SELECT COUNT(*) AS n FROM movies GROUP BY n")


@pytest.mark.unit
class TestJoins:
    """Tests for INNER, LEFT and CROSS joins."""

    @pytest.fixture
    def shop(self, session: Session) -> Session:
        session.run("CREATE TABLE customers (id INTEGER PRIMARY KEY, name TEXT)")
        session.run("CREATE TABLE orders (id INTEGER PRIMARY KEY, customer_id INTEGER, total REAL)")
        session.run("INSERT INTO customers (name) VALUES ('Ann'), ('Bob'), ('Cy')")
        session.run("INSERT INTO orders (customer_id, total) VALUES (1, 10), (1, 5.5), (2, 7)")
        return session

    def test_inner_join(self, shop: Session) -> None:
        rows = shop.rows(
            "SELECT c.name, o.total FROM customers c JOIN orders o ON o.customer_id = c.id"
        )
        assert rows == [("Ann", 10.0), ("Ann", 5.5), ("Bob", 7.0)]

    def test_left_join_null_extends(self, shop: Session) -> None:
        rows = shop.rows(
            "SELECT customers.name, COUNT(orders.id) FROM customers "
            "LEFT JOIN orders ON orders.customer_id = customers.id "
            "GROUP BY customers.name"
        )
        assert rows == [("Ann", 2), ("Bob", 1), ("Cy", 0)]

    def test_cross_join(self, shop: Session) -> None:
        assert len(shop.rows("SELECT * FROM customers, orders")) == 9

    def test_qualified_star(self, shop: Session) -> None:
        result = shop.run("SELECT o.* FROM customers c JOIN orders o ON o.customer_id = c.id")
        assert result.columns == ["id", "customer_id", "total"]

    def test_ambiguous_column(self, shop: Session) -> None:
        with pytest.raises(SchemaError, match="ambiguous"):
            shop.run("SELECT id FROM customers JOIN orders ON orders.customer_id = customers.id")


@pytest.mark.unit
class TestUpdateDelete:
    """Tests for UPDATE and DELETE."""

    def test_update(self, movies: Session) -> None:
        result = movies.run("UPDATE movies SET imdb_rating = imdb_rating + 1 WHERE genre = 'drama'")
        assert result.affected_rows == 1
        assert result.message == "OK: 1 row(s) updated"
        assert movies.rows("SELECT imdb_rating FROM movies WHERE id = 5") == [(9.2,)]

    def test_update_is_all_or_nothing(self, movies: Session) -> None:
        before = movies.stored("movies")
        with pytest.raises(ConstraintError, match="PRIMARY KEY"):
            movies.run("UPDATE movies SET id = 1 WHERE genre = 'comedy'")
        with pytest.raises(TypeMismatchError):
            movies.run("UPDATE movies SET year = name")
        assert movies.stored("movies") == before

    def test_update_unknown_column(self, movies: Session) -> None:
        with pytest.raises(SchemaError):
            movies.run("UPDATE movies SET title = 'x'")

    def test_delete(self, movies: Session) -> None:
        result = movies.run("DELETE FROM movies WHERE imdb_rating IS NULL")
        assert result.affected_rows == 1
        assert result.message == "OK: 1 row(s) deleted"
        assert movies.run("DELETE FROM movies").affected_rows == 5
        assert movies.stored("movies") == []


@pytest.mark.unit
class TestDDL:
    """Tests for CREATE, DROP and ALTER TABLE."""

    def test_create_and_drop(self, session: Session) -> None:
        assert session.run("CREATE TABLE t (a INTEGER)").message == "OK: table 't' created"
        with pytest.raises(SchemaError, match="already exists"):
            session.run("CREATE TABLE t (a INTEGER)")
        assert session.run("DROP TABLE t").message == "OK: table 't' dropped"
        with pytest.raises(SchemaError, match="no such table"):
            session.run("DROP TABLE t")
        assert session.run("DROP TABLE IF EXISTS t").success

    def test_add_column_backfills(self, movies: Session) -> None:
        result = movies.run("ALTER TABLE movies ADD COLUMN seen INTEGER DEFAULT 0")
        assert result.affected_rows == 6
        assert movies.rows("SELECT DISTINCT seen FROM movies") == [(0,)]

    def test_rename_and_drop_column(self, movies: Session) -> None:
        movies.run("ALTER TABLE movies RENAME COLUMN imdb_rating TO rating")
        assert movies.rows("SELECT rating FROM movies WHERE id = 1") == [(7.9,)]
        movies.run("ALTER TABLE movies DROP COLUMN rating")
        with pytest.raises(SchemaError):
            movies.run("SELECT rating FROM movies")

    def test_drop_table_removes_it(self, movies: Session) -> None:
        result = movies.run("DROP TABLE movies")
        assert result.statement_type is StatementType.DROP_TABLE
        assert movies.executor.registry.table_names() == []

    def test_drop_unknown_column(self, movies: Session) -> None:
        with pytest.raises(SchemaError):
            movies.run("ALTER TABLE movies DROP COLUMN email")
        assert "name" in movies.stored("movies")[0]

    def test_rename_table(self, movies: Session) -> None:
        movies.run("ALTER TABLE movies RENAME TO films")
        assert movies.executor.registry.table_names() == ["films"]

    def test_transactions_are_acknowledged(self, movies: Session) -> None:
        assert movies.run("BEGIN").success
        movies.run("DELETE FROM movies")
        result = movies.run("ROLLBACK")
        assert result.statement_type is StatementType.ROLLBACK
        assert movies.stored("movies") == []


@pytest.mark.unit
class TestExecutionResult:
    """Tests for result helpers."""

    def test_failure(self) -> None:
        result = ExecutionResult.failure(SchemaError("no such table: t"), StatementType.SELECT)
        assert not result.success
        assert result.message == "schema error: no such table: t"
        assert result.to_dict()["error"] == {"kind": "schema", "message": "no such table: t"}
        with pytest.raises(SchemaError):
            result.raise_for_error()

    def test_to_dict_renders_dates(self, session: Session) -> None:
        result = session.run("SELECT CAST('2020-01-02' AS DATE) AS d")
        assert result.to_dict()["rows"] == [["2020-01-02"]]
