"""Unit tests for SQL parsing into logical plans."""

from __future__ import annotations

import pytest

from tabular_db.adapters.inbound.sql_parser import SQLParser
from tabular_db.domain.errors import ParseError
from tabular_db.domain.value_objects.expressions import (
    AggregateExpr,
    AggregateFunc,
    BetweenExpr,
    CaseExpr,
    ComparisonExpr,
    ComparisonOp,
    FunctionExpr,
    InExpr,
    LiteralExpr,
    StarExpr,
)
from tabular_db.domain.value_objects.logical_plan import (
    Aggregate,
    AlterAction,
    AlterTablePlan,
    CreateTablePlan,
    DeletePlan,
    Distinct,
    DropTablePlan,
    Filter,
    InsertPlan,
    Join,
    JoinKind,
    Limit,
    OneRow,
    Project,
    Sort,
    StatementType,
    TableScan,
    TransactionPlan,
    UpdatePlan,
    statement_type_of,
)
from tabular_db.domain.value_objects.scalar_types import ScalarType


@pytest.mark.unit
class TestSelect:
    """Tests for SELECT plans."""

    def test_simple_select(self, parser: SQLParser) -> None:
        plan = parser.parse("SELECT id, name FROM friends WHERE id > 1;")
        assert isinstance(plan, Project)
        assert [item.output_name for item in plan.items] == ["id", "name"]
        assert isinstance(plan.input, Filter)
        assert isinstance(plan.input.input, TableScan)
        assert plan.input.input.table_name == "friends"

    def test_star(self, parser: SQLParser) -> None:
        plan = parser.parse("SELECT * FROM celebs")
        assert isinstance(plan, Project)
        assert isinstance(plan.items[0].expr, StarExpr)

    def test_select_without_from(self, parser: SQLParser) -> None:
        plan = parser.parse("SELECT 1 + 2 AS three")
        assert isinstance(plan, Project)
        assert isinstance(plan.input, OneRow)
        assert plan.items[0].output_name == "three"

    def test_expression_keeps_source_text_as_name(self, parser: SQLParser) -> None:
        plan = parser.parse("SELECT COUNT(*) FROM celebs")
        assert isinstance(plan, Project)
        assert plan.items[0].output_name == "COUNT(*)"

    def test_grouping_clauses(self, parser: SQLParser) -> None:
        plan = parser.parse(
            "SELECT genre, COUNT(*) FROM movies GROUP BY genre "
            "HAVING COUNT(*) > 1 ORDER BY 2 DESC LIMIT 5 OFFSET 2"
        )
        assert isinstance(plan, Limit)
        assert (plan.count, plan.offset) == (5, 2)
        sort = plan.input
        assert isinstance(sort, Sort)
        assert sort.order_by[0].position == 2
        assert sort.order_by[0].ascending is False
        having = sort.input
        assert isinstance(having, Filter)
        project = having.input
        assert isinstance(project, Project)
        aggregate = project.input
        assert isinstance(aggregate, Aggregate)
        assert len(aggregate.group_by) == 1
        # COUNT(*) in the select list and HAVING is computed once
        assert [str(a) for a in aggregate.aggregates] == ["COUNT(*)"]

    def test_group_by_ordinal_resolves_to_select_item(self, parser: SQLParser) -> None:
        plan = parser.parse("SELECT ROUND(rating), COUNT(*) FROM movies GROUP BY 1")
        assert isinstance(plan, Project)
        assert isinstance(plan.input, Aggregate)
        assert isinstance(plan.input.group_by[0], FunctionExpr)

    def test_aggregate_without_group_by(self, parser: SQLParser) -> None:
        plan = parser.parse("SELECT AVG(rating) FROM movies")
        assert isinstance(plan, Project)
        assert isinstance(plan.input, Aggregate)
        assert plan.input.group_by == []

    def test_distinct(self, parser: SQLParser) -> None:
        plan = parser.parse("SELECT DISTINCT genre FROM movies")
        assert isinstance(plan, Distinct)

    def test_negative_limit_means_unlimited(self, parser: SQLParser) -> None:
        plan = parser.parse("SELECT * FROM movies LIMIT -1")
        assert isinstance(plan, Limit)
        assert plan.count is None

    def test_joins(self, parser: SQLParser) -> None:
        plan = parser.parse(
            "SELECT * FROM a JOIN b ON a.id = b.a_id LEFT JOIN c ON c.id = b.c_id"
        )
        assert isinstance(plan, Project)
        outer = plan.input
        assert isinstance(outer, Join)
        assert outer.kind is JoinKind.LEFT
        assert isinstance(outer.left, Join)
        assert outer.left.kind is JoinKind.INNER

    def test_comma_join_is_cross(self, parser: SQLParser) -> None:
        plan = parser.parse("SELECT * FROM a, b")
        assert isinstance(plan, Project)
        assert isinstance(plan.input, Join)
        assert plan.input.kind is JoinKind.CROSS

    def test_table_alias(self, parser: SQLParser) -> None:
        plan = parser.parse("SELECT m.name FROM movies AS m")
        assert isinstance(plan, Project)
        scan = plan.input
        assert isinstance(scan, TableScan)
        assert scan.source_name == "m"


@pytest.mark.unit
class TestExpressions:
    """Tests for expression conversion."""

    def where(self, parser: SQLParser, condition: str):
        plan = parser.parse(f"SELECT * FROM t WHERE {condition}")
        assert isinstance(plan, Project)
        assert isinstance(plan.input, Filter)
        return plan.input.predicate

    def test_is_not_null(self, parser: SQLParser) -> None:
        predicate = self.where(parser, "health IS NOT NULL")
        assert isinstance(predicate, ComparisonExpr)
        assert predicate.op is ComparisonOp.IS_NOT_NULL

    def test_not_like(self, parser: SQLParser) -> None:
        predicate = self.where(parser, "name NOT LIKE 'S%'")
        assert isinstance(predicate, ComparisonExpr)
        assert predicate.op is ComparisonOp.NOT_LIKE

    def test_like_is_not_negated(self, parser: SQLParser) -> None:
        assert self.where(parser, "name LIKE 'S%'").op is ComparisonOp.LIKE
        assert self.where(parser, "name ILIKE 's%'").op is ComparisonOp.LIKE

    def test_double_negation_cancels(self, parser: SQLParser) -> None:
        assert self.where(parser, "NOT (name NOT LIKE 'S%')").op is ComparisonOp.LIKE
        assert self.where(parser, "NOT (health IS NOT NULL)").op is ComparisonOp.IS_NULL
        assert self.where(parser, "NOT name LIKE 'S%'").op is ComparisonOp.NOT_LIKE

    def test_in_and_between(self, parser: SQLParser) -> None:
        predicate = self.where(parser, "id IN (1, 2, 3)")
        assert isinstance(predicate, InExpr)
        assert len(predicate.values) == 3
        predicate = self.where(parser, "id NOT BETWEEN 1 AND 5")
        assert isinstance(predicate, BetweenExpr)
        assert predicate.negated is True

    def test_negative_literal_is_folded(self, parser: SQLParser) -> None:
        predicate = self.where(parser, "score > -3")
        assert isinstance(predicate, ComparisonExpr)
        assert predicate.right == LiteralExpr(-3)

    def test_case(self, parser: SQLParser) -> None:
        plan = parser.parse(
            "SELECT CASE WHEN rating > 8 THEN 'Great' ELSE 'Poor' END AS verdict FROM movies"
        )
        assert isinstance(plan, Project)
        expr = plan.items[0].expr
        assert isinstance(expr, CaseExpr)
        assert expr.default == LiteralExpr("Poor")

    def test_function_aliases(self, parser: SQLParser) -> None:
        plan = parser.parse("SELECT IFNULL(a, 0), SUBSTR(b, 1, 2) FROM t")
        assert isinstance(plan, Project)
        names = [item.expr.name for item in plan.items if isinstance(item.expr, FunctionExpr)]
        assert names == ["COALESCE", "SUBSTRING"]

    def test_count_distinct(self, parser: SQLParser) -> None:
        plan = parser.parse("SELECT COUNT(DISTINCT genre) FROM movies")
        assert isinstance(plan, Project)
        expr = plan.items[0].expr
        assert isinstance(expr, AggregateExpr)
        assert expr.func is AggregateFunc.COUNT
        assert expr.distinct is True

    def test_parse_expression(self, parser: SQLParser) -> None:
        assert parser.parse_expression("'unknown'") == LiteralExpr("unknown")


@pytest.mark.unit
class TestStatements:
    """Tests for DML, DDL and transaction statements."""

    def test_insert_values(self, parser: SQLParser) -> None:
        plan = parser.parse("INSERT INTO friends (id, name) VALUES (1, 'Ann'), (2, NULL)")
        assert isinstance(plan, InsertPlan)
        assert plan.columns == ["id", "name"]
        assert plan.values[1] == [LiteralExpr(2), LiteralExpr(None)]
        assert statement_type_of(plan) is StatementType.INSERT

    def test_insert_select(self, parser: SQLParser) -> None:
        plan = parser.parse("INSERT INTO archive SELECT * FROM friends")
        assert isinstance(plan, InsertPlan)
        assert plan.columns == []
        assert isinstance(plan.query, Project)

    def test_update(self, parser: SQLParser) -> None:
        plan = parser.parse("UPDATE celebs SET twitter_handle = '@taylorswift13' WHERE id = 4")
        assert isinstance(plan, UpdatePlan)
        assert list(plan.assignments) == ["twitter_handle"]
        assert plan.predicate is not None

    def test_delete_without_where(self, parser: SQLParser) -> None:
        plan = parser.parse("DELETE FROM celebs")
        assert isinstance(plan, DeletePlan)
        assert plan.predicate is None

    def test_create_table(self, parser: SQLParser) -> None:
        plan = parser.parse(
            "CREATE TABLE IF NOT EXISTS friends ("
            "id INTEGER PRIMARY KEY, name TEXT NOT NULL, "
            "rating REAL DEFAULT 0, birthday DATE, email TEXT UNIQUE)"
        )
        assert isinstance(plan, CreateTablePlan)
        assert plan.if_not_exists is True
        by_name = {c.name: c for c in plan.columns}
        assert by_name["id"].primary_key is True
        assert by_name["name"].nullable is False
        assert by_name["rating"].data_type is ScalarType.REAL
        assert by_name["rating"].default == LiteralExpr(0)
        assert by_name["birthday"].data_type is ScalarType.DATE
        assert by_name["email"].unique is True

    def test_table_level_primary_key(self, parser: SQLParser) -> None:
        plan = parser.parse("CREATE TABLE pairs (a INTEGER, b INTEGER, PRIMARY KEY (a, b))")
        assert isinstance(plan, CreateTablePlan)
        assert plan.primary_key == ["a", "b"]

    def test_drop_table(self, parser: SQLParser) -> None:
        plan = parser.parse("DROP TABLE IF EXISTS friends")
        assert isinstance(plan, DropTablePlan)
        assert plan.if_exists is True

        plan = parser.parse("DROP TABLE celebs")
        assert isinstance(plan, DropTablePlan)
        assert plan.table_name == "celebs"
        assert plan.if_exists is False

    def test_alter_table(self, parser: SQLParser) -> None:
        plan = parser.parse("ALTER TABLE celebs ADD COLUMN twitter_handle TEXT")
        assert isinstance(plan, AlterTablePlan)
        assert plan.action is AlterAction.ADD_COLUMN
        assert plan.column is not None and plan.column.name == "twitter_handle"

        plan = parser.parse("ALTER TABLE celebs RENAME TO stars")
        assert isinstance(plan, AlterTablePlan)
        assert plan.action is AlterAction.RENAME_TABLE
        assert plan.new_name == "stars"

        plan = parser.parse("ALTER TABLE celebs DROP COLUMN age")
        assert isinstance(plan, AlterTablePlan)
        assert plan.action is AlterAction.DROP_COLUMN
        assert plan.old_name == "age"

    def test_transactions(self, parser: SQLParser) -> None:
        for sql, expected in [
            ("BEGIN", StatementType.BEGIN),
            ("COMMIT", StatementType.COMMIT),
            ("ROLLBACK", StatementType.ROLLBACK),
        ]:
            plan = parser.parse(sql)
            assert isinstance(plan, TransactionPlan)
            assert plan.statement_type is expected


@pytest.mark.unit
class TestParseErrors:
    """Tests for rejected input."""

    @pytest.mark.parametrize(
        "sql",
        [
            "SELECT (1",
            "",
            "SELECT 1; SELECT 2",
            "CREATE INDEX idx ON friends (name)",
            "DROP TABLE a, b",
            "DROP VIEW v",
            "SELECT * FROM a RIGHT JOIN b ON a.id = b.id",
            "SELECT * FROM a LEFT JOIN b",
            "SELECT * FROM t WHERE COUNT(*) > 1",
            "SELECT name FROM t GROUP BY COUNT(*)",
            "SELECT SUM(COUNT(*)) FROM t",
            "SELECT * FROM t WHERE id IN (SELECT id FROM u)",
            "SELECT FOO(name) FROM t",
            "UPDATE t SET a = COUNT(*)",
        ],
    )
    def test_rejected(self, parser: SQLParser, sql: str) -> None:
        with pytest.raises(ParseError):
            parser.parse(sql)


@pytest.mark.unit
class TestParseScript:
    """Tests for splitting scripts into statements."""

    def test_splits_on_semicolons(self, parser: SQLParser) -> None:
        script = """
            -- set up
            CREATE TABLE t (a INTEGER);
            INSERT INTO t VALUES (1);
            ;
            SELECT * FROM t
        """
        assert parser.parse_script(script) == [
            "CREATE TABLE t (a INTEGER)",
            "INSERT INTO t VALUES (1)",
            "SELECT * FROM t",
        ]

    def test_semicolon_inside_string(self, parser: SQLParser) -> None:
        statements = parser.parse_script("INSERT INTO t VALUES ('a;b'); SELECT 1;")
        assert statements == ["INSERT INTO t VALUES ('a;b')", "SELECT 1"]

    def test_empty_script(self, parser: SQLParser) -> None:
        assert parser.parse_script("  -- nothing here\n") == []
