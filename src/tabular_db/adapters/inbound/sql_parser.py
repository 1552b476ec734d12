"""SQL Parser using sqlglot.

This module converts SQL strings into the logical plans executed by the
query executor. sqlglot does the tokenizing and builds the syntax tree;
this module walks that tree and keeps to the supported subset, raising
``ParseError`` for anything outside it.

Supported statements:
    - SELECT (DISTINCT, joins, WHERE, GROUP BY, HAVING, ORDER BY,
      LIMIT/OFFSET)
    - INSERT (VALUES or SELECT)
    - UPDATE
    - DELETE
    - CREATE TABLE / DROP TABLE
    - ALTER TABLE (ADD COLUMN, DROP COLUMN, RENAME COLUMN, RENAME TO)
    - BEGIN / COMMIT / ROLLBACK

References:
    - sqlglot documentation: https://sqlglot.com/
"""

from __future__ import annotations

import sqlglot
from sqlglot import exp
from sqlglot.dialects.dialect import Dialect
from sqlglot.errors import SqlglotError
from sqlglot.tokens import TokenType

from tabular_db.domain.entities.schema import ColumnDef
from tabular_db.domain.errors import ParseError
from tabular_db.domain.services.expression_evaluator import SCALAR_FUNCTIONS
from tabular_db.domain.value_objects.expressions import (
    AggregateExpr,
    AggregateFunc,
    ArithmeticExpr,
    ArithmeticOp,
    BetweenExpr,
    CaseExpr,
    CastExpr,
    ColumnExpr,
    ColumnRef,
    ComparisonExpr,
    ComparisonOp,
    Expression,
    FunctionExpr,
    InExpr,
    LiteralExpr,
    LogicalExpr,
    LogicalOp,
    NegateExpr,
    OrderByItem,
    SelectItem,
    StarExpr,
    WhenClause,
    contains_aggregate,
    find_aggregates,
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
    LogicalPlan,
    OneRow,
    Project,
    Sort,
    StatementType,
    TableScan,
    TransactionPlan,
    UpdatePlan,
)
from tabular_db.domain.value_objects.scalar_types import ScalarType

_COMPARISONS: dict[type[exp.Expression], ComparisonOp] = {
    exp.EQ: ComparisonOp.EQ,
    exp.NEQ: ComparisonOp.NE,
    exp.LT: ComparisonOp.LT,
    exp.LTE: ComparisonOp.LE,
    exp.GT: ComparisonOp.GT,
    exp.GTE: ComparisonOp.GE,
}

_ARITHMETIC: dict[type[exp.Expression], ArithmeticOp] = {
    exp.Add: ArithmeticOp.ADD,
    exp.Sub: ArithmeticOp.SUB,
    exp.Mul: ArithmeticOp.MUL,
    exp.Div: ArithmeticOp.DIV,
    exp.Mod: ArithmeticOp.MOD,
    exp.DPipe: ArithmeticOp.CONCAT,
}

_AGGREGATES: dict[type[exp.Expression], AggregateFunc] = {
    exp.Count: AggregateFunc.COUNT,
    exp.Sum: AggregateFunc.SUM,
    exp.Avg: AggregateFunc.AVG,
    exp.Min: AggregateFunc.MIN,
    exp.Max: AggregateFunc.MAX,
}

_FUNCTION_ALIASES = {
    "IFNULL": "COALESCE",
    "SUBSTR": "SUBSTRING",
    "LEN": "LENGTH",
    "UCASE": "UPPER",
    "LCASE": "LOWER",
}


class SQLParser:
    """SQL parser using sqlglot.

    Parses SQL strings and produces logical plans that can be executed.

    Example:
        >>> parser = SQLParser()
        >>> plan = parser.parse("SELECT id, name FROM friends WHERE id > 1")
        >>> print(plan)
        Project(id, name)
          -> Filter(id > 1)
          -> TableScan(friends)
    """

    def __init__(self, dialect: str = "sqlite") -> None:
        """Initialize the parser.

        Args:
            dialect: SQL dialect to use for parsing (default: sqlite).
        """
        self._dialect = dialect

    @property
    def dialect(self) -> str:
        return self._dialect

    def parse(self, sql: str) -> LogicalPlan:
        """Parse a single SQL statement into a logical plan.

        Args:
            sql: The SQL statement to parse. A trailing ``;`` is allowed.

        Returns:
            A logical plan representing the statement.

        Raises:
            ParseError: If the SQL is invalid or unsupported.
        """
        try:
            statements = sqlglot.parse(sql, dialect=self._dialect)
        except SqlglotError as e:
            raise ParseError(f"Failed to parse SQL: {e}") from e

        statements = [stmt for stmt in statements if stmt is not None]
        if not statements:
            raise ParseError("Empty SQL statement")

        if len(statements) > 1:
            raise ParseError("Multiple statements not supported; use a script")

        return self._convert_statement(statements[0])

    def parse_expression(self, sql: str) -> Expression:
        """Parse a standalone scalar expression, e.g. a column default."""
        try:
            node = sqlglot.parse_one(sql, dialect=self._dialect)
        except SqlglotError as e:
            raise ParseError(f"Failed to parse expression: {e}") from e
        return self._convert_expression(node)

    def parse_script(self, script: str) -> list[str]:
        """Split a script into statement texts on top-level ``;``.

        Comments and empty statements are dropped. Statements are not
        parsed here, so one malformed statement does not prevent the
        others from running.

        Raises:
            ParseError: If the script cannot be tokenized (e.g. an
                unterminated string literal).
        """
        try:
            tokens = Dialect.get_or_raise(self._dialect).tokenize(script)
        except SqlglotError as e:
            raise ParseError(f"Failed to tokenize SQL script: {e}") from e

        statements: list[str] = []
        start: int | None = None
        end = 0
        for token in tokens:
            if token.token_type == TokenType.SEMICOLON:
                if start is not None:
                    statements.append(script[start : end + 1].strip())
                start = None
                continue
            if start is None:
                start = token.start
            end = token.end
        if start is not None:
            statements.append(script[start : end + 1].strip())
        return statements

    # Statements

    def _convert_statement(self, stmt: exp.Expression) -> LogicalPlan:
        """Convert a sqlglot expression to a logical plan."""
        if isinstance(stmt, exp.Select):
            return self._convert_select(stmt)
        elif isinstance(stmt, exp.Insert):
            return self._convert_insert(stmt)
        elif isinstance(stmt, exp.Update):
            return self._convert_update(stmt)
        elif isinstance(stmt, exp.Delete):
            return self._convert_delete(stmt)
        elif isinstance(stmt, exp.Create):
            return self._convert_create(stmt)
        elif isinstance(stmt, exp.Drop):
            return self._convert_drop(stmt)
        elif isinstance(stmt, exp.Alter):
            return self._convert_alter(stmt)
        elif isinstance(stmt, exp.Transaction):
            return TransactionPlan(StatementType.BEGIN)
        elif isinstance(stmt, exp.Commit):
            return TransactionPlan(StatementType.COMMIT)
        elif isinstance(stmt, exp.Rollback):
            return TransactionPlan(StatementType.ROLLBACK)
        else:
            raise ParseError(f"Unsupported statement type: {type(stmt).__name__}")

    @staticmethod
    def _clause(stmt: exp.Expression, kind: type[exp.Expression]) -> exp.Expression | None:
        """Return the statement's direct clause of the given type, if any."""
        for value in stmt.args.values():
            if isinstance(value, kind):
                return value
        return None

    def _convert_select(self, stmt: exp.Expression) -> LogicalPlan:
        """Convert a SELECT statement to a logical plan."""
        if not isinstance(stmt, exp.Select):
            raise ParseError(f"Unsupported query type: {type(stmt).__name__}")
        if stmt.args.get("with"):
            raise ParseError("WITH clauses are not supported")

        from_clause = self._clause(stmt, exp.From)
        plan: LogicalPlan
        if from_clause is None:
            if stmt.args.get("joins"):
                raise ParseError("JOIN requires a FROM clause")
            plan = OneRow()
        else:
            plan = self._convert_table(from_clause.this)

        for join in stmt.args.get("joins") or []:
            plan = self._convert_join(plan, join)

        where = self._clause(stmt, exp.Where)
        if where is not None:
            predicate = self._convert_expression(where.this)
            self._reject_aggregates(predicate, "WHERE")
            plan = Filter(input=plan, predicate=predicate)

        select_items = [self._convert_select_item(col) for col in stmt.expressions]
        if not select_items:
            raise ParseError("SELECT requires at least one result column")

        having_predicate = None
        having = self._clause(stmt, exp.Having)
        if having is not None:
            having_predicate = self._convert_expression(having.this)

        order_items = []
        order = self._clause(stmt, exp.Order)
        if order is not None:
            order_items = [self._convert_order_item(expr) for expr in order.expressions]

        group_by = []
        group = self._clause(stmt, exp.Group)
        if group is not None:
            group_by = [self._convert_group_item(expr, select_items) for expr in group.expressions]

        aggregates = self._collect_aggregates(
            [item.expr for item in select_items]
            + ([having_predicate] if having_predicate is not None else [])
            + [item.expr for item in order_items if item.expr is not None]
        )
        if group_by or aggregates or having_predicate is not None:
            plan = Aggregate(input=plan, group_by=group_by, aggregates=aggregates)

        plan = Project(input=plan, items=select_items)

        if having_predicate is not None:
            plan = Filter(input=plan, predicate=having_predicate)

        distinct = self._clause(stmt, exp.Distinct)
        if distinct is not None:
            if distinct.args.get("on"):
                raise ParseError("DISTINCT ON is not supported")
            plan = Distinct(input=plan)

        if order_items:
            plan = Sort(input=plan, order_by=order_items)

        limit = self._clause(stmt, exp.Limit)
        offset_clause = self._clause(stmt, exp.Offset)
        if limit is not None or offset_clause is not None:
            count = None
            offset = 0
            if limit is not None:
                count = self._int_clause(limit, "LIMIT")
                if count is not None and count < 0:
                    count = None
                if limit.args.get("offset") is not None:
                    # LIMIT offset, count
                    offset = self._int_value(limit.args["offset"], "OFFSET")
            if offset_clause is not None:
                offset = self._int_clause(offset_clause, "OFFSET") or 0
            plan = Limit(input=plan, count=count, offset=max(offset, 0))

        return plan

    def _convert_table(self, node: exp.Expression) -> TableScan:
        if not isinstance(node, exp.Table):
            raise ParseError(f"Unsupported table source: {type(node).__name__}")
        if not node.name:
            raise ParseError("Invalid table reference")
        return TableScan(table_name=node.name, alias=node.alias or None)

    def _convert_join(self, left: LogicalPlan, join: exp.Join) -> LogicalPlan:
        right = self._convert_table(join.this)
        side = join.side
        kind = join.kind
        if join.args.get("using"):
            raise ParseError("JOIN ... USING is not supported; use ON")
        if side in ("RIGHT", "FULL"):
            raise ParseError(f"{side} JOIN is not supported")

        on = join.args.get("on")
        condition = self._convert_expression(on) if on is not None else None
        if condition is not None:
            self._reject_aggregates(condition, "ON")

        if side == "LEFT":
            if condition is None:
                raise ParseError("LEFT JOIN requires an ON clause")
            return Join(left=left, right=right, kind=JoinKind.LEFT, condition=condition)
        if kind == "CROSS" or condition is None:
            if condition is not None:
                raise ParseError("CROSS JOIN does not take an ON clause")
            return Join(left=left, right=right, kind=JoinKind.CROSS)
        return Join(left=left, right=right, kind=JoinKind.INNER, condition=condition)

    def _convert_select_item(self, col: exp.Expression) -> SelectItem:
        """Convert a SELECT item."""
        alias = None
        if isinstance(col, exp.Alias):
            alias = col.alias
            col = col.this

        expr = self._convert_expression(col)
        return SelectItem(expr=expr, alias=alias, name=col.sql(dialect=self._dialect))

    def _convert_order_item(self, node: exp.Expression) -> OrderByItem:
        ascending = True
        if isinstance(node, exp.Ordered):
            ascending = not node.args.get("desc", False)
            node = node.this
        position = self._ordinal(node)
        if position is not None:
            return OrderByItem(expr=None, ascending=ascending, position=position)
        return OrderByItem(expr=self._convert_expression(node), ascending=ascending)

    def _convert_group_item(
        self, node: exp.Expression, select_items: list[SelectItem]
    ) -> Expression:
        position = self._ordinal(node)
        if position is not None:
            if not 1 <= position <= len(select_items):
                raise ParseError(f"GROUP BY term out of range - should be between 1 and {len(select_items)}")
            expr = select_items[position - 1].expr
            if isinstance(expr, StarExpr):
                raise ParseError("GROUP BY term cannot refer to *")
        else:
            expr = self._convert_expression(node)
        self._reject_aggregates(expr, "GROUP BY")
        return expr

    @staticmethod
    def _ordinal(node: exp.Expression) -> int | None:
        if isinstance(node, exp.Literal) and node.is_number:
            try:
                return int(node.this)
            except ValueError as e:
                raise ParseError(f"Invalid column position: {node.this}") from e
        return None

    def _int_clause(self, clause: exp.Expression, label: str) -> int | None:
        value = clause.expression
        if value is None:
            return None
        return self._int_value(value, label)

    def _int_value(self, node: exp.Expression, label: str) -> int:
        expr = self._convert_expression(node)
        if isinstance(expr, LiteralExpr) and isinstance(expr.value, int) and not isinstance(expr.value, bool):
            return expr.value
        raise ParseError(f"{label} must be an integer literal, got {node.sql()}")

    def _collect_aggregates(self, exprs: list[Expression]) -> list[AggregateExpr]:
        """Find all aggregate functions, deduplicated by normalized SQL."""
        aggregates: dict[str, AggregateExpr] = {}
        for expr in exprs:
            for agg in find_aggregates(expr):
                if agg.arg is not None and contains_aggregate(agg.arg):
                    raise ParseError(f"misuse of aggregate function {agg.func.value}()")
                aggregates.setdefault(str(agg), agg)
        return list(aggregates.values())

    @staticmethod
    def _reject_aggregates(expr: Expression, clause: str) -> None:
        for agg in find_aggregates(expr):
            raise ParseError(f"misuse of aggregate function {agg.func.value}() in {clause}")

    # Expressions

    def _convert_expression(self, expr: exp.Expression) -> Expression:
        """Convert a sqlglot expression to our internal representation."""
        if isinstance(expr, exp.Column):
            if isinstance(expr.this, exp.Star):
                return StarExpr(table=expr.table or None)
            return ColumnExpr(column=ColumnRef(name=expr.name, table=expr.table or None))
        elif isinstance(expr, exp.Star):
            return StarExpr()
        elif isinstance(expr, exp.Literal):
            return LiteralExpr(value=self._literal_value(expr))
        elif isinstance(expr, exp.Boolean):
            return LiteralExpr(value=bool(expr.this))
        elif isinstance(expr, exp.Null):
            return LiteralExpr(value=None)
        elif isinstance(expr, exp.Paren):
            return self._convert_expression(expr.this)
        elif isinstance(expr, exp.Alias):
            return self._convert_expression(expr.this)
        elif isinstance(expr, exp.Neg):
            operand = self._convert_expression(expr.this)
            if isinstance(operand, LiteralExpr) and isinstance(operand.value, (int, float)):
                return LiteralExpr(value=-operand.value)
            return NegateExpr(operand=operand)
        elif type(expr) in _COMPARISONS:
            return ComparisonExpr(
                left=self._convert_expression(expr.left),
                op=_COMPARISONS[type(expr)],
                right=self._convert_expression(expr.right),
            )
        elif type(expr) in _ARITHMETIC:
            return ArithmeticExpr(
                left=self._convert_expression(expr.left),
                op=_ARITHMETIC[type(expr)],
                right=self._convert_expression(expr.right),
            )
        elif isinstance(expr, exp.And):
            return LogicalExpr(
                op=LogicalOp.AND,
                operands=[
                    self._convert_expression(expr.left),
                    self._convert_expression(expr.right),
                ],
            )
        elif isinstance(expr, exp.Or):
            return LogicalExpr(
                op=LogicalOp.OR,
                operands=[
                    self._convert_expression(expr.left),
                    self._convert_expression(expr.right),
                ],
            )
        elif isinstance(expr, exp.Not):
            return self._convert_not(expr.this)
        elif isinstance(expr, exp.Is):
            return self._convert_is(expr, negated=bool(expr.args.get("negate")))
        elif isinstance(expr, (exp.Like, exp.ILike)):
            return self._convert_like(expr, negated=bool(expr.args.get("negate")))
        elif isinstance(expr, exp.In):
            return self._convert_in(expr, negated=False)
        elif isinstance(expr, exp.Between):
            return BetweenExpr(
                operand=self._convert_expression(expr.this),
                low=self._convert_expression(expr.args["low"]),
                high=self._convert_expression(expr.args["high"]),
            )
        elif isinstance(expr, exp.Case):
            return self._convert_case(expr)
        elif isinstance(expr, exp.If):
            # IIF(cond, a, b)
            default = expr.args.get("false")
            return CaseExpr(
                whens=[
                    WhenClause(
                        condition=self._convert_expression(expr.this),
                        result=self._convert_expression(expr.args["true"]),
                    )
                ],
                default=self._convert_expression(default) if default is not None else None,
            )
        elif isinstance(expr, (exp.Cast, exp.TryCast)):
            return CastExpr(
                operand=self._convert_expression(expr.this),
                target=ScalarType.from_declared(self._type_name(expr.args.get("to"))),
            )
        elif isinstance(expr, exp.AggFunc):
            return self._convert_aggregate(expr)
        elif isinstance(expr, exp.Func):
            return self._convert_function(expr)
        elif isinstance(expr, exp.Subquery) or isinstance(expr, exp.Select):
            raise ParseError("Subqueries are not supported")
        else:
            raise ParseError(f"Unsupported expression type: {type(expr).__name__}")

    @staticmethod
    def _literal_value(literal: exp.Literal) -> int | float | str:
        if literal.is_string:
            return literal.this
        text = literal.this
        try:
            return int(text)
        except ValueError:
            return float(text)

    def _convert_not(self, inner: exp.Expression) -> Expression:
        while isinstance(inner, exp.Paren) and isinstance(inner.this, (exp.Is, exp.In, exp.Like, exp.ILike, exp.Between)):
            inner = inner.this
        if isinstance(inner, exp.Is):
            return self._convert_is(inner, negated=not inner.args.get("negate"))
        if isinstance(inner, exp.In):
            return self._convert_in(inner, negated=True)
        if isinstance(inner, (exp.Like, exp.ILike)):
            return self._convert_like(inner, negated=not inner.args.get("negate"))
        if isinstance(inner, exp.Between):
            return BetweenExpr(
                operand=self._convert_expression(inner.this),
                low=self._convert_expression(inner.args["low"]),
                high=self._convert_expression(inner.args["high"]),
                negated=True,
            )
        return LogicalExpr(op=LogicalOp.NOT, operands=[self._convert_expression(inner)])

    def _convert_is(self, expr: exp.Is, negated: bool) -> Expression:
        left = self._convert_expression(expr.this)
        if isinstance(expr.expression, exp.Null):
            op = ComparisonOp.IS_NOT_NULL if negated else ComparisonOp.IS_NULL
            return ComparisonExpr(left=left, op=op, right=None)
        op = ComparisonOp.IS_NOT if negated else ComparisonOp.IS
        return ComparisonExpr(left=left, op=op, right=self._convert_expression(expr.expression))

    def _convert_like(self, expr: exp.Like | exp.ILike, negated: bool) -> Expression:
        # x NOT LIKE y arrives as Like(negate=True), not wrapped in Not
        return ComparisonExpr(
            left=self._convert_expression(expr.this),
            op=ComparisonOp.NOT_LIKE if negated else ComparisonOp.LIKE,
            right=self._convert_expression(expr.expression),
        )

    def _convert_in(self, expr: exp.In, negated: bool) -> Expression:
        if expr.args.get("query") is not None:
            raise ParseError("Subqueries are not supported")
        return InExpr(
            operand=self._convert_expression(expr.this),
            values=[self._convert_expression(value) for value in expr.expressions],
            negated=negated,
        )

    def _convert_case(self, expr: exp.Case) -> CaseExpr:
        operand = expr.this
        whens = [
            WhenClause(
                condition=self._convert_expression(branch.this),
                result=self._convert_expression(branch.args["true"]),
            )
            for branch in expr.args.get("ifs") or []
        ]
        if not whens:
            raise ParseError("CASE requires at least one WHEN")
        default = expr.args.get("default")
        return CaseExpr(
            whens=whens,
            default=self._convert_expression(default) if default is not None else None,
            operand=self._convert_expression(operand) if operand is not None else None,
        )

    def _convert_aggregate(self, func: exp.AggFunc) -> AggregateExpr:
        """Convert an aggregate function."""
        agg_func = _AGGREGATES.get(type(func))
        if agg_func is None:
            raise ParseError(f"Unsupported aggregate function: {func.sql_name()}")
        if func.expressions:
            raise ParseError(f"{agg_func.value}() takes a single argument")

        arg = func.this
        distinct = False
        if isinstance(arg, exp.Distinct):
            distinct = True
            if len(arg.expressions) != 1:
                raise ParseError(f"{agg_func.value}(DISTINCT ...) takes a single argument")
            arg = arg.expressions[0]

        # COUNT(*)
        if arg is None or isinstance(arg, exp.Star):
            if agg_func != AggregateFunc.COUNT:
                raise ParseError(f"{agg_func.value}() requires an argument")
            if distinct:
                raise ParseError("COUNT(DISTINCT *) is not supported")
            return AggregateExpr(func=agg_func, arg=None)

        return AggregateExpr(func=agg_func, arg=self._convert_expression(arg), distinct=distinct)

    def _convert_function(self, func: exp.Func) -> FunctionExpr:
        if isinstance(func, exp.Anonymous):
            name = str(func.this).upper()
            args = list(func.expressions)
        else:
            name = func.sql_name().upper()
            args = []
            for key in func.arg_types:
                value = func.args.get(key)
                if isinstance(value, list):
                    args.extend(v for v in value if isinstance(v, exp.Expression))
                elif isinstance(value, exp.Expression):
                    args.append(value)
        name = _FUNCTION_ALIASES.get(name, name)
        if name not in SCALAR_FUNCTIONS:
            raise ParseError(f"no such function: {name}")
        return FunctionExpr(name=name, args=[self._convert_expression(arg) for arg in args])

    @staticmethod
    def _type_name(dtype: exp.Expression | None) -> str | None:
        """Declared type name as sqlglot parsed it, e.g. VARCHAR or DOUBLE."""
        if dtype is None:
            return None
        if isinstance(dtype, exp.DataType):
            # dtype.this is a DataType.Type enum, we need its name
            if hasattr(dtype.this, "name"):
                return dtype.this.name.upper()
            return str(dtype.this).upper()
        return dtype.sql().upper()

    # DML

    def _convert_insert(self, stmt: exp.Insert) -> LogicalPlan:
        """Convert an INSERT statement to a logical plan."""
        if stmt.args.get("alternative") or stmt.args.get("conflict"):
            raise ParseError("INSERT OR ... / ON CONFLICT is not supported")

        target = stmt.this
        columns: list[str] = []
        if isinstance(target, exp.Schema):
            columns = [col.name for col in target.expressions]
            target = target.this
        if not isinstance(target, exp.Table) or not target.name:
            raise ParseError("INSERT requires table name")

        source = stmt.expression
        if isinstance(source, exp.Values):
            rows = []
            for tuple_expr in source.expressions:
                values = tuple_expr.expressions if isinstance(tuple_expr, exp.Tuple) else [tuple_expr]
                row = [self._convert_expression(value) for value in values]
                for value in row:
                    self._reject_aggregates(value, "VALUES")
                rows.append(row)
            return InsertPlan(table_name=target.name, columns=columns, values=rows)
        if isinstance(source, exp.Select):
            return InsertPlan(table_name=target.name, columns=columns, query=self._convert_select(source))
        raise ParseError("INSERT requires VALUES or a SELECT")

    def _convert_update(self, stmt: exp.Update) -> LogicalPlan:
        """Convert an UPDATE statement to a logical plan."""
        table = stmt.this
        if not isinstance(table, exp.Table) or not table.name:
            raise ParseError("UPDATE requires table name")
        if stmt.args.get("from"):
            raise ParseError("UPDATE ... FROM is not supported")

        assignments: dict[str, Expression] = {}
        for eq in stmt.expressions:
            if not isinstance(eq, exp.EQ) or not isinstance(eq.left, exp.Column):
                raise ParseError(f"Invalid SET clause: {eq.sql()}")
            value = self._convert_expression(eq.right)
            self._reject_aggregates(value, "SET")
            assignments[eq.left.name] = value
        if not assignments:
            raise ParseError("UPDATE requires a SET clause")

        predicate = None
        where = self._clause(stmt, exp.Where)
        if where is not None:
            predicate = self._convert_expression(where.this)
            self._reject_aggregates(predicate, "WHERE")

        return UpdatePlan(table_name=table.name, assignments=assignments, predicate=predicate)

    def _convert_delete(self, stmt: exp.Delete) -> LogicalPlan:
        """Convert a DELETE statement to a logical plan."""
        table = stmt.this
        if not isinstance(table, exp.Table) or not table.name:
            raise ParseError("DELETE requires table name")

        predicate = None
        where = self._clause(stmt, exp.Where)
        if where is not None:
            predicate = self._convert_expression(where.this)
            self._reject_aggregates(predicate, "WHERE")

        return DeletePlan(table_name=table.name, predicate=predicate)

    # DDL

    def _convert_create(self, stmt: exp.Create) -> LogicalPlan:
        """Convert a CREATE TABLE statement to a logical plan."""
        kind = str(stmt.args.get("kind") or "").upper()
        if kind != "TABLE":
            raise ParseError(f"CREATE {kind or '...'} is not supported")
        if stmt.expression is not None:
            raise ParseError("CREATE TABLE ... AS SELECT is not supported")

        schema = stmt.this
        if not isinstance(schema, exp.Schema) or not isinstance(schema.this, exp.Table):
            raise ParseError("CREATE TABLE requires a column list")

        columns = []
        primary_key: list[str] = []
        for node in schema.expressions:
            if isinstance(node, exp.ColumnDef):
                columns.append(self._convert_column_def(node))
            elif isinstance(node, exp.PrimaryKey):
                primary_key = [part.name for part in node.expressions]
            elif isinstance(node, exp.ForeignKey):
                continue  # references are not enforced
            else:
                raise ParseError(f"Unsupported table constraint: {node.sql()}")

        return CreateTablePlan(
            table_name=schema.this.name,
            columns=columns,
            primary_key=primary_key,
            if_not_exists=bool(stmt.args.get("exists")),
        )

    def _convert_column_def(self, col_def: exp.ColumnDef) -> ColumnDef:
        kind = col_def.args.get("kind")
        type_name = self._type_name(kind)
        column = ColumnDef(
            name=col_def.name,
            data_type=ScalarType.from_declared(type_name),
            declared_type=kind.sql(dialect=self._dialect) if kind is not None else None,
        )

        for constraint in col_def.constraints:
            ckind = constraint.kind
            if isinstance(ckind, exp.NotNullColumnConstraint):
                column.nullable = bool(ckind.args.get("allow_null"))
            elif isinstance(ckind, exp.PrimaryKeyColumnConstraint):
                column.primary_key = True
                column.nullable = False
            elif isinstance(ckind, exp.UniqueColumnConstraint):
                column.unique = True
            elif isinstance(ckind, exp.DefaultColumnConstraint):
                column.default = self._convert_expression(ckind.this)
                column.default_sql = ckind.this.sql(dialect=self._dialect)
                self._reject_aggregates(column.default, "DEFAULT")
            elif isinstance(ckind, (exp.AutoIncrementColumnConstraint, exp.Reference)):
                continue
            else:
                raise ParseError(f"Unsupported column constraint: {constraint.sql()}")
        return column

    def _convert_drop(self, stmt: exp.Drop) -> LogicalPlan:
        """Convert a DROP TABLE statement to a logical plan."""
        kind = str(stmt.args.get("kind") or "").upper()
        if kind != "TABLE":
            raise ParseError(f"DROP {kind or '...'} is not supported")
        tables = stmt.args.get("tables") or []
        if len(tables) > 1:
            raise ParseError("DROP TABLE supports one table per statement")
        table = tables[0] if tables else None
        if not isinstance(table, exp.Table) or not table.name:
            raise ParseError("DROP TABLE requires table name")

        return DropTablePlan(table_name=table.name, if_exists=bool(stmt.args.get("exists")))

    def _convert_alter(self, stmt: exp.Expression) -> LogicalPlan:
        """Convert an ALTER TABLE statement to a logical plan."""
        table = stmt.this
        if not isinstance(table, exp.Table) or not table.name:
            raise ParseError("ALTER TABLE requires table name")
        actions = stmt.args.get("actions") or []
        if len(actions) != 1:
            raise ParseError("ALTER TABLE supports exactly one action per statement")
        action = actions[0]

        if isinstance(action, exp.AlterRename):
            return AlterTablePlan(
                table_name=table.name, action=AlterAction.RENAME_TABLE, new_name=action.this.name
            )
        if isinstance(action, exp.RenameColumn):
            return AlterTablePlan(
                table_name=table.name,
                action=AlterAction.RENAME_COLUMN,
                old_name=action.this.name,
                new_name=action.args["to"].name,
            )
        if isinstance(action, exp.Drop):
            if str(action.args.get("kind") or "").upper() != "COLUMN":
                raise ParseError("ALTER TABLE ... DROP supports columns only")
            targets = action.args.get("tables") or []
            if len(targets) != 1 or not targets[0].name:
                raise ParseError("ALTER TABLE ... DROP COLUMN requires one column name")
            return AlterTablePlan(
                table_name=table.name, action=AlterAction.DROP_COLUMN, old_name=targets[0].name
            )

        column_def = action if isinstance(action, exp.ColumnDef) else action.find(exp.ColumnDef)
        if column_def is not None:
            return AlterTablePlan(
                table_name=table.name,
                action=AlterAction.ADD_COLUMN,
                column=self._convert_column_def(column_def),
            )
        raise ParseError(f"Unsupported ALTER TABLE action: {action.sql()}")
