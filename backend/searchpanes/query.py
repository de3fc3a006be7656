"""
SQLGlot-backed query builder used by the option queries.

The builder mirrors the small fluent surface the option engine needs
(table/get/join/where/or_where/group_by/order/limit/exec) and renders SQL for
the dialect of the owning :class:`~searchpanes.db.Database`.
"""
from __future__ import annotations

from decimal import Decimal
from typing import TYPE_CHECKING, Any, List, Mapping, Optional, Tuple
import logging

import sqlglot
from sqlglot import exp

from .errors import QueryBuildError

if TYPE_CHECKING:
    from .db import Database, ResultSet

logger = logging.getLogger(__name__)

_COMPARISONS = {
    "=": exp.EQ,
    "==": exp.EQ,
    "!=": exp.NEQ,
    "<>": exp.NEQ,
    "<": exp.LT,
    "<=": exp.LTE,
    ">": exp.GT,
    ">=": exp.GTE,
}


class Query:
    """
    Fluent SELECT builder.

    Conditions are collected as ``(conjunction, expression)`` pairs and folded
    left to right when the statement is built, so ``where`` adds an AND term
    and ``or_where`` an OR term. Passing a callable to either opens a
    bracketed group: the callable receives a fresh builder and whatever
    conditions it adds are wrapped in parentheses.

    Example:
        >>> q = db.query("select").table("staff").get("office AS value", "COUNT(*) AS count")
        >>> q.where(lambda g: g.or_where("name", "%an%", "like").or_where("name", "%jo%", "like"))
        >>> q.group_by("office").exec().fetch_all()
    """

    def __init__(self, db: "Database", kind: str = "select"):
        if (kind or "").lower() != "select":
            raise QueryBuildError(f"Unsupported query type: {kind}")
        self._db = db
        self._dialect = db.dialect
        self._table: Optional[str] = None
        self._fields: List[exp.Expression] = []
        self._joins: List[Tuple[str, str, str]] = []
        self._conditions: List[Tuple[str, exp.Expression]] = []
        self._group_by: List[exp.Expression] = []
        self._order: Optional[str] = None
        self._limit: Optional[int] = None

    @property
    def dialect(self) -> str:
        return self._dialect

    def table(self, name: str) -> "Query":
        self._table = name
        return self

    def get(self, *fields: Any) -> "Query":
        for f in fields:
            if f is None:
                continue
            if isinstance(f, (list, tuple)):
                self.get(*f)
                continue
            self._fields.append(self._parse(f))
        return self

    def selected(self) -> List[str]:
        """Names visible in the select list (aliases and bare column names)."""
        names: List[str] = []
        for f in self._fields:
            if isinstance(f, exp.Alias):
                names.append(f.alias)
                inner = f.this
                if isinstance(inner, exp.Column):
                    names.append(inner.sql(dialect=self._dialect))
                    names.append(inner.name)
            elif isinstance(f, exp.Column):
                names.append(f.sql(dialect=self._dialect))
                names.append(f.name)
        return names

    def group_by(self, field: str) -> "Query":
        self._group_by.append(self._parse(field))
        return self

    def join(self, table: str, condition: str, type: str = "") -> "Query":
        self._joins.append((table, condition, (type or "").strip()))
        return self

    def where(self, key: Any, value: Any = None, op: str = "=") -> "Query":
        self._add_condition("AND", key, value, op)
        return self

    def or_where(self, key: Any, value: Any = None, op: str = "=") -> "Query":
        self._add_condition("OR", key, value, op)
        return self

    def order(self, clause: Optional[str]) -> "Query":
        self._order = clause or None
        return self

    def limit(self, n: Optional[int]) -> "Query":
        self._limit = None if n is None else int(n)
        return self

    def build(self) -> exp.Select:
        if not self._table:
            raise QueryBuildError("No table given for query")

        query = exp.Select().from_(self._table, dialect=self._dialect)
        query = query.select(*(self._fields or [exp.Star()]), copy=False)

        for table, condition, join_type in self._joins:
            query = query.join(
                table,
                on=condition,
                join_type=join_type.lower() or None,
                dialect=self._dialect,
                copy=False,
            )

        condition = self.condition()
        if condition is not None:
            query = query.where(condition, copy=False)

        if self._group_by:
            query = query.group_by(*self._group_by, copy=False)

        if self._order:
            # Parse the raw clause in context so multi-term clauses and
            # function calls survive untouched.
            try:
                parsed = sqlglot.parse_one(f"SELECT 1 ORDER BY {self._order}", read=self._dialect)
            except sqlglot.errors.ParseError as e:
                raise QueryBuildError(f"Invalid ORDER BY clause {self._order!r}: {e}") from e
            query.set("order", parsed.args.get("order"))

        if self._limit is not None:
            query = query.limit(self._limit, copy=False)

        return query

    def sql(self) -> str:
        sql = self.build().sql(dialect=self._dialect)
        logger.debug("built %s SQL: %s", self._dialect, sql)
        return sql

    def exec(self) -> "ResultSet":
        return self._db.execute(self.sql())

    def condition(self) -> Optional[exp.Expression]:
        """Fold the collected conditions into a single expression (or None)."""
        if not self._conditions:
            return None
        combined = self._conditions[0][1]
        for conj, cond in self._conditions[1:]:
            if conj == "OR":
                combined = exp.or_(combined, cond, copy=False)
            else:
                combined = exp.and_(combined, cond, copy=False)
        return combined

    def _add_condition(self, conj: str, key: Any, value: Any, op: str) -> None:
        if key is None:
            return

        if callable(key):
            group = Query(self._db)
            key(group)
            inner = group.condition()
            if inner is not None:
                self._conditions.append((conj, exp.paren(inner, copy=False)))
            return

        if isinstance(key, Mapping):
            for k, v in key.items():
                self._conditions.append((conj, self._comparison(k, v, op)))
            return

        if not isinstance(key, str):
            raise QueryBuildError(f"Unsupported where key type: {type(key).__name__}")

        self._conditions.append((conj, self._comparison(key, value, op)))

    def _comparison(self, key: str, value: Any, op: Optional[str]) -> exp.Expression:
        col = self._parse(key)
        op_l = (op or "=").strip().lower()

        if value is None:
            if op_l in ("=", "==", "is"):
                return col.is_(exp.null())
            if op_l in ("!=", "<>", "is not"):
                return exp.not_(col.is_(exp.null()))

        if op_l in _COMPARISONS:
            return _COMPARISONS[op_l](this=col, expression=_to_literal(value))
        if op_l == "like":
            return col.like(_to_literal(value))
        if op_l == "not like":
            return exp.not_(col.like(_to_literal(value)))
        if op_l in ("in", "not in"):
            values = value if isinstance(value, (list, tuple, set)) else [value]
            cond = col.isin(*[_to_literal(v) for v in values])
            return exp.not_(cond) if op_l == "not in" else cond

        raise QueryBuildError(f"Unsupported operator {op!r} for {key!r}")

    def _parse(self, sql: Any) -> exp.Expression:
        if isinstance(sql, exp.Expression):
            return sql
        try:
            return exp.maybe_parse(str(sql), dialect=self._dialect)
        except sqlglot.errors.ParseError as e:
            raise QueryBuildError(f"Cannot parse {sql!r}: {e}") from e


def _to_literal(value: Any) -> exp.Expression:
    """Convert Python value to SQL literal"""
    if value is None:
        return exp.null()
    if isinstance(value, bool):
        return exp.true() if value else exp.false()
    if isinstance(value, (int, float, Decimal)):
        return exp.Literal.number(value)
    return exp.Literal.string(str(value))
