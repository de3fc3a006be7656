"""
Search pane option configuration and execution.

A :class:`SearchPaneOptions` instance describes where a pane gets its list of
options from. It is normally built once when the editor is defined and then
executed for every request:

    >>> Field("users.site").search_pane_options(
    ...     SearchPaneOptions()
    ...     .table("sites")
    ...     .value("id")
    ...     .label("name")
    ...     .left_join("users", "users.site", "=", "sites.id")
    ...     .order("name DESC")
    ... )

Execution resolves the defaults (:func:`resolve`), runs the label and count
queries (:mod:`searchpanes.runners`) and merges them
(:mod:`searchpanes.merge`).
"""
from __future__ import annotations

import logging
from dataclasses import dataclass
from typing import Any, Callable, Dict, List, Mapping, Optional, Sequence, Tuple, Union

from .config import settings
from .errors import QueryBuildError
from .metrics import counter_inc

logger = logging.getLogger(__name__)

_UNSET = object()


@dataclass(frozen=True)
class JoinSpec:
    table: str
    field1: str
    operator: str
    field2: str

    def condition(self) -> str:
        return f"{self.field1} {self.operator} {self.field2}"


@dataclass(frozen=True)
class RawClause:
    """A single ``key op value`` condition, e.g. ``RawClause("active", 1)``."""

    key: str
    value: Any = None
    op: str = "="


Predicate = Union[RawClause, Callable[[Any], Any]]
Renderer = Callable[[Dict[str, Any]], Any]


@dataclass(frozen=True)
class ResolvedSpec:
    """Option configuration with every default applied, for one execution."""

    table: str
    value: str
    label: str
    label_columns: Tuple[str, ...]
    primary_join: Optional[JoinSpec]
    where: Tuple[Predicate, ...]
    order: Optional[str]
    limit: Optional[int]
    renderer: Optional[Renderer]
    manual: Tuple[Dict[str, Any], ...]

    @property
    def needs_render(self) -> bool:
        return self.renderer is not None or len(self.label_columns) > 1


def default_renderer(row: Mapping[str, Any]) -> str:
    """Join the label column values with a single space."""
    return " ".join("" if v is None else str(v) for v in row.values())


def _to_predicate(item: Any) -> Predicate:
    if isinstance(item, RawClause) or callable(item):
        return item
    if isinstance(item, Mapping) and "key" in item:
        return RawClause(item["key"], item.get("value"), item.get("op") or "=")
    raise QueryBuildError(f"Unsupported where predicate: {item!r}")


def _to_join(join: Any) -> Optional[JoinSpec]:
    """Accept a JoinSpec, a mapping, or a list of them (first one wins)."""
    if not join:
        return None
    if isinstance(join, JoinSpec):
        return join
    if isinstance(join, Mapping):
        return JoinSpec(join["table"], join["field1"], join.get("operator") or "=", join["field2"])
    if isinstance(join, Sequence) and not isinstance(join, str):
        return _to_join(join[0])
    raise QueryBuildError(f"Unsupported join description: {join!r}")


class SearchPaneOptions:
    """
    Builder for the option list of one search pane.

    Every accessor is a setter when given an argument (returning the instance
    for chaining) and a getter when called without one.
    """

    def __init__(self):
        self._table: Optional[str] = None
        self._value: Optional[str] = None
        self._label: List[str] = []
        self._left_join: List[JoinSpec] = []
        self._where: List[Predicate] = []
        self._manual_add: List[Dict[str, Any]] = []
        self._order: Optional[str] = None
        self._limit: Optional[int] = None
        self._renderer: Optional[Renderer] = None

    @classmethod
    def inst(cls) -> "SearchPaneOptions":
        return cls()

    def add(self, label: Any, value: Any = None) -> "SearchPaneOptions":
        """Add an extra option to the list; the label doubles as value when none is given."""
        if value is None:
            value = label
        self._manual_add.append({"label": label, "value": value})
        return self

    def manual_additions(self) -> List[Dict[str, Any]]:
        return [dict(m) for m in self._manual_add]

    def table(self, table: Any = _UNSET):
        if table is _UNSET:
            return self._table
        self._table = table
        return self

    def value(self, value: Any = _UNSET):
        if value is _UNSET:
            return self._value
        self._value = value
        return self

    def label(self, label: Any = _UNSET):
        if label is _UNSET:
            return list(self._label)
        if label is None:
            self._label = []
        elif isinstance(label, str):
            self._label = [label]
        else:
            self._label = list(label)
        return self

    def left_join(self, table: str, field1: str, operator: str, field2: str) -> "SearchPaneOptions":
        self._left_join.append(JoinSpec(table, field1, operator, field2))
        return self

    def left_joins(self) -> List[JoinSpec]:
        return list(self._left_join)

    @property
    def primary_join(self) -> Optional[JoinSpec]:
        """The join applied to the label query (only the first configured one)."""
        return self._left_join[0] if self._left_join else None

    def where(self, where: Any = _UNSET):
        if where is _UNSET:
            return list(self._where)
        if where is None:
            self._where = []
        elif isinstance(where, (list, tuple)):
            self._where = [_to_predicate(w) for w in where]
        else:
            self._where = [_to_predicate(where)]
        return self

    def order(self, order: Any = _UNSET):
        if order is _UNSET:
            return self._order
        self._order = order or None
        return self

    def limit(self, limit: Any = _UNSET):
        if limit is _UNSET:
            return self._limit
        self._limit = None if limit is None else int(limit)
        return self

    def render(self, renderer: Any = _UNSET):
        if renderer is _UNSET:
            return self._renderer
        self._renderer = renderer
        return self

    def exec(self, field, editor, http: Optional[Mapping[str, Any]], fields, cross_filter_join: Any = None) -> List[Dict[str, Any]]:
        """Build the option list for ``field``.

        ``http`` is the request payload (its ``searchPanes`` entry holds the
        active selections), ``fields`` the editor's fields taking part in
        cross filtering and ``cross_filter_join`` the join applied to the
        count query.
        """
        from .merge import merge_options
        from .runners import run_option_queries

        resolved = resolve(self, field, editor)
        label_rows, count_rows = run_option_queries(
            editor.db(),
            resolved,
            field,
            http or {},
            list(fields or []),
            _to_join(cross_filter_join),
            concurrent=settings.concurrent_queries,
        )
        out = merge_options(label_rows, count_rows, resolved)
        counter_inc("searchpanes_options_total", {"table": resolved.table}, amount=len(out))
        logger.debug("pane %s: %d option(s) from %s", field.name(), len(out), resolved.table)
        return out


def resolve(spec: SearchPaneOptions, field, editor) -> ResolvedSpec:
    """Apply the field/editor defaults to ``spec``."""
    value = spec.value() or field.db_field()
    table = spec.table() or editor.table()
    labels = spec.label() or [value]
    return ResolvedSpec(
        table=table,
        value=value,
        label=labels[0],
        label_columns=tuple(labels),
        primary_join=spec.primary_join,
        where=tuple(spec.where()),
        order=spec.order(),
        limit=spec.limit(),
        renderer=spec.render(),
        manual=tuple(spec.manual_additions()),
    )
