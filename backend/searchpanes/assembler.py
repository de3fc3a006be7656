from __future__ import annotations

import logging
from typing import Any, Callable, Iterable, Mapping, Optional, Sequence

from .errors import QueryBuildError
from .options import JoinSpec, RawClause
from .query import Query

logger = logging.getLogger(__name__)


def apply_where(query: Query, predicates: Iterable[Any]) -> Query:
    """Apply predicates in declaration order; they combine with AND.

    A callable receives a fresh group builder. Whatever it adds, ``or_where``
    terms included, is bracketed and AND-ed with the other predicates.
    """
    for predicate in predicates or ():
        if isinstance(predicate, RawClause):
            query.where(predicate.key, predicate.value, predicate.op)
        elif callable(predicate):
            query.where(predicate)
        else:
            raise QueryBuildError(f"Unsupported where predicate: {predicate!r}")
    return query


def apply_join(query: Query, join: Optional[JoinSpec]) -> Query:
    if join is not None:
        query.join(join.table, join.condition(), "LEFT")
    return query


def _like_any(column: str, terms: Sequence[str]) -> Callable[[Query], None]:
    def group(q: Query) -> None:
        for term in terms:
            q.or_where(column, f"%{term}%", "like")

    return group


def apply_cross_filters(query: Query, field, http: Mapping[str, Any], fields: Iterable[Any]) -> Query:
    """Restrict ``query`` by the selections of every other pane.

    Each pane with an active selection contributes one bracketed group of
    ``column LIKE '%term%'`` conditions joined with OR. The pane being
    computed is skipped so its own selection never narrows its counts.
    """
    panes = (http or {}).get("searchPanes") or {}
    if not isinstance(panes, Mapping):
        return query

    own = field.name()
    for other in fields:
        name = other.name()
        if name == own:
            continue
        terms = panes.get(name)
        if not terms:
            continue
        if isinstance(terms, str):
            terms = [terms]
        terms = [t for t in terms if t is not None]
        if not terms:
            continue
        logger.debug("cross filter on %s: %d term(s)", other.db_field(), len(terms))
        query.where(_like_any(other.db_field(), terms))
    return query
