from __future__ import annotations

import logging
import re
import threading
from typing import Any, Dict, List, Mapping, Optional, Tuple

from .assembler import apply_cross_filters, apply_join, apply_where
from .db import Database
from .metrics import track_query
from .options import JoinSpec, ResolvedSpec

logger = logging.getLogger(__name__)

Rows = List[Dict[str, Any]]

_DIRECTION_RE = re.compile(r"\s+(asc|desc)\s*$", re.IGNORECASE)


def order_columns(order: str) -> List[str]:
    """Column names referenced by a raw ORDER BY clause, directions stripped."""
    columns: List[str] = []
    for part in (order or "").split(","):
        col = _DIRECTION_RE.sub("", part.strip()).strip()
        if col:
            columns.append(col)
    return columns


def run_count_query(
    db: Database,
    resolved: ResolvedSpec,
    field,
    http: Mapping[str, Any],
    fields: List[Any],
    cross_filter_join: Optional[JoinSpec] = None,
) -> Rows:
    """Per-value row counts under the other panes' active selections.

    Returns no rows when the field is not read from the database or its value
    is fixed, in which case every option reports a zero count.
    """
    if not field.apply("get") or field.get_value() is not None:
        logger.debug("count query skipped for %s: value not read from the database", field.name())
        return []

    q = (
        db.query("select")
        .table(resolved.table)
        .get(f"{resolved.value} AS value", "COUNT(*) AS count")
        .group_by(resolved.value)
    )
    apply_join(q, cross_filter_join)
    apply_cross_filters(q, field, http, fields)

    with track_query("count"):
        return q.exec().fetch_all()


def run_label_query(db: Database, resolved: ResolvedSpec) -> Rows:
    """Distinct label/value pairs with their total row counts."""
    q = (
        db.query("select")
        .table(resolved.table)
        .get(f"{resolved.label} AS label", f"{resolved.value} AS value", "COUNT(*) AS total")
        .group_by(resolved.value)
    )
    # Additional label columns are only needed by the renderer
    for i, col in enumerate(resolved.label_columns[1:], start=1):
        q.get(f"{col} AS label_{i}")

    apply_where(q, resolved.where)
    apply_join(q, resolved.primary_join)

    if resolved.order:
        # Grouped queries need ordering columns in the select list
        selected = {name.lower() for name in q.selected()}
        for col in order_columns(resolved.order):
            if col.lower() not in selected:
                q.get(col)
                selected.add(col.lower())
        q.order(resolved.order)

    if resolved.limit is not None:
        q.limit(resolved.limit)

    with track_query("label"):
        return q.exec().fetch_all()


def run_option_queries(
    db: Database,
    resolved: ResolvedSpec,
    field,
    http: Mapping[str, Any],
    fields: List[Any],
    cross_filter_join: Optional[JoinSpec] = None,
    concurrent: bool = False,
) -> Tuple[Rows, Rows]:
    """Run the label and count queries, returning ``(label_rows, count_rows)``.

    With ``concurrent`` the count query runs on a worker thread while the label
    query runs on the caller's; the first failure is re-raised here.
    """
    if not concurrent:
        counts = run_count_query(db, resolved, field, http, fields, cross_filter_join)
        rows = run_label_query(db, resolved)
        return rows, counts

    box: Dict[str, Any] = {}

    def _count_worker() -> None:
        try:
            box["counts"] = run_count_query(db, resolved, field, http, fields, cross_filter_join)
        except Exception as e:
            box["error"] = e

    worker = threading.Thread(target=_count_worker, name=f"searchpanes-count-{field.name()}", daemon=True)
    worker.start()
    try:
        rows = run_label_query(db, resolved)
    finally:
        worker.join()
    if "error" in box:
        raise box["error"]
    return rows, box["counts"]
