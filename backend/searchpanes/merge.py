from __future__ import annotations

import math
import re
from decimal import Decimal
from functools import cmp_to_key
from typing import Any, Dict, Hashable, Iterable, List, Optional

from .options import ResolvedSpec, default_renderer

_NUMERIC_RE = re.compile(r"^\s*[+-]?(\d+(\.\d*)?|\.\d+)([eE][+-]?\d+)?\s*$")


def is_numeric(value: Any) -> bool:
    """True for numbers and strings that read fully as a finite number."""
    if isinstance(value, bool) or value is None:
        return False
    if isinstance(value, int):
        return True
    if isinstance(value, (float, Decimal)):
        return math.isfinite(value)
    if isinstance(value, str):
        return bool(_NUMERIC_RE.match(value))
    return False


def _to_decimal(value: Any) -> Decimal:
    return Decimal(str(value).strip())


def canonical_value(value: Any) -> Optional[Hashable]:
    """Key used to correlate label rows with count rows.

    Numbers and numeric strings become a :class:`~decimal.Decimal`, so ``1``,
    ``1.0`` and ``"1"`` all land on the same key; anything else compares by
    ``str()``.
    """
    if value is None:
        return None
    if isinstance(value, bool):
        value = int(value)
    if isinstance(value, (bytes, bytearray)):
        value = bytes(value).decode("utf-8", "replace")
    if not is_numeric(value):
        return str(value)
    try:
        return _to_decimal(value)
    except ArithmeticError:
        return str(value)


def _label_text(label: Any) -> str:
    if label is None or label is False:
        return ""
    if label is True:
        return "1"
    return str(label)


def compare_labels(a: Any, b: Any) -> int:
    """Numeric comparison when both labels are numeric, string comparison otherwise."""
    if is_numeric(a) and is_numeric(b):
        da, db = _to_decimal(a), _to_decimal(b)
        return (da > db) - (da < db)
    sa, sb = _label_text(a), _label_text(b)
    return (sa > sb) - (sa < sb)


def sort_options(options: Iterable[Dict[str, Any]]) -> List[Dict[str, Any]]:
    """Stable sort of option entries by label."""
    return sorted(options, key=cmp_to_key(lambda x, y: compare_labels(x.get("label"), y.get("label"))))


def render_label(row: Dict[str, Any], resolved: ResolvedSpec) -> Any:
    if not resolved.needs_render:
        return row.get("label")
    values = {resolved.label_columns[0]: row.get("label")}
    for i, col in enumerate(resolved.label_columns[1:], start=1):
        values[col] = row.get(f"label_{i}")
    renderer = resolved.renderer or default_renderer
    return renderer(values)


def merge_options(
    label_rows: List[Dict[str, Any]],
    count_rows: List[Dict[str, Any]],
    resolved: ResolvedSpec,
) -> List[Dict[str, Any]]:
    """Combine label and count rows into the final option list.

    One entry per label row, ``count`` taken from the count row with the same
    value (0 when there is none). Manual additions follow the database rows.
    Without an ORDER BY clause the whole list is sorted by label.
    """
    counts: Dict[Optional[Hashable], Any] = {}
    for row in count_rows:
        counts.setdefault(canonical_value(row.get("value")), row.get("count"))

    out: List[Dict[str, Any]] = []
    for row in label_rows:
        out.append({
            "label": render_label(row, resolved),
            "total": row.get("total"),
            "value": row.get("value"),
            "count": counts.get(canonical_value(row.get("value")), 0),
        })

    out.extend(dict(m) for m in resolved.manual)

    if not resolved.order:
        out = sort_options(out)
    return out
