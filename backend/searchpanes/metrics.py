from __future__ import annotations

import threading
from contextlib import contextmanager
from time import perf_counter, time
from typing import Dict, Iterator, Tuple

# In-process metrics for option queries and the HTTP layer (single process).
# Counters, gauges and summaries (sum,count) keyed by name + sorted labels.

_Key = Tuple[str, Tuple[Tuple[str, str], ...]]

_lock = threading.Lock()
_counters: Dict[_Key, float] = {}
_gauges: Dict[_Key, float] = {}
_summaries: Dict[_Key, Tuple[float, int]] = {}


def _key(name: str, labels: Dict[str, str] | None) -> _Key:
    return name, tuple(sorted((labels or {}).items()))


def counter_inc(name: str, labels: Dict[str, str] | None = None, amount: float = 1.0) -> None:
    k = _key(name, labels)
    with _lock:
        _counters[k] = _counters.get(k, 0.0) + float(amount)


def gauge_inc(name: str, amount: float = 1.0, labels: Dict[str, str] | None = None) -> None:
    k = _key(name, labels)
    with _lock:
        _gauges[k] = _gauges.get(k, 0.0) + float(amount)


def gauge_dec(name: str, amount: float = 1.0, labels: Dict[str, str] | None = None) -> None:
    gauge_inc(name, -float(amount), labels)


def summary_observe(name: str, value: float, labels: Dict[str, str] | None = None) -> None:
    k = _key(name, labels)
    with _lock:
        s, c = _summaries.get(k, (0.0, 0))
        _summaries[k] = (s + float(value), c + 1)


@contextmanager
def track_query(kind: str) -> Iterator[None]:
    """Count and time one option query; failures bump the error counter."""
    labels = {"kind": kind}
    counter_inc("searchpanes_queries_total", labels)
    started = perf_counter()
    try:
        yield
    except Exception:
        counter_inc("searchpanes_query_errors_total", labels)
        raise
    finally:
        summary_observe("searchpanes_query_duration_ms", (perf_counter() - started) * 1000.0, labels)


def counter_value(name: str, labels: Dict[str, str] | None = None) -> float:
    with _lock:
        return _counters.get(_key(name, labels), 0.0)


def reset() -> None:
    with _lock:
        _counters.clear()
        _gauges.clear()
        _summaries.clear()


def _fmt_labels(items: Tuple[Tuple[str, str], ...]) -> str:
    if not items:
        return ""
    return "{" + ",".join(f'{k}="{v}"' for k, v in items) + "}"


def _families(series: Dict[_Key, object]) -> Dict[str, list]:
    # One "# TYPE" line per metric name, series sorted by labels
    out: Dict[str, list] = {}
    for (name, items), val in sorted(series.items()):
        out.setdefault(name, []).append((items, val))
    return out


def render_prometheus() -> str:
    lines: list[str] = []
    with _lock:
        for kind, series in (("counter", _counters), ("gauge", _gauges)):
            for name, rows in _families(series).items():
                lines.append(f"# TYPE {name} {kind}")
                lines.extend(f"{name}{_fmt_labels(items)} {val}" for items, val in rows)
        for name, rows in _families(_summaries).items():
            lines.append(f"# TYPE {name} summary")
            for items, (s, c) in rows:
                lines.append(f"{name}_sum{_fmt_labels(items)} {s}")
                lines.append(f"{name}_count{_fmt_labels(items)} {c}")
    lines.append(f"# EOF {int(time())}")
    return "\n".join(lines) + "\n"


def snapshot() -> dict:
    """Return a programmatic snapshot of current metrics.
    Structure:
    {
      counters: [ { name, labels: {..}, value } ],
      gauges:   [ { name, labels: {..}, value } ],
      summaries:[ { name, labels: {..}, sum, count } ],
    }
    """
    with _lock:
        return {
            "counters": [{"name": n, "labels": dict(i), "value": float(v)} for (n, i), v in _counters.items()],
            "gauges": [{"name": n, "labels": dict(i), "value": float(v)} for (n, i), v in _gauges.items()],
            "summaries": [
                {"name": n, "labels": dict(i), "sum": float(s), "count": int(c)}
                for (n, i), (s, c) in _summaries.items()
            ],
        }
