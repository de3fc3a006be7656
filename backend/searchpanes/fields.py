from __future__ import annotations

import logging
from typing import TYPE_CHECKING, Any, Dict, List, Mapping, Optional

from .db import Database

if TYPE_CHECKING:
    from .options import JoinSpec, SearchPaneOptions

logger = logging.getLogger(__name__)

_UNSET = object()


class Field:
    """
    A column exposed by an :class:`Editor`.

    ``name`` is the key used in request payloads and in the returned options
    mapping; ``db_field`` is the database column (optionally ``table.column``)
    and defaults to the name.

    Example:
        >>> Field("users.site").search_pane_options(
        ...     SearchPaneOptions().table("sites").value("id").label("name")
        ... )
    """

    def __init__(self, db_field: str, name: Optional[str] = None):
        self._db_field = db_field
        self._name = name or db_field
        self._get = True
        self._set = True
        self._get_value: Any = None
        self._search_pane_options: Optional["SearchPaneOptions"] = None

    def name(self) -> str:
        return self._name

    def db_field(self) -> str:
        return self._db_field

    def get(self, flag: Optional[bool] = None):
        if flag is None:
            return self._get
        self._get = bool(flag)
        return self

    def set(self, flag: Optional[bool] = None):
        if flag is None:
            return self._set
        self._set = bool(flag)
        return self

    def get_value(self, value: Any = _UNSET):
        """Get / set a fixed value returned for this field instead of the column."""
        if value is _UNSET:
            return self._get_value
        self._get_value = value
        return self

    def apply(self, action: str) -> bool:
        """Whether the field takes part in ``action`` ("get" or "set")."""
        if action == "get":
            return self._get
        if action in ("set", "create", "edit"):
            return self._set
        return False

    def search_pane_options(self, options: Any = _UNSET):
        if options is _UNSET:
            return self._search_pane_options
        self._search_pane_options = options
        return self

    def __repr__(self) -> str:
        return f"Field({self._db_field!r}, name={self._name!r})"


class Editor:
    """Table definition the panes are computed against.

    Holds the base table, the database handle, the fields and the left joins
    applied to the main table; the first left join doubles as the cross-filter
    join of every pane count query.
    """

    def __init__(self, db: Database, table: str, fields: Optional[List[Field]] = None):
        self._db = db
        self._table = table
        self._fields: List[Field] = list(fields or [])
        self._left_join: List["JoinSpec"] = []

    def db(self) -> Database:
        return self._db

    def table(self) -> str:
        return self._table

    def fields(self, *fields: Field):
        if not fields:
            return list(self._fields)
        self._fields.extend(fields)
        return self

    def field(self, name: str) -> Optional[Field]:
        for f in self._fields:
            if f.name() == name:
                return f
        return None

    def left_join(self, table: Optional[str] = None, field1: str = "", operator: str = "=", field2: str = ""):
        from .options import JoinSpec

        if table is None:
            return list(self._left_join)
        self._left_join.append(JoinSpec(table, field1, operator, field2))
        return self

    def search_panes(self, http: Optional[Mapping[str, Any]] = None) -> Dict[str, Any]:
        """Compute the option list of every field configured with pane options."""
        http = http or {}
        options: Dict[str, List[Dict[str, Any]]] = {}
        cross_filter_join = self._left_join[0] if self._left_join else None
        for f in self._fields:
            spec = f.search_pane_options()
            if spec is None:
                continue
            options[f.name()] = spec.exec(f, self, http, self._fields, cross_filter_join)
        logger.info("search panes computed for %s: %d pane(s)", self._table, len(options))
        return {"options": options}
