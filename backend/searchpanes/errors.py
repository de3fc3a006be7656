from __future__ import annotations

from typing import Optional


class SearchPanesError(Exception):
    pass


class QueryBuildError(SearchPanesError, ValueError):
    """Raised when a predicate or clause cannot be turned into SQL."""


class DataAccessError(SearchPanesError):
    """A backend failure while executing an option query.

    The generated SQL is kept on the exception so callers can log it; the
    original driver error is chained as ``__cause__``.
    """

    def __init__(self, message: str, sql: Optional[str] = None):
        super().__init__(message)
        self.message = message
        self.sql = sql
