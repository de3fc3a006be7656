from __future__ import annotations

from pydantic import BaseModel, Field, field_validator
from pydantic.config import ConfigDict
from typing import Optional, List, Dict, Any


class HealthResponse(BaseModel):
    status: str = "ok"
    app: str
    env: str


# --- Search panes ---
class SearchPanesRequest(BaseModel):
    """Active selections per pane, as sent by the SearchPanes client."""

    model_config = ConfigDict(populate_by_name=True, extra="ignore")

    search_panes: Dict[str, List[str]] = Field(
        default_factory=dict,
        alias="searchPanes",
        description="Field name -> selected terms; each term is matched as a substring",
    )

    @field_validator("search_panes", mode="before")
    @classmethod
    def coerce_terms(cls, v: Any) -> Any:
        # Numeric terms ({"site": [1]}) are matched as text like any other term
        if not isinstance(v, dict):
            return v
        out: Dict[str, Any] = {}
        for name, terms in v.items():
            if terms is None:
                terms = []
            elif not isinstance(terms, (list, tuple)):
                terms = [terms]
            out[name] = [t if isinstance(t, str) else str(t) for t in terms if t is not None]
        return out

    def to_http(self) -> Dict[str, Any]:
        return {"searchPanes": {k: list(v) for k, v in self.search_panes.items() if v}}


class OptionEntry(BaseModel):
    label: Any = None
    value: Any = None
    # Absent on manually added options
    total: Optional[int] = None
    count: Optional[int] = None


class PaneOptions(BaseModel):
    options: Dict[str, List[OptionEntry]] = {}


class SearchPanesResponse(BaseModel):
    model_config = ConfigDict(populate_by_name=True)

    search_panes: PaneOptions = Field(alias="searchPanes")
