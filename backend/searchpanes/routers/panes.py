from __future__ import annotations

import logging

from fastapi import APIRouter, HTTPException

from ..errors import DataAccessError, QueryBuildError
from ..registry import editor_names, get_editor
from ..schemas import SearchPanesRequest, SearchPanesResponse

logger = logging.getLogger(__name__)

router = APIRouter(prefix="/searchpanes", tags=["searchpanes"])


@router.get("")
def list_editors() -> dict:
    return {"editors": editor_names()}


@router.post(
    "/{name}",
    response_model=SearchPanesResponse,
    response_model_exclude_unset=True,
)
def search_pane_options(name: str, payload: SearchPanesRequest) -> dict:
    """Option lists for every pane of editor ``name`` under the given selections."""
    editor = get_editor(name)
    if editor is None:
        raise HTTPException(status_code=404, detail="Unknown editor")

    try:
        panes = editor.search_panes(payload.to_http())
    except QueryBuildError as e:
        logger.warning("search panes for %s not built: %s", name, e)
        raise HTTPException(status_code=400, detail=str(e))
    except DataAccessError as e:
        logger.exception("search panes for %s failed", name)
        raise HTTPException(status_code=502, detail="Option query failed") from e

    return {"searchPanes": panes}
