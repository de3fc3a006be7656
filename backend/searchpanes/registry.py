from __future__ import annotations

import threading
from typing import Dict, List, Optional

from .fields import Editor

# Editors exposed over HTTP, keyed by the name used in the URL.
_lock = threading.Lock()
_editors: Dict[str, Editor] = {}


def register_editor(name: str, editor: Editor) -> Editor:
    with _lock:
        _editors[name] = editor
    return editor


def unregister_editor(name: str) -> None:
    with _lock:
        _editors.pop(name, None)


def get_editor(name: str) -> Optional[Editor]:
    with _lock:
        return _editors.get(name)


def editor_names() -> List[str]:
    with _lock:
        return sorted(_editors)
