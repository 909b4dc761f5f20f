"""In-memory set of parsed query documents keyed by file path."""

from __future__ import annotations

import threading
from pathlib import Path
from typing import Callable, Dict, Iterable, List, Optional

from typegen.loader import QueryDocument, load_document
from typegen.logger import ContextLogger, DocumentParseError

from .config import LOGGER

Loader = Callable[[Path], Optional[QueryDocument]]


def _key(path: Path | str) -> Path:
    return Path(path).resolve()


class DocumentTracker:
    """Tracks at most one document per path.

    Reloads are per file: updating one entry never touches the others, and a
    failed reload keeps the previous version of that file.
    """

    def __init__(self, loader: Loader = load_document):
        self._loader = loader
        self._lock = threading.Lock()
        self._docs: Dict[Path, QueryDocument] = {}

    def __contains__(self, path: object) -> bool:
        if not isinstance(path, (str, Path)):
            return False
        return _key(path) in self._docs

    def __len__(self) -> int:
        return len(self._docs)

    def get(self, path: Path | str) -> Optional[QueryDocument]:
        return self._docs.get(_key(path))

    def documents(self) -> List[QueryDocument]:
        with self._lock:
            return list(self._docs.values())

    def _load(self, path: Path) -> Optional[QueryDocument]:
        try:
            return self._loader(path)
        except DocumentParseError as exc:
            ContextLogger(LOGGER, **exc.context()).error(f"Failed to load documents: {exc}")
            return None

    def load_all(self, paths: Iterable[Path | str]) -> List[QueryDocument]:
        """Initial bulk load; files without documents or failing to parse are skipped."""
        loaded: Dict[Path, QueryDocument] = {}
        for p in paths:
            key = _key(p)
            if key in loaded:
                continue
            doc = self._load(key)
            if doc is not None:
                loaded[key] = doc
        with self._lock:
            self._docs = loaded
        return list(loaded.values())

    def update_one(self, path: Path | str) -> bool:
        """Reload one tracked file in place. Untracked paths are ignored."""
        key = _key(path)
        if key not in self._docs:
            return False
        doc = self._load(key)
        if doc is None:
            return False
        with self._lock:
            if key not in self._docs:
                return False
            self._docs[key] = doc
        return True

    def add_one(self, path: Path | str) -> bool:
        """Start tracking a new file if it embeds documents."""
        key = _key(path)
        if key in self._docs:
            return self.update_one(key)
        doc = self._load(key)
        if doc is None:
            return False
        with self._lock:
            self._docs[key] = doc
        return True

    def remove_one(self, path: Path | str) -> bool:
        with self._lock:
            return self._docs.pop(_key(path), None) is not None


__all__ = ["DocumentTracker"]
