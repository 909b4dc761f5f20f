"""Watchdog event handler that feeds file changes into the engine."""

from __future__ import annotations

import os
from pathlib import Path
from typing import TYPE_CHECKING, Optional

from watchdog.events import FileSystemEventHandler

from typegen.discovery import matches_documents_glob

from .config import LOGGER

if TYPE_CHECKING:
    from typegen.schema import SchemaHub

    from .engine import TypegenEngine


class TypegenHandler(FileSystemEventHandler):
    """Routes add/change/delete events for watched paths.

    Watched paths are the schema snapshot file and ``<root>/src/**`` source
    files; everything else (including the generated output) is ignored.
    """

    def __init__(self, root: Path, engine: "TypegenEngine"):
        super().__init__()
        self.root = root
        self.engine = engine

    def _watched(self, src_path) -> Optional[Path]:
        try:
            p = Path(os.fsdecode(src_path)).resolve()
        except (OSError, ValueError):
            return None
        if p == self.engine.schema_output_path:
            return p
        if matches_documents_glob(self.root, p):
            return p
        return None

    def on_created(self, event):
        if event.is_directory:
            return
        p = self._watched(event.src_path)
        if p is not None:
            self.engine.on_watch(p, "added")

    def on_modified(self, event):
        if event.is_directory:
            return
        p = self._watched(event.src_path)
        if p is not None:
            self.engine.on_watch(p, "changed")

    def on_deleted(self, event):
        if event.is_directory:
            return
        p = self._watched(event.src_path)
        if p is not None:
            self.engine.on_deleted(p)

    def on_moved(self, event):
        if event.is_directory:
            return
        src = self._watched(event.src_path)
        dest = self._watched(event.dest_path)
        LOGGER.debug("[moved] %s -> %s", event.src_path, event.dest_path)
        if src is not None:
            self.engine.on_deleted(src)
        if dest is not None:
            self.engine.on_watch(dest, "added")


class SchemaFileHandler(FileSystemEventHandler):
    """Notifies a schema hub when an upstream schema file changes."""

    def __init__(self, schema_path: Path, hub: "SchemaHub"):
        super().__init__()
        self.schema_path = Path(schema_path).resolve()
        self.hub = hub

    def _maybe_notify(self, src_path) -> None:
        try:
            p = Path(os.fsdecode(src_path)).resolve()
        except (OSError, ValueError):
            return
        if p == self.schema_path:
            LOGGER.debug("[schema_changed] %s", p)
            self.hub.notify()

    def on_created(self, event):
        if not event.is_directory:
            self._maybe_notify(event.src_path)

    def on_modified(self, event):
        if not event.is_directory:
            self._maybe_notify(event.src_path)

    def on_moved(self, event):
        if not event.is_directory:
            self._maybe_notify(event.dest_path)


__all__ = ["TypegenHandler", "SchemaFileHandler"]
