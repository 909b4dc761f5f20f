"""Bootstrap and event wiring for the typegen watcher."""

from __future__ import annotations

import threading
import time
from pathlib import Path
from typing import Callable, Iterable, List, Optional

from typegen.config import TypegenOptions
from typegen.discovery import find_files
from typegen.emitter import EmitterConfig, emit
from typegen.loader import QueryDocument, load_document
from typegen.logger import (
    AnnotationError,
    ContextLogger,
    DiscoveryError,
    ExtractionError,
    GenerationError,
    log_and_reraise,
)
from typegen.schema import SchemaHub, SchemaSource

from .annotator import SourceAnnotator
from .config import LOGGER as logger
from .documents import DocumentTracker, Loader
from .handler import SchemaFileHandler, TypegenHandler
from .scheduler import RegenerationScheduler, TimerFactory
from .snapshot import SchemaSnapshot, SchemaSnapshotStore, SnapshotOutcome, atomic_write_text
from .utils import create_observer

Emitter = Callable[[SchemaSnapshot, List[QueryDocument], EmitterConfig], str]


class TypegenEngine:
    """Owns the snapshot store, document tracker and scheduler for one run."""

    def __init__(
        self,
        options: TypegenOptions,
        schema_source: SchemaSource,
        hub: Optional[SchemaHub] = None,
        emitter: Emitter = emit,
        loader: Loader = load_document,
        timer_factory: TimerFactory = threading.Timer,
        annotator: Optional[SourceAnnotator] = None,
        components: Iterable[Path] = (),
        schema_file: Optional[Path] = None,
    ):
        self.options = options
        self.schema_source = schema_source
        self.hub = hub
        self.store = SchemaSnapshotStore(options.schema_output_path)
        self.tracker = DocumentTracker(loader)
        self.scheduler = RegenerationScheduler(
            self.regenerate, delay=options.debounce_secs, timer_factory=timer_factory
        )
        self.annotator = annotator or SourceAnnotator()
        self.components = tuple(components)
        self.schema_file = Path(schema_file).resolve() if schema_file else None
        self.files: List[Path] = []
        self._emitter = emitter
        self._unsubscribe: Optional[Callable[[], None]] = None
        self._observer = None

    @property
    def schema_output_path(self) -> Path:
        return self.options.schema_output_path

    @property
    def type_defs_output_path(self) -> Path:
        return self.options.type_defs_output_path

    # ------------------------------------------------------------------
    # Startup
    # ------------------------------------------------------------------
    def bootstrap(self) -> List[QueryDocument]:
        """Extract the schema and load every document before watching.

        A snapshot left by a previous run seeds the digest, so restarting
        against an unchanged schema does not rewrite it.

        Raises:
            ExtractionError: the schema could not be obtained.
            DiscoveryError: the candidate file set could not be enumerated.
        """
        started = time.perf_counter()
        logger.info("lookup graphql documents for type generation")
        if self.store.snapshot is None:
            self.store.load_existing()
        try:
            self.store.extract(self.schema_source)
        except ExtractionError as exc:
            log_and_reraise(logger, "Schema extraction failed", exc, **exc.context())
        try:
            self.files = find_files(self.options.root, self.options.extra_dirs, self.components)
        except DiscoveryError as exc:
            log_and_reraise(logger, "File discovery failed", exc, **exc.context())
        docs = self.tracker.load_all(self.files)
        if self.hub is not None and self._unsubscribe is None:
            self._unsubscribe = self.hub.subscribe(self.on_schema_changed)
        logger.info(
            "lookup graphql documents for type generation - %.3fs (%d documents in %d files)",
            time.perf_counter() - started,
            len(docs),
            len(self.files),
        )
        return docs

    # ------------------------------------------------------------------
    # Regeneration
    # ------------------------------------------------------------------
    def regenerate(self) -> bool:
        """Emit and write the type definitions; failures leave the old file."""
        snapshot = self.store.snapshot
        if snapshot is None:
            logger.warning("No schema snapshot yet, skipping type generation")
            return False
        started = time.perf_counter()
        try:
            output = self._emitter(snapshot, self.tracker.documents(), self.options.emitter)
        except GenerationError as exc:
            ContextLogger(logger, **exc.context()).error(f"Type generation failed: {exc}")
            return False
        except Exception as exc:
            ContextLogger(logger, phase=GenerationError.phase).error(
                f"Type generation failed: {exc}", exc_info=True
            )
            return False
        try:
            atomic_write_text(self.type_defs_output_path, output)
        except OSError as exc:
            ContextLogger(logger, phase=GenerationError.phase, file=str(self.type_defs_output_path)).error(
                f"Cannot write type definitions: {exc}"
            )
            return False
        logger.info(
            "Type definitions are generated into %s (%.3fs)",
            self.type_defs_output_path,
            time.perf_counter() - started,
        )
        return True

    # ------------------------------------------------------------------
    # Events
    # ------------------------------------------------------------------
    def annotate(self, path: Path) -> bool:
        try:
            return self.annotator.annotate_file(path)
        except AnnotationError as exc:
            ContextLogger(logger, **exc.context()).error(f"Annotation skipped: {exc}")
            return False

    def on_watch(self, path: Path | str, event: str = "changed") -> None:
        """Handle an add/change event for a watched path."""
        p = Path(path).resolve()
        is_schema = p == self.schema_output_path
        if not is_schema:
            if p in self.tracker:
                self.tracker.update_one(p)
            elif event == "added":
                self.tracker.add_one(p)
        self.scheduler.request_regeneration()
        if self.options.auto_fix and not is_schema:
            self.annotate(p)

    def on_deleted(self, path: Path | str) -> None:
        if self.tracker.remove_one(path):
            logger.info("Stopped tracking deleted file %s", path)
            self.scheduler.request_regeneration()

    def on_schema_changed(self) -> Optional[SnapshotOutcome]:
        """Hub subscriber: re-extract, keeping the previous snapshot on failure."""
        try:
            outcome = self.store.extract(self.schema_source)
        except ExtractionError as exc:
            ContextLogger(logger, **exc.context()).error(f"Schema extraction failed: {exc}")
            return None
        if outcome.written:
            self.scheduler.request_regeneration()
        return outcome

    # ------------------------------------------------------------------
    # One-shot and watch modes
    # ------------------------------------------------------------------
    def run_once(self) -> bool:
        """Bootstrap, annotate every candidate file (if enabled) and generate."""
        self.bootstrap()
        if self.options.auto_fix:
            for p in self.files:
                if self.annotate(p) and p in self.tracker:
                    self.tracker.update_one(p)
        return self.regenerate()

    def start(self) -> None:
        if self._observer is not None:
            return
        handler = TypegenHandler(self.options.root, self)
        obs = create_observer(self.options.use_polling)
        src = self.options.documents_root
        if src.is_dir():
            obs.schedule(handler, str(src), recursive=True)
        snapshot_dir = self.schema_output_path.parent
        snapshot_dir.mkdir(parents=True, exist_ok=True)
        obs.schedule(handler, str(snapshot_dir), recursive=False)
        if self.schema_file is not None and self.hub is not None:
            obs.schedule(SchemaFileHandler(self.schema_file, self.hub), str(self.schema_file.parent), recursive=False)
        obs.start()
        self._observer = obs
        self.scheduler.request_regeneration()
        logger.info("Watching %s and %s", src, self.schema_output_path)

    def stop(self) -> None:
        if self._unsubscribe is not None:
            self._unsubscribe()
            self._unsubscribe = None
        obs, self._observer = self._observer, None
        if obs is not None:
            obs.stop()
            obs.join()
        self.scheduler.flush()

    def run_forever(self) -> None:
        self.bootstrap()
        self.start()
        try:
            while True:
                time.sleep(1.0)
        except KeyboardInterrupt:
            logger.info("Stopping watcher...")
        finally:
            self.stop()


__all__ = ["TypegenEngine"]
