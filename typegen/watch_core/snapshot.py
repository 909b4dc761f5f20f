"""Hash-gated persistence of the schema snapshot."""

from __future__ import annotations

import hashlib
import json
import threading
import uuid
from dataclasses import dataclass
from pathlib import Path
from typing import Optional

from typegen.logger import ExtractionError
from typegen.schema import SchemaSource

from .config import LOGGER as logger


@dataclass(frozen=True)
class SchemaSnapshot:
    content: str
    digest: str


@dataclass(frozen=True)
class SnapshotOutcome:
    written: bool
    path: Path
    digest: str


def sha1_text(text: str) -> str:
    return hashlib.sha1(text.encode("utf-8")).hexdigest()


def atomic_write_text(path: Path, text: str) -> None:
    """Write ``text`` to ``path`` through a temp file and rename."""
    path.parent.mkdir(parents=True, exist_ok=True)
    temp_path = path.with_name(f"{path.name}.tmp.{uuid.uuid4().hex[:8]}")
    try:
        with open(temp_path, "w", encoding="utf-8") as f:
            f.write(text)
        temp_path.replace(path)
    except Exception:
        try:
            temp_path.unlink(missing_ok=True)
        except OSError:
            pass
        raise


class SchemaSnapshotStore:
    """Owns the on-disk snapshot and the digest of what was last written."""

    def __init__(self, path: Path):
        self.path = Path(path)
        self._lock = threading.Lock()
        self._snapshot: Optional[SchemaSnapshot] = None

    @property
    def snapshot(self) -> Optional[SchemaSnapshot]:
        return self._snapshot

    @property
    def digest(self) -> Optional[str]:
        return self._snapshot.digest if self._snapshot else None

    def load_existing(self) -> Optional[SchemaSnapshot]:
        """Seed the store from a snapshot left by a previous run."""
        try:
            content = self.path.read_text(encoding="utf-8")
        except FileNotFoundError:
            return None
        except OSError as exc:
            logger.warning("Ignoring unreadable snapshot %s: %s", self.path, exc)
            return None
        with self._lock:
            self._snapshot = SchemaSnapshot(content=content, digest=sha1_text(content))
            return self._snapshot

    def extract(self, schema_source: SchemaSource) -> SnapshotOutcome:
        """Persist the current schema if its serialization changed.

        Raises:
            ExtractionError: the source could not produce or serialize the
                schema. The previous snapshot stays in place.
        """
        try:
            data = schema_source.introspect()
            output = json.dumps(data, indent=2)
        except ExtractionError:
            raise
        except Exception as exc:
            raise ExtractionError(f"schema extraction failed: {exc}") from exc

        digest = sha1_text(output)
        with self._lock:
            if self._snapshot is not None and self._snapshot.digest == digest:
                return SnapshotOutcome(written=False, path=self.path, digest=digest)
            try:
                atomic_write_text(self.path, output)
            except OSError as exc:
                raise ExtractionError(f"cannot write snapshot: {exc}", path=self.path) from exc
            self._snapshot = SchemaSnapshot(content=output, digest=digest)
        logger.info("Schema file extracted to %s!", self.path)
        return SnapshotOutcome(written=True, path=self.path, digest=digest)


__all__ = ["SchemaSnapshot", "SnapshotOutcome", "SchemaSnapshotStore", "atomic_write_text", "sha1_text"]
