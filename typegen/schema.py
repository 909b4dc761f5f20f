"""Schema providers and the schema-changed notification hub."""

from __future__ import annotations

import json
import threading
from pathlib import Path
from typing import Any, Callable, Dict, List, Protocol

from graphql import (
    GraphQLSchema,
    build_client_schema,
    build_schema,
    get_introspection_query,
    graphql_sync,
)

from typegen.logger import ExtractionError, get_logger

logger = get_logger(__name__)


class SchemaSource(Protocol):
    """Anything that can produce the current schema as introspection data."""

    def introspect(self) -> Dict[str, Any]:
        ...


class SchemaHub:
    """Explicit "schema changed" notification channel.

    Hosts call :meth:`notify` whenever their schema may have changed; the
    engine subscribes and re-extracts.
    """

    def __init__(self) -> None:
        self._lock = threading.Lock()
        self._subscribers: List[Callable[[], None]] = []

    def subscribe(self, callback: Callable[[], None]) -> Callable[[], None]:
        with self._lock:
            self._subscribers.append(callback)

        def _unsubscribe() -> None:
            with self._lock:
                if callback in self._subscribers:
                    self._subscribers.remove(callback)

        return _unsubscribe

    def notify(self) -> None:
        with self._lock:
            subscribers = list(self._subscribers)
        for cb in subscribers:
            cb()


def introspect_schema(schema: GraphQLSchema) -> Dict[str, Any]:
    """Run the standard introspection query against ``schema``."""
    result = graphql_sync(schema, get_introspection_query(descriptions=True))
    if result.errors:
        raise ExtractionError("; ".join(str(e) for e in result.errors))
    if result.data is None:
        raise ExtractionError("introspection returned no data")
    return result.data


class GraphQLSchemaSource:
    """Wraps an in-process graphql-core schema."""

    def __init__(self, schema: GraphQLSchema):
        self.schema = schema

    def introspect(self) -> Dict[str, Any]:
        try:
            return introspect_schema(self.schema)
        except ExtractionError:
            raise
        except Exception as exc:
            raise ExtractionError(f"schema introspection failed: {exc}") from exc


class SDLFileSchemaSource:
    """Reads the schema from an SDL file or an introspection JSON file.

    The file is re-read on every call so edits are picked up when the hub
    fires.
    """

    def __init__(self, path: Path | str):
        self.path = Path(path)

    def load(self) -> GraphQLSchema:
        try:
            text = self.path.read_text(encoding="utf-8")
        except OSError as exc:
            raise ExtractionError(f"cannot read schema: {exc}", path=self.path) from exc
        try:
            if self.path.suffix.lower() == ".json":
                data = json.loads(text)
                if "data" in data and "__schema" not in data:
                    data = data["data"]
                return build_client_schema(data)
            return build_schema(text)
        except Exception as exc:
            raise ExtractionError(f"invalid schema: {exc}", path=self.path) from exc

    def introspect(self) -> Dict[str, Any]:
        schema = self.load()
        try:
            return introspect_schema(schema)
        except ExtractionError as exc:
            exc.path = self.path
            raise


def load_schema(snapshot_content: str) -> GraphQLSchema:
    """Build a client schema from snapshot JSON text."""
    return build_client_schema(json.loads(snapshot_content))


__all__ = [
    "SchemaSource",
    "SchemaHub",
    "GraphQLSchemaSource",
    "SDLFileSchemaSource",
    "introspect_schema",
    "load_schema",
]
