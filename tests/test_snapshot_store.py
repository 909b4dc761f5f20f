"""Hash-gated schema snapshot persistence."""
import hashlib
import json

import pytest
from graphql import build_schema

from typegen.logger import ExtractionError
from typegen.schema import GraphQLSchemaSource, SDLFileSchemaSource
from typegen.watch_core.snapshot import SchemaSnapshotStore

from conftest import SCHEMA_SDL

pytestmark = pytest.mark.unit


class CountingSource:
    def __init__(self, data):
        self.data = data
        self.calls = 0

    def introspect(self):
        self.calls += 1
        return self.data


class FailingSource:
    def introspect(self):
        raise RuntimeError("host has no schema yet")


def test_first_extraction_writes_pretty_json_and_digest(tmp_path):
    target = tmp_path / ".cache" / "caches" / "typegen" / "schema.json"
    store = SchemaSnapshotStore(target)
    outcome = store.extract(CountingSource({"__schema": {"types": []}}))

    assert outcome.written is True
    assert outcome.path == target
    text = target.read_text(encoding="utf-8")
    assert text == json.dumps({"__schema": {"types": []}}, indent=2)
    assert store.digest == hashlib.sha1(text.encode("utf-8")).hexdigest()
    assert store.snapshot.content == text


def test_identical_extraction_does_no_io(tmp_path, monkeypatch):
    target = tmp_path / "schema.json"
    store = SchemaSnapshotStore(target)
    source = CountingSource({"a": 1})
    store.extract(source)
    mtime = target.stat().st_mtime_ns

    writes = []
    monkeypatch.setattr(
        "typegen.watch_core.snapshot.atomic_write_text", lambda *a: writes.append(a)
    )
    outcome = store.extract(source)

    assert outcome.written is False
    assert writes == []
    assert target.stat().st_mtime_ns == mtime
    assert source.calls == 2


def test_changed_extraction_writes_exactly_once(tmp_path):
    target = tmp_path / "schema.json"
    store = SchemaSnapshotStore(target)
    store.extract(CountingSource({"v": 1}))
    old_digest = store.digest

    outcome = store.extract(CountingSource({"v": 2}))
    assert outcome.written is True
    assert store.digest != old_digest
    assert json.loads(target.read_text(encoding="utf-8")) == {"v": 2}
    # no temp files left behind
    assert sorted(p.name for p in tmp_path.iterdir()) == ["schema.json"]


def test_extraction_failure_keeps_previous_snapshot(tmp_path):
    target = tmp_path / "schema.json"
    store = SchemaSnapshotStore(target)
    store.extract(CountingSource({"v": 1}))
    before = target.read_text(encoding="utf-8")
    digest = store.digest

    with pytest.raises(ExtractionError):
        store.extract(FailingSource())

    assert target.read_text(encoding="utf-8") == before
    assert store.digest == digest


def test_stores_are_isolated(tmp_path):
    a = SchemaSnapshotStore(tmp_path / "a.json")
    b = SchemaSnapshotStore(tmp_path / "b.json")
    a.extract(CountingSource({"v": 1}))
    assert b.digest is None
    assert b.extract(CountingSource({"v": 1})).written is True


def test_load_existing_seeds_digest(tmp_path):
    target = tmp_path / "schema.json"
    SchemaSnapshotStore(target).extract(CountingSource({"v": 1}))

    restarted = SchemaSnapshotStore(target)
    assert restarted.load_existing() is not None
    assert restarted.extract(CountingSource({"v": 1})).written is False


def test_graphql_sources_produce_introspection(tmp_path):
    sdl = tmp_path / "schema.graphql"
    sdl.write_text(SCHEMA_SDL, encoding="utf-8")
    store = SchemaSnapshotStore(tmp_path / "out.json")

    store.extract(SDLFileSchemaSource(sdl))
    data = json.loads(store.snapshot.content)
    names = {t["name"] for t in data["__schema"]["types"]}
    assert {"Query", "Site", "SiteMetadata"} <= names

    # same schema from a different source type hashes the same
    assert store.extract(GraphQLSchemaSource(build_schema(SCHEMA_SDL))).written is False


def test_invalid_sdl_is_an_extraction_error(tmp_path):
    sdl = tmp_path / "schema.graphql"
    sdl.write_text("type Query {", encoding="utf-8")
    with pytest.raises(ExtractionError) as info:
        SchemaSnapshotStore(tmp_path / "out.json").extract(SDLFileSchemaSource(sdl))
    assert info.value.path == sdl
