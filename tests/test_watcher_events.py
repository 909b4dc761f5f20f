from pathlib import Path

import pytest

from typegen.watch_core.handler import SchemaFileHandler, TypegenHandler


class FakeEngine:
    def __init__(self, schema_output_path: Path):
        self.schema_output_path = schema_output_path.resolve()
        self.watched = []
        self.deleted = []

    def on_watch(self, p, event="changed"):
        self.watched.append((str(p), event))

    def on_deleted(self, p):
        self.deleted.append(str(p))


class FakeHub:
    def __init__(self):
        self.notified = 0

    def notify(self):
        self.notified += 1


class E:
    def __init__(self, src, dest=None, is_dir=False):
        self.src_path = str(src)
        self.dest_path = str(dest) if dest else None
        self.is_directory = is_dir


@pytest.fixture
def engine(tmp_path):
    return FakeEngine(tmp_path / ".cache" / "caches" / "typegen" / "schema.json")


@pytest.mark.unit
def test_created_and_modified_sources_are_routed(engine, tmp_path):
    handler = TypegenHandler(tmp_path, engine)
    f = tmp_path / "src" / "pages" / "index.tsx"

    handler.on_created(E(f))
    handler.on_modified(E(f))

    assert engine.watched == [(str(f.resolve()), "added"), (str(f.resolve()), "changed")]


@pytest.mark.unit
def test_snapshot_file_is_watched_but_other_paths_are_not(engine, tmp_path):
    handler = TypegenHandler(tmp_path, engine)
    handler.on_modified(E(engine.schema_output_path))
    handler.on_modified(E(tmp_path / "node_modules" / "generated" / "types" / "gatsby.ts"))
    handler.on_modified(E(tmp_path / "src" / "styles.css"))
    handler.on_modified(E(tmp_path / "src" / "types.d.ts"))
    handler.on_modified(E(tmp_path / "src", is_dir=True))

    assert engine.watched == [(str(engine.schema_output_path), "changed")]


@pytest.mark.unit
def test_deleted_source_is_forwarded(engine, tmp_path):
    handler = TypegenHandler(tmp_path, engine)
    f = tmp_path / "src" / "gone.ts"
    handler.on_deleted(E(f))
    handler.on_deleted(E(tmp_path / "README.md"))
    assert engine.deleted == [str(f.resolve())]


@pytest.mark.unit
def test_on_moved_deletes_source_and_adds_dest(engine, tmp_path):
    handler = TypegenHandler(tmp_path, engine)
    src = tmp_path / "src" / "a.tsx"
    dst = tmp_path / "src" / "b.tsx"
    handler.on_moved(E(src, dst))
    assert engine.deleted == [str(src.resolve())]
    assert engine.watched == [(str(dst.resolve()), "added")]

    # moved out of the watched tree: only the delete is reported
    handler.on_moved(E(dst, tmp_path / "archive" / "b.tsx"))
    assert engine.deleted[-1] == str(dst.resolve())
    assert len(engine.watched) == 1


@pytest.mark.unit
def test_schema_file_handler_notifies_hub(tmp_path):
    hub = FakeHub()
    schema = tmp_path / "schema.graphql"
    handler = SchemaFileHandler(schema, hub)

    handler.on_modified(E(schema))
    handler.on_created(E(schema))
    handler.on_moved(E(tmp_path / "schema.tmp", schema))
    handler.on_modified(E(tmp_path / "other.graphql"))
    handler.on_modified(E(tmp_path, is_dir=True))

    assert hub.notified == 3
