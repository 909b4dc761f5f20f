"""TypeScript emission from snapshot + documents."""
import json
from pathlib import Path

import pytest
from graphql import build_schema, parse

from typegen.emitter import EmitterConfig, emit
from typegen.loader import QueryDocument
from typegen.logger import GenerationError
from typegen.schema import introspect_schema
from typegen.watch_core.snapshot import SchemaSnapshot, sha1_text

pytestmark = pytest.mark.unit

SDL = """
enum Status { DRAFT PUBLISHED }

input PostFilter { status: Status! tag: String }

interface Node { id: ID! }

type Post implements Node {
  id: ID!
  "Post title"
  title: String!
  status: Status
  tags: [String!]
}

type Author implements Node { id: ID! name: String }

union SearchResult = Post | Author

type Query {
  posts(filter: PostFilter, limit: Int): [Post!]!
  search(term: String!): [SearchResult]
}
"""


@pytest.fixture
def snapshot():
    content = json.dumps(introspect_schema(build_schema(SDL)), indent=2)
    return SchemaSnapshot(content=content, digest=sha1_text(content))


def _doc(source, name="doc.tsx"):
    return QueryDocument(file_path=Path(name), source=source, document=parse(source))


def test_operations_get_result_and_variables_types(snapshot):
    doc = _doc(
        """
        query Posts($filter: PostFilter, $limit: Int) {
          posts(filter: $filter, limit: $limit) { id title status tags }
        }
        """
    )
    out = emit(snapshot, [doc])

    assert "export type Maybe<T> = T;" in out
    assert "export type PostsQueryVariables = {" in out
    assert "  filter: Maybe<PostFilter>;" in out
    assert "  limit: Maybe<Scalars['Int']>;" in out
    assert "export type PostsQuery = {" in out
    assert "posts: Array<{" in out
    assert "title: Scalars['String'];" in out
    assert "status: Maybe<Status>;" in out
    assert "tags: Maybe<Array<Scalars['String']>>;" in out


def test_schema_types_are_emitted(snapshot):
    out = emit(snapshot, [])
    assert "export enum Status {\n  DRAFT = 'DRAFT',\n  PUBLISHED = 'PUBLISHED',\n}" in out
    assert "export type PostFilter = {\n  status: Status;\n  tag: Maybe<Scalars['String']>;\n};" in out
    assert "export type SearchResult = Post | Author;" in out
    assert "  __typename?: 'Post';" in out
    assert "  /** Post title */" in out
    assert "__Schema" not in out


def test_abstract_selections_and_fragments(snapshot):
    doc = _doc(
        """
        query Search($term: String!) {
          search(term: $term) {
            __typename
            ... on Post { title }
            ... on Author { name }
          }
        }
        fragment PostBits on Post { id title }
        query WithFragment { posts { ...PostBits } }
        """
    )
    out = emit(snapshot, [doc])
    assert "export type SearchQueryVariables = {\n  term: Scalars['String'];\n};" in out
    assert "__typename: 'Post' | 'Author';" in out
    assert "export type PostBitsFragment = {" in out
    assert "} & PostBitsFragment>;" in out


def test_anonymous_operations_are_skipped_and_duplicates_ignored(snapshot, caplog):
    a = _doc("query { posts { id } }\nquery Dup { posts { id } }", "a.tsx")
    b = _doc("query Dup { posts { title } }", "b.tsx")
    out = emit(snapshot, [a, b])
    assert out.count("export type DupQuery =") == 1
    assert "Duplicate definition DupQuery" in caplog.text


def test_unknown_field_raises_generation_error_with_path(snapshot):
    doc = _doc("query Bad { posts { nope } }", "bad.tsx")
    with pytest.raises(GenerationError) as info:
        emit(snapshot, [doc])
    assert info.value.path == Path("bad.tsx")


def test_corrupt_snapshot_raises_generation_error():
    broken = SchemaSnapshot(content="{not json", digest="x")
    with pytest.raises(GenerationError):
        emit(broken, [])


def test_config_optionals_and_maybe(snapshot):
    doc = _doc("query Posts { posts { status } }")
    cfg = EmitterConfig(avoid_optionals=False, maybe_value="T | null")
    out = emit(snapshot, [doc], cfg)
    assert "export type Maybe<T> = T | null;" in out
    assert "status?: Maybe<Status>;" in out
