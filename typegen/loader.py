"""Load graphql documents embedded in JS/TS sources.

Sources embed operations as ``graphql`` tagged templates::

    const data = useStaticQuery(graphql`
      query SiteTitle { site { siteMetadata { title } } }
    `)

Every template in a file is extracted and the concatenation is parsed with
graphql-core into a single ``DocumentNode``.
"""

from __future__ import annotations

import re
from dataclasses import dataclass
from pathlib import Path
from typing import Iterable, List, Optional, Tuple

from graphql import DocumentNode, GraphQLError, OperationDefinitionNode, Source, parse

from typegen.logger import DocumentParseError, get_logger

logger = get_logger(__name__)

GRAPHQL_TAG_RE = re.compile(r"\bgraphql\s*`")


@dataclass(frozen=True)
class QueryDocument:
    file_path: Path
    source: str
    document: DocumentNode

    @property
    def operation_names(self) -> List[str]:
        return [
            d.name.value
            for d in self.document.definitions
            if isinstance(d, OperationDefinitionNode) and d.name is not None
        ]


def find_template_end(text: str, start: int) -> int:
    """Return the index of the backtick closing a template body.

    ``start`` is the first character after the opening backtick. Escapes and
    ``${...}`` substitutions (which may themselves contain backticks) are
    skipped. Returns -1 for an unterminated template.
    """
    i = start
    n = len(text)
    while i < n:
        ch = text[i]
        if ch == "\\":
            i += 2
            continue
        if ch == "`":
            return i
        if ch == "$" and i + 1 < n and text[i + 1] == "{":
            depth = 1
            i += 2
            while i < n and depth:
                c = text[i]
                if c == "{":
                    depth += 1
                elif c == "}":
                    depth -= 1
                elif c == "`":
                    inner_end = find_template_end(text, i + 1)
                    if inner_end < 0:
                        return -1
                    i = inner_end
                i += 1
            continue
        i += 1
    return -1


def _strip_substitutions(body: str) -> str:
    out = []
    i = 0
    n = len(body)
    while i < n:
        if body[i] == "$" and i + 1 < n and body[i + 1] == "{":
            depth = 1
            i += 2
            while i < n and depth:
                if body[i] == "{":
                    depth += 1
                elif body[i] == "}":
                    depth -= 1
                i += 1
            continue
        out.append(body[i])
        i += 1
    return "".join(out)


def iter_templates(text: str) -> Iterable[Tuple[int, int]]:
    """Yield ``(body_start, body_end)`` spans of every graphql template."""
    pos = 0
    while True:
        m = GRAPHQL_TAG_RE.search(text, pos)
        if not m:
            return
        body_start = m.end()
        end = find_template_end(text, body_start)
        if end < 0:
            return
        yield body_start, end
        pos = end + 1


def extract_templates(text: str) -> List[str]:
    return [_strip_substitutions(text[s:e]) for s, e in iter_templates(text)]


def load_document(path: Path | str) -> Optional[QueryDocument]:
    """Parse the graphql documents of one file.

    Returns None when the file embeds no graphql template.
    """
    p = Path(path)
    try:
        text = p.read_text(encoding="utf-8")
    except (OSError, UnicodeDecodeError) as exc:
        raise DocumentParseError(f"cannot read {p}: {exc}", path=p) from exc
    templates = extract_templates(text)
    if not templates:
        return None
    body = "\n".join(templates)
    try:
        document = parse(Source(body, str(p)))
    except GraphQLError as exc:
        raise DocumentParseError(f"invalid graphql in {p}: {exc.message}", path=p) from exc
    return QueryDocument(file_path=p, source=body, document=document)


def load_documents(paths: Iterable[Path | str]) -> List[QueryDocument]:
    """Bulk form of :func:`load_document`; failing files are logged and skipped."""
    docs: List[QueryDocument] = []
    for path in paths:
        try:
            doc = load_document(path)
        except DocumentParseError as exc:
            logger.warning("Skipping %s: %s", path, exc, extra=exc.context())
            continue
        if doc is not None:
            docs.append(doc)
    return docs


__all__ = [
    "QueryDocument",
    "GRAPHQL_TAG_RE",
    "find_template_end",
    "iter_templates",
    "extract_templates",
    "load_document",
    "load_documents",
]
