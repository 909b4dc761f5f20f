"""Inject generated query type names into untyped call sites.

Two shapes are recognised::

    useStaticQuery(graphql`query SiteTitle { ... }`)
    <StaticQuery query={graphql`query SiteTitle { ... }`} render={...} />

and rewritten to ``useStaticQuery<SiteTitleQuery>(...)`` and
``<StaticQuery<SiteTitleQuery> ...``. Only the call or tag head is replaced;
the template body and the rest of the file are copied byte for byte.

The scanner understands nesting of ``()[]{}``, string and template literals
and comments, which is enough for the narrow call shapes above. It is not a
JavaScript parser.
"""

from __future__ import annotations

import re
from dataclasses import dataclass
from pathlib import Path
from typing import List, Optional, Tuple

from typegen.loader import GRAPHQL_TAG_RE, find_template_end
from typegen.logger import AnnotationError

from .config import LOGGER as logger

_IDENT_CHARS = re.compile(r"[\w$]")
_ATTR_NAME_RE = re.compile(r"[A-Za-z_$][\w$.:-]*")
_QUERY_HEAD_RE = re.compile(r"(?:\s|#[^\n]*)*query\b\s*([_A-Za-z][_0-9A-Za-z]*)?\s*[({@]")
_JSX_OPEN_RE = re.compile(r"<(?:[A-Za-z_$][\w$.:-]*(?=[\s/>{])|(?=>))")
_OPENERS = {"(": ")", "[": "]", "{": "}"}

TemplateSpan = Tuple[int, int]


@dataclass(frozen=True)
class AnnotationMatch:
    """One call site: the head span to rewrite and the query it embeds."""

    head_start: int
    head_end: int
    head: str
    query_name: str
    type_argument: Optional[str]

    @property
    def type_name(self) -> str:
        return f"{self.query_name}Query"

    @property
    def already_annotated(self) -> bool:
        return self.type_argument == self.type_name

    @property
    def desired_head(self) -> str:
        return f"{self.head}<{self.type_name}>"


def _skip_quoted(text: str, i: int) -> int:
    """Return the index just past the string literal starting at ``i``."""
    q = text[i]
    if q == "`":
        end = find_template_end(text, i + 1)
        return len(text) if end < 0 else end + 1
    n = len(text)
    j = i + 1
    while j < n:
        c = text[j]
        if c == "\\":
            j += 2
            continue
        if c == q or c == "\n":
            return j + 1
        j += 1
    return n


def _skip_comment(text: str, i: int) -> int:
    """Return the index past a comment at ``i``, or ``i`` if there is none."""
    if text.startswith("//", i):
        nl = text.find("\n", i)
        return len(text) if nl < 0 else nl
    if text.startswith("/*", i):
        end = text.find("*/", i + 2)
        return len(text) if end < 0 else end + 2
    return i


def _graphql_tag_at(text: str, i: int) -> Optional[int]:
    """If a graphql tagged template starts at ``i``, return its body start."""
    if i > 0 and _IDENT_CHARS.match(text[i - 1]):
        return None
    m = GRAPHQL_TAG_RE.match(text, i)
    return m.end() if m else None


def _scan_balanced(text: str, start: int, closer: str) -> Tuple[int, List[TemplateSpan]]:
    """Scan to the ``closer`` matching an opener just before ``start``.

    Returns the closer index (-1 if unbalanced) and the spans of graphql
    template bodies met on the way, at any nesting depth.
    """
    stack = [closer]
    templates: List[TemplateSpan] = []
    i = start
    n = len(text)
    while i < n:
        c = text[i]
        if c == "g":
            body = _graphql_tag_at(text, i)
            if body is not None:
                end = find_template_end(text, body)
                if end < 0:
                    return -1, templates
                templates.append((body, end))
                i = end + 1
                continue
        if c == "<" and _JSX_OPEN_RE.match(text, i) and _jsx_may_start(text, i):
            end, inner = _skip_jsx(text, i)
            if end >= 0:
                templates.extend(inner)
                i = end
                continue
        if c in "'\"`":
            i = _skip_quoted(text, i)
            continue
        if c == "/":
            j = _skip_comment(text, i)
            if j != i:
                i = j
                continue
        if c in _OPENERS:
            stack.append(_OPENERS[c])
        elif c == stack[-1]:
            stack.pop()
            if not stack:
                return i, templates
        i += 1
    return -1, templates


def _jsx_may_start(text: str, i: int) -> bool:
    """True when a ``<`` at ``i`` sits where an expression can begin."""
    j = i - 1
    while j >= 0 and text[j].isspace():
        j -= 1
    if j < 0 or text[j] in "(,=?:{[&|>!":
        return True
    return text.endswith("return", 0, j + 1) and (j < 6 or not _IDENT_CHARS.match(text[j - 6]))


def _scan_attributes(text: str, i: int) -> Tuple[int, bool, List[Tuple[str, List[TemplateSpan]]]]:
    """Walk JSX attributes from ``i`` to the end of the opening tag.

    Returns the index after ``>`` or ``/>`` (-1 if the tag never closes),
    whether the tag is self closing, and the graphql template spans found
    in each ``name={...}`` attribute seen so far.
    """
    attrs: List[Tuple[str, List[TemplateSpan]]] = []
    n = len(text)
    while i < n:
        c = text[i]
        if c.isspace():
            i += 1
        elif text.startswith("/>", i):
            return i + 2, True, attrs
        elif c == ">":
            return i + 1, False, attrs
        elif c == "{":
            close, _ = _scan_balanced(text, i + 1, "}")
            if close < 0:
                return -1, False, attrs
            i = close + 1
        elif c in "'\"":
            i = _skip_quoted(text, i)
        else:
            attr = _ATTR_NAME_RE.match(text, i)
            if attr is None:
                i += 1
                continue
            i = attr.end()
            while i < n and text[i].isspace():
                i += 1
            if i >= n or text[i] != "=":
                continue
            i += 1
            while i < n and text[i].isspace():
                i += 1
            if i < n and text[i] == "{":
                close, inner = _scan_balanced(text, i + 1, "}")
                attrs.append((attr.group(), inner))
                if close < 0:
                    return -1, False, attrs
                i = close + 1
            elif i < n and text[i] in "'\"":
                i = _skip_quoted(text, i)
    return -1, False, attrs


def _skip_jsx(text: str, i: int) -> Tuple[int, List[TemplateSpan]]:
    """Skip the JSX element or fragment opening at ``i``.

    Child text is not JavaScript: quotes and parentheses in it are plain
    characters. Returns the index after the element (-1 if it never closes)
    and the graphql template spans inside it.
    """
    templates: List[TemplateSpan] = []
    n = len(text)
    depth = 0
    while i < n:
        c = text[i]
        if c == "{":
            close, inner = _scan_balanced(text, i + 1, "}")
            templates.extend(inner)
            if close < 0:
                return -1, templates
            i = close + 1
        elif c == "<" and text.startswith("</", i):
            end = text.find(">", i)
            if end < 0:
                return -1, templates
            i = end + 1
            depth -= 1
            if depth <= 0:
                return i, templates
        elif c == "<":
            tag = _JSX_OPEN_RE.match(text, i)
            if tag is None:
                return -1, templates
            i, self_closing, attrs = _scan_attributes(text, tag.end())
            for _, spans in attrs:
                templates.extend(spans)
            if i < 0:
                return -1, templates
            if not self_closing:
                depth += 1
            elif depth == 0:
                return i, templates
        else:
            i += 1
    return -1, templates


def _type_argument(text: str, i: int) -> Tuple[Optional[str], int]:
    """Parse ``<...>`` at ``i``; returns (argument, index after ``>``)."""
    if i >= len(text) or text[i] != "<":
        return None, i
    depth = 0
    j = i
    while j < len(text):
        c = text[j]
        if c == "<":
            depth += 1
        elif c == ">":
            depth -= 1
            if depth == 0:
                return text[i + 1 : j], j + 1
        elif c in "(){};\n":
            break
        j += 1
    return None, i


def _query_name(text: str, templates: List[TemplateSpan]) -> Optional[str]:
    """Name of the first query definition found in ``templates``.

    An anonymous query yields None so the call site is left alone.
    """
    for body_start, body_end in templates:
        m = _QUERY_HEAD_RE.match(text, body_start, body_end)
        if m is None:
            continue
        return m.group(1)
    return None


class SourceAnnotator:
    def __init__(self, hook_name: str = "useStaticQuery", component_name: str = "StaticQuery"):
        self.hook_name = hook_name
        self.component_name = component_name
        self._hook_re = re.compile(r"(?<![\w$])" + re.escape(hook_name) + r"(?![\w$])")
        self._component_re = re.compile(r"<" + re.escape(component_name) + r"(?![\w$.:-])")

    def _scan_hooks(self, text: str) -> List[AnnotationMatch]:
        found: List[AnnotationMatch] = []
        pos = 0
        while True:
            m = self._hook_re.search(text, pos)
            if not m:
                return found
            pos = m.end()
            type_arg, i = _type_argument(text, m.end())
            while i < len(text) and text[i] in " \t\r\n":
                i += 1
            if i >= len(text) or text[i] != "(":
                continue
            close, templates = _scan_balanced(text, i + 1, ")")
            name = _query_name(text, templates)
            if close >= 0:
                pos = close + 1
            if name is None:
                continue
            end = m.end() if type_arg is None else m.end() + len(type_arg) + 2
            found.append(AnnotationMatch(m.start(), end, self.hook_name, name, type_arg))

    def _scan_components(self, text: str) -> List[AnnotationMatch]:
        found: List[AnnotationMatch] = []
        pos = 0
        while True:
            m = self._component_re.search(text, pos)
            if not m:
                return found
            type_arg, head_end = _type_argument(text, m.end())
            tag_end, _, attrs = _scan_attributes(text, head_end)
            # an unterminated tag must not hide the tags after it
            pos = head_end if tag_end < 0 else tag_end
            templates = [span for attr_name, spans in attrs if attr_name == "query" for span in spans]
            name = _query_name(text, templates)
            if name is None:
                continue
            head = f"<{self.component_name}"
            found.append(AnnotationMatch(m.start(), head_end, head, name, type_arg))

    def scan(self, text: str) -> List[AnnotationMatch]:
        """All call sites in document order."""
        matches = self._scan_hooks(text) + self._scan_components(text)
        return sorted(matches, key=lambda a: a.head_start)

    def annotate(self, text: str) -> str:
        """Return ``text`` with every matched head carrying its query type.

        Replacements are computed against the original offsets and applied
        in a single pass.
        """
        out: List[str] = []
        pos = 0
        for match in self.scan(text):
            if match.already_annotated or match.head_start < pos:
                continue
            out.append(text[pos : match.head_start])
            out.append(match.desired_head)
            pos = match.head_end
        if not out:
            return text
        out.append(text[pos:])
        return "".join(out)

    def annotate_file(self, path: Path | str) -> bool:
        """Rewrite ``path`` in place if annotation changes it.

        Returns True when the file was written.
        """
        p = Path(path)
        try:
            code = p.read_text(encoding="utf-8")
        except (OSError, UnicodeDecodeError) as exc:
            raise AnnotationError(f"cannot read {p}: {exc}", path=p) from exc
        fixed = self.annotate(code)
        if fixed == code:
            return False
        try:
            p.write_text(fixed, encoding="utf-8")
        except OSError as exc:
            raise AnnotationError(f"cannot write {p}: {exc}", path=p) from exc
        logger.info("Annotated query types in %s", p)
        return True


__all__ = ["AnnotationMatch", "SourceAnnotator"]
