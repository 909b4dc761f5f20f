"""Emit TypeScript declarations for a schema snapshot and its documents.

The emitter is a pure function of (snapshot, documents, config). It mirrors
the output shape of the ``typescript`` + ``typescript-operations`` codegen
plugins closely enough for call sites to reference ``<Name>Query`` types.
"""

from __future__ import annotations

import re
from dataclasses import dataclass, field
from typing import TYPE_CHECKING, Dict, Iterable, List, Optional, Set

from graphql import (
    FieldNode,
    FragmentDefinitionNode,
    FragmentSpreadNode,
    GraphQLNamedType,
    GraphQLSchema,
    InlineFragmentNode,
    OperationDefinitionNode,
    SelectionSetNode,
    get_named_type,
    is_abstract_type,
    is_enum_type,
    is_input_object_type,
    is_interface_type,
    is_introspection_type,
    is_list_type,
    is_non_null_type,
    is_object_type,
    is_scalar_type,
    is_specified_scalar_type,
    is_union_type,
    type_from_ast,
)

from typegen.logger import GenerationError, get_logger
from typegen.schema import load_schema

if TYPE_CHECKING:
    from typegen.loader import QueryDocument
    from typegen.watch_core.snapshot import SchemaSnapshot

logger = get_logger(__name__)

INDENT = "  "

BUILTIN_SCALARS = {
    "ID": "string",
    "String": "string",
    "Boolean": "boolean",
    "Int": "number",
    "Float": "number",
}


@dataclass(frozen=True)
class EmitterConfig:
    """Knobs for the generated output.

    ``maybe_value`` is the body of ``Maybe<T>``; the default ``"T"`` makes
    nullable fields plain ``T``. With ``avoid_optionals`` nullable fields are
    still required keys.
    """

    avoid_optionals: bool = True
    maybe_value: str = "T"
    enum_values: str = "keep"
    scalars: Dict[str, str] = field(default_factory=lambda: {"Date": "any", "JSON": "any"})


def _pascal(name: str) -> str:
    parts = re.split(r"[_\W]+", name)
    return "".join(p[:1].upper() + p[1:].lower() for p in parts if p)


class _Emitter:
    def __init__(self, schema: GraphQLSchema, config: EmitterConfig):
        self.schema = schema
        self.config = config

    # -- schema types ------------------------------------------------------

    def header(self) -> List[str]:
        lines = [
            "/* eslint-disable */",
            "/* Generated by typegen. Do not edit. */",
            f"export type Maybe<T> = {self.config.maybe_value};",
            "",
            "/** All built-in and custom scalars, mapped to their actual values */",
            "export type Scalars = {",
        ]
        for name, ts in BUILTIN_SCALARS.items():
            lines.append(f"{INDENT}{name}: {ts};")
        for name in sorted(self.schema.type_map):
            t = self.schema.type_map[name]
            if is_scalar_type(t) and not is_specified_scalar_type(t):
                lines.append(f"{INDENT}{name}: {self.config.scalars.get(name, 'any')};")
        lines.append("};")
        return lines

    def _key(self, name: str, nullable: bool) -> str:
        if nullable and not self.config.avoid_optionals:
            return f"{name}?"
        return name

    def _schema_ref(self, gql_type) -> str:
        if is_non_null_type(gql_type):
            return self._schema_ref_inner(gql_type.of_type)
        return f"Maybe<{self._schema_ref_inner(gql_type)}>"

    def _schema_ref_inner(self, gql_type) -> str:
        if is_list_type(gql_type):
            return f"Array<{self._schema_ref(gql_type.of_type)}>"
        if is_scalar_type(gql_type):
            return f"Scalars['{gql_type.name}']"
        return gql_type.name

    def _enum_member(self, name: str) -> str:
        if self.config.enum_values == "keep":
            return name
        return _pascal(name)

    def schema_types(self) -> List[str]:
        out: List[str] = []
        for name in sorted(self.schema.type_map):
            t = self.schema.type_map[name]
            if is_introspection_type(t) or is_scalar_type(t):
                continue
            out.append("")
            if t.description:
                out.append(f"/** {t.description.strip()} */")
            if is_enum_type(t):
                out.append(f"export enum {name} {{")
                for value_name in t.values:
                    out.append(f"{INDENT}{self._enum_member(value_name)} = '{value_name}',")
                out.append("}")
            elif is_union_type(t):
                members = " | ".join(m.name for m in t.types) or "never"
                out.append(f"export type {name} = {members};")
            elif is_input_object_type(t):
                out.append(f"export type {name} = {{")
                for fname, fdef in t.fields.items():
                    nullable = not is_non_null_type(fdef.type)
                    out.append(f"{INDENT}{self._key(fname, nullable)}: {self._schema_ref(fdef.type)};")
                out.append("};")
            elif is_object_type(t) or is_interface_type(t):
                out.append(f"export type {name} = {{")
                if is_object_type(t):
                    out.append(f"{INDENT}__typename?: '{name}';")
                for fname, fdef in t.fields.items():
                    if fdef.description:
                        out.append(f"{INDENT}/** {fdef.description.strip()} */")
                    nullable = not is_non_null_type(fdef.type)
                    out.append(f"{INDENT}{self._key(fname, nullable)}: {self._schema_ref(fdef.type)};")
                out.append("};")
        return out

    # -- operations --------------------------------------------------------

    def _selection(self, parent: GraphQLNamedType, selection_set: SelectionSetNode, depth: int) -> str:
        pad = INDENT * (depth + 1)
        fields: List[str] = []
        spreads: List[str] = []
        inline: List[str] = []
        for sel in selection_set.selections:
            if isinstance(sel, FieldNode):
                name = sel.name.value
                key = sel.alias.value if sel.alias else name
                if name == "__typename":
                    if is_object_type(parent):
                        fields.append(f"{pad}{key}: '{parent.name}';")
                    else:
                        members = self.schema.get_possible_types(parent)
                        fields.append(f"{pad}{key}: {' | '.join(repr(m.name) for m in members) or 'string'};")
                    continue
                parent_fields = getattr(parent, "fields", None) or {}
                if name not in parent_fields:
                    raise GenerationError(f"Cannot query field '{name}' on type '{parent.name}'")
                ftype = parent_fields[name].type
                nullable = not is_non_null_type(ftype)
                fields.append(f"{pad}{self._key(key, nullable)}: {self._output(ftype, sel.selection_set, depth + 1)};")
            elif isinstance(sel, InlineFragmentNode):
                cond = parent
                if sel.type_condition is not None:
                    cond = self.schema.get_type(sel.type_condition.name.value)
                    if cond is None:
                        raise GenerationError(f"Unknown type '{sel.type_condition.name.value}'")
                inline.append(self._selection(cond, sel.selection_set, depth))
            elif isinstance(sel, FragmentSpreadNode):
                spreads.append(f"{sel.name.value}Fragment")
        body = "{\n" + "\n".join(fields) + ("\n" if fields else "") + INDENT * depth + "}"
        parts = [body] + spreads
        if inline:
            joiner = " | " if is_abstract_type(parent) else " & "
            parts.append("(" + joiner.join(inline) + ")")
        return " & ".join(parts)

    def _output(self, gql_type, selection_set: Optional[SelectionSetNode], depth: int) -> str:
        if is_non_null_type(gql_type):
            return self._output_inner(gql_type.of_type, selection_set, depth)
        return f"Maybe<{self._output_inner(gql_type, selection_set, depth)}>"

    def _output_inner(self, gql_type, selection_set: Optional[SelectionSetNode], depth: int) -> str:
        if is_list_type(gql_type):
            return f"Array<{self._output(gql_type.of_type, selection_set, depth)}>"
        if is_scalar_type(gql_type):
            return f"Scalars['{gql_type.name}']"
        if is_enum_type(gql_type):
            return gql_type.name
        if selection_set is None:
            raise GenerationError(f"Field of type '{gql_type.name}' must have a selection of subfields")
        return self._selection(get_named_type(gql_type), selection_set, depth)

    def operation(self, op: OperationDefinitionNode) -> List[str]:
        kind = op.operation.value
        root = self.schema.get_root_type(op.operation)
        if root is None:
            raise GenerationError(f"Schema does not support {kind} operations")
        type_name = f"{op.name.value}{kind.capitalize()}"
        lines = ["", f"export type {type_name}Variables = {{"]
        for var in op.variable_definitions or ():
            var_type = type_from_ast(self.schema, var.type)
            if var_type is None:
                raise GenerationError(f"Unknown type for variable ${var.variable.name.value} in {type_name}")
            nullable = not is_non_null_type(var_type)
            lines.append(f"{INDENT}{self._key(var.variable.name.value, nullable)}: {self._schema_ref(var_type)};")
        lines.append("};")
        lines.append("")
        lines.append(f"export type {type_name} = {self._selection(root, op.selection_set, 0)};")
        return lines

    def fragment(self, frag: FragmentDefinitionNode) -> List[str]:
        cond = self.schema.get_type(frag.type_condition.name.value)
        if cond is None:
            raise GenerationError(f"Unknown type '{frag.type_condition.name.value}' in fragment {frag.name.value}")
        return ["", f"export type {frag.name.value}Fragment = {self._selection(cond, frag.selection_set, 0)};"]


def emit(
    snapshot: "SchemaSnapshot",
    documents: Iterable["QueryDocument"],
    config: Optional[EmitterConfig] = None,
) -> str:
    """Render type declarations for ``snapshot`` and every named definition.

    Anonymous operations are skipped. When two documents define the same
    name the first one wins and the duplicate is logged.
    """
    cfg = config or EmitterConfig()
    try:
        schema = load_schema(snapshot.content)
    except Exception as exc:
        raise GenerationError(f"cannot build schema from snapshot: {exc}") from exc

    em = _Emitter(schema, cfg)
    lines = em.header()
    lines.extend(em.schema_types())

    seen: Set[str] = set()
    for doc in documents:
        for definition in doc.document.definitions:
            if isinstance(definition, FragmentDefinitionNode):
                key = f"{definition.name.value}Fragment"
                render = em.fragment
            elif isinstance(definition, OperationDefinitionNode) and definition.name is not None:
                key = f"{definition.name.value}{definition.operation.value.capitalize()}"
                render = em.operation
            else:
                continue
            if key in seen:
                logger.warning("Duplicate definition %s in %s ignored", key, doc.file_path)
                continue
            seen.add(key)
            try:
                lines.extend(render(definition))
            except GenerationError as exc:
                exc.path = doc.file_path
                raise
    return "\n".join(lines) + "\n"


__all__ = ["EmitterConfig", "emit"]
