"""TypeScript type generation for Directus collections.

Interfaces are written out explicitly rather than inferred from the Zod
schemas: recursive schemas need a declared type to annotate their
``z.lazy`` references with, and types stay available when schema output is
switched off.
"""

from __future__ import annotations

from zodirectus.models import CollectionWithFields, GeneratedSchema

from . import naming
from .field_mapping import FieldMapper, FieldMapping, GenerationContext

_MEMBER_INDENT = "  "


class TypeGenerator:
    """Generates TypeScript declarations for collections."""

    def __init__(self, context: GenerationContext) -> None:
        self.context = context
        self.mapper = FieldMapper(context)

    def generate_type(self, collection: CollectionWithFields) -> str:
        """Generate the interface and its Create/Update/Get variants."""
        mappings = self.mapper.map_collection(collection)
        return self.render(collection.collection, mappings)

    def render(self, collection_name: str, mappings: list[FieldMapping]) -> str:
        entity = self.context.entity(collection_name)
        base = naming.type_name(entity)
        create = naming.type_name(entity, "Create")
        update = naming.type_name(entity, "Update")
        get = naming.type_name(entity, "Get")

        managed = " | ".join(naming.ts_string(m.name) for m in mappings if m.managed)

        if mappings:
            members = "\n".join(f"{_MEMBER_INDENT}{m.ts_property};" for m in mappings)
            interface = f"export interface {base} {{\n{members}\n}}"
        else:
            interface = f"export interface {base} {{}}"

        if managed:
            create_decl = f"export type {create} = Omit<{base}, {managed}>;"
            get_decl = f"export type {get} = {base} & Required<Pick<{base}, {managed}>>;"
        else:
            create_decl = f"export type {create} = {base};"
            get_decl = f"export type {get} = {base};"

        return "\n\n".join([
            interface,
            create_decl,
            f"export type {update} = Partial<{create}>;",
            get_decl,
        ])

    def generate_type_file(self, types: list[GeneratedSchema]) -> str:
        """Concatenate type blocks into one module."""
        return "\n\n".join(t.type_text for t in types if t.type_text) + "\n"

    def generate_union_type(self, collections: list[str]) -> str:
        """``export type DrsCollectionName = 'posts' | 'authors';``"""
        if not collections:
            return "export type DrsCollectionName = never;"
        union = " | ".join(naming.ts_string(c) for c in collections)
        return f"export type DrsCollectionName = {union};"

    def generate_index_type(self, collections: list[str]) -> str:
        """Map each collection name to its generated interface."""
        members = "\n".join(
            f"{_MEMBER_INDENT}{naming.property_key(c)}: {naming.type_name(self.context.entity(c))};"
            for c in collections
        )
        if not members:
            return "export interface DrsCollections {}"
        return f"export interface DrsCollections {{\n{members}\n}}"
