"""Zod schema generation for Directus collections.

Each collection yields four exported schemas::

    export const DrxPostSchema = z.object({ ... });
    export const DrxPostCreateSchema = DrxPostSchema.omit({ id: true });
    export const DrxPostUpdateSchema = DrxPostCreateSchema.partial();
    export const DrxPostGetSchema = DrxPostSchema.required({ id: true });

Create drops the fields Directus manages itself (auto-increment keys,
timestamps, user stamps, read-only fields); Get guarantees their presence.
"""

from __future__ import annotations

from typing import Iterable

from zodirectus.models import CollectionWithFields, GeneratedSchema

from . import naming
from .field_mapping import FieldMapper, FieldMapping, GenerationContext

_FIELD_INDENT = "    "


class ZodGenerator:
    """Generates Zod schema source text for collections."""

    def __init__(self, context: GenerationContext) -> None:
        self.context = context
        self.mapper = FieldMapper(context)

    def generate_schema(
        self,
        collection: CollectionWithFields,
        lazy_targets: Iterable[str] = (),
    ) -> str:
        """Generate the schema block for *collection*.

        Args:
            collection: The collection and its fields.
            lazy_targets: Collections referenced through ``z.lazy`` because
                they form a dependency cycle with *collection*.
        """
        mappings = self.mapper.map_collection(collection, lazy_targets)
        return self.render(collection.collection, mappings)

    def render(self, collection_name: str, mappings: list[FieldMapping]) -> str:
        """Render the schema block from already-mapped fields."""
        entity = self.context.entity(collection_name)
        base = naming.schema_name(entity)
        create = naming.schema_name(entity, "Create")
        update = naming.schema_name(entity, "Update")
        get = naming.schema_name(entity, "Get")

        managed_keys = [m.key for m in mappings if m.managed]

        blocks = [
            _object_block(base, mappings),
            f"export const {create} = {_with_keys(base, 'omit', managed_keys)};",
            f"export const {update} = {create}.partial();",
            f"export const {get} = {_with_keys(base, 'required', managed_keys)};",
        ]
        return "\n\n".join(blocks)

    def generate_schema_file(self, schemas: list[GeneratedSchema]) -> str:
        """Concatenate schema blocks into one self-contained module."""
        definitions = "\n\n".join(s.schema_text for s in schemas if s.schema_text)
        return "import { z } from 'zod';\n\n" + definitions + "\n"


def _object_block(name: str, mappings: list[FieldMapping]) -> str:
    if not mappings:
        return f"export const {name} = z.object({{}});"
    lines = [f"{_FIELD_INDENT}{m.key}: {m.zod_expression}," for m in mappings]
    body = "\n".join(lines)
    return f"export const {name} = z.object({{\n{body}\n}});"


def _with_keys(base: str, method: str, keys: list[str]) -> str:
    """``base.method({ a: true, b: true })``, or *base* itself without keys."""
    if not keys:
        return base
    members = ", ".join(f"{key}: true" for key in keys)
    return f"{base}.{method}({{ {members} }})"
