"""Pydantic v2 models for Directus metadata and generation results.

The metadata models mirror the payloads of ``/collections``, ``/fields``
and ``/relations``. Directus adds keys between releases, so every model
ignores unknown keys and only declares what the generators read.
"""

from __future__ import annotations

from typing import Any, Optional

from pydantic import BaseModel, ConfigDict, Field


_LENIENT = ConfigDict(extra="ignore", populate_by_name=True)


# ---------------------------------------------------------------------------
# Collections
# ---------------------------------------------------------------------------

class CollectionMeta(BaseModel):
    """``meta`` block of a collection."""
    model_config = _LENIENT

    collection: Optional[str] = None
    hidden: bool = False
    singleton: bool = False
    icon: Optional[str] = None
    note: Optional[str] = None
    group: Optional[str] = None


class DirectusCollection(BaseModel):
    """A collection as returned by ``GET /collections``."""
    model_config = _LENIENT

    collection: str = Field(..., description="Collection name")
    meta: Optional[CollectionMeta] = None
    schema_: Optional[dict[str, Any]] = Field(default=None, alias="schema")

    @property
    def is_folder(self) -> bool:
        """Folders group collections in the admin app but have no table."""
        return self.schema_ is None

    @property
    def is_system(self) -> bool:
        return self.collection.startswith("directus_")


# ---------------------------------------------------------------------------
# Fields
# ---------------------------------------------------------------------------

class FieldSchema(BaseModel):
    """Database-level ``schema`` block of a field (``null`` for aliases)."""
    model_config = _LENIENT

    name: Optional[str] = None
    table: Optional[str] = None
    data_type: Optional[str] = None
    default_value: Optional[Any] = None
    max_length: Optional[int] = None
    is_nullable: bool = True
    is_unique: bool = False
    is_primary_key: bool = False
    has_auto_increment: bool = False
    foreign_key_table: Optional[str] = None
    foreign_key_column: Optional[str] = None


class FieldMeta(BaseModel):
    """Admin-app ``meta`` block of a field (``null`` for unmanaged columns)."""
    model_config = _LENIENT

    id: Optional[int] = None
    collection: Optional[str] = None
    field: Optional[str] = None
    interface: Optional[str] = None
    special: Optional[list[str]] = None
    options: Optional[dict[str, Any]] = None
    hidden: bool = False
    readonly: bool = False
    required: Optional[bool] = False
    note: Optional[str] = None


class DirectusField(BaseModel):
    """A field as returned by ``GET /fields/{collection}``."""
    model_config = _LENIENT

    collection: str = ""
    field: str = Field(..., description="Field name")
    type: str = Field(default="unknown", description="Directus abstract type, e.g. 'string'")
    schema_: Optional[FieldSchema] = Field(default=None, alias="schema")
    meta: Optional[FieldMeta] = None

    @property
    def special(self) -> list[str]:
        if self.meta is None or not self.meta.special:
            return []
        return list(self.meta.special)

    @property
    def interface(self) -> str | None:
        return self.meta.interface if self.meta else None

    @property
    def options(self) -> dict[str, Any]:
        if self.meta is None or not self.meta.options:
            return {}
        return self.meta.options

    @property
    def is_hidden(self) -> bool:
        return bool(self.meta and self.meta.hidden)

    @property
    def is_readonly(self) -> bool:
        return bool(self.meta and self.meta.readonly)

    @property
    def is_required(self) -> bool:
        return bool(self.meta and self.meta.required)

    @property
    def is_nullable(self) -> bool:
        return self.schema_.is_nullable if self.schema_ else True

    @property
    def is_primary_key(self) -> bool:
        return bool(self.schema_ and self.schema_.is_primary_key)

    @property
    def has_auto_increment(self) -> bool:
        return bool(self.schema_ and self.schema_.has_auto_increment)

    @property
    def max_length(self) -> int | None:
        return self.schema_.max_length if self.schema_ else None

    @property
    def data_type(self) -> str:
        """Database type when known, otherwise the Directus abstract type."""
        if self.schema_ and self.schema_.data_type:
            return self.schema_.data_type
        return self.type

    @property
    def foreign_key_table(self) -> str | None:
        return self.schema_.foreign_key_table if self.schema_ else None

    @property
    def choices(self) -> list[Any]:
        """Values of ``options.choices`` (entries are ``{text, value}`` dicts)."""
        raw = self.options.get("choices") or []
        values: list[Any] = []
        for choice in raw:
            if isinstance(choice, dict):
                if "value" in choice:
                    values.append(choice["value"])
            else:
                values.append(choice)
        return values


# ---------------------------------------------------------------------------
# Relations
# ---------------------------------------------------------------------------

class RelationMeta(BaseModel):
    """``meta`` block of a relation."""
    model_config = _LENIENT

    many_collection: Optional[str] = None
    many_field: Optional[str] = None
    one_collection: Optional[str] = None
    one_field: Optional[str] = None
    one_collection_field: Optional[str] = None
    one_allowed_collections: Optional[list[str]] = None
    junction_field: Optional[str] = None
    sort_field: Optional[str] = None


class DirectusRelation(BaseModel):
    """A relation as returned by ``GET /relations``.

    ``collection``/``field`` is always the "many" side holding the foreign
    key; ``related_collection`` is ``None`` for many-to-any relations.
    """
    model_config = _LENIENT

    collection: str
    field: str
    related_collection: Optional[str] = None
    meta: Optional[RelationMeta] = None

    @property
    def one_field(self) -> str | None:
        return self.meta.one_field if self.meta else None

    @property
    def junction_field(self) -> str | None:
        return self.meta.junction_field if self.meta else None


class CollectionWithFields(BaseModel):
    """A collection together with all of its fields."""
    model_config = _LENIENT

    collection: str
    meta: Optional[CollectionMeta] = None
    fields: list[DirectusField] = Field(default_factory=list)

    @property
    def primary_key(self) -> DirectusField | None:
        for field in self.fields:
            if field.is_primary_key:
                return field
        return None


# ---------------------------------------------------------------------------
# Generation results
# ---------------------------------------------------------------------------

class GeneratedSchema(BaseModel):
    """Generated source text for one collection."""

    collection_name: str = Field(..., description="Directus collection name")
    schema_text: Optional[str] = Field(default=None, alias="schema", description="Zod schema block")
    type_text: Optional[str] = Field(default=None, alias="type", description="TypeScript type block")
    references: set[str] = Field(
        default_factory=set,
        description="Generated collections referenced by this collection's fields",
    )
    file_references: set[str] = Field(
        default_factory=set,
        description="Shared file entities used ('File', 'ImageFile')",
    )

    model_config = ConfigDict(populate_by_name=True)
