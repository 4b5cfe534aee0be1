"""Field descriptor -> Zod expression / TypeScript type mapping.

Both generators consume the same ``FieldMapping`` objects so a collection's
Zod schema and its TypeScript interface can never disagree about a field's
shape, optionality or the collections it references.

Resolution order for a field:

1. relations (``/relations`` metadata, then field-level hints),
2. ``meta.special`` flags,
3. choice / tag interfaces,
4. the type tables (Directus abstract type for casted types, otherwise the
   database ``data_type``),
5. user supplied custom mappings, then a plain string.
"""

from __future__ import annotations

from dataclasses import dataclass
from enum import Enum
from typing import Iterable

from zodirectus.config import ZodirectusConfig
from zodirectus.models import CollectionWithFields, DirectusField, DirectusRelation

from . import naming


# ---------------------------------------------------------------------------
# Type tables
# ---------------------------------------------------------------------------

_STRING = ("z.string()", "string")
_UUID = ("z.string().uuid()", "string")
_INT = ("z.number().int()", "number")
_NUMBER = ("z.number()", "number")
_BOOLEAN = ("z.boolean()", "boolean")
_DATE = ("z.string().date()", "string")
_DATETIME_LOCAL = ("z.string().datetime({ local: true })", "string")
_DATETIME_OFFSET = ("z.string().datetime({ offset: true })", "string")
_TIME = ("z.string().time()", "string")
_ANY = ("z.any()", "any")
_STRING_ARRAY = ("z.array(z.string())", "string[]")
_ID_UNION = ("z.union([z.string(), z.number()])", "string | number")

# Database column types as reported in ``schema.data_type``.
_DATA_TYPE_MAP: dict[str, tuple[str, str]] = {
    "uuid": _UUID,
    "varchar": _STRING,
    "nvarchar": _STRING,
    "char": _STRING,
    "character": _STRING,
    "character varying": _STRING,
    "bpchar": _STRING,
    "text": _STRING,
    "tinytext": _STRING,
    "mediumtext": _STRING,
    "longtext": _STRING,
    "binary": _STRING,
    "varbinary": _STRING,
    "integer": _INT,
    "int": _INT,
    "int2": _INT,
    "int4": _INT,
    "int8": _INT,
    "bigint": _INT,
    "smallint": _INT,
    "mediumint": _INT,
    "tinyint": _INT,
    "decimal": _NUMBER,
    "numeric": _NUMBER,
    "float": _NUMBER,
    "real": _NUMBER,
    "double": _NUMBER,
    "double precision": _NUMBER,
    "boolean": _BOOLEAN,
    "bool": _BOOLEAN,
    "date": _DATE,
    "datetime": _DATETIME_LOCAL,
    "timestamp without time zone": _DATETIME_LOCAL,
    "timestamp": _DATETIME_OFFSET,
    "timestamp with time zone": _DATETIME_OFFSET,
    "timestamptz": _DATETIME_OFFSET,
    "time": _TIME,
    "time without time zone": _TIME,
    "time with time zone": _TIME,
    "json": _ANY,
    "jsonb": _ANY,
    "geometry": _ANY,
}

# Directus abstract field types (``field.type``).
_DIRECTUS_TYPE_MAP: dict[str, tuple[str, str]] = {
    "string": _STRING,
    "text": _STRING,
    "hash": _STRING,
    "uuid": _UUID,
    "integer": _INT,
    "bigInteger": _INT,
    "float": _NUMBER,
    "decimal": _NUMBER,
    "boolean": _BOOLEAN,
    "date": _DATE,
    "dateTime": _DATETIME_LOCAL,
    "timestamp": _DATETIME_OFFSET,
    "time": _TIME,
    "json": _ANY,
    "csv": _STRING_ARRAY,
    "geometry": _ANY,
}

# Abstract types Directus casts on read; the column type does not describe
# the JSON value for these (e.g. MySQL booleans are ``tinyint`` columns).
_CASTED_TYPES = {"boolean", "json", "csv", "uuid", "hash", "date", "dateTime", "timestamp", "time"}

_MAX_LENGTH_TYPES = {"varchar", "nvarchar", "char", "character", "character varying", "bpchar", "string"}

_SINGLE_CHOICE_INTERFACES = {"select-dropdown", "select-radio", "select-icon", "select-color"}
_MULTI_CHOICE_INTERFACES = {
    "select-multiple-dropdown",
    "select-multiple-checkbox",
    "select-multiple-checkbox-tree",
}
_FILE_INTERFACES = {"file", "file-image"}

_RELATIONAL_ALIAS_SPECIALS = {"o2m", "m2m", "m2a", "files", "translations"}
_MANAGED_SPECIALS = {"date-created", "date-updated", "user-created", "user-updated"}

FILES_COLLECTION = "directus_files"
USERS_COLLECTION = "directus_users"

# System collections keyed by UUID; other system keys are integers.
_SYSTEM_UUID_COLLECTIONS = {
    "directus_dashboards",
    "directus_files",
    "directus_flows",
    "directus_folders",
    "directus_operations",
    "directus_panels",
    "directus_policies",
    "directus_roles",
    "directus_shares",
    "directus_translations",
    "directus_users",
    "directus_versions",
}


# ---------------------------------------------------------------------------
# Field classification
# ---------------------------------------------------------------------------

def is_divider_field(field: DirectusField) -> bool:
    """Return ``True`` for layout dividers, which carry no data."""
    return (
        field.field.startswith("divider-")
        or field.interface == "divider"
        or field.type == "divider"
    )


def is_excluded_field(field: DirectusField) -> bool:
    """Return ``True`` if *field* must not appear in generated output.

    Hidden fields, dividers and presentation-only aliases (notices, groups,
    buttons) are excluded. Relational aliases (o2m, m2m, ...) are kept.
    """
    if field.is_hidden or is_divider_field(field):
        return True
    special = set(field.special)
    if special & {"no-data", "group"}:
        return True
    if field.type == "alias" and not special & _RELATIONAL_ALIAS_SPECIALS:
        return True
    return False


def is_managed_field(field: DirectusField) -> bool:
    """Return ``True`` for fields Directus fills in itself.

    Managed fields are dropped from Create variants and forced present in
    Get variants.
    """
    special = set(field.special)
    if field.is_primary_key and (field.has_auto_increment or "uuid" in special):
        return True
    return field.is_readonly or bool(special & _MANAGED_SPECIALS)


# ---------------------------------------------------------------------------
# Relations
# ---------------------------------------------------------------------------

class RelationKind(str, Enum):
    """How a field points at other records."""
    M2O = "m2o"
    O2M = "o2m"
    M2M = "m2m"
    M2A = "m2a"
    FILE = "file"


@dataclass(frozen=True)
class RelationTarget:
    """Resolved relation of a field.

    ``collection`` is the collection whose records appear in the field's
    value: the related collection for many-to-one, the "many" collection
    for one-to-many and the junction collection for many-to-many. It is
    ``None`` when the metadata does not say.
    """
    kind: RelationKind
    collection: str | None = None
    image: bool = False

    @property
    def is_list(self) -> bool:
        return self.kind in (RelationKind.O2M, RelationKind.M2M)


@dataclass
class FieldMapping:
    """Everything the generators need to know about one field."""
    field: DirectusField
    key: str
    zod: str
    ts: str
    required: bool
    nullable: bool
    managed: bool = False
    reference: str | None = None
    file_entity: str | None = None

    @property
    def name(self) -> str:
        return self.field.field

    @property
    def zod_expression(self) -> str:
        """Zod expression with the optional/nullable modifiers applied."""
        expr = self.zod
        if self.nullable and not self.required:
            expr += ".nullable()"
        if not self.required:
            expr += ".optional()"
        return expr

    @property
    def ts_property(self) -> str:
        """``key?: type`` member for a TypeScript interface."""
        ts = self.ts
        if self.nullable and not self.required:
            ts += " | null"
        marker = "" if self.required else "?"
        return f"{self.key}{marker}: {ts}"


# ---------------------------------------------------------------------------
# Generation context
# ---------------------------------------------------------------------------

# Entities of the shared files (file-schemas.ts) and the index.ts helper
# types (DrsCollectionName, DrsCollections).
RESERVED_ENTITIES = frozenset({"File", "ImageFile", "CollectionName", "Collections"})

# Module names of the shared output files.
RESERVED_MODULES = frozenset({"file-schemas", "index"})


def resolve_entity_names(collections: Iterable[str]) -> dict[str, str]:
    """Assign each collection a unique entity name.

    Collections whose name is already singular claim their entity name
    first, so ``category`` keeps ``Category`` and a sibling ``categories``
    falls back to ``Categories``. Names of the shared file entities and
    index types are never handed out (``files`` becomes ``Files``).
    Remaining clashes get a numeric suffix.
    """
    names = sorted(set(collections))
    ordered = sorted(
        names,
        key=lambda n: (naming.entity_name(n) != naming.to_pascal_case(n), n),
    )
    taken: set[str] = set(RESERVED_ENTITIES)
    result: dict[str, str] = {}
    for collection in ordered:
        candidates = [naming.entity_name(collection), naming.to_pascal_case(collection)]
        chosen = next((c for c in candidates if c and c not in taken), None)
        if chosen is None:
            base = candidates[1]
            suffix = 2
            while f"{base}{suffix}" in taken:
                suffix += 1
            chosen = f"{base}{suffix}"
        taken.add(chosen)
        result[collection] = chosen
    return result


def resolve_module_names(collections: Iterable[str]) -> dict[str, str]:
    """Assign each collection a unique kebab-case file name.

    ``blog_posts`` and ``BlogPosts`` both kebab to ``blog-posts``; the
    collection whose name already is the kebab form wins, then the first
    by name. Later ones get ``-2``, ``-3`` and so on.
    """
    ordered = sorted(
        set(collections),
        key=lambda n: (naming.to_kebab_case(n) != n, n),
    )
    taken: set[str] = set(RESERVED_MODULES)
    result: dict[str, str] = {}
    for collection in ordered:
        base = naming.to_kebab_case(collection)
        chosen = base
        suffix = 2
        while chosen in taken:
            chosen = f"{base}-{suffix}"
            suffix += 1
        taken.add(chosen)
        result[collection] = chosen
    return result


class GenerationContext:
    """Shared view of the metadata a generation run works from.

    Attributes:
        collections: Fetched collections (with fields) keyed by name.
        relations: Every relation known to the run.
        available: Collections that get a generated file; only these may be
            referenced by schema/type names.
        entity_names: Collection -> entity name (``posts`` -> ``Post``).
        module_names: Collection -> output file stem (``blog_posts`` ->
            ``blog-posts``).
    """

    def __init__(
        self,
        collections: Iterable[CollectionWithFields] = (),
        relations: Iterable[DirectusRelation] = (),
        available: Iterable[str] | None = None,
        custom_field_mappings: dict[str, str] | None = None,
        custom_type_mappings: dict[str, str] | None = None,
        generate_types: bool = True,
    ) -> None:
        self.collections: dict[str, CollectionWithFields] = {c.collection: c for c in collections}
        self.relations: list[DirectusRelation] = list(relations)
        self.available: set[str] = set(available) if available is not None else set(self.collections)
        self.custom_field_mappings = dict(custom_field_mappings or {})
        self.custom_type_mappings = dict(custom_type_mappings or {})
        self.generate_types = generate_types
        self.entity_names = resolve_entity_names(self.available | set(self.collections))
        self.module_names = resolve_module_names(self.available | set(self.collections))

    @classmethod
    def from_config(
        cls,
        config: ZodirectusConfig,
        collections: Iterable[CollectionWithFields],
        relations: Iterable[DirectusRelation] = (),
        available: Iterable[str] | None = None,
    ) -> "GenerationContext":
        return cls(
            collections=collections,
            relations=relations,
            available=available,
            custom_field_mappings=config.custom_field_mappings,
            custom_type_mappings=config.custom_type_mappings,
            generate_types=config.generate_types,
        )

    def entity(self, collection: str) -> str:
        """Entity name of *collection* (computed on the fly for unknown names)."""
        return self.entity_names.get(collection) or naming.entity_name(collection)

    def module(self, collection: str) -> str:
        """File name (without ``.ts``) of *collection*'s generated module."""
        return self.module_names.get(collection) or naming.to_kebab_case(collection)

    def module_path(self, collection: str) -> str:
        return f"./{self.module(collection)}"

    def is_generated(self, collection: str | None) -> bool:
        return collection is not None and collection in self.available

    # -- relation lookups -------------------------------------------------

    def many_side_relation(self, collection: str, field: str) -> DirectusRelation | None:
        """Relation where *collection.field* holds the foreign key."""
        for relation in self.relations:
            if relation.collection == collection and relation.field == field:
                return relation
        return None

    def one_side_relation(self, collection: str, field: str) -> DirectusRelation | None:
        """Relation whose alias ``one_field`` lives on *collection.field*."""
        for relation in self.relations:
            if relation.related_collection == collection and relation.one_field == field:
                return relation
        return None


# ---------------------------------------------------------------------------
# Field mapper
# ---------------------------------------------------------------------------

class FieldMapper:
    """Turns ``DirectusField`` descriptors into ``FieldMapping`` objects."""

    def __init__(self, context: GenerationContext) -> None:
        self.context = context

    # -- Public API --------------------------------------------------------

    def map_collection(
        self,
        collection: CollectionWithFields,
        lazy_targets: Iterable[str] = (),
    ) -> list[FieldMapping]:
        """Map every non-excluded field of *collection*, in field order."""
        lazy = frozenset(lazy_targets)
        return [
            self.map_field(field, lazy)
            for field in collection.fields
            if not is_excluded_field(field)
        ]

    def map_field(
        self,
        field: DirectusField,
        lazy_targets: Iterable[str] = (),
    ) -> FieldMapping:
        """Map a single field.

        Args:
            field: Field descriptor.
            lazy_targets: Collections that must be referenced through
                ``z.lazy`` because they sit in a dependency cycle with the
                field's own collection.
        """
        mapping = FieldMapping(
            field=field,
            key=naming.property_key(field.field),
            zod="",
            ts="",
            required=field.is_required,
            nullable=field.is_nullable,
            managed=is_managed_field(field),
        )

        relation = self.resolve_relation(field)
        if relation is not None:
            self._apply_relation(mapping, relation, frozenset(lazy_targets))
        else:
            mapping.zod, mapping.ts = self.scalar_types(field)
        return mapping

    def references(self, collection: CollectionWithFields) -> set[str]:
        """Generated collections referenced by *collection*'s fields."""
        return {
            m.reference
            for m in self.map_collection(collection)
            if m.reference is not None
        }

    # -- Relations ---------------------------------------------------------

    def resolve_relation(self, field: DirectusField) -> RelationTarget | None:
        """Work out whether and how *field* points at other records."""
        special = set(field.special)
        if "m2a" in special:
            return RelationTarget(RelationKind.M2A)

        relation = self.context.many_side_relation(field.collection, field.field)
        if relation is not None:
            if relation.related_collection is None:
                return RelationTarget(RelationKind.M2A)
            return self._to_one(relation.related_collection, field)

        relation = self.context.one_side_relation(field.collection, field.field)
        if relation is not None:
            if relation.junction_field or special & {"m2m", "files", "translations"}:
                return RelationTarget(RelationKind.M2M, relation.collection)
            return RelationTarget(RelationKind.O2M, relation.collection)

        # No relation metadata: fall back to what the field itself says.
        if special & {"m2o", "file"} or field.interface in _FILE_INTERFACES:
            target = field.foreign_key_table
            if target is None and (special & {"file"} or field.interface in _FILE_INTERFACES):
                target = FILES_COLLECTION
            if target is not None:
                return self._to_one(target, field)
        if field.foreign_key_table:
            return self._to_one(field.foreign_key_table, field)
        if special & {"user-created", "user-updated"}:
            return RelationTarget(RelationKind.M2O, USERS_COLLECTION)
        if special & {"m2m", "files", "translations"}:
            return RelationTarget(RelationKind.M2M)
        if "o2m" in special:
            return RelationTarget(RelationKind.O2M)
        return None

    @staticmethod
    def _to_one(target: str, field: DirectusField) -> RelationTarget:
        if target == FILES_COLLECTION:
            return RelationTarget(RelationKind.FILE, target, image=field.interface == "file-image")
        return RelationTarget(RelationKind.M2O, target)

    def _apply_relation(
        self,
        mapping: FieldMapping,
        relation: RelationTarget,
        lazy: frozenset[str],
    ) -> None:
        field = mapping.field

        if relation.kind is RelationKind.M2A:
            if field.type == "alias":
                mapping.zod, mapping.ts = "z.array(z.any())", "any[]"
            else:
                mapping.zod, mapping.ts = _ANY
            return

        if relation.kind is RelationKind.FILE:
            entity = "ImageFile" if relation.image else "File"
            mapping.file_entity = entity
            mapping.zod = f"z.union([z.string().uuid(), {naming.schema_name(entity)}])"
            mapping.ts = f"string | {naming.type_name(entity)}"
            return

        target = relation.collection
        if target is None:
            mapping.zod, mapping.ts = "z.array(z.any())", "any[]"
            return

        pk_zod, pk_ts = self.primary_key_types(target)
        if self.context.is_generated(target):
            mapping.reference = target
            entity = self.context.entity(target)
            item_zod = f"z.union([{pk_zod}, {self._schema_ref(target, entity, lazy)}])"
            item_ts = f"{pk_ts} | {naming.type_name(entity)}"
        else:
            item_zod, item_ts = pk_zod, pk_ts

        if relation.is_list:
            mapping.zod = f"z.array({item_zod})"
            mapping.ts = f"({item_ts})[]" if " | " in item_ts else f"{item_ts}[]"
        else:
            mapping.zod, mapping.ts = item_zod, item_ts

    def _schema_ref(self, target: str, entity: str, lazy: frozenset[str]) -> str:
        schema = naming.schema_name(entity)
        if target not in lazy:
            return schema
        annotation = (
            f"z.ZodType<{naming.type_name(entity)}>" if self.context.generate_types else "z.ZodTypeAny"
        )
        return f"z.lazy((): {annotation} => {schema})"

    def primary_key_types(self, collection: str) -> tuple[str, str]:
        """Zod/TS types of *collection*'s primary key."""
        known = self.context.collections.get(collection)
        if known is not None and known.primary_key is not None:
            return self.scalar_types(known.primary_key)
        if collection in _SYSTEM_UUID_COLLECTIONS:
            return _UUID
        return _ID_UNION

    # -- Scalars -----------------------------------------------------------

    def scalar_types(self, field: DirectusField) -> tuple[str, str]:
        """Zod/TS pair for a non-relational field."""
        special = set(field.special)
        if "uuid" in special:
            return _UUID
        if "sort" in special:
            return _INT
        if "csv" in special:
            return _STRING_ARRAY
        if "cast-boolean" in special:
            return _BOOLEAN

        choice_types = self._choice_types(field)
        if choice_types is not None:
            return choice_types

        if field.interface == "tags":
            return _STRING_ARRAY

        return self._table_types(field)

    def _table_types(self, field: DirectusField) -> tuple[str, str]:
        data_type = field.data_type
        abstract = field.type

        if abstract in _CASTED_TYPES or abstract.startswith("geometry"):
            return _DIRECTUS_TYPE_MAP.get(abstract, _ANY)

        if data_type in _DATA_TYPE_MAP:
            zod, ts = _DATA_TYPE_MAP[data_type]
        elif data_type.startswith("geometry") or data_type.upper() == "USER-DEFINED":
            zod, ts = _ANY
        elif abstract in _DIRECTUS_TYPE_MAP:
            zod, ts = _DIRECTUS_TYPE_MAP[abstract]
        else:
            return self._custom_types(data_type, abstract)

        max_length = field.max_length
        if zod == "z.string()" and data_type in _MAX_LENGTH_TYPES and max_length:
            zod = f"z.string().max({max_length})"
        return zod, ts

    def _custom_types(self, data_type: str, abstract: str) -> tuple[str, str]:
        custom_zod = self.context.custom_field_mappings
        custom_ts = self.context.custom_type_mappings
        zod = custom_zod.get(data_type) or custom_zod.get(abstract) or "z.string()"
        ts = custom_ts.get(data_type) or custom_ts.get(abstract) or "string"
        return zod, ts

    @staticmethod
    def _choice_types(field: DirectusField) -> tuple[str, str] | None:
        interface = field.interface
        if interface not in _SINGLE_CHOICE_INTERFACES and interface not in _MULTI_CHOICE_INTERFACES:
            return None
        choices = field.choices
        multiple = interface in _MULTI_CHOICE_INTERFACES
        if not choices or field.options.get("allowOther"):
            return _STRING_ARRAY if multiple else None

        zod, ts = _literal_union(choices)
        if multiple:
            ts = f"({ts})[]" if " | " in ts else f"{ts}[]"
            return f"z.array({zod})", ts
        return zod, ts


def _literal_union(values: list[object]) -> tuple[str, str]:
    """Zod/TS types accepting exactly *values*."""
    unique = list(dict.fromkeys(values))
    literals = [naming.ts_literal(v) for v in unique]
    ts = " | ".join(literals)
    if all(isinstance(v, str) for v in unique):
        return f"z.enum([{', '.join(literals)}])", ts
    if len(literals) == 1:
        return f"z.literal({literals[0]})", ts
    members = ", ".join(f"z.literal({lit})" for lit in literals)
    return f"z.union([{members}])", ts
