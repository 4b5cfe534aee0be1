"""Shared schemas for Directus file objects (``directus_files``).

File relations in every collection point at the same record shape, so the
schemas live once in ``file-schemas.ts`` instead of being regenerated per
collection.
"""

from __future__ import annotations

from dataclasses import dataclass

from . import naming


@dataclass(frozen=True)
class FileField:
    """One member of the ``directus_files`` record."""
    name: str
    zod: str
    ts: str
    nullable: bool = True


FILE_FIELDS: tuple[FileField, ...] = (
    FileField("id", "z.string().uuid()", "string", nullable=False),
    FileField("storage", "z.string()", "string", nullable=False),
    FileField("filename_disk", "z.string()", "string"),
    FileField("filename_download", "z.string()", "string", nullable=False),
    FileField("title", "z.string()", "string"),
    FileField("type", "z.string()", "string"),
    FileField("folder", "z.string().uuid()", "string"),
    FileField("uploaded_by", "z.string().uuid()", "string"),
    FileField("created_on", "z.string().datetime({ offset: true })", "string", nullable=False),
    FileField("modified_by", "z.string().uuid()", "string"),
    FileField("modified_on", "z.string().datetime({ offset: true })", "string", nullable=False),
    FileField("charset", "z.string()", "string"),
    FileField("filesize", "z.union([z.number(), z.string()])", "number | string"),
    FileField("width", "z.number().int()", "number"),
    FileField("height", "z.number().int()", "number"),
    FileField("duration", "z.number().int()", "number"),
    FileField("embed", "z.string()", "string"),
    FileField("description", "z.string()", "string"),
    FileField("location", "z.string()", "string"),
    FileField("tags", "z.array(z.string())", "string[]"),
    FileField("metadata", "z.record(z.string(), z.any())", "Record<string, any>"),
    FileField("focal_point_x", "z.number().int()", "number"),
    FileField("focal_point_y", "z.number().int()", "number"),
    FileField("uploaded_on", "z.string().datetime({ offset: true })", "string"),
)

# Members an image is guaranteed to carry, with their narrowed types.
IMAGE_OVERRIDES: tuple[FileField, ...] = (
    FileField("type", "z.string().startsWith('image/')", "string", nullable=False),
    FileField("width", "z.number().int()", "number", nullable=False),
    FileField("height", "z.number().int()", "number", nullable=False),
)


def build_file_schemas() -> str:
    """Zod schemas for files and images."""
    file_schema = naming.schema_name("File")
    image_schema = naming.schema_name("ImageFile")

    members = "\n".join(f"    {f.name}: {_zod(f)}," for f in FILE_FIELDS)
    overrides = "\n".join(f"    {f.name}: {_zod(f)}," for f in IMAGE_OVERRIDES)
    return (
        f"export const {file_schema} = z.object({{\n{members}\n}});\n\n"
        f"export const {image_schema} = {file_schema}.extend({{\n{overrides}\n}});"
    )


def build_file_types() -> str:
    """TypeScript interfaces for files and images."""
    file_type = naming.type_name("File")
    image_type = naming.type_name("ImageFile")

    members = "\n".join(f"  {f.name}: {_ts(f)};" for f in FILE_FIELDS)
    overrides = "\n".join(f"  {f.name}: {_ts(f)};" for f in IMAGE_OVERRIDES)
    return (
        f"export interface {file_type} {{\n{members}\n}}\n\n"
        f"export interface {image_type} extends {file_type} {{\n{overrides}\n}}"
    )


def _zod(field: FileField) -> str:
    return f"{field.zod}.nullable()" if field.nullable else field.zod


def _ts(field: FileField) -> str:
    return f"{field.ts} | null" if field.nullable else field.ts
