"""Import statements for generated collection files."""

from __future__ import annotations

from zodirectus.models import GeneratedSchema

from . import naming
from .field_mapping import GenerationContext

FILE_SCHEMAS_MODULE = "./file-schemas"
FILE_ENTITIES = ("File", "ImageFile")


class ImportBuilder:
    """Builds the import block of one generated file.

    Args:
        context: Generation context (entity names, output flags).
        with_schemas: Whether schema names exist in the generated files.
        with_types: Whether type names exist in the generated files.
    """

    def __init__(self, context: GenerationContext, with_schemas: bool, with_types: bool) -> None:
        self.context = context
        self.with_schemas = with_schemas
        self.with_types = with_types

    def zod_import(self, result: GeneratedSchema) -> str | None:
        if result.schema_text:
            return "import { z } from 'zod';"
        return None

    def file_schema_import(self, result: GeneratedSchema) -> str | None:
        """Import exactly the shared file entities *result* uses."""
        used = [entity for entity in FILE_ENTITIES if entity in result.file_references]
        if not used:
            return None
        return self._statement(used, FILE_SCHEMAS_MODULE)

    def related_imports(self, result: GeneratedSchema) -> list[str]:
        """One import per referenced collection, sorted by module path.

        Self references are skipped.
        """
        by_module: dict[str, str] = {}
        for target in sorted(result.references):
            if target == result.collection_name:
                continue
            module = self.context.module_path(target)
            if module in by_module:
                continue
            by_module[module] = self._statement([self.context.entity(target)], module)
        return [by_module[module] for module in sorted(by_module)]

    def build(self, result: GeneratedSchema) -> list[str]:
        """Every import line of *result*'s file, in emission order."""
        lines: list[str] = []
        zod = self.zod_import(result)
        if zod:
            lines.append(zod)
        files = self.file_schema_import(result)
        if files:
            lines.append(files)
        lines.extend(self.related_imports(result))
        return lines

    def _statement(self, entities: list[str], module: str) -> str:
        names: list[str] = []
        for entity in entities:
            if self.with_schemas:
                names.append(naming.schema_name(entity))
            if self.with_types:
                names.append(f"type {naming.type_name(entity)}")
        return f"import {{ {', '.join(names)} }} from '{module}';"
