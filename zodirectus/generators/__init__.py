"""zodirectus generators -- turn Directus metadata into TypeScript source.

The field mapper resolves every field once; the Zod and TypeScript
generators render from the same mappings, the dependency graph decides
which references become ``z.lazy`` and the template renderer lays the
blocks out as files.

Quick usage::

    from zodirectus.generators import GenerationContext, ZodGenerator

    context = GenerationContext(collections=[posts, authors], relations=relations)
    print(ZodGenerator(context).generate_schema(posts))
"""

from zodirectus.generators import naming
from zodirectus.generators.dependencies import DependencyGraph
from zodirectus.generators.field_mapping import (
    FieldMapper,
    FieldMapping,
    GenerationContext,
    RelationKind,
    RelationTarget,
)
from zodirectus.generators.file_schemas import build_file_schemas, build_file_types
from zodirectus.generators.imports import ImportBuilder
from zodirectus.generators.templates import TemplateRenderer
from zodirectus.generators.type_generator import TypeGenerator
from zodirectus.generators.zod_generator import ZodGenerator

__all__ = [
    "DependencyGraph",
    "FieldMapper",
    "FieldMapping",
    "GenerationContext",
    "ImportBuilder",
    "RelationKind",
    "RelationTarget",
    "TemplateRenderer",
    "TypeGenerator",
    "ZodGenerator",
    "build_file_schemas",
    "build_file_types",
    "naming",
]
