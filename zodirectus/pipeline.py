"""zodirectus generation orchestrator.

Runs one generation pass against a Directus instance:

1. authenticate and list collections (folders, system collections and
   collections outside ``config.collections`` are dropped);
2. fetch relations and each collection's fields; collections the current
   role cannot read are reported and skipped;
3. generate schema and type blocks for every collection;
4. build the dependency graph, detect cycles and regenerate only the
   schemas inside a cycle with ``z.lazy`` references;
5. write ``<collection>.ts`` per collection, ``file-schemas.ts`` and
   ``index.ts``.

Usage::

    python -m zodirectus --url https://cms.example.com --token ... -o ./generated
    zodirectus --config zodirectus.json --collections posts,authors
"""

from __future__ import annotations

import asyncio
import sys
from pathlib import Path
from typing import Any, Iterable

from pydantic import ValidationError

from zodirectus.config import ZodirectusConfig, parse_collection_list
from zodirectus.directus_client import DirectusAPIError, DirectusClient
from zodirectus.generators import (
    DependencyGraph,
    FieldMapper,
    GenerationContext,
    ImportBuilder,
    TemplateRenderer,
    TypeGenerator,
    ZodGenerator,
    build_file_schemas,
    build_file_types,
    naming,
)
from zodirectus.generators.templates import (
    COLLECTION_TEMPLATE,
    FILE_SCHEMAS_TEMPLATE,
    INDEX_TEMPLATE,
)
from zodirectus.models import CollectionWithFields, DirectusCollection, DirectusRelation, GeneratedSchema
from zodirectus.utils import (
    console,
    ensure_dir,
    print_error,
    print_header,
    print_info,
    print_success,
    print_summary_table,
    print_warning,
)

# ---------------------------------------------------------------------------
# Exceptions
# ---------------------------------------------------------------------------


class GenerationError(Exception):
    """Raised when a generation run fails irrecoverably."""


# ---------------------------------------------------------------------------
# Orchestrator
# ---------------------------------------------------------------------------


class Zodirectus:
    """Generates Zod schemas and TypeScript types from Directus collections.

    Attributes:
        config: Run configuration.
        client: Async Directus API client.
        renderer: Template renderer used to lay out the written files.
    """

    def __init__(
        self,
        config: ZodirectusConfig,
        client: DirectusClient | None = None,
        renderer: TemplateRenderer | None = None,
    ) -> None:
        self.config = config
        self.client = client or DirectusClient(config)
        self.renderer = renderer or TemplateRenderer()

    # ------------------------------------------------------------------
    # Public API
    # ------------------------------------------------------------------

    async def generate(self) -> list[GeneratedSchema]:
        """Generate and write schemas and types for all target collections.

        Returns:
            One ``GeneratedSchema`` per collection that could be read.

        Raises:
            GenerationError: On any failure other than a collection the
                token may not read, which is skipped with a warning.
        """
        try:
            await self.client.authenticate()
            targets = self.filter_collections(await self.client.get_collections())
            relations = await self._fetch_relations()
            collections = await self._fetch_collections(targets)

            context = GenerationContext.from_config(
                self.config,
                collections,
                relations,
                available=[c.collection for c in collections],
            )
            results = self.generate_all(context, collections)
            await self.write_files(results, context)
        except GenerationError:
            raise
        except Exception as exc:
            raise GenerationError(f"Failed to generate schemas: {exc}") from exc

        self._print_summary(results)
        return results

    async def generate_for_collection(self, collection_name: str) -> GeneratedSchema:
        """Generate schema and type text for a single collection.

        Nothing is written. References to other readable collections are
        kept by name; only self-references are made lazy, since the other
        side of a wider cycle is not fetched.
        """
        try:
            await self.client.authenticate()
            available = {c.collection for c in self.filter_collections(await self.client.get_collections())}
            relations = await self._fetch_relations()
            collection = await self.client.get_collection_with_fields(collection_name)
        except DirectusAPIError as exc:
            raise GenerationError(
                f"Failed to generate schema for collection {collection_name}: {exc}"
            ) from exc

        context = GenerationContext.from_config(
            self.config,
            [collection],
            relations,
            available=available | {collection_name},
        )
        return self.generate_all(context, [collection])[0]

    async def get_collections(self) -> list[str]:
        """Names of the collections a run would generate."""
        try:
            await self.client.authenticate()
            collections = await self.client.get_collections()
        except DirectusAPIError as exc:
            raise GenerationError(f"Failed to list collections: {exc}") from exc
        return [c.collection for c in self.filter_collections(collections)]

    # ------------------------------------------------------------------
    # Collection selection and fetching
    # ------------------------------------------------------------------

    def filter_collections(self, collections: Iterable[DirectusCollection]) -> list[DirectusCollection]:
        """Apply folder, ``config.collections`` and system-collection filters."""
        selected = [c for c in collections if not c.is_folder]
        if self.config.collections:
            wanted = set(self.config.collections)
            selected = [c for c in selected if c.collection in wanted]
        if not self.config.include_system_collections:
            selected = [c for c in selected if not self.config.is_system_collection(c.collection)]
        return selected

    async def _fetch_relations(self) -> list[DirectusRelation]:
        try:
            return await self.client.get_relations()
        except DirectusAPIError as exc:
            print_warning(
                f"Relations unavailable, falling back to field-level hints: {exc}"
            )
            return []

    async def _fetch_collections(
        self, targets: list[DirectusCollection]
    ) -> list[CollectionWithFields]:
        fetched = await asyncio.gather(*(self._fetch_one(c) for c in targets))
        return [c for c in fetched if c is not None]

    async def _fetch_one(self, collection: DirectusCollection) -> CollectionWithFields | None:
        try:
            return await self.client.get_collection_with_fields(collection.collection, known=collection)
        except DirectusAPIError as exc:
            if not exc.is_access_error:
                raise
            print_warning(f"Collection '{collection.collection}' skipped due to access error: {exc}")
            return None

    # ------------------------------------------------------------------
    # Generation
    # ------------------------------------------------------------------

    def generate_all(
        self,
        context: GenerationContext,
        collections: list[CollectionWithFields],
    ) -> list[GeneratedSchema]:
        """Generate every collection, then rewrite circular schemas lazily."""
        results = [self.generate_collection(context, c) for c in collections]

        graph = DependencyGraph.from_results(results)
        groups = graph.circular_groups()
        if not groups or not self.config.generate_schemas:
            return results

        for group in groups:
            print_info(f"Circular references: {' -> '.join(group)} (using z.lazy)")

        by_name = {c.collection: c for c in collections}
        affected = set(graph.affected_collections())
        return [
            self.generate_collection(
                context,
                by_name[r.collection_name],
                lazy_targets=graph.lazy_targets(r.collection_name),
            )
            if r.collection_name in affected
            else r
            for r in results
        ]

    def generate_collection(
        self,
        context: GenerationContext,
        collection: CollectionWithFields,
        lazy_targets: Iterable[str] = (),
    ) -> GeneratedSchema:
        """Generate the schema/type blocks of one collection."""
        mappings = FieldMapper(context).map_collection(collection, lazy_targets)
        schema = (
            ZodGenerator(context).render(collection.collection, mappings)
            if self.config.generate_schemas
            else None
        )
        type_text = (
            TypeGenerator(context).render(collection.collection, mappings)
            if self.config.generate_types
            else None
        )
        return GeneratedSchema(
            collection_name=collection.collection,
            schema=schema,
            type=type_text,
            references={m.reference for m in mappings if m.reference},
            file_references={m.file_entity for m in mappings if m.file_entity},
        )

    # ------------------------------------------------------------------
    # Output
    # ------------------------------------------------------------------

    async def write_files(
        self,
        results: list[GeneratedSchema],
        context: GenerationContext | None = None,
    ) -> list[Path]:
        """Write one module per collection plus the shared files.

        Returns:
            Paths of every written file.
        """
        if context is None:
            context = GenerationContext(
                available=[r.collection_name for r in results],
                generate_types=self.config.generate_types,
            )
        output_dir = self.config.output_dir
        await asyncio.to_thread(ensure_dir, output_dir)

        imports = ImportBuilder(
            context,
            with_schemas=self.config.generate_schemas,
            with_types=self.config.generate_types,
        )
        written: list[Path] = []

        for result in results:
            path = output_dir / f"{context.module(result.collection_name)}.ts"
            written.append(
                await self.renderer.render_to_file(
                    COLLECTION_TEMPLATE,
                    path,
                    {
                        "collection_name": result.collection_name,
                        "imports": imports.build(result),
                        "schema": result.schema_text,
                        "type": result.type_text,
                    },
                )
            )

        written.append(
            await self.renderer.render_to_file(
                FILE_SCHEMAS_TEMPLATE,
                self.config.file_schemas_path,
                {
                    "schemas": build_file_schemas() if self.config.generate_schemas else None,
                    "types": build_file_types() if self.config.generate_types else None,
                },
            )
        )

        if self.config.generate_index:
            written.append(
                await self.renderer.render_to_file(
                    INDEX_TEMPLATE,
                    self.config.index_path,
                    self._index_context(results, context),
                )
            )

        return written

    def _index_context(
        self, results: list[GeneratedSchema], context: GenerationContext
    ) -> dict[str, Any]:
        names = sorted(r.collection_name for r in results)
        modules = [context.module(name) for name in names]
        if not self.config.generate_types:
            return {"modules": modules, "type_imports": [], "union_type": "", "index_type": ""}

        types = TypeGenerator(context)
        type_imports = [
            f"import type {{ {naming.type_name(context.entity(name))} }} from '{context.module_path(name)}';"
            for name in names
        ]
        return {
            "modules": modules,
            "type_imports": type_imports,
            "union_type": types.generate_union_type(names),
            "index_type": types.generate_index_type(names),
        }

    def _print_summary(self, results: list[GeneratedSchema]) -> None:
        print_summary_table(
            {
                "Collections": str(len(results)),
                "Schemas": "yes" if self.config.generate_schemas else "no",
                "Types": "yes" if self.config.generate_types else "no",
                "Output": str(self.config.output_dir),
            },
            title="zodirectus",
        )


# ---------------------------------------------------------------------------
# CLI entry point
# ---------------------------------------------------------------------------


def build_config(args: Any) -> ZodirectusConfig:
    """Merge a JSON config file, environment variables and CLI options."""
    overrides: dict[str, Any] = {
        "directus_url": args.url,
        "token": args.token,
        "email": args.email,
        "password": args.password,
        "output_dir": Path(args.output) if args.output else None,
        "collections": parse_collection_list(args.collections) if args.collections else None,
        "include_system_collections": True if args.include_system else None,
        "generate_types": False if args.no_types else None,
        "generate_schemas": False if args.no_schemas else None,
        "generate_index": False if args.no_index else None,
    }
    if args.config:
        base = ZodirectusConfig.load(Path(args.config)).model_dump()
        base.update({k: v for k, v in overrides.items() if v is not None})
        return ZodirectusConfig.model_validate(base)
    return ZodirectusConfig.from_env(**overrides)


def main(argv: list[str] | None = None) -> None:
    """CLI entry point for ``zodirectus`` / ``python -m zodirectus``."""
    import argparse

    parser = argparse.ArgumentParser(
        prog="zodirectus",
        description="Generate Zod schemas and TypeScript types from Directus collections",
        formatter_class=argparse.RawDescriptionHelpFormatter,
        epilog=(
            "Options fall back to DIRECTUS_URL, DIRECTUS_TOKEN, DIRECTUS_EMAIL,\n"
            "DIRECTUS_PASSWORD and ZODIRECTUS_* environment variables.\n\n"
            "Examples:\n"
            "  zodirectus --url http://localhost:8055 --token $TOKEN\n"
            "  zodirectus --config zodirectus.json -o ./src/generated\n"
            "  zodirectus --url http://localhost:8055 --list\n"
        ),
    )
    parser.add_argument("--url", default=None, help="Directus base URL")
    parser.add_argument("--token", default=None, help="Static access token")
    parser.add_argument("--email", default=None, help="Login e-mail")
    parser.add_argument("--password", default=None, help="Login password")
    parser.add_argument("--output", "-o", default=None, help="Output directory (default: ./generated)")
    parser.add_argument("--collections", default=None, help="Comma-separated collections to generate")
    parser.add_argument("--include-system", action="store_true", help="Include directus_* collections")
    parser.add_argument("--no-types", action="store_true", help="Skip TypeScript types")
    parser.add_argument("--no-schemas", action="store_true", help="Skip Zod schemas")
    parser.add_argument("--no-index", action="store_true", help="Skip the index.ts barrel")
    parser.add_argument("--config", default=None, help="JSON configuration file")
    parser.add_argument("--list", action="store_true", help="List collections and exit")

    args = parser.parse_args(argv)

    try:
        config = build_config(args)
    except (ValidationError, ValueError, OSError) as exc:
        print_error(f"Invalid configuration: {exc}")
        sys.exit(1)

    app = Zodirectus(config)

    if args.list:
        try:
            names = asyncio.run(app.get_collections())
        except GenerationError as exc:
            print_error(str(exc))
            sys.exit(1)
        for name in names:
            console.print(name)
        return

    print_header(f"Generating from {config.directus_url}")
    try:
        results = asyncio.run(app.generate())
    except GenerationError as exc:
        print_error(str(exc))
        sys.exit(1)

    print_success(f"Generated {len(results)} collection(s) into {config.output_dir}")


if __name__ == "__main__":
    main()
