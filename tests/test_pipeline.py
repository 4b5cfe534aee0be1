"""Unit tests for the generation orchestrator (zodirectus.pipeline).

Tests cover:
- GenerationError
- Zodirectus.filter_collections (folders, system, explicit list)
- Zodirectus.generate (skip on access error, relation fallback, cycles,
  fatal errors)
- Zodirectus.generate_all selective lazy regeneration
- Zodirectus.generate_for_collection / get_collections
- Zodirectus.write_files
- build_config and the CLI entry point
"""

from __future__ import annotations

import json
import os
from pathlib import Path
from types import SimpleNamespace
from unittest.mock import AsyncMock, patch

import pytest

from zodirectus.config import ZodirectusConfig
from zodirectus.directus_client import DirectusAPIError
from zodirectus.generators.field_mapping import GenerationContext
from zodirectus.models import CollectionWithFields, DirectusCollection, DirectusField, GeneratedSchema
from zodirectus.pipeline import GenerationError, Zodirectus, build_config, main


def _collections(*names: str) -> list[DirectusCollection]:
    return [
        DirectusCollection.model_validate({"collection": n, "schema": {"name": n}})
        for n in names
    ]


def _cli_args(**overrides) -> SimpleNamespace:
    args = {
        "url": None, "token": None, "email": None, "password": None, "output": None,
        "collections": None, "include_system": False, "no_types": False,
        "no_schemas": False, "no_index": False, "config": None, "list": False,
    }
    args.update(overrides)
    return SimpleNamespace(**args)


# ---------------------------------------------------------------------------
# GenerationError
# ---------------------------------------------------------------------------


class TestGenerationError:
    @pytest.mark.unit
    def test_message(self):
        err = GenerationError("Failed to generate schemas: boom")
        assert "boom" in str(err)


# ---------------------------------------------------------------------------
# Collection filtering
# ---------------------------------------------------------------------------


class TestFilterCollections:
    @pytest.mark.unit
    def test_defaults_drop_folders_and_system(self, config, directus_payloads):
        collections = [
            DirectusCollection.model_validate(c) for c in directus_payloads["collections"]
        ]
        names = [c.collection for c in Zodirectus(config).filter_collections(collections)]
        assert names == ["authors", "comments", "posts", "secrets"]

    @pytest.mark.unit
    def test_explicit_list(self, config):
        config.collections = ["posts", "directus_users"]
        selected = Zodirectus(config).filter_collections(_collections("posts", "authors", "directus_users"))
        assert [c.collection for c in selected] == ["posts"]

    @pytest.mark.unit
    def test_include_system(self, config):
        config.include_system_collections = True
        selected = Zodirectus(config).filter_collections(_collections("posts", "directus_users"))
        assert [c.collection for c in selected] == ["posts", "directus_users"]


# ---------------------------------------------------------------------------
# generate
# ---------------------------------------------------------------------------


class TestGenerate:
    @pytest.mark.unit
    @pytest.mark.asyncio
    async def test_skips_forbidden_collection(self, config, mock_directus):
        with mock_directus(), patch("zodirectus.pipeline.print_warning") as warn:
            results = await Zodirectus(config).generate()

        assert [r.collection_name for r in results] == ["authors", "comments", "posts"]
        warn.assert_called_once()
        assert "secrets" in warn.call_args[0][0]

    @pytest.mark.unit
    @pytest.mark.asyncio
    async def test_cycle_uses_lazy_references(self, config, mock_directus):
        with mock_directus():
            results = {r.collection_name: r for r in await Zodirectus(config).generate()}

        posts = results["posts"].schema_text
        assert "z.lazy((): z.ZodType<DrsAuthor> => DrxAuthorSchema)" in posts
        assert "z.lazy((): z.ZodType<DrsComment> => DrxCommentSchema)" in posts
        assert "z.lazy((): z.ZodType<DrsPost> => DrxPostSchema)" in results["authors"].schema_text
        assert results["posts"].references == {"authors", "comments"}
        assert results["posts"].file_references == {"ImageFile"}
        # types never need z.lazy
        assert "z.lazy" not in results["posts"].type_text

    @pytest.mark.unit
    @pytest.mark.asyncio
    async def test_relations_failure_falls_back_to_field_hints(self, config, mock_directus):
        with mock_directus(failures={"/relations": 500}), patch("zodirectus.pipeline.print_warning") as warn:
            results = {r.collection_name: r for r in await Zodirectus(config).generate()}

        assert any("Relations unavailable" in c[0][0] for c in warn.call_args_list)
        posts = results["posts"].schema_text
        assert "author: z.union([z.string().uuid(), DrxAuthorSchema])" in posts
        assert "comments: z.array(z.any())" in posts
        assert "z.lazy" not in posts

    @pytest.mark.unit
    @pytest.mark.asyncio
    async def test_listing_failure_is_fatal(self, config, mock_directus):
        with mock_directus(failures={"/collections": 401}):
            with pytest.raises(GenerationError, match="Failed to generate schemas") as exc_info:
                await Zodirectus(config).generate()
        assert isinstance(exc_info.value.__cause__, DirectusAPIError)

    @pytest.mark.unit
    @pytest.mark.asyncio
    async def test_server_error_on_fields_is_fatal(self, config, mock_directus):
        with mock_directus(failures={"/fields/posts": 500}):
            with pytest.raises(GenerationError, match="Failed to generate schemas") as exc_info:
                await Zodirectus(config).generate()
        assert exc_info.value.__cause__.status_code == 500
        assert not config.index_path.exists()
        assert not config.file_schemas_path.exists()

    @pytest.mark.unit
    @pytest.mark.asyncio
    async def test_unexpected_error_is_wrapped(self, config, mock_directus):
        with mock_directus(), patch.object(
            Zodirectus, "generate_all", side_effect=ValueError("bad field")
        ):
            with pytest.raises(GenerationError, match="bad field") as exc_info:
                await Zodirectus(config).generate()
        assert isinstance(exc_info.value.__cause__, ValueError)

    @pytest.mark.unit
    @pytest.mark.asyncio
    async def test_write_failure_is_fatal(self, config, mock_directus):
        with mock_directus(), patch(
            "zodirectus.pipeline.ensure_dir", side_effect=PermissionError("read-only")
        ):
            with pytest.raises(GenerationError, match="read-only"):
                await Zodirectus(config).generate()

    @pytest.mark.unit
    @pytest.mark.asyncio
    async def test_types_disabled(self, config, mock_directus):
        config.generate_types = False
        with mock_directus():
            results = {r.collection_name: r for r in await Zodirectus(config).generate()}
        assert results["posts"].type_text is None
        assert "z.lazy((): z.ZodTypeAny => DrxAuthorSchema)" in results["posts"].schema_text

    @pytest.mark.unit
    @pytest.mark.asyncio
    async def test_schemas_disabled(self, config, mock_directus):
        config.generate_schemas = False
        with mock_directus():
            results = await Zodirectus(config).generate()
        assert all(r.schema_text is None for r in results)
        assert all(r.type_text for r in results)


class TestGenerateAll:
    @pytest.mark.unit
    def test_only_circular_collections_regenerated(self, config, posts, authors, comments, relations):
        settings = CollectionWithFields(
            collection="settings",
            fields=[DirectusField.model_validate({
                "collection": "settings", "field": "site_name", "type": "string",
                "schema": {"data_type": "text"}, "meta": {},
            })],
        )
        collections = [posts, authors, comments, settings]
        context = GenerationContext(collections=collections, relations=relations)
        app = Zodirectus(config)

        with patch.object(app, "generate_collection", wraps=app.generate_collection) as spy:
            results = app.generate_all(context, collections)

        assert spy.call_count == 4 + 3
        regenerated = [c for c in spy.call_args_list if c.kwargs.get("lazy_targets")]
        assert sorted(c.args[1].collection for c in regenerated) == ["authors", "comments", "posts"]
        assert [r.collection_name for r in results] == ["posts", "authors", "comments", "settings"]


# ---------------------------------------------------------------------------
# generate_for_collection / get_collections
# ---------------------------------------------------------------------------


class TestSingleCollection:
    @pytest.mark.unit
    @pytest.mark.asyncio
    async def test_generate_for_collection(self, config, mock_directus):
        with mock_directus():
            result = await Zodirectus(config).generate_for_collection("comments")

        assert result.collection_name == "comments"
        assert "post: z.union([z.number().int(), DrxPostSchema])" not in result.schema_text
        # posts is readable but not fetched, so its key type is unknown
        assert "post: z.union([z.union([z.string(), z.number()]), DrxPostSchema])" in result.schema_text
        assert result.references == {"posts"}
        assert not config.output_dir.exists()

    @pytest.mark.unit
    @pytest.mark.asyncio
    async def test_self_reference_is_lazy(self, config, field_factory):
        categories = CollectionWithFields(
            collection="categories",
            fields=[
                DirectusField.model_validate(field_factory(
                    "categories", "id", "integer", nullable=False, primary_key=True,
                    auto_increment=True,
                )),
                DirectusField.model_validate(field_factory(
                    "categories", "parent", "integer", foreign_key_table="categories",
                    special=["m2o"],
                )),
            ],
        )
        client = AsyncMock()
        client.get_collections.return_value = _collections("categories")
        client.get_relations.return_value = []
        client.get_collection_with_fields.return_value = categories

        result = await Zodirectus(config, client=client).generate_for_collection("categories")
        assert (
            "parent: z.union([z.number().int(), "
            "z.lazy((): z.ZodType<DrsCategory> => DrxCategorySchema)]).nullable().optional(),"
        ) in result.schema_text

    @pytest.mark.unit
    @pytest.mark.asyncio
    async def test_forbidden_collection(self, config, mock_directus):
        with mock_directus():
            with pytest.raises(GenerationError, match="secrets"):
                await Zodirectus(config).generate_for_collection("secrets")

    @pytest.mark.unit
    @pytest.mark.asyncio
    async def test_get_collections(self, config, mock_directus):
        with mock_directus():
            names = await Zodirectus(config).get_collections()
        assert names == ["authors", "comments", "posts", "secrets"]

    @pytest.mark.unit
    @pytest.mark.asyncio
    async def test_get_collections_failure(self, config, mock_directus):
        with mock_directus(failures={"/collections": 503}):
            with pytest.raises(GenerationError, match="Failed to list collections"):
                await Zodirectus(config).get_collections()


# ---------------------------------------------------------------------------
# write_files
# ---------------------------------------------------------------------------


class TestWriteFiles:
    @pytest.mark.unit
    @pytest.mark.asyncio
    async def test_file_layout(self, config):
        results = [
            GeneratedSchema(collection_name="blog_posts", schema="S", type="T"),
        ]
        written = await Zodirectus(config).write_files(results)
        names = sorted(p.name for p in written)
        assert names == ["blog-posts.ts", "file-schemas.ts", "index.ts"]
        content = (config.output_dir / "blog-posts.ts").read_text(encoding="utf-8")
        assert content.endswith("import { z } from 'zod';\n\nS\n\nT\n")

    @pytest.mark.unit
    @pytest.mark.asyncio
    async def test_clashing_file_names_get_suffix(self, config):
        results = [
            GeneratedSchema(collection_name="blog_posts", schema="A", type="T"),
            GeneratedSchema(collection_name="BlogPosts", schema="B", type="T"),
        ]
        written = await Zodirectus(config).write_files(results)
        names = sorted(p.name for p in written)
        assert names == ["blog-posts-2.ts", "blog-posts.ts", "file-schemas.ts", "index.ts"]
        assert (config.output_dir / "blog-posts.ts").read_text(encoding="utf-8").endswith("B\n\nT\n")
        assert (config.output_dir / "blog-posts-2.ts").read_text(encoding="utf-8").endswith("A\n\nT\n")
        index = config.index_path.read_text(encoding="utf-8")
        assert "export * from './blog-posts';\nexport * from './blog-posts-2';" in index

    @pytest.mark.unit
    @pytest.mark.asyncio
    async def test_no_index(self, config):
        config.generate_index = False
        written = await Zodirectus(config).write_files([GeneratedSchema(collection_name="posts", schema="S")])
        assert config.index_path not in written
        assert not config.index_path.exists()
        assert config.file_schemas_path.exists()

    @pytest.mark.unit
    @pytest.mark.asyncio
    async def test_index_contents(self, config):
        results = [
            GeneratedSchema(collection_name="posts", schema="S", type="T"),
            GeneratedSchema(collection_name="authors", schema="S", type="T"),
        ]
        await Zodirectus(config).write_files(results)
        index = config.index_path.read_text(encoding="utf-8")
        assert "export * from './authors';\nexport * from './posts';" in index
        assert "import type { DrsAuthor } from './authors';" in index
        assert "export type DrsCollectionName = 'authors' | 'posts';" in index
        assert "  posts: DrsPost;" in index

    @pytest.mark.unit
    @pytest.mark.asyncio
    async def test_index_without_types(self, config):
        config.generate_types = False
        await Zodirectus(config).write_files([GeneratedSchema(collection_name="posts", schema="S")])
        index = config.index_path.read_text(encoding="utf-8")
        assert index.endswith("export * from './posts';\n")
        file_schemas = config.file_schemas_path.read_text(encoding="utf-8")
        assert "DrsFile" not in file_schemas
        assert "DrxFileSchema" in file_schemas


# ---------------------------------------------------------------------------
# build_config
# ---------------------------------------------------------------------------


class TestBuildConfig:
    @pytest.mark.unit
    def test_from_cli_options(self, tmp_path: Path):
        args = _cli_args(
            url="http://cli", token="t", output=str(tmp_path), collections="posts,authors",
            include_system=True, no_types=True, no_index=True,
        )
        with patch.dict(os.environ, {}, clear=True):
            config = build_config(args)
        assert config.directus_url == "http://cli"
        assert config.output_dir == tmp_path
        assert config.collections == ["posts", "authors"]
        assert config.include_system_collections is True
        assert config.generate_types is False
        assert config.generate_schemas is True
        assert config.generate_index is False

    @pytest.mark.unit
    def test_unset_flags_keep_env(self):
        with patch.dict(os.environ, {"DIRECTUS_URL": "http://env", "ZODIRECTUS_INCLUDE_SYSTEM": "1"}, clear=True):
            config = build_config(_cli_args())
        assert config.directus_url == "http://env"
        assert config.include_system_collections is True

    @pytest.mark.unit
    def test_config_file_with_overrides(self, tmp_path: Path):
        path = ZodirectusConfig(
            directus_url="http://file", token="file-token", generate_index=False
        ).save(tmp_path / "zodirectus.json")
        config = build_config(_cli_args(config=str(path), token="cli-token"))
        assert config.directus_url == "http://file"
        assert config.token == "cli-token"
        assert config.generate_index is False


# ---------------------------------------------------------------------------
# CLI
# ---------------------------------------------------------------------------


class TestMain:
    @pytest.mark.unit
    def test_list(self, tmp_path: Path):
        with patch("zodirectus.pipeline.Zodirectus.get_collections",
                   AsyncMock(return_value=["authors", "posts"])), \
                patch("zodirectus.pipeline.console") as console:
            main(["--url", "http://x", "--token", "t", "--list"])
        printed = [c[0][0] for c in console.print.call_args_list]
        assert printed == ["authors", "posts"]

    @pytest.mark.unit
    def test_generate(self, tmp_path: Path):
        generate = AsyncMock(return_value=[GeneratedSchema(collection_name="posts")])
        with patch("zodirectus.pipeline.Zodirectus.generate", generate), \
                patch("zodirectus.pipeline.print_success") as success:
            main(["--url", "http://x", "-o", str(tmp_path)])
        generate.assert_awaited_once()
        assert "Generated 1 collection(s)" in success.call_args[0][0]

    @pytest.mark.unit
    def test_generation_error_exits_1(self):
        generate = AsyncMock(side_effect=GenerationError("Failed to generate schemas: down"))
        with patch("zodirectus.pipeline.Zodirectus.generate", generate), \
                patch("zodirectus.pipeline.print_error") as error:
            with pytest.raises(SystemExit) as exc_info:
                main(["--url", "http://x"])
        assert exc_info.value.code == 1
        assert "down" in error.call_args[0][0]

    @pytest.mark.unit
    def test_invalid_config_exits_1(self):
        with patch.dict(os.environ, {}, clear=True), \
                patch("zodirectus.pipeline.print_error") as error:
            with pytest.raises(SystemExit) as exc_info:
                main([])
        assert exc_info.value.code == 1
        assert "Invalid configuration" in error.call_args[0][0]

    @pytest.mark.unit
    def test_missing_config_file_exits_1(self, tmp_path: Path):
        with patch("zodirectus.pipeline.print_error"):
            with pytest.raises(SystemExit):
                main(["--config", str(tmp_path / "missing.json")])

    @pytest.mark.unit
    def test_saved_config_is_json(self, tmp_path: Path):
        path = ZodirectusConfig(directus_url="http://x").save(tmp_path / "c.json")
        assert json.loads(path.read_text(encoding="utf-8"))["directus_url"] == "http://x"
