"""Shared pytest fixtures for the zodirectus test suite.

Provides reusable fixtures for:
- Raw Directus payloads (collections, fields, relations) for a small blog
  schema: ``posts`` <-> ``authors`` and ``posts`` <-> ``comments`` form a
  cycle, ``posts.cover`` is an image file
- Parsed metadata models and a ready ``GenerationContext``
- A mocked ``httpx.AsyncClient`` that serves the payloads by path
- A configuration writing into a temporary directory
"""

from __future__ import annotations

from pathlib import Path
from typing import Any
from unittest.mock import AsyncMock, MagicMock, patch
from urllib.parse import unquote

import pytest

from zodirectus.config import ZodirectusConfig
from zodirectus.generators.field_mapping import GenerationContext
from zodirectus.models import CollectionWithFields, DirectusField, DirectusRelation


# ---------------------------------------------------------------------------
# Payload builders
# ---------------------------------------------------------------------------

def make_field(
    collection: str,
    field: str,
    type_: str = "string",
    *,
    data_type: str | None = None,
    nullable: bool = True,
    primary_key: bool = False,
    auto_increment: bool = False,
    max_length: int | None = None,
    foreign_key_table: str | None = None,
    interface: str | None = "input",
    special: list[str] | None = None,
    options: dict[str, Any] | None = None,
    hidden: bool = False,
    readonly: bool = False,
    required: bool = False,
    alias: bool = False,
) -> dict[str, Any]:
    """Build a field payload shaped like ``GET /fields/{collection}``."""
    schema = None
    if not alias:
        schema = {
            "name": field,
            "table": collection,
            "data_type": data_type or type_,
            "default_value": None,
            "max_length": max_length,
            "is_nullable": nullable,
            "is_unique": primary_key,
            "is_primary_key": primary_key,
            "has_auto_increment": auto_increment,
            "foreign_key_table": foreign_key_table,
            "foreign_key_column": "id" if foreign_key_table else None,
        }
    return {
        "collection": collection,
        "field": field,
        "type": type_,
        "schema": schema,
        "meta": {
            "collection": collection,
            "field": field,
            "interface": interface,
            "special": special,
            "options": options,
            "hidden": hidden,
            "readonly": readonly,
            "required": required,
            "note": None,
        },
    }


def make_collection(name: str, folder: bool = False) -> dict[str, Any]:
    """Build a collection payload shaped like ``GET /collections``."""
    return {
        "collection": name,
        "meta": {"collection": name, "hidden": False, "singleton": False, "icon": None},
        "schema": None if folder else {"name": name},
    }


def make_relation(
    collection: str,
    field: str,
    related_collection: str | None,
    one_field: str | None = None,
    junction_field: str | None = None,
) -> dict[str, Any]:
    """Build a relation payload shaped like ``GET /relations``."""
    return {
        "collection": collection,
        "field": field,
        "related_collection": related_collection,
        "meta": {
            "many_collection": collection,
            "many_field": field,
            "one_collection": related_collection,
            "one_field": one_field,
            "junction_field": junction_field,
        },
    }


def _posts_fields() -> list[dict[str, Any]]:
    return [
        make_field("posts", "id", "integer", nullable=False, primary_key=True,
                   auto_increment=True, readonly=True),
        make_field("posts", "title", "string", data_type="character varying",
                   max_length=255, nullable=False, required=True),
        make_field(
            "posts", "status", "string", data_type="character varying", max_length=255,
            nullable=False, required=True, interface="select-dropdown",
            options={"choices": [
                {"text": "Draft", "value": "draft"},
                {"text": "Published", "value": "published"},
            ]},
        ),
        make_field("posts", "body", "text", interface="input-rich-text-html"),
        make_field("posts", "author", "uuid", foreign_key_table="authors",
                   interface="select-dropdown-m2o", special=["m2o"]),
        make_field("posts", "cover", "uuid", foreign_key_table="directus_files",
                   interface="file-image", special=["file"]),
        make_field("posts", "tags", "csv", data_type="text", interface="tags",
                   special=["cast-csv"]),
        make_field("posts", "date_created", "timestamp", data_type="timestamp with time zone",
                   interface="datetime", special=["date-created"], readonly=True),
        make_field("posts", "user_created", "uuid", foreign_key_table="directus_users",
                   interface="select-dropdown-m2o", special=["user-created"], readonly=True),
        make_field("posts", "comments", "alias", interface="list-o2m", special=["o2m"],
                   alias=True),
        make_field("posts", "divider-meta", "alias", interface="presentation-divider",
                   special=["alias", "no-data"], alias=True),
        make_field("posts", "secret", "string", hidden=True),
    ]


def _authors_fields() -> list[dict[str, Any]]:
    return [
        make_field("authors", "id", "uuid", nullable=False, primary_key=True,
                   special=["uuid"], readonly=True),
        make_field("authors", "name", "string", data_type="character varying",
                   max_length=100, nullable=False, required=True),
        make_field("authors", "posts", "alias", interface="list-o2m", special=["o2m"],
                   alias=True),
    ]


def _comments_fields() -> list[dict[str, Any]]:
    return [
        make_field("comments", "id", "integer", nullable=False, primary_key=True,
                   auto_increment=True, readonly=True),
        make_field("comments", "post", "integer", foreign_key_table="posts",
                   interface="select-dropdown-m2o", special=["m2o"]),
        make_field("comments", "body", "text", nullable=False, required=True),
    ]


# ---------------------------------------------------------------------------
# Raw payload fixtures
# ---------------------------------------------------------------------------

@pytest.fixture
def field_factory():
    """The ``make_field`` payload builder, for tests that need ad-hoc fields."""
    return make_field


@pytest.fixture
def directus_payloads() -> dict[str, Any]:
    """Raw ``data`` members for every endpoint of the sample instance.

    ``secrets`` is listed but its fields are forbidden; ``content`` is a
    folder; ``directus_users`` is a system collection.
    """
    return {
        "collections": [
            make_collection("authors"),
            make_collection("comments"),
            make_collection("content", folder=True),
            make_collection("directus_users"),
            make_collection("posts"),
            make_collection("secrets"),
        ],
        "fields": {
            "posts": _posts_fields(),
            "authors": _authors_fields(),
            "comments": _comments_fields(),
            "directus_users": [
                make_field("directus_users", "id", "uuid", nullable=False,
                           primary_key=True, special=["uuid"]),
                make_field("directus_users", "email", "string", max_length=128),
            ],
        },
        "relations": [
            make_relation("posts", "author", "authors", one_field="posts"),
            make_relation("comments", "post", "posts", one_field="comments"),
            make_relation("posts", "cover", "directus_files"),
            make_relation("posts", "user_created", "directus_users"),
        ],
    }


# ---------------------------------------------------------------------------
# Parsed model fixtures
# ---------------------------------------------------------------------------

def _with_fields(name: str, payloads: dict[str, Any]) -> CollectionWithFields:
    return CollectionWithFields(
        collection=name,
        fields=[DirectusField.model_validate(f) for f in payloads["fields"][name]],
    )


@pytest.fixture
def posts(directus_payloads: dict[str, Any]) -> CollectionWithFields:
    return _with_fields("posts", directus_payloads)


@pytest.fixture
def authors(directus_payloads: dict[str, Any]) -> CollectionWithFields:
    return _with_fields("authors", directus_payloads)


@pytest.fixture
def comments(directus_payloads: dict[str, Any]) -> CollectionWithFields:
    return _with_fields("comments", directus_payloads)


@pytest.fixture
def relations(directus_payloads: dict[str, Any]) -> list[DirectusRelation]:
    return [DirectusRelation.model_validate(r) for r in directus_payloads["relations"]]


@pytest.fixture
def context(
    posts: CollectionWithFields,
    authors: CollectionWithFields,
    comments: CollectionWithFields,
    relations: list[DirectusRelation],
) -> GenerationContext:
    """Context for the three blog collections, all of them generated."""
    return GenerationContext(collections=[posts, authors, comments], relations=relations)


# ---------------------------------------------------------------------------
# Config fixture
# ---------------------------------------------------------------------------

@pytest.fixture
def config(tmp_path: Path) -> ZodirectusConfig:
    """Token-authenticated config writing into a temporary directory."""
    return ZodirectusConfig(
        directus_url="http://directus.test",
        token="static-token",
        output_dir=tmp_path / "generated",
    )


# ---------------------------------------------------------------------------
# Mock Directus API
# ---------------------------------------------------------------------------

def make_response(status_code: int, payload: Any) -> MagicMock:
    """A mocked ``httpx.Response`` returning *payload* from ``json()``."""
    response = MagicMock()
    response.status_code = status_code
    response.json.return_value = payload
    response.text = str(payload)
    return response


@pytest.fixture
def mock_directus(directus_payloads: dict[str, Any]):
    """Factory patching httpx.AsyncClient to serve ``directus_payloads``.

    Requests are routed by path. ``failures`` maps a path to an HTTP status
    that is returned instead of data. Unknown field listings answer 403,
    like Directus does for collections the role cannot read.

    Usage:
        def test_something(mock_directus):
            with mock_directus() as client_cls:
                # Code that calls Directus receives the sample payloads
                ...
    """

    def factory(failures: dict[str, int] | None = None, login_token: str = "login-token"):
        failures = failures or {}

        async def mock_request(method: str, url: str, **kwargs: Any) -> MagicMock:
            if url in failures:
                return make_response(
                    failures[url],
                    {"errors": [{"message": "You don't have permission to access this."}]},
                )
            if url == "/auth/login":
                return make_response(
                    200, {"data": {"access_token": login_token, "expires": 900000}}
                )
            if url == "/collections":
                return make_response(200, {"data": directus_payloads["collections"]})
            if url == "/relations":
                return make_response(200, {"data": directus_payloads["relations"]})
            if url.startswith("/fields/"):
                name = unquote(url[len("/fields/"):])
                if name in directus_payloads["fields"]:
                    return make_response(200, {"data": directus_payloads["fields"][name]})
                return make_response(
                    403, {"errors": [{"message": "You don't have permission to access this."}]}
                )
            return make_response(404, {"errors": [{"message": "Route doesn't exist."}]})

        mock_client = AsyncMock()
        mock_client.request = AsyncMock(side_effect=mock_request)
        mock_client.__aenter__ = AsyncMock(return_value=mock_client)
        mock_client.__aexit__ = AsyncMock(return_value=False)

        return patch("httpx.AsyncClient", return_value=mock_client)

    return factory
