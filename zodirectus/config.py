"""zodirectus configuration.

Centralised, typed configuration for a generation run. All settings use
Pydantic v2 models so they can be validated at construction time and
serialised to/from JSON or environment variables without boiler-plate.
"""

from __future__ import annotations

import os
from pathlib import Path
from typing import Any

from pydantic import BaseModel, Field, field_validator, model_validator


SYSTEM_COLLECTION_PREFIX = "directus_"

_TRUTHY = {"1", "true", "yes", "on"}


class ZodirectusConfig(BaseModel):
    """Settings for one generation run against a Directus instance.

    Instances are typically created once by the CLI entry point (or by
    library callers) and then handed to ``Zodirectus``, which passes them
    on to the client and the generators.
    """

    directus_url: str = Field(..., min_length=1, description="Base URL of the Directus instance")
    token: str | None = Field(default=None, description="Static access token")
    email: str | None = Field(default=None, description="Login e-mail for /auth/login")
    password: str | None = Field(default=None, description="Login password for /auth/login")

    output_dir: Path = Field(default=Path("./generated"))
    generate_types: bool = Field(default=True)
    generate_schemas: bool = Field(default=True)
    generate_index: bool = Field(default=True, description="Write an index.ts barrel file")

    collections: list[str] | None = Field(
        default=None, description="Restrict generation to these collections"
    )
    include_system_collections: bool = Field(default=False)

    custom_field_mappings: dict[str, str] = Field(
        default_factory=dict,
        description="Directus type -> Zod expression for types the built-in table does not know",
    )
    custom_type_mappings: dict[str, str] = Field(
        default_factory=dict,
        description="Directus type -> TypeScript type for types the built-in table does not know",
    )

    timeout: int = Field(default=30, ge=1, description="Per-request timeout in seconds")

    # ------------------------------------------------------------------
    # Validation
    # ------------------------------------------------------------------

    @field_validator("directus_url")
    @classmethod
    def _strip_trailing_slash(cls, value: str) -> str:
        return value.rstrip("/")

    @model_validator(mode="after")
    def _check_consistency(self) -> "ZodirectusConfig":
        if not (self.generate_types or self.generate_schemas):
            raise ValueError("At least one of generate_types / generate_schemas must be enabled")
        if bool(self.email) != bool(self.password):
            raise ValueError("email and password must be provided together")
        return self

    # ------------------------------------------------------------------
    # Derived values
    # ------------------------------------------------------------------

    @property
    def uses_login(self) -> bool:
        """``True`` when credentials (not a static token) should be exchanged."""
        return not self.token and bool(self.email and self.password)

    @property
    def file_schemas_path(self) -> Path:
        """Path to the shared ``file-schemas.ts``."""
        return self.output_dir / "file-schemas.ts"

    @property
    def index_path(self) -> Path:
        """Path to the ``index.ts`` barrel."""
        return self.output_dir / "index.ts"

    def is_system_collection(self, name: str) -> bool:
        return name.startswith(SYSTEM_COLLECTION_PREFIX)

    # ------------------------------------------------------------------
    # Serialisation helpers
    # ------------------------------------------------------------------

    def save(self, path: Path) -> Path:
        """Persist the configuration to a JSON file.

        Args:
            path: Destination file.

        Returns:
            The path where the file was written.
        """
        target = Path(path)
        target.parent.mkdir(parents=True, exist_ok=True)
        target.write_text(self.model_dump_json(indent=2), encoding="utf-8")
        return target

    @classmethod
    def load(cls, path: Path) -> "ZodirectusConfig":
        """Load a previously-saved configuration from JSON."""
        raw = Path(path).read_text(encoding="utf-8")
        return cls.model_validate_json(raw)

    @classmethod
    def from_env(cls, **overrides: Any) -> "ZodirectusConfig":
        """Build a ``ZodirectusConfig`` from environment variables.

        Recognised variables:
            DIRECTUS_URL (required unless passed in *overrides*),
            DIRECTUS_TOKEN, DIRECTUS_EMAIL, DIRECTUS_PASSWORD,
            ZODIRECTUS_OUTPUT_DIR, ZODIRECTUS_COLLECTIONS,
            ZODIRECTUS_INCLUDE_SYSTEM, ZODIRECTUS_TIMEOUT.

        Keyword *overrides* win over the environment; ``None`` values are
        ignored so CLI callers can pass unset options straight through.
        """
        kwargs: dict[str, Any] = {"directus_url": os.environ.get("DIRECTUS_URL", "")}
        if os.environ.get("DIRECTUS_TOKEN"):
            kwargs["token"] = os.environ["DIRECTUS_TOKEN"]
        if os.environ.get("DIRECTUS_EMAIL"):
            kwargs["email"] = os.environ["DIRECTUS_EMAIL"]
        if os.environ.get("DIRECTUS_PASSWORD"):
            kwargs["password"] = os.environ["DIRECTUS_PASSWORD"]
        if os.environ.get("ZODIRECTUS_OUTPUT_DIR"):
            kwargs["output_dir"] = Path(os.environ["ZODIRECTUS_OUTPUT_DIR"])
        if os.environ.get("ZODIRECTUS_COLLECTIONS"):
            kwargs["collections"] = parse_collection_list(os.environ["ZODIRECTUS_COLLECTIONS"])
        if os.environ.get("ZODIRECTUS_INCLUDE_SYSTEM"):
            kwargs["include_system_collections"] = (
                os.environ["ZODIRECTUS_INCLUDE_SYSTEM"].strip().lower() in _TRUTHY
            )
        if os.environ.get("ZODIRECTUS_TIMEOUT"):
            kwargs["timeout"] = int(os.environ["ZODIRECTUS_TIMEOUT"])

        kwargs.update({k: v for k, v in overrides.items() if v is not None})
        return cls(**kwargs)


def parse_collection_list(raw: str) -> list[str]:
    """Split a comma-separated collection list, dropping blanks."""
    return [name.strip() for name in raw.split(",") if name.strip()]
