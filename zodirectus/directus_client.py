"""Async client for the Directus REST API.

Wraps the metadata endpoints the generators need (``/collections``,
``/fields/{collection}``, ``/relations``) plus ``/auth/login`` for
credential-based access. Every payload is unwrapped from the Directus
``{"data": ...}`` envelope and validated into the models in
``zodirectus.models``.

Typical usage::

    client = DirectusClient(config)
    await client.authenticate()
    for collection in await client.get_collections():
        print(collection.collection)
"""

from __future__ import annotations

from typing import Any
from urllib.parse import quote

import httpx
from pydantic import ValidationError

from zodirectus.config import ZodirectusConfig
from zodirectus.models import (
    CollectionWithFields,
    DirectusCollection,
    DirectusField,
    DirectusRelation,
)


class DirectusAPIError(Exception):
    """Raised when a Directus request fails or returns an unusable payload."""

    def __init__(self, message: str, status_code: int | None = None) -> None:
        self.status_code = status_code
        super().__init__(message)

    @property
    def is_access_error(self) -> bool:
        """``True`` for 401/403, which Directus returns for forbidden collections."""
        return self.status_code in (401, 403)


class DirectusClient:
    """Async client for the Directus REST API.

    The client uses a fresh ``httpx.AsyncClient`` per request and carries
    the bearer token obtained by :meth:`authenticate`.
    """

    def __init__(self, config: ZodirectusConfig) -> None:
        self.config = config
        self.base_url = config.directus_url.rstrip("/")
        self.timeout = config.timeout
        self._access_token: str | None = config.token

    # ------------------------------------------------------------------
    # Internal helpers
    # ------------------------------------------------------------------

    def _client(self) -> httpx.AsyncClient:
        """Return a fresh ``AsyncClient`` configured with our base URL, auth and timeout."""
        headers = {"Accept": "application/json"}
        if self._access_token:
            headers["Authorization"] = f"Bearer {self._access_token}"
        return httpx.AsyncClient(
            base_url=self.base_url,
            headers=headers,
            timeout=httpx.Timeout(self.timeout, connect=10.0),
        )

    @staticmethod
    def _error_message(response: httpx.Response) -> str:
        """Pull the first Directus error message out of an error response.

        Directus reports failures as ``{"errors": [{"message": ...}]}``; fall
        back to the raw body when the response is not in that shape.
        """
        try:
            payload = response.json()
        except ValueError:
            return response.text[:500]
        errors = payload.get("errors") if isinstance(payload, dict) else None
        if errors and isinstance(errors, list) and isinstance(errors[0], dict):
            return str(errors[0].get("message", "Unknown error"))
        return response.text[:500]

    @staticmethod
    def _unwrap(payload: Any, path: str) -> Any:
        """Return the ``data`` member of a Directus response."""
        if not isinstance(payload, dict) or "data" not in payload:
            raise DirectusAPIError(f"Unexpected response shape from {path}: missing 'data'")
        return payload["data"]

    async def _request(self, method: str, path: str, **kwargs: Any) -> Any:
        """Perform one request and return the unwrapped ``data`` member."""
        try:
            async with self._client() as client:
                response = await client.request(method, path, **kwargs)
                if response.status_code >= 400:
                    raise DirectusAPIError(
                        f"Directus returned HTTP {response.status_code} for {path}: "
                        f"{self._error_message(response)}",
                        status_code=response.status_code,
                    )
                try:
                    payload = response.json()
                except ValueError as exc:
                    raise DirectusAPIError(f"Invalid JSON from {path}: {exc}") from exc
                return self._unwrap(payload, path)
        except httpx.ConnectError as exc:
            raise DirectusAPIError(
                f"Cannot connect to Directus at {self.base_url}. Is the server running?"
            ) from exc
        except httpx.TimeoutException as exc:
            raise DirectusAPIError(
                f"Request to {path} timed out after {self.timeout}s."
            ) from exc
        except httpx.HTTPError as exc:
            raise DirectusAPIError(f"HTTP error during request to {path}: {exc}") from exc

    # ------------------------------------------------------------------
    # Public API
    # ------------------------------------------------------------------

    @property
    def is_authenticated(self) -> bool:
        return self._access_token is not None

    async def authenticate(self) -> None:
        """Obtain an access token.

        A static token is used as-is. E-mail/password credentials are
        exchanged at ``/auth/login``. Without either, requests go out
        anonymously and Directus applies its public role.

        Raises:
            DirectusAPIError: If the login request fails or returns no token.
        """
        if self.config.token:
            self._access_token = self.config.token
            return
        if not self.config.uses_login:
            return

        data = await self._request(
            "POST",
            "/auth/login",
            json={"email": self.config.email, "password": self.config.password},
        )
        token = data.get("access_token") if isinstance(data, dict) else None
        if not token:
            raise DirectusAPIError("Login succeeded but no access_token was returned")
        self._access_token = token

    async def get_collections(self) -> list[DirectusCollection]:
        """Return every collection visible to the current role."""
        data = await self._request("GET", "/collections")
        return self._validate_list(DirectusCollection, data, "/collections")

    async def get_fields(self, collection: str) -> list[DirectusField]:
        """Return the fields of *collection*."""
        path = f"/fields/{quote(collection, safe='')}"
        data = await self._request("GET", path)
        return self._validate_list(DirectusField, data, path)

    async def get_relations(self) -> list[DirectusRelation]:
        """Return every relation visible to the current role."""
        data = await self._request("GET", "/relations")
        return self._validate_list(DirectusRelation, data, "/relations")

    async def get_collection_with_fields(
        self,
        collection: str,
        known: DirectusCollection | None = None,
    ) -> CollectionWithFields:
        """Return *collection* together with its fields.

        Args:
            collection: Collection name.
            known: The collection record when the caller already has it
                (saves a lookup; only its ``meta`` is used).
        """
        fields = await self.get_fields(collection)
        return CollectionWithFields(
            collection=collection,
            meta=known.meta if known else None,
            fields=fields,
        )

    # ------------------------------------------------------------------

    @staticmethod
    def _validate_list(model: type, data: Any, path: str) -> list:
        if not isinstance(data, list):
            raise DirectusAPIError(f"Expected a list from {path}, got {type(data).__name__}")
        try:
            return [model.model_validate(item) for item in data]
        except ValidationError as exc:
            raise DirectusAPIError(f"Malformed payload from {path}: {exc}") from exc
