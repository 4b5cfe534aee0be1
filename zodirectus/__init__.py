"""zodirectus -- generate Zod schemas and TypeScript types from Directus.

Quick usage::

    import asyncio
    from zodirectus import Zodirectus, ZodirectusConfig

    config = ZodirectusConfig(directus_url="http://localhost:8055", token="...")
    results = asyncio.run(Zodirectus(config).generate())
"""

from zodirectus.config import ZodirectusConfig
from zodirectus.directus_client import DirectusAPIError, DirectusClient
from zodirectus.models import GeneratedSchema
from zodirectus.pipeline import GenerationError, Zodirectus

__version__ = "0.1.0"

__all__ = [
    "DirectusAPIError",
    "DirectusClient",
    "GeneratedSchema",
    "GenerationError",
    "Zodirectus",
    "ZodirectusConfig",
]
