"""Document store provider implementations.

Each provider module exports a `Provider` class alias for the main provider class,
along with its collection and configuration types.

Available providers:
- memory: process-local store, no dependencies
- postgres: PostgreSQL JSONB table via asyncpg (requires the `postgres` extra)
- firestore: Google Cloud Firestore (requires the `firestore` extra)

Only `memory` is imported here; import the others by module path.
"""

from nvisy_pages.providers import memory

__all__ = [
    "memory",
]
