"""Collection names (schema-in-code) and the storage keys they map to.

The key-value store has no DDL. A collection exists once it is first written.
Use these constants so collection names stay consistent across the engine.
"""

from __future__ import annotations

COLLECTION_USERS = "users"
COLLECTION_PROJECTS = "projects"
COLLECTION_LEADS = "leads"
COLLECTION_DEFAULTS = "defaults"

# Tab-scoped; lives in the session slot, never in the shared store.
SESSION_KEY_NAME = "session"

PERSISTED_COLLECTIONS: tuple[str, ...] = (
    COLLECTION_USERS,
    COLLECTION_PROJECTS,
    COLLECTION_LEADS,
    COLLECTION_DEFAULTS,
)


def storage_key(name: str, version: str = "v3") -> str:
    """Map a collection name to its namespaced storage key: users -> crc_users_v3."""
    return f"crc_{name}_{version}"
