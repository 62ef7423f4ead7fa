"""
Search index module: client for the full-text engine that stores chunks.
"""
from searchindex.base import (
    BaseIndexClient,
    PRIMARY_KEY,
    file_id_filter,
    index_settings
)
from searchindex.memory import InMemoryIndexClient
from searchindex.meilisearch_client import MeilisearchIndexClient
from searchindex.factory import (
    INDEX_BACKENDS,
    create_index_client,
    index_client_from_settings,
    list_index_clients
)

__all__ = [
    # Factory
    "INDEX_BACKENDS",
    "create_index_client",
    "index_client_from_settings",
    "list_index_clients",
    # Clients
    "BaseIndexClient",
    "InMemoryIndexClient",
    "MeilisearchIndexClient",
    # Helpers
    "PRIMARY_KEY",
    "file_id_filter",
    "index_settings"
]
