"""
Tests for index client construction.
"""
import pytest

from config.settings import Settings
from searchindex import (
    INDEX_BACKENDS,
    InMemoryIndexClient,
    MeilisearchIndexClient,
    create_index_client,
    index_client_from_settings,
    list_index_clients,
)


def test_list_index_clients():
    """Verifica que están disponibles los backends incluidos"""
    assert list_index_clients() == ["meilisearch", "memory"]
    assert INDEX_BACKENDS["memory"] is InMemoryIndexClient


def test_create_memory_client():
    client = create_index_client("memory", index_name="test_docs", batch_size=10)
    assert isinstance(client, InMemoryIndexClient)
    assert client.index_name == "test_docs"
    assert client.batch_size == 10


def test_create_meilisearch_client():
    client = create_index_client("meilisearch", base_url="http://127.0.0.1:7701/", api_key="k")
    assert isinstance(client, MeilisearchIndexClient)
    assert client.index_endpoint == "http://127.0.0.1:7701/indexes/documents"


def test_unknown_backend():
    with pytest.raises(ValueError, match="Unknown index backend 'elastic'"):
        create_index_client("elastic")


class TestIndexClientFromSettings:
    """Tests para la construcción desde la configuración"""

    def test_memory_backend_uses_index_settings(self):
        settings = Settings(INDEX_BACKEND="memory", MEILISEARCH_INDEX="docs", INDEX_BATCH_SIZE=7)
        client = index_client_from_settings(settings)

        assert isinstance(client, InMemoryIndexClient)
        assert client.index_name == "docs"
        assert client.batch_size == 7

    def test_meilisearch_backend_follows_url_provider(self):
        urls = ["http://127.0.0.1:7700"]
        settings = Settings(INDEX_BACKEND="meilisearch", MEILISEARCH_REQUEST_TIMEOUT=3.0)
        client = index_client_from_settings(settings, base_url=lambda: urls[-1], api_key="k")

        assert isinstance(client, MeilisearchIndexClient)
        assert client.api_key == "k"
        assert client.request_timeout == 3.0
        assert client.base_url == "http://127.0.0.1:7700"

        urls.append("http://127.0.0.1:7800/")
        assert client.index_endpoint == "http://127.0.0.1:7800/indexes/documents"

    def test_meilisearch_backend_default_url(self):
        client = index_client_from_settings(Settings(INDEX_BACKEND="meilisearch"))
        assert client.base_url == "http://127.0.0.1:7700"
