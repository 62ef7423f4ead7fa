"""
Unit tests for InMemoryIndexClient search behaviour.
"""
import pytest

from domain.errors import IndexClientError
from searchindex.memory import InMemoryIndexClient


def doc(doc_id, file_id, content, file_name="a.pdf", created_at=1):
    return {
        "id": doc_id,
        "fileId": file_id,
        "fileName": file_name,
        "fileType": file_name.rsplit(".", 1)[-1],
        "content": content,
        "filePath": f"/docs/{file_name}",
        "createdAt": created_at,
    }


@pytest.fixture
async def client():
    client = InMemoryIndexClient()
    await client.ensure_index()
    await client.add_documents([
        doc("1", "fa", "The quick brown fox jumps", "a.pdf", 3),
        doc("2", "fa", "A lazy dog sleeps", "a.pdf", 1),
        doc("3", "fb", "Quick thinking saves the fox", "b.txt", 2),
    ])
    return client


class TestInMemorySearch:
    """Tests para la búsqueda en memoria"""

    async def test_all_terms_must_match(self, client):
        result = await client.search("quick fox", {})
        assert {h["id"] for h in result["hits"]} == {"1", "3"}
        assert result["estimatedTotalHits"] == 2

    async def test_empty_query_matches_everything(self, client):
        result = await client.search("", {"limit": 0})
        assert result["hits"] == []
        assert result["estimatedTotalHits"] == 3

    async def test_filter(self, client):
        result = await client.search("fox", {"filter": 'fileId = "fb"'})
        assert [h["id"] for h in result["hits"]] == ["3"]

    async def test_filter_with_and(self, client):
        result = await client.search("", {"filter": 'fileId = "fa" AND fileType = "pdf"'})
        assert result["estimatedTotalHits"] == 2

    async def test_unsupported_filter(self, client):
        with pytest.raises(IndexClientError) as exc_info:
            await client.search("fox", {"filter": "createdAt > 2"})
        assert exc_info.value.code == "invalid_search_filter"

    async def test_facets(self, client):
        result = await client.search("fox", {"limit": 0, "facets": ["fileId"]})
        assert result["facetDistribution"] == {"fileId": {"fa": 1, "fb": 1}}

    async def test_sort_and_pagination(self, client):
        result = await client.search("", {"sort": ["createdAt:desc"], "limit": 2, "offset": 1})
        assert [h["id"] for h in result["hits"]] == ["3", "2"]

    async def test_attributes_to_retrieve(self, client):
        result = await client.search("dog", {"attributesToRetrieve": ["id", "fileName"]})
        assert result["hits"][0] == {"id": "2", "fileName": "a.pdf"}

    async def test_highlight_and_crop(self, client):
        result = await client.search("fox", {
            "filter": 'fileId = "fa"',
            "attributesToCrop": ["content"],
            "cropLength": 2,
            "cropMarker": "...",
            "attributesToHighlight": ["content"],
            "highlightPreTag": "<mark>",
            "highlightPostTag": "</mark>",
            "showMatchesPosition": True,
        })
        hit = result["hits"][0]
        assert "<mark>fox</mark>" in hit["_formatted"]["content"]
        assert hit["_formatted"]["content"].startswith("...")
        assert hit["_matchesPosition"]["content"] == [{"start": 16, "length": 3}]

    async def test_stats(self, client):
        stats = await client.stats()
        assert stats.number_of_documents == 3
        assert stats.field_distribution["content"] == 3
