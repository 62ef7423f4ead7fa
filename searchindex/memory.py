"""
In-memory index client.

Useful for development, testing and running without the engine binary.
Non persistent: data is lost when the process ends. Tasks resolve
immediately. Matching is a case-insensitive substring test of every query
term against the searchable attributes; filters support ``attr = "value"``
clauses joined with AND.
"""
from __future__ import annotations

import copy
import itertools
import logging
import re
import time
from typing import Any, Dict, List, Optional, Tuple

from domain.errors import IndexClientError
from domain.models import IndexStats, IndexTask, TaskStatus
from searchindex.base import BaseIndexClient, PRIMARY_KEY

logger = logging.getLogger(__name__)

_FILTER_CLAUSE = re.compile(r"""^\s*(\w+)\s*=\s*(?:"((?:[^"\\]|\\.)*)"|'([^']*)'|(\S+))\s*$""")


def _parse_filter(expression: Optional[str]) -> List[Tuple[str, str]]:
    if not expression:
        return []
    clauses = []
    for part in re.split(r"\s+AND\s+", expression.strip(), flags=re.IGNORECASE):
        match = _FILTER_CLAUSE.match(part)
        if not match:
            raise IndexClientError(
                f"Unsupported filter expression: {expression}", code="invalid_search_filter"
            )
        attr, dq, sq, bare = match.groups()
        value = dq if dq is not None else sq if sq is not None else bare
        clauses.append((attr, value.replace('\\"', '"').replace("\\\\", "\\")))
    return clauses


class InMemoryIndexClient(BaseIndexClient):
    """
    Implementación en memoria del cliente de índice.
    """

    def __init__(self, **kwargs):
        super().__init__(**kwargs)
        self._documents: Dict[str, Dict[str, Any]] = {}
        self._tasks: Dict[int, IndexTask] = {}
        self._task_ids = itertools.count()
        self._exists = False
        self._primary_key = PRIMARY_KEY
        self.settings: Dict[str, Any] = {}

    # ------------------------------------------------------------------
    # Helpers
    # ------------------------------------------------------------------

    def _task(
        self,
        status: TaskStatus = TaskStatus.SUCCEEDED,
        error: Optional[str] = None,
        details: Optional[Dict[str, Any]] = None,
    ) -> IndexTask:
        task = IndexTask(
            uid=next(self._task_ids), status=status, error_message=error, details=details or {}
        )
        self._tasks[task.uid] = task
        return IndexTask(uid=task.uid, status=TaskStatus.ENQUEUED)

    def _matches_filter(self, doc: Dict[str, Any], clauses: List[Tuple[str, str]]) -> bool:
        return all(str(doc.get(attr)) == value for attr, value in clauses)

    def _matches_query(self, doc: Dict[str, Any], terms: List[str]) -> bool:
        if not terms:
            return True
        haystack = " ".join(
            str(doc.get(attr, "")) for attr in self._searchable()
        ).lower()
        return all(term in haystack for term in terms)

    def _searchable(self) -> List[str]:
        return self.settings.get("searchableAttributes") or ["content", "fileName", "filePath"]

    @staticmethod
    def _highlight(text: str, terms: List[str], pre: str, post: str) -> str:
        if not terms:
            return text
        pattern = re.compile("|".join(re.escape(t) for t in terms), re.IGNORECASE)
        return pattern.sub(lambda m: f"{pre}{m.group(0)}{post}", text)

    @staticmethod
    def _crop(text: str, terms: List[str], length: int, marker: str) -> str:
        words = text.split()
        if len(words) <= length:
            return text
        lowered = [w.lower() for w in words]
        first = next(
            (i for i, w in enumerate(lowered) if any(t in w for t in terms)), 0
        )
        start = max(0, min(first - length // 2, len(words) - length))
        cropped = " ".join(words[start:start + length])
        prefix = marker if start > 0 else ""
        suffix = marker if start + length < len(words) else ""
        return f"{prefix}{cropped}{suffix}"

    @staticmethod
    def _positions(text: str, terms: List[str]) -> List[Dict[str, int]]:
        lowered = text.lower()
        found = []
        for term in terms:
            for match in re.finditer(re.escape(term), lowered):
                found.append({"start": match.start(), "length": len(term)})
        return sorted(found, key=lambda p: p["start"])

    # ------------------------------------------------------------------
    # Transport primitives
    # ------------------------------------------------------------------

    async def index_exists(self) -> bool:
        return self._exists

    async def create_index(self, primary_key: str) -> IndexTask:
        if self._exists:
            return self._task(TaskStatus.FAILED, f"Index `{self.index_name}` already exists.")
        self._exists = True
        self._primary_key = primary_key
        return self._task()

    async def update_settings(self, settings: Dict[str, Any]) -> IndexTask:
        self._exists = True
        self.settings.update(copy.deepcopy(settings))
        return self._task()

    async def add_documents(self, documents: List[Dict[str, Any]]) -> IndexTask:
        self._exists = True
        for doc in documents:
            if self._primary_key not in doc:
                return self._task(
                    TaskStatus.FAILED, f"Document does not have a `{self._primary_key}` attribute"
                )
        for doc in documents:
            self._documents[str(doc[self._primary_key])] = copy.deepcopy(doc)
        return self._task(details={"receivedDocuments": len(documents), "indexedDocuments": len(documents)})

    async def get_task(self, task_uid: int) -> IndexTask:
        try:
            return self._tasks[task_uid]
        except KeyError:
            raise IndexClientError(f"Task `{task_uid}` not found.", code="task_not_found", status_code=404)

    async def delete_documents_by_filter(self, filter_expression: str) -> IndexTask:
        clauses = _parse_filter(filter_expression)
        doomed = [k for k, doc in self._documents.items() if self._matches_filter(doc, clauses)]
        for key in doomed:
            del self._documents[key]
        return self._task(details={"originalFilter": filter_expression, "deletedDocuments": len(doomed)})

    async def delete_all_documents(self) -> IndexTask:
        count = len(self._documents)
        self._documents.clear()
        return self._task(details={"deletedDocuments": count})

    async def search(self, query: str, params: Dict[str, Any]) -> Dict[str, Any]:
        started = time.perf_counter()
        terms = [t for t in (query or "").lower().split() if t]
        clauses = _parse_filter(params.get("filter"))

        matched = [
            doc for doc in self._documents.values()
            if self._matches_filter(doc, clauses) and self._matches_query(doc, terms)
        ]
        for rule in reversed(params.get("sort") or []):
            attr, _, direction = rule.partition(":")
            matched.sort(key=lambda d: (d.get(attr) is None, d.get(attr)), reverse=direction == "desc")

        facet_distribution = None
        if params.get("facets"):
            facet_distribution = {}
            for attr in params["facets"]:
                counts: Dict[str, int] = {}
                for doc in matched:
                    if doc.get(attr) is not None:
                        key = str(doc[attr])
                        counts[key] = counts.get(key, 0) + 1
                facet_distribution[attr] = counts

        offset = int(params.get("offset") or 0)
        limit = params.get("limit")
        limit = 20 if limit is None else int(limit)
        page = matched[offset:offset + limit]

        retrieve = params.get("attributesToRetrieve")
        to_crop = set(params.get("attributesToCrop") or [])
        to_highlight = set(params.get("attributesToHighlight") or [])
        crop_length = int(params.get("cropLength") or 10)
        crop_marker = params.get("cropMarker", "…")
        pre = params.get("highlightPreTag", "<em>")
        post = params.get("highlightPostTag", "</em>")

        hits = []
        for doc in page:
            hit = {k: copy.deepcopy(v) for k, v in doc.items() if not retrieve or k in retrieve}
            if to_crop or to_highlight:
                formatted = {}
                for attr in to_crop | to_highlight:
                    value = str(doc.get(attr, ""))
                    if attr in to_crop:
                        value = self._crop(value, terms, crop_length, crop_marker)
                    if attr in to_highlight:
                        value = self._highlight(value, terms, pre, post)
                    formatted[attr] = value
                hit["_formatted"] = formatted
            if params.get("showMatchesPosition"):
                positions = {}
                for attr in self._searchable():
                    found = self._positions(str(doc.get(attr, "")), terms)
                    if found:
                        positions[attr] = found
                hit["_matchesPosition"] = positions
            hits.append(hit)

        result: Dict[str, Any] = {
            "hits": hits,
            "query": query,
            "processingTimeMs": int((time.perf_counter() - started) * 1000),
            "limit": limit,
            "offset": offset,
            "estimatedTotalHits": len(matched),
        }
        if facet_distribution is not None:
            result["facetDistribution"] = facet_distribution
        return result

    async def get_stats(self) -> IndexStats:
        distribution: Dict[str, int] = {}
        for doc in self._documents.values():
            for key in doc:
                distribution[key] = distribution.get(key, 0) + 1
        return IndexStats(
            number_of_documents=len(self._documents),
            is_indexing=False,
            field_distribution=distribution,
        )

    def count(self) -> int:
        return len(self._documents)

    def get_document(self, document_id: str) -> Optional[Dict[str, Any]]:
        doc = self._documents.get(document_id)
        return copy.deepcopy(doc) if doc is not None else None
