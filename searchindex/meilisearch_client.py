"""Meilisearch index client implementation."""
from __future__ import annotations

import asyncio
import logging
import threading
from typing import Any, Callable, Dict, List, Optional, Union

import requests

from domain.errors import EngineNotReadyError, IndexClientError
from domain.models import IndexStats, IndexTask, TaskStatus
from searchindex.base import BaseIndexClient

logger = logging.getLogger(__name__)


class MeilisearchIndexClient(BaseIndexClient):
    """Client for a local Meilisearch instance.

    Talks to the engine REST API with ``requests``. The HTTP session is
    created on first use and reused; blocking calls run in a worker thread
    so they do not stall the event loop.

    Example usage:
        client = MeilisearchIndexClient(
            base_url="http://127.0.0.1:7700", api_key="master-key"
        )
        await client.ensure_index()
        task = await client.add_batch(chunks)
        await client.wait_for_task(task)
    """

    def __init__(
        self,
        base_url: Union[str, Callable[[], str]] = "http://127.0.0.1:7700",
        api_key: Optional[str] = None,
        request_timeout: float = 10.0,
        session: Optional[requests.Session] = None,
        **kwargs,
    ):
        """Initialize Meilisearch client.

        Args:
            base_url: Base URL of the engine, or a callable returning it.
                A callable is resolved on every request, so the client follows
                port changes made after it was built.
            api_key: Master key, sent as a bearer token
            request_timeout: Timeout of a single HTTP request in seconds
            session: Pre-built session (mainly for tests)
            **kwargs: index_name, batch_size, task_timeout, poll_interval
        """
        super().__init__(**kwargs)
        self.api_key = api_key
        self.request_timeout = request_timeout
        self._base_url = base_url
        self._session = session
        self._session_lock = threading.Lock()

    # ------------------------------------------------------------------
    # HTTP plumbing
    # ------------------------------------------------------------------

    @property
    def base_url(self) -> str:
        url = self._base_url() if callable(self._base_url) else self._base_url
        return url.rstrip("/")

    @property
    def index_endpoint(self) -> str:
        return f"{self.base_url}/indexes/{self.index_name}"

    @property
    def session(self) -> requests.Session:
        with self._session_lock:
            if self._session is None:
                session = requests.Session()
                session.headers["Content-Type"] = "application/json"
                if self.api_key:
                    session.headers["Authorization"] = f"Bearer {self.api_key}"
                self._session = session
            return self._session

    def _request(
        self,
        method: str,
        url: str,
        json: Any = None,
        params: Optional[Dict[str, Any]] = None,
    ) -> Any:
        """Send one request and return the decoded JSON body.

        Raises:
            EngineNotReadyError: If the engine cannot be reached
            IndexClientError: If the engine answers with an error status
        """
        try:
            response = self.session.request(
                method, url, json=json, params=params, timeout=self.request_timeout
            )
        except requests.exceptions.ConnectionError as e:
            raise EngineNotReadyError(
                f"Failed to connect to Meilisearch at {self.base_url}. "
                f"Ensure the engine is running. Error: {e}"
            ) from e
        except requests.exceptions.Timeout as e:
            raise IndexClientError(
                f"Request to Meilisearch timed out after {self.request_timeout}s: {e}"
            ) from e
        except requests.exceptions.RequestException as e:
            raise IndexClientError(f"Request to Meilisearch failed: {e}") from e

        if response.status_code >= 400:
            try:
                body = response.json()
            except ValueError:
                body = {}
            message = body.get("message") or response.text or f"HTTP {response.status_code}"
            raise IndexClientError(
                f"Meilisearch API returned error: {message}",
                code=body.get("code"),
                status_code=response.status_code,
            )

        if not response.content:
            return {}
        return response.json()

    async def _call(self, method: str, url: str, **kwargs) -> Any:
        return await asyncio.to_thread(self._request, method, url, **kwargs)

    @staticmethod
    def _parse_task(data: Dict[str, Any]) -> IndexTask:
        uid = data.get("uid", data.get("taskUid"))
        if uid is None:
            raise IndexClientError(f"Unexpected task response format: {data}")
        error = data.get("error") or {}
        return IndexTask(
            uid=int(uid),
            status=TaskStatus(data.get("status", "enqueued")),
            error_message=error.get("message"),
            details=data.get("details") or {},
        )

    # ------------------------------------------------------------------
    # Transport primitives
    # ------------------------------------------------------------------

    async def index_exists(self) -> bool:
        try:
            await self._call("GET", self.index_endpoint)
            return True
        except IndexClientError as e:
            if e.status_code == 404 or e.code == "index_not_found":
                return False
            raise

    async def create_index(self, primary_key: str) -> IndexTask:
        data = await self._call(
            "POST",
            f"{self.base_url}/indexes",
            json={"uid": self.index_name, "primaryKey": primary_key},
        )
        return self._parse_task(data)

    async def update_settings(self, settings: Dict[str, Any]) -> IndexTask:
        data = await self._call("PATCH", f"{self.index_endpoint}/settings", json=settings)
        return self._parse_task(data)

    async def add_documents(self, documents: List[Dict[str, Any]]) -> IndexTask:
        data = await self._call(
            "POST",
            f"{self.index_endpoint}/documents",
            json=documents,
            params={"primaryKey": "id"},
        )
        return self._parse_task(data)

    async def get_task(self, task_uid: int) -> IndexTask:
        data = await self._call("GET", f"{self.base_url}/tasks/{task_uid}")
        return self._parse_task(data)

    async def delete_documents_by_filter(self, filter_expression: str) -> IndexTask:
        data = await self._call(
            "POST",
            f"{self.index_endpoint}/documents/delete",
            json={"filter": filter_expression},
        )
        return self._parse_task(data)

    async def delete_all_documents(self) -> IndexTask:
        data = await self._call("DELETE", f"{self.index_endpoint}/documents")
        return self._parse_task(data)

    async def search(self, query: str, params: Dict[str, Any]) -> Dict[str, Any]:
        payload = {"q": query}
        payload.update({k: v for k, v in params.items() if v is not None})
        return await self._call("POST", f"{self.index_endpoint}/search", json=payload)

    async def get_stats(self) -> IndexStats:
        data = await self._call("GET", f"{self.index_endpoint}/stats")
        return IndexStats(
            number_of_documents=data.get("numberOfDocuments", 0),
            is_indexing=bool(data.get("isIndexing", False)),
            field_distribution=data.get("fieldDistribution") or {},
        )

    def is_available(self) -> bool:
        """Check if the engine is running and healthy."""
        try:
            response = requests.get(f"{self.base_url}/health", timeout=2)
            return response.status_code == 200
        except (requests.exceptions.RequestException, OSError):
            return False

    def close(self) -> None:
        with self._session_lock:
            if self._session is not None:
                self._session.close()
                self._session = None
