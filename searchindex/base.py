"""
Base module for search index clients.
Defines the transport interface to a full-text index engine with
asynchronous tasks, and the batching/task-waiting logic shared by all
implementations.
"""
from __future__ import annotations

import asyncio
import logging
from abc import ABC, abstractmethod
from typing import Any, Dict, List, Optional, Sequence, Union

from domain.errors import IndexBatchError, IndexClientError, TaskTimeoutError
from domain.models import Chunk, IndexStats, IndexTask, TaskStatus

logger = logging.getLogger(__name__)

PRIMARY_KEY = "id"
SEARCHABLE_ATTRIBUTES = ["fileName", "content", "filePath"]
FILTERABLE_ATTRIBUTES = ["fileType", "createdAt", "fileId"]
SORTABLE_ATTRIBUTES = ["createdAt", "fileName"]

DEFAULT_INDEX_NAME = "documents"
DEFAULT_BATCH_SIZE = 100
DEFAULT_TASK_TIMEOUT = 30.0
DEFAULT_POLL_INTERVAL = 0.1


def index_settings() -> Dict[str, List[str]]:
    """Attribute configuration applied by ``ensure_index``."""
    return {
        "searchableAttributes": list(SEARCHABLE_ATTRIBUTES),
        "filterableAttributes": list(FILTERABLE_ATTRIBUTES),
        "sortableAttributes": list(SORTABLE_ATTRIBUTES),
    }


def file_id_filter(file_id: str) -> str:
    escaped = file_id.replace("\\", "\\\\").replace('"', '\\"')
    return f'fileId = "{escaped}"'


class BaseIndexClient(ABC):
    """
    Clase base abstracta para clientes de índice.

    Las subclases implementan las primitivas de transporte (crear índice,
    enviar documentos, consultar tareas, buscar). La lógica común
    (configuración idempotente del índice, lotes, espera de tareas, borrado
    por fileId) vive aquí.
    """

    def __init__(
        self,
        index_name: str = DEFAULT_INDEX_NAME,
        batch_size: int = DEFAULT_BATCH_SIZE,
        task_timeout: float = DEFAULT_TASK_TIMEOUT,
        poll_interval: float = DEFAULT_POLL_INTERVAL,
    ):
        if batch_size <= 0:
            raise ValueError("batch_size must be greater than 0")
        if task_timeout <= 0 or poll_interval <= 0:
            raise ValueError("task_timeout and poll_interval must be greater than 0")

        self.index_name = index_name
        self.batch_size = batch_size
        self.task_timeout = task_timeout
        self.poll_interval = poll_interval
        logger.info(
            f"{self.__class__.__name__} initialized with index={index_name}, "
            f"batch_size={batch_size}"
        )

    # ------------------------------------------------------------------
    # Transport primitives
    # ------------------------------------------------------------------

    @abstractmethod
    async def index_exists(self) -> bool:
        """Indica si el índice existe en el motor."""
        pass

    @abstractmethod
    async def create_index(self, primary_key: str) -> IndexTask:
        pass

    @abstractmethod
    async def update_settings(self, settings: Dict[str, Any]) -> IndexTask:
        pass

    @abstractmethod
    async def add_documents(self, documents: List[Dict[str, Any]]) -> IndexTask:
        """
        Envía documentos para indexar. La indexación es asíncrona:
        el documento solo es visible cuando la tarea devuelta termina.
        """
        pass

    @abstractmethod
    async def get_task(self, task_uid: int) -> IndexTask:
        pass

    @abstractmethod
    async def delete_documents_by_filter(self, filter_expression: str) -> IndexTask:
        pass

    @abstractmethod
    async def delete_all_documents(self) -> IndexTask:
        pass

    @abstractmethod
    async def search(self, query: str, params: Dict[str, Any]) -> Dict[str, Any]:
        """
        Ejecuta una única llamada de búsqueda y devuelve la respuesta cruda
        del motor (hits, estimatedTotalHits, processingTimeMs, ...).
        """
        pass

    @abstractmethod
    async def get_stats(self) -> IndexStats:
        pass

    # ------------------------------------------------------------------
    # Shared behaviour
    # ------------------------------------------------------------------

    async def ensure_index(self) -> None:
        """
        Create the index if missing and (re)apply the attribute settings.
        Safe to call on every startup.
        """
        if await self.index_exists():
            logger.info(f"Index already exists: {self.index_name}")
        else:
            logger.info(f"Creating index: {self.index_name}")
            task = await self.wait_for_task(await self.create_index(PRIMARY_KEY))
            self.raise_for_task(task, "Index creation failed")

        task = await self.wait_for_task(await self.update_settings(index_settings()))
        self.raise_for_task(task, "Index settings update failed")
        logger.info(f"Index configured: {self.index_name}")

    async def add_batch(self, chunks: Sequence[Chunk]) -> IndexTask:
        """
        Submit one batch of chunks. The caller must resolve the returned
        task with ``wait_for_task`` before treating the batch as durable.

        Raises:
            ValueError: If the batch is empty or larger than ``batch_size``
        """
        if not chunks:
            raise ValueError("Cannot submit an empty batch")
        if len(chunks) > self.batch_size:
            raise ValueError(
                f"Batch of {len(chunks)} chunks exceeds batch_size={self.batch_size}"
            )
        task = await self.add_documents([chunk.to_document() for chunk in chunks])
        logger.info(
            f"Batch submitted: taskUid={task.uid}, size={len(chunks)}, firstId={chunks[0].id}"
        )
        return task

    async def wait_for_task(
        self,
        task: Union[IndexTask, int],
        timeout: Optional[float] = None,
        interval: Optional[float] = None,
    ) -> IndexTask:
        """
        Poll a task until it reaches a terminal state.

        Returns the terminal task, which may be failed; see ``raise_for_task``.

        Raises:
            TaskTimeoutError: If the task is still pending after ``timeout`` seconds
        """
        uid = task.uid if isinstance(task, IndexTask) else task
        timeout = self.task_timeout if timeout is None else timeout
        interval = self.poll_interval if interval is None else interval

        loop = asyncio.get_running_loop()
        deadline = loop.time() + timeout
        while True:
            current = await self.get_task(uid)
            if current.status.is_terminal:
                return current
            if loop.time() >= deadline:
                raise TaskTimeoutError(
                    f"Task {uid} did not finish within {timeout:.1f}s "
                    f"(last status: {current.status.value})",
                    task_uid=uid,
                )
            await asyncio.sleep(interval)

    @staticmethod
    def raise_for_task(task: IndexTask, context: str = "Indexing failed") -> None:
        """
        Raises:
            IndexBatchError: If the task did not succeed
        """
        if task.status is not TaskStatus.SUCCEEDED:
            reason = task.error_message or f"task {task.status.value}"
            raise IndexBatchError(f"{context}: {reason}", task_uid=task.uid)

    async def delete_by_file_id(self, file_id: str) -> int:
        """
        Delete every chunk of a file with a filter-scoped delete.

        Returns:
            Number of documents the engine reports as deleted

        Raises:
            IndexClientError: If the delete task fails
        """
        task = await self.wait_for_task(
            await self.delete_documents_by_filter(file_id_filter(file_id))
        )
        if task.status is not TaskStatus.SUCCEEDED:
            raise IndexClientError(
                f"Delete by fileId failed: {task.error_message or task.status.value}"
            )
        deleted = int(task.details.get("deletedDocuments") or 0)
        logger.info(f"Deleted {deleted} chunks of file {file_id}")
        return deleted

    async def stats(self) -> IndexStats:
        return await self.get_stats()

    async def clear(self) -> IndexTask:
        """Remove every document from the index and wait for completion."""
        task = await self.wait_for_task(await self.delete_all_documents())
        self.raise_for_task(task, "Clearing the index failed")
        logger.info(f"Index cleared: {self.index_name} (taskUid={task.uid})")
        return task
