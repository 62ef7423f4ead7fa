"""
Document service.

Facade over the application context used by the REST API and the CLI.
Every operation returns an ``OperationResult`` envelope and never raises.
"""
from __future__ import annotations

import logging
from typing import Any, Optional, Sequence

from core.context import AppContext
from domain.errors import MirrorError
from domain.models import OperationResult, SearchOptions

logger = logging.getLogger(__name__)


class DocumentService:
    """
    Operaciones expuestas a la capa externa.

    Usage:
        service = DocumentService(context)
        result = await service.ingest(["/docs/a.pdf"])
        if result.success:
            print(result.data.success)
    """

    def __init__(self, context: AppContext):
        self.context = context

    @staticmethod
    def _failure(operation: str, exc: Exception) -> OperationResult:
        if isinstance(exc, MirrorError):
            logger.error(f"{operation} failed: {exc}")
        else:
            logger.exception(f"{operation} failed with an unexpected error")
        return OperationResult.fail(str(exc) or exc.__class__.__name__)

    # ------------------------------------------------------------------
    # Documents
    # ------------------------------------------------------------------

    async def ingest(self, file_paths: Sequence[str]) -> OperationResult:
        try:
            return OperationResult.ok(await self.context.pipeline.ingest(list(file_paths)))
        except Exception as e:
            return self._failure("Ingestion", e)

    async def delete_file(self, file_id: str) -> OperationResult:
        try:
            deleted = await self.context.deletion.delete(file_id)
            return OperationResult.ok({"fileId": file_id, "deletedChunks": deleted})
        except Exception as e:
            return self._failure(f"Delete {file_id}", e)

    async def list_supported_extensions(self) -> OperationResult:
        try:
            self.context.registry.initialize()
            return OperationResult.ok(sorted(self.context.registry.supported_extensions()))
        except Exception as e:
            return self._failure("Listing supported extensions", e)

    async def list_records(self) -> OperationResult:
        try:
            return OperationResult.ok(await self.context.record_store.get_all())
        except Exception as e:
            return self._failure("Listing records", e)

    async def get_record(self, file_id: str) -> OperationResult:
        try:
            return OperationResult.ok(await self.context.record_store.get_by_id(file_id))
        except Exception as e:
            return self._failure(f"Reading record {file_id}", e)

    # ------------------------------------------------------------------
    # Search and index administration
    # ------------------------------------------------------------------

    async def search(self, query: str, options: Optional[SearchOptions] = None) -> OperationResult:
        try:
            return OperationResult.ok(await self.context.search_service.search(query, options))
        except Exception as e:
            return self._failure(f"Search '{query}'", e)

    async def init_index(self) -> OperationResult:
        try:
            await self.context.index_client.ensure_index()
            return OperationResult.ok()
        except Exception as e:
            return self._failure("Index initialization", e)

    async def index_stats(self) -> OperationResult:
        try:
            return OperationResult.ok(await self.context.index_client.stats())
        except Exception as e:
            return self._failure("Reading index stats", e)

    async def clear_index(self) -> OperationResult:
        try:
            task = await self.context.index_client.clear()
            return OperationResult.ok({"taskUid": task.uid})
        except Exception as e:
            return self._failure("Clearing the index", e)

    # ------------------------------------------------------------------
    # Engine and configuration
    # ------------------------------------------------------------------

    async def engine_status(self) -> OperationResult:
        try:
            return OperationResult.ok(self.context.supervisor.status())
        except Exception as e:
            return self._failure("Reading engine status", e)

    async def get_config(self) -> OperationResult:
        try:
            config = self.context.user_config
            return OperationResult.ok({
                "config": config.get_all(),
                "isComplete": config.is_complete(),
                "missingKeys": config.missing_keys(),
            })
        except Exception as e:
            return self._failure("Reading configuration", e)

    async def set_config(self, key: str, value: Any) -> OperationResult:
        """Update one configuration key; starts the engine once the configuration is complete."""
        try:
            config = self.context.user_config
            config.set(key, value)
            if key == "dataPath":
                await self.context.relocate_record_store()
            engine_ready = False
            if config.is_complete():
                engine_ready = await self.context.start_services()
            return OperationResult.ok({
                "config": config.get_all(),
                "isComplete": config.is_complete(),
                "engineReady": engine_ready,
            })
        except Exception as e:
            return self._failure(f"Updating configuration '{key}'", e)
