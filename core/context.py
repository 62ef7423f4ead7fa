"""
Application context.
Builds the process-wide components once and owns their startup and
shutdown order.
"""
from __future__ import annotations

import asyncio
import logging
from pathlib import Path
from typing import Optional

from config.settings import Settings, settings as default_settings
from config.user_config import UserConfigStore
from domain.errors import EngineStartupError, IndexClientError
from domain.models import ParseOptions
from engine.supervisor import EngineSupervisor
from ingestion.deletion import DeletionCoordinator
from ingestion.parsers.registry import ParserRegistry
from ingestion.pipeline import IngestionPipeline
from ingestion.progress import CompositeObserver, LoggingObserver, ProgressBroadcaster
from records.store import RecordStore
from search.service import SearchService
from searchindex import BaseIndexClient, index_client_from_settings

logger = logging.getLogger(__name__)


class AppContext:
    """
    Contenedor de los componentes compartidos de la aplicación.

    Usage:
        context = AppContext()
        await context.startup()
        result = await context.pipeline.ingest(["/docs/a.pdf"])
        await context.shutdown()
    """

    def __init__(
        self,
        settings: Optional[Settings] = None,
        user_config: Optional[UserConfigStore] = None,
        index_client: Optional[BaseIndexClient] = None,
        supervisor: Optional[EngineSupervisor] = None,
    ):
        self.settings = settings or default_settings
        self.user_config = user_config or UserConfigStore(self.settings.CONFIG_FILE)
        self.uses_engine = index_client is None and self.settings.INDEX_BACKEND == "meilisearch"

        self.supervisor = supervisor or EngineSupervisor(
            self.user_config,
            managed=self.settings.MANAGE_ENGINE,
            host=self.settings.MEILISEARCH_HOST,
            master_key=self.settings.MEILISEARCH_MASTER_KEY,
            startup_timeout=self.settings.MEILISEARCH_STARTUP_TIMEOUT,
            stop_grace=self.settings.MEILISEARCH_STOP_GRACE,
        )
        self.registry = ParserRegistry()
        self.record_store = RecordStore(self.data_dir)
        self.index_client = index_client or index_client_from_settings(
            self.settings,
            base_url=self.supervisor.get_url,
            api_key=self.supervisor.get_credential(),
        )

        self.broadcaster = ProgressBroadcaster()
        self.progress_observer = CompositeObserver([LoggingObserver(), self.broadcaster])
        self.pipeline = IngestionPipeline(
            registry=self.registry,
            index_client=self.index_client,
            record_store=self.record_store,
            options=ParseOptions(
                chunk_size=self.settings.PDF_CHUNK_SIZE,
                max_chunks=self.settings.MAX_CHUNKS,
                extract_metadata=True,
            ),
            options_by_extension={
                ext: ParseOptions(
                    chunk_size=self.settings.TEXT_CHUNK_SIZE,
                    max_chunks=self.settings.MAX_CHUNKS,
                    extract_metadata=True,
                )
                for ext in (".txt", ".md")
            },
            observer=self.progress_observer,
            engine_ready=self.supervisor.is_ready if self.uses_engine else None,
            rollback_on_batch_failure=self.settings.ROLLBACK_ON_BATCH_FAILURE,
        )
        self.deletion = DeletionCoordinator(self.index_client, self.record_store)
        self.search_service = SearchService(
            self.index_client,
            batch_size=self.settings.SEARCH_BATCH_SIZE,
            crop_length=self.settings.SEARCH_CROP_LENGTH,
            crop_marker=self.settings.SEARCH_CROP_MARKER,
            highlight_pre_tag=self.settings.SEARCH_HIGHLIGHT_PRE_TAG,
            highlight_post_tag=self.settings.SEARCH_HIGHLIGHT_POST_TAG,
        )

        self._lock = asyncio.Lock()
        self._started = False
        self._engine_started = False

    @property
    def data_dir(self) -> Path:
        configured = str(self.user_config.get("dataPath") or "").strip()
        return Path(configured or self.settings.DEFAULT_DATA_DIR)

    def add_progress_observer(self, observer) -> None:
        """Attach one more observer to the ingestion progress of every file."""
        self.progress_observer.add(observer)

    @property
    def started(self) -> bool:
        return self._started

    async def startup(self) -> None:
        """Initialize every component. Later calls are no-ops."""
        async with self._lock:
            if self._started:
                return
            logger.info("Starting application context...")
            self.registry.initialize()
            await self.record_store.relocate(self.data_dir)
            await self.record_store.initialize()
            self._started = True
        await self.start_services()
        logger.info("Application context ready")

    async def relocate_record_store(self) -> None:
        """
        Point the record store at the configured data directory.

        Records already stored in the previous directory stay there.

        Raises:
            RecordStoreError: If the new directory cannot hold the database
        """
        async with self._lock:
            if self.record_store.data_dir != self.data_dir:
                await self.record_store.relocate(self.data_dir)

    async def start_services(self) -> bool:
        """
        Start the search engine and configure the index.

        Skipped while the user configuration is incomplete; call again once
        it is. Returns True when the index is usable.
        """
        async with self._lock:
            if self._engine_started:
                return True
            if self.uses_engine:
                if self.supervisor.managed and not self.user_config.is_complete():
                    logger.warning(
                        f"Configuration incomplete (missing: {self.user_config.missing_keys()}), "
                        f"search engine not started"
                    )
                    return False
                try:
                    await self.supervisor.start()
                except EngineStartupError as e:
                    logger.error(f"Search engine failed to start: {e}")
                    return False
            try:
                await self.index_client.ensure_index()
            except IndexClientError as e:
                logger.error(f"Search index initialization failed: {e}")
                return False
            self._engine_started = True
            return True

    async def shutdown(self) -> None:
        """
        Close the record store and stop the engine. Safe to call repeatedly.

        The engine is stopped even when closing the store or the client fails.
        """
        async with self._lock:
            if not self._started and not self._engine_started:
                return
            logger.info("Shutting down application context...")
            try:
                await self.record_store.close()
                close = getattr(self.index_client, "close", None)
                if callable(close):
                    close()
            finally:
                try:
                    if self.uses_engine:
                        await self.supervisor.stop()
                finally:
                    self._started = False
                    self._engine_started = False
            logger.info("Application context stopped")
