"""
Ingestion pipeline.
Takes a list of file paths through parse, index and persist, one file at a
time, and aggregates the per-file outcome.
"""
from __future__ import annotations

import logging
from enum import Enum
from pathlib import Path
from typing import Callable, Dict, List, Optional, Sequence

from domain.errors import (
    EngineNotReadyError,
    IndexBatchError,
    IndexClientError,
    MirrorError,
    ParseFailureError,
    StoreNotInitializedError,
    UnsupportedFormatError,
)
from domain.models import (
    Chunk,
    FileFailure,
    FileRecord,
    IngestionResult,
    ParseOptions,
    ParseProgress,
    ProgressStatus,
)
from ingestion.ids import file_id as make_file_id
from ingestion.parsers.base import ProgressObserver
from ingestion.parsers.registry import ParserRegistry
from records.store import RecordStore
from searchindex.base import BaseIndexClient

logger = logging.getLogger(__name__)


class FileState(Enum):
    """Estados del pipeline de un archivo"""
    PENDING = "pending"
    PARSING = "parsing"
    INDEXING = "indexing"
    PERSISTING = "persisting"
    COMPLETED = "completed"
    FAILED = "failed"


_PHASE_ORDER = {
    ProgressStatus.PARSING: 0,
    ProgressStatus.INDEXING: 1,
    ProgressStatus.COMPLETED: 2,
    ProgressStatus.FAILED: 2,
}


class FileProgress:
    """
    Progress stream of one file's pipeline run.

    Status only moves forward (parsing, indexing, then one terminal event).
    ``current`` never decreases within a phase: parsing counts pages,
    indexing counts chunks. The parser's own terminal event is dropped
    because the file is not done until its chunks are indexed.
    """

    def __init__(self, file_name: str, observer: Optional[ProgressObserver]):
        self.file_name = file_name
        self.observer = observer
        self.status: Optional[ProgressStatus] = None
        self.current = 0
        self.total = 0

    @property
    def finished(self) -> bool:
        return self.status is not None and self.status.is_terminal

    # ProgressObserver for the parser
    def on_progress(self, progress: ParseProgress) -> None:
        if progress.status.is_terminal:
            return
        self._emit(progress.status, progress.current, progress.total, progress.message)

    def indexing(self, current: int, total: int, message: str) -> None:
        self._emit(ProgressStatus.INDEXING, current, total, message)

    def completed(self, message: str) -> None:
        self._emit(ProgressStatus.COMPLETED, self.total, self.total, message)

    def failed(self, message: str) -> None:
        self._emit(ProgressStatus.FAILED, self.current, self.total, message)

    def _emit(self, status: ProgressStatus, current: int, total: int, message: Optional[str]) -> None:
        if self.finished:
            return
        if self.status is not None and _PHASE_ORDER[status] < _PHASE_ORDER[self.status]:
            return
        if status is not self.status and not status.is_terminal:
            self.current, self.total = 0, 0
        self.status = status
        self.current = max(self.current, current)
        self.total = max(self.total, total)

        if self.observer is None:
            return
        if status is ProgressStatus.COMPLETED:
            percentage = 100
        else:
            percentage = int(self.current * 100 / self.total) if self.total else 0
        snapshot = ParseProgress(
            file_name=self.file_name,
            current=self.current,
            total=self.total,
            percentage=percentage,
            status=status,
            message=message,
        )
        try:
            self.observer.on_progress(snapshot)
        except Exception as exc:
            logger.warning(f"Progress observer failed for {self.file_name}: {exc}")


class IngestionPipeline:
    """
    Pipeline de ingesta: parseo, indexación por lotes y registro.

    Files are processed sequentially. Within a file, batch N+1 is submitted
    only after batch N's task has succeeded. A failure in one file is
    recorded in the result and does not stop the others; an unreachable
    engine or an uninitialized record store aborts the whole call.

    Usage:
        pipeline = IngestionPipeline(registry, index_client, record_store)
        result = await pipeline.ingest(["/docs/a.pdf", "/docs/b.pdf"])
    """

    def __init__(
        self,
        registry: ParserRegistry,
        index_client: BaseIndexClient,
        record_store: RecordStore,
        options: Optional[ParseOptions] = None,
        options_by_extension: Optional[Dict[str, ParseOptions]] = None,
        observer: Optional[ProgressObserver] = None,
        engine_ready: Optional[Callable[[], bool]] = None,
        rollback_on_batch_failure: bool = False,
    ):
        """
        Args:
            registry: Parser registry used for the support check and dispatch
            index_client: Client of the search index
            record_store: Store of upload records
            options: Parse options for every format
            options_by_extension: Per-extension overrides of ``options``
            observer: Receives the progress of every file
            engine_ready: Returns False while the engine cannot take requests
            rollback_on_batch_failure: Delete the file's chunks when a batch fails
        """
        self.registry = registry
        self.index_client = index_client
        self.record_store = record_store
        self.options = options or ParseOptions(extract_metadata=True)
        self.options_by_extension = {
            ext.lower(): opts for ext, opts in (options_by_extension or {}).items()
        }
        self.observer = observer
        self.engine_ready = engine_ready
        self.rollback_on_batch_failure = rollback_on_batch_failure

        logger.info(
            f"IngestionPipeline initialized with "
            f"index_client={index_client.__class__.__name__}, "
            f"batch_size={index_client.batch_size}, "
            f"rollback_on_batch_failure={rollback_on_batch_failure}"
        )

    def _check_preconditions(self) -> None:
        if self.engine_ready is not None and not self.engine_ready():
            raise EngineNotReadyError("Search engine is not ready")
        self.record_store.ensure_initialized()
        self.registry.initialize()

    def _options_for(self, file_path: str) -> ParseOptions:
        return self.options_by_extension.get(Path(file_path).suffix.lower(), self.options)

    async def ingest(self, file_paths: Sequence[str]) -> IngestionResult:
        """
        Ingest a list of files.

        Returns:
            IngestionResult with the names of the indexed files and the
            failures with their reason

        Raises:
            EngineNotReadyError: If the engine is not ready or becomes unreachable
            StoreNotInitializedError: If the record store was not initialized
        """
        self._check_preconditions()
        logger.info(f"Starting ingestion of {len(file_paths)} files")

        result = IngestionResult()
        for file_path in file_paths:
            file_name = Path(str(file_path)).name
            progress = FileProgress(file_name, self.observer)
            try:
                await self._ingest_file(str(file_path), file_name, progress)
            except (EngineNotReadyError, StoreNotInitializedError) as e:
                progress.failed(f"Processing failed: {e}")
                logger.error(f"Ingestion aborted at {file_name}: {e}")
                raise
            except Exception as e:
                logger.error(f"File processing failed: {file_name}: {e}")
                result.failed.append(FileFailure(file_name=file_name, error=str(e) or e.__class__.__name__))
                progress.failed(f"Processing failed: {e}")
                continue
            result.success.append(file_name)

        logger.info(
            f"Ingestion completed: {len(result.success)}/{len(file_paths)} files indexed, "
            f"{len(result.failed)} failed"
        )
        return result

    async def _ingest_file(self, file_path: str, file_name: str, progress: FileProgress) -> None:
        state = FileState.PENDING

        def advance(new_state: FileState) -> None:
            nonlocal state
            logger.debug(f"{file_name}: {state.value} -> {new_state.value}")
            state = new_state

        parser = self.registry.get_parser(file_path)
        if parser is None:
            advance(FileState.FAILED)
            raise UnsupportedFormatError(f"Unsupported file type: {file_name}")

        advance(FileState.PARSING)
        logger.info(f"Parsing file: {file_name}")
        fid = make_file_id(file_path)
        parsed = await parser.parse(file_path, self._options_for(file_path), progress)
        if not parsed.success:
            advance(FileState.FAILED)
            raise ParseFailureError(parsed.error or f"Failed to parse {file_name}")
        if not parsed.chunks:
            advance(FileState.FAILED)
            raise ParseFailureError(f"No content extracted from {file_name}")
        logger.info(f"Parsed {file_name}: {len(parsed.chunks)} chunks from {parsed.total} units")

        for chunk in parsed.chunks:
            chunk.file_id = fid

        advance(FileState.INDEXING)
        await self._index_chunks(fid, file_name, parsed.chunks, progress)

        advance(FileState.PERSISTING)
        await self._persist(FileRecord.create(fid, file_name, file_path))
        await self._log_stats()

        advance(FileState.COMPLETED)
        progress.completed(f"Indexed {len(parsed.chunks)} chunks")
        logger.info(f"File processing completed: {file_name}")

    async def _index_chunks(
        self,
        fid: str,
        file_name: str,
        chunks: List[Chunk],
        progress: FileProgress,
    ) -> None:
        total = len(chunks)
        batch_size = self.index_client.batch_size
        indexed = 0
        progress.indexing(0, total, f"Indexing 0/{total} chunks...")

        try:
            for start in range(0, total, batch_size):
                batch = chunks[start:start + batch_size]
                task = await self.index_client.add_batch(batch)
                task = await self.index_client.wait_for_task(task)
                self.index_client.raise_for_task(
                    task, f"Indexing failed for chunks {start + 1}-{start + len(batch)}"
                )
                indexed += len(batch)
                logger.info(f"Batch indexed: {indexed}/{total} chunks of {file_name} (taskUid={task.uid})")
                progress.indexing(indexed, total, f"Indexing {indexed}/{total} chunks...")
        except IndexBatchError:
            if self.rollback_on_batch_failure and indexed:
                await self._rollback(fid, file_name)
            raise

    async def _rollback(self, fid: str, file_name: str) -> None:
        try:
            deleted = await self.index_client.delete_by_file_id(fid)
            logger.warning(f"Rolled back {deleted} chunks of {file_name} after a failed batch")
        except MirrorError as e:
            logger.error(f"Rollback of {file_name} failed, chunks remain in the index: {e}")

    async def _persist(self, record: FileRecord) -> None:
        # The content is already searchable; a lost record is logged only
        try:
            await self.record_store.add(record)
        except Exception as e:
            logger.error(
                f"Failed to save upload record for {record.file_name} ({record.file_id}): {e}",
                exc_info=True,
            )

    async def _log_stats(self) -> None:
        try:
            stats = await self.index_client.stats()
        except IndexClientError as e:
            logger.warning(f"Could not read index stats: {e}")
            return
        logger.info(
            f"Index stats: {stats.number_of_documents} documents, indexing={stats.is_indexing}"
        )
