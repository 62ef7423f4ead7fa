"""
Deletion of an ingested file from the index and the record store.
"""
from __future__ import annotations

import logging

from domain.errors import (
    DeletionInconsistencyError,
    EngineNotReadyError,
    MirrorError,
    RecordNotFoundError,
)
from records.store import RecordStore
from searchindex.base import BaseIndexClient

logger = logging.getLogger(__name__)


class DeletionCoordinator:
    """
    Deletes a file's chunks, then its record.

    The record is removed only after the index delete succeeded, so a
    failed delete can simply be retried.
    """

    def __init__(self, index_client: BaseIndexClient, record_store: RecordStore):
        self.index_client = index_client
        self.record_store = record_store

    async def delete(self, file_id: str) -> int:
        """
        Delete a file by id.

        Returns:
            Number of chunks removed from the index

        Raises:
            RecordNotFoundError: If no record exists for ``file_id``
            EngineNotReadyError: If the engine cannot be reached; nothing is deleted
            DeletionInconsistencyError: If only one side of the delete succeeded
        """
        record = await self.record_store.get_by_id(file_id)
        if record is None:
            raise RecordNotFoundError(f"Record does not exist: {file_id}")

        try:
            deleted = await self.index_client.delete_by_file_id(file_id)
        except EngineNotReadyError:
            raise
        except MirrorError as e:
            logger.error(f"Index deletion failed for {record.file_name} ({file_id}), record kept: {e}")
            raise DeletionInconsistencyError(
                f"Failed to delete indexed chunks of {record.file_name}: {e}", file_id=file_id
            ) from e

        try:
            await self.record_store.delete(file_id)
        except MirrorError as e:
            logger.error(
                f"Inconsistency: chunks of {record.file_name} ({file_id}) were deleted "
                f"but the record could not be removed: {e}"
            )
            raise DeletionInconsistencyError(
                f"Chunks deleted but record removal failed for {record.file_name}: {e}",
                file_id=file_id,
            ) from e

        logger.info(f"Deleted file {record.file_name} ({file_id}): {deleted} chunks")
        return deleted
