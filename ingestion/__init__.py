"""
Ingestion module.

Everything between a file path and searchable chunks:

  ingestion.ids        - deterministic file and chunk ids
  ingestion.parsers    - format parsers and the extension registry
  ingestion.progress   - progress observers and the push stream
  ingestion.pipeline   - parse, index and record one file at a time
  ingestion.deletion   - remove a file from the index and the records
"""
from ingestion.ids import file_id, chunk_id
from ingestion.parsers import (
    DocumentParser,
    ParserRegistry,
    PdfParser,
    ProgressEmitter,
    ProgressObserver,
    TextParser,
)
from ingestion.progress import (
    CallbackObserver,
    CompositeObserver,
    LoggingObserver,
    ProgressBroadcaster,
)
from ingestion.pipeline import FileProgress, FileState, IngestionPipeline
from ingestion.deletion import DeletionCoordinator

__all__ = [
    # Ids
    "file_id",
    "chunk_id",
    # Parsers
    "DocumentParser",
    "ParserRegistry",
    "PdfParser",
    "ProgressEmitter",
    "ProgressObserver",
    "TextParser",
    # Progress
    "CallbackObserver",
    "CompositeObserver",
    "LoggingObserver",
    "ProgressBroadcaster",
    # Pipeline
    "FileProgress",
    "FileState",
    "IngestionPipeline",
    "DeletionCoordinator",
]
