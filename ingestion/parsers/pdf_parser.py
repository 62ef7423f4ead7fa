"""
PDF parser implementation.
Splits a PDF into chunks of consecutive pages using PyPDF2.
"""
from __future__ import annotations

import asyncio
import logging
import math
import time
from pathlib import Path
from typing import List, Optional, Tuple

import PyPDF2

from domain.models import Chunk, ParseOptions, ParseResult
from ingestion.ids import chunk_id
from ingestion.parsers.base import ProgressEmitter, ProgressObserver

logger = logging.getLogger(__name__)

DEFAULT_CHUNK_SIZE = 50  # Pages per chunk
MAX_CHUNKS = 1000


def page_marker(page_number: int) -> str:
    return f"--- Page {page_number} ---"


def failed_page_marker(page_number: int) -> str:
    return f"--- Page {page_number} (extraction failed) ---"


class PdfParser:
    """
    Parser for PDF documents.

    Each chunk covers ``chunk_size`` pages. Page texts inside a chunk are
    joined with a page marker so search hits can still be located to an
    approximate page. When a document needs more than ``max_chunks`` chunks
    the remaining pages are not parsed.
    """

    supported_extensions = (".pdf",)
    file_type = "pdf"

    async def parse(
        self,
        file_path: str,
        options: Optional[ParseOptions] = None,
        observer: Optional[ProgressObserver] = None,
    ) -> ParseResult:
        """
        Parse a PDF file into page-range chunks.

        Never raises for a bad document: load errors are returned as
        ``ParseResult(success=False)`` with an empty chunk list.
        """
        options = options or ParseOptions(chunk_size=DEFAULT_CHUNK_SIZE, max_chunks=MAX_CHUNKS)
        options.validate()
        file_path = str(file_path)
        file_name = Path(file_path).name
        emitter = ProgressEmitter(file_name, observer)
        emitter.started("Loading PDF file...")

        try:
            reader = await asyncio.to_thread(PyPDF2.PdfReader, file_path)
            total_pages = len(reader.pages)
            if total_pages == 0:
                raise ValueError("PDF document has no pages")

            total_chunks = min(math.ceil(total_pages / options.chunk_size), options.max_chunks)
            created_at = int(time.time() * 1000)
            logger.info(
                f"Parsing PDF: {file_name} ({total_pages} pages, {total_chunks} chunks)"
            )
            if total_chunks * options.chunk_size < total_pages:
                logger.warning(
                    f"{file_name}: chunk cap {options.max_chunks} reached, "
                    f"pages after {total_chunks * options.chunk_size} are not indexed"
                )

            chunks: List[Chunk] = []
            extracted_pages = 0
            for index in range(total_chunks):
                start_page = index * options.chunk_size + 1
                end_page = min(start_page + options.chunk_size - 1, total_pages)

                text, failed_pages = await asyncio.to_thread(
                    self._extract_page_range, reader, start_page, end_page
                )
                extracted_pages += (end_page - start_page + 1) - len(failed_pages)

                metadata = None
                if options.extract_metadata:
                    metadata = {
                        "pagesInChunk": end_page - start_page + 1,
                        "failedPages": failed_pages,
                    }

                chunks.append(
                    Chunk(
                        id=chunk_id(file_path, index),
                        file_name=file_name,
                        file_type=self.file_type,
                        content=text,
                        page_range=f"{start_page}-{end_page}",
                        total_pages=total_pages,
                        chunk_index=index,
                        total_chunks=total_chunks,
                        file_path=file_path,
                        created_at=created_at,
                        metadata=metadata,
                    )
                )
                emitter.advance(end_page, total_pages, f"Parsed pages {start_page}-{end_page}")
                logger.debug(
                    f"{file_name}: chunk {index + 1}/{total_chunks} "
                    f"(pages {start_page}-{end_page}, {len(text)} chars)"
                )

            if extracted_pages == 0:
                raise ValueError("No page text could be extracted")

            emitter.completed("Parsing completed")
            return ParseResult(success=True, file_name=file_name, chunks=chunks, total=total_pages)

        except Exception as e:
            logger.error(f"Failed to parse PDF {file_name}: {e}")
            emitter.failed(f"Parsing failed: {e}")
            return ParseResult(
                success=False,
                file_name=file_name,
                chunks=[],
                total=0,
                error=str(e) or "Failed to parse PDF file",
            )

    def _extract_page_range(
        self, reader: PyPDF2.PdfReader, start_page: int, end_page: int
    ) -> Tuple[str, List[int]]:
        """Extract the text of pages ``start_page..end_page`` (1-based, inclusive)."""
        parts: List[str] = []
        failed: List[int] = []
        for page_number in range(start_page, end_page + 1):
            try:
                page_text = reader.pages[page_number - 1].extract_text() or ""
                parts.append(f"{page_marker(page_number)}\n{page_text}")
            except Exception as e:
                logger.warning(f"Skipping page {page_number}: {e}")
                failed.append(page_number)
                parts.append(failed_page_marker(page_number))
        return "\n".join(parts).strip(), failed
