"""
Plain-text parser implementation (.txt, .md).
Reads the file directly, no external library needed.
"""
from __future__ import annotations

import asyncio
import logging
import math
import time
from pathlib import Path
from typing import Optional

from domain.models import Chunk, ParseOptions, ParseResult
from ingestion.ids import chunk_id
from ingestion.parsers.base import ProgressEmitter, ProgressObserver

logger = logging.getLogger(__name__)

DEFAULT_CHUNK_SIZE = 200  # Lines per chunk


class TextParser:
    """
    Parser for plain-text documents. ``chunk_size`` counts lines.
    """

    supported_extensions = (".txt", ".md")

    def __init__(self, encoding: str = "utf-8"):
        self.encoding = encoding

    async def parse(
        self,
        file_path: str,
        options: Optional[ParseOptions] = None,
        observer: Optional[ProgressObserver] = None,
    ) -> ParseResult:
        options = options or ParseOptions(chunk_size=DEFAULT_CHUNK_SIZE)
        options.validate()
        file_path = str(file_path)
        path = Path(file_path)
        emitter = ProgressEmitter(path.name, observer)
        emitter.started("Reading text file...")

        try:
            content = await asyncio.to_thread(
                path.read_text, encoding=self.encoding, errors="replace"
            )
        except OSError as exc:
            logger.error("TextParser: failed to read '%s': %s", path.name, exc)
            emitter.failed(f"Parsing failed: {exc}")
            return ParseResult(success=False, file_name=path.name, error=str(exc))

        lines = content.splitlines()
        if not content.strip():
            emitter.failed("Parsing failed: file is empty")
            return ParseResult(
                success=False, file_name=path.name, error=f"No text content found in file: {path.name}"
            )

        total_lines = len(lines)
        total_chunks = min(math.ceil(total_lines / options.chunk_size), options.max_chunks)
        created_at = int(time.time() * 1000)
        file_type = path.suffix.lstrip(".").lower()

        chunks = []
        for index in range(total_chunks):
            start = index * options.chunk_size
            end = min(start + options.chunk_size, total_lines)
            chunks.append(
                Chunk(
                    id=chunk_id(file_path, index),
                    file_name=path.name,
                    file_type=file_type,
                    content="\n".join(lines[start:end]).strip(),
                    chunk_index=index,
                    total_chunks=total_chunks,
                    file_path=file_path,
                    created_at=created_at,
                    metadata={"lineRange": f"{start + 1}-{end}"} if options.extract_metadata else None,
                )
            )
            emitter.advance(end, total_lines, f"Parsed lines {start + 1}-{end}")

        emitter.completed("Parsing completed")
        logger.info("TextParser: parsed '%s' (%d lines, %d chunks)", path.name, total_lines, total_chunks)
        return ParseResult(success=True, file_name=path.name, chunks=chunks, total=total_lines)
