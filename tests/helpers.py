"""
Builders shared by the tests.
"""
from pathlib import Path
from typing import Dict, Iterable, List, Optional

from domain.models import Chunk, ParseOptions, ParseResult
from ingestion.ids import chunk_id, file_id
from ingestion.parsers.base import ProgressEmitter


def make_chunks(file_path: str, count: int, content: Optional[str] = None) -> List[Chunk]:
    """Chunks of one file, stamped with its file id."""
    name = Path(file_path).name
    return [
        Chunk(
            id=chunk_id(file_path, i),
            file_id=file_id(file_path),
            file_name=name,
            file_type=Path(file_path).suffix.lstrip("."),
            content=content or f"{name} chunk {i}",
            chunk_index=i,
            total_chunks=count,
            file_path=file_path,
            created_at=1700000000000 + i,
        )
        for i in range(count)
    ]


class FakeParser:
    """Parser for ``.fake`` files with scripted results per file name."""

    supported_extensions = (".fake",)

    def __init__(
        self,
        chunk_counts: Optional[Dict[str, int]] = None,
        failing: Iterable[str] = (),
        default_count: int = 3,
    ):
        self.chunk_counts = chunk_counts or {}
        self.failing = set(failing)
        self.default_count = default_count
        self.calls: List[str] = []

    async def parse(self, file_path, options: Optional[ParseOptions] = None, observer=None) -> ParseResult:
        name = Path(file_path).name
        self.calls.append(name)
        emitter = ProgressEmitter(name, observer)
        emitter.started("Parsing...")
        if name in self.failing:
            emitter.failed("Parsing failed: corrupt file")
            return ParseResult(success=False, file_name=name, error="corrupt file")

        count = self.chunk_counts.get(name, self.default_count)
        chunks = [
            Chunk(
                id=chunk_id(file_path, i),
                file_name=name,
                file_type="fake",
                content=f"{name} unique-{name.split('.')[0]} chunk {i}",
                chunk_index=i,
                total_chunks=count,
                file_path=file_path,
                created_at=1700000000000,
            )
            for i in range(count)
        ]
        for i in range(count):
            emitter.advance(i + 1, count, f"Parsed unit {i + 1}")
        emitter.completed("Parsing completed")
        return ParseResult(success=True, file_name=name, chunks=chunks, total=count)
