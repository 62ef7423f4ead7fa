"""
Parser contracts.

A parser is anything that declares ``supported_extensions`` and implements
``parse(file_path, options, observer)``. Formats are added by registering a
new object that satisfies ``DocumentParser`` with the ``ParserRegistry``;
there is no base class to inherit from.
"""
from __future__ import annotations

import logging
from typing import Optional, Protocol, Sequence, runtime_checkable

from domain.models import ParseOptions, ParseProgress, ParseResult, ProgressStatus

logger = logging.getLogger(__name__)


@runtime_checkable
class ProgressObserver(Protocol):
    """Receives progress snapshots. Observers are advisory."""

    def on_progress(self, progress: ParseProgress) -> None:
        ...


@runtime_checkable
class DocumentParser(Protocol):
    """Capability: parse a file into ordered text chunks."""

    supported_extensions: Sequence[str]

    async def parse(
        self,
        file_path: str,
        options: Optional[ParseOptions] = None,
        observer: Optional[ProgressObserver] = None,
    ) -> ParseResult:
        ...


class ProgressEmitter:
    """
    Emits the progress events of one parse run.

    Guarantees that ``current`` never decreases, that nothing is emitted
    after the terminal event, and that a failing observer never interrupts
    the parse.
    """

    def __init__(self, file_name: str, observer: Optional[ProgressObserver]):
        self.file_name = file_name
        self.observer = observer
        self._current = 0
        self._total = 0
        self._finished = False

    @property
    def finished(self) -> bool:
        return self._finished

    def started(self, message: str) -> None:
        self._emit(0, 0, ProgressStatus.PARSING, message)

    def advance(self, current: int, total: int, message: str) -> None:
        self._emit(current, total, ProgressStatus.PARSING, message)

    def completed(self, message: str) -> None:
        self._emit(self._total, self._total, ProgressStatus.COMPLETED, message)

    def failed(self, message: str) -> None:
        self._emit(self._current, self._total, ProgressStatus.FAILED, message)

    def _emit(self, current: int, total: int, status: ProgressStatus, message: str) -> None:
        if self._finished:
            return
        self._current = max(self._current, current)
        self._total = max(self._total, total)
        if status.is_terminal:
            self._finished = True
        if self.observer is None:
            return
        percentage = int(self._current * 100 / self._total) if self._total else 0
        if status is ProgressStatus.COMPLETED:
            percentage = 100
        progress = ParseProgress(
            file_name=self.file_name,
            current=self._current,
            total=self._total,
            percentage=percentage,
            status=status,
            message=message,
        )
        try:
            self.observer.on_progress(progress)
        except Exception as exc:
            logger.warning(
                "Progress observer failed for %s: %s", self.file_name, exc, exc_info=True
            )
