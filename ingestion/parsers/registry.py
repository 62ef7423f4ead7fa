"""
Parser registry.
Maps lowercase file extensions to parser instances.
"""
from __future__ import annotations

import logging
import threading
from pathlib import Path
from typing import Dict, Optional, Set

from ingestion.parsers.base import DocumentParser

logger = logging.getLogger(__name__)


class ParserRegistry:
    """
    Registry of document parsers keyed by extension.

    Usage:
        registry = ParserRegistry()
        registry.initialize()             # registers the built-in parsers once
        parser = registry.get_parser("/docs/report.PDF")
    """

    def __init__(self):
        self._parsers: Dict[str, DocumentParser] = {}
        self._initialized = False
        self._init_lock = threading.Lock()

    @property
    def initialized(self) -> bool:
        return self._initialized

    def initialize(self) -> None:
        """Register the default parsers. Later calls are no-ops."""
        with self._init_lock:
            if self._initialized:
                return
            self._register_default_parsers()
            self._initialized = True
        logger.info(f"ParserRegistry initialized: {sorted(self._parsers)}")

    def _register_default_parsers(self) -> None:
        from ingestion.parsers.pdf_parser import PdfParser
        from ingestion.parsers.text_parser import TextParser

        self.register(PdfParser())
        self.register(TextParser())

    def register(self, parser: DocumentParser) -> None:
        """
        Register ``parser`` under each of its extensions.
        The last registration for an extension wins.
        """
        for ext in parser.supported_extensions:
            key = ext.lower()
            previous = self._parsers.get(key)
            if previous is not None and previous is not parser:
                logger.warning(
                    f"Parser for '{key}' is already registered. "
                    f"Overwriting with {parser.__class__.__name__}"
                )
            self._parsers[key] = parser
            logger.debug(f"Registered parser: {key} -> {parser.__class__.__name__}")

    def unregister(self, extension: str) -> None:
        self._parsers.pop(extension.lower(), None)

    def get_parser(self, file_path: str) -> Optional[DocumentParser]:
        ext = Path(file_path).suffix.lower()
        parser = self._parsers.get(ext)
        if parser is None:
            logger.warning(f"Unsupported file type: {ext or '<none>'}")
        return parser

    def is_supported(self, file_path: str) -> bool:
        return Path(file_path).suffix.lower() in self._parsers

    def supported_extensions(self) -> Set[str]:
        return set(self._parsers)
