"""
Document parsers and the extension registry.
"""
from ingestion.parsers.base import DocumentParser, ProgressObserver, ProgressEmitter
from ingestion.parsers.pdf_parser import PdfParser
from ingestion.parsers.text_parser import TextParser
from ingestion.parsers.registry import ParserRegistry

__all__ = [
    "DocumentParser",
    "ProgressObserver",
    "ProgressEmitter",
    "PdfParser",
    "TextParser",
    "ParserRegistry",
]
