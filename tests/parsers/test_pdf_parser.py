"""
Unit tests for PdfParser.
"""
from unittest.mock import Mock, patch

import pytest

from domain.models import ParseOptions, ProgressStatus
from ingestion.ids import chunk_id
from ingestion.parsers.pdf_parser import PdfParser
from ingestion.progress import CallbackObserver

PDF_PATH = "/docs/manual.pdf"


def make_reader(page_texts):
    """Fake PdfReader; ``None`` marks a page whose extraction raises."""
    pages = []
    for text in page_texts:
        page = Mock()
        if text is None:
            page.extract_text.side_effect = RuntimeError("bad content stream")
        else:
            page.extract_text.return_value = text
        pages.append(page)
    reader = Mock()
    reader.pages = pages
    return reader


@pytest.fixture
def parser():
    return PdfParser()


@pytest.fixture
def events():
    return []


@pytest.fixture
def observer(events):
    return CallbackObserver(events.append)


class TestPdfParserChunking:
    """Tests para la división en chunks por páginas"""

    async def test_splits_by_page_ranges(self, parser):
        """Prueba 120 páginas en chunks de 50"""
        reader = make_reader([f"text {i}" for i in range(1, 121)])
        with patch("ingestion.parsers.pdf_parser.PyPDF2.PdfReader", return_value=reader):
            result = await parser.parse(PDF_PATH, ParseOptions(chunk_size=50))

        assert result.success is True
        assert result.total == 120
        assert [c.page_range for c in result.chunks] == ["1-50", "51-100", "101-120"]
        assert [c.id for c in result.chunks] == [chunk_id(PDF_PATH, i) for i in range(3)]
        assert all(c.total_chunks == 3 for c in result.chunks)
        assert all(c.total_pages == 120 for c in result.chunks)
        assert all(c.file_type == "pdf" for c in result.chunks)
        assert [c.chunk_index for c in result.chunks] == [0, 1, 2]

    async def test_joins_pages_with_markers(self, parser):
        reader = make_reader(["alpha", "beta"])
        with patch("ingestion.parsers.pdf_parser.PyPDF2.PdfReader", return_value=reader):
            result = await parser.parse(PDF_PATH, ParseOptions(chunk_size=50))

        assert result.chunks[0].content == "--- Page 1 ---\nalpha\n--- Page 2 ---\nbeta"

    async def test_cap_produces_exactly_max_chunks(self, parser):
        """Prueba que se respeta max_chunks sin error"""
        reader = make_reader([f"p{i}" for i in range(120)])
        with patch("ingestion.parsers.pdf_parser.PyPDF2.PdfReader", return_value=reader):
            result = await parser.parse(PDF_PATH, ParseOptions(chunk_size=10, max_chunks=5))

        assert result.success is True
        assert len(result.chunks) == 5
        assert result.chunks[-1].page_range == "41-50"
        assert all(c.total_chunks == 5 for c in result.chunks)
        # Pages after the cap are never read
        assert not reader.pages[50].extract_text.called


class TestPdfParserFailures:
    """Tests para errores de extracción"""

    async def test_failed_page_is_marked(self, parser):
        """Prueba que una página fallida no aborta el parseo"""
        reader = make_reader(["one", None, "three"])
        with patch("ingestion.parsers.pdf_parser.PyPDF2.PdfReader", return_value=reader):
            result = await parser.parse(PDF_PATH, ParseOptions(extract_metadata=True))

        assert result.success is True
        content = result.chunks[0].content
        assert "--- Page 2 (extraction failed) ---" in content
        assert "one" in content and "three" in content
        assert result.chunks[0].metadata == {"pagesInChunk": 3, "failedPages": [2]}

    async def test_all_pages_failed_is_a_failure(self, parser):
        reader = make_reader([None, None])
        with patch("ingestion.parsers.pdf_parser.PyPDF2.PdfReader", return_value=reader):
            result = await parser.parse(PDF_PATH)

        assert result.success is False
        assert result.chunks == []

    async def test_unreadable_document(self, parser, observer, events):
        """Prueba un PDF corrupto"""
        with patch(
            "ingestion.parsers.pdf_parser.PyPDF2.PdfReader",
            side_effect=ValueError("EOF marker not found"),
        ):
            result = await parser.parse(PDF_PATH, observer=observer)

        assert result.success is False
        assert result.chunks == []
        assert "EOF marker not found" in result.error
        assert events[-1].status is ProgressStatus.FAILED

    async def test_empty_document(self, parser):
        with patch("ingestion.parsers.pdf_parser.PyPDF2.PdfReader", return_value=make_reader([])):
            result = await parser.parse(PDF_PATH)
        assert result.success is False

    async def test_invalid_options(self, parser):
        with pytest.raises(ValueError):
            await parser.parse(PDF_PATH, ParseOptions(chunk_size=0))


class TestPdfParserProgress:
    """Tests para los eventos de progreso"""

    async def test_progress_is_monotonic_with_single_terminal(self, parser, observer, events):
        reader = make_reader([f"p{i}" for i in range(120)])
        with patch("ingestion.parsers.pdf_parser.PyPDF2.PdfReader", return_value=reader):
            await parser.parse(PDF_PATH, ParseOptions(chunk_size=50), observer)

        currents = [e.current for e in events]
        assert currents == sorted(currents)
        terminal = [e for e in events if e.status.is_terminal]
        assert len(terminal) == 1
        assert events[-1].status is ProgressStatus.COMPLETED
        assert events[-1].percentage == 100
        assert events[0].status is ProgressStatus.PARSING
        assert [e.current for e in events[1:-1]] == [50, 100, 120]
        assert all(e.file_name == "manual.pdf" for e in events)

    async def test_observer_error_does_not_break_parse(self, parser):
        failing = CallbackObserver(Mock(side_effect=RuntimeError("ui gone")))
        with patch("ingestion.parsers.pdf_parser.PyPDF2.PdfReader", return_value=make_reader(["x"])):
            result = await parser.parse(PDF_PATH, observer=failing)
        assert result.success is True
