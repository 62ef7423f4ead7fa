"""
Unit tests for file and chunk ids.
"""
import hashlib

from ingestion.ids import CHUNK_SEPARATOR, FILE_ID_LENGTH, chunk_id, file_id


class TestFileId:
    """Tests para file_id"""

    def test_md5_of_path_truncated(self):
        """Prueba que el id es el md5 de la ruta truncado a 16 caracteres"""
        expected = hashlib.md5("/docs/informe.pdf".encode("utf-8")).hexdigest()[:16]
        assert file_id("/docs/informe.pdf") == expected
        assert len(file_id("/docs/informe.pdf")) == FILE_ID_LENGTH

    def test_stable_across_calls(self):
        """Prueba que la misma ruta produce siempre el mismo id"""
        assert file_id("/docs/a.pdf") == file_id("/docs/a.pdf")

    def test_distinct_paths(self):
        """Prueba que rutas distintas producen ids distintos"""
        assert file_id("/docs/a.pdf") != file_id("/docs/b.pdf")
        assert file_id("/docs/a.pdf") != file_id("/DOCS/a.pdf")

    def test_custom_length(self):
        assert len(file_id("/docs/a.pdf", length=8)) == 8

    def test_non_ascii_path(self):
        """Prueba rutas con caracteres no ASCII"""
        fid = file_id("/docs/año/reseña.pdf")
        assert len(fid) == 16
        assert all(c in "0123456789abcdef" for c in fid)


class TestChunkId:
    """Tests para chunk_id"""

    def test_format(self):
        assert chunk_id("/docs/a.pdf", 3) == f"{file_id('/docs/a.pdf')}{CHUNK_SEPARATOR}3"
        assert chunk_id("/docs/a.pdf", 0).endswith("_chunk_0")

    def test_idempotent(self):
        """Prueba que re-ingresar el mismo índice produce el mismo id"""
        assert chunk_id("/docs/a.pdf", 7) == chunk_id("/docs/a.pdf", 7)

    def test_unique_per_index(self):
        ids = {chunk_id("/docs/a.pdf", i) for i in range(100)}
        assert len(ids) == 100
