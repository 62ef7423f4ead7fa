"""
Stable identifiers for files and chunks.

Ids are derived from the file path only, so re-ingesting the same path
produces the same ids and overwrites the previous documents and record.
"""
import hashlib

FILE_ID_LENGTH = 16
CHUNK_SEPARATOR = "_chunk_"


def file_id(file_path: str, length: int = FILE_ID_LENGTH) -> str:
    """
    Derive the file id: md5 of the path, truncated to ``length`` hex chars.

    The result only contains [0-9a-f], which every index engine accepts as a
    primary key regardless of the characters in the original path.
    """
    digest = hashlib.md5(str(file_path).encode("utf-8")).hexdigest()
    return digest[:length]


def chunk_id(file_path: str, chunk_index: int) -> str:
    """Id of the ``chunk_index``-th (zero based) chunk of ``file_path``."""
    return f"{file_id(file_path)}{CHUNK_SEPARATOR}{chunk_index}"
