"""
Domain models for the document mirror.
Defines the core entities shared by parsers, index client, record store and services.
"""
from __future__ import annotations

from dataclasses import dataclass, field, asdict
from datetime import datetime
from enum import Enum
from typing import List, Optional, Dict, Any


class ProgressStatus(Enum):
    """Estados de un evento de progreso"""
    PARSING = "parsing"
    INDEXING = "indexing"
    COMPLETED = "completed"
    FAILED = "failed"

    @property
    def is_terminal(self) -> bool:
        return self in (ProgressStatus.COMPLETED, ProgressStatus.FAILED)


class TaskStatus(Enum):
    """Estados de una tarea asíncrona del motor de búsqueda"""
    ENQUEUED = "enqueued"
    PROCESSING = "processing"
    SUCCEEDED = "succeeded"
    FAILED = "failed"
    CANCELED = "canceled"

    @property
    def is_terminal(self) -> bool:
        return self in (TaskStatus.SUCCEEDED, TaskStatus.FAILED, TaskStatus.CANCELED)


@dataclass
class FileRecord:
    """Registro de procedencia de un archivo ingresado"""
    file_id: str
    file_name: str
    file_path: str
    ingested_at: datetime

    @classmethod
    def create(cls, file_id: str, file_name: str, file_path: str) -> "FileRecord":
        """Crea un registro con la hora actual (precisión de segundos)"""
        return cls(
            file_id=file_id,
            file_name=file_name,
            file_path=file_path,
            ingested_at=datetime.now().replace(microsecond=0),
        )

    def to_dict(self) -> Dict[str, Any]:
        return {
            "fileId": self.file_id,
            "fileName": self.file_name,
            "filePath": self.file_path,
            "uploadTime": self.ingested_at.strftime("%Y-%m-%d %H:%M:%S"),
        }


@dataclass
class Chunk:
    """Representa un fragmento de un documento tal como se indexa"""
    id: str
    file_name: str
    file_type: str
    content: str
    chunk_index: int
    total_chunks: int
    file_path: str
    created_at: int  # epoch milliseconds
    file_id: Optional[str] = None
    page_range: Optional[str] = None
    total_pages: Optional[int] = None
    metadata: Optional[Dict[str, Any]] = None

    def to_document(self) -> Dict[str, Any]:
        """Serializa el chunk con los nombres de atributo del índice"""
        doc: Dict[str, Any] = {
            "id": self.id,
            "fileId": self.file_id,
            "fileName": self.file_name,
            "fileType": self.file_type,
            "content": self.content,
            "chunkIndex": self.chunk_index,
            "totalChunks": self.total_chunks,
            "filePath": self.file_path,
            "createdAt": self.created_at,
        }
        if self.page_range is not None:
            doc["pageRange"] = self.page_range
        if self.total_pages is not None:
            doc["totalPages"] = self.total_pages
        if self.metadata is not None:
            doc["metadata"] = self.metadata
        return doc

    @classmethod
    def from_document(cls, doc: Dict[str, Any]) -> "Chunk":
        return cls(
            id=doc["id"],
            file_id=doc.get("fileId"),
            file_name=doc["fileName"],
            file_type=doc["fileType"],
            content=doc.get("content", ""),
            chunk_index=doc["chunkIndex"],
            total_chunks=doc["totalChunks"],
            file_path=doc["filePath"],
            created_at=doc["createdAt"],
            page_range=doc.get("pageRange"),
            total_pages=doc.get("totalPages"),
            metadata=doc.get("metadata"),
        )


@dataclass
class ParseProgress:
    """Instantánea de progreso emitida durante el pipeline de un archivo"""
    file_name: str
    current: int
    total: int
    percentage: int
    status: ProgressStatus
    message: Optional[str] = None

    def to_dict(self) -> Dict[str, Any]:
        return {
            "fileName": self.file_name,
            "current": self.current,
            "total": self.total,
            "percentage": self.percentage,
            "status": self.status.value,
            "message": self.message,
        }


@dataclass
class ParseOptions:
    """Opciones de parseo (chunk_size en páginas para formatos paginados)"""
    chunk_size: int = 50
    max_chunks: int = 1000
    extract_metadata: bool = False

    def validate(self):
        """Valida la configuración"""
        if self.chunk_size <= 0:
            raise ValueError("chunk_size must be greater than 0")
        if self.max_chunks <= 0:
            raise ValueError("max_chunks must be greater than 0")


@dataclass
class ParseResult:
    """Resultado de parsear un archivo"""
    success: bool
    file_name: str
    chunks: List[Chunk] = field(default_factory=list)
    total: int = 0
    error: Optional[str] = None


@dataclass
class IndexTask:
    """Handle de una tarea asíncrona del motor"""
    uid: int
    status: TaskStatus
    error_message: Optional[str] = None
    details: Dict[str, Any] = field(default_factory=dict)


@dataclass
class IndexStats:
    """Estadísticas del índice"""
    number_of_documents: int
    is_indexing: bool
    field_distribution: Dict[str, int] = field(default_factory=dict)

    def to_dict(self) -> Dict[str, Any]:
        return {
            "numberOfDocuments": self.number_of_documents,
            "isIndexing": self.is_indexing,
            "fieldDistribution": self.field_distribution,
        }


@dataclass
class SearchOptions:
    """Opciones de búsqueda"""
    limit: Optional[int] = None
    offset: int = 0
    filter: Optional[str] = None
    sort: Optional[List[str]] = None
    batch_size: Optional[int] = None
    include_content: bool = False
    fetch_all_hits: bool = True


@dataclass
class SearchResult:
    """Resultado agregado de una búsqueda"""
    hits: List[Dict[str, Any]]
    query: str
    processing_time_ms: int
    estimated_total_hits: int
    facet_distribution: Optional[Dict[str, Dict[str, int]]] = None

    def to_dict(self) -> Dict[str, Any]:
        return {
            "hits": self.hits,
            "query": self.query,
            "processingTimeMs": self.processing_time_ms,
            "estimatedTotalHits": self.estimated_total_hits,
            "facetDistribution": self.facet_distribution,
        }


@dataclass
class FileFailure:
    """Archivo que no pudo ser ingresado"""
    file_name: str
    error: str


@dataclass
class IngestionResult:
    """Resultado agregado de una llamada de ingesta"""
    success: List[str] = field(default_factory=list)
    failed: List[FileFailure] = field(default_factory=list)

    def to_dict(self) -> Dict[str, Any]:
        return {
            "success": list(self.success),
            "failed": [
                {"fileName": f.file_name, "error": f.error} for f in self.failed
            ],
        }


@dataclass
class OperationResult:
    """Envoltorio {success, data|error} devuelto a la capa externa"""
    success: bool
    data: Any = None
    error: Optional[str] = None

    @classmethod
    def ok(cls, data: Any = None) -> "OperationResult":
        return cls(success=True, data=data)

    @classmethod
    def fail(cls, error: str) -> "OperationResult":
        return cls(success=False, error=error)

    def to_dict(self) -> Dict[str, Any]:
        if self.success:
            return {"success": True, "data": _to_plain(self.data)}
        return {"success": False, "error": self.error}


def _to_plain(value: Any) -> Any:
    if value is None or isinstance(value, (str, int, float, bool)):
        return value
    if hasattr(value, "to_dict"):
        return value.to_dict()
    if isinstance(value, (list, tuple)):
        return [_to_plain(v) for v in value]
    if isinstance(value, dict):
        return {k: _to_plain(v) for k, v in value.items()}
    return asdict(value)
