"""
Error taxonomy for the ingestion and indexing pipeline.
"""


class MirrorError(Exception):
    """Base exception for all pipeline errors"""
    pass


class UnsupportedFormatError(MirrorError):
    """La extensión del archivo no tiene parser registrado"""
    pass


class ParseFailureError(MirrorError):
    """El parser no pudo producir contenido utilizable"""
    pass


class IndexClientError(MirrorError):
    """The search engine returned an error or could not be reached"""

    def __init__(self, message: str, code: str | None = None, status_code: int | None = None):
        super().__init__(message)
        self.code = code
        self.status_code = status_code


class EngineNotReadyError(IndexClientError):
    """The search engine is not running or not accepting requests yet"""
    pass


class IndexBatchError(MirrorError):
    """An indexing task resolved to a failed state"""

    def __init__(self, message: str, task_uid: int | None = None):
        super().__init__(message)
        self.task_uid = task_uid


class TaskTimeoutError(IndexBatchError):
    """An indexing task did not reach a terminal state in time"""
    pass


class RecordStoreError(MirrorError):
    """Error reading or writing upload records"""
    pass


class StoreNotInitializedError(RecordStoreError):
    """The record store was used before initialize()"""
    pass


class RecordNotFoundError(MirrorError):
    """No upload record exists for the requested file id"""
    pass


class DeletionInconsistencyError(MirrorError):
    """Index and record store disagree after a partial deletion"""

    def __init__(self, message: str, file_id: str):
        super().__init__(message)
        self.file_id = file_id


class EngineStartupError(MirrorError):
    """The search engine process could not be started"""
    pass
