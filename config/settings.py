"""
Settings and configuration management using Pydantic BaseSettings.
All configuration values can be overridden via environment variables.
"""
from typing import List

from pydantic_settings import BaseSettings


class Settings(BaseSettings):
    """
    Application settings with environment variable support.

    All settings can be overridden by creating a .env file in the project root
    or by setting environment variables with the same names.
    """

    # ========================================================================
    # MEILISEARCH ENGINE CONFIGURATION
    # ========================================================================
    MEILISEARCH_HOST: str = "127.0.0.1"
    MEILISEARCH_DEFAULT_PORT: int = 7700
    MEILISEARCH_MASTER_KEY: str = "DocMirror_Local_Key_2024_Secure_16Bytes_Min"
    MEILISEARCH_INDEX: str = "documents"
    MEILISEARCH_EXEC_NAME: str = "meilisearch"
    MEILISEARCH_EXEC_WIN_NAME: str = "meilisearch-windows-amd64.exe"
    MEILISEARCH_STARTUP_TIMEOUT: float = 5.0
    MEILISEARCH_STOP_GRACE: float = 3.0
    MEILISEARCH_REQUEST_TIMEOUT: float = 10.0

    # ========================================================================
    # PARSER CONFIGURATION
    # ========================================================================
    PDF_CHUNK_SIZE: int = 50  # Pages per chunk
    MAX_CHUNKS: int = 1000
    TEXT_CHUNK_SIZE: int = 200  # Lines per chunk for plain-text files

    # ========================================================================
    # INDEXING CONFIGURATION
    # ========================================================================
    INDEX_BACKEND: str = "meilisearch"  # Available: "meilisearch", "memory"
    INDEX_BATCH_SIZE: int = 100
    TASK_TIMEOUT: float = 30.0
    TASK_POLL_INTERVAL: float = 0.1
    ROLLBACK_ON_BATCH_FAILURE: bool = False

    # ========================================================================
    # SEARCH CONFIGURATION
    # ========================================================================
    SEARCH_BATCH_SIZE: int = 500
    SEARCH_CROP_LENGTH: int = 50
    SEARCH_CROP_MARKER: str = "..."
    SEARCH_HIGHLIGHT_PRE_TAG: str = "<mark>"
    SEARCH_HIGHLIGHT_POST_TAG: str = "</mark>"

    # ========================================================================
    # APPLICATION
    # ========================================================================
    CONFIG_FILE: str = "data/config.json"
    DEFAULT_DATA_DIR: str = "data"
    MANAGE_ENGINE: bool = True  # Start/stop the engine subprocess
    LOG_LEVEL: str = "INFO"
    API_HOST: str = "127.0.0.1"
    API_PORT: int = 9000
    CORS_ORIGINS: List[str] = [
        "http://localhost:5173",
        "http://127.0.0.1:5173",
        "app://.",  # packaged desktop shell
    ]

    class Config:
        env_file = ".env"
        env_file_encoding = "utf-8"
        case_sensitive = True


# Singleton instance
settings = Settings()
