"""
Index client construction.
Maps backend names to client classes and builds the configured client.
"""
from typing import Callable, Dict, List, Optional, Type, Union
import logging

from config.settings import Settings
from searchindex.base import BaseIndexClient
from searchindex.memory import InMemoryIndexClient
from searchindex.meilisearch_client import MeilisearchIndexClient

logger = logging.getLogger(__name__)

INDEX_BACKENDS: Dict[str, Type[BaseIndexClient]] = {
    "memory": InMemoryIndexClient,
    "meilisearch": MeilisearchIndexClient,
}


def list_index_clients() -> List[str]:
    return sorted(INDEX_BACKENDS)


def create_index_client(backend: str, **kwargs) -> BaseIndexClient:
    """
    Build an index client by backend name.

    Raises:
        ValueError: If the backend name is unknown
    """
    try:
        client_class = INDEX_BACKENDS[backend]
    except KeyError:
        raise ValueError(
            f"Unknown index backend '{backend}'. Available backends: {list_index_clients()}"
        ) from None
    logger.info(f"Created index client: {backend} ({client_class.__name__})")
    return client_class(**kwargs)


def index_client_from_settings(
    settings: Settings,
    base_url: Union[str, Callable[[], str], None] = None,
    api_key: Optional[str] = None,
) -> BaseIndexClient:
    """
    Build the client selected by ``settings.INDEX_BACKEND``.

    Usage:
        client = index_client_from_settings(
            settings, base_url=supervisor.get_url, api_key=supervisor.get_credential()
        )

    ``base_url`` and ``api_key`` only apply to the Meilisearch backend. Pass
    a callable as ``base_url`` to have every request use the current engine
    address.
    """
    common = dict(
        index_name=settings.MEILISEARCH_INDEX,
        batch_size=settings.INDEX_BATCH_SIZE,
        task_timeout=settings.TASK_TIMEOUT,
        poll_interval=settings.TASK_POLL_INTERVAL,
    )
    if settings.INDEX_BACKEND == "meilisearch":
        return create_index_client(
            "meilisearch",
            base_url=base_url or f"http://{settings.MEILISEARCH_HOST}:{settings.MEILISEARCH_DEFAULT_PORT}",
            api_key=api_key,
            request_timeout=settings.MEILISEARCH_REQUEST_TIMEOUT,
            **common,
        )
    return create_index_client(settings.INDEX_BACKEND, **common)
