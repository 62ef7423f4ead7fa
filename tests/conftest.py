"""
Shared fixtures for the test suite.
"""
import pytest

from config.settings import Settings
from config.user_config import UserConfigStore
from records.store import RecordStore
from searchindex.memory import InMemoryIndexClient


@pytest.fixture
def memory_client():
    return InMemoryIndexClient(batch_size=100, task_timeout=1.0, poll_interval=0.001)


@pytest.fixture
async def record_store(tmp_path):
    store = RecordStore(tmp_path / "data")
    await store.initialize()
    yield store
    await store.close()


@pytest.fixture
def user_config(tmp_path):
    return UserConfigStore(tmp_path / "config.json")


@pytest.fixture
def memory_settings(tmp_path):
    """Settings for a context running on the in-memory index."""
    return Settings(
        INDEX_BACKEND="memory",
        MANAGE_ENGINE=False,
        CONFIG_FILE=str(tmp_path / "config.json"),
        DEFAULT_DATA_DIR=str(tmp_path / "data"),
        TASK_POLL_INTERVAL=0.001,
    )


@pytest.fixture
def text_files(tmp_path):
    """Two small text documents with distinct words."""
    docs = tmp_path / "docs"
    docs.mkdir()
    alpha = docs / "alpha.txt"
    alpha.write_text("first line\nthe aardvark lives here\nlast line\n", encoding="utf-8")
    beta = docs / "beta.md"
    beta.write_text("# Beta\n\nnothing about animals\n", encoding="utf-8")
    return [str(alpha), str(beta)]
