"""
Search engine process supervisor.

Starts the Meilisearch binary as a child process, waits until its health
endpoint answers, and stops it on shutdown (terminate, grace period, kill).
With ``managed=False`` it attaches to an engine started elsewhere and only
checks its health.
"""
from __future__ import annotations

import asyncio
import logging
import subprocess
import sys
from dataclasses import dataclass
from pathlib import Path
from typing import Callable, List, Optional

import requests

from config.settings import settings
from config.user_config import UserConfigStore
from domain.errors import EngineStartupError

logger = logging.getLogger(__name__)

HEALTH_POLL_INTERVAL = 0.1


@dataclass
class EngineStatus:
    """Estado del proceso del motor"""
    is_running: bool
    host: str
    port: int

    def to_dict(self):
        return {"isRunning": self.is_running, "host": self.host, "port": self.port}


class EngineSupervisor:
    """
    Owns the lifecycle of the search engine process.

    Usage:
        supervisor = EngineSupervisor(user_config)
        supervisor.on_ready_change(lambda ready: print("ready:", ready))
        await supervisor.start()
        ...
        await supervisor.stop()
    """

    def __init__(
        self,
        user_config: UserConfigStore,
        managed: bool = True,
        host: str = settings.MEILISEARCH_HOST,
        master_key: str = settings.MEILISEARCH_MASTER_KEY,
        startup_timeout: float = settings.MEILISEARCH_STARTUP_TIMEOUT,
        stop_grace: float = settings.MEILISEARCH_STOP_GRACE,
        default_binary_dir: str | Path = "bin",
    ):
        self.user_config = user_config
        self.managed = managed
        self.host = host
        self.master_key = master_key
        self.startup_timeout = startup_timeout
        self.stop_grace = stop_grace
        self.default_binary_dir = Path(default_binary_dir)

        self._process: Optional[subprocess.Popen] = None
        self._log_file = None
        self._ready = False
        self._callbacks: List[Callable[[bool], None]] = []
        self._lock = asyncio.Lock()

    # ------------------------------------------------------------------
    # Configuration
    # ------------------------------------------------------------------

    @property
    def port(self) -> int:
        return int(self.user_config.get("meilisearchPort") or settings.MEILISEARCH_DEFAULT_PORT)

    def get_url(self) -> str:
        return f"http://{self.host}:{self.port}"

    def get_credential(self) -> str:
        return self.master_key

    def executable_path(self) -> Path:
        """Configured binary if it exists, else the bundled one under ``bin/``."""
        configured = str(self.user_config.get("meilisearchPath") or "").strip()
        if configured and Path(configured).exists():
            return Path(configured)
        name = (
            settings.MEILISEARCH_EXEC_WIN_NAME
            if sys.platform == "win32"
            else settings.MEILISEARCH_EXEC_NAME
        )
        return self.default_binary_dir / name

    def data_path(self) -> Path:
        base = str(self.user_config.get("dataPath") or "").strip() or settings.DEFAULT_DATA_DIR
        path = Path(base) / "meilisearch"
        if not path.exists():
            path.mkdir(parents=True, exist_ok=True)
            logger.info(f"Created engine data directory: {path}")
        return path

    def build_args(self, data_path: Path) -> List[str]:
        return [
            "--db-path", str(data_path),
            "--http-addr", f"{self.host}:{self.port}",
            "--master-key", self.master_key,
            "--dump-dir", str(data_path / "dumps"),
            "--snapshot-dir", str(data_path / "snapshots"),
            "--no-analytics",
        ]

    # ------------------------------------------------------------------
    # Readiness
    # ------------------------------------------------------------------

    def on_ready_change(self, callback: Callable[[bool], None]) -> None:
        """Register a callback fired with the new value whenever readiness flips."""
        self._callbacks.append(callback)

    def _set_ready(self, ready: bool) -> None:
        if ready == self._ready:
            return
        self._ready = ready
        logger.info(f"Search engine ready: {ready}")
        for callback in list(self._callbacks):
            try:
                callback(ready)
            except Exception as e:
                logger.warning(f"Engine readiness callback failed: {e}")

    def is_ready(self) -> bool:
        if self._ready and self.managed and self._process is not None:
            if self._process.poll() is not None:
                logger.error(
                    f"Search engine exited unexpectedly with code {self._process.returncode}"
                )
                self._process = None
                self._set_ready(False)
        return self._ready

    def is_healthy(self) -> bool:
        """Check if the engine answers on its health endpoint."""
        try:
            response = requests.get(f"{self.get_url()}/health", timeout=2)
            return response.status_code == 200
        except requests.exceptions.RequestException:
            return False

    def status(self) -> EngineStatus:
        return EngineStatus(is_running=self.is_ready(), host=self.host, port=self.port)

    async def _wait_healthy(self) -> bool:
        loop = asyncio.get_running_loop()
        deadline = loop.time() + self.startup_timeout
        while loop.time() < deadline:
            if self._process is not None and self._process.poll() is not None:
                raise EngineStartupError(
                    f"Search engine exited during startup with code {self._process.returncode}"
                )
            if await asyncio.to_thread(self.is_healthy):
                return True
            await asyncio.sleep(HEALTH_POLL_INTERVAL)
        return False

    # ------------------------------------------------------------------
    # Lifecycle
    # ------------------------------------------------------------------

    async def start(self) -> None:
        """
        Start the engine and wait for it to become healthy. Idempotent.

        Raises:
            EngineStartupError: If the binary is missing, exits early, or is
                not healthy within ``startup_timeout``
        """
        async with self._lock:
            if self.is_ready():
                logger.info("Search engine already running")
                return

            if not self.managed:
                if not await self._wait_healthy():
                    raise EngineStartupError(f"No search engine answering at {self.get_url()}")
                self._set_ready(True)
                return

            exec_path = self.executable_path()
            if not exec_path.exists():
                raise EngineStartupError(f"Search engine executable not found: {exec_path}")

            data_path = self.data_path()
            logger.info(
                f"Starting search engine: {exec_path} (data={data_path}, port={self.port})"
            )
            self._log_file = open(data_path / "meilisearch.log", "ab")
            try:
                self._process = subprocess.Popen(
                    [str(exec_path), *self.build_args(data_path)],
                    stdout=self._log_file,
                    stderr=subprocess.STDOUT,
                    cwd=str(data_path),
                )
            except OSError as e:
                self._close_log()
                raise EngineStartupError(f"Failed to start search engine: {e}") from e

            try:
                healthy = await self._wait_healthy()
            except EngineStartupError:
                self._process = None
                self._close_log()
                raise
            if not healthy:
                await self._terminate()
                raise EngineStartupError(
                    f"Search engine did not start within {self.startup_timeout:.1f}s"
                )

            self._set_ready(True)
            logger.info(f"Search engine listening on {self.get_url()}")

    async def stop(self) -> None:
        """Stop the engine. Safe to call when it is not running."""
        async with self._lock:
            if self._process is None:
                self._set_ready(False)
                return
            logger.info("Stopping search engine...")
            await self._terminate()

    async def _terminate(self) -> None:
        process = self._process
        if process is None:
            return
        if process.poll() is None:
            process.terminate()
            try:
                await asyncio.to_thread(process.wait, self.stop_grace)
            except subprocess.TimeoutExpired:
                logger.warning("Search engine did not exit in time, killing it")
                process.kill()
                await asyncio.to_thread(process.wait)
        logger.info(f"Search engine stopped (code {process.returncode})")
        self._process = None
        self._close_log()
        self._set_ready(False)

    def _close_log(self) -> None:
        if self._log_file is not None:
            self._log_file.close()
            self._log_file = None
