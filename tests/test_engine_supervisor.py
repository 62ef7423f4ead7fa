"""
Tests for EngineSupervisor.
The engine process and its health endpoint are mocked.
"""
import subprocess
from unittest.mock import Mock, patch

import pytest
import requests

from domain.errors import EngineStartupError
from engine.supervisor import EngineSupervisor


def fake_process(running=True):
    process = Mock()
    process.poll.return_value = None if running else 1
    process.returncode = None if running else 1
    return process


@pytest.fixture
def binary(tmp_path):
    path = tmp_path / "bin" / "meilisearch"
    path.parent.mkdir()
    path.write_text("")
    return path


@pytest.fixture
def configured(user_config, tmp_path, binary):
    user_config.set("dataPath", str(tmp_path / "data"))
    user_config.set("meilisearchPath", str(binary))
    user_config.set("meilisearchPort", 7788)
    return user_config


def make_supervisor(config, **kwargs):
    kwargs.setdefault("startup_timeout", 0.3)
    kwargs.setdefault("stop_grace", 0.1)
    return EngineSupervisor(config, host="127.0.0.1", master_key="key", **kwargs)


class TestEngineConfiguration:
    """Tests para la configuración del proceso"""

    def test_url_and_credential(self, configured):
        supervisor = make_supervisor(configured)
        assert supervisor.get_url() == "http://127.0.0.1:7788"
        assert supervisor.get_credential() == "key"

    def test_executable_falls_back_to_bundled(self, user_config, tmp_path):
        supervisor = make_supervisor(user_config, default_binary_dir=tmp_path / "bundled")
        assert supervisor.executable_path().parent == tmp_path / "bundled"

    def test_data_path_is_created(self, configured, tmp_path):
        path = make_supervisor(configured).data_path()
        assert path == tmp_path / "data" / "meilisearch"
        assert path.is_dir()

    def test_build_args(self, configured, tmp_path):
        data = tmp_path / "data" / "meilisearch"
        args = make_supervisor(configured).build_args(data)
        assert args[args.index("--http-addr") + 1] == "127.0.0.1:7788"
        assert args[args.index("--master-key") + 1] == "key"
        assert args[args.index("--db-path") + 1] == str(data)
        assert "--no-analytics" in args

    @patch("engine.supervisor.requests.get")
    def test_is_healthy(self, mock_get, configured):
        mock_get.return_value = Mock(status_code=200)
        assert make_supervisor(configured).is_healthy() is True
        mock_get.side_effect = requests.exceptions.ConnectionError()
        assert make_supervisor(configured).is_healthy() is False


class TestEngineLifecycle:
    """Tests para el ciclo de vida del motor"""

    @patch.object(EngineSupervisor, "is_healthy", return_value=True)
    @patch("engine.supervisor.subprocess.Popen")
    async def test_start_and_stop(self, mock_popen, _healthy, configured, tmp_path):
        process = fake_process()
        mock_popen.return_value = process
        supervisor = make_supervisor(configured)
        changes = []
        supervisor.on_ready_change(changes.append)

        await supervisor.start()

        assert supervisor.is_ready() is True
        command = mock_popen.call_args.args[0]
        assert command[0] == str(configured.get("meilisearchPath"))
        assert (tmp_path / "data" / "meilisearch" / "meilisearch.log").exists()

        await supervisor.stop()

        process.terminate.assert_called_once()
        process.kill.assert_not_called()
        assert supervisor.is_ready() is False
        assert changes == [True, False]

    @patch.object(EngineSupervisor, "is_healthy", return_value=True)
    @patch("engine.supervisor.subprocess.Popen")
    async def test_start_is_idempotent(self, mock_popen, _healthy, configured):
        mock_popen.return_value = fake_process()
        supervisor = make_supervisor(configured)

        await supervisor.start()
        await supervisor.start()

        assert mock_popen.call_count == 1
        await supervisor.stop()

    @patch.object(EngineSupervisor, "is_healthy", return_value=True)
    @patch("engine.supervisor.subprocess.Popen")
    async def test_kill_after_grace(self, mock_popen, _healthy, configured):
        process = fake_process()
        process.wait.side_effect = [subprocess.TimeoutExpired("meilisearch", 0.1), 0]
        mock_popen.return_value = process
        supervisor = make_supervisor(configured)

        await supervisor.start()
        await supervisor.stop()

        process.terminate.assert_called_once()
        process.kill.assert_called_once()

    @patch.object(EngineSupervisor, "is_healthy", return_value=False)
    @patch("engine.supervisor.subprocess.Popen")
    async def test_startup_timeout(self, mock_popen, _healthy, configured):
        process = fake_process()
        mock_popen.return_value = process
        supervisor = make_supervisor(configured, startup_timeout=0.2)

        with pytest.raises(EngineStartupError, match="did not start"):
            await supervisor.start()

        process.terminate.assert_called_once()
        assert supervisor.is_ready() is False

    @patch.object(EngineSupervisor, "is_healthy", return_value=False)
    @patch("engine.supervisor.subprocess.Popen")
    async def test_process_exits_during_startup(self, mock_popen, _healthy, configured):
        mock_popen.return_value = fake_process(running=False)
        supervisor = make_supervisor(configured)

        with pytest.raises(EngineStartupError, match="exited during startup"):
            await supervisor.start()

    async def test_missing_binary(self, user_config, tmp_path):
        user_config.set("dataPath", str(tmp_path / "data"))
        user_config.set("meilisearchPath", str(tmp_path / "nope"))
        supervisor = make_supervisor(user_config, default_binary_dir=tmp_path / "bundled")

        with pytest.raises(EngineStartupError, match="not found"):
            await supervisor.start()

    @patch.object(EngineSupervisor, "is_healthy", return_value=True)
    @patch("engine.supervisor.subprocess.Popen")
    async def test_detects_crash(self, mock_popen, _healthy, configured):
        process = fake_process()
        mock_popen.return_value = process
        supervisor = make_supervisor(configured)
        await supervisor.start()

        process.poll.return_value = 137
        process.returncode = 137

        assert supervisor.is_ready() is False
        assert supervisor.status().is_running is False

    async def test_stop_when_not_running(self, configured):
        await make_supervisor(configured).stop()


class TestUnmanagedEngine:
    """Tests para un motor externo"""

    @patch("engine.supervisor.subprocess.Popen")
    @patch.object(EngineSupervisor, "is_healthy", return_value=True)
    async def test_attaches_without_spawning(self, _healthy, mock_popen, user_config):
        supervisor = make_supervisor(user_config, managed=False)

        await supervisor.start()

        assert supervisor.is_ready() is True
        mock_popen.assert_not_called()
        await supervisor.stop()
        assert supervisor.is_ready() is False

    @patch.object(EngineSupervisor, "is_healthy", return_value=False)
    async def test_no_engine_answering(self, _healthy, user_config):
        supervisor = make_supervisor(user_config, managed=False, startup_timeout=0.2)
        with pytest.raises(EngineStartupError, match="No search engine answering"):
            await supervisor.start()
