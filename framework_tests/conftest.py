"""Test configuration, fixtures and host doubles for redeploy tests."""

import signal
from pathlib import Path
from typing import Callable, Dict, List, Optional, Sequence
from unittest.mock import Mock

import pytest

from redeploy.core.errors import ProcessError
from redeploy.core.process import ProcessResult
from redeploy.core.types import RedeployConfig
from redeploy.core.value_objects import ProcessMatcher, ServerInstallation

STOP_SCRIPT = "#!/bin/sh\nexit 0\n"
START_SCRIPT = "#!/bin/sh\nexit 0\n"


class FakeProcessTable:
    """In-memory process table.

    ``pids`` is what find() reports. Scripted answers queued with
    ``answers`` take precedence, one per find() call, which lets a test
    describe exactly what each poll sees.
    """

    def __init__(self, pids: Optional[List[int]] = None, survive_kill: bool = False) -> None:
        self.pids: List[int] = list(pids or [])
        self.survive_kill = survive_kill
        self.answers: List[List[int]] = []
        self.find_calls = 0
        self.kill_calls: List[tuple] = []

    def find(self, matcher: ProcessMatcher) -> List[int]:
        self.find_calls += 1
        if self.answers:
            return list(self.answers.pop(0))
        return list(self.pids)

    def kill(self, pids: Sequence[int], sig: int = signal.SIGKILL) -> List[int]:
        self.kill_calls.append((list(pids), sig))
        if not self.survive_kill:
            self.pids = [pid for pid in self.pids if pid not in pids]
        return list(pids)

    @property
    def running(self) -> bool:
        return bool(self.pids)


class FakeRunner:
    """Records script invocations and runs per-script side effects.

    Side effects are keyed by script file name, e.g. ``startup.sh``.
    """

    def __init__(self, returncode: int = 0) -> None:
        self.returncode = returncode
        self.calls: List[List[str]] = []
        self.actions: Dict[str, Callable[[], None]] = {}
        self.errors: Dict[str, Exception] = {}

    def on(self, script_name: str, action: Callable[[], None]) -> "FakeRunner":
        self.actions[script_name] = action
        return self

    def fail(self, script_name: str, error: Optional[Exception] = None) -> "FakeRunner":
        self.errors[script_name] = error or ProcessError(f"cannot execute {script_name}")
        return self

    def run(self, command, cwd=None, timeout=None) -> ProcessResult:
        command = [str(part) for part in command]
        self.calls.append(command)
        name = Path(command[0]).name
        if name in self.errors:
            raise self.errors[name]
        if name in self.actions:
            self.actions[name]()
        return ProcessResult(returncode=self.returncode, stdout="", stderr="", duration=0.0)

    @property
    def scripts(self) -> List[str]:
        return [Path(command[0]).name for command in self.calls]


def write_script(path: Path, body: str, mode: int = 0o755) -> Path:
    path.parent.mkdir(parents=True, exist_ok=True)
    path.write_text(body)
    path.chmod(mode)
    return path


@pytest.fixture
def install_root(tmp_path):
    """A minimal application server layout under a temporary directory."""
    root = tmp_path / "tomcat"
    write_script(root / "bin" / "shutdown.sh", STOP_SCRIPT)
    write_script(root / "bin" / "startup.sh", START_SCRIPT)
    (root / "webapps").mkdir(parents=True)
    (root / "logs").mkdir()
    (root / "logs" / "catalina.out").write_text(
        "".join(f"log line {i}\n" for i in range(1, 101))
    )
    return root


@pytest.fixture
def installation(install_root):
    return ServerInstallation(
        root=install_root,
        start_script=install_root / "bin" / "startup.sh",
        stop_script=install_root / "bin" / "shutdown.sh",
        content_dir=install_root / "webapps",
        log_file=install_root / "logs" / "catalina.out",
    )


@pytest.fixture
def artifact_file(tmp_path):
    path = tmp_path / "build" / "app.war"
    path.parent.mkdir(parents=True)
    path.write_bytes(b"PK\x03\x04 new release")
    return path


@pytest.fixture
def make_config(install_root):
    """Factory for configs with every wait set to zero."""

    def _make(**overrides) -> RedeployConfig:
        data = {
            "installation": {"root": install_root},
            "artifact": {"name": "app"},
            "timeouts": {
                "stop_grace": 0,
                "kill_wait": 0,
                "start_settle": 0,
                "verify_settle": 0,
                "script_timeout": 5,
            },
            "polling": {"poll_interval": 0},
        }
        for key, value in overrides.items():
            if isinstance(value, dict) and isinstance(data.get(key), dict):
                data[key] = {**data[key], **value}
            else:
                data[key] = value
        return RedeployConfig(**data)

    return _make


@pytest.fixture
def process_table():
    return FakeProcessTable()


@pytest.fixture
def runner():
    return FakeRunner()


@pytest.fixture
def sleep():
    """Sleep double that returns immediately and records requested waits."""
    return Mock(return_value=None)


@pytest.fixture
def mock_logger():
    """Mock logger for testing."""
    return Mock()
