"""Tests for script execution and the psutil process table."""

import os
import signal
import subprocess
from pathlib import Path
from unittest.mock import Mock, patch

import psutil
import pytest

from redeploy.core.errors import ProcessError, ProcessTimeoutError
from redeploy.core.process import PsutilProcessTable, ScriptRunner, get_child_pids
from redeploy.core.value_objects import ProcessMatcher


class TestScriptRunner:
    """Test ScriptRunner with a mocked Popen."""

    def test_run_success(self, patch_dangerous_operations):
        popen = patch_dangerous_operations["popen"]
        popen.return_value.communicate.return_value = ("started\n", "")

        result = ScriptRunner().run([Path("/srv/bin/startup.sh")], cwd=Path("/srv"), timeout=5)

        assert result.returncode == 0
        assert result.stdout == "started\n"
        assert result.timed_out is False
        args, kwargs = popen.call_args
        assert args[0] == ["/srv/bin/startup.sh"]
        assert kwargs["cwd"] == Path("/srv")
        assert kwargs["stdin"] is subprocess.DEVNULL
        popen.return_value.communicate.assert_called_once_with(timeout=5)

    def test_default_timeout(self, patch_dangerous_operations):
        popen = patch_dangerous_operations["popen"]

        ScriptRunner(default_timeout=42).run(["true"])

        popen.return_value.communicate.assert_called_once_with(timeout=42)

    def test_nonzero_exit_is_returned(self, patch_dangerous_operations):
        popen = patch_dangerous_operations["popen"]
        popen.return_value.returncode = 3
        popen.return_value.communicate.return_value = ("", "boom")

        result = ScriptRunner().run(["false"])

        assert result.returncode == 3
        assert result.stderr == "boom"

    def test_launch_failure(self, patch_dangerous_operations):
        patch_dangerous_operations["popen"].side_effect = FileNotFoundError("nope")

        with pytest.raises(ProcessError, match="Failed to execute"):
            ScriptRunner().run(["/missing/script.sh"])

    def test_timeout_kills_script(self, patch_dangerous_operations):
        process = patch_dangerous_operations["popen"].return_value
        process.communicate.side_effect = [
            subprocess.TimeoutExpired(cmd="slow.sh", timeout=1),
            ("", ""),
        ]

        with pytest.raises(ProcessTimeoutError) as exc_info:
            ScriptRunner().run(["slow.sh"], timeout=1)

        assert exc_info.value.timeout == 1
        process.kill.assert_called_once()


def _proc(pid, cmdline, status=psutil.STATUS_SLEEPING):
    proc = Mock()
    proc.info = {"pid": pid, "cmdline": cmdline}
    proc.status.return_value = status
    return proc


class TestPsutilProcessTable:
    """Test process discovery and signalling."""

    def setup_method(self):
        self.matcher = ProcessMatcher("catalina.startup.Bootstrap")

    def test_find_matches_command_line(self):
        processes = [
            _proc(100, ["java", "org.apache.catalina.startup.Bootstrap", "start"]),
            _proc(101, ["bash"]),
            _proc(102, None),
        ]
        with patch("psutil.process_iter", return_value=processes):
            assert PsutilProcessTable().find(self.matcher) == [100]

    def test_find_skips_self_and_zombies(self):
        processes = [
            _proc(os.getpid(), ["redeploy", "catalina.startup.Bootstrap"]),
            _proc(200, ["java", "catalina.startup.Bootstrap"], status=psutil.STATUS_ZOMBIE),
            _proc(201, ["java", "catalina.startup.Bootstrap"]),
        ]
        with patch("psutil.process_iter", return_value=processes):
            assert PsutilProcessTable().find(self.matcher) == [201]

    def test_find_tolerates_vanishing_processes(self):
        gone = _proc(300, ["java", "catalina.startup.Bootstrap"])
        gone.status.side_effect = psutil.NoSuchProcess(300)
        with patch("psutil.process_iter", return_value=[gone]):
            assert PsutilProcessTable().find(self.matcher) == []

    def test_kill_includes_descendants(self, patch_dangerous_operations):
        child = Mock(pid=501)
        child.is_running.return_value = True
        patch_dangerous_operations["psutil_process"].return_value.children.return_value = [child]
        mock_kill = patch_dangerous_operations["kill"]

        signalled = PsutilProcessTable().kill([500])

        assert signalled == [500, 501]
        mock_kill.assert_any_call(500, signal.SIGKILL)
        mock_kill.assert_any_call(501, signal.SIGKILL)

    def test_kill_skips_dead_and_forbidden(self, patch_dangerous_operations):
        patch_dangerous_operations["kill"].side_effect = [
            ProcessLookupError(),
            PermissionError("not yours"),
            None,
        ]

        assert PsutilProcessTable().kill([1, 2, 3], signal.SIGTERM) == [3]


class TestGetChildPids:
    """Test descendant discovery."""

    def test_no_such_process(self, patch_dangerous_operations):
        patch_dangerous_operations["psutil_process"].side_effect = psutil.NoSuchProcess(1)

        assert get_child_pids(1) == []
