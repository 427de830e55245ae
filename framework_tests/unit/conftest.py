"""
Pytest configuration for redeploy unit tests.

Unit tests never launch scripts or signal real processes; the autouse
fixture below makes sure an accidental call cannot reach the host.
"""

from typing import Any, Dict, Generator
from unittest.mock import patch

import pytest

from redeploy.core.log import reset_logging


@pytest.fixture(autouse=True)
def patch_dangerous_operations() -> Generator[Dict[str, Any], None, None]:
    """Patch operations that would touch real processes during unit tests."""
    with (
        patch("subprocess.Popen") as mock_popen,
        patch("os.kill") as mock_kill,
        patch("psutil.Process") as mock_psutil_process,
    ):
        mock_subprocess = mock_popen.return_value
        mock_subprocess.pid = 12345
        mock_subprocess.returncode = 0
        mock_subprocess.communicate.return_value = ("", "")

        mock_kill.return_value = None

        mock_psutil_instance = mock_psutil_process.return_value
        mock_psutil_instance.children.return_value = []

        yield {
            "popen": mock_popen,
            "kill": mock_kill,
            "psutil_process": mock_psutil_process,
        }


@pytest.fixture(autouse=True)
def cleanup_logging() -> Generator[None, None, None]:
    """Drop handlers installed by a test so the next one starts unconfigured."""
    yield
    reset_logging()


def pytest_runtest_teardown(item: Any, nextitem: Any) -> None:
    """Teardown after each test."""
    if "needs_gc" in item.keywords:
        import gc

        gc.collect()
