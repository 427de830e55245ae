"""Tests for DeploymentVerifier."""

from unittest.mock import Mock

import pytest

from redeploy.core.enums import VerificationOutcome
from redeploy.core.types import PollingConfig
from redeploy.deploy.verifier import DeploymentVerifier
from redeploy.utils.filesystem import LocalFileSystem


@pytest.fixture
def deploy_dir(tmp_path):
    target = tmp_path / "webapps"
    target.mkdir()
    return target


def _verifier(mock_logger, sleep, running=True, **kwargs):
    return DeploymentVerifier(
        logger=mock_logger,
        filesystem=LocalFileSystem(),
        is_running=Mock(return_value=running),
        sleep=sleep,
        **kwargs,
    )


class TestConfirm:
    """Test verification outcomes."""

    def test_confirmed_when_content_extracted(self, mock_logger, sleep, deploy_dir):
        (deploy_dir / "app").mkdir()

        outcome = _verifier(mock_logger, sleep).confirm(deploy_dir, "app")

        assert outcome is VerificationOutcome.CONFIRMED
        sleep.assert_called_once_with(10.0)

    def test_pending_when_running_without_content(self, mock_logger, sleep, deploy_dir):
        outcome = _verifier(mock_logger, sleep, running=True).confirm(deploy_dir, "app")

        assert outcome is VerificationOutcome.PENDING
        mock_logger.warning.assert_called_once()

    def test_not_running(self, mock_logger, sleep, deploy_dir):
        outcome = _verifier(mock_logger, sleep, running=False).confirm(deploy_dir, "app")

        assert outcome is VerificationOutcome.NOT_RUNNING

    def test_archive_alone_is_not_confirmation(self, mock_logger, sleep, deploy_dir):
        (deploy_dir / "app.war").write_bytes(b"archive")

        outcome = _verifier(mock_logger, sleep).confirm(deploy_dir, "app")

        assert outcome is VerificationOutcome.PENDING

    def test_settle_timeout_override(self, mock_logger, sleep, deploy_dir):
        (deploy_dir / "app").mkdir()

        _verifier(mock_logger, sleep, settle_timeout=30).confirm(
            deploy_dir, "app", settle_timeout=0
        )

        sleep.assert_not_called()

    def test_extraction_observed_on_later_attempt(self, mock_logger, deploy_dir):
        def extract_after_first_interval(seconds):
            if seconds == 2:
                (deploy_dir / "app").mkdir(exist_ok=True)

        sleep = Mock(side_effect=extract_after_first_interval)
        verifier = _verifier(
            mock_logger,
            sleep,
            settle_timeout=1,
            polling=PollingConfig(poll_interval=2, verify_poll_attempts=3),
        )

        assert verifier.confirm(deploy_dir, "app") is VerificationOutcome.CONFIRMED
        assert sleep.call_count == 2
