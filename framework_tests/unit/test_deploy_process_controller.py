"""Tests for the ProcessController stop and start protocols."""

import signal

import pytest

from redeploy.core.enums import ServerProcessState
from redeploy.core.errors import ProcessTimeoutError, StartError
from redeploy.core.types import PollingConfig, TimeoutConfig
from redeploy.core.value_objects import ProcessMatcher
from redeploy.deploy.process_controller import ProcessController


@pytest.fixture
def controller(mock_logger, runner, process_table, sleep):
    return ProcessController(
        logger=mock_logger,
        runner=runner,
        process_table=process_table,
        matcher=ProcessMatcher("catalina.startup.Bootstrap"),
        timeouts=TimeoutConfig(stop_grace=10, kill_wait=5, start_settle=15),
        polling=PollingConfig(poll_interval=1),
        sleep=sleep,
    )


class TestObserve:
    """Test passive observation."""

    def test_initial_state_unknown(self, controller):
        assert controller.state is None

    def test_observe(self, controller, process_table):
        assert controller.observe() is ServerProcessState.STOPPED
        process_table.pids = [10]
        assert controller.observe() is ServerProcessState.RUNNING
        assert controller.state is ServerProcessState.RUNNING
        assert controller.find_pids() == [10]


class TestStop:
    """Test the stop protocol."""

    def test_stop_when_not_running_is_idempotent(
        self, controller, runner, process_table, sleep, installation
    ):
        report = controller.stop(installation)

        assert report.final_state is ServerProcessState.STOPPED
        assert report.forced is False
        assert runner.calls == []
        assert process_table.kill_calls == []
        assert process_table.find_calls == 1
        sleep.assert_not_called()

    def test_graceful_stop(self, controller, runner, process_table, sleep, installation):
        process_table.pids = [10]
        runner.on("shutdown.sh", lambda: setattr(process_table, "pids", []))

        report = controller.stop(installation)

        assert report.final_state is ServerProcessState.STOPPED
        assert report.graceful_exit_code == 0
        assert report.forced is False
        assert runner.scripts == ["shutdown.sh"]
        assert runner.calls[0] == [str(installation.stop_script)]
        assert process_table.kill_calls == []
        sleep.assert_called_once_with(10)

    def test_escalation_kills_once_and_repolls_once(
        self, controller, runner, process_table, sleep, installation
    ):
        process_table.pids = [10, 11]

        report = controller.stop(installation)

        assert report.final_state is ServerProcessState.STOPPED
        assert report.forced is True
        assert report.lingering_pids == []
        assert process_table.kill_calls == [([10, 11], signal.SIGKILL)]
        # initial lookup, one graceful poll, one poll after the kill
        assert process_table.find_calls == 3
        assert [c.args[0] for c in sleep.call_args_list] == [10, 5]
        assert controller.state is ServerProcessState.STOPPED

    def test_lingering_process_reported(self, controller, process_table, installation):
        process_table.pids = [10]
        process_table.survive_kill = True

        report = controller.stop(installation)

        assert report.final_state is ServerProcessState.STILL_RUNNING
        assert report.lingering is True
        assert report.lingering_pids == [10]
        assert len(process_table.kill_calls) == 1
        assert process_table.find_calls == 3

    def test_kill_targets_pids_seen_at_last_poll(self, controller, process_table, installation):
        process_table.answers = [[10], [12]]
        process_table.pids = []

        controller.stop(installation)

        assert process_table.kill_calls == [([12], signal.SIGKILL)]

    def test_stop_script_timeout_still_polls(
        self, controller, runner, process_table, installation
    ):
        process_table.pids = [10]
        runner.fail("shutdown.sh", ProcessTimeoutError("hung", timeout=60))
        process_table.answers = [[10], []]

        report = controller.stop(installation)

        assert report.final_state is ServerProcessState.STOPPED
        assert report.forced is False

    def test_unlaunchable_stop_script_escalates_directly(
        self, controller, runner, process_table, sleep, installation
    ):
        process_table.pids = [10]
        runner.fail("shutdown.sh")

        report = controller.stop(installation)

        assert report.forced is True
        assert report.final_state is ServerProcessState.STOPPED
        assert process_table.find_calls == 2
        sleep.assert_called_once_with(5)

    def test_timeout_override(self, controller, runner, process_table, sleep, installation):
        process_table.pids = [10]
        runner.on("shutdown.sh", lambda: setattr(process_table, "pids", []))

        controller.stop(installation, timeout=2)

        sleep.assert_called_once_with(2)

    def test_polling_attempts(self, mock_logger, runner, process_table, sleep, installation):
        controller = ProcessController(
            logger=mock_logger,
            runner=runner,
            process_table=process_table,
            matcher=ProcessMatcher("java"),
            timeouts=TimeoutConfig(stop_grace=3, kill_wait=0),
            polling=PollingConfig(poll_interval=0.5, stop_poll_attempts=4),
            sleep=sleep,
        )
        process_table.pids = [10]

        report = controller.stop(installation)

        assert report.final_state is ServerProcessState.STOPPED
        # initial lookup, four graceful polls, one poll after the kill
        assert process_table.find_calls == 6
        assert len(process_table.kill_calls) == 1


class TestStart:
    """Test the start protocol."""

    def test_start_confirms_running(self, controller, runner, process_table, sleep, installation):
        runner.on("startup.sh", lambda: setattr(process_table, "pids", [20]))

        assert controller.start(installation) is ServerProcessState.RUNNING
        assert runner.calls == [[str(installation.start_script)]]
        sleep.assert_called_once_with(15)
        assert process_table.find_calls == 1

    def test_start_without_process_fails(self, controller, process_table, installation):
        with pytest.raises(StartError) as exc_info:
            controller.start(installation)

        assert controller.state is ServerProcessState.START_FAILED
        assert exc_info.value.details["pattern"] == "catalina.startup.Bootstrap"

    def test_start_script_not_launchable(self, controller, runner, process_table, installation):
        runner.fail("startup.sh")

        with pytest.raises(StartError, match="Could not launch"):
            controller.start(installation)

        assert controller.state is ServerProcessState.START_FAILED
        assert process_table.find_calls == 0

    def test_nonzero_exit_with_running_process(
        self, controller, runner, process_table, installation
    ):
        runner.returncode = 1
        runner.on("startup.sh", lambda: setattr(process_table, "pids", [20]))

        assert controller.start(installation) is ServerProcessState.RUNNING
