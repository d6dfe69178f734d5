"""
Tests for the post-run shutdown request.
"""

from dubqueue.jobs import request_shutdown, shutdown_command


def test_windows_command_uses_seconds():
    assert shutdown_command(60, platform="win32") == ["shutdown", "/s", "/t", "60"]


def test_posix_command_rounds_up_to_minutes():
    assert shutdown_command(60, platform="linux") == ["shutdown", "-h", "+1"]
    assert shutdown_command(90, platform="darwin") == ["shutdown", "-h", "+2"]
    assert shutdown_command(0, platform="linux") == ["shutdown", "-h", "+1"]


def test_request_runs_command():
    calls = []
    assert request_shutdown(60, runner=lambda cmd, **kwargs: calls.append(cmd)) is True
    assert calls and calls[0][0] == "shutdown"


def test_request_failure_is_reported_not_raised():
    def runner(cmd, **kwargs):
        raise PermissionError("not allowed")

    assert request_shutdown(60, runner=runner) is False
