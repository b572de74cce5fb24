"""Tests for ProcessChannel lifecycle and stream release."""

from unittest.mock import MagicMock, Mock

import pytest

from tfs_blame.channel import ProcessChannel, close_quietly
from tfs_blame.exceptions import LaunchFailure


class TestCloseQuietly:
    def test_ignores_none(self):
        close_quietly(None, "stdin")

    def test_logs_failure_instead_of_raising(self, caplog):
        stream = Mock()
        stream.close.side_effect = OSError("broken pipe")

        with caplog.at_level("WARNING", logger="tfs_blame.channel"):
            close_quietly(stream, "stdin")

        assert "stdin" in caplog.text
        assert "broken pipe" in caplog.text


class TestProcessChannel:
    def test_every_stream_released_when_one_fails(self):
        channel = ProcessChannel("engine")
        channel.process = MagicMock()
        channel.process.poll.return_value = 0
        channel.stdin = Mock()
        channel.stdin.close.side_effect = OSError("stdin gone")
        channel.stdout = Mock()
        channel.stdout.close.side_effect = ValueError("stdout gone")
        channel.stderr_file = Mock()

        channel.close()

        channel.stdin.close.assert_called_once()
        channel.stdout.close.assert_called_once()
        channel.stderr_file.close.assert_called_once()

    def test_close_is_idempotent(self):
        channel = ProcessChannel("engine")
        channel.process = MagicMock()
        channel.process.poll.return_value = 0
        channel.stdin = Mock()
        channel.stdout = Mock()

        channel.close()
        channel.close()

        channel.stdin.close.assert_called_once()
        assert not channel.is_open

    def test_close_before_open(self):
        channel = ProcessChannel("engine")

        channel.close()

        with pytest.raises(RuntimeError):
            channel.open()

    def test_launch_failure_carries_os_error(self, tmp_path):
        channel = ProcessChannel(tmp_path / "does-not-exist")

        with pytest.raises(LaunchFailure) as exc_info:
            channel.open()

        assert isinstance(exc_info.value.os_error, FileNotFoundError)
        assert exc_info.value.__cause__ is exc_info.value.os_error

    def test_context_manager_opens_and_closes(self, fake_engine):
        executable = fake_engine.configure()

        with ProcessChannel(executable) as channel:
            assert channel.is_open
            channel.stdin.write("/a.cs\r\n")
            channel.stdin.flush()
            assert channel.stdout.readline() == "/a.cs\n"

        assert not channel.is_open
        assert channel.process.poll() is not None

    def test_finish_returns_exit_code(self, fake_engine):
        executable = fake_engine.configure(exit_code=3, stderr="boom")
        channel = ProcessChannel(executable).open()
        try:
            assert channel.finish() == 3
            assert channel.read_stderr() == "boom"
        finally:
            channel.close()

    def test_terminate_kills_running_engine(self, fake_engine):
        executable = fake_engine.configure()
        channel = ProcessChannel(executable).open()

        channel.terminate()

        assert channel.process.poll() is not None
        assert not channel.is_open

    def test_stderr_is_spooled_and_released(self, fake_engine):
        executable = fake_engine.configure(stderr_before_reply=100 * 1024)
        channel = ProcessChannel(executable).open()
        try:
            channel.stdin.write("/a.cs\r\n")
            channel.stdin.flush()
            assert channel.stdout.readline() == "/a.cs\n"
            assert channel.finish() == 0
            assert channel.read_stderr(limit=10) == "W" * 10
        finally:
            channel.close()

        assert channel.stderr_file.closed

    def test_wait_for_exit_times_out_on_running_engine(self, fake_engine):
        executable = fake_engine.configure()
        channel = ProcessChannel(executable).open()
        try:
            assert channel.wait_for_exit(timeout=0.1) is None
        finally:
            channel.close()

    def test_launch_failure_releases_stderr_file(self, tmp_path):
        channel = ProcessChannel(tmp_path / "does-not-exist")

        with pytest.raises(LaunchFailure):
            channel.open()

        assert channel.stderr_file is None
