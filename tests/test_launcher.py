"""
Unit tests for process launching

Tests the redis-server command line and the exit-vs-timeout startup race,
using shell scripts in place of redis-server.
"""

import sys
import time

import pytest

from random_redis import LaunchFailedError, RedisServerConfig
from random_redis.launcher import (
    ProcessExit,
    await_startup,
    build_command,
    dump_filename,
    launch,
    pid_file_path,
)


SERVER_ID = "3f0c1c1e-7d4a-4c55-9a57-0d0b6a3f4b21"


class TestBuildCommand:
    """Tests for command line construction"""

    def test_default_command_line(self):
        """Test the exact redis-server argument list"""
        # Arrange
        config = RedisServerConfig()

        # Act
        command = build_command(config, 51234, SERVER_ID)

        # Assert
        assert command == [
            "redis-server",
            "--dbfilename", f"dump.51234.{SERVER_ID}.rdb",
            "--dir", "/tmp",
            "--pidfile", f"/tmp/random-redis.51234.{SERVER_ID}.pid",
            "--port", "51234",
        ]

    def test_custom_command_and_location(self):
        """Test configured binary and directory are used"""
        # Arrange
        config = RedisServerConfig(
            command="/usr/local/bin/redis-server",
            file_location="/var/run/redis-tests"
        )

        # Act
        command = build_command(config, 6390, "abc")

        # Assert
        assert command[0] == "/usr/local/bin/redis-server"
        assert command[command.index("--dir") + 1] == "/var/run/redis-tests"
        assert command[command.index("--pidfile") + 1] == (
            "/var/run/redis-tests/random-redis.6390.abc.pid"
        )

    def test_file_names(self):
        """Test per-instance file names include port and id"""
        assert dump_filename(7000, "id-1") == "dump.7000.id-1.rdb"
        assert pid_file_path("/tmp", 7000, "id-1") == "/tmp/random-redis.7000.id-1.pid"

    def test_relative_file_location_kept_verbatim(self):
        """Test the pid file path joins file_location exactly as given"""
        # Arrange
        config = RedisServerConfig(file_location=".")

        # Act
        command = build_command(config, 6390, "abc")

        # Assert
        assert command[command.index("--dir") + 1] == "."
        assert command[command.index("--pidfile") + 1] == "./random-redis.6390.abc.pid"
        assert pid_file_path("/tmp/", 6390, "abc") == "/tmp//random-redis.6390.abc.pid"


class TestLaunch:
    """Tests for launch"""

    def test_missing_binary_raises(self, tmp_path):
        """Test a missing executable raises LaunchFailedError immediately"""
        # Arrange
        command = [str(tmp_path / "no-such-redis-server"), "--port", "1"]

        # Act & Assert
        with pytest.raises(LaunchFailedError) as exc_info:
            launch(command)

        assert exc_info.value.returncode is None
        assert exc_info.value.command == command
        assert isinstance(exc_info.value.__cause__, OSError)

    def test_launched_process_is_alive(self, sleeping_executable):
        """Test a running process reports alive until killed"""
        # Arrange
        launched = launch([sleeping_executable])

        try:
            # Assert
            assert launched.pid > 0
            assert launched.is_alive() is True
        finally:
            launched.kill()

        exit_info = launched.wait(timeout=5)
        assert isinstance(exit_info, ProcessExit)
        assert exit_info.returncode != 0
        assert launched.is_alive() is False

    def test_kill_after_exit_is_harmless(self, failing_executable):
        """Test killing an already-exited process does nothing"""
        # Arrange
        launched = launch([failing_executable])
        launched.wait(timeout=5)

        # Act
        launched.kill()

        # Assert
        assert launched.wait(timeout=0).returncode == 3


class TestAwaitStartup:
    """Tests for the startup race"""

    def test_surviving_process_counts_as_started(self, sleeping_executable):
        """Test a process alive after the timeout is presumed started"""
        # Arrange
        launched = launch([sleeping_executable])
        start = time.monotonic()

        try:
            # Act
            await_startup(launched, timeout=0.2)
            elapsed = time.monotonic() - start

            # Assert
            assert elapsed >= 0.2
            assert launched.is_alive() is True
        finally:
            launched.kill()

        # The exit watcher outlives the race and reaps the killed process
        assert launched.wait(timeout=5).returncode != 0

    def test_early_exit_raises(self, failing_executable):
        """Test a process that exits before the timeout fails startup"""
        # Arrange
        launched = launch([failing_executable])
        start = time.monotonic()

        # Act
        with pytest.raises(LaunchFailedError) as exc_info:
            await_startup(launched, timeout=5.0)
        elapsed = time.monotonic() - start

        # Assert
        assert elapsed < 5.0
        assert exc_info.value.returncode == 3
        assert "bad directive" in exc_info.value.output
        assert "bad directive" in str(exc_info.value)
        assert "exited with code 3" in str(exc_info.value)

    def test_rejected_arguments_raise(self):
        """Test a binary rejecting the redis flags fails startup"""
        # Arrange
        config = RedisServerConfig(command=sys.executable)
        launched = launch(build_command(config, 6400, SERVER_ID))

        # Act & Assert
        with pytest.raises(LaunchFailedError) as exc_info:
            await_startup(launched, timeout=5.0)

        assert exc_info.value.returncode == 2


class TestProcessOutput:
    """Tests for output captured by the exit watcher"""

    def test_undecodable_output_on_early_exit(self, make_executable):
        """Test non-UTF-8 output still yields returncode and output"""
        # Arrange
        executable = make_executable(
            "binary-noise", r"printf '\377\376 bad bytes\n'; exit 4"
        )
        launched = launch([executable])

        # Act
        with pytest.raises(LaunchFailedError) as exc_info:
            await_startup(launched, timeout=5.0)

        # Assert
        assert exc_info.value.returncode == 4
        assert "bad bytes" in exc_info.value.output
        assert "\ufffd" in exc_info.value.output

    def test_output_tail_is_bounded(self, make_executable):
        """Test only the last lines of a chatty process are kept"""
        # Arrange
        executable = make_executable(
            "chatty",
            'i=0\nwhile [ $i -lt 5000 ]; do echo "line $i"; i=$((i+1)); done\nexit 1'
        )
        launched = launch([executable])

        # Act
        exit_info = launched.wait(timeout=10)

        # Assert
        lines = exit_info.output.splitlines()
        assert exit_info.returncode == 1
        assert lines[-1] == "line 4999"
        assert "line 0" not in lines
        assert len(lines) <= 100
