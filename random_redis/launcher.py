"""
redis-server process launching.

Starting a server is asynchronous: a bad argument, a missing directory or a
port collision makes redis-server exit almost immediately, while a healthy
server never exits on its own. Startup is therefore decided by racing the
process's exit against a timeout:

- exit first: the server failed to start (LaunchFailedError)
- timeout first: the server is presumed to be running

The exit is observed by a watcher thread that resolves a Future. When the
timeout wins, the watcher keeps running until the process is killed later,
which is also when the process gets reaped.
"""

import logging
import subprocess
import threading
from collections import deque
from concurrent.futures import Future
from concurrent.futures import TimeoutError as FutureTimeoutError
from dataclasses import dataclass
from typing import List, Optional, Sequence

from .config import RedisServerConfig
from .constants import FilePattern, PID_FILE_PREFIX, RedisArgument
from .errors import LaunchFailedError


logger = logging.getLogger(__name__)


# Lines of process output kept after the process exits
_OUTPUT_TAIL_LINES = 100

# Characters of output kept in LaunchFailedError messages
_OUTPUT_TAIL = 2000


@dataclass(frozen=True)
class ProcessExit:
    """
    How a launched process ended.

    Attributes:
        returncode: Exit code (negative for a signal on POSIX)
        output: Last lines the process wrote to stdout and stderr, decoded
            with undecodable bytes replaced
    """
    returncode: int
    output: str = ""


def dump_filename(port: int, server_id: str) -> str:
    """Name of the RDB dump file for one server instance"""
    return FilePattern.DUMP_FILE.value.format(port=port, server_id=server_id)


def pid_file_path(file_location: str, port: int, server_id: str) -> str:
    """
    Path of the pid file for one server instance.

    file_location is joined verbatim with a slash so the path matches the
    --dir argument exactly (no normalisation).
    """
    name = FilePattern.PID_FILE.value.format(
        prefix=PID_FILE_PREFIX, port=port, server_id=server_id
    )
    return f"{file_location}/{name}"


def build_command(config: RedisServerConfig, port: int, server_id: str) -> List[str]:
    """
    Build the redis-server command line for one instance.

    Args:
        config: Server configuration (command and file location are used)
        port: Port the server listens on
        server_id: Unique id namespacing the dump and pid files

    Returns:
        Command line as an argument list
    """
    return [
        config.command,
        RedisArgument.DB_FILENAME.value, dump_filename(port, server_id),
        RedisArgument.DIR.value, config.file_location,
        RedisArgument.PIDFILE.value, pid_file_path(config.file_location, port, server_id),
        RedisArgument.PORT.value, str(port),
    ]


class LaunchedProcess:
    """
    A spawned process plus a Future that resolves when it exits.

    Only the watcher thread reads the process output and reaps it; other
    callers observe the exit through exit_future.
    """

    def __init__(self, process: subprocess.Popen, command: Sequence[str]):
        """
        Start watching a spawned process.

        Args:
            process: Process started with stdout piped (stderr merged into it)
            command: Command line it was started with
        """
        self.process = process
        self.command = list(command)
        self.exit_future: "Future[ProcessExit]" = Future()

        self._watcher = threading.Thread(
            target=self._watch,
            name=f"random-redis-exit-watcher-{process.pid}",
            daemon=True
        )
        self._watcher.start()

    @property
    def pid(self) -> int:
        return self.process.pid

    def is_alive(self) -> bool:
        """True until the process has exited"""
        return not self.exit_future.done()

    def kill(self) -> None:
        """Send SIGKILL (TerminateProcess on Windows) if the process is alive"""
        if self.exit_future.done():
            return
        try:
            self.process.kill()
            logger.debug(f"Sent SIGKILL to process {self.pid}")
        except ProcessLookupError:
            # Exited between the check and the signal
            logger.debug(f"Process {self.pid} already gone")

    def wait(self, timeout: Optional[float] = None) -> ProcessExit:
        """
        Wait for the process to exit.

        Args:
            timeout: Seconds to wait (None waits forever)

        Returns:
            ProcessExit describing how the process ended

        Raises:
            concurrent.futures.TimeoutError: If it is still running after timeout
        """
        return self.exit_future.result(timeout=timeout)

    def _watch(self) -> None:
        # Drain the pipe so the process never blocks on a full buffer; only
        # the tail is kept.
        tail = deque(maxlen=_OUTPUT_TAIL_LINES)
        try:
            for line in self.process.stdout:
                tail.append(line)
        except (OSError, ValueError) as e:
            logger.warning(f"Reading output of process {self.pid} failed: {e}")
        finally:
            self.process.stdout.close()

        try:
            returncode = self.process.wait()
        except Exception as e:
            logger.error(f"Exit watcher for process {self.pid} failed: {e}")
            self.exit_future.set_exception(e)
            return

        output = b"".join(tail).decode("utf-8", errors="replace")
        exit_info = ProcessExit(returncode=returncode, output=output)
        logger.debug(f"Process {self.pid} exited with code {exit_info.returncode}")
        self.exit_future.set_result(exit_info)


def launch(command: Sequence[str]) -> LaunchedProcess:
    """
    Spawn a process and start watching for its exit.

    Args:
        command: Command line to run

    Returns:
        LaunchedProcess for the new process

    Raises:
        LaunchFailedError: If the process could not be spawned at all
    """
    logger.debug(f"Launching: {' '.join(command)}")

    try:
        process = subprocess.Popen(
            list(command),
            stdin=subprocess.DEVNULL,
            stdout=subprocess.PIPE,
            stderr=subprocess.STDOUT
        )
    except OSError as e:
        raise LaunchFailedError(
            f"Error starting Redis server: {e}",
            command=list(command)
        ) from e

    logger.debug(f"Process started (PID: {process.pid})")
    return LaunchedProcess(process, command)


def await_startup(launched: LaunchedProcess, timeout: float) -> None:
    """
    Race the process's exit against a startup timeout.

    Surviving for the whole timeout is the only liveness signal used; a
    server that hangs without exiting is indistinguishable from a healthy one.

    Args:
        launched: Process returned by launch()
        timeout: Seconds the process must stay alive

    Raises:
        LaunchFailedError: If the process exited before the timeout elapsed
    """
    try:
        exit_info = launched.wait(timeout=timeout)
    except FutureTimeoutError:
        logger.debug(f"Process {launched.pid} alive after {timeout}s, presumed started")
        return
    except Exception as e:
        raise LaunchFailedError(
            f"Error starting Redis server: {e}",
            command=launched.command
        ) from e

    output = exit_info.output.strip()[-_OUTPUT_TAIL:]
    message = f"Error starting Redis server: exited with code {exit_info.returncode}"
    if output:
        message = f"{message}: {output}"

    raise LaunchFailedError(
        message,
        command=launched.command,
        returncode=exit_info.returncode,
        output=exit_info.output
    )
