"""Subprocess execution helpers with safety checks.

Link Monitor shells out to two external probes: a long-running ``ping``
whose output is consumed line by line, and ``speedtest-cli`` which runs to
completion under a timeout. Both go through this module so that every
command is validated against ALLOWED_SUBPROCESS_COMMANDS and shell=False is
always used.

Usage:
    from config.subprocess_utils import safe_run, spawn_line_process

    result = safe_run(['speedtest-cli', '--csv'], timeout=120)

    process = spawn_line_process(['ping', 'google.com'])
    for line in process.lines():
        ...
"""

# nosec B404 - subprocess usage is required and validated via allowlist
import subprocess
import time
from pathlib import Path
from typing import Iterator, List, Optional

import psutil

from config.constants import ALLOWED_SUBPROCESS_COMMANDS, INTERVALS
from config.exceptions import SubprocessError
from config.logging_config import get_logger, log_subprocess_call

logger = get_logger(__name__)


def _check_allowed(cmd: List[str]) -> None:
    """Raise SubprocessError unless cmd[0] is an allowed executable."""
    if not cmd:
        raise SubprocessError("Empty command", command=cmd)

    base_cmd = cmd[0]
    if "/" in base_cmd:
        base_cmd = Path(base_cmd).name

    if base_cmd not in ALLOWED_SUBPROCESS_COMMANDS:
        raise SubprocessError(
            f"Command not in allowlist: {base_cmd}",
            command=cmd,
            details={"allowed": sorted(ALLOWED_SUBPROCESS_COMMANDS)},
        )


def safe_run(
    cmd: List[str], timeout: Optional[float] = None, check_allowed: bool = True, **kwargs
) -> subprocess.CompletedProcess:
    """Run a command to completion with safety checks.

    Args:
        cmd: Command and arguments as list.
        timeout: Command timeout in seconds.
        check_allowed: If True, validate command is in allowlist.
        **kwargs: Additional arguments passed to subprocess.run().

    Returns:
        subprocess.CompletedProcess with text output. A non-zero exit code
        is returned, not raised; callers decide what it means.

    Raises:
        SubprocessError: If command is not allowed, not found, or times out.
    """
    if check_allowed:
        _check_allowed(cmd)

    timeout = timeout or INTERVALS.SUBPROCESS_TIMEOUT_SECONDS
    kwargs.setdefault("capture_output", True)
    kwargs.setdefault("text", True)
    start_time = time.time()

    try:
        result = subprocess.run(cmd, timeout=timeout, **kwargs)  # nosec B603 - Commands validated via allowlist
    except subprocess.TimeoutExpired as e:
        logger.warning(f"Command timed out after {timeout}s: {cmd}")
        raise SubprocessError(
            f"Command timed out after {timeout}s", command=cmd, details={"timeout": timeout}
        ) from e
    except FileNotFoundError as e:
        logger.error(f"Command not found: {cmd[0]}")
        raise SubprocessError(f"Command not found: {cmd[0]}", command=cmd) from e
    except OSError as e:
        logger.error(f"Subprocess error for {cmd}: {e}")
        raise SubprocessError(f"Subprocess error: {e}", command=cmd) from e

    duration_ms = (time.time() - start_time) * 1000
    log_subprocess_call(logger, cmd, result.returncode, duration_ms, success=(result.returncode == 0))
    return result


class LineProcess:
    """A running subprocess whose stdout is consumed line by line."""

    def __init__(self, popen: subprocess.Popen):
        self._popen = popen

    @property
    def pid(self) -> int:
        return self._popen.pid

    @property
    def returncode(self) -> Optional[int]:
        return self._popen.poll()

    def lines(self) -> Iterator[str]:
        """Yield output lines until the process closes its stdout."""
        for line in self._popen.stdout:
            yield line.rstrip("\n")
        self._popen.stdout.close()
        self._popen.wait()

    def terminate(self, timeout: Optional[float] = None) -> None:
        """Terminate the process and any children it spawned.

        Processes still alive after the timeout are killed.
        """
        timeout = timeout or INTERVALS.PROCESS_TERMINATE_TIMEOUT_SECONDS
        try:
            parent = psutil.Process(self._popen.pid)
            procs = parent.children(recursive=True) + [parent]
        except psutil.NoSuchProcess:
            return

        for proc in procs:
            try:
                proc.terminate()
            except psutil.NoSuchProcess:
                pass

        _, alive = psutil.wait_procs(procs, timeout=timeout)
        for proc in alive:
            logger.warning(f"Process {proc.pid} ignored SIGTERM, killing")
            try:
                proc.kill()
            except psutil.NoSuchProcess:
                pass


def spawn_line_process(cmd: List[str], check_allowed: bool = True) -> LineProcess:
    """Start a long-running command with line-buffered text stdout.

    stderr is merged into stdout so diagnostic lines flow through the same
    parser (and are ignored there when they don't match).

    Raises:
        SubprocessError: If the command is not allowed or cannot be started.
    """
    if check_allowed:
        _check_allowed(cmd)

    try:
        popen = subprocess.Popen(  # nosec B603 - Commands validated via allowlist
            cmd,
            stdout=subprocess.PIPE,
            stderr=subprocess.STDOUT,
            stdin=subprocess.DEVNULL,
            text=True,
            bufsize=1,
        )
    except FileNotFoundError as e:
        logger.error(f"Command not found: {cmd[0]}")
        raise SubprocessError(f"Command not found: {cmd[0]}", command=cmd) from e
    except OSError as e:
        logger.error(f"Failed to spawn {cmd}: {e}")
        raise SubprocessError(f"Failed to spawn process: {e}", command=cmd) from e

    logger.debug(f"Spawned {' '.join(cmd)} (pid {popen.pid})")
    return LineProcess(popen)
