"""Shell command execution with Result-based error handling.

Every external invocation in zt (git/python version checks, pip installs, tar
extraction, west) is a single command string run through the platform's
shell strategy, with an explicit environment mapping: nothing is inherited
from the zt process itself.

Usage:
    runner = CommandRunner(shell_for(Platform.LINUX))
    match runner.run("git --version", env=config_env):
        case Ok(output):
            print(output.stdout)
        case Err(error):
            print(f"Failed: {error.stderr}")
"""

from __future__ import annotations

import shlex
import subprocess
from collections.abc import Mapping
from dataclasses import dataclass
from pathlib import Path
from typing import Literal, Protocol

from zt.core.result import Err, Ok, Result

from .detection import Platform

__all__ = [
    "CommandOutput",
    "CommandRunner",
    "MockCommandRunner",
    "PosixShell",
    "ProcessError",
    "RecordedCommand",
    "Shell",
    "WindowsShell",
    "shell_for",
]


@dataclass(frozen=True, slots=True)
class CommandOutput:
    """Captured output of a successful command."""

    stdout: str
    stderr: str


@dataclass(frozen=True, slots=True)
class ProcessError:
    """Error from a failed or unspawnable command.

    Attributes:
        command: The command string that was executed.
        returncode: Exit code, or -1 if the process could not be spawned.
        stdout: Standard output (may be empty).
        stderr: Standard error, or the spawn failure reason.
    """

    command: str
    returncode: int
    stdout: str
    stderr: str

    @property
    def message(self) -> str:
        return str(self)

    def __str__(self) -> str:
        words = self.command.split()
        cmd_str = " ".join(words[:3])
        if len(words) > 3:
            cmd_str += " ..."
        return f"{cmd_str} failed (exit {self.returncode})"


class Shell(Protocol):
    """Platform shell strategy: how a command string becomes an argv."""

    def argv(self, command: str) -> list[str]: ...

    def quote(self, value: str | Path) -> str: ...


class PosixShell:
    """``bash -c <command>`` (Linux, macOS)."""

    def __init__(self, executable: str = "bash") -> None:
        self.executable = executable

    def argv(self, command: str) -> list[str]:
        return [self.executable, "-c", command]

    def quote(self, value: str | Path) -> str:
        return shlex.quote(str(value))


class WindowsShell:
    """``cmd.exe /d /s /c <command>``."""

    def __init__(self, executable: str = "cmd.exe") -> None:
        self.executable = executable

    def argv(self, command: str) -> list[str]:
        return [self.executable, "/d", "/s", "/c", command]

    def quote(self, value: str | Path) -> str:
        return subprocess.list2cmdline([str(value)])


def shell_for(platform: Platform) -> Shell:
    """Select the shell strategy for a platform (chosen once at startup)."""
    if platform.is_windows:
        return WindowsShell()
    return PosixShell()


class CommandRunner:
    """Runs shell commands synchronously.

    ``run`` captures output and never streams it; ``run_task`` is for
    long, named tasks (build, west update) whose output goes straight to the
    terminal. Both return only after the process has exited.
    """

    def __init__(self, shell: Shell, *, timeout: float | None = None) -> None:
        self.shell = shell
        self.timeout = timeout

    def quote(self, value: str | Path) -> str:
        return self.shell.quote(value)

    def run(
        self,
        command: str,
        env: Mapping[str, str],
        cwd: Path | None = None,
    ) -> Result[CommandOutput, ProcessError]:
        """Execute a command and capture its output.

        Args:
            command: Command string, interpreted by the shell strategy.
            env: Complete environment for the child process.
            cwd: Working directory (None for the current one).

        Returns:
            Ok(CommandOutput) on exit code 0, Err(ProcessError) otherwise.
        """
        try:
            proc = subprocess.run(
                self.shell.argv(command),
                cwd=str(cwd) if cwd else None,
                env=dict(env),
                capture_output=True,
                text=True,
                timeout=self.timeout,
                check=False,
                # Detached from the terminal's process group: Ctrl-C during
                # setup must not kill an in-flight install step.
                start_new_session=True,
            )
        except subprocess.TimeoutExpired as e:
            return Err(
                ProcessError(
                    command=command,
                    returncode=-1,
                    stdout=e.stdout if isinstance(e.stdout, str) else "",
                    stderr=f"Command timed out after {self.timeout}s",
                )
            )
        except OSError as e:
            return Err(ProcessError(command=command, returncode=-1, stdout="", stderr=str(e)))

        if proc.returncode != 0:
            return Err(
                ProcessError(
                    command=command,
                    returncode=proc.returncode,
                    stdout=proc.stdout,
                    stderr=proc.stderr,
                )
            )
        return Ok(CommandOutput(stdout=proc.stdout, stderr=proc.stderr))

    def run_task(
        self,
        name: str,
        command: str,
        env: Mapping[str, str],
        cwd: Path | None = None,
    ) -> Result[None, ProcessError]:
        """Execute a named task with output streaming to the terminal.

        ``name`` identifies the task for callers and test doubles; the
        process itself only sees ``command``.
        """
        try:
            proc = subprocess.run(
                self.shell.argv(command),
                cwd=str(cwd) if cwd else None,
                env=dict(env),
                check=False,
            )
        except OSError as e:
            return Err(ProcessError(command=command, returncode=-1, stdout="", stderr=str(e)))

        if proc.returncode != 0:
            return Err(ProcessError(command=command, returncode=proc.returncode, stdout="", stderr=""))
        return Ok(None)


@dataclass(frozen=True, slots=True)
class RecordedCommand:
    """A command seen by MockCommandRunner."""

    kind: Literal["run", "task"]
    command: str
    env: dict[str, str]
    cwd: Path | None
    name: str | None = None


class MockCommandRunner(CommandRunner):
    """CommandRunner that records commands instead of spawning them.

    Responses are matched on command prefix, the most recent registration
    winning; unmatched commands succeed with empty output.

    Usage:
        runner = MockCommandRunner()
        runner.reply("python3 --version", stdout="Python 3.12.0")
        runner.fail("git --version", returncode=127, stderr="git: not found")
    """

    def __init__(self, shell: Shell | None = None) -> None:
        super().__init__(shell or PosixShell())
        self.calls: list[RecordedCommand] = []
        self._responses: list[tuple[str, int, str, str]] = []

    def reply(self, prefix: str, *, stdout: str = "", stderr: str = "") -> None:
        self._responses.append((prefix, 0, stdout, stderr))

    def fail(self, prefix: str, *, returncode: int = 1, stdout: str = "", stderr: str = "") -> None:
        self._responses.append((prefix, returncode, stdout, stderr))

    @property
    def commands(self) -> list[str]:
        return [c.command for c in self.calls]

    def _respond(self, command: str) -> tuple[int, str, str]:
        for prefix, returncode, stdout, stderr in reversed(self._responses):
            if command.startswith(prefix):
                return returncode, stdout, stderr
        return 0, "", ""

    def run(
        self,
        command: str,
        env: Mapping[str, str],
        cwd: Path | None = None,
    ) -> Result[CommandOutput, ProcessError]:
        self.calls.append(RecordedCommand("run", command, dict(env), cwd))
        returncode, stdout, stderr = self._respond(command)
        if returncode != 0:
            return Err(ProcessError(command, returncode, stdout, stderr))
        return Ok(CommandOutput(stdout=stdout, stderr=stderr))

    def run_task(
        self,
        name: str,
        command: str,
        env: Mapping[str, str],
        cwd: Path | None = None,
    ) -> Result[None, ProcessError]:
        self.calls.append(RecordedCommand("task", command, dict(env), cwd, name))
        returncode, stdout, stderr = self._respond(command)
        if returncode != 0:
            return Err(ProcessError(command, returncode, stdout, stderr))
        return Ok(None)
