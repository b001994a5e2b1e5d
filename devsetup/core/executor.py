"""
Command execution for devsetup.

All side effects of the bootstrap go through a CommandExecutor:

- ``run()`` spawns a command that mutates the system (package install,
  ``rustup component add``)
- ``perform()`` runs an in-process mutation (download, extraction)
- ``query()`` and ``which()`` are read-only probes

Two implementations are provided. SubprocessExecutor really runs
everything. RecordingExecutor is used for dry runs: mutations are printed
as one line each and recorded, while probes are delegated to a wrapped
executor so the plan reflects the actual state of the host.

Usage:
    from devsetup.core.executor import SubprocessExecutor, RecordingExecutor

    executor = RecordingExecutor() if dry_run else SubprocessExecutor()
    executor.run(["apt-get", "install", "-y", "gcc"])
"""

import logging
import shlex
import shutil
import subprocess
from abc import ABC, abstractmethod
from dataclasses import dataclass, field
from typing import Any, Callable, List, Optional, Sequence

from devsetup.core.exceptions import CommandError, CommandNotFoundError

logger = logging.getLogger(__name__)

DRY_RUN_PREFIX = "[dry-run]"


@dataclass
class CommandResult:
    """Outcome of an external command."""

    command: List[str]
    returncode: int
    stdout: str = ""
    stderr: str = ""

    @property
    def ok(self) -> bool:
        """True if the command exited with status 0."""
        return self.returncode == 0


def format_command(command: Sequence[str]) -> str:
    """Render a command as a shell-quoted string."""
    return " ".join(shlex.quote(part) for part in command)


class CommandExecutor(ABC):
    """Capability to run commands and mutations on the host."""

    dry_run = False

    @abstractmethod
    def run(self, command: Sequence[str], check: bool = True) -> CommandResult:
        """
        Run a command that mutates the system.

        Args:
            command: Command and arguments
            check: Raise CommandError on non-zero exit

        Returns:
            CommandResult of the command

        Raises:
            CommandNotFoundError: If the executable does not exist
            CommandError: If check is True and the command fails
        """
        pass

    @abstractmethod
    def perform(self, description: str, action: Callable[..., Any], *args, **kwargs):
        """
        Run an in-process mutation such as a download.

        Args:
            description: One-line description of the mutation
            action: Callable performing the mutation
            *args: Positional arguments for action
            **kwargs: Keyword arguments for action

        Returns:
            Return value of action, or None when not executed
        """
        pass

    @abstractmethod
    def query(self, command: Sequence[str]) -> CommandResult:
        """
        Run a read-only command and capture its output.

        Never raises on non-zero exit; a missing executable yields
        returncode 127.
        """
        pass

    @abstractmethod
    def which(self, name: str) -> Optional[str]:
        """Locate an executable on PATH."""
        pass


class SubprocessExecutor(CommandExecutor):
    """Executor that spawns real processes."""

    def run(self, command: Sequence[str], check: bool = True) -> CommandResult:
        command = list(command)
        logger.info(f"Running: {format_command(command)}")

        try:
            # Output streams to the terminal; only stderr is kept for errors
            result = subprocess.run(command, stderr=subprocess.PIPE, text=True)
        except FileNotFoundError as e:
            raise CommandNotFoundError(command) from e

        if result.stderr:
            logger.debug(result.stderr.rstrip())

        cmd_result = CommandResult(
            command=command, returncode=result.returncode, stderr=result.stderr or ""
        )
        if check and not cmd_result.ok:
            raise CommandError(command, result.returncode, result.stderr)
        return cmd_result

    def perform(self, description: str, action: Callable[..., Any], *args, **kwargs):
        logger.info(description)
        return action(*args, **kwargs)

    def query(self, command: Sequence[str]) -> CommandResult:
        command = list(command)
        logger.debug(f"Querying: {format_command(command)}")

        try:
            result = subprocess.run(command, capture_output=True, text=True)
        except FileNotFoundError:
            return CommandResult(command=command, returncode=127)

        return CommandResult(
            command=command,
            returncode=result.returncode,
            stdout=result.stdout,
            stderr=result.stderr,
        )

    def which(self, name: str) -> Optional[str]:
        return shutil.which(name)


@dataclass
class RecordingExecutor(CommandExecutor):
    """
    Executor for dry runs.

    Mutating commands and actions are printed to stdout and appended to
    ``actions``; nothing is spawned or written. Probes go to ``probe``.

    Attributes:
        probe: Executor answering read-only queries
        actions: Descriptions of every skipped mutation, in order
        echo: Print each description to stdout
    """

    probe: CommandExecutor = field(default_factory=SubprocessExecutor)
    actions: List[str] = field(default_factory=list)
    echo: bool = True

    dry_run = True

    def _record(self, description: str):
        self.actions.append(description)
        if self.echo:
            print(f"{DRY_RUN_PREFIX} {description}")

    def run(self, command: Sequence[str], check: bool = True) -> CommandResult:
        command = list(command)
        self._record(f"run: {format_command(command)}")
        return CommandResult(command=command, returncode=0)

    def perform(self, description: str, action: Callable[..., Any], *args, **kwargs):
        self._record(description)
        return None

    def query(self, command: Sequence[str]) -> CommandResult:
        return self.probe.query(command)

    def which(self, name: str) -> Optional[str]:
        return self.probe.which(name)


def create_executor(dry_run: bool) -> CommandExecutor:
    """Return the executor matching the run mode."""
    return RecordingExecutor() if dry_run else SubprocessExecutor()


__all__ = [
    "CommandResult",
    "CommandExecutor",
    "SubprocessExecutor",
    "RecordingExecutor",
    "create_executor",
    "format_command",
    "DRY_RUN_PREFIX",
]
