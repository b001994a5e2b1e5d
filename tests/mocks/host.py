"""
Simulated host for testing.

FakeHost is a CommandExecutor that models the state apt, Homebrew and
rustup would have on a real machine, so setup phases can be run (twice,
if needed) without touching the system.
"""

from typing import Dict, Iterable, List, Optional, Sequence, Set

from devsetup.core.exceptions import CommandError, CommandNotFoundError
from devsetup.core.executor import CommandExecutor, CommandResult

DEFAULT_EXECUTABLES = ("apt-get", "dpkg-query", "brew", "rustup", "sudo")
TARGET_SUFFIX = "x86_64-unknown-linux-gnu"
PINNED_CHANNEL = "nightly-2023-09-15"


def strip_sudo(command: Sequence[str]) -> List[str]:
    """Drop a leading sudo (present only when tests run as non-root)."""
    command = list(command)
    return command[1:] if command and command[0] == "sudo" else command


class FakeHost(CommandExecutor):
    """
    In-memory host.

    Attributes:
        runs: Every mutating command, in order
        queries: Every read-only query, in order
        performed: Descriptions of in-process actions
    """

    def __init__(
        self,
        executables: Iterable[str] = DEFAULT_EXECUTABLES,
        packages: Iterable[str] = (),
        toolchains: Iterable[str] = (),
        components: Optional[Dict[str, Iterable[str]]] = None,
        unavailable: Iterable[str] = (),
        failing: Iterable[str] = (),
    ):
        """
        Initialize the host.

        Args:
            executables: Executables present on PATH
            packages: Installed OS packages
            toolchains: Installed rustup toolchains
            components: Installed components per toolchain
            unavailable: Channels or components rustup cannot provide
            failing: Command prefixes (space-joined) that exit with status 100
        """
        self.executables: Set[str] = set(executables)
        self.packages: Set[str] = set(packages)
        self.toolchains: Set[str] = set(toolchains)
        self.components: Dict[str, Set[str]] = {
            k: set(v) for k, v in (components or {}).items()
        }
        self.unavailable: Set[str] = set(unavailable)
        self.failing: List[str] = list(failing)

        self.runs: List[List[str]] = []
        self.queries: List[List[str]] = []
        self.performed: List[str] = []

    # ------------------------------------------------------------------------
    # CommandExecutor
    # ------------------------------------------------------------------------

    def run(self, command: Sequence[str], check: bool = True) -> CommandResult:
        command = list(command)
        self.runs.append(command)
        args = strip_sudo(command)

        if args[0] not in self.executables:
            raise CommandNotFoundError(command)

        returncode, stderr = self._apply(args)
        result = CommandResult(command=command, returncode=returncode, stderr=stderr)
        if check and returncode != 0:
            raise CommandError(command, returncode, stderr)
        return result

    def perform(self, description, action, *args, **kwargs):
        self.performed.append(description)
        return action(*args, **kwargs)

    def query(self, command: Sequence[str]) -> CommandResult:
        command = list(command)
        self.queries.append(command)

        if command[0] not in self.executables:
            return CommandResult(command=command, returncode=127)

        if command[0] == "dpkg-query":
            if command[-1] in self.packages:
                return CommandResult(command, 0, stdout="install ok installed")
            return CommandResult(command, 1, stderr="no packages found")

        if command[:2] == ["brew", "list"]:
            if command[-1] in self.packages:
                return CommandResult(command, 0, stdout=f"{command[-1]} 1.0.0\n")
            return CommandResult(command, 1)

        if command[:3] == ["rustup", "toolchain", "list"]:
            lines = [f"{name}-{TARGET_SUFFIX}" for name in sorted(self.toolchains)]
            return CommandResult(command, 0, stdout="\n".join(lines) + "\n")

        if command[:2] == ["rustup", "show"]:
            return CommandResult(
                command, 0, stdout=f"Default host: {TARGET_SUFFIX}\nrustup home:  /root/.rustup\n"
            )

        if command[:3] == ["rustup", "component", "list"]:
            channel = command[-1]
            if channel not in self.toolchains:
                return CommandResult(command, 1, stderr="toolchain not installed")
            lines = [
                f"{name}-{TARGET_SUFFIX}"
                for name in sorted(self.components.get(channel, ()))
            ]
            return CommandResult(command, 0, stdout="\n".join(lines) + "\n")

        return CommandResult(command, 1)

    def which(self, name: str) -> Optional[str]:
        return f"/usr/bin/{name}" if name in self.executables else None

    # ------------------------------------------------------------------------
    # Simulation
    # ------------------------------------------------------------------------

    def _apply(self, args: List[str]):
        joined = " ".join(args)
        for prefix in self.failing:
            if joined.startswith(prefix):
                return 100, f"E: simulated failure of '{prefix}'"

        if args[:2] in (["apt-get", "install"], ["brew", "install"]):
            self.packages.update(a for a in args[2:] if not a.startswith("-"))
        elif args[:3] == ["rustup", "toolchain", "install"]:
            channel = args[3]
            if channel in self.unavailable:
                return 1, f"error: toolchain '{channel}' is not available"
            self.toolchains.add(channel)
        elif args[:3] == ["rustup", "component", "add"]:
            channel, component = args[4], args[5]
            if component in self.unavailable:
                return 1, f"error: component '{component}' is unavailable for download"
            self.components.setdefault(channel, set()).add(component)

        return 0, ""

    # ------------------------------------------------------------------------
    # Helpers for assertions
    # ------------------------------------------------------------------------

    def runs_of(self, executable: str) -> List[List[str]]:
        """Mutating commands of one executable, without sudo."""
        return [strip_sudo(c) for c in self.runs if strip_sudo(c)[0] == executable]
