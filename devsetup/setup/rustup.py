"""
Rust toolchain configuration through rustup.

Installs the channel pinned by the project and the components the verifier
needs to link against the compiler. Components already present are not
installed again.
"""

import logging
from dataclasses import dataclass, field
from typing import Iterable, List, Optional, Sequence, Set

from devsetup.config.toolchain import ToolchainSpec
from devsetup.core.exceptions import CommandError, ToolchainConfigError
from devsetup.core.executor import CommandExecutor

logger = logging.getLogger(__name__)

# src, compiler-dev and tooling-preview
REQUIRED_COMPONENTS = ("rust-src", "rustc-dev", "llvm-tools-preview")
# Formatter; missing on some nightlies
OPTIONAL_COMPONENTS = ("rustfmt",)


@dataclass
class ToolchainResult:
    """What the toolchain phase did."""

    channel: str
    toolchain_installed: bool = False
    components_added: List[str] = field(default_factory=list)
    optional_failed: List[str] = field(default_factory=list)


def resolve_components(
    spec: ToolchainSpec,
    extra_components: Iterable[str] = (),
    optional_components: Optional[Sequence[str]] = None,
):
    """
    Split the components to install into required and optional lists.

    Returns:
        Tuple (required, optional); built-in required components come first
    """
    required = list(REQUIRED_COMPONENTS)
    for component in sorted(set(spec.components) | set(extra_components)):
        if component not in required:
            required.append(component)

    if optional_components is None:
        optional_components = OPTIONAL_COMPONENTS
    optional = [c for c in dict.fromkeys(optional_components) if c not in required]
    return required, optional


def configure_toolchain(
    spec: ToolchainSpec,
    executor: CommandExecutor,
    extra_components: Iterable[str] = (),
    optional_components: Optional[Sequence[str]] = None,
) -> ToolchainResult:
    """
    Install the pinned toolchain and its components.

    Args:
        spec: Pinned channel and declared components
        executor: Executor for rustup commands
        extra_components: Additional required components
        optional_components: Components whose failure is not fatal
            (default: rustfmt)

    Returns:
        ToolchainResult describing the changes

    Raises:
        ToolchainConfigError: If rustup is missing, or the channel or a
            required component is unavailable
    """
    if executor.which("rustup") is None:
        if not executor.dry_run:
            raise ToolchainConfigError(
                "rustup not found on PATH. Install it from https://rustup.rs"
            )
        logger.warning("rustup not found on PATH; listing every rustup step")

    channel = spec.channel
    result = ToolchainResult(channel=channel)
    required, optional = resolve_components(spec, extra_components, optional_components)

    if _toolchain_installed(executor, channel):
        logger.info(f"Rust toolchain {channel} is already installed")
    else:
        try:
            executor.run(["rustup", "toolchain", "install", channel])
        except CommandError as e:
            raise ToolchainConfigError(
                f"Rust toolchain '{channel}' is not available: {e}"
            ) from e
        result.toolchain_installed = True

    installed = _installed_components(executor, channel)

    for component in required:
        if _has_component(installed, component):
            logger.debug(f"Component {component} already installed")
            continue
        try:
            _add_component(executor, channel, component)
        except CommandError as e:
            raise ToolchainConfigError(
                f"Component '{component}' is not available for {channel}: {e}"
            ) from e
        result.components_added.append(component)

    for component in optional:
        if _has_component(installed, component):
            continue
        try:
            _add_component(executor, channel, component)
        except CommandError as e:
            logger.warning(
                f"Optional component '{component}' could not be installed for "
                f"{channel}: {e}"
            )
            result.optional_failed.append(component)
            continue
        result.components_added.append(component)

    return result


def _add_component(executor: CommandExecutor, channel: str, component: str):
    executor.run(["rustup", "component", "add", "--toolchain", channel, component])


def _toolchain_installed(executor: CommandExecutor, channel: str) -> bool:
    result = executor.query(["rustup", "toolchain", "list"])
    if not result.ok:
        return False
    # Entries look like "nightly-2023-09-15-x86_64-unknown-linux-gnu (default)".
    # A floating channel such as "nightly" must not match a dated one.
    names = {channel}
    host = _host_triple(executor)
    if host:
        names.add(f"{channel}-{host}")
    for line in result.stdout.splitlines():
        if line.split(" ", 1)[0].strip() in names:
            return True
    return False


def _host_triple(executor: CommandExecutor) -> Optional[str]:
    """Target triple rustup installs for, from the "Default host" line of rustup show."""
    result = executor.query(["rustup", "show"])
    if not result.ok:
        return None
    for line in result.stdout.splitlines():
        key, _, value = line.partition(":")
        if key.strip().lower() == "default host" and value.strip():
            return value.strip()
    return None


def _installed_components(executor: CommandExecutor, channel: str) -> Set[str]:
    result = executor.query(
        ["rustup", "component", "list", "--installed", "--toolchain", channel]
    )
    if not result.ok:
        return set()
    return {line.strip() for line in result.stdout.splitlines() if line.strip()}


def _has_component(installed: Set[str], component: str) -> bool:
    # Installed components carry a target suffix, e.g. rustc-dev-x86_64-unknown-linux-gnu
    return any(
        name == component or name.startswith(f"{component}-") for name in installed
    )


__all__ = [
    "REQUIRED_COMPONENTS",
    "OPTIONAL_COMPONENTS",
    "ToolchainResult",
    "resolve_components",
    "configure_toolchain",
]
