"""Rust toolchain pin file parsing.

rustup accepts two pin file formats at the project root, and both are
supported here:

- ``rust-toolchain``: a single line naming a channel or version, e.g.
  ``nightly-2023-09-15``
- ``rust-toolchain.toml`` (or a TOML ``rust-toolchain``)::

      [toolchain]
      channel = "nightly-2023-09-15"
      components = ["rustc-dev", "llvm-tools-preview"]
"""

import logging
import tomllib
from dataclasses import dataclass, field
from pathlib import Path
from typing import FrozenSet, Optional

from devsetup.core.exceptions import ToolchainConfigError

logger = logging.getLogger(__name__)

PIN_FILE_CANDIDATES = ("rust-toolchain.toml", "rust-toolchain")


@dataclass(frozen=True)
class ToolchainSpec:
    """Pinned Rust channel and the components it declares."""

    channel: str
    components: FrozenSet[str] = field(default_factory=frozenset)


def find_pin_file(project_root: Path, pin_file: Optional[str] = None) -> Path:
    """
    Locate the toolchain pin file of a project.

    Args:
        project_root: Project root directory
        pin_file: Explicit pin file path, relative to project_root

    Returns:
        Path to the pin file

    Raises:
        ToolchainConfigError: If no pin file exists
    """
    if pin_file:
        path = project_root / pin_file
        if not path.is_file():
            raise ToolchainConfigError(f"Toolchain pin file not found: {path}")
        return path

    for name in PIN_FILE_CANDIDATES:
        path = project_root / name
        if path.is_file():
            return path

    raise ToolchainConfigError(
        f"No toolchain pin file found in {project_root} "
        f"(looked for {', '.join(PIN_FILE_CANDIDATES)})"
    )


def load_toolchain_spec(path: Path) -> ToolchainSpec:
    """
    Parse a toolchain pin file.

    Args:
        path: Path to ``rust-toolchain`` or ``rust-toolchain.toml``

    Returns:
        Parsed ToolchainSpec

    Raises:
        ToolchainConfigError: If the file is unreadable or malformed
    """
    try:
        content = path.read_text(encoding="utf-8")
    except (OSError, UnicodeDecodeError) as e:
        raise ToolchainConfigError(f"Cannot read toolchain pin file {path}: {e}") from e

    if path.suffix == ".toml" or "[toolchain]" in content:
        spec = _parse_toml(content, path)
    else:
        spec = _parse_legacy(content, path)

    logger.debug(
        f"Toolchain pin: {spec.channel} "
        f"(components: {', '.join(sorted(spec.components)) or 'none'})"
    )
    return spec


def _parse_legacy(content: str, path: Path) -> ToolchainSpec:
    lines = [line.strip() for line in content.splitlines() if line.strip()]
    if len(lines) != 1:
        raise ToolchainConfigError(
            f"{path} must contain exactly one line naming a channel, found {len(lines)}"
        )
    return ToolchainSpec(channel=_validate_channel(lines[0], path))


def _parse_toml(content: str, path: Path) -> ToolchainSpec:
    try:
        data = tomllib.loads(content)
    except tomllib.TOMLDecodeError as e:
        raise ToolchainConfigError(f"Invalid TOML in {path}: {e}") from e

    toolchain = data.get("toolchain")
    if not isinstance(toolchain, dict):
        raise ToolchainConfigError(f"{path} has no [toolchain] table")

    channel = toolchain.get("channel")
    if not isinstance(channel, str):
        raise ToolchainConfigError(f"{path} does not set toolchain.channel")

    components = toolchain.get("components", [])
    if not isinstance(components, list) or not all(
        isinstance(c, str) for c in components
    ):
        raise ToolchainConfigError(f"toolchain.components in {path} must be a list of strings")

    return ToolchainSpec(
        channel=_validate_channel(channel, path), components=frozenset(components)
    )


def _validate_channel(channel: str, path: Path) -> str:
    channel = channel.strip()
    if not channel or any(ch.isspace() for ch in channel):
        raise ToolchainConfigError(f"Invalid toolchain channel in {path}: '{channel}'")
    return channel


__all__ = [
    "ToolchainSpec",
    "find_pin_file",
    "load_toolchain_spec",
    "PIN_FILE_CANDIDATES",
]
