"""
Setup orchestration.

The Bootstrapper runs the setup phases in a fixed order and stops at the
first fatal error:

1. OS detection
2. Native dependency installation (skipped with ``rustup_only``)
3. Viper tools acquisition (skipped with ``rustup_only``)
4. Rust toolchain configuration

Every phase receives the run flags explicitly and does its side effects
through the executor, so a dry run is simply a run with a
RecordingExecutor.

Example:
    >>> from devsetup.config import RunConfig
    >>> bootstrapper = Bootstrapper(Path("."))
    >>> report = bootstrapper.run(RunConfig(dry_run=True))
    >>> print(report.summary())
"""

import logging
from dataclasses import dataclass, field
from pathlib import Path
from typing import List, Optional

from devsetup.config.settings import RunConfig, SetupSettings
from devsetup.config.toolchain import find_pin_file, load_toolchain_spec
from devsetup.core.exceptions import UnsupportedOSWarning
from devsetup.core.executor import CommandExecutor, create_executor
from devsetup.core.platform import OSFamily, detect_os_family
from devsetup.setup.native import dependency_list, install_native_dependencies
from devsetup.setup.rustup import configure_toolchain
from devsetup.setup.viper_tools import acquire_viper_tools, resolve_target

logger = logging.getLogger(__name__)

PHASE_OS_DETECTION = "os-detection"
PHASE_NATIVE = "native-dependencies"
PHASE_VIPER_TOOLS = "viper-tools"
PHASE_TOOLCHAIN = "rust-toolchain"

STATUS_COMPLETED = "completed"
STATUS_SKIPPED = "skipped"
STATUS_DRY_RUN = "dry-run"


@dataclass
class PhaseOutcome:
    """Result of a single phase."""

    phase: str
    status: str
    detail: str = ""


@dataclass
class SetupReport:
    """Ordered outcomes of the phases that ran."""

    os_family: Optional[OSFamily] = None
    dry_run: bool = False
    phases: List[PhaseOutcome] = field(default_factory=list)
    warnings: List[str] = field(default_factory=list)

    def add(self, phase: str, status: str, detail: str = ""):
        self.phases.append(PhaseOutcome(phase, status, detail))

    def status_of(self, phase: str) -> Optional[str]:
        """Status of a phase, or None if it did not run."""
        for outcome in self.phases:
            if outcome.phase == phase:
                return outcome.status
        return None

    def summary(self) -> str:
        lines = []
        for outcome in self.phases:
            line = f"  {outcome.phase:<22} {outcome.status}"
            if outcome.detail:
                line += f" ({outcome.detail})"
            lines.append(line)
        return "\n".join(lines)


class Bootstrapper:
    """
    Runs the development environment setup for a project.

    Attributes:
        project_root: Directory holding the pin file and viper_tools/
        settings: Per-project overrides
    """

    def __init__(
        self,
        project_root: Path,
        settings: Optional[SetupSettings] = None,
        executor: Optional[CommandExecutor] = None,
        os_family: Optional[OSFamily] = None,
    ):
        """
        Initialize the bootstrapper.

        Args:
            project_root: Project root directory
            settings: Project settings (default: built-in defaults)
            executor: Executor to use (default: chosen from RunConfig.dry_run)
            os_family: Override OS detection (default: detect the host)
        """
        self.project_root = Path(project_root)
        self.settings = settings or SetupSettings()
        self._executor = executor
        self._os_family = os_family

    def run(self, config: RunConfig) -> SetupReport:
        """
        Run all setup phases.

        Args:
            config: Flags of this invocation

        Returns:
            SetupReport of the phases that ran

        Raises:
            SetupError: First fatal phase error (NativeInstallError,
                DownloadError, ExtractError or ToolchainConfigError)
        """
        executor = self._executor or create_executor(config.dry_run)
        report = SetupReport(dry_run=executor.dry_run)

        os_family = self._detect(report)
        self._install_native(os_family, config, executor, report)
        self._acquire_viper_tools(os_family, config, executor, report)
        self._configure_toolchain(executor, report)

        return report

    # ------------------------------------------------------------------------
    # Phases
    # ------------------------------------------------------------------------

    def _detect(self, report: SetupReport) -> OSFamily:
        os_family = self._os_family or detect_os_family()
        logger.info(f"Detected OS family: {os_family}")
        report.os_family = os_family
        report.add(PHASE_OS_DETECTION, STATUS_COMPLETED, str(os_family))
        return os_family

    def _install_native(
        self,
        os_family: OSFamily,
        config: RunConfig,
        executor: CommandExecutor,
        report: SetupReport,
    ):
        if config.rustup_only:
            logger.debug("Skipping native dependencies (--rustup-only)")
            report.add(PHASE_NATIVE, STATUS_SKIPPED, "--rustup-only")
            return

        if not os_family.is_supported:
            warning = UnsupportedOSWarning(
                "Automatic installation of native dependencies is only supported "
                "on Debian-like Linux and macOS. Install the equivalents of "
                f"{', '.join(dependency_list(OSFamily.LINUX))} manually."
            )
            logger.warning(str(warning))
            report.warnings.append(str(warning))
            report.add(PHASE_NATIVE, STATUS_SKIPPED, "unsupported OS")
            return

        logger.info("Installing native dependencies")
        installed = install_native_dependencies(
            os_family, executor, self.settings.extra_packages
        )
        detail = (
            f"{len(installed)} package(s)" if installed else "already installed"
        )
        report.add(PHASE_NATIVE, self._done(executor, bool(installed)), detail)

    def _acquire_viper_tools(
        self,
        os_family: OSFamily,
        config: RunConfig,
        executor: CommandExecutor,
        report: SetupReport,
    ):
        if config.rustup_only:
            logger.debug("Skipping Viper tools (--rustup-only)")
            report.add(PHASE_VIPER_TOOLS, STATUS_SKIPPED, "--rustup-only")
            return

        target = resolve_target(os_family, self.project_root, self.settings)
        logger.info(f"Fetching Viper tools into {target.destination_dir}")
        installed = acquire_viper_tools(target, executor, force=config.force)
        detail = target.archive_name if installed else "up to date"
        report.add(PHASE_VIPER_TOOLS, self._done(executor, installed), detail)

    def _configure_toolchain(self, executor: CommandExecutor, report: SetupReport):
        pin_file = find_pin_file(self.project_root, self.settings.pin_file)
        spec = load_toolchain_spec(pin_file)

        logger.info(f"Configuring Rust toolchain {spec.channel}")
        result = configure_toolchain(
            spec,
            executor,
            extra_components=self.settings.extra_components,
            optional_components=self.settings.optional_components,
        )

        for component in result.optional_failed:
            report.warnings.append(f"optional component '{component}' unavailable")

        changed = result.toolchain_installed or bool(result.components_added)
        report.add(PHASE_TOOLCHAIN, self._done(executor, changed), spec.channel)

    @staticmethod
    def _done(executor: CommandExecutor, changed: bool) -> str:
        return STATUS_DRY_RUN if executor.dry_run and changed else STATUS_COMPLETED


def run_setup(
    project_root: Path,
    config: RunConfig,
    settings: Optional[SetupSettings] = None,
    executor: Optional[CommandExecutor] = None,
) -> SetupReport:
    """Convenience wrapper: ``Bootstrapper(...).run(config)``."""
    return Bootstrapper(project_root, settings, executor).run(config)


__all__ = [
    "Bootstrapper",
    "SetupReport",
    "PhaseOutcome",
    "run_setup",
    "PHASE_OS_DETECTION",
    "PHASE_NATIVE",
    "PHASE_VIPER_TOOLS",
    "PHASE_TOOLCHAIN",
]
