"""
Setup command implementation.

Runs the Bootstrapper for the project and reports the outcome of each phase.
"""

import logging
from pathlib import Path

from devsetup.cli.utils import format_success_message, print_error, safe_print
from devsetup.config.settings import RunConfig, load_settings
from devsetup.core.exceptions import ConfigError, SetupError
from devsetup.setup.bootstrapper import Bootstrapper

logger = logging.getLogger(__name__)


def run(args) -> int:
    """
    Run the setup command.

    Args:
        args: Parsed command-line arguments

    Returns:
        Exit code (0 for success, 1 for error)
    """
    logger.debug(f"Arguments: {args}")

    project_root = Path(args.project_root).resolve()
    if not project_root.is_dir():
        print_error("Project root not found", str(project_root))
        return 1

    try:
        settings = load_settings(project_root, args.config)
    except ConfigError as e:
        logger.error(f"Failed to load configuration: {e}")
        print_error("Failed to load configuration", str(e))
        return 1

    config = RunConfig(
        rustup_only=args.rustup_only,
        dry_run=args.dry_run,
        force=getattr(args, "force", False),
    )

    try:
        report = Bootstrapper(project_root, settings).run(config)
    except SetupError as e:
        logger.debug("Setup aborted", exc_info=True)
        print_error(f"{e.phase} phase failed", str(e))
        if not config.dry_run:
            print_error(
                "Setup aborted", "Fix the problem above and run 'devsetup setup' again"
            )
        return 1

    title = "Setup plan (dry run, nothing was changed)" if config.dry_run else "✓ Setup complete"
    details = {
        "Project root": project_root,
        "OS family": report.os_family,
        "Phases": "\n" + report.summary(),
    }
    if report.warnings:
        details["Warnings"] = "\n" + "\n".join(f"  ⚠ {w}" for w in report.warnings)

    next_steps = None
    if config.dry_run:
        next_steps = ["Run 'devsetup setup' without --dry-run to apply these changes"]

    safe_print(format_success_message(title, details, next_steps))
    return 0
