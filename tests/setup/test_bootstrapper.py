"""
Tests for the Bootstrapper phase orchestration.

These cover the end-to-end properties of a setup run: phase order,
--rustup-only, dry runs, idempotence and error propagation.
"""

import pytest
import responses

from devsetup.config.settings import RunConfig, SetupSettings
from devsetup.core.exceptions import DownloadError, NativeInstallError, ToolchainConfigError
from devsetup.core.executor import RecordingExecutor
from devsetup.core.platform import OSFamily
from devsetup.setup.bootstrapper import (
    PHASE_NATIVE,
    PHASE_OS_DETECTION,
    PHASE_TOOLCHAIN,
    PHASE_VIPER_TOOLS,
    Bootstrapper,
    run_setup,
)
from devsetup.setup.viper_tools import default_url
from tests.mocks import PINNED_CHANNEL, FakeHost, snapshot_tree


def make_bootstrapper(project_root, executor, os_family=OSFamily.LINUX, settings=None):
    return Bootstrapper(project_root, settings, executor=executor, os_family=os_family)


def executables_run(host):
    return [cmd[0] for cmd in (c[1:] if c[0] == "sudo" else c for c in host.runs)]


class TestFullRun:
    """A full setup on a supported host."""

    def test_phases_in_order(self, project_root, host, linux_archive):
        report = make_bootstrapper(project_root, host).run(RunConfig())

        assert [p.phase for p in report.phases] == [
            PHASE_OS_DETECTION,
            PHASE_NATIVE,
            PHASE_VIPER_TOOLS,
            PHASE_TOOLCHAIN,
        ]
        assert all(p.status == "completed" for p in report.phases)
        assert report.os_family is OSFamily.LINUX
        assert (project_root / "viper_tools" / "backends").is_dir()
        assert PINNED_CHANNEL in host.toolchains

    def test_native_before_toolchain(self, project_root, host, linux_archive):
        make_bootstrapper(project_root, host).run(RunConfig())

        executables = executables_run(host)
        assert executables.index("apt-get") < executables.index("rustup")

    def test_macos(self, project_root, host, mocked_responses, viper_zip):
        mocked_responses.add(responses.GET, default_url(OSFamily.MACOS), body=viper_zip)

        make_bootstrapper(project_root, host, OSFamily.MACOS).run(RunConfig())

        assert host.runs_of("brew")
        assert host.runs_of("apt-get") == []

    def test_second_run_is_noop(self, project_root, host, linux_archive, mocked_responses):
        bootstrapper = make_bootstrapper(project_root, host)
        bootstrapper.run(RunConfig())
        runs = list(host.runs)
        files = snapshot_tree(project_root)

        report = bootstrapper.run(RunConfig())

        assert host.runs == runs
        assert len(mocked_responses.calls) == 1
        assert snapshot_tree(project_root) == files
        assert report.phases[2].detail == "up to date"

    def test_settings_are_used(self, project_root, host, mocked_responses, viper_zip):
        url = "https://mirror.example.org/ViperToolsLinux.zip"
        mocked_responses.add(responses.GET, url, body=viper_zip)
        settings = SetupSettings(
            viper_tools_url=url,
            viper_tools_dir="deps/viper_tools",
            extra_components=["clippy"],
            extra_packages={"linux": ["z3"]},
        )

        make_bootstrapper(project_root, host, settings=settings).run(RunConfig())

        assert (project_root / "deps" / "viper_tools" / "backends").is_dir()
        assert "z3" in host.packages
        assert "clippy" in host.components[PINNED_CHANNEL]

    def test_run_setup_wrapper(self, project_root, host, linux_archive):
        report = run_setup(project_root, RunConfig(), executor=host)
        assert report.status_of(PHASE_TOOLCHAIN) == "completed"


class TestRustupOnly:
    """--rustup-only skips native dependencies and the download."""

    def test_skips_package_manager_and_download(self, project_root, host, mocked_responses):
        report = make_bootstrapper(project_root, host).run(RunConfig(rustup_only=True))

        assert host.runs_of("apt-get") == []
        assert not any(q[0] == "dpkg-query" for q in host.queries)
        assert host.performed == []
        assert len(mocked_responses.calls) == 0
        assert not (project_root / "viper_tools").exists()
        assert report.status_of(PHASE_NATIVE) == "skipped"
        assert report.status_of(PHASE_VIPER_TOOLS) == "skipped"
        assert report.status_of(PHASE_TOOLCHAIN) == "completed"

    def test_missing_package_manager_is_irrelevant(self, project_root):
        host = FakeHost(executables=["rustup"])

        make_bootstrapper(project_root, host).run(RunConfig(rustup_only=True))

        assert PINNED_CHANNEL in host.toolchains


class TestDryRun:
    """--dry-run reports mutations without performing them."""

    def test_no_writes_and_no_spawns(self, project_root, host, mocked_responses, capsys):
        before = snapshot_tree(project_root)
        executor = RecordingExecutor(probe=host)

        report = make_bootstrapper(project_root, executor).run(RunConfig(dry_run=True))

        assert snapshot_tree(project_root) == before
        assert sorted(p.name for p in project_root.iterdir()) == ["rust-toolchain"]
        assert host.runs == []
        assert host.performed == []
        assert len(mocked_responses.calls) == 0
        assert report.dry_run
        assert report.status_of(PHASE_VIPER_TOOLS) == "dry-run"

    def test_one_line_per_mutation(self, project_root, host, capsys):
        executor = RecordingExecutor(probe=host)

        make_bootstrapper(project_root, executor).run(RunConfig(dry_run=True))

        lines = capsys.readouterr().out.splitlines()
        assert lines == [f"[dry-run] {action}" for action in executor.actions]
        # apt update + install, download + extract, toolchain + 4 components
        assert len(lines) == 2 + 2 + 5

    def test_combined_with_rustup_only(self, project_root, host, capsys):
        executor = RecordingExecutor(probe=host)

        make_bootstrapper(project_root, executor).run(
            RunConfig(dry_run=True, rustup_only=True)
        )

        out = capsys.readouterr().out
        assert "apt-get" not in out
        assert "download" not in out
        assert "rustup toolchain install" in out

    def test_malformed_pin_file_still_fails(self, project_root, host):
        (project_root / "rust-toolchain").write_text("")
        executor = RecordingExecutor(probe=host, echo=False)

        with pytest.raises(ToolchainConfigError):
            make_bootstrapper(project_root, executor).run(RunConfig(dry_run=True))

    def test_default_executor_follows_config(self, project_root, monkeypatch, host):
        requested = []

        def fake_create_executor(dry_run):
            requested.append(dry_run)
            return RecordingExecutor(probe=host, echo=False) if dry_run else host

        monkeypatch.setattr(
            "devsetup.setup.bootstrapper.create_executor", fake_create_executor
        )
        bootstrapper = Bootstrapper(project_root, os_family=OSFamily.UNSUPPORTED)

        report = bootstrapper.run(RunConfig(dry_run=True, rustup_only=True))

        assert requested == [True]
        assert report.dry_run
        assert host.runs == []


class TestUnsupportedOS:
    """Hosts without automatic native installation."""

    def test_native_skipped_with_warning(self, project_root, host, linux_archive, caplog):
        with caplog.at_level("WARNING"):
            report = make_bootstrapper(project_root, host, OSFamily.UNSUPPORTED).run(
                RunConfig()
            )

        assert report.status_of(PHASE_NATIVE) == "skipped"
        assert report.warnings
        assert "manually" in caplog.text
        assert host.runs_of("apt-get") == []
        assert report.status_of(PHASE_VIPER_TOOLS) == "completed"
        assert report.status_of(PHASE_TOOLCHAIN) == "completed"
        assert (project_root / "viper_tools" / "backends").is_dir()


class TestFailures:
    """Fatal errors abort the remaining phases."""

    def test_download_404_stops_before_toolchain(self, project_root, host, mocked_responses):
        mocked_responses.add(responses.GET, default_url(OSFamily.LINUX), status=404)

        with pytest.raises(DownloadError):
            make_bootstrapper(project_root, host).run(RunConfig())

        assert host.runs_of("rustup") == []
        assert not any(q[0] == "rustup" for q in host.queries)

    def test_native_failure_stops_everything(self, project_root, mocked_responses):
        host = FakeHost(failing=["apt-get install"])

        with pytest.raises(NativeInstallError):
            make_bootstrapper(project_root, host).run(RunConfig())

        assert len(mocked_responses.calls) == 0
        assert host.runs_of("rustup") == []

    def test_missing_pin_file(self, project_root, host, linux_archive):
        (project_root / "rust-toolchain").unlink()

        with pytest.raises(ToolchainConfigError, match="pin file"):
            make_bootstrapper(project_root, host).run(RunConfig())

        assert host.runs_of("rustup") == []
        assert not any(q[0] == "rustup" for q in host.queries)

    def test_formatter_unavailable_is_not_fatal(self, project_root, linux_archive):
        host = FakeHost(unavailable=["rustfmt"])

        report = make_bootstrapper(project_root, host).run(RunConfig())

        assert report.status_of(PHASE_TOOLCHAIN) == "completed"
        assert any("rustfmt" in w for w in report.warnings)
