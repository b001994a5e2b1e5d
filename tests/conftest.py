"""
Pytest configuration and shared fixtures for devsetup tests.
"""

import pytest
import responses as responses_lib

from devsetup.core.platform import OSFamily, clear_os_family_cache
from devsetup.setup.viper_tools import default_url
from tests.mocks import PINNED_CHANNEL, FakeHost, make_viper_tools_zip


def pytest_addoption(parser):
    """Add custom command line options."""
    parser.addoption(
        "--integration",
        action="store_true",
        default=False,
        help="run integration tests that touch the real system or network",
    )


def pytest_collection_modifyitems(config, items):
    """Skip integration tests unless --integration flag is provided."""
    if config.getoption("--integration"):
        return
    skip_integration = pytest.mark.skip(reason="need --integration option to run")
    for item in items:
        if "integration" in item.keywords:
            item.add_marker(skip_integration)


# ============================================================================
# Shared Test Fixtures
# ============================================================================


@pytest.fixture(autouse=True)
def _reset_os_family_cache():
    clear_os_family_cache()
    yield
    clear_os_family_cache()


@pytest.fixture
def project_root(tmp_path):
    """Project checkout with a single-line rust-toolchain pin file."""
    root = tmp_path / "project"
    root.mkdir()
    (root / "rust-toolchain").write_text(f"{PINNED_CHANNEL}\n")
    return root


@pytest.fixture
def host():
    """Clean simulated host with apt, brew and rustup available."""
    return FakeHost()


@pytest.fixture
def viper_zip():
    """Content of a minimal Viper tools archive."""
    return make_viper_tools_zip()


@pytest.fixture
def mocked_responses():
    """Activate responses for the duration of a test."""
    with responses_lib.RequestsMock(assert_all_requests_are_fired=False) as rsps:
        yield rsps


@pytest.fixture
def linux_archive(mocked_responses, viper_zip):
    """Serve the Linux Viper tools archive at its default URL."""
    url = default_url(OSFamily.LINUX)
    mocked_responses.add(
        responses_lib.GET,
        url,
        body=viper_zip,
        status=200,
        headers={"content-length": str(len(viper_zip))},
    )
    return url
