"""
Acceptance test fixtures.

These tests create REAL Compute Engine resources through Terraform and
incur costs. They are skipped unless TF_ACC is set; credentials, project
and region come from the same environment variables the Google provider
reads (see igm_acctest.settings).
"""
import pytest

from igm_acctest.compute import ComputeClient
from igm_acctest.logger import setup_logger
from igm_acctest.settings import AcceptanceSettings


def pytest_collection_modifyitems(config, items):
    """Skip live tests unless TF_ACC is set."""
    if AcceptanceSettings().acceptance_enabled:
        return

    skip_live = pytest.mark.skip(reason="Acceptance tests skipped unless env 'TF_ACC' set")
    for item in items:
        if "live" in item.keywords:
            item.add_marker(skip_live)


@pytest.fixture(scope="session")
def acc_settings():
    """Validated acceptance settings; fails fast on an incomplete environment."""
    settings = AcceptanceSettings()
    settings.pre_check()
    setup_logger(debug_mode=settings.debug)
    return settings


@pytest.fixture(scope="session")
def acc_compute(acc_settings):
    """Compute client shared by every check in the session."""
    return ComputeClient.from_settings(acc_settings)
