import pytest

from igm_acctest.settings import (
    CREDENTIALS_ENV_VARS,
    PROJECT_ENV_VARS,
    REGION_ENV_VARS,
)

_SETTINGS_ENV_VARS = CREDENTIALS_ENV_VARS + PROJECT_ENV_VARS + REGION_ENV_VARS + [
    "TF_ACC",
    "TF_LOG",
    "TF_ACC_TERRAFORM_PATH",
    "TF_ACC_PROVIDER_VERSION",
    "TF_ACC_KEEP_WORKDIR",
    "GOOGLE_USE_DEFAULT_CREDENTIALS",
    "IGM_ACCTEST_DEBUG",
]


@pytest.fixture(autouse=True)
def clean_env(monkeypatch, tmp_path):
    """Keep the developer's GCP environment (and any .env file) out of unit tests."""
    for var in _SETTINGS_ENV_VARS:
        monkeypatch.delenv(var, raising=False)
    monkeypatch.chdir(tmp_path)


@pytest.fixture(autouse=True)
def mock_sleep(monkeypatch):
    """Skip time.sleep calls to speed up tests."""
    monkeypatch.setattr("time.sleep", lambda x: None)
