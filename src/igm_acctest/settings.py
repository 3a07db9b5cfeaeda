"""
Acceptance test settings.

Settings are read from the environment (and an optional .env file) using
the same variable names the Google Terraform provider reads, so a shell
that can run `terraform apply` against a project can also run these tests.
When several variables map to one field, the first one set wins.

Usage:
    from igm_acctest.settings import AcceptanceSettings

    settings = AcceptanceSettings()
    settings.pre_check()
"""

from pydantic import AliasChoices, Field
from pydantic_settings import BaseSettings, SettingsConfigDict

from . import constants as CONSTANTS
from .exceptions import ConfigurationError

CREDENTIALS_ENV_VARS = [
    "GOOGLE_CREDENTIALS",
    "GOOGLE_CLOUD_KEYFILE_JSON",
    "GCLOUD_KEYFILE_JSON",
    "GOOGLE_APPLICATION_CREDENTIALS",
]
PROJECT_ENV_VARS = ["GOOGLE_PROJECT", "GCLOUD_PROJECT", "CLOUDSDK_CORE_PROJECT"]
REGION_ENV_VARS = ["GOOGLE_REGION", "GCLOUD_REGION", "CLOUDSDK_COMPUTE_REGION"]


class AcceptanceSettings(BaseSettings):
    # Gate: acceptance tests only run when TF_ACC is non-empty
    tf_acc: str = Field(default="", validation_alias=AliasChoices("tf_acc", "TF_ACC"))

    # Google credentials: inline JSON key, key file path, or ADC
    credentials: str = Field(
        default="",
        validation_alias=AliasChoices("credentials", *CREDENTIALS_ENV_VARS),
    )
    use_default_credentials: bool = Field(
        default=False,
        validation_alias=AliasChoices("use_default_credentials", "GOOGLE_USE_DEFAULT_CREDENTIALS"),
    )
    project: str = Field(default="", validation_alias=AliasChoices("project", *PROJECT_ENV_VARS))
    region: str = Field(default="", validation_alias=AliasChoices("region", *REGION_ENV_VARS))

    # Terraform
    terraform_binary: str = Field(
        default="terraform",
        validation_alias=AliasChoices("terraform_binary", "TF_ACC_TERRAFORM_PATH"),
    )
    provider_version: str = Field(
        default=CONSTANTS.DEFAULT_PROVIDER_VERSION,
        validation_alias=AliasChoices("provider_version", "TF_ACC_PROVIDER_VERSION"),
    )
    tf_log: str = Field(default="", validation_alias=AliasChoices("tf_log", "TF_LOG"))
    keep_workdir: bool = Field(
        default=False,
        validation_alias=AliasChoices("keep_workdir", "TF_ACC_KEEP_WORKDIR"),
    )

    # Logging
    debug: bool = Field(default=False, validation_alias=AliasChoices("debug", "IGM_ACCTEST_DEBUG"))

    model_config = SettingsConfigDict(env_file=".env", extra="ignore", case_sensitive=True)

    @property
    def acceptance_enabled(self) -> bool:
        """True when TF_ACC is set to anything non-empty."""
        return bool(self.tf_acc)

    def pre_check(self) -> None:
        """
        Verify the environment can run live acceptance tests.

        Raises:
            ConfigurationError: If credentials or project are missing, or the
                                region is not the one the fixtures assume
        """
        if not self.credentials and not self.use_default_credentials:
            raise ConfigurationError(
                f"One of {', '.join(CREDENTIALS_ENV_VARS)} must be set for acceptance tests "
                "(or GOOGLE_USE_DEFAULT_CREDENTIALS=true)",
                env_vars=CREDENTIALS_ENV_VARS,
            )

        if not self.project:
            raise ConfigurationError(
                f"One of {', '.join(PROJECT_ENV_VARS)} must be set for acceptance tests",
                env_vars=PROJECT_ENV_VARS,
            )

        if self.region != CONSTANTS.REQUIRED_REGION:
            raise ConfigurationError(
                f"One of {', '.join(REGION_ENV_VARS)} must be set to "
                f"{CONSTANTS.REQUIRED_REGION} for acceptance tests",
                env_vars=REGION_ENV_VARS,
            )

    def terraform_env(self) -> dict[str, str]:
        """Extra environment variables passed to every terraform invocation."""
        env = {
            "GOOGLE_PROJECT": self.project,
            "GOOGLE_REGION": self.region,
            "TF_IN_AUTOMATION": "1",
        }
        if self.credentials:
            env["GOOGLE_CREDENTIALS"] = self.credentials
        if self.tf_log:
            env["TF_LOG"] = self.tf_log
        return env
