"""
Custom exceptions for the instance group manager acceptance tests.

Exception Hierarchy:
    AcceptanceTestError (base)
    ├── ConfigurationError - Missing or invalid acceptance test settings
    ├── CheckFailedError - A check function found a mismatch
    │   ├── NonEmptyPlanError - Plan after apply still has pending changes
    │   └── ImportVerifyError - Imported attributes differ from applied state
    └── DestroyCheckError - Resource still exists after destroy

TerraformError (CLI failures) lives in terraform_runner next to the runner
that raises it.
"""

from typing import Optional


class AcceptanceTestError(Exception):
    """
    Base exception for all acceptance-test errors.

    Attributes:
        message: Human-readable error description
        resource: Optional Terraform resource address the error refers to
    """

    def __init__(self, message: str, resource: Optional[str] = None):
        self.message = message
        self.resource = resource

        if resource:
            full_message = f"{message} [resource={resource}]"
        else:
            full_message = message

        super().__init__(full_message)


class ConfigurationError(AcceptanceTestError):
    """
    Raised when acceptance test settings are invalid or missing.

    Example:
        >>> AcceptanceSettings(project="").pre_check()
        ConfigurationError: One of GOOGLE_PROJECT, GCLOUD_PROJECT, ... must be set
    """

    def __init__(self, message: str, env_vars: Optional[list[str]] = None):
        self.env_vars = env_vars or []
        super().__init__(message)


class CheckFailedError(AcceptanceTestError):
    """Raised by a check function when server or state values do not match."""


class NonEmptyPlanError(CheckFailedError):
    """
    Raised when a plan run right after apply still reports changes.

    A non-empty plan means the resource produces a perpetual diff, for
    example when two API versions disagree on a self link.
    """

    def __init__(self, step: int, plan_output: str = ""):
        self.step = step
        self.plan_output = plan_output
        super().__init__(
            f"Step {step}: after applying this step, the plan was not empty"
        )


class ImportVerifyError(CheckFailedError):
    """
    Raised when an imported resource differs from the applied state.

    Attributes:
        differences: Mapping of attribute key to (expected, actual)
    """

    def __init__(self, resource: str, differences: dict[str, tuple]):
        self.differences = differences
        lines = [
            f"  {key}: expected {expected!r}, got {actual!r}"
            for key, (expected, actual) in sorted(differences.items())
        ]
        message = "ImportStateVerify attributes not equivalent:\n" + "\n".join(lines)
        super().__init__(message, resource=resource)


class DestroyCheckError(AcceptanceTestError):
    """Raised when a resource can still be read after terraform destroy."""
