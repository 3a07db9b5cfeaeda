"""
Step runner for Terraform acceptance tests.

A TestCase is a list of TestSteps run strictly in order against one
isolated working directory:

    config step:  write main.tf -> init (once) -> apply -> read state
                  -> run the step's check -> plan must be empty
    import step:  copy the last applied config into a scratch directory
                  -> import the resource -> optionally verify its
                  attributes against the applied state

Whatever happens, the case ends with `terraform destroy` followed by the
case's destroy check. Test cases never share a directory, so separate cases
can run in parallel; nothing inside a case is retried.

Usage:
    run_test(TestCase(
        steps=[TestStep(config=configs.update(template, target, igm), check=...)],
        check_destroy=checks.check_instance_group_manager_destroyed,
    ), settings)
"""

import logging
import shutil
import tempfile
from dataclasses import dataclass, field
from pathlib import Path
from typing import Callable, Optional, Sequence

from . import constants as CONSTANTS
from .checks import Check
from .compute import ComputeClient
from .configs import render
from .exceptions import ImportVerifyError, NonEmptyPlanError
from .settings import AcceptanceSettings
from .state import ResourceState, State
from .terraform_runner import TerraformRunner

logger = logging.getLogger(__name__)

# Copied into import scratch directories so `init` reuses downloaded providers
_INIT_ARTIFACTS = (".terraform", ".terraform.lock.hcl")


@dataclass
class TestStep:
    """
    One step of a test case.

    Attributes:
        config: Configuration to apply (config steps)
        check: Check run after a successful apply
        resource_name: Address to import (import steps)
        import_state: Marks this step as an import step
        import_state_verify: Compare imported attributes with applied state
        import_state_id: Import id; defaults to the resource's state id
        import_state_verify_ignore: Attribute prefixes excluded from the comparison
        expect_non_empty_plan: Allow changes in the plan run after apply
    """

    __test__ = False

    config: Optional[str] = None
    check: Optional[Check] = None
    resource_name: Optional[str] = None
    import_state: bool = False
    import_state_verify: bool = False
    import_state_id: Optional[str] = None
    import_state_verify_ignore: Sequence[str] = ()
    expect_non_empty_plan: bool = False


@dataclass
class TestCase:
    """
    An ordered list of steps plus the checks wrapped around them.

    Attributes:
        steps: Steps to run in order
        check_destroy: Run against the last applied state after destroy
        pre_check: Run before anything else; defaults to settings.pre_check
    """

    __test__ = False

    steps: list[TestStep] = field(default_factory=list)
    check_destroy: Optional[Callable[[State, ComputeClient], None]] = None
    pre_check: Optional[Callable[[], None]] = None


def verify_import_state(
    applied: ResourceState,
    imported: ResourceState,
    ignore: Sequence[str] = (),
) -> None:
    """
    Compare an imported resource with the applied one.

    The `id` attribute and any attribute starting with an ignore prefix are
    excluded.

    Raises:
        ImportVerifyError: With every differing key and its (expected, actual) pair
    """
    def comparable(attributes: dict[str, str]) -> dict[str, str]:
        return {
            key: value for key, value in attributes.items()
            if key != "id" and not any(key.startswith(prefix) for prefix in ignore)
        }

    expected = comparable(applied.attributes)
    actual = comparable(imported.attributes)

    differences = {
        key: (expected.get(key), actual.get(key))
        for key in set(expected) | set(actual)
        if expected.get(key) != actual.get(key)
    }
    if differences:
        raise ImportVerifyError(applied.address, differences)


class _TestRun:
    """State of one run_test invocation."""

    def __init__(
        self,
        case: TestCase,
        settings: AcceptanceSettings,
        compute: ComputeClient,
        runner_factory: Callable[..., TerraformRunner],
    ):
        self.case = case
        self.settings = settings
        self.compute = compute
        self.runner_factory = runner_factory
        self.workdir = Path(tempfile.mkdtemp(prefix="igm-acc-"))
        self.runner = self._runner(self.workdir)
        self.state = State()
        self.last_config: Optional[str] = None
        self.initialized = False

    def _runner(self, directory: Path) -> TerraformRunner:
        return self.runner_factory(
            str(directory),
            binary=self.settings.terraform_binary,
            env=self.settings.terraform_env(),
        )

    def run_steps(self) -> None:
        total = len(self.case.steps)
        for index, step in enumerate(self.case.steps, start=1):
            if step.import_state:
                logger.info(f"Step {index}/{total}: import {step.resource_name}")
                self._import_step(step)
            else:
                logger.info(f"Step {index}/{total}: apply config")
                self._config_step(index, step)

    def _config_step(self, index: int, step: TestStep) -> None:
        if not step.config:
            raise ValueError(f"Step {index} has neither a config nor import_state")

        self.last_config = render(step.config, self.settings.provider_version)
        (self.workdir / CONSTANTS.CONFIG_FILE_NAME).write_text(self.last_config, encoding="utf-8")

        if not self.initialized:
            self.runner.init()
            self.initialized = True

        self.runner.apply()
        self.state = State.from_show_json(self.runner.show_state())

        if step.check:
            step.check(self.state, self.compute)

        changes_pending, plan_output = self.runner.plan()
        if changes_pending and not step.expect_non_empty_plan:
            raise NonEmptyPlanError(index, plan_output)

    def _import_step(self, step: TestStep) -> None:
        if not step.resource_name:
            raise ValueError("Import steps require resource_name")
        if self.last_config is None:
            raise ValueError("Import steps require a preceding config step")

        applied = self.state.primary(step.resource_name)
        import_id = step.import_state_id or applied.id

        scratch = Path(tempfile.mkdtemp(prefix="igm-acc-import-"))
        try:
            (scratch / CONSTANTS.CONFIG_FILE_NAME).write_text(self.last_config, encoding="utf-8")
            for artifact in _INIT_ARTIFACTS:
                source = self.workdir / artifact
                if source.is_dir():
                    shutil.copytree(source, scratch / artifact)
                elif source.exists():
                    shutil.copy2(source, scratch / artifact)

            runner = self._runner(scratch)
            runner.init()
            runner.import_resource(step.resource_name, import_id)
            imported = State.from_show_json(runner.show_state())

            if step.import_state_verify:
                verify_import_state(
                    applied,
                    imported.resource(step.resource_name),
                    step.import_state_verify_ignore,
                )
        finally:
            # Imported state points at live resources owned by the main workdir
            shutil.rmtree(scratch, ignore_errors=True)

    def destroy(self) -> None:
        if self.initialized:
            self.runner.destroy()
        if self.case.check_destroy:
            self.case.check_destroy(self.state, self.compute)

    def cleanup(self, destroyed: bool) -> None:
        if self.settings.keep_workdir or not destroyed:
            logger.warning(f"Keeping Terraform working directory: {self.workdir}")
            return
        shutil.rmtree(self.workdir, ignore_errors=True)


def run_test(
    case: TestCase,
    settings: AcceptanceSettings,
    compute: Optional[ComputeClient] = None,
    runner_factory: Callable[..., TerraformRunner] = TerraformRunner,
) -> State:
    """
    Run a test case end to end.

    Args:
        case: Steps and checks to run
        settings: Acceptance settings (credentials, project, terraform binary)
        compute: Compute client for checks; built from settings if omitted
        runner_factory: TerraformRunner constructor (replaceable in unit tests)

    Returns:
        The last applied state (resources are already destroyed)

    Raises:
        ConfigurationError: If the pre-check fails
        CheckFailedError: If a check, the empty-plan check or import verification fails
        DestroyCheckError: If a resource survives destroy
        TerraformError: If a terraform command fails
    """
    (case.pre_check or settings.pre_check)()

    if compute is None:
        compute = ComputeClient.from_settings(settings)

    run = _TestRun(case, settings, compute, runner_factory)
    try:
        run.run_steps()
    except BaseException:
        destroyed = False
        try:
            run.destroy()
            destroyed = True
        except Exception as e:
            logger.error(f"Destroy after failed step also failed: {e}")
        run.cleanup(destroyed)
        raise

    try:
        run.destroy()
    except BaseException:
        run.cleanup(destroyed=False)
        raise
    run.cleanup(destroyed=True)

    return run.state
