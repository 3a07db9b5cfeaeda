"""
Terraform CLI wrapper for acceptance test working directories.

Every test case owns a directory holding one generated main.tf. The runner
invokes the terraform binary there with `-chdir`, so the Python process
never changes its own working directory and cases can run side by side.

Long-running commands (apply, destroy) are streamed to the log line by
line; short ones are captured and only surfaced on failure.

Usage:
    from igm_acctest.terraform_runner import TerraformRunner

    runner = TerraformRunner("/tmp/igm-acc-xyz", env=settings.terraform_env())
    runner.init()
    runner.apply()
    changes_pending, _ = runner.plan()
    state = runner.show_state()
    runner.destroy()
"""

import json
import logging
import os
import subprocess
from pathlib import Path
from typing import Optional

logger = logging.getLogger(__name__)

# `terraform plan -detailed-exitcode` exits 2 when changes are pending
PLAN_CHANGES_PENDING = 2


class TerraformError(Exception):
    """Raised when a terraform command exits with an unexpected status."""

    def __init__(self, command: str, return_code: int, stderr: str):
        self.command = command
        self.return_code = return_code
        self.stderr = stderr
        super().__init__(f"Terraform {command} failed (exit {return_code}): {stderr}")


def _failure_output(result: subprocess.CompletedProcess) -> str:
    parts = [text for text in (result.stdout, result.stderr) if text]
    return "\n".join(parts) or "No output captured"


class TerraformRunner:
    """
    Runs terraform commands in one working directory.

    Attributes:
        terraform_dir: Directory holding the generated configuration
        binary: Terraform executable name or path
    """

    def __init__(self, terraform_dir: str, binary: str = "terraform", env: Optional[dict] = None):
        """
        Args:
            terraform_dir: Existing directory with the configuration
            binary: Terraform executable (defaults to `terraform` on PATH)
            env: Variables added to the inherited environment of every command

        Raises:
            ValueError: If terraform_dir is empty or missing
        """
        if not terraform_dir:
            raise ValueError("terraform_dir is required")

        self.terraform_dir = Path(terraform_dir)
        self.binary = binary
        self._env = dict(env or {})

        if not self.terraform_dir.exists():
            raise ValueError(f"Terraform directory does not exist: {terraform_dir}")

    def _command(self, args: list[str]) -> list[str]:
        cmd = [self.binary, f"-chdir={self.terraform_dir}", *args]
        logger.info(f"Running: {' '.join(cmd)}")
        return cmd

    def _environment(self) -> dict[str, str]:
        return {**os.environ, **self._env}

    def _capture(self, args: list[str]) -> subprocess.CompletedProcess:
        return subprocess.run(
            self._command(args),
            capture_output=True,
            text=True,
            check=False,
            env=self._environment(),
        )

    def _stream(self, args: list[str]) -> subprocess.CompletedProcess:
        cmd = self._command(args)
        process = subprocess.Popen(
            cmd,
            stdout=subprocess.PIPE,
            stderr=subprocess.STDOUT,
            text=True,
            bufsize=1,
            env=self._environment(),
        )

        lines = []
        for line in process.stdout:
            logger.info(line.rstrip())
            lines.append(line)
        process.wait()

        return subprocess.CompletedProcess(cmd, process.returncode, stdout="".join(lines), stderr=None)

    def _run(self, args: list[str], stream: bool = False) -> subprocess.CompletedProcess:
        """
        Run a command and require exit status 0.

        Raises:
            TerraformError: Carrying the combined stdout/stderr of the failure
        """
        result = self._stream(args) if stream else self._capture(args)
        if result.returncode != 0:
            raise TerraformError(args[0], result.returncode, _failure_output(result))
        return result

    def init(self, upgrade: bool = False) -> None:
        """Download the provider and prepare the directory."""
        args = ["init", "-input=false"]
        if upgrade:
            args.append("-upgrade")

        self._run(args)
        logger.info("✓ Terraform initialized")

    def validate(self) -> bool:
        self._run(["validate"])
        logger.info("✓ Configuration is valid")
        return True

    def plan(self) -> tuple[bool, str]:
        """
        Plan without saving.

        Returns:
            (changes_pending, plan output)

        Raises:
            TerraformError: If the plan itself fails (any exit code but 0 and 2)
        """
        result = self._capture(["plan", "-input=false", "-detailed-exitcode", "-no-color"])

        if result.returncode not in (0, PLAN_CHANGES_PENDING):
            raise TerraformError("plan", result.returncode, result.stderr or result.stdout)

        return result.returncode == PLAN_CHANGES_PENDING, result.stdout

    def apply(self, auto_approve: bool = True) -> None:
        args = ["apply", "-input=false"]
        if auto_approve:
            args.append("-auto-approve")

        self._run(args, stream=True)
        logger.info("✓ Apply complete")

    def destroy(self, auto_approve: bool = True) -> None:
        args = ["destroy", "-input=false"]
        if auto_approve:
            args.append("-auto-approve")

        self._run(args, stream=True)
        logger.info("✓ Destroy complete")

    def import_resource(self, address: str, resource_id: str) -> None:
        """
        Import an existing remote object into this directory's state.

        Raises:
            ValueError: If address or resource_id is empty
            TerraformError: If import fails
        """
        if not address or not resource_id:
            raise ValueError("address and resource_id are required")

        self._run(["import", "-input=false", address, resource_id])
        logger.info(f"✓ Imported {address} (id={resource_id})")

    def show_state(self) -> dict:
        """
        Current state as the `terraform show -json` document.

        Returns an empty dict when there is no state yet.
        """
        result = self._run(["show", "-json"])

        if not result.stdout.strip():
            return {}
        return json.loads(result.stdout)
