"""
Sweeper for resources leaked by failed acceptance test runs.

Terraform destroy runs after every test case, but an interrupted run
(killed CI job, destroy failure) leaves instance group managers and their
dependencies behind. The sweeper deletes every test resource whose name
starts with the test prefix.

Order of operations (dependents before dependencies):
    1. Autoscalers
    2. Instance group managers
    3. Target pools
    4. HTTP health checks
    5. Instance templates
"""

import logging
from dataclasses import dataclass, field

from googleapiclient.errors import HttpError

from . import constants as CONSTANTS
from .compute import ComputeClient, ComputeOperationError

logger = logging.getLogger(__name__)


@dataclass
class SweepReport:
    """Names of resources deleted (or matched, in dry-run) and failed, by kind."""

    deleted: dict[str, list[str]] = field(default_factory=dict)
    failed: dict[str, list[str]] = field(default_factory=dict)

    def record(self, kind: str, name: str, ok: bool) -> None:
        target = self.deleted if ok else self.failed
        target.setdefault(kind, []).append(name)

    @property
    def failure_count(self) -> int:
        return sum(len(names) for names in self.failed.values())


def _sweep_kind(report: SweepReport, kind: str, candidates, delete, prefix: str, dry_run: bool) -> None:
    logger.info(f"[{kind}] Checking for orphans...")
    for name, delete_args in candidates:
        if not name.startswith(prefix):
            continue

        logger.info(f"  Found orphan: {name}")
        if dry_run:
            logger.info("    [DRY RUN] Would delete")
            report.record(kind, name, ok=True)
            continue

        try:
            delete(*delete_args)
            logger.info("    ✓ Deleted")
            report.record(kind, name, ok=True)
        except (HttpError, ComputeOperationError, TimeoutError) as e:
            logger.warning(f"    ✗ Error: {e}")
            report.record(kind, name, ok=False)


def sweep_test_resources(
    compute: ComputeClient,
    prefix: str = f"{CONSTANTS.TEST_NAME_PREFIX}-",
    dry_run: bool = False,
) -> SweepReport:
    """
    Delete leftover test resources in the compute client's project.

    Individual deletion failures are logged and recorded, never raised, so
    one stuck resource does not stop the rest of the sweep.

    Args:
        compute: Client scoped to the project to sweep
        prefix: Only names starting with this prefix are deleted
        dry_run: Log and report matches without deleting

    Returns:
        SweepReport of deleted and failed resource names
    """
    if not prefix:
        raise ValueError("prefix is required; refusing to sweep every resource")

    logger.info(f"Sweeping project {compute.project} for prefix '{prefix}'")
    if dry_run:
        logger.info("DRY RUN MODE - no resources will be deleted")

    report = SweepReport()

    _sweep_kind(
        report, "Autoscalers",
        ((a["name"], (zone, a["name"])) for zone, a in compute.list_autoscalers()),
        compute.delete_autoscaler, prefix, dry_run,
    )
    _sweep_kind(
        report, "Instance Group Managers",
        ((m["name"], (zone, m["name"])) for zone, m in compute.list_instance_group_managers()),
        compute.delete_instance_group_manager, prefix, dry_run,
    )
    _sweep_kind(
        report, "Target Pools",
        ((p["name"], (region, p["name"])) for region, p in compute.list_target_pools()),
        compute.delete_target_pool, prefix, dry_run,
    )
    _sweep_kind(
        report, "HTTP Health Checks",
        ((h["name"], (h["name"],)) for h in compute.list_http_health_checks()),
        compute.delete_http_health_check, prefix, dry_run,
    )
    _sweep_kind(
        report, "Instance Templates",
        ((t["name"], (t["name"],)) for t in compute.list_instance_templates()),
        compute.delete_instance_template, prefix, dry_run,
    )

    logger.info(f"Sweep finished with {report.failure_count} failure(s)")
    return report
