"""
Check functions for instance group manager acceptance tests.

A check is a callable `check(state, compute)` run after a step is applied.
It raises CheckFailedError on a mismatch and returns None otherwise. API
lookup errors (googleapiclient HttpError) propagate unchanged so the test
report shows the real API response.

Checks that need server state read the instance group manager through the
ComputeClient using the zone and id recorded in Terraform state.

Usage:
    manager = {}
    check = compose_checks(
        check_instance_group_manager_exists("google_compute_instance_group_manager.igm-update", manager),
        check_instance_group_manager_named_ports(
            "google_compute_instance_group_manager.igm-update", {"customhttp": 8080}
        ),
    )
"""

import logging
from typing import Callable

from googleapiclient.errors import HttpError

from . import constants as CONSTANTS
from .compute import ComputeClient, is_not_found
from .exceptions import CheckFailedError, DestroyCheckError
from .state import ResourceState, State
from .util import resource_name_from_self_link

logger = logging.getLogger(__name__)

Check = Callable[[State, ComputeClient], None]


def compose_checks(*checks: Check) -> Check:
    """
    Combine checks into one that runs them in order.

    The first failing check stops the sequence; its message is prefixed
    with its position so a report points at the right assertion.
    """
    def composed(state: State, compute: ComputeClient) -> None:
        total = len(checks)
        for index, check in enumerate(checks, start=1):
            try:
                check(state, compute)
            except CheckFailedError as e:
                raise CheckFailedError(f"Check {index}/{total} error: {e}") from e

    return composed


def check_resource_attr(address: str, key: str, value: str) -> Check:
    """Require a flattened state attribute to equal a value."""
    def check(state: State, compute: ComputeClient) -> None:
        attributes = state.primary(address).attributes
        if key not in attributes:
            raise CheckFailedError(f"{address}: Attribute '{key}' not found")
        if attributes[key] != value:
            raise CheckFailedError(
                f"{address}: Attribute '{key}' expected {value!r}, got {attributes[key]!r}"
            )

    return check


def _manager_name(resource: ResourceState) -> str:
    # State ids are either the bare name or a full path ending in the name
    return resource_name_from_self_link(resource.id)


def _fetch_manager(state: State, compute: ComputeClient, address: str, beta: bool = False) -> dict:
    resource = state.primary(address)
    return compute.get_instance_group_manager(
        resource.attributes.get("zone", ""), _manager_name(resource), beta=beta
    )


def check_instance_group_manager_exists(address: str, manager: dict, beta: bool = False) -> Check:
    """
    Require the instance group manager to exist server-side.

    The API body is copied into `manager` so later checks (or the test
    itself) can assert on it.
    """
    def check(state: State, compute: ComputeClient) -> None:
        resource = state.primary(address)
        found = _fetch_manager(state, compute, address, beta=beta)

        if found.get("name") != _manager_name(resource):
            raise CheckFailedError("InstanceGroupManager not found", resource=address)

        manager.clear()
        manager.update(found)

    return check


def check_instance_group_manager_beta_exists(address: str, manager: dict) -> Check:
    return check_instance_group_manager_exists(address, manager, beta=True)


def check_instance_group_manager_updated(
    address: str,
    size: int,
    target_pools: list[str],
    template: str,
) -> Check:
    """
    Require target size, target pools and instance template to match.

    Instances are created asynchronously, so only the target size is
    checked, never the number of running instances.
    """
    def check(state: State, compute: ComputeClient) -> None:
        manager = _fetch_manager(state, compute, address)

        if int(manager.get("targetSize", 0)) != size:
            raise CheckFailedError("instance count incorrect", resource=address)

        pool_names = sorted(
            resource_name_from_self_link(pool) for pool in manager.get("targetPools", [])
        )
        expected_pools = sorted(target_pools)
        if pool_names != expected_pools:
            raise CheckFailedError(
                f"target pools incorrect. Expected {expected_pools}, got {pool_names}",
                resource=address,
            )

        try:
            instance_template = compute.get_instance_template(template)
        except HttpError as e:
            raise CheckFailedError(f"Error reading instance template: {e}", resource=address) from e

        if instance_template.get("name") != template:
            raise CheckFailedError("instance template not updated", resource=address)

    return check


def check_instance_group_manager_named_ports(address: str, named_ports: dict[str, int]) -> Check:
    """Require every named port reported by the API to be one of `named_ports`."""
    def check(state: State, compute: ComputeClient) -> None:
        manager = _fetch_manager(state, compute, address)

        for named_port in manager.get("namedPorts", []):
            name = named_port.get("name")
            if name not in named_ports or int(named_port.get("port", 0)) != named_ports[name]:
                raise CheckFailedError("named port incorrect", resource=address)

    return check


def check_instance_group_manager_auto_healing_policies(
    address: str,
    health_check: str,
    initial_delay_sec: int,
) -> Check:
    def check(state: State, compute: ComputeClient) -> None:
        manager = _fetch_manager(state, compute, address, beta=True)

        policies = manager.get("autoHealingPolicies", [])
        if len(policies) != 1:
            raise CheckFailedError(
                f"Expected # of auto healing policies to be 1, got {len(policies)}",
                resource=address,
            )
        policy = policies[0]

        if health_check not in policy.get("healthCheck", ""):
            raise CheckFailedError(
                f"Expected string \"{health_check}\" to appear in \"{policy.get('healthCheck', '')}\"",
                resource=address,
            )

        actual_delay = int(policy.get("initialDelaySec", 0))
        if actual_delay != initial_delay_sec:
            raise CheckFailedError(
                f"Expected auto healing policy initial delay to be {initial_delay_sec}, got {actual_delay}",
                resource=address,
            )

    return check


def check_instance_group_manager_template_tags(address: str, tags: list[str]) -> Check:
    """Require the template the manager points at to carry exactly `tags`."""
    def check(state: State, compute: ComputeClient) -> None:
        manager = _fetch_manager(state, compute, address)

        template_name = resource_name_from_self_link(manager.get("instanceTemplate", ""))
        try:
            instance_template = compute.get_instance_template(template_name)
        except HttpError as e:
            raise CheckFailedError(f"Error reading instance template: {e}", resource=address) from e

        items = instance_template.get("properties", {}).get("tags", {}).get("items", [])
        if items != list(tags):
            raise CheckFailedError("instance template not updated", resource=address)

    return check


def check_instance_group_manager_update_strategy(address: str, strategy: str) -> Check:
    def check(state: State, compute: ComputeClient) -> None:
        actual = state.primary(address).attributes.get("update_strategy", "")
        if actual != strategy:
            raise CheckFailedError(
                f"Expected strategy to be {strategy}, got {actual}", resource=address
            )

    return check


def _parse_int(value: str) -> int:
    try:
        return int(value)
    except (TypeError, ValueError):
        return 0


def check_instance_group_manager_rolling_update_policy(manager: dict, address: str) -> Check:
    """
    Compare a captured beta manager's updatePolicy with the state attributes.

    `manager` must have been filled by an earlier
    check_instance_group_manager_beta_exists in the same composed check.
    Integer attributes missing from state count as 0, matching fields the
    API omits.
    """
    prefix = "rolling_update_policy.0."

    def check(state: State, compute: ComputeClient) -> None:
        attributes = state.resource(address).attributes
        policy = manager.get("updatePolicy", {})
        max_surge = policy.get("maxSurge", {})
        max_unavailable = policy.get("maxUnavailable", {})

        int_fields = [
            ("MaxSurge", "max_surge_fixed", max_surge.get("fixed", 0)),
            ("MaxSurge", "max_surge_percent", max_surge.get("percent", 0)),
            ("MaxUnavailable", "max_unavailable_fixed", max_unavailable.get("fixed", 0)),
            ("MaxUnavailable", "max_unavailable_percent", max_unavailable.get("percent", 0)),
            ("MinReadySec", "min_ready_sec", policy.get("minReadySec", 0)),
        ]
        for label, key, actual in int_fields:
            expected = _parse_int(attributes.get(prefix + key))
            if int(actual) != expected:
                raise CheckFailedError(
                    f"Expected update policy {label} to be {expected}, got {actual}",
                    resource=address,
                )

        string_fields = [
            ("Type", "type", policy.get("type", "")),
            ("MinimalAction", "minimal_action", policy.get("minimalAction", "")),
        ]
        for label, key, actual in string_fields:
            expected = attributes.get(prefix + key, "")
            if actual != expected:
                raise CheckFailedError(
                    f"Expected update policy {label} to be \"{expected}\", got \"{actual}\"",
                    resource=address,
                )

    return check


def check_instance_group_manager_destroyed(state: State, compute: ComputeClient) -> None:
    """
    Require every instance group manager from the last applied state to be gone.

    Raises:
        DestroyCheckError: If a manager can still be read
        HttpError: For lookup failures other than 404
    """
    for resource in state.resources_of_type(CONSTANTS.IGM_RESOURCE_TYPE):
        try:
            compute.get_instance_group_manager(
                resource.attributes.get("zone", ""), _manager_name(resource)
            )
        except HttpError as e:
            if is_not_found(e):
                logger.debug(f"{resource.address} is gone")
                continue
            raise
        raise DestroyCheckError("InstanceGroupManager still exists", resource=resource.address)
