"""
Compute Engine API client used for post-apply assertions.

Wraps the discovery-based `compute` v1 and beta services. The acceptance
checks only read (instanceGroupManagers.get, instanceTemplates.get); the
list and delete helpers exist for the sweeper, which removes resources
leaked by failed test runs.

Authentication Flow:
    1. Inline service account JSON (GOOGLE_CREDENTIALS contents)
    2. Path to a service account key file
    3. Application Default Credentials
"""

import json
import logging
import time
from pathlib import Path
from typing import Any, Iterator, Optional

import google.auth
from google.oauth2 import service_account
from googleapiclient import discovery
from googleapiclient.errors import HttpError

from . import constants as CONSTANTS
from .exceptions import AcceptanceTestError, ConfigurationError
from .util import resource_name_from_self_link

logger = logging.getLogger(__name__)

OPERATION_POLL_INTERVAL_SEC = 2


class ComputeOperationError(AcceptanceTestError):
    """Raised when a Compute Engine operation finishes with errors."""

    def __init__(self, operation: dict):
        self.operation = operation
        errors = operation.get("error", {}).get("errors", [])
        details = "; ".join(e.get("message", e.get("code", "")) for e in errors)
        super().__init__(
            f"Operation {operation.get('name')} failed: {details or 'unknown error'}",
            resource=operation.get("targetLink"),
        )


def is_not_found(error: Exception) -> bool:
    """True if the error is an HTTP 404 from the API."""
    return isinstance(error, HttpError) and error.resp.status == 404


def build_credentials(raw: str = "", use_default: bool = False):
    """
    Build Google credentials from settings.

    Args:
        raw: Service account JSON contents or a path to a key file
        use_default: Use Application Default Credentials when raw is empty

    Returns:
        google.auth credentials scoped for Compute Engine

    Raises:
        ConfigurationError: If raw is neither valid JSON nor an existing file,
                            or no credential source is configured
    """
    raw = (raw or "").strip()

    if raw.startswith("{"):
        try:
            info = json.loads(raw)
        except json.JSONDecodeError as e:
            raise ConfigurationError(f"Invalid JSON in credentials: {e}")
        return service_account.Credentials.from_service_account_info(
            info, scopes=CONSTANTS.COMPUTE_SCOPES
        )

    if raw:
        if not Path(raw).exists():
            raise ConfigurationError(f"Service account file not found: {raw}")
        return service_account.Credentials.from_service_account_file(
            raw, scopes=CONSTANTS.COMPUTE_SCOPES
        )

    if not use_default:
        raise ConfigurationError("No credentials configured")

    credentials, _ = google.auth.default(scopes=CONSTANTS.COMPUTE_SCOPES)
    return credentials


class ComputeClient:
    """
    Thin wrapper over the Compute Engine discovery services for one project.

    Attributes:
        project: GCP project id every call is scoped to
    """

    def __init__(self, project: str, credentials=None):
        if not project:
            raise ValueError("project is required")

        self.project = project
        self._credentials = credentials
        self._services: dict[str, Any] = {}

    @classmethod
    def from_settings(cls, settings) -> "ComputeClient":
        credentials = build_credentials(settings.credentials, settings.use_default_credentials)
        return cls(settings.project, credentials)

    def service(self, version: str = "v1"):
        """Build (once) and return the discovery service for an API version."""
        if version not in self._services:
            logger.debug(f"Building compute {version} client")
            self._services[version] = discovery.build(
                "compute", version, credentials=self._credentials, cache_discovery=False
            )
        return self._services[version]

    # ==========================================
    # Reads used by checks
    # ==========================================

    def get_instance_group_manager(self, zone: str, name: str, beta: bool = False) -> dict:
        """
        Fetch an instance group manager.

        Args:
            zone: Zone name or zone self link
            name: Instance group manager name
            beta: Read through the beta API (auto-healing, update policy)

        Raises:
            HttpError: If the lookup fails
        """
        service = self.service("beta" if beta else "v1")
        return service.instanceGroupManagers().get(
            project=self.project,
            zone=resource_name_from_self_link(zone),
            instanceGroupManager=name,
        ).execute()

    def get_instance_template(self, name: str) -> dict:
        """
        Fetch an instance template.

        Raises:
            HttpError: If the lookup fails
        """
        return self.service().instanceTemplates().get(
            project=self.project, instanceTemplate=name
        ).execute()

    # ==========================================
    # Listing and deletion used by the sweeper
    # ==========================================

    def _paginate(self, collection, item_key: str = "items", **kwargs) -> Iterator[dict]:
        page_token = None
        while True:
            if page_token:
                result = collection.list(project=self.project, pageToken=page_token, **kwargs).execute()
            else:
                result = collection.list(project=self.project, **kwargs).execute()

            yield from result.get(item_key, [])

            page_token = result.get("nextPageToken")
            if not page_token:
                break

    def _paginate_aggregated(self, collection, item_key: str) -> Iterator[tuple[str, dict]]:
        """Yield (scope name, item) pairs, e.g. ("us-central1-c", {...})."""
        page_token = None
        while True:
            if page_token:
                result = collection.aggregatedList(project=self.project, pageToken=page_token).execute()
            else:
                result = collection.aggregatedList(project=self.project).execute()

            for scope, scoped in result.get("items", {}).items():
                for item in scoped.get(item_key, []):
                    yield resource_name_from_self_link(scope), item

            page_token = result.get("nextPageToken")
            if not page_token:
                break

    def list_instance_group_managers(self) -> Iterator[tuple[str, dict]]:
        return self._paginate_aggregated(self.service().instanceGroupManagers(), "instanceGroupManagers")

    def list_autoscalers(self) -> Iterator[tuple[str, dict]]:
        return self._paginate_aggregated(self.service().autoscalers(), "autoscalers")

    def list_target_pools(self) -> Iterator[tuple[str, dict]]:
        return self._paginate_aggregated(self.service().targetPools(), "targetPools")

    def list_instance_templates(self) -> Iterator[dict]:
        return self._paginate(self.service().instanceTemplates())

    def list_http_health_checks(self) -> Iterator[dict]:
        return self._paginate(self.service().httpHealthChecks())

    def delete_autoscaler(self, zone: str, name: str) -> dict:
        op = self.service().autoscalers().delete(
            project=self.project, zone=zone, autoscaler=name
        ).execute()
        return self.wait_for_operation(op)

    def delete_instance_group_manager(self, zone: str, name: str) -> dict:
        op = self.service().instanceGroupManagers().delete(
            project=self.project, zone=zone, instanceGroupManager=name
        ).execute()
        return self.wait_for_operation(op)

    def delete_target_pool(self, region: str, name: str) -> dict:
        op = self.service().targetPools().delete(
            project=self.project, region=region, targetPool=name
        ).execute()
        return self.wait_for_operation(op)

    def delete_instance_template(self, name: str) -> dict:
        op = self.service().instanceTemplates().delete(
            project=self.project, instanceTemplate=name
        ).execute()
        return self.wait_for_operation(op)

    def delete_http_health_check(self, name: str) -> dict:
        op = self.service().httpHealthChecks().delete(
            project=self.project, httpHealthCheck=name
        ).execute()
        return self.wait_for_operation(op)

    def wait_for_operation(self, operation: dict, timeout_sec: Optional[int] = 600) -> dict:
        """
        Block until a zonal, regional or global operation is DONE.

        Raises:
            ComputeOperationError: If the operation finishes with errors
            TimeoutError: If the operation is not done within timeout_sec
        """
        service = self.service()
        deadline = time.monotonic() + timeout_sec if timeout_sec else None

        while operation.get("status") != "DONE":
            if deadline and time.monotonic() > deadline:
                raise TimeoutError(f"Timed out waiting for operation {operation.get('name')}")

            time.sleep(OPERATION_POLL_INTERVAL_SEC)

            if operation.get("zone"):
                operation = service.zoneOperations().get(
                    project=self.project,
                    zone=resource_name_from_self_link(operation["zone"]),
                    operation=operation["name"],
                ).execute()
            elif operation.get("region"):
                operation = service.regionOperations().get(
                    project=self.project,
                    region=resource_name_from_self_link(operation["region"]),
                    operation=operation["name"],
                ).execute()
            else:
                operation = service.globalOperations().get(
                    project=self.project, operation=operation["name"]
                ).execute()

        if operation.get("error"):
            raise ComputeOperationError(operation)

        return operation
