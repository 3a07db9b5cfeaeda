"""Builders for canned API errors and `terraform show -json` documents."""
import httplib2
from googleapiclient.errors import HttpError

IGM_ADDRESS = "google_compute_instance_group_manager.igm-update"


def make_http_error(status: int, reason: str = "error") -> HttpError:
    """Build an HttpError as the discovery client raises it."""
    resp = httplib2.Response({"status": str(status)})
    resp.reason = reason
    return HttpError(resp, b"")


def make_show_json(*resources: dict) -> dict:
    """Wrap resource entries in a `terraform show -json` document."""
    return {
        "format_version": "1.0",
        "values": {"root_module": {"resources": list(resources)}},
    }


def igm_resource(
    label: str = "igm-update",
    name: str = "igm-test-abc",
    zone: str = "us-central1-c",
    **values,
) -> dict:
    """A google_compute_instance_group_manager entry for make_show_json."""
    return {
        "address": f"google_compute_instance_group_manager.{label}",
        "mode": "managed",
        "type": "google_compute_instance_group_manager",
        "name": label,
        "values": {"id": name, "name": name, "zone": zone, **values},
    }
