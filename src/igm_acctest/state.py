"""
Terraform state model.

Parses the output of `terraform show -json` into resources whose attributes
use Terraform's flat `key.index.subkey -> string` encoding, so checks can
address nested values with paths like `rolling_update_policy.0.type`.

Flattening rules:
    - Lists emit `key.#` (length) and `key.N...` for each element
    - Maps emit `key.%` (length) and `key.name...`; objects that are list
      elements are nested blocks and emit no `%` entry
    - Booleans become "true"/"false", integral numbers lose any ".0"
    - null values are omitted
"""

from dataclasses import dataclass, field
from typing import Any, Iterator, Optional

from .exceptions import CheckFailedError


def _format_scalar(value: Any) -> str:
    if isinstance(value, bool):
        return "true" if value else "false"
    if isinstance(value, float) and value.is_integer():
        return str(int(value))
    return str(value)


def _flatten_value(flat: dict[str, str], key: str, value: Any, in_list: bool = False) -> None:
    if value is None:
        return

    if isinstance(value, list):
        flat[f"{key}.#"] = str(len(value))
        for index, item in enumerate(value):
            _flatten_value(flat, f"{key}.{index}", item, in_list=True)
    elif isinstance(value, dict):
        if not in_list:
            flat[f"{key}.%"] = str(len(value))
        for sub_key, item in value.items():
            _flatten_value(flat, f"{key}.{sub_key}", item)
    else:
        flat[key] = _format_scalar(value)


def flatten_attributes(values: dict[str, Any]) -> dict[str, str]:
    """
    Flatten a resource's `values` object from `terraform show -json`.

    Args:
        values: Nested attribute values of one resource

    Returns:
        Flat mapping of attribute path to string value
    """
    flat: dict[str, str] = {}
    for key, value in (values or {}).items():
        _flatten_value(flat, key, value)
    return flat


@dataclass
class ResourceState:
    """
    One managed resource as recorded in Terraform state.

    Attributes:
        address: Full resource address (e.g. "google_compute_target_pool.igm-basic")
        type: Resource type (e.g. "google_compute_target_pool")
        name: Resource name label within its module
        mode: "managed" or "data"
        attributes: Flattened attribute map
    """

    address: str
    type: str
    name: str
    mode: str = "managed"
    attributes: dict[str, str] = field(default_factory=dict)

    @property
    def id(self) -> str:
        return self.attributes.get("id", "")

    @classmethod
    def from_json(cls, resource: dict[str, Any]) -> "ResourceState":
        return cls(
            address=resource["address"],
            type=resource["type"],
            name=resource["name"],
            mode=resource.get("mode", "managed"),
            attributes=flatten_attributes(resource.get("values", {})),
        )


@dataclass
class State:
    """Resources of a Terraform state, keyed by address."""

    resources: dict[str, ResourceState] = field(default_factory=dict)

    @classmethod
    def from_show_json(cls, document: Optional[dict[str, Any]]) -> "State":
        """
        Build a State from the parsed output of `terraform show -json`.

        An empty document (no state yet) yields an empty State.
        """
        state = cls()
        root = ((document or {}).get("values") or {}).get("root_module") or {}
        for resource in _walk_module(root):
            parsed = ResourceState.from_json(resource)
            state.resources[parsed.address] = parsed
        return state

    def resource(self, address: str) -> ResourceState:
        """
        Look up a resource by address.

        Raises:
            CheckFailedError: If the address is not in state
        """
        try:
            return self.resources[address]
        except KeyError:
            raise CheckFailedError(f"Not found: {address}") from None

    def primary(self, address: str) -> ResourceState:
        """
        Look up a resource that must have an id.

        Raises:
            CheckFailedError: If the address is missing or has no id
        """
        resource = self.resource(address)
        if not resource.id:
            raise CheckFailedError("No ID is set", resource=address)
        return resource

    def resources_of_type(self, resource_type: str) -> list[ResourceState]:
        return [
            r for r in self.resources.values()
            if r.type == resource_type and r.mode == "managed"
        ]


def _walk_module(module: dict[str, Any]) -> Iterator[dict[str, Any]]:
    yield from module.get("resources", [])
    for child in module.get("child_modules", []):
        yield from _walk_module(child)
