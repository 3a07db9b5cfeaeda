"""
Unit tests for the Terraform state model.

Covers attribute flattening and lookup errors raised to checks.
"""

import pytest

from helpers import igm_resource, make_show_json
from igm_acctest.exceptions import CheckFailedError
from igm_acctest.state import State, flatten_attributes


class TestFlattenAttributes:
    """Tests for flatten_attributes."""

    def test_scalars(self):
        flat = flatten_attributes({
            "name": "igm-test-abc",
            "target_size": 2,
            "wait_for_instances": False,
            "can_ip_forward": True,
        })

        assert flat == {
            "name": "igm-test-abc",
            "target_size": "2",
            "wait_for_instances": "false",
            "can_ip_forward": "true",
        }

    def test_integral_float_loses_decimal_point(self):
        assert flatten_attributes({"min_ready_sec": 20.0}) == {"min_ready_sec": "20"}

    def test_fractional_float_kept(self):
        assert flatten_attributes({"target": 0.5}) == {"target": "0.5"}

    def test_null_values_are_omitted(self):
        assert flatten_attributes({"description": None, "name": "x"}) == {"name": "x"}

    def test_block_list_uses_index_paths_without_map_count(self):
        flat = flatten_attributes({
            "rolling_update_policy": [{
                "type": "PROACTIVE",
                "max_surge_percent": 50,
                "max_surge_fixed": None,
            }],
        })

        assert flat == {
            "rolling_update_policy.#": "1",
            "rolling_update_policy.0.type": "PROACTIVE",
            "rolling_update_policy.0.max_surge_percent": "50",
        }

    def test_map_emits_count(self):
        flat = flatten_attributes({"metadata": {"foo": "bar"}})

        assert flat == {"metadata.%": "1", "metadata.foo": "bar"}

    def test_empty_list_emits_zero_count(self):
        assert flatten_attributes({"target_pools": []}) == {"target_pools.#": "0"}

    def test_nested_lists(self):
        flat = flatten_attributes({
            "named_port": [
                {"name": "customhttp", "port": 8080},
                {"name": "customhttps", "port": 8443},
            ],
        })

        assert flat["named_port.#"] == "2"
        assert flat["named_port.1.name"] == "customhttps"
        assert flat["named_port.1.port"] == "8443"


class TestState:
    """Tests for State parsing and lookup."""

    def test_empty_document(self):
        assert State.from_show_json({}).resources == {}
        assert State.from_show_json(None).resources == {}

    def test_no_values_key(self):
        state = State.from_show_json({"format_version": "1.0"})

        assert state.resources == {}

    def test_parses_root_resources(self):
        state = State.from_show_json(make_show_json(igm_resource(target_size=2)))

        resource = state.resource("google_compute_instance_group_manager.igm-update")
        assert resource.id == "igm-test-abc"
        assert resource.type == "google_compute_instance_group_manager"
        assert resource.attributes["zone"] == "us-central1-c"
        assert resource.attributes["target_size"] == "2"

    def test_parses_child_modules(self):
        document = {
            "values": {
                "root_module": {
                    "resources": [],
                    "child_modules": [{
                        "address": "module.pool",
                        "resources": [{
                            "address": "module.pool.google_compute_target_pool.tp",
                            "type": "google_compute_target_pool",
                            "name": "tp",
                            "values": {"id": "tp-1"},
                        }],
                    }],
                },
            },
        }

        state = State.from_show_json(document)

        assert state.resource("module.pool.google_compute_target_pool.tp").id == "tp-1"

    def test_missing_resource_raises(self):
        state = State()

        with pytest.raises(CheckFailedError, match="Not found: google_compute_instance_group_manager.x"):
            state.resource("google_compute_instance_group_manager.x")

    def test_missing_resource_error_is_not_chained_to_key_error(self):
        with pytest.raises(CheckFailedError) as exc_info:
            State().resource("google_compute_instance_group_manager.x")

        assert exc_info.value.__cause__ is None
        assert exc_info.value.__suppress_context__ is True

    def test_primary_requires_id(self):
        entry = igm_resource()
        entry["values"]["id"] = ""
        state = State.from_show_json(make_show_json(entry))

        with pytest.raises(CheckFailedError, match="No ID is set"):
            state.primary("google_compute_instance_group_manager.igm-update")

    def test_resources_of_type_skips_data_sources(self):
        data_source = igm_resource(label="lookup")
        data_source["mode"] = "data"
        data_source["address"] = "data.google_compute_instance_group_manager.lookup"
        state = State.from_show_json(make_show_json(
            igm_resource(),
            data_source,
            {
                "address": "google_compute_target_pool.igm-update",
                "type": "google_compute_target_pool",
                "name": "igm-update",
                "values": {"id": "tp"},
            },
        ))

        found = state.resources_of_type("google_compute_instance_group_manager")

        assert [r.address for r in found] == ["google_compute_instance_group_manager.igm-update"]
