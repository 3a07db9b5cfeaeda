"""Unit tests for the leaked resource sweeper."""

import pytest

from igm_acctest.compute import ComputeOperationError
from igm_acctest.sweeper import SweepReport, sweep_test_resources


@pytest.fixture
def leaked(compute):
    """Project with one leaked resource of each kind plus unrelated ones."""
    compute.list_autoscalers.return_value = [
        ("us-central1-c", {"name": "igm-test-as"}),
        ("us-central1-c", {"name": "prod-as"}),
    ]
    compute.list_instance_group_managers.return_value = [
        ("us-central1-c", {"name": "igm-test-a"}),
        ("us-west1-b", {"name": "igm-test-b"}),
        ("us-central1-c", {"name": "web"}),
    ]
    compute.list_target_pools.return_value = [("us-central1", {"name": "igm-test-tp"})]
    compute.list_http_health_checks.return_value = [{"name": "igm-test-hck"}]
    compute.list_instance_templates.return_value = [
        {"name": "igm-test-tmpl"},
        {"name": "terraform-2024"},
    ]
    return compute


class TestSweepTestResources:
    """Tests for sweep_test_resources."""

    def test_deletes_only_prefixed_resources(self, leaked):
        report = sweep_test_resources(leaked)

        leaked.delete_autoscaler.assert_called_once_with("us-central1-c", "igm-test-as")
        assert leaked.delete_instance_group_manager.call_count == 2
        leaked.delete_instance_group_manager.assert_any_call("us-west1-b", "igm-test-b")
        leaked.delete_target_pool.assert_called_once_with("us-central1", "igm-test-tp")
        leaked.delete_http_health_check.assert_called_once_with("igm-test-hck")
        leaked.delete_instance_template.assert_called_once_with("igm-test-tmpl")
        assert report.failure_count == 0
        assert report.deleted["Instance Group Managers"] == ["igm-test-a", "igm-test-b"]

    def test_dependents_deleted_first(self, leaked):
        order = []
        leaked.delete_autoscaler.side_effect = lambda *a: order.append("autoscaler")
        leaked.delete_instance_group_manager.side_effect = lambda *a: order.append("igm")
        leaked.delete_target_pool.side_effect = lambda *a: order.append("pool")
        leaked.delete_http_health_check.side_effect = lambda *a: order.append("hck")
        leaked.delete_instance_template.side_effect = lambda *a: order.append("template")

        sweep_test_resources(leaked)

        assert order == ["autoscaler", "igm", "igm", "pool", "hck", "template"]

    def test_dry_run_deletes_nothing(self, leaked):
        report = sweep_test_resources(leaked, dry_run=True)

        leaked.delete_instance_group_manager.assert_not_called()
        leaked.delete_instance_template.assert_not_called()
        assert report.deleted["Instance Templates"] == ["igm-test-tmpl"]

    def test_failures_recorded_and_sweep_continues(self, leaked, http_error):
        leaked.delete_instance_group_manager.side_effect = [
            http_error(400, "resourceInUseByAnotherResource"),
            None,
        ]
        leaked.delete_instance_template.side_effect = ComputeOperationError(
            {"name": "op", "error": {"errors": [{"message": "in use"}]}}
        )

        report = sweep_test_resources(leaked)

        assert report.failed == {
            "Instance Group Managers": ["igm-test-a"],
            "Instance Templates": ["igm-test-tmpl"],
        }
        assert report.failure_count == 2
        leaked.delete_target_pool.assert_called_once()

    def test_custom_prefix(self, leaked):
        report = sweep_test_resources(leaked, prefix="prod-")

        leaked.delete_autoscaler.assert_called_once_with("us-central1-c", "prod-as")
        assert report.deleted == {"Autoscalers": ["prod-as"]}

    def test_empty_prefix_refused(self, leaked):
        with pytest.raises(ValueError, match="prefix is required"):
            sweep_test_resources(leaked, prefix="")


class TestSweepReport:
    def test_record(self):
        report = SweepReport()

        report.record("Target Pools", "a", ok=True)
        report.record("Target Pools", "b", ok=False)

        assert report.deleted == {"Target Pools": ["a"]}
        assert report.failed == {"Target Pools": ["b"]}
        assert report.failure_count == 1
