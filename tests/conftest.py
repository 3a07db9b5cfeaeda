"""
Shared test fixtures.

Unit tests never reach GCP or run terraform: the Compute client is a
MagicMock and Terraform state comes from canned `terraform show -json`
documents (see helpers.py).
"""
import os
import sys

import pytest
from unittest.mock import MagicMock

sys.path.insert(0, os.path.dirname(__file__))

from helpers import igm_resource, make_http_error, make_show_json  # noqa: E402
from igm_acctest.compute import ComputeClient  # noqa: E402
from igm_acctest.state import State  # noqa: E402


@pytest.fixture
def http_error():
    return make_http_error


@pytest.fixture
def compute():
    """Compute client double; configure return values per test."""
    client = MagicMock(spec=ComputeClient)
    client.project = "test-project"
    return client


@pytest.fixture
def igm_state():
    """State holding one instance group manager named igm-test-abc."""
    return State.from_show_json(make_show_json(igm_resource()))
