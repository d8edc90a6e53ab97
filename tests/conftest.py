"""Shared fixtures for module tests."""

from collections import defaultdict
from unittest.mock import Mock

import pytest
from botocore.exceptions import ClientError

from lza_modules.core.aws_client import AWSClientManager
from lza_modules.core.interfaces import ModuleCommonParameter


def client_error(code, message="error", operation="Operation", status=400):
    """Build a botocore ClientError with the given error code."""
    return ClientError(
        {
            "Error": {"Code": code, "Message": message},
            "ResponseMetadata": {"HTTPStatusCode": status},
        },
        operation,
    )


def organization_tree(client):
    """Root r-1 with Security (ou-sec) holding Audit (ou-audit), plus an empty Workloads (ou-wl).

    Returns the children map keyed by parent ID, so tests can grow the tree.
    """
    client.list_roots.return_value = {"Roots": [{"Id": "r-1", "Name": "Root"}]}
    children = {
        "r-1": [{"Id": "ou-sec", "Name": "Security"}, {"Id": "ou-wl", "Name": "Workloads"}],
        "ou-sec": [{"Id": "ou-audit", "Name": "Audit"}],
        "ou-audit": [],
        "ou-wl": [],
    }
    client.list_organizational_units_for_parent.side_effect = lambda ParentId: {
        "OrganizationalUnits": children[ParentId]
    }
    return children


def make_parameter(**overrides):
    """Common parameter for a module invocation in us-east-1."""
    values = {
        "operation": "test-operation",
        "partition": "aws",
        "region": "us-east-1",
        "global_region": "us-east-1",
    }
    values.update(overrides)
    return ModuleCommonParameter(**values)


@pytest.fixture
def aws_clients():
    """boto3 client mocks keyed by service name."""
    return defaultdict(Mock)


@pytest.fixture
def client_manager(aws_clients):
    """Client manager handing out the service mocks."""
    manager = Mock(spec=AWSClientManager)
    manager.get_client.side_effect = lambda service, region_name=None: aws_clients[service]
    return manager


@pytest.fixture
def client_factory(client_manager):
    """Factory passed to modules; records how client managers were requested."""
    return Mock(return_value=client_manager)


@pytest.fixture
def sleep():
    return Mock()


@pytest.fixture
def no_backoff_sleep(monkeypatch):
    """Make throttling retries run without waiting."""
    sleep = Mock()
    monkeypatch.setattr("tenacity.nap.time.sleep", sleep)
    return sleep
