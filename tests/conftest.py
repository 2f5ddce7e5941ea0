"""Shared pytest fixtures for Network Topology CDK."""

import pytest

from network_topology_cdk.topology.compiler import compile_topology
from network_topology_cdk.topology.models import (
    NetworkSpec,
    ResourceGraph,
    SubnetRequest,
    Tier,
)


@pytest.fixture(autouse=True)
def reset_environment(monkeypatch: pytest.MonkeyPatch) -> None:
    """Reset environment variables and settings cache for each test."""
    # Clear settings cache to prevent test pollution
    from network_topology_cdk.settings import get_settings
    get_settings.cache_clear()
    for name in ("ENVIRONMENT", "DEBUG", "LOG_LEVEL", "TOPOLOGY_CONFIG", "OTLP_ENDPOINT"):
        monkeypatch.delenv(name, raising=False)


@pytest.fixture
def network_spec() -> NetworkSpec:
    """Network-wide inputs shared by the compiler tests."""
    return NetworkSpec(
        name="main",
        cidr_block="10.0.0.0/16",
        tags={"Project": "network-topology", "Environment": "testing"},
    )


@pytest.fixture
def public_request() -> SubnetRequest:
    """Two public subnets across two zones."""
    return SubnetRequest(
        tier=Tier.PUBLIC,
        count=2,
        cidrs=("10.0.1.0/24", "10.0.2.0/24"),
        zones=("z1", "z2"),
    )


@pytest.fixture
def private_request() -> SubnetRequest:
    """One private subnet across two zones."""
    return SubnetRequest(
        tier=Tier.PRIVATE,
        count=1,
        cidrs=("10.0.3.0/24",),
        zones=("z1", "z2"),
    )


@pytest.fixture
def empty_private_request() -> SubnetRequest:
    """Private tier with no subnets."""
    return SubnetRequest(tier=Tier.PRIVATE, count=0, cidrs=(), zones=("z1", "z2"))


@pytest.fixture
def graph(
    network_spec: NetworkSpec,
    public_request: SubnetRequest,
    private_request: SubnetRequest,
) -> ResourceGraph:
    """Graph for 2 public and 1 private subnet."""
    return compile_topology(network_spec, public_request, private_request, region="us-east-1")


@pytest.fixture
def public_only_graph(
    network_spec: NetworkSpec,
    public_request: SubnetRequest,
    empty_private_request: SubnetRequest,
) -> ResourceGraph:
    """Graph with an empty private tier."""
    return compile_topology(network_spec, public_request, empty_private_request, region="us-east-1")
