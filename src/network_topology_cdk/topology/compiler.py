"""Topology compiler entry point.

``compile_topology`` is a pure function: validate, assign, plan, resolve,
each exactly once. It either returns a complete ResourceGraph or raises;
no partial graph ever leaves this module.
"""

from ..config import TopologyConfig
from ..logger import LogContext, get_logger, log_function_call
from ..project_settings import DEFAULT_REGION
from ..tracing import get_tracer
from .assigner import assign_subnets
from .models import NetworkSpec, ResourceGraph, SubnetRequest, Tier
from .planner import plan_nat
from .resolver import resolve_wiring
from .validator import validate_parameters

logger = get_logger(__name__)
tracer = get_tracer(__name__)


@log_function_call(logger)
def compile_topology(
    network: NetworkSpec,
    public: SubnetRequest,
    private: SubnetRequest,
    region: str = DEFAULT_REGION,
) -> ResourceGraph:
    """Compile topology parameters into a fully wired resource graph.

    Args:
        network: Network-wide inputs
        public: Public tier request
        private: Private tier request
        region: Region the graph targets

    Returns:
        ResourceGraph ready for the provisioning engine

    Raises:
        ConfigurationError: If inputs fail validation
        DependencyError: If a planned resource would reference a missing one
    """
    with LogContext(logger, network=network.name, region=region) as log:
        with tracer.start_as_current_span("topology.validate"):
            validate_parameters(network, public, private)

        with tracer.start_as_current_span("topology.assign"):
            public_subnets = assign_subnets(network, public)
            private_subnets = assign_subnets(network, private)

        with tracer.start_as_current_span("topology.plan"):
            nat = plan_nat(network, public_subnets, private_subnets)

        with tracer.start_as_current_span("topology.resolve"):
            graph = resolve_wiring(network, public_subnets, private_subnets, nat, region)

        log.info(
            "topology_compiled",
            public_subnets=len(public_subnets),
            private_subnets=len(private_subnets),
            nat=nat is not None,
        )
    return graph


def compile_config(config: TopologyConfig) -> ResourceGraph:
    """Compile a loaded topology configuration."""
    return compile_topology(
        config.network_spec(),
        config.subnet_request(Tier.PUBLIC),
        config.subnet_request(Tier.PRIVATE),
        region=config.region,
    )
