#!/usr/bin/env python3
"""
Network Topology CDK Application

Compiles the configured topology into a resource graph and synthesizes it
as a single CloudFormation stack.

Configuration source, in order:
- the `topology` context value (set by `network-topology apply/destroy`)
- the YAML file named by TOPOLOGY_CONFIG (default: config.yaml)
"""
import sys

import aws_cdk as cdk

from network_topology_cdk.config import load_topology_config, topology_from_context
from network_topology_cdk.exceptions import NetworkTopologyError
from network_topology_cdk.logging_config import configure_logging
from network_topology_cdk.project_settings import stack_name
from network_topology_cdk.settings import get_settings
from network_topology_cdk.stacks.network_stack import NetworkStack
from network_topology_cdk.topology.compiler import compile_config

app = cdk.App()
settings = get_settings()
configure_logging(
    log_level=settings.log_level.value,
    json_logs=settings.is_production,
)

try:
    raw_topology = app.node.try_get_context("topology")
    if raw_topology:
        config = topology_from_context(raw_topology)
    else:
        config = load_topology_config(settings.topology_config)
    graph = compile_config(config)
except NetworkTopologyError as e:
    print(f"\n❌ {type(e).__name__}: {e}\n", file=sys.stderr)
    sys.exit(1)

# Region comes from the compiled graph, never from ambient provider config
env = cdk.Environment(
    account=config.account,
    region=graph.region,
)

NetworkStack(
    app,
    stack_name(config.name),
    graph=graph,
    env=env,
)

app.synth()
