"""Wiring resolution: route tables, associations, security groups and NACLs.

Produces the final ResourceGraph. Every cross reference is a logical id of
an entity that is part of the same graph; anything else is a DependencyError.
"""

from typing import Optional

from ..exceptions import DependencyError
from ..logger import get_logger
from ..project_settings import DEFAULT_ROUTE_CIDR, resource_name
from .models import (
    AssociationPlan,
    GatewayPlan,
    NaclAssociationPlan,
    NaclEntry,
    NaclPlan,
    NatPlan,
    NetworkPlan,
    NetworkSpec,
    ResourceGraph,
    RoutePlan,
    RouteTablePlan,
    SecurityGroupPlan,
    SecurityRule,
    SubnetPlan,
    Tier,
)
from .tags import named_tags

logger = get_logger(__name__)

TCP = 6
ALL_PROTOCOLS = -1
EPHEMERAL_PORTS = (1024, 65535)


def _network_plan(network: NetworkSpec) -> NetworkPlan:
    name = resource_name(network.name, "vpc")
    return NetworkPlan(
        prefix=network.name,
        name=name,
        cidr_block=network.cidr_block,
        dns_support=network.dns_support,
        dns_hostnames=network.dns_hostnames,
        tags=named_tags(network.tags, name),
    )


def _gateway_plan(network: NetworkSpec, vpc: NetworkPlan) -> GatewayPlan:
    name = resource_name(network.name, "igw")
    return GatewayPlan(
        network_ref=vpc.logical_id,
        name=name,
        tags=named_tags(network.tags, name),
    )


def _route_table(
    network: NetworkSpec,
    vpc: NetworkPlan,
    tier: Tier,
    target_kind: str,
    target_ref: str,
) -> RouteTablePlan:
    name = resource_name(network.name, tier.value, "rt")
    return RouteTablePlan(
        logical_id=f"{tier.label}RouteTable",
        tier=tier,
        name=name,
        network_ref=vpc.logical_id,
        route=RoutePlan(
            logical_id=f"{tier.label}DefaultRoute",
            destination_cidr=DEFAULT_ROUTE_CIDR,
            target_kind=target_kind,
            target_ref=target_ref,
        ),
        tags=named_tags(network.tags, name),
    )


def _associations(
    subnets: tuple[SubnetPlan, ...],
    route_table: Optional[RouteTablePlan],
) -> tuple[AssociationPlan, ...]:
    if subnets and route_table is None:
        raise DependencyError(
            "Subnets have no route table to associate with",
            entity=f"{subnets[0].tier.label}RouteTable",
            subnet_count=len(subnets),
        )
    return tuple(
        AssociationPlan(
            logical_id=f"{subnet.logical_id}RouteTableAssociation",
            tier=subnet.tier,
            subnet_ref=subnet.logical_id,
            subnet_index=subnet.index,
            route_table_ref=route_table.logical_id,
        )
        for subnet in subnets
    )


def _security_groups(network: NetworkSpec, vpc: NetworkPlan) -> tuple[SecurityGroupPlan, ...]:
    allow_all_egress = (SecurityRule(protocol="-1", cidr=DEFAULT_ROUTE_CIDR, description="All egress"),)
    public_name = resource_name(network.name, "public", "sg")
    private_name = resource_name(network.name, "private", "sg")
    return (
        SecurityGroupPlan(
            logical_id="PublicSecurityGroup",
            tier=Tier.PUBLIC,
            name=public_name,
            description=f"Public tier of {vpc.name}: HTTP and HTTPS from anywhere",
            network_ref=vpc.logical_id,
            ingress=(
                SecurityRule(protocol="tcp", cidr=DEFAULT_ROUTE_CIDR, from_port=80, to_port=80, description="HTTP"),
                SecurityRule(protocol="tcp", cidr=DEFAULT_ROUTE_CIDR, from_port=443, to_port=443, description="HTTPS"),
            ),
            egress=allow_all_egress,
            tags=named_tags(network.tags, public_name),
        ),
        SecurityGroupPlan(
            logical_id="PrivateSecurityGroup",
            tier=Tier.PRIVATE,
            name=private_name,
            description=f"Private tier of {vpc.name}: SSH from inside the network",
            network_ref=vpc.logical_id,
            ingress=(
                SecurityRule(protocol="tcp", cidr=network.cidr_block, from_port=22, to_port=22, description="SSH"),
            ),
            egress=allow_all_egress,
            tags=named_tags(network.tags, private_name),
        ),
    )


def _nacls(network: NetworkSpec, vpc: NetworkPlan) -> tuple[NaclPlan, ...]:
    low, high = EPHEMERAL_PORTS
    # NACLs are stateless: return traffic needs its own inbound rule
    return_traffic = NaclEntry(
        rule_number=120, egress=False, protocol=TCP, cidr=DEFAULT_ROUTE_CIDR, from_port=low, to_port=high
    )
    all_egress = NaclEntry(rule_number=100, egress=True, protocol=ALL_PROTOCOLS, cidr=DEFAULT_ROUTE_CIDR)
    public_name = resource_name(network.name, "public", "nacl")
    private_name = resource_name(network.name, "private", "nacl")
    return (
        NaclPlan(
            logical_id="PublicNetworkAcl",
            tier=Tier.PUBLIC,
            name=public_name,
            network_ref=vpc.logical_id,
            entries=(
                NaclEntry(rule_number=100, egress=False, protocol=TCP, cidr=DEFAULT_ROUTE_CIDR, from_port=80, to_port=80),
                NaclEntry(rule_number=110, egress=False, protocol=TCP, cidr=DEFAULT_ROUTE_CIDR, from_port=443, to_port=443),
                return_traffic,
                all_egress,
            ),
            tags=named_tags(network.tags, public_name),
        ),
        NaclPlan(
            logical_id="PrivateNetworkAcl",
            tier=Tier.PRIVATE,
            name=private_name,
            network_ref=vpc.logical_id,
            entries=(
                NaclEntry(rule_number=100, egress=False, protocol=TCP, cidr=network.cidr_block, from_port=22, to_port=22),
                return_traffic,
                all_egress,
            ),
            tags=named_tags(network.tags, private_name),
        ),
    )


def _nacl_associations(
    subnets: tuple[SubnetPlan, ...],
    nacls: tuple[NaclPlan, ...],
) -> tuple[NaclAssociationPlan, ...]:
    by_tier = {nacl.tier: nacl for nacl in nacls}
    return tuple(
        NaclAssociationPlan(
            logical_id=f"{subnet.logical_id}NetworkAclAssociation",
            tier=subnet.tier,
            subnet_ref=subnet.logical_id,
            nacl_ref=by_tier[subnet.tier].logical_id,
        )
        for subnet in subnets
    )


def resolve_wiring(
    network: NetworkSpec,
    public_subnets: tuple[SubnetPlan, ...],
    private_subnets: tuple[SubnetPlan, ...],
    nat: Optional[NatPlan],
    region: str,
) -> ResourceGraph:
    """Wire assigned subnets and the optional NAT path into a ResourceGraph.

    Args:
        network: Network being compiled
        public_subnets: Assigned public tier
        private_subnets: Assigned private tier
        nat: NAT plan, or None when no NAT path was planned
        region: Region the graph targets

    Returns:
        The complete resource graph

    Raises:
        DependencyError: If private subnets exist without a NAT path, or the
            NAT path points at a subnet outside the public tier
    """
    vpc = _network_plan(network)
    gateway = _gateway_plan(network, vpc)

    public_route_table = _route_table(network, vpc, Tier.PUBLIC, "gateway", gateway.logical_id)

    private_route_table = None
    if nat is not None:
        if nat.subnet_ref not in {subnet.logical_id for subnet in public_subnets}:
            raise DependencyError(
                "NAT gateway references a subnet outside the public tier",
                entity=nat.logical_id,
                subnet_ref=nat.subnet_ref,
            )
        private_route_table = _route_table(network, vpc, Tier.PRIVATE, "nat", nat.logical_id)
    elif private_subnets:
        raise DependencyError(
            "Private subnets need a NAT path for their default route",
            entity="PrivateRouteTable",
            private_subnet_count=len(private_subnets),
        )

    associations = _associations(public_subnets, public_route_table) + _associations(
        private_subnets, private_route_table
    )
    nacls = _nacls(network, vpc)

    graph = ResourceGraph(
        region=region,
        network=vpc,
        gateway=gateway,
        public_subnets=public_subnets,
        private_subnets=private_subnets,
        nat=nat,
        public_route_table=public_route_table,
        private_route_table=private_route_table,
        associations=associations,
        security_groups=_security_groups(network, vpc),
        nacls=nacls,
        nacl_associations=_nacl_associations(public_subnets + private_subnets, nacls),
    )
    logger.info(
        "wiring_resolved",
        route_tables=len(graph.route_tables),
        associations=len(associations),
        nat=nat is not None,
    )
    return graph
