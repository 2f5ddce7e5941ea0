"""Conditional NAT path planning."""

from typing import Optional

from ..exceptions import DependencyError
from ..logger import get_logger
from ..project_settings import resource_name
from .models import NatPlan, NetworkSpec, SubnetPlan
from .tags import named_tags

logger = get_logger(__name__)


def plan_nat(
    network: NetworkSpec,
    public_subnets: tuple[SubnetPlan, ...],
    private_subnets: tuple[SubnetPlan, ...],
) -> Optional[NatPlan]:
    """Plan the shared NAT path for the private tier.

    Only the private subnet count decides whether a NAT path exists. When it
    does, exactly one Elastic IP and one NAT gateway are planned, placed in
    the first public subnet.

    Args:
        network: Network being compiled
        public_subnets: Assigned public tier
        private_subnets: Assigned private tier

    Returns:
        The NAT plan, or None when the private tier is empty

    Raises:
        DependencyError: If private subnets exist but the public tier is empty
    """
    if not private_subnets:
        logger.info("nat_skipped", reason="no_private_subnets")
        return None

    if not public_subnets:
        raise DependencyError(
            "NAT gateway needs a public subnet to live in",
            entity="NatGateway",
            private_subnet_count=len(private_subnets),
            public_subnet_count=0,
        )

    anchor = public_subnets[0]
    name = resource_name(network.name, "nat")
    eip_name = resource_name(network.name, "nat", "eip")
    plan = NatPlan(
        subnet_ref=anchor.logical_id,
        subnet_index=anchor.index,
        name=name,
        eip_name=eip_name,
        tags=named_tags(network.tags, name),
        eip_tags=named_tags(network.tags, eip_name),
    )
    logger.info("nat_planned", subnet=anchor.name, zone=anchor.zone)
    return plan
