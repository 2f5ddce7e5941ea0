"""Subnet assignment: index to CIDR (positional) and to zone (round-robin)."""

from typing import Sequence

from ..logger import get_logger
from ..project_settings import resource_name
from .models import NetworkSpec, SubnetPlan, SubnetRequest
from .tags import named_tags

logger = get_logger(__name__)


def zone_for(index: int, zones: Sequence[str]) -> str:
    """Zone of the subnet at ``index``, wrapping around the zone list."""
    return zones[index % len(zones)]


def assign_subnets(network: NetworkSpec, request: SubnetRequest) -> tuple[SubnetPlan, ...]:
    """Expand a validated request into its subnet plans.

    A count of zero yields an empty tuple.

    Args:
        network: Network the subnets belong to
        request: Validated subnet request for one tier

    Returns:
        Subnet plans ordered by index
    """
    plans = []
    for index in range(request.count):
        name = resource_name(network.name, request.tier.value, str(index))
        plans.append(
            SubnetPlan(
                index=index,
                tier=request.tier,
                cidr=request.cidrs[index],
                zone=zone_for(index, request.zones),
                name=name,
                tags=named_tags(network.tags, name),
            )
        )

    logger.debug(
        "subnets_assigned",
        tier=request.tier.value,
        count=len(plans),
        zones=[plan.zone for plan in plans],
    )
    return tuple(plans)
