"""Parameter validation.

Runs before any other compiler stage. Later stages index into ``cidrs`` and
``zones`` without re-checking bounds.
"""

from ..exceptions import ConfigurationError
from .models import NetworkSpec, SubnetRequest, Tier


def validate_subnet_request(request: SubnetRequest, expected_tier: Tier) -> None:
    """Check one tier's request for shape consistency.

    Args:
        request: Subnet request to check
        expected_tier: Tier of the slot the request was passed in

    Raises:
        ConfigurationError: If the request cannot be assigned
    """
    prefix = expected_tier.value
    if request.tier is not expected_tier:
        raise ConfigurationError(
            "Subnet request passed for the wrong tier",
            field=f"{prefix}.tier",
            expected=expected_tier.value,
            actual=request.tier.value,
        )
    if request.count < 0:
        raise ConfigurationError(
            "Subnet count must not be negative",
            field=f"{prefix}.count",
            count=request.count,
        )
    if len(request.cidrs) < request.count:
        raise ConfigurationError(
            "Not enough CIDR blocks for the requested subnet count",
            field=f"{prefix}.cidrs",
            count=request.count,
            available=len(request.cidrs),
        )
    if not request.zones:
        raise ConfigurationError(
            "At least one availability zone is required",
            field=f"{prefix}.zones",
        )


def validate_parameters(
    network: NetworkSpec,
    public: SubnetRequest,
    private: SubnetRequest,
) -> None:
    """Validate all compile inputs, failing on the first problem found.

    Raises:
        ConfigurationError: Naming the offending field
    """
    if not network.name:
        raise ConfigurationError("Network name must not be empty", field="name")
    if not network.cidr_block:
        raise ConfigurationError("Network CIDR block must not be empty", field="cidr_block")
    validate_subnet_request(public, Tier.PUBLIC)
    validate_subnet_request(private, Tier.PRIVATE)
