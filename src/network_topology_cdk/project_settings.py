"""Project-wide constants and naming helpers.

Every planned resource gets its name from here, so the same inputs always
produce the same names.
"""

# Project naming - single source of truth
PROJECT_NAME = "network-topology"

# Destination of every default route
DEFAULT_ROUTE_CIDR = "0.0.0.0/0"

DEFAULT_REGION = "us-west-2"


def stack_name(network_name: str) -> str:
    """Generate deterministic stack name.

    Args:
        network_name: Name prefix of the network (e.g., 'main')

    Returns:
        Formatted stack name
    """
    return f"{PROJECT_NAME}-{network_name}"


def resource_name(prefix: str, resource_type: str, suffix: str = "") -> str:
    """Generate deterministic resource name.

    Args:
        prefix: Network name prefix
        resource_type: Type of resource (e.g., 'vpc', 'public', 'nat')
        suffix: Optional suffix for additional specificity

    Returns:
        Formatted resource name
    """
    base = f"{prefix}-{resource_type}"
    return f"{base}-{suffix}" if suffix else base
