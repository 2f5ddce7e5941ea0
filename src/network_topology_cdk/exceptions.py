"""Custom exception hierarchy for the topology compiler.

Every error carries the offending field or entity as keyword context, so the
rendered message always names what has to be fixed.
"""

from typing import Any


class NetworkTopologyError(Exception):
    """Base exception for Network Topology CDK.

    All custom exceptions should inherit from this class.
    Supports additional context via keyword arguments.
    """

    def __init__(self, message: str, **context: Any) -> None:
        """Initialize exception with message and context.

        Args:
            message: Error message
            **context: Additional context as key-value pairs
        """
        super().__init__(message)
        self.message = message
        self.context = context

    def __str__(self) -> str:
        """String representation including context."""
        if self.context:
            ctx_str = ", ".join(f"{k}={v}" for k, v in self.context.items())
            return f"{self.message} ({ctx_str})"
        return self.message


class ConfigurationError(NetworkTopologyError):
    """Raised when topology parameters are malformed or insufficient."""

    pass


class DependencyError(NetworkTopologyError):
    """Raised when a planned resource references one that was not planned."""

    pass


class ProvisioningError(NetworkTopologyError):
    """Raised when the provisioning engine fails to apply a compiled graph."""

    pass


class ResourceNotFoundError(NetworkTopologyError):
    """Raised when a logical id is not part of a compiled graph."""

    pass
