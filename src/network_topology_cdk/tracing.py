"""OpenTelemetry tracing configuration.

The compiler opens one span per stage. Until setup_tracing() installs a
provider those spans are no-ops; the CLI installs one only when
``OTLP_ENDPOINT`` is set.
"""

from opentelemetry import trace
from opentelemetry.exporter.otlp.proto.grpc.trace_exporter import OTLPSpanExporter
from opentelemetry.sdk.resources import Resource
from opentelemetry.sdk.trace import TracerProvider
from opentelemetry.sdk.trace.export import BatchSpanProcessor


def setup_tracing(
    otlp_endpoint: str,
    service_name: str = "network_topology_cdk",
    service_version: str = "0.1.0",
    environment: str = "development",
) -> TracerProvider:
    """Install a global tracer provider exporting compile spans over OTLP gRPC.

    Args:
        otlp_endpoint: OTLP collector endpoint, e.g. http://collector:4317
        service_name: Reported service name
        service_version: Reported service version
        environment: Reported deployment environment

    Returns:
        The installed provider

    Example:
        >>> setup_tracing("http://collector:4317", environment="staging")
    """
    resource = Resource.create(
        {
            "service.name": service_name,
            "service.version": service_version,
            "deployment.environment": environment,
        }
    )

    tracer_provider = TracerProvider(resource=resource)
    tracer_provider.add_span_processor(
        BatchSpanProcessor(OTLPSpanExporter(endpoint=otlp_endpoint, insecure=True))
    )
    trace.set_tracer_provider(tracer_provider)
    return tracer_provider


def get_tracer(name: str) -> trace.Tracer:
    """Tracer for a module; resolves lazily against the installed provider."""
    return trace.get_tracer(name)


__all__ = [
    "setup_tracing",
    "get_tracer",
]
