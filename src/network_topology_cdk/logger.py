"""Logger helpers shared by the compiler stages, the CLI and the CDK app."""

from functools import wraps
from time import perf_counter
from typing import Any, Callable, TypeVar

import structlog

from .exceptions import NetworkTopologyError

F = TypeVar("F", bound=Callable[..., Any])


def get_logger(name: str | None = None) -> Any:
    """Get a structured logger instance.

    Example:
        >>> logger = get_logger(__name__)
        >>> logger.info("subnets_assigned", tier="public", count=2)
    """
    return structlog.get_logger(name)


def log_function_call(logger: Any | None = None) -> Callable[[F], F]:
    """Decorator that logs how long a call took and how it ended.

    Topology errors are logged at warning level with their context fields
    (``field``, ``entity``...) flattened into the event; anything else is an
    unexpected failure and is logged at error level with its traceback.
    Exceptions always propagate.

    Example:
        >>> @log_function_call()
        ... def compile_topology(network, public, private):
        ...     ...
    """

    def decorator(func: F) -> F:
        nonlocal logger
        if logger is None:
            logger = get_logger(func.__module__)

        @wraps(func)
        def wrapper(*args: Any, **kwargs: Any) -> Any:
            start = perf_counter()
            logger.debug("function_call_start", function=func.__name__)

            def elapsed() -> float:
                return round((perf_counter() - start) * 1000, 2)

            try:
                result = func(*args, **kwargs)
            except NetworkTopologyError as e:
                logger.warning(
                    "function_call_rejected",
                    function=func.__name__,
                    error=e.message,
                    error_type=type(e).__name__,
                    duration_ms=elapsed(),
                    **e.context,
                )
                raise
            except Exception:
                logger.exception(
                    "function_call_error",
                    function=func.__name__,
                    duration_ms=elapsed(),
                )
                raise

            logger.info(
                "function_call_success",
                function=func.__name__,
                duration_ms=elapsed(),
            )
            return result

        return wrapper  # type: ignore

    return decorator


class LogContext:
    """Bind context to every log line emitted inside the block.

    The values go into structlog's context variables, so loggers of other
    modules called from inside the block carry them too. The bound logger
    is returned for convenience.

    Example:
        >>> with LogContext(logger, network="main", region="us-west-2") as log:
        ...     log.info("compile_started")
    """

    def __init__(self, logger: Any, **context: Any) -> None:
        self.logger = logger
        self.context = context
        self._tokens: Any = None

    def __enter__(self) -> Any:
        self._tokens = structlog.contextvars.bind_contextvars(**self.context)
        return self.logger.bind(**self.context)

    def __exit__(self, *args: Any) -> None:
        structlog.contextvars.reset_contextvars(**self._tokens)


__all__ = ["get_logger", "log_function_call", "LogContext"]
