"""
Fail-open wrapper for cache-backed operations.

Every operation that talks to the cache backend is decorated with
``fail_open(default)``. Any exception raised by the wrapped call is logged and
replaced by ``default``, so call sites get the documented fallback uniformly.
"""

import logging
from functools import wraps
from typing import Any, Callable, TypeVar

logger = logging.getLogger(__name__)

F = TypeVar("F", bound=Callable[..., Any])


def fail_open(default: Any, operation: str = "") -> Callable[[F], F]:
    """Decorator converting any backend error into ``default``.

    Args:
        default: Value returned when the wrapped call raises
        operation: Name used in the warning log (defaults to the function name)
    """
    def decorator(func: F) -> F:
        name = operation or func.__qualname__

        @wraps(func)
        def wrapper(*args, **kwargs):
            try:
                return func(*args, **kwargs)
            except Exception as exc:
                logger.warning(
                    f"Cache operation {name} failed, falling back to {default!r}: "
                    f"{exc.__class__.__name__}: {exc}"
                )
                return default

        wrapper.fail_open_default = default  # type: ignore[attr-defined]
        return wrapper  # type: ignore[return-value]

    return decorator
