"""Error types and the fail-soft wrapper used by the analytics functions."""

from __future__ import annotations

import copy
import functools
import logging
from typing import Any, Callable


class ValidationError(ValueError):
    """Input was rejected and the caller must be told."""


def fail_soft(default: Any = None, factory: Callable[..., Any] | None = None) -> Callable:
    """Turn any internal exception into a safe return value.

    ``factory`` is called with the wrapped function's arguments when the
    fallback depends on them; otherwise a deep copy of ``default`` is returned
    so callers never share a mutable fallback. ``ValidationError`` always
    propagates.
    """

    def decorator(func: Callable[..., Any]) -> Callable[..., Any]:
        logger = logging.getLogger(func.__module__)

        @functools.wraps(func)
        def wrapper(*args: Any, **kwargs: Any) -> Any:
            try:
                return func(*args, **kwargs)
            except ValidationError:
                raise
            except Exception:
                logger.exception("%s failed, returning fallback", func.__name__)
                if factory is not None:
                    return factory(*args, **kwargs)
                return copy.deepcopy(default)

        return wrapper

    return decorator
