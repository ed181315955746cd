"""Wall-clock timing of store operations, logged at DEBUG."""

from __future__ import annotations

import functools
import logging
import time
from typing import Any, Awaitable, Callable, TypeVar

T = TypeVar("T")

logger = logging.getLogger(__name__)


async def profile(
    label: str,
    fn: Callable[[], Awaitable[T]],
    log: logging.Logger | None = None,
) -> T:
    """Await ``fn()`` and log ``"<label> took <ms> ms"``.

    The result or exception of ``fn`` passes through untouched.
    """
    start = time.perf_counter()
    try:
        return await fn()
    finally:
        elapsed_ms = (time.perf_counter() - start) * 1000
        (log or logger).debug(f"{label} took {elapsed_ms:.2f} ms")


def profiled(label: str):
    """Method decorator form of :func:`profile`; uses ``self._logger`` if set."""

    def decorator(method: Callable[..., Awaitable[T]]) -> Callable[..., Awaitable[T]]:
        @functools.wraps(method)
        async def wrapper(self, *args: Any, **kwargs: Any) -> T:
            return await profile(
                label,
                lambda: method(self, *args, **kwargs),
                getattr(self, "_logger", None),
            )

        return wrapper

    return decorator
