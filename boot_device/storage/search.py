"""Ordered heuristic search: the first step that answers wins."""

from __future__ import annotations

from typing import Callable, Iterable, Optional, TypeVar

from boot_device.logging import LoggerFactory

T = TypeVar("T")

log = LoggerFactory.for_detection()

Step = Callable[..., Optional[T]]


def first_success(steps: Iterable[Step], *args, **kwargs) -> Optional[T]:
    """Call each step in order and return the first truthy result.

    Later steps are not called once one has answered. Returns None when every
    step came back empty.
    """
    for step in steps:
        name = getattr(step, "__name__", repr(step))
        result = step(*args, **kwargs)
        if result:
            log.debug(f"{name} -> {result}")
            return result
        log.debug(f"{name} -> no answer")
    return None


def requires(probe, *tools: str) -> bool:
    """True when every tool is available; logs the skip otherwise."""
    missing = [tool for tool in tools if not probe.has_tool(tool)]
    if missing:
        log.debug(f"Skipping heuristic, missing: {', '.join(missing)}")
        return False
    return True
