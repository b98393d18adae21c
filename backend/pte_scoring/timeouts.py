from __future__ import annotations
import asyncio
import logging
import math
from typing import Awaitable, Callable, Optional, TypeVar

from .errors import ScoringTimeoutError

logger = logging.getLogger(__name__)

T = TypeVar("T")


def deadline_enabled(timeout_ms: Optional[float]) -> bool:
	if timeout_ms is None or isinstance(timeout_ms, bool):
		return False
	try:
		value = float(timeout_ms)
	except (TypeError, ValueError):
		return False
	return math.isfinite(value) and value > 0


def _discard_outcome(task: "asyncio.Future") -> None:
	# Retrieves the outcome so a result nobody awaits is not reported as unhandled.
	if task.cancelled():
		return
	exc = task.exception()
	if exc is not None:
		logger.debug("Bounded operation finished with error: %s", exc)


async def with_timeout(
	operation: Awaitable[T],
	timeout_ms: Optional[float],
	on_timeout: Optional[Callable[[], None]] = None,
) -> T:
	"""Await ``operation`` for at most ``timeout_ms`` milliseconds.

	On expiry ``on_timeout`` fires once and ``ScoringTimeoutError`` is raised.
	The underlying operation is not cancelled: most LLM backends offer no
	cooperative abort, so the call keeps running and its result is discarded.
	A missing, non-positive or non-finite ``timeout_ms`` disables the deadline.
	"""
	if not deadline_enabled(timeout_ms):
		return await operation
	task = asyncio.ensure_future(operation)
	# attached up front so the outcome is consumed even if this caller is cancelled while waiting
	task.add_done_callback(_discard_outcome)
	done, _ = await asyncio.wait({task}, timeout=float(timeout_ms) / 1000.0)
	if task in done:
		return task.result()
	if on_timeout is not None:
		try:
			on_timeout()
		except Exception:
			logger.exception("on_timeout callback failed")
	raise ScoringTimeoutError(float(timeout_ms))
