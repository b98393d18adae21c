import asyncio
import logging
import time

import pytest

from pte_scoring.errors import ProviderError, ScoringTimeoutError
from pte_scoring.timeouts import deadline_enabled, with_timeout


@pytest.mark.asyncio
async def test_never_settling_operation_times_out_and_fires_callback_once() -> None:
	never = asyncio.get_running_loop().create_future()
	fired = []

	started = time.perf_counter()
	with pytest.raises(ScoringTimeoutError) as info:
		await with_timeout(never, 50, on_timeout=lambda: fired.append(1))
	elapsed = time.perf_counter() - started

	assert 0.04 <= elapsed < 0.5
	assert fired == [1]
	assert info.value.timeout_ms == 50
	assert "timeout_after_50ms" in str(info.value)
	assert isinstance(info.value, TimeoutError)
	assert isinstance(info.value, ProviderError)
	never.cancel()


@pytest.mark.asyncio
async def test_timed_out_operation_is_not_cancelled() -> None:
	gate = asyncio.Event()
	finished = []

	async def slow() -> str:
		await gate.wait()
		finished.append(True)
		return "late"

	with pytest.raises(ScoringTimeoutError):
		await with_timeout(slow(), 20)

	gate.set()
	await asyncio.sleep(0.01)
	assert finished == [True]


@pytest.mark.asyncio
async def test_fast_operation_returns_value_without_callback() -> None:
	fired = []

	async def quick() -> int:
		return 7

	assert await with_timeout(quick(), 1000, on_timeout=lambda: fired.append(1)) == 7
	assert fired == []


@pytest.mark.asyncio
async def test_operation_errors_propagate_unchanged() -> None:
	async def broken() -> None:
		raise ValueError("bad payload")

	with pytest.raises(ValueError, match="bad payload"):
		await with_timeout(broken(), 1000)


@pytest.mark.asyncio
@pytest.mark.parametrize("timeout_ms", [0, -1, None, float("inf"), float("nan")])
async def test_non_positive_or_non_finite_timeout_disables_deadline(timeout_ms) -> None:
	async def slowish() -> str:
		await asyncio.sleep(0.03)
		return "done"

	assert await with_timeout(slowish(), timeout_ms) == "done"


@pytest.mark.asyncio
async def test_failing_callback_does_not_mask_timeout() -> None:
	never = asyncio.get_running_loop().create_future()

	def explode() -> None:
		raise RuntimeError("telemetry down")

	with pytest.raises(ScoringTimeoutError):
		await with_timeout(never, 10, on_timeout=explode)
	never.cancel()


def test_deadline_enabled() -> None:
	assert deadline_enabled(50)
	assert deadline_enabled(0.5)
	assert not deadline_enabled(0)
	assert not deadline_enabled(None)
	assert not deadline_enabled(float("nan"))


@pytest.mark.asyncio
async def test_outcome_is_consumed_when_the_waiting_caller_is_cancelled(caplog) -> None:
	gate = asyncio.Event()

	async def fails_late() -> None:
		await gate.wait()
		raise RuntimeError("late failure")

	caller = asyncio.ensure_future(with_timeout(fails_late(), 1000))
	await asyncio.sleep(0.01)
	caller.cancel()
	with pytest.raises(asyncio.CancelledError):
		await caller

	with caplog.at_level(logging.DEBUG, logger="pte_scoring.timeouts"):
		gate.set()
		await asyncio.sleep(0.01)

	assert "late failure" in caplog.text
