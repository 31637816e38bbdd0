from __future__ import annotations

import pytest

from dart_enrichment.infrastructure.resilience.retry import RetryPolicy, retry_async

_FAST = RetryPolicy(total=2, base=0.0, cap=0.0, jitter=False)


@pytest.mark.asyncio
async def test_retries_retryable_errors_until_success() -> None:
    attempts = 0

    async def flaky() -> str:
        nonlocal attempts
        attempts += 1
        if attempts < 3:
            raise ConnectionError("transient")
        return "ok"

    result = await retry_async(flaky, policy=_FAST, retry_on=lambda e: isinstance(e, ConnectionError))
    assert result == "ok"
    assert attempts == 3


@pytest.mark.asyncio
async def test_gives_up_after_budget() -> None:
    attempts = 0

    async def always() -> None:
        nonlocal attempts
        attempts += 1
        raise ConnectionError("down")

    with pytest.raises(ConnectionError):
        await retry_async(always, policy=_FAST, retry_on=lambda e: True)
    assert attempts == 3


@pytest.mark.asyncio
async def test_non_retryable_error_propagates_immediately() -> None:
    attempts = 0

    async def bad() -> None:
        nonlocal attempts
        attempts += 1
        raise ValueError("bad request")

    with pytest.raises(ValueError):
        await retry_async(bad, policy=_FAST, retry_on=lambda e: isinstance(e, ConnectionError))
    assert attempts == 1


def test_backoff_is_capped() -> None:
    policy = RetryPolicy(total=5, base=0.5, cap=2.0, jitter=False)
    assert [policy.backoff(i) for i in range(4)] == [0.5, 1.0, 2.0, 2.0]
