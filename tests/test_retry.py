"""
Retry helper tests
"""

import pytest
from unittest.mock import AsyncMock

from aimarker.utils.retry import compute_backoff, retry_async


class TestComputeBackoff:
    def test_grows_geometrically(self):
        assert [compute_backoff(n, base_delay=1.0, factor=2.0) for n in range(4)] == [1.0, 2.0, 4.0, 8.0]

    def test_capped_at_max_delay(self):
        assert compute_backoff(10, base_delay=1.0, factor=2.0, max_delay=30.0) == 30.0

    def test_negative_attempt(self):
        with pytest.raises(ValueError):
            compute_backoff(-1)


class TestRetryAsync:
    @pytest.mark.asyncio
    async def test_returns_after_transient_failures(self):
        func = AsyncMock(side_effect=[ConnectionError("down"), ConnectionError("down"), "ok"])
        sleep = AsyncMock()

        result = await retry_async(func, "arg", retries=3, base_delay=0.5, sleep=sleep, flag=True)

        assert result == "ok"
        assert func.await_count == 3
        func.assert_awaited_with("arg", flag=True)
        assert [call.args[0] for call in sleep.await_args_list] == [0.5, 1.0]

    @pytest.mark.asyncio
    async def test_reraises_last_error(self):
        func = AsyncMock(side_effect=ConnectionError("still down"))
        sleep = AsyncMock()

        with pytest.raises(ConnectionError, match="still down"):
            await retry_async(func, retries=2, sleep=sleep)

        assert func.await_count == 3
        assert sleep.await_count == 2

    @pytest.mark.asyncio
    async def test_unlisted_exception_is_not_retried(self):
        func = AsyncMock(side_effect=KeyError("bug"))
        sleep = AsyncMock()

        with pytest.raises(KeyError):
            await retry_async(func, retries=3, retry_on=(ConnectionError,), sleep=sleep)

        assert func.await_count == 1
        sleep.assert_not_awaited()
