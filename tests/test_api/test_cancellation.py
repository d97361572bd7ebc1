"""Tests for the cancellation handle."""

import asyncio

import pytest

from form_engine.api import CancellationToken, RequestCancelledError


class TestCancellationToken:
    @pytest.mark.asyncio
    async def test_passes_result_through(self):
        async def work():
            return 42

        assert await CancellationToken().run(work()) == 42

    @pytest.mark.asyncio
    async def test_passes_errors_through(self):
        async def work():
            raise ValueError("backend exploded")

        with pytest.raises(ValueError):
            await CancellationToken().run(work())

    @pytest.mark.asyncio
    async def test_already_cancelled_never_starts(self):
        started = False

        async def work():
            nonlocal started
            started = True

        token = CancellationToken()
        token.cancel("form closed")

        with pytest.raises(RequestCancelledError, match="form closed"):
            await token.run(work())
        assert not started

    @pytest.mark.asyncio
    async def test_cancel_aborts_in_flight_call(self):
        token = CancellationToken()
        finished = False

        async def work():
            nonlocal finished
            await asyncio.sleep(10)
            finished = True

        task = asyncio.ensure_future(token.run(work()))
        await asyncio.sleep(0)
        token.cancel()

        with pytest.raises(RequestCancelledError):
            await task
        assert not finished
        assert token.cancelled

    @pytest.mark.asyncio
    async def test_one_token_aborts_all_calls(self):
        token = CancellationToken()

        async def work():
            await asyncio.sleep(10)

        tasks = [asyncio.ensure_future(token.run(work())) for _ in range(3)]
        await asyncio.sleep(0)
        token.cancel()

        results = await asyncio.gather(*tasks, return_exceptions=True)
        assert all(isinstance(r, RequestCancelledError) for r in results)

    def test_raise_if_cancelled(self):
        token = CancellationToken()
        token.raise_if_cancelled()
        token.cancel()
        with pytest.raises(RequestCancelledError):
            token.raise_if_cancelled()
