from unittest.mock import AsyncMock, MagicMock, patch

import pytest

from localbridge.utils.decorators import retry_with_backoff, traced


class TransientError(Exception):
    pass


class TestRetryWithBackoff:
    async def test_async_retries_until_success(self):
        calls = AsyncMock(side_effect=[TransientError("down"), TransientError("down"), "ok"])

        @retry_with_backoff(max_retries=3, initial_delay=0.5, retry_on=(TransientError,))
        async def connect():
            return await calls()

        with patch("localbridge.utils.decorators.asyncio.sleep", new_callable=AsyncMock) as sleep:
            assert await connect() == "ok"

        assert calls.await_count == 3
        assert [c.args[0] for c in sleep.await_args_list] == [0.5, 1.0]

    async def test_async_gives_up_after_max_retries(self):
        calls = AsyncMock(side_effect=TransientError("still down"))

        @retry_with_backoff(max_retries=2, initial_delay=1.0, max_delay=1.5, retry_on=(TransientError,))
        async def connect():
            return await calls()

        with patch("localbridge.utils.decorators.asyncio.sleep", new_callable=AsyncMock) as sleep:
            with pytest.raises(TransientError, match="still down"):
                await connect()

        assert calls.await_count == 3
        assert [c.args[0] for c in sleep.await_args_list] == [1.0, 1.5]

    async def test_unlisted_exceptions_are_not_retried(self):
        calls = AsyncMock(side_effect=ValueError("bad config"))

        @retry_with_backoff(max_retries=3, retry_on=(TransientError,))
        async def connect():
            return await calls()

        with patch("localbridge.utils.decorators.asyncio.sleep", new_callable=AsyncMock) as sleep:
            with pytest.raises(ValueError):
                await connect()

        assert calls.await_count == 1
        sleep.assert_not_awaited()

    async def test_retry_condition_filters(self):
        calls = AsyncMock(side_effect=TransientError("fatal"))

        @retry_with_backoff(max_retries=3, retry_condition=lambda exc: "fatal" not in str(exc))
        async def connect():
            return await calls()

        with patch("localbridge.utils.decorators.asyncio.sleep", new_callable=AsyncMock):
            with pytest.raises(TransientError):
                await connect()

        assert calls.await_count == 1

    def test_sync_functions(self):
        attempts = MagicMock(side_effect=[TransientError("down"), 42])

        @retry_with_backoff(max_retries=1, initial_delay=0.1)
        def load():
            return attempts()

        with patch("localbridge.utils.decorators.time.sleep") as sleep:
            assert load() == 42

        sleep.assert_called_once_with(0.1)


class TestTraced:
    @pytest.fixture
    def tracer(self):
        tracer = MagicMock()
        with patch("localbridge.utils.decorators.get_tracer", return_value=tracer):
            yield tracer

    async def test_async_span_attributes(self, tracer):
        @traced(
            "repo.execute",
            attributes={"db.system": "mysql", "ignored": None},
            attribute_getter=lambda table: {"db.table": table},
        )
        async def execute(table):
            return f"rows from {table}"

        assert await execute("users") == "rows from users"

        tracer.start_as_current_span.assert_called_once()
        assert tracer.start_as_current_span.call_args.args[0] == "repo.execute"
        span = tracer.start_as_current_span.return_value.__enter__.return_value
        span.set_attribute.assert_any_call("db.system", "mysql")
        span.set_attribute.assert_any_call("db.table", "users")
        assert span.set_attribute.call_count == 2

    async def test_async_errors_are_recorded_and_reraised(self, tracer):
        @traced()
        async def explode():
            raise RuntimeError("boom")

        with pytest.raises(RuntimeError):
            await explode()

        span = tracer.start_as_current_span.return_value.__enter__.return_value
        span.record_exception.assert_called_once()
        span.set_status.assert_called_once()

    def test_sync_default_span_name(self, tracer):
        @traced()
        def compute():
            return 1

        assert compute() == 1
        name = tracer.start_as_current_span.call_args.args[0]
        assert name.endswith("compute")
