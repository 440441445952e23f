"""Tests for the in-process workflow runtime."""

import asyncio

import pytest

from infinitydex.errors import ActivityTimeout, InvalidAmount, WrapFailed
from infinitydex.workflow.runtime import (
    ActivityOptions,
    EventJournal,
    RetryPolicy,
    SignalChannel,
    Timer,
    execute_activity,
    is_retryable,
    select,
)


def _options(attempts: int = 3, timeout: float = 5.0) -> ActivityOptions:
    return ActivityOptions(
        start_to_close_timeout=timeout,
        retry_policy=RetryPolicy(initial_interval=1.0, maximum_interval=4.0, maximum_attempts=attempts),
    )


class _Flaky:
    """Fails a fixed number of times, then succeeds."""

    def __init__(self, failures: int, error: Exception):
        self.failures = failures
        self.error = error
        self.calls = 0

    async def __call__(self, value):
        self.calls += 1
        if self.calls <= self.failures:
            raise self.error
        return value


class TestRetryPolicy:
    def test_backoff_is_exponential_and_capped(self):
        policy = RetryPolicy(initial_interval=1.0, backoff_coefficient=2.0, maximum_interval=5.0)

        assert [policy.backoff(n) for n in range(1, 5)] == [1.0, 2.0, 4.0, 5.0]

    def test_retryable_classification(self):
        assert is_retryable(WrapFailed("boom"))
        assert not is_retryable(InvalidAmount("bad"))
        assert is_retryable(RuntimeError("unknown"))


class TestExecuteActivity:
    """Tests for the retrying activity runner."""

    @pytest.mark.asyncio
    async def test_retries_until_success(self):
        delays = []

        async def fake_sleep(seconds):
            delays.append(seconds)

        fn = _Flaky(2, WrapFailed("temporary"))
        result = await execute_activity(fn, "ok", options=_options(), sleep=fake_sleep)

        assert result == "ok"
        assert fn.calls == 3
        assert delays == [1.0, 2.0]

    @pytest.mark.asyncio
    async def test_gives_up_after_max_attempts(self):
        async def fake_sleep(seconds):
            pass

        fn = _Flaky(10, WrapFailed("down"))

        with pytest.raises(WrapFailed):
            await execute_activity(fn, "ok", options=_options(attempts=3), sleep=fake_sleep)

        assert fn.calls == 3

    @pytest.mark.asyncio
    async def test_non_retryable_fails_immediately(self):
        fn = _Flaky(10, InvalidAmount("bad"))

        with pytest.raises(InvalidAmount):
            await execute_activity(fn, "ok", options=_options())

        assert fn.calls == 1

    @pytest.mark.asyncio
    async def test_attempt_timeout(self):
        calls = 0

        async def slow():
            nonlocal calls
            calls += 1
            await asyncio.sleep(1.0)

        async def fake_sleep(seconds):
            pass

        with pytest.raises(ActivityTimeout):
            await execute_activity(slow, options=_options(attempts=2, timeout=0.01), sleep=fake_sleep)

        assert calls == 2


class TestSignalsAndSelect:
    """Tests for signal channels, timers and select."""

    @pytest.mark.asyncio
    async def test_buffered_signal_wins_over_timer(self):
        confirm = SignalChannel("confirm")
        assert confirm.send()

        name, value = await select([
            ("confirm", confirm.receive),
            ("timeout", Timer(5.0).wait),
        ])

        assert name == "confirm"
        assert value is True

    @pytest.mark.asyncio
    async def test_timer_fires_without_signal(self):
        confirm = SignalChannel("confirm")

        name, _ = await select([
            ("confirm", confirm.receive),
            ("timeout", Timer(0.01).wait),
        ])

        assert name == "timeout"

    @pytest.mark.asyncio
    async def test_earlier_case_wins_tie(self):
        confirm = SignalChannel("confirm")
        cancel = SignalChannel("cancel")
        cancel.send()
        confirm.send()

        name, _ = await select([
            ("confirm", confirm.receive),
            ("cancel", cancel.receive),
        ])

        assert name == "confirm"

    @pytest.mark.asyncio
    async def test_signal_delivered_while_waiting(self):
        cancel = SignalChannel("cancel")

        async def send_later():
            await asyncio.sleep(0.01)
            cancel.send("user")

        sender = asyncio.create_task(send_later())
        name, value = await select([
            ("cancel", cancel.receive),
            ("timeout", Timer(5.0).wait),
        ])
        await sender

        assert (name, value) == ("cancel", "user")

    def test_closed_channel_rejects(self):
        channel = SignalChannel("confirm")
        channel.close()

        assert channel.closed
        assert not channel.send()


class TestEventJournal:
    def test_records_in_order(self):
        journal = EventJournal("swap-1")
        journal.record("started", amount="1")
        journal.record("transition", status="quote_ready")

        assert journal.kinds() == ["started", "transition"]
        assert [e.sequence for e in journal.events] == [1, 2]
        assert journal.events[1].data == {"status": "quote_ready"}
        assert len(journal) == 2
