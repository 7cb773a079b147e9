# tests/test_resilient_caller.py
import asyncio
import random

import pytest
from fakes import FakeClient, FakeClock, GatedClient, ListSink, RecordingSleep

from core.circuit_breaker import BreakerState, CircuitBreaker
from core.errors import ErrorKind, GenerationError
from core.resilience import ResilientCaller
from models import ModelParameters

PARAMS = ModelParameters(model="test-model", temperature=0.7, max_tokens=100)


def _caller(client, clock=None, sleep=None, sink=None, breaker=None, **kwargs):
    clock = clock or FakeClock()
    return ResilientCaller(
        client,
        breaker or CircuitBreaker(failure_threshold=5, cooldown_seconds=30, clock=clock),
        sink or ListSink(),
        rng=random.Random(1),
        sleep=sleep or RecordingSleep(),
        clock=clock,
        retry_attempts=kwargs.get("retry_attempts", 3),
        call_timeout_seconds=kwargs.get("call_timeout_seconds", 5),
    )


@pytest.mark.asyncio
async def test_success_records_telemetry():
    sink = ListSink()
    caller = _caller(FakeClient('{"ok": true}'), sink=sink)
    text = await caller.call("prompt", PARAMS, activity_type="who")
    assert text == '{"ok": true}'
    assert len(sink.records) == 1
    record = sink.records[0]
    assert record.outcome == "success"
    assert record.activity_type == "who"
    assert record.model == "test-model"


@pytest.mark.asyncio
async def test_retryable_failure_is_retried_with_backoff():
    sleep = RecordingSleep()
    sink = ListSink()
    client = FakeClient(RuntimeError("HTTP 503 service unavailable"), "{}")
    caller = _caller(client, sleep=sleep, sink=sink)
    assert await caller.call("prompt", PARAMS) == "{}"
    assert len(client.calls) == 2
    assert len(sleep.delays) == 1
    assert 0.75 <= sleep.delays[0] <= 1.25
    assert [r.outcome for r in sink.records] == ["SERVER", "success"]


@pytest.mark.asyncio
async def test_non_retryable_failure_raises_immediately():
    client = FakeClient(RuntimeError("HTTP 401: invalid api key"))
    sleep = RecordingSleep()
    caller = _caller(client, sleep=sleep)
    with pytest.raises(GenerationError) as info:
        await caller.call("prompt", PARAMS)
    assert info.value.kind is ErrorKind.AUTH
    assert info.value.retryable is False
    assert len(client.calls) == 1
    assert sleep.delays == []


@pytest.mark.asyncio
async def test_exhausted_retries_raise_last_error():
    client = FakeClient(RuntimeError("HTTP 429 rate limit"))
    caller = _caller(client)
    with pytest.raises(GenerationError) as info:
        await caller.call("prompt", PARAMS)
    assert info.value.kind is ErrorKind.RATE_LIMIT
    assert len(client.calls) == 3


@pytest.mark.asyncio
async def test_timeout_is_network_failure():
    class SlowClient:
        async def call(self, prompt, model_parameters):
            await asyncio.sleep(1)
            return "{}"

    caller = _caller(SlowClient(), retry_attempts=1, call_timeout_seconds=0.01)
    with pytest.raises(GenerationError) as info:
        await caller.call("prompt", PARAMS)
    assert info.value.kind is ErrorKind.NETWORK


@pytest.mark.asyncio
async def test_open_breaker_rejects_without_calling():
    clock = FakeClock()
    breaker = CircuitBreaker(failure_threshold=1, cooldown_seconds=30, clock=clock)
    breaker.record_failure()
    client = FakeClient("{}")
    caller = _caller(client, clock=clock, breaker=breaker)
    with pytest.raises(GenerationError) as info:
        await caller.call("prompt", PARAMS)
    assert info.value.kind is ErrorKind.BREAKER_OPEN
    assert client.calls == []


@pytest.mark.asyncio
async def test_failures_trip_the_breaker():
    clock = FakeClock()
    breaker = CircuitBreaker(failure_threshold=2, cooldown_seconds=30, clock=clock)
    client = FakeClient(RuntimeError("HTTP 500 server error"))
    caller = _caller(client, clock=clock, breaker=breaker)
    with pytest.raises(GenerationError) as info:
        await caller.call("prompt", PARAMS)
    assert info.value.kind is ErrorKind.BREAKER_OPEN
    assert len(client.calls) == 2
    assert breaker.state is BreakerState.OPEN


@pytest.mark.asyncio
async def test_backoff_past_deadline_ends_retries():
    clock = FakeClock()
    client = FakeClient(RuntimeError("HTTP 503"))
    sleep = RecordingSleep(clock)
    caller = _caller(client, clock=clock, sleep=sleep)
    with pytest.raises(GenerationError) as info:
        await caller.call("prompt", PARAMS, deadline=clock() + 0.5)
    assert info.value.kind is ErrorKind.SERVER
    assert len(client.calls) == 1
    assert sleep.delays == []


@pytest.mark.asyncio
async def test_expired_deadline_makes_no_call():
    clock = FakeClock()
    client = FakeClient("{}")
    caller = _caller(client, clock=clock)
    with pytest.raises(GenerationError) as info:
        await caller.call("prompt", PARAMS, deadline=clock() - 1)
    assert info.value.kind is ErrorKind.NETWORK
    assert client.calls == []


@pytest.mark.asyncio
async def test_telemetry_failure_does_not_break_the_call():
    class BrokenSink:
        def record(self, call):
            raise RuntimeError("sink down")

    caller = _caller(FakeClient("{}"), sink=BrokenSink())
    assert await caller.call("prompt", PARAMS) == "{}"


@pytest.mark.asyncio
async def test_cancelled_trial_call_releases_the_breaker():
    clock = FakeClock()
    breaker = CircuitBreaker(failure_threshold=1, cooldown_seconds=30, clock=clock)
    breaker.record_failure()
    clock.advance(31)
    client = GatedClient("{}", gate_on="slow")
    caller = _caller(client, clock=clock, breaker=breaker)

    task = asyncio.create_task(caller.call("slow prompt", PARAMS))
    await client.waiting.wait()
    assert breaker.state is BreakerState.HALF_OPEN
    task.cancel()
    with pytest.raises(asyncio.CancelledError):
        await task

    assert breaker.state is BreakerState.HALF_OPEN
    assert await caller.call("quick prompt", PARAMS) == "{}"
    assert breaker.state is BreakerState.CLOSED
    assert len(client.calls) == 2


@pytest.mark.asyncio
async def test_cancelled_call_in_closed_state_leaves_breaker_alone():
    clock = FakeClock()
    breaker = CircuitBreaker(failure_threshold=5, cooldown_seconds=30, clock=clock)
    client = GatedClient("{}", gate_on="slow")
    caller = _caller(client, clock=clock, breaker=breaker)

    task = asyncio.create_task(caller.call("slow prompt", PARAMS))
    await client.waiting.wait()
    task.cancel()
    with pytest.raises(asyncio.CancelledError):
        await task

    snapshot = breaker.snapshot()
    assert snapshot.state is BreakerState.CLOSED
    assert snapshot.failure_count == 0
