import asyncio

import pytest

from cadence_client.core.errors import PollTimeout, RequestError
from cadence_client.schemas.analysis import Analysis
from cadence_client.services.tasks.poll import poll


def scripted(results, clock=None, call_times=None):
    results = list(results)
    calls = []

    async def fetch_status():
        calls.append(len(calls))
        if call_times is not None:
            call_times.append(clock.now)
        return results.pop(0) if len(results) > 1 else results[0]

    return fetch_status, calls


@pytest.mark.parametrize("terminal", ["done", "failed"])
def test_terminal_status_returned_immediately(terminal, clock):
    fetch, calls = scripted([{"status": terminal, "bpm": 120.0}])
    result = asyncio.run(poll(fetch, clock=clock, sleep=clock.sleep))
    assert result == {"status": terminal, "bpm": 120.0}
    assert len(calls) == 1
    assert clock.sleeps == []


@pytest.mark.parametrize("k", [0, 1, 3, 7])
def test_k_non_terminal_then_terminal_calls_k_plus_one(k, clock):
    fetch, calls = scripted([{"status": "processing"}] * k + [{"status": "done"}])
    asyncio.run(poll(fetch, interval_ms=500, timeout_ms=60000, clock=clock, sleep=clock.sleep))
    assert len(calls) == k + 1
    assert clock.sleeps == [0.5] * k


def test_processing_twice_then_done_takes_about_four_seconds(clock):
    call_times = []
    fetch, calls = scripted(
        [{"status": "processing"}, {"status": "processing"}, {"status": "done", "bpm": 128}],
        clock=clock,
        call_times=call_times,
    )
    result = asyncio.run(poll(fetch, interval_ms=2000, timeout_ms=60000, clock=clock, sleep=clock.sleep))
    assert result == {"status": "done", "bpm": 128}
    assert len(calls) == 3
    assert call_times == [0.0, 2.0, 4.0]
    assert clock.now == pytest.approx(4.0)


def test_times_out_without_calling_after_deadline(clock):
    call_times = []
    fetch, calls = scripted([{"status": "pending"}], clock=clock, call_times=call_times)
    with pytest.raises(PollTimeout) as exc:
        asyncio.run(poll(fetch, interval_ms=2000, timeout_ms=5000, clock=clock, sleep=clock.sleep))
    assert call_times == [0.0, 2.0, 4.0]
    assert all(t <= 5.0 for t in call_times)
    assert exc.value.calls == 3


def test_slow_status_endpoint_does_not_eat_into_interval(clock):
    results = [{"status": "processing"}, {"status": "done"}]
    starts = []

    async def slow_fetch():
        starts.append(clock.now)
        clock.now += 1.5  # 응답에 1.5초 걸림
        return results.pop(0)

    asyncio.run(poll(slow_fetch, interval_ms=2000, timeout_ms=60000, clock=clock, sleep=clock.sleep))
    # 두 번째 호출은 첫 응답(1.5s) 이후 2초 뒤
    assert starts == [0.0, 3.5]


def test_transport_error_propagates_without_retry(clock):
    calls = []

    async def failing():
        calls.append(1)
        raise RequestError("boom", status_code=502)

    with pytest.raises(RequestError, match="boom"):
        asyncio.run(poll(failing, clock=clock, sleep=clock.sleep))
    assert len(calls) == 1


def test_reads_status_from_models(clock):
    fetch, calls = scripted([Analysis(status="queued"), Analysis(status="done", bpm=90.0)])
    result = asyncio.run(poll(fetch, interval_ms=10, clock=clock, sleep=clock.sleep))
    assert result.bpm == 90.0
    assert len(calls) == 2


def test_independent_polls_run_concurrently():
    async def job(name, n):
        results = [{"status": "processing"}] * n + [{"status": "done", "name": name}]

        async def fetch():
            return results.pop(0)

        return await poll(fetch, interval_ms=1, timeout_ms=5000)

    async def main():
        return await asyncio.gather(job("a", 3), job("b", 1))

    a, b = asyncio.run(main())
    assert a["name"] == "a" and b["name"] == "b"
