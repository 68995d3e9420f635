import asyncio
import time
from typing import Any, Awaitable, Callable, TypeVar

from cadence_client.core.errors import PollTimeout
from cadence_client.core.logging import logger
from cadence_client.schemas.analysis import TERMINAL_STATUSES

T = TypeVar("T")


def status_of(result: Any) -> str | None:
    if isinstance(result, dict):
        return result.get("status")
    return getattr(result, "status", None)


async def poll(
    fetch_status: Callable[[], Awaitable[T]],
    *,
    interval_ms: int = 2000,
    timeout_ms: int = 60000,
    clock: Callable[[], float] = time.monotonic,
    sleep: Callable[[float], Awaitable[Any]] = asyncio.sleep,
) -> T:
    """
    fetch_status 를 done / failed 가 나올 때까지 반복 호출한다.
    - 첫 호출은 즉시, 이후 호출은 직전 응답 시점부터 interval 만큼 쉬고
    - 재시도 직전에 경과 시간이 timeout 을 넘었으면 더 호출하지 않고 PollTimeout
    - fetch_status 에서 난 예외는 재시도 없이 그대로 전파
    """
    start = clock()
    calls = 0

    def expired() -> bool:
        return (clock() - start) * 1000 > timeout_ms

    while True:
        result = await fetch_status()
        calls += 1
        status = status_of(result)
        if status in TERMINAL_STATUSES:
            logger.debug(f"[poll] terminal status={status} calls={calls} elapsed={clock() - start:.2f}s")
            return result

        if expired():
            raise PollTimeout(timeout_ms, calls)
        logger.debug(f"[poll] status={status} calls={calls}, retry in {interval_ms}ms")
        await sleep(interval_ms / 1000)
        if expired():
            raise PollTimeout(timeout_ms, calls)
