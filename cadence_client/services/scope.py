from typing import Any, Awaitable, Callable, TypeVar

from cadence_client.core.errors import Superseded
from cadence_client.core.logging import logger

T = TypeVar("T")


class Ticket:
    """flow 시작 시점의 scope 세대를 기억한다. 세대가 바뀌면 결과를 버린다."""

    def __init__(self, scope: "ViewScope", generation: int):
        self._scope = scope
        self._generation = generation

    @property
    def superseded(self) -> bool:
        return self._scope.closed or self._scope.generation != self._generation

    def check(self) -> None:
        if self.superseded:
            raise Superseded(self._scope.name)

    def commit(self, fn: Callable[..., Any], *args: Any, **kwargs: Any) -> bool:
        if self.superseded:
            return False
        fn(*args, **kwargs)
        return True


class ViewScope:
    """
    한 화면(뷰)의 수명.
    - supersede(): 다른 대상으로 넘어감 (진행 중인 flow 결과 무효)
    - close(): 언마운트, 이후 시작되는 flow 도 모두 무효
    """

    def __init__(self, name: str = "view"):
        self.name = name
        self.generation = 0
        self.closed = False

    def begin(self) -> Ticket:
        return Ticket(self, self.generation)

    def supersede(self) -> None:
        self.generation += 1

    def close(self) -> None:
        self.closed = True
        self.generation += 1

    async def run(self, flow: Callable[[Ticket], Awaitable[T]]) -> T | None:
        ticket = self.begin()
        try:
            return await flow(ticket)
        except Superseded:
            logger.debug(f"[scope] {self.name}: result dropped (superseded)")
            return None
