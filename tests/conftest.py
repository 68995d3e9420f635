import httpx
import pytest

from cadence_client.core.auth import TokenStore
from cadence_client.core.config import Settings
from cadence_client.main import create_client

from fake_backend import TOKEN, BackendState, create_app


class FakeClock:
    """poll 에 넣는 가짜 시계: sleep 하면 시간만 흐른다"""

    def __init__(self):
        self.now = 0.0
        self.sleeps: list[float] = []

    def __call__(self) -> float:
        return self.now

    async def sleep(self, seconds: float) -> None:
        self.sleeps.append(seconds)
        self.now += seconds


@pytest.fixture
def clock():
    return FakeClock()


class FlakyTransport(httpx.AsyncBaseTransport):
    """backend.unreachable 에 걸린 경로는 앱까지 가지 않고 ConnectError 를 낸다"""

    def __init__(self, backend: BackendState):
        self.backend = backend
        self.inner = httpx.ASGITransport(app=create_app(backend))

    async def handle_async_request(self, request: httpx.Request) -> httpx.Response:
        path = request.url.path
        if any(path.startswith(prefix) for prefix in self.backend.unreachable):
            self.backend.calls.append((request.method, path))
            raise httpx.ConnectError("connection refused", request=request)
        return await self.inner.handle_async_request(request)


@pytest.fixture
def backend():
    return BackendState()


@pytest.fixture
def test_settings(tmp_path):
    return Settings(
        API_BASE_URL="http://api.test",
        TOKEN_FILE=None,
        HANDLE_DIR=str(tmp_path / "handles"),
        UPLOAD_CHUNK_SIZE=4,
        UPLOAD_PROGRESS_STEP=5,
        UPLOAD_PROGRESS_TICK_MS=1,
    )


@pytest.fixture
def make_client(backend, test_settings, clock):
    """이벤트 루프 안에서 호출해야 한다 (asyncio.run 내부)"""

    def factory(token: str | None = TOKEN):
        store = TokenStore()
        if token:
            store.set(token)
        http = httpx.AsyncClient(transport=FlakyTransport(backend))
        return create_client(
            test_settings,
            http_client=http,
            token_store=store,
            clock=clock,
            sleep=clock.sleep,
        )

    return factory
