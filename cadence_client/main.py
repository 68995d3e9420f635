from dataclasses import dataclass, field

import httpx

from cadence_client.core.auth import TokenStore
from cadence_client.core.config import Settings, settings as default_settings
from cadence_client.services.api import BackendAPI
from cadence_client.services.resources import AuthenticatedResourceFetcher
from cadence_client.services.track_view import TrackView
from cadence_client.services.transport import Transport
from cadence_client.services.upload import UploadOrchestrator


@dataclass
class CadenceClient:
    settings: Settings
    transport: Transport
    api: BackendAPI
    uploader: UploadOrchestrator
    poll_kwargs: dict = field(default_factory=dict)

    async def __aenter__(self) -> "CadenceClient":
        return self

    async def __aexit__(self, *exc) -> None:
        await self.aclose()

    async def aclose(self) -> None:
        await self.transport.aclose()

    def fetcher(self) -> AuthenticatedResourceFetcher:
        # 핸들은 소유한 뷰 단위로 관리하므로 매번 새로 만든다
        return AuthenticatedResourceFetcher(self.transport, handle_dir=self.settings.HANDLE_DIR)

    def track_view(self, track_id: str) -> TrackView:
        return TrackView(self.api, self.fetcher(), track_id, **self.poll_kwargs)


def create_client(
    settings: Settings | None = None,
    *,
    http_client: httpx.AsyncClient | None = None,
    token_store: TokenStore | None = None,
    **poll_kwargs,
) -> CadenceClient:
    cfg = settings or default_settings
    if token_store is None:
        token_store = TokenStore(cfg.TOKEN_FILE)
        token_store.load()

    transport = Transport(cfg.API_BASE_URL, token_store, client=http_client, timeout=cfg.REQUEST_TIMEOUT)
    api = BackendAPI(transport)
    uploader = UploadOrchestrator(
        api,
        transport,
        chunk_size=cfg.UPLOAD_CHUNK_SIZE,
        progress_step=cfg.UPLOAD_PROGRESS_STEP,
        progress_tick_ms=cfg.UPLOAD_PROGRESS_TICK_MS,
    )
    return CadenceClient(settings=cfg, transport=transport, api=api, uploader=uploader, poll_kwargs=poll_kwargs)
