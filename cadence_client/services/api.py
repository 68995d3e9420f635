from typing import Any, TypeVar

from pydantic import BaseModel, ValidationError

from cadence_client.core.errors import RequestError
from cadence_client.core.logging import logger
from cadence_client.schemas.analysis import Analysis, AnalyzeAccepted
from cadence_client.schemas.auth import Credentials, Me, TokenOut
from cadence_client.schemas.render import Render, RenderAccepted, RenderRequest
from cadence_client.schemas.track import Track, TrackCreate, TrackDetail
from cadence_client.services.transport import Transport

M = TypeVar("M", bound=BaseModel)


def _parse(model: type[M], data: Any) -> M:
    """2xx 인데 본문 모양이 다르면 RequestError 로 바꾼다"""
    try:
        return model.model_validate(data)
    except ValidationError as e:
        logger.warning(f"[http] unexpected {model.__name__} payload: {e.error_count()} error(s)")
        raise RequestError(f"Unexpected response from server ({model.__name__})") from e


class BackendAPI:
    def __init__(self, transport: Transport):
        self.transport = transport

    # ── auth ──────────────────────────────────────────────────────────
    async def signup(self, email: str, password: str) -> TokenOut:
        return await self._authenticate("/api/auth/signup", email, password)

    async def login(self, email: str, password: str) -> TokenOut:
        return await self._authenticate("/api/auth/login", email, password)

    async def _authenticate(self, path: str, email: str, password: str) -> TokenOut:
        creds = Credentials(email=email, password=password)
        data = await self.transport.request(path, method="POST", body=creds.model_dump(), auth=False)
        out = _parse(TokenOut, data)
        self.transport.credentials.set(out.token)
        logger.info(f"[auth] signed in as {email}")
        return out

    def logout(self) -> None:
        self.transport.credentials.clear()

    async def me(self) -> Me:
        return _parse(Me, await self.transport.request("/api/me"))

    # ── tracks ────────────────────────────────────────────────────────
    async def list_tracks(self) -> list[Track]:
        data = await self.transport.request("/api/tracks")
        return [_parse(Track, t) for t in data or []]

    async def create_track(self, payload: TrackCreate) -> Track:
        body = payload.model_dump()
        data = await self.transport.request("/api/tracks", method="POST", body=body)
        # 백엔드가 {"id": ...} 만 돌려주는 경우가 있어 보낸 값과 합친다
        return _parse(Track, {**body, **(data if isinstance(data, dict) else {})})

    async def get_track(self, track_id: str) -> TrackDetail:
        return _parse(TrackDetail, await self.transport.request(f"/api/tracks/{track_id}"))

    # ── uploads ───────────────────────────────────────────────────────
    async def request_signed_upload(self, filename: str, mime_type: str) -> dict[str, Any]:
        """응답 필드 검증은 호출하는 쪽(UploadOrchestrator)에서 한다"""
        data = await self.transport.request(
            "/api/uploads/signed-url",
            method="POST",
            body={"filename": filename, "mime_type": mime_type},
        )
        return data if isinstance(data, dict) else {}

    # ── analysis ──────────────────────────────────────────────────────
    async def start_analysis(self, track_id: str) -> AnalyzeAccepted:
        data = await self.transport.request(f"/api/tracks/{track_id}/analyze", method="POST")
        return _parse(AnalyzeAccepted, data or {})

    async def get_analysis(self, track_id: str) -> Analysis:
        return _parse(Analysis, await self.transport.request(f"/api/tracks/{track_id}/analysis"))

    # ── render ────────────────────────────────────────────────────────
    async def start_render(self, track_id: str, payload: RenderRequest) -> RenderAccepted:
        data = await self.transport.request(
            f"/api/tracks/{track_id}/render", method="POST", body=payload.model_dump()
        )
        return _parse(RenderAccepted, data)

    async def get_render(self, render_id: str) -> Render:
        return _parse(Render, await self.transport.request(f"/api/renders/{render_id}"))
