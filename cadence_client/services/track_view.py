from __future__ import annotations

from typing import Optional

from cadence_client.core.errors import ClientError
from cadence_client.core.logging import logger
from cadence_client.schemas.track import TrackDetail
from cadence_client.services.api import BackendAPI
from cadence_client.services.resources import AuthenticatedResourceFetcher, ResourceHandle
from cadence_client.services.scope import Ticket, ViewScope
from cadence_client.services.tasks.jobs import analyze_track_job, render_track_job


class TrackView:
    """
    트랙 한 개 화면의 상태 (UI 없이).
    모든 flow 는 상태 전이 또는 error 문자열로 끝나며 busy 로 남지 않는다.
    """

    def __init__(self, api: BackendAPI, fetcher: AuthenticatedResourceFetcher, track_id: str, **poll_kwargs):
        self.api = api
        self.fetcher = fetcher
        self.track_id = track_id
        self.scope = ViewScope(f"track:{track_id}")
        self._poll_kwargs = poll_kwargs

        self.data: Optional[TrackDetail] = None
        self.error = ""
        self.busy = False
        self.analysis_status: Optional[str] = None
        self.render_status: Optional[str] = None
        self.audio_error = ""

    @property
    def audio(self) -> Optional[ResourceHandle]:
        return self.fetcher.handle

    async def switch(self, track_id: str) -> None:
        self.scope.supersede()
        self.fetcher.release()
        self.track_id = track_id
        self.scope.name = f"track:{track_id}"
        self.data = None
        self.analysis_status = None
        self.render_status = None
        await self.refresh()

    def close(self) -> None:
        self.scope.close()
        self.fetcher.close()

    async def refresh(self) -> None:
        await self.scope.run(self._refresh)

    async def analyze(self) -> None:
        await self.scope.run(self._analyze)

    async def generate(self, target_bpm: float, preserve_pitch: bool = True) -> None:
        async def flow(ticket: Ticket) -> None:
            await self._generate(ticket, target_bpm, preserve_pitch)

        await self.scope.run(flow)

    # ── flows ─────────────────────────────────────────────────────────
    async def _refresh(self, ticket: Ticket) -> None:
        ticket.commit(self._set, error="", busy=True)
        try:
            data = await self.api.get_track(self.track_id)
            ticket.commit(self._set, data=data)
        except ClientError as e:
            ticket.commit(self._set, error=str(e) or "Failed to load track")
        finally:
            ticket.commit(self._set, busy=False)
        await self._load_audio(ticket)

    async def _analyze(self, ticket: Ticket) -> None:
        ticket.commit(self._set, error="", analysis_status="starting...")
        try:
            result = await analyze_track_job(self.api, self.track_id, ticket=ticket, **self._poll_kwargs)
        except ClientError as e:
            ticket.commit(self._set, error=str(e) or "Analyze failed", analysis_status="failed")
            return
        ticket.commit(self._set, analysis_status=result.status)
        await self._refresh(ticket)

    async def _generate(self, ticket: Ticket, target_bpm: float, preserve_pitch: bool) -> None:
        ticket.commit(self._set, error="")
        if not target_bpm:
            ticket.commit(self._set, error="Enter a valid cadence or pace.")
            return
        ticket.commit(self._set, render_status="starting...")
        try:
            result = await render_track_job(
                self.api,
                self.track_id,
                target_bpm,
                preserve_pitch=preserve_pitch,
                ticket=ticket,
                **self._poll_kwargs,
            )
        except (ClientError, ValueError) as e:
            ticket.commit(self._set, error=str(e) or "Generate failed", render_status="failed")
            return
        ticket.commit(self._set, render_status=result.status)
        await self._refresh(ticket)

    async def _load_audio(self, ticket: Ticket) -> None:
        if not ticket.commit(self._set, audio_error=""):
            return
        latest = self.data.latest_render if self.data else None
        try:
            await self.fetcher.follow(latest, ticket=ticket)
        except ClientError as e:
            ticket.commit(self._set, audio_error=str(e) or "Could not load audio")

    def _set(self, **state) -> None:
        for key, value in state.items():
            setattr(self, key, value)
        if state.get("error"):
            logger.debug(f"[view] {self.scope.name} error={state['error']!r}")
