from __future__ import annotations

import asyncio
import contextlib
import time
from dataclasses import dataclass
from typing import AsyncIterator, Callable, Optional

import httpx

from cadence_client.core.config import settings
from cadence_client.core.errors import AuthorizationError, TransferError
from cadence_client.core.logging import logger
from cadence_client.schemas.track import Track, TrackCreate
from cadence_client.services.api import BackendAPI
from cadence_client.services.audio.io import UploadSource
from cadence_client.services.scope import Ticket
from cadence_client.services.transport import Transport

ProgressCallback = Callable[[int], None]

# 실제 진행률을 모를 때 표시용 진행률의 상한
COSMETIC_PROGRESS_CAP = 95


@dataclass
class TrackMetadata:
    title: Optional[str] = None
    duration_sec: Optional[int] = None


@dataclass
class UploadSession:
    source: UploadSource
    object_key: str
    signed_put_url: str
    # 서명 시 선언한 Content-Type (PUT 에서 반드시 같은 값을 써야 함)
    content_type: str
    progress: int = 0


class ProgressReporter:
    """0..100 으로 자르고, 줄어들거나 같은 값은 버린다. ticket 이 무효가 되면 전달하지 않는다."""

    def __init__(self, callback: Optional[ProgressCallback], ticket: Optional[Ticket] = None):
        self._callback = callback
        self._ticket = ticket
        self._last: Optional[int] = None

    @property
    def value(self) -> int:
        return self._last or 0

    def report(self, pct: int) -> None:
        pct = max(0, min(100, int(pct)))
        if self._last is not None and pct <= self._last:
            return
        self._last = pct
        if self._callback is None:
            return
        if self._ticket is not None:
            self._ticket.commit(self._callback, pct)
        else:
            self._callback(pct)


class UploadOrchestrator:
    """
    signed URL 업로드 3단계.
      1) authorize: 백엔드에서 object_key + signed_put_url 발급
      2) transfer : signed URL 로 원본 바이트 PUT (진행률 보고)
      3) register : 백엔드에 트랙 등록
    한 단계가 실패하면 이후 단계는 실행하지 않는다.
    register 실패 시 이미 올라간 객체는 정리하지 않는다.
    """

    def __init__(
        self,
        api: BackendAPI,
        transport: Transport,
        *,
        chunk_size: int | None = None,
        progress_step: int | None = None,
        progress_tick_ms: int | None = None,
    ):
        self.api = api
        self.transport = transport
        self.chunk_size = chunk_size or settings.UPLOAD_CHUNK_SIZE
        self.progress_step = progress_step or settings.UPLOAD_PROGRESS_STEP
        self.progress_tick_ms = progress_tick_ms or settings.UPLOAD_PROGRESS_TICK_MS

    async def upload(
        self,
        source: UploadSource,
        metadata: TrackMetadata | None = None,
        *,
        on_progress: ProgressCallback | None = None,
        ticket: Ticket | None = None,
    ) -> Track:
        metadata = metadata or TrackMetadata()
        reporter = ProgressReporter(on_progress, ticket)
        t0 = time.monotonic()

        def dt() -> str:
            return f"{time.monotonic() - t0:.2f}s"

        reporter.report(0)
        logger.info(f"[upload] '{source.filename}' ({source.mime_type}, size={source.size}) START")

        session = await self.authorize(source)
        logger.info(f"[upload] authorized key='{session.object_key}' total={dt()}")

        await self.transfer(session, reporter)
        logger.info(f"[upload] transfer DONE total={dt()}")

        track = await self.register(session, metadata)
        logger.info(f"[upload] registered track={track.id} total={dt()}")

        # 네트워크 단계는 끝까지 진행하되, 뷰가 바뀌었으면 결과는 버린다
        if ticket is not None:
            ticket.check()
        return track

    async def authorize(self, source: UploadSource) -> UploadSession:
        data = await self.api.request_signed_upload(source.filename, source.mime_type)
        object_key = data.get("object_key")
        signed_put_url = data.get("signed_put_url")
        missing = [name for name, value in (("object_key", object_key), ("signed_put_url", signed_put_url)) if not value]
        if missing:
            raise AuthorizationError(f"Upload authorization incomplete: missing {', '.join(missing)}")
        return UploadSession(
            source=source,
            object_key=str(object_key),
            signed_put_url=str(signed_put_url),
            content_type=source.mime_type,
        )

    async def transfer(self, session: UploadSession, reporter: ProgressReporter) -> None:
        source = session.source
        if source.mime_type != session.content_type:
            # PUT 의 Content-Type 은 서명 시 선언한 값과 같아야 한다
            raise ValueError(
                f"content type changed after signing: signed {session.content_type!r}, got {source.mime_type!r}"
            )

        def update(pct: int) -> None:
            reporter.report(pct)
            session.progress = reporter.value

        ramp: asyncio.Task | None = None
        if source.size is not None:
            content = self._counting(source, source.size, update)
        else:
            content = source.chunks(self.chunk_size)
            ramp = asyncio.create_task(self._cosmetic_progress(update, reporter))

        try:
            res = await self.transport.put_signed(
                session.signed_put_url,
                content,
                content_type=session.content_type,
                content_length=source.size,
            )
        except httpx.TransportError as e:
            raise TransferError(f"Upload failed: {str(e) or e.__class__.__name__}") from e
        finally:
            if ramp is not None:
                ramp.cancel()
                with contextlib.suppress(asyncio.CancelledError):
                    await ramp

        if not res.is_success:
            body = res.text.strip()
            raise TransferError(
                f"Upload failed ({res.status_code}): {body or res.reason_phrase}",
                status_code=res.status_code,
                body=body or None,
            )
        update(100)

    async def register(self, session: UploadSession, metadata: TrackMetadata) -> Track:
        source = session.source
        payload = TrackCreate(
            title=metadata.title,
            source_filename=source.filename,
            mime_type=session.content_type,
            original_object_key=session.object_key,
            duration_sec=metadata.duration_sec,
        )
        return await self.api.create_track(payload)

    async def _counting(self, source: UploadSource, total: int, update: ProgressCallback) -> AsyncIterator[bytes]:
        sent = 0
        async for chunk in source.chunks(self.chunk_size):
            yield chunk
            sent += len(chunk)
            if total > 0:
                update(sent * 100 // total)

    async def _cosmetic_progress(self, update: ProgressCallback, reporter: ProgressReporter) -> None:
        while True:
            await asyncio.sleep(self.progress_tick_ms / 1000)
            update(min(COSMETIC_PROGRESS_CAP, reporter.value + self.progress_step))
