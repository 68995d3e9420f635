from __future__ import annotations

import asyncio
import mimetypes
import os
import tempfile
from pathlib import Path
from typing import Optional

import httpx

from cadence_client.core.config import settings
from cadence_client.core.errors import FetchError, Superseded
from cadence_client.core.logging import logger
from cadence_client.schemas.render import Render
from cadence_client.services.scope import Ticket
from cadence_client.services.transport import Transport


class ResourceHandle:
    """
    가져온 바이너리를 로컬 파일로 둔 핸들.
    url 로 재생기에 넘길 수 있고, release() 하면 파일을 지운다 (여러 번 불러도 안전).
    """

    def __init__(self, render_id: str, path: Path, content_type: str, size: int):
        self.render_id = render_id
        self.path = path
        self.content_type = content_type
        self.size = size
        self.released = False

    @property
    def url(self) -> str:
        if self.released:
            raise RuntimeError(f"handle for render {self.render_id} was released")
        return self.path.as_uri()

    def read_bytes(self) -> bytes:
        if self.released:
            raise RuntimeError(f"handle for render {self.render_id} was released")
        return self.path.read_bytes()

    def release(self) -> None:
        if self.released:
            return
        self.released = True
        try:
            self.path.unlink()
        except FileNotFoundError:
            pass
        logger.debug(f"[fetch] released handle render={self.render_id}")

    def __enter__(self) -> "ResourceHandle":
        return self

    def __exit__(self, *exc) -> None:
        self.release()

    def __repr__(self) -> str:
        state = "released" if self.released else "live"
        return f"<ResourceHandle render={self.render_id} {self.size}B {state}>"


class AuthenticatedResourceFetcher:
    """
    보호된 렌더 결과를 Bearer 헤더로 받아 ResourceHandle 로 만든다.
    뷰 하나가 fetcher 하나를 소유하며, 살아 있는 핸들은 항상 최대 하나.
    새 핸들을 만들기 전에, 그리고 close() 시에 기존 핸들을 해제한다.
    """

    def __init__(self, transport: Transport, *, handle_dir: str | None = None):
        self.transport = transport
        self.handle_dir = handle_dir or settings.HANDLE_DIR
        self._handle: Optional[ResourceHandle] = None
        self._subject: Optional[tuple[str, str]] = None

    @property
    def handle(self) -> Optional[ResourceHandle]:
        return self._handle

    async def __aenter__(self) -> "AuthenticatedResourceFetcher":
        return self

    async def __aexit__(self, *exc) -> None:
        self.close()

    def close(self) -> None:
        self.release()

    def release(self) -> None:
        if self._handle is not None:
            self._handle.release()
        self._handle = None
        self._subject = None

    async def fetch_as_handle(self, render_id: str, *, ticket: Ticket | None = None) -> ResourceHandle:
        self.release()

        try:
            res = await self.transport.get_raw(f"/api/render-files/{render_id}")
        except httpx.TransportError as e:
            logger.warning(f"[fetch] render={render_id} network error: {e!r}")
            raise FetchError(message=f"Failed to fetch audio: {str(e) or e.__class__.__name__}") from e
        if not res.is_success:
            raise FetchError(res.status_code)
        if ticket is not None and ticket.superseded:
            raise Superseded(f"render {render_id}")

        content_type = res.headers.get("content-type", "application/octet-stream").split(";")[0].strip()
        handle = await asyncio.to_thread(self._materialize, render_id, res.content, content_type)
        if ticket is not None and ticket.superseded:
            handle.release()
            raise Superseded(f"render {render_id}")

        # 파일을 쓰는 동안 다른 fetch 가 끝났을 수 있다
        self.release()
        self._handle = handle
        logger.info(f"[fetch] render={render_id} -> {handle.path} ({handle.size}B)")
        return handle

    async def follow(self, render: Render | None, *, ticket: Ticket | None = None) -> Optional[ResourceHandle]:
        """최신 렌더가 바뀌었을 때: 같은 대상이면 그대로, 아니면 해제 후 done 일 때만 다시 가져온다."""
        subject = (render.id, render.status) if render is not None else None
        if subject is not None and subject == self._subject and self._handle is not None:
            return self._handle

        self.release()
        if render is None or render.status != "done" or not render.id:
            return None

        handle = await self.fetch_as_handle(render.id, ticket=ticket)
        self._subject = subject
        return handle

    def _materialize(self, render_id: str, payload: bytes, content_type: str) -> ResourceHandle:
        suffix = mimetypes.guess_extension(content_type) or ".bin"
        if self.handle_dir:
            os.makedirs(self.handle_dir, exist_ok=True)
        fd, name = tempfile.mkstemp(prefix=f"render-{render_id}-", suffix=suffix, dir=self.handle_dir)
        with os.fdopen(fd, "wb") as f:
            f.write(payload)
        return ResourceHandle(render_id, Path(name).resolve(), content_type, len(payload))
