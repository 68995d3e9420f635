from __future__ import annotations

import time
from typing import Any

from cadence_client.core.config import settings
from cadence_client.core.logging import logger
from cadence_client.schemas.analysis import Analysis
from cadence_client.schemas.render import Render, RenderRequest
from cadence_client.services.api import BackendAPI
from cadence_client.services.scope import Ticket
from cadence_client.services.tasks.poll import poll


def _check(ticket: Ticket | None) -> None:
    if ticket is not None:
        ticket.check()


async def analyze_track_job(
    api: BackendAPI,
    track_id: str,
    *,
    ticket: Ticket | None = None,
    interval_ms: int | None = None,
    timeout_ms: int | None = None,
    **poll_kwargs: Any,
) -> Analysis:
    """
    분석 잡을 시작하고 done / failed 가 될 때까지 기다린다.
    failed 도 그대로 반환한다 (error 필드를 화면에 보여주는 건 호출한 쪽).
    """
    t0 = time.monotonic()

    def dt() -> str:
        return f"{time.monotonic() - t0:.2f}s"

    logger.info(f"[jobs] analyze track={track_id} START")
    accepted = await api.start_analysis(track_id)
    _check(ticket)
    logger.info(f"[jobs] analyze accepted status={accepted.status} total={dt()}")

    result = await poll(
        lambda: api.get_analysis(track_id),
        interval_ms=settings.ANALYSIS_POLL_INTERVAL_MS if interval_ms is None else interval_ms,
        timeout_ms=settings.ANALYSIS_POLL_TIMEOUT_MS if timeout_ms is None else timeout_ms,
        **poll_kwargs,
    )
    _check(ticket)

    if result.status == "failed":
        logger.warning(f"[jobs] analyze track={track_id} FAILED error={result.error!r} total={dt()}")
    else:
        logger.info(
            f"[jobs] analyze track={track_id} DONE bpm={result.bpm} conf={result.confidence} total={dt()}"
        )
    return result


async def render_track_job(
    api: BackendAPI,
    track_id: str,
    target_bpm: float,
    *,
    preserve_pitch: bool = True,
    ticket: Ticket | None = None,
    interval_ms: int | None = None,
    timeout_ms: int | None = None,
    **poll_kwargs: Any,
) -> Render:
    t0 = time.monotonic()

    def dt() -> str:
        return f"{time.monotonic() - t0:.2f}s"

    payload = RenderRequest(target_bpm=target_bpm, preserve_pitch=preserve_pitch)
    logger.info(f"[jobs] render track={track_id} target_bpm={payload.target_bpm} START")
    accepted = await api.start_render(track_id, payload)
    _check(ticket)
    render_id = accepted.render_id
    logger.info(f"[jobs] render queued id={render_id} total={dt()}")

    result = await poll(
        lambda: api.get_render(render_id),
        interval_ms=settings.RENDER_POLL_INTERVAL_MS if interval_ms is None else interval_ms,
        timeout_ms=settings.RENDER_POLL_TIMEOUT_MS if timeout_ms is None else timeout_ms,
        **poll_kwargs,
    )
    _check(ticket)

    if result.status == "failed":
        logger.warning(f"[jobs] render id={render_id} FAILED error={result.error!r} total={dt()}")
    else:
        logger.info(f"[jobs] render id={render_id} DONE key={result.output_object_key} total={dt()}")
    return result
