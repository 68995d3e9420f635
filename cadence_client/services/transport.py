import json
from typing import Any, AsyncIterable

import httpx

from cadence_client.core.auth import TokenStore
from cadence_client.core.config import settings
from cadence_client.core.errors import RequestError
from cadence_client.core.logging import logger


def decode_body(text: str) -> Any:
    """JSON 이면 파싱, 아니면 원문 그대로 (빈 본문은 None)"""
    if not text:
        return None
    try:
        return json.loads(text)
    except ValueError:
        return text


def error_message(data: Any, reason: str) -> str:
    if isinstance(data, dict) and data.get("message"):
        return str(data["message"])
    if isinstance(data, str) and data.strip():
        return data.strip()
    return reason or "Request failed"


class Transport:
    """
    백엔드 API 호출용 단일 요청 헬퍼.
    - Bearer 토큰은 요청마다 TokenStore 에서 읽어 헤더로 붙인다
    - 2xx 가 아니면 본문 모양과 상관없이 RequestError
    """

    def __init__(
        self,
        base_url: str,
        credentials: TokenStore,
        *,
        client: httpx.AsyncClient | None = None,
        timeout: float | None = None,
    ):
        self.base_url = base_url.rstrip("/")
        self.credentials = credentials
        self._owns_client = client is None
        self._client = client or httpx.AsyncClient(timeout=timeout or settings.REQUEST_TIMEOUT)

    async def __aenter__(self) -> "Transport":
        return self

    async def __aexit__(self, *exc) -> None:
        await self.aclose()

    async def aclose(self) -> None:
        if self._owns_client:
            await self._client.aclose()

    def url_for(self, path: str) -> str:
        return f"{self.base_url}{path}"

    def _headers(self, auth: bool, *, json_body: bool = True) -> dict[str, str]:
        headers = {"Content-Type": "application/json"} if json_body else {}
        if auth:
            token = self.credentials.token
            if token:
                headers["Authorization"] = f"Bearer {token}"
        return headers

    async def request(self, path: str, *, method: str = "GET", body: Any = None, auth: bool = True) -> Any:
        try:
            res = await self._client.request(
                method,
                self.url_for(path),
                headers=self._headers(auth),
                content=json.dumps(body) if body is not None else None,
            )
        except httpx.TransportError as e:
            logger.warning(f"[http] {method} {path} network error: {e!r}")
            raise RequestError(str(e) or e.__class__.__name__) from e

        data = decode_body(res.text)
        if not res.is_success:
            msg = error_message(data, res.reason_phrase)
            logger.debug(f"[http] {method} {path} -> {res.status_code} '{msg}'")
            raise RequestError(msg, status_code=res.status_code)

        logger.debug(f"[http] {method} {path} -> {res.status_code}")
        return data

    async def get_raw(self, path: str) -> httpx.Response:
        """상태 코드 해석 없이 응답을 그대로 돌려준다 (토큰은 쿼리가 아닌 헤더로)"""
        return await self._client.get(self.url_for(path), headers=self._headers(True, json_body=False))

    async def put_signed(
        self,
        url: str,
        content: bytes | AsyncIterable[bytes],
        *,
        content_type: str,
        content_length: int | None = None,
        timeout: float | None = None,
    ) -> httpx.Response:
        # pre-signed URL 이므로 Authorization 을 붙이지 않는다
        headers = {"Content-Type": content_type}
        if content_length is not None:
            headers["Content-Length"] = str(content_length)
        return await self._client.put(
            url,
            content=content,
            headers=headers,
            timeout=timeout or settings.TRANSFER_TIMEOUT,
        )
