from pathlib import Path

from cadence_client.core.logging import logger


class TokenStore:
    """
    Bearer 토큰 보관소.
    - Transport 가 요청마다 token 을 읽는다 (요청 중에는 바뀌지 않음)
    - path 가 없으면 메모리에만 보관
    """

    def __init__(self, path: str | None = None):
        self._path = Path(path).expanduser() if path else None
        self._token: str | None = None

    @property
    def token(self) -> str | None:
        return self._token

    @property
    def path(self) -> Path | None:
        return self._path

    def load(self) -> str | None:
        if self._path is None or not self._path.exists():
            return self._token
        value = self._path.read_text(encoding="utf-8").strip()
        self._token = value or None
        logger.debug(f"[auth] token loaded from '{self._path}' (present={self._token is not None})")
        return self._token

    def set(self, token: str) -> None:
        if not token:
            raise ValueError("token must be a non-empty string")
        self._token = token
        if self._path is not None:
            self._path.parent.mkdir(parents=True, exist_ok=True)
            self._path.write_text(token, encoding="utf-8")
            self._path.chmod(0o600)

    def clear(self) -> None:
        self._token = None
        if self._path is not None and self._path.exists():
            self._path.unlink()
