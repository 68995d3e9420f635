import asyncio
import mimetypes
from dataclasses import dataclass, field
from pathlib import Path
from typing import AsyncIterable, AsyncIterator, Callable, Optional

SUPPORTED_EXTENSIONS = (".mp3", ".wav", ".flac", ".m4a", ".aac", ".ogg")
DEFAULT_MIME_TYPE = "application/octet-stream"


def guess_mime_type(filename: str) -> str:
    mime, _ = mimetypes.guess_type(filename)
    return mime or DEFAULT_MIME_TYPE


@dataclass
class UploadSource:
    """
    업로드할 파일 하나.
    - size 를 알면 바이트 단위 진행률, 모르면(None) 표시용 진행률을 쓴다
    - chunks() 는 매번 처음부터 다시 읽는다
    """

    filename: str
    mime_type: str
    size: Optional[int]
    _reader: Callable[[int], AsyncIterator[bytes]] = field(repr=False)

    def chunks(self, chunk_size: int) -> AsyncIterator[bytes]:
        return self._reader(chunk_size)

    @classmethod
    def from_path(cls, path: str | Path, mime_type: Optional[str] = None) -> "UploadSource":
        in_path = Path(path).expanduser()
        if not in_path.is_file():
            raise FileNotFoundError(f"Input audio not found: {in_path}")
        if in_path.suffix.lower() not in SUPPORTED_EXTENSIONS:
            raise ValueError(f"Unsupported file type: {in_path.suffix or in_path.name}")

        async def read(chunk_size: int) -> AsyncIterator[bytes]:
            # 파일 I/O 는 이벤트 루프를 막지 않도록 스레드에서
            f = await asyncio.to_thread(open, in_path, "rb")
            try:
                while True:
                    chunk = await asyncio.to_thread(f.read, chunk_size)
                    if not chunk:
                        break
                    yield chunk
            finally:
                await asyncio.to_thread(f.close)

        return cls(
            filename=in_path.name,
            mime_type=mime_type or guess_mime_type(in_path.name),
            size=in_path.stat().st_size,
            _reader=read,
        )

    @classmethod
    def from_bytes(cls, data: bytes, filename: str, mime_type: Optional[str] = None) -> "UploadSource":
        async def read(chunk_size: int) -> AsyncIterator[bytes]:
            for i in range(0, len(data), chunk_size):
                yield data[i:i + chunk_size]

        return cls(
            filename=filename,
            mime_type=mime_type or guess_mime_type(filename),
            size=len(data),
            _reader=read,
        )

    @classmethod
    def from_stream(cls, stream: AsyncIterable[bytes], filename: str, mime_type: Optional[str] = None) -> "UploadSource":
        """길이를 모르는 스트림 (한 번만 읽을 수 있음)"""
        async def read(chunk_size: int) -> AsyncIterator[bytes]:
            async for chunk in stream:
                yield chunk

        return cls(
            filename=filename,
            mime_type=mime_type or guess_mime_type(filename),
            size=None,
            _reader=read,
        )
