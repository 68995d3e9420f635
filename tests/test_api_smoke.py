import asyncio

import pytest

from cadence_client.cli import parse_args, resolve_target_bpm
from cadence_client.core.auth import TokenStore
from cadence_client.main import create_client
from cadence_client.services.audio.io import UploadSource


def test_client_wires_components(test_settings):
    client = create_client(test_settings, token_store=TokenStore())
    assert client.api.transport is client.transport
    assert client.uploader.chunk_size == 4
    assert client.fetcher() is not client.fetcher()
    asyncio.run(client.aclose())


def test_token_store_persists_to_file(tmp_path):
    path = tmp_path / "cfg" / "token"
    store = TokenStore(str(path))
    assert store.load() is None
    store.set("abc")
    assert path.read_text() == "abc"
    assert TokenStore(str(path)).load() == "abc"
    store.clear()
    assert not path.exists()
    assert store.token is None


def test_upload_source_from_path(tmp_path):
    song = tmp_path / "song.wav"
    song.write_bytes(b"RIFF....WAVE")
    source = UploadSource.from_path(song)
    assert source.filename == "song.wav"
    assert source.size == 12

    async def read():
        return b"".join([c async for c in source.chunks(5)])

    assert asyncio.run(read()) == b"RIFF....WAVE"

    notes = tmp_path / "notes.txt"
    notes.write_text("x")
    with pytest.raises(ValueError):
        UploadSource.from_path(notes)
    with pytest.raises(FileNotFoundError):
        UploadSource.from_path(tmp_path / "missing.mp3")


def test_cli_resolves_target_bpm():
    assert resolve_target_bpm(parse_args(["render", "t-1", "--bpm", "128"])) == 128.0
    assert resolve_target_bpm(parse_args(["render", "t-1", "--cadence", "180", "--stride"])) == 90.0
    assert resolve_target_bpm(parse_args(["render", "t-1", "--pace", "10:00"])) == 160.0
    with pytest.raises(ValueError):
        resolve_target_bpm(parse_args(["render", "t-1", "--pace", "fast"]))
    with pytest.raises(SystemExit):
        parse_args(["render", "t-1"])
