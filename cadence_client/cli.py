from __future__ import annotations

import argparse
import asyncio
import getpass
import shutil
import sys
from typing import Optional

from cadence_client.core.config import settings
from cadence_client.core.errors import ClientError
from cadence_client.core.logging import logger, setup_logging
from cadence_client.main import CadenceClient, create_client
from cadence_client.services.audio.io import UploadSource
from cadence_client.services.audio.tempo import (
    target_bpm_from_cadence,
    target_bpm_from_pace,
    validate_target_bpm,
)
from cadence_client.services.tasks.jobs import analyze_track_job, render_track_job
from cadence_client.services.upload import TrackMetadata


# ────────────────────────────────────────────────────────────────────────────
# 인자
# ────────────────────────────────────────────────────────────────────────────
def parse_args(argv: Optional[list[str]] = None) -> argparse.Namespace:
    p = argparse.ArgumentParser(prog="cadence", description="Tempo-adjusted audio client")
    p.add_argument(
        "--log-level",
        default=settings.LOG_LEVEL,
        choices=["DEBUG", "INFO", "WARNING", "ERROR", "CRITICAL"],
        help="Log verbosity",
    )
    sub = p.add_subparsers(dest="command", required=True)

    for name in ("signup", "login"):
        sp = sub.add_parser(name, help=f"{name} and store the token")
        sp.add_argument("email")
        sp.add_argument("--password", help="prompted when omitted")

    sub.add_parser("logout", help="forget the stored token")
    sub.add_parser("me", help="show the signed-in user")
    sub.add_parser("tracks", help="list tracks")

    sp = sub.add_parser("show", help="show a track with its analysis and latest render")
    sp.add_argument("track_id")

    sp = sub.add_parser("upload", help="upload an audio file and register it")
    sp.add_argument("path")
    sp.add_argument("--title")
    sp.add_argument("--mime-type")

    sp = sub.add_parser("analyze", help="run BPM analysis and wait for it")
    sp.add_argument("track_id")

    sp = sub.add_parser("render", help="render at a target tempo and wait for it")
    sp.add_argument("track_id")
    target = sp.add_mutually_exclusive_group(required=True)
    target.add_argument("--bpm", type=float)
    target.add_argument("--cadence", type=float, help="steps per minute")
    target.add_argument("--pace", help="minutes per mile, e.g. 8:30")
    sp.add_argument("--stride", action="store_true", help="one beat per stride instead of per step")
    sp.add_argument("--no-preserve-pitch", action="store_true")
    sp.add_argument("-o", "--output", help="save the rendered audio here when done")

    sp = sub.add_parser("fetch", help="download a finished render")
    sp.add_argument("render_id")
    sp.add_argument("-o", "--output", required=True)

    return p.parse_args(argv)


def resolve_target_bpm(args: argparse.Namespace) -> float:
    beat_mode = "stride" if args.stride else "step"
    if args.bpm is not None:
        return validate_target_bpm(args.bpm)
    if args.cadence is not None:
        return validate_target_bpm(target_bpm_from_cadence(args.cadence, beat_mode))
    bpm = target_bpm_from_pace(args.pace, beat_mode)
    if bpm is None:
        raise ValueError(f"Invalid pace {args.pace!r}, expected m:ss")
    return validate_target_bpm(bpm)


def _print_progress(pct: int) -> None:
    print(f"  uploading... {pct:3d}%", end="\r", file=sys.stderr, flush=True)


async def _save_render(client: CadenceClient, render_id: str, output: str) -> None:
    async with client.fetcher() as fetcher:
        handle = await fetcher.fetch_as_handle(render_id)
        await asyncio.to_thread(shutil.copyfile, handle.path, output)
    print(f"saved {output} ({handle.size / 1024:.0f} KB)")


# ────────────────────────────────────────────────────────────────────────────
# 명령
# ────────────────────────────────────────────────────────────────────────────
async def run(args: argparse.Namespace) -> int:
    async with create_client() as client:
        api = client.api
        cmd = args.command

        if cmd in ("signup", "login"):
            password = args.password or getpass.getpass("Password: ")
            await getattr(api, cmd)(args.email, password)
            print(f"signed in as {args.email}")

        elif cmd == "logout":
            api.logout()
            print("signed out")

        elif cmd == "me":
            print((await api.me()).user_id)

        elif cmd == "tracks":
            for t in await api.list_tracks():
                print(f"{t.id}  {t.display_title}  ({t.mime_type})")

        elif cmd == "show":
            d = await api.get_track(args.track_id)
            print(f"{d.track.display_title}  mime={d.track.mime_type}  key={d.track.original_object_key}")
            if d.analysis:
                a = d.analysis
                print(f"analysis: {a.status}  bpm={a.bpm if a.bpm is not None else '-'}  conf={a.confidence if a.confidence is not None else '-'}")
                if a.error:
                    print(f"  error: {a.error}")
            if d.latest_render:
                r = d.latest_render
                print(f"latest render: {r.id}  {r.status}  target_bpm={r.target_bpm}")

        elif cmd == "upload":
            source = UploadSource.from_path(args.path, mime_type=args.mime_type)
            track = await client.uploader.upload(
                source, TrackMetadata(title=args.title), on_progress=_print_progress
            )
            print(file=sys.stderr)
            print(f"created track {track.id}  {track.display_title}")

        elif cmd == "analyze":
            result = await analyze_track_job(api, args.track_id)
            if result.status == "failed":
                print(f"analysis failed: {result.error or 'unknown error'}")
                return 1
            print(f"bpm={result.bpm}  confidence={result.confidence}")

        elif cmd == "render":
            target_bpm = resolve_target_bpm(args)
            result = await render_track_job(
                api, args.track_id, target_bpm, preserve_pitch=not args.no_preserve_pitch
            )
            if result.status == "failed":
                print(f"render failed: {result.error or 'unknown error'}")
                return 1
            print(f"render {result.id} done  target_bpm={target_bpm:g}")
            if args.output:
                await _save_render(client, result.id, args.output)

        elif cmd == "fetch":
            await _save_render(client, args.render_id, args.output)

    return 0


def main(argv: Optional[list[str]] = None) -> None:
    args = parse_args(argv)
    setup_logging(args.log_level)
    try:
        code = asyncio.run(run(args))
    except (ClientError, ValueError, FileNotFoundError) as e:
        logger.error(str(e))
        sys.exit(1)
    except KeyboardInterrupt:
        logger.warning("Interrupted.")
        sys.exit(130)
    sys.exit(code)


if __name__ == "__main__":
    main()
