#!/usr/bin/env python3
"""Render a room's mixdown from the command line.

Usage:
    JAMROOM_API_TOKEN=... python scripts/export_room.py ROOM_ID \
        --mute LOOP_ID --volume LOOP_ID=60 --master 90
"""

from __future__ import annotations

import argparse
import asyncio
import sys
from pathlib import Path

import structlog

from jamroom.api.client import JamApiClient
from jamroom.config import settings
from jamroom.console.session import MixerSession
from jamroom.errors import JamroomError
from jamroom.logging_setup import configure_logging

logger = structlog.get_logger()


def _parse_volume(value: str) -> tuple[str, float]:
    loop_id, _, pct = value.partition("=")
    if not loop_id or not pct:
        raise argparse.ArgumentTypeError(f"expected LOOP_ID=PCT, got '{value}'")
    try:
        return loop_id, float(pct)
    except ValueError:
        raise argparse.ArgumentTypeError(f"bad volume '{pct}'") from None


def build_parser() -> argparse.ArgumentParser:
    parser = argparse.ArgumentParser(description="Export a jam room mixdown to WAV")
    parser.add_argument("room_id")
    parser.add_argument("--output-dir", type=Path, default=settings.export_dir)
    parser.add_argument("--mute", action="append", default=[], metavar="LOOP_ID")
    parser.add_argument("--solo", metavar="LOOP_ID")
    parser.add_argument("--volume", action="append", default=[], type=_parse_volume,
                        metavar="LOOP_ID=PCT")
    parser.add_argument("--master", type=float, default=None, metavar="PCT")
    return parser


async def run(args: argparse.Namespace) -> Path:
    client = JamApiClient()
    async with MixerSession(args.room_id, client) as session:
        loops = await session.refresh()
        logger.info("export_room.loops", room_id=args.room_id, count=len(loops))

        for loop_id in args.mute:
            session.toggle_mute(loop_id)
        if args.solo:
            session.toggle_solo(args.solo)
        for loop_id, pct in args.volume:
            session.set_volume(loop_id, pct)
        if args.master is not None:
            session.set_master_volume(args.master)

        export = await session.export_mixdown()

    args.output_dir.mkdir(parents=True, exist_ok=True)
    path = args.output_dir / export.filename
    path.write_bytes(export.content)
    return path


def main(argv: list[str] | None = None) -> int:
    configure_logging()
    args = build_parser().parse_args(argv)
    try:
        path = asyncio.run(run(args))
    except JamroomError as e:
        print(f"Export failed: {e}", file=sys.stderr)
        return 1
    print(f"Wrote {path}")
    return 0


if __name__ == "__main__":
    sys.exit(main())
