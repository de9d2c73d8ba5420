#!/usr/bin/env python3
"""Convert a DMX MUS lump into a Standard MIDI File.

Examples
--------
    python tools/mus_to_mid.py D_E1M1.mus
    python tools/mus_to_mid.py D_E1M1.mus -o out/e1m1.mid --verify
    python tools/mus_to_mid.py broken.mus --lenient -v
"""

from __future__ import annotations

import argparse
from dataclasses import replace
import hashlib
import io
from pathlib import Path
import sys

REPO_ROOT = Path(__file__).resolve().parents[1]
if str(REPO_ROOT) not in sys.path:
    sys.path.insert(0, str(REPO_ROOT))

import mido
from loguru import logger

from mus2mid.container import convert
from mus2mid.errors import MusError
from mus2mid.options import ConversionOptions, load_options


def _sha1(data: bytes) -> str:
    return hashlib.sha1(data).hexdigest()


def _build_arg_parser() -> argparse.ArgumentParser:
    parser = argparse.ArgumentParser(
        description="Convert a MUS score into a Format-0 MIDI file",
    )
    parser.add_argument(
        "input",
        type=Path,
        help="Path to the .mus lump",
    )
    parser.add_argument(
        "-o",
        "--output",
        type=Path,
        default=None,
        help="Output .mid path (default: input with .mid suffix)",
    )
    parser.add_argument(
        "--options",
        type=Path,
        default=None,
        help="JSON file with conversion options",
    )
    parser.add_argument(
        "--lenient",
        action="store_true",
        help="Log score-end mismatches instead of failing",
    )
    parser.add_argument(
        "--verify",
        action="store_true",
        help="Re-parse the output with mido and print a message summary",
    )
    parser.add_argument(
        "-v",
        "--verbose",
        action="store_true",
        help="Log debug details",
    )
    return parser


def _configure_logging(verbose: bool) -> None:
    logger.remove()
    logger.add(sys.stderr, level="DEBUG" if verbose else "WARNING")
    logger.enable("mus2mid")


def _verify(midi_bytes: bytes) -> bool:
    try:
        mid = mido.MidiFile(file=io.BytesIO(midi_bytes))
    except (OSError, ValueError, EOFError) as err:
        print(f"verify: FAILED ({err})")
        return False

    counts: dict[str, int] = {}
    for msg in mid.tracks[0]:
        counts[msg.type] = counts.get(msg.type, 0) + 1
    summary = " ".join(f"{name}={count}" for name, count in sorted(counts.items()))
    print(
        f"verify: OK  type={mid.type} tracks={len(mid.tracks)} "
        f"tpb={mid.ticks_per_beat} length={mid.length:.1f}s"
    )
    print(f"  {summary}")
    return True


def main(argv: list[str] | None = None) -> int:
    parser = _build_arg_parser()
    args = parser.parse_args(argv)
    _configure_logging(args.verbose)

    options = load_options(args.options) if args.options is not None else ConversionOptions()
    if args.lenient:
        options = replace(options, strict=False)

    data = args.input.read_bytes()
    try:
        result = convert(data, options=options)
    except MusError as err:
        print(f"{args.input}: {err}", file=sys.stderr)
        return 1

    out_path = args.output if args.output is not None else args.input.with_suffix(".mid")
    out_path = out_path.expanduser().resolve()
    out_path.parent.mkdir(parents=True, exist_ok=True)
    out_path.write_bytes(result.data)

    print(f"Wrote {result.length} bytes -> {out_path}")
    print(f"  source={len(data)}B sha1={_sha1(result.data)}")

    if args.verify and not _verify(result.data):
        return 2
    return 0


if __name__ == "__main__":
    raise SystemExit(main())
