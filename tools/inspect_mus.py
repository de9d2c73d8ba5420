#!/usr/bin/env python3
"""Inspect MUS lumps: header fields, instrument list and (optionally) events."""

from __future__ import annotations

import argparse
import glob
from pathlib import Path
import sys
from typing import Iterable, List

REPO_ROOT = Path(__file__).resolve().parents[1]
if str(REPO_ROOT) not in sys.path:
    sys.path.insert(0, str(REPO_ROOT))

from mus2mid.errors import MusError
from mus2mid.events import MusEvent, iter_mus_events
from mus2mid.structs import MusHeader, read_instruments


def collect_paths(patterns: Iterable[str]) -> List[Path]:
    paths: List[Path] = []
    for pattern in patterns:
        matches = sorted(Path(p) for p in glob.glob(pattern, recursive=True))
        if matches:
            paths.extend(matches)
        else:
            # Treat literal path when glob finds nothing.
            candidate = Path(pattern)
            if candidate.exists():
                paths.append(candidate)
    seen: set[Path] = set()
    unique_paths: List[Path] = []
    for path in paths:
        resolved = path.resolve()
        if resolved not in seen:
            seen.add(resolved)
            unique_paths.append(path)
    return unique_paths


def fmt_hex(value: int, width: int) -> str:
    return f"0x{value:0{width}X}"


def fmt_event(event: MusEvent) -> str:
    operands = " ".join(f"{b:02X}" for b in event.operands)
    line = f"  {fmt_hex(event.offset, 4)}  ch{event.channel:<2d} {event.kind.name:<13s} {operands:<6s}"
    if event.delay:
        line += f"  +{event.delay}"
    return line.rstrip()


def main(argv: list[str] | None = None) -> int:
    parser = argparse.ArgumentParser(
        description="Show header fields (and optionally events) for MUS lumps."
    )
    parser.add_argument(
        "paths",
        nargs="+",
        help="File paths or glob patterns (quotes recommended for wildcards).",
    )
    parser.add_argument(
        "--events",
        action="store_true",
        help="Also list decoded score events for each file.",
    )
    args = parser.parse_args(argv)

    targets = collect_paths(args.paths)
    if not targets:
        parser.error("No files matched the provided paths/patterns.")

    header_row = [
        "File",
        "Magic",
        "ScoreStart",
        "ScoreLen",
        "Primary",
        "Secondary",
        "Instruments",
    ]
    rows = []
    parsed: list[tuple[Path, bytes, MusHeader]] = []
    for path in targets:
        data = path.read_bytes()
        try:
            header = MusHeader.from_bytes(data)
        except MusError as err:
            rows.append([str(path), "ERR", str(err), "", "", "", ""])
            continue
        parsed.append((path, data, header))
        rows.append(
            [
                str(path),
                "ok" if header.has_magic else header.magic.hex(),
                fmt_hex(header.score_start, 4),
                str(header.score_length),
                str(header.primary_channels),
                str(header.secondary_channels),
                str(header.instrument_count),
            ]
        )

    widths = [
        max(len(row[i]) for row in ([header_row] + rows))
        for i in range(len(header_row))
    ]

    def fmt_row(row: list[str]) -> str:
        return "  ".join(cell.ljust(widths[i]) for i, cell in enumerate(row))

    print(fmt_row(header_row))
    print("  ".join("-" * w for w in widths))
    for row in rows:
        print(fmt_row(row))

    if not args.events:
        return 0

    status = 0
    for path, data, header in parsed:
        print()
        print(f"{path}:")
        try:
            instruments = read_instruments(data, header)
        except MusError as err:
            print(f"  instruments: ERR {err}")
        else:
            print(f"  instruments: {' '.join(str(i) for i in instruments) or '-'}")
        try:
            for event in iter_mus_events(data, header):
                print(fmt_event(event))
        except MusError as err:
            print(f"  ERR {err}")
            status = 1
    return status


if __name__ == "__main__":
    raise SystemExit(main())
