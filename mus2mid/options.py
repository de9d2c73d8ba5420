from __future__ import annotations

import json
from dataclasses import dataclass
from pathlib import Path

from .buffer import DEFAULT_CHUNK_SIZE
from .structs import DEFAULT_DIVISION, DEFAULT_TEMPO


@dataclass(frozen=True)
class ConversionOptions:
    """Knobs for one conversion.

    ``strict`` turns an end-of-score / score-length disagreement into an
    error; otherwise it is logged and the output is closed at the first
    score end or at the end of the declared region.
    """

    strict: bool = True
    require_magic: bool = True
    chunk_size: int = DEFAULT_CHUNK_SIZE
    division: int = DEFAULT_DIVISION
    tempo: int = DEFAULT_TEMPO


VALID_KEYS = frozenset({"strict", "require_magic", "chunk_size", "division", "tempo"})


def _require_dict(value: object, *, where: str) -> dict:
    if not isinstance(value, dict):
        raise ValueError(f"{where} must be an object")
    return value


def _require_bool(value: object, *, where: str) -> bool:
    if not isinstance(value, bool):
        raise ValueError(f"{where} must be a boolean")
    return value


def _int_in_range(value: object, *, where: str, low: int, high: int) -> int:
    if not isinstance(value, int) or isinstance(value, bool):
        raise ValueError(f"{where} must be an integer")
    if not (low <= value <= high):
        raise ValueError(f"{where} must be in [{low}, {high}]")
    return value


def parse_options(data: object) -> ConversionOptions:
    obj = _require_dict(data, where="options")

    unknown = sorted(set(obj) - VALID_KEYS)
    if unknown:
        raise ValueError(f"unknown option(s): {', '.join(unknown)}")

    defaults = ConversionOptions()
    return ConversionOptions(
        strict=_require_bool(obj.get("strict", defaults.strict), where="options.strict"),
        require_magic=_require_bool(
            obj.get("require_magic", defaults.require_magic),
            where="options.require_magic",
        ),
        chunk_size=_int_in_range(
            obj.get("chunk_size", defaults.chunk_size),
            where="options.chunk_size",
            low=1,
            high=1 << 24,
        ),
        # Negative (SMPTE) divisions are not produced.
        division=_int_in_range(
            obj.get("division", defaults.division),
            where="options.division",
            low=1,
            high=0x7FFF,
        ),
        tempo=_int_in_range(
            obj.get("tempo", defaults.tempo),
            where="options.tempo",
            low=1,
            high=0xFFFFFF,
        ),
    )


def load_options(path: Path | str) -> ConversionOptions:
    options_path = Path(path).expanduser().resolve()
    payload = json.loads(options_path.read_text(encoding="utf-8"))
    return parse_options(payload)
