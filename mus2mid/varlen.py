"""Variable-length quantities.

MIDI stores delta times as big-endian groups of 7 bits with the high bit set
on every byte except the last.  MUS delays use the same continuation scheme
but are read incrementally from the score stream, so they get their own
decoder that respects the score region bounds.
"""

from __future__ import annotations

from .errors import TruncatedScoreError

MAX_VARLEN_BYTES = 5
MAX_VARLEN_VALUE = (1 << (7 * MAX_VARLEN_BYTES)) - 1


def encode_varlen(value: int) -> bytes:
    if value < 0:
        raise ValueError(f"variable-length value must be non-negative, got {value}")
    if value > MAX_VARLEN_VALUE:
        raise ValueError(
            f"variable-length value 0x{value:X} does not fit in {MAX_VARLEN_BYTES} bytes"
        )

    out = bytearray([value & 0x7F])
    value >>= 7
    while value:
        out.append(0x80 | (value & 0x7F))
        value >>= 7
    out.reverse()
    return bytes(out)


def decode_varlen(data: bytes, offset: int = 0) -> tuple[int, int]:
    """Decode a MIDI variable-length quantity.

    Returns ``(value, consumed)``.
    """
    value = 0
    pos = offset
    for _ in range(MAX_VARLEN_BYTES):
        if pos >= len(data):
            raise TruncatedScoreError("unexpected end of variable-length value", offset=pos)
        b = data[pos]
        pos += 1
        value = (value << 7) | (b & 0x7F)
        if not b & 0x80:
            return value, pos - offset
    raise ValueError(
        f"variable-length value at offset 0x{offset:04X} exceeds {MAX_VARLEN_BYTES} bytes"
    )


def decode_mus_delta(data: bytes, offset: int, end: int | None = None) -> tuple[int, int]:
    """Decode a MUS delay starting at ``offset``; never reads at or past ``end``.

    Returns ``(value, consumed)``.
    """
    limit = len(data) if end is None else min(end, len(data))
    value = 0
    pos = offset
    while True:
        if pos >= limit:
            raise TruncatedScoreError("score ends inside a delay value", offset=pos)
        b = data[pos]
        pos += 1
        value = value * 128 + (b & 0x7F)
        if not b & 0x80:
            return value, pos - offset
