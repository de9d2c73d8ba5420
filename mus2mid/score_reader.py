"""Bounded cursor over the score region of a MUS lump."""

from __future__ import annotations

from .errors import TruncatedScoreError
from .varlen import decode_mus_delta


class ScoreReader:
    """Reads bytes from ``data[start:end]`` and refuses to go past ``end``.

    ``end`` is clipped to ``len(data)`` so a header that overstates the score
    length can never cause a read outside the input.
    """

    def __init__(self, data: bytes, start: int, end: int) -> None:
        if start < 0 or start > end:
            raise ValueError(f"invalid score region 0x{start:04X}-0x{end:04X}")
        if start > len(data):
            raise TruncatedScoreError("score starts past end of input", offset=len(data))
        self.data = data
        self.start = start
        self.end = min(end, len(data))
        self.pos = start

    @property
    def at_end(self) -> bool:
        return self.pos >= self.end

    def read_u8(self) -> int:
        if self.pos >= self.end:
            raise TruncatedScoreError("score data exhausted", offset=self.pos)
        value = self.data[self.pos]
        self.pos += 1
        return value

    def read_delay(self) -> int:
        value, consumed = decode_mus_delta(self.data, self.pos, self.end)
        self.pos += consumed
        return value
