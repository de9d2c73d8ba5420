"""Exceptions raised while converting a MUS score.

Everything derives from ``ValueError`` so callers that already guard binary
parsing with ``except ValueError`` keep working.
"""

from __future__ import annotations


class MusError(ValueError):
    """Base class for all conversion failures."""


class MusFormatError(MusError):
    """The input does not start with a usable MUS header."""


class UnsupportedChannelCountError(MusError):
    def __init__(self, channels: int, limit: int) -> None:
        super().__init__(
            f"MUS header declares {channels} primary channels; at most {limit} are supported"
        )
        self.channels = channels
        self.limit = limit


class TruncatedScoreError(MusError):
    """A read would cross the declared score region or the supplied input."""

    def __init__(self, message: str, *, offset: int) -> None:
        super().__init__(f"{message} at offset 0x{offset:04X}")
        self.offset = offset


class ControllerIndexError(MusError):
    def __init__(self, index: int, *, offset: int) -> None:
        super().__init__(
            f"controller index {index} out of range at offset 0x{offset:04X}"
        )
        self.index = index
        self.offset = offset


class ScoreEndMismatchError(MusError):
    """The end-of-score event and the declared score length disagree."""

    def __init__(self, message: str, *, offset: int, expected: int) -> None:
        super().__init__(
            f"{message} at offset 0x{offset:04X} (score region ends at 0x{expected:04X})"
        )
        self.offset = offset
        self.expected = expected


class DelayOverflowError(MusError):
    """A delay is too long to be written as a MIDI delta time."""

    def __init__(self, delay: int, limit: int, *, offset: int) -> None:
        super().__init__(
            f"delay of {delay} ticks exceeds the MIDI delta limit {limit} at offset 0x{offset:04X}"
        )
        self.delay = delay
        self.limit = limit
        self.offset = offset
