"""MUS -> MIDI channel assignment and per-channel volume memory.

MUS scores do not carry MIDI channel numbers.  Channels are handed out in the
order they are first used, counting up from 0 and stepping over the General
MIDI percussion channel 9, which belongs to MUS channel 15 from the start.
"""

from __future__ import annotations

from typing import List

from loguru import logger

from .structs import (
    DEFAULT_VOLUME,
    MIDI_CHANNELS,
    MIDI_PERCUSSION_CHANNEL,
    MUS_PERCUSSION_CHANNEL,
)

UNASSIGNED = -1


def _check_channel(channel: int, *, what: str) -> None:
    if not 0 <= channel < MIDI_CHANNELS:
        raise ValueError(f"{what} channel must be 0-{MIDI_CHANNELS - 1}, got {channel}")


class ChannelMapper:
    def __init__(self) -> None:
        self._map: List[int] = [UNASSIGNED] * MIDI_CHANNELS
        self._map[MUS_PERCUSSION_CHANNEL] = MIDI_PERCUSSION_CHANNEL
        self._next = 0

    def resolve(self, mus_channel: int) -> tuple[int, bool]:
        """Return ``(midi_channel, is_new)`` for ``mus_channel``.

        ``is_new`` is True only on the call that made the assignment.
        """
        _check_channel(mus_channel, what="MUS")
        assigned = self._map[mus_channel]
        if assigned != UNASSIGNED:
            return assigned, False

        if self._next >= MIDI_CHANNELS:
            raise ValueError(f"no MIDI channel left for MUS channel {mus_channel}")
        midi_channel = self._next
        self._map[mus_channel] = midi_channel
        self._next += 1
        if self._next == MIDI_PERCUSSION_CHANNEL:
            self._next += 1
        logger.debug("MUS channel {} -> MIDI channel {}", mus_channel, midi_channel)
        return midi_channel, True

    def lookup(self, mus_channel: int) -> int | None:
        _check_channel(mus_channel, what="MUS")
        assigned = self._map[mus_channel]
        return None if assigned == UNASSIGNED else assigned

    @property
    def mapping(self) -> List[int]:
        return list(self._map)


class ChannelVolumes:
    """Last key-on volume per MIDI channel."""

    def __init__(self, default: int = DEFAULT_VOLUME) -> None:
        self._volumes: List[int] = [default] * MIDI_CHANNELS

    def get(self, midi_channel: int) -> int:
        _check_channel(midi_channel, what="MIDI")
        return self._volumes[midi_channel]

    def set(self, midi_channel: int, volume: int) -> None:
        _check_channel(midi_channel, what="MIDI")
        self._volumes[midi_channel] = volume
