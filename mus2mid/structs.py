from __future__ import annotations

import struct
from dataclasses import dataclass
from typing import Tuple

from .errors import MusFormatError, TruncatedScoreError


MUS_MAGIC = b"MUS\x1A"
MUS_HEADER_SIZE = 16  # magic + six u16 LE fields
MUS_HEADER_FORMAT = "<4sHHHHHH"

MIDI_MAGIC = b"MThd"
TRACK_MAGIC = b"MTrk"
MIDI_HEADER_SIZE = 14
TRACK_HEADER_SIZE = 8  # "MTrk" + u32 length

MIDI_CHANNELS = 16
MAX_PRIMARY_CHANNELS = MIDI_CHANNELS - 1
MUS_PERCUSSION_CHANNEL = 15
MIDI_PERCUSSION_CHANNEL = 9

DEFAULT_DIVISION = 0x0059  # ticks per quarter note
# Microseconds per quarter note.  With 89 ticks per quarter this plays at the
# DMX rate of 140 ticks per second.
DEFAULT_TEMPO = 0x09A31A

FULL_VOLUME = 0x7F
DEFAULT_VOLUME = 0x40
KEY_OFF_VELOCITY = 0x40

# MIDI status nibbles
NOTE_OFF = 0x80
NOTE_ON = 0x90
CONTROL_CHANGE = 0xB0
PROGRAM_CHANGE = 0xC0
PITCH_BEND = 0xE0
META = 0xFF

META_TEMPO = 0x51
META_END_OF_TRACK = 0x2F

CC_VOLUME = 0x07

# MUS controller index -> MIDI controller number.
CONTROLLER_MAP: Tuple[int, ...] = (
    0x00,  # 0  program change (handled separately)
    0x00,  # 1  bank select
    0x01,  # 2  modulation
    0x07,  # 3  volume
    0x0A,  # 4  pan
    0x0B,  # 5  expression
    0x5B,  # 6  reverb depth
    0x5D,  # 7  chorus depth
    0x40,  # 8  sustain pedal
    0x43,  # 9  soft pedal
    0x78,  # 10 all sounds off
    0x7B,  # 11 all notes off
    0x7E,  # 12 mono (value is primary channels + 1)
    0x7F,  # 13 poly
    0x79,  # 14 reset all controllers
)
MONO_MODE_INDEX = 12


def midi_controller(index: int) -> int | None:
    """Return the MIDI controller for a MUS controller index, or None if out of range."""
    if 0 <= index < len(CONTROLLER_MAP):
        return CONTROLLER_MAP[index]
    return None


@dataclass(frozen=True)
class MusHeader:
    magic: bytes
    score_length: int
    score_start: int
    primary_channels: int
    secondary_channels: int
    instrument_count: int
    reserved: int = 0

    @classmethod
    def from_bytes(cls, data: bytes) -> "MusHeader":
        if len(data) < MUS_HEADER_SIZE:
            raise MusFormatError(
                f"input too short for MUS header ({len(data)} bytes, need {MUS_HEADER_SIZE})"
            )
        fields = struct.unpack_from(MUS_HEADER_FORMAT, data, 0)
        return cls(*fields)

    def to_bytes(self) -> bytes:
        return struct.pack(
            MUS_HEADER_FORMAT,
            self.magic,
            self.score_length,
            self.score_start,
            self.primary_channels,
            self.secondary_channels,
            self.instrument_count,
            self.reserved,
        )

    @property
    def has_magic(self) -> bool:
        return self.magic == MUS_MAGIC

    @property
    def score_end(self) -> int:
        return self.score_start + self.score_length


def read_instruments(data: bytes, header: MusHeader) -> list[int]:
    """Return the instrument patch list that follows the header."""
    end = MUS_HEADER_SIZE + 2 * header.instrument_count
    if end > len(data):
        raise TruncatedScoreError(
            f"instrument list needs {header.instrument_count} entries", offset=len(data)
        )
    return list(struct.unpack_from(f"<{header.instrument_count}H", data, MUS_HEADER_SIZE))


@dataclass(frozen=True)
class MidiHeader:
    format: int = 0
    track_count: int = 1
    division: int = DEFAULT_DIVISION

    def to_bytes(self) -> bytes:
        return MIDI_MAGIC + struct.pack(
            ">IHHH", MIDI_HEADER_SIZE - 8, self.format, self.track_count, self.division
        )


def tempo_event(tempo: int = DEFAULT_TEMPO) -> bytes:
    """Delta 0 set-tempo meta event."""
    return bytes([0x00, META, META_TEMPO, 0x03]) + tempo.to_bytes(3, "big")


def percussion_preamble() -> bytes:
    """Delta 0 full-volume controller change on the percussion channel."""
    return bytes([0x00, CONTROL_CHANGE | MIDI_PERCUSSION_CHANNEL, CC_VOLUME, FULL_VOLUME])
