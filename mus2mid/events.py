"""MUS event decoding and translation to MIDI channel messages.

Event descriptor byte layout::

    bit 7     delay follows the event's operands
    bits 4-6  event kind
    bits 0-3  MUS channel

Operands per kind:

    0 key off         note
    1 key on          note (bit 7 set -> volume byte follows), [volume]
    2 pitch wheel     8-bit bend, 0x80 = centre
    3 system event    controller index (10-14)
    4 controller      controller index, value (index 0 -> program change)
    6 score end       none
    5, 7              reserved, no operands

A delay is a MUS variable-length value counting ticks until the next event.
MIDI wants the delta in front of each event, so the delay read after event N
is held back and stamped on the first MIDI message produced for event N+1.
"""

from __future__ import annotations

from dataclasses import dataclass
from enum import IntEnum
from typing import Iterator, List

from loguru import logger

from .buffer import OutputBuffer
from .channels import ChannelMapper, ChannelVolumes
from .errors import ControllerIndexError, DelayOverflowError
from .score_reader import ScoreReader
from .structs import (
    CC_VOLUME,
    CONTROL_CHANGE,
    FULL_VOLUME,
    KEY_OFF_VELOCITY,
    META,
    META_END_OF_TRACK,
    MONO_MODE_INDEX,
    NOTE_OFF,
    NOTE_ON,
    PITCH_BEND,
    PROGRAM_CHANGE,
    MusHeader,
    midi_controller,
)
from .varlen import MAX_VARLEN_VALUE, encode_varlen

DELAY_FLAG = 0x80
KEY_ON_VOLUME_FLAG = 0x80


class MusEventKind(IntEnum):
    KEY_OFF = 0
    KEY_ON = 1
    PITCH_WHEEL = 2
    SYSTEM_EVENT = 3
    CONTROLLER = 4
    RESERVED_5 = 5
    SCORE_END = 6
    RESERVED_7 = 7


RESERVED_KINDS = frozenset({MusEventKind.RESERVED_5, MusEventKind.RESERVED_7})


@dataclass(frozen=True)
class MusEvent:
    """One decoded MUS event."""

    offset: int  # position of the descriptor byte in the lump
    kind: MusEventKind
    channel: int  # MUS channel 0-15
    operands: bytes
    delay: int = 0  # ticks between this event and the next one


@dataclass(frozen=True)
class MidiEvent:
    delta: int
    status: int
    data: bytes

    def to_bytes(self) -> bytes:
        return encode_varlen(self.delta) + bytes([self.status]) + self.data


def read_mus_event(reader: ScoreReader) -> MusEvent:
    """Consume one event (descriptor, operands and trailing delay) from ``reader``.

    No delay is read after a score-end event.  A system event carries a single
    operand, the controller index; its MIDI value comes from the header.
    """
    offset = reader.pos
    descriptor = reader.read_u8()
    kind = MusEventKind((descriptor >> 4) & 0x07)
    channel = descriptor & 0x0F

    operands = bytearray()
    if kind in (MusEventKind.KEY_OFF, MusEventKind.PITCH_WHEEL, MusEventKind.SYSTEM_EVENT):
        # One operand each; system events have no value byte.
        operands.append(reader.read_u8())
    elif kind == MusEventKind.KEY_ON:
        note = reader.read_u8()
        operands.append(note)
        if note & KEY_ON_VOLUME_FLAG:
            operands.append(reader.read_u8())
    elif kind == MusEventKind.CONTROLLER:
        operands.append(reader.read_u8())
        operands.append(reader.read_u8())

    delay = 0
    if kind != MusEventKind.SCORE_END and descriptor & DELAY_FLAG:
        delay = reader.read_delay()
        if delay > MAX_VARLEN_VALUE:
            raise DelayOverflowError(delay, MAX_VARLEN_VALUE, offset=offset)

    return MusEvent(
        offset=offset,
        kind=kind,
        channel=channel,
        operands=bytes(operands),
        delay=delay,
    )


def iter_mus_events(data: bytes, header: MusHeader | None = None) -> Iterator[MusEvent]:
    """Yield the events of a MUS lump up to and including the score end."""
    if header is None:
        header = MusHeader.from_bytes(data)
    reader = ScoreReader(data, header.score_start, header.score_end)
    while not reader.at_end:
        event = read_mus_event(reader)
        yield event
        if event.kind == MusEventKind.SCORE_END:
            return


def _data_byte(value: int, *, offset: int, what: str) -> int:
    if value > 0x7F:
        logger.warning(
            "{} 0x{:02X} at offset 0x{:04X} clamped to 0x7F", what, value, offset
        )
        return 0x7F
    return value


class EventTranscoder:
    """Per-conversion state: channel map, volumes and the pending delta.

    ``translate`` turns one ``MusEvent`` into MIDI messages; ``step`` reads the
    next event from a ``ScoreReader`` and writes its messages to ``out``.
    """

    def __init__(self, out: OutputBuffer, *, primary_channels: int) -> None:
        self.out = out
        self.primary_channels = primary_channels
        self.channels = ChannelMapper()
        self.volumes = ChannelVolumes()
        self.pending_delta = 0

    def translate(self, event: MusEvent) -> List[MidiEvent]:
        if event.kind in RESERVED_KINDS:
            logger.warning(
                "reserved MUS event kind {} at offset 0x{:04X} skipped",
                int(event.kind),
                event.offset,
            )
            # Nothing was emitted, so the time carries over to the next event.
            self.pending_delta += event.delay
            if self.pending_delta > MAX_VARLEN_VALUE:
                raise DelayOverflowError(
                    self.pending_delta, MAX_VARLEN_VALUE, offset=event.offset
                )
            return []

        messages: List[tuple[int, bytes]] = []
        if event.kind == MusEventKind.SCORE_END:
            messages.append((META, bytes([META_END_OF_TRACK, 0x00])))
        else:
            midi_channel, is_new = self.channels.resolve(event.channel)
            if is_new:
                messages.append(
                    (CONTROL_CHANGE | midi_channel, bytes([CC_VOLUME, FULL_VOLUME]))
                )
            messages.append(self._channel_message(event, midi_channel))

        out: List[MidiEvent] = []
        for i, (status, data) in enumerate(messages):
            delta = self.pending_delta if i == 0 else 0
            out.append(MidiEvent(delta=delta, status=status, data=data))
        self.pending_delta = event.delay
        return out

    def _channel_message(self, event: MusEvent, ch: int) -> tuple[int, bytes]:
        ops = event.operands
        kind = event.kind

        if kind == MusEventKind.KEY_OFF:
            return NOTE_OFF | ch, bytes([ops[0] & 0x7F, KEY_OFF_VELOCITY])

        if kind == MusEventKind.KEY_ON:
            if len(ops) > 1:
                volume = _data_byte(ops[1], offset=event.offset, what="key-on volume")
                self.volumes.set(ch, volume)
            return NOTE_ON | ch, bytes([ops[0] & 0x7F, self.volumes.get(ch)])

        if kind == MusEventKind.PITCH_WHEEL:
            # 8-bit MUS bend -> 14-bit MIDI bend (value << 6), sent LSB first.
            bend = ops[0]
            return PITCH_BEND | ch, bytes([(bend & 0x01) << 6, bend >> 1])

        if kind == MusEventKind.SYSTEM_EVENT:
            index = ops[0]
            controller = midi_controller(index)
            if controller is None:
                raise ControllerIndexError(index, offset=event.offset)
            value = self.primary_channels + 1 if index == MONO_MODE_INDEX else 0
            return CONTROL_CHANGE | ch, bytes([controller, value])

        if kind == MusEventKind.CONTROLLER:
            index, value = ops[0], ops[1]
            if index == 0:
                program = _data_byte(value, offset=event.offset, what="program")
                return PROGRAM_CHANGE | ch, bytes([program])
            controller = midi_controller(index)
            if controller is None:
                raise ControllerIndexError(index, offset=event.offset)
            value = _data_byte(value, offset=event.offset, what="controller value")
            return CONTROL_CHANGE | ch, bytes([controller, value])

        raise ValueError(f"no channel message for MUS event kind {int(kind)}")

    def step(self, reader: ScoreReader) -> MusEvent:
        event = read_mus_event(reader)
        for message in self.translate(event):
            self.out.write_bytes(message.to_bytes())
        return event
