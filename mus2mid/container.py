"""Assemble a Format-0 Standard MIDI File from a MUS lump.

Output layout::

    MThd  u32 6  u16 0  u16 1  u16 division
    MTrk  u32 track length (patched after the body is written)
      00 FF 51 03 <tempo>        set tempo
      00 B9 07 7F                percussion channel at full volume
      ...transcoded events...
      <delta> FF 2F 00           end of track
"""

from __future__ import annotations

from dataclasses import dataclass

from loguru import logger

from .buffer import OutputBuffer
from .errors import (
    MusFormatError,
    ScoreEndMismatchError,
    TruncatedScoreError,
    UnsupportedChannelCountError,
)
from .events import EventTranscoder, MusEvent, MusEventKind
from .options import ConversionOptions
from .score_reader import ScoreReader
from .structs import (
    MAX_PRIMARY_CHANNELS,
    MUS_MAGIC,
    TRACK_HEADER_SIZE,
    TRACK_MAGIC,
    MidiHeader,
    MusHeader,
    percussion_preamble,
    tempo_event,
)


@dataclass(frozen=True)
class ConversionResult:
    data: bytes
    length: int


def is_mus(data: bytes) -> bool:
    return data[: len(MUS_MAGIC)] == MUS_MAGIC


def read_header(data: bytes, *, require_magic: bool = True) -> MusHeader:
    header = MusHeader.from_bytes(data)
    if require_magic and not header.has_magic:
        raise MusFormatError(f"bad magic: {header.magic.hex()}")
    if header.primary_channels > MAX_PRIMARY_CHANNELS:
        raise UnsupportedChannelCountError(header.primary_channels, MAX_PRIMARY_CHANNELS)
    return header


def _score_end_mismatch(
    options: ConversionOptions, message: str, *, offset: int, expected: int
) -> None:
    if options.strict:
        raise ScoreEndMismatchError(message, offset=offset, expected=expected)
    logger.warning(
        "{} at offset 0x{:04X} (score region ends at 0x{:04X})", message, offset, expected
    )


def convert(
    data: bytes,
    size: int | None = None,
    *,
    options: ConversionOptions | None = None,
) -> ConversionResult:
    """Convert the first ``size`` bytes of ``data`` (default: all) from MUS to MIDI.

    Raises a ``MusError`` subclass on any failure; nothing is returned in
    that case.
    """
    if options is None:
        options = ConversionOptions()
    if size is None:
        size = len(data)
    if not 0 <= size <= len(data):
        raise ValueError(f"size {size} outside input of {len(data)} bytes")
    data = bytes(data[:size])

    header = read_header(data, require_magic=options.require_magic)
    if header.score_end > size:
        raise TruncatedScoreError(
            f"score region 0x{header.score_start:04X}-0x{header.score_end:04X} "
            "extends past end of input",
            offset=size,
        )
    logger.debug(
        "MUS header: score 0x{:04X}+{} primary={} secondary={} instruments={}",
        header.score_start,
        header.score_length,
        header.primary_channels,
        header.secondary_channels,
        header.instrument_count,
    )

    out = OutputBuffer(options.chunk_size)
    out.write_bytes(MidiHeader(division=options.division).to_bytes())

    track_start = out.current_offset()
    out.write_bytes(TRACK_MAGIC)
    length_pos = out.current_offset()
    out.skip(4)
    out.write_bytes(tempo_event(options.tempo))
    out.write_bytes(percussion_preamble())

    transcoder = EventTranscoder(out, primary_channels=header.primary_channels)
    reader = ScoreReader(data, header.score_start, header.score_end)
    end_event: MusEvent | None = None
    while not reader.at_end:
        event = transcoder.step(reader)
        if event.kind == MusEventKind.SCORE_END:
            end_event = event
            break

    if end_event is None:
        _score_end_mismatch(
            options,
            "score region ends without a score end event",
            offset=reader.pos,
            expected=reader.end,
        )
        closing = MusEvent(
            offset=reader.pos, kind=MusEventKind.SCORE_END, channel=0, operands=b""
        )
        for message in transcoder.translate(closing):
            out.write_bytes(message.to_bytes())
    elif not reader.at_end:
        _score_end_mismatch(
            options,
            "score end event before end of score region",
            offset=end_event.offset,
            expected=reader.end,
        )

    body_end = out.current_offset()
    out.seek(length_pos)
    out.write_u32(body_end - track_start - TRACK_HEADER_SIZE)
    out.seek(body_end)

    midi, length = out.finalize()
    logger.debug(
        "converted {} byte MUS score into {} byte MIDI file", header.score_length, length
    )
    return ConversionResult(data=midi, length=length)


def mus_to_midi(data: bytes, *, options: ConversionOptions | None = None) -> bytes:
    return convert(data, options=options).data
