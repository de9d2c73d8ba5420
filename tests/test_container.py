"""End-to-end MUS -> MIDI conversion tests."""

from __future__ import annotations

import io
from pathlib import Path
import sys

import mido
import pytest
from loguru import logger

REPO_ROOT = Path(__file__).resolve().parents[1]
if str(REPO_ROOT) not in sys.path:
    sys.path.insert(0, str(REPO_ROOT))

from mus2mid.container import convert, is_mus, mus_to_midi  # noqa: E402
from mus2mid.errors import (  # noqa: E402
    DelayOverflowError,
    MusError,
    MusFormatError,
    ScoreEndMismatchError,
    TruncatedScoreError,
    UnsupportedChannelCountError,
)
from mus2mid.options import ConversionOptions  # noqa: E402
from mus2mid.structs import MUS_MAGIC, MusHeader  # noqa: E402


MIDI_HEADER = bytes.fromhex("4D546864 00000006 0000 0001 0059")
TEMPO = bytes.fromhex("00 FF 51 03 09 A3 1A")
PERCUSSION = bytes.fromhex("00 B9 07 7F")
END_OF_TRACK = bytes.fromhex("00 FF 2F 00")


def _mus(
    score: bytes,
    *,
    primary: int = 1,
    score_length: int | None = None,
    instruments: tuple[int, ...] = (),
    magic: bytes = MUS_MAGIC,
) -> bytes:
    header = MusHeader(
        magic=magic,
        score_length=len(score) if score_length is None else score_length,
        score_start=16 + 2 * len(instruments),
        primary_channels=primary,
        secondary_channels=0,
        instrument_count=len(instruments),
    )
    patches = b"".join(i.to_bytes(2, "little") for i in instruments)
    return header.to_bytes() + patches + score


def _track_body(midi: bytes) -> bytes:
    assert midi[14:18] == b"MTrk"
    return midi[22:]


# ── Output framing ───────────────────────────────────────────────────


def test_single_note_scenario() -> None:
    data = _mus(bytes.fromhex("10 BC 64 60"))
    result = convert(data)

    expected_body = (
        TEMPO
        + PERCUSSION
        + bytes.fromhex("00 B0 07 7F")
        + bytes.fromhex("00 90 3C 64")
        + END_OF_TRACK
    )
    assert result.data[:14] == MIDI_HEADER
    assert result.data[14:18] == b"MTrk"
    assert int.from_bytes(result.data[18:22], "big") == len(expected_body)
    assert _track_body(result.data) == expected_body
    assert result.length == len(result.data) == 22 + len(expected_body)


def test_track_length_matches_body() -> None:
    score = bytes.fromhex(
        "10 BC 64 90 3C 81 00"  # ch0 note on, delay 128
        "00 3C"  # ch0 note off
        "41 00 1E 9F A4 7F 20"  # ch1 program, percussion note on, delay 32
        "22 80 0F 3C 60"  # ch2 pitch wheel, ch15 note off, end
    )
    result = convert(_mus(score, primary=3))
    declared = int.from_bytes(result.data[18:22], "big")
    assert declared == len(result.data) - 22
    assert result.data[-4:] == END_OF_TRACK


def test_output_parses_with_mido() -> None:
    score = bytes.fromhex("10 BC 64 90 3E 20  00 BC  2F 80  40 03 50  60")
    midi = mus_to_midi(_mus(score))
    mid = mido.MidiFile(file=io.BytesIO(midi))

    assert mid.type == 0
    assert len(mid.tracks) == 1
    assert mid.ticks_per_beat == 0x59

    msgs = list(mid.tracks[0])
    assert msgs[0].type == "set_tempo"
    assert msgs[0].tempo == 0x09A31A
    assert (msgs[1].type, msgs[1].channel, msgs[1].control, msgs[1].value) == (
        "control_change", 9, 7, 127,
    )
    assert (msgs[2].type, msgs[2].channel, msgs[2].control) == ("control_change", 0, 7)
    assert (msgs[3].type, msgs[3].note, msgs[3].velocity) == ("note_on", 60, 100)
    assert (msgs[4].type, msgs[4].note, msgs[4].velocity) == ("note_on", 62, 100)
    assert (msgs[5].type, msgs[5].note, msgs[5].time) == ("note_off", 60, 0x20)
    assert (msgs[6].type, msgs[6].channel, msgs[6].pitch) == ("pitchwheel", 9, 0)
    assert (msgs[7].type, msgs[7].control, msgs[7].value) == ("control_change", 7, 0x50)
    assert msgs[-1].type == "end_of_track"


def test_instrument_list_is_skipped() -> None:
    score = bytes.fromhex("10 BC 64 60")
    plain = convert(_mus(score)).data
    with_patches = convert(_mus(score, instruments=(0, 30, 135))).data
    assert plain == with_patches


def test_conversion_is_deterministic() -> None:
    data = _mus(bytes.fromhex("12 3C 90 BC 64 05 15 40 60"))
    assert convert(data) == convert(data)


def test_custom_division_and_tempo() -> None:
    options = ConversionOptions(division=140, tempo=500_000)
    midi = mus_to_midi(_mus(bytes.fromhex("60")), options=options)
    assert midi[12:14] == (140).to_bytes(2, "big")
    assert midi[22:29] == bytes.fromhex("00 FF 51 03") + (500_000).to_bytes(3, "big")


def test_small_chunk_size_gives_identical_output() -> None:
    data = _mus(bytes.fromhex("10 BC 64 90 3C 81 00 00 3C 60"))
    assert convert(data, options=ConversionOptions(chunk_size=1)) == convert(data)


def test_size_argument_limits_input() -> None:
    data = _mus(bytes.fromhex("10 BC 64 60"))
    assert convert(data + b"junk", len(data)) == convert(data)
    with pytest.raises(ValueError):
        convert(data, len(data) + 1)


def test_is_mus() -> None:
    assert is_mus(_mus(b"\x60"))
    assert not is_mus(b"MThd\x00\x00\x00\x06")


# ── Failure outcomes ─────────────────────────────────────────────────


def test_too_many_primary_channels() -> None:
    with pytest.raises(UnsupportedChannelCountError) as excinfo:
        convert(_mus(bytes.fromhex("60"), primary=16))
    assert excinfo.value.channels == 16


def test_fifteen_primary_channels_allowed() -> None:
    assert convert(_mus(bytes.fromhex("60"), primary=15)).length > 0


def test_header_too_short() -> None:
    with pytest.raises(MusFormatError):
        convert(b"MUS\x1a\x04\x00")


def test_bad_magic() -> None:
    data = _mus(bytes.fromhex("60"), magic=b"MUX\x1a")
    with pytest.raises(MusFormatError):
        convert(data)
    assert convert(data, options=ConversionOptions(require_magic=False)).length > 0


def test_score_region_past_end_of_input() -> None:
    data = _mus(bytes.fromhex("10 BC 64 60"), score_length=40)
    with pytest.raises(TruncatedScoreError) as excinfo:
        convert(data)
    assert excinfo.value.offset == len(data)


def test_truncated_buffer_is_fatal_even_when_lenient() -> None:
    full = _mus(bytes.fromhex("10 BC 64 90 3C 81 00 00 3C 60"))
    lenient = ConversionOptions(strict=False)
    for cut in range(16, len(full)):
        with pytest.raises(MusError):
            convert(full, cut, options=lenient)


def test_event_running_past_score_region() -> None:
    # Volume byte of the key-on lies outside the declared two-byte region.
    data = _mus(bytes.fromhex("10 BC 64 60"), score_length=2)
    with pytest.raises(TruncatedScoreError):
        convert(data)
    with pytest.raises(TruncatedScoreError):
        convert(data, options=ConversionOptions(strict=False))


def test_delay_too_long_for_midi_is_a_mus_error() -> None:
    data = _mus(bytes.fromhex("80 3C FF FF FF FF FF 7F 00 3C 60"))
    for options in (ConversionOptions(), ConversionOptions(strict=False)):
        with pytest.raises(DelayOverflowError) as excinfo:
            convert(data, options=options)
        assert isinstance(excinfo.value, MusError)
        assert excinfo.value.offset == 16
        assert "0x0010" in str(excinfo.value)


def test_trailing_bytes_after_score_end() -> None:
    data = _mus(bytes.fromhex("10 BC 64 60 00 3C"))
    with pytest.raises(ScoreEndMismatchError) as excinfo:
        convert(data)
    assert excinfo.value.offset == 19
    assert excinfo.value.expected == 22

    lenient = convert(data, options=ConversionOptions(strict=False))
    assert lenient == convert(_mus(bytes.fromhex("10 BC 64 60")))


def test_missing_score_end() -> None:
    data = _mus(bytes.fromhex("10 BC 64 80 3C 10"))
    with pytest.raises(ScoreEndMismatchError):
        convert(data)

    result = convert(data, options=ConversionOptions(strict=False))
    assert result.data[-8:] == bytes.fromhex("00 80 3C 40  10 FF 2F 00")
    assert int.from_bytes(result.data[18:22], "big") == len(result.data) - 22


def test_empty_score_region() -> None:
    data = _mus(b"")
    with pytest.raises(ScoreEndMismatchError):
        convert(data)
    result = convert(data, options=ConversionOptions(strict=False))
    assert _track_body(result.data) == TEMPO + PERCUSSION + END_OF_TRACK


def test_lenient_mismatch_is_logged() -> None:
    messages: list[str] = []
    logger.enable("mus2mid")
    handler_id = logger.add(messages.append, level="WARNING", format="{message}")
    try:
        convert(
            _mus(bytes.fromhex("60 00")),
            options=ConversionOptions(strict=False),
        )
    finally:
        logger.remove(handler_id)
        logger.disable("mus2mid")
    assert any("score end event before end of score region" in m for m in messages)
