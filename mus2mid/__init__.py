"""Convert DMX (DOOM) MUS scores into Format-0 Standard MIDI Files."""

from loguru import logger

from .buffer import DEFAULT_CHUNK_SIZE, OutputBuffer  # noqa: F401
from .channels import ChannelMapper, ChannelVolumes  # noqa: F401
from .container import (  # noqa: F401
    ConversionResult,
    convert,
    is_mus,
    mus_to_midi,
    read_header,
)
from .errors import (  # noqa: F401
    ControllerIndexError,
    DelayOverflowError,
    MusError,
    MusFormatError,
    ScoreEndMismatchError,
    TruncatedScoreError,
    UnsupportedChannelCountError,
)
from .events import (  # noqa: F401
    EventTranscoder,
    MidiEvent,
    MusEvent,
    MusEventKind,
    iter_mus_events,
    read_mus_event,
)
from .options import ConversionOptions, load_options, parse_options  # noqa: F401
from .score_reader import ScoreReader  # noqa: F401
from .structs import (  # noqa: F401
    CONTROLLER_MAP,
    DEFAULT_DIVISION,
    DEFAULT_TEMPO,
    MUS_HEADER_SIZE,
    MUS_MAGIC,
    MidiHeader,
    MusHeader,
    read_instruments,
)
from .varlen import decode_mus_delta, decode_varlen, encode_varlen  # noqa: F401

# Library stays quiet unless the host application opts in.
logger.disable("mus2mid")
