from __future__ import annotations

from typing import Iterable

DEFAULT_CHUNK_SIZE = 8192


class OutputBuffer:
    """Append-mostly byte sink that grows in fixed ``chunk_size`` steps.

    All multi-byte writes are big-endian (MIDI byte order).  ``seek`` and
    ``skip`` allow a field to be reserved and patched once its value is known.
    ``finalize`` hands the bytes over exactly once; the buffer is unusable
    afterwards.
    """

    def __init__(self, chunk_size: int = DEFAULT_CHUNK_SIZE) -> None:
        if chunk_size < 1:
            raise ValueError(f"chunk_size must be positive, got {chunk_size}")
        self.chunk_size = chunk_size
        self._buf: bytearray | None = bytearray(chunk_size)
        self._pos = 0
        self._written = 0  # high-water mark of bytes actually written

    @property
    def capacity(self) -> int:
        return len(self._require())

    def current_offset(self) -> int:
        self._require()
        return self._pos

    def _require(self) -> bytearray:
        if self._buf is None:
            raise ValueError("buffer already finalized")
        return self._buf

    def _ensure(self, end: int) -> bytearray:
        buf = self._require()
        while len(buf) < end:
            buf.extend(bytes(self.chunk_size))
        return buf

    def _put(self, data: bytes) -> None:
        end = self._pos + len(data)
        buf = self._ensure(end)
        buf[self._pos : end] = data
        self._pos = end
        self._written = max(self._written, end)

    def _write_uint(self, value: int, width: int) -> None:
        value = int(value)
        if not 0 <= value < 1 << (8 * width):
            raise ValueError(f"value {value} does not fit in {width} unsigned byte(s)")
        self._put(value.to_bytes(width, "big", signed=False))

    def write_u8(self, value: int) -> None:
        self._write_uint(value, 1)

    def write_u16(self, value: int) -> None:
        self._write_uint(value, 2)

    def write_u32(self, value: int) -> None:
        self._write_uint(value, 4)

    def write_bytes(self, data: bytes | bytearray | Iterable[int]) -> None:
        self._put(bytes(data))

    def seek(self, offset: int) -> None:
        if offset < 0:
            raise ValueError(f"cannot seek to negative offset {offset}")
        self._ensure(offset)
        self._pos = offset

    def skip(self, count: int) -> None:
        self.seek(self._pos + count)

    def finalize(self) -> tuple[bytes, int]:
        buf = self._require()
        length = self._written
        data = bytes(buf[:length])
        self._buf = None
        return data, length
