import io
import struct
from typing import Iterator, Optional, Union

from errors import EndOfStream, InvalidValue, InvalidWidth, IOFailure, NotByteAligned

MAX_WIDTH = 64  #: Widest integer handled by a single read/write call


def _check_width(width: int) -> None:
    if not 1 <= width <= MAX_WIDTH:
        raise InvalidWidth(f"Illegal bit width: {width}")


def _to_unsigned(value: int, width: int) -> int:
    """Map a signed or unsigned ``value`` to its ``width``-bit pattern.

    :param value: Integer in ``-2**(width-1) .. 2**width - 1``.
    :type value: int
    :param width: Number of bits.
    :type width: int
    :returns: Two's complement bit pattern of ``value``.
    :rtype: int
    :raises InvalidValue: If ``value`` does not fit in ``width`` bits.
    """
    if not -(1 << (width - 1)) <= value < (1 << width):
        raise InvalidValue(f"Illegal {width}-bit value: {value}")
    return value & ((1 << width) - 1)


def _to_signed(value: int, width: int) -> int:
    if value & (1 << (width - 1)):
        return value - (1 << width)
    return value


class BitWriter:
    """Bit-packing writer.

    Accumulates individual bits into bytes MSB-first and pushes whole
    bytes to a byte sink. Without an explicit sink, bytes are collected
    in memory and can be fetched with :meth:`getvalue`.

    :ivar CHUNK_SIZE: Number of buffered bytes that triggers a sink write.
    :type CHUNK_SIZE: int
    :ivar buffer: Fully written bytes not yet pushed to the sink.
    :type buffer: bytearray
    :ivar bit_buffer: 8-bit scratch register for accumulating pending bits.
    :type bit_buffer: int
    :ivar bit_count: Number of valid bits currently stored in ``bit_buffer`` (0-7).
    :type bit_count: int
    :ivar bits_written: Total number of bits written, padding excluded.
    :type bits_written: int
    """

    CHUNK_SIZE = 4096

    def __init__(self, sink=None):
        """Initialize an empty bit writer.

        :param sink: Binary file-like object with ``write``; an in-memory
            buffer is used when omitted.
        :returns: None
        :rtype: None
        """
        self.sink = io.BytesIO() if sink is None else sink
        self.buffer = bytearray()
        self.bit_buffer = 0
        self.bit_count = 0
        self.bits_written = 0
        self.closed = False

    def __enter__(self) -> "BitWriter":
        return self

    def __exit__(self, exc_type, exc, tb) -> None:
        self.close()

    def _check_open(self) -> None:
        if self.closed:
            raise ValueError("I/O operation on closed BitWriter")

    def _push(self) -> None:
        """Hand buffered whole bytes over to the sink."""
        if not self.buffer:
            return
        try:
            self.sink.write(bytes(self.buffer))
        except OSError as e:
            raise IOFailure(f"Cannot write to sink: {e}") from e
        self.buffer.clear()

    def _emit(self, byte: int) -> None:
        self.buffer.append(byte)
        if len(self.buffer) >= self.CHUNK_SIZE:
            self._push()

    def write_bit(self, bit) -> None:
        """Append a single bit.

        :param bit: ``0``/``1`` or a bool.
        :raises InvalidValue: If ``bit`` is anything else.
        """
        self._check_open()
        if bit not in (0, 1):
            raise InvalidValue(f"Illegal bit: {bit!r}")
        self.bit_buffer = (self.bit_buffer << 1) | int(bit)
        self.bit_count += 1
        self.bits_written += 1
        if self.bit_count == 8:
            self._emit(self.bit_buffer)
            self.bit_buffer = 0
            self.bit_count = 0

    def write_bits(self, value: int, width: int) -> None:
        """Write the ``width``-bit unsigned ``value`` to the stream, MSB first.

        :param value: Integer whose bits will be written.
        :type value: int
        :param width: Number of bits to write (1-64).
        :type width: int
        :returns: None
        :rtype: None
        :raises InvalidWidth: Unless ``1 <= width <= 64``.
        :raises InvalidValue: Unless ``0 <= value < 2**width``.
        """
        self._check_open()
        _check_width(width)
        if not 0 <= value < (1 << width):
            raise InvalidValue(f"Illegal {width}-bit value: {value}")

        if self.bit_count == 0 and width % 8 == 0:
            for byte in value.to_bytes(width // 8, "big"):
                self._emit(byte)
            self.bits_written += width
            return

        for i in range(width - 1, -1, -1):
            self.write_bit((value >> i) & 1)

    def write_code(self, code: str) -> None:
        """Write a code given as a string of ``'0'``/``'1'`` characters.

        :param code: Bit string, possibly empty.
        :type code: str
        :raises InvalidValue: If ``code`` contains other characters.
        """
        for ch in code:
            if ch == "0":
                self.write_bit(0)
            elif ch == "1":
                self.write_bit(1)
            else:
                raise InvalidValue(f"Illegal character in code: {ch!r}")

    def write_byte(self, value: int) -> None:
        self.write_bits(_to_unsigned(value, 8), 8)

    def write_short(self, value: int) -> None:
        self.write_bits(_to_unsigned(value, 16), 16)

    def write_int(self, value: int) -> None:
        self.write_bits(_to_unsigned(value, 32), 32)

    def write_long(self, value: int) -> None:
        self.write_bits(_to_unsigned(value, 64), 64)

    def write_float(self, value: float) -> None:
        """Write the raw IEEE-754 single precision pattern of ``value``."""
        self.write_bits(struct.unpack(">I", struct.pack(">f", value))[0], 32)

    def write_double(self, value: float) -> None:
        """Write the raw IEEE-754 double precision pattern of ``value``."""
        self.write_bits(struct.unpack(">Q", struct.pack(">d", value))[0], 64)

    def write_char(self, ch: str, width: int = 8) -> None:
        """Write one character as a ``width``-bit code point.

        :param ch: Single character.
        :type ch: str
        :param width: Bits per character (1-16).
        :type width: int
        :raises InvalidWidth: Unless ``1 <= width <= 16``.
        :raises InvalidValue: If the code point does not fit in ``width`` bits.
        """
        if not 1 <= width <= 16:
            raise InvalidWidth(f"Illegal character width: {width}")
        self.write_bits(ord(ch), width)

    def write_string(self, text: str, width: int = 8) -> None:
        for ch in text:
            self.write_char(ch, width)

    def write_bytes(self, data: bytes) -> None:
        """Write raw bytes at the current bit position.

        :param data: Byte sequence to append to the output.
        :type data: bytes
        """
        self._check_open()
        if self.bit_count == 0:
            self.buffer.extend(data)
            self.bits_written += 8 * len(data)
            if len(self.buffer) >= self.CHUNK_SIZE:
                self._push()
            return
        for byte in data:
            self.write_bits(byte, 8)

    def flush(self) -> None:
        """Pad pending bits with zeros and push everything to the sink.

        Safe to call repeatedly, also after :meth:`close`; nothing is
        emitted when no bits are pending.

        :returns: None
        :rtype: None
        :raises IOFailure: If the sink rejects the data.
        """
        if self.closed:
            return
        if self.bit_count > 0:
            self.bit_buffer <<= (8 - self.bit_count)
            self.buffer.append(self.bit_buffer)
            self.bit_buffer = 0
            self.bit_count = 0
        self._push()
        flush = getattr(self.sink, "flush", None)
        if flush is not None:
            try:
                flush()
            except OSError as e:
                raise IOFailure(f"Cannot flush sink: {e}") from e

    def getvalue(self) -> bytes:
        """Return everything written to an in-memory sink so far.

        :returns: Flushed bytes followed by whole buffered bytes.
        :rtype: bytes
        :raises TypeError: If the sink does not keep its contents.
        """
        getvalue = getattr(self.sink, "getvalue", None)
        if getvalue is None:
            raise TypeError("Sink does not support getvalue()")
        return getvalue() + bytes(self.buffer)

    def close(self) -> None:
        """Flush and close the sink. Further writes raise ``ValueError``."""
        if self.closed:
            return
        self.flush()
        self.closed = True
        try:
            self.sink.close()
        except OSError as e:
            raise IOFailure(f"Cannot close sink: {e}") from e


class BitReader:
    """Bit-unpacking reader over a byte source.

    Keeps a one-byte lookahead so exhaustion is known before each read.

    :ivar CHUNK_SIZE: Number of bytes requested from the source at a time.
    :type CHUNK_SIZE: int
    :ivar bit_buffer: Current source byte, or ``None`` once the source is drained.
    :type bit_buffer: int | None
    :ivar bit_count: Number of unread bits remaining in ``bit_buffer`` (0-8).
    :type bit_count: int
    :ivar bits_read: Total number of bits consumed.
    :type bits_read: int
    """

    CHUNK_SIZE = 4096

    def __init__(self, source: Union[bytes, bytearray, memoryview, "io.RawIOBase"]):
        """Create a bit reader.

        :param source: Bytes-like object or binary file-like object with ``read``.
        :returns: None
        :rtype: None
        :raises IOFailure: If the first read from the source fails.
        """
        if isinstance(source, (bytes, bytearray, memoryview)):
            source = io.BytesIO(bytes(source))
        self.source = source
        self.chunk = b""
        self.pos = 0
        self.bit_buffer: Optional[int] = None
        self.bit_count = 0
        self.bits_read = 0
        self._fill()

    def _read_source(self) -> bytes:
        try:
            return self.source.read(self.CHUNK_SIZE)
        except OSError as e:
            raise IOFailure(f"Cannot read from source: {e}") from e

    def _fill(self) -> None:
        """Load the next source byte into ``bit_buffer``."""
        if self.pos >= len(self.chunk):
            self.chunk = self._read_source()
            self.pos = 0
            if not self.chunk:
                self.bit_buffer = None
                self.bit_count = 0
                return
        self.bit_buffer = self.chunk[self.pos]
        self.pos += 1
        self.bit_count = 8

    def _ensure(self, width: int) -> None:
        """Make sure ``width`` bits are buffered before any is consumed.

        :raises EndOfStream: If the source holds fewer than ``width`` bits.
        """
        available = self.bit_count + 8 * (len(self.chunk) - self.pos)
        while available < width and not self.exhausted:
            more = self._read_source()
            if not more:
                break
            self.chunk = self.chunk[self.pos:] + more
            self.pos = 0
            available += 8 * len(more)
        if available < width:
            raise EndOfStream(
                f"Cannot read {width} bits, only {available} remain"
            )

    @property
    def exhausted(self) -> bool:
        return self.bit_buffer is None

    def is_exhausted(self) -> bool:
        return self.exhausted

    def __iter__(self) -> Iterator[int]:
        while not self.exhausted:
            yield self.read_bit()

    def read_bit(self) -> int:
        """Read the next bit.

        :returns: ``0`` or ``1``.
        :rtype: int
        :raises EndOfStream: If no bits remain.
        """
        if self.bit_buffer is None:
            raise EndOfStream("Reading from empty input stream")
        self.bit_count -= 1
        bit = (self.bit_buffer >> self.bit_count) & 1
        self.bits_read += 1
        if self.bit_count == 0:
            self._fill()
        return bit

    def read_bits(self, width: int) -> int:
        """Read ``width`` bits from the stream and return them as an integer.

        Bits are returned MSB-first in the integer.

        :param width: Number of bits to read (1-64).
        :type width: int
        :returns: The unsigned integer composed of the next ``width`` bits.
        :rtype: int
        :raises InvalidWidth: Unless ``1 <= width <= 64``.
        :raises EndOfStream: If fewer than ``width`` bits remain; no bits
            are consumed in that case.
        """
        _check_width(width)
        self._ensure(width)
        if width == 8 and self.bit_count == 8:
            value = self.bit_buffer
            self.bits_read += 8
            self._fill()
            return value

        result = 0
        for _ in range(width):
            result = (result << 1) | self.read_bit()
        return result

    def read_byte(self) -> int:
        return self.read_bits(8)

    def read_short(self) -> int:
        return _to_signed(self.read_bits(16), 16)

    def read_int(self) -> int:
        return _to_signed(self.read_bits(32), 32)

    def read_long(self) -> int:
        return _to_signed(self.read_bits(64), 64)

    def read_float(self) -> float:
        return struct.unpack(">f", self.read_bits(32).to_bytes(4, "big"))[0]

    def read_double(self) -> float:
        return struct.unpack(">d", self.read_bits(64).to_bytes(8, "big"))[0]

    def read_char(self, width: int = 8) -> str:
        """Read a ``width``-bit code point as a one-character string.

        :param width: Bits per character (1-16).
        :type width: int
        :rtype: str
        :raises InvalidWidth: Unless ``1 <= width <= 16``.
        """
        if not 1 <= width <= 16:
            raise InvalidWidth(f"Illegal character width: {width}")
        return chr(self.read_bits(width))

    def read_remaining_bytes(self) -> bytes:
        """Read every remaining byte.

        :returns: Remaining bytes; empty if the reader is exhausted.
        :rtype: bytes
        :raises NotByteAligned: If the reader stopped in the middle of a byte.
        """
        if self.exhausted:
            return b""
        if self.bit_count != 8:
            raise NotByteAligned(
                f"{self.bit_count} bits left in the current byte"
            )
        out = bytearray()
        while not self.exhausted:
            out.append(self.bit_buffer)
            out.extend(self.chunk[self.pos:])
            self.bits_read += 8 * (1 + len(self.chunk) - self.pos)
            self.pos = len(self.chunk)
            self._fill()
        return bytes(out)

    def read_remaining_text(self) -> str:
        """Read every remaining byte as one character per byte (latin-1)."""
        return self.read_remaining_bytes().decode("latin-1")
