import io
import math

import pytest

from bitops import BitWriter, BitReader
from errors import (
    EndOfStream,
    InvalidValue,
    InvalidWidth,
    IOFailure,
    NotByteAligned,
)


def test_bitwriter_write_bits_and_flush_basic():
    bw = BitWriter()
    bw.write_bits(0b1010, 4)
    bw.write_bits(0b11110000, 8)
    bw.flush()
    out = bw.getvalue()
    assert len(out) == 2
    assert out[0] == 0b10101111
    assert out[1] == 0b00000000
    assert bw.bits_written == 12


def test_flush_is_idempotent():
    bw = BitWriter()
    bw.write_bit(1)
    bw.flush()
    bw.flush()
    assert bw.getvalue() == bytes([0b10000000])


def test_write_bits_validates_width_and_value():
    bw = BitWriter()
    with pytest.raises(InvalidWidth):
        bw.write_bits(0, 0)
    with pytest.raises(InvalidWidth):
        bw.write_bits(0, 65)
    with pytest.raises(InvalidValue):
        bw.write_bits(4, 2)
    with pytest.raises(InvalidValue):
        bw.write_bits(-1, 8)
    with pytest.raises(InvalidValue):
        bw.write_bit(2)


def test_boundary_widths_5_11_16_roundtrip():
    bw = BitWriter()
    bw.write_bits(0b10110, 5)
    bw.write_bits(1234, 11)
    bw.write_bits(0xBEEF, 16)
    bw.flush()
    out = bw.getvalue()
    assert len(out) == 4

    br = BitReader(out)
    assert br.read_bits(5) == 0b10110
    assert br.read_bits(11) == 1234
    assert br.read_bits(16) == 0xBEEF
    assert br.exhausted


def test_write_code_and_unaligned_bytes():
    bw = BitWriter()
    bw.write_code("101")
    bw.write_bytes(b"\xff")
    bw.flush()
    assert bw.getvalue() == bytes([0b10111111, 0b11100000])
    with pytest.raises(InvalidValue):
        bw.write_code("12")


def test_fixed_width_values_roundtrip():
    bw = BitWriter()
    bw.write_bit(1)
    bw.write_byte(200)
    bw.write_short(-2)
    bw.write_int(-123456)
    bw.write_long(2 ** 63 - 1)
    bw.write_float(1.5)
    bw.write_double(math.pi)
    bw.write_string("Hi")
    bw.flush()

    br = BitReader(bw.getvalue())
    assert br.read_bit() == 1
    assert br.read_byte() == 200
    assert br.read_short() == -2
    assert br.read_int() == -123456
    assert br.read_long() == 2 ** 63 - 1
    assert br.read_float() == 1.5
    assert br.read_double() == math.pi
    assert br.read_char() + br.read_char() == "Hi"


def test_write_char_rejects_wide_character():
    bw = BitWriter()
    with pytest.raises(InvalidValue):
        bw.write_char("Δ")
    bw.write_char("Δ", 16)


class RecordingSink(io.BytesIO):
    """In-memory sink remembering its contents at close time."""

    final = None

    def close(self):
        self.final = self.getvalue()
        super().close()


def test_close_flushes_and_blocks_writes():
    sink = RecordingSink()
    bw = BitWriter(sink)
    bw.write_bits(0b11, 2)
    bw.close()
    assert sink.final == bytes([0b11000000])
    assert sink.closed
    bw.close()
    bw.flush()
    with pytest.raises(ValueError):
        bw.write_bit(0)


def test_context_manager_closes_sink():
    sink = io.BytesIO()
    with BitWriter(sink) as bw:
        bw.write_byte(7)
    assert sink.closed


def test_sink_oserror_becomes_iofailure():
    class BrokenSink:
        def write(self, data):
            raise OSError("disk full")

    bw = BitWriter(BrokenSink())
    bw.write_byte(1)
    with pytest.raises(IOFailure) as excinfo:
        bw.flush()
    assert isinstance(excinfo.value.__cause__, OSError)


def test_bitreader_read_bits_and_alignment():
    data = bytes([0b11001010, 0xFF, 0x00])
    br = BitReader(data)
    assert br.read_bits(3) == 0b110
    assert br.read_bits(5) == 0b01010
    assert br.read_bits(8) == 0xFF
    assert br.read_remaining_bytes() == b"\x00"
    assert br.exhausted


def test_bitreader_end_of_stream():
    br = BitReader(b"\xF0")
    br.read_bits(8)
    with pytest.raises(EndOfStream):
        br.read_bit()
    with pytest.raises(EOFError):
        br.read_bits(1)


def test_failed_read_bits_consumes_nothing():
    br = BitReader(b"\xF0")
    with pytest.raises(EndOfStream):
        _ = br.read_bits(9)
    assert br.bits_read == 0
    assert br.read_bits(8) == 0xF0
    assert br.exhausted


def test_read_bits_spanning_chunks(monkeypatch):
    monkeypatch.setattr(BitReader, "CHUNK_SIZE", 1)
    br = BitReader(b"\x12\x34\x56")
    br.read_bit()
    with pytest.raises(EndOfStream):
        br.read_bits(24)
    assert br.read_bits(23) == 0x123456 & 0x7FFFFF
    assert br.exhausted


def test_bitreader_empty_source_is_exhausted():
    br = BitReader(b"")
    assert br.is_exhausted()
    assert list(br) == []
    assert br.read_remaining_text() == ""


def test_bitreader_iterates_bits_from_file_object():
    br = BitReader(io.BytesIO(b"\xA0"))
    assert list(br) == [1, 0, 1, 0, 0, 0, 0, 0]
    assert br.bits_read == 8


def test_read_remaining_text_requires_alignment():
    br = BitReader(b"abc")
    br.read_bit()
    with pytest.raises(NotByteAligned):
        br.read_remaining_text()


def test_read_remaining_text_across_chunks(monkeypatch):
    monkeypatch.setattr(BitReader, "CHUNK_SIZE", 2)
    br = BitReader(b"xhello")
    assert br.read_char() == "x"
    assert br.read_remaining_text() == "hello"
    assert br.bits_read == 48


def test_read_bits_validates_width():
    br = BitReader(b"\x00" * 16)
    with pytest.raises(InvalidWidth):
        br.read_bits(0)
    with pytest.raises(InvalidWidth):
        br.read_bits(65)
    assert br.read_bits(64) == 0


def test_source_oserror_becomes_iofailure():
    class BrokenSource:
        def read(self, n):
            raise OSError("connection reset")

    with pytest.raises(IOFailure):
        BitReader(BrokenSource())
