import logging
from typing import Callable, NamedTuple, Optional, Tuple

import freqtable
from bitops import BitReader, BitWriter
from errors import EmptyInput, EndOfStream, TrailingData, TraversalError
from huffman import build_tree

logger = logging.getLogger(__name__)

MAX_PADDING = 7  #: Zero bits a flush may append after the last code

ProgressCallback = Callable[[int, int], None]


class EncodeResult(NamedTuple):
    """Output of :meth:`Encoder.encode`.

    :ivar bits: Compressed payload, zero padded to a byte boundary.
    :ivar frequency_text: Serialized frequency table needed for decoding.
    :ivar bit_length: Payload length in bits, padding excluded.
    """

    bits: bytes
    frequency_text: str
    bit_length: int


class Encoder:
    """Huffman encoder.

    Every call builds its own frequency table, tree and code table, so
    one instance can be shared freely.
    """

    PROGRESS_STEP = 1 << 16  #: Input bytes between progress reports

    def encode(
        self,
        data: bytes,
        on_progress: Optional[ProgressCallback] = None,
    ) -> EncodeResult:
        """Compress ``data`` into a bit stream plus frequency metadata.

        :param data: Input bytes to compress.
        :type data: bytes
        :param on_progress: Optional callback ``on_progress(done, total)``
                            called with the number of input bytes coded.
        :type on_progress: Optional[Callable[[int, int], None]]
        :returns: Compressed bytes, frequency text and payload bit length.
        :rtype: EncodeResult
        :raises EmptyInput: If ``data`` is empty.
        """
        writer = BitWriter()
        frequency_text, bit_length = self._encode(data, writer, on_progress)
        return EncodeResult(writer.getvalue(), frequency_text, bit_length)

    def encode_to(
        self,
        data: bytes,
        sink,
        on_progress: Optional[ProgressCallback] = None,
    ) -> Tuple[str, int]:
        """Compress ``data`` straight into a binary ``sink``.

        The sink is flushed but left open.

        :param data: Input bytes to compress.
        :type data: bytes
        :param sink: Binary file-like object receiving the payload.
        :param on_progress: Optional callback ``on_progress(done, total)``.
        :type on_progress: Optional[Callable[[int, int], None]]
        :returns: Frequency text and payload bit length.
        :rtype: Tuple[str, int]
        :raises EmptyInput: If ``data`` is empty.
        :raises IOFailure: If writing to ``sink`` fails.
        """
        return self._encode(data, BitWriter(sink), on_progress)

    def _encode(self, data, writer: BitWriter, on_progress) -> Tuple[str, int]:
        if not data:
            raise EmptyInput("Cannot encode empty input")

        table = freqtable.count_frequencies(data)
        tree = build_tree(table)
        frequency_text = freqtable.serialize(table)
        codes = tree.codes

        total = len(data)
        for i, symbol in enumerate(data, start=1):
            writer.write_code(codes[symbol])
            if on_progress is not None and i % self.PROGRESS_STEP == 0:
                on_progress(i, total)
        writer.flush()

        if on_progress is not None:
            on_progress(total, total)

        logger.info(
            "Encoded %d bytes (%d distinct) into %d bits",
            total, len(table), writer.bits_written,
        )
        return frequency_text, writer.bits_written


class Decoder:
    """Huffman decoder walking a tree rebuilt from frequency metadata."""

    PROGRESS_STEP = 1 << 16  #: Output symbols between progress reports

    def decode(
        self,
        bits,
        frequency_text: str,
        on_progress: Optional[ProgressCallback] = None,
    ) -> bytes:
        """Decompress a bit stream produced by :class:`Encoder`.

        Bits are consumed until the source is exhausted. Once every symbol
        counted in the frequency table is emitted, the leftover bits are
        treated as padding.

        :param bits: Compressed bytes or a binary file-like object.
        :param frequency_text: Serialized frequency table.
        :type frequency_text: str
        :param on_progress: Optional callback ``on_progress(done, total)``
                            called with the number of symbols decoded.
        :type on_progress: Optional[Callable[[int, int], None]]
        :returns: Original uncompressed bytes.
        :rtype: bytes
        :raises MalformedEntry: If ``frequency_text`` cannot be parsed.
        :raises EmptyInput: If the frequency table is empty.
        :raises EndOfStream: If the stream ends before every symbol is decoded.
        :raises TraversalError: If the walk reaches a missing child.
        :raises TrailingData: If the bits after the last symbol are not
            0-7 zero padding bits.
        """
        table = freqtable.deserialize(frequency_text)
        if not table:
            raise EmptyInput("Frequency table is empty")
        total = freqtable.total_symbols(table)
        root = build_tree(table).root
        reader = BitReader(bits)

        if root.is_leaf:
            # Single-symbol alphabet: codes are empty, the payload carries no bits.
            if not reader.exhausted:
                raise TrailingData(
                    "Single-symbol table expects an empty compressed stream"
                )
            if on_progress is not None:
                on_progress(total, total)
            return bytes([root.symbol]) * total

        output = bytearray()
        current = root
        while not reader.exhausted and len(output) < total:
            current = current.right if reader.read_bit() else current.left
            if current is None:
                raise TraversalError(
                    f"Missing child after {reader.bits_read} bits"
                )
            if current.is_leaf:
                output.append(current.symbol)
                current = root
                if on_progress is not None and len(output) % self.PROGRESS_STEP == 0:
                    on_progress(len(output), total)

        if len(output) < total:
            raise EndOfStream(
                f"Compressed stream ended after {len(output)} of {total} symbols"
            )

        padding = 0
        for bit in reader:
            padding += 1
            if bit or padding > MAX_PADDING:
                raise TrailingData(
                    f"Unexpected data after {total} symbols "
                    f"(bit {reader.bits_read})"
                )
        logger.debug("Discarded %d padding bits", padding)

        if on_progress is not None:
            on_progress(total, total)
        logger.info("Decoded %d bytes from %d bits", total, reader.bits_read)
        return bytes(output)


def encode(data: bytes) -> EncodeResult:
    return Encoder().encode(data)


def decode(bits, frequency_text: str) -> bytes:
    return Decoder().decode(bits, frequency_text)
