class HuffmanError(Exception):
    """Base class for every failure raised by the codec."""


class EndOfStream(HuffmanError, EOFError):
    """Raised when reading past the last available bit."""


class InvalidWidth(HuffmanError, ValueError):
    """Raised when a bit width falls outside the supported range."""


class InvalidValue(HuffmanError, ValueError):
    """Raised when a value does not fit in the requested bit width."""


class NotByteAligned(HuffmanError, ValueError):
    """Raised when byte-oriented reads are attempted mid-byte."""


class MalformedEntry(HuffmanError, ValueError):
    """Raised when frequency metadata cannot be parsed or serialized.

    :ivar line: 1-based line number of the offending entry, if known.
    :type line: int | None
    """

    def __init__(self, message: str, line=None):
        if line is not None:
            message = f"line {line}: {message}"
        super().__init__(message)
        self.line = line


class EmptyInput(HuffmanError, ValueError):
    """Raised when there are no symbols to build a code from."""


class TraversalError(HuffmanError, RuntimeError):
    """Raised when the decoder reaches a node without the needed child."""


class IOFailure(HuffmanError, OSError):
    """Raised when the underlying byte source or sink fails."""


class TrailingData(HuffmanError, ValueError):
    """Raised when a compressed stream carries bits beyond its padding."""
