from collections import Counter
from typing import Dict

from errors import MalformedEntry

SYMBOL_WIDTH = 8  #: Number of binary digits used for a symbol
SEPARATOR = ":"

FrequencyTable = Dict[int, int]


def count_frequencies(data: bytes) -> FrequencyTable:
    """Count symbol occurrences in a single scan of ``data``.

    :param data: Input bytes.
    :type data: bytes
    :returns: Mapping from symbol to count, in order of first appearance.
    :rtype: Dict[int, int]
    """
    return dict(Counter(data))


def total_symbols(table: FrequencyTable) -> int:
    return sum(table.values())


def serialize(table: FrequencyTable) -> str:
    """Serialize a frequency table into its line-oriented text form.

    Each entry becomes ``<8-digit binary symbol>:<decimal count>\\n``,
    in table order.

    :param table: Mapping from symbol to count.
    :type table: Dict[int, int]
    :returns: Serialized text.
    :rtype: str
    :raises MalformedEntry: If a symbol is not a byte value or a count is
        not positive.
    """
    lines = []
    for lineno, (symbol, count) in enumerate(table.items(), start=1):
        if not 0 <= symbol < (1 << SYMBOL_WIDTH):
            raise MalformedEntry(f"symbol out of range: {symbol}", lineno)
        if count < 1:
            raise MalformedEntry(f"count must be positive: {count}", lineno)
        lines.append(f"{symbol:0{SYMBOL_WIDTH}b}{SEPARATOR}{count}\n")
    return "".join(lines)


def deserialize(text: str) -> FrequencyTable:
    """Parse text produced by :func:`serialize` back into a table.

    :param text: Serialized frequency table.
    :type text: str
    :returns: Mapping from symbol to count, in line order.
    :rtype: Dict[int, int]
    :raises MalformedEntry: If any line deviates from the format or a
        symbol is listed twice.
    """
    table: FrequencyTable = {}
    pos = 0
    lineno = 0
    while pos < len(text):
        lineno += 1
        digits = text[pos:pos + SYMBOL_WIDTH]
        if len(digits) != SYMBOL_WIDTH or any(c not in "01" for c in digits):
            raise MalformedEntry(f"bad symbol field {digits!r}", lineno)
        sep = pos + SYMBOL_WIDTH
        if text[sep:sep + 1] != SEPARATOR:
            raise MalformedEntry(
                f"expected {SEPARATOR!r} at offset {SYMBOL_WIDTH}", lineno
            )
        end = text.find("\n", sep + 1)
        if end == -1:
            raise MalformedEntry("entry is not terminated by a newline", lineno)
        count_field = text[sep + 1:end]
        if not (count_field.isascii() and count_field.isdigit()):
            raise MalformedEntry(f"bad count field {count_field!r}", lineno)
        try:
            count = int(count_field)
        except ValueError as e:
            raise MalformedEntry(f"count cannot be converted: {e}", lineno) from e
        if count < 1:
            raise MalformedEntry(f"count must be positive: {count}", lineno)
        symbol = int(digits, 2)
        if symbol in table:
            raise MalformedEntry(f"duplicate symbol {symbol}", lineno)
        table[symbol] = count
        pos = end + 1
    return table
