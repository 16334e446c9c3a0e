import argparse
import logging
import sys
from typing import List, Optional

from codec import Decoder, Encoder
from errors import EmptyInput, HuffmanError
from freqtable import deserialize
from huffman import HuffmanNode, build_tree

logger = logging.getLogger("huffcodec")


def get_parser():
    """Create and configure the CLI argument parser.

    :returns: Configured argument parser.
    :rtype: argparse.ArgumentParser
    """
    parser = argparse.ArgumentParser(
        prog="huffcodec",
        description="Huffman coding compressor with a separate frequency file",
    )
    parser.add_argument(
        "-v",
        "--verbose",
        action="count",
        default=0,
        help="Log progress details (-v for info, -vv for debug)",
    )
    subparsers = parser.add_subparsers(
        title="subcommands", dest="cmd", required=True
    )

    encode = subparsers.add_parser(
        "encode", aliases=["e"], help="Compress a file"
    )
    encode.add_argument("input", help="File to compress")
    encode.add_argument(
        "-o", "--output", required=True, help="Compressed output file path"
    )

    decode = subparsers.add_parser(
        "decode", aliases=["d"], help="Decompress a file"
    )
    decode.add_argument("input", help="Compressed file to decode")
    decode.add_argument(
        "-o", "--output", required=True, help="Decoded output file path"
    )

    for sub in (encode, decode):
        sub.add_argument(
            "-f",
            "--freq",
            required=True,
            help="Frequency table file (written on encode, read on decode)",
        )
        sub.add_argument(
            "--show-tree",
            action="store_true",
            help="Print the Huffman tree used for coding",
        )
        sub.add_argument(
            "-P",
            "--no-progress",
            action="store_true",
            help="Hide progress output",
        )

    return parser


def _print_progress(line: str) -> None:
    """Render and flush a single progress line in-place (carriage return).

    :param line: The textual progress line to display.
    :type line: str
    :returns: None
    :rtype: None
    """
    sys.stdout.write("\r" + line)
    sys.stdout.flush()


def _fmt_pct(done: int, total: int) -> str:
    """Format a completion percentage string like ``12.34%``.

    :param done: Units completed.
    :type done: int
    :param total: Total units to complete.
    :type total: int
    :returns: Percentage.
    :rtype: str
    """
    if total <= 0:
        return "0%"
    pct = 100.0 * (done / float(total))
    return f"{pct:6.2f}%"


def _fmt_bytes(n: int) -> str:
    """Format a byte count into a human-readable string.

    :param n: Number of bytes.
    :type n: int
    :returns: Human-readable string.
    :rtype: str
    """
    for unit in ['', 'Ki', 'Mi', 'Gi', 'Ti']:
        if abs(n) < 1024:
            return f"{n:.2f} {unit}B"
        n /= 1024
    return f"{n:.2f} PiB"


class Progress:
    """Callable progress reporter printing whole-percent updates.

    :ivar label: Action label (e.g. "Encoding" or "Decoding").
    :type label: str
    :ivar path: File name displayed next to the percentage.
    :type path: str
    """

    def __init__(self, label: str, path: str) -> None:
        self.label = label
        self.path = path
        self._last_reported = -1

    def __call__(self, done: int, total: int) -> None:
        """Update the progress line.

        :param done: Units processed so far.
        :type done: int
        :param total: Total units.
        :type total: int
        :returns: None
        :rtype: None
        """
        if total <= 0:
            return
        percent_bucket = int((done * 100) / total)
        if percent_bucket == self._last_reported:
            return
        self._last_reported = percent_bucket
        _print_progress(f"{self.label} {self.path}  {_fmt_pct(done, total)}")


def _leaf_label(node: HuffmanNode) -> str:
    return f"{chr(node.symbol)!r}({node.freq})"


def format_tree(root: HuffmanNode) -> List[str]:
    """Lay out a tree as text lines.

    Right branches extend horizontally through ``*-`` joints; left
    branches hang below their parent behind ``| `` rails.

    :param root: Root of the tree.
    :type root: HuffmanNode
    :returns: Rendered lines.
    :rtype: List[str]
    """
    lines: List[str] = []
    # (node, column where the node's text starts)
    stack = [(root, 0)]
    while stack:
        node, indent = stack.pop()
        prefix = "| " * indent
        row = ""
        while not node.is_leaf:
            row += "*-"
            stack.append((node.left, indent + len(row) // 2 - 1))
            node = node.right
        lines.append(prefix + row + _leaf_label(node))
    return lines


def _show_tree(root: HuffmanNode, when: str) -> None:
    print(f"Huffman tree created during {when}:\n")
    for line in format_tree(root):
        print(line)
    print()


def encode_file(
    input_path: str,
    output_path: str,
    freq_path: str,
    show_tree: bool = False,
    hide_progress: bool = False,
) -> int:
    """Compress ``input_path`` into ``output_path`` plus a frequency file.

    :param input_path: File to compress.
    :type input_path: str
    :param output_path: Destination for the bit stream.
    :type output_path: str
    :param freq_path: Destination for the frequency table text.
    :type freq_path: str
    :param show_tree: Whether to print the Huffman tree.
    :type show_tree: bool
    :param hide_progress: Whether to suppress progress output.
    :type hide_progress: bool
    :returns: Number of payload bits written.
    :rtype: int
    :raises FileNotFoundError: If ``input_path`` does not exist.
    :raises EmptyInput: If ``input_path`` is empty.
    """
    with open(input_path, "rb") as f:
        data = f.read()
    if not data:
        raise EmptyInput(f"Nothing to encode in {input_path}")

    on_prog = None if hide_progress else Progress("Encoding", input_path)
    with open(output_path, "wb") as out:
        freq_text, bit_length = Encoder().encode_to(
            data, out, on_progress=on_prog
        )
    with open(freq_path, "w", encoding="ascii", newline="\n") as out:
        out.write(freq_text)
    if not hide_progress:
        sys.stdout.write("\n")
        sys.stdout.flush()

    if show_tree:
        _show_tree(build_tree(deserialize(freq_text)).root, "encoding")

    compressed = (bit_length + 7) // 8
    print("Size before compression: ", _fmt_bytes(len(data)))
    print("Size after compression: ", _fmt_bytes(compressed))
    if compressed:
        print(f"Compression ratio: {len(data) / compressed:.2f}")
    logger.info("Wrote %s and %s", output_path, freq_path)
    return bit_length


def decode_file(
    input_path: str,
    output_path: str,
    freq_path: str,
    show_tree: bool = False,
    hide_progress: bool = False,
) -> int:
    """Decompress ``input_path`` using the table in ``freq_path``.

    :param input_path: Compressed file.
    :type input_path: str
    :param output_path: Destination for the decoded bytes.
    :type output_path: str
    :param freq_path: Frequency table written by :func:`encode_file`.
    :type freq_path: str
    :param show_tree: Whether to print the Huffman tree.
    :type show_tree: bool
    :param hide_progress: Whether to suppress progress output.
    :type hide_progress: bool
    :returns: Number of bytes written to ``output_path``.
    :rtype: int
    :raises FileNotFoundError: If an input file does not exist.
    :raises MalformedEntry: If the frequency file is corrupt.
    """
    with open(freq_path, "r", encoding="latin-1", newline="") as f:
        freq_text = f.read()

    if show_tree:
        _show_tree(build_tree(deserialize(freq_text)).root, "decoding")

    on_prog = None if hide_progress else Progress("Decoding", input_path)
    with open(input_path, "rb") as f:
        data = Decoder().decode(f, freq_text, on_progress=on_prog)
    if not hide_progress:
        sys.stdout.write("\n")
        sys.stdout.flush()

    with open(output_path, "wb") as out:
        out.write(data)
    logger.info("Wrote %d bytes to %s", len(data), output_path)
    return len(data)


def _log_level(verbosity: int) -> int:
    if verbosity >= 2:
        return logging.DEBUG
    if verbosity == 1:
        return logging.INFO
    return logging.WARNING


def main(argv: Optional[List[str]] = None) -> int:
    """Entry point for the CLI tool.

    :param argv: Arguments to parse instead of ``sys.argv``.
    :type argv: List[str] | None
    :returns: Process exit status.
    :rtype: int
    """
    parser = get_parser()
    args = parser.parse_args(argv)

    logging.basicConfig(
        level=_log_level(args.verbose),
        format="%(asctime)s - %(levelname)s - %(message)s",
    )

    if args.cmd in ["encode", "e"]:
        action = encode_file
    else:
        action = decode_file

    try:
        action(
            args.input,
            args.output,
            args.freq,
            show_tree=args.show_tree,
            hide_progress=args.no_progress,
        )
    except FileNotFoundError as e:
        print(f"[!] File not found: {e.filename}")
        return 1
    except HuffmanError as e:
        print(f"[!] {type(e).__name__}: {e}")
        return 1
    except PermissionError as e:
        print(f"[!] Permission error happened while accessing {e.filename}")
        return 1
    return 0


if __name__ == "__main__":
    sys.exit(main())
