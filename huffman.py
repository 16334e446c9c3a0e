import heapq
import logging
from typing import Dict, List, NamedTuple, Optional, Tuple

from errors import EmptyInput
from freqtable import FrequencyTable

logger = logging.getLogger(__name__)

CodeTable = Dict[int, str]


class HuffmanNode:
    """Node for a standard binary Huffman tree.

    :ivar symbol: The byte stored at a leaf; ``None`` for internal nodes.
    :type symbol: int | None
    :ivar freq: Frequency (weight) of the subtree rooted at this node.
    :type freq: int
    :ivar left: Left child node.
    :type left: HuffmanNode | None
    :ivar right: Right child node.
    :type right: HuffmanNode | None
    :ivar order: Tie-break rank among nodes of equal frequency.
    :type order: int
    """

    __slots__ = ("symbol", "freq", "left", "right", "order")

    def __init__(self, symbol=None, freq=0, left=None, right=None, order=0):
        """Create a Huffman node.

        :param symbol: Symbol value for leaf nodes; ``None`` for internal nodes.
        :type symbol: int | None
        :param int freq: Frequency (weight) associated with this node.
        :param left: Left child node, if any.
        :type left: HuffmanNode|None
        :param right: Right child node, if any.
        :type right: HuffmanNode|None
        :param int order: Tie-break rank.
        :returns: None
        :rtype: None
        """
        self.symbol = symbol
        self.freq = freq
        self.left = left
        self.right = right
        self.order = order

    @classmethod
    def merge(cls, left: "HuffmanNode", right: "HuffmanNode", order: int):
        return cls(freq=left.freq + right.freq, left=left, right=right, order=order)

    @property
    def is_leaf(self) -> bool:
        return self.left is None and self.right is None

    def __lt__(self, other):
        """Order nodes by frequency, then by rank (for priority queues).

        :param other: Another node to compare with.
        :type other: HuffmanNode
        :returns: ``True`` if this node should be popped before ``other``.
        :rtype: bool
        """
        return (self.freq, self.order) < (other.freq, other.order)

    def __repr__(self):
        if self.is_leaf:
            return f"HuffmanNode(symbol={self.symbol!r}, freq={self.freq})"
        return f"HuffmanNode(freq={self.freq})"


class HuffmanTree(NamedTuple):
    """A built tree together with the code table derived from it."""

    root: HuffmanNode
    codes: CodeTable

    def encoded_bit_length(self, table: FrequencyTable) -> int:
        """Number of payload bits needed to code every symbol in ``table``."""
        return sum(count * len(self.codes[sym]) for sym, count in table.items())


def build_tree(frequencies: FrequencyTable) -> HuffmanTree:
    """Build a Huffman tree and its code table from symbol frequencies.

    Equal frequencies are resolved by rank: leaves rank by symbol value
    and merged nodes rank after every leaf, in creation order. The result
    depends only on the table contents, so the decoder rebuilds exactly
    the encoder's tree.

    A table with a single symbol yields a lone leaf as root, coded by the
    empty string.

    :param frequencies: Mapping from symbol to observed frequency.
    :type frequencies: Dict[int, int]
    :returns: Root node and code table.
    :rtype: HuffmanTree
    :raises EmptyInput: If ``frequencies`` is empty.
    """
    if not frequencies:
        raise EmptyInput("Cannot build a Huffman tree without symbols")

    heap: List[HuffmanNode] = [
        HuffmanNode(symbol=sym, freq=frequencies[sym], order=rank)
        for rank, sym in enumerate(sorted(frequencies))
    ]
    heapq.heapify(heap)

    if len(heap) == 1:
        root = heap[0]
        logger.debug("Single-symbol alphabet %r, no merge needed", root.symbol)
        return HuffmanTree(root, {root.symbol: ""})

    order = len(heap)
    while len(heap) > 1:
        left = heapq.heappop(heap)
        right = heapq.heappop(heap)
        heapq.heappush(heap, HuffmanNode.merge(left, right, order))
        order += 1

    root = heap[0]
    codes = build_codes(root)
    logger.debug(
        "Built Huffman tree: %d symbols, max code length %d",
        len(codes), max(len(c) for c in codes.values()),
    )
    return HuffmanTree(root, codes)


def build_codes(root: Optional[HuffmanNode]) -> CodeTable:
    """Derive codes by walking the tree, ``0`` going left and ``1`` right.

    :param root: Root of the Huffman tree.
    :type root: HuffmanNode | None
    :returns: Mapping from symbol to bit string.
    :rtype: Dict[int, str]
    """
    codes: CodeTable = {}
    if root is None:
        return codes

    stack: List[Tuple[HuffmanNode, str]] = [(root, "")]
    while stack:
        node, path = stack.pop()
        if node.is_leaf:
            codes[node.symbol] = path
            continue
        if node.right is not None:
            stack.append((node.right, path + "1"))
        if node.left is not None:
            stack.append((node.left, path + "0"))
    return codes
