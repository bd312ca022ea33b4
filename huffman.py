import logging
from typing import Dict, Iterable, List, Optional, Tuple

from errors import CorruptTreeError
from fixed_width import WIDTH, to_binary, to_decimal
from pqueue import TieBreakingPriorityQueue

ALPH_SIZE = 256  #: Number of byte values
PSEUDO_EOF = 256  #: End-of-stream symbol, one past the last byte value

logger = logging.getLogger(__name__)


class HuffmanNode:
    """Node for a standard binary Huffman tree.

    :ivar symbol: The symbol (byte value or ``PSEUDO_EOF``) stored at a leaf;
                  ``None`` for internal nodes.
    :type symbol: int | None
    :ivar weight: Frequency of the leaf, or the summed weight of a merged
                  node. Nodes rebuilt from a serialized tree carry ``0``.
    :type weight: int
    :ivar left: Left child node.
    :type left: HuffmanNode | None
    :ivar right: Right child node.
    :type right: HuffmanNode | None
    """

    def __init__(self, symbol=None, weight=0, left=None, right=None):
        """Create a Huffman node.

        :param symbol: Symbol value for leaf nodes; ``None`` for internal nodes.
        :type symbol: int | None
        :param int weight: Weight used for ordering in the priority queue.
        :param left: Left child node, if any.
        :type left: HuffmanNode|None
        :param right: Right child node, if any.
        :type right: HuffmanNode|None
        :returns: None
        :rtype: None
        """
        self.symbol = symbol
        self.weight = weight
        self.left = left
        self.right = right

    def __lt__(self, other):
        """Order nodes by weight (for priority queues).

        :param other: Another node to compare with.
        :type other: HuffmanNode
        :returns: ``True`` if this node's weight is less than ``other``'s.
        :rtype: bool
        """
        return self.weight < other.weight

    def __repr__(self):
        if self.is_leaf():
            return f"HuffmanNode(symbol={self.symbol}, weight={self.weight})"
        return f"HuffmanNode(weight={self.weight})"

    def is_leaf(self) -> bool:
        return self.left is None and self.right is None


def count_frequencies(data: Iterable[int]) -> List[int]:
    """Count byte occurrences into a dense table indexed by symbol.

    The table has ``ALPH_SIZE + 1`` slots; the ``PSEUDO_EOF`` slot stays 0.

    :param data: Byte values to count.
    :type data: Iterable[int]
    :returns: Occurrence count per symbol.
    :rtype: List[int]
    """
    freq = [0] * (ALPH_SIZE + 1)
    for byte in data:
        freq[byte] += 1
    return freq


class HuffmanTree:
    """Huffman tree with code derivation and a preorder bit serialization.

    :ivar root: Root node of the tree.
    :type root: HuffmanNode
    """

    def __init__(self, root: HuffmanNode):
        self.root = root

    @classmethod
    def build(cls, freq: List[int]) -> "HuffmanTree":
        """Build a tree from a dense frequency table.

        Leaves are queued in ascending symbol order, one per symbol with a
        positive count. ``PSEUDO_EOF`` always gets a leaf of weight 1. The two
        lightest nodes are merged (first extracted becomes the left child)
        until a single root remains. Ties go to the node queued first.

        :param freq: Counts indexed by symbol; a missing ``PSEUDO_EOF`` slot
                     is treated as 0.
        :type freq: List[int]
        :returns: The built tree.
        :rtype: HuffmanTree
        """
        queue = TieBreakingPriorityQueue()
        for symbol in range(ALPH_SIZE + 1):
            count = freq[symbol] if symbol < len(freq) else 0
            if symbol == PSEUDO_EOF:
                queue.insert(HuffmanNode(symbol, 1))
            elif count > 0:
                queue.insert(HuffmanNode(symbol, count))
        assert queue.size() > 0
        logger.debug("Building Huffman tree from %d leaves", queue.size())

        while queue.size() > 1:
            left = queue.extract_min()
            right = queue.extract_min()
            queue.insert(
                HuffmanNode(weight=left.weight + right.weight, left=left, right=right)
            )
        return cls(queue.extract_min())

    @classmethod
    def deserialize(cls, bits: str, length: Optional[int] = None) -> "HuffmanTree":
        """Rebuild a tree from the output of :meth:`serialize`.

        :param bits: String of ``'0'``/``'1'`` characters.
        :type bits: str
        :param length: Number of characters of ``bits`` that describe the
                       tree; defaults to ``len(bits)``.
        :type length: int | None
        :returns: The rebuilt tree.
        :rtype: HuffmanTree
        :raises CorruptTreeError: On a tag other than ``0``/``1``, a
                                  description that ends early, or leftover bits.
        """
        if length is None:
            length = len(bits)
        if length > len(bits):
            raise CorruptTreeError(
                f"Tree length {length} exceeds the {len(bits)} bits supplied"
            )
        root, pos = _read_nodes(bits, length)
        if pos != length:
            raise CorruptTreeError(
                f"Tree description has {length - pos} unused bits"
            )
        return cls(root)

    def codes(self) -> Dict[int, str]:
        """Derive the symbol to bit-string table by preorder traversal.

        A tree consisting of a single leaf assigns that leaf the code ``"0"``.

        :returns: Mapping from symbol to its code.
        :rtype: Dict[int, str]
        """
        table: Dict[int, str] = {}
        if self.root.is_leaf():
            table[self.root.symbol] = "0"
            return table
        self._collect_codes(self.root, "", table)
        return table

    def _collect_codes(self, node: HuffmanNode, path: str, table: Dict[int, str]):
        if node.is_leaf():
            table[node.symbol] = path
        else:
            self._collect_codes(node.left, path + "0", table)
            self._collect_codes(node.right, path + "1", table)

    def serialize(self) -> str:
        """Preorder bit description of the tree.

        Internal nodes emit ``0`` and leaves emit ``1`` followed by the
        nine-bit symbol value.

        :returns: String of ``'0'``/``'1'`` characters.
        :rtype: str
        """
        parts: List[str] = []
        self._emit(self.root, parts)
        return "".join(parts)

    def _emit(self, node: HuffmanNode, parts: List[str]):
        if node.is_leaf():
            parts.append("1")
            parts.append(to_binary(node.symbol))
        else:
            parts.append("0")
            self._emit(node.left, parts)
            self._emit(node.right, parts)

    def leaves(self) -> List[HuffmanNode]:
        """Leaves in left-to-right order."""
        found: List[HuffmanNode] = []
        stack = [self.root]
        while stack:
            node = stack.pop()
            if node.is_leaf():
                found.append(node)
            else:
                stack.append(node.right)
                stack.append(node.left)
        return found

    def format(self) -> str:
        """Render the tree sideways, right subtree on top.

        Each level indents by two spaces; leaves show their symbol and
        internal nodes show ``*``.

        :returns: Multi-line text, one node per line.
        :rtype: str
        """
        lines: List[str] = []
        self._format(self.root, "", lines)
        return "\n".join(lines)

    def _format(self, node: Optional[HuffmanNode], spaces: str, lines: List[str]):
        if node is None:
            return
        self._format(node.right, spaces + "  ", lines)
        lines.append(spaces + (str(node.symbol) if node.is_leaf() else "*"))
        self._format(node.left, spaces + "  ", lines)


def _read_nodes(bits: str, length: int) -> Tuple[HuffmanNode, int]:
    """Rebuild a preorder tree description with an explicit stack.

    ``pending`` holds internal nodes still waiting for a child; each new node
    becomes the left child of the top entry, or its right child, which
    completes that entry.

    :returns: The root and the number of bits consumed.
    :rtype: Tuple[HuffmanNode, int]
    """
    pos = 0
    root = None
    pending: List[HuffmanNode] = []
    while True:
        if pos >= length:
            raise CorruptTreeError("Tree description ends inside a node")
        tag = bits[pos]
        pos += 1
        if tag == "0":
            node = HuffmanNode(weight=0)
        elif tag == "1":
            if pos + WIDTH > length:
                raise CorruptTreeError("Tree description ends inside a leaf value")
            node = HuffmanNode(to_decimal(bits[pos:pos + WIDTH]), 0)
            pos += WIDTH
        else:
            raise CorruptTreeError(f"Corrupted bit {tag!r} at position {pos - 1}")

        if not pending:
            root = node
        elif pending[-1].left is None:
            pending[-1].left = node
        else:
            pending.pop().right = node

        if tag == "0":
            pending.append(node)
        elif not pending:
            return root, pos
