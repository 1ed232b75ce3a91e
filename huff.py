#Brad Arrington
import io
import sys
from typing import BinaryIO, List, Optional, TextIO

from bitio import BitFile, EndOfBitFile, MAX_BIT_WIDTH

END_OF_STREAM = 256
SYMBOL_COUNT = END_OF_STREAM + 1
NODE_TABLE_COUNT = SYMBOL_COUNT * 2
MAX_WEIGHT = 0xFF
BLOCK_SIZE = 4096
COMPRESSION_NAME = "static order 0 model with Huffman coding"
USAGE = "{compress|expand} infile outfile [-d]\n\nSpecifying -d will dump the modeling data\n"


class ModelError(RuntimeError):
    """The model and the data disagree; a defect, not bad input."""


class Node:
    __slots__ = ['count', 'saved_count', 'child_0', 'child_1']

    def __init__(self):
        self.count = 0
        # Only kept for print_model; count is zeroed as the tree grows.
        self.saved_count = 0
        self.child_0 = 0
        self.child_1 = 0


class Code:
    __slots__ = ['code', 'code_bits']

    def __init__(self, code: int = 0, code_bits: int = 0):
        self.code = code
        self.code_bits = code_bits

    def __eq__(self, other):
        if not isinstance(other, Code):
            return NotImplemented
        return self.code == other.code and self.code_bits == other.code_bits

    def __repr__(self):
        return f"Code({self.code:0{max(self.code_bits, 1)}b}, {self.code_bits})"


def new_node_table() -> List[Node]:
    return [Node() for _ in range(NODE_TABLE_COUNT)]


def compress_file(input_file: BinaryIO, output_bit_file: BitFile, debug: bool = False,
                  out: Optional[TextIO] = None):
    """Run both passes over input_file and write header plus payload.

    A forward-only input is read into memory first so it can be counted
    and then encoded.
    """
    if not input_file.seekable():
        input_file = io.BytesIO(input_file.read())

    counts = [0] * 256
    nodes = new_node_table()
    codes: List[Optional[Code]] = [None] * SYMBOL_COUNT

    count_bytes(input_file, counts)
    scale_counts(counts, nodes)
    output_counts(output_bit_file, nodes)
    root_node = build_tree(nodes)
    convert_tree_to_code(nodes, codes, 0, 0, root_node)

    if debug:
        print_model(nodes, codes, out)

    compress_data(input_file, output_bit_file, codes)
    output_bit_file.flush_bits()


def expand_file(input_bit_file: BitFile, output_file: BinaryIO, debug: bool = False,
                out: Optional[TextIO] = None):
    nodes = new_node_table()

    input_counts(input_bit_file, nodes)
    root_node = build_tree(nodes)

    if debug:
        print_model(nodes, None, out)

    expand_data(input_bit_file, output_file, nodes, root_node)


def count_bytes(input_file: BinaryIO, counts: List[int]):
    """Tally every byte value from the current position to EOF, then seek back."""
    input_marker = input_file.tell()
    while True:
        block = input_file.read(BLOCK_SIZE)
        if not block:
            break
        for c in block:
            counts[c] += 1
    input_file.seek(input_marker)


def scale_counts(counts: List[int], nodes: List[Node]):
    """Squeeze the raw counts into 8-bit weights on nodes[0..256].

    A count that is nonzero never scales down to zero. An empty input gets
    a weight of 1 on symbol 0 so there are always two leaves, and
    END_OF_STREAM is always 1.
    """
    max_count = max(counts)
    if max_count == 0:
        counts[0] = 1
        max_count = 1

    divisor = max_count // MAX_WEIGHT + 1

    for i in range(256):
        scaled_count = counts[i] // divisor
        if scaled_count == 0 and counts[i] != 0:
            scaled_count = 1
        nodes[i].count = scaled_count

    nodes[END_OF_STREAM].count = 1


def _next_nonzero(nodes: List[Node], start: int) -> int:
    while start < 256 and nodes[start].count == 0:
        start += 1
    return start


def output_counts(output_bit_file: BitFile, nodes: List[Node]):
    """Write the weights of symbols 0..255 as runs, then a 0 terminator.

    Each run is ``first, last, count[first] .. count[last]`` and covers a
    maximal stretch of nonzero weights. A run can only start at 0 if it is
    the first one, so a 0 in the ``first`` slot of any later run ends the
    table. END_OF_STREAM is never stored.
    """
    first = _next_nonzero(nodes, 0)

    while first < 256:
        last = first
        while last + 1 < 256 and nodes[last + 1].count != 0:
            last += 1
        next_ = _next_nonzero(nodes, last + 1)

        output_bit_file.output_byte(first)
        output_bit_file.output_byte(last)
        for i in range(first, last + 1):
            output_bit_file.output_byte(nodes[i].count)

        first = next_

    output_bit_file.output_byte(0)


def input_counts(input_bit_file: BitFile, nodes: List[Node]):
    """Read the table written by output_counts back into nodes[0..256].

    The first run is always read even when it starts at symbol 0. The one
    exception is a header holding nothing but the terminator, which shows up
    as the source ending right after that single 0 byte.
    """
    for i in range(256):
        nodes[i].count = 0

    first = input_bit_file.input_byte()
    if first == 0:
        try:
            last = input_bit_file.input_byte()
        except EndOfBitFile:
            nodes[END_OF_STREAM].count = 1
            return
    else:
        last = input_bit_file.input_byte()

    while True:
        if last < first:
            raise ModelError(f"Corrupt count run: first={first} last={last}")
        for i in range(first, last + 1):
            nodes[i].count = input_bit_file.input_byte()

        first = input_bit_file.input_byte()
        if first == 0:
            break
        last = input_bit_file.input_byte()

    nodes[END_OF_STREAM].count = 1


def build_tree(nodes: List[Node]) -> int:
    """Merge the two lightest live nodes until one is left; return its index.

    Live nodes are the ones with a nonzero count. The scan runs in index
    order with strict comparisons, so among equal weights the lower index
    wins, which keeps the code assignment reproducible. ``None`` stands for
    "no candidate yet"; if no second candidate turns up, the single
    remaining node is the root.
    """
    next_free = SYMBOL_COUNT

    while True:
        min_1 = None
        min_2 = None

        for i in range(next_free):
            count = nodes[i].count
            if count == 0:
                continue
            if min_1 is None or count < nodes[min_1].count:
                min_2 = min_1
                min_1 = i
            elif min_2 is None or count < nodes[min_2].count:
                min_2 = i

        if min_2 is None:
            break

        if next_free >= NODE_TABLE_COUNT:
            raise ModelError("Node table overflow while building the tree")

        nodes[next_free].count = nodes[min_1].count + nodes[min_2].count

        nodes[min_1].saved_count = nodes[min_1].count
        nodes[min_1].count = 0
        nodes[min_2].saved_count = nodes[min_2].count
        nodes[min_2].count = 0

        nodes[next_free].child_0 = min_1
        nodes[next_free].child_1 = min_2

        next_free += 1

    if min_1 is None:
        raise ModelError("Cannot build a tree with no weighted symbols")

    nodes[min_1].saved_count = nodes[min_1].count
    return min_1


def convert_tree_to_code(nodes: List[Node], codes: List[Optional[Code]],
                         code_so_far: int, bits: int, node: int):
    if node <= END_OF_STREAM:
        codes[node] = Code(code_so_far, bits)
        return

    code_so_far <<= 1
    bits += 1
    convert_tree_to_code(nodes, codes, code_so_far, bits, nodes[node].child_0)
    convert_tree_to_code(nodes, codes, code_so_far | 1, bits, nodes[node].child_1)


def output_code(output_bit_file: BitFile, code: Code):
    """Send a code of any length, MAX_BIT_WIDTH bits at a time."""
    remaining = code.code_bits
    while remaining > MAX_BIT_WIDTH:
        remaining -= MAX_BIT_WIDTH
        output_bit_file.output_bits(code.code >> remaining, MAX_BIT_WIDTH)
    output_bit_file.output_bits(code.code, remaining)


def compress_data(input_file: BinaryIO, output_bit_file: BitFile, codes: List[Optional[Code]]):
    while True:
        block = input_file.read(BLOCK_SIZE)
        if not block:
            break
        for c in block:
            code = codes[c]
            if code is None:
                raise ModelError(f"No Huffman code for byte {c}")
            output_code(output_bit_file, code)

    code = codes[END_OF_STREAM]
    if code is None:
        raise ModelError("No Huffman code for END_OF_STREAM")
    output_code(output_bit_file, code)


def expand_data(input_bit_file: BitFile, output_file: BinaryIO, nodes: List[Node], root_node: int):
    while True:
        node = root_node

        while node > END_OF_STREAM:
            if input_bit_file.input_bit():
                node = nodes[node].child_1
            else:
                node = nodes[node].child_0

        if node == END_OF_STREAM:
            break

        output_file.write(bytes([node]))


def format_char(c: int) -> str:
    if 0x20 <= c < 127:
        return f"'{chr(c)}'"
    return f"{c:3d}"


def format_binary(code: int, bits: int) -> str:
    if bits == 0:
        return ""
    return f"{code:0{bits}b}"


def print_model(nodes: List[Node], codes: Optional[List[Optional[Code]]], out: Optional[TextIO] = None):
    """Dump every node that took part in the tree, with leaf codes if known."""
    if out is None:
        out = sys.stdout
    for i in range(NODE_TABLE_COUNT):
        if nodes[i].saved_count == 0:
            continue
        line = (f"node={format_char(i)}  count={nodes[i].saved_count:3d}"
                f"  child_0={format_char(nodes[i].child_0)}"
                f"  child_1={format_char(nodes[i].child_1)}")
        if codes is not None and i <= END_OF_STREAM and codes[i] is not None:
            line += f"  Huffman code={format_binary(codes[i].code, codes[i].code_bits)}"
        out.write(line + "\n")
