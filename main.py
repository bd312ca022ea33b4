import argparse
import logging
import os
import sys

from typing import List, Optional

from codec import HeaderFormat, HuffmanCodec
from errors import HuffError
from huffman import HuffmanTree, count_frequencies
from viewer import Viewer

FORMATS = {
    "counts": HeaderFormat.COUNTS,
    "tree": HeaderFormat.TREE,
}  #: CLI names of the supported header formats


def get_parser():
    """Create and configure the CLI argument parser.

    :returns: Configured argument parser.
    :rtype: argparse.ArgumentParser
    """
    parser = argparse.ArgumentParser(
        description="Static Huffman compressor for single files"
    )
    parser.add_argument(
        "-v", "--verbose", action="store_true", help="Enable debug logging"
    )
    subparsers = parser.add_subparsers(
        title="subcommands", dest="cmd", required=True
    )

    compress = subparsers.add_parser(
        "compress", aliases=["c"], help="Compress a file"
    )
    compress.add_argument("input", help="File to compress")
    compress.add_argument(
        "-o", "--output", required=True, help="Output file path"
    )
    compress.add_argument(
        "-f",
        "--format",
        choices=sorted(FORMATS),
        default="counts",
        help="Header format (default: counts)",
    )
    compress.add_argument(
        "--force",
        action="store_true",
        help="Write the output even if it is larger than the input",
    )
    compress.add_argument(
        "-P",
        "--no-progress",
        action="store_true",
        help="Hide progress output",
    )

    uncompress = subparsers.add_parser(
        "uncompress", aliases=["u"], help="Uncompress a file"
    )
    uncompress.add_argument("input", help="Compressed file")
    uncompress.add_argument(
        "-o", "--output", required=True, help="Output file path"
    )
    uncompress.add_argument(
        "-P",
        "--no-progress",
        action="store_true",
        help="Hide progress output",
    )

    tree = subparsers.add_parser(
        "tree", aliases=["t"], help="Print the Huffman tree and codes of a file"
    )
    tree.add_argument("input", help="File to analyse")

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


def _fmt_symbol(symbol: int) -> str:
    """Printable label for a symbol in the code listing."""
    if symbol == 256:
        return "EOF"
    if 32 <= symbol < 127:
        return repr(chr(symbol))
    return f"0x{symbol:02x}"


class ProgressLine:
    """Callable progress reporter for the codec's ``on_progress`` hook.

    Redraws only when the integer percentage changes.

    :ivar label: Action label (e.g., "Compressing" or "Uncompressing").
    :type label: str
    :ivar path: File name displayed next to the percentage.
    :type path: str
    """

    def __init__(self, label: str, path: str) -> None:
        """Initialize a progress reporter for one file.

        :param label: Action label.
        :type label: str
        :param path: File name to display.
        :type path: str
        :returns: None
        :rtype: None
        """
        self.label = label
        self.path = path
        self._last_reported = -1

    def __call__(self, done: int, total: int) -> None:
        """Update the progress display.

        :param done: Units processed.
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


class ConsoleViewer(Viewer):
    """Viewer printing codec messages for the CLI user."""

    def show_message(self, text: str) -> None:
        print(f"[!] {text}")

    def show_error(self, text: str) -> None:
        print(f"[!] Error: {text}", file=sys.stderr)

    def update(self, text: str) -> None:
        print(text)


def _remove_partial(path: str) -> None:
    """Delete an output file left behind by a failed operation."""
    if os.path.exists(path):
        os.remove(path)


def compress_file(
    input_path: str,
    output_path: str,
    header_format: int,
    force: bool,
    hide_progress: bool,
) -> int:
    """Compress ``input_path`` into ``output_path``.

    The output file is not created when compression would enlarge the data
    and ``force`` is not set.

    :param input_path: File to compress.
    :type input_path: str
    :param output_path: Destination file.
    :type output_path: str
    :param header_format: ``HeaderFormat`` value.
    :type header_format: int
    :param force: Write the output even if it is larger.
    :type force: bool
    :param hide_progress: Whether to suppress the progress line.
    :type hide_progress: bool
    :returns: Number of bits written, ``0`` if nothing was written.
    :rtype: int
    """
    with open(input_path, "rb") as f:
        data = f.read()

    viewer = ConsoleViewer()
    codec = HuffmanCodec(viewer)
    saved = codec.preprocess(data, header_format)
    if codec.request_force and not force:
        return 0

    on_prog = None if hide_progress else ProgressLine("Compressing", input_path)
    try:
        with open(output_path, "wb") as out:
            bits = codec.compress(data, out, header_format, force=force,
                                  on_progress=on_prog)
    except HuffError:
        _remove_partial(output_path)
        raise
    if not hide_progress:
        sys.stdout.write("\n")
        sys.stdout.flush()

    compressed_bytes = (bits + 7) // 8
    viewer.update(f"Size before compression: {_fmt_bytes(len(data))}")
    viewer.update(f"Size after compression: {_fmt_bytes(compressed_bytes)}")
    viewer.update(f"Payload bits saved: {saved}")
    viewer.update(f"Compression ratio: {len(data) / compressed_bytes:.2f}")
    return bits


def uncompress_file(
    input_path: str, output_path: str, hide_progress: bool
) -> int:
    """Uncompress ``input_path`` into ``output_path``.

    :param input_path: Compressed file.
    :type input_path: str
    :param output_path: Destination file.
    :type output_path: str
    :param hide_progress: Whether to suppress the progress line.
    :type hide_progress: bool
    :returns: Number of bits written.
    :rtype: int
    :raises HuffError: If the compressed file is malformed; ``output_path``
        is removed first.
    """
    with open(input_path, "rb") as f:
        data = f.read()

    on_prog = None if hide_progress else ProgressLine("Uncompressing", input_path)
    viewer = ConsoleViewer()
    codec = HuffmanCodec(viewer)
    try:
        with open(output_path, "wb") as out:
            bits = codec.uncompress(data, out, on_progress=on_prog)
    except HuffError:
        _remove_partial(output_path)
        raise
    if not hide_progress:
        sys.stdout.write("\n")
        sys.stdout.flush()
    viewer.update(f"Size after decompression: {_fmt_bytes(bits // 8)}")
    return bits


def show_tree(input_path: str) -> None:
    """Print the Huffman tree and code table of ``input_path``.

    :param input_path: File to analyse.
    :type input_path: str
    :returns: None
    :rtype: None
    """
    with open(input_path, "rb") as f:
        data = f.read()
    freq = count_frequencies(data)
    tree = HuffmanTree.build(freq)
    print(tree.format())
    print()
    for symbol, code in sorted(tree.codes().items()):
        count = freq[symbol] if symbol < 256 else 1
        print(f"{_fmt_symbol(symbol):>6}  {count:>10}  {code}")


def main(argv: Optional[List[str]] = None) -> int:
    """Entry point for the CLI tool.

    :param argv: Arguments to parse; defaults to ``sys.argv[1:]``.
    :type argv: List[str] | None
    :returns: Process exit status.
    :rtype: int
    """
    parser = get_parser()
    args = parser.parse_args(argv)
    logging.basicConfig(
        level=logging.DEBUG if args.verbose else logging.INFO,
        format="%(asctime)s - %(name)s - %(levelname)s - %(message)s",
    )

    try:
        if args.cmd in ["compress", "c"]:
            compress_file(
                args.input,
                args.output,
                FORMATS[args.format],
                args.force,
                getattr(args, "no_progress", False),
            )
        elif args.cmd in ["uncompress", "u"]:
            uncompress_file(
                args.input, args.output, getattr(args, "no_progress", False)
            )
        elif args.cmd in ["tree", "t"]:
            show_tree(args.input)
    except FileNotFoundError as e:
        print(f"[!] File not found: {e.filename}")
        return 1
    except HuffError as e:
        ConsoleViewer().show_error(str(e))
        return 1
    return 0


if __name__ == "__main__":
    sys.exit(main())
