#!/usr/bin/env python3
"""Board format converter.

Usage:
    boardconv <input format> <input path> <output format> <output path> [-v]
    boardconv --list-formats

Format tags may be written with a leading dash, e.g. -tebo or -toptest.
"""

import argparse
import logging
import sys

from .errors import BoardError
from .formats import FORMATS, convert

log = logging.getLogger(__name__)


class _ArgumentParser(argparse.ArgumentParser):
    def error(self, message):
        self.print_usage(sys.stderr)
        print(f"Error: {message}", file=sys.stderr)
        sys.exit(1)


def _format_list() -> str:
    lines = ["supported input formats:"]
    lines += [f"  {f.tag:<8} {f.description}" for f in FORMATS if f.can_import]
    lines.append("supported output formats:")
    lines += [f"  {f.tag:<8} {f.description}" for f in FORMATS if f.can_export]
    return "\n".join(lines)


def _undash_tags(argv):
    """Strip the dash from "-<tag>" arguments so argparse sees them as positionals."""
    tags = {f.tag for f in FORMATS}
    return [a[1:] if a.startswith("-") and a[1:] in tags else a for a in argv]


def main(argv=None):
    parser = _ArgumentParser(
        prog="boardconv",
        description="Convert PCB board files between formats",
        epilog=_format_list(),
        formatter_class=argparse.RawDescriptionHelpFormatter,
    )
    parser.add_argument("src_format", nargs="?", help="Input format tag")
    parser.add_argument("src_path", nargs="?", help="Input file")
    parser.add_argument("dst_format", nargs="?", help="Output format tag")
    parser.add_argument("dst_path", nargs="?", help="Output file")
    parser.add_argument("-v", "--verbose", action="store_true",
                        help="Enable verbose logging")
    parser.add_argument("--list-formats", action="store_true",
                        help="List supported formats and exit")

    args = parser.parse_args(_undash_tags(sys.argv[1:] if argv is None else argv))

    logging.basicConfig(
        level=logging.DEBUG if args.verbose else logging.WARNING,
        format="%(levelname)s: %(message)s",
        stream=sys.stderr,
    )

    if args.list_formats:
        print(_format_list())
        sys.exit(0)

    if args.dst_path is None:
        parser.error("expected <input format> <input path> <output format> <output path>")

    try:
        convert(args.src_format, args.src_path, args.dst_format, args.dst_path)
    except (BoardError, OSError) as e:
        print(f"Error: {e}", file=sys.stderr)
        if args.verbose:
            import traceback
            traceback.print_exc(file=sys.stderr)
        sys.exit(1)
    sys.exit(0)


if __name__ == "__main__":
    main()
