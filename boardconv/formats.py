"""Registry of supported board formats and the conversion pipeline."""

import logging
from dataclasses import dataclass
from pathlib import Path
from typing import Callable, Optional, Union

from .cbf_model import Board, check_board
from .cbf_to_json import write_json
from .eagle_parser import parse_eagle
from .errors import UnsupportedOperation
from .tebo_import import import_tebo
from .toptest_writer import write_toptest

log = logging.getLogger(__name__)


@dataclass(frozen=True)
class BoardFormat:
    tag: str
    description: str
    importer: Optional[Callable[[bytes], Board]] = None
    exporter: Optional[Callable[[Board], Union[str, bytes]]] = None

    @property
    def can_import(self) -> bool:
        return self.importer is not None

    @property
    def can_export(self) -> bool:
        return self.exporter is not None

    def import_board(self, data: bytes) -> Board:
        if self.importer is None:
            raise UnsupportedOperation(f"Format '{self.tag}' does not support import")
        return self.importer(data)

    def export_board(self, board: Board) -> Union[str, bytes]:
        if self.exporter is None:
            raise UnsupportedOperation(f"Format '{self.tag}' does not support export")
        return self.exporter(board)


def _build_registry(*formats: BoardFormat) -> tuple:
    seen = set()
    for f in formats:
        if f.tag in seen:
            raise ValueError(f"Duplicate board format tag '{f.tag}'")
        seen.add(f.tag)
    return formats


FORMATS = _build_registry(
    BoardFormat("tebo", "Tebo-ICT view (*.TVW)", importer=import_tebo),
    BoardFormat("eagle", "Autodesk EAGLE board (*.BRD)", importer=parse_eagle),
    BoardFormat("toptest", "Toptest board view (*.BRD)", exporter=write_toptest),
    BoardFormat("json", "Canonical board dump (*.json)", exporter=write_json),
)


def find_format(tag: str) -> Optional[BoardFormat]:
    """Look up a format by tag; a leading '-' is accepted ("-tebo")."""
    if tag.startswith("-"):
        tag = tag[1:]
    for f in FORMATS:
        if f.tag == tag:
            return f
    return None


def _require_format(tag: str) -> BoardFormat:
    fmt = find_format(tag)
    if fmt is None:
        raise UnsupportedOperation(f"Unrecognized board format '{tag}'")
    return fmt


def convert(src_tag: str, src_path, dst_tag: str, dst_path):
    """Convert a board file from one format to another.

    The destination is written only once the whole output has been produced.

    Raises:
        UnsupportedOperation: unknown tag or unsupported direction
        BoardError: the input could not be decoded
        OSError: the input could not be read or the output written
    """
    src = _require_format(src_tag)
    dst = _require_format(dst_tag)
    if not src.can_import:
        raise UnsupportedOperation(f"Format '{src.tag}' does not support import")
    if not dst.can_export:
        raise UnsupportedOperation(f"Format '{dst.tag}' does not support export")

    data = Path(src_path).read_bytes()
    log.info("Read %d bytes from %s", len(data), src_path)
    board = src.import_board(data)
    check_board(board)
    output = dst.export_board(board)
    if isinstance(output, str):
        output = output.encode("utf-8")
    Path(dst_path).write_bytes(output)
    log.info("Wrote %d bytes to %s", len(output), dst_path)
    return board
