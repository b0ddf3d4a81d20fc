"""Canonical board -> Toptest bare-board test-jig text (*.brd).

Output layout, blank line between sections:

  <checksum>
  BRDOUT: <vertex count + 1> <width> <height>
  <x> <y>                      first vertex repeated at the end
  NETS: <count>
  <index> <name>               1-based
  PARTS: <count>
  <name> <minx> <miny> <maxx> <maxy> <first pin> <layer>
  PINS: <count>
  <x> <y> <net> <layer>        net is 1-based, 0 = unconnected
  NAILS: <count>
  <x> <y> <net> <layer>

Layer codes: 0 multilayer, 1 top, 2 bottom. All coordinates are integer
mils; top-side pins and nails are mirrored vertically within the outline.
"""

import logging
import math

from .cbf_model import Board, LayerRole, LogicLayer, Point, find_layer
from .errors import FormatViolation
from .outline import build_outline

log = logging.getLogger(__name__)

LAYER_CODES = {
    LayerRole.MULTILAYER: 0,
    LayerRole.TOP: 1,
    LayerRole.BOTTOM: 2,
}


def iround(v: float) -> int:
    """Round half away from zero."""
    r = math.floor(abs(v) + 0.5)
    return int(-r if v < 0 else r)


def outline_checksum(outline, width: int, height: int) -> int:
    if not outline:
        return 0
    x0, y0 = outline[0]
    return 163 * (x0 + y0) + 80 * (len(outline) + 1) + 79 * height + 84 * width


class ToptestWriter:
    def __init__(self, board: Board):
        self.board = board
        self.lines = []
        self.height = 0

    def _emit(self, *fields):
        self.lines.append(" ".join(str(f) for f in fields))

    def _pos(self, p: Point, role: LayerRole) -> str:
        x, y = iround(p.x), iround(p.y)
        if role == LayerRole.TOP:
            y = self.height - y
        return f"{x} {y}"

    def write(self) -> str:
        b = self.board
        outline = [(iround(p.x), iround(p.y)) for p in build_outline(b)]
        if outline:
            xs = [v[0] for v in outline]
            ys = [v[1] for v in outline]
            width, self.height = max(xs) - min(xs), max(ys) - min(ys)
        else:
            width = self.height = 0

        self._emit(outline_checksum(outline, width, self.height))
        if outline:
            self._emit("BRDOUT:", len(outline) + 1, width, self.height)
            for x, y in outline + outline[:1]:
                self._emit(x, y)
        else:
            self._emit("BRDOUT:", 0, 0, 0)
        self._emit()

        self._emit("NETS:", len(b.nets))
        for i, name in enumerate(b.nets):
            self._emit(i + 1, name)
        self._emit()

        parts, pins = self._collect_parts()
        self._emit("PARTS:", len(parts))
        self.lines.extend(parts)
        self._emit()

        self._emit("PINS:", len(pins))
        self.lines.extend(pins)
        self._emit()

        nails = self._collect_nails()
        self._emit("NAILS:", len(nails))
        self.lines.extend(nails)
        return "\n".join(self.lines) + "\n"

    def _copper_layers(self):
        """Indices of the multilayer, top and bottom layers, or None if any is missing."""
        indices = {}
        for role in LAYER_CODES:
            index = find_layer(self.board, role)
            if index is None or not isinstance(self.board.layers[index], LogicLayer):
                log.warning("Board has no %s logic layer; parts and pins are not written",
                            role.name.lower())
                return None
            indices[index] = role
        return indices

    def _collect_parts(self):
        parts, pins = [], []
        layers = self._copper_layers()
        if layers is None:
            return parts, pins
        for part in self.board.parts:
            part_role = layers.get(part.layer)
            if part_role not in (LayerRole.TOP, LayerRole.BOTTOM):
                continue
            bb = part.bbox
            parts.append(f"{part.name} {iround(bb.min.x)} {iround(bb.min.y)} "
                         f"{iround(bb.max.x)} {iround(bb.max.y)} "
                         f"{len(pins)} {LAYER_CODES[part_role]}")
            for pin in part.pins:
                role = layers.get(pin.layer)
                if role is None:
                    raise FormatViolation(
                        f"Pin {part.name}.{pin.id} must be on the multilayer, top or bottom layer"
                    )
                pads = self.board.layers[pin.layer].pads
                if not 0 <= pin.pad < len(pads):
                    raise FormatViolation(f"Pin {part.name}.{pin.id} refers to missing pad {pin.pad}")
                pad = pads[pin.pad]
                pins.append(f"{self._pos(pad.pos, role)} {pad.net + 1} {LAYER_CODES[role]}")
        return parts, pins

    def _collect_nails(self):
        nails = []
        for layer in self.board.layers:
            if not isinstance(layer, LogicLayer) or layer.role not in LAYER_CODES:
                continue
            for tp in layer.test_points:
                nails.append(f"{self._pos(tp.pos, layer.role)} {tp.net + 1} "
                             f"{LAYER_CODES[layer.role]}")
        return nails


def write_toptest(board: Board) -> str:
    """Render a canonical Board as Toptest text."""
    return ToptestWriter(board).write()
