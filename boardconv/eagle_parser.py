"""Autodesk EAGLE XML board (*.brd) importer.

Relevant structure:
  eagle/drawing/layers/layer            - layer numbers, names, colours
  eagle/drawing/board/plain/wire        - board outline on layer 20
  eagle/drawing/board/libraries/library - packages with pad / smd
  eagle/drawing/board/elements/element  - placed parts
  eagle/drawing/board/signals/signal    - nets and their contact refs

Only placement and connectivity are imported: each package pad becomes a
pad on the multilayer, top or bottom layer with a 1 mil dummy shape.
"""

import logging
import xml.etree.ElementTree as ET
from dataclasses import dataclass, field
from typing import Dict

from .cbf_model import (
    NO_NET, Board, Box, Decal, DrillLayer, LayerRole, LogicLayer, Pad, Part,
    Pin, Point, Shape, ShapeType, Slot, find_layer,
)
from .errors import FormatViolation
from .utils import Transform, box_of, mm_to_mils, parse_float, parse_int, poly_arc

log = logging.getLogger(__name__)

# EAGLE layer numbers
MULTILAYER = 0
TOP = 1
BOTTOM = 16
DIMENSION = 20
DRILLS = 44
MILLING = 46

# Longest chord allowed when flattening curved outline wires, in mils
POLY_ARC_THRESHOLD = 8.0
MULTILAYER_COLOR = 0xC0C0C0

# Standard EAGLE colour palette, indexed by the layer's color attribute
_PALETTE = (
    0x000000, 0x23238D, 0x238D23, 0x238D8D, 0x8D2323, 0x8D238D, 0x8D8D23, 0x8D8D8D,
    0x1C1C1C, 0x0000B4, 0x00B400, 0x00B4B4, 0xB40000, 0xB400B4, 0xB4B400, 0xB4B4B4,
    0xA05000, 0xA07800, 0x285000, 0x505028, 0x507850, 0x285050, 0x007850, 0x005078,
    0xC87800, 0xC8A028, 0x507800, 0x787850, 0x78A078, 0x507878, 0x28A078, 0x0078A0,
    0x785078, 0xA07878, 0xA05050, 0x500028, 0x502850, 0x785050, 0x285078, 0x287878,
    0xA078A0, 0xC8A0A0, 0xC87878, 0x780028, 0x785078, 0xA07878, 0x5078A0, 0x50A0A0,
    0xC58949, 0x89A429, 0x272727, 0x8D8D8D, 0x636363, 0x767676, 0x767676, 0x767676,
    0x474747, 0x8D8D8D, 0xB2B2B2, 0xA81D1D, 0x2DA62B, 0xB4B400, 0x2360A2, 0x751EAE,
)


@dataclass
class _LayerInfo:
    number: int
    name: str
    color: int


@dataclass
class _PadInfo:
    name: str
    pos: Point
    size: Point
    layer: int


@dataclass
class _PackageInfo:
    name: str
    pads: Dict[str, _PadInfo] = field(default_factory=dict)
    bbox: Box = field(default_factory=Box)
    decal: int = 0


@dataclass
class _ElementInfo:
    name: str
    library: str
    package: str
    value: str
    pos: Point
    rotation: float = 0.0
    mirror: bool = False
    spin: bool = False


def color_by_index(i: int) -> int:
    if 0 <= i < len(_PALETTE):
        return _PALETTE[i]
    return _PALETTE[-1]


def layer_role(number: int) -> LayerRole:
    if number == MULTILAYER:
        return LayerRole.MULTILAYER
    if number == TOP:
        return LayerRole.TOP
    if number == BOTTOM:
        return LayerRole.BOTTOM
    if number in (DRILLS, MILLING):
        return LayerRole.DRILL
    if number == DIMENSION:
        return LayerRole.ROUTE
    if TOP < number < BOTTOM:
        return LayerRole.SIGNAL
    return LayerRole.DOCUMENT


def _metric(elem: ET.Element, xattr: str, yattr: str) -> Point:
    return Point(mm_to_mils(parse_float(elem.get(xattr))),
                 mm_to_mils(parse_float(elem.get(yattr))))


def parse_rotation(rot: str):
    """Split an EAGLE rot attribute like "MR90" into (mirror, spin, degrees)."""
    mirror = spin = False
    degrees = 0.0
    for i, ch in enumerate(rot):
        if ch == "S":
            spin = True
        elif ch == "M":
            mirror = True
        elif ch == "R":
            try:
                degrees = float(rot[i + 1:])
            except ValueError:
                raise FormatViolation(f"Can't parse rot attribute {rot!r}: invalid angle") from None
            break
    return mirror, spin, degrees


def parse_eagle(data: bytes) -> Board:
    """Parse an EAGLE XML board and return the canonical Board.

    Args:
        data: Whole file contents

    Returns:
        Populated Board
    """
    return EagleParser().parse(data)


class EagleParser:
    def __init__(self):
        self.layers: Dict[int, _LayerInfo] = {}
        self.outline = []  # (start, end, width) edges on the dimension layer
        self.packages: Dict[tuple, _PackageInfo] = {}  # (library, package) -> info
        self.elements = []
        self.signals = []
        # element name -> pad name -> net index
        self.part_signals: Dict[str, Dict[str, int]] = {}
        self.version = ""

    def parse(self, data: bytes) -> Board:
        if not data.startswith(b"<?xml"):
            raise FormatViolation(
                "Binary EAGLE board format is not supported. "
                "Resave with a newer version and try again."
            )
        try:
            root = ET.fromstring(data)
        except ET.ParseError as e:
            raise FormatViolation(f"Malformed EAGLE XML: {e}") from None
        if root.tag != "eagle":
            raise FormatViolation(f"Root element must be <eagle>, got <{root.tag}>")
        self.version = root.get("version", "")
        drawing = root.find("drawing")
        board = drawing.find("board") if drawing is not None else None
        if board is None:
            raise FormatViolation("EAGLE file has no board drawing")

        self._read_layers(drawing)
        self._read_plain(board)
        self._read_libraries(board)
        self._read_elements(board)
        self._read_signals(board)
        log.info("EAGLE %s: %d layers, %d packages, %d elements, %d signals",
                 self.version, len(self.layers), len(self.packages),
                 len(self.elements), len(self.signals))
        return self._build()

    # ── Loading ───────────────────────────────────────────────────────

    def _read_layers(self, drawing: ET.Element):
        for elem in drawing.iterfind("layers/layer"):
            info = _LayerInfo(parse_int(elem.get("number")), elem.get("name", ""),
                              parse_int(elem.get("color")))
            if info.number in self.layers:
                raise FormatViolation(f"Duplicate EAGLE layer number {info.number}")
            self.layers[info.number] = info

    def _read_plain(self, board: ET.Element):
        for wire in board.iterfind("plain/wire"):
            if parse_int(wire.get("layer")) != DIMENSION:
                continue
            a = _metric(wire, "x1", "y1")
            b = _metric(wire, "x2", "y2")
            width = mm_to_mils(parse_float(wire.get("width")))
            curve = parse_float(wire.get("curve"))
            for start, end in poly_arc(a, b, curve, POLY_ARC_THRESHOLD):
                self.outline.append((start, end, width))

    def _read_pad(self, elem: ET.Element) -> _PadInfo:
        pos = _metric(elem, "x", "y")
        if elem.get("drill") is not None:
            # Through-hole pad
            diameter = elem.get("diameter") or elem.get("drill")
            size = mm_to_mils(parse_float(diameter))
            return _PadInfo(elem.get("name", ""), pos, Point(size, size), MULTILAYER)
        return _PadInfo(elem.get("name", ""), pos, _metric(elem, "dx", "dy"),
                        parse_int(elem.get("layer")))

    def _read_libraries(self, board: ET.Element):
        for lib in board.iterfind("libraries/library"):
            lib_name = lib.get("name", "")
            for pkg in lib.iterfind("packages/package"):
                info = _PackageInfo(pkg.get("name", ""))
                for pad in pkg.iter():
                    if pad.tag in ("pad", "smd"):
                        p = self._read_pad(pad)
                        info.pads[p.name] = p
                self.packages[(lib_name, info.name)] = info

    def _read_elements(self, board: ET.Element):
        for elem in board.iterfind("elements/element"):
            mirror, spin, degrees = parse_rotation(elem.get("rot", ""))
            self.elements.append(_ElementInfo(
                name=elem.get("name", ""),
                library=elem.get("library", ""),
                package=elem.get("package", ""),
                value=elem.get("value", ""),
                pos=_metric(elem, "x", "y"),
                rotation=degrees,
                mirror=mirror,
                spin=spin,
            ))

    def _read_signals(self, board: ET.Element):
        for signal in board.iterfind("signals/signal"):
            index = len(self.signals)
            self.signals.append(signal.get("name", ""))
            for cref in signal.iterfind("contactref"):
                pads = self.part_signals.setdefault(cref.get("element", ""), {})
                pads[cref.get("pad", "")] = index

    # ── Building the board ────────────────────────────────────────────

    def _build(self) -> Board:
        cbf = Board(nets=list(self.signals))

        cbf.layers.append(LogicLayer(name="multilayer", role=LayerRole.MULTILAYER,
                                     pad_color=MULTILAYER_COLOR,
                                     line_color=MULTILAYER_COLOR))
        for number in range(TOP, BOTTOM + 1):
            info = self.layers.get(number)
            if info is None:
                continue
            color = color_by_index(info.color)
            cbf.layers.append(LogicLayer(name=info.name, role=layer_role(number),
                                         pad_color=color, line_color=color))
        info = self.layers.get(DIMENSION)
        if info is not None:
            color = color_by_index(info.color)
            route = DrillLayer(name=info.name, role=LayerRole.ROUTE,
                               pad_color=color, line_color=color)
            route.slots = [Slot(a, b, width, NO_NET) for a, b, width in self.outline]
            cbf.layers.append(route)

        self._build_decals(cbf)

        top = find_layer(cbf, LayerRole.TOP)
        bottom = find_layer(cbf, LayerRole.BOTTOM)
        multi = find_layer(cbf, LayerRole.MULTILAYER)
        if top is None or bottom is None:
            raise FormatViolation("EAGLE board must define both the top and bottom layers")
        for index in (multi, top, bottom):
            cbf.layers[index].shapes.append(
                Shape(shape=ShapeType.ROUND, size=Point(1.0, 1.0), name="dummy_1mil"))

        def translate_layer(number: int, mirror: bool) -> int:
            if number == MULTILAYER:
                return multi
            if number == TOP:
                return bottom if mirror else top
            if number == BOTTOM:
                return top if mirror else bottom
            raise FormatViolation(f"Pad on invalid EAGLE layer {number}")

        for elem in self.elements:
            pkg = self.packages.get((elem.library, elem.package))
            if pkg is None:
                raise FormatViolation(
                    f"Element {elem.name} uses unknown package {elem.library}/{elem.package}"
                )
            cbf.parts.append(self._build_part(cbf, elem, pkg, translate_layer))
        return cbf

    def _build_decals(self, cbf: Board):
        for key in sorted(self.packages):
            pkg = self.packages[key]
            corners = []
            for pad in pkg.pads.values():
                hx, hy = pad.size.x / 2, pad.size.y / 2
                corners.append(Point(pad.pos.x - hx, pad.pos.y - hy))
                corners.append(Point(pad.pos.x + hx, pad.pos.y + hy))
            pkg.bbox = box_of(corners) if corners else Box()
            lo, hi = pkg.bbox.min, pkg.bbox.max
            pkg.decal = len(cbf.decals)
            cbf.decals.append(Decal(pkg.name, [
                Point(lo.x, lo.y), Point(lo.x, hi.y), Point(hi.x, hi.y), Point(hi.x, lo.y),
            ]))

    def _build_part(self, cbf: Board, elem: _ElementInfo, pkg: _PackageInfo,
                    translate_layer) -> Part:
        part = Part(
            name=elem.name,
            bbox=pkg.bbox,
            pos=elem.pos,
            rotation=elem.rotation,
            decal=pkg.decal,
            value=elem.value,
            desc=elem.package,
            layer=translate_layer(TOP, elem.mirror),
        )
        transform = Transform.translation(elem.pos.x, elem.pos.y)
        if elem.mirror:
            transform = transform * Transform.rotation(-elem.rotation) * Transform.scaling(-1, 1)
        else:
            transform = transform * Transform.rotation(elem.rotation)

        nets = self.part_signals.get(elem.name, {})
        pads = sorted(pkg.pads.values(), key=lambda p: (len(p.name), p.name))
        for pin_id, pad_info in enumerate(pads, start=1):
            layer_index = translate_layer(pad_info.layer, elem.mirror)
            layer = cbf.layers[layer_index]
            layer.pads.append(Pad(
                net=nets.get(pad_info.name, NO_NET),
                shape=0,
                pos=transform.apply(pad_info.pos),
            ))
            part.pins.append(Pin(layer=layer_index, pad=len(layer.pads) - 1,
                                 id=pin_id, name=pad_info.name))
        return part
