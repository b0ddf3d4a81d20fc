"""Canonical board model shared by every importer and exporter.

All lengths are in mils (thousandths of an inch) as floats. Cross references
are plain indices: pads point into their layer's shape table, pins point to
a layer index plus a pad index within that layer, nets are indices into
Board.nets with NO_NET marking an unconnected item.
"""

from dataclasses import dataclass, field
from enum import Enum, auto
from typing import Optional

from .errors import FormatViolation

NO_NET = -1


class LayerRole(Enum):
    DOCUMENT = auto()
    MULTILAYER = auto()
    TOP = auto()
    BOTTOM = auto()
    SIGNAL = auto()
    PLANE = auto()
    SOLDER_TOP = auto()
    SOLDER_BOTTOM = auto()
    SILK_TOP = auto()
    SILK_BOTTOM = auto()
    PASTE_TOP = auto()
    PASTE_BOTTOM = auto()
    DRILL = auto()
    ROUTE = auto()


class ShapeType(Enum):
    ROUND = auto()
    RECT = auto()
    ROUNDRECT = auto()
    OBLONG = auto()
    POLY = auto()
    OCTAGON = auto()


@dataclass
class Point:
    x: float = 0.0
    y: float = 0.0


@dataclass
class Box:
    min: Point = field(default_factory=Point)
    max: Point = field(default_factory=Point)


@dataclass
class PolyLine:
    start: Point = field(default_factory=Point)
    end: Point = field(default_factory=Point)
    width: float = 0.0


@dataclass
class Shape:
    shape: ShapeType = ShapeType.ROUND
    size: Point = field(default_factory=Point)
    name: str = ""
    # Corner radius for ROUNDRECT and OCTAGON
    radius: float = 0.0
    # POLY only: explicit geometry and its own bounding box
    vertices: list = field(default_factory=list)  # list of Point
    lines: list = field(default_factory=list)  # list of PolyLine
    bbox: Optional[Box] = None


@dataclass
class Pad:
    net: int = NO_NET
    shape: int = 0  # index into LogicLayer.shapes
    pos: Point = field(default_factory=Point)  # global position
    # Local rotation in degrees (final = pad + part rotation)
    rotation: float = 0.0
    hole_offset: Point = field(default_factory=Point)
    hole_size: Point = field(default_factory=Point)


@dataclass
class TraceLine:
    start: Point = field(default_factory=Point)
    end: Point = field(default_factory=Point)
    width: float = 0.0
    net: int = NO_NET


@dataclass
class TraceArc:
    pos: Point = field(default_factory=Point)
    radius: float = 0.0
    # Degrees
    start_angle: float = 0.0
    sweep_angle: float = 0.0
    width: float = 0.0
    net: int = NO_NET


@dataclass
class Surface:
    """Filled region with optional cutouts."""
    vertices: list = field(default_factory=list)  # list of Point
    cutouts: list = field(default_factory=list)  # list of list of Point
    net: int = NO_NET


@dataclass
class TestPoint:
    pos: Point = field(default_factory=Point)
    net: int = NO_NET


@dataclass
class Hole:
    pos: Point = field(default_factory=Point)
    width: float = 0.0
    net: int = NO_NET


@dataclass
class Slot:
    start: Point = field(default_factory=Point)
    end: Point = field(default_factory=Point)
    width: float = 0.0
    net: int = NO_NET


@dataclass
class Layer:
    name: str = ""
    role: LayerRole = LayerRole.DOCUMENT
    pad_color: int = 0
    line_color: int = 0


@dataclass
class LogicLayer(Layer):
    """Copper-bearing layer."""
    shapes: list = field(default_factory=list)  # list of Shape
    pads: list = field(default_factory=list)  # list of Pad
    lines: list = field(default_factory=list)  # list of TraceLine
    arcs: list = field(default_factory=list)  # list of TraceArc
    surfaces: list = field(default_factory=list)  # list of Surface
    test_points: list = field(default_factory=list)  # list of TestPoint


@dataclass
class DrillLayer(Layer):
    holes: list = field(default_factory=list)  # list of Hole
    slots: list = field(default_factory=list)  # list of Slot
    # Layer-number span (from, to)
    span: tuple = (0, 0)


@dataclass
class Pin:
    # Layer index: multilayer, top or bottom
    layer: int = 0
    # Pad index in that layer
    pad: int = 0
    # 1 + index of this pin in Part.pins
    id: int = 1
    # Name from the datasheet, like "C6"
    name: str = ""


@dataclass
class Part:
    # Reference designator
    name: str = ""
    # Includes pads and package
    bbox: Box = field(default_factory=Box)
    pos: Point = field(default_factory=Point)
    rotation: float = 0.0
    decal: int = 0
    height: float = 0.0
    value: str = ""
    tolerance_p: str = ""
    tolerance_n: str = ""
    # Usually a part number
    desc: str = ""
    # Layer index, top or bottom only
    layer: int = 0
    pins: list = field(default_factory=list)  # list of Pin


@dataclass
class Decal:
    """Placeholder part silhouette (outline or courtyard)."""
    name: str = ""
    outline: list = field(default_factory=list)  # list of Point, never empty


@dataclass
class Board:
    layers: list = field(default_factory=list)  # list of LogicLayer / DrillLayer
    nets: list = field(default_factory=list)  # list of str
    parts: list = field(default_factory=list)  # list of Part
    decals: list = field(default_factory=list)  # list of Decal


def shape_bbox(shape: Shape) -> Box:
    """Bounding box of a shape around its origin."""
    if shape.shape == ShapeType.POLY and shape.bbox is not None:
        return shape.bbox
    hx, hy = shape.size.x / 2, shape.size.y / 2
    return Box(Point(-hx, -hy), Point(hx, hy))


def find_layer(board: Board, role: LayerRole) -> Optional[int]:
    """Index of the first layer with the given role, or None."""
    for i, layer in enumerate(board.layers):
        if layer.role == role:
            return i
    return None


def _check_net(net: int, net_count: int, what: str):
    if net != NO_NET and not 0 <= net < net_count:
        raise FormatViolation(f"{what} refers to net {net}, board has {net_count} nets")


def check_board(board: Board):
    """Verify the structural invariants every importer must establish."""
    for role in (LayerRole.MULTILAYER, LayerRole.TOP, LayerRole.BOTTOM):
        count = sum(1 for layer in board.layers if layer.role == role)
        if count > 1:
            raise FormatViolation(f"Board has {count} layers with role {role.name}")

    net_count = len(board.nets)
    for li, layer in enumerate(board.layers):
        if isinstance(layer, LogicLayer):
            for pi, pad in enumerate(layer.pads):
                _check_net(pad.net, net_count, f"Pad {pi} on layer {li}")
                if not 0 <= pad.shape < max(len(layer.shapes), 1):
                    raise FormatViolation(
                        f"Pad {pi} on layer {li} refers to shape {pad.shape}, "
                        f"layer has {len(layer.shapes)} shapes"
                    )
            for prim in layer.lines + layer.arcs + layer.surfaces:
                _check_net(prim.net, net_count, f"Primitive on layer {li}")
            for tp in layer.test_points:
                _check_net(tp.net, net_count, f"Test point on layer {li}")
        elif isinstance(layer, DrillLayer):
            for item in layer.holes + layer.slots:
                _check_net(item.net, net_count, f"Drill feature on layer {li}")

    for part in board.parts:
        layer = _layer_at(board, part.layer)
        if not isinstance(layer, LogicLayer) or layer.role not in (LayerRole.TOP, LayerRole.BOTTOM):
            raise FormatViolation(f"Part {part.name} must be placed on the top or bottom layer")
        for pin in part.pins:
            pin_layer = _layer_at(board, pin.layer)
            if not isinstance(pin_layer, LogicLayer):
                raise FormatViolation(f"Pin {part.name}.{pin.id} refers to non-logic layer {pin.layer}")
            if not 0 <= pin.pad < len(pin_layer.pads):
                raise FormatViolation(
                    f"Pin {part.name}.{pin.id} refers to pad {pin.pad}, "
                    f"layer {pin.layer} has {len(pin_layer.pads)} pads"
                )

    for decal in board.decals:
        if not decal.outline:
            raise FormatViolation(f"Decal {decal.name} has an empty outline")


def _layer_at(board: Board, index: int) -> Optional[Layer]:
    if 0 <= index < len(board.layers):
        return board.layers[index]
    return None
