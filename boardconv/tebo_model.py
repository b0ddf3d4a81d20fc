"""Native record model of the Tebo-ICT binary view format (*.TVW).

Mirrors the file's own record hierarchy. Coordinates stay in Fixed32 /
Vec2S here; conversion to mils happens in tebo_import. Only the header,
layer objects, nets, parts and decals reach the canonical model; probe,
fixture and mystery blocks are kept for inspection.
"""

from dataclasses import dataclass, field
from enum import Enum
from typing import List, Optional

from .fixed32 import Box2S, Fixed32, Vec2S

DCODE_BASE = 10
PIN_HANDLE_STRIDE = 8


def _v() -> Vec2S:
    return Vec2S(Fixed32(), Fixed32())


def _box() -> Box2S:
    return Box2S(_v(), _v())


class ObjectType(Enum):
    THROUGH = 1
    LOGIC = 3


class TeboLayerType(Enum):
    DOCUMENT = 0
    TOP = 1
    BOTTOM = 2
    SIGNAL = 3
    PLANE = 4
    SOLDER_TOP = 5
    SOLDER_BOTTOM = 6
    SILK_TOP = 7
    SILK_BOTTOM = 8
    PASTE_TOP = 9
    PASTE_BOTTOM = 10
    DRILL = 11
    ROUL = 12


class TeboShapeType(Enum):
    ROUND = 0
    RECT = 1
    ROUNDRECT = 3
    POLY = 5


@dataclass
class TvwHeader:
    type: str = ""
    customer: str = ""
    date: str = ""
    size1: int = 0
    size2: int = 0
    size3: int = 0
    layer_count: int = 0


@dataclass
class PolyLine:
    start: Vec2S = field(default_factory=_v)
    end: Vec2S = field(default_factory=_v)
    width: int = 0


@dataclass
class TeboShape:
    kind: TeboShapeType = TeboShapeType.ROUND
    size: Vec2S = field(default_factory=_v)
    # Rect / RoundRect rotation in degrees
    turn: float = 0.0
    corner_radius: int = 0
    # Poly only
    name: str = ""
    bbox: Box2S = field(default_factory=_box)
    flags: List[int] = field(default_factory=list)
    vertices: List[Vec2S] = field(default_factory=list)
    lines: List[PolyLine] = field(default_factory=list)


@dataclass
class TeboPad:
    net: int = -1
    dcode: int = DCODE_BASE
    pos: Vec2S = field(default_factory=_v)
    is_exposed: bool = False
    is_copper: bool = False
    testpoint_param: int = 0
    is_something: bool = False
    testpoint_data: bytes = b""
    # Unrotated bbox of the exposed copper area
    exposed: Optional[Box2S] = None
    has_hole: bool = False
    tail_param: int = 0
    hole_data: bytes = b""
    hole_size: Vec2S = field(default_factory=_v)
    hole_param: int = 0

    @property
    def shape_index(self) -> int:
        return self.dcode - DCODE_BASE


@dataclass
class TeboLine:
    net: int = -1
    dcode: int = DCODE_BASE
    start: Vec2S = field(default_factory=_v)
    end: Vec2S = field(default_factory=_v)


@dataclass
class TeboArc:
    net: int = -1
    dcode: int = DCODE_BASE
    pos: Vec2S = field(default_factory=_v)
    radius: int = 0
    start_angle: float = 0.0
    sweep_angle: float = 0.0


@dataclass
class Cutout:
    tag: int = 0
    vertices: List[Vec2S] = field(default_factory=list)


@dataclass
class TeboSurface:
    net: int = -1
    vertices: List[Vec2S] = field(default_factory=list)
    line_width: int = 0
    voids: List[Cutout] = field(default_factory=list)
    void_flags: int = 0


@dataclass
class UnknownItem:
    name: str = ""
    pos: Vec2S = field(default_factory=_v)
    params: List[int] = field(default_factory=list)  # z1, p1, p2, p3, z2, z3
    flags: List[bool] = field(default_factory=list)
    param4: int = 0


@dataclass
class TeboTestPoint:
    flag1: bool = False
    p1: int = 0
    handle: int = 0
    p2: int = 0
    p3: int = 0
    pos: Vec2S = field(default_factory=_v)
    p4: int = 0
    flag2: bool = False
    p5: int = 0
    p6: int = 0
    n: int = 0


@dataclass
class TeboTestPoint2:
    p1: int = 0
    handle: int = 0
    p2: int = 0
    pos: Vec2S = field(default_factory=_v)
    pos1: Vec2S = field(default_factory=_v)
    pos2: Vec2S = field(default_factory=_v)
    flags: List[bool] = field(default_factory=list)  # six flags
    nail: int = 0
    param: int = 0
    n: int = 0


@dataclass
class TestNode:
    current: int = 0
    next: int = 0
    flag: bool = False


@dataclass
class TeboObject:
    """Common prologue of every layer object."""
    name: str = ""
    initial_name: str = ""
    initial_path: str = ""
    layer_type: TeboLayerType = TeboLayerType.DOCUMENT
    pad_color: int = 0
    line_color: int = 0
    # File offset of the object, for diagnostics
    offset: int = 0


@dataclass
class TeboLogicLayer(TeboObject):
    shapes: List[TeboShape] = field(default_factory=list)
    extra_data: bool = False
    pads: List[TeboPad] = field(default_factory=list)
    lines: List[TeboLine] = field(default_factory=list)
    arcs: List[TeboArc] = field(default_factory=list)
    surfaces: List[TeboSurface] = field(default_factory=list)
    unknown_items_param: int = 0
    unknown_items: List[UnknownItem] = field(default_factory=list)
    test_points: List[TeboTestPoint] = field(default_factory=list)
    tps2_param: int = 0
    test_points2: List[TeboTestPoint2] = field(default_factory=list)
    tps3_param: int = 0
    test_points3: List[TeboTestPoint2] = field(default_factory=list)
    test_sequence_param: int = 0
    test_sequence: List[TestNode] = field(default_factory=list)


@dataclass
class DrillTool:
    flag1: bool = False
    flag2: bool = False
    size: Fixed32 = field(default_factory=Fixed32)
    data5: List[int] = field(default_factory=list)
    data3: List[int] = field(default_factory=list)


@dataclass
class DrillHole:
    net: int = -1
    tool: int = 1  # 1-based
    pos: Vec2S = field(default_factory=_v)


@dataclass
class DrillSlot:
    net: int = -1
    tool: int = 1  # 1-based
    begin: Vec2S = field(default_factory=_v)
    end: Vec2S = field(default_factory=_v)


@dataclass
class TeboThroughLayer(TeboObject):
    tools: List[DrillTool] = field(default_factory=list)
    v2: int = 0
    holes: List[DrillHole] = field(default_factory=list)
    slots: List[DrillSlot] = field(default_factory=list)


# ── Probe / fixture metadata ─────────────────────────────────────────


@dataclass
class ProbeBox32:
    tag: int = 0
    v1: Vec2S = field(default_factory=_v)
    v2: Vec2S = field(default_factory=_v)


@dataclass
class DoubleBox32:
    tag: int = 0
    b1: ProbeBox32 = field(default_factory=ProbeBox32)
    b2: ProbeBox32 = field(default_factory=ProbeBox32)


@dataclass
class ProbeBox8:
    tag: int = 0
    n: int = 0
    a: int = 0
    p1: int = 0
    p2: int = 0


@dataclass
class ProbeDataItem:
    present: bool = False
    size: int = 0
    params: List[int] = field(default_factory=list)
    color: int = 0


@dataclass
class FixtureData:
    p1: int = 0
    px: List[int] = field(default_factory=list)
    flags: List[bool] = field(default_factory=list)
    items: List[ProbeDataItem] = field(default_factory=list)
    c1: int = 0
    v1: Vec2S = field(default_factory=_v)
    v2: Vec2S = field(default_factory=_v)
    boxes: List[ProbeBox8] = field(default_factory=list)


@dataclass
class ProbeData:
    fixture: FixtureData = field(default_factory=FixtureData)
    v3: Vec2S = field(default_factory=_v)
    v4: Vec2S = field(default_factory=_v)
    boxes2: List[DoubleBox32] = field(default_factory=list)


@dataclass
class Probe:
    flag: bool = False
    tag: int = 0
    name: str = ""
    sizes: List[tuple] = field(default_factory=list)  # three (size, param) pairs
    color: int = 0
    kv: List[tuple] = field(default_factory=list)  # four (key, value) pairs
    body: Optional[ProbeData] = None
    tail_tag: int = 0
    tail_flags: List[bool] = field(default_factory=list)
    tail_p0: int = 0
    tail_params: List[int] = field(default_factory=list)
    tail_boxes: List[ProbeBox32] = field(default_factory=list)


@dataclass
class ProbeRegistry:
    name: str = ""
    default_size: int = 0
    packs: List[List[Probe]] = field(default_factory=list)


@dataclass
class FixtureVariant:
    name: str = ""
    short_name: str = ""
    flag1: bool = False
    flag2: bool = False
    data: FixtureData = field(default_factory=FixtureData)


@dataclass
class FixtureSetting:
    name: str = ""
    variants: List[FixtureVariant] = field(default_factory=list)
    workspace_size: Vec2S = field(default_factory=_v)


@dataclass
class FixtureRegistry:
    grids: List[str] = field(default_factory=list)
    top: FixtureSetting = field(default_factory=FixtureSetting)
    bottom: FixtureSetting = field(default_factory=FixtureSetting)


@dataclass
class MysteryBlock:
    """Fixed-size settings block with no known meaning; kept verbatim."""
    words: List[int] = field(default_factory=list)
    top_right: Vec2S = field(default_factory=_v)
    flags: List[bool] = field(default_factory=list)
    bytes_: List[int] = field(default_factory=list)


# ── Parts and decals ─────────────────────────────────────────────────


@dataclass
class TeboPin:
    handle: int = 0
    id: int = 0
    name: str = ""

    @property
    def pad_index(self) -> int:
        return self.handle // PIN_HANDLE_STRIDE


@dataclass
class TeboPart:
    name: str = ""
    bbox: Box2S = field(default_factory=_box)
    pos: Vec2S = field(default_factory=_v)
    angle: int = 0
    decal: int = 0
    kind: int = 0
    height: int = 0
    value: str = ""
    tolerance_p: str = ""
    tolerance_n: str = ""
    desc: str = ""
    serial: str = ""
    layer: int = 0
    pins: List[TeboPin] = field(default_factory=list)


@dataclass
class TeboDecal:
    name: str = ""
    header_params: List[int] = field(default_factory=list)
    flag: bool = False
    # Up to three embedded layer objects, None when absent
    layers: List[Optional[TeboObject]] = field(default_factory=list)
    param: int = 0
    n1: int = 0
    outline: List[Vec2S] = field(default_factory=list)
    params: List[int] = field(default_factory=list)


@dataclass
class TeboBoard:
    header: TvwHeader = field(default_factory=TvwHeader)
    layers: List[TeboObject] = field(default_factory=list)
    nets: List[str] = field(default_factory=list)
    probes: ProbeRegistry = field(default_factory=ProbeRegistry)
    fixtures: FixtureRegistry = field(default_factory=FixtureRegistry)
    mystery: MysteryBlock = field(default_factory=MysteryBlock)
    parts: List[TeboPart] = field(default_factory=list)
    decals: List[TeboDecal] = field(default_factory=list)
