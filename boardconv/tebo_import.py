"""Translate a decoded Tebo board into the canonical board model.

Canonical layer 0 is a synthetic multilayer; native layer object i becomes
canonical layer i + 1, so native layer indices in parts shift by one too.
"""

import logging

from .cbf_model import (
    Board, Box, Decal, DrillLayer, Hole, LayerRole, LogicLayer, Pad, Part,
    Pin, PolyLine, Shape, ShapeType, Slot, Surface, TraceArc, TraceLine,
)
from .errors import FormatViolation
from .fixed32 import Fixed32
from .tebo_model import (
    DCODE_BASE, TeboBoard, TeboLayerType, TeboLogicLayer, TeboShape, TeboShapeType,
    TeboThroughLayer,
)
from .tebo_parser import parse_tebo
from .utils import fixed_to_mils, vec2s_to_point

log = logging.getLogger(__name__)

MULTILAYER_COLOR = 0xC0C0C0

_ROLE_MAP = {
    TeboLayerType.DOCUMENT: LayerRole.DOCUMENT,
    TeboLayerType.TOP: LayerRole.TOP,
    TeboLayerType.BOTTOM: LayerRole.BOTTOM,
    TeboLayerType.SIGNAL: LayerRole.SIGNAL,
    TeboLayerType.PLANE: LayerRole.PLANE,
    TeboLayerType.SOLDER_TOP: LayerRole.SOLDER_TOP,
    TeboLayerType.SOLDER_BOTTOM: LayerRole.SOLDER_BOTTOM,
    TeboLayerType.SILK_TOP: LayerRole.SILK_TOP,
    TeboLayerType.SILK_BOTTOM: LayerRole.SILK_BOTTOM,
    TeboLayerType.PASTE_TOP: LayerRole.PASTE_TOP,
    TeboLayerType.PASTE_BOTTOM: LayerRole.PASTE_BOTTOM,
    TeboLayerType.DRILL: LayerRole.DRILL,
    TeboLayerType.ROUL: LayerRole.ROUTE,
}

_SHAPE_MAP = {
    TeboShapeType.ROUND: ShapeType.ROUND,
    TeboShapeType.RECT: ShapeType.RECT,
    TeboShapeType.ROUNDRECT: ShapeType.ROUNDRECT,
    TeboShapeType.POLY: ShapeType.POLY,
}


def import_tebo(data: bytes) -> Board:
    """Decode a Tebo view file straight into a canonical Board."""
    return tebo_to_cbf(parse_tebo(data))


def _mils(raw: int) -> float:
    return fixed_to_mils(Fixed32(raw))


def _convert_shape(src: TeboShape) -> Shape:
    shape = Shape(shape=_SHAPE_MAP[src.kind], size=vec2s_to_point(src.size))
    if src.kind == TeboShapeType.ROUNDRECT:
        shape.radius = _mils(src.corner_radius)
    elif src.kind == TeboShapeType.POLY:
        shape.name = src.name
        shape.bbox = Box(vec2s_to_point(src.bbox.min), vec2s_to_point(src.bbox.max))
        shape.vertices = [vec2s_to_point(v) for v in src.vertices]
        shape.lines = [
            PolyLine(vec2s_to_point(l.start), vec2s_to_point(l.end), _mils(l.width))
            for l in src.lines
        ]
    return shape


def _convert_logic_layer(src: TeboLogicLayer) -> LogicLayer:
    layer = LogicLayer(name=src.name, role=_ROLE_MAP[src.layer_type],
                       pad_color=src.pad_color, line_color=src.line_color)
    layer.shapes = [_convert_shape(s) for s in src.shapes]

    for p in src.pads:
        pad = Pad(net=p.net, shape=p.shape_index, pos=vec2s_to_point(p.pos))
        pad.rotation = src.shapes[p.shape_index].turn
        if p.has_hole:
            pad.hole_size = vec2s_to_point(p.hole_size)
        layer.pads.append(pad)

    for l in src.lines:
        width = layer.shapes[l.dcode - DCODE_BASE].size.x
        layer.lines.append(TraceLine(vec2s_to_point(l.start), vec2s_to_point(l.end),
                                     width, l.net))

    for a in src.arcs:
        width = layer.shapes[a.dcode - DCODE_BASE].size.x
        layer.arcs.append(TraceArc(vec2s_to_point(a.pos), _mils(a.radius),
                                   a.start_angle, a.sweep_angle, width, a.net))

    for s in src.surfaces:
        layer.surfaces.append(Surface(
            vertices=[vec2s_to_point(v) for v in s.vertices],
            cutouts=[[vec2s_to_point(v) for v in c.vertices] for c in s.voids],
            net=s.net,
        ))
    return layer


def _tool_width(src: TeboThroughLayer, tool: int) -> float:
    if not 1 <= tool <= len(src.tools):
        raise FormatViolation(
            f"Drill tool {tool} out of range on layer {src.name!r}, "
            f"{len(src.tools)} tools defined"
        )
    return fixed_to_mils(src.tools[tool - 1].size)


def _convert_through_layer(src: TeboThroughLayer) -> DrillLayer:
    layer = DrillLayer(name=src.name, role=_ROLE_MAP[src.layer_type],
                       pad_color=src.pad_color, line_color=src.line_color)
    for h in src.holes:
        layer.holes.append(Hole(vec2s_to_point(h.pos), _tool_width(src, h.tool), h.net))
    for s in src.slots:
        layer.slots.append(Slot(vec2s_to_point(s.begin), vec2s_to_point(s.end),
                                _tool_width(src, s.tool), s.net))
    return layer


def tebo_to_cbf(tebo: TeboBoard) -> Board:
    """Build the canonical Board from a decoded Tebo board."""
    board = Board()
    board.layers.append(LogicLayer(name="multilayer", role=LayerRole.MULTILAYER,
                                   pad_color=MULTILAYER_COLOR,
                                   line_color=MULTILAYER_COLOR))
    for obj in tebo.layers:
        if isinstance(obj, TeboLogicLayer):
            board.layers.append(_convert_logic_layer(obj))
        else:
            board.layers.append(_convert_through_layer(obj))

    board.nets = list(tebo.nets)

    for src in tebo.parts:
        layer_index = src.layer + 1
        layer = board.layers[layer_index] if layer_index < len(board.layers) else None
        if not isinstance(layer, LogicLayer) or layer.role not in (LayerRole.TOP, LayerRole.BOTTOM):
            log.warning("Part %s is on native layer %d, which is neither top nor bottom; skipped",
                        src.name, src.layer)
            continue
        part = Part(
            name=src.name,
            bbox=Box(vec2s_to_point(src.bbox.min), vec2s_to_point(src.bbox.max)),
            pos=vec2s_to_point(src.pos),
            rotation=float(src.angle),
            decal=src.decal,
            height=_mils(src.height),
            value=src.value,
            tolerance_p=src.tolerance_p,
            tolerance_n=src.tolerance_n,
            desc=src.desc,
            layer=layer_index,
        )
        for p in src.pins:
            if p.pad_index >= len(layer.pads):
                raise FormatViolation(
                    f"Pin {src.name}.{p.id} refers to pad {p.pad_index}, "
                    f"layer {layer.name!r} has {len(layer.pads)} pads"
                )
            part.pins.append(Pin(layer=layer_index, pad=p.pad_index, id=p.id, name=p.name))
        board.parts.append(part)

    for src in tebo.decals:
        if not src.outline:
            raise FormatViolation(f"Decal {src.name!r} has an empty outline")
        board.decals.append(Decal(src.name, [vec2s_to_point(v) for v in src.outline]))

    log.info("Translated %d layers, %d nets, %d parts, %d decals",
             len(board.layers), len(board.nets), len(board.parts), len(board.decals))
    return board
