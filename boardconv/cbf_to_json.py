"""Canonical board -> JSON dump, for inspecting what an importer produced."""

import json
import logging

from .cbf_model import Board, DrillLayer, LogicLayer, ShapeType
from .utils import fmt

log = logging.getLogger(__name__)


def _num(v):
    return float(fmt(v))


def _point(p):
    """Format a Point as [x, y] list."""
    return [_num(p.x), _num(p.y)]


def _box(b):
    return {"min": _point(b.min), "max": _point(b.max)}


def _shape(shape):
    d = {
        "type": shape.shape.name.lower(),
        "size": _point(shape.size),
        "name": shape.name,
    }
    if shape.shape in (ShapeType.ROUNDRECT, ShapeType.OCTAGON):
        d["radius"] = _num(shape.radius)
    if shape.shape == ShapeType.POLY:
        d["bbox"] = _box(shape.bbox) if shape.bbox is not None else None
        d["vertices"] = [_point(v) for v in shape.vertices]
        d["lines"] = [
            {"start": _point(l.start), "end": _point(l.end), "width": _num(l.width)}
            for l in shape.lines
        ]
    return d


def _logic_layer(layer: LogicLayer, d: dict):
    d["kind"] = "logic"
    d["shapes"] = [_shape(s) for s in layer.shapes]
    d["pads"] = [{
        "net": p.net,
        "shape": p.shape,
        "pos": _point(p.pos),
        "rotation": _num(p.rotation),
        "hole_offset": _point(p.hole_offset),
        "hole_size": _point(p.hole_size),
    } for p in layer.pads]
    d["lines"] = [{
        "start": _point(l.start),
        "end": _point(l.end),
        "width": _num(l.width),
        "net": l.net,
    } for l in layer.lines]
    d["arcs"] = [{
        "pos": _point(a.pos),
        "radius": _num(a.radius),
        "start_angle": _num(a.start_angle),
        "sweep_angle": _num(a.sweep_angle),
        "width": _num(a.width),
        "net": a.net,
    } for a in layer.arcs]
    d["surfaces"] = [{
        "vertices": [_point(v) for v in s.vertices],
        "cutouts": [[_point(v) for v in c] for c in s.cutouts],
        "net": s.net,
    } for s in layer.surfaces]
    d["test_points"] = [{"pos": _point(t.pos), "net": t.net} for t in layer.test_points]


def _drill_layer(layer: DrillLayer, d: dict):
    d["kind"] = "drill"
    d["span"] = list(layer.span)
    d["holes"] = [{"pos": _point(h.pos), "width": _num(h.width), "net": h.net}
                  for h in layer.holes]
    d["slots"] = [{"start": _point(s.start), "end": _point(s.end),
                   "width": _num(s.width), "net": s.net}
                  for s in layer.slots]


def model_to_json(board: Board) -> dict:
    """Convert a Board to a JSON-serializable dict."""
    result = {}

    # ── layers ───────────────────────────────────────────────────────
    result["layers"] = []
    for layer in board.layers:
        d = {
            "name": layer.name,
            "role": layer.role.name.lower(),
            "pad_color": f"#{layer.pad_color:06X}",
            "line_color": f"#{layer.line_color:06X}",
        }
        if isinstance(layer, LogicLayer):
            _logic_layer(layer, d)
        elif isinstance(layer, DrillLayer):
            _drill_layer(layer, d)
        result["layers"].append(d)

    # ── nets ─────────────────────────────────────────────────────────
    result["nets"] = [{"id": i, "name": name} for i, name in enumerate(board.nets)]

    # ── parts ────────────────────────────────────────────────────────
    result["parts"] = []
    for part in board.parts:
        result["parts"].append({
            "name": part.name,
            "bbox": _box(part.bbox),
            "pos": _point(part.pos),
            "rotation": _num(part.rotation),
            "decal": part.decal,
            "height": _num(part.height),
            "value": part.value,
            "tolerance_p": part.tolerance_p,
            "tolerance_n": part.tolerance_n,
            "desc": part.desc,
            "layer": part.layer,
            "pins": [
                {"id": pin.id, "name": pin.name, "layer": pin.layer, "pad": pin.pad}
                for pin in part.pins
            ],
        })

    # ── decals ───────────────────────────────────────────────────────
    result["decals"] = [
        {"name": d.name, "outline": [_point(v) for v in d.outline]}
        for d in board.decals
    ]

    log.info("JSON: %d layers, %d nets, %d parts, %d decals",
             len(result["layers"]), len(result["nets"]),
             len(result["parts"]), len(result["decals"]))
    return result


def write_json(board: Board) -> str:
    """Compact JSON text of a Board, newline-terminated."""
    return json.dumps(model_to_json(board), separators=(",", ":")) + "\n"
