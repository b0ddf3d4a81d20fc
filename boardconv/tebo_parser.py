"""Tebo-ICT binary view (*.TVW) decoder.

The file is a strictly sequential stream of little-endian records:

  header            - cipher-encoded type/customer/date, layer count
  layer objects     - Logic (copper) or Through (drill) layers
  padding           - four zero words
  nets              - net name table
  probe registry    - test probe definitions
  fixture registry  - fixture grids and per-side settings
  mystery block     - fixed-size settings block
  parts             - placed components with pins
  decals            - component silhouettes

Every constant the format is known to carry is checked; any mismatch raises
FormatViolation at the offending offset.
"""

import logging

from .errors import FormatViolation
from .fixed32 import Box2S
from .stream_reader import StreamReader
from .tebo_model import (
    DCODE_BASE, Cutout, DoubleBox32, DrillHole, DrillSlot, DrillTool,
    FixtureData, FixtureRegistry, FixtureSetting, FixtureVariant,
    MysteryBlock, ObjectType, PolyLine, Probe, ProbeBox8, ProbeBox32,
    ProbeData, ProbeDataItem, ProbeRegistry, TeboArc, TeboBoard, TeboDecal,
    TeboLayerType, TeboLine, TeboLogicLayer, TeboObject, TeboPad, TeboPart,
    TeboPin, TeboShape, TeboShapeType, TeboSurface, TeboTestPoint,
    TeboTestPoint2, TeboThroughLayer, TestNode, TvwHeader, UnknownItem,
)

log = logging.getLogger(__name__)

# Zero words tolerated before an object type word
MAX_TYPE_SKIPS = 4
FIXTURE_MAGIC = 7874
GRID_COUNT = 8
DECAL_OBJECT_SLOTS = 3

_A, _J, _K, _Z = ord("a"), ord("j"), ord("k"), ord("z")
_UA, _UZ = ord("A"), ord("Z")
_D0, _D9 = ord("0"), ord("9")


def decode_string(raw: bytes) -> str:
    """Decode a cipher-protected header string.

    Each byte is shifted by an amount depending on its character class and
    its index; bytes outside a-z, A-Z and 0-9 pass through unchanged.
    """
    out = bytearray(raw)
    for i, c in enumerate(raw):
        if _A <= c <= _J:
            x = c - i % 3 - 4
            if x < _A:
                x += 10
            out[i] = 154 - x
        elif _K <= c <= _Z:
            x = c - i % 10 - 5
            out[i] = x if x >= _K else x + 16
        elif _UA <= c <= _UZ:
            x = c + i % 10 + 5
            out[i] = x if x <= _UZ else x - 26
        elif _D0 <= c <= _D9:
            x = c + i % 3 + 4
            if x > _D9:
                x -= 10
            out[i] = x + 49
    return out.decode("latin-1")


def parse_tebo(data: bytes) -> TeboBoard:
    """Decode a complete Tebo view file.

    Args:
        data: Whole file contents

    Returns:
        Populated TeboBoard

    Raises:
        UnexpectedEof: the data ends inside a record
        FormatViolation: a structural check failed
    """
    return TeboParser(data).parse()


class TeboParser:
    def __init__(self, data: bytes):
        self.r = StreamReader(data)
        self.board = TeboBoard()

    def parse(self) -> TeboBoard:
        b = self.board
        b.header = self._read_header()
        for _ in range(b.header.layer_count):
            b.layers.append(self._read_object())
        log.info("Loaded %d layer objects", len(b.layers))
        self._expect_zero_words(4, "Padding after layers")
        b.nets = self._read_nets()
        b.probes = self._read_probe_registry()
        b.fixtures = self._read_fixture_registry()
        b.mystery = self._read_mystery_block()
        b.parts = self._read_parts()
        b.decals = self._read_decals()
        log.info("Done reading at offset 0x%08X (%d bytes left)",
                 self.r.tell(), self.r.remaining())
        return b

    # ── Helpers ───────────────────────────────────────────────────────

    def _string(self) -> str:
        return self.r.string255().decode("latin-1")

    def _expect_zero_words(self, count: int, what: str):
        for _ in range(count):
            self.r.expect_u32(0, what)

    def _check_dcode(self, dcode: int, shapes: list, offset: int):
        if not DCODE_BASE <= dcode < DCODE_BASE + len(shapes):
            raise FormatViolation(
                f"DCode {dcode} out of range, layer has {len(shapes)} shapes", offset
            )

    # ── Header ────────────────────────────────────────────────────────

    def _read_header(self) -> TvwHeader:
        r = self.r
        h = TvwHeader()
        h.type = decode_string(r.string255())
        r.expect_u32(1, "Header constant")
        h.customer = decode_string(r.string255())
        offset = r.tell()
        r.expect(r.u8() == 0, "Header constant byte must be 0", offset)
        h.date = decode_string(r.string255())
        offset = r.tell()
        r.expect(r.read_array("u8", 3) == [0, 0, 0], "Header padding must be zero", offset)
        h.size1, h.size2, h.size3 = r.u32(), r.u32(), r.u32()
        h.layer_count = r.u32()
        log.info("Tebo header: type=%r customer=%r date=%r layers=%d",
                 h.type, h.customer, h.date, h.layer_count)
        return h

    # ── Layer objects ─────────────────────────────────────────────────

    def _detect_object(self) -> ObjectType:
        r = self.r
        for _ in range(MAX_TYPE_SKIPS):
            offset = r.tell()
            value = r.u32()
            if not value:
                continue
            try:
                return ObjectType(value)
            except ValueError:
                raise FormatViolation(f"Unrecognized object type {value}", offset) from None
        raise FormatViolation("No object type found", r.tell())

    def _read_object(self) -> TeboObject:
        kind = self._detect_object()
        if kind == ObjectType.LOGIC:
            obj = TeboLogicLayer()
            self._read_prologue(obj)
            self._read_logic_layer(obj)
        else:
            obj = TeboThroughLayer()
            self._read_prologue(obj)
            self._read_through_layer(obj)
        log.debug("Object %r done at offset 0x%08X", obj.name, self.r.tell())
        return obj

    def _read_prologue(self, obj: TeboObject):
        r = self.r
        obj.offset = r.tell()
        r.expect_u32(2, "Object magic")
        r.expect_u32(1, "Object magic")
        obj.name = self._string()
        obj.initial_name = self._string()
        obj.initial_path = self._string()
        offset = r.tell()
        code = r.u32()
        try:
            obj.layer_type = TeboLayerType(code)
        except ValueError:
            raise FormatViolation(f"Unrecognized layer type {code}", offset) from None
        obj.pad_color = r.u32()
        obj.line_color = r.u32()
        log.debug("Loading object %r type %s at offset 0x%08X",
                  obj.name, obj.layer_type.name, obj.offset)

    # ── Logic layer ───────────────────────────────────────────────────

    def _read_logic_layer(self, layer: TeboLogicLayer):
        r = self.r
        layer.shapes = self._read_shapes()
        if layer.shapes:
            offset = r.tell()
            order = r.u32()
            # 1: pads, lines, arcs, surfaces
            # 2: as 1, then four filler words and a second lines/arcs block
            if order not in (1, 2):
                raise FormatViolation(f"Unrecognized data order {order}", offset)
            layer.extra_data = order == 2
            r.expect_u32(0, "Data order flags")
            r.expect_u32(1, "Data order flags")
            layer.pads = self._read_pads(layer.shapes)
            layer.lines = self._read_lines(layer.shapes)
            layer.arcs = self._read_arcs(layer.shapes)
            layer.surfaces = self._read_surfaces()
            if layer.extra_data:
                filler = r.read_array("u32", 4)
                log.debug("Extra data filler: %s", filler)
                layer.lines.extend(self._read_lines(layer.shapes))
                layer.arcs.extend(self._read_arcs(layer.shapes))
                r.expect_u32(0, "Extra data terminator")
        self._read_unknown_items(layer)
        self._read_test_points(layer)

    def _read_shapes(self) -> list:
        r = self.r
        offset = r.tell()
        # Stored value is the highest DCode, not a count
        count = r.u32()
        if not count:
            return []
        if count < DCODE_BASE:
            raise FormatViolation(f"Shape count {count} below DCode base", offset)
        return [self._read_shape() for _ in range(count - DCODE_BASE)]

    def _read_shape(self) -> TeboShape:
        r = self.r
        r.expect_u32(1, "Shape tag")
        shape = TeboShape(size=r.vec2s())
        offset = r.tell()
        code = r.u32()
        try:
            shape.kind = TeboShapeType(code)
        except ValueError:
            raise FormatViolation(f"Unrecognized shape type {code}", offset) from None

        if shape.kind == TeboShapeType.ROUND:
            r.vec2s()
        elif shape.kind == TeboShapeType.RECT:
            shape.turn = r.f32()
            r.s32()
        elif shape.kind == TeboShapeType.ROUNDRECT:
            shape.turn = r.f32()
            shape.corner_radius = r.s32()
        else:
            self._read_poly(shape)
        return shape

    def _read_poly(self, shape: TeboShape):
        r = self.r
        r.u32()
        shape.name = self._string()
        shape.bbox = Box2S(r.vec2s(), r.vec2s())
        sub_count = r.u32()
        seen_vertices = False
        for _ in range(sub_count):
            offset = r.tell()
            sub = r.u32()
            if sub == 2:
                r.expect(not seen_vertices, "Poly shape has more than one vertex list", offset)
                seen_vertices = True
                shape.flags = r.read_array("s32", 3)
                n = r.u32()
                shape.vertices = [r.vec2s() for _ in range(n)]
            elif sub == 5:
                r.expect_u32(1, "Poly line tag")
                r.expect_u32(0, "Poly line param")
                r.expect_u32(0, "Poly line param")
                shape.lines.append(PolyLine(r.vec2s(), r.vec2s(), r.s32()))
            else:
                raise FormatViolation(f"Unrecognized poly subobject type {sub}", offset)

    def _read_pads(self, shapes: list) -> list:
        r = self.r
        count = r.u32()
        if not count:
            return []
        r.expect_u32(2, "Pad table tag")
        pads = []
        for _ in range(count):
            offset = r.tell()
            pad = TeboPad(net=r.s32(), dcode=r.u32(), pos=r.vec2s())
            pad.is_exposed = r.bool8()
            pad.is_copper = r.bool8()
            pad.testpoint_param = r.u8()
            self._check_dcode(pad.dcode, shapes, offset)
            if pad.is_copper:
                pad.is_something = r.bool8()
                if pad.testpoint_param == 1:
                    pad.testpoint_data = r.raw(12)
                if pad.is_exposed or pad.is_something:
                    pad.exposed = Box2S(r.vec2s(), r.vec2s())
                pad.has_hole = r.bool8()
                pad.tail_param = r.u8()
                if pad.has_hole:
                    pad.hole_data = r.raw(7)
                    pad.hole_size = r.vec2s()
                    pad.hole_param = r.u8()
            else:
                r.expect(not pad.is_exposed and pad.testpoint_param != 1,
                         "Non-copper pad must not be exposed or a test point", offset)
            pads.append(pad)
        return pads

    def _read_lines(self, shapes: list) -> list:
        r = self.r
        count = r.u32()
        if not count:
            return []
        r.expect_u32(0, "Line table tag")
        lines = []
        for _ in range(count):
            offset = r.tell()
            line = TeboLine(net=r.s32(), dcode=r.u32())
            self._check_dcode(line.dcode, shapes, offset)
            line.start = r.vec2s()
            line.end = r.vec2s()
            lines.append(line)
        return lines

    def _read_arcs(self, shapes: list) -> list:
        r = self.r
        count = r.u32()
        if not count:
            return []
        r.expect_u32(0, "Arc table tag")
        arcs = []
        for _ in range(count):
            offset = r.tell()
            arc = TeboArc(net=r.s32(), dcode=r.u32())
            self._check_dcode(arc.dcode, shapes, offset)
            arc.pos = r.vec2s()
            arc.radius = r.s32()
            arc.start_angle = r.f32()
            arc.sweep_angle = r.f32()
            arcs.append(arc)
        return arcs

    def _read_surfaces(self) -> list:
        r = self.r
        count = r.u32()
        if not count:
            return []
        r.expect_u32(2, "Surface table tag")
        surfaces = []
        for _ in range(count):
            s = TeboSurface(net=r.s32())
            n = r.u32()
            s.vertices = [r.vec2s() for _ in range(n)]
            s.line_width = r.s32()
            void_count = r.u32()
            for _ in range(void_count):
                offset = r.tell()
                tag = r.u32()
                r.expect(tag <= 1, f"Cutout tag must be 0 or 1, got {tag}", offset)
                n = r.u32()
                s.voids.append(Cutout(tag, [r.vec2s() for _ in range(n)]))
            if void_count:
                s.void_flags = r.u32()
            surfaces.append(s)
        return surfaces

    def _read_unknown_items(self, layer: TeboLogicLayer):
        r = self.r
        count = r.u32()
        layer.unknown_items_param = r.u32()
        for _ in range(count):
            item = UnknownItem(name=self._string(), pos=r.vec2s())
            item.params = r.read_array("s32", 6)
            item.flags = r.bools(3)
            item.param4 = r.s32()
            layer.unknown_items.append(item)
        if count:
            r.expect_u32(0, "Unknown item terminator")
        r.expect_u32(7, "Unknown item block end")

    def _read_test_point(self) -> TeboTestPoint:
        r = self.r
        tp = TeboTestPoint(flag1=r.bool8())
        tp.p1, tp.handle, tp.p2, tp.p3 = r.read_array("s32", 4)
        tp.pos = r.vec2s()
        tp.p4 = r.s32()
        tp.flag2 = r.bool8()
        tp.p5, tp.p6, tp.n = r.read_array("s32", 3)
        return tp

    def _read_test_point2(self) -> TeboTestPoint2:
        r = self.r
        tp = TeboTestPoint2()
        tp.p1, tp.handle, tp.p2 = r.read_array("s32", 3)
        tp.pos, tp.pos1, tp.pos2 = r.vec2s(), r.vec2s(), r.vec2s()
        tp.flags = r.bools(3)
        tp.nail = r.u32()
        tp.param = r.s32()
        tp.flags += r.bools(3)
        tp.n = r.s32()
        return tp

    def _read_test_points(self, layer: TeboLogicLayer):
        r = self.r
        count = r.u32()
        layer.test_points = [self._read_test_point() for _ in range(count)]
        r.expect_u32(0, "Test point block tag")
        r.expect_u32(4, "Test point block tag")
        count, layer.tps2_param = r.u32(), r.u32()
        layer.test_points2 = [self._read_test_point2() for _ in range(count)]
        count, layer.tps3_param = r.u32(), r.u32()
        layer.test_points3 = [self._read_test_point2() for _ in range(count)]
        count, layer.test_sequence_param = r.u32(), r.u32()
        for _ in range(count):
            layer.test_sequence.append(TestNode(r.u32(), r.u32(), r.bool8()))
        if layer.test_sequence_param == 1:
            self._expect_zero_words(3, "Test sequence terminator")

    # ── Through layer ─────────────────────────────────────────────────

    def _read_through_layer(self, layer: TeboThroughLayer):
        r = self.r
        self._expect_zero_words(2, "Through layer header")
        offset = r.tell()
        # Stored count is one more than the number of tools
        tool_count = r.u32()
        r.expect(tool_count > 0, "Tool count must not be zero", offset)
        for _ in range(tool_count - 1):
            tool = DrillTool(flag1=r.bool8(), flag2=r.bool8())
            tool.size = r.fixed()
            tool.data5 = r.read_array("u32", 5)
            tool.data3 = r.read_array("u8", 3)
            layer.tools.append(tool)
        offset = r.tell()
        r.expect(r.u8() == 0, "Tool table terminator must be 0", offset)
        drill_count = r.u32()
        layer.v2 = r.u32()
        log.debug("Drill features: %d, v2: %d", drill_count, layer.v2)
        self._expect_zero_words(4, "Drill feature header")
        for _ in range(drill_count):
            offset = r.tell()
            code = r.u8()
            if code == 0x08:
                layer.holes.append(DrillHole(r.s32(), r.u32(), r.vec2s()))
            elif code == 0x0A:
                layer.slots.append(DrillSlot(r.s32(), r.u32(), r.vec2s(), r.vec2s()))
                r.expect_u32(0, "Drill slot terminator")
            else:
                raise FormatViolation(f"Unrecognized drill code 0x{code:02X}", offset)

    # ── Nets ──────────────────────────────────────────────────────────

    def _read_nets(self) -> list:
        r = self.r
        offset = r.tell()
        count, count2 = r.u32(), r.u32()
        if not (count > 0 and count == count2):
            raise FormatViolation(f"Net counts disagree or are zero: {count}, {count2}", offset)
        log.info("Loading %d nets", count)
        return [self._string() for _ in range(count)]

    # ── Probes and fixtures ───────────────────────────────────────────

    def _read_probe_box32(self) -> ProbeBox32:
        r = self.r
        return ProbeBox32(r.s32(), r.vec2s(), r.vec2s())

    def _read_fixture_data(self) -> FixtureData:
        r = self.r
        fd = FixtureData(p1=r.u32(), px=r.read_array("u32", 6), flags=r.bools(3))
        offset = r.tell()
        item_count = r.u32()
        r.expect(item_count > 0, "Fixture data has no items", offset)
        for _ in range(item_count):
            item = ProbeDataItem(present=r.bool8())
            if item.present:
                item.size = r.s32()
                item.params = r.read_array("u32", 5)
                item.color = r.u32()
            fd.items.append(item)
        box_count = r.u32()
        fd.c1 = r.u32()
        fd.v1, fd.v2 = r.vec2s(), r.vec2s()
        for _ in range(box_count):
            fd.boxes.append(ProbeBox8(r.u8(), *r.read_array("s32", 4)))
        return fd

    def _read_probe(self) -> Probe:
        r = self.r
        p = Probe(flag=r.bool8(), tag=r.u32(), name=self._string())
        p.sizes = [(r.s32(), r.u32()) for _ in range(3)]
        p.color = r.u32()
        p.kv = [(r.u32(), r.u32()) for _ in range(4)]
        if r.bool8():
            body = ProbeData(fixture=self._read_fixture_data())
            body.v3, body.v4 = r.vec2s(), r.vec2s()
            for _ in range(r.u32()):
                body.boxes2.append(DoubleBox32(r.u32(), self._read_probe_box32(),
                                               self._read_probe_box32()))
            p.body = body
        p.tail_tag = r.u32()
        p.tail_flags = r.bools(3)
        p.tail_p0 = r.u8()
        p.tail_params = r.read_array("s32", 3)
        p.tail_boxes = [self._read_probe_box32(), self._read_probe_box32()]
        return p

    def _read_probe_registry(self) -> ProbeRegistry:
        r = self.r
        self._expect_zero_words(2, "Probe registry header")
        r.expect_u32(4, "Probe registry param")
        reg = ProbeRegistry(name=self._string(), default_size=r.u32())
        offset = r.tell()
        pack_count = r.u32()
        r.expect(pack_count > 0, "Probe registry has no packs", offset)
        for _ in range(pack_count):
            probe_count = r.u32()
            reg.packs.append([self._read_probe() for _ in range(probe_count)])
        log.info("Loaded %d probe packs", len(reg.packs))
        return reg

    def _read_fixture_setting(self) -> FixtureSetting:
        r = self.r
        r.expect_u32(3, "Fixture setting tag")
        setting = FixtureSetting(name=self._string())
        r.expect_u32(0, "Fixture setting param")
        for _ in range(r.u32()):
            v = FixtureVariant(name=self._string(), short_name=self._string())
            v.flag1, v.flag2 = r.bool8(), r.bool8()
            v.data = self._read_fixture_data()
            setting.variants.append(v)
        setting.workspace_size = r.vec2s()
        return setting

    def _read_fixture_registry(self) -> FixtureRegistry:
        r = self.r
        r.expect_u32(0, "Fixture registry tag")
        r.expect_u32(FIXTURE_MAGIC, "Fixture registry tag")
        reg = FixtureRegistry(grids=[self._string() for _ in range(GRID_COUNT)])
        reg.top = self._read_fixture_setting()
        reg.bottom = self._read_fixture_setting()
        return reg

    def _read_mystery_block(self) -> MysteryBlock:
        r = self.r
        m = MysteryBlock()
        m.words = r.read_array("u32", 2)
        m.top_right = r.vec2s()
        m.words += r.read_array("u32", 2)
        m.flags = r.bools(2)
        m.bytes_ = r.read_array("u8", 2)
        m.words += r.read_array("u32", 4)
        m.flags += r.bools(6)
        m.words += r.read_array("u32", 4)
        m.bytes_ += r.read_array("u8", 2)
        log.debug("Mystery block: words=%s flags=%s bytes=%s", m.words, m.flags, m.bytes_)
        return m

    # ── Parts and decals ──────────────────────────────────────────────

    def _read_part(self) -> TeboPart:
        r = self.r
        part = TeboPart(name=self._string())
        part.bbox = Box2S(r.vec2s(), r.vec2s())
        part.pos = r.vec2s()
        part.angle = r.s32()
        part.decal = r.u32()
        part.kind = r.u32()
        r.expect_u32(0, "Part param")
        part.height = r.s32()
        has_serial = r.bool8()
        part.value = self._string()
        part.tolerance_p = self._string()
        part.tolerance_n = self._string()
        part.desc = self._string()
        if has_serial:
            part.serial = self._string()
            r.expect_u32(0, "Part serial terminator")
        pin_count = r.u32()
        part.layer = r.u32()
        r.expect_u32(0, "Part pin table param")
        for _ in range(pin_count):
            pin = TeboPin(handle=r.u32())
            r.expect_u32(0, "Pin param")
            pin.id = r.u32()
            pin.name = self._string()
            r.expect_u32(0, "Pin terminator")
            part.pins.append(pin)
        return part

    def _read_parts(self) -> list:
        r = self.r
        count = r.u32()
        r.u32()
        log.info("Loading %d parts", count)
        return [self._read_part() for _ in range(count)]

    def _read_decal(self) -> TeboDecal:
        r = self.r
        offset = r.tell()
        r.expect(r.bool8(), "Decal leading flag must be set", offset)
        decal = TeboDecal(name=self._string())
        decal.header_params = r.read_array("u32", 3)
        decal.flag = r.bool8()
        for _ in range(DECAL_OBJECT_SLOTS):
            decal.layers.append(self._read_object() if r.bool8() else None)
        offset = r.tell()
        r.expect(r.bool8(), "Decal outline flag must be set", offset)
        decal.param = r.u32()
        decal.n1 = r.s32()
        n = r.u32()
        decal.outline = [r.vec2s() for _ in range(n)]
        decal.params = r.read_array("u32", 2)
        return decal

    def _read_decals(self) -> list:
        r = self.r
        r.expect_u32(3, "Decal table tag")
        count = r.u32()
        log.info("Loading %d decals", count)
        return [self._read_decal() for _ in range(count)]
