#!/usr/bin/env python3
"""Tests for the EAGLE XML board importer."""

import math
import sys
import unittest
from pathlib import Path

# Add project root to path
sys.path.insert(0, str(Path(__file__).parent.parent))

from boardconv.cbf_model import NO_NET, DrillLayer, LayerRole, check_board
from boardconv.eagle_parser import (
    POLY_ARC_THRESHOLD, color_by_index, layer_role, parse_eagle, parse_rotation,
)
from boardconv.errors import FormatViolation
from boardconv.utils import mm_to_mils

LAYERS = """
<layers>
  <layer number="1" name="Top" color="4"/>
  <layer number="16" name="Bottom" color="1"/>
  <layer number="20" name="Dimension" color="15"/>
  <layer number="21" name="tPlace" color="7"/>
</layers>
"""

BOARD = """<?xml version="1.0" encoding="utf-8"?>
<eagle version="9.6.2">
<drawing>
%(layers)s
<board>
<plain>
  <wire x1="0" y1="0" x2="25.4" y2="0" width="0.254" layer="20"/>
  <wire x1="25.4" y1="0" x2="25.4" y2="12.7" width="0.254" layer="20"/>
  <wire x1="25.4" y1="12.7" x2="0" y2="12.7" width="0.254" layer="20"/>
  <wire x1="0" y1="12.7" x2="0" y2="0" width="0.254" layer="20"/>
  <wire x1="1" y1="1" x2="2" y2="2" width="0.1" layer="21"/>
</plain>
<libraries>
  <library name="rcl">
    <packages>
      <package name="R0603">
        <smd name="1" x="-1" y="0" dx="1" dy="1.2" layer="1"/>
        <smd name="2" x="1" y="0" dx="1" dy="1.2" layer="1"/>
      </package>
    </packages>
  </library>
  <library name="con">
    <packages>
      <package name="CONN">
        <pad name="1" x="0" y="0" drill="1" diameter="1.8"/>
        <pad name="10" x="5.08" y="0" drill="1"/>
        <pad name="2" x="2.54" y="0" drill="1" diameter="1.8"/>
      </package>
    </packages>
  </library>
</libraries>
<elements>
  <element name="R1" library="rcl" package="R0603" value="10k" x="10" y="5" rot="R90"/>
  <element name="R2" library="rcl" package="R0603" value="1k" x="20" y="5" rot="MR90"/>
  <element name="J1" library="con" package="CONN" value="HDR" x="0" y="0"/>
</elements>
<signals>
  <signal name="GND">
    <contactref element="R1" pad="1"/>
    <contactref element="J1" pad="1"/>
  </signal>
  <signal name="VCC">
    <contactref element="R1" pad="2"/>
  </signal>
</signals>
</board>
</drawing>
</eagle>
"""


def _board_xml(layers=LAYERS, **replace):
    text = BOARD % {"layers": layers}
    for old, new in replace.items():
        text = text.replace(old, new)
    return text.encode("utf-8")


def _mils(x, y):
    return mm_to_mils(x), mm_to_mils(y)


class PointAssertions:
    def assertPoint(self, p, x, y):
        self.assertAlmostEqual(p.x, x, places=6)
        self.assertAlmostEqual(p.y, y, places=6)


class TestEagleHelpers(unittest.TestCase):

    def test_parse_rotation(self):
        self.assertEqual(parse_rotation(""), (False, False, 0.0))
        self.assertEqual(parse_rotation("R90"), (False, False, 90.0))
        self.assertEqual(parse_rotation("MR180"), (True, False, 180.0))
        self.assertEqual(parse_rotation("SMR45.5"), (True, True, 45.5))

    def test_parse_rotation_invalid(self):
        with self.assertRaises(FormatViolation):
            parse_rotation("Rxx")

    def test_layer_role(self):
        self.assertEqual(layer_role(0), LayerRole.MULTILAYER)
        self.assertEqual(layer_role(1), LayerRole.TOP)
        self.assertEqual(layer_role(2), LayerRole.SIGNAL)
        self.assertEqual(layer_role(16), LayerRole.BOTTOM)
        self.assertEqual(layer_role(20), LayerRole.ROUTE)
        self.assertEqual(layer_role(44), LayerRole.DRILL)
        self.assertEqual(layer_role(21), LayerRole.DOCUMENT)

    def test_color_by_index(self):
        self.assertEqual(color_by_index(0), 0x000000)
        self.assertEqual(color_by_index(4), 0x8D2323)
        self.assertEqual(color_by_index(999), color_by_index(63))


class TestEagleImport(PointAssertions, unittest.TestCase):

    @classmethod
    def setUpClass(cls):
        cls.board = parse_eagle(_board_xml())

    def test_layers(self):
        layers = self.board.layers
        self.assertEqual([l.role for l in layers], [
            LayerRole.MULTILAYER, LayerRole.TOP, LayerRole.BOTTOM, LayerRole.ROUTE])
        self.assertEqual([l.name for l in layers], ["multilayer", "Top", "Bottom", "Dimension"])
        self.assertEqual(layers[1].pad_color, 0x8D2323)
        for layer in layers[:3]:
            self.assertEqual(len(layer.shapes), 1)
            self.assertEqual(layer.shapes[0].name, "dummy_1mil")

    def test_nets(self):
        self.assertEqual(self.board.nets, ["GND", "VCC"])

    def test_outline_wires(self):
        route = self.board.layers[3]
        self.assertIsInstance(route, DrillLayer)
        self.assertEqual(len(route.slots), 4)
        self.assertPoint(route.slots[0].end, *_mils(25.4, 0))
        self.assertAlmostEqual(route.slots[0].width, mm_to_mils(0.254))
        self.assertEqual(route.slots[0].net, NO_NET)

    def test_part_on_top(self):
        r1 = self.board.parts[0]
        self.assertEqual(r1.name, "R1")
        self.assertEqual(r1.layer, 1)
        self.assertEqual(r1.value, "10k")
        self.assertEqual(r1.desc, "R0603")
        self.assertEqual(r1.rotation, 90.0)
        self.assertEqual([(p.layer, p.pad, p.id, p.name) for p in r1.pins],
                         [(1, 0, 1, "1"), (1, 1, 2, "2")])
        pads = self.board.layers[1].pads
        # Local (-1, 0) rotated by 90 degrees
        self.assertPoint(pads[0].pos, *_mils(10, 4))
        self.assertPoint(pads[1].pos, *_mils(10, 6))
        self.assertEqual([p.net for p in pads], [0, 1])

    def test_mirrored_part(self):
        r2 = self.board.parts[1]
        self.assertEqual(r2.layer, 2)
        self.assertEqual([p.layer for p in r2.pins], [2, 2])
        pads = self.board.layers[2].pads
        self.assertPoint(pads[0].pos, *_mils(20, 4))
        self.assertPoint(pads[1].pos, *_mils(20, 6))
        self.assertEqual([p.net for p in pads], [NO_NET, NO_NET])

    def test_through_hole_pads(self):
        j1 = self.board.parts[2]
        self.assertEqual(j1.layer, 1)
        self.assertEqual([p.name for p in j1.pins], ["1", "2", "10"])
        self.assertEqual([p.layer for p in j1.pins], [0, 0, 0])
        pads = self.board.layers[0].pads
        self.assertEqual([p.net for p in pads], [0, NO_NET, NO_NET])
        self.assertPoint(pads[2].pos, *_mils(5.08, 0))

    def test_decals(self):
        names = [d.name for d in self.board.decals]
        self.assertEqual(names, ["CONN", "R0603"])
        self.assertEqual(self.board.parts[0].decal, 1)
        self.assertEqual(self.board.parts[2].decal, 0)
        outline = self.board.decals[1].outline
        lo_x, lo_y = _mils(-1.5, -0.6)
        hi_x, hi_y = _mils(1.5, 0.6)
        self.assertPoint(outline[0], lo_x, lo_y)
        self.assertPoint(outline[1], lo_x, hi_y)
        self.assertPoint(outline[2], hi_x, hi_y)
        self.assertPoint(outline[3], hi_x, lo_y)
        self.assertPoint(self.board.parts[0].bbox.max, hi_x, hi_y)

    def test_decal_with_drill_only_pad(self):
        # Pad "10" has no diameter, so the drill sets its size
        outline = self.board.decals[0].outline
        self.assertPoint(outline[2], *_mils(5.58, 0.9))

    def test_board_invariants_hold(self):
        check_board(self.board)


class TestEagleCurvedOutline(PointAssertions, unittest.TestCase):

    def test_curved_wire_is_flattened(self):
        data = _board_xml(**{
            '<wire x1="0" y1="0" x2="25.4" y2="0" width="0.254" layer="20"/>':
            '<wire x1="0" y1="0" x2="25.4" y2="0" width="0.254" layer="20" curve="90"/>',
        })
        slots = parse_eagle(data).layers[3].slots
        arc = slots[:-3]
        self.assertGreater(len(arc), 2)
        self.assertPoint(arc[0].start, 0, 0)
        self.assertPoint(arc[-1].end, *_mils(25.4, 0))
        for a, b in zip(arc, arc[1:]):
            self.assertIs(a.end, b.start)
        for s in arc:
            chord = math.hypot(s.end.x - s.start.x, s.end.y - s.start.y)
            self.assertLessEqual(chord, POLY_ARC_THRESHOLD + 1e-6)
        # Counter-clockwise from left to right bulges below the chord
        self.assertTrue(all(s.end.y <= 1e-6 for s in arc))


class TestEagleErrors(unittest.TestCase):

    def test_binary_format(self):
        with self.assertRaises(FormatViolation) as cm:
            parse_eagle(b"\x10\x80\x00\x00binary")
        self.assertIn("Binary EAGLE", str(cm.exception))

    def test_malformed_xml(self):
        with self.assertRaises(FormatViolation):
            parse_eagle(b'<?xml version="1.0"?><eagle><drawing>')

    def test_wrong_root(self):
        with self.assertRaises(FormatViolation):
            parse_eagle(b'<?xml version="1.0"?><kicad/>')

    def test_no_board(self):
        with self.assertRaises(FormatViolation):
            parse_eagle(b'<?xml version="1.0"?><eagle><drawing/></eagle>')

    def test_duplicate_layer(self):
        layers = LAYERS.replace('<layer number="21"', '<layer number="16"')
        with self.assertRaises(FormatViolation) as cm:
            parse_eagle(_board_xml(layers=layers))
        self.assertIn("Duplicate EAGLE layer number 16", str(cm.exception))

    def test_missing_bottom_layer(self):
        layers = LAYERS.replace('<layer number="16" name="Bottom" color="1"/>', "")
        with self.assertRaises(FormatViolation):
            parse_eagle(_board_xml(layers=layers))

    def test_unknown_package(self):
        data = _board_xml(**{'package="CONN" value="HDR"': 'package="NOPE" value="HDR"'})
        with self.assertRaises(FormatViolation) as cm:
            parse_eagle(data)
        self.assertIn("con/NOPE", str(cm.exception))


if __name__ == "__main__":
    unittest.main()
