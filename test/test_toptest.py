#!/usr/bin/env python3
"""Tests for the Toptest text writer."""

import sys
import unittest
from pathlib import Path

# Add project root and this directory to path
sys.path.insert(0, str(Path(__file__).parent.parent))
sys.path.insert(0, str(Path(__file__).parent))

from boardconv.cbf_model import (
    NO_NET, Board, Box, DrillLayer, LayerRole, LogicLayer, Pad, Part, Pin, Point,
    Slot,
)
from boardconv.cbf_model import TestPoint as NailSite
from boardconv.errors import FormatViolation
from boardconv.tebo_import import import_tebo
from boardconv.toptest_writer import iround, outline_checksum, write_toptest
from tebo_fixture import SAMPLE_TOPTEST, build_sample


def _small_board():
    """Two-layer board with an outline, one part per side and a test point."""
    multi = LogicLayer(name="multilayer", role=LayerRole.MULTILAYER)
    top = LogicLayer(name="top", role=LayerRole.TOP)
    bottom = LogicLayer(name="bottom", role=LayerRole.BOTTOM)
    route = DrillLayer(name="route", role=LayerRole.ROUTE)
    corners = [Point(0, 0), Point(400, 0), Point(400, 300), Point(0, 300)]
    route.slots = [Slot(corners[i], corners[(i + 1) % 4], 8.0) for i in range(4)]

    multi.pads.append(Pad(net=0, pos=Point(50.4, 60.5)))
    top.pads.append(Pad(net=NO_NET, pos=Point(100.0, 100.0)))
    bottom.pads.append(Pad(net=1, pos=Point(200.0, 100.0)))
    top.test_points.append(NailSite(Point(10, 20), 1))
    bottom.test_points.append(NailSite(Point(30, 40), NO_NET))

    board = Board(layers=[multi, top, bottom, route], nets=["A", "B"])
    board.parts.append(Part(name="U1", bbox=Box(Point(-2.5, -1.5), Point(2.5, 1.5)),
                            layer=1, pins=[Pin(1, 0, 1, "1"), Pin(0, 0, 2, "2")]))
    board.parts.append(Part(name="U2", bbox=Box(Point(-1, -1), Point(1, 1)),
                            layer=2, pins=[Pin(2, 0, 1, "1")]))
    return board


class TestToptestHelpers(unittest.TestCase):

    def test_iround(self):
        self.assertEqual(iround(0.5), 1)
        self.assertEqual(iround(1.49), 1)
        self.assertEqual(iround(-0.5), -1)
        self.assertEqual(iround(-2.5), -3)
        self.assertEqual(iround(2.5), 3)

    def test_checksum(self):
        outline = [(0, 0), (1000, 0), (1000, 500), (0, 500)]
        self.assertEqual(outline_checksum(outline, 1000, 500), 123900)
        self.assertEqual(outline_checksum([(10, 20)], 0, 0), 163 * 30 + 160)

    def test_checksum_empty(self):
        self.assertEqual(outline_checksum([], 0, 0), 0)


class TestToptestWriter(unittest.TestCase):

    def test_tebo_sample(self):
        self.assertEqual(write_toptest(import_tebo(build_sample())), SAMPLE_TOPTEST)

    def test_sides(self):
        lines = write_toptest(_small_board()).split("\n")
        self.assertEqual(lines[1], "BRDOUT: 5 400 300")
        parts = lines[lines.index("PARTS: 2") + 1:][:2]
        # Second part's first pin follows the two pins of the first
        self.assertEqual(parts, ["U1 -3 -2 3 2 0 1", "U2 -1 -1 1 1 2 2"])
        pins = lines[lines.index("PINS: 3") + 1:][:3]
        # Top is mirrored within the outline; multilayer and bottom are not
        self.assertEqual(pins, ["100 200 0 1", "50 61 1 0", "200 100 2 2"])

    def test_nails_from_test_points(self):
        text = write_toptest(_small_board())
        nails = text.split("NAILS: 2\n")[1]
        self.assertEqual(nails, "10 280 2 1\n30 40 0 2\n")

    def test_empty_board(self):
        with self.assertLogs("boardconv", level="WARNING"):
            text = write_toptest(Board())
        self.assertEqual(text, "0\nBRDOUT: 0 0 0\n\nNETS: 0\n\nPARTS: 0\n\nPINS: 0\n\nNAILS: 0\n")

    def test_missing_bottom_layer_skips_parts(self):
        board = _small_board()
        board.layers[2] = DrillLayer(name="drill", role=LayerRole.DRILL)
        with self.assertLogs("boardconv", level="WARNING") as cm:
            text = write_toptest(board)
        self.assertIn("PARTS: 0", text)
        self.assertIn("PINS: 0", text)
        self.assertTrue(any("bottom" in m for m in cm.output))

    def test_pin_on_non_copper_layer(self):
        board = _small_board()
        board.parts[0].pins.append(Pin(3, 0, 3, "3"))
        with self.assertRaises(FormatViolation):
            write_toptest(board)

    def test_pin_on_missing_pad(self):
        board = _small_board()
        board.parts[0].pins[0].pad = 5
        with self.assertRaises(FormatViolation):
            write_toptest(board)


if __name__ == "__main__":
    unittest.main()
