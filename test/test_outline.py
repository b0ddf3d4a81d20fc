#!/usr/bin/env python3
"""Tests for board outline reconstruction."""

import sys
import unittest
from pathlib import Path

from hypothesis import given
from hypothesis import strategies as st

# Add project root to path
sys.path.insert(0, str(Path(__file__).parent.parent))

from boardconv.cbf_model import Board, DrillLayer, LayerRole, LogicLayer, Point, Slot
from boardconv.errors import FormatViolation
from boardconv.outline import OutlineBuilder, build_outline

RECT = [(0, 0), (1000, 0), (1000, 500), (0, 500)]
RECT_EDGES = [(RECT[i], RECT[(i + 1) % 4]) for i in range(4)]
INNER_EDGES = [((100, 100), (200, 100)), ((200, 100), (200, 200)),
               ((200, 200), (100, 200)), ((100, 200), (100, 100))]


def _builder(edges):
    b = OutlineBuilder()
    for a, c in edges:
        b.add_edge(Point(*a), Point(*c))
    return b


def _coords(points):
    return [(p.x, p.y) for p in points]


class TestOutlineBuilder(unittest.TestCase):

    def test_rectangle(self):
        outline = _builder(RECT_EDGES).build()
        self.assertEqual(_coords(outline), [(0, 0), (1000, 0), (1000, 500), (0, 500)])

    def test_empty(self):
        self.assertEqual(OutlineBuilder().build(), [])

    def test_degenerate_edges_are_dropped(self):
        b = _builder([((5, 5), (5, 5))])
        self.assertEqual(b.vertices, [])
        self.assertEqual(b.build(), [])

    def test_degenerate_edge_does_not_count_as_neighbour(self):
        b = _builder(RECT_EDGES + [((0, 0), (0, 0))])
        self.assertEqual(len(b.build()), 4)

    def test_vertex_with_three_edges(self):
        b = _builder(RECT_EDGES)
        with self.assertRaises(FormatViolation) as cm:
            b.add_edge(Point(0, 0), Point(500, 250))
        self.assertIn("Vertex (0, 0) is shared by more than 2 edges", str(cm.exception))

    def test_open_chain_from_middle(self):
        # First edge is the middle of the chain A-B-C-D
        edges = [((1, 0), (2, 0)), ((0, 0), (1, 0)), ((2, 0), (3, 0))]
        b = _builder(edges)
        loops = b.loops()
        self.assertEqual(len(loops), 1)
        self.assertEqual(_coords(b.point(i) for i in loops[0]),
                         [(0, 0), (1, 0), (2, 0), (3, 0)])

    def test_outer_loop_wins(self):
        for edges in (RECT_EDGES + INNER_EDGES, INNER_EDGES + RECT_EDGES):
            b = _builder(edges)
            self.assertEqual(len(b.loops()), 2)
            self.assertEqual(sorted(_coords(b.build())), sorted(RECT))

    def test_separate_loops(self):
        b = _builder(RECT_EDGES + INNER_EDGES)
        sizes = sorted(len(loop) for loop in b.loops())
        self.assertEqual(sizes, [4, 4])

    @given(st.permutations(range(4)), st.lists(st.booleans(), min_size=4, max_size=4))
    def test_order_and_direction_do_not_matter(self, order, flips):
        edges = []
        for i, flip in zip(order, flips):
            a, c = RECT_EDGES[i]
            edges.append((c, a) if flip else (a, c))
        outline = _builder(edges).build()
        self.assertEqual(sorted(_coords(outline)), sorted(RECT))
        # Consecutive outline vertices are joined by an input edge
        undirected = {frozenset(e) for e in RECT_EDGES}
        coords = _coords(outline)
        for i in range(len(coords)):
            self.assertIn(frozenset((coords[i], coords[(i + 1) % 4])), undirected)


class TestBuildOutline(unittest.TestCase):

    def _board(self, role=LayerRole.ROUTE):
        route = DrillLayer(name="route", role=role)
        route.slots = [Slot(Point(*a), Point(*c), 8.0) for a, c in RECT_EDGES]
        return Board(layers=[LogicLayer(name="multilayer", role=LayerRole.MULTILAYER), route])

    def test_route_slots(self):
        outline = build_outline(self._board())
        self.assertEqual(_coords(outline), RECT)

    def test_no_route_layer(self):
        with self.assertLogs("boardconv", level="WARNING") as cm:
            outline = build_outline(self._board(role=LayerRole.DRILL))
        self.assertEqual(outline, [])
        self.assertIn("no outline", cm.output[0])


if __name__ == "__main__":
    unittest.main()
