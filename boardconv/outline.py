"""Board outline reconstruction from an unordered set of edge segments.

Edges are joined at exactly equal endpoints. Every vertex may have at most
two neighbours, so the edge set decomposes into closed loops and open
chains; the outline is the loop whose bounding box encloses all others.
"""

import logging
from collections import deque
from typing import List, Optional, Tuple

from .cbf_model import Board, DrillLayer, LayerRole, Point
from .errors import FormatViolation
from .utils import box_contains, box_of, fmt

log = logging.getLogger(__name__)


class _Vertex:
    __slots__ = ("pos", "neighbors")

    def __init__(self, pos: Tuple[float, float]):
        self.pos = pos
        self.neighbors: List[int] = []

    def add_neighbor(self, index: int) -> bool:
        if len(self.neighbors) >= 2:
            return False
        self.neighbors.append(index)
        return True

    def next_vertex(self, prev: int) -> Optional[int]:
        """First neighbour that is not `prev`, or None at a dead end."""
        for n in self.neighbors:
            if n != prev:
                return n
        return None


class OutlineBuilder:
    """Collects edges, then extracts the outer contour with build()."""

    def __init__(self):
        self.vertices: List[_Vertex] = []
        self._index = {}  # (x, y) -> vertex index

    def _find_vertex(self, pos: Tuple[float, float]) -> int:
        index = self._index.get(pos)
        if index is None:
            index = len(self.vertices)
            self._index[pos] = index
            self.vertices.append(_Vertex(pos))
        return index

    def add_edge(self, a: Point, b: Point):
        pa, pb = (a.x, a.y), (b.x, b.y)
        if pa == pb:
            return
        ia = self._find_vertex(pa)
        ib = self._find_vertex(pb)
        for this, other, pos in ((ia, ib, pa), (ib, ia, pb)):
            if not self.vertices[this].add_neighbor(other):
                raise FormatViolation(
                    f"Vertex ({fmt(pos[0])}, {fmt(pos[1])}) is shared by more than 2 edges"
                )

    def _next_loop(self, visited: List[bool], entry: int) -> List[int]:
        loop = deque()
        search_back = False
        index, prev = entry, entry
        while True:
            while True:
                if index is None:
                    # Dead end: the entry may lie in the middle of an open
                    # chain, so walk the other way once
                    search_back = not search_back and len(loop) > 1
                    break
                if visited[index]:
                    search_back = False
                    break
                if search_back:
                    loop.appendleft(index)
                else:
                    loop.append(index)
                visited[index] = True
                index, prev = self.vertices[index].next_vertex(prev), index
            if not search_back:
                break
            # loop[1] is the entry's forward neighbour
            index = self.vertices[entry].next_vertex(loop[1])
            prev = entry
        return list(loop)

    def loops(self) -> List[List[int]]:
        """Decompose the edge set into loops and chains of vertex indices."""
        visited = [False] * len(self.vertices)
        result = []
        for i in range(len(self.vertices)):
            if not visited[i]:
                result.append(self._next_loop(visited, i))
        return result

    def _loop_box(self, loop: List[int]):
        return box_of([self.point(i) for i in loop])

    def point(self, index: int) -> Point:
        x, y = self.vertices[index].pos
        return Point(x, y)

    def build(self) -> List[Point]:
        """Vertices of the outermost loop in walk order, empty when no edges."""
        if not self.vertices:
            return []
        loops = self.loops()
        best = loops[0]
        best_box = box_of([self.point(0)])
        for loop in loops:
            bb = self._loop_box(loop)
            if box_contains(bb, best_box):
                best, best_box = loop, bb
        log.debug("Outline: %d loops, %d vertices selected", len(loops), len(best))
        return [self.point(i) for i in best]


def build_outline(board: Board) -> List[Point]:
    """Outline of a board from the slots of its ROUTE drill layer."""
    builder = OutlineBuilder()
    for layer in board.layers:
        if isinstance(layer, DrillLayer) and layer.role == LayerRole.ROUTE:
            for slot in layer.slots:
                builder.add_edge(slot.start, slot.end)
            break
    outline = builder.build()
    if not outline:
        log.warning("Board has no outline")
    return outline
