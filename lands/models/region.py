"""Region algebra - axis-aligned integer cuboids with inclusive bounds."""

from __future__ import annotations
from itertools import count
from typing import Iterable, Optional, Sequence

from lands.errors import InvalidOperationError
from lands.models.region_graph import bfs_region_graph, clone_regions


Point = tuple[int, int, int]

_handles = count(1)


def _as_point(value: Sequence[int]) -> Point:
    coords = tuple(int(v) for v in value)
    if len(coords) != 3:
        raise ValueError(f"Expected three coordinates, got {len(coords)}")
    return coords  # type: ignore[return-value]


def _spans_overlap(a_min: int, a_max: int, b_min: int, b_max: int) -> bool:
    return a_min <= b_max and b_min <= a_max


class Region:
    """A cuboid of blocks between two corners, both inclusive.

    Corners are normalized on construction so ``corner1 <= corner2`` on every
    axis. Two regions with the same corners compare equal and hash alike, but
    adjacency edges belong to the instance: each region carries a unique
    ``handle`` and its neighbours are stored by handle.
    """

    def __init__(self, corner1: Sequence[int], corner2: Sequence[int]):
        a, b = _as_point(corner1), _as_point(corner2)
        self._corner1: Point = (min(a[0], b[0]), min(a[1], b[1]), min(a[2], b[2]))
        self._corner2: Point = (max(a[0], b[0]), max(a[1], b[1]), max(a[2], b[2]))
        self.handle: int = next(_handles)
        self._adjacent: dict[int, Region] = {}

    @property
    def corner1(self) -> Point:
        return self._corner1

    @property
    def corner2(self) -> Point:
        return self._corner2

    def __eq__(self, other: object) -> bool:
        if not isinstance(other, Region):
            return NotImplemented
        return self._corner1 == other._corner1 and self._corner2 == other._corner2

    def __hash__(self) -> int:
        return hash((self._corner1, self._corner2))

    def __repr__(self) -> str:
        return f"Region({self._corner1}, {self._corner2})"

    def sort_key(self) -> tuple[Point, Point]:
        return self._corner1, self._corner2

    # ===== Geometry =====

    def contains(self, point: Sequence[int]) -> bool:
        """Check whether a block position lies inside the region."""
        p = _as_point(point)
        return all(self._corner1[i] <= p[i] <= self._corner2[i] for i in range(3))

    def overlaps(self, other: Region) -> bool:
        """Check whether the two cuboids share at least one block."""
        return all(
            _spans_overlap(self._corner1[i], self._corner2[i], other._corner1[i], other._corner2[i])
            for i in range(3)
        )

    def adjacency_axis(self, other: Region) -> Optional[int]:
        """Axis (0=x, 1=y, 2=z) across which the two regions share a face, if any."""
        for axis in range(3):
            touching = (
                self._corner2[axis] + 1 == other._corner1[axis]
                or other._corner2[axis] + 1 == self._corner1[axis]
            )
            if not touching:
                continue
            if all(
                _spans_overlap(self._corner1[i], self._corner2[i], other._corner1[i], other._corner2[i])
                for i in range(3) if i != axis
            ):
                return axis
        return None

    def is_adjacent_to(self, other: Region) -> bool:
        """Face contact along one axis. Overlapping regions are NOT adjacent."""
        return self.adjacency_axis(other) is not None

    def is_same_plane_as(self, other: Region) -> bool:
        """Identical extents on at least two axes.

        For adjacent regions those are the two axes orthogonal to the shared
        face, which makes their bounding box exactly their union.
        """
        shared = sum(
            1 for i in range(3)
            if self._corner1[i] == other._corner1[i] and self._corner2[i] == other._corner2[i]
        )
        return shared >= 2

    def can_merge_with(self, other: Region) -> bool:
        return (
            self.is_adjacent_to(other)
            and not self.overlaps(other)
            and self.is_same_plane_as(other)
        )

    def intersection(self, other: Region) -> Optional[Region]:
        """The shared cuboid, or None when the regions do not overlap."""
        if not self.overlaps(other):
            return None
        return Region(
            tuple(max(self._corner1[i], other._corner1[i]) for i in range(3)),
            tuple(min(self._corner2[i], other._corner2[i]) for i in range(3)),
        )

    def get_volume(self) -> int:
        dx, dy, dz = (self._corner2[i] - self._corner1[i] + 1 for i in range(3))
        return dx * dy * dz

    def subtract(self, other: Region) -> set[Region]:
        """Cut ``other`` out of this region.

        Returns up to six slabs covering ``self - other``: an x slab on either
        side of the intersection spanning the full y/z extent, then y slabs
        within the intersection's x range, then z slabs within its x/y range.
        Slabs are linked to each other where they touch, and to every
        neighbour of ``self`` they still touch. ``self`` keeps its own edges;
        callers that retire it must ``clear_adjacent_regions()``.
        """
        inner = self.intersection(other)
        if inner is None:
            return {self}

        (x1, y1, z1), (x2, y2, z2) = self._corner1, self._corner2
        (ix1, iy1, iz1), (ix2, iy2, iz2) = inner.corner1, inner.corner2

        slabs: list[Region] = []
        if ix1 > x1:
            slabs.append(Region((x1, y1, z1), (ix1 - 1, y2, z2)))
        if ix2 < x2:
            slabs.append(Region((ix2 + 1, y1, z1), (x2, y2, z2)))
        if iy1 > y1:
            slabs.append(Region((ix1, y1, z1), (ix2, iy1 - 1, z2)))
        if iy2 < y2:
            slabs.append(Region((ix1, iy2 + 1, z1), (ix2, y2, z2)))
        if iz1 > z1:
            slabs.append(Region((ix1, iy1, z1), (ix2, iy2, iz1 - 1)))
        if iz2 < z2:
            slabs.append(Region((ix1, iy1, iz2 + 1), (ix2, iy2, z2)))

        neighbours = list(self._adjacent.values())
        for i, slab in enumerate(slabs):
            for sibling in slabs[i + 1:]:
                slab.add_adjacent_region(sibling)
            for neighbour in neighbours:
                slab.add_adjacent_region(neighbour)

        return set(slabs)

    def merge(self, other: Region) -> Region:
        """Fuse two touching, coplanar regions into their bounding cuboid.

        The neighbours of both inputs are re-pointed at the new region and the
        inputs are detached from the graph.
        """
        if not self.can_merge_with(other):
            raise InvalidOperationError(f"{self!r} and {other!r} cannot be merged")

        merged = Region(
            tuple(min(self._corner1[i], other._corner1[i]) for i in range(3)),
            tuple(max(self._corner2[i], other._corner2[i]) for i in range(3)),
        )
        neighbours = {**self._adjacent, **other._adjacent}
        neighbours.pop(self.handle, None)
        neighbours.pop(other.handle, None)

        self.clear_adjacent_regions()
        other.clear_adjacent_regions()
        for neighbour in neighbours.values():
            merged.add_adjacent_region(neighbour)

        return merged

    # ===== Adjacency edges =====

    @property
    def adjacent_regions(self) -> tuple[Region, ...]:
        return tuple(self._adjacent.values())

    def is_linked_to(self, other: Region) -> bool:
        return other.handle in self._adjacent

    def add_adjacent_region(self, other: Region) -> bool:
        """Link both sides. Refused (returns False) unless the regions touch."""
        if other is self or not self.is_adjacent_to(other):
            return False
        self._adjacent[other.handle] = other
        other._adjacent[self.handle] = self
        return True

    def remove_adjacent_region(self, other: Region) -> None:
        self._adjacent.pop(other.handle, None)
        other._adjacent.pop(self.handle, None)

    def clear_adjacent_regions(self) -> None:
        """Detach from every neighbour, removing their back-references first."""
        for neighbour in list(self._adjacent.values()):
            neighbour._adjacent.pop(self.handle, None)
        self._adjacent.clear()

    def bfs_region_graph(self) -> set[Region]:
        """The connected component this region belongs to."""
        return bfs_region_graph(self)

    def copy(self) -> Region:
        """Clone this region together with its whole connected component."""
        return clone_regions([self])[self.handle]


def bounding_region(regions: Iterable[Region]) -> Optional[Region]:
    """Smallest cuboid enclosing every given region."""
    items = list(regions)
    if not items:
        return None
    return Region(
        tuple(min(r.corner1[i] for r in items) for i in range(3)),
        tuple(max(r.corner2[i] for r in items) for i in range(3)),
    )
