"""Region adjacency graph - traversal, cloning and connectivity queries.

Edges live on the Region instances themselves (see ``Region.adjacent_regions``);
the helpers here only walk them. Every walk is an explicit worklist so large
claims never hit the recursion limit, and visited sets are keyed by
``Region.handle`` because two distinct instances may share the same corners.
"""

from __future__ import annotations
from collections import deque
from typing import Iterable, Optional, TYPE_CHECKING

if TYPE_CHECKING:
    from lands.models.region import Region


def bfs_region_graph(start: "Region") -> set["Region"]:
    """Return every region reachable from ``start`` over adjacency edges."""
    visited: dict[int, "Region"] = {start.handle: start}
    queue = deque([start])

    while queue:
        region = queue.popleft()
        for neighbour in region.adjacent_regions:
            if neighbour.handle not in visited:
                visited[neighbour.handle] = neighbour
                queue.append(neighbour)

    return set(visited.values())


def clone_regions(regions: Iterable["Region"]) -> dict[int, "Region"]:
    """Deep-copy ``regions`` together with everything connected to them.

    Returns a map of original handle -> fresh clone. Nodes are cloned first and
    edges mirrored afterwards, so the copy is isomorphic to the original graph
    and shares no edge with it.
    """
    originals: dict[int, "Region"] = {}
    queue = deque(regions)

    while queue:
        region = queue.popleft()
        if region.handle in originals:
            continue
        originals[region.handle] = region
        queue.extend(n for n in region.adjacent_regions if n.handle not in originals)

    clones = {
        handle: type(region)(region.corner1, region.corner2)
        for handle, region in originals.items()
    }
    for handle, region in originals.items():
        for neighbour in region.adjacent_regions:
            clones[handle].add_adjacent_region(clones[neighbour.handle])

    return clones


def link_adjacent(regions: Iterable["Region"]) -> int:
    """Add an edge between every geometrically adjacent pair. Returns edges added."""
    items = list(regions)
    added = 0
    for i, region in enumerate(items):
        for other in items[i + 1:]:
            if not region.is_linked_to(other) and region.add_adjacent_region(other):
                added += 1
    return added


def connected_components(regions: Iterable["Region"]) -> list[set["Region"]]:
    """Split ``regions`` into its connected components.

    The walk is restricted to the given regions: edges leading outside the
    collection are ignored. Components come back in the order their first
    member appears in ``regions``.
    """
    members = {region.handle: region for region in regions}
    seen: set[int] = set()
    components: list[set["Region"]] = []

    for handle, start in members.items():
        if handle in seen:
            continue
        component: dict[int, "Region"] = {handle: start}
        queue = deque([start])
        while queue:
            region = queue.popleft()
            for neighbour in region.adjacent_regions:
                if neighbour.handle in members and neighbour.handle not in component:
                    component[neighbour.handle] = neighbour
                    queue.append(neighbour)
        seen.update(component)
        components.append(set(component.values()))

    return components


def is_contiguous(regions: Iterable["Region"]) -> bool:
    """True when one BFS reaches every region (an empty set counts as contiguous)."""
    return len(connected_components(regions)) <= 1


def total_volume(regions: Iterable["Region"]) -> int:
    return sum(region.get_volume() for region in regions)


def largest_component(components: list[set["Region"]]) -> Optional[set["Region"]]:
    """Pick the component with the greatest volume; the earliest one wins ties."""
    best: Optional[set["Region"]] = None
    best_volume = -1
    for component in components:
        volume = total_volume(component)
        if volume > best_volume:
            best, best_volume = component, volume
    return best
