"""Selection system - tracks each player's two-corner region selection."""

from __future__ import annotations
from typing import Optional, Sequence

from lands.models.region import Point, Region


class SelectionManager:
    """Per-player pos1/pos2 tracking that yields a normalized Region."""

    def __init__(self) -> None:
        self._corner1: dict[str, Point] = {}
        self._corner2: dict[str, Point] = {}
        self._completed: set[str] = set()

    def set_corner1(self, player: str, position: Sequence[int]) -> None:
        self._corner1[player] = tuple(int(v) for v in position)  # type: ignore[assignment]
        self._completed.discard(player)

    def set_corner2(self, player: str, position: Sequence[int]) -> None:
        self._corner2[player] = tuple(int(v) for v in position)  # type: ignore[assignment]
        self._completed.discard(player)

    def complete_selection(self, player: str) -> bool:
        """Mark the selection complete. Needs both corners; returns success."""
        if player in self._corner1 and player in self._corner2:
            self._completed.add(player)
            return True
        return False

    def is_selection_completed(self, player: str) -> bool:
        return (
            player in self._completed
            and player in self._corner1
            and player in self._corner2
        )

    def get_corners(self, player: str) -> tuple[Optional[Point], Optional[Point]]:
        return self._corner1.get(player), self._corner2.get(player)

    def get_selection(self, player: str) -> Optional[Region]:
        if not self.is_selection_completed(player):
            return None
        return Region(self._corner1[player], self._corner2[player])

    def clear_selection(self, player: str) -> None:
        self._corner1.pop(player, None)
        self._corner2.pop(player, None)
        self._completed.discard(player)
