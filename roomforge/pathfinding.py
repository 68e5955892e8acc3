"""
Reachability checks over walkable masks.
"""

from collections import deque
from typing import TYPE_CHECKING, List, Optional, Tuple

import numpy as np

if TYPE_CHECKING:
    from .map_gen import TileMap

# 4-directional neighbors: (delta_row, delta_col)
NEIGHBORS: List[Tuple[int, int]] = [(-1, 0), (1, 0), (0, -1), (0, 1)]  # North, South, West, East


def flood_fill(mask: np.ndarray, start_row: int, start_col: int) -> np.ndarray:
    """
    Find every tile reachable from (start_row, start_col) using BFS.

    Args:
        mask: Boolean array [row, col], True for walkable tiles
        start_row: Starting tile row
        start_col: Starting tile column

    Returns:
        Boolean array of the same shape, True for reachable tiles.
        All False if the start tile is outside the mask or not walkable.
    """
    rows, cols = mask.shape
    reached = np.zeros_like(mask, dtype=bool)
    if not (0 <= start_row < rows and 0 <= start_col < cols) or not mask[start_row, start_col]:
        return reached

    queue: deque[Tuple[int, int]] = deque([(start_row, start_col)])
    reached[start_row, start_col] = True

    while queue:
        current_row, current_col = queue.popleft()
        for dr, dc in NEIGHBORS:
            next_row = current_row + dr
            next_col = current_col + dc
            if not (0 <= next_row < rows and 0 <= next_col < cols):
                continue
            if reached[next_row, next_col] or not mask[next_row, next_col]:
                continue
            reached[next_row, next_col] = True
            queue.append((next_row, next_col))

    return reached


def nearest_walkable(mask: np.ndarray, row: int, col: int) -> Optional[Tuple[int, int]]:
    """
    Closest walkable tile to (row, col) by Manhattan distance.

    Ties go to the first tile in row-major order. Returns None if nothing in
    the mask is walkable.
    """
    candidates = np.argwhere(mask)
    if len(candidates) == 0:
        return None
    distances = np.abs(candidates[:, 0] - row) + np.abs(candidates[:, 1] - col)
    best = candidates[int(np.argmin(distances))]
    return int(best[0]), int(best[1])


def check_traversable(tile_map: "TileMap") -> Tuple[bool, str]:
    """
    Verify a tile map can be crossed: the spawn tile is walkable, and every
    path point and the right edge are reachable from it.

    Returns:
        (True, "") on success, otherwise (False, reason)
    """
    mask = tile_map.walkable_mask()
    spawn_col, spawn_row = tile_map.spawn_point.to_tile(tile_map.tile_size)
    reached = flood_fill(mask, spawn_row, spawn_col)

    if not reached.any():
        return False, f"Spawn tile ({spawn_col}, {spawn_row}) is not walkable"

    for point in tile_map.path_points:
        col, row = point.to_tile(tile_map.tile_size)
        if not reached[row, col]:
            return False, f"Path point ({col}, {row}) is not reachable from spawn"

    if not reached[:, -1].any():
        return False, "Right edge is not reachable from spawn"

    return True, ""
