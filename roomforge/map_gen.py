"""
Room Tile Map Generation Algorithm
==================================

Every room is a 25x20 grid of 40px tiles drawn from one biome palette.

1. Seed a fresh SeededRandom with story_seed + room_number * 1000, so a room
   always looks the same no matter when it is generated
2. Walk a 1-tile path from the left edge to the right edge along the middle
   row, drifting toward the goal with occasional one-tile detours
   - Rooms with a north or south exit also get a vertical spur from the
     middle column to that edge
3. Widen the path with every tile's 8 neighbors into a 2-3 tile corridor
4. Fill the map with the biome's base tile, lay the path tile on the corridor
5. Scatter obstacles off the corridor; cells touching the corridor only get
   one if a second roll passes
6. Enclosed biomes (dungeon, cave, walled custom biomes) get a wall border,
   left open wherever the corridor reaches the edge
7. The spawn point is always column 2 of the middle row, so walking out of
   one room's right edge lands you at the next room's left edge
"""

from dataclasses import dataclass, field, replace
from enum import Enum
from typing import Dict, List, Optional, Tuple

import numpy as np

from .biomes import (
    LEGACY_BIOMES,
    BiomeDefinition,
    default_biome_for_room,
    is_enclosed,
    normalize_biome_key,
)
from .dungeon_gen import Direction, RoomExits
from .pathfinding import nearest_walkable
from .seeded_random import SeededRandom

MAP_WIDTH: int = 25
MAP_HEIGHT: int = 20
TILE_SIZE: int = 40

MAX_PATH_POINTS: int = 15
DETOUR_CHANCE: float = 0.2
OBSTACLE_CHANCE: float = 0.20
DUNGEON_OBSTACLE_CHANCE: float = 0.10
# Second roll an obstacle next to the corridor has to beat
CLOSE_OBSTACLE_ROLL: float = 0.7

# Vertical spurs draw from their own stream so horizontal layouts never change
SPUR_SEED_OFFSET: int = 500

_NEIGHBOR_OFFSETS: Tuple[Tuple[int, int], ...] = (
    (-1, 0), (1, 0),
    (0, -1), (0, 1),
    (-1, -1), (1, 1),
    (-1, 1), (1, -1),
)

TilePos = Tuple[int, int]  # (x, y) in tiles


class TileKind(Enum):
    """The role a tile plays in a room layout."""

    BASE = "base"
    PATH = "path"
    OBSTACLE = "obstacle"
    WALL = "wall"


@dataclass
class Tile:
    type: str
    walkable: bool
    color: str
    emoji: Optional[str] = None
    kind: TileKind = TileKind.BASE


TILE_CONFIGS: Dict[str, Tile] = {
    "grass": Tile("grass", False, "#4ade80", "🌱"),
    "path": Tile("path", True, "#a8a29e", "⬜"),
    "stone": Tile("stone", True, "#78716c", "🪨"),
    "water": Tile("water", False, "#3b82f6", "💧"),
    "tree": Tile("tree", False, "#22c55e", "🌲"),
    "bush": Tile("bush", False, "#16a34a", "🌿"),
    "wall": Tile("wall", False, "#57534e", "🧱"),
    "floor": Tile("floor", True, "#d6d3d1", "⬜"),
    "dirt": Tile("dirt", True, "#92400e", "🟫"),
    "sand": Tile("sand", True, "#fbbf24", "🏜️"),
    "rock": Tile("rock", False, "#a1a1aa", "🪨"),
    "flowers": Tile("flowers", False, "#f472b6", "🌸"),
}


@dataclass
class Point:
    """A pixel coordinate inside a room."""

    x: float
    y: float

    def to_tile(self, tile_size: int = TILE_SIZE) -> TilePos:
        return int(self.x // tile_size), int(self.y // tile_size)


def tile_center(tile_x: int, tile_y: int, tile_size: int = TILE_SIZE) -> Point:
    return Point(x=tile_x * tile_size + tile_size // 2, y=tile_y * tile_size + tile_size // 2)


class ExitDirection(Enum):
    """The screen edge a player walked out of."""

    RIGHT = "right"
    LEFT = "left"
    UP = "up"
    DOWN = "down"

    @classmethod
    def from_direction(cls, direction: Direction) -> "ExitDirection":
        exits = {
            Direction.EAST: cls.RIGHT,
            Direction.WEST: cls.LEFT,
            Direction.NORTH: cls.UP,
            Direction.SOUTH: cls.DOWN,
        }
        return exits[direction]


@dataclass
class TileMap:
    """A room's terrain. Never modified after generation."""

    width: int
    height: int
    tile_size: int
    tiles: List[List[Tile]]  # indexed [y][x]
    biome: str
    spawn_point: Point
    path_points: List[Point] = field(default_factory=list)
    biome_definition: Optional[BiomeDefinition] = None

    def in_bounds(self, tile_x: int, tile_y: int) -> bool:
        return 0 <= tile_x < self.width and 0 <= tile_y < self.height

    def tile_at(self, tile_x: int, tile_y: int) -> Tile:
        return self.tiles[tile_y][tile_x]

    def walkable_mask(self) -> np.ndarray:
        """Boolean array [y, x], True for walkable tiles."""
        return np.array(
            [[tile.walkable for tile in row] for row in self.tiles], dtype=bool
        )

    @property
    def pixel_width(self) -> int:
        return self.width * self.tile_size

    @property
    def pixel_height(self) -> int:
        return self.height * self.tile_size


def _sign(value: int) -> int:
    return 1 if value > 0 else -1


def _generate_path(
    width: int, height: int, start: TilePos, end: TilePos, random: SeededRandom
) -> List[TilePos]:
    """Random walk from start to end with occasional one-tile detours."""
    x, y = start
    path: List[TilePos] = [(x, y)]

    while (x, y) != end:
        dx = end[0] - x
        dy = end[1] - y

        move_x = abs(dx) > abs(dy) or random.next() > 0.5
        if move_x and dx != 0:
            x += _sign(dx)
        elif dy != 0:
            y += _sign(dy)
        elif dx != 0:
            x += _sign(dx)
        path.append((x, y))

        if random.next() < DETOUR_CHANCE and len(path) > 3:
            if random.next() < 0.5:
                step = (0, 1 if random.next() < 0.5 else -1)
            else:
                step = (1 if random.next() < 0.5 else -1, 0)
            detour_x, detour_y = x + step[0], y + step[1]
            if 0 <= detour_x < width and 0 <= detour_y < height:
                x, y = detour_x, detour_y
                path.append((x, y))

    return path


def _expand_path(path: List[TilePos], width: int, height: int) -> Dict[TilePos, None]:
    """Widen a path with the 8 neighbors of every tile (insertion ordered)."""
    expanded: Dict[TilePos, None] = {}
    for x, y in path:
        expanded[(x, y)] = None
        for offset_x, offset_y in _NEIGHBOR_OFFSETS:
            nx, ny = x + offset_x, y + offset_y
            if 0 <= nx < width and 0 <= ny < height:
                expanded[(nx, ny)] = None
    return expanded


def _sample_path_points(path: List[TilePos], limit: int = MAX_PATH_POINTS) -> List[TilePos]:
    """Evenly spaced tiles along the path, first and last included."""
    unique = list(dict.fromkeys(path))
    if len(unique) <= limit:
        return unique
    step = (len(unique) - 1) / (limit - 1)
    return [unique[round(i * step)] for i in range(limit)]


def _make_tile(tile_type: str, walkable: bool, color: str, kind: TileKind) -> Tile:
    """Known tile types use their standard look; anything else uses the biome's."""
    config = TILE_CONFIGS.get(tile_type)
    if config is not None:
        return replace(config, kind=kind)
    return Tile(type=tile_type, walkable=walkable, color=color, kind=kind)


def _resolve_biome(
    room_number: int, biome: Optional[str], biome_definition: Optional[BiomeDefinition]
) -> Tuple[str, BiomeDefinition]:
    if biome_definition is not None:
        return biome or normalize_biome_key(biome_definition.name), biome_definition
    if biome is not None:
        return biome, LEGACY_BIOMES.get(biome, LEGACY_BIOMES["forest"])
    label = default_biome_for_room(room_number)
    return label, LEGACY_BIOMES[label]


def _carve_spur(
    path_set: Dict[TilePos, None],
    raw_path: List[TilePos],
    width: int,
    height: int,
    edge_row: int,
    random: SeededRandom,
) -> None:
    column = width // 2
    start_row = next(y for x, y in raw_path if x == column)
    spur = _generate_path(width, height, (column, start_row), (column, edge_row), random)
    path_set.update(_expand_path(spur, width, height))


def generate_tile_map(
    room_id: str,
    story_seed: int,
    room_number: int,
    biome: Optional[str] = None,
    biome_definition: Optional[BiomeDefinition] = None,
    exits: Optional[RoomExits] = None,
) -> TileMap:
    """
    Generate the tile map for one room.

    Args:
        room_id: Id of the room (informational, the layout depends on the seed)
        story_seed: Seed of the playthrough
        room_number: Index of the room, mixed into the seed
        biome: Legacy biome key, or a label for biome_definition
        biome_definition: Palette to draw the room with; overrides biome's palette
        exits: Open exits of the room's dungeon cell; north/south exits get a
            corridor spur to that edge

    Returns:
        A TileMap whose corridor connects the spawn point to the right edge
    """
    seed = story_seed + room_number * 1000
    random = SeededRandom(seed)

    width, height, tile_size = MAP_WIDTH, MAP_HEIGHT, TILE_SIZE
    label, definition = _resolve_biome(room_number, biome, biome_definition)
    colors = definition.colors

    path_tile = replace(
        _make_tile(definition.path_tile, True, colors.path, TileKind.PATH), walkable=True
    )
    base_tile = _make_tile(definition.base_tile, False, colors.base, TileKind.BASE)
    if base_tile.type == path_tile.type:
        base_tile = replace(base_tile, walkable=True)
    obstacle_colors = colors.obstacles or [colors.base]
    obstacle_tiles = [
        _make_tile(tile_type, False, obstacle_colors[i % len(obstacle_colors)], TileKind.OBSTACLE)
        for i, tile_type in enumerate(definition.obstacle_tiles)
    ]

    tiles = [[replace(base_tile) for _ in range(width)] for _ in range(height)]

    mid_y = height // 2
    raw_path = _generate_path(width, height, (0, mid_y), (width - 1, mid_y), random)
    path_set = _expand_path(raw_path, width, height)

    if exits is not None:
        spur_random = SeededRandom(seed + SPUR_SEED_OFFSET)
        if exits.north:
            _carve_spur(path_set, raw_path, width, height, 0, spur_random)
        if exits.south:
            _carve_spur(path_set, raw_path, width, height, height - 1, spur_random)

    for x, y in path_set:
        tiles[y][x] = replace(path_tile)

    obstacle_chance = DUNGEON_OBSTACLE_CHANCE if label == "dungeon" else OBSTACLE_CHANCE
    if obstacle_tiles:
        for y in range(height):
            for x in range(width):
                if (x, y) in path_set or random.next() >= obstacle_chance:
                    continue
                adjacent_to_path = (
                    (x - 1, y) in path_set
                    or (x + 1, y) in path_set
                    or (x, y - 1) in path_set
                    or (x, y + 1) in path_set
                )
                if not adjacent_to_path or random.next() > CLOSE_OBSTACLE_ROLL:
                    obstacle = obstacle_tiles[int(random.next() * len(obstacle_tiles))]
                    tiles[y][x] = replace(obstacle)

    if is_enclosed(label, biome_definition):
        wall = replace(TILE_CONFIGS["wall"], kind=TileKind.WALL)
        for x in range(width):
            for y in (0, height - 1):
                if (x, y) not in path_set:
                    tiles[y][x] = replace(wall)
        for y in range(height):
            for x in (0, width - 1):
                if (x, y) not in path_set:
                    tiles[y][x] = replace(wall)

    return TileMap(
        width=width,
        height=height,
        tile_size=tile_size,
        tiles=tiles,
        biome=label,
        biome_definition=biome_definition,
        spawn_point=Point(x=2 * tile_size, y=mid_y * tile_size + tile_size // 2),
        path_points=[
            tile_center(x, y, tile_size) for x, y in _sample_path_points(raw_path)
        ],
    )


def is_position_walkable(tile_map: TileMap, x: float, y: float) -> bool:
    """Whether the pixel position (x, y) lies on a walkable tile."""
    tile_x = int(x // tile_map.tile_size)
    tile_y = int(y // tile_map.tile_size)
    if not tile_map.in_bounds(tile_x, tile_y):
        return False
    return tile_map.tiles[tile_y][tile_x].walkable


def get_tile_color(tile_map: TileMap, tile_x: int, tile_y: int) -> str:
    if not tile_map.in_bounds(tile_x, tile_y):
        return "#000000"
    return tile_map.tiles[tile_y][tile_x].color


def reposition_spawn(tile_map: TileMap, exit_direction: ExitDirection) -> Point:
    """
    Where a player entering tile_map appears after leaving the previous room
    through exit_direction. The result is always the center of a walkable tile
    (when the map has one).
    """
    spawn = tile_map.spawn_point
    tile_size = tile_map.tile_size
    buffer = max(tile_size * 2, 60)
    center_x = (tile_map.width // 2) * tile_size + tile_size // 2

    if exit_direction == ExitDirection.RIGHT:
        return spawn
    if exit_direction == ExitDirection.LEFT:
        x = min(max(tile_map.pixel_width - spawn.x, buffer), tile_map.pixel_width - buffer)
        candidate = Point(x=x, y=spawn.y)
    elif exit_direction == ExitDirection.UP:
        candidate = Point(x=center_x, y=tile_map.pixel_height - buffer)
    else:
        candidate = Point(x=center_x, y=buffer)

    if is_position_walkable(tile_map, candidate.x, candidate.y):
        tile_x, tile_y = candidate.to_tile(tile_size)
        return tile_center(tile_x, tile_y, tile_size)

    tile_x, tile_y = candidate.to_tile(tile_size)
    nearest = nearest_walkable(tile_map.walkable_mask(), tile_y, tile_x)
    if nearest is None:
        return candidate
    row, col = nearest
    return tile_center(col, row, tile_size)
