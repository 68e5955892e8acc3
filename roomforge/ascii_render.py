"""
ASCII views of dungeon grids and room tile maps, for debugging.
"""

from typing import Dict, List, Optional, Sequence

from .dungeon_gen import DungeonGrid, RoomType
from .map_gen import TileKind, TileMap
from .room_content import GameObject, ObjectType

ROOM_TYPE_TO_ASCII: Dict[RoomType, str] = {
    RoomType.START: "S",
    RoomType.BOSS: "B",
    RoomType.SAFE: "+",
    RoomType.REWARD: "$",
    RoomType.PUZZLE: "?",
    RoomType.COMBAT: "x",
}

TILE_KIND_TO_ASCII: Dict[TileKind, str] = {
    TileKind.BASE: ":",
    TileKind.PATH: ".",
    TileKind.OBSTACLE: "^",
    TileKind.WALL: "#",
}

OBJECT_TYPE_TO_ASCII: Dict[ObjectType, str] = {
    ObjectType.ENEMY: "E",
    ObjectType.NPC: "N",
    ObjectType.ITEM: "I",
    ObjectType.SHRINE: "H",
    ObjectType.PUZZLE_ELEMENT: "P",
    ObjectType.BOSS: "B",
}

SPAWN_CHAR = "@"


def render_grid_ascii(grid: DungeonGrid) -> str:
    """
    Draw the dungeon grid, one character per room with exits between them.

    Main path rooms are shown in upper case where the symbol has a case;
    cells without exits are blank.
    """
    size = grid.size
    canvas = [[" "] * (size * 2 - 1) for _ in range(size * 2 - 1)]

    for row in grid.cells:
        for cell in row:
            if not cell.is_accessible:
                continue
            char = ROOM_TYPE_TO_ASCII[cell.room_type]
            if cell.is_on_main_path:
                char = char.upper()
            canvas[cell.grid_y * 2][cell.grid_x * 2] = char
            if cell.exits.east:
                canvas[cell.grid_y * 2][cell.grid_x * 2 + 1] = "-"
            if cell.exits.south:
                canvas[cell.grid_y * 2 + 1][cell.grid_x * 2] = "|"

    return "\n".join("".join(line).rstrip() for line in canvas)


def render_tile_map_ascii(
    tile_map: TileMap, objects: Optional[Sequence[GameObject]] = None
) -> str:
    """Draw a tile map by tile kind, with the spawn point and objects on top."""
    canvas: List[List[str]] = [
        [TILE_KIND_TO_ASCII[tile.kind] for tile in row] for row in tile_map.tiles
    ]

    for game_object in objects or []:
        tile_x, tile_y = game_object.position.to_tile(tile_map.tile_size)
        if tile_map.in_bounds(tile_x, tile_y):
            canvas[tile_y][tile_x] = OBJECT_TYPE_TO_ASCII[game_object.type]

    spawn_x, spawn_y = tile_map.spawn_point.to_tile(tile_map.tile_size)
    if tile_map.in_bounds(spawn_x, spawn_y):
        canvas[spawn_y][spawn_x] = SPAWN_CHAR

    return "\n".join("".join(line) for line in canvas)
