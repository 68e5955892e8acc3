#!/usr/bin/env python3
"""
Render a generated dungeon, or one of its rooms, as ASCII art for debugging.

Usage:
    python tools/render_dungeon_ascii.py [--seed S] [--room X,Y] [--biome NAME]
"""

import argparse
import sys
from pathlib import Path

# Add parent directory to path so we can import roomforge
sys.path.insert(0, str(Path(__file__).parent.parent))

from roomforge.ascii_render import render_grid_ascii, render_tile_map_ascii
from roomforge.dungeon_gen import GridPosition, generate_dungeon_grid, room_type_counts
from roomforge.pathfinding import check_traversable
from roomforge.room import build_room, map_number_for_distance


def main():
    parser = argparse.ArgumentParser(description="Render dungeon as ASCII art")
    parser.add_argument("--seed", type=int, default=42, help="Story seed")
    parser.add_argument("--room", help="Render the tile map of room X,Y instead of the grid")
    parser.add_argument("--biome", help="Legacy biome for --room (default: by room number)")
    args = parser.parse_args()

    grid = generate_dungeon_grid(args.seed)

    if args.room is None:
        print(render_grid_ascii(grid))
        print(f"\n--- Debug Info ---")
        print(f"Main path length: {len(grid.main_path)}")
        for room_type, count in room_type_counts(grid).items():
            print(f"{room_type.value}: {count}")
        return

    grid_x, grid_y = (int(part) for part in args.room.split(","))
    position = GridPosition(grid_x=grid_x, grid_y=grid_y)
    cell = grid.cell_at(position)
    room_number = grid_y * grid.size + grid_x
    room = build_room(
        cell.room_id,
        args.seed,
        room_number,
        cell.room_type,
        map_number_for_distance(cell.distance_from_start),
        biome=args.biome,
        exits=cell.exits,
    )

    print(render_tile_map_ascii(room.tile_map, room.objects))
    ok, message = check_traversable(room.tile_map)
    print(f"\n--- Debug Info ---")
    print(f"Room: {room.id} ({room.room_type.value}, {room.tile_map.biome})")
    print(f"Objects: {len(room.objects)}")
    print(f"Traversable: {ok} {message}")


if __name__ == "__main__":
    main()
