"""Tests for the ASCII debug views."""

from roomforge.ascii_render import SPAWN_CHAR, render_grid_ascii, render_tile_map_ascii
from roomforge.dungeon_gen import RoomType, generate_dungeon_grid
from roomforge.map_gen import MAP_HEIGHT, MAP_WIDTH, generate_tile_map
from roomforge.room import build_room


class TestRenderGrid:
    def test_grid_layout(self):
        grid = generate_dungeon_grid(42)
        lines = render_grid_ascii(grid).split("\n")

        assert len(lines) == grid.size * 2 - 1
        assert lines[8][0] == "S"
        assert lines[8][16] == "B"

    def test_connectors_follow_exits(self):
        grid = generate_dungeon_grid(42)
        lines = render_grid_ascii(grid).split("\n")
        start = grid.cells[4][0]

        if start.exits.east:
            assert lines[8][1] == "-"
        if start.exits.south:
            assert lines[9][0] == "|"

    def test_inaccessible_cells_are_blank(self):
        grid = generate_dungeon_grid(42)
        lines = [line.ljust(grid.size * 2 - 1) for line in render_grid_ascii(grid).split("\n")]
        for row in grid.cells:
            for cell in row:
                if not cell.is_accessible:
                    assert lines[cell.grid_y * 2][cell.grid_x * 2] == " "


class TestRenderTileMap:
    def test_tile_map_dimensions_and_spawn(self):
        tile_map = generate_tile_map("room", 42, 0)
        lines = render_tile_map_ascii(tile_map).split("\n")

        assert len(lines) == MAP_HEIGHT
        assert all(len(line) == MAP_WIDTH for line in lines)
        assert lines[MAP_HEIGHT // 2][2] == SPAWN_CHAR

    def test_enclosed_map_shows_walls(self):
        lines = render_tile_map_ascii(generate_tile_map("room", 42, 0, biome="cave")).split("\n")
        assert lines[0][0] == "#"

    def test_objects_are_drawn(self):
        room = build_room("room_8_4", 42, 44, RoomType.BOSS, 4)
        drawing = render_tile_map_ascii(room.tile_map, room.objects)
        assert "B" in drawing
