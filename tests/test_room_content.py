"""Tests for room content population and room assembly."""

from dataclasses import replace

import pytest

from roomforge.dungeon_gen import RoomType
from roomforge.map_gen import generate_tile_map, is_position_walkable
from roomforge.room import (
    CONTENT_SEED_OFFSET,
    build_room,
    derive_room_seed,
    describe_room,
    map_number_for_distance,
)
from roomforge.room_content import (
    MAX_ENEMIES,
    POSITION_JITTER,
    SHRINE_HEAL_AMOUNT,
    SPAWN_CLEARANCE,
    SPECIAL_OBJECT_BUILDERS,
    EffectType,
    GameObject,
    ObjectType,
    drop_chance,
    generate_random_item,
    map_name,
    populate_room,
    roll_item,
)
from roomforge.seeded_random import SeededRandom
from roomforge.map_gen import Point


def objects_of(objects, object_type):
    return [obj for obj in objects if obj.type == object_type]


@pytest.fixture
def tile_map():
    return generate_tile_map("room_3_4", 42, 39, biome="forest")


class TestEnemies:
    """Enemy counts, levels and placement."""

    @pytest.mark.parametrize("map_number", [1, 2, 3, 4])
    def test_combat_enemy_count_scales_with_map(self, tile_map, map_number):
        objects = populate_room("3_4", tile_map, RoomType.COMBAT, map_number, SeededRandom(1))
        enemies = objects_of(objects, ObjectType.ENEMY)

        low = min(2 + map_number, MAX_ENEMIES)
        high = min(4 + map_number * 2, MAX_ENEMIES)
        assert low <= len(enemies) <= high

    @pytest.mark.parametrize("map_number", [1, 2, 3, 4])
    def test_enemy_levels(self, tile_map, map_number):
        objects = populate_room("3_4", tile_map, RoomType.COMBAT, map_number, SeededRandom(9))
        for enemy in objects_of(objects, ObjectType.ENEMY):
            assert map_number * 2 <= enemy.enemy_level <= map_number * 2 + 2
            assert f"Lv {enemy.enemy_level}" in enemy.interaction_text

    def test_enemies_keep_away_from_spawn(self, tile_map):
        spawn = tile_map.spawn_point
        for seed in range(20):
            objects = populate_room("3_4", tile_map, RoomType.COMBAT, 4, SeededRandom(seed))
            for enemy in objects_of(objects, ObjectType.ENEMY):
                distance = abs(enemy.position.x - spawn.x) + abs(enemy.position.y - spawn.y)
                assert distance > SPAWN_CLEARANCE - POSITION_JITTER

    def test_never_more_than_max_enemies(self, tile_map):
        for seed in range(20):
            objects = populate_room("3_4", tile_map, RoomType.COMBAT, 4, SeededRandom(seed))
            assert len(objects_of(objects, ObjectType.ENEMY)) <= MAX_ENEMIES

    def test_reward_and_puzzle_enemy_ranges(self, tile_map):
        for seed in range(10):
            reward = populate_room("3_4", tile_map, RoomType.REWARD, 1, SeededRandom(seed))
            puzzle = populate_room("3_4", tile_map, RoomType.PUZZLE, 1, SeededRandom(seed))
            assert 1 <= len(objects_of(reward, ObjectType.ENEMY)) <= 2
            assert 1 <= len(objects_of(puzzle, ObjectType.ENEMY)) <= 3

    def test_enemy_ids_are_indexed(self, tile_map):
        objects = populate_room("3_4", tile_map, RoomType.COMBAT, 1, SeededRandom(3))
        enemies = objects_of(objects, ObjectType.ENEMY)
        assert [enemy.id for enemy in enemies] == [f"enemy_3_4_{i}" for i in range(len(enemies))]


class TestItems:
    """Loot placement and the item table."""

    def test_reward_room_item_count(self, tile_map):
        for seed in range(10):
            objects = populate_room("3_4", tile_map, RoomType.REWARD, 2, SeededRandom(seed))
            assert 4 <= len(objects_of(objects, ObjectType.ITEM)) <= 6

    def test_item_objects_carry_an_item(self, tile_map):
        objects = populate_room("3_4", tile_map, RoomType.REWARD, 2, SeededRandom(5))
        for obj in objects_of(objects, ObjectType.ITEM):
            assert obj.item_drop is not None
            assert obj.item_drop.id.endswith(obj.id)

    def test_drop_chance_is_capped(self):
        assert drop_chance(1) == pytest.approx(0.4)
        assert drop_chance(4) == pytest.approx(0.7)
        assert drop_chance(10) == 0.95

    @pytest.mark.parametrize("map_number", [1, 2, 3, 4])
    def test_rolled_item_values_scale(self, map_number):
        expected = {
            EffectType.HEAL: 20 + map_number * 10,
            EffectType.MANA: 15 + map_number * 10,
            EffectType.DAMAGE_BOOST: 3 + map_number * 2,
            EffectType.DEFENSE_BOOST: 2 + map_number * 2,
        }
        random = SeededRandom(map_number)
        for i in range(30):
            item = roll_item(map_number, random, f"owner_{i}")
            assert item.effect.value == expected[item.effect.type]
            assert item.id.endswith(f"owner_{i}")

    def test_item_ids_are_deterministic(self):
        first = roll_item(2, SeededRandom(8), "enemy_1_1_0")
        second = roll_item(2, SeededRandom(8), "enemy_1_1_0")
        assert first == second

    def test_random_item_sometimes_drops_nothing(self):
        random = SeededRandom(77)
        drops = [generate_random_item(1, random, f"e{i}") for i in range(200)]
        assert any(drop is None for drop in drops)
        assert any(drop is not None for drop in drops)


class TestSpecialObjects:
    """Per room type objects."""

    def test_every_room_type_has_a_builder(self):
        assert set(SPECIAL_OBJECT_BUILDERS) == set(RoomType)

    def test_start_room_has_only_a_guide(self, tile_map):
        objects = populate_room("0_4", tile_map, RoomType.START, 1, SeededRandom(1))

        assert len(objects) == 1
        guide = objects[0]
        assert guide.type == ObjectType.NPC
        assert guide.id == "npc_guide_0_4"
        assert "Mystic Forest" in guide.interaction_text
        assert is_position_walkable(tile_map, guide.position.x, guide.position.y)

    def test_npc_text_overrides_guide_line(self, tile_map):
        objects = populate_room(
            "0_4", tile_map, RoomType.START, 1, SeededRandom(1), npc_text="Hello, hero."
        )
        assert objects[0].interaction_text == "Hello, hero."

    def test_safe_room_has_shrine_and_npc(self, tile_map):
        objects = populate_room("2_4", tile_map, RoomType.SAFE, 1, SeededRandom(1))

        assert not objects_of(objects, ObjectType.ENEMY)
        shrines = objects_of(objects, ObjectType.SHRINE)
        assert len(shrines) == 1
        assert shrines[0].heal_amount == SHRINE_HEAL_AMOUNT
        middle = tile_map.path_points[len(tile_map.path_points) // 2]
        assert shrines[0].position == middle
        assert len(objects_of(objects, ObjectType.NPC)) == 1

    def test_puzzle_room_has_mechanism(self, tile_map):
        objects = populate_room("5_2", tile_map, RoomType.PUZZLE, 3, SeededRandom(1))

        puzzles = objects_of(objects, ObjectType.PUZZLE_ELEMENT)
        assert len(puzzles) == 1
        puzzle = puzzles[0]
        assert puzzle.position == tile_map.path_points[0]
        assert puzzle.puzzle_data is not None
        assert not puzzle.puzzle_data.solved
        assert puzzle.puzzle_data.reward_item.effect.value == 5 + 3 * 3
        assert 2 <= len(objects_of(objects, ObjectType.ITEM)) <= 3

    def test_boss_room(self, tile_map):
        objects = populate_room("8_4", tile_map, RoomType.BOSS, 4, SeededRandom(1))

        assert not objects_of(objects, ObjectType.ENEMY)
        assert not objects_of(objects, ObjectType.ITEM)
        bosses = objects_of(objects, ObjectType.BOSS)
        assert len(bosses) == 1
        boss = bosses[0]
        assert boss.enemy_level == 10 + 4 * 5
        assert boss.item_drop.name == "Legendary Artifact"
        assert boss.item_drop.effect.value == 15 + 4 * 5

    def test_rooms_without_path_points_only_get_a_guide(self, tile_map):
        bare = replace(tile_map, path_points=[])
        for room_type in RoomType:
            objects = populate_room("1_1", bare, room_type, 2, SeededRandom(1))
            if room_type == RoomType.START:
                assert [obj.type for obj in objects] == [ObjectType.NPC]
            else:
                assert objects == []

    @pytest.mark.parametrize("room_type", list(RoomType))
    def test_object_ids_are_unique(self, tile_map, room_type):
        objects = populate_room("4_4", tile_map, room_type, 3, SeededRandom(11))
        ids = [obj.id for obj in objects]
        assert len(ids) == len(set(ids))

    def test_map_names(self):
        assert map_name(1) == "Mystic Forest"
        assert map_name(3) == "Shadow Caverns"
        assert map_name(4) == "Ancient Ruins"


class TestGameObject:
    """Interaction state."""

    def test_record_interaction(self):
        obj = GameObject(
            id="npc_1", position=Point(x=0, y=0), type=ObjectType.NPC, sprite="🧙",
            interaction_text="Hi",
        )
        obj.record_interaction("asked about the boss")
        obj.record_interaction("said goodbye")

        assert obj.has_interacted
        assert obj.interaction_history == ["asked about the boss", "said goodbye"]


class TestBuildRoom:
    """Assembling rooms from tile maps and content."""

    def test_same_arguments_same_room(self):
        first = build_room("room_3_4", 42, 39, RoomType.COMBAT, 2)
        second = build_room("room_3_4", 42, 39, RoomType.COMBAT, 2)
        assert first == second

    def test_content_uses_its_own_stream(self):
        room = build_room("room_3_4", 42, 39, RoomType.COMBAT, 2)
        expected = populate_room(
            "3_4",
            room.tile_map,
            RoomType.COMBAT,
            2,
            SeededRandom(derive_room_seed(42, 39) + CONTENT_SEED_OFFSET),
        )
        assert room.objects == expected

    def test_object_ids_use_grid_key(self):
        room = build_room("room_3_4", 42, 39, RoomType.BOSS, 4)
        assert room.find_object("boss_3_4") is not None
        assert room.find_object("missing") is None

    def test_non_grid_room_id_is_used_as_key(self):
        room = build_room("room_7", 42, 7, RoomType.START, 1)
        assert room.objects[0].id == "npc_guide_room_7"
        assert room.grid_position is None

    def test_default_and_custom_description(self):
        room = build_room("room_0_4", 1, 36, RoomType.START, 1, biome="forest")
        assert room.description == describe_room(RoomType.START, "forest")
        assert "forest" in room.description

        described = build_room(
            "room_0_4", 1, 36, RoomType.START, 1, biome="forest", description="A dark wood."
        )
        assert described.description == "A dark wood."

    def test_new_rooms_are_unvisited(self):
        room = build_room("room_1_4", 1, 37, RoomType.COMBAT, 1)
        assert not room.visited
        assert room.exit_direction is None
        room.mark_visited()
        assert room.visited

    def test_derive_room_seed(self):
        assert derive_room_seed(42, 0) == 42
        assert derive_room_seed(42, 3) == 3042

    @pytest.mark.parametrize(
        "distance,expected", [(None, 1), (0, 1), (3, 1), (4, 2), (11, 3), (12, 4), (40, 4)]
    )
    def test_map_number_for_distance(self, distance, expected):
        assert map_number_for_distance(distance) == expected
