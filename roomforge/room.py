"""
Room assembly: a tile map plus the objects placed on it.
"""

from dataclasses import dataclass, field
from typing import Dict, List, Optional

from .biomes import BiomeDefinition
from .dungeon_gen import GridPosition, RoomExits, RoomType, grid_from_room_id
from .map_gen import ExitDirection, TileMap, generate_tile_map
from .room_content import GameObject, populate_room
from .seeded_random import SeededRandom

# Keeps the content stream of a room apart from its tile stream
CONTENT_SEED_OFFSET: int = 7919

# Rooms this many steps apart from the start share a difficulty tier
ROOMS_PER_MAP: int = 4
MAX_MAP_NUMBER: int = 4

_DESCRIPTIONS: Dict[RoomType, str] = {
    RoomType.START: "The journey begins here. A path leads on through the {biome}.",
    RoomType.BOSS: "A heavy silence hangs over this part of the {biome}. Something waits.",
    RoomType.SAFE: "A quiet clearing in the {biome}. Nothing hostile stirs here.",
    RoomType.REWARD: "A forgotten corner of the {biome}, littered with treasure.",
    RoomType.PUZZLE: "Strange markings cover this part of the {biome}.",
    RoomType.COMBAT: "The path winds on through the {biome}. You are not alone.",
}


@dataclass
class Room:
    """A fully generated room, as held by the caches."""

    id: str
    description: str
    objects: List[GameObject]
    tile_map: TileMap
    room_type: RoomType = RoomType.COMBAT
    visited: bool = False
    exit_direction: Optional[ExitDirection] = None
    scene_image: Optional[str] = None
    scene_image_loading: bool = False

    @property
    def grid_position(self) -> Optional[GridPosition]:
        return grid_from_room_id(self.id)

    def find_object(self, object_id: str) -> Optional[GameObject]:
        for game_object in self.objects:
            if game_object.id == object_id:
                return game_object
        return None

    def mark_visited(self) -> None:
        self.visited = True


def derive_room_seed(story_seed: int, room_number: int) -> int:
    """Seed of a room's tile layout; independent of generation order."""
    return story_seed + room_number * 1000


def map_number_for_distance(distance: Optional[int]) -> int:
    """Difficulty tier (1-4) of a room that is `distance` steps from the start."""
    return min(MAX_MAP_NUMBER, 1 + (distance or 0) // ROOMS_PER_MAP)


def describe_room(room_type: RoomType, biome_name: str) -> str:
    """Plain description used when no narrative service is available."""
    return _DESCRIPTIONS[room_type].format(biome=biome_name.lower())


def build_room(
    room_id: str,
    story_seed: int,
    room_number: int,
    room_type: RoomType,
    map_number: int,
    biome: Optional[str] = None,
    biome_definition: Optional[BiomeDefinition] = None,
    exits: Optional[RoomExits] = None,
    description: Optional[str] = None,
    npc_text: Optional[str] = None,
) -> Room:
    """
    Generate a complete, playable room.

    The result depends only on the arguments, so building the same room twice
    gives equal rooms.
    """
    tile_map = generate_tile_map(
        room_id,
        story_seed,
        room_number,
        biome=biome,
        biome_definition=biome_definition,
        exits=exits,
    )

    position = grid_from_room_id(room_id)
    room_key = f"{position.grid_x}_{position.grid_y}" if position is not None else room_id
    content_random = SeededRandom(derive_room_seed(story_seed, room_number) + CONTENT_SEED_OFFSET)
    objects = populate_room(room_key, tile_map, room_type, map_number, content_random, npc_text)

    biome_name = biome_definition.name if biome_definition is not None else tile_map.biome
    return Room(
        id=room_id,
        description=description or describe_room(room_type, biome_name),
        objects=objects,
        tile_map=tile_map,
        room_type=room_type,
    )
