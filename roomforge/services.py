"""
Interfaces of the generative collaborators a session talks to, plus offline
stand-ins used when no service is configured.

Implementations are expected to be slow and to fail now and then; callers
treat every failure as "use the plain procedural result instead".
"""

from abc import ABC, abstractmethod
from enum import Enum
from typing import List

from .biomes import LEGACY_BIOMES, BiomeDefinition, default_biome_for_room
from .dungeon_gen import GRID_SIZE, RoomType
from .room import Room, describe_room


class StoryMode(Enum):
    """How the story text given at session start is used."""

    INSPIRATION = "inspiration"
    RECREATION = "recreation"
    CONTINUATION = "continuation"


class NarrativeService(ABC):
    """Writes the story layer: which biome each room is in, and what it looks like."""

    @abstractmethod
    async def biome_progression(self, story_text: str, mode: StoryMode) -> List[str]:
        """
        Biome keys by distance from the start room.

        Entry i is the biome of rooms i steps from the start.
        """
        pass

    @abstractmethod
    async def describe_room(self, room_number: int, biome_name: str, room_type: RoomType) -> str:
        pass


class BiomeGenerator(ABC):
    """Invents a palette for a biome name the registry doesn't know."""

    @abstractmethod
    async def generate_biome(self, key: str, story_context: str) -> BiomeDefinition:
        pass


class CosmeticEnhancer(ABC):
    """Attaches sprites and scene art to a generated room."""

    @abstractmethod
    async def enhance(self, room: Room) -> Room:
        """Returns the enhanced room. Tile map and object placement must not change."""
        pass


class StaticNarrative(NarrativeService):
    """Narrative without a model: legacy biomes and stock descriptions."""

    def __init__(self, length: int = GRID_SIZE * 2) -> None:
        self.length = length

    async def biome_progression(self, story_text: str, mode: StoryMode) -> List[str]:
        return [default_biome_for_room(i) for i in range(self.length)]

    async def describe_room(self, room_number: int, biome_name: str, room_type: RoomType) -> str:
        biome = LEGACY_BIOMES.get(biome_name)
        return describe_room(room_type, biome.name if biome is not None else biome_name)


class NullEnhancer(CosmeticEnhancer):
    """Leaves rooms with their fallback glyphs."""

    async def enhance(self, room: Room) -> Room:
        return room
