"""
Biome palettes and the biome registry.

A biome decides which tiles a room is drawn with: a base tile that fills the
map, a walkable path tile for the corridor, and a set of obstacle tiles
scattered beside it. Five hand-made palettes ship with the package; stories
can ask for any other biome name, which the registry resolves by asking a
BiomeGenerator and remembering the answer in a PersistentStore.
"""

import re
import sys
from dataclasses import dataclass, field
from typing import TYPE_CHECKING, Dict, List, Optional

from pydantic import TypeAdapter, ValidationError

from .storage import PersistentStore

if TYPE_CHECKING:
    from .services import BiomeGenerator

CUSTOM_BIOMES_KEY: str = "custom_biomes"

_WHITESPACE = re.compile(r"\s+")


@dataclass
class BiomeColors:
    base: str
    path: str
    obstacles: List[str] = field(default_factory=list)


@dataclass
class BiomeDefinition:
    """A tile palette for one biome."""

    name: str
    base_tile: str
    path_tile: str
    obstacle_tiles: List[str]
    colors: BiomeColors
    atmosphere: str = ""

    def has_wall_obstacle(self) -> bool:
        return any("wall" in tile for tile in self.obstacle_tiles)


LEGACY_BIOMES: Dict[str, BiomeDefinition] = {
    "forest": BiomeDefinition(
        name="Forest",
        base_tile="grass",
        path_tile="dirt",
        obstacle_tiles=["tree", "bush"],
        colors=BiomeColors(base="#4ade80", path="#92400e", obstacles=["#22c55e", "#16a34a"]),
        atmosphere="Dense trees crowd a winding dirt trail.",
    ),
    "plains": BiomeDefinition(
        name="Plains",
        base_tile="grass",
        path_tile="path",
        obstacle_tiles=["bush", "flowers", "rock"],
        colors=BiomeColors(
            base="#4ade80", path="#a8a29e", obstacles=["#16a34a", "#f472b6", "#a1a1aa"]
        ),
        atmosphere="Open grassland dotted with shrubs and wildflowers.",
    ),
    "desert": BiomeDefinition(
        name="Desert",
        base_tile="sand",
        path_tile="stone",
        obstacle_tiles=["rock", "bush"],
        colors=BiomeColors(base="#fbbf24", path="#78716c", obstacles=["#a1a1aa", "#16a34a"]),
        atmosphere="Sun-baked sand broken by a line of old paving stones.",
    ),
    "dungeon": BiomeDefinition(
        name="Dungeon",
        base_tile="floor",
        path_tile="floor",
        obstacle_tiles=["wall"],
        colors=BiomeColors(base="#d6d3d1", path="#d6d3d1", obstacles=["#57534e"]),
        atmosphere="Cold flagstones between crumbling masonry.",
    ),
    "cave": BiomeDefinition(
        name="Cave",
        base_tile="stone",
        path_tile="floor",
        obstacle_tiles=["wall", "rock"],
        colors=BiomeColors(base="#78716c", path="#d6d3d1", obstacles=["#57534e", "#a1a1aa"]),
        atmosphere="A damp tunnel with boulders fallen from the ceiling.",
    ),
}

# Biomes that get a wall border around the map
ENCLOSED_BIOMES = frozenset({"dungeon", "cave"})

_LIBRARY_ADAPTER = TypeAdapter(Dict[str, BiomeDefinition])


def normalize_biome_key(key: str) -> str:
    """Lower-cases a biome key and strips all whitespace."""
    return _WHITESPACE.sub("", key.lower())


def default_biome_for_room(room_number: int) -> str:
    """Legacy biome used when a room has no biome assigned."""
    if room_number < 3:
        return "forest"
    if room_number < 6:
        return "plains"
    if room_number < 10:
        return "desert"
    return "dungeon"


def is_enclosed(biome_key: str, definition: Optional[BiomeDefinition] = None) -> bool:
    """Whether maps of this biome are surrounded by a wall border."""
    if biome_key in ENCLOSED_BIOMES:
        return True
    return definition is not None and definition.has_wall_obstacle()


class BiomeRegistry:
    """
    Resolves biome keys to BiomeDefinitions.

    Lookups check the base library first and then custom biomes saved in the
    store; custom biomes override base ones with the same key. Unknown keys
    can be generated on demand through an injected BiomeGenerator.
    """

    def __init__(
        self,
        store: PersistentStore,
        generator: Optional["BiomeGenerator"] = None,
        base_library: Optional[Dict[str, BiomeDefinition]] = None,
    ) -> None:
        self.store = store
        self.generator = generator
        self._base: Dict[str, BiomeDefinition] = {
            normalize_biome_key(key): biome
            for key, biome in (base_library if base_library is not None else LEGACY_BIOMES).items()
        }
        self._custom: Optional[Dict[str, BiomeDefinition]] = None

    def _load_custom(self) -> Dict[str, BiomeDefinition]:
        if self._custom is not None:
            return self._custom

        result = self.store.get(CUSTOM_BIOMES_KEY)
        custom: Dict[str, BiomeDefinition] = {}
        if not result.ok:
            print(
                f"[BiomeRegistry] Could not read custom biomes: {result.error} {result.detail}",
                file=sys.stderr,
            )
        elif result.value is not None:
            try:
                custom = _LIBRARY_ADAPTER.validate_json(result.value)
            except ValidationError as e:
                print(f"[BiomeRegistry] Ignoring corrupt custom biomes: {e}", file=sys.stderr)

        self._custom = custom
        return custom

    def get(self, key: str) -> Optional[BiomeDefinition]:
        normalized = normalize_biome_key(key)
        custom = self._load_custom()
        if normalized in custom:
            return custom[normalized]
        return self._base.get(normalized)

    async def get_or_generate(
        self, key: str, story_context: str = ""
    ) -> Optional[BiomeDefinition]:
        """
        Returns the biome for key, generating and saving it if unknown.

        Returns None when the biome is unknown and cannot be generated; the
        caller falls back to a legacy palette.
        """
        existing = self.get(key)
        if existing is not None:
            return existing

        if self.generator is None:
            return None

        print(f"[BiomeRegistry] Biome '{key}' not found, generating", file=sys.stderr)
        try:
            biome = await self.generator.generate_biome(key, story_context)
        except Exception as e:
            print(f"[BiomeRegistry] Biome generation failed for '{key}': {e}", file=sys.stderr)
            return None

        self.save(key, biome)
        return biome

    def save(self, key: str, biome: BiomeDefinition) -> bool:
        """
        Saves a custom biome. The biome stays available for this registry
        even when the store rejects the write; returns whether it persisted.
        """
        normalized = normalize_biome_key(key)
        custom = self._load_custom()
        custom[normalized] = biome

        result = self.store.set(
            CUSTOM_BIOMES_KEY, _LIBRARY_ADAPTER.dump_json(custom).decode("utf-8")
        )
        if not result.ok:
            print(
                f"[BiomeRegistry] Failed to persist biome '{normalized}': {result.error}",
                file=sys.stderr,
            )
        return result.ok

    def keys(self) -> List[str]:
        return sorted(set(self._base) | set(self._load_custom()))

    def clear_custom(self) -> None:
        self.store.remove(CUSTOM_BIOMES_KEY)
        self._custom = None

    def stats(self) -> Dict[str, int]:
        base = len(self._base)
        custom = len(self._load_custom())
        return {"total": base + custom, "base": base, "custom": custom}
