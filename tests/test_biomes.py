"""Tests for biome palettes and the biome registry."""

import pytest

from roomforge.biomes import (
    CUSTOM_BIOMES_KEY,
    LEGACY_BIOMES,
    BiomeColors,
    BiomeDefinition,
    BiomeRegistry,
    default_biome_for_room,
    is_enclosed,
    normalize_biome_key,
)
from roomforge.services import BiomeGenerator
from roomforge.storage import InMemoryStore, StorageError, StorageResult


def make_biome(name: str, obstacles=("reeds",)) -> BiomeDefinition:
    return BiomeDefinition(
        name=name,
        base_tile="mud",
        path_tile="boardwalk",
        obstacle_tiles=list(obstacles),
        colors=BiomeColors(base="#3f6212", path="#a16207", obstacles=["#65a30d"]),
        atmosphere="Mist hangs over the water.",
    )


class RecordingGenerator(BiomeGenerator):
    def __init__(self) -> None:
        self.requests = []

    async def generate_biome(self, key: str, story_context: str) -> BiomeDefinition:
        self.requests.append((key, story_context))
        return make_biome(key)


class FailingGenerator(BiomeGenerator):
    async def generate_biome(self, key: str, story_context: str) -> BiomeDefinition:
        raise RuntimeError("no palette today")


class ReadOnlyStore(InMemoryStore):
    def set(self, key: str, value: str) -> StorageResult:
        return StorageResult.failure(StorageError.IO_ERROR, "read only")


class TestBiomeHelpers:
    """Key normalization and legacy defaults."""

    def test_normalize_biome_key(self):
        assert normalize_biome_key("Crystal Marsh") == "crystalmarsh"
        assert normalize_biome_key("  FOREST\t") == "forest"

    @pytest.mark.parametrize(
        "room_number,expected",
        [(0, "forest"), (3, "plains"), (6, "desert"), (10, "dungeon"), (80, "dungeon")],
    )
    def test_default_biome_for_room(self, room_number, expected):
        assert default_biome_for_room(room_number) == expected

    def test_legacy_library(self):
        assert set(LEGACY_BIOMES) == {"forest", "plains", "desert", "dungeon", "cave"}
        assert LEGACY_BIOMES["forest"].path_tile == "dirt"

    def test_enclosed_biomes(self):
        assert is_enclosed("dungeon")
        assert is_enclosed("cave")
        assert not is_enclosed("forest")
        assert is_enclosed("ruins", make_biome("Ruins", obstacles=["broken_wall"]))
        assert not is_enclosed("swamp", make_biome("Swamp"))


class TestBiomeRegistry:
    """Lookup, generation and persistence of custom biomes."""

    def test_legacy_lookup_is_normalized(self):
        registry = BiomeRegistry(InMemoryStore())
        assert registry.get(" Forest ") == LEGACY_BIOMES["forest"]
        assert registry.get("atlantis") is None

    def test_stats_and_keys(self):
        registry = BiomeRegistry(InMemoryStore())
        assert registry.stats() == {"total": 5, "base": 5, "custom": 0}

        registry.save("Sunken City", make_biome("Sunken City"))
        assert registry.stats() == {"total": 6, "base": 5, "custom": 1}
        assert "sunkencity" in registry.keys()

    @pytest.mark.asyncio
    async def test_known_biome_is_not_generated(self):
        generator = RecordingGenerator()
        registry = BiomeRegistry(InMemoryStore(), generator)
        assert await registry.get_or_generate("desert") == LEGACY_BIOMES["desert"]
        assert generator.requests == []

    @pytest.mark.asyncio
    async def test_unknown_biome_is_generated_and_persisted(self):
        store = InMemoryStore()
        generator = RecordingGenerator()
        registry = BiomeRegistry(store, generator)

        biome = await registry.get_or_generate("Sunken City", "A drowned kingdom")
        assert biome.name == "Sunken City"
        assert generator.requests == [("Sunken City", "A drowned kingdom")]
        assert store.get(CUSTOM_BIOMES_KEY).value is not None

        again = await registry.get_or_generate("sunken city")
        assert again == biome
        assert len(generator.requests) == 1

        reopened = BiomeRegistry(store)
        assert reopened.get("Sunken City") == biome

    @pytest.mark.asyncio
    async def test_generation_failure_returns_none(self):
        registry = BiomeRegistry(InMemoryStore(), FailingGenerator())
        assert await registry.get_or_generate("Sunken City") is None
        assert registry.stats()["custom"] == 0

    @pytest.mark.asyncio
    async def test_no_generator_returns_none(self):
        registry = BiomeRegistry(InMemoryStore())
        assert await registry.get_or_generate("Sunken City") is None

    def test_custom_biome_overrides_base(self):
        registry = BiomeRegistry(InMemoryStore())
        custom_forest = make_biome("Forest")
        registry.save("forest", custom_forest)
        assert registry.get("Forest") == custom_forest

    def test_corrupt_custom_library_is_ignored(self):
        store = InMemoryStore()
        store.set(CUSTOM_BIOMES_KEY, "{not json")
        registry = BiomeRegistry(store)

        assert registry.get("forest") == LEGACY_BIOMES["forest"]
        assert registry.stats()["custom"] == 0
        assert registry.save("Sunken City", make_biome("Sunken City"))
        assert BiomeRegistry(store).get("sunkencity") is not None

    def test_failed_save_keeps_biome_in_memory(self):
        registry = BiomeRegistry(ReadOnlyStore())
        biome = make_biome("Sunken City")

        assert not registry.save("Sunken City", biome)
        assert registry.get("Sunken City") == biome

    def test_clear_custom(self):
        store = InMemoryStore()
        registry = BiomeRegistry(store)
        registry.save("Sunken City", make_biome("Sunken City"))

        registry.clear_custom()
        assert registry.get("Sunken City") is None
        assert store.get(CUSTOM_BIOMES_KEY).value is None

    def test_custom_base_library(self):
        marsh = make_biome("Marsh")
        registry = BiomeRegistry(InMemoryStore(), base_library={"Marsh": marsh})
        assert registry.get("marsh") == marsh
        assert registry.get("forest") is None
