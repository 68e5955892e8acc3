"""Procedural dungeon, tile map and room caching pipeline."""

from roomforge.seeded_random import SeededRandom
from roomforge.dungeon_gen import (
    GRID_SIZE,
    Direction,
    RoomType,
    GridPosition,
    RoomExits,
    DungeonCell,
    DungeonGrid,
    generate_dungeon_grid,
    get_adjacent_cell,
    room_id_from_grid,
    grid_from_room_id,
    manhattan_distance,
)
from roomforge.biomes import (
    BiomeColors,
    BiomeDefinition,
    BiomeRegistry,
    LEGACY_BIOMES,
    default_biome_for_room,
    normalize_biome_key,
)
from roomforge.map_gen import (
    MAP_WIDTH,
    MAP_HEIGHT,
    TILE_SIZE,
    ExitDirection,
    Point,
    Tile,
    TileKind,
    TileMap,
    generate_tile_map,
    get_tile_color,
    is_position_walkable,
    reposition_spawn,
)
from roomforge.pathfinding import check_traversable, flood_fill, nearest_walkable
from roomforge.room_content import (
    GameObject,
    Item,
    ItemEffect,
    ObjectType,
    PuzzleData,
    generate_random_item,
    populate_room,
)
from roomforge.room import Room, build_room, derive_room_seed, describe_room
from roomforge.storage import (
    InMemoryStore,
    JsonFileStore,
    PersistentStore,
    StorageError,
    StorageResult,
)
from roomforge.room_cache import CachedRoomData, PersistentRoomCache, RoomCacheError
from roomforge.cache_manager import RoomCacheManager
from roomforge.event_system import Event, EventBus, EventData
from roomforge.services import (
    BiomeGenerator,
    CosmeticEnhancer,
    NarrativeService,
    NullEnhancer,
    StaticNarrative,
    StoryMode,
)
from roomforge.session import DungeonSession
from roomforge.config import CacheConfig, SessionConfig
