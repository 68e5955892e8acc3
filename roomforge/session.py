"""
Dungeon session controller.

A DungeonSession is what a UI layer drives: it builds the dungeon grid for a
story seed, hands out rooms as the player walks between them, and keeps the
neighbors of the current room generating in the background.

Rooms come from three places, cheapest first:
1. The live room map (rooms near the player)
2. The persistent room cache
3. Fresh generation: tile map and objects, then cosmetic enhancement with a
   timeout, then a write to the persistent cache

Generation for a room id is coalesced through the RoomCacheManager, so a
prefetch and a player walking into the same room share one generation.
Narrative, biome and enhancement services may fail at any point; the session
then continues with the procedural fallbacks.
"""

import asyncio
import sys
from typing import Dict, List, Optional, Set, Tuple

from .biomes import (
    LEGACY_BIOMES,
    BiomeDefinition,
    BiomeRegistry,
    default_biome_for_room,
    normalize_biome_key,
)
from .cache_manager import RoomCacheManager
from .config import CacheConfig, SessionConfig
from .dungeon_gen import (
    Direction,
    DungeonCell,
    GridPosition,
    generate_dungeon_grid,
    room_id_from_grid,
)
from .event_system import Event, EventBus
from .map_gen import ExitDirection, Point, reposition_spawn
from .room import Room, build_room, map_number_for_distance
from .room_cache import PersistentRoomCache
from .services import (
    CosmeticEnhancer,
    NarrativeService,
    NullEnhancer,
    StaticNarrative,
    StoryMode,
)
from .storage import InMemoryStore, JsonFileStore, PersistentStore


class DungeonSession:
    def __init__(
        self,
        story_seed: int,
        store: Optional[PersistentStore] = None,
        narrative: Optional[NarrativeService] = None,
        enhancer: Optional[CosmeticEnhancer] = None,
        biome_registry: Optional[BiomeRegistry] = None,
        event_bus: Optional[EventBus] = None,
        config: Optional[SessionConfig] = None,
        cache_config: Optional[CacheConfig] = None,
    ) -> None:
        self.story_seed = story_seed
        self.config = config if config is not None else SessionConfig()
        self.config.validate()

        if store is None:
            if self.config.cache_dir:
                store = JsonFileStore(self.config.cache_dir)
            else:
                store = InMemoryStore()
        self.store = store

        if event_bus is None:
            event_bus = EventBus(debug=self.config.debug_events)
        self.event_bus = event_bus
        self.narrative = narrative if narrative is not None else StaticNarrative()
        self.enhancer = enhancer if enhancer is not None else NullEnhancer()
        self.biome_registry = biome_registry if biome_registry is not None else BiomeRegistry(store)

        self.grid = generate_dungeon_grid(story_seed)
        self.room_cache = PersistentRoomCache(store, cache_config, event_bus=self.event_bus)
        self.room_cache.initialize(story_seed)
        self.cache_manager = RoomCacheManager()

        self.rooms: Dict[str, Room] = {}
        self.position: GridPosition = self.grid.start_position
        self.spawn_point: Optional[Point] = None
        self.story_text: str = ""
        self.biome_progression: List[str] = []
        self._prefetch_tasks: Set[asyncio.Task] = set()

    @property
    def current_room_id(self) -> str:
        return room_id_from_grid(self.position.grid_x, self.position.grid_y)

    @property
    def current_room(self) -> Optional[Room]:
        return self.rooms.get(self.current_room_id)

    def room_number_for(self, position: GridPosition) -> int:
        return position.grid_y * self.grid.size + position.grid_x

    def map_number_for(self, position: GridPosition) -> int:
        """Difficulty tier (1-4) of a room, growing with its distance from the start."""
        return map_number_for_distance(self.grid.cell_at(position).distance_from_start)

    async def start(self, story_text: str = "", mode: StoryMode = StoryMode.INSPIRATION) -> Room:
        """Fetch the biome progression and load the start room."""
        self.story_text = story_text
        try:
            self.biome_progression = await self.narrative.biome_progression(story_text, mode)
        except Exception as e:
            print(
                f"[DungeonSession] Biome progression failed, using legacy biomes: {e}",
                file=sys.stderr,
            )
            self.biome_progression = []

        self.position = self.grid.start_position
        room = await self.load_room(self.position)
        room.mark_visited()
        self.spawn_point = room.tile_map.spawn_point
        self._schedule_prefetch()
        return room

    def _biome_key_for(self, cell: DungeonCell) -> str:
        distance = cell.distance_from_start
        if self.biome_progression and distance is not None:
            return self.biome_progression[min(distance, len(self.biome_progression) - 1)]
        return default_biome_for_room(self.room_number_for(cell.position))

    async def _resolve_biome(
        self, key: str, room_number: int
    ) -> Tuple[str, Optional[BiomeDefinition]]:
        normalized = normalize_biome_key(key)
        if normalized in LEGACY_BIOMES:
            return normalized, None
        definition = await self.biome_registry.get_or_generate(key, self.story_text)
        if definition is None:
            fallback = default_biome_for_room(room_number)
            print(f"[DungeonSession] Unknown biome '{key}', using {fallback}", file=sys.stderr)
            return fallback, None
        return normalized, definition

    async def _describe(
        self, room_number: int, biome_name: str, cell: DungeonCell
    ) -> Optional[str]:
        try:
            return await self.narrative.describe_room(room_number, biome_name, cell.room_type)
        except Exception as e:
            print(f"[DungeonSession] Room description failed: {e}", file=sys.stderr)
            return None

    async def _enhance(self, room: Room) -> Room:
        try:
            return await asyncio.wait_for(
                self.enhancer.enhance(room), timeout=self.config.enhancement_timeout
            )
        except asyncio.TimeoutError:
            print(f"[DungeonSession] Enhancement timed out for {room.id}", file=sys.stderr)
            self.event_bus.emit(Event.ENHANCEMENT_FAILED, room_id=room.id, error="timeout")
        except Exception as e:
            print(f"[DungeonSession] Enhancement failed for {room.id}: {e}", file=sys.stderr)
            self.event_bus.emit(Event.ENHANCEMENT_FAILED, room_id=room.id, error=str(e))
        return room

    async def _generate(self, position: GridPosition) -> Room:
        cell = self.grid.cell_at(position)
        room_number = self.room_number_for(position)
        label, definition = await self._resolve_biome(self._biome_key_for(cell), room_number)
        biome_name = definition.name if definition is not None else label
        description = await self._describe(room_number, biome_name, cell)

        room = build_room(
            cell.room_id,
            self.story_seed,
            room_number,
            cell.room_type,
            self.map_number_for(position),
            biome=label,
            biome_definition=definition,
            exits=cell.exits,
            description=description,
        )
        self.event_bus.emit(Event.ROOM_GENERATED, room_id=room.id)

        room = await self._enhance(room)
        self.room_cache.save_room(room)
        return room

    async def _fetch(self, position: GridPosition) -> Tuple[Room, str]:
        room_id = room_id_from_grid(position.grid_x, position.grid_y)
        cached = self.room_cache.get_room(room_id)
        if cached is not None:
            return cached, "cache"
        room = await self.cache_manager.get_or_generate(room_id, lambda: self._generate(position))
        return room, "generated"

    async def load_room(self, position: GridPosition) -> Room:
        """
        Make the room at position resident and return it.

        Raises:
            ValueError: If position is outside the grid
        """
        self.grid.cell_at(position)
        room_id = room_id_from_grid(position.grid_x, position.grid_y)

        room = self.rooms.get(room_id)
        source = "live"
        if room is None:
            room, source = await self._fetch(position)
            room = self.rooms.setdefault(room_id, room)

        self.cache_manager.mark_room_loaded(room_id)
        self.event_bus.emit(Event.ROOM_LOADED, room_id=room_id, source=source)
        return room

    async def move(self, direction: Direction) -> Room:
        """
        Walk through an exit of the current room.

        Raises:
            ValueError: If the current room has no exit in that direction
        """
        cell = self.grid.cell_at(self.position)
        if not cell.exits.is_open(direction):
            raise ValueError(f"{cell.room_id} has no {direction.name.lower()} exit")

        target = self.position.moved(direction)
        room = await self.load_room(target)

        self.position = target
        room.exit_direction = ExitDirection.from_direction(direction)
        room.mark_visited()
        self.spawn_point = reposition_spawn(room.tile_map, room.exit_direction)
        self.event_bus.emit(
            Event.PLAYER_MOVED, room_id=room.id, direction=direction, spawn=self.spawn_point
        )

        self._unload_distant()
        self._schedule_prefetch()
        return room

    def _keep_ids(self) -> Set[str]:
        keep = {self.current_room_id}
        keep.update(cell.room_id for _, cell in self.grid.open_neighbors(self.position))
        return keep

    def _unload_distant(self) -> None:
        for room_id in self.cache_manager.get_rooms_to_unload(self.position, self.grid, self.rooms):
            self.rooms.pop(room_id, None)
            self.cache_manager.mark_room_unloaded(room_id)
            self.event_bus.emit(Event.ROOM_UNLOADED, room_id=room_id)

    def _schedule_prefetch(self) -> None:
        if not self.config.prefetch:
            return
        positions = self.cache_manager.preload_adjacent_rooms(self.position, self.grid, self.rooms)
        for position in positions:
            self.event_bus.emit(
                Event.PREFETCH_QUEUED, room_id=room_id_from_grid(position.grid_x, position.grid_y)
            )
        for i in range(0, len(positions), 2):
            task = asyncio.ensure_future(self.prefetch_pair(*positions[i:i + 2]))
            self._prefetch_tasks.add(task)
            task.add_done_callback(self._prefetch_tasks.discard)

    async def _prefetch_one(self, position: GridPosition) -> Optional[Room]:
        room_id = room_id_from_grid(position.grid_x, position.grid_y)
        try:
            room = self.rooms.get(room_id)
            if room is None:
                room, _ = await self._fetch(position)
                # The player may have moved on while this room was generating
                if room_id in self._keep_ids() and room_id not in self.rooms:
                    self.rooms[room_id] = room
                    self.cache_manager.mark_room_loaded(room_id)
                    self.event_bus.emit(Event.ROOM_LOADED, room_id=room_id, source="prefetch")
                else:
                    room = self.rooms.get(room_id, room)
            return room
        except Exception as e:
            print(f"[DungeonSession] Prefetch of {room_id} failed: {e}", file=sys.stderr)
            return None
        finally:
            self.cache_manager.remove_from_queue(room_id)

    async def prefetch_pair(
        self, first: GridPosition, second: Optional[GridPosition] = None
    ) -> List[Optional[Room]]:
        """
        Generate two rooms concurrently (one if second is None).

        A room that fails to generate comes back as None.
        """
        positions = [first] if second is None else [first, second]
        return list(await asyncio.gather(*(self._prefetch_one(p) for p in positions)))

    async def wait_for_prefetch(self) -> None:
        """Wait until every scheduled prefetch has finished."""
        while self._prefetch_tasks:
            await asyncio.gather(*list(self._prefetch_tasks), return_exceptions=True)

    async def close(self) -> None:
        """
        Cancel pending prefetches. Generations already running are allowed to
        finish so their rooms still reach the persistent cache.
        """
        for task in list(self._prefetch_tasks):
            task.cancel()
        await self.wait_for_prefetch()
        await asyncio.gather(*self.cache_manager.in_flight_tasks(), return_exceptions=True)
