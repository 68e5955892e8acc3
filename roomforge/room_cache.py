"""
Persistent, seed-scoped room cache.

All rooms of a playthrough are kept in a single record of the injected
PersistentStore:

    {"version": 1, "story_seed": 42, "rooms": {"room_3_4": {...}}, "timestamp": ...}

A record written by another schema version or another story seed, or older
than the configured TTL, is treated as empty. At most `max_rooms` rooms are
kept; when there are more, the rooms with the highest numbers in their ids
win. If the store runs out of space the record is dropped and only the room
being saved is written; if even that fails the room simply stays in memory.
"""

import re
import sys
import time
from typing import Callable, Dict, List, Optional, Tuple

from pydantic import BaseModel, ValidationError

from .config import CacheConfig
from .event_system import Event, EventBus
from .room import Room
from .storage import PersistentStore, StorageResult

_DIGITS = re.compile(r"\d+")


class RoomCacheError(RuntimeError):
    """Raised when the cache is used before initialize()."""


class CachedRoomData(BaseModel):
    """The persisted cache record."""

    version: int
    story_seed: int
    rooms: Dict[str, Room]
    timestamp: float


def retention_key(room_id: str) -> Tuple[int, ...]:
    """
    Sort key used for eviction: the numbers in the id, in order.

    "room_7" -> (7,), "room_3_4" -> (3, 4). Ids without numbers sort first
    and are evicted first.
    """
    return tuple(int(digits) for digits in _DIGITS.findall(room_id))


class PersistentRoomCache:
    def __init__(
        self,
        store: PersistentStore,
        config: Optional[CacheConfig] = None,
        clock: Callable[[], float] = time.time,
        event_bus: Optional[EventBus] = None,
    ) -> None:
        self.store = store
        self.config = config if config is not None else CacheConfig()
        self.config.validate()
        self.clock = clock
        self.event_bus = event_bus
        self._story_seed: Optional[int] = None

    @property
    def story_seed(self) -> Optional[int]:
        return self._story_seed

    @property
    def is_initialized(self) -> bool:
        return self._story_seed is not None

    def initialize(self, story_seed: int) -> None:
        """Bind the cache to a story seed. Rooms of other seeds become invisible."""
        self._story_seed = story_seed

    def _require_seed(self) -> int:
        if self._story_seed is None:
            raise RoomCacheError("Room cache used before initialize()")
        return self._story_seed

    def _emit(self, event: Event, **kwargs) -> None:
        if self.event_bus is not None:
            self.event_bus.emit(event, **kwargs)

    def _load(self) -> Optional[CachedRoomData]:
        """The stored record, or None if it is missing, unreadable or invalid."""
        story_seed = self._require_seed()

        result = self.store.get(self.config.storage_key)
        if not result.ok:
            print(
                f"[RoomCache] Failed to load cache: {result.error} {result.detail}",
                file=sys.stderr,
            )
            return None
        if result.value is None:
            return None

        try:
            data = CachedRoomData.model_validate_json(result.value)
        except ValidationError as e:
            print(f"[RoomCache] Ignoring corrupt cache: {e.error_count()} errors", file=sys.stderr)
            return None

        if data.version != self.config.version or data.story_seed != story_seed:
            print("[RoomCache] Cache invalid: version or seed mismatch", file=sys.stderr)
            return None

        if self.clock() - data.timestamp > self.config.max_age_seconds:
            print("[RoomCache] Cache expired", file=sys.stderr)
            return None

        return data

    def _fresh(self, rooms: Optional[Dict[str, Room]] = None) -> CachedRoomData:
        return CachedRoomData(
            version=self.config.version,
            story_seed=self._require_seed(),
            rooms=rooms if rooms is not None else {},
            timestamp=self.clock(),
        )

    def _set(self, data: CachedRoomData) -> StorageResult:
        return self.store.set(self.config.storage_key, data.model_dump_json())

    def _write(self, data: CachedRoomData, fallback: Room) -> bool:
        """
        Persist data. On a quota error, clear everything and persist only
        fallback instead.
        """
        result = self._set(data)
        if result.ok:
            return True

        if not result.quota_exceeded:
            print(
                f"[RoomCache] Failed to save cache: {result.error} {result.detail}",
                file=sys.stderr,
            )
            return False

        print("[RoomCache] Storage quota exceeded, clearing cache and retrying", file=sys.stderr)
        self.clear()
        retry = self._set(self._fresh({fallback.id: fallback}))
        if not retry.ok:
            print(
                f"[RoomCache] Retry failed, {fallback.id} stays in memory only: {retry.error}",
                file=sys.stderr,
            )
            return False
        return True

    def _enforce_retention(self, rooms: Dict[str, Room]) -> Dict[str, Room]:
        if len(rooms) <= self.config.max_rooms:
            return rooms
        keep = set(sorted(rooms, key=retention_key)[-self.config.max_rooms:])
        return {room_id: room for room_id, room in rooms.items() if room_id in keep}

    def get_cached_rooms(self) -> Optional[Dict[str, Room]]:
        """All valid cached rooms, or None on a miss."""
        data = self._load()
        if data is None:
            return None
        print(f"[RoomCache] Loaded {len(data.rooms)} rooms from cache", file=sys.stderr)
        return dict(data.rooms)

    def get_room(self, room_id: str) -> Optional[Room]:
        data = self._load()
        room = data.rooms.get(room_id) if data is not None else None
        self._emit(Event.CACHE_HIT if room is not None else Event.CACHE_MISS, room_id=room_id)
        return room

    def save_room(self, room: Room) -> bool:
        """
        Merge one room into the cache.

        Returns:
            True if the room was persisted, False if it only lives in memory
        """
        data = self._load() or self._fresh()
        rooms = dict(data.rooms)
        rooms[room.id] = room
        data = self._fresh(self._enforce_retention(rooms))

        persisted = self._write(data, fallback=room)
        self._emit(Event.ROOM_CACHED, room_id=room.id, persisted=persisted)
        return persisted

    def save_rooms(self, rooms: Dict[str, Room]) -> bool:
        """
        Replace the cache with rooms, keeping only the most recently
        inserted `max_rooms` of them.
        """
        self._require_seed()
        if not rooms:
            return self._set(self._fresh()).ok

        recent: List[Tuple[str, Room]] = list(rooms.items())[-self.config.max_rooms:]
        data = self._fresh(dict(recent))
        return self._write(data, fallback=recent[-1][1])

    def clear(self) -> None:
        result = self.store.remove(self.config.storage_key)
        if not result.ok:
            print(f"[RoomCache] Failed to clear cache: {result.error}", file=sys.stderr)
        self._emit(Event.CACHE_CLEARED)

    def reset(self) -> None:
        """Clear the cache and unbind the seed; initialize() is required again."""
        self.clear()
        self._story_seed = None
