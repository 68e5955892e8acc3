"""
Live room residency and in-flight generation tracking.

RoomCacheManager answers three questions as the player moves through the
dungeon grid:

- which rooms must be resident (the current room and every neighbor behind
  an open exit),
- which resident rooms can be dropped (anything further than one step that
  isn't a neighbor),
- which neighbors still need a background prefetch.

It also owns the registry of rooms being generated right now, so that two
requests for the same room share one generation instead of racing.
"""

import asyncio
from typing import Awaitable, Callable, Dict, Iterable, List, Set, TypeVar

from .dungeon_gen import (
    DungeonGrid,
    GridPosition,
    grid_from_room_id,
    manhattan_distance,
    room_id_from_grid,
)

T = TypeVar("T")


class RoomCacheManager:
    def __init__(self) -> None:
        self._loaded_rooms: Set[str] = set()
        self._generation_queue: Set[str] = set()
        self._in_flight: Dict[str, "asyncio.Task"] = {}

    def _neighbor_ids(self, position: GridPosition, grid: DungeonGrid) -> List[str]:
        return [cell.room_id for _, cell in grid.open_neighbors(position)]

    def get_rooms_to_load(
        self, position: GridPosition, grid: DungeonGrid, existing_rooms: Iterable[str]
    ) -> List[str]:
        """The current room and its open-exit neighbors that aren't resident yet."""
        existing = set(existing_rooms)
        wanted = [room_id_from_grid(position.grid_x, position.grid_y)]
        wanted.extend(self._neighbor_ids(position, grid))
        return [room_id for room_id in wanted if room_id not in existing]

    def get_rooms_to_unload(
        self, position: GridPosition, grid: DungeonGrid, existing_rooms: Iterable[str]
    ) -> List[str]:
        """
        Resident rooms more than one step away that aren't open-exit neighbors.

        Ids that don't name a grid cell are never unloaded.
        """
        keep = {room_id_from_grid(position.grid_x, position.grid_y)}
        keep.update(self._neighbor_ids(position, grid))

        to_unload: List[str] = []
        for room_id in existing_rooms:
            if room_id in keep:
                continue
            room_position = grid_from_room_id(room_id)
            if room_position is not None and manhattan_distance(position, room_position) > 1:
                to_unload.append(room_id)
        return to_unload

    def preload_adjacent_rooms(
        self, position: GridPosition, grid: DungeonGrid, existing_rooms: Iterable[str]
    ) -> List[GridPosition]:
        """
        Open-exit neighbors that are neither resident nor already queued.

        The returned rooms are added to the generation queue; call
        remove_from_queue() once each one is done.
        """
        existing = set(existing_rooms)
        to_preload: List[GridPosition] = []
        for _, cell in grid.open_neighbors(position):
            room_id = cell.room_id
            if room_id in existing or room_id in self._generation_queue:
                continue
            to_preload.append(cell.position)
            self._generation_queue.add(room_id)
        return to_preload

    def mark_room_loaded(self, room_id: str) -> None:
        self._loaded_rooms.add(room_id)

    def mark_room_unloaded(self, room_id: str) -> None:
        self._loaded_rooms.discard(room_id)

    def is_room_loaded(self, room_id: str) -> bool:
        return room_id in self._loaded_rooms

    def get_loaded_rooms(self) -> List[str]:
        return sorted(self._loaded_rooms)

    def is_queued(self, room_id: str) -> bool:
        return room_id in self._generation_queue

    def remove_from_queue(self, room_id: str) -> None:
        self._generation_queue.discard(room_id)

    def clear_cache(self) -> None:
        """Forget loaded and queued rooms. In-flight generations keep running."""
        self._loaded_rooms.clear()
        self._generation_queue.clear()

    def is_in_flight(self, room_id: str) -> bool:
        return room_id in self._in_flight

    def in_flight_ids(self) -> List[str]:
        return sorted(self._in_flight)

    def in_flight_tasks(self) -> List["asyncio.Task"]:
        return list(self._in_flight.values())

    async def get_or_generate(
        self, room_id: str, factory: Callable[[], Awaitable[T]]
    ) -> T:
        """
        Run factory() for room_id unless a generation for it is already in
        flight, in which case wait for that one instead.

        The generation runs as its own task: cancelling a caller stops the
        caller's wait but never the generation. The registry entry is removed
        as soon as the generation finishes, whether it succeeded or failed.
        """
        task = self._in_flight.get(room_id)
        if task is None:
            task = asyncio.ensure_future(factory())
            self._in_flight[room_id] = task
            task.add_done_callback(lambda done, key=room_id: self._forget(key, done))
        return await asyncio.shield(task)

    def _forget(self, room_id: str, task: "asyncio.Task") -> None:
        if self._in_flight.get(room_id) is task:
            del self._in_flight[room_id]
        # Nobody may be awaiting a failed generation anymore; mark its error as seen
        if not task.cancelled():
            task.exception()
