"""
Dungeon Grid Generation Algorithm
=================================

The dungeon is a fixed 9x9 grid of rooms. Generation runs once per story seed.

1. Walk a main path from the start cell (west edge, middle row) to the boss
   cell (east edge, middle row)
   - 70% of steps move toward the boss, 30% wander to any in-bounds neighbor
   - A step that would go straight back to the previous cell is discarded
2. Open paired exits between consecutive main path cells
3. Grow 5-10 short branches sideways off the main path
   - A branch starts at a random interior main path cell
   - Directions are tried in random order, the first one that fits is used
   - A branch that doesn't fit anywhere is simply skipped
4. Assign room types: start and boss are fixed, branch ends become reward
   rooms, some main path cells become safe rooms, some off-path cells become
   puzzle rooms, everything else is a combat room
"""

import re
from dataclasses import dataclass, field
from enum import Enum, auto
from typing import Dict, List, Optional, Tuple

import numpy as np

from .seeded_random import SeededRandom

GRID_SIZE: int = 9

# Room type counts (inclusive ranges)
BRANCH_COUNT_RANGE: Tuple[int, int] = (5, 10)
BRANCH_LENGTH_RANGE: Tuple[int, int] = (2, 4)
REWARD_COUNT_RANGE: Tuple[int, int] = (8, 12)
SAFE_COUNT_RANGE: Tuple[int, int] = (4, 6)
PUZZLE_COUNT_RANGE: Tuple[int, int] = (4, 6)

# Chance that a main path step wanders instead of moving toward the boss
WANDER_CHANCE: float = 0.3

_ROOM_ID_PATTERN = re.compile(r"^room_(\d+)_(\d+)$")


class Direction(Enum):
    """Cardinal directions for grid exits and room connections."""

    NORTH = auto()
    SOUTH = auto()
    EAST = auto()
    WEST = auto()

    def opposite(self) -> "Direction":
        """Returns the opposite direction."""
        opposites = {
            Direction.NORTH: Direction.SOUTH,
            Direction.SOUTH: Direction.NORTH,
            Direction.EAST: Direction.WEST,
            Direction.WEST: Direction.EAST,
        }
        return opposites[self]

    def delta(self) -> Tuple[int, int]:
        """Returns the (dx, dy) offset for moving one cell in this direction."""
        deltas = {
            Direction.NORTH: (0, -1),
            Direction.SOUTH: (0, 1),
            Direction.EAST: (1, 0),
            Direction.WEST: (-1, 0),
        }
        return deltas[self]


# Order in which neighbors are visited everywhere in this package
DIRECTIONS: Tuple[Direction, ...] = (
    Direction.NORTH,
    Direction.SOUTH,
    Direction.EAST,
    Direction.WEST,
)


class RoomType(Enum):
    """The gameplay role of a dungeon cell."""

    START = "start"
    BOSS = "boss"
    SAFE = "safe"
    REWARD = "reward"
    PUZZLE = "puzzle"
    COMBAT = "combat"


@dataclass(frozen=True)
class GridPosition:
    """A cell in the dungeon grid."""

    grid_x: int
    grid_y: int

    def moved(self, direction: Direction) -> "GridPosition":
        """Returns the neighboring position in the given direction (may be out of bounds)."""
        dx, dy = direction.delta()
        return GridPosition(grid_x=self.grid_x + dx, grid_y=self.grid_y + dy)

    def in_bounds(self, size: int = GRID_SIZE) -> bool:
        return 0 <= self.grid_x < size and 0 <= self.grid_y < size


@dataclass
class RoomExits:
    """Which sides of a cell have a passage to the neighboring cell."""

    north: bool = False
    south: bool = False
    east: bool = False
    west: bool = False

    def is_open(self, direction: Direction) -> bool:
        checks = {
            Direction.NORTH: self.north,
            Direction.SOUTH: self.south,
            Direction.EAST: self.east,
            Direction.WEST: self.west,
        }
        return checks[direction]

    def open(self, direction: Direction) -> None:
        if direction == Direction.NORTH:
            self.north = True
        elif direction == Direction.SOUTH:
            self.south = True
        elif direction == Direction.EAST:
            self.east = True
        else:
            self.west = True

    def count(self) -> int:
        return sum(1 for direction in DIRECTIONS if self.is_open(direction))

    def any(self) -> bool:
        return self.count() > 0


@dataclass
class DungeonCell:
    """One room slot of the dungeon grid."""

    grid_x: int
    grid_y: int
    room_type: RoomType = RoomType.COMBAT
    exits: RoomExits = field(default_factory=RoomExits)
    is_on_main_path: bool = False
    # Index along the generation order; None if the cell was never reached
    distance_from_start: Optional[int] = None

    @property
    def position(self) -> GridPosition:
        return GridPosition(grid_x=self.grid_x, grid_y=self.grid_y)

    @property
    def room_id(self) -> str:
        return room_id_from_grid(self.grid_x, self.grid_y)

    @property
    def is_accessible(self) -> bool:
        return self.exits.any()


@dataclass
class DungeonGrid:
    """The full dungeon topology. Read-only once generated."""

    size: int
    cells: List[List[DungeonCell]]  # indexed [grid_y][grid_x]
    start_position: GridPosition
    boss_position: GridPosition
    main_path: List[GridPosition] = field(default_factory=list)

    def cell_at(self, position: GridPosition) -> DungeonCell:
        if not position.in_bounds(self.size):
            raise ValueError(f"Position {position} is outside the {self.size}x{self.size} grid")
        return self.cells[position.grid_y][position.grid_x]

    def adjacent_cell(
        self, position: GridPosition, direction: Direction
    ) -> Optional[DungeonCell]:
        return get_adjacent_cell(self, position, direction)

    def open_neighbors(self, position: GridPosition) -> List[Tuple[Direction, DungeonCell]]:
        """Neighbors reachable through an open exit of the cell at position."""
        cell = self.cell_at(position)
        neighbors: List[Tuple[Direction, DungeonCell]] = []
        for direction in DIRECTIONS:
            if not cell.exits.is_open(direction):
                continue
            neighbor = get_adjacent_cell(self, position, direction)
            if neighbor is not None:
                neighbors.append((direction, neighbor))
        return neighbors

    def accessible_mask(self) -> np.ndarray:
        """Boolean array [grid_y, grid_x] of cells that have at least one exit."""
        mask = np.zeros((self.size, self.size), dtype=bool)
        for row in self.cells:
            for cell in row:
                mask[cell.grid_y, cell.grid_x] = cell.is_accessible
        return mask

    def cells_of_type(self, room_type: RoomType) -> List[DungeonCell]:
        return [cell for row in self.cells for cell in row if cell.room_type == room_type]


def room_id_from_grid(grid_x: int, grid_y: int) -> str:
    """Returns the room id for a grid cell."""
    return f"room_{grid_x}_{grid_y}"


def grid_from_room_id(room_id: str) -> Optional[GridPosition]:
    """Parses a grid room id; returns None for ids that aren't grid ids."""
    match = _ROOM_ID_PATTERN.match(room_id)
    if match is None:
        return None
    return GridPosition(grid_x=int(match.group(1)), grid_y=int(match.group(2)))


def manhattan_distance(first: GridPosition, second: GridPosition) -> int:
    return abs(first.grid_x - second.grid_x) + abs(first.grid_y - second.grid_y)


def get_adjacent_cell(
    grid: DungeonGrid, position: GridPosition, direction: Direction
) -> Optional[DungeonCell]:
    """Returns the neighbor cell in a direction, or None at the grid edge."""
    neighbor = position.moved(direction)
    if not neighbor.in_bounds(grid.size):
        return None
    return grid.cells[neighbor.grid_y][neighbor.grid_x]


def _direction_between(source: GridPosition, target: GridPosition) -> Direction:
    """Direction of a single orthogonal step from source to target."""
    if target.grid_x > source.grid_x:
        return Direction.EAST
    if target.grid_x < source.grid_x:
        return Direction.WEST
    if target.grid_y > source.grid_y:
        return Direction.SOUTH
    return Direction.NORTH


def _connect_cells(
    cells: List[List[DungeonCell]], source: GridPosition, target: GridPosition
) -> None:
    """Open the paired exits between two orthogonally adjacent cells."""
    direction = _direction_between(source, target)
    cells[source.grid_y][source.grid_x].exits.open(direction)
    cells[target.grid_y][target.grid_x].exits.open(direction.opposite())


def _generate_main_path(
    start: GridPosition,
    end: GridPosition,
    grid_size: int,
    random: SeededRandom,
) -> List[GridPosition]:
    """Biased random walk from start to end."""
    path: List[GridPosition] = [start]
    current = start

    while current != end:
        # Moves that shrink the distance to the goal
        goal_moves: List[GridPosition] = []
        if current.grid_x < end.grid_x:
            goal_moves.append(current.moved(Direction.EAST))
        if current.grid_x > end.grid_x:
            goal_moves.append(current.moved(Direction.WEST))
        if current.grid_y < end.grid_y:
            goal_moves.append(current.moved(Direction.SOUTH))
        if current.grid_y > end.grid_y:
            goal_moves.append(current.moved(Direction.NORTH))

        if goal_moves and random.next() > WANDER_CHANCE:
            move = goal_moves[random.next_int(0, len(goal_moves) - 1)]
        else:
            all_moves = [
                current.moved(direction)
                for direction in (Direction.EAST, Direction.WEST, Direction.SOUTH, Direction.NORTH)
                if current.moved(direction).in_bounds(grid_size)
            ]
            move = all_moves[random.next_int(0, len(all_moves) - 1)]

        # Never step straight back to where we just came from
        if len(path) >= 2 and move == path[-2]:
            continue

        current = move
        path.append(current)

    return path


def _generate_branch(
    cells: List[List[DungeonCell]],
    main_path: List[GridPosition],
    grid_size: int,
    random: SeededRandom,
) -> bool:
    """
    Try to grow one branch off the main path.

    Returns True if a branch was connected, False if no direction fit.
    """
    branch_start = main_path[random.next_int(1, len(main_path) - 2)]

    for direction in random.shuffle(DIRECTIONS):
        branch_length = random.next_int(*BRANCH_LENGTH_RANGE)
        branch_cells: List[GridPosition] = []
        current = branch_start
        valid = True

        for _ in range(branch_length):
            step = current.moved(direction)
            if not step.in_bounds(grid_size) or cells[step.grid_y][step.grid_x].is_on_main_path:
                valid = False
                break
            branch_cells.append(step)
            current = step

        if valid and branch_cells:
            previous = branch_start
            for position in branch_cells:
                _connect_cells(cells, previous, position)
                previous_distance = cells[previous.grid_y][previous.grid_x].distance_from_start
                cells[position.grid_y][position.grid_x].distance_from_start = (
                    None if previous_distance is None else previous_distance + 1
                )
                previous = position
            return True

    return False


def _assign_room_types(
    cells: List[List[DungeonCell]],
    start: GridPosition,
    boss: GridPosition,
    random: SeededRandom,
) -> None:
    """Assign start, boss, reward, safe and puzzle rooms; the rest stay combat."""
    accessible = [cell for row in cells for cell in row if cell.is_accessible]

    cells[start.grid_y][start.grid_x].room_type = RoomType.START
    cells[boss.grid_y][boss.grid_x].room_type = RoomType.BOSS

    num_reward = random.next_int(*REWARD_COUNT_RANGE)
    num_safe = random.next_int(*SAFE_COUNT_RANGE)
    num_puzzle = random.next_int(*PUZZLE_COUNT_RANGE)

    available = [
        cell for cell in accessible if cell.position != start and cell.position != boss
    ]
    shuffled = random.shuffle(available)

    # Reward rooms: dead ends off the main path
    branch_ends = [
        cell for cell in shuffled if cell.exits.count() == 1 and not cell.is_on_main_path
    ]
    for cell in branch_ends[:num_reward]:
        cell.room_type = RoomType.REWARD

    # Safe rooms: rest stops spread along the main path
    main_path_cells = sorted(
        (cell for cell in shuffled if cell.is_on_main_path),
        key=lambda cell: cell.distance_from_start or 0,
    )
    safe_interval = len(main_path_cells) // (num_safe + 1)
    if safe_interval > 0:
        for i in range(1, num_safe + 1):
            if i * safe_interval >= len(main_path_cells):
                break
            main_path_cells[i * safe_interval].room_type = RoomType.SAFE

    # Puzzle rooms: remaining off-path cells
    puzzle_candidates = [
        cell for cell in shuffled if cell.room_type == RoomType.COMBAT and not cell.is_on_main_path
    ]
    for cell in puzzle_candidates[:num_puzzle]:
        cell.room_type = RoomType.PUZZLE


def generate_dungeon_grid(seed: int, grid_size: int = GRID_SIZE) -> DungeonGrid:
    """
    Generates the dungeon topology for a story seed.

    Uses the algorithm documented at the top of this file. Generation is total:
    every integer seed yields a grid whose main path joins start and boss.
    """
    random = SeededRandom(seed)

    cells: List[List[DungeonCell]] = [
        [DungeonCell(grid_x=x, grid_y=y) for x in range(grid_size)]
        for y in range(grid_size)
    ]

    mid = grid_size // 2
    start_position = GridPosition(grid_x=0, grid_y=mid)
    boss_position = GridPosition(grid_x=grid_size - 1, grid_y=mid)

    main_path = _generate_main_path(start_position, boss_position, grid_size, random)

    for index, position in enumerate(main_path):
        cell = cells[position.grid_y][position.grid_x]
        cell.is_on_main_path = True
        cell.distance_from_start = index

    for current, following in zip(main_path, main_path[1:]):
        _connect_cells(cells, current, following)

    num_branches = random.next_int(*BRANCH_COUNT_RANGE)
    for _ in range(num_branches):
        _generate_branch(cells, main_path, grid_size, random)

    _assign_room_types(cells, start_position, boss_position, random)

    return DungeonGrid(
        size=grid_size,
        cells=cells,
        start_position=start_position,
        boss_position=boss_position,
        main_path=main_path,
    )


def room_type_counts(grid: DungeonGrid) -> Dict[RoomType, int]:
    """Number of accessible cells of each room type."""
    counts = {room_type: 0 for room_type in RoomType}
    for row in grid.cells:
        for cell in row:
            if cell.is_accessible:
                counts[cell.room_type] += 1
    return counts
