"""
Room content population.

Given a finished tile map and the room's type, places the interactive objects
of the room along its corridor:

- Enemies in combat, reward and puzzle rooms, kept away from the spawn point
- Loot in reward, puzzle and combat rooms
- One-off objects per room type: a guide at the start, a shrine and a
  friendly face in safe rooms, a mechanism in puzzle rooms, the boss

Counts, levels and item strength grow with the map number (1-4). Everything
is drawn from the SeededRandom handed in, so the same room always gets the
same objects.
"""

from dataclasses import dataclass, field
from enum import Enum
from typing import Callable, Dict, List, Optional, Tuple

from .dungeon_gen import RoomType
from .map_gen import Point, TileMap, is_position_walkable, tile_center
from .pathfinding import nearest_walkable
from .seeded_random import SeededRandom

MAX_ENEMIES: int = 8
# Enemies never spawn within this Manhattan distance (pixels) of the spawn point
SPAWN_CLEARANCE: int = 150
# Objects are nudged up to half this many pixels off their path point
POSITION_JITTER: int = 60
GUIDE_OFFSET_X: int = 100
SHRINE_HEAL_AMOUNT: int = 999

ENEMY_SPRITES: List[str] = ["👹", "👻", "🧟", "🐺", "🦇", "🕷️", "🐍"]
NPC_SPRITES: List[str] = ["👨", "👩", "🧙", "🧙‍♀️", "🧝", "🧝‍♀️", "👴", "👵"]
ITEM_SPRITES: List[str] = ["📦", "💎", "🗝️", "💰", "⚗️", "📜", "🍖", "🛡️"]

MAP_NAMES: Dict[int, str] = {
    1: "Mystic Forest",
    2: "Scorched Plains",
    3: "Shadow Caverns",
}
FINAL_MAP_NAME: str = "Ancient Ruins"


class EffectType(Enum):
    HEAL = "heal"
    MANA = "mana"
    DAMAGE_BOOST = "damage_boost"
    DEFENSE_BOOST = "defense_boost"


class ItemType(Enum):
    CONSUMABLE = "consumable"
    EQUIPMENT = "equipment"
    KEY_ITEM = "key_item"


class ObjectType(Enum):
    """Kinds of interactive objects a room can hold."""

    ENEMY = "enemy"
    NPC = "npc"
    ITEM = "item"
    SHRINE = "shrine"
    PUZZLE_ELEMENT = "puzzle_element"
    BOSS = "boss"


@dataclass
class ItemEffect:
    type: EffectType
    value: int


@dataclass
class Item:
    id: str
    name: str
    type: ItemType
    sprite: str
    description: str
    effect: Optional[ItemEffect] = None


@dataclass
class PuzzleData:
    id: str
    solved: bool
    reward_item: Item


@dataclass
class GameObject:
    """
    An interactive object placed in a room.

    Placement (position, type, level) is fixed at generation time; gameplay
    only changes the interaction state.
    """

    id: str
    position: Point
    type: ObjectType
    sprite: str
    interaction_text: str
    has_interacted: bool = False
    enemy_level: Optional[int] = None
    item_drop: Optional[Item] = None
    puzzle_data: Optional[PuzzleData] = None
    heal_amount: Optional[int] = None
    sprite_url: Optional[str] = None
    interaction_history: List[str] = field(default_factory=list)

    def record_interaction(self, text: str) -> None:
        self.has_interacted = True
        self.interaction_history.append(text)


def map_name(map_number: int) -> str:
    return MAP_NAMES.get(map_number, FINAL_MAP_NAME)


def drop_chance(map_number: int) -> float:
    """Chance that a defeated enemy drops an item; always below 1."""
    return min(0.3 + map_number * 0.1, 0.95)


def roll_item(map_number: int, random: SeededRandom, owner_id: str) -> Item:
    """Picks one item from the loot table, scaled to the map number."""
    heal = 20 + map_number * 10
    mana = 15 + map_number * 10
    damage = 3 + map_number * 2
    defense = 2 + map_number * 2

    table = [
        Item(
            id=f"health_potion_{owner_id}",
            name="Health Potion",
            type=ItemType.CONSUMABLE,
            sprite="⚗️",
            description=f"Restores {heal} HP",
            effect=ItemEffect(EffectType.HEAL, heal),
        ),
        Item(
            id=f"mana_potion_{owner_id}",
            name="Mana Potion",
            type=ItemType.CONSUMABLE,
            sprite="🔮",
            description=f"Restores {mana} Mana",
            effect=ItemEffect(EffectType.MANA, mana),
        ),
        Item(
            id=f"strength_charm_{owner_id}",
            name="Greater Strength Charm" if map_number > 2 else "Strength Charm",
            type=ItemType.EQUIPMENT,
            sprite="💎",
            description=f"Increases damage by {damage}",
            effect=ItemEffect(EffectType.DAMAGE_BOOST, damage),
        ),
        Item(
            id=f"iron_ring_{owner_id}",
            name="Steel Ring" if map_number > 2 else "Iron Ring",
            type=ItemType.EQUIPMENT,
            sprite="💍",
            description=f"Increases defense by {defense}",
            effect=ItemEffect(EffectType.DEFENSE_BOOST, defense),
        ),
    ]
    return random.choice(table)


def generate_random_item(
    map_number: int, random: SeededRandom, owner_id: str
) -> Optional[Item]:
    """Rolls for an enemy drop; None when the drop roll fails."""
    if random.next() > drop_chance(map_number):
        return None
    return roll_item(map_number, random, owner_id)


def _jittered(point: Point, random: SeededRandom) -> Point:
    offset_x = (random.next() - 0.5) * POSITION_JITTER
    offset_y = (random.next() - 0.5) * POSITION_JITTER
    return Point(x=point.x + offset_x, y=point.y + offset_y)


def _snap_to_walkable(tile_map: TileMap, point: Point) -> Point:
    if is_position_walkable(tile_map, point.x, point.y):
        return point
    tile_x, tile_y = point.to_tile(tile_map.tile_size)
    nearest = nearest_walkable(tile_map.walkable_mask(), tile_y, tile_x)
    if nearest is None:
        return point
    row, col = nearest
    return tile_center(col, row, tile_map.tile_size)


# (min, max) enemy counts; None means "scale with the map number"
_ENEMY_RANGES: Dict[RoomType, Optional[Tuple[int, int]]] = {
    RoomType.START: (0, 0),
    RoomType.SAFE: (0, 0),
    RoomType.BOSS: (0, 0),
    RoomType.REWARD: (1, 2),
    RoomType.PUZZLE: (1, 3),
    RoomType.COMBAT: None,
}

_ITEM_RANGES: Dict[RoomType, Tuple[int, int]] = {
    RoomType.START: (0, 0),
    RoomType.SAFE: (0, 0),
    RoomType.BOSS: (0, 0),
    RoomType.REWARD: (4, 6),
    RoomType.PUZZLE: (2, 3),
    RoomType.COMBAT: (1, 2),
}


def _place_enemies(
    room_key: str,
    tile_map: TileMap,
    room_type: RoomType,
    map_number: int,
    random: SeededRandom,
) -> List[GameObject]:
    count_range = _ENEMY_RANGES[room_type]
    if count_range is None:
        count_range = (2 + map_number, 4 + map_number * 2)
    low, high = count_range
    if high == 0:
        return []

    enemy_count = random.next_int(min(low, MAX_ENEMIES), min(high, MAX_ENEMIES))

    spawn = tile_map.spawn_point
    points = [
        point
        for point in tile_map.path_points
        if abs(point.x - spawn.x) + abs(point.y - spawn.y) > SPAWN_CLEARANCE
    ]

    enemies: List[GameObject] = []
    for i in range(min(enemy_count, len(points))):
        point = points[i * len(points) // enemy_count]
        position = _jittered(point, random)
        level = max(1, map_number * 2 + random.next_int(0, 2))
        enemy_id = f"enemy_{room_key}_{i}"
        enemies.append(
            GameObject(
                id=enemy_id,
                position=position,
                type=ObjectType.ENEMY,
                sprite=random.choice(ENEMY_SPRITES),
                interaction_text=f"A hostile creature (Lv {level}) blocks your path!",
                enemy_level=level,
                item_drop=generate_random_item(map_number, random, enemy_id),
            )
        )
    return enemies


def _place_items(
    room_key: str,
    tile_map: TileMap,
    room_type: RoomType,
    map_number: int,
    random: SeededRandom,
) -> List[GameObject]:
    low, high = _ITEM_RANGES[room_type]
    if high == 0:
        return []

    item_count = random.next_int(low, high)
    points = tile_map.path_points

    items: List[GameObject] = []
    for i in range(min(item_count, len(points))):
        point = points[random.next_int(0, len(points) - 1)]
        position = _jittered(point, random)
        item_id = f"item_{room_key}_{i}"
        items.append(
            GameObject(
                id=item_id,
                position=position,
                type=ObjectType.ITEM,
                sprite=random.choice(ITEM_SPRITES),
                interaction_text="A valuable reward!",
                item_drop=roll_item(map_number, random, item_id),
            )
        )
    return items


def _start_objects(
    room_key: str, tile_map: TileMap, map_number: int, random: SeededRandom, npc_text: Optional[str]
) -> List[GameObject]:
    spawn = tile_map.spawn_point
    position = _snap_to_walkable(tile_map, Point(x=spawn.x + GUIDE_OFFSET_X, y=spawn.y))
    return [
        GameObject(
            id=f"npc_guide_{room_key}",
            position=position,
            type=ObjectType.NPC,
            sprite="🧙",
            interaction_text=npc_text or f"Welcome to the {map_name(map_number)}!",
        )
    ]


def _safe_objects(
    room_key: str, tile_map: TileMap, map_number: int, random: SeededRandom, npc_text: Optional[str]
) -> List[GameObject]:
    points = tile_map.path_points
    objects: List[GameObject] = []
    if points:
        center = points[len(points) // 2]
        objects.append(
            GameObject(
                id=f"shrine_{room_key}",
                position=Point(x=center.x, y=center.y),
                type=ObjectType.SHRINE,
                sprite="⛲",
                interaction_text=(
                    "A healing shrine radiates warmth. Press SPACE to restore HP and Mana."
                ),
                heal_amount=SHRINE_HEAL_AMOUNT,
            )
        )
    if len(points) > 1:
        npc_point = points[random.next_int(0, len(points) - 1)]
        objects.append(
            GameObject(
                id=f"npc_{room_key}",
                position=Point(x=npc_point.x, y=npc_point.y),
                type=ObjectType.NPC,
                sprite=random.choice(NPC_SPRITES),
                interaction_text=npc_text or "Rest here, weary traveler. You are safe.",
            )
        )
    return objects


def _puzzle_objects(
    room_key: str, tile_map: TileMap, map_number: int, random: SeededRandom, npc_text: Optional[str]
) -> List[GameObject]:
    if not tile_map.path_points:
        return []
    point = tile_map.path_points[0]
    bonus = 5 + map_number * 3
    puzzle_id = f"puzzle_{room_key}"
    reward = Item(
        id=f"puzzle_reward_{room_key}",
        name=f"Ancient Artifact {map_number}",
        type=ItemType.EQUIPMENT,
        sprite="💎",
        description=f"A powerful relic from solving the puzzle (+{bonus} damage)",
        effect=ItemEffect(EffectType.DAMAGE_BOOST, bonus),
    )
    return [
        GameObject(
            id=puzzle_id,
            position=Point(x=point.x, y=point.y),
            type=ObjectType.PUZZLE_ELEMENT,
            sprite="🗿",
            interaction_text="An ancient mechanism awaits your wisdom. Press SPACE to solve.",
            puzzle_data=PuzzleData(id=puzzle_id, solved=False, reward_item=reward),
        )
    ]


def _boss_objects(
    room_key: str, tile_map: TileMap, map_number: int, random: SeededRandom, npc_text: Optional[str]
) -> List[GameObject]:
    points = tile_map.path_points
    if not points:
        return []
    point = points[len(points) // 2]
    level = 10 + map_number * 5
    return [
        GameObject(
            id=f"boss_{room_key}",
            position=Point(x=point.x, y=point.y),
            type=ObjectType.BOSS,
            sprite="👿",
            interaction_text=f"THE DUNGEON LORD (Lv {level}) - Prepare for battle!",
            enemy_level=level,
            item_drop=Item(
                id=f"legendary_{room_key}",
                name="Legendary Artifact",
                type=ItemType.EQUIPMENT,
                sprite="👑",
                description="The ultimate power",
                effect=ItemEffect(EffectType.DAMAGE_BOOST, 15 + map_number * 5),
            ),
        )
    ]


def _no_objects(
    room_key: str, tile_map: TileMap, map_number: int, random: SeededRandom, npc_text: Optional[str]
) -> List[GameObject]:
    return []


SpecialObjectBuilder = Callable[
    [str, TileMap, int, SeededRandom, Optional[str]], List[GameObject]
]

SPECIAL_OBJECT_BUILDERS: Dict[RoomType, SpecialObjectBuilder] = {
    RoomType.START: _start_objects,
    RoomType.SAFE: _safe_objects,
    RoomType.PUZZLE: _puzzle_objects,
    RoomType.BOSS: _boss_objects,
    RoomType.REWARD: _no_objects,
    RoomType.COMBAT: _no_objects,
}

_missing = set(RoomType) - set(SPECIAL_OBJECT_BUILDERS)
if _missing:
    raise RuntimeError(f"No special object builder for room types: {_missing}")


def populate_room(
    room_key: str,
    tile_map: TileMap,
    room_type: RoomType,
    map_number: int,
    random: SeededRandom,
    npc_text: Optional[str] = None,
) -> List[GameObject]:
    """
    Generate the objects of one room: enemies, then loot, then the room
    type's special objects.

    Args:
        room_key: Unique suffix for object ids (e.g. "3_4")
        tile_map: The room's finished tile map
        room_type: Gameplay role of the room
        map_number: Difficulty tier, 1-4
        random: Content stream for this room
        npc_text: Replaces the default line of the room's friendly NPC
    """
    enemies = _place_enemies(room_key, tile_map, room_type, map_number, random)
    items = _place_items(room_key, tile_map, room_type, map_number, random)
    specials = SPECIAL_OBJECT_BUILDERS[room_type](
        room_key, tile_map, map_number, random, npc_text
    )
    return enemies + items + specials
