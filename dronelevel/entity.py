"""Block entities: blocks or actors that carry extra state."""

from __future__ import annotations

import copy
import uuid
from collections.abc import Callable, Iterator
from dataclasses import dataclass, field
from typing import TYPE_CHECKING, ClassVar

from dronelevel.block import Block
from dronelevel.drone import (
    INVENTORY_SIZE,
    Command,
    Drone,
    DroneCapability,
    ExecutionContext,
    Noop,
)
from dronelevel.item import ItemSlot

if TYPE_CHECKING:
    from dronelevel.level import LevelState

__all__ = [
    "IronOre",
    "CentralTower",
    "BlockEntityData",
    "BlockEntity",
    "BlockEntities",
]


@dataclass
class IronOre:
    """An ore deposit with a finite quantity."""

    BLOCK: ClassVar[Block] = Block.IRON_ORE

    quantity: int = 0

    def place(self, level: LevelState, x: int, y: int, z: int) -> uuid.UUID:
        """Put the ore block and its entity into the level."""
        return BlockEntity(x, y, z, self).place(level, self.BLOCK)


_TOWER_OFFSETS: dict[Block, tuple[int, int, int]] = {
    Block.CENTRAL_TOWER_000: (-1, 0, -1),
    Block.CENTRAL_TOWER_001: (-1, 0, 0),
    Block.CENTRAL_TOWER_002: (-1, 0, 1),
    Block.CENTRAL_TOWER_010: (0, 0, -1),
    Block.CENTRAL_TOWER_011: (0, 0, 0),
    Block.CENTRAL_TOWER_012: (0, 0, 1),
    Block.CENTRAL_TOWER_020: (1, 0, -1),
    Block.CENTRAL_TOWER_021: (1, 0, 0),
    Block.CENTRAL_TOWER_022: (1, 0, 1),
    Block.CENTRAL_TOWER_100: (-1, 1, -1),
    Block.CENTRAL_TOWER_101: (-1, 1, 0),
    Block.CENTRAL_TOWER_102: (-1, 1, 1),
    Block.CENTRAL_TOWER_110: (0, 1, -1),
    Block.CENTRAL_TOWER_111: (0, 1, 0),
    Block.CENTRAL_TOWER_112: (0, 1, 1),
    Block.CENTRAL_TOWER_120: (1, 1, -1),
    Block.CENTRAL_TOWER_121: (1, 1, 0),
    Block.CENTRAL_TOWER_122: (1, 1, 1),
    Block.CENTRAL_TOWER_200: (-1, 2, -1),
    Block.CENTRAL_TOWER_201: (-1, 2, 0),
    Block.CENTRAL_TOWER_202: (-1, 2, 1),
    Block.CENTRAL_TOWER_210: (0, 2, -1),
    Block.CENTRAL_TOWER_211: (0, 2, 0),
    Block.CENTRAL_TOWER_212: (0, 2, 1),
    Block.CENTRAL_TOWER_220: (1, 2, -1),
    Block.CENTRAL_TOWER_221: (1, 2, 0),
    Block.CENTRAL_TOWER_222: (1, 2, 1),
}


def _new_inventory() -> list[ItemSlot]:
    return [ItemSlot() for _ in range(INVENTORY_SIZE)]


@dataclass
class CentralTower:
    """The 3x3x3 base structure that can run programs and summon drones."""

    command: Command = field(default_factory=Noop)
    is_command_valid: bool = True
    capabilities: DroneCapability = field(default_factory=DroneCapability)
    inventory: list[ItemSlot] = field(default_factory=_new_inventory)
    exec: ExecutionContext | None = None

    def clone_censored(self) -> CentralTower:
        """A copy without the pending command and execution context."""
        return CentralTower(
            command=Noop(),
            is_command_valid=self.is_command_valid,
            capabilities=copy.deepcopy(self.capabilities),
            inventory=copy.deepcopy(self.inventory),
            exec=None,
        )

    @staticmethod
    def get_central_block_offset(block: Block) -> tuple[int, int, int] | None:
        """Offset of a tower part from the tower's origin, or None."""
        return _TOWER_OFFSETS.get(block)


BlockEntityData = IronOre | Drone | CentralTower


@dataclass
class BlockEntity:
    """An entity located at a block position."""

    x: int
    y: int
    z: int
    data: BlockEntityData
    dirty: bool = True

    def mark_clean(self) -> None:
        self.dirty = False

    def mark_dirty(self) -> None:
        self.dirty = True

    def place(self, level: LevelState, block: Block) -> uuid.UUID:
        """Set ``block`` at this entity's position and add the entity."""
        level.set_block(self.x, self.y, self.z, block)
        return level.block_entities.add(self)


def _fresh_clone(entity: BlockEntity) -> BlockEntity:
    return BlockEntity(entity.x, entity.y, entity.z, copy.deepcopy(entity.data))


class BlockEntities:
    """Block entities keyed by UUID, remembering removed ids until drained."""

    def __init__(self) -> None:
        self._data: dict[uuid.UUID, BlockEntity] = {}
        self._grave: set[uuid.UUID] = set()

    def __len__(self) -> int:
        return len(self._data)

    def __contains__(self, key: object) -> bool:
        return key in self._data

    def __iter__(self) -> Iterator[uuid.UUID]:
        return iter(self._data)

    def add(self, entity: BlockEntity) -> uuid.UUID:
        """Add an entity under a fresh id that was never removed; return it."""
        while True:
            key = uuid.uuid4()
            if key not in self._data and key not in self._grave:
                break
        self._data[key] = entity
        return key

    def remove(self, uuid: uuid.UUID) -> BlockEntity | None:
        """Remove and return the entity, recording its id as removed."""
        entity = self._data.pop(uuid, None)
        if entity is not None:
            self._grave.add(uuid)
        return entity

    def remove_if(
        self, predicate: Callable[[uuid.UUID, BlockEntity], bool]
    ) -> None:
        """Remove every entity for which ``predicate(id, entity)`` holds."""
        doomed = [k for k, v in self._data.items() if predicate(k, v)]
        for key in doomed:
            del self._data[key]
        self._grave.update(doomed)

    def clear_grave(self) -> None:
        self._grave.clear()

    def pop_removed(self) -> list[uuid.UUID]:
        """Return and forget the ids removed since the last call."""
        removed = list(self._grave)
        self._grave.clear()
        return removed

    def get(self, uuid: uuid.UUID) -> BlockEntity | None:
        return self._data.get(uuid)

    def entries(self) -> Iterator[tuple[uuid.UUID, BlockEntity]]:
        return iter(self._data.items())

    def keys(self) -> Iterator[uuid.UUID]:
        return iter(self._data.keys())

    def copy(self) -> BlockEntities:
        """A deep copy with every entity dirty and no removed ids."""
        other = BlockEntities()
        other._data = {k: _fresh_clone(v) for k, v in self._data.items()}
        return other

    def clone_from_filtered(
        self,
        src: BlockEntities,
        transform: Callable[[uuid.UUID, BlockEntity], BlockEntity | None],
    ) -> None:
        """Replace the contents with the non-None results of ``transform``."""
        self._data = {
            key: result
            for key, entity in src.entries()
            if (result := transform(key, entity)) is not None
        }