"""The voxel level: chunks of blocks plus the block entities in them."""

from __future__ import annotations

import random
import uuid
from dataclasses import dataclass, field

from dronelevel.block import Block
from dronelevel.drone import Drone
from dronelevel.entity import BlockEntities, CentralTower, IronOre
from dronelevel.item import Item, ItemStack

__all__ = [
    "CHUNK_SIZE",
    "TOTAL_SIZE",
    "LevelStateError",
    "Chunk",
    "BreakCapability",
    "LevelState",
    "break_drops",
]

CHUNK_SIZE = 16
TOTAL_SIZE = CHUNK_SIZE * CHUNK_SIZE * CHUNK_SIZE

_U32_MAX = 2**32 - 1
_ISIZE_MAX = 2**31 - 1


class LevelStateError(ValueError):
    """A level's dimensions or chunk list are inconsistent."""


def _new_blocks() -> list[Block]:
    return [Block.AIR] * TOTAL_SIZE


@dataclass(eq=False)
class Chunk:
    """A cube of CHUNK_SIZE³ blocks, stored y-major, then z, then x."""

    blocks: list[Block] = field(default_factory=_new_blocks)
    dirty: bool = True

    @staticmethod
    def _index(x: int, y: int, z: int) -> int:
        if x < 0 or y < 0 or z < 0:
            raise IndexError(f"negative block coordinate ({x}, {y}, {z})")
        i = (y * CHUNK_SIZE + z) * CHUNK_SIZE + x
        if i >= TOTAL_SIZE:
            raise IndexError(f"block coordinate ({x}, {y}, {z}) out of chunk")
        return i

    def get_block(self, x: int, y: int, z: int) -> Block:
        return self.blocks[self._index(x, y, z)]

    def set_block(self, x: int, y: int, z: int, block: Block) -> None:
        self.blocks[self._index(x, y, z)] = block

    def mark_clean(self) -> None:
        self.dirty = False

    def mark_dirty(self) -> None:
        self.dirty = True


@dataclass
class BreakCapability:
    """How a block is broken: the random source and whether silk touch applies."""

    rng: random.Random
    silk_touch: bool = False


class LevelState:
    """A grid of chunks and the block entities placed in it."""

    def __init__(self, x: int = 0, y: int = 0, z: int = 0) -> None:
        if x == 0 or y == 0 or z == 0:
            x = y = z = 0
        self.chunk_x = x
        self.chunk_y = y
        self.chunk_z = z
        self.chunks: list[Chunk] = [Chunk() for _ in range(x * y * z)]
        self.block_entities = BlockEntities()

    @classmethod
    def empty(cls) -> LevelState:
        return cls()

    @property
    def chunk_size(self) -> tuple[int, int, int]:
        """Number of chunks along x, y and z."""
        return self.chunk_x, self.chunk_y, self.chunk_z

    def validate(self) -> None:
        """Check dimensions, chunk count and inventory slot counts."""
        x, y, z = self.chunk_size
        xy = x * y
        total = xy * z
        if xy > _U32_MAX or total > _U32_MAX or total > _ISIZE_MAX:
            raise LevelStateError(
                f"level dimension is too big (x: {x}, y: {y}, z: {z})"
            )
        if len(self.chunks) > total:
            raise LevelStateError(
                f"chunk vector size mismatch (expected {total}, got {len(self.chunks)})"
            )
        for _, entity in self.block_entities.entries():
            data = entity.data
            if isinstance(data, Drone | CentralTower):
                slots = list(data.inventory)
                if data.capabilities.ext_inventory is not None:
                    slots.extend(data.capabilities.ext_inventory)
                for slot in slots:
                    slot.validate()

    def _chunk_index(self, x: int, y: int, z: int) -> int:
        if not (0 <= x < self.chunk_x and 0 <= y < self.chunk_y and 0 <= z < self.chunk_z):
            raise IndexError(f"chunk coordinate ({x}, {y}, {z}) out of level")
        return (y * self.chunk_z + z) * self.chunk_x + x

    def get_chunk(self, x: int, y: int, z: int) -> Chunk:
        return self.chunks[self._chunk_index(x, y, z)]

    def get_block(self, x: int, y: int, z: int) -> Block:
        chunk = self.get_chunk(x // CHUNK_SIZE, y // CHUNK_SIZE, z // CHUNK_SIZE)
        return chunk.get_block(x % CHUNK_SIZE, y % CHUNK_SIZE, z % CHUNK_SIZE)

    def set_block(self, x: int, y: int, z: int, block: Block) -> None:
        chunk = self.get_chunk(x // CHUNK_SIZE, y // CHUNK_SIZE, z // CHUNK_SIZE)
        chunk.set_block(x % CHUNK_SIZE, y % CHUNK_SIZE, z % CHUNK_SIZE, block)

    def break_block(
        self, x: int, y: int, z: int, cap: BreakCapability
    ) -> list[ItemStack] | None:
        """Break the block, returning its drops, or None if it cannot be broken."""
        result = break_drops(self, x, y, z, cap)
        if result is None:
            return None
        entity_id, drops = result
        self.set_block(x, y, z, Block.AIR)
        if entity_id is not None:
            self.block_entities.remove(entity_id)
        return drops


def break_drops(
    level: LevelState, x: int, y: int, z: int, cap: BreakCapability
) -> tuple[uuid.UUID | None, list[ItemStack]] | None:
    """What breaking a block yields, and the entity that goes with it."""
    block = level.get_block(x, y, z)
    if block is Block.GRASS and cap.silk_touch:
        return None, [ItemStack(Item.GRASS, 1)]
    if block in (Block.DIRT, Block.GRASS):
        return None, [ItemStack(Item.DIRT, 1)]
    if block is Block.IRON_ORE:
        found = next(
            (
                (key, entity)
                for key, entity in level.block_entities.entries()
                if (entity.x, entity.y, entity.z) == (x, y, z)
            ),
            None,
        )
        if found is None or not isinstance(found[1].data, IronOre):
            raise LookupError("iron ore block entity should exist")
        key, entity = found
        quantity = entity.data.quantity
        n = 0 if quantity == 0 else cap.rng.binomialvariate(quantity, 0.8)
        return key, ([ItemStack(Item.IRON_ORE, n)] if n else [])
    return None