"""The starting level: a grass floor, an ore field and four drones."""

from __future__ import annotations

from dronelevel.block import Block
from dronelevel.drone import Drone
from dronelevel.entity import BlockEntity, IronOre
from dronelevel.level import CHUNK_SIZE, LevelState

__all__ = ["generate"]

_LEVEL_CHUNKS = 16


def generate() -> LevelState:
    """Build a fresh 16x16x16-chunk level."""
    level = LevelState(_LEVEL_CHUNKS, _LEVEL_CHUNKS, _LEVEL_CHUNKS)

    floor_layer = CHUNK_SIZE * CHUNK_SIZE
    for chunk in level.chunks[: _LEVEL_CHUNKS * _LEVEL_CHUNKS]:
        chunk.blocks[:floor_layer] = [Block.GRASS] * floor_layer

    for z in range(4, CHUNK_SIZE - 4):
        for x in range(4, CHUNK_SIZE - 4):
            IronOre(quantity=x * z * 1000).place(level, x, 1, z)

    for x, z in ((0, 0), (0, 1), (1, 0), (1, 1)):
        level.block_entities.add(BlockEntity(x, 1, z, Drone()))

    return level