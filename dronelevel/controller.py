"""The level controller: import, export, sanitising, entity events and ticks."""

from __future__ import annotations

import itertools
import random
import uuid
from dataclasses import dataclass

from dronelevel.block import Block
from dronelevel.codec import CodecError, dumps_level, loads_command, loads_level
from dronelevel.drone import Drone, ExecutionContext
from dronelevel.entity import BlockEntity, CentralTower, IronOre
from dronelevel.level import CHUNK_SIZE, TOTAL_SIZE, LevelState
from dronelevel.render import ChunkMesh
from dronelevel.render import render_chunk as _render_chunk
from dronelevel.tick import update

__all__ = [
    "EntityRemoved",
    "IronOreUpdate",
    "DroneUpdate",
    "DroneExec",
    "CentralTowerUpdate",
    "EntityEvent",
    "update_entities",
    "process_to_export",
    "sanitize_imported",
    "LevelController",
]

_TOWER_BLOCKS = tuple(b for b in Block if b.name.startswith("CENTRAL_TOWER_"))
_IMPORT_CENSORED = frozenset({IronOre.BLOCK, *_TOWER_BLOCKS})


@dataclass(frozen=True)
class EntityRemoved:
    entity_id: uuid.UUID


@dataclass(frozen=True)
class IronOreUpdate:
    entity_id: uuid.UUID
    x: int
    y: int
    z: int
    quantity: int


@dataclass(frozen=True)
class DroneUpdate:
    entity_id: uuid.UUID
    x: int
    y: int
    z: int


@dataclass(frozen=True)
class DroneExec:
    """A drone has a program to start."""

    entity_id: uuid.UUID
    exec: ExecutionContext


@dataclass(frozen=True)
class CentralTowerUpdate:
    """A central tower has a program to start."""

    entity_id: uuid.UUID
    x: int
    y: int
    z: int
    exec: ExecutionContext


EntityEvent = EntityRemoved | IronOreUpdate | DroneUpdate | DroneExec | CentralTowerUpdate


def update_entities(level: LevelState) -> list[EntityEvent]:
    """Report removed and changed entities, marking them clean.

    Pending programs of drones and towers are handed over and cleared.
    """
    events: list[EntityEvent] = [
        EntityRemoved(key) for key in level.block_entities.pop_removed()
    ]
    for key, entity in level.block_entities.entries():
        if not entity.dirty:
            continue
        entity.mark_clean()
        data = entity.data
        pos = (entity.x, entity.y, entity.z)
        if isinstance(data, IronOre):
            events.append(IronOreUpdate(key, *pos, data.quantity))
        elif isinstance(data, Drone):
            events.append(DroneUpdate(key, *pos))
            if data.exec is not None:
                events.append(DroneExec(key, data.exec))
                data.exec = None
        elif isinstance(data, CentralTower):
            if data.exec is not None:
                events.append(CentralTowerUpdate(key, *pos, data.exec))
                data.exec = None
    return events


def process_to_export(dst: LevelState, src: LevelState) -> None:
    """Fill ``dst`` with a censored view of ``src``.

    Every block becomes UNKNOWN; only drones and towers are kept, without
    their commands or programs.
    """
    for chunk in dst.chunks:
        chunk.blocks[:] = [Block.UNKNOWN] * TOTAL_SIZE

    def censor(_key: uuid.UUID, entity: BlockEntity) -> BlockEntity | None:
        data = entity.data
        if isinstance(data, Drone | CentralTower):
            return BlockEntity(entity.x, entity.y, entity.z, data.clone_censored())
        return None

    dst.block_entities.clone_from_filtered(src.block_entities, censor)


@dataclass
class _Setter:
    x: int
    y: int
    z: int
    index: int
    block: Block | None

    @property
    def coord(self) -> tuple[int, int, int]:
        return self.x, self.y, self.z


def sanitize_imported(level: LevelState) -> None:
    """Make blocks agree with the entities of an imported level.

    Ore and tower blocks not backed by an entity become UNKNOWN; entity
    blocks are placed; entities that collide with another are removed.
    """
    for chunk in level.chunks:
        chunk.blocks[:] = [
            Block.UNKNOWN if b in _IMPORT_CENSORED else b for b in chunk.blocks
        ]

    sx, sy, sz = level.chunk_size

    def inside(x: int, y: int, z: int) -> bool:
        return (
            x >= 0
            and y >= 0
            and z >= 0
            and x // CHUNK_SIZE < sx
            and y // CHUNK_SIZE < sy
            and z // CHUNK_SIZE < sz
        )

    ids: list[uuid.UUID] = []
    valid: list[bool] = []
    setters: list[_Setter] = []
    for key, entity in level.block_entities.entries():
        x, y, z = entity.x, entity.y, entity.z
        index = len(ids)
        ids.append(key)
        if not inside(x, y, z):
            valid.append(False)
            continue
        data = entity.data
        if isinstance(data, IronOre):
            setters.append(_Setter(x, y, z, index, IronOre.BLOCK))
        elif isinstance(data, Drone):
            setters.append(_Setter(x, y, z, index, None))
        elif isinstance(data, CentralTower):
            for block in _TOWER_BLOCKS:
                dx, dy, dz = CentralTower.get_central_block_offset(block)
                bx, by, bz = x + dx, y + dy, z + dz
                if inside(bx, by, bz):
                    setters.append(_Setter(bx, by, bz, index, block))
        else:
            setters.append(_Setter(x, y, z, index, Block.UNKNOWN))
        valid.append(True)

    def order(s: _Setter) -> tuple:
        block_key = (0, -int(s.block)) if s.block is not None else (1, 0)
        return (s.x, s.y, s.z, block_key, ids[s.index])

    setters.sort(key=order)

    for prev, cur in itertools.pairwise(setters):
        if prev.coord == cur.coord:
            valid[cur.index] = False

    for setter in setters:
        if not valid[setter.index]:
            level.block_entities.remove(ids[setter.index])
        elif setter.block is not None:
            level.set_block(setter.x, setter.y, setter.z, setter.block)

    level.block_entities.pop_removed()


class LevelController:
    """Owns the live level and the censored copy handed out to players."""

    def __init__(self, seed: int | None = None) -> None:
        self._seed = seed
        self._rng: random.Random | None = None
        self.level = LevelState()
        self.processed = LevelState()

    @property
    def rng(self) -> random.Random:
        if self._rng is None:
            self._rng = random.Random(self._seed)
        return self._rng

    @property
    def chunk_size(self) -> tuple[int, int, int]:
        return self.level.chunk_size

    def init(self, x: int, y: int, z: int) -> None:
        """Start over with an empty level of the given size in chunks."""
        self.level = LevelState(x, y, z)
        self.processed = LevelState(x, y, z)
        self._rng = None

    def import_level(self, data: bytes) -> None:
        """Load an encoded level and sanitise it. Raises CodecError on bad data."""
        level = loads_level(data)
        self.level = level
        self.processed = LevelState(*level.chunk_size)
        self._rng = None
        sanitize_imported(level)

    def export(self) -> bytes:
        return dumps_level(self.level)

    def export_censored(self) -> bytes:
        """Encode the censored view of the level."""
        process_to_export(self.processed, self.level)
        return dumps_level(self.processed)

    def render_chunk(self, x: int, y: int, z: int) -> ChunkMesh:
        return _render_chunk(self.level, x, y, z)

    def entity_update(self) -> list[EntityEvent]:
        return update_entities(self.level)

    def set_command(self, uuid: uuid.UUID, data: bytes) -> bool:
        """Give a drone its next command; return whether it was accepted."""
        entity = self.level.block_entities.get(uuid)
        if entity is None or not isinstance(entity.data, Drone):
            return False
        try:
            command = loads_command(data)
        except CodecError:
            return False
        entity.data.command = command
        return True

    def tick(self) -> None:
        update(self.level, self.rng)