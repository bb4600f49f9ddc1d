"""One simulation tick: drone commands, movement and random block updates."""

from __future__ import annotations

import itertools
import logging
import random
import uuid
from dataclasses import dataclass

from dronelevel.block import Block
from dronelevel.commands import (
    CoordMap,
    move_coord,
    run_break_mine_commands,
    run_inventory_commands,
    run_summon_commands,
)
from dronelevel.drone import Drone, DroneCapabilityFlags, Move, Noop
from dronelevel.level import CHUNK_SIZE, LevelState

__all__ = [
    "UPDATE_RATE",
    "run_move_commands",
    "clear_commands",
    "drone_command",
    "scan_block",
    "tick_block",
    "random_tick",
    "update",
]

UPDATE_RATE = 32

_log = logging.getLogger(__name__)

Coord = tuple[int, int, int]


@dataclass
class _Move:
    key: uuid.UUID
    sx: int
    sy: int
    sz: int
    ex: int
    ey: int
    ez: int
    flying: bool
    moving: bool = True

    @property
    def start(self) -> Coord:
        return self.sx, self.sy, self.sz

    def order(self) -> tuple:
        return (self.sx, self.sz, self.sy, self.key)


@dataclass
class _End:
    x: int
    y: int
    z: int
    index: int | None

    @property
    def coord(self) -> Coord:
        return self.x, self.y, self.z


def _drone_at(level: LevelState, key: uuid.UUID):
    entity = level.block_entities.get(key)
    if entity is None or not isinstance(entity.data, Drone):
        raise LookupError("block entity should be drone")
    return entity


def run_move_commands(level: LevelState) -> None:
    """Move drones, cancelling moves that collide or lose their support.

    A drone whose move fails stays put, which in turn cancels every move
    that targeted its starting cell.
    """
    bounds = level.chunk_size
    moves: list[_Move] = []
    end_map: list[_End] = []

    for key, entity in level.block_entities.entries():
        drone = entity.data
        if not isinstance(drone, Drone):
            continue
        stationary = _End(entity.x, entity.y, entity.z, None)
        command = drone.command
        if not isinstance(command, Move):
            end_map.append(stationary)
            continue
        flags = drone.capabilities.flags
        target = None
        if flags & DroneCapabilityFlags.MOVING:
            target = move_coord(
                bounds, entity.x, entity.y, entity.z, None, command.direction
            )
        if target is None:
            drone.is_command_valid = False
            end_map.append(stationary)
            continue
        end_map.append(_End(*target, len(moves)))
        moves.append(
            _Move(
                key,
                entity.x,
                entity.y,
                entity.z,
                *target,
                flying=bool(flags & DroneCapabilityFlags.FLYING),
            )
        )

    def end_order(entry: _End) -> tuple:
        base = (entry.x, entry.z, entry.y)
        if entry.index is None:
            return base + (0,)
        return base + (1, moves[entry.index].order())

    end_map.sort(key=end_order)

    stack: list[_Move] = []
    prev: Coord | None = None
    for entry in end_map:
        previous, prev = prev, entry.coord
        if entry.index is None:
            continue
        move = moves[entry.index]
        unsupported = (
            not move.flying
            and entry.y != 0
            and not level.get_block(entry.x, entry.y - 1, entry.z).is_solid()
        )
        if (
            previous == entry.coord
            or level.get_block(*entry.coord).is_solid()
            or unsupported
        ):
            _log.debug("move failed: %r", move)
            move.moving = False
            stack.append(move)

    targeting: dict[Coord, list[int]] = {}
    for entry in end_map:
        if entry.index is not None:
            targeting.setdefault(entry.coord, []).append(entry.index)

    while stack:
        blocked = stack.pop()
        for index in targeting.get(blocked.start, ()):
            move = moves[index]
            if move.moving:
                move.moving = False
                _log.debug("move failed: %r", move)
                stack.append(move)

    for move in moves:
        entity = _drone_at(level, move.key)
        if not move.moving:
            entity.data.is_command_valid = False
            continue
        entity.data.is_command_valid = True
        entity.x, entity.y, entity.z = move.ex, move.ey, move.ez


def clear_commands(level: LevelState) -> None:
    """Mark every entity dirty and reset drone commands to Noop."""
    for _, entity in level.block_entities.entries():
        entity.mark_dirty()
        if isinstance(entity.data, Drone):
            entity.data.command = Noop()


def drone_command(level: LevelState, rng: random.Random) -> None:
    """Run every pending drone and tower command for this tick."""
    cmap = CoordMap(level)
    run_inventory_commands(level, cmap)
    run_break_mine_commands(level, cmap, rng)
    run_summon_commands(level, cmap)
    del cmap
    run_move_commands(level)
    clear_commands(level)


def scan_block(
    level: LevelState, x: int, y: int, z: int, r: int, block: Block
) -> bool:
    """Whether ``block`` occurs in the box from ``pos - r`` up to ``pos + r``.

    The upper bound is exclusive and the box is clipped to the level.
    """
    sx, sy, sz = level.chunk_size
    xs = range(max(x - r, 0), min(x + r, sx * CHUNK_SIZE))
    ys = range(max(y - r, 0), min(y + r, sy * CHUNK_SIZE))
    zs = range(max(z - r, 0), min(z + r, sz * CHUNK_SIZE))
    return any(
        level.get_block(bx, by, bz) == block
        for by, bz, bx in itertools.product(ys, zs, xs)
    )


def _block_above(
    level: LevelState, cx: int, cy: int, cz: int, c: int, x: int, y: int, z: int
) -> Block:
    _, sy, _ = level.chunk_size
    if y < CHUNK_SIZE - 1:
        i = (y * CHUNK_SIZE + z) * CHUNK_SIZE + x
        return level.chunks[c].blocks[i + CHUNK_SIZE * CHUNK_SIZE]
    if cy < sy - 1:
        return level.chunks[c + cx * cz].blocks[z * CHUNK_SIZE + x]
    return Block.AIR


def tick_block(
    level: LevelState, cx: int, cy: int, cz: int, c: int, x: int, y: int, z: int
) -> None:
    """Update one block: covered grass dies, uncovered dirt near grass grows."""
    i = (y * CHUNK_SIZE + z) * CHUNK_SIZE + x
    chunk = level.chunks[c]
    current = chunk.blocks[i]

    if current is Block.GRASS:
        if _block_above(level, cx, cy, cz, c, x, y, z).is_full_block():
            chunk.blocks[i] = Block.DIRT
            chunk.mark_dirty()
    elif current is Block.DIRT:
        above = _block_above(level, cx, cy, cz, c, x, y, z)
        if not above.is_full_block() and scan_block(
            level,
            cx * CHUNK_SIZE + x,
            cy * CHUNK_SIZE + y,
            cz * CHUNK_SIZE + z,
            3,
            Block.GRASS,
        ):
            chunk.blocks[i] = Block.GRASS
            chunk.mark_dirty()


def random_tick(level: LevelState, rng: random.Random) -> None:
    """Tick UPDATE_RATE randomly chosen blocks in every chunk."""
    sx, sy, sz = level.chunk_size
    c = 0
    for cy in range(sy):
        for cz in range(sz):
            for cx in range(sx):
                for _ in range(UPDATE_RATE):
                    x = rng.randrange(CHUNK_SIZE)
                    y = rng.randrange(CHUNK_SIZE)
                    z = rng.randrange(CHUNK_SIZE)
                    tick_block(level, cx, cy, cz, c, x, y, z)
                c += 1


def update(level: LevelState, rng: random.Random) -> None:
    """Advance the level by one tick."""
    drone_command(level, rng)
    random_tick(level, rng)