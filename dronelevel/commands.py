"""Drone and tower commands that act on inventories, blocks and new drones."""

from __future__ import annotations

import random
import uuid
from dataclasses import dataclass

from dronelevel.block import Block
from dronelevel.drone import (
    INVENTORY_SIZE,
    Break,
    Direction,
    Drone,
    DroneCapability,
    DroneCapabilityFlags,
    ExecutionContext,
    InventoryOp,
    InventoryOps,
    InventoryType,
    Mine,
    Pull,
    PullInventory,
    Push,
    PushInventory,
    Summon,
    Swap,
    Transfer,
)
from dronelevel.entity import BlockEntity, BlockEntityData, CentralTower, IronOre
from dronelevel.item import Item, ItemSlot, ItemStack
from dronelevel.level import CHUNK_SIZE, BreakCapability, LevelState

__all__ = [
    "CoordMap",
    "move_coord",
    "get_inventory",
    "get_slot_at",
    "run_inventory_commands",
    "run_break_mine_commands",
    "run_summon_commands",
]

Bounds = tuple[int, int, int]
Coord = tuple[int, int, int]

_STEP: dict[Direction, Coord] = {
    Direction.LEFT: (1, 0, 0),
    Direction.UP: (0, 1, 0),
    Direction.FORWARD: (0, 0, 1),
    Direction.RIGHT: (-1, 0, 0),
    Direction.DOWN: (0, -1, 0),
    Direction.BACK: (0, 0, -1),
    Direction.FORWARD_LEFT: (1, 0, 1),
    Direction.FORWARD_RIGHT: (-1, 0, 1),
    Direction.BACK_LEFT: (1, 0, -1),
    Direction.BACK_RIGHT: (-1, 0, -1),
    Direction.UP_LEFT: (1, 1, 0),
    Direction.UP_RIGHT: (-1, 1, 0),
    Direction.UP_FORWARD: (0, 1, 1),
    Direction.UP_BACK: (0, 1, -1),
    Direction.DOWN_LEFT: (1, -1, 0),
    Direction.DOWN_RIGHT: (-1, -1, 0),
    Direction.DOWN_FORWARD: (0, -1, 1),
    Direction.DOWN_BACK: (0, -1, -1),
}

_TOWER_STEP: dict[Direction, Coord] = {
    Direction.LEFT: (2, 0, 0),
    Direction.UP: (0, 3, 0),
    Direction.FORWARD: (0, 0, 2),
    Direction.RIGHT: (-2, 0, 0),
    Direction.DOWN: (0, -1, 0),
    Direction.BACK: (0, 0, -2),
    Direction.FORWARD_LEFT: (2, 0, 2),
    Direction.FORWARD_RIGHT: (-2, 0, 2),
    Direction.BACK_LEFT: (2, 0, -2),
    Direction.BACK_RIGHT: (-2, 0, -2),
    Direction.UP_LEFT: (2, 3, 0),
    Direction.UP_RIGHT: (-2, 3, 0),
    Direction.UP_FORWARD: (0, 3, 2),
    Direction.UP_BACK: (0, 3, -2),
    Direction.DOWN_LEFT: (2, -1, 0),
    Direction.DOWN_RIGHT: (-2, -1, 0),
    Direction.DOWN_FORWARD: (0, -1, 2),
    Direction.DOWN_BACK: (0, -1, -2),
}

_KIND_ORDER = {PullInventory: 0, PushInventory: 1, InventoryOps: 2}


def _is_oob(bounds: Bounds, x: int, y: int, z: int) -> bool:
    sx, sy, sz = bounds
    return x // CHUNK_SIZE >= sx or y // CHUNK_SIZE >= sy or z // CHUNK_SIZE >= sz


class CoordMap:
    """Lookup of block entity ids by position, taken at construction time."""

    def __init__(self, level: LevelState) -> None:
        self._ids: dict[Coord, uuid.UUID] = {}
        for x, y, z, key in sorted(
            (e.x, e.y, e.z, k) for k, e in level.block_entities.entries()
        ):
            self._ids.setdefault((x, y, z), key)

    def get(self, x: int, y: int, z: int) -> uuid.UUID | None:
        return self._ids.get((x, y, z))


def move_coord(
    bounds: Bounds,
    x: int,
    y: int,
    z: int,
    data: BlockEntityData | None,
    direction: Direction,
) -> Coord | None:
    """The neighbouring position of an entity in ``direction``, if inside the level.

    Central towers are 3x3x3, so their neighbours lie further away.
    """
    table = _TOWER_STEP if isinstance(data, CentralTower) else _STEP
    step = table.get(direction)
    if step is None:
        return None
    dx, dy, dz = step
    nx, ny, nz = x + dx, y + dy, z + dz
    if nx < 0 or ny < 0 or nz < 0 or _is_oob(bounds, nx, ny, nz):
        return None
    return nx, ny, nz


def get_inventory(
    data: BlockEntityData, inventory_type: InventoryType
) -> list[ItemSlot] | None:
    """The addressed inventory of a drone or tower, if it has one."""
    if not isinstance(data, Drone | CentralTower):
        return None
    if inventory_type is InventoryType.INVENTORY:
        return data.inventory
    if inventory_type is InventoryType.EXT_INVENTORY:
        return data.capabilities.ext_inventory
    return None


def _slot(
    data: BlockEntityData, inventory_type: InventoryType, slot: int
) -> ItemSlot | None:
    inventory = get_inventory(data, inventory_type)
    if inventory is None or not 0 <= slot < len(inventory):
        return None
    return inventory[slot]


def _entity_slot(
    cmap: CoordMap,
    level: LevelState,
    x: int,
    y: int,
    z: int,
    inventory_type: InventoryType,
    slot: int,
) -> ItemSlot | None:
    key = cmap.get(x, y, z)
    if key is None:
        return None
    entity = level.block_entities.get(key)
    if entity is None:
        return None
    return _slot(entity.data, inventory_type, slot)


def get_slot_at(
    cmap: CoordMap,
    level: LevelState,
    x: int,
    y: int,
    z: int,
    inventory_type: InventoryType,
    slot: int,
) -> ItemSlot | None:
    """The slot of whatever entity occupies a position, including tower parts."""
    found = _entity_slot(cmap, level, x, y, z, inventory_type, slot)
    if found is not None:
        return found

    offset = CentralTower.get_central_block_offset(level.get_block(x, y, z))
    if offset is None:
        return None
    dx, dy, dz = offset
    ox, oy, oz = x - dx, y - dy, z - dz
    if ox < 0 or oy < 0 or oz < 0 or _is_oob(level.chunk_size, ox, oy, oz):
        return None
    return _entity_slot(cmap, level, ox, oy, oz, inventory_type, slot)


def _limit(count: int) -> int | None:
    return None if count == 0 else count


def _apply_ops(data: BlockEntityData, ops: list[InventoryOp]) -> None:
    for op in ops:
        match op:
            case Swap(src=src, dst=dst):
                a = _slot(data, src.inventory, src.slot)
                b = _slot(data, dst.inventory, dst.slot)
                if a is None or b is None or a is b:
                    continue
                b.swap_slot(a)
            case Transfer(src=src, dst=dst, count=count):
                a = _slot(data, src.inventory, src.slot)
                b = _slot(data, dst.inventory, dst.slot)
                if a is None or b is None or a is b:
                    continue
                b.transfer_slot(a, _limit(count))
            case Pull(src=src, dst=dst, count=count):
                if src == dst.inventory:
                    continue
                inventory = get_inventory(data, src)
                target = _slot(data, dst.inventory, dst.slot)
                if inventory is None or target is None:
                    continue
                target.pull_inventory(inventory, _limit(count))
            case Push(src=src, dst=dst, count=count):
                if src.inventory == dst:
                    continue
                source = _slot(data, src.inventory, src.slot)
                inventory = get_inventory(data, dst)
                if source is None or inventory is None:
                    continue
                source.push_inventory(inventory, _limit(count))


def run_inventory_commands(level: LevelState, cmap: CoordMap) -> None:
    """Run pull, push and inventory-ops commands of drones and towers."""
    pending: list[tuple[int, int, int, int, uuid.UUID, object]] = []
    for key, entity in level.block_entities.entries():
        data = entity.data
        if not isinstance(data, Drone | CentralTower):
            continue
        command = data.command
        if isinstance(command, InventoryOps):
            op: object = InventoryOps(command.ops)
            command.ops = []
        elif isinstance(command, PullInventory | PushInventory):
            op = command
        else:
            continue
        data.is_command_valid = True
        pending.append((_KIND_ORDER[type(op)], entity.x, entity.z, entity.y, key, op))

    pending.sort(key=lambda p: p[:5])
    bounds = level.chunk_size

    for _, x, z, y, key, op in pending:
        entity = level.block_entities.get(key)
        if entity is None:
            continue
        if isinstance(op, InventoryOps):
            _apply_ops(entity.data, op.ops)
            continue

        target = move_coord(bounds, x, y, z, entity.data, op.direction)
        if target is None:
            continue
        if isinstance(op, PullInventory):
            dst = _slot(entity.data, op.dst_inv, op.dst_slot)
            if dst is None:
                continue
            src = get_slot_at(cmap, level, *target, op.src_inv, op.src_slot)
        else:
            src = _slot(entity.data, op.src_inv, op.src_slot)
            if src is None:
                continue
            dst = get_slot_at(cmap, level, *target, op.dst_inv, op.dst_slot)
        if src is None or dst is None:
            continue
        if src is dst:
            raise RuntimeError("source and destination slot are the same")
        dst.transfer_slot(src, _limit(op.count))


@dataclass
class _BreakMine:
    key: uuid.UUID
    x: int
    y: int
    z: int
    is_mine: bool
    is_silk: bool
    direction: Direction
    valid: bool = True

    def order(self) -> tuple:
        return (self.is_mine, self.x, self.z, self.y, self.key)


def _mine(level: LevelState, cmap: CoordMap, target: Coord, rng: random.Random) -> list[ItemStack] | None:
    if level.get_block(*target) is not Block.IRON_ORE:
        return None
    key = cmap.get(*target)
    entity = level.block_entities.get(key) if key is not None else None
    if entity is None or not isinstance(entity.data, IronOre):
        raise LookupError("block entity should be iron ore")
    ore = entity.data
    if ore.quantity > 0 and rng.random() < 0.8:
        ore.quantity -= 1
        entity.mark_dirty()
        return [ItemStack(Item.IRON_ORE, 1)]
    return []


def _drone(level: LevelState, key: uuid.UUID) -> Drone:
    entity = level.block_entities.get(key)
    if entity is None or not isinstance(entity.data, Drone):
        raise LookupError("block entity should be drone")
    return entity.data


def run_break_mine_commands(
    level: LevelState, cmap: CoordMap, rng: random.Random
) -> None:
    """Run drone break and mine commands, collecting drops into inventories."""
    pending: list[_BreakMine] = []
    for key, entity in level.block_entities.entries():
        data = entity.data
        if not isinstance(data, Drone):
            continue
        command = data.command
        if isinstance(command, Break):
            is_mine = False
        elif isinstance(command, Mine):
            is_mine = True
        else:
            continue
        pending.append(
            _BreakMine(
                key=key,
                x=entity.x,
                y=entity.y,
                z=entity.z,
                is_mine=is_mine,
                is_silk=bool(data.capabilities.flags & DroneCapabilityFlags.SILK_TOUCH),
                direction=command.direction,
            )
        )
    pending.sort(key=_BreakMine.order)
    bounds = level.chunk_size

    for job in pending:
        target = move_coord(bounds, job.x, job.y, job.z, None, job.direction)
        if target is None:
            job.valid = False
            continue
        if job.is_mine:
            drops = _mine(level, cmap, target, rng)
        else:
            drops = level.break_block(
                *target, BreakCapability(rng, silk_touch=job.is_silk)
            )
        if drops is None:
            job.valid = False
            continue

        drone = _drone(level, job.key)
        if ItemStack.put_inventory(drops, drone.inventory):
            ext = drone.capabilities.ext_inventory
            if ext is not None:
                ItemStack.put_inventory(drops, ext)

    for job in pending:
        _drone(level, job.key).is_command_valid = job.valid


@dataclass
class _SummonJob:
    key: uuid.UUID
    x: int
    y: int
    z: int
    sx: int
    sy: int
    sz: int
    payload: tuple[ExecutionContext, DroneCapabilityFlags] | None

    def order(self) -> tuple:
        return (self.x, self.z, self.y, self.sx, self.sz, self.sy, self.key)


def run_summon_commands(level: LevelState, cmap: CoordMap) -> None:
    """Spawn new drones for summon commands whose target cell is free."""
    jobs: list[_SummonJob] = []
    bounds = level.chunk_size
    for key, entity in level.block_entities.entries():
        data = entity.data
        if not isinstance(data, Drone | CentralTower):
            continue
        command = data.command
        if not isinstance(command, Summon):
            continue
        exec_ctx = command.exec
        command.exec = ExecutionContext()
        data.is_command_valid = False
        if not data.capabilities.flags & DroneCapabilityFlags.DRONE_SUMMON:
            continue
        target = move_coord(bounds, entity.x, entity.y, entity.z, data, command.direction)
        if target is None:
            continue
        jobs.append(
            _SummonJob(
                key, *target, entity.x, entity.y, entity.z,
                (exec_ctx, command.capabilities),
            )
        )

    jobs.sort(key=_SummonJob.order)

    prev: Coord | None = None
    for job in jobs:
        coord = (job.x, job.y, job.z)
        if (
            prev == coord
            or cmap.get(*coord) is not None
            or level.get_block(*coord).is_solid()
        ):
            job.payload = None
        prev = coord

    for job in jobs:
        entity = level.block_entities.get(job.key)
        if entity is None or not isinstance(entity.data, Drone | CentralTower):
            raise LookupError("block entity should exist")
        if job.payload is None:
            continue
        entity.data.is_command_valid = True

        exec_ctx, flags = job.payload
        ext = (
            [ItemSlot() for _ in range(INVENTORY_SIZE)]
            if flags & DroneCapabilityFlags.EXTENDED_INVENTORY
            else None
        )
        drone = Drone(
            exec=exec_ctx,
            capabilities=DroneCapability(flags=flags, ext_inventory=ext),
        )
        level.block_entities.add(BlockEntity(job.x, job.y, job.z, drone))