"""Binary encoding of levels and drone commands."""

from __future__ import annotations

import struct
import sys
import uuid
from array import array
from collections.abc import Iterator
from dataclasses import dataclass

from dronelevel.block import Block
from dronelevel.drone import (
    INVENTORY_SIZE,
    Break,
    Command,
    Direction,
    Drone,
    DroneCapability,
    DroneCapabilityFlags,
    ExecutionContext,
    InventoryOp,
    InventoryOps,
    InventorySlot,
    InventoryType,
    Mine,
    Move,
    Noop,
    Place,
    Pull,
    PullInventory,
    Push,
    PushInventory,
    Summon,
    Swap,
    Transfer,
)
from dronelevel.entity import BlockEntity, BlockEntityData, CentralTower, IronOre
from dronelevel.item import Item, ItemCountError, ItemSlot, SlotFlags
from dronelevel.level import TOTAL_SIZE, Chunk, LevelState, LevelStateError

__all__ = [
    "LEVEL_MAGIC",
    "CodecError",
    "dumps_level",
    "loads_level",
    "dumps_command",
    "loads_command",
]

LEVEL_MAGIC = b"DLV1"

_U8 = struct.Struct("<B")
_U16 = struct.Struct("<H")
_U32 = struct.Struct("<I")
_U64 = struct.Struct("<Q")

_CAP_MASK = sum(flag.value for flag in DroneCapabilityFlags)
_SLOT_MASK = sum(flag.value for flag in SlotFlags)
_BLOCK_BY_VALUE = {block.value: block for block in Block}
_BIG_ENDIAN = sys.byteorder == "big"

_TAG_IRON_ORE = 0
_TAG_DRONE = 1
_TAG_CENTRAL_TOWER = 2


class CodecError(ValueError):
    """Data cannot be encoded, or bytes do not hold a valid value."""


class _Writer:
    def __init__(self) -> None:
        self._buf = bytearray()

    def u8(self, value: int) -> None:
        self._buf += _U8.pack(value)

    def u16(self, value: int) -> None:
        self._buf += _U16.pack(value)

    def u32(self, value: int) -> None:
        self._buf += _U32.pack(value)

    def u64(self, value: int) -> None:
        self._buf += _U64.pack(value)

    def flag(self, value: bool) -> None:
        self.u8(1 if value else 0)

    def text(self, value: str) -> None:
        raw = value.encode("utf-8")
        self.u32(len(raw))
        self._buf += raw

    def raw(self, data: bytes) -> None:
        self._buf += data

    def getvalue(self) -> bytes:
        return bytes(self._buf)


class _Reader:
    def __init__(self, data: bytes) -> None:
        self._data = bytes(data)
        self._pos = 0

    def take(self, n: int) -> bytes:
        end = self._pos + n
        if end > len(self._data):
            raise CodecError("unexpected end of data")
        part = self._data[self._pos:end]
        self._pos = end
        return part

    def _unpack(self, st: struct.Struct) -> int:
        return st.unpack(self.take(st.size))[0]

    def u8(self) -> int:
        return self._unpack(_U8)

    def u16(self) -> int:
        return self._unpack(_U16)

    def u32(self) -> int:
        return self._unpack(_U32)

    def u64(self) -> int:
        return self._unpack(_U64)

    def flag(self) -> bool:
        value = self.u8()
        if value > 1:
            raise CodecError(f"invalid boolean {value}")
        return value == 1

    def text(self) -> str:
        raw = self.take(self.u32())
        try:
            return raw.decode("utf-8")
        except UnicodeDecodeError as exc:
            raise CodecError(f"invalid string: {exc}") from exc

    def enum(self, cls, name: str):
        value = self.u8()
        try:
            return cls(value)
        except ValueError:
            raise CodecError(f"invalid {name} {value}") from None

    def finish(self) -> None:
        if self._pos != len(self._data):
            raise CodecError(f"{len(self._data) - self._pos} trailing bytes")


# Writing


def _write_exec(w: _Writer, ctx: ExecutionContext) -> None:
    w.text(ctx.executable)
    w.u32(len(ctx.args))
    for arg in ctx.args:
        w.text(arg)
    w.u32(len(ctx.env))
    for key, value in ctx.env:
        w.text(key)
        w.text(value)


def _write_slot(w: _Writer, slot: ItemSlot) -> None:
    w.u16(int(slot.item))
    w.u8(slot.count)
    w.u8(int(slot.slot_flags))


def _write_inventory(w: _Writer, slots: list[ItemSlot]) -> None:
    if len(slots) != INVENTORY_SIZE:
        raise CodecError(f"inventory must have {INVENTORY_SIZE} slots, got {len(slots)}")
    for slot in slots:
        _write_slot(w, slot)


def _write_capability(w: _Writer, cap: DroneCapability) -> None:
    w.u64(int(cap.flags))
    w.flag(cap.ext_inventory is not None)
    if cap.ext_inventory is not None:
        _write_inventory(w, cap.ext_inventory)


def _write_inventory_slot(w: _Writer, slot: InventorySlot) -> None:
    w.u8(int(slot.inventory))
    w.u64(slot.slot)


def _write_op(w: _Writer, op: InventoryOp) -> None:
    match op:
        case Swap(src=src, dst=dst):
            w.u8(0)
            _write_inventory_slot(w, src)
            _write_inventory_slot(w, dst)
        case Transfer(src=src, dst=dst, count=count):
            w.u8(1)
            _write_inventory_slot(w, src)
            _write_inventory_slot(w, dst)
            w.u8(count)
        case Pull(src=src, dst=dst, count=count):
            w.u8(2)
            w.u8(int(src))
            _write_inventory_slot(w, dst)
            w.u64(count)
        case Push(dst=dst, src=src, count=count):
            w.u8(3)
            w.u8(int(dst))
            _write_inventory_slot(w, src)
            w.u64(count)
        case _:
            raise CodecError(f"unknown inventory operation {op!r}")


def _write_inventory_transfer(w: _Writer, cmd: PullInventory | PushInventory) -> None:
    w.u8(int(cmd.direction))
    w.u8(int(cmd.src_inv))
    w.u64(cmd.src_slot)
    w.u8(int(cmd.dst_inv))
    w.u64(cmd.dst_slot)
    w.u8(cmd.count)


def _write_command(w: _Writer, command: Command) -> None:
    match command:
        case Noop():
            w.u8(0)
        case Move(direction=direction):
            w.u8(1)
            w.u8(int(direction))
        case Place(slot=slot, direction=direction):
            w.u8(2)
            _write_inventory_slot(w, slot)
            w.u8(int(direction))
        case Break(direction=direction):
            w.u8(3)
            w.u8(int(direction))
        case Mine(direction=direction):
            w.u8(4)
            w.u8(int(direction))
        case PullInventory():
            w.u8(5)
            _write_inventory_transfer(w, command)
        case PushInventory():
            w.u8(6)
            _write_inventory_transfer(w, command)
        case InventoryOps(ops=ops):
            w.u8(7)
            w.u32(len(ops))
            for op in ops:
                _write_op(w, op)
        case Summon(direction=direction, exec=ctx, capabilities=flags):
            w.u8(8)
            w.u8(int(direction))
            _write_exec(w, ctx)
            w.u64(int(flags))
        case _:
            raise CodecError(f"unknown command {command!r}")


def _pack_blocks(blocks: list[Block]) -> bytes:
    if len(blocks) != TOTAL_SIZE:
        raise CodecError(f"chunk must have {TOTAL_SIZE} blocks, got {len(blocks)}")
    values = array("H", blocks)
    if _BIG_ENDIAN:
        values.byteswap()
    return values.tobytes()


def _write_entity_data(w: _Writer, data: BlockEntityData) -> None:
    match data:
        case IronOre(quantity=quantity):
            w.u8(_TAG_IRON_ORE)
            w.u64(quantity)
        case Drone():
            w.u8(_TAG_DRONE)
            w.flag(data.is_command_valid)
            w.u64(data.move_cooldown)
            _write_capability(w, data.capabilities)
            _write_inventory(w, data.inventory)
        case CentralTower():
            w.u8(_TAG_CENTRAL_TOWER)
            _write_command(w, data.command)
            w.flag(data.is_command_valid)
            _write_capability(w, data.capabilities)
            _write_inventory(w, data.inventory)
            w.flag(data.exec is not None)
            if data.exec is not None:
                _write_exec(w, data.exec)
        case _:
            raise CodecError(f"unknown block entity {data!r}")


def dumps_level(level: LevelState) -> bytes:
    """Encode a level. Drone commands and programs, and dirty flags, are not kept."""
    w = _Writer()
    try:
        w.raw(LEVEL_MAGIC)
        for size in level.chunk_size:
            w.u32(size)
        w.u32(len(level.chunks))
        for chunk in level.chunks:
            w.raw(_pack_blocks(chunk.blocks))
        entities = list(level.block_entities.entries())
        w.u32(len(entities))
        for key, entity in entities:
            w.raw(key.bytes)
            w.u64(entity.x)
            w.u64(entity.y)
            w.u64(entity.z)
            _write_entity_data(w, entity.data)
    except (struct.error, OverflowError, UnicodeEncodeError) as exc:
        raise CodecError(str(exc)) from exc
    return w.getvalue()


def dumps_command(command: Command) -> bytes:
    """Encode a single command."""
    w = _Writer()
    try:
        _write_command(w, command)
    except (struct.error, OverflowError, UnicodeEncodeError) as exc:
        raise CodecError(str(exc)) from exc
    return w.getvalue()


# Reading


def _read_exec(r: _Reader) -> ExecutionContext:
    executable = r.text()
    args = [r.text() for _ in range(r.u32())]
    env = [(r.text(), r.text()) for _ in range(r.u32())]
    return ExecutionContext(executable=executable, args=args, env=env)


def _read_slot(r: _Reader) -> ItemSlot:
    slot = ItemSlot()
    slot.item = Item.from_value(r.u16())
    slot.count = r.u8()
    slot.slot_flags = SlotFlags(r.u8() & _SLOT_MASK)
    return slot


def _read_inventory(r: _Reader) -> list[ItemSlot]:
    return [_read_slot(r) for _ in range(INVENTORY_SIZE)]


def _read_flags(r: _Reader) -> DroneCapabilityFlags:
    return DroneCapabilityFlags(r.u64() & _CAP_MASK)


def _read_capability(r: _Reader) -> DroneCapability:
    flags = _read_flags(r)
    ext = _read_inventory(r) if r.flag() else None
    return DroneCapability(flags=flags, ext_inventory=ext)


def _read_inventory_slot(r: _Reader) -> InventorySlot:
    inventory = r.enum(InventoryType, "inventory type")
    return InventorySlot(inventory, r.u64())


def _read_op(r: _Reader) -> InventoryOp:
    tag = r.u8()
    match tag:
        case 0:
            return Swap(_read_inventory_slot(r), _read_inventory_slot(r))
        case 1:
            src = _read_inventory_slot(r)
            dst = _read_inventory_slot(r)
            return Transfer(src, dst, r.u8())
        case 2:
            inventory = r.enum(InventoryType, "inventory type")
            return Pull(inventory, _read_inventory_slot(r), r.u64())
        case 3:
            inventory = r.enum(InventoryType, "inventory type")
            return Push(inventory, _read_inventory_slot(r), r.u64())
    raise CodecError(f"invalid inventory operation tag {tag}")


def _read_inventory_transfer(r: _Reader, cls):
    return cls(
        direction=r.enum(Direction, "direction"),
        src_inv=r.enum(InventoryType, "inventory type"),
        src_slot=r.u64(),
        dst_inv=r.enum(InventoryType, "inventory type"),
        dst_slot=r.u64(),
        count=r.u8(),
    )


def _read_command(r: _Reader) -> Command:
    tag = r.u8()
    match tag:
        case 0:
            return Noop()
        case 1:
            return Move(r.enum(Direction, "direction"))
        case 2:
            slot = _read_inventory_slot(r)
            return Place(slot, r.enum(Direction, "direction"))
        case 3:
            return Break(r.enum(Direction, "direction"))
        case 4:
            return Mine(r.enum(Direction, "direction"))
        case 5:
            return _read_inventory_transfer(r, PullInventory)
        case 6:
            return _read_inventory_transfer(r, PushInventory)
        case 7:
            return InventoryOps([_read_op(r) for _ in range(r.u32())])
        case 8:
            direction = r.enum(Direction, "direction")
            ctx = _read_exec(r)
            return Summon(direction, ctx, _read_flags(r))
    raise CodecError(f"invalid command tag {tag}")


def _read_blocks(r: _Reader) -> list[Block]:
    values = array("H")
    values.frombytes(r.take(TOTAL_SIZE * 2))
    if _BIG_ENDIAN:
        values.byteswap()
    lookup = _BLOCK_BY_VALUE.get
    return [lookup(v, Block.UNKNOWN) for v in values]


def _read_entity_data(r: _Reader) -> BlockEntityData:
    tag = r.u8()
    match tag:
        case 0:
            return IronOre(quantity=r.u64())
        case 1:
            valid = r.flag()
            cooldown = r.u64()
            cap = _read_capability(r)
            return Drone(
                is_command_valid=valid,
                move_cooldown=cooldown,
                capabilities=cap,
                inventory=_read_inventory(r),
            )
        case 2:
            command = _read_command(r)
            valid = r.flag()
            cap = _read_capability(r)
            inventory = _read_inventory(r)
            ctx = _read_exec(r) if r.flag() else None
            return CentralTower(
                command=command,
                is_command_valid=valid,
                capabilities=cap,
                inventory=inventory,
                exec=ctx,
            )
    raise CodecError(f"invalid block entity tag {tag}")


@dataclass
class _EntrySource:
    items: list[tuple[uuid.UUID, BlockEntity]]

    def entries(self) -> Iterator[tuple[uuid.UUID, BlockEntity]]:
        return iter(self.items)


def loads_level(data: bytes) -> LevelState:
    """Decode and validate a level; every chunk and entity comes back dirty."""
    r = _Reader(data)
    if r.take(len(LEVEL_MAGIC)) != LEVEL_MAGIC:
        raise CodecError("not a level")
    cx, cy, cz = r.u32(), r.u32(), r.u32()
    chunks = [Chunk(blocks=_read_blocks(r)) for _ in range(r.u32())]

    items: list[tuple[uuid.UUID, BlockEntity]] = []
    seen: set[uuid.UUID] = set()
    for _ in range(r.u32()):
        key = uuid.UUID(bytes=r.take(16))
        if key in seen:
            raise CodecError(f"duplicate block entity id {key}")
        seen.add(key)
        x, y, z = r.u64(), r.u64(), r.u64()
        items.append((key, BlockEntity(x, y, z, _read_entity_data(r))))
    r.finish()

    level = LevelState()
    level.chunk_x, level.chunk_y, level.chunk_z = cx, cy, cz
    level.chunks = chunks
    level.block_entities.clone_from_filtered(_EntrySource(items), lambda _k, e: e)
    try:
        level.validate()
    except (LevelStateError, ItemCountError) as exc:
        raise CodecError(str(exc)) from exc
    return level


def loads_command(data: bytes) -> Command:
    """Decode a single command."""
    r = _Reader(data)
    command = _read_command(r)
    r.finish()
    return command