"""Drones, their capabilities and the commands they accept."""

from __future__ import annotations

import copy
from dataclasses import dataclass, field
from enum import IntEnum, IntFlag

from dronelevel.item import ItemSlot

__all__ = [
    "INVENTORY_SIZE",
    "ExecutionContext",
    "DroneCapabilityFlags",
    "DroneCapability",
    "Direction",
    "InventoryType",
    "InventorySlot",
    "Noop",
    "Move",
    "Place",
    "Break",
    "Mine",
    "PullInventory",
    "PushInventory",
    "InventoryOps",
    "Summon",
    "Command",
    "Swap",
    "Transfer",
    "Pull",
    "Push",
    "InventoryOp",
    "Drone",
]

INVENTORY_SIZE = 9 * 3


def _new_inventory() -> list[ItemSlot]:
    return [ItemSlot() for _ in range(INVENTORY_SIZE)]


@dataclass
class ExecutionContext:
    """A program to start for a drone: executable, arguments and environment."""

    executable: str = ""
    args: list[str] = field(default_factory=list)
    env: list[tuple[str, str]] = field(default_factory=list)


class DroneCapabilityFlags(IntFlag):
    """What a drone is able to do."""

    MOVING = 1 << 0
    FLYING = 1 << 1
    BREAKER = 1 << 2
    SILK_TOUCH = 1 << 3
    EXTENDED_INVENTORY = 1 << 4
    DRONE_SUMMON = 1 << 5


@dataclass
class DroneCapability:
    """Capability flags and the optional extended inventory."""

    flags: DroneCapabilityFlags = DroneCapabilityFlags(0)
    ext_inventory: list[ItemSlot] | None = None


class Direction(IntEnum):
    """A cardinal or diagonal direction relative to a block."""

    UP = 0
    DOWN = 1
    LEFT = 2
    RIGHT = 3
    FORWARD = 4
    BACK = 5
    FORWARD_LEFT = 6
    FORWARD_RIGHT = 7
    BACK_LEFT = 8
    BACK_RIGHT = 9
    UP_LEFT = 10
    UP_RIGHT = 11
    UP_FORWARD = 12
    UP_BACK = 13
    DOWN_LEFT = 14
    DOWN_RIGHT = 15
    DOWN_FORWARD = 16
    DOWN_BACK = 17


class InventoryType(IntEnum):
    """Which inventory of an entity is addressed."""

    INVENTORY = 0
    EXT_INVENTORY = 1


@dataclass(frozen=True)
class InventorySlot:
    """One slot of one inventory."""

    inventory: InventoryType
    slot: int


@dataclass
class Noop:
    """Do nothing."""


@dataclass
class Move:
    direction: Direction


@dataclass
class Place:
    slot: InventorySlot
    direction: Direction


@dataclass
class Break:
    direction: Direction


@dataclass
class Mine:
    direction: Direction


@dataclass
class PullInventory:
    """Pull items from a neighbouring inventory into this one."""

    direction: Direction
    src_inv: InventoryType
    src_slot: int
    dst_inv: InventoryType
    dst_slot: int
    count: int


@dataclass
class PushInventory:
    """Push items from this inventory into a neighbouring one."""

    direction: Direction
    src_inv: InventoryType
    src_slot: int
    dst_inv: InventoryType
    dst_slot: int
    count: int


@dataclass
class Swap:
    src: InventorySlot
    dst: InventorySlot


@dataclass
class Transfer:
    src: InventorySlot
    dst: InventorySlot
    count: int


@dataclass
class Pull:
    src: InventoryType
    dst: InventorySlot
    count: int


@dataclass
class Push:
    dst: InventoryType
    src: InventorySlot
    count: int


InventoryOp = Swap | Transfer | Pull | Push


@dataclass
class InventoryOps:
    """A batch of operations inside the entity's own inventories."""

    ops: list[InventoryOp] = field(default_factory=list)


@dataclass
class Summon:
    """Create a new drone next to this entity."""

    direction: Direction
    exec: ExecutionContext
    capabilities: DroneCapabilityFlags


Command = (
    Noop
    | Move
    | Place
    | Break
    | Mine
    | PullInventory
    | PushInventory
    | InventoryOps
    | Summon
)


@dataclass
class Drone:
    """A mobile entity that executes one command per tick."""

    command: Command = field(default_factory=Noop)
    is_command_valid: bool = True
    move_cooldown: int = 0
    capabilities: DroneCapability = field(default_factory=DroneCapability)
    inventory: list[ItemSlot] = field(default_factory=_new_inventory)
    exec: ExecutionContext | None = None

    def clone_censored(self) -> Drone:
        """A copy without the pending command and execution context."""
        return Drone(
            command=Noop(),
            is_command_valid=self.is_command_valid,
            move_cooldown=self.move_cooldown,
            capabilities=copy.deepcopy(self.capabilities),
            inventory=copy.deepcopy(self.inventory),
            exec=None,
        )