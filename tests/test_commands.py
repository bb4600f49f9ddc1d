import random

import pytest

from dronelevel.block import Block
from dronelevel.commands import (
    CoordMap,
    get_inventory,
    get_slot_at,
    move_coord,
    run_break_mine_commands,
    run_inventory_commands,
    run_summon_commands,
)
from dronelevel.drone import (
    INVENTORY_SIZE,
    Break,
    Direction,
    Drone,
    DroneCapability,
    DroneCapabilityFlags,
    ExecutionContext,
    InventoryOps,
    InventorySlot,
    InventoryType,
    Mine,
    PullInventory,
    PushInventory,
    Summon,
    Swap,
    Transfer,
)
from dronelevel.entity import BlockEntity, CentralTower, IronOre
from dronelevel.item import Item, ItemSlot, SlotFlags
from dronelevel.level import LevelState

IO = SlotFlags.INSERT | SlotFlags.EXTRACT


class _FixedRng(random.Random):
    def __init__(self, value):
        super().__init__(0)
        self.value = value

    def random(self):
        return self.value


def _add(level, x, y, z, data):
    return level.block_entities.add(BlockEntity(x, y, z, data))


def test_move_coord_normal_and_tower():
    bounds = (1, 1, 1)
    assert move_coord(bounds, 5, 5, 5, None, Direction.LEFT) == (6, 5, 5)
    assert move_coord(bounds, 5, 5, 5, CentralTower(), Direction.UP) == (5, 8, 5)
    assert move_coord(bounds, 5, 5, 5, CentralTower(), Direction.DOWN) == (5, 4, 5)


def test_move_coord_out_of_bounds():
    bounds = (1, 1, 1)
    assert move_coord(bounds, 0, 5, 5, None, Direction.RIGHT) is None
    assert move_coord(bounds, 15, 5, 5, None, Direction.LEFT) is None
    assert move_coord(bounds, 5, 0, 5, Drone(), Direction.DOWN_BACK) is None


def test_coord_map_lookup():
    level = LevelState(1, 1, 1)
    key = _add(level, 3, 4, 5, Drone())
    cmap = CoordMap(level)
    assert cmap.get(3, 4, 5) == key
    assert cmap.get(5, 4, 3) is None


def test_get_inventory():
    drone = Drone()
    assert get_inventory(drone, InventoryType.INVENTORY) is drone.inventory
    assert get_inventory(drone, InventoryType.EXT_INVENTORY) is None
    assert get_inventory(IronOre(3), InventoryType.INVENTORY) is None
    ext = [ItemSlot() for _ in range(INVENTORY_SIZE)]
    tower = CentralTower(capabilities=DroneCapability(ext_inventory=ext))
    assert get_inventory(tower, InventoryType.EXT_INVENTORY) is ext


def test_get_slot_at_tower_part():
    level = LevelState(1, 1, 1)
    tower = CentralTower()
    _add(level, 5, 5, 5, tower)
    level.set_block(6, 5, 5, Block.CENTRAL_TOWER_021)
    cmap = CoordMap(level)
    assert get_slot_at(cmap, level, 6, 5, 5, InventoryType.INVENTORY, 0) is tower.inventory[0]
    assert get_slot_at(cmap, level, 7, 5, 5, InventoryType.INVENTORY, 0) is None
    assert get_slot_at(cmap, level, 5, 5, 5, InventoryType.INVENTORY, INVENTORY_SIZE) is None


def test_push_inventory_command():
    level = LevelState(1, 1, 1)
    a = Drone(is_command_valid=False)
    b = Drone()
    a.inventory[0] = ItemSlot(Item.DIRT, 10, SlotFlags.EXTRACT)
    b.inventory[0] = ItemSlot(slot_flags=SlotFlags.INSERT)
    a.command = PushInventory(
        Direction.LEFT, InventoryType.INVENTORY, 0, InventoryType.INVENTORY, 0, 4
    )
    _add(level, 2, 0, 2, a)
    _add(level, 3, 0, 2, b)
    run_inventory_commands(level, CoordMap(level))
    assert b.inventory[0].item is Item.DIRT
    assert b.inventory[0].count == 4
    assert a.inventory[0].count == 6
    assert a.is_command_valid is True


def test_pull_inventory_command_unlimited():
    level = LevelState(1, 1, 1)
    a = Drone()
    b = Drone()
    a.inventory[0] = ItemSlot(slot_flags=SlotFlags.INSERT)
    b.inventory[0] = ItemSlot(Item.DIRT, 10, SlotFlags.EXTRACT)
    a.command = PullInventory(
        Direction.LEFT, InventoryType.INVENTORY, 0, InventoryType.INVENTORY, 0, 0
    )
    _add(level, 2, 0, 2, a)
    _add(level, 3, 0, 2, b)
    run_inventory_commands(level, CoordMap(level))
    assert a.inventory[0].count == 10
    assert b.inventory[0].is_empty()
    assert b.inventory[0].item is Item.AIR


def test_inventory_ops_swap_and_transfer():
    level = LevelState(1, 1, 1)
    drone = Drone()
    drone.inventory[0] = ItemSlot(Item.DIRT, 5, IO)
    drone.inventory[1] = ItemSlot(slot_flags=IO)
    drone.inventory[2] = ItemSlot(slot_flags=IO)
    s = InventoryType.INVENTORY
    drone.command = InventoryOps(
        [
            Swap(InventorySlot(s, 0), InventorySlot(s, 1)),
            Transfer(InventorySlot(s, 1), InventorySlot(s, 2), 2),
        ]
    )
    _add(level, 1, 1, 1, drone)
    run_inventory_commands(level, CoordMap(level))
    assert drone.inventory[0].is_empty()
    assert drone.inventory[1].count == 3
    assert drone.inventory[2].item is Item.DIRT
    assert drone.inventory[2].count == 2
    assert drone.command.ops == []


def test_break_dirt_collects_drop():
    level = LevelState(1, 1, 1)
    level.set_block(2, 0, 2, Block.DIRT)
    drone = Drone(command=Break(Direction.DOWN))
    drone.inventory[0] = ItemSlot(slot_flags=SlotFlags.INSERT)
    _add(level, 2, 1, 2, drone)
    run_break_mine_commands(level, CoordMap(level), random.Random(0))
    assert level.get_block(2, 0, 2) is Block.AIR
    assert drone.inventory[0].item is Item.DIRT
    assert drone.inventory[0].count == 1
    assert drone.is_command_valid is True


def test_break_grass_with_silk_touch():
    level = LevelState(1, 1, 1)
    level.set_block(2, 0, 2, Block.GRASS)
    drone = Drone(
        command=Break(Direction.DOWN),
        capabilities=DroneCapability(flags=DroneCapabilityFlags.SILK_TOUCH),
    )
    drone.inventory[0] = ItemSlot(slot_flags=SlotFlags.INSERT)
    _add(level, 2, 1, 2, drone)
    run_break_mine_commands(level, CoordMap(level), random.Random(0))
    assert drone.inventory[0].item is Item.GRASS


def test_break_air_or_outside_is_invalid():
    level = LevelState(1, 1, 1)
    air = Drone(command=Break(Direction.DOWN))
    edge = Drone(command=Break(Direction.RIGHT))
    _add(level, 2, 1, 2, air)
    _add(level, 0, 1, 5, edge)
    run_break_mine_commands(level, CoordMap(level), random.Random(0))
    assert air.is_command_valid is False
    assert edge.is_command_valid is False


def test_break_iron_ore_removes_entity():
    level = LevelState(1, 1, 1)
    ore_id = IronOre(10).place(level, 2, 0, 2)
    drone = Drone(command=Break(Direction.DOWN))
    _add(level, 2, 1, 2, drone)
    run_break_mine_commands(level, CoordMap(level), random.Random(1))
    assert level.get_block(2, 0, 2) is Block.AIR
    assert level.block_entities.get(ore_id) is None
    assert ore_id in level.block_entities.pop_removed()


def test_mine_success_takes_one_ore():
    level = LevelState(1, 1, 1)
    ore = IronOre(5)
    ore_id = ore.place(level, 2, 0, 2)
    level.block_entities.get(ore_id).mark_clean()
    drone = Drone(command=Mine(Direction.DOWN))
    drone.inventory[0] = ItemSlot(slot_flags=SlotFlags.INSERT)
    _add(level, 2, 1, 2, drone)
    run_break_mine_commands(level, CoordMap(level), _FixedRng(0.0))
    assert ore.quantity == 4
    assert drone.inventory[0].item is Item.IRON_ORE
    assert drone.inventory[0].count == 1
    assert level.block_entities.get(ore_id).dirty is True
    assert level.get_block(2, 0, 2) is Block.IRON_ORE


def test_mine_failure_keeps_ore():
    level = LevelState(1, 1, 1)
    ore = IronOre(5)
    ore.place(level, 2, 0, 2)
    drone = Drone(command=Mine(Direction.DOWN))
    drone.inventory[0] = ItemSlot(slot_flags=SlotFlags.INSERT)
    _add(level, 2, 1, 2, drone)
    run_break_mine_commands(level, CoordMap(level), _FixedRng(0.99))
    assert ore.quantity == 5
    assert drone.inventory[0].is_empty()
    assert drone.is_command_valid is True


def test_mine_non_ore_is_invalid():
    level = LevelState(1, 1, 1)
    level.set_block(2, 0, 2, Block.DIRT)
    drone = Drone(command=Mine(Direction.DOWN))
    _add(level, 2, 1, 2, drone)
    run_break_mine_commands(level, CoordMap(level), random.Random(0))
    assert drone.is_command_valid is False
    assert level.get_block(2, 0, 2) is Block.DIRT


def test_summon_from_tower():
    level = LevelState(1, 1, 1)
    exec_ctx = ExecutionContext("prog", ["a"], [("K", "V")])
    caps = DroneCapabilityFlags.MOVING | DroneCapabilityFlags.EXTENDED_INVENTORY
    tower = CentralTower(
        command=Summon(Direction.LEFT, exec_ctx, caps),
        capabilities=DroneCapability(flags=DroneCapabilityFlags.DRONE_SUMMON),
    )
    tower_id = _add(level, 5, 5, 5, tower)
    run_summon_commands(level, CoordMap(level))
    spawned = [e for k, e in level.block_entities.entries() if k != tower_id]
    assert len(spawned) == 1
    new = spawned[0]
    assert (new.x, new.y, new.z) == (7, 5, 5)
    assert new.data.exec == exec_ctx
    assert new.data.capabilities.flags == caps
    assert len(new.data.capabilities.ext_inventory) == INVENTORY_SIZE
    assert tower.command.exec == ExecutionContext()
    assert tower.is_command_valid is True


def test_summon_without_capability():
    level = LevelState(1, 1, 1)
    drone = Drone(
        command=Summon(Direction.LEFT, ExecutionContext("prog"), DroneCapabilityFlags(0))
    )
    _add(level, 5, 5, 5, drone)
    run_summon_commands(level, CoordMap(level))
    assert len(level.block_entities) == 1
    assert drone.is_command_valid is False


def test_summon_conflict_and_solid_target():
    level = LevelState(1, 1, 1)
    caps = DroneCapability(flags=DroneCapabilityFlags.DRONE_SUMMON)
    first = Drone(
        command=Summon(Direction.LEFT, ExecutionContext(), DroneCapabilityFlags(0)),
        capabilities=caps,
    )
    second = Drone(
        command=Summon(Direction.RIGHT, ExecutionContext(), DroneCapabilityFlags(0)),
        capabilities=DroneCapability(flags=DroneCapabilityFlags.DRONE_SUMMON),
    )
    blocked = Drone(
        command=Summon(Direction.UP, ExecutionContext(), DroneCapabilityFlags(0)),
        capabilities=DroneCapability(flags=DroneCapabilityFlags.DRONE_SUMMON),
    )
    _add(level, 4, 5, 5, first)
    _add(level, 6, 5, 5, second)
    _add(level, 9, 5, 9, blocked)
    level.set_block(9, 6, 9, Block.DIRT)
    run_summon_commands(level, CoordMap(level))
    assert len(level.block_entities) == 4
    assert first.is_command_valid is True
    assert second.is_command_valid is False
    assert blocked.is_command_valid is False
    positions = {(e.x, e.y, e.z) for _, e in level.block_entities.entries()}
    assert (5, 5, 5) in positions
    assert (9, 6, 9) not in positions