# dronelevel

A voxel world for a drone automation game. It holds chunked level state,
blocks, items and inventories, and block entities (iron ore, drones, central
towers). It runs a per-tick simulation of drone commands and block growth,
builds chunk meshes, answers ray queries and reads and writes a compact
binary level format.

The package has no dependencies outside the standard library.

## Installation

```
pip install .
```

To run the tests:

```
pip install ".[test]"
pytest
```

## Modules

- `dronelevel.block`: `Block` kinds with `is_full_block()` and
  `is_solid()`. `Block.from_value` turns unrecognised values into
  `Block.UNKNOWN`.
- `dronelevel.item`: `Item`, `SlotFlags`, `ItemSlot` and `ItemStack`.
  - Slots honour the `INSERT`, `EXTRACT` and `TYPED` flags in
    `swap_slot`, `transfer_slot`, `push_inventory`, `pull_inventory` and
    `ItemSlot.transfer_inventory`.
  - These methods take an optional `limit`, where `None` means unlimited, and
    return the limit that is left.
  - `ItemSlot.validate` raises `ItemCountError` when a slot holds more than its
    item's stack size.
- `dronelevel.drone`: `Drone` and its `DroneCapability`.
  - Capability flags: `DroneCapabilityFlags`.
  - Addressing: `Direction`, `InventoryType` and `InventorySlot`.
  - Commands: `Noop`, `Move`, `Place`, `Break`, `Mine`, `PullInventory`,
    `PushInventory`, `InventoryOps` and `Summon`.
  - Inventory operations: `Swap`, `Transfer`, `Pull` and `Push`.
- `dronelevel.entity`: `IronOre`, `CentralTower`, `BlockEntity` and the
  `BlockEntities` registry. The registry keys entities by UUID and remembers
  removed ids until `pop_removed()` is called.
- `dronelevel.level`: `LevelState`, a grid of 16×16×16 `Chunk`s plus its
  block entities. It provides `get_block`, `set_block`, `break_block`
  (with a `BreakCapability`) and `validate`, which raises `LevelStateError`.
- `dronelevel.commands`: the inventory, break/mine and summon steps of a tick.
  It also has `CoordMap`, `move_coord`, `get_inventory` and `get_slot_at`.
- `dronelevel.tick`: `update(level, rng)` runs one whole tick. The tick has
  these steps:
  1. Drone commands, including `run_move_commands` and `clear_commands`.
  2. `random_tick`: `UPDATE_RATE` random blocks per chunk are ticked. Covered
     grass turns to dirt. Uncovered dirt near grass turns to grass
     (`scan_block`).
- `dronelevel.render`: `render_chunk(level, x, y, z)` returns a `ChunkMesh`
  and marks the chunk clean.
  - The mesh holds vertices, normals, tangents, UVs and triangle indices.
  - A chunk that is not dirty gives an empty mesh with `dirty=False`.
  - Chunk coordinates outside the level raise `IndexError`.
- `dronelevel.query`: `query_ray(level, origin, direction)` walks a ray for up
  to `MAX_RADIUS` cells. It returns a `RayHit` for the first block entity or
  solid block, or `None`.
- `dronelevel.generate`: `generate()` builds the starting level, which has:
  - 16×16×16 chunks;
  - a grass floor;
  - an iron ore field;
  - four drones.
- `dronelevel.codec`: `dumps_level`/`loads_level` and
  `dumps_command`/`loads_command`. Bad data raises `CodecError`.
  - A drone's pending command and program are not stored.
  - Dirty flags are not stored; everything comes back dirty.
- `dronelevel.controller`: `LevelController` keeps the live level and a
  censored copy of it. It has `init`, `import_level`, `export`,
  `export_censored`, `render_chunk`, `entity_update`, `set_command` and
  `tick`. Changes to entities are reported as event objects:
  - `EntityRemoved`
  - `IronOreUpdate`
  - `DroneUpdate`
  - `DroneExec`
  - `CentralTowerUpdate`

## Example

```python
from dronelevel.codec import dumps_command, dumps_level
from dronelevel.controller import DroneUpdate, LevelController
from dronelevel.drone import Direction, Move
from dronelevel.generate import generate

controller = LevelController(seed=1)
controller.import_level(dumps_level(generate()))

events = controller.entity_update()
drone_id = next(e.entity_id for e in events if isinstance(e, DroneUpdate))

accepted = controller.set_command(drone_id, dumps_command(Move(Direction.LEFT)))
controller.tick()

mesh = controller.render_chunk(0, 0, 0)
saved = controller.export()
censored = controller.export_censored()
```

For a reproducible tick without a controller, call
`dronelevel.tick.update(level, random.Random(seed))` on a `LevelState`.

## What it does not do

This is a library with no command-line tool and no server. It does not start
the programs described by a drone's or tower's `ExecutionContext`. It hands
them to the caller as `DroneExec` and `CentralTowerUpdate` events from
`entity_update()`. Running them, drawing meshes and storing levels is left to
the host application.