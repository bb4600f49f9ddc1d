import copy

import pytest

from dronelevel.block import Block
from dronelevel.item import Item, ItemCountError, ItemSlot, ItemStack, SlotFlags

IO = SlotFlags.INSERT | SlotFlags.EXTRACT


def _io(item=Item.AIR, count=0, extra=SlotFlags(0)):
    return ItemSlot(item, count, IO | extra)


def test_item_from_value_round_trip_and_unknown():
    for item in Item:
        assert Item.from_value(int(item)) is item
    assert Item.from_value(0x0200) is Item.UNKNOWN


def test_item_stack_count_and_place_block():
    assert Item.AIR.stack_count() == 0
    assert Item.DIRT.stack_count() == 64
    assert Item.UNKNOWN.stack_count() == 64
    assert Item.DIRT.place_block() is Block.DIRT
    assert Item.GRASS.place_block() is Block.GRASS
    assert Item.IRON_ORE.place_block() is None
    assert Item.UNKNOWN.place_block() is None


def test_slot_flag_values():
    dst = ItemSlot(Item.AIR, 0, SlotFlags(0b11))
    src = _io(Item.DIRT, 4)
    dst.transfer_slot(src, None)
    assert dst.count == 4
    assert src.is_empty()

    typed = ItemSlot(Item.DIRT, 1, SlotFlags(0b1000_0011))
    typed.count = 0
    assert typed.item is Item.DIRT
    assert typed.is_empty()


def test_with_item_clamps_count():
    slot = ItemSlot.with_item(Item.DIRT, 200)
    assert slot.count == Item.DIRT.stack_count()
    assert slot == Item.DIRT
    assert slot.is_full()


def test_count_setter_zero_clears_untyped_item():
    slot = ItemSlot(Item.DIRT, 5)
    slot.count = 0
    assert slot.item is Item.AIR
    typed = ItemSlot(Item.DIRT, 5, SlotFlags.TYPED)
    typed.count = 0
    assert typed.item is Item.DIRT
    assert typed.is_empty()


def test_setters_clamp():
    slot = ItemSlot(Item.DIRT, 5)
    slot.count = 1000
    assert slot.count == Item.DIRT.stack_count()
    slot.item = Item.AIR
    assert slot.count == 0


def test_add_item_conserves_overflow():
    slot = ItemSlot(Item.DIRT, 60)
    rest = slot.add_item(10)
    assert slot.count == Item.DIRT.stack_count()
    assert slot.count + rest == 70
    assert ItemSlot(Item.DIRT, 1).add_item(3) == 0


def test_remove_item():
    slot = ItemSlot(Item.DIRT, 5)
    assert slot.remove_item(2) == 2
    assert slot.count == 3
    assert slot.remove_item(10) == 3
    assert slot.count == 0


def test_validate():
    ItemSlot(Item.DIRT, Item.DIRT.stack_count()).validate()
    with pytest.raises(ItemCountError) as info:
        ItemSlot(Item.DIRT, Item.DIRT.stack_count() + 1).validate()
    assert info.value.maximum == Item.DIRT.stack_count()
    assert "item count overflow" in str(info.value)


def test_swap_requires_flags():
    a = ItemSlot(Item.DIRT, 5)
    b = _io(Item.GRASS, 3)
    before = (copy.copy(a), copy.copy(b))
    a.swap_slot(b)
    assert (a, b) == before


def test_swap_untyped_exchanges():
    a = _io(Item.DIRT, 5)
    b = _io(Item.GRASS, 3)
    a.swap_slot(b)
    assert (a.item, a.count) == (Item.GRASS, 3)
    assert (b.item, b.count) == (Item.DIRT, 5)


def test_swap_typed_into_empty_keeps_type():
    a = _io(Item.DIRT, 5, SlotFlags.TYPED)
    b = _io()
    a.swap_slot(b)
    assert (b.item, b.count) == (Item.DIRT, 5)
    assert a.item is Item.DIRT and a.is_empty()


def test_swap_typed_mismatch_is_noop():
    a = _io(Item.DIRT, 5, SlotFlags.TYPED)
    b = _io(Item.GRASS, 3)
    a.swap_slot(b)
    assert (a.item, a.count, b.item, b.count) == (Item.DIRT, 5, Item.GRASS, 3)


def test_transfer_into_empty_unlimited():
    dst, src = _io(), _io(Item.DIRT, 20)
    assert dst.transfer_slot(src, None) is None
    assert (dst.item, dst.count) == (Item.DIRT, 20)
    assert src.item is Item.AIR and src.is_empty()


def test_transfer_into_empty_limited():
    dst, src = _io(), _io(Item.DIRT, 20)
    assert dst.transfer_slot(src, 7) == 0
    assert dst.count == 7
    assert src.count == 20 - 7
    assert src.item is Item.DIRT


def test_transfer_same_item_limited_conserves():
    dst, src = _io(Item.DIRT, 60), _io(Item.DIRT, 10)
    left = dst.transfer_slot(src, 8)
    assert dst.is_full()
    assert dst.count + src.count == 70
    assert left == 8 - (dst.count - 60)


def test_transfer_mismatch_and_zero_limit_noop():
    dst, src = _io(Item.GRASS, 1), _io(Item.DIRT, 10)
    assert dst.transfer_slot(src, None) is None
    assert (dst.count, src.count) == (1, 10)
    empty = _io()
    assert empty.transfer_slot(src, 0) == 0
    assert empty.is_empty()


def test_transfer_needs_insert_and_extract():
    dst = ItemSlot(Item.AIR, 0, SlotFlags.EXTRACT)
    src = _io(Item.DIRT, 10)
    dst.transfer_slot(src, None)
    assert dst.is_empty() and src.count == 10


def test_push_inventory_prefers_filled_slots():
    inv = [_io(), _io(Item.DIRT, 10)]
    src = _io(Item.DIRT, 20)
    assert src.push_inventory(inv, None) is None
    assert inv[0].is_empty()
    assert inv[1].count == 30
    assert src.is_empty()


def test_pull_inventory_until_full():
    inv = [_io(Item.DIRT, 40), _io(Item.GRASS, 5), _io(Item.DIRT, 40)]
    dst = _io()
    dst.pull_inventory(inv, None)
    assert dst.is_full() and dst.item is Item.DIRT
    assert inv[1].count == 5
    assert dst.count + inv[0].count + inv[2].count == 80


def test_transfer_inventory_all_fit():
    dst = [_io(), _io()]
    src = [_io(Item.DIRT, 50)]
    assert ItemSlot.transfer_inventory(dst, src, None) == (False, None)
    assert dst[0].count == 50 and src[0].is_empty()


def test_transfer_inventory_leftover():
    dst = [_io()]
    src = [_io(Item.DIRT, 50), _io(Item.GRASS, 30)]
    more, left = ItemSlot.transfer_inventory(dst, src, None)
    assert more is True and left is None
    assert dst[0].item is Item.DIRT
    assert src[1].count == 30


def test_transfer_inventory_limit_exhausted():
    dst = [_io()]
    src = [_io(Item.DIRT, 50)]
    assert ItemSlot.transfer_inventory(dst, src, 20) == (False, 0)
    assert dst[0].count + src[0].count == 50
    assert dst[0].count == 20


def test_put_slot():
    stack = ItemStack(Item.DIRT, 100)
    slot = _io()
    stack.put_slot(slot)
    assert slot.item is Item.DIRT and slot.is_full()
    assert stack.count + slot.count == 100
    closed = ItemSlot()
    stack.put_slot(closed)
    assert closed.is_empty() and closed.item is Item.AIR


def test_put_inventory_fits():
    stacks = [ItemStack(Item.DIRT, 100)]
    slots = [_io(), _io()]
    assert ItemStack.put_inventory(stacks, slots) is False
    assert stacks[0].count == 0
    assert sum(s.count for s in slots) == 100


def test_put_inventory_leftover():
    stacks = [ItemStack(Item.DIRT, 100)]
    slots = [_io()]
    assert ItemStack.put_inventory(stacks, slots) is True
    assert stacks[0].count + slots[0].count == 100
    assert slots[0].is_full()