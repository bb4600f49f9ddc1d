"""Items, inventory slots and item stacks."""

from __future__ import annotations

from dataclasses import dataclass
from enum import IntEnum, IntFlag
from collections.abc import MutableSequence, Sequence

from dronelevel.block import Block

__all__ = ["Item", "SlotFlags", "ItemCountError", "ItemSlot", "ItemStack"]


class Item(IntEnum):
    """An item kind, stored on the wire as a 16-bit value."""

    AIR = 0
    DIRT = 1
    GRASS = 2
    IRON_ORE = 0x0100
    UNKNOWN = 0xFFFF

    @classmethod
    def from_value(cls, value: int) -> Item:
        """Decode a raw value; anything unrecognised becomes UNKNOWN."""
        try:
            return cls(value)
        except ValueError:
            return cls.UNKNOWN

    def stack_count(self) -> int:
        """Maximum number of this item that fits in one slot."""
        return 0 if self is Item.AIR else 64

    def place_block(self) -> Block | None:
        """The block this item places, if any."""
        return _PLACE_BLOCK.get(self)


_PLACE_BLOCK = {Item.DIRT: Block.DIRT, Item.GRASS: Block.GRASS}


class SlotFlags(IntFlag):
    """Permissions and behaviour of an inventory slot."""

    INSERT = 0b0000_0001
    EXTRACT = 0b0000_0010
    TYPED = 0b1000_0000


_INSERT_EXTRACT = SlotFlags.INSERT | SlotFlags.EXTRACT


class ItemCountError(ValueError):
    """A slot holds more items than its item allows."""

    def __init__(self, count: int, maximum: int) -> None:
        super().__init__(f"item count overflow (maximum is {maximum}, got {count})")
        self.count = count
        self.maximum = maximum


class ItemSlot:
    """One inventory slot: an item kind, a count and slot flags.

    Transfer methods take an optional ``limit`` on how many items may move;
    ``None`` means unlimited. They return the limit left afterwards.
    """

    __slots__ = ("_item", "_count", "slot_flags")

    def __init__(
        self,
        item: Item = Item.AIR,
        count: int = 0,
        slot_flags: SlotFlags = SlotFlags(0),
    ) -> None:
        self._item = Item(item)
        self._count = count
        self.slot_flags = SlotFlags(slot_flags)

    @classmethod
    def with_item(cls, item: Item, count: int) -> ItemSlot:
        """A slot holding ``item``, with ``count`` clamped to the stack size."""
        return cls(item, min(count, item.stack_count()))

    @property
    def item(self) -> Item:
        return self._item

    @item.setter
    def item(self, item: Item) -> None:
        self._item = item
        self._count = min(self._count, item.stack_count())

    @property
    def count(self) -> int:
        return self._count

    @count.setter
    def count(self, n: int) -> None:
        if n == 0:
            if not self.slot_flags & SlotFlags.TYPED:
                self._item = Item.AIR
            self._count = 0
            return
        self._count = min(n, self._item.stack_count())

    def __eq__(self, other: object) -> bool:
        if isinstance(other, ItemSlot):
            return (self._item, self._count, self.slot_flags) == (
                other._item,
                other._count,
                other.slot_flags,
            )
        if isinstance(other, Item):
            return self._item == other
        return NotImplemented

    __hash__ = None  # type: ignore[assignment]

    def __repr__(self) -> str:
        return (
            f"ItemSlot(item={self._item!r}, count={self._count}, "
            f"slot_flags={self.slot_flags!r})"
        )

    def _has(self, flag: SlotFlags) -> bool:
        return (self.slot_flags & flag) == flag

    def is_empty(self) -> bool:
        return self._count == 0

    def is_full(self) -> bool:
        return self._item is not Item.AIR and self._count == self._item.stack_count()

    def add_item(self, n: int) -> int:
        """Add up to ``n`` items; return how many did not fit."""
        total = self._count + n
        maximum = self._item.stack_count()
        if total <= maximum:
            self._count = total
            return 0
        self._count = maximum
        return total - maximum

    def remove_item(self, n: int) -> int:
        """Remove up to ``n`` items; return how many were removed."""
        if self._count >= n:
            self._count -= n
            return n
        removed, self._count = self._count, 0
        return removed

    def validate(self) -> None:
        """Raise ItemCountError if the count exceeds the stack size."""
        maximum = self._item.stack_count()
        if self._count > maximum:
            raise ItemCountError(self._count, maximum)

    def swap_slot(self, other: ItemSlot) -> None:
        """Exchange contents with ``other``, honouring typed slots."""
        if not self._has(_INSERT_EXTRACT) or not other._has(_INSERT_EXTRACT):
            return

        self_typed = self._has(SlotFlags.TYPED)
        other_typed = other._has(SlotFlags.TYPED)
        if self._item is Item.AIR and other._item is Item.AIR:
            return
        if not self_typed and not other_typed:
            self._item, other._item = other._item, self._item
        elif self_typed and other._item is Item.AIR:
            other._item = self._item
        elif other_typed and self._item is Item.AIR:
            self._item = other._item
        elif self._item != other._item:
            return

        self._count, other._count = other._count, self._count

    def transfer_slot(self, src: ItemSlot, limit: int | None) -> int | None:
        """Move items from ``src`` into this slot; return the remaining limit."""
        if (
            limit == 0
            or src.is_empty()
            or not src._has(SlotFlags.EXTRACT)
            or not self._has(SlotFlags.INSERT)
        ):
            return limit

        if src._item is Item.AIR:
            return limit

        if self._item is Item.AIR:
            self._item = src._item
            if limit is not None:
                if src._count > limit:
                    self._count = limit
                    src._count -= limit
                    return 0
                limit -= src._count
            if not src._has(SlotFlags.TYPED):
                src._item = Item.AIR
            self._count, src._count = src._count, 0
            return limit

        if src._item != self._item:
            return limit

        if limit is not None:
            if src._count > limit:
                leftover = self.add_item(limit)
                src._count = src._count - limit + leftover
                limit = leftover
            else:
                before = src._count
                src._count = self.add_item(src._count)
                limit -= before - src._count
        else:
            src._count = self.add_item(src._count)

        if src._count == 0 and not src._has(SlotFlags.TYPED):
            src._item = Item.AIR
        return limit

    def push_inventory(
        self, inventory: Sequence[ItemSlot], limit: int | None
    ) -> int | None:
        """Spread this slot's items over ``inventory``, filled slots first."""
        if limit == 0 or self.is_empty() or not self._has(SlotFlags.EXTRACT):
            return limit

        for want_filled in (True, False):
            for slot in inventory:
                if slot.is_empty() == want_filled or not slot._has(SlotFlags.INSERT):
                    continue
                limit = slot.transfer_slot(self, limit)
                if self.is_empty() or limit == 0:
                    return limit
        return limit

    def pull_inventory(
        self, inventory: Sequence[ItemSlot], limit: int | None
    ) -> int | None:
        """Fill this slot from the extractable slots of ``inventory``."""
        if limit == 0 or self.is_full() or not self._has(SlotFlags.INSERT):
            return limit

        for slot in inventory:
            if slot.is_empty() or not slot._has(SlotFlags.EXTRACT):
                continue
            limit = self.transfer_slot(slot, limit)
            if self.is_full() or limit == 0:
                return limit
        return limit

    @staticmethod
    def transfer_inventory(
        dst: Sequence[ItemSlot], src: Sequence[ItemSlot], limit: int | None
    ) -> tuple[bool, int | None]:
        """Move items from ``src`` to ``dst``.

        Returns whether some items could not be placed, and the remaining limit.
        """
        if (
            limit == 0
            or not any(
                not s.is_empty() and s._has(SlotFlags.EXTRACT) for s in src
            )
            or not any(not d.is_full() and d._has(SlotFlags.INSERT) for d in dst)
        ):
            return False, limit

        for s in src:
            if s.is_empty() or not s._has(SlotFlags.EXTRACT):
                continue
            for d in dst:
                if d.is_empty() or not d._has(SlotFlags.INSERT):
                    continue
                limit = d.transfer_slot(s, limit)
                if limit == 0:
                    return False, limit
                if s.is_empty():
                    break

        leftover = False
        for s in src:
            if s.is_empty() or not s._has(SlotFlags.EXTRACT):
                continue
            for d in dst:
                if not d.is_empty() or not d._has(SlotFlags.INSERT):
                    continue
                limit = d.transfer_slot(s, limit)
                if limit == 0:
                    return False, limit
                if s.is_empty():
                    break
            else:
                leftover = True

        return leftover, limit


@dataclass
class ItemStack:
    """An unbounded quantity of one item, e.g. drops from a broken block."""

    item: Item
    count: int

    def put_slot(self, dst: ItemSlot) -> None:
        """Put as much of this stack as one slot holds into ``dst``."""
        if self.count == 0 or not dst._has(SlotFlags.INSERT):
            return
        if dst._item is Item.AIR:
            dst._item = self.item
        elif dst._item != self.item:
            return
        n = min(min(self.count, 255), self.item.stack_count())
        dst._count = n
        self.count -= n

    @staticmethod
    def put_inventory(
        stacks: MutableSequence[ItemStack], slots: Sequence[ItemSlot]
    ) -> bool:
        """Place stacks into slots; return whether anything is left over."""
        leftover = False
        for want_filled in (True, False):
            if want_filled is False and not leftover:
                return False
            leftover = False
            for stack in stacks:
                if stack.count == 0:
                    continue
                for slot in slots:
                    if slot.is_empty() == want_filled or not slot._has(SlotFlags.INSERT):
                        continue
                    stack.put_slot(slot)
                    if stack.count == 0:
                        break
                else:
                    leftover = True
        return leftover