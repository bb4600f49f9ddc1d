"""Block kinds that make up the voxel grid."""

from __future__ import annotations

from enum import IntEnum

__all__ = ["Block"]


class Block(IntEnum):
    """A block kind, stored on the wire as a 16-bit value."""

    AIR = 0
    DIRT = 1
    GRASS = 2
    IRON_ORE = 0x0100
    CENTRAL_TOWER_000 = 0x1000
    CENTRAL_TOWER_001 = 0x1001
    CENTRAL_TOWER_002 = 0x1002
    CENTRAL_TOWER_010 = 0x1004
    CENTRAL_TOWER_011 = 0x1005
    CENTRAL_TOWER_012 = 0x1006
    CENTRAL_TOWER_020 = 0x1008
    CENTRAL_TOWER_021 = 0x1009
    CENTRAL_TOWER_022 = 0x100A
    CENTRAL_TOWER_100 = 0x1010
    CENTRAL_TOWER_101 = 0x1011
    CENTRAL_TOWER_102 = 0x1012
    CENTRAL_TOWER_110 = 0x1014
    CENTRAL_TOWER_111 = 0x1015
    CENTRAL_TOWER_112 = 0x1016
    CENTRAL_TOWER_120 = 0x1018
    CENTRAL_TOWER_121 = 0x1019
    CENTRAL_TOWER_122 = 0x101A
    CENTRAL_TOWER_200 = 0x1020
    CENTRAL_TOWER_201 = 0x1021
    CENTRAL_TOWER_202 = 0x1022
    CENTRAL_TOWER_210 = 0x1024
    CENTRAL_TOWER_211 = 0x1025
    CENTRAL_TOWER_212 = 0x1026
    CENTRAL_TOWER_220 = 0x1028
    CENTRAL_TOWER_221 = 0x1029
    CENTRAL_TOWER_222 = 0x102A
    UNKNOWN = 0xFFFF

    @classmethod
    def from_value(cls, value: int) -> Block:
        """Decode a raw value; anything unrecognised becomes UNKNOWN."""
        try:
            return cls(value)
        except ValueError:
            return cls.UNKNOWN

    def is_full_block(self) -> bool:
        """Whether the block fills its whole cell and hides neighbouring faces."""
        return self in _FULL_BLOCKS

    def is_solid(self) -> bool:
        """Whether the block obstructs movement."""
        return self is not Block.AIR


_FULL_BLOCKS = frozenset({Block.DIRT, Block.GRASS, Block.UNKNOWN})