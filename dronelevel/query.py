"""Ray queries against a level: which block or entity a ray hits first."""

from __future__ import annotations

import math
import uuid
from collections.abc import Sequence
from dataclasses import dataclass

from dronelevel.level import CHUNK_SIZE, LevelState

__all__ = ["MAX_RADIUS", "RayHit", "query_ray"]

MAX_RADIUS = 64.0

_COORD_LIMIT = 2.0**31

Coord = tuple[int, int, int]


@dataclass(frozen=True)
class RayHit:
    """The cell a ray stopped at, and the entity there if there is one."""

    point: Coord
    uuid: uuid.UUID | None = None


@dataclass
class _AxisWalker:
    """Steps a ray through cell boundaries along one axis."""

    origin: float
    normal: float
    cur: int
    positive: bool
    t: float = 0.0

    @classmethod
    def start(cls, origin: float, normal: float) -> _AxisWalker:
        cur = 0 if math.isnan(origin) else int(origin)
        walker = cls(origin, normal, cur, math.copysign(1.0, normal) > 0)
        while True:
            walker.calc_t()
            if walker.t >= 0.0:
                return walker
            walker.step()

    def calc_t(self) -> None:
        boundary = float(self.cur + (1 if self.positive else 0))
        if self.normal == 0.0:
            t = math.inf
        else:
            t = (boundary - self.origin) / self.normal
        if math.isnan(t) or t == -math.inf:
            t = math.inf
        self.t = t

    def step(self) -> None:
        self.cur += 1 if self.positive else -1


def query_ray(
    level: LevelState,
    origin: Sequence[float],
    direction: Sequence[float],
) -> RayHit | None:
    """Walk a ray from ``origin`` along ``direction`` for up to MAX_RADIUS.

    Returns the first cell holding a block entity or a solid block, or None.
    """
    if any(c <= -_COORD_LIMIT or c >= _COORD_LIMIT for c in origin):
        return None

    sx, sy, sz = level.chunk_size
    entity_at: dict[Coord, uuid.UUID] = {
        (e.x, e.y, e.z): key for key, e in level.block_entities.entries()
    }

    def check(x: int, y: int, z: int) -> RayHit | None:
        if (
            x < 0
            or y < 0
            or z < 0
            or x // CHUNK_SIZE >= sx
            or y // CHUNK_SIZE >= sy
            or z // CHUNK_SIZE >= sz
        ):
            return None
        point = (x, y, z)
        key = entity_at.get(point)
        if key is not None:
            return RayHit(point, key)
        if level.get_block(x, y, z).is_solid():
            return RayHit(point)
        return None

    walkers = [_AxisWalker.start(o, n) for o, n in zip(origin, direction)]

    def current() -> RayHit | None:
        return check(*(w.cur for w in walkers))

    hit = current()
    while hit is None:
        nearest: _AxisWalker | None = None
        for walker in walkers:
            if walker.t <= MAX_RADIUS and (nearest is None or nearest.t > walker.t):
                nearest = walker
        if nearest is None:
            return None
        nearest.step()
        nearest.calc_t()
        hit = current()
    return hit