"""Triangle meshes for the visible faces of a chunk's blocks."""

from __future__ import annotations

from collections.abc import Sequence
from dataclasses import dataclass, field

from dronelevel.block import Block
from dronelevel.level import CHUNK_SIZE, Chunk, LevelState

__all__ = ["ChunkMesh", "draw_block", "render_chunk"]

Vec2 = tuple[float, float]
Vec3 = tuple[float, float, float]
Vec4 = tuple[float, float, float, float]

_QUAD_INDICES = (0, 3, 1, 0, 2, 3)

_X: Vec3 = (1.0, 0.0, 0.0)
_Y: Vec3 = (0.0, 1.0, 0.0)
_Z: Vec3 = (0.0, 0.0, 1.0)
_NEG_X: Vec3 = (-1.0, 0.0, 0.0)
_NEG_Y: Vec3 = (0.0, -1.0, 0.0)
_NEG_Z: Vec3 = (0.0, 0.0, -1.0)

_ATLAS = 64.0
_DUV: Vec2 = (1.0 / _ATLAS, 1.0 / _ATLAS)
_BLOCK_UV: dict[Block, Vec2] = {
    Block.DIRT: (0.0 / _ATLAS, 0.0 / _ATLAS),
    Block.GRASS: (1.0 / _ATLAS, 0.0 / _ATLAS),
}


@dataclass
class ChunkMesh:
    """Vertex attributes and triangle indices of one chunk.

    ``dirty`` is False when the chunk had not changed since it was last
    rendered; the mesh is then empty and the previous one still applies.
    """

    dirty: bool = False
    vertex: list[Vec3] = field(default_factory=list)
    normal: list[Vec3] = field(default_factory=list)
    tangent: list[Vec4] = field(default_factory=list)
    uv: list[Vec2] = field(default_factory=list)
    index: list[int] = field(default_factory=list)


def _add(a: tuple[float, ...], b: tuple[float, ...]) -> tuple[float, ...]:
    return tuple(p + q for p, q in zip(a, b))


def _quad(
    mesh: ChunkMesh,
    corners: Sequence[Vec3],
    normal: Vec3,
    tangent: Vec3,
    uvs: Sequence[Vec2],
) -> None:
    base = len(mesh.vertex)
    mesh.vertex.extend(corners)
    mesh.normal.extend([normal] * 4)
    mesh.tangent.extend([(*tangent, 1.0)] * 4)
    mesh.uv.extend(uvs)
    mesh.index.extend(base + i for i in _QUAD_INDICES)


def draw_block(
    mesh: ChunkMesh,
    corner: Vec3,
    uv: Vec2,
    duv: Vec2,
    faces: Sequence[bool],
) -> None:
    """Append the faces of a unit cube at ``corner`` to ``mesh``.

    ``faces`` says which faces to draw, in the order +x, +y, +z, -x, -y, -z.
    """
    uvs = [uv, _add(uv, (duv[0], 0.0)), _add(uv, (0.0, duv[1])), _add(uv, duv)]

    c000 = tuple(map(float, corner))
    c100 = _add(c000, _X)
    c010 = _add(c000, _Y)
    c001 = _add(c000, _Z)
    c110 = _add(c100, _Y)
    c011 = _add(c010, _Z)
    c101 = _add(c001, _X)
    c111 = _add(c110, _Z)

    left, up, front, right, down, back = faces
    if up:
        _quad(mesh, [c110, c010, c111, c011], _Y, _NEG_X, uvs)
    if down:
        _quad(mesh, [c101, c001, c100, c000], _NEG_Y, _NEG_X, uvs)
    if left:
        _quad(mesh, [c101, c100, c111, c110], _X, _NEG_Z, uvs)
    if right:
        _quad(mesh, [c000, c001, c010, c011], _NEG_X, _Z, uvs)
    if front:
        _quad(mesh, [c001, c101, c011, c111], _Z, _X, uvs)
    if back:
        _quad(mesh, [c100, c000, c110, c010], _NEG_Z, _NEG_X, uvs)


def render_chunk(level: LevelState, x: int, y: int, z: int) -> ChunkMesh:
    """Mesh the chunk at chunk coordinates (x, y, z) if it changed.

    Rendering marks the chunk clean. Raises IndexError for a chunk outside
    the level.
    """
    sx, sy, sz = level.chunk_size
    if not (0 <= x < sx and 0 <= y < sy and 0 <= z < sz):
        raise IndexError(f"chunk index ({x}, {y}, {z}) overflows level")

    i = (y * sz + z) * sx + x
    chunks = level.chunks
    chunk = chunks[i]
    mesh = ChunkMesh()
    if not chunk.dirty:
        return mesh
    chunk.mark_clean()

    cl = chunks[i + 1] if x < sx - 1 else None
    cr = chunks[i - 1] if x > 0 else None
    cf = chunks[i + sx] if z < sz - 1 else None
    cb = chunks[i - sx] if z > 0 else None
    cu = chunks[i + sx * sz] if y < sy - 1 else None
    cd = chunks[i - sx * sz] if y > 0 else None

    blocks = chunk.blocks
    last = CHUNK_SIZE - 1
    layer = CHUNK_SIZE * CHUNK_SIZE

    def across(other: Chunk | None, bx: int, by: int, bz: int) -> Block | None:
        return other.get_block(bx, by, bz) if other is not None else None

    for bi, block in enumerate(blocks):
        uv = _BLOCK_UV.get(block)
        if uv is None:
            continue
        bx = bi % CHUNK_SIZE
        bz = (bi // CHUNK_SIZE) % CHUNK_SIZE
        by = bi // layer

        neighbours = (
            blocks[bi + 1] if bx < last else across(cl, 0, by, bz),
            blocks[bi + layer] if by < last else across(cu, bx, 0, bz),
            blocks[bi + CHUNK_SIZE] if bz < last else across(cf, bx, by, 0),
            blocks[bi - 1] if bx > 0 else across(cr, last, by, bz),
            blocks[bi - layer] if by > 0 else across(cd, bx, last, bz),
            blocks[bi - CHUNK_SIZE] if bz > 0 else across(cb, bx, by, last),
        )
        faces = [n is None or not n.is_full_block() for n in neighbours]
        draw_block(mesh, (float(bx), float(by), float(bz)), uv, _DUV, faces)

    mesh.dirty = True
    return mesh