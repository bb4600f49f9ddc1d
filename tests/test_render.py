import pytest

from dronelevel.block import Block
from dronelevel.level import LevelState
from dronelevel.render import ChunkMesh, draw_block, render_chunk

X = (1.0, 0.0, 0.0)
NEG_X = (-1.0, 0.0, 0.0)
Y = (0.0, 1.0, 0.0)


def _level(placements, size=(1, 1, 1)):
    level = LevelState(*size)
    for (x, y, z), block in placements:
        level.set_block(x, y, z, block)
    return level


def _assert_consistent(mesh):
    n = len(mesh.vertex)
    assert len(mesh.normal) == n
    assert len(mesh.tangent) == n
    assert len(mesh.uv) == n
    assert len(mesh.index) * 2 == n * 3
    assert all(0 <= i < n for i in mesh.index)


def test_single_block_draws_every_face():
    mesh = render_chunk(_level([((4, 4, 4), Block.DIRT)]), 0, 0, 0)
    assert mesh.dirty is True
    _assert_consistent(mesh)
    assert set(mesh.normal) == {
        (1.0, 0.0, 0.0),
        (-1.0, 0.0, 0.0),
        (0.0, 1.0, 0.0),
        (0.0, -1.0, 0.0),
        (0.0, 0.0, 1.0),
        (0.0, 0.0, -1.0),
    }


def test_render_marks_chunk_clean_and_second_render_is_empty():
    level = _level([((0, 0, 0), Block.DIRT)])
    render_chunk(level, 0, 0, 0)
    assert level.chunks[0].dirty is False
    again = render_chunk(level, 0, 0, 0)
    assert again == ChunkMesh()


def test_grass_uses_second_atlas_tile():
    mesh = render_chunk(_level([((0, 0, 0), Block.GRASS)]), 0, 0, 0)
    assert mesh.uv[0] == (1.0 / 64.0, 0.0)


def test_adjacent_full_blocks_hide_shared_faces():
    single = render_chunk(_level([((3, 3, 3), Block.DIRT)]), 0, 0, 0)
    pair = render_chunk(
        _level([((3, 3, 3), Block.DIRT), ((4, 3, 3), Block.DIRT)]), 0, 0, 0
    )
    _assert_consistent(pair)
    assert len(pair.vertex) < 2 * len(single.vertex)
    assert pair.normal.count(X) * 2 == pair.normal.count(Y)
    assert pair.normal.count(NEG_X) == pair.normal.count(X)


def test_non_full_neighbour_keeps_face():
    single = render_chunk(_level([((3, 3, 3), Block.DIRT)]), 0, 0, 0)
    with_ore = render_chunk(
        _level([((3, 3, 3), Block.DIRT), ((4, 3, 3), Block.IRON_ORE)]), 0, 0, 0
    )
    assert with_ore.vertex == single.vertex


def test_unrendered_block_gives_empty_dirty_mesh():
    mesh = render_chunk(_level([((1, 1, 1), Block.IRON_ORE)]), 0, 0, 0)
    assert mesh.dirty is True
    assert mesh.vertex == []
    assert mesh.index == []


def test_neighbouring_chunk_hides_border_faces():
    level = _level(
        [((15, 0, 0), Block.DIRT), ((16, 0, 0), Block.DIRT)], size=(2, 1, 1)
    )
    first = render_chunk(level, 0, 0, 0)
    second = render_chunk(level, 1, 0, 0)
    assert X not in first.normal
    assert NEG_X in first.normal
    assert NEG_X not in second.normal
    assert X in second.normal


def test_out_of_range_chunk_raises():
    level = LevelState(1, 1, 1)
    with pytest.raises(IndexError):
        render_chunk(level, 1, 0, 0)


def test_draw_block_up_face_only():
    mesh = ChunkMesh()
    draw_block(
        mesh, (0.0, 0.0, 0.0), (0.0, 0.0), (1.0, 1.0),
        [False, True, False, False, False, False],
    )
    assert mesh.vertex == [
        (1.0, 1.0, 0.0),
        (0.0, 1.0, 0.0),
        (1.0, 1.0, 1.0),
        (0.0, 1.0, 1.0),
    ]
    assert mesh.index == [0, 3, 1, 0, 2, 3]
    assert mesh.normal == [Y] * 4
    assert mesh.uv == [(0.0, 0.0), (1.0, 0.0), (0.0, 1.0), (1.0, 1.0)]


def test_draw_block_without_faces_adds_nothing():
    mesh = ChunkMesh()
    draw_block(mesh, (2.0, 2.0, 2.0), (0.0, 0.0), (1.0, 1.0), [False] * 6)
    assert mesh == ChunkMesh()


def test_draw_block_indices_offset_by_existing_vertices():
    mesh = ChunkMesh()
    faces = [True] * 6
    draw_block(mesh, (0.0, 0.0, 0.0), (0.0, 0.0), (1.0, 1.0), faces)
    first = len(mesh.vertex)
    draw_block(mesh, (5.0, 0.0, 0.0), (0.0, 0.0), (1.0, 1.0), faces)
    _assert_consistent(mesh)
    assert min(mesh.index[len(mesh.index) // 2 :]) == first