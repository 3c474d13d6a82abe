import pytest

from Generate.params import Door, RoomTemplate, Size, Wall
from geometry.kernel import Vec2, WallSegment
from geometry.walls import (
    door_axis_offset,
    door_center_offset,
    door_world_center,
    find_door_on_world_wall,
    map_local_wall_to_world,
    map_world_wall_to_local,
    merge_doors,
    opposite_wall,
    segment_wall_record,
    wall_point_offset,
)


def _tpl(w, d, doors=()):
    return RoomTemplate(id="t", type="room", size=Size(w=w, d=d, h=2.7), doors=list(doors))


def test_local_to_world_identity_at_zero():
    for wall in Wall:
        assert map_local_wall_to_world(wall, 0) == wall


def test_quarter_turn_mapping():
    assert map_local_wall_to_world(Wall.E, 90) == Wall.N
    assert map_local_wall_to_world(Wall.N, 90) == Wall.W
    assert map_local_wall_to_world(Wall.W, 90) == Wall.S
    assert map_local_wall_to_world(Wall.S, 90) == Wall.E
    assert map_local_wall_to_world(Wall.E, 180) == Wall.W


@pytest.mark.parametrize("rotation", [0, 90, 180, 270])
def test_world_to_local_inverts_mapping(rotation):
    for wall in Wall:
        assert map_world_wall_to_local(map_local_wall_to_world(wall, rotation), rotation) == wall


def test_opposite_wall():
    assert opposite_wall(Wall.N) == Wall.S
    assert opposite_wall(Wall.E) == Wall.W


def test_door_center_offset():
    assert door_center_offset(None, 4) == 2
    assert door_center_offset(Door(wall=Wall.N, offset=1, width=2), 4) == 2
    assert door_center_offset(Door(wall=Wall.N, offset=0.5), 4) == 1


def test_find_door_on_world_wall_follows_rotation():
    doors = [Door(wall=Wall.S, offset=0.5), Door(wall=Wall.E, offset=1)]
    assert find_door_on_world_wall(doors, 0, Wall.E) is doors[1]
    assert find_door_on_world_wall(doors, 90, Wall.N) is doors[1]
    assert find_door_on_world_wall(doors, 90, Wall.W) is None


def test_door_axis_offset_matches_template_when_unrotated():
    door = Door(wall=Wall.E, offset=0.5, width=1)
    tpl = _tpl(2, 4, [door])
    assert door_axis_offset(tpl, 0, door, Wall.E) == pytest.approx(1)
    assert door_axis_offset(tpl, 0, None, Wall.E) == pytest.approx(2)


def test_door_axis_offset_flips_with_half_turn():
    door = Door(wall=Wall.E, offset=0.5, width=1)
    tpl = _tpl(2, 4, [door])
    # the E door ends up on the W wall, measured from the other end
    assert door_axis_offset(tpl, 180, door, Wall.W) == pytest.approx(3)


def test_wall_point_offset_inverts_door_world_center():
    door = Door(wall=Wall.N, offset=1, width=1)
    tpl = _tpl(4, 2, [door])
    pos = Vec2(5, 5)
    center = door_world_center(tpl, pos, 90, door)
    assert (center.x, center.z) == pytest.approx((4, 5.5))
    world_wall = map_local_wall_to_world(Wall.N, 90)
    assert world_wall == Wall.W
    local, offset = wall_point_offset(tpl, pos, 90, world_wall, center.z)
    assert local == Wall.N
    assert offset == pytest.approx(1.5)


def test_merge_doors_drops_coincident_entries():
    base = [Door(wall=Wall.N, offset=1, width=1)]
    extra = [
        Door(wall=Wall.N, offset=0.9, width=1.2),
        Door(wall=Wall.S, offset=1, width=1),
        Door(wall=Wall.N, offset=3, width=1),
    ]
    merged = merge_doors(base, extra)
    assert merged == [base[0], extra[1], extra[2]]


def test_segment_record_unrotated():
    tpl = _tpl(2, 2)
    rec = segment_wall_record("entry", tpl, Vec2(0, 0), 0, Wall.E, WallSegment(0, 0.5))
    assert rec.axis == "z"
    assert rec.plane == pytest.approx(1)
    assert (rec.min, rec.max) == pytest.approx((-1, -0.5))
    assert (rec.hx, rec.hy, rec.hz) == pytest.approx((0.05, 1.35, 0.25))
    assert rec.cy == pytest.approx(1.35)


def test_segment_record_quarter_turn():
    tpl = _tpl(2, 2)
    rec = segment_wall_record("entry", tpl, Vec2(0, 0), 90, Wall.E, WallSegment(0, 0.5))
    assert rec.wall == Wall.E
    assert rec.axis == "x"
    assert rec.plane == pytest.approx(-1)
    assert (rec.min, rec.max) == pytest.approx((-1, -0.5))
    assert (rec.hx, rec.hz) == pytest.approx((0.25, 0.05))
