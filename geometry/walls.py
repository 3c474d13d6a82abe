"""Door and wall mapping between template-local and world space.

Templates describe doors on local walls (N/S/E/W before rotation). Placed
rooms are rotated by quarter turns, so every question about "the wall facing
the parent" or "where along that wall is the door" goes through the helpers
here. Offsets along a wall are always measured from the wall's start corner:
the -x end for walls running along x (N/S) and the -z end for walls running
along z (W/E).
"""

from __future__ import annotations

from typing import Iterable, List, Optional, Tuple

from Generate.constants import DOOR_MATCH_TOL, TEMPLATE_DOOR_WIDTH, WALL_INSET, WALL_THICKNESS
from Generate.params import Door, RoomTemplate, Wall
from geometry.kernel import (
    Vec2,
    WallRecord,
    WallSegment,
    classify_direction,
    compute_aabb,
    make_wall_record,
    rotate_vector,
    size_after_rotation,
    wall_normal,
)

OPPOSITE = {Wall.N: Wall.S, Wall.S: Wall.N, Wall.E: Wall.W, Wall.W: Wall.E}


def opposite_wall(code: Wall) -> Wall:
    return OPPOSITE[Wall(code)]


def wall_axis(code: Wall) -> str:
    """Axis a wall runs along: N/S walls run along x, W/E walls along z."""
    return "x" if Wall(code) in (Wall.N, Wall.S) else "z"


def map_local_wall_to_world(local: Wall, rotation: int) -> Wall:
    return classify_direction(rotate_vector(wall_normal(local), rotation))


def map_world_wall_to_local(world: Wall, rotation: int) -> Wall:
    return classify_direction(rotate_vector(wall_normal(world), -rotation))


def local_wall_length(template: RoomTemplate, wall: Wall) -> float:
    if template.size is None:
        return 0.0
    return template.size.w if wall_axis(wall) == "x" else template.size.d


def door_center_offset(door: Optional[Door], axis_len: float, default_width: float = TEMPLATE_DOOR_WIDTH) -> float:
    if door is None:
        return axis_len / 2
    width = door.width or default_width
    return door.offset + width / 2


def local_wall_point(template: RoomTemplate, wall: Wall, t: float) -> Vec2:
    """Local point at distance ``t`` from the start corner of ``wall``."""
    w, d = template.size.w, template.size.d
    wall = Wall(wall)
    if wall == Wall.N:
        return Vec2(-w / 2 + t, -d / 2)
    if wall == Wall.S:
        return Vec2(-w / 2 + t, d / 2)
    if wall == Wall.W:
        return Vec2(-w / 2, -d / 2 + t)
    return Vec2(w / 2, -d / 2 + t)


def local_door_point(template: RoomTemplate, door: Door) -> Vec2:
    length = local_wall_length(template, door.wall)
    return local_wall_point(template, door.wall, door_center_offset(door, length))


def door_world_center(template: RoomTemplate, pos: Vec2, rotation: int, door: Door) -> Vec2:
    return pos + rotate_vector(local_door_point(template, door), rotation)


def door_axis_offset(template: RoomTemplate, rotation: int, door: Optional[Door], world_wall: Wall) -> float:
    """Distance of a door's center from the world-min end of ``world_wall``.

    For an unrotated room this is the door's template center offset; for a
    rotated room it follows the door to wherever the rotation carried it.
    Without a door the wall midpoint is used.
    """
    w, d = size_after_rotation(template, rotation)
    axis = wall_axis(world_wall)
    axis_len = w if axis == "x" else d
    if door is None:
        return axis_len / 2
    p = rotate_vector(local_door_point(template, door), rotation)
    along = p.x if axis == "x" else p.z
    return along + axis_len / 2


def wall_point_offset(template: RoomTemplate, pos: Vec2, rotation: int, world_wall: Wall, coord: float) -> Tuple[Wall, float]:
    """Map a world coordinate on a room's world wall to a local wall offset.

    ``coord`` is the position along the world wall's axis. Returns the local
    wall that faces ``world_wall`` and the distance from its start corner.
    """
    local = map_world_wall_to_local(world_wall, rotation)
    box = compute_aabb(template, pos, rotation)
    world_wall = Wall(world_wall)
    if world_wall == Wall.E:
        point = Vec2(box.max_x, coord)
    elif world_wall == Wall.W:
        point = Vec2(box.min_x, coord)
    elif world_wall == Wall.N:
        point = Vec2(coord, box.min_z)
    else:
        point = Vec2(coord, box.max_z)
    p = rotate_vector(point - pos, -rotation)
    along = p.x if wall_axis(local) == "x" else p.z
    return local, along + local_wall_length(template, local) / 2


def find_door_on_world_wall(doors: Iterable[Door], rotation: int, world_wall: Wall) -> Optional[Door]:
    for door in doors:
        if map_local_wall_to_world(door.wall, rotation) == world_wall:
            return door
    return None


def has_door_near(doors: Iterable[Door], wall: Wall, center: float, tol: float = DOOR_MATCH_TOL) -> bool:
    return any(d.wall == wall and abs(d.center - center) <= tol for d in doors)


def merge_doors(base: Iterable[Door], extra: Iterable[Door], tol: float = DOOR_MATCH_TOL) -> List[Door]:
    """Append ``extra`` doors to ``base`` unless one already sits at the same place."""
    merged = list(base)
    for door in extra:
        if not has_door_near(merged, door.wall, door.center, tol):
            merged.append(door)
    return merged


def segment_wall_record(
    slot_id: str,
    template: RoomTemplate,
    pos: Vec2,
    rotation: int,
    wall: Wall,
    segment: WallSegment,
    thickness: float = WALL_THICKNESS,
    inset: float = WALL_INSET,
) -> WallRecord:
    """World-space box for one solid segment of a room's local wall."""
    w, d, h = template.size.w, template.size.d, template.size.h
    wall = Wall(wall)
    along = -local_wall_length(template, wall) / 2 + segment.start + segment.length / 2
    if wall == Wall.N:
        local, half = Vec2(along, -d / 2 + inset), (segment.length / 2, thickness / 2)
    elif wall == Wall.S:
        local, half = Vec2(along, d / 2 - inset), (segment.length / 2, thickness / 2)
    elif wall == Wall.W:
        local, half = Vec2(-w / 2 + inset, along), (thickness / 2, segment.length / 2)
    else:
        local, half = Vec2(w / 2 - inset, along), (thickness / 2, segment.length / 2)
    center = pos + rotate_vector(local, rotation)
    hx, hz = half
    if rotation % 180 == 90:
        hx, hz = hz, hx
    axis = wall_axis(map_local_wall_to_world(wall, rotation))
    return make_wall_record(slot_id, wall, axis, (center.x, h / 2, center.z), (hx, h / 2, hz))
