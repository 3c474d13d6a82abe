from __future__ import annotations

import logging
from typing import Dict, Iterable, List, Optional, Tuple

from Generate.constants import AUTO_DOOR_WIDTH, DOOR_HEIGHT_DEFAULT, DOOR_MATCH_TOL, MIN_WALL_SEGMENT
from Generate.params import Door, Wall
from Generate.rooms import Room
from geometry.kernel import clamp, compute_aabb
from geometry.walls import (
    door_world_center,
    map_local_wall_to_world,
    has_door_near,
    local_wall_length,
    wall_axis,
    wall_point_offset,
)

log = logging.getLogger(__name__)


def _shared_span(a: Room, b: Room, axis: str) -> Optional[Tuple[float, float]]:
    box_a = compute_aabb(a.tpl, a.pos, a.rotate)
    box_b = compute_aabb(b.tpl, b.pos, b.rotate)
    if box_a is None or box_b is None:
        return None
    a_lo, a_hi = box_a.span(axis)
    b_lo, b_hi = box_b.span(axis)
    lo, hi = max(a_lo, b_lo), min(a_hi, b_hi)
    if hi - lo <= MIN_WALL_SEGMENT:
        return None
    return lo, hi


def _door_dims(own: Optional[Door], other: Optional[Door]) -> Tuple[float, float]:
    src = own or other
    if src is None:
        return AUTO_DOOR_WIDTH, DOOR_HEIGHT_DEFAULT
    return src.width, src.height


def _door_coord(room: Room, doors: List[Door], world_wall: Wall, axis: str, span: Tuple[float, float]) -> Optional[float]:
    """World coordinate of the first door on ``world_wall`` that fits the span."""
    lo, hi = span
    for door in doors:
        if map_local_wall_to_world(door.wall, room.rotate) != world_wall:
            continue
        c = door_world_center(room.tpl, room.pos, room.rotate, door)
        coord = c.x if axis == "x" else c.z
        half = door.width / 2
        if lo + half - DOOR_MATCH_TOL <= coord <= hi - half + DOOR_MATCH_TOL:
            return coord
    return None


def _missing_door(room: Room, world_wall: Wall, coord: float, width: float, height: float, known: List[Door]) -> Optional[Door]:
    local_wall, center = wall_point_offset(room.tpl, room.pos, room.rotate, world_wall, coord)
    if has_door_near(known, local_wall, center):
        return None
    length = local_wall_length(room.tpl, local_wall)
    width = min(width, length)
    offset = clamp(center - width / 2, 0.0, max(0.0, length - width))
    return Door(wall=local_wall, offset=offset, width=width, height=height)


def synthesize_auto_doors(rooms: Iterable[Room]) -> Dict[str, List[Door]]:
    """Add the doors needed so every attached pair of rooms connects.

    For each child/parent edge the door position is taken from the parent's
    door on the shared wall, else the child's, else the middle of the span
    the two footprints share. Either side that has no door there already
    (template, user-placed, or synthesized for an earlier edge) gets one.
    The result maps slot ids to synthesized doors; rooms and templates are
    not modified.
    """
    rooms = list(rooms)
    by_id = {r.slot_id: r for r in rooms}
    auto: Dict[str, List[Door]] = {}

    def known(room: Room) -> List[Door]:
        return list(room.tpl.doors) + list(room.user_doors) + auto.get(room.slot_id, [])

    for child in rooms:
        parent = by_id.get(child.attach_to) if child.attach_to else None
        if parent is None or child.attach_wall is None or child.parent_wall is None:
            continue
        if child.tpl.size is None or parent.tpl.size is None:
            continue
        axis = wall_axis(child.parent_wall)
        span = _shared_span(child, parent, axis)
        if span is None:
            log.debug("Rooms %s and %s share no wall span; no door added", child.slot_id, parent.slot_id)
            continue

        coord = _door_coord(parent, known(parent), child.parent_wall, axis, span)
        if coord is None:
            coord = _door_coord(child, known(child), child.attach_wall, axis, span)
        if coord is None:
            coord = (span[0] + span[1]) / 2

        sides = (
            (child, child.attach_wall, _door_dims(child.attach_door, child.parent_door)),
            (parent, child.parent_wall, _door_dims(child.parent_door, child.attach_door)),
        )
        for room, world_wall, (width, height) in sides:
            door = _missing_door(room, world_wall, coord, width, height, known(room))
            if door is not None:
                auto.setdefault(room.slot_id, []).append(door)
                log.debug("Added %s door to %s at offset %.2f", door.wall.value, room.slot_id, door.offset)
    return auto
