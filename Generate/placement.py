"""Greedy placement of a single room relative to its parent.

A room attached to a parent is turned so one of its doors faces the parent,
slid along the shared wall so the two door centers line up, and pushed flush
against the parent. Collisions with rooms placed earlier are resolved by
pushing the candidate away a bounded number of times.
"""

from __future__ import annotations

import logging
from typing import Iterable, Optional

from Generate.constants import COLLISION_PADDING, GRID_DEFAULT, MAX_PLACEMENT_TRIES, PLACEMENT_EPS, ROTATIONS
from Generate.params import Door, RoomTemplate, Slot, Wall
from Generate.rooms import PlacementError, PlacementResult, Room
from geometry.kernel import (
    AABB,
    Penetration,
    Vec2,
    classify_direction,
    clamp,
    compute_aabb,
    detect_overlap,
    rotate_vector,
    size_after_rotation,
    snap_to_grid,
    wall_normal,
)
from geometry.walls import door_axis_offset, find_door_on_world_wall, opposite_wall

log = logging.getLogger(__name__)


def pick_attach_dir(child_base: Vec2, parent_base: Vec2) -> Wall:
    """Side of the parent the child sits on, from the authored positions."""
    return classify_direction(child_base - parent_base)


def to_parent_vector(attach_dir: Wall) -> Vec2:
    return wall_normal(opposite_wall(attach_dir))


def best_rotation(template: RoomTemplate, attach_dir: Wall, hint: int = 0) -> int:
    """Quarter turn whose best door faces the parent most directly.

    Earlier rotations win ties; a template without doors keeps ``hint``.
    """
    to_parent = to_parent_vector(attach_dir)
    best_rot, best_score = hint, float("-inf")
    for rot in ROTATIONS:
        for door in template.doors:
            n = rotate_vector(wall_normal(door.wall), rot)
            denom = (n.length() * to_parent.length()) or 1.0
            score = n.dot(to_parent) / denom
            if score > best_score:
                best_rot, best_score = rot, score
    return best_rot


def aligned_position(
    template: RoomTemplate,
    rotation: int,
    attach_door: Optional[Door],
    parent: Room,
    parent_door: Optional[Door],
    attach_dir: Wall,
) -> Vec2:
    """Child center that lines its door up with the parent's and abuts it."""
    cw, cd = size_after_rotation(template, rotation)
    pw, pd = size_after_rotation(parent.tpl, parent.rotate)
    child_wall = opposite_wall(attach_dir)
    p_off = door_axis_offset(parent.tpl, parent.rotate, parent_door, attach_dir)
    c_off = door_axis_offset(template, rotation, attach_door, child_wall)
    pc = parent.pos
    if attach_dir in (Wall.E, Wall.W):
        target = pc.z - pd / 2 + p_off + cd / 2 - c_off
        slack = max(0.0, pd / 2 - cd / 2)
        z = clamp(target, pc.z - slack, pc.z + slack)
        sign = 1 if attach_dir == Wall.E else -1
        return Vec2(pc.x + sign * (pw / 2 + cw / 2), z)
    target = pc.x - pw / 2 + p_off + cw / 2 - c_off
    slack = max(0.0, pw / 2 - cw / 2)
    x = clamp(target, pc.x - slack, pc.x + slack)
    sign = 1 if attach_dir == Wall.S else -1
    return Vec2(x, pc.z + sign * (pd / 2 + cd / 2))


def find_overlap(box: AABB, placed: Iterable[Room], eps: float = PLACEMENT_EPS) -> Optional[Penetration]:
    for other in placed:
        other_box = compute_aabb(other.tpl, other.pos, other.rotate)
        if other_box is None:
            continue
        hit = detect_overlap(box, other_box, eps)
        if hit is not None:
            return hit
    return None


def _push(pos: Vec2, pen: Penetration, attach_dir: Optional[Wall]) -> Vec2:
    if attach_dir in (Wall.E, Wall.W):
        return Vec2(pos.x, pos.z + (pen.pen_z + COLLISION_PADDING) * pen.dir_z)
    if attach_dir in (Wall.N, Wall.S):
        return Vec2(pos.x + (pen.pen_x + COLLISION_PADDING) * pen.dir_x, pos.z)
    if pen.pen_x > pen.pen_z:
        return Vec2(pos.x + (pen.pen_x + COLLISION_PADDING) * pen.dir_x, pos.z)
    return Vec2(pos.x, pos.z + (pen.pen_z + COLLISION_PADDING) * pen.dir_z)


def place_room(
    template: Optional[RoomTemplate],
    slot: Slot,
    base_pos: Vec2,
    parent: Optional[Room],
    placed: Iterable[Room],
    grid_step: float = GRID_DEFAULT,
) -> PlacementResult:
    """Place one slot's room, or report why it could not be placed.

    Attached rooms only slide along their shared wall when resolving
    collisions so they stay flush with the parent; free rooms move along
    whichever axis has the larger penetration.
    """
    if template is None:
        return PlacementResult(error=PlacementError.MISSING_TEMPLATE)
    if template.size is None:
        log.warning("Template %s for slot %s has no size", template.id, slot.slotId)
        return PlacementResult(error=PlacementError.MALFORMED_INPUT)
    if parent is not None and parent.tpl.size is None:
        return PlacementResult(error=PlacementError.MALFORMED_INPUT)

    rotation = slot.rotate
    attach_dir = attach_wall = parent_wall = None
    attach_door = parent_door = None
    pos = base_pos
    if parent is not None:
        attach_dir = pick_attach_dir(base_pos, parent.base_pos or parent.pos)
        rotation = best_rotation(template, attach_dir, slot.rotate)
        attach_wall = opposite_wall(attach_dir)
        parent_wall = attach_dir
        attach_door = find_door_on_world_wall(template.doors, rotation, attach_wall)
        parent_door = find_door_on_world_wall(parent.tpl.doors, parent.rotate, parent_wall)
        pos = aligned_position(template, rotation, attach_door, parent, parent_door, attach_dir)
    pos = snap_to_grid(pos, grid_step)

    placed = list(placed)
    for _ in range(MAX_PLACEMENT_TRIES):
        box = compute_aabb(template, pos, rotation)
        hit = find_overlap(box, placed)
        if hit is None:
            room = Room(
                slot_id=slot.slotId,
                type=slot.type or template.type,
                tpl_id=template.id,
                tpl=template,
                pos=pos,
                rotate=rotation,
                attach_to=parent.slot_id if parent is not None else None,
                attach_dir=attach_dir,
                attach_wall=attach_wall,
                parent_wall=parent_wall,
                base_pos=base_pos,
                attach_door=attach_door,
                parent_door=parent_door,
            )
            return PlacementResult(room=room)
        pos = snap_to_grid(_push(pos, hit, attach_dir), grid_step)
    log.debug("Slot %s still overlaps after %d tries", slot.slotId, MAX_PLACEMENT_TRIES)
    return PlacementResult(error=PlacementError.PLACEMENT_EXHAUSTED)
