"""Geometry validators for generated apartment layouts.

These checks restate the guarantees the generator and rebuild are meant to
keep: rooms never overlap, rotations are quarter turns, attached rooms face
each other across opposite walls, and every attachment has a door on both
sides at the same place. The functions return human readable strings
describing any issues that are found.
"""

from __future__ import annotations

import logging
from typing import Dict, Iterable, List

from Generate.constants import DOOR_MATCH_TOL, PLACEMENT_EPS
from Generate.layout_model import LayoutModel
from Generate.rooms import Room, Variant
from geometry.kernel import compute_aabb, detect_overlap
from geometry.walls import door_world_center, map_local_wall_to_world, opposite_wall, wall_axis

log = logging.getLogger(__name__)


def check_overlaps(rooms: List[Room], eps: float = PLACEMENT_EPS) -> List[str]:
    """Check for overlapping room footprints.

    Args:
        rooms: Placed rooms.
        eps: Overlap smaller than this on either axis is ignored.

    Returns:
        List of issues describing overlaps.
    """
    issues: List[str] = []
    boxes = [(r, compute_aabb(r.tpl, r.pos, r.rotate)) for r in rooms]
    for i, (r1, b1) in enumerate(boxes):
        if b1 is None:
            continue
        for r2, b2 in boxes[i + 1 :]:
            if b2 is None:
                continue
            if detect_overlap(b1, b2, eps) is not None:
                issues.append(f"Room {r1.slot_id} overlaps with {r2.slot_id}")
    return issues


def check_rotations(rooms: Iterable[Room]) -> List[str]:
    return [
        f"Room {r.slot_id} has non-cardinal rotation {r.rotate}"
        for r in rooms
        if r.rotate not in (0, 90, 180, 270)
    ]


def check_attachments(rooms: List[Room]) -> List[str]:
    """Attached rooms must reference a placed parent across opposite walls."""
    issues: List[str] = []
    by_id: Dict[str, Room] = {r.slot_id: r for r in rooms}
    for room in rooms:
        if room.attach_to is None:
            continue
        if room.attach_to not in by_id:
            issues.append(f"Room {room.slot_id} is attached to missing room {room.attach_to}")
            continue
        if room.attach_wall is None or room.parent_wall is None:
            issues.append(f"Room {room.slot_id} has no attachment walls")
        elif opposite_wall(room.attach_wall) != room.parent_wall:
            issues.append(
                f"Room {room.slot_id} attaches on {room.attach_wall.value} "
                f"but parent wall is {room.parent_wall.value}"
            )
    return issues


def _door_coords(model: LayoutModel, room: Room, world_wall, axis: str) -> List[float]:
    coords = []
    for door in model.doors_for(room.slot_id):
        if map_local_wall_to_world(door.wall, room.rotate) != world_wall:
            continue
        c = door_world_center(room.tpl, room.pos, room.rotate, door)
        coords.append(c.x if axis == "x" else c.z)
    return coords


def check_door_alignment(model: LayoutModel, tol: float = DOOR_MATCH_TOL) -> List[str]:
    """Every attachment needs a door on each side whose centers coincide.

    Uses the doors of the last rebuild, so auto-doors count.
    """
    issues: List[str] = []
    for child in model.rooms:
        parent = model.rooms_by_id.get(child.attach_to) if child.attach_to else None
        if parent is None or child.attach_wall is None or child.parent_wall is None:
            continue
        axis = wall_axis(child.parent_wall)
        child_coords = _door_coords(model, child, child.attach_wall, axis)
        parent_coords = _door_coords(model, parent, child.parent_wall, axis)
        if not any(abs(a - b) <= tol for a in child_coords for b in parent_coords):
            issues.append(f"No aligned doors between {child.slot_id} and {parent.slot_id}")
    return issues


def validate_layout(model: LayoutModel, eps: float = PLACEMENT_EPS) -> List[str]:
    """Run all layout checks on a built model and collect the issues."""
    issues: List[str] = []
    issues.extend(check_overlaps(model.rooms, eps))
    issues.extend(check_rotations(model.rooms))
    issues.extend(check_attachments(model.rooms))
    issues.extend(check_door_alignment(model))
    return issues


def validate_variant(variant: Variant) -> List[str]:
    """Build a variant's layout and validate it, noting an early stop."""
    model = LayoutModel(variant.rooms)
    model.rebuild()
    issues = validate_layout(model)
    if variant.truncated:
        issues.append(f"Variant stopped at required slot {variant.truncated_at}")
    if issues:
        log.debug("Variant has %d issues", len(issues))
    return issues
