"""Editable layout state and the rebuild that derives walls from it.

A ``LayoutModel`` owns the placed rooms of one variant. Everything derived
from them (auto-doors, merged door lists, wall segments, wall records) is
thrown away and recomputed by :meth:`LayoutModel.rebuild`, so callers only
ever edit room position, rotation and user doors and then rebuild.
"""

from __future__ import annotations

import logging
from typing import Dict, Iterable, List, Optional

from Generate.auto_doors import synthesize_auto_doors
from Generate.constants import DOOR_HEIGHT_DEFAULT, GRID_DEFAULT, LAYOUT_SCALE_DEFAULT, WALL_MATCH_EPS
from Generate.params import Door, Wall
from Generate.rooms import Room
from geometry.kernel import (
    Vec2,
    WallRecord,
    WallSegment,
    build_wall_segments,
    clamp,
    compute_aabb,
    find_duplicate_wall,
    point_blocked,
    rotate_vector,
    snap_value,
)
from geometry.walls import (
    door_world_center,
    has_door_near,
    local_wall_length,
    map_local_wall_to_world,
    merge_doors,
    segment_wall_record,
    wall_axis,
)

log = logging.getLogger(__name__)

LOCAL_WALLS = (Wall.N, Wall.S, Wall.W, Wall.E)


class UnknownRoomError(KeyError):
    """Raised when an edit names a slot id that is not in the layout."""


class LayoutModel:
    def __init__(
        self,
        rooms: Iterable[Room],
        grid_step: float = GRID_DEFAULT,
        layout_scale: float = LAYOUT_SCALE_DEFAULT,
    ):
        self.rooms: List[Room] = list(rooms)
        self.rooms_by_id: Dict[str, Room] = {r.slot_id: r for r in self.rooms}
        self.grid_step = grid_step
        self.layout_scale = layout_scale
        self.auto_doors: Dict[str, List[Door]] = {}
        self.doors: Dict[str, List[Door]] = {}
        self.segments: Dict[str, Dict[Wall, List[WallSegment]]] = {}
        self.walls: List[WallRecord] = []
        self.hidden_walls: List[WallRecord] = []

    def room(self, slot_id: str) -> Room:
        try:
            return self.rooms_by_id[slot_id]
        except KeyError:
            raise UnknownRoomError(slot_id) from None

    @property
    def edit_step(self) -> float:
        """Pattern-space distance of one editor step."""
        return self.grid_step / self.layout_scale

    def world_position(self, room: Room) -> Vec2:
        return room.pos.scale(self.layout_scale)

    def doors_for(self, slot_id: str) -> List[Door]:
        return list(self.doors.get(slot_id, []))

    def rebuild(self) -> None:
        """Recompute all derived geometry from current room state.

        Rooms are processed in list order; a wall segment that duplicates one
        already emitted by an earlier room goes to ``hidden_walls`` instead of
        ``walls``. Calling this twice without edits in between gives equal
        results.
        """
        self.auto_doors = synthesize_auto_doors(self.rooms)
        self.doors = {}
        self.segments = {}
        self.walls = []
        self.hidden_walls = []
        for room in self.rooms:
            extra = list(room.user_doors) + self.auto_doors.get(room.slot_id, [])
            doors = merge_doors(room.tpl.doors, extra)
            self.doors[room.slot_id] = doors
            if room.tpl.size is None:
                continue
            pos = self.world_position(room)
            per_wall: Dict[Wall, List[WallSegment]] = {}
            for wall in LOCAL_WALLS:
                length = local_wall_length(room.tpl, wall)
                segments = build_wall_segments(length, [d for d in doors if d.wall == wall])
                per_wall[wall] = segments
                for seg in segments:
                    rec = segment_wall_record(room.slot_id, room.tpl, pos, room.rotate, wall, seg)
                    if find_duplicate_wall(self.walls, rec) is not None:
                        self.hidden_walls.append(rec)
                    else:
                        self.walls.append(rec)
            self.segments[room.slot_id] = per_wall
        log.debug(
            "Rebuilt %d rooms: %d walls, %d hidden, %d auto doors",
            len(self.rooms),
            len(self.walls),
            len(self.hidden_walls),
            sum(len(v) for v in self.auto_doors.values()),
        )

    # Editing. Each call changes room state only, then rebuilds.

    def move_room(self, slot_id: str, dx: int = 0, dz: int = 0) -> Room:
        """Move a room by whole editor steps along x and z."""
        room = self.room(slot_id)
        step = self.edit_step
        room.pos = Vec2(room.pos.x + dx * step, room.pos.z + dz * step)
        self.rebuild()
        return room

    def rotate_room(self, slot_id: str, quarter_turns: int = 1) -> Room:
        room = self.room(slot_id)
        room.rotate = (room.rotate + 90 * quarter_turns) % 360
        self.rebuild()
        return room

    def set_room_pose(self, slot_id: str, pos: Optional[Vec2] = None, rotate: Optional[int] = None) -> Room:
        room = self.room(slot_id)
        if rotate is not None:
            if rotate % 90 != 0:
                raise ValueError("rotate must be a multiple of 90 degrees")
            room.rotate = rotate % 360
        if pos is not None:
            room.pos = pos
        self.rebuild()
        return room

    def add_user_door(self, slot_id: str, door: Door) -> bool:
        """Add a door to a room unless one already sits at the same place."""
        room = self.room(slot_id)
        pool = list(room.tpl.doors) + list(room.user_doors)
        if has_door_near(pool, door.wall, door.center):
            return False
        room.user_doors.append(door)
        self.rebuild()
        return True

    def place_door(self, slot_id: str, wall: Wall, x: float, z: float, width: Optional[float] = None) -> List[str]:
        """Cut a door into ``wall`` of a room at the world point ``(x, z)``.

        The door is snapped to the grid and kept inside the wall. The
        neighbouring room whose wall lies on the same plane at that point gets
        the matching door. Returns the slot ids that received a door.
        """
        room = self.room(slot_id)
        wall = Wall(wall)
        width = width or self.grid_step
        if not self.segments:
            self.rebuild()
        door = self._door_at_point(room, wall, Vec2(x, z), width)
        if door is None:
            return []
        changed = [room.slot_id]
        room.user_doors.append(door)

        center = door_world_center(room.tpl, self.world_position(room), room.rotate, door)
        neighbour = self._adjacent_wall(room, wall, center)
        if neighbour is not None:
            other = self.rooms_by_id[neighbour.slot_id]
            other_door = self._door_at_point(other, neighbour.wall, center, width)
            if other_door is not None:
                other.user_doors.append(other_door)
                changed.append(other.slot_id)
        self.rebuild()
        return changed

    def is_blocked(self, x: float, y: float, z: float, radius: Optional[float] = None) -> bool:
        if radius is None:
            return point_blocked(self.walls, x, y, z)
        return point_blocked(self.walls, x, y, z, radius)

    def _door_at_point(self, room: Room, wall: Wall, point: Vec2, width: float) -> Optional[Door]:
        if room.tpl.size is None:
            return None
        length = local_wall_length(room.tpl, wall)
        if length <= width:
            return None
        local = rotate_vector(point - self.world_position(room), -room.rotate)
        along = local.x if wall_axis(wall) == "x" else local.z
        center = snap_value(along + length / 2, self.grid_step)
        offset = clamp(center - width / 2, 0.0, length - width)
        door = Door(wall=wall, offset=offset, width=width, height=DOOR_HEIGHT_DEFAULT)
        pool = list(room.tpl.doors) + list(room.user_doors)
        if has_door_near(pool, wall, door.center):
            return None
        return door

    def _adjacent_wall(self, room: Room, wall: Wall, point: Vec2) -> Optional[WallRecord]:
        world_wall = map_local_wall_to_world(wall, room.rotate)
        axis = wall_axis(world_wall)
        box = compute_aabb(room.tpl, self.world_position(room), room.rotate)
        plane = {
            Wall.N: box.min_z,
            Wall.S: box.max_z,
            Wall.W: box.min_x,
            Wall.E: box.max_x,
        }[world_wall]
        along = point.x if axis == "x" else point.z
        for rec in self.walls + self.hidden_walls:
            if rec.slot_id == room.slot_id or rec.axis != axis:
                continue
            if abs(rec.plane - plane) > WALL_MATCH_EPS:
                continue
            if rec.min - WALL_MATCH_EPS <= along <= rec.max + WALL_MATCH_EPS:
                return rec
        return None
