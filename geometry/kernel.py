from __future__ import annotations

import math
from dataclasses import dataclass
from typing import Dict, Iterable, List, Optional, Sequence, Tuple

from Generate.constants import COLLIDER_RADIUS, MIN_WALL_SEGMENT, PLACEMENT_EPS, WALL_MATCH_EPS
from Generate.params import Door, RoomTemplate, Wall


@dataclass(frozen=True)
class Vec2:
    x: float
    z: float

    def __add__(self, other: "Vec2") -> "Vec2":
        return Vec2(self.x + other.x, self.z + other.z)

    def __sub__(self, other: "Vec2") -> "Vec2":
        return Vec2(self.x - other.x, self.z - other.z)

    def scale(self, k: float) -> "Vec2":
        return Vec2(self.x * k, self.z * k)

    def dot(self, other: "Vec2") -> float:
        return self.x * other.x + self.z * other.z

    def length(self) -> float:
        return math.hypot(self.x, self.z)


@dataclass(frozen=True)
class AABB:
    min_x: float
    max_x: float
    min_z: float
    max_z: float

    @property
    def center(self) -> Vec2:
        return Vec2((self.min_x + self.max_x) / 2, (self.min_z + self.max_z) / 2)

    def span(self, axis: str) -> Tuple[float, float]:
        if axis == "x":
            return self.min_x, self.max_x
        return self.min_z, self.max_z


@dataclass(frozen=True)
class Penetration:
    pen_x: float
    pen_z: float
    dir_x: int
    dir_z: int


def size_after_rotation(template: Optional[RoomTemplate], rotation: int) -> Optional[Tuple[float, float]]:
    """Return the footprint ``(w, d)`` after rotation, or ``None`` if unknown."""
    if template is None or template.size is None:
        return None
    w, d = template.size.w, template.size.d
    if rotation % 180 == 90:
        return d, w
    return w, d


def compute_aabb(template: Optional[RoomTemplate], pos: Vec2, rotation: int) -> Optional[AABB]:
    size = size_after_rotation(template, rotation)
    if size is None:
        return None
    w, d = size
    return AABB(pos.x - w / 2, pos.x + w / 2, pos.z - d / 2, pos.z + d / 2)


def detect_overlap(a: AABB, b: AABB, eps: float = PLACEMENT_EPS) -> Optional[Penetration]:
    """Return the push-out needed to separate ``a`` from ``b``.

    Two boxes overlap only if both axis intervals overlap by more than
    ``eps``; touching boxes do not overlap. Directions point from ``b``
    toward ``a`` and resolve ties to +1, so coincident centers push toward
    +x/+z.
    """
    overlap_x = a.min_x < b.max_x - eps and a.max_x > b.min_x + eps
    overlap_z = a.min_z < b.max_z - eps and a.max_z > b.min_z + eps
    if not (overlap_x and overlap_z):
        return None
    pen_x = min(a.max_x - b.min_x, b.max_x - a.min_x)
    pen_z = min(a.max_z - b.min_z, b.max_z - a.min_z)
    ca, cb = a.center, b.center
    dir_x = 1 if ca.x >= cb.x else -1
    dir_z = 1 if ca.z >= cb.z else -1
    return Penetration(pen_x, pen_z, dir_x, dir_z)


WALL_NORMALS: Dict[Wall, Vec2] = {
    Wall.N: Vec2(0.0, -1.0),
    Wall.S: Vec2(0.0, 1.0),
    Wall.W: Vec2(-1.0, 0.0),
    Wall.E: Vec2(1.0, 0.0),
}


def wall_normal(code: Wall) -> Vec2:
    return WALL_NORMALS[Wall(code)]


def rotate_vector(v: Vec2, degrees: float) -> Vec2:
    """Rotate ``v`` in the left-handed x/z ground plane.

    ``x' = x*cos + z*sin`` and ``z' = -x*sin + z*cos``; positive angles turn
    +x toward -z. Trig values are rounded so quarter turns are exact.
    """
    rad = math.radians(degrees)
    c = round(math.cos(rad), 12)
    s = round(math.sin(rad), 12)
    return Vec2(v.x * c + v.z * s, -v.x * s + v.z * c)


def classify_direction(v: Vec2) -> Wall:
    # ties resolve toward E/S
    if abs(v.x) >= abs(v.z):
        return Wall.E if v.x >= 0 else Wall.W
    return Wall.S if v.z >= 0 else Wall.N


def snap_value(v: float, step: float) -> float:
    g = step if step and step > 0 else 1.0
    # round half up, matching the editor's grid
    return g * math.floor(v / g + 0.5)


def snap_to_grid(pos: Vec2, step: float) -> Vec2:
    return Vec2(snap_value(pos.x, step), snap_value(pos.z, step))


def clamp(v: float, lo: float, hi: float) -> float:
    return max(lo, min(hi, v))


@dataclass(frozen=True)
class WallSegment:
    start: float
    end: float

    @property
    def length(self) -> float:
        return self.end - self.start


def build_wall_segments(length: float, doors: Iterable[Door], min_len: float = MIN_WALL_SEGMENT) -> List[WallSegment]:
    """Split a wall of ``length`` into solid segments around door gaps.

    Segments and gaps partition ``[0, length]`` except for slivers of
    ``min_len`` or less, which are dropped. Overlapping doors merge into one
    gap.
    """
    segments: List[WallSegment] = []
    cursor = 0.0
    for door in sorted(doors, key=lambda d: d.offset):
        start = min(door.offset, length)
        if start - cursor > min_len:
            segments.append(WallSegment(cursor, start))
        cursor = max(cursor, min(door.offset + door.width, length))
    if length - cursor > min_len:
        segments.append(WallSegment(cursor, length))
    return segments


@dataclass(frozen=True)
class WallRecord:
    """World-space box of one wall segment.

    ``axis`` is the world axis the wall runs along, ``plane`` its constant
    coordinate on the other axis, and ``min``/``max`` its extent along
    ``axis``.
    """

    slot_id: str
    wall: Wall
    axis: str
    plane: float
    min: float
    max: float
    cx: float
    cy: float
    cz: float
    hx: float
    hy: float
    hz: float

    @property
    def length(self) -> float:
        return self.max - self.min

    def to_dict(self) -> Dict:
        return {
            "slotId": self.slot_id,
            "wall": self.wall.value,
            "axis": self.axis,
            "plane": self.plane,
            "min": self.min,
            "max": self.max,
            "center": {"x": self.cx, "y": self.cy, "z": self.cz},
            "half": {"x": self.hx, "y": self.hy, "z": self.hz},
        }


def make_wall_record(
    slot_id: str,
    wall: Wall,
    axis: str,
    center: Tuple[float, float, float],
    half: Tuple[float, float, float],
) -> WallRecord:
    cx, cy, cz = center
    hx, hy, hz = half
    if axis == "x":
        plane, lo, hi = cz, cx - hx, cx + hx
    else:
        plane, lo, hi = cx, cz - hz, cz + hz
    return WallRecord(slot_id, wall, axis, plane, lo, hi, cx, cy, cz, hx, hy, hz)


def find_duplicate_wall(
    existing: Sequence[WallRecord],
    candidate: WallRecord,
    eps: float = WALL_MATCH_EPS,
) -> Optional[WallRecord]:
    """Return a record that already covers ``candidate``, if any.

    A duplicate runs along the same axis on the same plane, has the same
    length, and overlaps it by at least the shorter length.
    """
    for rec in existing:
        if rec.axis != candidate.axis:
            continue
        if abs(rec.plane - candidate.plane) > eps:
            continue
        if abs(rec.length - candidate.length) > eps:
            continue
        overlap = min(rec.max, candidate.max) - max(rec.min, candidate.min)
        if overlap >= min(rec.length, candidate.length) - eps:
            return rec
    return None


def point_blocked(
    walls: Iterable[WallRecord],
    x: float,
    y: float,
    z: float,
    radius: float = COLLIDER_RADIUS,
) -> bool:
    """Return ``True`` if a collider of ``radius`` at the point hits a wall."""
    for w in walls:
        # allow standing up to half a unit below the wall base
        if not (w.cy - w.hy - 0.5 <= y <= w.cy + w.hy):
            continue
        if abs(x - w.cx) <= w.hx + radius and abs(z - w.cz) <= w.hz + radius:
            return True
    return False
