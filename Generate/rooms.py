from __future__ import annotations

from dataclasses import dataclass, field
from enum import Enum
from typing import Dict, Iterator, List, Optional

from Generate.params import Door, RoomTemplate, Wall
from geometry.kernel import Vec2


class PlacementError(str, Enum):
    MISSING_TEMPLATE = "missing_template"
    MALFORMED_INPUT = "malformed_input"
    PLACEMENT_EXHAUSTED = "placement_exhausted"


@dataclass
class Room:
    slot_id: str
    type: Optional[str]
    tpl_id: str
    tpl: RoomTemplate
    pos: Vec2
    rotate: int
    attach_to: Optional[str] = None
    attach_dir: Optional[Wall] = None
    attach_wall: Optional[Wall] = None  # child's world wall facing the parent
    parent_wall: Optional[Wall] = None  # parent's world wall facing the child
    base_pos: Optional[Vec2] = None
    attach_door: Optional[Door] = None
    parent_door: Optional[Door] = None
    user_doors: List[Door] = field(default_factory=list)


@dataclass
class PlacementResult:
    room: Optional[Room] = None
    error: Optional[PlacementError] = None

    @property
    def ok(self) -> bool:
        return self.room is not None


@dataclass(frozen=True)
class SkippedSlot:
    slot_id: str
    reason: PlacementError


class RoomTable:
    """Placed rooms in placement order, addressable by slot id."""

    def __init__(self, rooms: Optional[List[Room]] = None):
        self._rooms: List[Room] = []
        self._index: Dict[str, int] = {}
        for room in rooms or []:
            self.add(room)

    def add(self, room: Room) -> None:
        if room.slot_id in self._index:
            raise ValueError(f"Room '{room.slot_id}' already placed")
        self._index[room.slot_id] = len(self._rooms)
        self._rooms.append(room)

    def get(self, slot_id: Optional[str]) -> Optional[Room]:
        if slot_id is None:
            return None
        idx = self._index.get(slot_id)
        return self._rooms[idx] if idx is not None else None

    def __contains__(self, slot_id: object) -> bool:
        return slot_id in self._index

    def __iter__(self) -> Iterator[Room]:
        return iter(self._rooms)

    def __len__(self) -> int:
        return len(self._rooms)


@dataclass
class Variant:
    rooms: List[Room]
    mirror_x: bool = False
    mirror_z: bool = False
    skipped: List[SkippedSlot] = field(default_factory=list)
    truncated_at: Optional[str] = None

    @property
    def truncated(self) -> bool:
        return self.truncated_at is not None
