from __future__ import annotations

import json
from typing import Dict, List, Optional

from Generate.constants import VERSION
from Generate.layout_model import LayoutModel
from Generate.params import Door
from Generate.rooms import Room, Variant
from geometry.kernel import size_after_rotation


def _door_dicts(doors: List[Door]) -> List[Dict]:
    return [d.model_dump(mode="json") for d in doors]


def room_to_dict(model: LayoutModel, room: Room) -> Dict:
    pos = model.world_position(room)
    size = size_after_rotation(room.tpl, room.rotate)
    out: Dict = {
        "slotId": room.slot_id,
        "type": room.type,
        "tplId": room.tpl_id,
        "position": {"x": pos.x, "z": pos.z},
        "rotate": room.rotate,
        "size": None,
        "attachTo": room.attach_to,
        "attachWall": room.attach_wall.value if room.attach_wall else None,
        "parentWall": room.parent_wall.value if room.parent_wall else None,
        "doors": _door_dicts(model.doors_for(room.slot_id)),
        "userDoors": _door_dicts(room.user_doors),
        "autoDoors": _door_dicts(model.auto_doors.get(room.slot_id, [])),
    }
    if size is not None:
        out["size"] = {"w": size[0], "d": size[1], "h": room.tpl.size.h}
    return out


def export_layout(model: LayoutModel, pattern_id: Optional[str] = None, variant: Optional[Variant] = None) -> Dict:
    """Serialize a built layout into a JSON-ready dict.

    ``size`` is the rotated footprint and ``position`` the world center, so
    consumers can draw rooms without knowing about rotation.
    """
    meta: Dict = {
        "version": VERSION,
        "pattern": pattern_id,
        "gridStep": model.grid_step,
        "layoutScale": model.layout_scale,
    }
    if variant is not None:
        meta.update(
            {
                "mirrorX": variant.mirror_x,
                "mirrorZ": variant.mirror_z,
                "skipped": [{"slotId": s.slot_id, "reason": s.reason.value} for s in variant.skipped],
                "truncatedAt": variant.truncated_at,
            }
        )
    return {
        "meta": meta,
        "layout": {
            "rooms": [room_to_dict(model, r) for r in model.rooms],
            "walls": [w.to_dict() for w in model.walls],
            "hiddenWalls": [w.to_dict() for w in model.hidden_walls],
        },
    }


def write_layout_json(model: LayoutModel, path: str, **kwargs) -> Dict:
    data = export_layout(model, **kwargs)
    with open(path, "w", encoding="utf-8") as fh:
        json.dump(data, fh, indent=2)
    return data
