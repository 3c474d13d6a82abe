import pytest

from evaluation.validators import check_door_alignment
from Generate.auto_doors import synthesize_auto_doors
from Generate.generate_apartment import generate_variant
from Generate.layout_model import LayoutModel
from Generate.params import Door, Pattern, RoomTemplate, Size, Slot, Wall
from geometry.kernel import Vec2


def _pair(entry_doors, hall_doors, hall_pos=(3, 0)):
    templates = {
        "entry": RoomTemplate(id="entry", size=Size(w=2, d=2), doors=entry_doors),
        "hall": RoomTemplate(id="hall", size=Size(w=2, d=2), doors=hall_doors),
    }
    pattern = Pattern(
        id="pair",
        slots=[
            Slot(slotId="entry", pick="entry"),
            Slot(slotId="hall", pick="hall", pos={"x": hall_pos[0], "z": hall_pos[1]}, attachTo="entry"),
        ],
    )
    return generate_variant(pattern, templates).rooms


def test_child_gets_door_matching_parent():
    rooms = _pair([Door(wall=Wall.E, offset=0.5, width=1)], [])
    auto = synthesize_auto_doors(rooms)
    assert list(auto) == ["hall"]
    (door,) = auto["hall"]
    assert door.wall == Wall.W
    assert door.offset == pytest.approx(0.5)
    assert door.width == pytest.approx(1)
    assert door.height == pytest.approx(2.1)


def test_parent_gets_door_matching_child():
    rooms = _pair([], [Door(wall=Wall.W, offset=0.2, width=0.8, height=2.0)])
    auto = synthesize_auto_doors(rooms)
    assert list(auto) == ["entry"]
    (door,) = auto["entry"]
    assert door.wall == Wall.E
    assert door.center == pytest.approx(0.6)
    assert door.width == pytest.approx(0.8)
    assert door.height == pytest.approx(2.0)


def test_both_sides_get_default_doors_in_shared_span():
    rooms = _pair([], [])
    auto = synthesize_auto_doors(rooms)
    assert auto["entry"] == [Door(wall=Wall.E, offset=0.4, width=1.2, height=2.1)]
    assert auto["hall"] == [Door(wall=Wall.W, offset=0.4, width=1.2, height=2.1)]


def test_aligned_doors_need_nothing():
    rooms = _pair([Door(wall=Wall.E, offset=0.5)], [Door(wall=Wall.W, offset=0.5)])
    assert synthesize_auto_doors(rooms) == {}


def test_user_door_counts_as_existing():
    rooms = _pair([], [Door(wall=Wall.W, offset=0.5)])
    rooms[0].user_doors.append(Door(wall=Wall.E, offset=0.5))
    assert synthesize_auto_doors(rooms) == {}


def test_templates_and_rooms_are_not_modified():
    rooms = _pair([], [])
    synthesize_auto_doors(rooms)
    assert rooms[0].tpl.doors == [] and rooms[1].tpl.doors == []
    assert rooms[0].user_doors == [] and rooms[1].user_doors == []


def test_rotated_child_door_lands_on_facing_local_wall():
    # the hall only has an east door, so it turns to face west toward the entry
    rooms = _pair([], [Door(wall=Wall.E, offset=0.5, width=1)])
    hall = rooms[1]
    assert hall.rotate == 180
    auto = synthesize_auto_doors(rooms)
    assert list(auto) == ["entry"]
    (door,) = auto["entry"]
    assert door.wall == Wall.E
    assert door.offset == pytest.approx(0.5)
    model = LayoutModel(rooms)
    model.rebuild()
    assert check_door_alignment(model) == []


def test_second_child_on_same_wall_gets_its_own_door():
    templates = {
        "hub": RoomTemplate(id="hub", size=Size(w=6, d=2), doors=[Door(wall=Wall.S, offset=0.5)]),
        "box": RoomTemplate(id="box", size=Size(w=2, d=2), doors=[Door(wall=Wall.N, offset=0.5)]),
    }
    pattern = Pattern(
        id="fork",
        slots=[
            Slot(slotId="hub", pick="hub"),
            Slot(slotId="left", pick="box", pos={"x": -2, "z": 3}, attachTo="hub"),
            Slot(slotId="right", pick="box", pos={"x": 2, "z": 3}, attachTo="hub"),
        ],
    )
    variant = generate_variant(pattern, templates)
    left, right = variant.rooms[1], variant.rooms[2]
    # both line up with the hub door first; the second is pushed off the first
    assert left.pos == Vec2(-2, 2)
    assert right.pos == Vec2(0, 2)
    auto = synthesize_auto_doors(variant.rooms)
    assert auto == {"hub": [Door(wall=Wall.S, offset=2.5, width=1, height=2.1)]}
    model = LayoutModel(variant.rooms)
    model.rebuild()
    assert check_door_alignment(model) == []
