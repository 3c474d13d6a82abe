from Generate.generate_apartment import generate_variant
from Generate.layout_model import LayoutModel
from Generate.params import Door, Pattern, RoomTemplate, Size, Slot, Wall
from Generate.placement import best_rotation, pick_attach_dir, place_room
from Generate.rooms import PlacementError, Room
from evaluation.validators import check_overlaps
from geometry.kernel import Vec2


def _tpl(tpl_id, w, d, doors=()):
    return RoomTemplate(id=tpl_id, type=tpl_id, size=Size(w=w, d=d), doors=list(doors))


def _room(slot_id, tpl, x, z, rotate=0):
    return Room(slot_id=slot_id, type=tpl.type, tpl_id=tpl.id, tpl=tpl, pos=Vec2(x, z), rotate=rotate, base_pos=Vec2(x, z))


def _entry_hall_pattern():
    templates = {
        "entry": _tpl("entry", 2, 2, [Door(wall=Wall.E, offset=0.5, width=1)]),
        "hall": _tpl("hall", 2, 2, [Door(wall=Wall.W, offset=0.5, width=1)]),
    }
    pattern = Pattern(
        id="pair",
        slots=[
            Slot(slotId="entry", pick="entry", pos={"x": 0, "z": 0}),
            Slot(slotId="hall", pick="hall", pos={"x": 3, "z": 0}, attachTo="entry"),
        ],
    )
    return pattern, templates


def test_entry_and_hall_share_one_door_gap():
    pattern, templates = _entry_hall_pattern()
    variant = generate_variant(pattern, templates)
    entry, hall = variant.rooms
    assert hall.pos.x == entry.pos.x + 2
    assert hall.pos.z == entry.pos.z
    assert entry.rotate == 0 and hall.rotate == 0
    assert hall.attach_wall == Wall.W and hall.parent_wall == Wall.E
    assert check_overlaps(variant.rooms) == []

    model = LayoutModel(variant.rooms)
    model.rebuild()
    shared = [w for w in model.walls if w.axis == "z" and abs(w.plane - 1) < 1e-9]
    assert sorted((w.min, w.max) for w in shared) == [(-1, -0.5), (0.5, 1)]
    assert len(model.hidden_walls) == 2
    assert model.auto_doors == {}


def test_attach_dir_from_authored_positions():
    assert pick_attach_dir(Vec2(3, 0), Vec2(0, 0)) == Wall.E
    assert pick_attach_dir(Vec2(-3, 1), Vec2(0, 0)) == Wall.W
    assert pick_attach_dir(Vec2(1, -3), Vec2(0, 0)) == Wall.N
    assert pick_attach_dir(Vec2(2, 2), Vec2(0, 0)) == Wall.E


def test_best_rotation_turns_door_toward_parent():
    tpl = _tpl("balcony", 4, 2, [Door(wall=Wall.S, offset=1.5)])
    # child south of parent must open to the north
    assert best_rotation(tpl, Wall.S, hint=0) == 180
    assert best_rotation(tpl, Wall.N, hint=90) == 0
    assert best_rotation(tpl, Wall.E, hint=0) == 270


def test_best_rotation_without_doors_keeps_hint():
    assert best_rotation(_tpl("box", 2, 2), Wall.E, hint=90) == 90


def test_child_larger_than_parent_is_centered():
    parent_tpl = _tpl("p", 2, 2, [Door(wall=Wall.E, offset=0, width=1)])
    child_tpl = _tpl("c", 2, 6, [Door(wall=Wall.W, offset=0, width=1)])
    parent = _room("p", parent_tpl, 0, 0)
    slot = Slot(slotId="c", pick="c", pos={"x": 3, "z": 0}, attachTo="p")
    result = place_room(child_tpl, slot, Vec2(3, 0), parent, [parent])
    assert result.ok
    assert result.room.pos == Vec2(2, 0)


def test_attached_room_slides_along_shared_wall_on_collision():
    parent_tpl = _tpl("p", 2, 2, [Door(wall=Wall.E, offset=0.5)])
    child_tpl = _tpl("c", 2, 2, [Door(wall=Wall.W, offset=0.5)])
    parent = _room("p", parent_tpl, 0, 0)
    blocker = _room("b", _tpl("b", 2, 2), 2, 0)
    slot = Slot(slotId="c", pick="c", pos={"x": 3, "z": 0}, attachTo="p")
    result = place_room(child_tpl, slot, Vec2(3, 0), parent, [parent, blocker])
    assert result.ok
    assert result.room.pos == Vec2(2, 2)


def test_free_room_moves_along_z_on_penetration_tie():
    blocker = _room("b", _tpl("b", 4, 2), 0, 0)
    slot = Slot(slotId="a", pick="a", pos={"x": 1, "z": 0})
    result = place_room(_tpl("a", 2, 2), slot, Vec2(1, 0), None, [blocker])
    assert result.ok
    assert result.room.pos == Vec2(1, 2)
    assert result.room.attach_dir is None


def test_placement_gives_up_after_bounded_tries():
    parent_tpl = _tpl("p", 2, 2, [Door(wall=Wall.E, offset=0.5)])
    parent = _room("p", parent_tpl, 0, 0)
    column = [_room(f"b{i}", _tpl("b", 2, 2), 2, 2 * i) for i in range(10)]
    slot = Slot(slotId="c", pick="c", pos={"x": 3, "z": 0}, attachTo="p")
    child_tpl = _tpl("c", 2, 2, [Door(wall=Wall.W, offset=0.5)])
    result = place_room(child_tpl, slot, Vec2(3, 0), parent, [parent] + column)
    assert not result.ok
    assert result.error == PlacementError.PLACEMENT_EXHAUSTED


def test_missing_and_malformed_templates():
    slot = Slot(slotId="a", pick="a")
    assert place_room(None, slot, Vec2(0, 0), None, []).error == PlacementError.MISSING_TEMPLATE
    sizeless = RoomTemplate(id="a")
    assert place_room(sizeless, slot, Vec2(0, 0), None, []).error == PlacementError.MALFORMED_INPUT


def test_unattached_room_keeps_rotation_hint_and_snaps():
    slot = Slot(slotId="a", pick="a", pos={"x": 0.4, "z": 1.6}, rotate=270)
    result = place_room(_tpl("a", 2, 4, [Door(wall=Wall.N)]), slot, Vec2(0.4, 1.6), None, [])
    assert result.room.rotate == 270
    assert result.room.pos == Vec2(0, 2)
