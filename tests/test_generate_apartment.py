import json
import os
import random
import subprocess
import sys

import pytest
from pydantic import ValidationError

from catalog.loaders import load_pattern, load_templates, patterns_dir, rooms_dir
from evaluation.validators import check_overlaps, validate_variant
from Generate.generate_apartment import apply_mirror, generate_apartment_variants, generate_variant
from Generate.params import Door, Pattern, RoomTemplate, Size, Slot, Wall
from Generate.rooms import PlacementError
from geometry.kernel import Vec2

REPO_ROOT = os.path.abspath(os.path.join(os.path.dirname(__file__), ".."))


class FixedRandom:
    def __init__(self, value):
        self.value = value

    def random(self):
        return self.value


@pytest.fixture
def sample():
    pattern = load_pattern(os.path.join(patterns_dir(), "apt_basic.json"))
    templates = load_templates(rooms_dir())
    return pattern, templates


def test_sample_pattern_positions(sample):
    pattern, templates = sample
    variant = generate_variant(pattern, templates)
    got = {r.slot_id: (r.pos.x, r.pos.z, r.rotate) for r in variant.rooms}
    assert got == {
        "entry": (0, 0, 0),
        "corridor": (4, 0, 0),
        "bathroom": (3, -2, 0),
        "bedroom": (5, 3, 0),
        "kitchen": (9, 0, 0),
        "living": (10, 4, 0),
        "storage": (-2, 0, 0),
        "balcony": (10, 7, 180),
    }
    assert not variant.truncated
    assert variant.skipped == []


def test_optional_slots_can_be_left_out(sample):
    pattern, templates = sample
    variant = generate_variant(pattern, templates, include_optional=False)
    ids = [r.slot_id for r in variant.rooms]
    assert ids == ["entry", "corridor", "bathroom", "bedroom", "kitchen", "living"]


@pytest.mark.parametrize("mirror_x", [False, True])
def test_sample_variants_are_valid(sample, mirror_x):
    pattern, templates = sample
    variant = generate_variant(pattern, templates, mirror_x=mirror_x)
    assert len(variant.rooms) == 8
    assert check_overlaps(variant.rooms) == []
    assert validate_variant(variant) == []


def test_mirror_negates_base_positions(sample):
    pattern, templates = sample
    plain = generate_variant(pattern, templates)
    mirrored = generate_variant(pattern, templates, mirror_x=True)
    for a, b in zip(plain.rooms, mirrored.rooms):
        assert a.slot_id == b.slot_id
        assert a.tpl_id == b.tpl_id
        assert b.base_pos == Vec2(-a.base_pos.x, a.base_pos.z)
    assert mirrored.rooms[0].rotate == plain.rooms[0].rotate
    assert mirrored.rooms[0].pos == Vec2(0, 0)


def test_apply_mirror():
    assert apply_mirror(Vec2(2, 3), True, False) == Vec2(-2, 3)
    assert apply_mirror(Vec2(2, 3), False, True) == Vec2(2, -3)
    assert apply_mirror(Vec2(2, 3), False, False) == Vec2(2, 3)


def test_mirror_flags_follow_pattern_permissions(sample):
    pattern, templates = sample
    variants = generate_apartment_variants(pattern, templates, variants=3, rng=FixedRandom(0.1))
    assert len(variants) == 3
    assert all(v.mirror_x for v in variants)
    assert not any(v.mirror_z for v in variants)

    variants = generate_apartment_variants(pattern, templates, variants=2, rng=FixedRandom(0.9))
    assert not any(v.mirror_x for v in variants)


def _templates():
    return {
        "a": RoomTemplate(id="a", type="a", size=Size(w=2, d=2), doors=[Door(wall=Wall.E, offset=0.5)]),
        "b": RoomTemplate(id="b", type="b", size=Size(w=2, d=2), doors=[Door(wall=Wall.W, offset=0.5)]),
        "broken": RoomTemplate(id="broken", type="b"),
    }


def test_missing_template_is_skipped_and_generation_continues():
    pattern = Pattern(
        id="p",
        slots=[
            Slot(slotId="one", pick="a"),
            Slot(slotId="ghost", pick="nope", pos={"x": 3, "z": 0}, attachTo="one"),
            Slot(slotId="two", pick=["b", "a"], pos={"x": 3, "z": 0}, attachTo="one"),
        ],
    )
    variant = generate_variant(pattern, _templates())
    assert [r.slot_id for r in variant.rooms] == ["one", "two"]
    assert variant.rooms[1].tpl_id == "b"
    assert [(s.slot_id, s.reason) for s in variant.skipped] == [("ghost", PlacementError.MISSING_TEMPLATE)]
    assert not variant.truncated


def test_failed_optional_slot_is_skipped():
    pattern = Pattern(
        id="p",
        slots=[
            Slot(slotId="one", pick="a"),
            Slot(slotId="bad", pick="broken", pos={"x": 3, "z": 0}, attachTo="one", optional=True),
            Slot(slotId="two", pick="b", pos={"x": 3, "z": 0}, attachTo="one"),
        ],
    )
    variant = generate_variant(pattern, _templates())
    assert [r.slot_id for r in variant.rooms] == ["one", "two"]
    assert variant.skipped[0].reason == PlacementError.MALFORMED_INPUT


def test_required_failure_truncates_variant_but_not_batch():
    pattern = Pattern(
        id="p",
        slots=[
            Slot(slotId="one", pick="a"),
            Slot(slotId="bad", pick="broken", pos={"x": 3, "z": 0}, attachTo="one"),
            Slot(slotId="two", pick="b", pos={"x": -3, "z": 0}),
        ],
    )
    variants = generate_apartment_variants(pattern, _templates(), variants=2, rng=random.Random(1))
    assert len(variants) == 2
    for variant in variants:
        assert [r.slot_id for r in variant.rooms] == ["one"]
        assert variant.truncated_at == "bad"


@pytest.mark.parametrize(
    "slots",
    [
        [{"slotId": "a", "attachTo": "b"}, {"slotId": "b"}],
        [{"slotId": "a"}, {"slotId": "a"}],
        [{"slotId": "a", "attachTo": "a"}],
        [{"slotId": "a", "rotate": 45}],
    ],
)
def test_invalid_patterns_are_rejected(slots):
    with pytest.raises(ValidationError):
        Pattern.model_validate({"id": "bad", "slots": slots})


def test_rotation_hint_is_normalized():
    slot = Slot(slotId="a", rotate=450)
    assert slot.rotate == 90
    assert Slot(slotId="b", rotate=-90).rotate == 270


def test_cli_writes_json_and_svg(tmp_path):
    out_prefix = tmp_path / "apt"
    cmd = [
        sys.executable,
        os.path.join(REPO_ROOT, "Generate", "generate_apartment.py"),
        "--pattern",
        os.path.join(patterns_dir(), "apt_basic.json"),
        "--out_prefix",
        str(out_prefix),
        "--seed",
        "3",
    ]
    result = subprocess.run(cmd, capture_output=True, cwd=REPO_ROOT)
    assert result.returncode == 0, result.stderr
    data = json.loads((tmp_path / "apt.json").read_text())
    assert len(data["layout"]["rooms"]) == 8
    assert data["layout"]["walls"]
    assert (tmp_path / "apt.svg").exists()
