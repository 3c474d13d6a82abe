import os, sys, json, argparse, logging, random
from typing import Dict, List, Optional

from pydantic import ValidationError

current_dir = os.path.dirname(os.path.abspath(__file__))
repo_root = os.path.abspath(os.path.join(current_dir, ".."))
sys.path.insert(0, repo_root)

from catalog.loaders import load_pattern, load_templates, rooms_dir
from catalog.render_svg import render_layout_svg
from geometry.exporters import write_layout_json
from Generate.constants import GRID_DEFAULT, VARIANTS_DEFAULT
from Generate.layout_model import LayoutModel
from Generate.params import Pattern, RoomTemplate
from Generate.placement import place_room
from Generate.rooms import PlacementError, RoomTable, SkippedSlot, Variant
from geometry.kernel import Vec2

log = logging.getLogger(__name__)


def apply_mirror(pos: Vec2, mirror_x: bool, mirror_z: bool) -> Vec2:
    return Vec2(-pos.x if mirror_x else pos.x, -pos.z if mirror_z else pos.z)


def generate_variant(
    pattern: Pattern,
    templates: Dict[str, RoomTemplate],
    mirror_x: bool = False,
    mirror_z: bool = False,
    include_optional: bool = True,
    grid_step: float = GRID_DEFAULT,
) -> Variant:
    """Place every slot of ``pattern`` in order for one mirror setting.

    Slots whose template is unknown are skipped. A failed optional slot is
    skipped; a failed required slot ends the variant, which is returned with
    whatever was placed before it.
    """
    placed = RoomTable()
    variant = Variant(rooms=[], mirror_x=mirror_x, mirror_z=mirror_z)
    for slot in pattern.slots:
        if slot.optional and not include_optional:
            continue
        tpl_id = slot.template_id
        template = templates.get(tpl_id) if tpl_id is not None else None
        if template is None:
            log.debug("Skipping slot %s: template %r not found", slot.slotId, tpl_id)
            variant.skipped.append(SkippedSlot(slot.slotId, PlacementError.MISSING_TEMPLATE))
            continue

        base_pos = apply_mirror(Vec2(slot.pos.x, slot.pos.z), mirror_x, mirror_z)
        parent = placed.get(slot.attachTo)
        result = place_room(template, slot, base_pos, parent, placed, grid_step)
        if not result.ok:
            variant.skipped.append(SkippedSlot(slot.slotId, result.error))
            if slot.optional:
                log.debug("Skipping optional slot %s: %s", slot.slotId, result.error.value)
                continue
            log.warning(
                "Variant of %s truncated at slot %s: %s", pattern.id, slot.slotId, result.error.value
            )
            variant.truncated_at = slot.slotId
            break

        placed.add(result.room)
        variant.rooms.append(result.room)
    return variant


def generate_apartment_variants(
    pattern: Pattern,
    templates: Dict[str, RoomTemplate],
    variants: int = VARIANTS_DEFAULT,
    include_optional: bool = True,
    grid_step: float = GRID_DEFAULT,
    rng: Optional[random.Random] = None,
) -> List[Variant]:
    """Generate ``variants`` candidate plans, rolling the mirror flags for each."""
    rng = rng or random.Random()
    result: List[Variant] = []
    for i in range(variants):
        mirror_x = rng.random() < 0.5 if pattern.allowMirrorX else False
        mirror_z = rng.random() < 0.5 if pattern.allowMirrorZ else False
        variant = generate_variant(pattern, templates, mirror_x, mirror_z, include_optional, grid_step)
        log.info(
            "Variant %d of %s: %d rooms (mirror_x=%s, mirror_z=%s)",
            i, pattern.id, len(variant.rooms), mirror_x, mirror_z,
        )
        result.append(variant)
    return result


def main():
    ap = argparse.ArgumentParser(description="Generate apartment layouts from a pattern")
    ap.add_argument("--pattern", type=str, required=True, help="Path to pattern JSON")
    ap.add_argument(
        "--templates",
        type=str,
        nargs="+",
        default=None,
        help="Template JSON files or directories (defaults to the bundled catalog)",
    )
    ap.add_argument("--out_prefix", type=str, default="generated_apartment")
    ap.add_argument("--variants", type=int, default=VARIANTS_DEFAULT)
    ap.add_argument("--seed", type=int, default=None)
    ap.add_argument("--grid_step", type=float, default=GRID_DEFAULT)
    ap.add_argument(
        "--no_optional",
        action="store_true",
        help="Leave out slots marked optional",
    )
    args = ap.parse_args()

    logging.basicConfig(level=logging.INFO, format="%(levelname)s: %(message)s")

    try:
        pattern = load_pattern(args.pattern)
        templates = load_templates(args.templates or [rooms_dir()])
    except (OSError, json.JSONDecodeError, ValidationError) as e:
        log.error("Failed to load inputs: %s", e)
        sys.exit(1)

    variants = generate_apartment_variants(
        pattern,
        templates,
        variants=max(1, args.variants),
        include_optional=not args.no_optional,
        grid_step=args.grid_step,
        rng=random.Random(args.seed),
    )
    for i, variant in enumerate(variants):
        suffix = f"_{i}" if len(variants) > 1 else ""
        model = LayoutModel(variant.rooms, grid_step=args.grid_step)
        model.rebuild()
        json_path = f"{args.out_prefix}{suffix}.json"
        svg_path = f"{args.out_prefix}{suffix}.svg"
        data = write_layout_json(model, json_path, pattern_id=pattern.id, variant=variant)
        render_layout_svg(data, svg_path)
        log.info("Wrote %s and %s", json_path, svg_path)


if __name__ == "__main__":
    main()
