import os, json, logging, random
from typing import Any, Dict, Optional, Tuple

from Generate.params import Pattern, RoomTemplate
from Generate.constants import VERSION, GRID_DEFAULT, LAYOUT_SCALE_DEFAULT, VARIANTS_DEFAULT
from Generate.generate_apartment import generate_apartment_variants
from Generate.layout_model import LayoutModel
from geometry.exporters import export_layout

log = logging.getLogger(__name__)


def _emit_schema(model, name: str, path: str) -> None:
    schema = model.model_json_schema()
    # add versioned id
    schema["$id"] = f"urn:apartment-layout:{name}:{VERSION}"
    schema["$schema"] = "https://json-schema.org/draft/2020-12/schema"
    os.makedirs(os.path.dirname(path), exist_ok=True)
    with open(path, "w", encoding="utf-8") as f:
        json.dump(schema, f, indent=2)


def emit_pattern_schema(path: str) -> None:
    """Write the versioned JSON Schema for Pattern to the given path."""
    _emit_schema(Pattern, "pattern", path)


def emit_template_schema(path: str) -> None:
    """Write the versioned JSON Schema for RoomTemplate to the given path."""
    _emit_schema(RoomTemplate, "room_template", path)


def generate_layout(
    pattern: Pattern,
    templates: Dict[str, RoomTemplate],
    *,
    variants: int = VARIANTS_DEFAULT,
    include_optional: bool = True,
    grid_step: float = GRID_DEFAULT,
    layout_scale: float = LAYOUT_SCALE_DEFAULT,
    seed: Optional[int] = None,
) -> Tuple[LayoutModel, Dict[str, Any]]:
    """Generate variants, build the first one and return it with metadata.

    Returns ``(model, info)`` where ``info`` carries the exported layout and a
    summary of every variant that was generated.
    """
    if variants < 1:
        raise ValueError("variants must be at least 1")
    rng = random.Random(seed)
    results = generate_apartment_variants(
        pattern,
        templates,
        variants=variants,
        include_optional=include_optional,
        grid_step=grid_step,
        rng=rng,
    )
    chosen = results[0]
    model = LayoutModel(chosen.rooms, grid_step=grid_step, layout_scale=layout_scale)
    model.rebuild()
    if chosen.truncated:
        log.warning("Layout for %s is incomplete: stopped at slot %s", pattern.id, chosen.truncated_at)

    info = {
        "layout": export_layout(model, pattern_id=pattern.id, variant=chosen),
        "variants": [
            {
                "rooms": len(v.rooms),
                "mirrorX": v.mirror_x,
                "mirrorZ": v.mirror_z,
                "skipped": [s.slot_id for s in v.skipped],
                "truncatedAt": v.truncated_at,
            }
            for v in results
        ],
    }
    return model, info
