"""Generate apartment variants from a pattern and validate each of them.

This script renders an SVG of the first variant for visual inspection and
checks every variant for overlaps, attachment walls and door alignment.
"""

import argparse
import json
import logging
import os
import random
import sys
from pathlib import Path


# Ensure repository root is on ``sys.path`` when running as a script
current_dir = os.path.dirname(os.path.abspath(__file__))
repo_root = os.path.abspath(os.path.join(current_dir, ".."))
if repo_root not in sys.path:
    sys.path.insert(0, repo_root)

from catalog.loaders import load_pattern, load_templates, patterns_dir, rooms_dir
from catalog.render_svg import render_layout_svg
from evaluation.validators import validate_variant
from Generate.generate_apartment import generate_apartment_variants
from Generate.layout_model import LayoutModel
from geometry.exporters import export_layout


class LayoutValidationError(RuntimeError):
    """Raised in strict mode when a generated layout breaks an invariant."""


log = logging.getLogger(__name__)


def evaluate(pattern, templates, variants=5, seed=None, include_optional=True):
    """Return ``(variants, issues)`` where issues are prefixed by variant index."""
    results = generate_apartment_variants(
        pattern,
        templates,
        variants=variants,
        include_optional=include_optional,
        rng=random.Random(seed),
    )
    issues: list[str] = []
    for i, variant in enumerate(results):
        issues.extend(f"variant {i}: {msg}" for msg in validate_variant(variant))
    return results, issues


def main() -> None:
    ap = argparse.ArgumentParser(description=__doc__)
    ap.add_argument(
        "--pattern",
        default=os.path.join(patterns_dir(), "apt_basic.json"),
        help="Path to pattern JSON",
    )
    ap.add_argument("--templates", nargs="+", default=None, help="Template JSON files or directories")
    ap.add_argument("--variants", type=int, default=5)
    ap.add_argument("--seed", type=int, default=0)
    ap.add_argument("--no_optional", action="store_true", help="Leave out optional slots")
    ap.add_argument("--svg_out", default="evaluation.svg", help="Path to write SVG rendering")
    ap.add_argument("--json-report", dest="json_report", default=None, help="Write issues to this JSON file")
    ap.add_argument(
        "--strict",
        action="store_true",
        help="Exit with a non-zero status if any validation issues are found",
    )
    args = ap.parse_args()

    logging.basicConfig(level=logging.INFO, format="%(levelname)s: %(message)s")

    pattern = load_pattern(args.pattern)
    templates = load_templates(args.templates or [rooms_dir()])

    results, issues = evaluate(
        pattern,
        templates,
        variants=max(1, args.variants),
        seed=args.seed,
        include_optional=not args.no_optional,
    )

    model = LayoutModel(results[0].rooms)
    model.rebuild()
    render_layout_svg(export_layout(model, pattern_id=pattern.id, variant=results[0]), args.svg_out)
    log.info("Rendered layout SVG to %s", Path(args.svg_out).resolve())

    if args.json_report:
        report = {
            "pattern": pattern.id,
            "variants": [
                {"rooms": len(v.rooms), "mirrorX": v.mirror_x, "mirrorZ": v.mirror_z, "truncatedAt": v.truncated_at}
                for v in results
            ],
            "issues": issues,
        }
        with open(args.json_report, "w", encoding="utf-8") as f:
            json.dump(report, f, indent=2)

    if issues:
        log_func = log.error if args.strict else log.warning
        for msg in issues:
            log_func(msg)
        if args.strict:
            raise LayoutValidationError("; ".join(issues))
    else:
        log.info("No issues detected in %d variants", len(results))


if __name__ == "__main__":
    try:
        main()
    except Exception as exc:  # pragma: no cover - CLI entry point
        log.error("%s", exc)
        sys.exit(1)
