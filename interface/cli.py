import argparse
import base64
import json
import logging
import os
import sys
import requests
from requests.exceptions import RequestException


def build_payload(args, pattern):
    payload = {
        "variants": args.variants,
        "include_optional": not args.no_optional,
        "grid_step": args.grid_step,
    }
    if pattern is not None:
        payload["pattern"] = pattern
    else:
        payload["pattern_id"] = args.pattern_id
    if args.seed is not None:
        payload["seed"] = args.seed
    return payload


def main():
    parser = argparse.ArgumentParser(description="Generate an apartment layout via the API")
    parser.add_argument(
        "--api",
        default="http://localhost:8000",
        help="Base URL of the layout generation API",
    )
    group = parser.add_mutually_exclusive_group()
    group.add_argument("--pattern", default=None, help="Path to a pattern JSON file")
    group.add_argument(
        "--pattern_id",
        default="apt_basic",
        help="Id of a pattern in the server catalog",
    )
    parser.add_argument("--outdir", default="generated_cli", help="Directory to save outputs")
    parser.add_argument("--api-key", default="testkey", help="API key for authentication")
    parser.add_argument("--variants", type=int, default=1, help="Variants to generate")
    parser.add_argument("--seed", type=int, default=None, help="Seed for mirror choices")
    parser.add_argument("--grid_step", type=float, default=1.0, help="Placement grid step")
    parser.add_argument("--no_optional", action="store_true", help="Leave out optional rooms")
    args = parser.parse_args()

    logging.basicConfig(level=logging.INFO, format="%(levelname)s: %(message)s")
    log = logging.getLogger(__name__)

    pattern = None
    if args.pattern:
        try:
            with open(args.pattern, "r", encoding="utf-8") as f:
                pattern = json.load(f)
        except (OSError, json.JSONDecodeError) as e:
            log.error("Failed to read pattern file %s: %s", args.pattern, e)
            sys.exit(1)

    payload = build_payload(args, pattern)
    headers = {"X-API-Key": args.api_key}
    url = f"{args.api.rstrip('/')}/generate"
    try:
        resp = requests.post(url, json=payload, headers=headers)
        resp.raise_for_status()
        data = resp.json()
    except RequestException as e:
        log.error("Request to %s failed: %s", url, e)
        sys.exit(1)

    os.makedirs(args.outdir, exist_ok=True)
    layout_id = data.get("layout_id", "layout")
    svg_data = data["svg_data_url"].split(",", 1)[1]
    svg_bytes = base64.b64decode(svg_data)
    svg_path = os.path.join(args.outdir, f"{layout_id}.svg")
    try:
        with open(svg_path, "wb") as f:
            f.write(svg_bytes)
    except OSError as e:
        log.error("Failed to write SVG to %s: %s", svg_path, e)
        sys.exit(1)

    json_path = os.path.join(args.outdir, f"{layout_id}.json")
    try:
        with open(json_path, "w", encoding="utf-8") as f:
            json.dump({"meta": data.get("meta", {}), "layout": data["layout"]}, f, indent=2)
    except OSError as e:
        log.error("Failed to write layout JSON to %s: %s", json_path, e)
        sys.exit(1)

    for issue in data.get("issues", []):
        log.warning(issue)
    gen_time = data.get("metadata", {}).get("processing_time")
    if gen_time is not None:
        print(f"Generation time: {gen_time:.2f}s")
    print(f"Saved SVG to {svg_path}")
    print(f"Saved layout JSON to {json_path}")


if __name__ == "__main__":
    main()
