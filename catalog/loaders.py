"""Load room templates and apartment patterns from JSON files.

Template files hold either a single template object or a list of them.
Directories are scanned (non-recursively) for ``*.json`` files in name order.
"""

import os
import json
import logging
from typing import Dict, Iterable, List, Union

from Generate.params import Pattern, RoomTemplate

log = logging.getLogger(__name__)

CATALOG_DIR = os.path.abspath(os.path.join(os.path.dirname(__file__), "data"))


def catalog_dir() -> str:
    return os.environ.get("LAYOUT_CATALOG_DIR") or CATALOG_DIR


def rooms_dir() -> str:
    return os.path.join(catalog_dir(), "rooms")


def patterns_dir() -> str:
    return os.path.join(catalog_dir(), "patterns")


def _json_files(path: str) -> List[str]:
    if os.path.isdir(path):
        return [
            os.path.join(path, name)
            for name in sorted(os.listdir(path))
            if name.endswith(".json")
        ]
    return [path]


def _read_json(path: str):
    with open(path, "r", encoding="utf-8") as f:
        return json.load(f)


def load_templates(paths: Union[str, Iterable[str]]) -> Dict[str, RoomTemplate]:
    """Return templates keyed by id. Later files override earlier ids."""
    if isinstance(paths, str):
        paths = [paths]
    templates: Dict[str, RoomTemplate] = {}
    for path in paths:
        for fname in _json_files(path):
            data = _read_json(fname)
            items = data if isinstance(data, list) else [data]
            for item in items:
                tpl = RoomTemplate.model_validate(item)
                if tpl.id in templates:
                    log.warning("Template %s in %s overrides an earlier definition", tpl.id, fname)
                templates[tpl.id] = tpl
    log.debug("Loaded %d templates", len(templates))
    return templates


def load_pattern(path: str) -> Pattern:
    return Pattern.model_validate(_read_json(path))


def list_patterns() -> List[str]:
    """Ids of the patterns in the catalog directory."""
    ids = []
    for fname in _json_files(patterns_dir()):
        if os.path.isfile(fname):
            ids.append(os.path.splitext(os.path.basename(fname))[0])
    return ids


def load_catalog_pattern(pattern_id: str) -> Pattern:
    name = os.path.basename(pattern_id)
    path = os.path.join(patterns_dir(), f"{name}.json")
    return load_pattern(path)


def load_catalog_templates() -> Dict[str, RoomTemplate]:
    return load_templates(rooms_dir())
