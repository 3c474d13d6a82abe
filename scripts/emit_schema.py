#!/usr/bin/env python
"""
Emit the versioned JSON Schemas for patterns and room templates to schema/
"""
import os
import sys

ROOT = os.path.abspath(os.path.join(os.path.dirname(__file__), ".."))
sys.path.insert(0, ROOT)

from Generate.orchestrator import emit_pattern_schema, emit_template_schema

PATTERN_OUT = os.path.join(ROOT, "schema", "pattern.v1.json")
TEMPLATE_OUT = os.path.join(ROOT, "schema", "room_template.v1.json")

if __name__ == "__main__":
    emit_pattern_schema(PATTERN_OUT)
    print(f"Wrote {PATTERN_OUT}")
    emit_template_schema(TEMPLATE_OUT)
    print(f"Wrote {TEMPLATE_OUT}")
