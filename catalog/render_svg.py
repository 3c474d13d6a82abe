import svgwrite

# floor colors per room type, as RGB fractions
TYPE_COLORS = {
    "entry": (0.3, 0.4, 0.6),
    "corridor": (0.35, 0.35, 0.35),
    "bathroom": (0.5, 0.5, 0.6),
    "kitchen": (0.5, 0.4, 0.4),
    "bedroom": (0.4, 0.45, 0.5),
    "kidsroom": (0.45, 0.5, 0.4),
    "livingroom": (0.45, 0.35, 0.35),
    "storage": (0.35, 0.35, 0.3),
    "balcony": (0.4, 0.35, 0.3),
}
DEFAULT_COLOR = (0.5, 0.5, 0.5)


def color_by_type(room_type):
    r, g, b = TYPE_COLORS.get((room_type or "").lower(), DEFAULT_COLOR)
    return "#%02x%02x%02x" % (int(round(r * 255)), int(round(g * 255)), int(round(b * 255)))


def _room_rect(room):
    pos = room.get("position") or {}
    size = room.get("size") or {}
    w = float(size.get("w", 0))
    d = float(size.get("d", 0))
    x = float(pos.get("x", 0))
    z = float(pos.get("z", 0))
    return x - w / 2, z - d / 2, w, d


def render_layout_svg(layout_data, svg_path=None, scale=40, pad=1.0,
                      labels=True, debug_bounds=False):
    """Render a top-down plan of an exported layout.

    - Floors are filled by room type.
    - Walls are drawn from the visible wall records, so door openings show
      up as gaps and shared walls are drawn once.
    - ``debug_bounds`` outlines each room footprint with a dashed line.

    North (-z) is up. Returns the drawing; it is saved when ``svg_path`` is
    given.
    """
    layout = layout_data.get("layout", {}) or {}
    rooms = [r for r in layout.get("rooms", []) if r.get("size")]
    walls = layout.get("walls", [])

    xs, zs = [], []
    for r in rooms:
        x, z, w, d = _room_rect(r)
        xs += [x, x + w]
        zs += [z, z + d]
    for wall in walls:
        c, h = wall["center"], wall["half"]
        xs += [c["x"] - h["x"], c["x"] + h["x"]]
        zs += [c["z"] - h["z"], c["z"] + h["z"]]
    min_x, max_x = (min(xs), max(xs)) if xs else (0.0, 0.0)
    min_z, max_z = (min(zs), max(zs)) if zs else (0.0, 0.0)

    def tx(x):
        return (x - min_x + pad) * scale

    def tz(z):
        return (z - min_z + pad) * scale

    width = (max_x - min_x + 2 * pad) * scale
    height = (max_z - min_z + 2 * pad) * scale
    dwg = svgwrite.Drawing(str(svg_path) if svg_path else "layout.svg", profile="tiny", size=(width, height))

    floors = dwg.g(id="rooms")
    for r in rooms:
        x, z, w, d = _room_rect(r)
        floors.add(dwg.rect(insert=(tx(x), tz(z)), size=(w * scale, d * scale),
                            fill=color_by_type(r.get("type")), stroke="none"))
    dwg.add(floors)

    wall_group = dwg.g(id="walls")
    for wall in walls:
        c, h = wall["center"], wall["half"]
        wall_group.add(dwg.rect(insert=(tx(c["x"] - h["x"]), tz(c["z"] - h["z"])),
                                size=(2 * h["x"] * scale, 2 * h["z"] * scale),
                                fill="#222222", stroke="none"))
    dwg.add(wall_group)

    if debug_bounds:
        bounds = dwg.g(id="bounds")
        for r in rooms:
            x, z, w, d = _room_rect(r)
            bounds.add(dwg.rect(insert=(tx(x), tz(z)), size=(w * scale, d * scale),
                                fill="none", stroke="#ff0000", stroke_width=1,
                                stroke_dasharray="4,2"))
        dwg.add(bounds)

    if labels:
        font_size = max(9, int(scale * 0.35))
        label_group = dwg.g(id="labels")
        for r in rooms:
            x, z, w, d = _room_rect(r)
            label_group.add(dwg.text(r.get("slotId") or r.get("type") or "room",
                                     insert=(tx(x + w / 2), tz(z + d / 2)),
                                     text_anchor="middle",
                                     font_size=font_size,
                                     font_family="Arial",
                                     fill="#ffffff"))
        dwg.add(label_group)

    if svg_path:
        dwg.save()
    return dwg
