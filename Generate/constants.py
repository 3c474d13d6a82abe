# Centralized constants and defaults for apartment layout generation

VERSION = "v1"

# Placement
GRID_DEFAULT = 1.0
LAYOUT_SCALE_DEFAULT = 1.0
PLACEMENT_EPS = 1e-4
COLLISION_PADDING = 0.05
MAX_PLACEMENT_TRIES = 10
ROTATIONS = (0, 90, 180, 270)

# Walls
WALL_THICKNESS = 0.1
WALL_INSET = 0.0
MIN_WALL_SEGMENT = 0.05  # slivers at or below this length are dropped
WALL_MATCH_EPS = 0.02    # duplicate-wall plane/length/overlap tolerance
ROOM_HEIGHT_DEFAULT = 2.7

# Doors
TEMPLATE_DOOR_WIDTH = 1.0
DOOR_HEIGHT_DEFAULT = 2.1
AUTO_DOOR_WIDTH = 1.2
DOOR_MATCH_TOL = 0.05

# Collision consumers (camera/physics)
COLLIDER_RADIUS = 0.45

# Variants
VARIANTS_DEFAULT = 1
