"""Territory: the central unlocked core and the zones grown around it."""
from backend.catalog import zone_unlock_cost
from backend.game_objects import Zone

DIRECTIONS = ('north', 'south', 'west', 'east')

def core_bounds(grid):
    """Inclusive (x1, y1, x2, y2) of the central core."""
    low = grid.center - grid.half_core
    high = grid.center + grid.half_core - 1
    return (low, low, high, high)

def is_tile_unlocked(x, y, zones, grid):
    """A tile is unlocked inside the core or any recorded zone."""
    x1, y1, x2, y2 = core_bounds(grid)
    if x1 <= x <= x2 and y1 <= y <= y2:
        return True
    return any(zone.contains(x, y) for zone in zones)

def is_on_grid(x, y, grid):
    return 0 <= x < grid.size and 0 <= y < grid.size

def bounding_box(zones, grid):
    """Bounding box of the core and every unlocked zone."""
    x1, y1, x2, y2 = core_bounds(grid)
    for zone in zones:
        x1 = min(x1, zone.x1)
        y1 = min(y1, zone.y1)
        x2 = max(x2, zone.x2)
        y2 = max(y2, zone.y2)
    return x1, y1, x2, y2

def next_zones(zones, grid):
    """Candidate zones, one per direction that still fits on the grid.

    Each candidate is a dict holding the zone rectangle plus its ``cost`` and
    ``zone_number`` (the ordinal the zone would get once unlocked).
    """
    size = grid.zone_depth
    x1, y1, x2, y2 = bounding_box(zones, grid)

    candidates = []
    if y1 - size >= 0:
        candidates.append(Zone(x1, y1 - size, x2, y1 - 1, 'north'))
    if y2 + size < grid.size:
        candidates.append(Zone(x1, y2 + 1, x2, y2 + size, 'south'))
    if x1 - size >= 0:
        candidates.append(Zone(x1 - size, y1, x1 - 1, y2, 'west'))
    if x2 + size < grid.size:
        candidates.append(Zone(x2 + 1, y1, x2 + size, y2, 'east'))

    candidates = [c for c in candidates if not any(c.same_area(z) for z in zones)]

    first_number = len(zones) + 1
    result = []
    for idx, candidate in enumerate(candidates):
        entry = candidate.to_dict()
        entry['zone_number'] = first_number + idx
        entry['cost'] = zone_unlock_cost(first_number + idx)
        result.append(entry)
    return result

def find_candidate(zones, grid, direction):
    """The candidate for ``direction``, or None."""
    for candidate in next_zones(zones, grid):
        if candidate['direction'] == direction:
            return candidate
    return None
