from backend.game_objects import Zone
from backend.zones import core_bounds, find_candidate, is_tile_unlocked, next_zones


def _rect(entry):
    return (entry['x1'], entry['y1'], entry['x2'], entry['y2'])


def test_core_is_centered(catalog):
    grid = catalog.grid
    assert core_bounds(grid) == (8, 8, 15, 15)
    assert is_tile_unlocked(8, 8, [], grid)
    assert is_tile_unlocked(15, 15, [], grid)
    assert not is_tile_unlocked(7, 8, [], grid)
    assert not is_tile_unlocked(16, 15, [], grid)


def test_zone_membership_is_inclusive(catalog):
    zone = Zone(8, 4, 15, 7, 'north')
    assert is_tile_unlocked(8, 4, [zone], catalog.grid)
    assert is_tile_unlocked(15, 7, [zone], catalog.grid)
    assert not is_tile_unlocked(8, 3, [zone], catalog.grid)


def test_initial_candidates(catalog):
    candidates = next_zones([], catalog.grid)
    assert [c['direction'] for c in candidates] == ['north', 'south', 'west', 'east']
    assert _rect(candidates[0]) == (8, 4, 15, 7)
    assert _rect(candidates[1]) == (8, 16, 15, 19)
    assert _rect(candidates[2]) == (4, 8, 7, 15)
    assert _rect(candidates[3]) == (16, 8, 19, 15)
    assert [c['zone_number'] for c in candidates] == [1, 2, 3, 4]
    assert [c['cost'] for c in candidates] == [500, 2000, 4500, 8000]


def test_candidates_grow_from_bounding_box(catalog):
    north = Zone(8, 4, 15, 7, 'north')
    candidates = next_zones([north], catalog.grid)
    assert _rect(find_candidate([north], catalog.grid, 'north')) == (8, 0, 15, 3)
    assert _rect(find_candidate([north], catalog.grid, 'west')) == (4, 4, 7, 15)
    assert candidates[0]['zone_number'] == 2
    assert candidates[0]['cost'] == 2000


def test_candidates_stay_on_grid_and_never_repeat(catalog):
    grid = catalog.grid
    zones = []
    for direction in ['north', 'north', 'west', 'west', 'south', 'east']:
        candidate = find_candidate(zones, grid, direction)
        if candidate is not None:
            zones.append(Zone.from_dict(candidate))

    assert find_candidate(zones, grid, 'north') is None
    assert find_candidate(zones, grid, 'west') is None

    candidates = next_zones(zones, grid)
    rects = [_rect(c) for c in candidates]
    assert len(rects) == len(set(rects))
    for x1, y1, x2, y2 in rects:
        assert 0 <= x1 <= x2 < grid.size
        assert 0 <= y1 <= y2 < grid.size
        assert not any((z.x1, z.y1, z.x2, z.y2) == (x1, y1, x2, y2) for z in zones)
