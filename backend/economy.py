"""Economy calculations: costs, outputs and city-wide capacities.

All functions are pure over (catalog, building type, level, resources,
buildings) and never touch a city directly, except ``apply_cost`` and
``apply_reward`` which mutate the resource dict they are handed.
"""
import math

from backend.catalog import (
    BANKABLE, STORAGE_OUTPUT, ResourceKind,
    income_at, upgrade_cost_at, production_time_at
)

def build_cost(building_type):
    """Cost to construct a level 1 building (unscaled base cost)."""
    return dict(building_type.base_cost)

def upgrade_cost(building_type, level):
    """Cost to go from ``level`` to ``level + 1``."""
    return {res: upgrade_cost_at(amount, level) for res, amount in building_type.base_cost.items()}

def output(building_type, level):
    """Per-cycle resource output at ``level``."""
    return {res: income_at(amount, level) for res, amount in building_type.resource_output().items()}

def production_time(building_type, level):
    """Seconds per production cycle; 0 for passive buildings."""
    if building_type.is_passive:
        return 0
    return production_time_at(building_type.base_time, level)

def demolish_refund(building_type, rate):
    """Share of the build cost returned when demolishing."""
    return {res: math.floor(amount * rate) for res, amount in build_cost(building_type).items()}

def missing_resources(resources, cost):
    """Shortfall per resource; empty when ``cost`` is affordable."""
    missing = {}
    for res, amount in cost.items():
        have = resources.get(res, 0)
        if have < amount:
            missing[res] = amount - have
    return missing

def can_afford(resources, cost):
    return not missing_resources(resources, cost)

def apply_cost(resources, cost):
    """Subtract ``cost`` in place. Callers check affordability first."""
    for res, amount in cost.items():
        remaining = resources.get(res, 0) - amount
        if remaining < 0:
            raise ValueError(f"Cost exceeds balance for {res}")
        resources[res] = remaining
    return resources

def apply_reward(resources, reward, max_storage):
    """Add ``reward`` in place, clamping bankable resources at ``max_storage``.

    A balance already above the cap is left where it is; a reward never
    lowers it.
    """
    for res, amount in reward.items():
        if res in BANKABLE:
            current = resources.get(res, 0)
            resources[res] = max(current, min(current + amount, max_storage))
        else:
            resources[res] = resources.get(res, 0) + amount
    return resources

def clamp_to_storage(resources, max_storage):
    """Cut bankable balances down to ``max_storage`` in place (after capacity shrinks)."""
    for res in BANKABLE:
        if resources.get(res, 0) > max_storage:
            resources[res] = max_storage
    return resources

def merge_bundles(total, bundle, times=1):
    """Accumulate ``bundle`` (multiplied by ``times``) into ``total``."""
    for res, amount in bundle.items():
        total[res] = total.get(res, 0) + amount * times
    return total

def _sum_output(catalog, buildings, key):
    total = 0
    for building in buildings:
        bt = catalog.get_building_type(building.type_id)
        if bt and bt.base_output.get(key):
            total += income_at(bt.base_output[key], building.level)
    return total

def total_energy(catalog, buildings):
    """Energy capacity: idle allowance plus every energy producer."""
    return catalog.base_energy + _sum_output(catalog, buildings, ResourceKind.ENERGY.value)

def used_energy(catalog, buildings):
    """Flat upkeep of every building; does not scale with level."""
    used = 0
    for building in buildings:
        bt = catalog.get_building_type(building.type_id)
        if bt:
            used += bt.energy_cost
    return used

def max_storage(catalog, buildings):
    """Storage cap for bankable resources."""
    return catalog.base_max_storage + _sum_output(catalog, buildings, STORAGE_OUTPUT)

def total_population(catalog, buildings):
    return _sum_output(catalog, buildings, ResourceKind.POPULATION.value)
