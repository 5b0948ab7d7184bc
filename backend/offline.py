"""Offline catch-up: resources accrued while the player was away."""
import logging
import math

from backend import economy

logger = logging.getLogger(__name__)

def calculate_offline_reward(catalog, buildings, last_online, now):
    """Combined output of every production cycle finished since ``last_online``.

    Elapsed time is clamped to the catalog's offline window and each building
    pays out at most ``collect_cycle_cap`` cycles. Building collection
    timestamps are left alone, so the same cycles can still be collected
    manually afterwards.
    """
    elapsed = math.floor(now - last_online)
    if elapsed <= 0:
        return {}
    elapsed = min(elapsed, catalog.offline_cap_seconds)

    collected = {}
    for building in buildings:
        bt = catalog.get_building_type(building.type_id)
        if not bt or bt.is_passive:
            continue
        prod_time = economy.production_time(bt, building.level)
        if elapsed < prod_time:
            continue
        cycles = min(elapsed // prod_time, catalog.collect_cycle_cap)
        economy.merge_bundles(collected, economy.output(bt, building.level), cycles)

    if collected:
        logger.debug("Offline catch-up over %ss: %s", elapsed, collected)
    return collected
