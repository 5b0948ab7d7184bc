import pytest

from backend import economy
from backend.game_objects import Building


def test_costs_and_outputs(catalog):
    farm = catalog.get_building_type('farm')
    assert economy.build_cost(farm) == {'coins': 100, 'materials': 50}
    assert economy.upgrade_cost(farm, 1) == {'coins': 132, 'materials': 66}
    assert economy.output(farm, 1) == {'food': 10}
    assert economy.output(farm, 2) == {'food': 11}
    assert economy.production_time(farm, 1) == 300
    assert economy.production_time(catalog.get_building_type('warehouse'), 5) == 0


def test_output_skips_storage_capacity(catalog):
    assert economy.output(catalog.get_building_type('warehouse'), 3) == {}


def test_demolish_refund_is_floored(catalog):
    house = catalog.get_building_type('house')
    assert economy.demolish_refund(house, 0.3) == {'coins': 45, 'materials': 24}


def test_affordability_fails_on_any_single_shortfall():
    resources = {'coins': 500, 'materials': 40}
    cost = {'coins': 100, 'materials': 50}
    assert not economy.can_afford(resources, cost)
    assert economy.missing_resources(resources, cost) == {'materials': 10}
    assert economy.can_afford({'coins': 100, 'materials': 50}, cost)


def test_apply_cost_can_reach_zero_but_not_below():
    resources = {'coins': 100, 'materials': 50}
    economy.apply_cost(resources, {'coins': 100, 'materials': 50})
    assert resources == {'coins': 0, 'materials': 0}
    with pytest.raises(ValueError):
        economy.apply_cost(resources, {'coins': 1})


def test_apply_reward_caps_only_bankable_resources():
    resources = {'coins': 450, 'food': 10, 'energy': 10, 'crystals': 5, 'population': 0, 'experience': 0}
    economy.apply_reward(resources, {
        'coins': 100, 'food': 1000, 'energy': 1000, 'crystals': 700,
        'population': 600, 'experience': 900
    }, 500)
    assert resources['coins'] == 500
    assert resources['food'] == 500
    assert resources['energy'] == 1010
    assert resources['crystals'] == 705
    assert resources['population'] == 600
    assert resources['experience'] == 900


def test_city_totals(catalog):
    buildings = [
        Building('powerplant', 8, 8, level=2),
        Building('warehouse', 9, 8, level=2),
        Building('house', 10, 8, level=1),
        Building('park', 11, 8, level=2),
        Building('farm', 12, 8, level=3),
    ]
    # 10 base + floor(5 * 1.18)
    assert economy.total_energy(catalog, buildings) == 15
    # upkeep is flat per building: 0 + 1 + 1 + 1 + 1
    assert economy.used_energy(catalog, buildings) == 4
    # 500 base + floor(100 * 1.18)
    assert economy.max_storage(catalog, buildings) == 618
    # house 5 + floor(3 * 1.18)
    assert economy.total_population(catalog, buildings) == 8


def test_empty_city_totals(catalog):
    assert economy.total_energy(catalog, []) == 10
    assert economy.used_energy(catalog, []) == 0
    assert economy.max_storage(catalog, []) == 500
    assert economy.total_population(catalog, []) == 0


def test_apply_reward_never_lowers_an_over_cap_balance():
    resources = {'coins': 650, 'food': 480}
    economy.apply_reward(resources, {'coins': 10, 'food': 10}, 500)
    assert resources == {'coins': 650, 'food': 490}


def test_clamp_to_storage_cuts_only_bankable_resources():
    resources = {'coins': 650, 'food': 500, 'materials': 501, 'population': 900}
    economy.clamp_to_storage(resources, 500)
    assert resources == {'coins': 500, 'food': 500, 'materials': 500, 'population': 900}
