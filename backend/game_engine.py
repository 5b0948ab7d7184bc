"""Core game engine: one player's city and the actions that change it."""
import logging
import random
import time

from backend import economy
from backend.catalog import (
    ENERGY_EXEMPT_TYPE, ZONE_UNLOCK_XP, ResourceKind, get_catalog,
    build_xp, claim_xp, collect_xp, level_xp_needed, upgrade_xp
)
from backend.config import Config
from backend.errors import (
    BuildingNotFound, InsufficientCoins, InsufficientEnergy, InsufficientResources,
    InvalidCityName, LevelTooLow, MaxLevelReached, NotCollectible, NotReady,
    QuestIncomplete, QuestNotFound, TileLocked, TileOccupied, UnknownAction,
    UnknownBuildingType, ZoneUnavailable
)
from backend.game_objects import Building, Quest, Zone
from backend.offline import calculate_offline_reward
from backend.quests import (
    EVENT_BUILD, EVENT_COLLECT, EVENT_SPEND, EVENT_UNLOCK_ZONE, EVENT_UPGRADE,
    QuestTracker
)
from backend import zones as zone_rules

logger = logging.getLogger(__name__)

def _now(now=None):
    return time.time() if now is None else float(now)

def new_stats():
    return {
        'total_built': 0,
        'total_collected': 0,
        'total_upgrades': 0,
        'total_demolished': 0,
        'zones_unlocked': 0,
        'earned': {},
        'spent': {}
    }

class GameEngine:
    """City progression engine for a single player.

    Every action validates first and mutates only once all checks pass, so a
    raised ``GameActionError`` leaves the city untouched. Buildings are
    addressed by their position in ``self.buildings``; removing one shifts
    the indices of every later building down by one.
    """

    def __init__(self, city_name=None, catalog=None, rng=None, now=None):
        """Create a fresh city."""
        self.catalog = catalog or get_catalog()
        self.rng = rng or random.Random()
        self.quest_tracker = QuestTracker(self.catalog, self.rng)
        self._init_city(city_name, now)

    def _init_city(self, city_name, now):
        self.city_name = city_name or Config.DEFAULT_CITY_NAME
        self.level = 1
        self.experience = 0
        self.resources = dict(self.catalog.resource_defaults)
        self.buildings = []
        self.unlocked_zones = []
        self.active_quests = []
        self.completed_quests = []
        self.stats = new_stats()
        self.last_online = _now(now)
        self.quest_tracker.refill(self)

    @classmethod
    def from_dict(cls, state, catalog=None, rng=None):
        """Rebuild a city from its persisted document."""
        engine = cls.__new__(cls)
        engine.catalog = catalog or get_catalog()
        engine.rng = rng or random.Random()
        engine.quest_tracker = QuestTracker(engine.catalog, engine.rng)

        engine.city_name = state.get('city_name') or Config.DEFAULT_CITY_NAME
        engine.level = int(state.get('level', 1))
        engine.experience = int(state.get('experience', 0))
        engine.resources = dict(engine.catalog.resource_defaults)
        engine.resources.update(state.get('resources', {}))
        engine.buildings = [Building.from_dict(b) for b in state.get('buildings', [])]
        engine.unlocked_zones = [Zone.from_dict(z) for z in state.get('unlocked_zones', [])]
        engine.active_quests = [Quest.from_dict(q) for q in state.get('active_quests', [])]
        engine.completed_quests = list(state.get('completed_quests', []))
        engine.stats = new_stats()
        engine.stats.update(state.get('stats', {}))
        engine.last_online = float(state.get('last_online', time.time()))
        return engine

    @classmethod
    def load_from_player(cls, player, catalog=None, rng=None):
        """Load game engine from a stored player row."""
        if not player.state:
            return cls(city_name=player.city_name, catalog=catalog, rng=rng)
        return cls.from_dict(player.state, catalog=catalog, rng=rng)

    def to_dict(self):
        """Persistable document for this city."""
        return {
            'city_name': self.city_name,
            'level': self.level,
            'experience': self.experience,
            'resources': dict(self.resources),
            'buildings': [b.to_dict() for b in self.buildings],
            'unlocked_zones': [z.to_dict() for z in self.unlocked_zones],
            'active_quests': [q.to_dict() for q in self.active_quests],
            'completed_quests': list(self.completed_quests),
            'stats': {
                **self.stats,
                'earned': dict(self.stats['earned']),
                'spent': dict(self.stats['spent'])
            },
            'last_online': self.last_online
        }

    # Derived quantities

    def max_storage(self):
        return economy.max_storage(self.catalog, self.buildings)

    def total_energy(self):
        return economy.total_energy(self.catalog, self.buildings)

    def used_energy(self):
        return economy.used_energy(self.catalog, self.buildings)

    def total_population(self):
        return economy.total_population(self.catalog, self.buildings)

    def next_zones(self):
        return zone_rules.next_zones(self.unlocked_zones, self.catalog.grid)

    def xp_needed(self):
        """Experience required for the next level."""
        return level_xp_needed(self.level + 1)

    def highest_levels(self):
        """Highest owned level per building type."""
        levels = {}
        for building in self.buildings:
            levels[building.type_id] = max(levels.get(building.type_id, 0), building.level)
        return levels

    def building_index_at(self, x, y):
        for idx, building in enumerate(self.buildings):
            if building.x == x and building.y == y:
                return idx
        return None

    def is_tile_unlocked(self, x, y):
        grid = self.catalog.grid
        if isinstance(x, bool) or not isinstance(x, int) or isinstance(y, bool) or not isinstance(y, int):
            return False
        return zone_rules.is_on_grid(x, y, grid) and \
            zone_rules.is_tile_unlocked(x, y, self.unlocked_zones, grid)

    def _get_building(self, index):
        if isinstance(index, bool) or not isinstance(index, int) or not 0 <= index < len(self.buildings):
            raise BuildingNotFound(index)
        building = self.buildings[index]
        return building, self.catalog.get_building_type(building.type_id)

    # Shared mutation helpers

    def _spend(self, cost):
        economy.apply_cost(self.resources, cost)
        for res, amount in cost.items():
            if amount > 0:
                self.stats['spent'][res] = self.stats['spent'].get(res, 0) + amount
                self.quest_tracker.record(self, EVENT_SPEND, res, amount)

    def _add_reward(self, reward):
        economy.apply_reward(self.resources, reward, self.max_storage())

    def _earn(self, collected):
        economy.merge_bundles(self.stats['earned'], collected)

    def _grant_experience(self, amount):
        self.experience += amount

    def _check_level_up(self):
        """Convert banked experience into levels, then top up quests."""
        gained = 0
        needed = self.xp_needed()
        while self.experience >= needed:
            self.experience -= needed
            self.level += 1
            gained += 1
            self.quest_tracker.add_story_quests(self)
            needed = self.xp_needed()
        if gained:
            logger.info("City %r reached level %s", self.city_name, self.level)
        self.quest_tracker.refill(self)
        return gained

    # Actions

    def build(self, building_type, x, y, now=None):
        """Place a new level 1 building at (x, y)."""
        now = _now(now)
        bt = self.catalog.get_building_type(building_type)
        if not bt:
            raise UnknownBuildingType(f"Unknown building type: {building_type}")
        if self.level < bt.unlock_level:
            raise LevelTooLow(bt.unlock_level)
        if not self.is_tile_unlocked(x, y):
            raise TileLocked()
        if self.building_index_at(x, y) is not None:
            raise TileOccupied()

        total_energy = self.total_energy()
        required_energy = self.used_energy() + bt.energy_cost
        if required_energy > total_energy and bt.id != ENERGY_EXEMPT_TYPE:
            raise InsufficientEnergy(required_energy, total_energy)

        cost = economy.build_cost(bt)
        missing = economy.missing_resources(self.resources, cost)
        if missing:
            raise InsufficientResources(missing)

        self._spend(cost)
        building = Building(type_id=bt.id, x=x, y=y, level=1, last_collected=now)
        self.buildings.append(building)

        self.stats['total_built'] += 1
        self._grant_experience(build_xp(self.level))
        self.quest_tracker.record(self, EVENT_BUILD, bt.id, 1)
        self.quest_tracker.record_population(self)
        self._check_level_up()

        return {
            'success': True,
            'index': len(self.buildings) - 1,
            'building': building.to_dict(),
            'cost': cost
        }

    def _ready_cycles(self, building, bt, now):
        """(cycles, elapsed, production time) for a collectible building."""
        elapsed = max(0, int(now - building.last_collected))
        prod_time = economy.production_time(bt, building.level)
        if elapsed < prod_time:
            return 0, elapsed, prod_time
        return min(elapsed // prod_time, self.catalog.collect_cycle_cap), elapsed, prod_time

    def collect(self, building_index, now=None):
        """Collect finished production cycles from one building."""
        now = _now(now)
        building, bt = self._get_building(building_index)
        if not bt or bt.is_passive:
            raise NotCollectible()

        cycles, elapsed, prod_time = self._ready_cycles(building, bt, now)
        if cycles == 0:
            raise NotReady(prod_time - elapsed)

        collected = economy.merge_bundles({}, economy.output(bt, building.level), cycles)
        self._add_reward(collected)
        building.last_collected = now

        self.stats['total_collected'] += 1
        self._earn(collected)
        self._grant_experience(collect_xp(self.level))
        for res, amount in collected.items():
            self.quest_tracker.record(self, EVENT_COLLECT, res, amount)
        self.quest_tracker.record_population(self)
        self._check_level_up()

        return {'success': True, 'collected': collected, 'cycles': cycles}

    def collect_all(self, now=None):
        """Collect every ready building in one pass, applying the total once."""
        now = _now(now)
        total = {}
        count = 0
        for building in self.buildings:
            bt = self.catalog.get_building_type(building.type_id)
            if not bt or bt.is_passive:
                continue
            cycles, _, _ = self._ready_cycles(building, bt, now)
            if cycles == 0:
                continue
            economy.merge_bundles(total, economy.output(bt, building.level), cycles)
            building.last_collected = now
            count += 1

        if count == 0:
            return {'success': True, 'collected': {}, 'count': 0}

        self._add_reward(total)
        self.stats['total_collected'] += count
        self._earn(total)
        self._grant_experience(collect_xp(self.level) * count)
        for res, amount in total.items():
            self.quest_tracker.record(self, EVENT_COLLECT, res, amount)
        self.quest_tracker.record_population(self)
        self._check_level_up()

        return {'success': True, 'collected': total, 'count': count}

    def upgrade(self, building_index, now=None):
        """Raise a building's level by one."""
        building, bt = self._get_building(building_index)
        if not bt:
            raise UnknownBuildingType(f"Unknown building type: {building.type_id}")
        if building.level >= bt.max_level:
            raise MaxLevelReached(bt.max_level)

        cost = economy.upgrade_cost(bt, building.level)
        missing = economy.missing_resources(self.resources, cost)
        if missing:
            raise InsufficientResources(missing)

        self._spend(cost)
        building.level += 1

        self.stats['total_upgrades'] += 1
        self._grant_experience(upgrade_xp(self.level))
        self.quest_tracker.record(self, EVENT_UPGRADE, bt.id, building.level)
        self.quest_tracker.record_population(self)
        self._check_level_up()

        return {'success': True, 'building': building.to_dict(), 'cost': cost}

    def demolish(self, building_index, now=None):
        """Remove a building, refunding part of its build cost."""
        building, bt = self._get_building(building_index)
        refund = economy.demolish_refund(bt, self.catalog.demolish_refund_rate) if bt else {}
        del self.buildings[building_index]
        # Removing a warehouse shrinks the cap under existing balances
        economy.clamp_to_storage(self.resources, self.max_storage())
        self._add_reward(refund)
        self.stats['total_demolished'] += 1
        return {'success': True, 'refund': refund, 'building': building.to_dict()}

    def move(self, building_index, x, y, now=None):
        """Relocate a building to another unlocked, free tile."""
        building, _ = self._get_building(building_index)
        if not self.is_tile_unlocked(x, y):
            raise TileLocked()
        occupant = self.building_index_at(x, y)
        if occupant is not None and occupant != building_index:
            raise TileOccupied()
        building.x = x
        building.y = y
        return {'success': True, 'building': building.to_dict()}

    def unlock_zone(self, direction, now=None):
        """Buy the candidate zone bordering the city in ``direction``."""
        candidate = zone_rules.find_candidate(self.unlocked_zones, self.catalog.grid, direction)
        if candidate is None:
            raise ZoneUnavailable(direction)
        coins = self.resources.get(ResourceKind.COINS.value, 0)
        if coins < candidate['cost']:
            raise InsufficientCoins(candidate['cost'], coins)

        self._spend({ResourceKind.COINS.value: candidate['cost']})
        zone = Zone.from_dict(candidate)
        self.unlocked_zones.append(zone)

        self.stats['zones_unlocked'] += 1
        self._grant_experience(ZONE_UNLOCK_XP)
        self.quest_tracker.record(self, EVENT_UNLOCK_ZONE, amount=self.stats['zones_unlocked'])
        self._check_level_up()
        logger.info("City %r unlocked zone #%s to the %s", self.city_name,
                    candidate['zone_number'], direction)

        return {'success': True, 'zone': zone.to_dict(), 'cost': candidate['cost']}

    def claim_quest(self, quest_id, now=None):
        """Collect the reward of a completed quest."""
        idx, quest = self.quest_tracker.find(self, quest_id)
        if quest is None:
            raise QuestNotFound(quest_id)
        if not quest.is_complete:
            raise QuestIncomplete(quest.progress, quest.count)

        self._add_reward(quest.reward)
        del self.active_quests[idx]
        if not quest.is_random:
            self.completed_quests.append(quest.quest_id)

        self._grant_experience(claim_xp(self.level))
        self._check_level_up()

        return {'success': True, 'quest': quest.to_dict(), 'reward': dict(quest.reward)}

    def reset(self, now=None):
        """Wipe the city and start over."""
        self._init_city(None, now)
        return {'success': True}

    def rename(self, name, now=None):
        name = (name or '').strip()
        if not 1 <= len(name) <= Config.CITY_NAME_MAX_LENGTH:
            raise InvalidCityName(
                f"City name must be 1 to {Config.CITY_NAME_MAX_LENGTH} characters")
        self.city_name = name
        return {'success': True, 'city_name': name}

    def process_offline_progress(self, now=None):
        """Pay out production accrued since the last visit and mark the city online."""
        now = _now(now)
        collected = calculate_offline_reward(self.catalog, self.buildings, self.last_online, now)
        if collected:
            self._add_reward(collected)
            self._earn(collected)
        self.last_online = now
        return collected

    def perform_action(self, action_type, action_data=None, now=None):
        """Perform a game action by name."""
        action_data = action_data or {}
        if action_type == 'build':
            return self.build(action_data.get('building_type'), action_data.get('x'),
                              action_data.get('y'), now=now)
        elif action_type == 'collect':
            return self.collect(action_data.get('building_index'), now=now)
        elif action_type == 'collect_all':
            return self.collect_all(now=now)
        elif action_type == 'upgrade':
            return self.upgrade(action_data.get('building_index'), now=now)
        elif action_type == 'demolish':
            return self.demolish(action_data.get('building_index'), now=now)
        elif action_type == 'move':
            return self.move(action_data.get('building_index'), action_data.get('x'),
                             action_data.get('y'), now=now)
        elif action_type == 'unlock_zone':
            return self.unlock_zone(action_data.get('direction'), now=now)
        elif action_type == 'claim_quest':
            return self.claim_quest(action_data.get('quest_id'), now=now)
        elif action_type == 'reset':
            return self.reset(now=now)
        elif action_type == 'rename':
            return self.rename(action_data.get('name'), now=now)
        else:
            raise UnknownAction(f"Unknown action type: {action_type}")

    # Views

    def _building_view(self, index, building, now):
        bt = self.catalog.get_building_type(building.type_id)
        view = building.to_dict()
        view['index'] = index
        if bt is None:
            return view
        prod_time = economy.production_time(bt, building.level)
        elapsed = max(0, int(now - building.last_collected))
        view['production_time'] = prod_time
        view['ready_in'] = max(0, prod_time - elapsed) if prod_time else None
        view['output'] = economy.output(bt, building.level)
        view['upgrade_cost'] = economy.upgrade_cost(bt, building.level) \
            if building.level < bt.max_level else None
        return view

    def get_state(self, offline_collected=None, now=None):
        """Get current city state as dictionary."""
        now = _now(now)
        return {
            'city_name': self.city_name,
            'level': self.level,
            'experience': self.experience,
            'xp_needed': self.xp_needed(),
            'resources': dict(self.resources),
            'buildings': [self._building_view(i, b, now) for i, b in enumerate(self.buildings)],
            'unlocked_zones': [z.to_dict() for z in self.unlocked_zones],
            'active_quests': [q.to_dict() for q in self.active_quests],
            'completed_quests': list(self.completed_quests),
            'stats': self.to_dict()['stats'],
            'max_storage': self.max_storage(),
            'total_energy': self.total_energy(),
            'used_energy': self.used_energy(),
            'total_population': self.total_population(),
            'next_zones': self.next_zones(),
            'offline_collected': offline_collected or {},
            'last_online': self.last_online
        }

    def public_view(self):
        """Read-only summary shown to visitors and on the leaderboard."""
        return {
            'city_name': self.city_name,
            'level': self.level,
            'buildings': [b.to_dict() for b in self.buildings],
            'unlocked_zones': [z.to_dict() for z in self.unlocked_zones],
            'stats': self.to_dict()['stats'],
            'building_count': len(self.buildings),
            'total_population': self.total_population()
        }
