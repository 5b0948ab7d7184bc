"""Static game catalog: building types, quest templates and balance formulas.

The catalog is built once per process from the JSON files read by
``GameDataLoader`` and shared by reference afterwards. Nothing in here is
mutated at runtime; every other module derives costs, outputs and timings by
calling the formulas below.
"""
import math
from dataclasses import dataclass, field
from types import MappingProxyType

from backend.game_data_loader import get_game_data_loader
from backend.game_objects import RESOURCE_KINDS, STORAGE_OUTPUT, ResourceKind

# Resources limited by the city's storage capacity
BANKABLE = frozenset({ResourceKind.COINS.value, ResourceKind.FOOD.value, ResourceKind.MATERIALS.value})

# Special building type allowed to be built with no spare energy
ENERGY_EXEMPT_TYPE = 'powerplant'

INCOME_GROWTH = 1.18
UPGRADE_COST_GROWTH = 1.32
PRODUCTION_TIME_GROWTH = 0.03
ZONE_COST_BASE = 500

def make_bundle(values=None):
    """Normalize a mapping into a resource bundle.

    Keys must name a ``ResourceKind``; values are coerced to ``int``. Zero
    entries are dropped so bundles compare cleanly.
    """
    bundle = {}
    for key, amount in (values or {}).items():
        kind = ResourceKind(key).value
        amount = int(amount)
        if amount < 0:
            raise ValueError(f"Negative amount for {kind}: {amount}")
        if amount:
            bundle[kind] = bundle.get(kind, 0) + amount
    return bundle

def income_at(base, level):
    """Per-cycle output of ``base`` at building ``level``."""
    return math.floor(base * INCOME_GROWTH ** (level - 1))

def upgrade_cost_at(base, level):
    """Cost of taking a building from ``level`` to ``level + 1``."""
    return math.floor(base * UPGRADE_COST_GROWTH ** level)

def production_time_at(base_time, level):
    """Production cycle duration in seconds at ``level``."""
    return math.floor(base_time * (1 + (level - 1) * PRODUCTION_TIME_GROWTH))

def zone_unlock_cost(zone_number):
    """Coin cost of the ``zone_number``-th zone (1-based)."""
    return math.floor(ZONE_COST_BASE * zone_number ** 2)

def level_xp_needed(level):
    """Experience required to reach ``level``."""
    return math.floor(50 * level + 20)

# Experience grants, L = player level at the time of the action
def build_xp(level):
    return 10 + level * 2

def collect_xp(level):
    return 5 + level

def upgrade_xp(level):
    return 15 + level * 3

def claim_xp(level):
    return 20 + level * 5

ZONE_UNLOCK_XP = 50

@dataclass(frozen=True)
class BuildingType:
    """Immutable building definition."""
    id: str
    name: str
    icon: str
    description: str
    base_cost: MappingProxyType
    base_output: MappingProxyType
    base_time: int
    max_level: int
    category: str
    unlock_level: int
    energy_cost: int

    @classmethod
    def from_dict(cls, data):
        output = {}
        for key, amount in data.get('base_output', {}).items():
            if key == STORAGE_OUTPUT:
                output[key] = int(amount)
            else:
                output[ResourceKind(key).value] = int(amount)
        return cls(
            id=data['id'],
            name=data.get('name', data['id']),
            icon=data.get('icon', ''),
            description=data.get('description', ''),
            base_cost=MappingProxyType(make_bundle(data.get('base_cost'))),
            base_output=MappingProxyType(output),
            base_time=int(data.get('base_time', 0)),
            max_level=int(data.get('max_level', 1)),
            category=data.get('category', ''),
            unlock_level=int(data.get('unlock_level', 1)),
            energy_cost=int(data.get('energy_cost', 0))
        )

    @property
    def is_passive(self):
        """Passive buildings never need collecting."""
        return self.base_time == 0

    def resource_output(self):
        """Base output restricted to real resources (drops ``storage``)."""
        return {k: v for k, v in self.base_output.items() if k != STORAGE_OUTPUT}

    def to_dict(self):
        return {
            'id': self.id,
            'name': self.name,
            'icon': self.icon,
            'description': self.description,
            'base_cost': dict(self.base_cost),
            'base_output': dict(self.base_output),
            'base_time': self.base_time,
            'max_level': self.max_level,
            'category': self.category,
            'unlock_level': self.unlock_level,
            'energy_cost': self.energy_cost
        }

@dataclass(frozen=True)
class QuestTemplate:
    """Story quest definition."""
    id: str
    type: str
    target: str
    count: int
    reward: MappingProxyType
    min_level: int
    description: str

    @classmethod
    def from_dict(cls, data):
        return cls(
            id=str(data['id']),
            type=data['type'],
            target=data['target'],
            count=int(data['count']),
            reward=MappingProxyType(make_bundle(data.get('reward'))),
            min_level=int(data.get('min_level', 1)),
            description=data.get('description', '')
        )

@dataclass(frozen=True)
class GridConfig:
    size: int = 25
    initial_unlocked: int = 8
    zone_depth: int = 4

    @property
    def center(self):
        return self.size // 2

    @property
    def half_core(self):
        return self.initial_unlocked // 2

@dataclass(frozen=True)
class Catalog:
    """Process-wide, read-only game definitions."""
    building_types: MappingProxyType
    story_quests: tuple
    random_pools: MappingProxyType
    resource_defaults: MappingProxyType
    grid: GridConfig = field(default_factory=GridConfig)
    base_max_storage: int = 500
    base_energy: int = 10
    active_quest_limit: int = 8
    collect_cycle_cap: int = 10
    offline_cap_seconds: int = 28800
    demolish_refund_rate: float = 0.3

    @classmethod
    def from_loader(cls, loader):
        """Build a catalog from a ``GameDataLoader``."""
        building_types = {
            building_id: BuildingType.from_dict(data)
            for building_id, data in loader.load_buildings().items()
        }
        story_quests = tuple(QuestTemplate.from_dict(q) for q in loader.get_story_quests())
        limits = loader.get_limits()
        grid = loader.get_grid_config()
        defaults = {kind: 0 for kind in RESOURCE_KINDS}
        defaults.update(make_bundle(loader.get_resource_defaults()))
        return cls(
            building_types=MappingProxyType(building_types),
            story_quests=story_quests,
            random_pools=MappingProxyType(dict(loader.get_random_pools())),
            resource_defaults=MappingProxyType(defaults),
            grid=GridConfig(size=grid['size'],
                            initial_unlocked=grid['initial_unlocked'],
                            zone_depth=grid['zone_depth']),
            base_max_storage=limits['base_max_storage'],
            base_energy=limits['base_energy'],
            active_quest_limit=limits['active_quests'],
            collect_cycle_cap=limits['collect_cycle_cap'],
            offline_cap_seconds=limits['offline_cap_seconds'],
            demolish_refund_rate=limits['demolish_refund_rate']
        )

    def get_building_type(self, type_id):
        """Get a building type by id, or None."""
        return self.building_types.get(type_id)

    def get_story_quest(self, quest_id):
        for template in self.story_quests:
            if template.id == quest_id:
                return template
        return None

    def unlocked_building_types(self, level):
        """Building types a player of ``level`` may construct."""
        return [bt for bt in self.building_types.values() if bt.unlock_level <= level]

    def to_dict(self):
        """Client-facing view of the catalog."""
        return {
            'grid_size': self.grid.size,
            'initial_unlocked': self.grid.initial_unlocked,
            'zone_depth': self.grid.zone_depth,
            'building_types': {k: bt.to_dict() for k, bt in self.building_types.items()},
            'active_quest_limit': self.active_quest_limit
        }

# Global instance
_catalog = None

def get_catalog(data_dir=None):
    """Get or create the global catalog instance."""
    global _catalog
    if _catalog is None:
        _catalog = Catalog.from_loader(get_game_data_loader(data_dir))
    return _catalog
