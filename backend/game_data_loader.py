"""Game data loader for loading JSON configuration files."""
import json
from pathlib import Path

from backend.config import Config
from backend.game_objects import ANY_TARGET, RESOURCE_KINDS, STORAGE_OUTPUT, QuestType

QUEST_TYPES = tuple(kind.value for kind in QuestType)
RANDOM_POOL_TYPES = ('build', 'collect', 'upgrade', 'spend')

class GameDataLoader:
    """Loads and caches game data from JSON files."""

    def __init__(self, data_dir=None):
        """Initialize the data loader."""
        if data_dir is None:
            data_dir = Config.GAME_DATA_DIR
        if data_dir is None:
            # Assume we're running from project root
            self.data_dir = Path(__file__).parent.parent / 'game_data'
        else:
            self.data_dir = Path(data_dir)

        self._buildings = None
        self._story_quests = None
        self._random_pools = None
        self._economic_rules = None

    def _read(self, filename):
        file_path = self.data_dir / filename
        with open(file_path, 'r', encoding='utf-8') as f:
            return json.load(f)

    def load_buildings(self):
        """Load building type definitions keyed by building id."""
        if self._buildings is None:
            data = self._read('buildings.json')
            self._buildings = {}
            for building_id, building in data['buildings'].items():
                # Ensure it has an 'id' field
                self._buildings[building_id] = {**building, 'id': building_id}
        return self._buildings

    def load_quests(self):
        """Load story quest templates and random quest pools."""
        if self._story_quests is None:
            data = self._read('quests.json')
            self._story_quests = list(data.get('story_quests', []))
            self._random_pools = dict(data.get('random_pools', {}))
        return self._story_quests, self._random_pools

    def get_story_quests(self):
        """Get the ordered story quest templates."""
        return self.load_quests()[0]

    def get_random_pools(self):
        """Get random quest pools keyed by quest type."""
        return self.load_quests()[1]

    def load_economic_rules(self):
        """Load economic rules data."""
        if self._economic_rules is None:
            file_path = self.data_dir / 'economic_rules.json'
            if file_path.exists():
                self._economic_rules = self._read('economic_rules.json')
            else:
                self._economic_rules = {}
        return self._economic_rules

    def get_grid_config(self):
        """Get grid dimensions, falling back to Config values."""
        grid = self.load_economic_rules().get('grid', {})
        return {
            'size': grid.get('size', Config.GRID_SIZE),
            'initial_unlocked': grid.get('initial_unlocked', Config.INITIAL_UNLOCKED),
            'zone_depth': grid.get('zone_depth', Config.ZONE_DEPTH)
        }

    def get_resource_defaults(self):
        """Get starting resources for a new city."""
        defaults = dict(Config.INITIAL_RESOURCES)
        defaults.update(self.load_economic_rules().get('resources', {}))
        return defaults

    def get_limits(self):
        """Get progression limits (quest slots, cycle caps, offline window)."""
        rules = self.load_economic_rules()
        limits = rules.get('limits', {})
        return {
            'active_quests': limits.get('active_quests', Config.ACTIVE_QUEST_LIMIT),
            'collect_cycle_cap': limits.get('collect_cycle_cap', Config.COLLECT_CYCLE_CAP),
            'offline_cap_seconds': limits.get('offline_cap_seconds', Config.OFFLINE_CAP_SECONDS),
            'base_max_storage': rules.get('base_max_storage', Config.BASE_MAX_STORAGE),
            'base_energy': rules.get('base_energy', Config.BASE_ENERGY),
            'demolish_refund_rate': rules.get('demolish_refund_rate', Config.DEMOLISH_REFUND_RATE)
        }

    def validate_data(self):
        """Validate loaded data structure."""
        errors = []

        buildings = self.load_buildings()
        if not buildings:
            errors.append("No buildings loaded")

        for building_id, building in buildings.items():
            for res in building.get('base_cost', {}):
                if res not in RESOURCE_KINDS:
                    errors.append(f"Building {building_id} costs unknown resource: {res}")
            for res in building.get('base_output', {}):
                if res not in RESOURCE_KINDS and res != STORAGE_OUTPUT:
                    errors.append(f"Building {building_id} produces unknown resource: {res}")
            if building.get('max_level', 0) < 1:
                errors.append(f"Building {building_id} has no valid max_level")

        story_quests, random_pools = self.load_quests()
        if not story_quests:
            errors.append("No story quests loaded")

        quest_ids = [q.get('id') for q in story_quests]
        if len(quest_ids) != len(set(quest_ids)):
            errors.append("Duplicate quest IDs found")

        for quest in story_quests:
            quest_type = quest.get('type')
            target = quest.get('target')
            if quest_type not in QUEST_TYPES:
                errors.append(f"Quest {quest.get('id')} has unknown type: {quest_type}")
            elif quest_type in ('build', 'upgrade') and target not in buildings:
                errors.append(f"Quest {quest.get('id')} targets unknown building: {target}")
            elif quest_type in ('collect', 'spend') and target != ANY_TARGET and target not in RESOURCE_KINDS:
                errors.append(f"Quest {quest.get('id')} targets unknown resource: {target}")
            for res in quest.get('reward', {}):
                if res not in RESOURCE_KINDS:
                    errors.append(f"Quest {quest.get('id')} rewards unknown resource: {res}")

        for pool_type in random_pools:
            if pool_type not in RANDOM_POOL_TYPES:
                errors.append(f"Unknown random quest pool: {pool_type}")

        return errors

# Global instance
_game_data_loader = None

def get_game_data_loader(data_dir=None):
    """Get or create the global game data loader instance."""
    global _game_data_loader
    if _game_data_loader is None:
        _game_data_loader = GameDataLoader(data_dir)
    return _game_data_loader
