"""Quest tracking: story quest unlocks, random quest padding and progress.

Progress is dispatched through ``QUEST_RULES``: each quest type names the
event that drives it, how the event amount is folded into the counter, and
whether the quest's target has to match the event's target.
"""
import logging
from collections import namedtuple

from backend.catalog import BANKABLE
from backend.game_objects import ANY_TARGET, Quest, QuestType

logger = logging.getLogger(__name__)

# Events emitted by the progression engine
EVENT_BUILD = 'build'
EVENT_COLLECT = 'collect'
EVENT_UPGRADE = 'upgrade'
EVENT_POPULATION = 'population'
EVENT_UNLOCK_ZONE = 'unlock_zone'
EVENT_SPEND = 'spend'

def _accumulate(quest, amount):
    quest.progress += amount

def _high_water(quest, amount):
    quest.progress = max(quest.progress, amount)

def _assign(quest, amount):
    quest.progress = amount

QuestRule = namedtuple('QuestRule', ['event', 'update', 'match_target'])

QUEST_RULES = {
    QuestType.BUILD: QuestRule(EVENT_BUILD, _accumulate, True),
    QuestType.BUILD_COUNT: QuestRule(EVENT_BUILD, _accumulate, False),
    QuestType.COLLECT: QuestRule(EVENT_COLLECT, _accumulate, True),
    QuestType.UPGRADE: QuestRule(EVENT_UPGRADE, _high_water, True),
    QuestType.REACH_POPULATION: QuestRule(EVENT_POPULATION, _assign, False),
    QuestType.UNLOCK_ZONE: QuestRule(EVENT_UNLOCK_ZONE, _assign, False),
    QuestType.SPEND: QuestRule(EVENT_SPEND, _accumulate, True),
}

def record_progress(quests, event, target=None, amount=1):
    """Apply one engine event to every matching quest; returns the updated quests."""
    updated = []
    for quest in quests:
        rule = QUEST_RULES[quest.kind]
        if rule.event != event:
            continue
        if rule.match_target and quest.target != ANY_TARGET and quest.target != target:
            continue
        rule.update(quest, amount)
        updated.append(quest)
    return updated

def quest_from_template(template):
    return Quest(
        quest_id=template.id,
        kind=QuestType(template.type),
        target=template.target,
        count=template.count,
        reward=dict(template.reward),
        description=template.description,
        progress=0,
        source='story'
    )

class QuestTracker:
    """Keeps a city's active quest list topped up and progressing."""

    def __init__(self, catalog, rng):
        self.catalog = catalog
        self.rng = rng

    @property
    def limit(self):
        return self.catalog.active_quest_limit

    def record(self, city, event, target=None, amount=1):
        return record_progress(city.active_quests, event, target, amount)

    def record_population(self, city):
        return self.record(city, EVENT_POPULATION, amount=city.total_population())

    def seed_progress(self, city, quest):
        """Quests measured against city state start at the current value."""
        if quest.kind == QuestType.REACH_POPULATION:
            quest.progress = city.total_population()
        elif quest.kind == QuestType.UNLOCK_ZONE:
            quest.progress = city.stats['zones_unlocked']
        return quest

    def eligible_story_templates(self, city):
        """Story templates unlocked at the city's level and not yet issued."""
        active_ids = {q.quest_id for q in city.active_quests}
        completed = set(city.completed_quests)
        return [
            t for t in self.catalog.story_quests
            if t.min_level <= city.level and t.id not in completed and t.id not in active_ids
        ]

    def add_story_quests(self, city):
        """Issue newly eligible story quests.

        A full quest list gives up an untouched random quest to make room;
        story quests that still do not fit are issued on a later scan.
        """
        added = []
        for template in self.eligible_story_templates(city):
            if len(city.active_quests) >= self.limit and not self._evict_random_quest(city):
                break
            quest = self.seed_progress(city, quest_from_template(template))
            city.active_quests.append(quest)
            added.append(quest)
        return added

    def _evict_random_quest(self, city):
        for idx in range(len(city.active_quests) - 1, -1, -1):
            quest = city.active_quests[idx]
            if quest.is_random and quest.progress == 0:
                del city.active_quests[idx]
                return True
        return False

    def refill(self, city):
        """Top the active list up to the limit: story quests first, then random ones."""
        self.add_story_quests(city)
        while len(city.active_quests) < self.limit:
            quest = self.generate_random_quest(city)
            if quest is None:
                break
            city.active_quests.append(quest)
        return city.active_quests

    def _pool_targets(self, pool_type, pool, city):
        targets = pool.get('targets', [])
        if targets == 'unlocked_buildings':
            return [bt.id for bt in self.catalog.unlocked_building_types(city.level)]
        if targets == 'owned_buildings':
            owned = []
            for type_id, level in sorted(city.highest_levels().items()):
                bt = self.catalog.get_building_type(type_id)
                if bt and level < bt.max_level:
                    owned.append(type_id)
            return owned
        return list(targets)

    def random_candidates(self, city):
        """(quest type, target) pairs not already covered by an active random quest."""
        taken = {(q.kind.value, q.target) for q in city.active_quests if q.is_random}
        candidates = []
        for pool_type in sorted(self.catalog.random_pools):
            pool = self.catalog.random_pools[pool_type]
            for target in self._pool_targets(pool_type, pool, city):
                if (pool_type, target) not in taken:
                    candidates.append((pool_type, target))
        return candidates

    def _target_name(self, target):
        bt = self.catalog.get_building_type(target)
        if bt:
            return bt.name.lower()
        if target == ANY_TARGET:
            return 'resources'
        return target

    def generate_random_quest(self, city):
        """Synthesize one random quest scaled to the city's level, or None."""
        candidates = self.random_candidates(city)
        if not candidates:
            return None
        pool_type, target = self.rng.choice(candidates)
        pool = self.catalog.random_pools[pool_type]
        level = city.level

        low, high = pool.get('count', [1, 1])
        count = self.rng.randint(low, high)
        if pool.get('count_per_level'):
            count *= level
        if pool_type == QuestType.UPGRADE.value:
            bt = self.catalog.get_building_type(target)
            current = city.highest_levels().get(target, 1)
            count = min(max(count + level // 4, current + 1), bt.max_level)

        reward = {
            res: amount * level if res in BANKABLE else amount
            for res, amount in pool.get('reward', {}).items()
        }
        description = pool.get('description', '{count} {target_name}').format(
            count=count, target_name=self._target_name(target))

        active_ids = {q.quest_id for q in city.active_quests}
        quest_id = 'r-%08x' % self.rng.getrandbits(32)
        while quest_id in active_ids:
            quest_id = 'r-%08x' % self.rng.getrandbits(32)

        quest = Quest(
            quest_id=quest_id,
            kind=QuestType(pool_type),
            target=target,
            count=count,
            reward=reward,
            description=description,
            progress=0,
            source='random'
        )
        logger.debug("Generated random quest %s: %s", quest_id, description)
        return self.seed_progress(city, quest)

    def find(self, city, quest_id):
        for idx, quest in enumerate(city.active_quests):
            if quest.quest_id == quest_id:
                return idx, quest
        return None, None
