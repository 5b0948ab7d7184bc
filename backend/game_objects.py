"""Mutable value objects owned by a city: buildings, zones and quests."""
import uuid
from dataclasses import dataclass, field
from enum import Enum

class ResourceKind(str, Enum):
    """Closed set of resources a city can hold."""
    COINS = 'coins'
    FOOD = 'food'
    MATERIALS = 'materials'
    ENERGY = 'energy'
    POPULATION = 'population'
    EXPERIENCE = 'experience'
    CRYSTALS = 'crystals'

RESOURCE_KINDS = tuple(kind.value for kind in ResourceKind)

# Building output key that raises capacity instead of producing a resource
STORAGE_OUTPUT = 'storage'

class QuestType(str, Enum):
    BUILD = 'build'
    BUILD_COUNT = 'build_count'
    COLLECT = 'collect'
    UPGRADE = 'upgrade'
    REACH_POPULATION = 'reach_population'
    UNLOCK_ZONE = 'unlock_zone'
    SPEND = 'spend'

ANY_TARGET = 'any'

def new_building_id():
    return uuid.uuid4().hex[:12]

@dataclass
class Building:
    """A placed building instance."""
    type_id: str
    x: int
    y: int
    level: int = 1
    last_collected: float = 0.0  # epoch seconds
    is_producing: bool = True
    id: str = field(default_factory=new_building_id)

    @property
    def position(self):
        return (self.x, self.y)

    @classmethod
    def from_dict(cls, data):
        return cls(
            type_id=data['type'],
            x=int(data['x']),
            y=int(data['y']),
            level=int(data.get('level', 1)),
            last_collected=float(data.get('last_collected', 0.0)),
            is_producing=bool(data.get('is_producing', True)),
            id=data.get('id') or new_building_id()
        )

    def to_dict(self):
        return {
            'id': self.id,
            'type': self.type_id,
            'level': self.level,
            'x': self.x,
            'y': self.y,
            'last_collected': self.last_collected,
            'is_producing': self.is_producing
        }

@dataclass(frozen=True)
class Zone:
    """Unlocked rectangle of tiles, bounds inclusive."""
    x1: int
    y1: int
    x2: int
    y2: int
    direction: str = ''

    def contains(self, x, y):
        return self.x1 <= x <= self.x2 and self.y1 <= y <= self.y2

    def same_area(self, other):
        return (self.x1, self.y1, self.x2, self.y2) == (other.x1, other.y1, other.x2, other.y2)

    @classmethod
    def from_dict(cls, data):
        return cls(
            x1=int(data['x1']),
            y1=int(data['y1']),
            x2=int(data['x2']),
            y2=int(data['y2']),
            direction=data.get('direction', '')
        )

    def to_dict(self):
        return {
            'x1': self.x1,
            'y1': self.y1,
            'x2': self.x2,
            'y2': self.y2,
            'direction': self.direction
        }

@dataclass
class Quest:
    """An active quest instance with its progress counter."""
    quest_id: str
    kind: QuestType
    target: str
    count: int
    reward: dict
    description: str = ''
    progress: int = 0
    source: str = 'story'

    @property
    def is_complete(self):
        return self.progress >= self.count

    @property
    def is_random(self):
        return self.source == 'random'

    @classmethod
    def from_dict(cls, data):
        return cls(
            quest_id=str(data['quest_id']),
            kind=QuestType(data['type']),
            target=data['target'],
            count=int(data['count']),
            reward=dict(data.get('reward', {})),
            description=data.get('description', ''),
            progress=int(data.get('progress', 0)),
            source=data.get('source', 'story')
        )

    def to_dict(self):
        return {
            'quest_id': self.quest_id,
            'type': self.kind.value,
            'target': self.target,
            'count': self.count,
            'reward': dict(self.reward),
            'description': self.description,
            'progress': self.progress,
            'source': self.source,
            'completed': self.is_complete
        }
