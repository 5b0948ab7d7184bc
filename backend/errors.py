"""Validation failures raised by game actions.

Every failure is raised before the city is touched, so catching one means the
aggregate is exactly as it was loaded.
"""

class GameActionError(ValueError):
    """Base class for rejected game actions."""
    code = 'invalid_action'
    message = 'Action not allowed'

    def __init__(self, message=None, **context):
        super().__init__(message or self.message)
        self.context = context

    def to_dict(self):
        payload = {'error': str(self), 'code': self.code}
        payload.update(self.context)
        return payload

class UnknownAction(GameActionError):
    code = 'unknown_action'
    message = 'Unknown action'

class UnknownBuildingType(GameActionError):
    code = 'unknown_building_type'
    message = 'Unknown building type'

class LevelTooLow(GameActionError):
    code = 'level_too_low'

    def __init__(self, required):
        super().__init__(f"Requires level {required}", required=required)

class TileLocked(GameActionError):
    code = 'tile_locked'
    message = 'Tile is not unlocked'

class TileOccupied(GameActionError):
    code = 'tile_occupied'
    message = 'Tile is already occupied'

class InsufficientEnergy(GameActionError):
    code = 'insufficient_energy'

    def __init__(self, required, available):
        super().__init__(f"Not enough energy: need {required}, have {available}",
                         required=required, available=available)

class InsufficientResources(GameActionError):
    code = 'insufficient_resources'

    def __init__(self, missing):
        super().__init__('Not enough resources', missing=missing)

class BuildingNotFound(GameActionError):
    code = 'building_not_found'

    def __init__(self, index):
        super().__init__(f"Building not found: {index}", index=index)

class MaxLevelReached(GameActionError):
    code = 'max_level_reached'

    def __init__(self, max_level):
        super().__init__(f"Already at max level {max_level}", max_level=max_level)

class NotCollectible(GameActionError):
    code = 'not_collectible'
    message = 'This building does not produce resources'

class NotReady(GameActionError):
    code = 'not_ready'

    def __init__(self, remaining):
        super().__init__(f"Not ready yet: {remaining}s remaining", remaining=remaining)

class QuestNotFound(GameActionError):
    code = 'quest_not_found'

    def __init__(self, quest_id):
        super().__init__(f"Quest not found: {quest_id}", quest_id=quest_id)

class QuestIncomplete(GameActionError):
    code = 'quest_incomplete'

    def __init__(self, progress, count):
        super().__init__(f"Quest not completed: {progress}/{count}", progress=progress, count=count)

class ZoneUnavailable(GameActionError):
    code = 'zone_unavailable'

    def __init__(self, direction):
        super().__init__(f"No zone available to the {direction}", direction=direction)

class InsufficientCoins(GameActionError):
    code = 'insufficient_coins'

    def __init__(self, cost, available):
        super().__init__(f"Not enough coins ({cost})", cost=cost, available=available)

class InvalidCityName(GameActionError):
    code = 'invalid_city_name'
