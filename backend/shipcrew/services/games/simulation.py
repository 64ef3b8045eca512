"""One simulation step of an active room.

The step only mutates the room; broadcasting and the end-of-game
transition are left to the session manager.
"""

from typing import Optional

from shipcrew.models import SHIP_SYSTEMS, Room
from .hazards import HazardEvent, random_event, resolve_target

SPEED_PER_TICK = 0.5
DEGRADE_CHANCE = 0.02
DEGRADE_AMOUNT = 2
EVENT_CHANCE = 0.03

END_TIME_EXPIRED = 'time_expired'
END_DESTINATION_REACHED = 'destination_reached'
END_SHIP_DESTROYED = 'ship_destroyed'
END_TOO_FEW_PLAYERS = 'too_few_players'
END_TOO_FEW_AFTER_EJECTION = 'too_few_players_after_ejection'

END_MESSAGES = {
    END_TIME_EXPIRED: 'Time is up! The ship did not reach its destination.',
    END_DESTINATION_REACHED: 'THE SHIP REACHED ITS DESTINATION!',
    END_SHIP_DESTROYED: 'THE SHIP WAS DESTROYED! Every system failed.',
    END_TOO_FEW_PLAYERS: 'Game over: too few players remain.',
    END_TOO_FEW_AFTER_EJECTION: 'Game over: too few players left after the vote.',
}


def advance(room: Room, rng) -> Optional[HazardEvent]:
    """Apply steps 1-5 of a tick. Returns the hazard that fired, if any."""
    room.time_left -= 1
    room.distance += SPEED_PER_TICK * (room.systems.get('Engine', 0) / 100)

    for system in SHIP_SYSTEMS:
        if rng.random() < DEGRADE_CHANCE:
            room.damage_system(system, DEGRADE_AMOUNT)

    fired = None
    if rng.random() < EVENT_CHANCE:
        fired = random_event(rng)
        target = resolve_target(fired, rng)
        if target is not None:
            room.damage_system(target, fired.damage)
        room.log_event(fired.type, fired.message, system=target, damage=fired.damage if target else 0)

    room.recompute_ship_health()
    return fired


def check_end_condition(room: Room) -> Optional[str]:
    """Terminal conditions in fixed priority order."""
    if room.time_left <= 0:
        return END_TIME_EXPIRED
    if room.distance >= room.total_distance:
        return END_DESTINATION_REACHED
    if room.ship_health <= 0:
        return END_SHIP_DESTROYED
    return None
