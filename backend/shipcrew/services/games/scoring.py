from typing import List, Optional

from shipcrew.models import Player, Room
from .roles import CAPTAIN, SABOTEUR, TECHNICIAN

CAPTAIN_MIN_SHIP_HEALTH = 60
TECHNICIAN_MIN_SYSTEM_HEALTH = 70


def check_win_condition(player: Player, room: Room, rng, reached: Optional[bool] = None) -> bool:
    if reached is None:
        reached = room.distance >= room.total_distance
    if player.role == CAPTAIN:
        return reached and room.ship_health >= CAPTAIN_MIN_SHIP_HEALTH
    if player.role == TECHNICIAN:
        return all(h >= TECHNICIAN_MIN_SYSTEM_HEALTH for h in room.systems.values())
    if player.role == SABOTEUR:
        return not reached
    # Spy, AI and duplicate fills have no tracked objective yet
    return rng.random() < 0.5


def score_game(room: Room, members: List[Player], rng, reached: Optional[bool] = None) -> List[str]:
    """Mark objective completion for each member and return winner names.

    Only members holding a role take part; anyone who joined after the
    roles were dealt has nothing to be scored on. ``reached`` overrides the
    distance check when the end reason already decided the arrival.
    """
    winners = []
    for player in members:
        if player.role is None:
            continue
        if check_win_condition(player, room, rng, reached):
            player.objective_completed = True
            winners.append(player.username)
    return winners


def final_stats(room: Room) -> dict:
    return {
        'ship_health': room.ship_health,
        'distance': room.clamped_distance(),
        'total_distance': room.total_distance,
        'time_left': room.time_left,
        'systems': dict(room.systems),
    }
