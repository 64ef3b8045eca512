"""Role catalog and role assignment."""

from typing import List

CAPTAIN = 'Captain'
TECHNICIAN = 'Technician'
SPY = 'Spy'
AI = 'AI'
SABOTEUR = 'Saboteur'

ROLES = [CAPTAIN, TECHNICIAN, SPY, AI, SABOTEUR]

OBJECTIVES = {
    CAPTAIN: 'Bring the ship to its destination with ship health of at least 60%',
    TECHNICIAN: 'Keep every ship system above 70%',
    SPY: 'Collect 3 pieces of secret data without getting caught',
    AI: "Follow all of the Captain's orders but keep Oxygen below 50%",
    SABOTEUR: 'Stop the ship from reaching its destination without getting caught',
}
DEFAULT_OBJECTIVE = 'Complete your secret mission!'


def get_objective(role) -> str:
    return OBJECTIVES.get(role, DEFAULT_OBJECTIVE)


def assign_roles(player_count: int, rng) -> List[str]:
    """Build a shuffled role list of length ``player_count``.

    Captain and Technician are always present; Spy, AI and Saboteur join at
    3, 4 and 5 players. Larger crews are filled with random picks from the
    full pool, so duplicates only appear once every base role is in play.
    """
    assigned = [CAPTAIN, TECHNICIAN]
    if player_count >= 3:
        assigned.append(SPY)
    if player_count >= 4:
        assigned.append(AI)
    if player_count >= 5:
        assigned.append(SABOTEUR)
    while len(assigned) < player_count:
        assigned.append(rng.choice(ROLES))
    rng.shuffle(assigned)
    return assigned
