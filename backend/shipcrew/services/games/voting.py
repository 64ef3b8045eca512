from typing import Dict, Optional, Tuple

MIN_EJECTION_VOTES = 2


def round_complete(votes: Dict[str, str], member_count: int) -> bool:
    return member_count > 0 and len(votes) >= member_count


def tally(votes: Dict[str, str]) -> Dict[str, int]:
    counts: Dict[str, int] = {}
    for target in votes.values():
        counts[target] = counts.get(target, 0) + 1
    return counts


def pick_ejection(votes: Dict[str, str]) -> Tuple[Optional[str], int]:
    """Return (target, votes) for the player to eject, or (None, top count).

    The first target to reach the top count wins a tie, following the order
    votes were cast. A lone accuser never ejects anyone.
    """
    top_target, top_count = None, 0
    for target, count in tally(votes).items():
        if count > top_count:
            top_target, top_count = target, count
    if top_target is None or top_count < MIN_EJECTION_VOTES:
        return None, top_count
    return top_target, top_count
