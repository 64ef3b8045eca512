import string
import threading
from typing import Dict, List, Optional

SHIP_SYSTEMS = ['Engine', 'Oxygen', 'Navigation', 'Shield', 'Communication']

# Room lifecycle: lobby -> active -> ended -> lobby
STATUS_LOBBY = 'lobby'
STATUS_ACTIVE = 'active'
STATUS_ENDED = 'ended'

ROOM_CODE_ALPHABET = string.ascii_uppercase + string.digits
ROOM_CODE_LENGTH = 5
VISIBLE_EVENTS = 5


def clamp_health(value) -> int:
    return max(0, min(100, int(value)))


def calculate_ship_health(systems: Dict[str, int]) -> int:
    """Floor of the mean system health; 100 for an empty mapping."""
    values = list(systems.values())
    if not values:
        return 100
    return sum(values) // len(values)


def generate_room_code(rng, taken, length=ROOM_CODE_LENGTH):
    """Generate a short room code that is not in ``taken``."""
    while True:
        code = ''.join(rng.choice(ROOM_CODE_ALPHABET) for _ in range(length))
        if code not in taken:
            return code


class Player:
    def __init__(self, sid: str, username: str, room_id: str, secret_uses: int = 3):
        self.id = sid
        self.username = username
        self.room_id = room_id
        self.role: Optional[str] = None
        self.objective: Optional[str] = None
        self.secret_uses = secret_uses
        self.voted = False
        self.objective_completed = False
        self.connected = True

    def reset_for_lobby(self, secret_uses: int) -> None:
        self.role = None
        self.objective = None
        self.voted = False
        self.secret_uses = secret_uses
        self.objective_completed = False

    def to_dict(self):
        # Role stays private; it is delivered through role_assigned only
        return {
            'id': self.id,
            'username': self.username,
            'connected': self.connected,
            'voted': self.voted,
        }


class Room:
    def __init__(self, code: str, time_budget: int = 900, total_distance: int = 100):
        self.id = code
        self.player_ids: List[str] = []
        self.status = STATUS_LOBBY
        self.time_budget = time_budget
        self.total_distance = total_distance
        self.systems: Dict[str, int] = {}
        self.ship_health = 100
        self.distance = 0.0
        self.time_left = time_budget
        self.events: List[dict] = []
        self.votes: Dict[str, str] = {}
        self.start_time: Optional[float] = None
        self.final_stats: Optional[dict] = None
        # Serialises every mutation of this room across socket handlers and the ticker
        self.lock = threading.RLock()
        self.reset_round_state()

    @property
    def started(self) -> bool:
        return self.status == STATUS_ACTIVE

    def reset_round_state(self) -> None:
        self.systems = {name: 100 for name in SHIP_SYSTEMS}
        self.ship_health = 100
        self.distance = 0.0
        self.time_left = self.time_budget
        self.events = []
        self.votes = {}
        self.start_time = None
        self.final_stats = None

    def damage_system(self, system: str, amount: int) -> int:
        self.systems[system] = clamp_health(self.systems[system] - amount)
        return self.systems[system]

    def repair_system(self, system: str, amount: int) -> int:
        self.systems[system] = clamp_health(self.systems[system] + amount)
        return self.systems[system]

    def recompute_ship_health(self) -> int:
        self.ship_health = calculate_ship_health(self.systems)
        return self.ship_health

    def log_event(self, event_type: str, message: str, **extra) -> dict:
        entry = {'type': event_type, 'message': message}
        entry.update(extra)
        self.events.append(entry)
        return entry

    def recent_events(self, limit: int = VISIBLE_EVENTS):
        return [{'type': e['type'], 'message': e['message']} for e in self.events[-limit:]]

    def clamped_distance(self) -> float:
        return min(self.distance, self.total_distance)

    def progress(self) -> float:
        if not self.total_distance:
            return 100.0
        return round(self.clamped_distance() / self.total_distance * 100, 1)

    def snapshot(self):
        """Per-tick state pushed to every member."""
        return {
            'time_left': self.time_left,
            'distance': self.clamped_distance(),
            'total_distance': self.total_distance,
            'progress': self.progress(),
            'systems': dict(self.systems),
            'ship_health': self.ship_health,
            'events': self.recent_events(),
        }

    def to_dict(self, players=None):
        """Public room view. ``players`` resolves member ids to Player records."""
        members = []
        for pid in self.player_ids:
            player = players.get(pid) if players is not None else None
            if player is not None:
                members.append(player.to_dict())
        payload = {
            'room_id': self.id,
            'status': self.status,
            'started': self.started,
            'players': members,
            'player_count': len(self.player_ids),
            'start_time': self.start_time,
        }
        payload.update(self.snapshot())
        return payload
