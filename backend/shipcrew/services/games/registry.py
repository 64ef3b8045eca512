import threading
from typing import Dict, Iterator, List, Optional

from shipcrew.models import Player, Room, generate_room_code


class RoomStore:
    """Process-wide owner of Room entities, keyed by room code."""

    def __init__(self):
        self._rooms: Dict[str, Room] = {}
        self._lock = threading.Lock()

    def create(self, rng, time_budget: int, total_distance: int) -> Room:
        with self._lock:
            code = generate_room_code(rng, self._rooms)
            room = Room(code, time_budget=time_budget, total_distance=total_distance)
            self._rooms[code] = room
            return room

    def get(self, room_id) -> Optional[Room]:
        if not room_id:
            return None
        return self._rooms.get(str(room_id).upper())

    def remove(self, room_id) -> Optional[Room]:
        with self._lock:
            return self._rooms.pop(room_id, None)

    def __contains__(self, room_id) -> bool:
        return self.get(room_id) is not None

    def __len__(self) -> int:
        return len(self._rooms)

    def __iter__(self) -> Iterator[Room]:
        return iter(list(self._rooms.values()))


class PlayerStore:
    """Process-wide owner of Player entities, keyed by connection handle."""

    def __init__(self):
        self._players: Dict[str, Player] = {}
        self._lock = threading.Lock()

    def add(self, player: Player) -> Player:
        with self._lock:
            self._players[player.id] = player
        return player

    def get(self, sid) -> Optional[Player]:
        return self._players.get(sid)

    def remove(self, sid) -> Optional[Player]:
        with self._lock:
            return self._players.pop(sid, None)

    def members(self, room: Room) -> List[Player]:
        """Resolve a room's member ids, skipping records already purged."""
        resolved = []
        for pid in room.player_ids:
            player = self._players.get(pid)
            if player is not None:
                resolved.append(player)
        return resolved

    def __contains__(self, sid) -> bool:
        return sid in self._players

    def __len__(self) -> int:
        return len(self._players)
