"""Session state machine for ship rooms.

Every mutating operation goes through ``SessionManager``: it owns the room
and player stores, validates requests against the room's lifecycle
(lobby -> active -> ended -> lobby) and reports what happened through the
broadcaster. Each room has its own lock, so a room's requests and its
ticks never interleave even when the transport runs handlers on threads.
"""

import logging
import random
import time
from contextlib import contextmanager
from typing import Optional

from shipcrew.broadcast import Broadcaster, system_message
from shipcrew.exceptions import (
    AlreadyInRoom,
    DuplicateName,
    GameInProgress,
    InvalidAction,
    InvalidSystem,
    InvalidTarget,
    MissingField,
    NoUsesLeft,
    NotEnoughPlayers,
    RoomFull,
    RoomNotFound,
)
from shipcrew.models import (
    SHIP_SYSTEMS,
    STATUS_ACTIVE,
    STATUS_ENDED,
    STATUS_LOBBY,
    Player,
    Room,
)
from . import simulation
from .hazards import LIGHTS_OUT_DURATION_SEC, SECRET_ACTIONS
from .registry import PlayerStore, RoomStore
from .roles import TECHNICIAN, assign_roles, get_objective
from .scheduler import TickHandle, TickScheduler
from .scoring import final_stats, score_game
from .voting import pick_ejection, round_complete

TECHNICIAN_REPAIR = 35
CREW_REPAIR = 15


class SessionManager:
    def __init__(self, broadcaster: Broadcaster, scheduler: TickScheduler, rng=None,
                 logger: Optional[logging.Logger] = None, min_players: int = 2,
                 max_players: int = 10, time_budget: int = 900, total_distance: int = 100,
                 secret_uses: int = 3, reset_delay: float = 30, disconnect_grace: float = 30,
                 chat_max_length: int = 200):
        self.rooms = RoomStore()
        self.players = PlayerStore()
        self.broadcaster = broadcaster
        self.scheduler = scheduler
        self.rng = rng or random.Random()
        self.logger = logger or logging.getLogger(__name__)
        self.min_players = min_players
        self.max_players = max_players
        self.time_budget = time_budget
        self.total_distance = total_distance
        self.secret_uses = secret_uses
        self.reset_delay = reset_delay
        self.disconnect_grace = disconnect_grace
        self.chat_max_length = chat_max_length

    @classmethod
    def from_config(cls, config, broadcaster, scheduler, logger=None):
        seed = config.get('RANDOM_SEED')
        return cls(
            broadcaster,
            scheduler,
            rng=random.Random(seed) if seed not in (None, '') else random.Random(),
            logger=logger,
            min_players=int(config.get('MIN_PLAYERS', 2)),
            max_players=int(config.get('MAX_PLAYERS', 10)),
            time_budget=int(config.get('TIME_BUDGET_SEC', 900)),
            total_distance=int(config.get('TOTAL_DISTANCE', 100)),
            secret_uses=int(config.get('SECRET_USES', 3)),
            reset_delay=float(config.get('RESET_DELAY_SEC', 30)),
            disconnect_grace=float(config.get('DISCONNECT_GRACE_SEC', 30)),
            chat_max_length=int(config.get('CHAT_MAX_LENGTH', 200)),
        )

    # ---- helpers ----

    @contextmanager
    def _room_guard(self, room_id):
        """Lock a room, yielding None if it does not exist (or vanished while waiting)."""
        room = self.rooms.get(room_id)
        if room is None:
            yield None
            return
        with room.lock:
            yield room if self.rooms.get(room.id) is room else None

    def _clean_name(self, name, sid: str) -> str:
        cleaned = name.strip() if isinstance(name, str) else ''
        return cleaned or f"Player_{sid[:4]}"

    def _broadcast_room(self, room: Room) -> None:
        self.broadcaster.to_room(room.id, 'room_update', {
            'room_id': room.id,
            'status': room.status,
            'started': room.started,
            'players': [p.to_dict() for p in self.players.members(room)],
            'player_count': len(room.player_ids),
        })

    def _connected_count(self, room: Room) -> int:
        return sum(1 for p in self.players.members(room) if p.connected)

    def _destroy_room(self, room: Room) -> None:
        self.scheduler.stop(room.id)
        self.rooms.remove(room.id)
        self.logger.info(f"[room-destroy] room={room.id}")

    # ---- lobby ----

    def create_room(self, sid: str, name=None) -> Room:
        if sid in self.players:
            raise AlreadyInRoom()
        room = self.rooms.create(self.rng, self.time_budget, self.total_distance)
        with room.lock:
            player = self.players.add(Player(sid, self._clean_name(name, sid), room.id, self.secret_uses))
            room.player_ids.append(sid)
            self.broadcaster.subscribe(sid, room.id)
            self.logger.info(f"[room-create] room={room.id} by={player.username}")
            self.broadcaster.to_player(sid, 'room_created', {
                'room_id': room.id,
                'player': player.username,
                'room': room.to_dict(self.players),
            })
            self._broadcast_room(room)
            self.broadcaster.system_chat(room.id, f"Room {room.id} created!")
        return room

    def join_room(self, sid: str, room_id, name=None) -> Room:
        if not room_id:
            raise MissingField('room_id')
        if sid in self.players:
            raise AlreadyInRoom()
        room_id = str(room_id).strip().upper()
        with self._room_guard(room_id) as room:
            if room is None:
                raise RoomNotFound(room_id)
            if room.status != STATUS_LOBBY:
                raise GameInProgress()
            if len(room.player_ids) >= self.max_players:
                raise RoomFull(self.max_players)
            username = self._clean_name(name, sid)
            if any(p.username == username for p in self.players.members(room)):
                raise DuplicateName(username)

            self.players.add(Player(sid, username, room.id, self.secret_uses))
            room.player_ids.append(sid)
            self.broadcaster.subscribe(sid, room.id)
            self.logger.info(f"[room-join] room={room.id} player={username} count={len(room.player_ids)}")
            self.broadcaster.to_player(sid, 'joined_room', {
                'room_id': room.id,
                'player': username,
                'room': room.to_dict(self.players),
            })
            self._broadcast_room(room)
            self.broadcaster.system_chat(room.id, f"{username} joined the game!")
            return room

    def start_game(self, sid: str) -> bool:
        player = self.players.get(sid)
        if player is None:
            return False
        with self._room_guard(player.room_id) as room:
            if room is None or room.status != STATUS_LOBBY:
                self.logger.info(f"[game-start-skip] room={player.room_id} not in lobby")
                return False
            members = self.players.members(room)
            if len(members) < self.min_players:
                raise NotEnoughPlayers(self.min_players)

            roles = assign_roles(len(members), self.rng)
            for member, role in zip(members, roles):
                member.role = role
                member.objective = get_objective(role)
                member.secret_uses = self.secret_uses
                member.voted = False
                member.objective_completed = False
                self.broadcaster.to_player(member.id, 'role_assigned', {
                    'role': role,
                    'objective': member.objective,
                    'secret_uses': member.secret_uses,
                })

            room.reset_round_state()
            room.status = STATUS_ACTIVE
            room.start_time = time.time()
            self.scheduler.start(room.id, self.tick)
            self.logger.info(f"[game-start] room={room.id} players={len(members)}")

            self.broadcaster.to_room(room.id, 'game_started', room.to_dict(self.players))
            self.broadcaster.system_chat(room.id, 'GAME STARTED! Secret roles have been handed out.')
            return True

    # ---- in-game actions ----

    def use_secret_action(self, sid: str, action) -> bool:
        player = self.players.get(sid)
        if player is None:
            return False
        with self._room_guard(player.room_id) as room:
            if room is None or not room.started:
                return False
            if not action:
                raise MissingField('action')
            chosen = SECRET_ACTIONS.get(action) if isinstance(action, str) else None
            if chosen is None:
                raise InvalidAction(action)
            if player.secret_uses <= 0:
                raise NoUsesLeft()

            player.secret_uses -= 1
            if chosen.system is not None:
                room.damage_system(chosen.system, chosen.damage)
            else:
                room.log_event('lights_out', chosen.message, duration=LIGHTS_OUT_DURATION_SEC)
            room.recompute_ship_health()
            room.log_event(
                'secret_action',
                f"{player.username} used a secret action: {chosen.message}",
                player=player.username,
                action=action,
            )
            self.logger.info(f"[secret-action] room={room.id} player={player.username} action={action} left={player.secret_uses}")

            self.broadcaster.to_room(room.id, 'action_used', {
                'player': player.username,
                'action': action,
                'message': chosen.message,
                'remaining_uses': player.secret_uses,
            })
            self.broadcaster.system_chat(room.id, f"{player.username} used a secret action! {chosen.message}", 'warning')
            return True

    def repair_system(self, sid: str, system) -> Optional[int]:
        player = self.players.get(sid)
        if player is None:
            return None
        with self._room_guard(player.room_id) as room:
            if room is None or not room.started:
                return None
            if system not in SHIP_SYSTEMS:
                raise InvalidSystem(system)

            is_technician = player.role == TECHNICIAN
            amount = TECHNICIAN_REPAIR if is_technician else CREW_REPAIR
            health = room.repair_system(system, amount)
            room.recompute_ship_health()
            room.log_event(
                'repair',
                f"{player.username} repaired {system} by {amount}%",
                player=player.username,
                system=system,
                amount=amount,
            )

            self.broadcaster.to_room(room.id, 'system_repaired', {
                'system': system,
                'new_health': health,
                'amount': amount,
                'repaired_by': player.username,
                'is_technician': is_technician,
            })
            self.broadcaster.system_chat(room.id, f"{player.username} repaired {system} to {health}%", 'info')
            return health

    def send_chat(self, sid: str, text) -> bool:
        player = self.players.get(sid)
        if player is None:
            return False
        room = self.rooms.get(player.room_id)
        if room is None:
            return False
        cleaned = str(text if text is not None else '').strip()[:self.chat_max_length]
        if not cleaned:
            return False
        payload = system_message(cleaned, 'chat')
        payload['sender'] = player.username
        payload['sender_id'] = player.id
        self.broadcaster.to_room(room.id, 'chat_message', payload)
        return True

    # ---- voting ----

    def cast_vote(self, sid: str, target_id) -> bool:
        player = self.players.get(sid)
        if player is None or player.voted:
            return False
        with self._room_guard(player.room_id) as room:
            if room is None or not room.started or player.voted:
                return False
            target = self.players.get(target_id) if isinstance(target_id, str) else None
            if (target is None or target_id == sid or target.room_id != room.id
                    or target_id not in room.player_ids):
                raise InvalidTarget()

            player.voted = True
            room.votes[sid] = target_id
            self.broadcaster.to_room(room.id, 'vote_cast', {
                'voter': player.username,
                'target': target.username,
                'votes': len(room.votes),
                'total_players': len(room.player_ids),
            })
            self.broadcaster.system_chat(room.id, f"{player.username} voted to eject {target.username}", 'info')

            if round_complete(room.votes, len(room.player_ids)):
                self._resolve_votes(room)
            return True

    def _resolve_votes(self, room: Room) -> Optional[str]:
        target_id, count = pick_ejection(room.votes)
        room.votes = {}
        for member in self.players.members(room):
            member.voted = False

        ejected_id = None
        if target_id is not None and target_id in room.player_ids:
            ejected_id = target_id
            room.player_ids.remove(target_id)
            ejected = self.players.remove(target_id)
            name = ejected.username if ejected else target_id
            self.logger.info(f"[eject] room={room.id} player={name} votes={count}")

            self.broadcaster.to_room(room.id, 'player_ejected', {
                'player': name,
                'player_id': target_id,
                'votes': count,
                'reason': 'Ejected by crew vote',
            })
            self.broadcaster.system_chat(room.id, f"{name} was ejected from the ship with {count} votes!", 'warning')
            self.broadcaster.to_player(target_id, 'ejected', {'reason': 'You were ejected by crew vote'})
            self.broadcaster.unsubscribe(target_id, room.id)
            self.broadcaster.disconnect(target_id)
            self._broadcast_room(room)

            if len(room.player_ids) < self.min_players:
                self.end_game(room.id, simulation.END_TOO_FEW_AFTER_EJECTION)

        self.broadcaster.to_room(room.id, 'vote_reset', {})
        return ejected_id

    # ---- ticking & lifecycle ----

    def tick(self, room_id: str, handle: Optional[TickHandle] = None) -> Optional[str]:
        """Advance one active room by one step. Returns the end reason, if any."""
        with self._room_guard(room_id) as room:
            if room is None or not room.started:
                return None
            if handle is not None and handle.cancelled:
                return None

            hazard = simulation.advance(room, self.rng)
            if hazard is not None:
                latest = room.events[-1]
                self.broadcaster.to_room(room.id, 'random_event', {
                    'type': hazard.type,
                    'message': hazard.message,
                    'system': latest.get('system'),
                    'damage': latest.get('damage', 0),
                })
                self.broadcaster.system_chat(room.id, hazard.message, 'warning')

            self.broadcaster.to_room(room.id, 'game_update', room.snapshot())

            reason = simulation.check_end_condition(room)
            if reason is None and self._connected_count(room) < self.min_players:
                reason = simulation.END_TOO_FEW_PLAYERS
            if reason is not None:
                self.end_game(room.id, reason)
            return reason

    def end_game(self, room_id: str, reason: str) -> bool:
        with self._room_guard(room_id) as room:
            if room is None or room.status != STATUS_ACTIVE:
                return False
            self.scheduler.stop(room.id)
            room.status = STATUS_ENDED

            members = self.players.members(room)
            reached = reason == simulation.END_DESTINATION_REACHED
            winners = score_game(room, members, self.rng, reached=reached)
            room.final_stats = final_stats(room)
            message = simulation.END_MESSAGES.get(reason, reason)
            self.logger.info(f"[game-end] room={room.id} reason={reason} winners={winners}")

            self.broadcaster.to_room(room.id, 'game_ended', {
                'room_id': room.id,
                'reason': reason,
                'message': message,
                'winners': winners,
                'roles': {p.username: p.role for p in members if p.role},
                'stats': room.final_stats,
            })
            self.broadcaster.system_chat(room.id, f"GAME OVER! {message}")
            self._broadcast_room(room)
            self.scheduler.call_later(self.reset_delay, self.reset_room, room.id)
            return True

    def reset_room(self, room_id: str) -> bool:
        with self._room_guard(room_id) as room:
            if room is None or room.status != STATUS_ENDED:
                return False
            # Members who dropped during the game do not carry over into the lobby
            for member in self.players.members(room):
                if not member.connected:
                    self.players.remove(member.id)
                    self.logger.info(f"[purge] player={member.id} at reset")
            room.player_ids = [pid for pid in room.player_ids if pid in self.players]
            if not room.player_ids:
                self._destroy_room(room)
                return False

            room.reset_round_state()
            room.status = STATUS_LOBBY
            for member in self.players.members(room):
                member.reset_for_lobby(self.secret_uses)
            self.logger.info(f"[room-reset] room={room.id}")

            self.broadcaster.to_room(room.id, 'room_reset', {
                'message': 'The room has been reset. A new game can be started.',
                'room': room.to_dict(self.players),
            })
            self._broadcast_room(room)
            return True

    # ---- connection maintenance ----

    def disconnect(self, sid: str) -> None:
        player = self.players.get(sid)
        if player is None:
            return
        player.connected = False
        with self._room_guard(player.room_id) as room:
            if room is None:
                self.players.remove(sid)
                return
            if not room.started:
                # Lobby (or finished) rooms drop the player right away
                if sid in room.player_ids:
                    room.player_ids.remove(sid)
                self.players.remove(sid)
                if not room.player_ids:
                    self._destroy_room(room)
                    return
                self._broadcast_room(room)
                self.broadcaster.system_chat(room.id, f"{player.username} left the room")
                return

            self.logger.info(f"[disconnect] room={room.id} player={player.username} active game")
            self.broadcaster.system_chat(room.id, f"{player.username} lost connection", 'warning')
            self._broadcast_room(room)
            if self._connected_count(room) < self.min_players:
                self.end_game(room.id, simulation.END_TOO_FEW_PLAYERS)
        self.scheduler.call_later(self.disconnect_grace, self.purge_player, sid)

    def purge_player(self, sid: str) -> bool:
        """Drop a disconnected player's record once the grace window has passed."""
        player = self.players.get(sid)
        if player is None or player.connected:
            return False
        with self._room_guard(player.room_id) as room:
            self.players.remove(sid)
            self.logger.info(f"[purge] player={sid}")
            if room is None:
                return True
            if sid in room.player_ids:
                room.player_ids.remove(sid)
            if not room.player_ids:
                self._destroy_room(room)
                return True

            # Votes by or against the purged player no longer count
            for voter, target in list(room.votes.items()):
                if voter == sid or target == sid:
                    del room.votes[voter]
                    other = self.players.get(voter)
                    if other is not None:
                        other.voted = False
            self._broadcast_room(room)
            if room.started and room.votes and round_complete(room.votes, len(room.player_ids)):
                self._resolve_votes(room)
            return True

    # ---- queries ----

    def get_room_state(self, room_id) -> Optional[dict]:
        with self._room_guard(room_id) as room:
            if room is None:
                return None
            return room.to_dict(self.players)

    def status(self) -> dict:
        return {
            'rooms': len(self.rooms),
            'players': len(self.players),
            'active_games': self.scheduler.active_count(),
        }
