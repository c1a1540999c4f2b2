from __future__ import annotations

import logging
import math
import re
import time
from threading import RLock
from typing import Any, Callable, Mapping

from ..realtime import events
from ..realtime.notifier import Notifier
from .errors import NotFoundError, ValidationError
from .models import (
    GAME_OVER,
    HIDER,
    HIDER_WINS,
    HIDING,
    SEEKER,
    SEEKERS_WIN,
    SEEKING,
    WAITING,
    Player,
    Room,
    Winner,
)
from .registry import RoomRegistry
from .rotation import plan_next_sound
from .sounds import SoundAssigner
from .timers import Scheduler, TimerHandle

log = logging.getLogger(__name__)

COUNTDOWN = "countdown"
DEADLINE = "deadline"
SOUNDS = "sounds"

_INT_PREFIX = re.compile(r"\s*([+-]?\d+)")


def now_ms() -> int:
    return int(time.time() * 1000)


def _parse_int(value: Any) -> int | None:
    if isinstance(value, bool):
        return None
    if isinstance(value, int):
        return value
    if isinstance(value, float):
        return int(value) if math.isfinite(value) else None
    if isinstance(value, str):
        m = _INT_PREFIX.match(value)
        return int(m.group(1)) if m else None
    return None


class GameService:
    """Rooms, their phase machine and every timer that drives it.

    All public methods take the service lock, and so do timer callbacks, so
    a room is never mutated by two callers at once whichever async mode
    Flask-SocketIO runs in. Rejected actions raise :class:`GameError`
    subclasses before touching any state.
    """

    def __init__(
        self,
        notifier: Notifier,
        scheduler: Scheduler,
        settings: Mapping[str, Any],
        registry: RoomRegistry | None = None,
        sounds: SoundAssigner | None = None,
        clock: Callable[[], int] = now_ms,
    ) -> None:
        self._lock = RLock()
        self.notifier = notifier
        self.scheduler = scheduler
        self.settings = settings
        self.clock = clock
        self.registry = registry or RoomRegistry(
            code_length=settings["ROOM_CODE_LENGTH"],
            code_chars=settings["ROOM_CODE_CHARS"],
        )
        self.sounds = sounds or SoundAssigner(settings["ANIMAL_SOUNDS"], settings["UNFOUND_SOUNDS"])

    # ------------------------------------------------------------------
    # Lookups
    # ------------------------------------------------------------------

    def get_room(self, code: str) -> Room | None:
        with self._lock:
            return self.registry.get(code)

    def find_room(self, sid: str) -> Room | None:
        with self._lock:
            return self.registry.find_by_member(sid)

    def _member(self, sid: str) -> tuple[Room, Player]:
        room = self.registry.find_by_member(sid)
        if room is None:
            raise NotFoundError("Not currently in a room.")
        return room, room.players[sid]

    def room_public_state(self, room: Room) -> dict:
        with self._lock:
            players = {}
            for p in room.sorted_players():
                players[p.id] = {
                    "id": p.id,
                    "number": p.number,
                    "role": p.role,
                    "isReady": p.is_ready,
                    "isFound": p.is_found,
                    "uniqueAnimalSoundURL": p.animal_sound,
                    "uniqueUnfoundSoundURL": p.unfound_sound,
                }

            return {
                "roomCode": room.code,
                "players": players,
                "gameState": room.state,
                "seekTimeLimit": room.seek_time_limit,
                "soundPlaysPerPlayer": room.sound_plays_per_player,
                "seekStartTime": room.seek_start_ms,
                "winner": room.winner,
                "activeUnfoundPlayerId": room.active_unfound_id,
            }

    def _broadcast_state(self, room: Room) -> None:
        self.notifier.broadcast(room.code, events.UPDATE_STATE, self.room_public_state(room))

    # ------------------------------------------------------------------
    # Membership
    # ------------------------------------------------------------------

    def create_room(self, sid: str) -> Room:
        with self._lock:
            if self.registry.find_by_member(sid) is not None:
                raise ValidationError("You are already in a room.")

            room = self.registry.create(
                seek_time_limit=self.settings["SEEK_TIME_LIMIT_SEC"],
                sound_plays_per_player=self.settings["SOUND_PLAYS_PER_PLAYER"],
                countdown_value=self.settings["PRE_SEEK_COUNTDOWN_SEC"],
            )
            self._add_player(room, sid)
            return room

    def join_room(self, sid: str, code: Any) -> Room:
        with self._lock:
            room_code = str(code or "").strip().upper()
            room = self.registry.get(room_code)
            if room is None:
                raise NotFoundError("Room not found.")

            current = self.registry.find_by_member(sid)
            if current is room:
                raise ValidationError("Cannot join room: You are already in this room.")
            if current is not None:
                raise ValidationError("You are already in a room.")
            if room.state != WAITING:
                raise ValidationError("Cannot join room: Game has already started.")

            self._add_player(room, sid)
            return room

    def _add_player(self, room: Room, sid: str) -> Player:
        number = room.next_player_number
        room.next_player_number += 1
        role = HIDER if room.hider() is None else SEEKER

        player = Player(id=sid, number=number, role=role)
        self.sounds.assign(player, room)
        room.players[sid] = player
        self.notifier.enter_room(sid, room.code)

        log.info(
            "[%s] P%d (%s, %s) joined. Sounds: A=%s, U=%s",
            room.code, number, sid, role, player.animal_sound, player.unfound_sound,
        )
        self._broadcast_state(room)
        return player

    def leave(self, sid: str) -> bool:
        """Remove ``sid`` from its room (leave or disconnect).

        Returns True when that emptied and deleted the room.
        """
        with self._lock:
            room = self.registry.find_by_member(sid)
            if room is None:
                log.debug("%s left but was not in any room.", sid)
                return False

            self.notifier.leave_room(sid, room.code)
            return self._remove_player(room, sid)

    def _remove_player(self, room: Room, sid: str) -> bool:
        player = room.players.pop(sid)
        was_hider = player.role == HIDER
        was_active = room.active_unfound_id == sid
        self.sounds.release(player, room)

        log.info("[%s] P%d (%s, %s) left.", room.code, player.number, sid, player.role)

        if not room.players:
            self._cancel_timers(room)
            self.registry.delete(room.code)
            return True

        if was_hider:
            self._promote_hider(room)

        if room.state == HIDING:
            if self._all_ready(room) and COUNTDOWN not in room.timers:
                log.info("[%s] Departure left everyone ready. Starting countdown.", room.code)
                self._broadcast_state(room)
                self._start_countdown(room)
            else:
                self._broadcast_state(room)
        elif room.state == SEEKING:
            if was_hider:
                log.info("[%s] Hider left during Seeking. Seekers win.", room.code)
                self._end_game(room, SEEKERS_WIN)
            elif not self._check_seekers_win(room):
                self._broadcast_state(room)
        elif room.state == GAME_OVER and room.winner == HIDER_WINS:
            if sid in room.unfound_queue:
                room.unfound_queue.remove(sid)
            if was_active:
                log.info("[%s] Active reveal player left. Activating next.", room.code)
                self._activate_next_unfound(room)
            else:
                self._broadcast_state(room)
        else:
            self._broadcast_state(room)
        return False

    def _promote_hider(self, room: Room) -> None:
        remaining = room.sorted_players()
        if not remaining:
            return
        new_hider = remaining[0]
        new_hider.role = HIDER
        log.info("[%s] P%d (%s) promoted to Hider.", room.code, new_hider.number, new_hider.id)

    # ------------------------------------------------------------------
    # Waiting
    # ------------------------------------------------------------------

    def update_settings(self, sid: str, data: Any) -> bool:
        with self._lock:
            room, player = self._member(sid)
            if player.role != HIDER:
                raise ValidationError("Only the Hider can change settings.")
            if room.state != WAITING:
                raise ValidationError("Settings can only be changed while waiting.")
            if not isinstance(data, dict):
                raise ValidationError("Invalid settings.")

            s = self.settings
            seek_time_limit = room.seek_time_limit
            sound_plays = room.sound_plays_per_player

            if "seekTimeLimit" in data:
                value = _parse_int(data["seekTimeLimit"])
                lo, hi = s["MIN_SEEK_TIME_LIMIT_SEC"], s["MAX_SEEK_TIME_LIMIT_SEC"]
                if value is None or value < lo or value > hi:
                    raise ValidationError(f"Invalid time limit. Must be between {lo} and {hi} seconds.")
                seek_time_limit = value

            if "soundPlaysPerPlayer" in data:
                value = _parse_int(data["soundPlaysPerPlayer"])
                lo, hi = s["MIN_SOUND_PLAYS"], s["MAX_SOUND_PLAYS"]
                if value is None or value < lo or value > hi:
                    raise ValidationError(f"Invalid sounds per phone. Must be between {lo} and {hi}.")
                sound_plays = value

            changed = (seek_time_limit, sound_plays) != (room.seek_time_limit, room.sound_plays_per_player)
            if changed:
                room.seek_time_limit = seek_time_limit
                room.sound_plays_per_player = sound_plays
                log.info(
                    "[%s] Settings updated: time limit %ss, %d sounds per player.",
                    room.code, seek_time_limit, sound_plays,
                )
                self._broadcast_state(room)
            return changed

    def start_hiding(self, sid: str) -> None:
        with self._lock:
            room, player = self._member(sid)
            if player.role != HIDER:
                raise ValidationError("Only the Hider can start the game.")
            if room.state != WAITING:
                raise ValidationError("Game is not in Waiting state.")
            min_players = self.settings["MIN_PLAYERS_TO_START"]
            if len(room.players) < min_players:
                raise ValidationError(f"Need at least {min_players} players to start.")

            log.info("[%s] Hiding phase started.", room.code)
            self._cancel_timers(room)
            room.state = HIDING
            room.winner = None
            room.seek_start_ms = None
            room.unfound_queue = []
            room.active_unfound_id = None
            for p in room.players.values():
                p.reset_for_new_game()
            self._broadcast_state(room)

    # ------------------------------------------------------------------
    # Hiding
    # ------------------------------------------------------------------

    def confirm_hidden(self, sid: str) -> None:
        with self._lock:
            room, player = self._member(sid)
            if room.state != HIDING:
                raise ValidationError("Not in Hiding phase.")
            if player.is_ready:
                return

            player.is_ready = True
            log.info("[%s] P%d confirmed hidden.", room.code, player.number)
            self._broadcast_state(room)

            if self._all_ready(room):
                log.info("[%s] All players hidden. Starting pre-seek countdown.", room.code)
                self._start_countdown(room)

    @staticmethod
    def _all_ready(room: Room) -> bool:
        return bool(room.players) and all(p.is_ready for p in room.players.values())

    def _start_countdown(self, room: Room) -> None:
        if COUNTDOWN in room.timers:
            return
        room.countdown_value = self.settings["PRE_SEEK_COUNTDOWN_SEC"]
        self.notifier.broadcast(room.code, events.PRE_SEEK_COUNTDOWN, room.countdown_value)
        self._schedule(room, COUNTDOWN, 1.0, self._countdown_tick)

    def _countdown_tick(self, room: Room) -> None:
        if room.state != HIDING:
            return
        room.countdown_value -= 1
        self.notifier.broadcast(room.code, events.PRE_SEEK_COUNTDOWN, room.countdown_value)
        if room.countdown_value <= 0:
            self._start_seeking(room)
        else:
            self._schedule(room, COUNTDOWN, 1.0, self._countdown_tick)

    # ------------------------------------------------------------------
    # Seeking
    # ------------------------------------------------------------------

    def _start_seeking(self, room: Room) -> None:
        if room.state == SEEKING:
            return

        log.info("[%s] Seeking phase started (%ss).", room.code, room.seek_time_limit)
        room.state = SEEKING
        room.seek_start_ms = self.clock()
        room.next_sound_index = 0
        for p in room.players.values():
            p.reset_for_seeking()

        if DEADLINE not in room.timers:
            self._schedule(room, DEADLINE, 1.0, self._deadline_tick)
        self._cancel_timer(room, SOUNDS)
        self._schedule(room, SOUNDS, self.settings["MIN_SOUND_DELAY_SEC"], self._sound_tick)

        self._broadcast_state(room)

    def _deadline_tick(self, room: Room) -> None:
        if room.state != SEEKING:
            return
        elapsed = (self.clock() - room.seek_start_ms) / 1000
        if elapsed >= room.seek_time_limit:
            log.info("[%s] Time limit reached. Hider wins.", room.code)
            self._end_game(room, HIDER_WINS)
        else:
            self._schedule(room, DEADLINE, 1.0, self._deadline_tick)

    def _sound_tick(self, room: Room) -> None:
        player, delay = plan_next_sound(
            room,
            self.clock(),
            min_delay=self.settings["MIN_SOUND_DELAY_SEC"],
            idle_delay=self.settings["IDLE_SOUND_CHECK_SEC"],
        )
        if delay is None:
            log.debug("[%s] Sound rotation stopped.", room.code)
            return

        if player is not None:
            if player.animal_sound:
                self.notifier.send(player.id, events.PLAY_SOUND, {"soundURL": player.animal_sound})
                player.sounds_played += 1
                log.info(
                    "[%s] Sound %d/%d for P%d. Next check in %.2fs.",
                    room.code, player.sounds_played, room.sound_plays_per_player, player.number, delay,
                )
            else:
                log.warning("[%s] P%d has no animal sound. Skipping play.", room.code, player.number)

        self._schedule(room, SOUNDS, delay, self._sound_tick)

    def mark_found(self, sid: str) -> None:
        with self._lock:
            room, player = self._member(sid)
            if player.is_found:
                return

            in_reveal = room.state == GAME_OVER and room.winner == HIDER_WINS
            if room.state != SEEKING and not in_reveal:
                raise ValidationError(f"Cannot mark found in current game state: {room.state}")

            player.is_found = True
            log.info("[%s] P%d marked self as found.", room.code, player.number)

            if room.state == SEEKING:
                if not self._check_seekers_win(room):
                    self._broadcast_state(room)
            elif sid == room.active_unfound_id:
                self._activate_next_unfound(room)
            else:
                if sid in room.unfound_queue:
                    room.unfound_queue.remove(sid)
                self._broadcast_state(room)

    def _check_seekers_win(self, room: Room) -> bool:
        if room.state != SEEKING:
            return False
        if all(p.is_found for p in room.players.values()):
            log.info("[%s] Every phone found. Seekers win.", room.code)
            self._end_game(room, SEEKERS_WIN)
            return True
        return False

    # ------------------------------------------------------------------
    # Game over
    # ------------------------------------------------------------------

    def _end_game(self, room: Room, winner: Winner) -> None:
        if room.state == GAME_OVER:
            return

        log.info("[%s] Game over. Winner: %s", room.code, winner)
        self._cancel_timers(room)
        room.state = GAME_OVER
        room.winner = winner

        if winner == HIDER_WINS:
            self._start_reveal(room)
        else:
            self.notifier.broadcast(room.code, events.PLAY_VICTORY_MELODY)
            self._broadcast_state(room)

    def _start_reveal(self, room: Room) -> None:
        room.unfound_queue = [p.id for p in room.sorted_players() if not p.is_found]
        log.info("[%s] Reveal started. Queue: %s", room.code, room.unfound_queue)
        self._activate_next_unfound(room)

    def _activate_next_unfound(self, room: Room) -> None:
        if room.state != GAME_OVER:
            return

        room.active_unfound_id = None
        while room.unfound_queue:
            pid = room.unfound_queue.pop(0)
            player = room.players.get(pid)
            if player is not None and player.unfound_sound:
                room.active_unfound_id = pid
                self.notifier.send(pid, events.BECOME_ACTIVE_UNFOUND, {"soundURL": player.unfound_sound})
                log.info("[%s] Reveal: P%d is now sounding %s.", room.code, player.number, player.unfound_sound)
                break
            log.warning("[%s] Reveal: %s has no unfound sound. Skipping.", room.code, pid)
        else:
            log.info("[%s] Reveal finished.", room.code)

        self._broadcast_state(room)

    def request_play_again(self, sid: str) -> None:
        with self._lock:
            room, player = self._member(sid)
            if room.state != GAME_OVER:
                raise ValidationError("Game is not over yet.")

            log.info("[%s] P%d requested play again.", room.code, player.number)
            self._cancel_timers(room)
            room.state = WAITING
            room.winner = None
            room.seek_start_ms = None
            room.active_unfound_id = None
            room.unfound_queue = []
            for p in room.players.values():
                p.reset_for_new_game()
            self.sounds.reassign_all(room)
            self._broadcast_state(room)

    # ------------------------------------------------------------------
    # Timers
    # ------------------------------------------------------------------

    def _schedule(self, room: Room, concern: str, delay: float, tick: Callable[[Room], None]) -> TimerHandle:
        """Run ``tick(room)`` after ``delay`` unless the timer went stale.

        A timer is stale once the room is no longer registered under its code
        or the room holds another handle for the same concern.
        """

        def _fire() -> None:
            with self._lock:
                if handle.cancelled or not self._owns(room, concern, handle):
                    log.debug("[%s] Stale %s timer ignored.", room.code, concern)
                    return
                del room.timers[concern]
                tick(room)

        handle = self.scheduler.call_later(delay, _fire)
        room.timers[concern] = handle
        return handle

    def _owns(self, room: Room, concern: str, handle: TimerHandle) -> bool:
        return self.registry.get(room.code) is room and room.timers.get(concern) is handle

    @staticmethod
    def _cancel_timer(room: Room, concern: str) -> None:
        handle = room.timers.pop(concern, None)
        if handle is not None:
            handle.cancel()

    def _cancel_timers(self, room: Room) -> None:
        for handle in room.timers.values():
            handle.cancel()
        room.timers.clear()
        room.next_sound_index = 0
