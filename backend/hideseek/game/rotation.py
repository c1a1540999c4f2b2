from __future__ import annotations

from .models import SEEKING, Player, Room


def eligible_players(room: Room) -> list[Player]:
    """Players still hidden and with cues left, ordered by number."""
    return [
        p
        for p in room.sorted_players()
        if not p.is_found and p.sounds_played < room.sound_plays_per_player
    ]


def seconds_remaining(room: Room, now_ms: int) -> float:
    if room.seek_start_ms is None:
        return 0.0
    return room.seek_time_limit - (now_ms - room.seek_start_ms) / 1000


def plan_next_sound(
    room: Room,
    now_ms: int,
    min_delay: float,
    idle_delay: float,
) -> tuple[Player | None, float | None]:
    """Pick who sounds next and when to look again.

    Returns ``(player, delay)``. ``delay`` is None once the rotation must stop
    (phase left or time is up). The remaining cue budget is spread over the
    remaining time, never faster than ``min_delay``. The rotation index is
    taken modulo the current eligible set so found or exhausted players drop
    out without a gap.
    """
    if room.state != SEEKING:
        return None, None

    remaining = seconds_remaining(room, now_ms)
    if remaining <= 0:
        return None, None

    eligible = eligible_players(room)
    if not eligible:
        return None, idle_delay

    plays_left = sum(room.sound_plays_per_player - p.sounds_played for p in eligible)
    delay = max(min_delay, remaining / plays_left)

    idx = room.next_sound_index % len(eligible)
    room.next_sound_index = idx + 1
    return eligible[idx], delay
